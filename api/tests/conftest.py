"""
StockWatch API Test Configuration
=================================
Shared pytest fixtures and configuration for all tests.

This file is automatically loaded by pytest and provides:
- A config factory that never reads the real environment or network
- A scripted Alpha Vantage client and a frozen clock
- A MarketDataService wired to those fakes
- A FastAPI test client with the service dependency overridden
"""
import pytest
import sys
import os
from typing import Callable

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fastapi.testclient import TestClient
from main import app

from config import StockWatchConfig, reset_config
from services.disk_cache import DiskCache, MemoryCache
from services.market_data import MarketDataService, get_market_data_service

# Import mocks
from tests.mocks.alpha_vantage_mock import FakeAlphaVantageClient, FrozenClock


# ============================================================
# Pytest Configuration
# ============================================================

def pytest_configure(config):
    """Configure custom pytest markers"""
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )


@pytest.fixture(autouse=True)
def isolated_config():
    """Drop the process-wide config before and after every test"""
    reset_config()
    yield
    reset_config()


# ============================================================
# Config / Time / Cache
# ============================================================

@pytest.fixture
def make_config(tmp_path) -> Callable[..., StockWatchConfig]:
    """
    Factory for StockWatchConfig with every field set explicitly.

    Defaults: live mode with a dummy key, no mock fallback, memory cache.
    """
    def _make(**overrides) -> StockWatchConfig:
        values = dict(
            api_key="test-key",
            base_url="https://alphavantage.test/query",
            request_timeout=5.0,
            use_mocks=False,
            mock_fallback=False,
            cache_enabled=True,
            cache_backend="memory",
            cache_dir=str(tmp_path / "cache"),
            cache_ttl_seconds=24 * 60 * 60,
        )
        values.update(overrides)
        return StockWatchConfig(**values)

    return _make


@pytest.fixture
def config(make_config) -> StockWatchConfig:
    return make_config()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def memory_cache(clock) -> MemoryCache:
    return MemoryCache(clock=clock.ms)


@pytest.fixture
def disk_cache(tmp_path, clock) -> DiskCache:
    return DiskCache(root=str(tmp_path / "cache"), clock=clock.ms)


# ============================================================
# Service Fixtures
# ============================================================

@pytest.fixture
def fake_client() -> FakeAlphaVantageClient:
    return FakeAlphaVantageClient()


@pytest.fixture
def make_service(config, fake_client, memory_cache, clock) -> Callable[..., MarketDataService]:
    """Build a MarketDataService; keyword overrides replace any collaborator."""
    def _make(**overrides) -> MarketDataService:
        kwargs = dict(config=config, client=fake_client, cache=memory_cache, now=clock.now)
        kwargs.update(overrides)
        return MarketDataService(**kwargs)

    return _make


@pytest.fixture
def service(make_service) -> MarketDataService:
    return make_service()


# ============================================================
# FastAPI Test Client Fixtures
# ============================================================

@pytest.fixture
def client(service) -> TestClient:
    """
    Fresh FastAPI test client whose routes use the `service` fixture.

    Returns:
        TestClient instance for making requests
    """
    app.dependency_overrides[get_market_data_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()
