"""
StockWatch Configuration
Centralized configuration for the market data pipeline.

Service values can be overridden via environment variables with the
STOCKWATCH_ prefix. The Alpha Vantage credential keeps its conventional
name (ALPHA_VANTAGE_API_KEY).
Example: STOCKWATCH_CACHE_TTL_SECONDS=3600 overrides cache_ttl_seconds
"""

import os
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional

logger = logging.getLogger(__name__)

DAY_IN_SECONDS = 60 * 60 * 24
DEFAULT_BASE_URL = "https://www.alphavantage.co/query"
DEFAULT_CACHE_DIR = os.path.join(".cache", "alpha-vantage")
CACHE_BACKENDS = ("disk", "memory")


def _get_env_str(key: str, default: str) -> str:
    """Get string from environment variable with fallback to default."""
    env_key = f"STOCKWATCH_{key.upper()}"
    value = os.getenv(env_key)
    if value is not None and value.strip():
        logger.info(f"Config override: {key} = {value.strip()} (from {env_key})")
        return value.strip()
    return default


def _get_env_float(key: str, default: float) -> float:
    """Get float from environment variable with fallback to default."""
    env_key = f"STOCKWATCH_{key.upper()}"
    value = os.getenv(env_key)
    if value is not None:
        try:
            result = float(value)
            logger.info(f"Config override: {key} = {result} (from {env_key})")
            return result
        except ValueError:
            logger.warning(f"Invalid float for {env_key}: {value}, using default {default}")
    return default


def _get_env_int(key: str, default: int) -> int:
    """Get integer from environment variable with fallback to default."""
    env_key = f"STOCKWATCH_{key.upper()}"
    value = os.getenv(env_key)
    if value is not None:
        try:
            result = int(value)
            logger.info(f"Config override: {key} = {result} (from {env_key})")
            return result
        except ValueError:
            logger.warning(f"Invalid int for {env_key}: {value}, using default {default}")
    return default


def _get_env_bool(key: str, default: bool) -> bool:
    """Get boolean from environment variable with fallback to default."""
    env_key = f"STOCKWATCH_{key.upper()}"
    value = os.getenv(env_key)
    if value is not None:
        result = value.lower() in ('true', '1', 'yes', 'on')
        logger.info(f"Config override: {key} = {result} (from {env_key})")
        return result
    return default


def _default_cache_enabled() -> bool:
    # The disk cache is a development aid; production deployments opt in explicitly.
    is_production = os.getenv("APP_ENV", "development").strip().lower() == "production"
    return _get_env_bool('cache_enabled', not is_production)


def _default_cache_backend() -> str:
    backend = _get_env_str('cache_backend', "disk").lower()
    if backend not in CACHE_BACKENDS:
        logger.warning(f"Unknown cache backend {backend!r}, using 'disk'")
        return "disk"
    return backend


@dataclass
class StockWatchConfig:
    """
    Runtime configuration for the fetch/normalize/cache pipeline.

    Built once at startup and injected into MarketDataService, so tests can
    construct one directly instead of mutating the environment.
    """

    # ===== Alpha Vantage =====
    api_key: str = field(default_factory=lambda: os.getenv("ALPHA_VANTAGE_API_KEY", "").strip())

    base_url: str = field(default_factory=lambda: _get_env_str('base_url', DEFAULT_BASE_URL))

    # Seconds before an upstream request is abandoned
    request_timeout: float = field(default_factory=lambda: _get_env_float('request_timeout', 30.0))

    # Output size for TIME_SERIES_DAILY (compact = latest 100 points)
    daily_outputsize: str = "compact"

    # ===== Mock Data =====
    # Serve built-in mock data without touching the network
    use_mocks: bool = field(default_factory=lambda: _get_env_bool('use_mocks', False))

    # Substitute mock data when a fetch or parse fails instead of reporting the error
    mock_fallback: bool = field(default_factory=lambda: _get_env_bool('mock_fallback', False))

    # ===== Cache =====
    cache_enabled: bool = field(default_factory=_default_cache_enabled)

    cache_backend: str = field(default_factory=_default_cache_backend)

    cache_dir: str = field(default_factory=lambda: _get_env_str('cache_dir', DEFAULT_CACHE_DIR))

    cache_ttl_seconds: int = field(default_factory=lambda: _get_env_int('cache_ttl_seconds', DAY_IN_SECONDS))

    @property
    def cache_ttl(self) -> timedelta:
        return timedelta(seconds=self.cache_ttl_seconds)

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)

    def should_use_mocks(self) -> bool:
        """Mock mode is on when forced, or implicitly when no credential is configured."""
        return self.use_mocks or not self.has_api_key

    def summary(self) -> dict:
        """Loggable view of the configuration (credential redacted)."""
        return {
            "api_key_configured": self.has_api_key,
            "use_mocks": self.use_mocks,
            "mock_fallback": self.mock_fallback,
            "cache_enabled": self.cache_enabled,
            "cache_backend": self.cache_backend,
            "cache_dir": self.cache_dir,
            "cache_ttl_seconds": self.cache_ttl_seconds,
            "request_timeout": self.request_timeout,
        }


# Singleton instance
_config: Optional[StockWatchConfig] = None


def get_config() -> StockWatchConfig:
    """Get or create the process-wide configuration."""
    global _config
    if _config is None:
        _config = StockWatchConfig()
        logger.info(f"StockWatch configuration loaded: {_config.summary()}")
    return _config


def reset_config() -> None:
    """Drop the cached configuration so the next get_config() re-reads the environment."""
    global _config
    _config = None
