"""
StockWatch Test Mocks Package
=============================
Mock implementations of the Alpha Vantage upstream used in testing.

Usage:
    from tests.mocks import FakeAlphaVantageClient, FrozenClock
    from tests.mocks.alpha_vantage_mock import create_mock_daily_response
"""

from tests.mocks.alpha_vantage_mock import (
    INVALID_CALL_MESSAGE,
    PREMIUM_MESSAGE,
    RATE_LIMIT_NOTE,
    FakeAlphaVantageClient,
    FrozenClock,
    create_mock_daily_response,
    create_mock_overview_response,
    create_mock_quote_response,
    create_mock_transport,
    create_sentinel_response,
)

__all__ = [
    "INVALID_CALL_MESSAGE",
    "PREMIUM_MESSAGE",
    "RATE_LIMIT_NOTE",
    "FakeAlphaVantageClient",
    "FrozenClock",
    "create_mock_daily_response",
    "create_mock_overview_response",
    "create_mock_quote_response",
    "create_mock_transport",
    "create_sentinel_response",
]
