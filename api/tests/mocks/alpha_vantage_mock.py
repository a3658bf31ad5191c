"""
Mock Alpha Vantage Upstream
===========================
Payload factories and a scripted client for testing the market data pipeline.

This module provides:
- Factory functions producing raw Alpha Vantage JSON (all values as strings)
- FakeAlphaVantageClient: drop-in for AlphaVantageClient with scripted outcomes
- FrozenClock: one controllable time source for both cache and service

Usage:
    from tests.mocks.alpha_vantage_mock import FakeAlphaVantageClient, create_mock_quote_response

    client = FakeAlphaVantageClient()
    client.set_response("GLOBAL_QUOTE", "TSLA", create_mock_quote_response("TSLA"))
    payload = await client.fetch({"function": "GLOBAL_QUOTE", "symbol": "TSLA"})
"""

import copy
import sys
import os
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple, Union

import httpx

# Add parent to path for model imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from services.alpha_vantage import detect_sentinel

PREMIUM_MESSAGE = (
    "Thank you for using Alpha Vantage! This is a premium endpoint. You may subscribe to "
    "any of the premium plans at https://www.alphavantage.co/premium/ to instantly unlock "
    "all premium endpoints"
)
RATE_LIMIT_NOTE = (
    "Thank you for using Alpha Vantage! Our standard API call frequency is 5 calls per "
    "minute and 500 calls per day."
)
INVALID_CALL_MESSAGE = "Invalid API call. Please retry or visit the documentation for TIME_SERIES_DAILY."


# ============================================================
# Payload factories
# ============================================================

def create_mock_quote_response(
    symbol: str,
    price: float = 150.0,
    change: float = 2.50,
    change_percent: str = "1.6949%",
    volume: Optional[int] = 50000000,
    previous_close: float = 147.50,
    open_price: float = 148.00,
    high_price: float = 151.00,
    low_price: float = 147.00,
    latest_trading_day: str = "2024-01-10",
) -> Dict[str, Any]:
    """
    Create a mock Alpha Vantage Global Quote response.

    Returns:
        Dictionary matching Alpha Vantage Global Quote format
    """
    quote = {
        "01. symbol": symbol.upper(),
        "02. open": f"{open_price:.4f}",
        "03. high": f"{high_price:.4f}",
        "04. low": f"{low_price:.4f}",
        "05. price": f"{price:.4f}",
        "07. latest trading day": latest_trading_day,
        "08. previous close": f"{previous_close:.4f}",
        "09. change": f"{change:.4f}",
        "10. change percent": change_percent,
    }
    if volume is not None:
        quote["06. volume"] = str(volume)
    return {"Global Quote": quote}


def create_mock_overview_response(
    symbol: str,
    name: str = "Acme Corp",
    market_capitalization: Optional[str] = "1500000000",
    **overrides: str,
) -> Dict[str, Any]:
    """Create a mock OVERVIEW response; pass field=value to override raw fields."""
    payload = {
        "Symbol": symbol.upper(),
        "AssetType": "Common Stock",
        "Name": name,
        "Description": f"{name} designs things.",
        "Exchange": "NASDAQ",
        "Currency": "USD",
        "Country": "USA",
        "Sector": "TECHNOLOGY",
        "Industry": "SEMICONDUCTORS",
        "PERatio": "None",
    }
    if market_capitalization is not None:
        payload["MarketCapitalization"] = market_capitalization
    payload.update(overrides)
    return payload


def create_mock_daily_response(
    symbol: str,
    days: int = 5,
    start: date = date(2024, 1, 2),
    start_price: float = 100.0,
    step: float = 1.0,
    adjusted: bool = False,
) -> Dict[str, Any]:
    """
    Create a mock TIME_SERIES_DAILY (or _ADJUSTED) response.

    Entries are emitted newest first, like the live API. The adjusted
    variant reports volume under "6. volume".
    """
    series: Dict[str, Dict[str, str]] = {}
    for offset in range(days):
        close = start_price + offset * step
        values = {
            "1. open": f"{close - 0.5:.4f}",
            "2. high": f"{close + 1:.4f}",
            "3. low": f"{close - 1:.4f}",
            "4. close": f"{close:.4f}",
        }
        volume = str(1_000_000 + offset * 1000)
        if adjusted:
            values["5. adjusted close"] = f"{close:.4f}"
            values["6. volume"] = volume
            values["7. dividend amount"] = "0.0000"
            values["8. split coefficient"] = "1.0"
        else:
            values["5. volume"] = volume
        series[(start + timedelta(days=offset)).isoformat()] = values

    function = "Daily Time Series with Splits and Dividend Events" if adjusted else "Daily Prices"
    return {
        "Meta Data": {
            "1. Information": f"{function} (open, high, low, close) and Volumes",
            "2. Symbol": symbol.upper(),
            "3. Last Refreshed": (start + timedelta(days=days - 1)).isoformat(),
            "4. Output Size": "Compact",
            "5. Time Zone": "US/Eastern",
        },
        "Time Series (Daily)": dict(reversed(list(series.items()))),
    }


def create_sentinel_response(field: str, message: str) -> Dict[str, str]:
    """A 200 body carrying one of the Note / Error Message / Information sentinels"""
    return {field: message}


# ============================================================
# Scripted client
# ============================================================

Outcome = Union[Dict[str, Any], BaseException]


class FakeAlphaVantageClient:
    """
    Stand-in for AlphaVantageClient.

    Outcomes are scripted per (function, symbol). A scripted sequence is
    consumed in order and its last outcome repeats. Dict outcomes go through
    the same sentinel detection as the real client, so a scripted
    {"Note": ...} raises RateLimitError just like production.
    """

    def __init__(self):
        self._outcomes: Dict[Tuple[str, str], List[Outcome]] = {}
        self.calls: List[Dict[str, str]] = []
        self.closed = False

    def set_response(self, function: str, symbol: str, *outcomes: Outcome) -> "FakeAlphaVantageClient":
        self._outcomes[(function, symbol)] = list(outcomes)
        return self

    def script_healthy(self, symbol: str) -> "FakeAlphaVantageClient":
        """Valid quote, overview and daily series for `symbol`"""
        self.set_response("GLOBAL_QUOTE", symbol, create_mock_quote_response(symbol))
        self.set_response("OVERVIEW", symbol, create_mock_overview_response(symbol, name=f"{symbol} Inc"))
        self.set_response("TIME_SERIES_DAILY", symbol, create_mock_daily_response(symbol))
        return self

    def call_count(self, function: Optional[str] = None, symbol: Optional[str] = None) -> int:
        return sum(
            1 for call in self.calls
            if (function is None or call.get("function") == function)
            and (symbol is None or call.get("symbol") == symbol)
        )

    async def fetch(self, params: Dict[str, str]) -> Dict[str, Any]:
        self.calls.append(dict(params))
        function = params.get("function", "")
        key = (function, params.get("symbol", ""))
        outcomes = self._outcomes.get(key)
        if not outcomes:
            raise AssertionError(f"Unscripted Alpha Vantage call: {params}")

        outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome

        sentinel_error = detect_sentinel(outcome, function=function)
        if sentinel_error is not None:
            raise sentinel_error
        return copy.deepcopy(outcome)

    async def aclose(self) -> None:
        self.closed = True


def create_mock_transport(
    payload: Any = None,
    status_code: int = 200,
    text: Optional[str] = None,
    recorder: Optional[List[httpx.Request]] = None,
) -> httpx.MockTransport:
    """httpx transport answering every request with one canned response"""

    def handler(request: httpx.Request) -> httpx.Response:
        if recorder is not None:
            recorder.append(request)
        if text is not None:
            return httpx.Response(status_code, text=text)
        return httpx.Response(status_code, json=payload)

    return httpx.MockTransport(handler)


# ============================================================
# Time
# ============================================================

class FrozenClock:
    """Controllable clock; `ms` feeds caches, `now` feeds the service."""

    def __init__(self, start: datetime = datetime(2024, 1, 10, 15, 0, tzinfo=timezone.utc)):
        self.current = start

    def now(self) -> datetime:
        return self.current

    def ms(self) -> int:
        return int(self.current.timestamp() * 1000)

    def advance(self, seconds: float) -> None:
        self.current = self.current + timedelta(seconds=seconds)
