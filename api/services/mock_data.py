"""
Built-in mock records for every watchlist ticker.

Used when no API key is configured, when mock mode is forced, or (with
mock_fallback enabled) when a live fetch fails. Values are deterministic so
the UI and the tests see the same numbers on every run.
"""
from datetime import date, timedelta
from typing import Dict, List, Optional

from models.stock import (
    SUPPORTED_TICKERS,
    CompanyOverview,
    DailySeriesPoint,
    StockQuote,
    Ticker,
)

SECTORS = ["Technology", "Energy", "Finance", "Healthcare"]
INDUSTRIES = ["Software", "Blockchain", "Semiconductors", "Biotech"]

SERIES_START = date(2024, 1, 1)
SERIES_DAYS = 10


def _index_of(ticker: Ticker) -> int:
    return SUPPORTED_TICKERS.index(ticker)


def create_company_overview(ticker: Ticker) -> CompanyOverview:
    index = _index_of(ticker)
    symbol = ticker.value
    sector = SECTORS[index % len(SECTORS)]
    industry: Optional[str] = None if index % 4 == 0 else INDUSTRIES[index % len(INDUSTRIES)]

    return CompanyOverview(
        symbol=ticker,
        asset_type="Common Stock",
        name=f"{symbol} Holdings",
        description=f"{symbol} is a mock company focused on {sector.lower()} solutions.",
        exchange="NASDAQ" if index % 2 == 0 else "NYSE",
        sector=sector,
        industry=industry,
        market_capitalization=1_000_000_000 + index * 250_000_000,
    )


def create_daily_series(ticker: Ticker) -> List[DailySeriesPoint]:
    """Ten trading days from 2024-01-01, ascending, closes rising 1.25/day."""
    index = _index_of(ticker)
    base_price = 30 + (ord(ticker.value[0]) % 25) + index
    base_volume = 250_000 + index * 5_000

    points: List[DailySeriesPoint] = []
    previous_close: Optional[float] = None
    for day in range(SERIES_DAYS):
        close = round(base_price + day * 1.25, 2)
        open_price = previous_close if previous_close is not None else round(close - 0.5, 2)
        points.append(DailySeriesPoint(
            date=(SERIES_START + timedelta(days=day)).isoformat(),
            open=open_price,
            high=round(max(open_price, close) + 0.75, 2),
            low=round(min(open_price, close) - 0.75, 2),
            close=close,
            volume=base_volume + day * 12_500,
        ))
        previous_close = close
    return points


def create_quote(ticker: Ticker) -> StockQuote:
    """Quote for the last mock trading day, change measured against the day before."""
    series = create_daily_series(ticker)
    latest, previous = series[-1], series[-2]
    change = round(latest.close - previous.close, 2)

    return StockQuote(
        symbol=ticker,
        open=latest.open,
        high=latest.high,
        low=latest.low,
        price=latest.close,
        previous_close=previous.close,
        change=change,
        change_percent=round(change / previous.close * 100, 4),
        latest_trading_day=latest.date,
        volume=latest.volume,
    )


COMPANY_OVERVIEW_BY_SYMBOL: Dict[Ticker, CompanyOverview] = {
    ticker: create_company_overview(ticker) for ticker in SUPPORTED_TICKERS
}

DAILY_SERIES_BY_SYMBOL: Dict[Ticker, List[DailySeriesPoint]] = {
    ticker: create_daily_series(ticker) for ticker in SUPPORTED_TICKERS
}

QUOTE_BY_SYMBOL: Dict[Ticker, StockQuote] = {
    ticker: create_quote(ticker) for ticker in SUPPORTED_TICKERS
}


def get_mock_quote(ticker: Ticker) -> StockQuote:
    return QUOTE_BY_SYMBOL[ticker].model_copy()


def get_mock_overview(ticker: Ticker) -> CompanyOverview:
    return COMPANY_OVERVIEW_BY_SYMBOL[ticker].model_copy()


def get_mock_daily_series(ticker: Ticker) -> List[DailySeriesPoint]:
    return [point.model_copy() for point in DAILY_SERIES_BY_SYMBOL[ticker]]
