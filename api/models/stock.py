"""
Stock data models
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

from exceptions import StockWatchError, UnsupportedTickerError

T = TypeVar("T")


class Ticker(str, Enum):
    """The watchlist. Any other symbol is rejected with a 404."""
    CRWV = "CRWV"
    NBIS = "NBIS"
    WULF = "WULF"
    WYFI = "WYFI"
    CRDO = "CRDO"
    CXDO = "CXDO"
    GEV = "GEV"
    SSSS = "SSSS"
    FLEX = "FLEX"
    CCOI = "CCOI"
    GD = "GD"
    CORZ = "CORZ"
    IREN = "IREN"
    CIFR = "CIFR"
    TSLA = "TSLA"

    @classmethod
    def parse(cls, raw: str) -> "Ticker":
        symbol = (raw or "").strip().upper()
        try:
            return cls(symbol)
        except ValueError:
            raise UnsupportedTickerError(symbol or raw) from None


SUPPORTED_TICKERS: List[Ticker] = list(Ticker)


def is_supported_ticker(raw: str) -> bool:
    return (raw or "").strip().upper() in Ticker._value2member_map_


class EndpointKind(str, Enum):
    """Alpha Vantage function names used by the watchlist"""
    GLOBAL_QUOTE = "GLOBAL_QUOTE"
    OVERVIEW = "OVERVIEW"
    TIME_SERIES_DAILY = "TIME_SERIES_DAILY"
    TIME_SERIES_DAILY_ADJUSTED = "TIME_SERIES_DAILY_ADJUSTED"


class DataSource(str, Enum):
    API = "api"
    CACHE = "cache"
    MOCK = "mock"


class StockQuote(BaseModel):
    """Latest quote (GLOBAL_QUOTE)"""
    symbol: Ticker
    open: float
    high: float
    low: float
    price: float
    previous_close: float
    change: float
    change_percent: float
    latest_trading_day: str
    volume: Optional[int] = None


class CompanyOverview(BaseModel):
    """Company fundamentals (OVERVIEW). Missing values are None, never ''."""
    symbol: Ticker
    asset_type: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    exchange: Optional[str] = None
    sector: Optional[str] = None
    industry: Optional[str] = None
    market_capitalization: Optional[int] = None


class DailySeriesPoint(BaseModel):
    """Single day of TIME_SERIES_DAILY"""
    date: str
    open: float
    high: float
    low: float
    close: float
    volume: Optional[int] = None


class CachedResult(BaseModel, Generic[T]):
    """A record plus the time it was fetched from upstream"""
    data: T
    cached_at: datetime
    source: DataSource = DataSource.API


class ErrorInfo(BaseModel):
    error_code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ErrorInfo":
        if isinstance(exc, StockWatchError):
            return cls(error_code=exc.error_code, message=exc.message, details=exc.details)
        return cls(
            error_code="INTERNAL_ERROR",
            message=str(exc) or "An unexpected error occurred while loading stock data.",
            details={"error_type": type(exc).__name__},
        )


class SectionResult(BaseModel, Generic[T]):
    """One independently-settled section of a page: either data or an error"""
    data: Optional[T] = None
    cached_at: Optional[datetime] = None
    source: Optional[DataSource] = None
    error: Optional[ErrorInfo] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.data is not None


class StockSnapshot(BaseModel):
    """Everything the detail page needs for one ticker"""
    symbol: Ticker
    quote: SectionResult[StockQuote]
    overview: SectionResult[CompanyOverview]
    daily_series: SectionResult[List[DailySeriesPoint]]


class WatchlistCard(BaseModel):
    """Watchlist card: quote plus preformatted display strings"""
    symbol: Ticker
    quote: Optional[StockQuote] = None
    cached_at: Optional[datetime] = None
    source: Optional[DataSource] = None
    error: Optional[ErrorInfo] = None
    display: Dict[str, str] = Field(default_factory=dict)


class WatchlistResponse(BaseModel):
    items: List[WatchlistCard]
    count: int
    has_errors: bool


# =============================================================================
# Detail page view
# =============================================================================

class LabeledValue(BaseModel):
    label: str
    value: str


class HistoricalRow(BaseModel):
    """One row of the price history table, newest first"""
    date: str
    close: float
    volume: Optional[int] = None
    change_percent: Optional[float] = None
    display: Dict[str, str] = Field(default_factory=dict)


class ChartPoint(BaseModel):
    date: str
    close: float


class StockView(BaseModel):
    """Preformatted detail page blocks; a block is empty when its section failed"""
    stats: List[LabeledValue] = Field(default_factory=list)
    overview_items: List[LabeledValue] = Field(default_factory=list)
    description: Optional[str] = None
    historical_rows: List[HistoricalRow] = Field(default_factory=list)
    chart: List[ChartPoint] = Field(default_factory=list)
    chart_range: Optional[str] = None
    updated: Dict[str, Optional[str]] = Field(default_factory=dict)


class StockDetailResponse(StockSnapshot):
    view: StockView
