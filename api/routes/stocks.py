"""
Stock data routes - watchlist tickers served from cache, Alpha Vantage or mocks

The detail endpoint always answers 200 for a supported ticker: each of its
three sections settles on its own and carries either data or an error.
The single-section endpoints surface upstream and parse failures as 502.
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from exceptions import ParseError, UnsupportedTickerError, UpstreamError
from models.stock import (
    SUPPORTED_TICKERS,
    CachedResult,
    CompanyOverview,
    DailySeriesPoint,
    StockDetailResponse,
    StockQuote,
    Ticker,
)
from services.logging_config import get_logger
from services.market_data import MarketDataService, get_market_data_service
from services.stock_view import build_stock_view

router = APIRouter()
logger = get_logger(__name__)


def resolve_ticker(symbol: str) -> Ticker:
    """Path dependency: supported ticker or 404"""
    try:
        return Ticker.parse(symbol)
    except UnsupportedTickerError as e:
        logger.info(f"[STOCKS] Rejected unsupported symbol {symbol!r}")
        raise HTTPException(status_code=404, detail=e.to_dict())


async def _single_section(label: str, ticker: Ticker, getter) -> CachedResult:
    try:
        return await getter(ticker)
    except (UpstreamError, ParseError) as e:
        logger.warning(f"[{label}] {ticker.value} failed: {e}")
        raise HTTPException(status_code=502, detail=e.to_dict())


@router.get("/")
async def list_tickers():
    """The fixed watchlist, in display order"""
    symbols: List[str] = [ticker.value for ticker in SUPPORTED_TICKERS]
    return {"symbols": symbols, "count": len(symbols)}


@router.post("/cache/clear")
async def clear_cache(service: MarketDataService = Depends(get_market_data_service)):
    removed = await service.refresh()
    return {"cleared": removed}


@router.get("/{symbol}", response_model=StockDetailResponse)
async def get_stock_detail(
    ticker: Ticker = Depends(resolve_ticker),
    service: MarketDataService = Depends(get_market_data_service),
):
    """
    Quote, company overview and daily series for one ticker, plus
    preformatted view blocks (stats grid, history table, chart window).
    """
    logger.info(f"[DETAIL] Loading {ticker.value}")
    snapshot = await service.get_snapshot(ticker)

    failed = [
        name for name, section in (
            ("quote", snapshot.quote),
            ("overview", snapshot.overview),
            ("daily_series", snapshot.daily_series),
        )
        if section.error is not None
    ]
    if failed:
        logger.warning(f"[DETAIL] {ticker.value} partially loaded, failed sections: {failed}")

    return StockDetailResponse(
        symbol=snapshot.symbol,
        quote=snapshot.quote,
        overview=snapshot.overview,
        daily_series=snapshot.daily_series,
        view=build_stock_view(snapshot, now=service.now()),
    )


@router.get("/{symbol}/quote", response_model=CachedResult[StockQuote])
async def get_stock_quote(
    ticker: Ticker = Depends(resolve_ticker),
    service: MarketDataService = Depends(get_market_data_service),
):
    return await _single_section("QUOTE", ticker, service.get_quote)


@router.get("/{symbol}/overview", response_model=CachedResult[CompanyOverview])
async def get_company_overview(
    ticker: Ticker = Depends(resolve_ticker),
    service: MarketDataService = Depends(get_market_data_service),
):
    return await _single_section("OVERVIEW", ticker, service.get_overview)


@router.get("/{symbol}/daily", response_model=CachedResult[List[DailySeriesPoint]])
async def get_daily_series(
    ticker: Ticker = Depends(resolve_ticker),
    service: MarketDataService = Depends(get_market_data_service),
):
    return await _single_section("DAILY", ticker, service.get_daily_series)


@router.post("/{symbol}/refresh")
async def refresh_stock(
    ticker: Ticker = Depends(resolve_ticker),
    service: MarketDataService = Depends(get_market_data_service),
):
    """Drop this ticker's cached records; the next read goes upstream"""
    removed = await service.refresh(ticker)
    return {"symbol": ticker.value, "cleared": removed}
