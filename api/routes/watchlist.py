"""
Watchlist routes - one quote card per supported ticker
"""
from fastapi import APIRouter, Depends

from models.stock import WatchlistResponse
from services.logging_config import get_logger
from services.market_data import MarketDataService, get_market_data_service
from services.stock_view import build_watchlist_card

logger = get_logger(__name__)

router = APIRouter()


@router.get("/", response_model=WatchlistResponse)
async def get_watchlist(service: MarketDataService = Depends(get_market_data_service)):
    """
    Quote cards for the whole watchlist.

    A failed quote yields a card with `error` set instead of failing the page.
    """
    sections = await service.get_watchlist_quotes()
    items = [build_watchlist_card(ticker, section) for ticker, section in sections]
    failed = sum(1 for item in items if item.error is not None)

    if failed:
        logger.warning(f"[WATCHLIST] {failed}/{len(items)} quotes unavailable")

    return WatchlistResponse(items=items, count=len(items), has_errors=failed > 0)
