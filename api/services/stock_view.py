"""
Detail page shaping: turns a StockSnapshot into preformatted view blocks.
"""
from datetime import datetime
from typing import Dict, List, Optional

from models.stock import (
    ChartPoint,
    CompanyOverview,
    DailySeriesPoint,
    HistoricalRow,
    LabeledValue,
    SectionResult,
    StockQuote,
    StockSnapshot,
    StockView,
    WatchlistCard,
)
from services.formatters import (
    MISSING,
    format_currency,
    format_currency_delta,
    format_date,
    format_date_time,
    format_market_cap,
    format_percent,
    format_relative_time,
    format_volume,
    to_display_text,
)

MAX_CHART_POINTS = 90


def build_stats_grid(quote: StockQuote) -> List[LabeledValue]:
    stats = [
        ("Open", format_currency(quote.open)),
        ("High", format_currency(quote.high)),
        ("Low", format_currency(quote.low)),
        ("Previous Close", format_currency(quote.previous_close)),
        ("Change", format_currency_delta(quote.change)),
        ("Change %", format_percent(quote.change_percent)),
        ("Latest Trading Day", format_date(quote.latest_trading_day)),
        ("Volume", format_volume(quote.volume)),
    ]
    return [LabeledValue(label=label, value=value) for label, value in stats]


def build_overview_items(overview: CompanyOverview) -> List[LabeledValue]:
    items = [
        ("Symbol", overview.symbol.value),
        ("Asset Type", to_display_text(overview.asset_type)),
        ("Name", to_display_text(overview.name)),
        ("Exchange", to_display_text(overview.exchange)),
        ("Sector", to_display_text(overview.sector)),
        ("Industry", to_display_text(overview.industry)),
        ("Market Capitalization", format_market_cap(overview.market_capitalization)),
    ]
    return [LabeledValue(label=label, value=value) for label, value in items]


def build_historical_rows(series: List[DailySeriesPoint]) -> List[HistoricalRow]:
    """
    Day-over-day rows, newest first.

    `series` must be ascending. The oldest day (and any day following a zero
    close) has no change percent.
    """
    rows: List[HistoricalRow] = []
    previous_close: Optional[float] = None
    for point in series:
        change_percent = None
        if previous_close:
            change_percent = (point.close - previous_close) / previous_close * 100
        rows.append(HistoricalRow(
            date=point.date,
            close=point.close,
            volume=point.volume,
            change_percent=change_percent,
            display={
                "date": format_date(point.date),
                "close": format_currency(point.close),
                "volume": format_volume(point.volume),
                "change_percent": format_percent(change_percent),
            },
        ))
        previous_close = point.close
    rows.reverse()
    return rows


def chart_points(series: List[DailySeriesPoint], limit: int = MAX_CHART_POINTS) -> List[ChartPoint]:
    """Most recent `limit` closes, still ascending."""
    window = series[-limit:] if limit > 0 else []
    return [ChartPoint(date=point.date, close=point.close) for point in window]


def get_updated_message(cached_at: Optional[datetime], now: Optional[datetime] = None) -> Optional[str]:
    relative = format_relative_time(cached_at, now=now)
    if relative is None:
        return None
    if relative == "just now":
        return "Updated just now"
    return f"Updated {relative} ago"


def build_stock_view(snapshot: StockSnapshot, now: Optional[datetime] = None) -> StockView:
    view = StockView()

    if snapshot.quote.ok:
        view.stats = build_stats_grid(snapshot.quote.data)

    if snapshot.overview.ok:
        view.overview_items = build_overview_items(snapshot.overview.data)
        view.description = to_display_text(snapshot.overview.data.description)

    if snapshot.daily_series.ok:
        series = snapshot.daily_series.data
        view.historical_rows = build_historical_rows(series)
        view.chart = chart_points(series)
        if view.chart:
            view.chart_range = f"{format_date(view.chart[0].date)} - {format_date(view.chart[-1].date)}"

    view.updated = {
        "quote": get_updated_message(snapshot.quote.cached_at, now),
        "overview": get_updated_message(snapshot.overview.cached_at, now),
        "daily_series": get_updated_message(snapshot.daily_series.cached_at, now),
    }
    return view


def build_card_display(section: SectionResult[StockQuote]) -> Dict[str, str]:
    """Strings for one watchlist card; empty when the quote failed."""
    if not section.ok:
        return {}
    quote = section.data
    return {
        "price": format_currency(quote.price),
        "change": format_currency_delta(quote.change),
        "change_percent": format_percent(quote.change_percent),
        "latest_trading_day": format_date(quote.latest_trading_day),
        "last_updated": (
            f"Last updated {format_date_time(section.cached_at)}" if section.cached_at else MISSING
        ),
    }


def build_watchlist_card(symbol, section: SectionResult[StockQuote]) -> WatchlistCard:
    return WatchlistCard(
        symbol=symbol,
        quote=section.data,
        cached_at=section.cached_at,
        source=section.source,
        error=section.error,
        display=build_card_display(section),
    )
