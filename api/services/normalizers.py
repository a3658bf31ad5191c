"""
Alpha Vantage Response Normalizers

Alpha Vantage returns every value as a string under numbered keys
("05. price", "4. close"). These pure functions turn those payloads into
typed records.

Required fields that do not parse invalidate the whole record (ParseError).
Optional fields (volume, every overview field) degrade to None.
"""
import math
from typing import Any, List, Mapping, Optional

from exceptions import ParseError
from models.stock import CompanyOverview, DailySeriesPoint, StockQuote, Ticker

GLOBAL_QUOTE_KEY = "Global Quote"
DAILY_SERIES_KEY = "Time Series (Daily)"
PREMIUM_ENDPOINT_MARKER = "premium endpoint"


# =============================================================================
# Field parsers
# =============================================================================

def parse_number(value: Any) -> Optional[float]:
    """Finite float from a string like "1,234.50"; None otherwise."""
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        number = float(value.replace(",", "").strip())
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def parse_percent(value: Any) -> Optional[float]:
    """Parse "1.6949%" as 1.6949."""
    if not isinstance(value, str):
        return None
    return parse_number(value.replace("%", ""))


def parse_integer(value: Any) -> Optional[int]:
    if not isinstance(value, str) or not value.strip():
        return None
    sanitized = value.replace(",", "").strip()
    try:
        return int(sanitized)
    except ValueError:
        pass
    # "1.5E9" and "123.0" still describe whole quantities
    number = parse_number(sanitized)
    return int(number) if number is not None else None


def parse_nullable_string(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def require_number(value: Any, field: str, symbol: str) -> float:
    parsed = parse_number(value)
    if parsed is None:
        raise ParseError(
            f'Missing numeric "{field}" in Alpha Vantage response for {symbol}.',
            symbol=symbol,
            field=field,
        )
    return parsed


def require_date(value: Any, symbol: str, field: str = "latest trading day") -> str:
    if not isinstance(value, str) or not value.strip():
        raise ParseError(
            f"Missing date value in Alpha Vantage response for {symbol}.",
            symbol=symbol,
            field=field,
        )
    return value.strip()


def is_premium_endpoint_message(message: Optional[str]) -> bool:
    return bool(message) and PREMIUM_ENDPOINT_MARKER in message.lower()


def _symbol(ticker: Ticker) -> str:
    return ticker.value


# =============================================================================
# Normalizers
# =============================================================================

def normalize_quote(payload: Mapping[str, Any], ticker: Ticker) -> StockQuote:
    """GLOBAL_QUOTE payload -> StockQuote"""
    symbol = _symbol(ticker)
    raw = payload.get(GLOBAL_QUOTE_KEY) if isinstance(payload, Mapping) else None
    if not isinstance(raw, Mapping) or not raw:
        raise ParseError(f"Unexpected GLOBAL_QUOTE response shape for {symbol}.", symbol=symbol)

    change_percent = parse_percent(raw.get("10. change percent"))
    if change_percent is None:
        raise ParseError(
            f"Missing change percent in Alpha Vantage response for {symbol}.",
            symbol=symbol,
            field="change percent",
        )

    return StockQuote(
        symbol=ticker,
        open=require_number(raw.get("02. open"), "open", symbol),
        high=require_number(raw.get("03. high"), "high", symbol),
        low=require_number(raw.get("04. low"), "low", symbol),
        price=require_number(raw.get("05. price"), "price", symbol),
        previous_close=require_number(raw.get("08. previous close"), "previous close", symbol),
        change=require_number(raw.get("09. change"), "change", symbol),
        change_percent=change_percent,
        latest_trading_day=require_date(raw.get("07. latest trading day"), symbol),
        volume=parse_integer(raw.get("06. volume")),
    )


def normalize_overview(payload: Mapping[str, Any], ticker: Ticker) -> CompanyOverview:
    """OVERVIEW payload -> CompanyOverview. Alpha Vantage answers {} for unknown symbols."""
    symbol = _symbol(ticker)
    if not isinstance(payload, Mapping) or not payload:
        raise ParseError(f"Unexpected OVERVIEW response shape for {symbol}.", symbol=symbol)

    return CompanyOverview(
        symbol=ticker,
        asset_type=parse_nullable_string(payload.get("AssetType")),
        name=parse_nullable_string(payload.get("Name")),
        description=parse_nullable_string(payload.get("Description")),
        exchange=parse_nullable_string(payload.get("Exchange")),
        sector=parse_nullable_string(payload.get("Sector")),
        industry=parse_nullable_string(payload.get("Industry")),
        market_capitalization=parse_integer(payload.get("MarketCapitalization")),
    )


def normalize_daily_series(payload: Mapping[str, Any], ticker: Ticker) -> List[DailySeriesPoint]:
    """
    TIME_SERIES_DAILY(_ADJUSTED) payload -> points sorted ascending by date.

    A day whose close does not parse is dropped; a day with a bad open/high/low
    fails the whole series. The adjusted endpoint reports volume as "6. volume".
    """
    symbol = _symbol(ticker)
    raw_series = payload.get(DAILY_SERIES_KEY) if isinstance(payload, Mapping) else None
    if not isinstance(raw_series, Mapping):
        raise ParseError(f"Unexpected TIME_SERIES_DAILY response shape for {symbol}.", symbol=symbol)

    points: List[DailySeriesPoint] = []
    for date, values in raw_series.items():
        if not isinstance(values, Mapping):
            continue
        close = parse_number(values.get("4. close"))
        if close is None:
            continue
        volume_raw = values.get("6. volume")
        if volume_raw is None:
            volume_raw = values.get("5. volume")
        points.append(DailySeriesPoint(
            date=date,
            open=require_number(values.get("1. open"), "open", symbol),
            high=require_number(values.get("2. high"), "high", symbol),
            low=require_number(values.get("3. low"), "low", symbol),
            close=close,
            volume=parse_integer(volume_raw),
        ))

    if not points:
        raise ParseError(f"TIME_SERIES_DAILY returned no data for {symbol}.", symbol=symbol)

    # ISO dates sort correctly as strings
    points.sort(key=lambda point: point.date)
    return points


def dump_records(records: Any) -> Any:
    """JSON-ready form of a record or list of records, for the cache."""
    if isinstance(records, list):
        return [record.model_dump(mode="json") for record in records]
    return records.model_dump(mode="json")


def load_records(model: Any, data: Any, many: bool = False) -> Any:
    """Inverse of dump_records; raises pydantic.ValidationError on drift."""
    if many:
        if not isinstance(data, list):
            raise TypeError("expected a list of records")
        return [model.model_validate(item) for item in data]
    return model.model_validate(data)


__all__ = [
    "parse_number",
    "parse_percent",
    "parse_integer",
    "parse_nullable_string",
    "require_number",
    "require_date",
    "is_premium_endpoint_message",
    "normalize_quote",
    "normalize_overview",
    "normalize_daily_series",
    "dump_records",
    "load_records",
    "GLOBAL_QUOTE_KEY",
    "DAILY_SERIES_KEY",
]
