"""
Display formatting for quotes, overviews and series.

Every formatter accepts None and renders it as "N/A", so callers can pass
optional record fields straight through.
"""
import math
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

MISSING = "N/A"

DateLike = Union[str, date, datetime, None]

_COMPACT_UNITS = [
    (1_000_000_000_000, "T"),
    (1_000_000_000, "B"),
    (1_000_000, "M"),
    (1_000, "K"),
]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _round_to(value: float, precision: int) -> float:
    """Half-up rounding on the decimal text of `value` (1.25 -> 1.3)."""
    quantum = Decimal(1).scaleb(-precision)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def _trim(number: float, precision: int) -> str:
    text = f"{number:.{precision}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def compact_number(value: float, precision: int = 1) -> str:
    """1234 -> '1.2K', 1_250_000_000 -> '1.25B' (precision=2), 999 -> '999'."""
    sign = "-" if value < 0 else ""
    magnitude = abs(value)

    for index, (unit_value, suffix) in enumerate(_COMPACT_UNITS):
        if magnitude < unit_value:
            continue
        scaled = _round_to(magnitude / unit_value, precision)
        # 999_950 at precision 1 rounds to 1000K; promote to the next unit
        if scaled >= 1000 and index > 0:
            upper_value, upper_suffix = _COMPACT_UNITS[index - 1]
            return f"{sign}{_trim(_round_to(magnitude / upper_value, precision), precision)}{upper_suffix}"
        return f"{sign}{_trim(scaled, precision)}{suffix}"

    scaled = _round_to(float(magnitude), precision)
    if scaled >= 1000:
        return f"{sign}1K"
    return f"{sign}{_trim(scaled, precision)}"


def format_currency(value: Optional[float]) -> str:
    if value is None:
        return MISSING
    formatted = f"${abs(value):,.2f}"
    return f"-{formatted}" if value < 0 and formatted != "$0.00" else formatted


def format_currency_delta(value: Optional[float]) -> str:
    """Signed dollar change: '+$2.50', '-$2.50', and '$0.00' for no change."""
    if value is None:
        return MISSING
    if value == 0:
        return "$0.00"
    absolute = f"${abs(value):,.2f}"
    return f"+{absolute}" if value > 0 else f"-{absolute}"


def format_percent(value: Optional[float]) -> str:
    """Percent points to text: 1.6949 -> '+1.69%'."""
    if value is None:
        return MISSING
    formatted = f"{value:,.2f}%"
    return f"+{formatted}" if value > 0 else formatted


def format_volume(value: Optional[float]) -> str:
    if value is None:
        return MISSING
    return compact_number(value, precision=1)


def format_market_cap(value: Optional[float]) -> str:
    if value is None:
        return MISSING
    return f"${compact_number(value, precision=2)}"


def to_display_text(value: Optional[str]) -> str:
    if not isinstance(value, str) or not value.strip():
        return MISSING
    return value.strip()


# =============================================================================
# Dates
# =============================================================================

def _to_datetime(value: DateLike) -> Optional[datetime]:
    """Parse ISO strings, dates and datetimes; naive values are taken as UTC."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_date(value: DateLike) -> str:
    """'2024-01-05' -> 'Jan 5, 2024'. Calendar dates are not shifted by timezone."""
    parsed = _to_datetime(value)
    if parsed is None:
        return MISSING
    return f"{parsed:%b} {parsed.day}, {parsed.year}"


def format_date_time(value: DateLike) -> str:
    """Instant in UTC: 'Jan 5, 2024, 3:04 PM UTC'."""
    parsed = _to_datetime(value)
    if parsed is None:
        return MISSING
    utc = parsed.astimezone(timezone.utc)
    hour = utc.hour % 12 or 12
    meridiem = "AM" if utc.hour < 12 else "PM"
    return f"{utc:%b} {utc.day}, {utc.year}, {hour}:{utc:%M} {meridiem} UTC"


_MINUTE = 60.0
_HOUR = 60 * _MINUTE
_DAY = 24 * _HOUR
_WEEK = 7 * _DAY
_MONTH = 30 * _DAY
_YEAR = 365 * _DAY


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


def format_relative_time(value: DateLike, now: Optional[datetime] = None) -> Optional[str]:
    """
    Coarse age of `value` relative to `now`.

    Returns "just now" for anything up to 45 seconds old (including future
    instants), otherwise "<n> <unit>" without the "ago" suffix. Returns None
    when `value` cannot be parsed.
    """
    parsed = _to_datetime(value)
    if parsed is None:
        return None
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    elapsed = (now - parsed).total_seconds()
    if elapsed <= 45:
        return "just now"
    if elapsed < _HOUR:
        return _plural(_round_half_up(elapsed / _MINUTE), "minute")
    if elapsed < _DAY:
        return _plural(_round_half_up(elapsed / _HOUR), "hour")
    if elapsed < _WEEK:
        return _plural(_round_half_up(elapsed / _DAY), "day")
    if elapsed < _MONTH * 1.5:
        return _plural(_round_half_up(elapsed / _WEEK), "week")
    if elapsed < _YEAR:
        return _plural(_round_half_up(elapsed / _MONTH), "month")
    return _plural(_round_half_up(elapsed / _YEAR), "year")
