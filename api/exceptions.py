"""
StockWatch Custom Exception Classes

Hierarchical exceptions for the market data pipeline, so callers can catch
exactly the failure they know how to handle.

Exception Hierarchy:
    StockWatchError (base)
    |-- UnsupportedTickerError
    |
    |-- UpstreamError
    |   |-- UpstreamHTTPError
    |   |-- UpstreamConnectionError
    |   |-- UpstreamAPIError
    |   +-- RateLimitError
    |
    |-- ParseError
    |
    +-- CacheError

Usage:
    from exceptions import UpstreamError, ParseError

    try:
        result = await market_data.get_quote(Ticker.TSLA)
    except UpstreamError as e:
        # Alpha Vantage failed or reported a soft error inside a 200 response
        show_inline_error(e.message)
    except ParseError as e:
        # Response did not have the expected shape
        show_inline_error(e.message)
"""

from typing import Optional, Any, Dict


class StockWatchError(Exception):
    """
    Base exception for all StockWatch errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable error code for logging/diagnostics
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code or "STOCKWATCH_ERROR"
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": True,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class UnsupportedTickerError(StockWatchError):
    """Raised when a symbol is not part of the watchlist."""

    def __init__(self, symbol: str):
        self.symbol = symbol
        super().__init__(
            message=f"{symbol!r} is not a supported ticker.",
            error_code="UNSUPPORTED_TICKER",
            details={"symbol": symbol}
        )


# =============================================================================
# Upstream (Alpha Vantage) Exceptions
# =============================================================================

class UpstreamError(StockWatchError):
    """
    Base exception for failures reported by, or while talking to, Alpha Vantage.

    The message is the upstream's own text whenever the payload carried one,
    so it can be shown to the user as-is.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code=error_code or "UPSTREAM_ERROR",
            details=details
        )


class UpstreamHTTPError(UpstreamError):
    """
    Raised when Alpha Vantage answers with a non-success HTTP status.

    Attributes:
        status_code: HTTP status code
        function: The Alpha Vantage function that was requested
    """

    def __init__(
        self,
        status_code: int,
        reason: str = "",
        function: Optional[str] = None
    ):
        self.status_code = status_code
        self.function = function
        message = f"Alpha Vantage responded with {status_code}"
        if reason:
            message += f": {reason}"
        super().__init__(
            message=message,
            error_code="UPSTREAM_HTTP_ERROR",
            details={"status_code": status_code, "function": function}
        )


class UpstreamConnectionError(UpstreamError):
    """Raised when the request never produced a response (DNS, timeout, reset)."""

    def __init__(self, message: str, function: Optional[str] = None):
        self.function = function
        super().__init__(
            message=message,
            error_code="UPSTREAM_CONNECTION_ERROR",
            details={"function": function}
        )


class UpstreamAPIError(UpstreamError):
    """
    Raised when a 200 response carries an `Error Message` or `Information` field.

    Alpha Vantage uses these for invalid symbols, bad parameters and
    premium-only endpoints.

    Attributes:
        api_message: The raw message from Alpha Vantage
        sentinel: Name of the field the message was found in
    """

    def __init__(
        self,
        api_message: str,
        sentinel: str = "Error Message",
        function: Optional[str] = None
    ):
        self.api_message = api_message
        self.sentinel = sentinel
        super().__init__(
            message=api_message,
            error_code="UPSTREAM_API_ERROR",
            details={"sentinel": sentinel, "function": function}
        )


class RateLimitError(UpstreamError):
    """
    Raised when a 200 response carries a `Note` field.

    Free tier limits: 25 requests/day, 5 requests/minute.
    """

    def __init__(
        self,
        message: str = "API rate limit reached. Please wait and try again.",
        function: Optional[str] = None
    ):
        super().__init__(
            message=message,
            error_code="UPSTREAM_RATE_LIMIT",
            details={"sentinel": "Note", "function": function}
        )


# =============================================================================
# Parsing and Cache Exceptions
# =============================================================================

class ParseError(StockWatchError):
    """
    Raised when a response does not have the shape expected for its endpoint,
    or a required field is missing or unparseable.

    Attributes:
        symbol: The ticker being parsed (if known)
        field: The offending field (if known)
    """

    def __init__(
        self,
        message: str,
        symbol: Optional[str] = None,
        field: Optional[str] = None
    ):
        self.symbol = symbol
        self.field = field
        super().__init__(
            message=message,
            error_code="PARSE_ERROR",
            details={"symbol": symbol, "field": field}
        )


class CacheError(StockWatchError):
    """
    Cache read/write failure.

    Never propagated past the cache: the cache logs it and reports a miss.
    """

    def __init__(self, message: str, key: Optional[str] = None):
        self.key = key
        super().__init__(
            message=message,
            error_code="CACHE_ERROR",
            details={"key": key}
        )
