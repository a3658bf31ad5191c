"""
Structured Logging Configuration

Console or JSON logging for the StockWatch backend, with a correlation ID
per HTTP request so the three concurrent fetches behind one page view can be
traced together.

Features:
- Correlation ID stored in a ContextVar (shared by every task spawned for a request)
- JSON format: {timestamp, correlation_id, service, level, message, extra}
- log_api_call() for upstream requests (method, endpoint, status, elapsed ms)
- @log_method for timing async service methods
"""
import inspect
import functools
import json
import logging
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Callable, Optional, TypeVar

_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

F = TypeVar("F", bound=Callable[..., Any])

# Attributes every LogRecord carries; anything else came in through `extra=`
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime", "taskName"}

CORRELATION_HEADER = b"x-correlation-id"


def get_correlation_id() -> str:
    """Current correlation ID, created on first use in this context."""
    cid = _correlation_id.get()
    if cid is None:
        cid = uuid.uuid4().hex
        _correlation_id.set(cid)
    return cid


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    cid = correlation_id or uuid.uuid4().hex
    _correlation_id.set(cid)
    return cid


def clear_correlation_id() -> None:
    _correlation_id.set(None)


def _service_name(record: logging.LogRecord) -> str:
    return record.name.rsplit(".", 1)[-1]


def _extra_fields(record: logging.LogRecord) -> dict:
    extra = {}
    for key, value in record.__dict__.items():
        if key in _RESERVED_ATTRS or key.startswith("_"):
            continue
        try:
            json.dumps(value)
        except (TypeError, ValueError):
            value = str(value)
        extra[key] = value
    return extra


class StructuredFormatter(logging.Formatter):
    """One JSON object per line, for log shipping in production."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "correlation_id": get_correlation_id(),
            "service": _service_name(record),
            "level": record.levelname,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        extra = _extra_fields(record)
        if extra:
            entry["extra"] = extra
        return json.dumps(entry)


class ConsoleFormatter(logging.Formatter):
    """Readable single-line output for local development."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        line = (
            f"[{get_correlation_id()[:8]}] "
            f"{color}{record.levelname:8}{self.RESET if color else ''} "
            f"{_service_name(record):16} - {record.getMessage()}"
        )
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _build_handler(use_json: bool, level: int) -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(StructuredFormatter() if use_json else ConsoleFormatter())
    return handler


def setup_logging(use_json: bool = False, level: int = logging.INFO) -> None:
    """
    Configure the root logger for the whole application.

    Module loggers obtained via get_logger() propagate here, so this is the
    only place handlers are installed.
    """
    root = logging.getLogger()
    root.setLevel(level)
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    root.addHandler(_build_handler(use_json, level))

    # httpx logs full request URLs, query string (and API key) included
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Module logger; formatting is decided once by setup_logging()."""
    return logging.getLogger(name)


def log_api_call(
    logger: logging.Logger,
    method: str,
    endpoint: str,
    status_code: Optional[int] = None,
    response_time_ms: Optional[float] = None,
    error: Optional[str] = None,
    **extra: Any
) -> None:
    """
    Log one upstream request with standardized fields.

    Level is ERROR when the call failed (explicit error or status >= 400),
    INFO otherwise. Never pass the API key in `endpoint` or `extra`.
    """
    fields = {"api_method": method, "api_endpoint": endpoint, **extra}
    message = f"API {'ERROR' if error else 'CALL'}: {method} {endpoint}"

    if response_time_ms is not None:
        fields["response_time_ms"] = round(response_time_ms, 2)
        message += f" ({response_time_ms:.0f}ms)"
    if status_code is not None:
        fields["status_code"] = status_code
        message += f" -> {status_code}"
    if error:
        fields["error"] = error
        message += f" [{error}]"

    failed = bool(error) or (status_code is not None and status_code >= 400)
    logger.log(logging.ERROR if failed else logging.INFO, message, extra=fields)


def log_method(
    logger: Optional[logging.Logger] = None,
    level: int = logging.DEBUG,
) -> Callable[[F], F]:
    """
    Decorator that logs entry, exit and elapsed time of an async method.

    Exceptions are logged at WARNING with their type and re-raised unchanged;
    the caller decides whether they are fatal.

    Usage:
        @log_method(logger=logger)
        async def get_quote(self, ticker: Ticker) -> CachedResult[StockQuote]:
            ...
    """
    def decorator(func: F) -> F:
        if not inspect.iscoroutinefunction(func):
            raise TypeError(f"log_method only wraps coroutine functions, got {func.__qualname__}")

        _logger = logger or logging.getLogger(func.__module__)
        name = func.__qualname__

        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            started = time.perf_counter()
            _logger.log(level, f"ENTER: {name}", extra={"function": name})
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                elapsed = (time.perf_counter() - started) * 1000
                _logger.warning(
                    f"FAILED: {name} ({elapsed:.2f}ms) - {type(e).__name__}: {e}",
                    extra={
                        "function": name,
                        "execution_time_ms": round(elapsed, 2),
                        "error_type": type(e).__name__,
                    },
                )
                raise
            elapsed = (time.perf_counter() - started) * 1000
            _logger.log(
                level,
                f"EXIT: {name} ({elapsed:.2f}ms)",
                extra={"function": name, "execution_time_ms": round(elapsed, 2)},
            )
            return result

        return wrapper  # type: ignore

    return decorator


class CorrelationIdMiddleware:
    """
    ASGI middleware: adopt the caller's X-Correlation-ID or mint one, and echo
    it on the response.

    Usage in FastAPI:
        app.add_middleware(CorrelationIdMiddleware)
    """

    def __init__(self, app: Any):
        self.app = app

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        incoming = dict(scope.get("headers", [])).get(CORRELATION_HEADER, b"").decode()
        cid = set_correlation_id(incoming or None)

        async def send_with_correlation_id(message: dict) -> None:
            if message["type"] == "http.response.start":
                message["headers"] = list(message.get("headers", [])) + [
                    (CORRELATION_HEADER, cid.encode())
                ]
            await send(message)

        try:
            await self.app(scope, receive, send_with_correlation_id)
        finally:
            clear_correlation_id()
