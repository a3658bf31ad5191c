"""
Market Data Service
Cache-aware fetch orchestrator for the watchlist.

For each (endpoint, ticker) the flow is: cache read -> on miss, Alpha Vantage
fetch -> normalize -> cache write. Normalized records (not raw payloads) are
cached, so a hit skips both the network and the parser.

Failure policy is fixed by configuration:
- mock mode (forced, or no API key): built-in mock data, no network at all
- mock_fallback: fetch/parse failures are logged and replaced by mock data
- otherwise: UpstreamError / ParseError propagate to the caller
"""
import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Type

from pydantic import ValidationError

from config import StockWatchConfig, get_config
from exceptions import ParseError, UpstreamError
from models.stock import (
    SUPPORTED_TICKERS,
    CachedResult,
    CompanyOverview,
    DailySeriesPoint,
    DataSource,
    EndpointKind,
    ErrorInfo,
    SectionResult,
    StockQuote,
    StockSnapshot,
    Ticker,
)
from services.alpha_vantage import AlphaVantageClient
from services.disk_cache import build_cache, make_cache_key
from services.logging_config import get_logger, log_method
from services.mock_data import get_mock_daily_series, get_mock_overview, get_mock_quote
from services.normalizers import (
    dump_records,
    is_premium_endpoint_message,
    load_records,
    normalize_daily_series,
    normalize_overview,
    normalize_quote,
)

logger = get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class _Endpoint:
    """How to fetch, parse, cache and mock one kind of record"""
    label: str
    kind: EndpointKind
    model: Type[Any]
    result_type: Type[Any]
    section_type: Type[Any]
    normalize: Callable[[Dict[str, Any], Ticker], Any]
    mock: Callable[[Ticker], Any]
    many: bool = False


QUOTE = _Endpoint(
    label="QUOTE",
    kind=EndpointKind.GLOBAL_QUOTE,
    model=StockQuote,
    result_type=CachedResult[StockQuote],
    section_type=SectionResult[StockQuote],
    normalize=normalize_quote,
    mock=get_mock_quote,
)

OVERVIEW = _Endpoint(
    label="OVERVIEW",
    kind=EndpointKind.OVERVIEW,
    model=CompanyOverview,
    result_type=CachedResult[CompanyOverview],
    section_type=SectionResult[CompanyOverview],
    normalize=normalize_overview,
    mock=get_mock_overview,
)

DAILY_SERIES = _Endpoint(
    label="DAILY",
    kind=EndpointKind.TIME_SERIES_DAILY,
    model=DailySeriesPoint,
    result_type=CachedResult[List[DailySeriesPoint]],
    section_type=SectionResult[List[DailySeriesPoint]],
    normalize=normalize_daily_series,
    mock=get_mock_daily_series,
    many=True,
)


class MarketDataService:
    """
    Orchestrates cache, Alpha Vantage client, normalizers and mock data.

    Collaborators are injected so tests can swap in a fake client, a
    memory cache and a fixed clock without touching the environment.
    """

    def __init__(
        self,
        config: StockWatchConfig,
        client: Optional[AlphaVantageClient] = None,
        cache: Optional[Any] = None,
        now: Callable[[], datetime] = utc_now,
    ):
        self.config = config
        self.client = client or AlphaVantageClient(
            api_key=config.api_key,
            base_url=config.base_url,
            timeout=config.request_timeout,
        )
        self.cache = cache if cache is not None else build_cache(
            backend=config.cache_backend,
            root=config.cache_dir,
            enabled=config.cache_enabled,
        )
        self.now = now

        if config.should_use_mocks():
            reason = "forced by configuration" if config.use_mocks else "no API key configured"
            logger.warning(f"Serving built-in mock data ({reason})")

    async def aclose(self) -> None:
        await self.client.aclose()

    # ------------------------------------------------------------------
    # Public getters
    # ------------------------------------------------------------------

    @log_method(logger=logger)
    async def get_quote(self, ticker: Ticker) -> CachedResult[StockQuote]:
        return await self._resolve(QUOTE, ticker, self._fetch_quote_payload)

    @log_method(logger=logger)
    async def get_overview(self, ticker: Ticker) -> CachedResult[CompanyOverview]:
        return await self._resolve(OVERVIEW, ticker, self._fetch_overview_payload)

    @log_method(logger=logger)
    async def get_daily_series(self, ticker: Ticker) -> CachedResult[List[DailySeriesPoint]]:
        return await self._resolve(DAILY_SERIES, ticker, self._fetch_daily_series_payload)

    async def get_snapshot(self, ticker: Ticker) -> StockSnapshot:
        """
        Quote, overview and daily series fetched concurrently.

        All three settle independently: one failing section is reported in
        place and never cancels or fails the other two.
        """
        quote, overview, series = await asyncio.gather(
            self.get_quote(ticker),
            self.get_overview(ticker),
            self.get_daily_series(ticker),
            return_exceptions=True,
        )
        return StockSnapshot(
            symbol=ticker,
            quote=self._settle(QUOTE, ticker, quote),
            overview=self._settle(OVERVIEW, ticker, overview),
            daily_series=self._settle(DAILY_SERIES, ticker, series),
        )

    async def get_watchlist_quotes(
        self,
        tickers: Optional[List[Ticker]] = None,
    ) -> List[Tuple[Ticker, SectionResult[StockQuote]]]:
        """Quotes for every ticker, concurrently, each settled on its own."""
        tickers = list(tickers or SUPPORTED_TICKERS)
        outcomes = await asyncio.gather(
            *(self.get_quote(ticker) for ticker in tickers),
            return_exceptions=True,
        )
        return [
            (ticker, self._settle(QUOTE, ticker, outcome))
            for ticker, outcome in zip(tickers, outcomes)
        ]

    async def clear_cache(self) -> int:
        removed = await asyncio.to_thread(self.cache.clear)
        logger.info(f"Cache cleared ({removed} entries)")
        return removed

    async def refresh(self, ticker: Optional[Ticker] = None) -> int:
        """
        Invalidate cached records so the next read goes upstream.

        With a ticker only that ticker's three entries are dropped;
        without one the whole cache is cleared. Returns entries removed.
        """
        if ticker is None:
            return await self.clear_cache()

        removed = 0
        for endpoint in (QUOTE, OVERVIEW, DAILY_SERIES):
            if await asyncio.to_thread(self.cache.delete, self.cache_key(endpoint, ticker)):
                removed += 1
        logger.info(f"Cache refreshed for {ticker.value} ({removed} entries)")
        return removed

    # ------------------------------------------------------------------
    # Cache keys
    # ------------------------------------------------------------------

    def _extra_params(self, endpoint: _Endpoint) -> Dict[str, str]:
        if endpoint is DAILY_SERIES:
            return {"outputsize": self.config.daily_outputsize}
        return {}

    def cache_key(self, endpoint: _Endpoint, ticker: Ticker) -> str:
        return make_cache_key(
            endpoint.kind.value,
            {"symbol": ticker.value, **self._extra_params(endpoint)},
        )

    # ------------------------------------------------------------------
    # Upstream fetch paths
    # ------------------------------------------------------------------

    async def _fetch_quote_payload(self, ticker: Ticker) -> Dict[str, Any]:
        return await self.client.fetch({
            "function": EndpointKind.GLOBAL_QUOTE.value,
            "symbol": ticker.value,
        })

    async def _fetch_overview_payload(self, ticker: Ticker) -> Dict[str, Any]:
        return await self.client.fetch({
            "function": EndpointKind.OVERVIEW.value,
            "symbol": ticker.value,
        })

    async def _fetch_daily_series_payload(self, ticker: Ticker) -> Dict[str, Any]:
        """Standard daily series first; the adjusted variant once if the plan lacks access."""
        params = {"symbol": ticker.value, "outputsize": self.config.daily_outputsize}
        try:
            return await self.client.fetch({
                "function": EndpointKind.TIME_SERIES_DAILY.value,
                **params,
            })
        except UpstreamError as e:
            if not is_premium_endpoint_message(e.message):
                raise
            logger.info(
                f"[DAILY] {ticker.value}: TIME_SERIES_DAILY is premium-only, "
                f"retrying with TIME_SERIES_DAILY_ADJUSTED"
            )
            return await self.client.fetch({
                "function": EndpointKind.TIME_SERIES_DAILY_ADJUSTED.value,
                **params,
            })

    # ------------------------------------------------------------------
    # Core policy
    # ------------------------------------------------------------------

    async def _resolve(
        self,
        endpoint: _Endpoint,
        ticker: Ticker,
        fetch_payload: Callable[[Ticker], Awaitable[Dict[str, Any]]],
    ) -> Any:
        if self.config.should_use_mocks():
            return self._mock_result(endpoint, ticker)

        try:
            return await self._cached_or_fetch(endpoint, ticker, fetch_payload)
        except (UpstreamError, ParseError) as e:
            if not self.config.mock_fallback:
                raise
            logger.warning(
                f"[{endpoint.label}] Falling back to mock data for {ticker.value}. Reason: {e.message}",
                extra={"symbol": ticker.value, "error_code": e.error_code},
            )
            return self._mock_result(endpoint, ticker)

    async def _cached_or_fetch(
        self,
        endpoint: _Endpoint,
        ticker: Ticker,
        fetch_payload: Callable[[Ticker], Awaitable[Dict[str, Any]]],
    ) -> Any:
        key = self.cache_key(endpoint, ticker)

        hit = await asyncio.to_thread(self.cache.read, key, self.config.cache_ttl)
        if hit is not None:
            try:
                data = load_records(endpoint.model, hit.data, many=endpoint.many)
            except (ValidationError, TypeError) as e:
                logger.warning(
                    f"[{endpoint.label}] Ignoring cached {ticker.value} entry that no longer validates: {e}"
                )
            else:
                logger.debug(f"[{endpoint.label}] Cache hit for {ticker.value}")
                return endpoint.result_type(
                    data=data,
                    cached_at=hit.written_at,
                    source=DataSource.CACHE,
                )

        payload = await fetch_payload(ticker)
        data = endpoint.normalize(payload, ticker)
        await asyncio.to_thread(self.cache.write, key, dump_records(data))
        return endpoint.result_type(data=data, cached_at=self.now(), source=DataSource.API)

    def _mock_result(self, endpoint: _Endpoint, ticker: Ticker) -> Any:
        # Mock data is never written to the cache
        return endpoint.result_type(
            data=endpoint.mock(ticker),
            cached_at=self.now(),
            source=DataSource.MOCK,
        )

    def _settle(self, endpoint: _Endpoint, ticker: Ticker, outcome: Any) -> Any:
        if isinstance(outcome, BaseException):
            if not isinstance(outcome, Exception):
                raise outcome
            if isinstance(outcome, (UpstreamError, ParseError)):
                logger.warning(f"[{endpoint.label}] {ticker.value} unavailable: {outcome.message}")
            else:
                logger.error(
                    f"[{endpoint.label}] Unexpected error for {ticker.value}: {outcome}",
                    exc_info=outcome,
                )
            return endpoint.section_type(error=ErrorInfo.from_exception(outcome))

        return endpoint.section_type(
            data=outcome.data,
            cached_at=outcome.cached_at,
            source=outcome.source,
        )


# Singleton instance
_market_data_service: Optional[MarketDataService] = None


def get_market_data_service() -> MarketDataService:
    """Get or create the process-wide MarketDataService (FastAPI dependency)."""
    global _market_data_service
    if _market_data_service is None:
        _market_data_service = MarketDataService(get_config())
    return _market_data_service


async def shutdown_market_data_service() -> None:
    global _market_data_service
    if _market_data_service is not None:
        await _market_data_service.aclose()
        _market_data_service = None
