"""
Alpha Vantage API Client
Issues raw requests to the Alpha Vantage query endpoint.

Alpha Vantage reports most failures inside HTTP 200 responses, using
sentinel top-level fields. Every response is first decoded as one of those
error variants and only then returned as data.
"""
import time
from typing import Any, Dict, Optional

import httpx

from exceptions import (
    ParseError,
    RateLimitError,
    UpstreamAPIError,
    UpstreamConnectionError,
    UpstreamError,
    UpstreamHTTPError,
)
from services.logging_config import get_logger, log_api_call

logger = get_logger(__name__)

BASE_URL = "https://www.alphavantage.co/query"

# Sentinel fields, checked in this order
SENTINEL_FIELDS = ("Note", "Error Message", "Information")


def detect_sentinel(payload: Dict[str, Any], function: Optional[str] = None) -> Optional[UpstreamError]:
    """
    Decode the error variant of a response, if it is one.

    Returns the exception to raise, or None when the payload carries no
    non-empty sentinel and should be treated as data.
    """
    for name in SENTINEL_FIELDS:
        message = payload.get(name)
        if not isinstance(message, str) or not message.strip():
            continue
        if name == "Note":
            return RateLimitError(message=message, function=function)
        return UpstreamAPIError(api_message=message, sentinel=name, function=function)
    return None


class AlphaVantageClient:
    """
    Thin async client for https://www.alphavantage.co/query.

    One call is one request: no retries, no caching. Callers own both.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = BASE_URL,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self._client = http_client
        self._owns_client = http_client is None

        if not api_key:
            logger.warning(
                "ALPHA_VANTAGE_API_KEY not set. Requests will be rejected upstream; "
                "get a free API key from https://www.alphavantage.co/support/#api-key"
            )

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def fetch(self, params: Dict[str, str]) -> Dict[str, Any]:
        """
        GET the query endpoint with `params` and return the decoded JSON object.

        Raises:
            UpstreamHTTPError: non-2xx status
            UpstreamConnectionError: no response at all
            RateLimitError / UpstreamAPIError: sentinel field in a 200 body
            ParseError: body is not a JSON object
        """
        function = params.get("function", "unknown")
        symbol = params.get("symbol", "")
        # Logged instead of the real URL so the API key never reaches the logs
        endpoint = f"{self.base_url}?function={function}"
        if symbol:
            endpoint += f"&symbol={symbol}"

        query = {"datatype": "json", "apikey": self.api_key, **params}
        start_time = time.perf_counter()

        def elapsed_ms() -> float:
            return (time.perf_counter() - start_time) * 1000

        try:
            response = await self._get_client().get(
                self.base_url,
                params=query,
                headers={"Accept": "application/json"},
            )
        except httpx.RequestError as e:
            log_api_call(
                logger, "GET", endpoint,
                response_time_ms=elapsed_ms(),
                error=f"Request failed: {type(e).__name__}",
                function=function,
                symbol=symbol,
            )
            raise UpstreamConnectionError(
                f"Could not reach Alpha Vantage: {type(e).__name__}",
                function=function,
            ) from e

        if not response.is_success:
            log_api_call(
                logger, "GET", endpoint,
                status_code=response.status_code,
                response_time_ms=elapsed_ms(),
                error=response.reason_phrase or "HTTP error",
                function=function,
                symbol=symbol,
            )
            raise UpstreamHTTPError(response.status_code, response.reason_phrase, function=function)

        try:
            payload = response.json()
        except ValueError as e:
            log_api_call(
                logger, "GET", endpoint,
                status_code=response.status_code,
                response_time_ms=elapsed_ms(),
                error="Invalid JSON body",
                function=function,
                symbol=symbol,
            )
            raise ParseError(
                f"Alpha Vantage returned a non-JSON body for {function}.",
                symbol=symbol or None,
            ) from e

        if not isinstance(payload, dict):
            raise ParseError(
                f"Alpha Vantage returned {type(payload).__name__} instead of an object for {function}.",
                symbol=symbol or None,
            )

        sentinel_error = detect_sentinel(payload, function=function)
        if sentinel_error is not None:
            log_api_call(
                logger, "GET", endpoint,
                status_code=response.status_code,
                response_time_ms=elapsed_ms(),
                error=sentinel_error.error_code,
                function=function,
                symbol=symbol,
            )
            raise sentinel_error

        log_api_call(
            logger, "GET", endpoint,
            status_code=response.status_code,
            response_time_ms=elapsed_ms(),
            function=function,
            symbol=symbol,
        )
        return payload
