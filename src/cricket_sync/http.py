"""Async HTTP access to the feed with timeouts, retries and proxy relay."""

import json
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from .config import AppSettings
from .cricket_logging import get_logger
from .errors import ParseError, TransientNetworkError

logger = get_logger(__name__)


def build_url(url: str, params: Optional[Dict[str, Any]] = None) -> str:
    """Append query parameters to a URL, keeping their order."""
    if not params:
        return url
    return f"{url}?{urlencode(params)}"


def relay_url(proxy_url: str, target: str) -> str:
    """Wrap a target URL for the proxy relay (?url=<encoded target>)."""
    return build_url(proxy_url, {"url": target})


def is_retryable(exc: BaseException) -> bool:
    """Server errors, rate limiting and transport failures are worth another attempt."""
    if isinstance(exc, httpx.RequestError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        status_code = exc.response.status_code
        return status_code >= 500 or status_code == 429
    return False


class FeedHttp:
    """Thin JSON-over-HTTP layer used by the feed client.

    Owns an ``httpx.AsyncClient`` unless one is injected. 5xx and 429
    statuses, timeouts and connection failures are retried with
    exponential backoff; other 4xx statuses fail on the first attempt.
    Both finally surface as ``TransientNetworkError``, and undecodable
    bodies surface as ``ParseError``.
    """

    def __init__(
        self,
        settings: AppSettings,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.settings = settings
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(settings.HTTP_TIMEOUT_S, connect=min(10.0, settings.HTTP_TIMEOUT_S)),
            headers={
                'User-Agent': settings.USER_AGENT,
                'Accept': 'application/json,text/plain,*/*',
                'Accept-Language': 'en-US,en;q=0.9',
                'Cache-Control': 'no-cache',
            },
            follow_redirects=True,
        )

    def _target(self, url: str, params: Optional[Dict[str, Any]]) -> str:
        target = build_url(url, params)
        if self.settings.FEED_PROXY_URL:
            return relay_url(self.settings.FEED_PROXY_URL, target)
        return target

    async def _get_once(self, url: str) -> httpx.Response:
        try:
            logger.debug("Making HTTP request", url=url)
            response = await self._client.get(url)
            logger.debug("HTTP response received",
                         url=url,
                         status_code=response.status_code,
                         content_length=len(response.content))
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as e:
            logger.warning("HTTP error response",
                           url=url,
                           status_code=e.response.status_code,
                           response_text=e.response.text[:200])
            raise
        except httpx.RequestError as e:
            logger.warning("HTTP request error", url=url, error=str(e))
            raise

    async def get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET a URL and decode the JSON body.

        Args:
            url: Upstream URL (relayed through the proxy when configured)
            params: Query parameters for the upstream URL

        Returns:
            Decoded JSON document

        Raises:
            TransientNetworkError: After retries are exhausted
            ParseError: If the body is not valid JSON
        """
        target = self._target(url, params)
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.settings.RETRY_MAX),
            wait=wait_exponential(multiplier=self.settings.RETRY_BACKOFF_FACTOR, min=0, max=30),
            retry=retry_if_exception(is_retryable),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    response = await self._get_once(target)
        except httpx.HTTPStatusError as e:
            raise TransientNetworkError(
                f"HTTP {e.response.status_code} from feed",
                url=target,
                status_code=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            raise TransientNetworkError(f"Request failed: {e!r}", url=target) from e
        except RetryError as e:
            raise TransientNetworkError("Retries exhausted", url=target) from e

        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ParseError(f"Malformed JSON body: {e}", url=target) from e

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "FeedHttp":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
