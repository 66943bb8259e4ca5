from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx
from loguru import logger
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from matchcatalog.config.settings import settings
from matchcatalog.models.enums import SourceTag

# Define common HTTP status codes that warrant a retry
RETRYABLE_STATUS_CODES = {408, 429, 500, 502, 503, 504}

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)


class ScraperError(Exception):
    """Custom exception for scraper-related errors."""

    pass


class AuthenticationError(ScraperError):
    """Exception raised for authentication failures (401, 403)."""

    pass


class RateLimitError(ScraperError):
    """Exception raised for rate limit errors (429)."""

    pass


class RetryableStatusError(ScraperError):
    """Raised for 5xx/408 responses so the request is attempted again."""

    pass


class BaseScraper(ABC):
    """Abstract base class for upstream source adapters."""

    source: SourceTag

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(settings.http_timeout),
            follow_redirects=True,
            headers={"User-Agent": DEFAULT_USER_AGENT},
        )

    @abstractmethod
    async def fetch(self) -> List[Any]:
        """Fetch raw payloads from the upstream.

        Returns:
            A list of raw items (decoded JSON documents or playlist text)
            which the Normalizer knows how to turn into observations for
            this scraper's source.
        """
        pass

    async def _make_request(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        **kwargs,
    ) -> httpx.Response:
        """Makes an HTTP request, retrying network errors with exponential backoff."""
        retrying = AsyncRetrying(
            stop=stop_after_attempt(settings.request_attempts),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception_type(
                (httpx.RequestError, RetryableStatusError, RateLimitError)
            ),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    return await self._send(method, url, headers=headers, params=params, **kwargs)
        except ScraperError:
            raise
        except httpx.RequestError as e:
            logger.error(f"Request to {url} failed for {self.source.value}: {e}")
            raise ScraperError(f"Network error: {e}") from e

    async def _send(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        **kwargs,
    ) -> httpx.Response:
        logger.debug(f"Making {method} request to {url}")
        try:
            response = await self.client.request(
                method, url, headers=headers, params=params, **kwargs
            )
        except httpx.RequestError as e:
            # Network errors, timeouts etc. - these are retryable
            logger.warning(f"Request error for {self.source.value}, retrying: {e}")
            raise

        if response.status_code in {401, 403}:
            logger.warning(
                f"Authentication error ({response.status_code}) for {self.source.value} at {url}."
            )
            raise AuthenticationError(
                f"Authentication failed ({response.status_code}) for {self.source.value}"
            )

        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            logger.warning(
                f"Rate limit hit (429) for {self.source.value} at {url}. Retry-After: {retry_after}"
            )
            raise RateLimitError(f"Rate limited by {self.source.value}")

        if response.status_code in RETRYABLE_STATUS_CODES:
            logger.warning(
                f"Retrying request for {self.source.value} due to status {response.status_code}"
            )
            raise RetryableStatusError(f"HTTP {response.status_code} from {url}")

        if response.is_error:
            logger.error(
                f"HTTP error during request for {self.source.value}: {response.status_code}"
            )
            raise ScraperError(f"HTTP error: {response.status_code}")

        logger.debug(f"Request successful: {response.status_code} for {url}")
        return response

    async def _get_json(self, url: str, **kwargs) -> Any:
        response = await self._make_request("GET", url, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise ScraperError(f"Invalid JSON from {url}: {e}") from e

    async def _get_text(self, url: str, **kwargs) -> str:
        response = await self._make_request("GET", url, **kwargs)
        return response.text

    async def close(self):
        """Closes the underlying HTTP client."""
        await self.client.aclose()
        logger.info(f"Closed HTTP client for {self.source.value}")
