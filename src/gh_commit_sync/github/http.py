"""GitHub HTTP client with rate limit handling.

Async HTTP client for the GitHub REST API with automatic retry of transient
failures, rate-limit header tracking, and the error taxonomy the collectors
classify against.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Optional

import httpx
from pydantic import BaseModel

from gh_commit_sync import __version__
from gh_commit_sync.github.auth import GitHubAuth

logger = logging.getLogger(__name__)

EMPTY_REPOSITORY_MESSAGE = "Git Repository is empty"


class RateLimitInfo(BaseModel):
    """GitHub API rate limit information from response headers."""

    limit: int
    remaining: int
    reset: datetime
    used: int
    resource: str = "core"

    @classmethod
    def from_headers(cls, headers: httpx.Headers) -> Optional["RateLimitInfo"]:
        """Extract rate limit info from response headers.

        Args:
            headers: HTTP response headers.

        Returns:
            RateLimitInfo if headers present, None otherwise.
        """
        if "x-ratelimit-limit" not in headers:
            return None

        reset_timestamp = int(headers.get("x-ratelimit-reset", "0"))

        return cls(
            limit=int(headers.get("x-ratelimit-limit", "0")),
            remaining=int(headers.get("x-ratelimit-remaining", "0")),
            reset=datetime.fromtimestamp(reset_timestamp, tz=UTC),
            used=int(headers.get("x-ratelimit-used", "0")),
            resource=headers.get("x-ratelimit-resource", "core"),
        )


@dataclass
class GitHubResponse:
    """GitHub API response with parsed data and metadata."""

    status_code: int
    data: Any
    headers: httpx.Headers
    rate_limit: RateLimitInfo | None = None
    url: str = ""

    @property
    def is_success(self) -> bool:
        """Check if response was successful (2xx status code)."""
        return 200 <= self.status_code < 300

    @property
    def error_message(self) -> str:
        """Message GitHub attached to an error response, if any."""
        if isinstance(self.data, dict) and self.data.get("message"):
            return str(self.data["message"])
        if isinstance(self.data, str) and self.data:
            return self.data
        return f"HTTP {self.status_code}"


@dataclass
class HTTPRateLimitState:
    """Tracks rate limit state across HTTP requests."""

    last_rate_limit: RateLimitInfo | None = None
    last_check: datetime = field(default_factory=lambda: datetime.now(UTC))
    requests_made: int = 0
    rate_limit_hits: int = 0

    def update(self, rate_limit: RateLimitInfo | None) -> None:
        """Update state with new rate limit info.

        Args:
            rate_limit: Latest rate limit info from response.
        """
        self.requests_made += 1
        if rate_limit:
            self.last_rate_limit = rate_limit
            self.last_check = datetime.now(UTC)

            if rate_limit.remaining == 0:
                self.rate_limit_hits += 1
                logger.warning(
                    "Rate limit reached. Limit: %d, Reset: %s",
                    rate_limit.limit,
                    rate_limit.reset.isoformat(),
                )


class GitHubHTTPError(Exception):
    """Base exception for GitHub HTTP errors."""


class GitHubAPIError(GitHubHTTPError):
    """Raised when GitHub answers a request with a non-success status."""

    def __init__(self, status_code: int, message: str, path: str = "") -> None:
        self.status_code = status_code
        self.message = message
        self.path = path
        super().__init__(f"{message} (HTTP {status_code}{f' {path}' if path else ''})")


class RateLimitExceeded(GitHubHTTPError):
    """Raised when rate limit is exceeded."""

    def __init__(self, reset_at: datetime) -> None:
        self.reset_at = reset_at
        super().__init__(f"Rate limit exceeded. Resets at {reset_at.isoformat()}")


def is_expected_absence(error: BaseException) -> bool:
    """Whether an error means "nothing here yet" rather than a failure.

    Freshly created or emptied repositories answer commit and branch listings
    with 409 "Git Repository is empty." or 404. Those are zero-result states,
    not collection errors.
    """
    if isinstance(error, GitHubAPIError):
        if error.status_code in (404, 409):
            return True
        return EMPTY_REPOSITORY_MESSAGE in error.message
    return EMPTY_REPOSITORY_MESSAGE in str(error)


class GitHubClient:
    """Async HTTP client for GitHub API with rate limit handling.

    Features:
    - Bearer authentication
    - Retry with exponential backoff on timeouts, network errors and 5xx
    - Waiting out secondary (retry-after) and primary rate limits
    - Client errors (4xx) returned to the caller for classification
    """

    BASE_URL = "https://api.github.com"
    DEFAULT_TIMEOUT = 30.0
    DEFAULT_MAX_RETRIES = 3
    INITIAL_BACKOFF = 1.0
    BACKOFF_MULTIPLIER = 2.0

    def __init__(
        self,
        auth: GitHubAuth | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        base_url: str = BASE_URL,
    ) -> None:
        """Initialize GitHub HTTP client.

        Args:
            auth: GitHubAuth instance. If None, creates from environment.
            timeout: Request timeout in seconds.
            max_retries: Maximum number of retries for failed requests.
            base_url: Base URL for GitHub API.
        """
        self._auth = auth or GitHubAuth()
        self._timeout = timeout
        self._max_retries = max_retries
        self._base_url = base_url.rstrip("/")

        self._client: httpx.AsyncClient | None = None
        self._rate_limit_state = HTTPRateLimitState()

    @property
    def rate_limit_state(self) -> HTTPRateLimitState:
        """Rate limit state observed from response headers so far."""
        return self._rate_limit_state

    def _get_headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": f"gh-commit-sync/{__version__}",
        }
        headers.update(self._auth.get_authorization_header())
        return headers

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                headers=self._get_headers(),
                follow_redirects=True,
            )
        return self._client

    def _backoff(self, attempt: int) -> float:
        return self.INITIAL_BACKOFF * (self.BACKOFF_MULTIPLIER**attempt)

    def _throttle_wait(self, response: httpx.Response, attempt: int) -> float | None:
        """Seconds to wait before retrying a throttled response.

        Returns None when the response is not a rate-limit response, such as
        a 403 for a resource the token cannot read.

        Raises:
            RateLimitExceeded: If the primary limit is still exhausted after
                the last retry.
        """
        retry_after = response.headers.get("retry-after")
        if retry_after:
            try:
                wait_seconds = float(retry_after)
            except ValueError:
                wait_seconds = self._backoff(attempt)
            logger.warning("Secondary rate limit hit. Retry after %.0f seconds", wait_seconds)
            return wait_seconds

        rate_limit = RateLimitInfo.from_headers(response.headers)
        if rate_limit is None or rate_limit.remaining > 0:
            return None

        if attempt >= self._max_retries:
            raise RateLimitExceeded(reset_at=rate_limit.reset)

        wait_seconds = max(int((rate_limit.reset - datetime.now(UTC)).total_seconds()) + 1, 1)
        logger.warning(
            "Primary rate limit exhausted. Waiting %d seconds until %s",
            wait_seconds,
            rate_limit.reset.isoformat(),
        )
        return wait_seconds

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send a request, retrying transient failures.

        Timeouts, network errors and 5xx responses back off exponentially.
        Throttled responses wait as long as GitHub asks. Other 4xx responses
        are returned for the caller to classify.

        Raises:
            GitHubHTTPError: When retries are exhausted.
            RateLimitExceeded: If the primary rate limit stays exhausted.
        """
        client = await self._ensure_client()
        attempt = 0

        while True:
            logger.debug("%s %s (attempt %d)", method, path, attempt + 1)
            try:
                response = await client.request(method, path, **kwargs)
            except (httpx.TimeoutException, httpx.NetworkError) as e:
                label = "Request timeout" if isinstance(e, httpx.TimeoutException) else "Network error"
                logger.warning("%s for %s %s: %s", label, method, path, e)
                if attempt >= self._max_retries:
                    raise GitHubHTTPError(f"{label}: {e}") from e
                wait_seconds = self._backoff(attempt)
            else:
                if response.status_code in (403, 429):
                    throttle = self._throttle_wait(response, attempt)
                elif response.status_code >= 500:
                    logger.warning("Server error %d for %s %s", response.status_code, method, path)
                    throttle = self._backoff(attempt)
                else:
                    throttle = None

                if throttle is None:
                    if response.status_code >= 400:
                        logger.debug("Client error %d for %s %s", response.status_code, method, path)
                    return response
                if attempt >= self._max_retries:
                    raise GitHubHTTPError(
                        f"Max retries ({self._max_retries}) exceeded for {method} {path}"
                    )
                wait_seconds = throttle

            logger.debug(
                "Retry %d/%d for %s %s after %.1fs",
                attempt + 1,
                self._max_retries,
                method,
                path,
                wait_seconds,
            )
            await asyncio.sleep(wait_seconds)
            attempt += 1

    async def request(
        self,
        method: str,
        path: str,
        **kwargs: Any,
    ) -> GitHubResponse:
        """Make an HTTP request to GitHub API.

        Args:
            method: HTTP method (GET, POST, etc.).
            path: API path (e.g., "/rate_limit" or "/repos/owner/repo").
            **kwargs: Additional arguments passed to httpx (params, json, etc.).

        Returns:
            GitHubResponse with parsed data and metadata.

        Raises:
            GitHubHTTPError: On request failure.
            RateLimitExceeded: If rate limit exceeded.
        """
        response = await self._send(method, path, **kwargs)

        rate_limit = RateLimitInfo.from_headers(response.headers)
        self._rate_limit_state.update(rate_limit)

        data = None
        if response.content:
            try:
                data = response.json()
            except ValueError as e:
                logger.warning("Failed to parse JSON response: %s", e)
                data = response.text

        return GitHubResponse(
            status_code=response.status_code,
            data=data,
            headers=response.headers,
            rate_limit=rate_limit,
            url=str(response.url),
        )

    async def get(self, path: str, **kwargs: Any) -> GitHubResponse:
        """Make a GET request."""
        return await self.request("GET", path, **kwargs)

    async def close(self) -> None:
        """Close the HTTP client and cleanup resources."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "GitHubClient":
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
