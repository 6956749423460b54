"""Rate limit monitor.

Reads the provider's current core quota on demand. Nothing here pauses
collection; callers (the CLI, a scheduler) decide whether to proceed.
"""

import logging
from datetime import UTC, datetime

from pydantic import BaseModel

from gh_commit_sync.github.rest import RestClient

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 5000


class RateLimitStatus(BaseModel):
    """Snapshot of the core REST quota."""

    limit: int
    remaining: int
    reset: datetime
    used: int

    @property
    def seconds_until_reset(self) -> float:
        """Seconds until the quota window resets."""
        return max(0.0, (self.reset - datetime.now(UTC)).total_seconds())

    def is_low(self, threshold: int) -> bool:
        """Whether fewer than ``threshold`` requests remain."""
        return self.remaining < threshold

    @classmethod
    def exhausted(cls) -> "RateLimitStatus":
        """Conservative stand-in used when the quota can't be read."""
        return cls(limit=DEFAULT_LIMIT, remaining=0, reset=datetime.now(UTC), used=DEFAULT_LIMIT)


async def get_rate_limit_status(rest_client: RestClient) -> RateLimitStatus:
    """Fetch the current core rate limit.

    On any failure the exhausted default is returned, so a caller gating on
    ``remaining`` errs on the side of waiting.

    Args:
        rest_client: REST API client.

    Returns:
        Current rate limit snapshot.
    """
    try:
        data = await rest_client.get_rate_limit()
        rate = data["rate"]
        status = RateLimitStatus(
            limit=int(rate["limit"]),
            remaining=int(rate["remaining"]),
            reset=datetime.fromtimestamp(int(rate["reset"]), tz=UTC),
            used=int(rate.get("used", int(rate["limit"]) - int(rate["remaining"]))),
        )
    except Exception as e:
        logger.error("Error fetching rate limit: %s", e)
        return RateLimitStatus.exhausted()

    logger.debug(
        "Rate limit: %d/%d remaining, resets %s",
        status.remaining,
        status.limit,
        status.reset.isoformat(),
    )
    return status
