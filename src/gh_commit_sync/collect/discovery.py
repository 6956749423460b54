"""Repository discovery for a GitHub organization."""

import logging

from gh_commit_sync.collect.models import RepoInfo
from gh_commit_sync.github.rest import RestClient

logger = logging.getLogger(__name__)


class DiscoveryError(Exception):
    """Raised when repository discovery fails in strict mode."""


async def discover_repos(
    rest_client: RestClient,
    org: str,
    strict: bool = False,
) -> list[RepoInfo]:
    """List every repository of an organization with its creation date.

    All pages are read before returning; callers never see a partial listing.

    Args:
        rest_client: REST API client.
        org: Organization login.
        strict: Raise on failure instead of reporting an empty organization.

    Returns:
        Repositories in listing order. Empty if the organization has none or,
        when not strict, if the listing failed.

    Raises:
        DiscoveryError: If the listing failed and ``strict`` is set.
    """
    repos: list[RepoInfo] = []

    try:
        async for page in rest_client.list_org_repos(org):
            repos.extend(RepoInfo.from_api(item) for item in page)
    except Exception as e:
        if strict:
            raise DiscoveryError(f"Failed to list repositories for {org}: {e}") from e
        logger.error("Error fetching repositories for %s: %s", org, e)
        return []

    logger.info("Discovered %d repositories in %s", len(repos), org)
    return repos
