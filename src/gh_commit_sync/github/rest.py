"""GitHub REST API client with pagination.

Provides the read-only endpoints the commit collector needs, with automatic
pagination over Link headers. Non-success responses are raised as
GitHubAPIError so callers can tell an empty repository apart from a failure.
"""

import logging
import re
from collections.abc import AsyncIterator
from typing import Any, cast

from gh_commit_sync.github.http import GitHubAPIError, GitHubClient, GitHubResponse

logger = logging.getLogger(__name__)

PER_PAGE = 100

_LINK_RE = re.compile(r'<([^>]+)>;\s*rel="([^"]+)"')


class RestClient:
    """GitHub REST API client.

    Wraps GitHubClient to provide:
    - Automatic pagination following Link headers
    - High-level methods for the endpoints used during collection
    - Memory-efficient async iteration, one page at a time
    """

    def __init__(self, http_client: GitHubClient) -> None:
        """Initialize REST API client.

        Args:
            http_client: GitHubClient instance for HTTP requests.
        """
        self._http = http_client

    @property
    def http(self) -> GitHubClient:
        """Underlying HTTP client."""
        return self._http

    @staticmethod
    def _parse_link_header(link_header: str | None) -> dict[str, str]:
        """Parse Link header to extract pagination URLs.

        Args:
            link_header: Link header value from response.

        Returns:
            Dict mapping rel type to URL (e.g., {"next": "url", "last": "url"}).
        """
        if not link_header:
            return {}

        links = {}
        for part in link_header.split(","):
            match = _LINK_RE.match(part.strip())
            if match:
                url, rel = match.groups()
                links[rel] = url
        return links

    @staticmethod
    def _raise_for_status(response: GitHubResponse, path: str) -> None:
        if not response.is_success:
            raise GitHubAPIError(response.status_code, response.error_message, path)

    async def _paginate(
        self,
        path: str,
        params: dict[str, Any] | None = None,
    ) -> AsyncIterator[list[Any]]:
        """Paginate through API results following Link headers.

        Args:
            path: API endpoint path.
            params: Query parameters for the first page.

        Yields:
            Items list for each page.

        Raises:
            GitHubAPIError: If any page answers with a non-success status.
        """
        current_path = path
        current_params: dict[str, Any] | None = params or {}
        page_num = 1

        while True:
            response = await self._http.get(current_path, params=current_params)
            self._raise_for_status(response, path)

            data = response.data
            if not isinstance(data, list):
                data = [data] if data else []

            yield data

            links = self._parse_link_header(response.headers.get("link"))
            if "next" not in links:
                break

            # The next link already carries the full query string
            current_path = links["next"]
            current_params = None
            page_num += 1
            logger.debug("Following pagination for %s to page %d", path, page_num)

    async def list_org_repos(self, org: str, repo_type: str = "all") -> AsyncIterator[list[Any]]:
        """List all repositories for an organization.

        Args:
            org: Organization name.
            repo_type: Type of repos: "all", "public", "private", "forks", "sources", "member".

        Yields:
            Repository list for each page.
        """
        logger.info("Fetching repositories for org: %s (type=%s)", org, repo_type)

        async for items in self._paginate(
            f"/orgs/{org}/repos",
            {"type": repo_type, "per_page": PER_PAGE},
        ):
            yield items

    async def list_branches(self, owner: str, repo: str) -> AsyncIterator[list[Any]]:
        """List branches of a repository.

        Args:
            owner: Repository owner.
            repo: Repository name.

        Yields:
            Branch list for each page.
        """
        logger.debug("Fetching branches for %s/%s", owner, repo)

        async for items in self._paginate(
            f"/repos/{owner}/{repo}/branches",
            {"per_page": PER_PAGE},
        ):
            yield items

    async def list_commits(
        self,
        owner: str,
        repo: str,
        sha: str | None = None,
        since: str | None = None,
        until: str | None = None,
    ) -> AsyncIterator[list[Any]]:
        """List commits reachable from a branch within a time range.

        Args:
            owner: Repository owner.
            repo: Repository name.
            sha: Branch name or SHA to start listing from.
            since: ISO 8601 timestamp, only commits after this date.
            until: ISO 8601 timestamp, only commits before this date.

        Yields:
            Commit list for each page.
        """
        params: dict[str, Any] = {"per_page": PER_PAGE}
        if sha:
            params["sha"] = sha
        if since:
            params["since"] = since
        if until:
            params["until"] = until

        logger.debug(
            "Fetching commits for %s/%s@%s (since=%s, until=%s)",
            owner,
            repo,
            sha or "default",
            since or "none",
            until or "none",
        )

        async for items in self._paginate(f"/repos/{owner}/{repo}/commits", params):
            yield items

    async def get_commit(self, owner: str, repo: str, sha: str) -> dict[str, Any]:
        """Get one commit with its stats and changed files.

        Raises:
            GitHubAPIError: If the commit can't be fetched.
        """
        path = f"/repos/{owner}/{repo}/commits/{sha}"
        response = await self._http.get(path)
        self._raise_for_status(response, path)
        return cast("dict[str, Any]", response.data)

    async def get_rate_limit(self) -> dict[str, Any]:
        """Get current rate limit status.

        Returns:
            Rate limit data dict with ``rate`` and ``resources`` breakdown.

        Raises:
            GitHubAPIError: If the endpoint answers with an error.
        """
        response = await self._http.get("/rate_limit")
        self._raise_for_status(response, "/rate_limit")
        return cast("dict[str, Any]", response.data)
