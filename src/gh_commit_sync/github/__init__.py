"""GitHub API clients and utilities."""

from gh_commit_sync.github.auth import AuthenticationError, GitHubAuth
from gh_commit_sync.github.http import (
    GitHubAPIError,
    GitHubClient,
    GitHubHTTPError,
    GitHubResponse,
    HTTPRateLimitState,
    RateLimitExceeded,
    RateLimitInfo,
    is_expected_absence,
)
from gh_commit_sync.github.ratelimit import RateLimitStatus, get_rate_limit_status
from gh_commit_sync.github.rest import RestClient

__all__ = [
    # Auth
    "AuthenticationError",
    "GitHubAPIError",
    "GitHubAuth",
    # HTTP Client
    "GitHubClient",
    "GitHubHTTPError",
    "GitHubResponse",
    "HTTPRateLimitState",
    "RateLimitExceeded",
    "RateLimitInfo",
    # Rate limit monitor
    "RateLimitStatus",
    # REST API Client
    "RestClient",
    "get_rate_limit_status",
    "is_expected_absence",
]
