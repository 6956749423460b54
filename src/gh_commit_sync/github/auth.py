"""GitHub credential loading.

The collector authenticates with a single bearer token supplied through
configuration: either passed explicitly or read from a named environment
variable.
"""

import logging
import os

logger = logging.getLogger(__name__)


class AuthenticationError(Exception):
    """Raised when the token is missing or malformed."""


class GitHubAuth:
    """Bearer-token credential for the GitHub REST API.

    Accepted token formats:
    - ghp_/gho_/ghu_/ghs_/ghr_: classic and app tokens
    - github_pat_: fine-grained personal access tokens
    - 40 character hex string: legacy classic tokens
    """

    VALID_PREFIXES = ("ghp_", "gho_", "ghu_", "ghs_", "ghr_", "github_pat_")

    def __init__(self, token: str | None = None, token_env: str = "GITHUB_TOKEN") -> None:
        """Initialize GitHub authentication.

        Args:
            token: GitHub token. If None, read from ``token_env``.
            token_env: Environment variable holding the token.

        Raises:
            AuthenticationError: If token is missing or invalid.
        """
        if token:
            source = "explicit parameter"
        else:
            token = os.environ.get(token_env, "").strip()
            source = f"{token_env} environment variable"

        if not token:
            raise AuthenticationError(
                f"GitHub token not found. Set the {token_env} environment variable "
                "or pass a token explicitly."
            )

        logger.info("Using GitHub token from %s", source)
        self._token = token
        self._validate_token()

    def _validate_token(self) -> None:
        """Reject tokens that cannot possibly be GitHub credentials."""
        token = self._token
        if any(ch.isspace() for ch in token):
            raise AuthenticationError("Token must not contain whitespace")

        has_prefix = token.startswith(self.VALID_PREFIXES)
        is_classic = len(token) == 40 and all(ch in "0123456789abcdef" for ch in token)

        if not has_prefix and not is_classic:
            raise AuthenticationError(
                f"Invalid token format. Expected prefix {self.VALID_PREFIXES} "
                "or 40-character hex string (classic token)"
            )

        if has_prefix and len(token) < 20:
            raise AuthenticationError("Token appears too short to be valid")

    @property
    def token(self) -> str:
        """The validated token."""
        return self._token

    def get_authorization_header(self) -> dict[str, str]:
        """Authorization header for API requests."""
        return {"Authorization": f"Bearer {self._token}"}
