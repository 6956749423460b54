"""Tests for GitHub authentication module."""

import os
from unittest.mock import patch

import pytest

from gh_commit_sync.github.auth import AuthenticationError, GitHubAuth


class TestGitHubAuthValidTokens:
    """Tests for GitHubAuth initialization with valid tokens."""

    @pytest.mark.parametrize("prefix", ["ghp_", "gho_", "ghu_", "ghs_", "ghr_"])
    def test_prefixed_tokens(self, prefix: str) -> None:
        token = prefix + "a" * 36
        assert GitHubAuth(token=token).token == token

    def test_fine_grained_token(self) -> None:
        token = "github_pat_" + "A1b2" * 10
        assert GitHubAuth(token=token).token == token

    def test_valid_classic_token(self) -> None:
        token = "abc123def456abc789def012abc345def6789abc"
        assert GitHubAuth(token=token).token == token


class TestGitHubAuthInvalidTokens:
    """Tests for GitHubAuth initialization with invalid tokens."""

    def test_missing_token_no_env(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(AuthenticationError, match="GITHUB_TOKEN"):
                GitHubAuth()

    def test_missing_custom_env_named_in_error(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(AuthenticationError, match="ORG_BOT_TOKEN"):
                GitHubAuth(token_env="ORG_BOT_TOKEN")

    def test_invalid_prefix(self) -> None:
        with pytest.raises(AuthenticationError, match="Invalid token format"):
            GitHubAuth(token="xyz_" + "a" * 36)

    def test_invalid_classic_token_non_hex(self) -> None:
        with pytest.raises(AuthenticationError, match="Invalid token format"):
            GitHubAuth(token="z" * 40)

    def test_token_too_short(self) -> None:
        with pytest.raises(AuthenticationError, match="too short"):
            GitHubAuth(token="ghp_abc")

    def test_whitespace_rejected(self) -> None:
        with pytest.raises(AuthenticationError, match="whitespace"):
            GitHubAuth(token="ghp_" + "a" * 20 + " " + "b" * 10)


class TestGitHubAuthSources:
    """Tests for where the token comes from."""

    def test_load_from_environment_variable(self) -> None:
        token = "ghp_" + "e" * 36
        with patch.dict(os.environ, {"GITHUB_TOKEN": token}, clear=True):
            assert GitHubAuth().token == token

    def test_load_from_custom_environment_variable(self) -> None:
        token = "ghp_" + "f" * 36
        with patch.dict(os.environ, {"ORG_BOT_TOKEN": f"  {token}\n"}, clear=True):
            assert GitHubAuth(token_env="ORG_BOT_TOKEN").token == token

    def test_explicit_token_overrides_env(self) -> None:
        explicit = "ghp_" + "1" * 36
        with patch.dict(os.environ, {"GITHUB_TOKEN": "ghp_" + "2" * 36}):
            assert GitHubAuth(token=explicit).token == explicit

    def test_get_authorization_header(self) -> None:
        token = "ghp_" + "h" * 36
        assert GitHubAuth(token=token).get_authorization_header() == {
            "Authorization": f"Bearer {token}"
        }
