"""
Minimal GitHub REST client for the source-control functions.

Only the three lookups the expression functions need are implemented. Each
call opens its own aiohttp session bounded by the configured timeout.
"""

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import quote

import aiohttp

from eventexpr.util.logging import getLogger

logger = getLogger(__name__)

DEFAULT_GITHUB_URL = "https://api.github.com"
DEFAULT_USER_AGENT = "eventexpr"


@dataclass
class GitHubClientOptions:
    """Configuration options for GitHubClient."""

    # Base URL of the REST API
    base_url: str = DEFAULT_GITHUB_URL

    # Bearer token; anonymous requests when unset
    token: Optional[str] = None

    # Request timeout in milliseconds
    timeout_ms: int = 10000

    user_agent: str = DEFAULT_USER_AGENT


class GitHubError(Exception):
    """Non-success response from the GitHub API."""

    def __init__(self, status: int, message: str, url: Optional[str] = None):
        super().__init__(f"GitHub API error {status}: {message}")
        self.status = status
        self.message = message
        self.url = url


class GitHubClient:
    """Async lookups of commits, pull requests and collaborator status."""

    def __init__(self, options: Optional[GitHubClientOptions] = None):
        self._options = options or GitHubClientOptions()
        self._base_url = self._options.base_url.rstrip("/")

    @property
    def options(self) -> GitHubClientOptions:
        return self._options

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": self._options.user_agent,
        }
        if self._options.token:
            headers["Authorization"] = f"Bearer {self._options.token}"
        return headers

    def _url(self, *segments: str) -> str:
        return self._base_url + "/" + "/".join(quote(s, safe="") for s in segments)

    async def get_commit(self, owner: str, repo: str, revision: str) -> Any:
        """GET /repos/{owner}/{repo}/commits/{ref}"""
        status, body = await self._request(
            "fetching_commit", self._url("repos", owner, repo, "commits", revision)
        )
        return self._json_or_raise(status, body)

    async def get_pull_request(self, owner: str, repo: str, number: int) -> Any:
        """GET /repos/{owner}/{repo}/pulls/{number}"""
        status, body = await self._request(
            "fetching_pull_request",
            self._url("repos", owner, repo, "pulls", str(number)),
        )
        return self._json_or_raise(status, body)

    async def is_collaborator(self, owner: str, repo: str, username: str) -> bool:
        """
        GET /repos/{owner}/{repo}/collaborators/{username}

        204 means collaborator, 404 means not; anything else is an error.
        """
        status, body = await self._request(
            "checking_collaborator",
            self._url("repos", owner, repo, "collaborators", username),
        )
        if status == 204:
            return True
        if status == 404:
            return False
        raise GitHubError(status, _error_message(body))

    async def _request(self, event: str, url: str) -> tuple[int, str]:
        logger.debug(event, url=url)

        timeout = aiohttp.ClientTimeout(total=self._options.timeout_ms / 1000)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url, headers=self._headers()) as response:
                    body = await response.text()
                    logger.debug(
                        "github_response", url=url, status=response.status
                    )
                    return response.status, body
        except asyncio.TimeoutError:
            logger.error(
                "github_request_timeout",
                url=url,
                timeout_ms=self._options.timeout_ms,
            )
            raise TimeoutError(
                f"Request to {url} timed out after {self._options.timeout_ms}ms"
            )

    def _json_or_raise(self, status: int, body: str) -> Any:
        if not 200 <= status < 300:
            raise GitHubError(status, _error_message(body))
        try:
            return json.loads(body)
        except ValueError as e:
            raise GitHubError(status, f"invalid JSON in response: {e}")


def _error_message(body: str) -> str:
    """GitHub errors carry a JSON `message`; fall back to the raw body."""
    try:
        parsed = json.loads(body)
    except ValueError:
        return body.strip() or "no response body"
    if isinstance(parsed, dict) and isinstance(parsed.get("message"), str):
        return parsed["message"]
    return body.strip()
