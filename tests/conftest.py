"""
Shared fixtures: a deterministic in-memory source-control host and engines
bound to it.
"""

import asyncio
import json
from typing import Any, Optional

import pytest
import structlog

from eventexpr.config import DEFAULT_EVENT, EngineConfig
from eventexpr.github.client import GitHubError
from eventexpr.runtime import bindings_for, create_engine


class StubSourceControlHost:
    """In-memory host; unknown commits and pull requests are 404s."""

    def __init__(self) -> None:
        self.commits: dict[str, Any] = {
            "tektoncd/pipeline@abc123": {
                "sha": "abc123",
                "commit": {"message": "Fix the thing", "author": {"name": "Ada"}},
                "files": [{"filename": "README.md"}],
            },
        }
        self.pull_requests: dict[str, Any] = {
            "tektoncd/pipeline#42": {
                "number": 42,
                "state": "open",
                "title": "Add triggers",
                "user": {"login": "octocat"},
            },
        }
        self.collaborators: set[str] = {"tektoncd/pipeline:octocat"}
        self.delay: Optional[float] = None
        self.calls: list[tuple] = []

    async def _pause(self) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)

    async def get_commit(self, owner: str, repo: str, revision: str) -> Any:
        self.calls.append(("commit", owner, repo, revision))
        await self._pause()
        key = f"{owner}/{repo}@{revision}"
        if key not in self.commits:
            raise GitHubError(404, f"No commit found for SHA: {revision}")
        return self.commits[key]

    async def get_pull_request(self, owner: str, repo: str, number: int) -> Any:
        self.calls.append(("pullRequest", owner, repo, number))
        await self._pause()
        key = f"{owner}/{repo}#{number}"
        if key not in self.pull_requests:
            raise GitHubError(404, "Not Found")
        return self.pull_requests[key]

    async def is_collaborator(self, owner: str, repo: str, username: str) -> bool:
        self.calls.append(("isCollaborator", owner, repo, username))
        await self._pause()
        return f"{owner}/{repo}:{username}" in self.collaborators


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    structlog.reset_defaults()


@pytest.fixture
def host() -> StubSourceControlHost:
    return StubSourceControlHost()


@pytest.fixture
def config() -> EngineConfig:
    return EngineConfig(call_timeout_ms=2000)


@pytest.fixture
def engine(host, config):
    return create_engine(config, host=host)


@pytest.fixture
def event() -> dict[str, Any]:
    return json.loads(DEFAULT_EVENT)


@pytest.fixture
def bindings(config, event) -> dict[str, Any]:
    return bindings_for(config, event)
