"""Shared pytest fixtures for pullfetch tests.

This module provides common fixtures for:
- Temporary config files
- A scripted fake provider API served through httpx.MockTransport
- Sample GitHub API payload builders
"""

from __future__ import annotations

import tempfile
from collections.abc import AsyncGenerator, Callable, Generator
from pathlib import Path
from typing import Any

import httpx
import pytest
import structlog
import yaml

from pullfetch.scm.auth import TokenAuthentication
from pullfetch.scm.client import RestClient

API = "https://api.github.com"
REPO_API = f"{API}/repos/octocat/hello-world"


# ============================================================================
# Logging
# ============================================================================


@pytest.fixture(autouse=True)
def quiet_structlog() -> Generator[None, None, None]:
    """Route structlog output nowhere so stdout stays clean."""
    structlog.configure(
        processors=[],
        logger_factory=structlog.ReturnLoggerFactory(),
        cache_logger_on_first_use=False,
    )
    yield
    structlog.reset_defaults()


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_config() -> dict[str, Any]:
    """Return a sample configuration."""
    return {
        "version": 1,
        "provider": {
            "type": "github_cloud",
            "token": "${GITHUB_TOKEN}",
        },
        "fetch": {
            "page_size": 50,
            "max_prs_to_fetch": 20,
            "max_commits_to_fetch": 40,
            "min_update_time": "2026-01-01T00:00:00Z",
            "source_branch_filter": "feature/*",
            "target_branch_filter": "main",
        },
    }


@pytest.fixture
def write_config(temp_dir: Path) -> Callable[..., Path]:
    """Factory fixture to write config files."""

    def _write(config: dict[str, Any], filename: str = "config.yaml") -> Path:
        path = temp_dir / filename
        with path.open("w") as f:
            yaml.safe_dump(config, f)
        return path

    return _write


# ============================================================================
# Fake provider API
# ============================================================================


def _route_key(url: str | httpx.URL) -> tuple[str, str, tuple[tuple[str, str], ...]]:
    parsed = httpx.URL(url)
    return parsed.host, parsed.path, tuple(sorted(parsed.params.multi_items()))


class FakeApi:
    """Scripted HTTP responses keyed by host, path and query parameters.

    A route registered several times answers with its responses in order,
    repeating the last one. Unknown routes answer 404.
    """

    def __init__(self) -> None:
        self._routes: dict[tuple[Any, ...], list[httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    def add(
        self,
        url: str,
        body: Any = None,
        *,
        status: int = 200,
        headers: dict[str, str] | None = None,
        next_url: str | None = None,
    ) -> None:
        response_headers = dict(headers or {})
        if next_url is not None:
            response_headers["Link"] = (
                f'<{next_url}>; rel="next", <{next_url}>; rel="last"'
            )
        response = httpx.Response(status, json=body, headers=response_headers)
        self._routes.setdefault(_route_key(url), []).append(response)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        responses = self._routes.get(_route_key(request.url))
        if not responses:
            return httpx.Response(404, json={"message": "Not Found"})
        if len(responses) > 1:
            return responses.pop(0)
        return responses[0]

    def requested(self, url: str) -> int:
        """Number of requests made to a route."""
        key = _route_key(url)
        return sum(1 for r in self.requests if _route_key(r.url) == key)


@pytest.fixture
def fake_api() -> FakeApi:
    return FakeApi()


@pytest.fixture
async def rest_client(fake_api: FakeApi) -> AsyncGenerator[RestClient, None]:
    """RestClient wired to the fake API, without retries or backoff."""
    http = httpx.AsyncClient(transport=httpx.MockTransport(fake_api.handler))
    client = RestClient(
        TokenAuthentication("ghp_test_token_value"),
        client=http,
        max_retries=1,
        initial_backoff_seconds=0,
    )
    yield client
    await http.aclose()


# ============================================================================
# GitHub API payload builders
# ============================================================================


def iso(day: int, hour: int = 12) -> str:
    """ISO-8601 timestamp in January 2026."""
    return f"2026-01-{day:02d}T{hour:02d}:00:00Z"


def make_pull_request(
    number: int,
    *,
    updated_at: str = "2026-01-10T12:00:00Z",
    head: str = "feature/x",
    base: str = "main",
    login: str = "octocat",
    merged_at: str | None = None,
    head_repo: bool = True,
    base_repo: bool = True,
) -> dict[str, Any]:
    """Build a GitHub pull request payload."""
    repo = {
        "full_name": "octocat/hello-world",
        "clone_url": "https://github.com/octocat/hello-world.git",
        "html_url": "https://github.com/octocat/hello-world",
    }
    return {
        "id": 1000 + number,
        "number": number,
        "title": f"Pull request {number}",
        "body": f"Description of #{number}",
        "state": "closed" if merged_at else "open",
        "created_at": "2026-01-01T09:00:00Z",
        "updated_at": updated_at,
        "closed_at": merged_at,
        "merged_at": merged_at,
        "html_url": f"https://github.com/octocat/hello-world/pull/{number}",
        "user": {"login": login, "url": f"{API}/users/{login}"},
        "head": {
            "ref": head,
            "sha": f"head{number}",
            "label": f"octocat:{head}",
            "repo": repo if head_repo else None,
        },
        "base": {
            "ref": base,
            "sha": f"base{number}",
            "label": f"octocat:{base}",
            "repo": repo if base_repo else None,
        },
        "commits_url": f"{REPO_API}/pulls/{number}/commits",
    }


def make_commit(
    sha: str,
    date: str,
    *,
    parents: tuple[str, ...] = ("p0",),
    name: str = "Mona Lisa",
    email: str = "mona@example.com",
) -> dict[str, Any]:
    """Build a GitHub pull request commit payload."""
    person = {"name": name, "email": email, "date": date}
    return {
        "sha": sha,
        "commit": {
            "message": f"Commit {sha}",
            "author": person,
            "committer": person,
        },
        "parents": [{"sha": parent} for parent in parents],
    }


def make_user(login: str, *, name: str | None = None, email: str | None = None) -> dict[str, Any]:
    """Build a GitHub user profile payload."""
    return {"login": login, "id": hash(login) % 10_000, "name": name, "email": email}
