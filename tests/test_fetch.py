"""Tests for the library entry points."""

from __future__ import annotations

import asyncio

import httpx
import pytest
from conftest import API, REPO_API, FakeApi, make_commit, make_pull_request, make_user

from pullfetch.config.schema import FetchParameters, ProviderConfig, ProviderType
from pullfetch.fetch import build_auth, fetch_pull_requests, fetch_pull_requests_sync
from pullfetch.scm.auth import BasicAuthentication, NoAuthentication, TokenAuthentication
from pullfetch.scm.errors import ConnectivityError
from pullfetch.scm.walker import with_page_size

PULLS = f"{REPO_API}/pulls?state=all&sort=updated&direction=desc"


class TestBuildAuth:
    def test_token(self) -> None:
        assert isinstance(build_auth(ProviderConfig(token="t")), TokenAuthentication)

    def test_basic(self) -> None:
        auth = build_auth(ProviderConfig(username="mona", password="secret"))

        assert isinstance(auth, BasicAuthentication)

    def test_anonymous(self) -> None:
        assert isinstance(build_auth(ProviderConfig()), NoAuthentication)


async def test_end_to_end_with_auto_detection(fake_api: FakeApi) -> None:
    fake_api.add(REPO_API, {"full_name": "octocat/hello-world"})
    fake_api.add(
        with_page_size(PULLS, 10),
        [make_pull_request(7, merged_at="2026-01-09T10:00:00Z")],
    )
    fake_api.add(f"{API}/users/octocat", make_user("octocat", name="The Octocat"))
    fake_api.add(
        with_page_size(f"{REPO_API}/pulls/7/commits", 5),
        [make_commit("c1", "2026-01-08T10:00:00Z")],
    )
    messages: list[str] = []
    parameters = FetchParameters(
        repo_url="https://github.com/octocat/hello-world",
        page_size=10,
        max_commits_to_fetch=5,
        log_consumer=messages.append,
    )

    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_api.handler)) as http:
        pull_requests = await fetch_pull_requests(
            parameters,
            ProviderConfig(type=ProviderType.AUTO, token="ghp_test_token_value"),
            http_client=http,
        )

    assert [pr.id for pr in pull_requests] == ["7"]
    assert pull_requests[0].is_merged is True
    assert pull_requests[0].author_name == "The Octocat"
    assert [c.rev_id for c in pull_requests[0].commits] == ["c1"]
    assert messages[0].startswith("GitHubCloud")
    assert fake_api.requests[0].headers["Authorization"] == "token ghp_test_token_value"


async def test_unreachable_repository(fake_api: FakeApi) -> None:
    parameters = FetchParameters(repo_url="https://github.com/octocat/missing")

    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_api.handler)) as http:
        with pytest.raises(ConnectivityError):
            await fetch_pull_requests(
                parameters,
                ProviderConfig(type=ProviderType.GITHUB_CLOUD, max_retries=1),
                http_client=http,
            )


async def test_configured_base_url(fake_api: FakeApi) -> None:
    proxy_repo = "https://proxy.example.com/ghe/api/repos/team/service"
    fake_api.add(proxy_repo, {"full_name": "team/service"})
    fake_api.add(
        with_page_size(f"{proxy_repo}/pulls?state=all&sort=updated&direction=desc", 30), []
    )
    parameters = FetchParameters(repo_url="git@ghe.corp.local:team/service.git")
    provider = ProviderConfig(
        type=ProviderType.GITHUB_SERVER,
        base_url="https://proxy.example.com/ghe/api",
    )

    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_api.handler)) as http:
        pull_requests = await fetch_pull_requests(parameters, provider, http_client=http)

    assert pull_requests == []
    assert fake_api.requested(proxy_repo) == 1
    assert all(r.url.host == "proxy.example.com" for r in fake_api.requests)


def test_blocking_entry_point(fake_api: FakeApi) -> None:
    fake_api.add(REPO_API, {"full_name": "octocat/hello-world"})
    fake_api.add(with_page_size(PULLS, 30), [make_pull_request(4)])
    fake_api.add(f"{API}/users/octocat", make_user("octocat"))
    fake_api.add(with_page_size(f"{REPO_API}/pulls/4/commits", 100), [])
    http = httpx.AsyncClient(transport=httpx.MockTransport(fake_api.handler))

    pull_requests = fetch_pull_requests_sync(
        FetchParameters(repo_url="https://github.com/octocat/hello-world"),
        ProviderConfig(type=ProviderType.GITHUB_CLOUD),
        http_client=http,
    )
    asyncio.run(http.aclose())

    assert [pr.id for pr in pull_requests] == ["4"]
    assert pull_requests[0].author_name == "octocat"
    assert pull_requests[0].commits == []
