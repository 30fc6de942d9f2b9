"""Tests for the command line interface."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

from pullfetch import __version__
from pullfetch.cli import ExitCode, app
from pullfetch.config.schema import FetchParameters, ProviderConfig, ProviderType
from pullfetch.scm.auth import AuthenticationError
from pullfetch.scm.errors import ConnectivityError, FetchError
from pullfetch.scm.normalized import (
    NormalizedCommit,
    NormalizedPullRequest,
    RepositoryDescriptor,
)

REPO_URL = "https://github.com/octocat/hello-world"

runner = CliRunner()


def sample_pull_request() -> NormalizedPullRequest:
    return NormalizedPullRequest(
        id="7",
        title="Add feature",
        state="closed",
        updated_time=1768059000000,
        merged_time=1768059000000,
        is_merged=True,
        author_name="The Octocat",
        source_repository=RepositoryDescriptor(
            url="https://github.com/octocat/hello-world.git", branch="feature/x"
        ),
        target_repository=RepositoryDescriptor(branch="main"),
        commits=[NormalizedCommit(rev_id="c1", message="Commit c1", parent_rev_id="p0")],
    )


class FakeFetch:
    """Stands in for the library fetch and records its arguments."""

    def __init__(
        self,
        result: list[NormalizedPullRequest] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.result = result if result is not None else [sample_pull_request()]
        self.error = error
        self.parameters: FetchParameters | None = None
        self.provider: ProviderConfig | None = None

    async def __call__(
        self, parameters: FetchParameters, provider: ProviderConfig | None = None
    ) -> list[NormalizedPullRequest]:
        self.parameters = parameters
        self.provider = provider
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, temp_dir: Path) -> None:
    """Keep user config, tokens and logging setup out of CLI runs."""
    monkeypatch.delenv("PULLFETCH_CONFIG", raising=False)
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(temp_dir / "xdg"))
    monkeypatch.chdir(temp_dir)
    monkeypatch.setattr("pullfetch.cli.configure_logging", lambda **_: None)


@pytest.fixture
def fake_fetch(monkeypatch: pytest.MonkeyPatch) -> FakeFetch:
    fake = FakeFetch()
    monkeypatch.setattr("pullfetch.cli.fetch_pull_requests", fake)
    return fake


def test_version() -> None:
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert f"pullfetch {__version__}" in result.output


class TestValidate:
    def test_valid_config(self, write_config: Callable[..., Path]) -> None:
        path = write_config({"version": 1, "fetch": {"page_size": 25}})

        result = runner.invoke(app, ["validate", "--config", str(path), "--verbose"])

        assert result.exit_code == ExitCode.SUCCESS
        assert "Configuration is valid" in result.output
        assert "Page size : 25" in result.output

    def test_missing_config(self, temp_dir: Path) -> None:
        result = runner.invoke(app, ["validate", "--config", str(temp_dir / "nope.yaml")])

        assert result.exit_code == ExitCode.CONFIG_ERROR

    def test_invalid_config(self, write_config: Callable[..., Path]) -> None:
        path = write_config({"version": 1, "fetch": {"page_size": 500}})

        result = runner.invoke(app, ["validate", "--config", str(path)])

        assert result.exit_code == ExitCode.CONFIG_ERROR


class TestFetch:
    def test_writes_camel_case_json(self, fake_fetch: FakeFetch, temp_dir: Path) -> None:
        output = temp_dir / "out.json"

        result = runner.invoke(app, ["fetch", REPO_URL, "--output", str(output)])

        assert result.exit_code == ExitCode.SUCCESS
        payload = json.loads(output.read_text())
        assert payload[0]["id"] == "7"
        assert payload[0]["isMerged"] is True
        assert payload[0]["sourceRepository"] == {
            "url": "https://github.com/octocat/hello-world.git",
            "branch": "feature/x",
            "type": "git",
        }
        assert payload[0]["targetRepository"]["url"] == "unknown repository"
        assert payload[0]["commits"][0]["revId"] == "c1"
        assert payload[0]["commits"][0]["parentRevId"] == "p0"

    def test_defaults_without_config(self, fake_fetch: FakeFetch, temp_dir: Path) -> None:
        result = runner.invoke(app, ["fetch", REPO_URL, "-o", str(temp_dir / "out.json")])

        assert result.exit_code == ExitCode.SUCCESS
        assert fake_fetch.parameters is not None
        assert fake_fetch.parameters.repo_url == REPO_URL
        assert fake_fetch.parameters.page_size == 30
        assert fake_fetch.parameters.log_consumer is not None
        assert fake_fetch.provider is not None
        assert fake_fetch.provider.type is ProviderType.AUTO
        assert fake_fetch.provider.token is None

    def test_options_override_config(
        self,
        fake_fetch: FakeFetch,
        monkeypatch: pytest.MonkeyPatch,
        sample_config: dict[str, Any],
        write_config: Callable[..., Path],
        temp_dir: Path,
    ) -> None:
        monkeypatch.setenv("GITHUB_TOKEN", "ghp_from_env")
        path = write_config(sample_config)

        result = runner.invoke(
            app,
            [
                "fetch",
                REPO_URL,
                "--config",
                str(path),
                "--max-prs",
                "5",
                "--since",
                "2026-01-05T00:00:00Z",
                "--target-branch",
                "release/*",
                "--provider",
                "github_server",
                "-o",
                str(temp_dir / "out.json"),
            ],
        )

        assert result.exit_code == ExitCode.SUCCESS
        parameters = fake_fetch.parameters
        assert parameters is not None
        assert parameters.page_size == 50
        assert parameters.max_prs_to_fetch == 5
        assert parameters.max_commits_to_fetch == 40
        assert parameters.min_update_time == 1767571200000
        assert parameters.source_branch_filter == "feature/*"
        assert parameters.target_branch_filter == "release/*"
        assert fake_fetch.provider is not None
        assert fake_fetch.provider.type is ProviderType.GITHUB_SERVER
        assert fake_fetch.provider.token == "ghp_from_env"

    def test_token_from_environment(
        self, fake_fetch: FakeFetch, monkeypatch: pytest.MonkeyPatch, temp_dir: Path
    ) -> None:
        monkeypatch.setenv("GITHUB_TOKEN", "ghp_env_only")

        runner.invoke(app, ["fetch", REPO_URL, "-o", str(temp_dir / "out.json")])

        assert fake_fetch.provider is not None
        assert fake_fetch.provider.token == "ghp_env_only"

    def test_invalid_since(self, fake_fetch: FakeFetch) -> None:
        result = runner.invoke(app, ["fetch", REPO_URL, "--since", "yesterday"])

        assert result.exit_code == ExitCode.CONFIG_ERROR
        assert fake_fetch.parameters is None

    def test_missing_explicit_config(self, fake_fetch: FakeFetch, temp_dir: Path) -> None:
        result = runner.invoke(
            app, ["fetch", REPO_URL, "--config", str(temp_dir / "missing.yaml")]
        )

        assert result.exit_code == ExitCode.CONFIG_ERROR

    @pytest.mark.parametrize(
        ("error", "code"),
        [
            (ValueError("Repository URL must contain owner and name"), ExitCode.CONFIG_ERROR),
            (AuthenticationError("Access token must not be empty"), ExitCode.AUTH_ERROR),
            (ConnectivityError("Repository is not reachable"), ExitCode.CONNECTIVITY_ERROR),
            (FetchError("fetch_paged", url=REPO_URL), ExitCode.FETCH_ERROR),
        ],
    )
    def test_exit_codes(
        self, monkeypatch: pytest.MonkeyPatch, error: Exception, code: ExitCode
    ) -> None:
        monkeypatch.setattr("pullfetch.cli.fetch_pull_requests", FakeFetch(error=error))

        result = runner.invoke(app, ["fetch", REPO_URL])

        assert result.exit_code == code

    def test_rejected_credentials_during_fetch(self, monkeypatch: pytest.MonkeyPatch) -> None:
        cause = AuthenticationError("Authentication failed: Bad credentials", status_code=401)
        error = FetchError("fetch_paged", url=REPO_URL, cause=cause)
        error.__cause__ = cause
        monkeypatch.setattr("pullfetch.cli.fetch_pull_requests", FakeFetch(error=error))

        result = runner.invoke(app, ["fetch", REPO_URL])

        assert result.exit_code == ExitCode.AUTH_ERROR
