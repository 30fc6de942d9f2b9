"""GitHub REST v3 fetch handlers (github.com and GitHub Enterprise Server)."""

from __future__ import annotations

import re
from abc import abstractmethod
from dataclasses import dataclass

from pullfetch.scm.models import Commit, PullRequest, PullRequestRef, User
from pullfetch.scm.normalized import (
    UNKNOWN_REPOSITORY,
    NormalizedCommit,
    NormalizedPullRequest,
    RepositoryDescriptor,
    ScmType,
)
from pullfetch.scm.providers.base import PullRequestFetchHandler
from pullfetch.scm.timestamps import iso_to_epoch_ms

GITHUB_CLOUD_HOST = "github.com"
GITHUB_CLOUD_API = "https://api.github.com"

# https://host[:port]/owner/repo[.git], ssh://git@host/owner/repo.git
_URL_STYLE = re.compile(
    r"^(?P<scheme>https?|ssh|git)://(?:[^@/]+@)?(?P<host>[^/:]+)(?::(?P<port>\d+))?/(?P<path>.+)$"
)
# git@host:owner/repo.git
_SCP_STYLE = re.compile(r"^[^@/]+@(?P<host>[^:/]+):(?P<path>.+)$")


@dataclass(frozen=True)
class RepoCoordinates:
    """Host and owner/name of a repository parsed from its URL."""

    scheme: str
    host: str
    port: int | None
    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


def parse_repo_url(repo_url: str) -> RepoCoordinates:
    """Parse a clone or web URL of a repository.

    Raises:
        ValueError: If the URL has no recognizable host and owner/name.
    """
    url = repo_url.strip()
    scheme, port = "https", None

    if match := _URL_STYLE.match(url):
        host = match.group("host")
        path = match.group("path")
        if match.group("scheme") in ("http", "https"):
            scheme = match.group("scheme")
            port = int(match.group("port")) if match.group("port") else None
    elif match := _SCP_STYLE.match(url):
        host = match.group("host")
        path = match.group("path")
    else:
        msg = f"Unsupported repository URL: {repo_url!r}"
        raise ValueError(msg)

    path = path.split("?", 1)[0].split("#", 1)[0].strip("/")
    path = path.removesuffix(".git")
    parts = [part for part in path.split("/") if part]
    if len(parts) < 2:
        msg = f"Repository URL must contain owner and name: {repo_url!r}"
        raise ValueError(msg)

    return RepoCoordinates(
        scheme=scheme,
        host=host.lower(),
        port=port,
        owner=parts[-2],
        name=parts[-1],
    )


class GitHubV3FetchHandler(PullRequestFetchHandler[PullRequest, Commit, User]):
    """Shared mapping for GitHub REST v3 APIs."""

    pull_request_type = PullRequest
    commit_type = Commit
    actor_type = User

    @abstractmethod
    def api_base(self, coordinates: RepoCoordinates) -> str:
        """Default API root for a repository host."""

    def repo_api_path(self, repo_url: str) -> str:
        """Repository API URL, under the configured base URL when one is set."""
        coordinates = parse_repo_url(repo_url)
        base = self._base_url or self.api_base(coordinates)
        return f"{base}/repos/{coordinates.full_name}"

    def pull_requests_locator(self, api_path: str) -> str:
        return f"{api_path}/pulls?state=all&sort=updated&direction=desc"

    def to_commit(self, commit: Commit) -> NormalizedCommit:
        committer = commit.commit.committer
        # Only the first parent is carried; merge commits lose the rest
        parent = commit.parents[0].sha if commit.parents else None
        return NormalizedCommit(
            rev_id=commit.sha,
            message=commit.commit.message,
            author_name=committer.name,
            author_email=committer.email,
            time=iso_to_epoch_ms(committer.date),
            parent_rev_id=parent,
        )

    def to_repository(self, pull_request: PullRequest, *, source: bool) -> RepositoryDescriptor:
        ref: PullRequestRef = pull_request.head if source else pull_request.base
        url = ref.repo.clone_url if ref.repo is not None else None
        return RepositoryDescriptor(
            url=url or UNKNOWN_REPOSITORY,
            branch=ref.ref,
            type=ScmType.GIT,
        )

    def to_pull_request(
        self,
        pull_request: PullRequest,
        author: User,
        commits: list[NormalizedCommit],
    ) -> NormalizedPullRequest:
        return NormalizedPullRequest(
            id=str(pull_request.number),
            title=pull_request.title,
            description=pull_request.body,
            state=pull_request.state,
            created_time=iso_to_epoch_ms(pull_request.created_at),
            updated_time=iso_to_epoch_ms(pull_request.updated_at),
            merged_time=iso_to_epoch_ms(pull_request.merged_at),
            closed_time=iso_to_epoch_ms(pull_request.closed_at),
            is_merged=bool(pull_request.merged_at),
            author_name=author.name or author.login,
            author_email=author.email,
            self_url=pull_request.html_url,
            source_repository=self.to_repository(pull_request, source=True),
            target_repository=self.to_repository(pull_request, source=False),
            commits=commits,
        )


class GitHubCloudFetchHandler(GitHubV3FetchHandler):
    """Handler for repositories hosted on github.com."""

    def api_base(self, coordinates: RepoCoordinates) -> str:  # noqa: ARG002
        return GITHUB_CLOUD_API


class GitHubServerFetchHandler(GitHubV3FetchHandler):
    """Handler for GitHub Enterprise Server, API under ``/api/v3``."""

    def api_base(self, coordinates: RepoCoordinates) -> str:
        authority = coordinates.host
        if coordinates.port is not None:
            authority = f"{authority}:{coordinates.port}"
        return f"{coordinates.scheme}://{authority}/api/v3"
