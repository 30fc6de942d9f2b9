"""Provider-native GitHub v3 entity shapes.

Only the fields the normalizer reads are declared; everything else in the
payload is ignored. Entities are immutable once decoded.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from pullfetch.scm.timestamps import iso_to_epoch_ms


class _Entity(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class UserReference(_Entity):
    """The ``user`` object embedded in a pull request."""

    login: str
    url: str


class User(_Entity):
    """A resolved user profile (``GET /users/{login}``)."""

    login: str
    name: str | None = None
    email: str | None = None


class Repository(_Entity):
    """The ``repo`` object of a head/base reference."""

    clone_url: str | None = None
    html_url: str | None = None
    full_name: str | None = None


class PullRequestRef(_Entity):
    """A head or base reference of a pull request."""

    ref: str
    sha: str | None = None
    label: str | None = None
    repo: Repository | None = None


class PullRequest(_Entity):
    """A pull request as returned by ``GET /repos/{owner}/{repo}/pulls``."""

    number: int
    title: str = ""
    body: str | None = None
    state: str
    created_at: str | None = None
    updated_at: str | None = None
    closed_at: str | None = None
    merged_at: str | None = None
    html_url: str | None = None
    head: PullRequestRef
    base: PullRequestRef
    user: UserReference
    commits_url: str

    @property
    def updated_time(self) -> int:
        """Last update time in epoch milliseconds (0 when absent)."""
        return iso_to_epoch_ms(self.updated_at) or 0

    @property
    def source_branch(self) -> str:
        return self.head.ref

    @property
    def target_branch(self) -> str:
        return self.base.ref

    @property
    def author_login(self) -> str:
        return self.user.login

    @property
    def author_locator(self) -> str:
        return self.user.url

    @property
    def commits_locator(self) -> str:
        return self.commits_url

    @property
    def self_locator(self) -> str | None:
        return self.html_url


class CommitPerson(_Entity):
    """Git author/committer identity inside a commit."""

    name: str | None = None
    email: str | None = None
    date: str | None = None


class CommitDetail(_Entity):
    """The ``commit`` object of a pull request commit."""

    message: str = ""
    author: CommitPerson | None = None
    committer: CommitPerson = Field(default_factory=CommitPerson)


class CommitParent(_Entity):
    """Reference to a parent revision."""

    sha: str


class Commit(_Entity):
    """A commit as returned by ``GET /repos/{owner}/{repo}/pulls/{n}/commits``."""

    sha: str
    commit: CommitDetail
    parents: list[CommitParent] = Field(default_factory=list)

    @property
    def updated_time(self) -> int:
        """Committer time in epoch milliseconds (0 when absent)."""
        return iso_to_epoch_ms(self.commit.committer.date) or 0
