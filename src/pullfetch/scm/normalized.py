"""Provider-agnostic pull request and commit models.

These are the records handed to the CI/ALM integration. Field names
serialize in camelCase (``model_dump(by_alias=True)``).
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

UNKNOWN_REPOSITORY = "unknown repository"


class ScmType(str, Enum):
    """Source-control system of a repository."""

    GIT = "git"


class _Normalized(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class RepositoryDescriptor(_Normalized):
    """One side (source or target) of a pull request."""

    url: str = UNKNOWN_REPOSITORY
    branch: str
    type: ScmType = ScmType.GIT


class NormalizedCommit(_Normalized):
    """A commit of a pull request."""

    rev_id: str
    message: str
    author_name: str | None = None
    author_email: str | None = None
    time: int | None = Field(default=None, description="Epoch milliseconds")
    parent_rev_id: str | None = None


class NormalizedPullRequest(_Normalized):
    """A pull request with its commits, newest first."""

    id: str
    title: str
    description: str | None = None
    state: str
    created_time: int | None = None
    updated_time: int | None = None
    merged_time: int | None = None
    closed_time: int | None = None
    is_merged: bool = False
    author_name: str | None = None
    author_email: str | None = None
    self_url: str | None = None
    source_repository: RepositoryDescriptor
    target_repository: RepositoryDescriptor
    commits: list[NormalizedCommit] = Field(default_factory=list)
