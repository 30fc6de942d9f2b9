"""Pydantic schema models for configuration.

- Config: Top-level configuration container
- ProviderConfig: Which SCM provider to talk to and how to authenticate
- FetchParameters: Bounds and branch filters of one pull request fetch
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from pullfetch.scm.timestamps import epoch_ms_to_iso, iso_to_epoch_ms

DEFAULT_PAGE_SIZE = 30
DEFAULT_MAX_PRS = 100
DEFAULT_MAX_COMMITS = 100


class ProviderType(str, Enum):
    """SCM provider that serves the repository."""

    AUTO = "auto"
    GITHUB_CLOUD = "github_cloud"
    GITHUB_SERVER = "github_server"


class ProviderConfig(BaseModel):
    """SCM provider connection settings.

    Attributes:
        type: Provider type, or 'auto' to detect it from the repository URL
        token: Access token or env var reference (${VAR})
        username: Username for basic authentication
        password: Password or app password for basic authentication
        base_url: API root replacing the one derived from the repository host
        max_retries: Transport-level attempts per request (1-10, default: 4)
        timeout: Per-request timeout in seconds (default: 30)
    """

    model_config = ConfigDict(extra="forbid")

    type: ProviderType = ProviderType.AUTO
    token: str | None = None
    username: str | None = None
    password: str | None = None
    base_url: str | None = None
    max_retries: Annotated[int, Field(ge=1, le=10)] = 4
    timeout: Annotated[float, Field(gt=0)] = 30.0

    @model_validator(mode="after")
    def validate_credentials(self) -> ProviderConfig:
        """Ensure at most one credential kind is configured."""
        if self.token and (self.username or self.password):
            msg = "Configure either 'token' or 'username'/'password', not both"
            raise ValueError(msg)
        if bool(self.username) != bool(self.password):
            msg = "'username' and 'password' must be configured together"
            raise ValueError(msg)
        return self


class FetchParameters(BaseModel):
    """Bounds and filters of one pull request fetch.

    Attributes:
        repo_url: Clone or web URL of the repository
        page_size: Entities requested per page (1-100, default: 30)
        max_prs_to_fetch: Maximum pull requests returned (default: 100)
        max_commits_to_fetch: Maximum commits per pull request (default: 100)
        min_update_time: Exclusive update-time cutoff in epoch milliseconds;
                         an ISO-8601 string is accepted too (0 disables it)
        source_branch_filter: Patterns the head branch must match
        target_branch_filter: Patterns the base branch must match
        timeout_seconds: Deadline for the whole fetch (default: none)
        log_consumer: Callback receiving progress messages
    """

    model_config = ConfigDict(extra="forbid")

    repo_url: str | None = None
    page_size: Annotated[int, Field(ge=1, le=100)] = DEFAULT_PAGE_SIZE
    max_prs_to_fetch: Annotated[int, Field(ge=1)] = DEFAULT_MAX_PRS
    max_commits_to_fetch: Annotated[int, Field(ge=1)] = DEFAULT_MAX_COMMITS
    min_update_time: Annotated[int, Field(ge=0)] = 0
    source_branch_filter: str | None = None
    target_branch_filter: str | None = None
    timeout_seconds: Annotated[float, Field(gt=0)] | None = None
    log_consumer: Callable[[str], None] | None = Field(default=None, exclude=True)

    @field_validator("min_update_time", mode="before")
    @classmethod
    def parse_min_update_time(cls, v: Any) -> Any:
        """Accept epoch milliseconds, an ISO-8601 string or a datetime."""
        if v is None:
            return 0
        if isinstance(v, datetime):
            return int(v.timestamp()) * 1000
        if isinstance(v, str) and not v.strip().isdigit():
            try:
                return iso_to_epoch_ms(v.strip()) or 0
            except ValueError as e:
                msg = f"min_update_time must be epoch milliseconds or ISO-8601: {e}"
                raise ValueError(msg) from e
        return v

    def describe(self) -> list[str]:
        """Human-readable parameter lines for the progress log."""
        lines = [
            f"Page size : {self.page_size}",
            f"Max pull requests to fetch : {self.max_prs_to_fetch}",
            f"Max commits to fetch : {self.max_commits_to_fetch}",
        ]
        if self.min_update_time > 0:
            lines.append(
                f"Min update time : {self.min_update_time} "
                f"({epoch_ms_to_iso(self.min_update_time)})"
            )
        if self.source_branch_filter:
            lines.append(f"Source branch filter : {self.source_branch_filter}")
        if self.target_branch_filter:
            lines.append(f"Target branch filter : {self.target_branch_filter}")
        return lines


class Config(BaseModel):
    """Top-level configuration loaded from YAML.

    Attributes:
        version: Schema version (must be 1)
        provider: SCM provider settings
        fetch: Default fetch parameters
    """

    model_config = ConfigDict(extra="forbid")

    version: Literal[1]
    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    fetch: FetchParameters = Field(default_factory=FetchParameters)
