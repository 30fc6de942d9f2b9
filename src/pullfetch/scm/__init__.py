"""SCM REST transport, pagination and normalization primitives.

Provider handlers live in ``pullfetch.scm.providers``.
"""

from pullfetch.scm.auth import (
    AuthenticationError,
    AuthenticationStrategy,
    BasicAuthentication,
    NoAuthentication,
    TokenAuthentication,
)
from pullfetch.scm.client import ApiError, RateLimitError, RestClient, TransientError
from pullfetch.scm.errors import (
    ConnectivityError,
    FetchError,
    PullFetchError,
    ResolutionError,
)
from pullfetch.scm.normalized import (
    UNKNOWN_REPOSITORY,
    NormalizedCommit,
    NormalizedPullRequest,
    RepositoryDescriptor,
    ScmType,
)
from pullfetch.scm.walker import FetchBounds, PagingState, fetch_paged

__all__ = [
    "UNKNOWN_REPOSITORY",
    "ApiError",
    "AuthenticationError",
    "AuthenticationStrategy",
    "BasicAuthentication",
    "ConnectivityError",
    "FetchBounds",
    "FetchError",
    "NoAuthentication",
    "NormalizedCommit",
    "NormalizedPullRequest",
    "PagingState",
    "PullFetchError",
    "RateLimitError",
    "RepositoryDescriptor",
    "ResolutionError",
    "RestClient",
    "ScmType",
    "TokenAuthentication",
    "TransientError",
    "fetch_paged",
]
