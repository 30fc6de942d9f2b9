"""Branch name filtering for pull request source/target refs.

A filter spec is a list of patterns separated by commas, pipes or
whitespace. Each pattern is a glob (``feature/*``, ``release-?``) unless
it carries the ``regex:`` prefix, in which case the rest is a regular
expression. Patterns must match the whole branch short name.
"""

from __future__ import annotations

import fnmatch
import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

REGEX_PREFIX = "regex:"
REF_PREFIX = "refs/heads/"

_SEPARATORS = re.compile(r"[,|\s]+")


def short_branch_name(ref: str) -> str:
    """Strip the ``refs/heads/`` prefix from a ref, if present."""
    if ref.startswith(REF_PREFIX):
        return ref[len(REF_PREFIX) :]
    return ref


def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a single glob or ``regex:`` pattern.

    Raises:
        ValueError: If a ``regex:`` pattern is not a valid regular expression.
    """
    if pattern.startswith(REGEX_PREFIX):
        expression = pattern[len(REGEX_PREFIX) :]
        try:
            return re.compile(expression)
        except re.error as e:
            msg = f"Invalid branch regex '{expression}': {e}"
            raise ValueError(msg) from e
    return re.compile(fnmatch.translate(short_branch_name(pattern)))


def compile_patterns(filter_spec: str | Iterable[str] | None) -> frozenset[re.Pattern[str]]:
    """Compile a branch filter spec into a set of patterns.

    Args:
        filter_spec: Separator-delimited string, an iterable of patterns,
            or None.

    Returns:
        Compiled patterns; empty when the spec is empty or absent.
    """
    if not filter_spec:
        return frozenset()

    if isinstance(filter_spec, str):
        raw = _SEPARATORS.split(filter_spec)
    else:
        raw = [item.strip() for item in filter_spec]

    return frozenset(compile_pattern(item) for item in raw if item)


def matches(patterns: Iterable[re.Pattern[str]], branch_name: str) -> bool:
    """Check whether a branch matches any of the patterns.

    An empty pattern set matches every branch.
    """
    candidates = list(patterns)
    if not candidates:
        return True

    name = short_branch_name(branch_name)
    return any(pattern.fullmatch(name) for pattern in candidates)
