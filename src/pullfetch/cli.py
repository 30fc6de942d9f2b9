"""CLI entry point for pullfetch.

This module provides the Typer-based CLI with commands:
- pullfetch fetch: Fetch and normalize pull requests of a repository
- pullfetch validate: Validate configuration

Exit codes:
- 0: Success
- 1: Configuration error
- 2: Authentication error
- 3: Connectivity error
- 4: Fetch error
"""

from __future__ import annotations

import asyncio
import json
from enum import IntEnum
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any

import typer
from pydantic import ValidationError

from pullfetch import __version__
from pullfetch.config import (
    ConfigError,
    ProviderType,
    fetch_parameters_for,
    load_config,
    load_config_or_default,
    provider_for,
)
from pullfetch.fetch import fetch_pull_requests
from pullfetch.logging import configure_logging, get_logger
from pullfetch.scm.auth import AuthenticationError
from pullfetch.scm.errors import ConnectivityError, PullFetchError

if TYPE_CHECKING:
    from pullfetch.scm.normalized import NormalizedPullRequest


class ExitCode(IntEnum):
    """CLI exit codes."""

    SUCCESS = 0
    CONFIG_ERROR = 1
    AUTH_ERROR = 2
    CONNECTIVITY_ERROR = 3
    FETCH_ERROR = 4


app = typer.Typer(
    name="pullfetch",
    help="Fetch pull requests and commits from SCM hosting APIs.",
    add_completion=False,
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"pullfetch {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """pullfetch - pull request fetch and normalization."""


def _fail(message: str, code: ExitCode) -> typer.Exit:
    typer.echo(typer.style(f"✗ {message}", fg=typer.colors.RED), err=True)
    return typer.Exit(code)


def _caused_by(error: BaseException, kind: type[BaseException]) -> bool:
    current: BaseException | None = error
    while current is not None:
        if isinstance(current, kind):
            return True
        current = current.__cause__
    return False


def _to_json(pull_requests: list[NormalizedPullRequest]) -> str:
    payload = [pr.model_dump(mode="json", by_alias=True) for pr in pull_requests]
    return json.dumps(payload, indent=2, ensure_ascii=False)


@app.command()
def validate(
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output.",
        ),
    ] = False,
) -> None:
    """Validate configuration without fetching.

    Exits with code 0 if valid, or code 1 if there are errors.
    """
    configure_logging(verbose=verbose, json_output=False)

    try:
        cfg = load_config(config)
    except ConfigError as e:
        raise _fail(str(e), ExitCode.CONFIG_ERROR) from e

    typer.echo(typer.style("✓ Configuration is valid", fg=typer.colors.GREEN))
    if verbose:
        typer.echo("\nConfiguration summary:")
        typer.echo(f"  Provider: {cfg.provider.type.value}")
        for line in cfg.fetch.describe():
            typer.echo(f"  {line}")
    raise typer.Exit(ExitCode.SUCCESS)


@app.command()
def fetch(  # noqa: PLR0913
    repo_url: Annotated[str, typer.Argument(help="Repository clone or web URL.")],
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to configuration file."),
    ] = None,
    provider: Annotated[
        ProviderType | None,
        typer.Option("--provider", help="SCM provider (default: from config or auto)."),
    ] = None,
    page_size: Annotated[
        int | None,
        typer.Option("--page-size", help="Entities per page (1-100).", min=1, max=100),
    ] = None,
    max_prs: Annotated[
        int | None,
        typer.Option("--max-prs", help="Maximum pull requests to fetch.", min=1),
    ] = None,
    max_commits: Annotated[
        int | None,
        typer.Option("--max-commits", help="Maximum commits per pull request.", min=1),
    ] = None,
    since: Annotated[
        str | None,
        typer.Option(
            "--since",
            help="Only entities updated after this time (ISO-8601 or epoch ms).",
        ),
    ] = None,
    source_branch: Annotated[
        str | None,
        typer.Option("--source-branch", help="Source branch filter patterns."),
    ] = None,
    target_branch: Annotated[
        str | None,
        typer.Option("--target-branch", help="Target branch filter patterns."),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write JSON to this file instead of stdout."),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging."),
    ] = False,
) -> None:
    """Fetch pull requests of a repository and print them as JSON."""
    configure_logging(verbose=verbose)
    log = get_logger("pullfetch.cli")

    try:
        cfg = load_config_or_default(config)
    except ConfigError as e:
        raise _fail(f"Configuration error: {e}", ExitCode.CONFIG_ERROR) from e

    overrides: dict[str, Any] = {
        "page_size": page_size,
        "max_prs_to_fetch": max_prs,
        "max_commits_to_fetch": max_commits,
        "min_update_time": since,
        "source_branch_filter": source_branch,
        "target_branch_filter": target_branch,
    }
    try:
        parameters = fetch_parameters_for(
            cfg,
            repo_url,
            overrides=overrides,
            log_consumer=lambda message: log.info("progress", message=message),
        )
    except ValidationError as e:
        raise _fail(f"Invalid fetch parameters: {e}", ExitCode.CONFIG_ERROR) from e

    provider_cfg = provider_for(cfg, provider)

    try:
        pull_requests = asyncio.run(fetch_pull_requests(parameters, provider_cfg))
    except ValueError as e:
        raise _fail(str(e), ExitCode.CONFIG_ERROR) from e
    except AuthenticationError as e:
        raise _fail(f"Authentication error: {e}", ExitCode.AUTH_ERROR) from e
    except PullFetchError as e:
        log.error("fetch_failed", error=str(e))
        if _caused_by(e, AuthenticationError):
            raise _fail(f"Authentication error: {e}", ExitCode.AUTH_ERROR) from e
        if isinstance(e, ConnectivityError):
            raise _fail(f"Connectivity error: {e}", ExitCode.CONNECTIVITY_ERROR) from e
        raise _fail(f"Fetch error: {e}", ExitCode.FETCH_ERROR) from e

    rendered = _to_json(pull_requests)
    if output is not None:
        output.write_text(rendered + "\n", encoding="utf-8")
        typer.echo(f"Wrote {len(pull_requests)} pull request(s) to {output}", err=True)
    else:
        typer.echo(rendered)
    raise typer.Exit(ExitCode.SUCCESS)
