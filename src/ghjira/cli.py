"""CLI interface for ghjira."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from ghjira import __version__
from ghjira.config import ConfigError, LabelMappings, SyncConfig
from ghjira.sync.bulk import BulkSummary, BulkSyncDriver
from ghjira.sync.github_client import GitHubClient, GitHubClientError
from ghjira.sync.github_sync import IssueSyncError, IssueSynchronizer, SyncOutcome
from ghjira.sync.jira_client import JiraClient

app = typer.Typer(
    name="ghjira",
    help="Mirror GitHub issues into Jira, using a jira:<KEY> label as the sync record.",
    no_args_is_help=True,
)
console = Console()

EXIT_FAILED = 1
EXIT_CONFIG = 2


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, markup=False)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _display_header(config: SyncConfig) -> None:
    table = Table(title="🚀 gh-issue-jira-sync", show_header=False, box=None)
    table.add_column(style="bold")
    table.add_column()
    table.add_row("Repo", config.repo)
    table.add_row("Jira project", config.project_key)
    table.add_row("Jira URL", config.jira_url)
    table.add_row("Mode", "bulk" if config.bulk else f"issue #{config.issue_number}")
    table.add_row("Dry run", str(config.dry_run))
    table.add_row("Close after", str(config.close_after_sync))
    console.print(table)
    console.print()


def _display_summary(summary: BulkSummary) -> None:
    table = Table(title="📊 Bulk sync complete")
    table.add_column("Synced", style="green", justify="right")
    table.add_column("Skipped", style="yellow", justify="right")
    table.add_column("Failed", style="red", justify="right")
    table.add_row(str(summary.synced), str(summary.skipped), str(summary.failed))
    console.print()
    console.print(table)

    for outcome in summary.outcomes:
        if outcome.error:
            console.print(f"  [red]#{outcome.issue_number}[/red] {escape(outcome.error)}")


@asynccontextmanager
async def _open_clients(config: SyncConfig) -> AsyncIterator[tuple[GitHubClient, JiraClient]]:
    github = GitHubClient(repo=config.repo, token=config.github_token, dry_run=config.dry_run)
    jira = JiraClient(
        base_url=config.jira_url,
        email=config.jira_email,
        token=config.jira_token,
        dry_run=config.dry_run,
    )
    async with github, jira:
        yield github, jira


async def run_single(config: SyncConfig) -> SyncOutcome:
    """Sync the configured issue. Raises IssueSyncError on failure."""
    assert config.issue_number is not None
    async with _open_clients(config) as (github, jira):
        synchronizer = IssueSynchronizer(config, github, jira)
        return await synchronizer.sync_issue(config.issue_number)


async def run_bulk(config: SyncConfig) -> BulkSummary:
    """Sync every open, unsynced issue in the configured repository."""
    async with _open_clients(config) as (github, jira):
        driver = BulkSyncDriver(
            github,
            IssueSynchronizer(config, github, jira),
            page_size=config.page_size,
            courtesy_delay=config.courtesy_delay,
        )
        return await driver.sync_all_unsynced()


@app.command()
def sync(
    issue: Annotated[
        int | None,
        typer.Option("--issue", "-i", help="Issue number to sync (overrides GH_ISSUE_NUMBER)"),
    ] = None,
    bulk: Annotated[
        bool,
        typer.Option("--bulk", help="Sync all open issues without a jira: label (or BULK_SYNC=true)"),
    ] = False,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", "-n", help="Log every write instead of executing it (or DRY_RUN=true)"),
    ] = False,
    no_close: Annotated[
        bool,
        typer.Option("--no-close", help="Leave GitHub issues open after syncing (or CLOSE_AFTER_SYNC=false)"),
    ] = False,
    mappings: Annotated[
        Path | None,
        typer.Option(
            "--mappings",
            help="YAML file with priority/issue_types label tables",
            exists=True,
            file_okay=True,
            dir_okay=False,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Debug logging"),
    ] = False,
) -> None:
    """Sync one GitHub issue, or all open unsynced issues, into Jira."""
    _configure_logging(verbose)

    try:
        config = SyncConfig.from_env(
            os.environ,
            issue_number=issue,
            bulk=True if bulk else None,
            dry_run=True if dry_run else None,
            close_after_sync=False if no_close else None,
            mappings=LabelMappings.load(mappings) if mappings else None,
        )
    except ConfigError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {escape(str(e))}")
        raise typer.Exit(EXIT_CONFIG) from e

    _display_header(config)

    if config.bulk:
        try:
            summary = asyncio.run(run_bulk(config))
        except GitHubClientError as e:
            console.print(f"\n[bold red]Bulk sync aborted: {escape(str(e))}[/bold red]")
            raise typer.Exit(EXIT_FAILED) from e
        _display_summary(summary)
        if summary.failed > 0:
            raise typer.Exit(EXIT_FAILED)
        return

    try:
        outcome = asyncio.run(run_single(config))
    except IssueSyncError as e:
        console.print(f"\n[bold red]Sync failed: {escape(str(e))}[/bold red]")
        raise typer.Exit(EXIT_FAILED) from e

    reason = f" ({outcome.reason.value})" if outcome.reason else ""
    console.print(f"\n[green]#{outcome.issue_number}: {outcome.status.value}{reason}[/green] {outcome.jira_key or ''}")


@app.command()
def version() -> None:
    """Show the ghjira version."""
    console.print(f"ghjira {__version__}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
