"""
Command-line interface for schemasync.
"""

import asyncio
import logging
import signal
import sys
from contextlib import contextmanager
from functools import wraps
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Tuple

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .config import DatabaseConnection, SchemaSyncConfig, SourceConfig, SyncSettings
from .diagnostics import create_default_classifier
from .exceptions import ConfigurationError, SyncError
from .logging_setup import setup_logging
from .repositories import InMemorySchemaRepository, RepositoryFactory
from .schema import (
    CancellationToken,
    DifferenceKind,
    ObjectKind,
    SchemaComparisonService,
    SchemaDifference,
    SchemaDifferenceResult,
    SchemaReconciler,
    SyncPolicy,
    SyncProgress,
    SyncResult,
    SyncStatus,
)


console = Console()
logger = logging.getLogger(__name__)

DIFFERENCE_STYLES = {
    DifferenceKind.ONLY_IN_SOURCE: ("create", "green"),
    DifferenceKind.MODIFIED: ("alter", "yellow"),
    DifferenceKind.ONLY_IN_TARGET: ("delete", "red"),
}


def handle_errors(func):
    """Decorator to report errors through the diagnostic classifier."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (click.ClickException, click.exceptions.Abort, click.exceptions.Exit):
            raise
        except KeyboardInterrupt:
            console.print("\n[yellow]Interrupted by user[/yellow]")
            sys.exit(130)
        except Exception as e:
            diagnosis = create_default_classifier().diagnose(e)
            console.print(f"[red]Error:[/red] {escape(diagnosis.message)}")
            if isinstance(e, SyncError) and e.difference is not None:
                console.print(
                    f"Applied {e.applied} change(s), stopped at "
                    f"{e.difference.object.qualified_name}; {len(e.remaining)} not applied"
                )
            if "--debug" in sys.argv:
                console.print(f"[dim]{type(e).__name__}: {escape(str(e))}[/dim]")
                import traceback
                traceback.print_exc()
            sys.exit(1)
    return wrapper


@click.group()
@click.version_option(__version__)
@click.option(
    "--debug", is_flag=True, help="Enable debug mode"
)
@click.pass_context
def main(ctx, debug):
    """schemasync: compare and reconcile database schemas."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@main.command()
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    default="schemasync.yaml",
    help="Output configuration file path",
)
@handle_errors
def init(output: str):
    """Initialize a new schemasync configuration file."""
    if Path(output).exists():
        if not click.confirm(f"Configuration file {output} already exists. Overwrite?"):
            return

    config = _create_default_config()
    config.to_yaml(output)
    console.print(f"[green]✓[/green] Configuration file created: {output}")
    console.print("\n[yellow]Next steps:[/yellow]")
    console.print("1. Point 'source' at your schema folder and 'target' at your database")
    console.print("2. Run: schemasync validate-config -c " + output)
    console.print("3. Run: schemasync compare -c " + output)


@main.command()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    required=True,
    help="Configuration file path",
)
@handle_errors
def validate_config(config: str):
    """Validate configuration file."""
    console.print(f"Validating configuration: {config}")

    try:
        sync_config = SchemaSyncConfig.from_yaml(config)
        sync_config.validate_config()

        console.print("[green]✓[/green] Configuration is valid")

        _display_config_summary(sync_config)

    except ConfigurationError as e:
        console.print(f"[red]✗[/red] Configuration error: {escape(str(e))}")
        sys.exit(1)


@main.command()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    required=True,
    help="Configuration file path",
)
@click.option(
    "--kind",
    type=click.Choice([k.value for k in ObjectKind]),
    help="Only show differences of this object kind",
)
@click.pass_context
@handle_errors
def compare(ctx, config: str, kind: Optional[str]):
    """Show the differences between source and target."""
    sync_config = _load_config(config, ctx.obj.get("debug", False))

    result = asyncio.run(_compare(sync_config))
    differences = select_differences(result, kind=kind)

    if not differences:
        console.print("[green]✓[/green] Source and target are in sync")
        return

    _display_differences(differences, sync_config.sync.allow_delete)


@main.command()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    required=True,
    help="Configuration file path",
)
@click.option(
    "--allow-delete/--no-allow-delete",
    default=None,
    help="Delete objects that only exist in the target (overrides config)",
)
@click.option(
    "--continue-on-error",
    is_flag=True,
    help="Keep applying changes after a failure",
)
@click.option(
    "--only",
    multiple=True,
    help="Only synchronize the named object (repeatable)",
)
@click.option(
    "--kind",
    type=click.Choice([k.value for k in ObjectKind]),
    help="Only synchronize objects of this kind",
)
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.option(
    "--dry-run",
    is_flag=True,
    help="Apply changes to an in-memory copy of the target instead",
)
@click.pass_context
@handle_errors
def sync(
    ctx,
    config: str,
    allow_delete: Optional[bool],
    continue_on_error: bool,
    only: Tuple[str, ...],
    kind: Optional[str],
    yes: bool,
    dry_run: bool,
):
    """Apply source changes to the target."""
    sync_config = _load_config(config, ctx.obj.get("debug", False))
    if continue_on_error:
        sync_config.sync.continue_on_error = True
    policy = sync_config.sync.to_policy(allow_delete=allow_delete)

    def confirm(differences: List[SchemaDifference]) -> bool:
        _display_differences(differences, policy.allow_delete)
        destructive = [d for d in differences if d.is_destructive]
        if dry_run or yes or not (policy.allow_delete and destructive):
            return True
        if not sync_config.sync.drop_warning:
            return True
        return click.confirm(
            f"{len(destructive)} object(s) will be deleted from the target. Continue?"
        )

    result = asyncio.run(
        _sync(sync_config, policy, list(only), kind, dry_run, confirm)
    )

    if result is None:
        console.print("[yellow]Synchronization aborted[/yellow]")
        return

    _display_result(result, dry_run)
    if not result.success:
        sys.exit(1)


def select_differences(
    result: SchemaDifferenceResult,
    only: Sequence[str] = (),
    kind: Optional[str] = None,
) -> List[SchemaDifference]:
    """Pick differences by object name and kind, keeping their order."""
    selected = []
    names = set(only)
    for difference in result.all_differences:
        if kind and difference.object_kind.value != kind:
            continue
        if names and difference.name not in names:
            continue
        selected.append(difference)
    return selected


def _load_config(path: str, debug: bool) -> SchemaSyncConfig:
    sync_config = SchemaSyncConfig.from_yaml(path)
    sync_config.validate_config()
    setup_logging(sync_config.logging, debug=debug or sync_config.debug)
    return sync_config


def _progress_logger(progress: SyncProgress) -> None:
    logger.debug(f"[{progress.stage.value}] {progress.message} ({progress.percent_complete}%)")


async def _compare(sync_config: SchemaSyncConfig) -> SchemaDifferenceResult:
    async with RepositoryFactory.create(sync_config.source) as source:
        async with RepositoryFactory.create(sync_config.target) as target:
            return await SchemaComparisonService().compare_repositories(
                source, target, _progress_logger
            )


async def _sync(
    sync_config: SchemaSyncConfig,
    policy: SyncPolicy,
    only: List[str],
    kind: Optional[str],
    dry_run: bool,
    confirm,
) -> Optional[SyncResult]:
    async with RepositoryFactory.create(sync_config.source) as source:
        async with RepositoryFactory.create(sync_config.target) as target:
            comparison = SchemaComparisonService()
            result = await comparison.compare_repositories(source, target, _progress_logger)
            differences = select_differences(result, only, kind)

            if not differences:
                console.print("[green]✓[/green] Nothing to synchronize")
                return SyncResult(status=SyncStatus.SUCCESS, total=0)

            if not confirm(differences):
                return None

            writer = target
            if dry_run:
                writer = InMemorySchemaRepository.from_snapshot(await target.get_snapshot())

            cancellation = CancellationToken()
            with _cancel_on_interrupt(cancellation):
                return await SchemaReconciler(writer).apply(
                    differences,
                    policy=policy,
                    cancellation=cancellation,
                    progress=_progress_logger,
                )


@contextmanager
def _cancel_on_interrupt(cancellation: CancellationToken) -> Iterator[None]:
    """Turn Ctrl+C into a cooperative cancellation while changes are applied."""
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancellation.cancel)
    except (NotImplementedError, RuntimeError):
        # Not available on this platform; Ctrl+C interrupts immediately
        logger.debug("Cooperative cancellation is not available on this platform")
        yield
        return

    try:
        yield
    finally:
        loop.remove_signal_handler(signal.SIGINT)


def _create_default_config() -> SchemaSyncConfig:
    """Create a default configuration with examples."""
    return SchemaSyncConfig(
        source=SourceConfig(type="files", path="./schema"),
        target=SourceConfig(
            type="postgres",
            connection=DatabaseConnection(
                host="localhost",
                port=5432,
                database="app",
                user="postgres",
                password="${PGPASSWORD}",
            ),
            db_schema="public",
        ),
        sync=SyncSettings(),
    )


def _display_config_summary(config: SchemaSyncConfig):
    """Display a summary of the configuration."""
    console.print("\n[blue]Configuration Summary[/blue]")

    repo_table = Table(title="Repositories")
    repo_table.add_column("Role", style="cyan")
    repo_table.add_column("Type", style="magenta")
    repo_table.add_column("Location", style="green")

    repo_table.add_row("source", config.source.type, config.source.description)
    repo_table.add_row("target", config.target.type, config.target.description)
    console.print(repo_table)

    policy_table = Table(title="Sync Policy")
    policy_table.add_column("Setting", style="cyan")
    policy_table.add_column("Value", style="yellow")

    for name, value in config.sync.model_dump(mode="json").items():
        policy_table.add_row(name, str(value))
    console.print(policy_table)


def _display_differences(differences: Sequence[SchemaDifference], allow_delete: bool):
    table = Table(title=f"Differences ({len(differences)})")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Kind", style="cyan")
    table.add_column("Object", style="magenta")
    table.add_column("Action")

    for index, difference in enumerate(differences, 1):
        action, style = DIFFERENCE_STYLES[difference.kind]
        if difference.is_destructive and not allow_delete:
            action, style = "delete (skipped)", "dim"
        table.add_row(
            str(index),
            difference.object_kind.value,
            difference.name,
            f"[{style}]{action}[/{style}]",
        )

    console.print(table)


def _display_result(result: SyncResult, dry_run: bool):
    prefix = "[dim](dry run)[/dim] " if dry_run else ""
    if result.success:
        console.print(
            f"{prefix}[green]✓[/green] Synchronized {result.items_synchronized} of "
            f"{result.total} object(s), {len(result.skipped)} skipped "
            f"({result.execution_time_ms:.0f}ms)"
        )
        return

    console.print(
        f"{prefix}[yellow]Synchronization {result.status.value}[/yellow]: "
        f"{result.items_synchronized} applied, {len(result.skipped)} skipped, "
        f"{len(result.failures)} failed"
    )
    classifier = create_default_classifier()
    for failure in result.failures:
        diagnosis = classifier.diagnose(failure.error)
        console.print(
            f"  [red]✗[/red] {failure.difference.object.qualified_name}: "
            f"{escape(diagnosis.message)} [dim]({diagnosis.category.value})[/dim]"
        )


if __name__ == "__main__":
    main()
