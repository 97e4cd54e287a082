#!/usr/bin/env python3
"""
Command-line interface for the Soft Delete Toolkit.

Provides configuration, inspection and purge tools for soft-deletable tables.
"""

import importlib
import logging
import sys
from datetime import datetime
from typing import Any, Optional, Type

import click
import pandas as pd  # type: ignore[import-untyped]
from dateutil.relativedelta import relativedelta
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from . import __version__
from .config import get_config
from .soft_delete import FindOptions, SoftDeleteService, to_cutoff

console = Console()


def load_model(path: str) -> Type[Any]:
    """
    Import a mapped class from ``package.module:ClassName``.

    Raises:
        click.BadParameter: The path cannot be imported
    """
    module_name, _, class_name = path.partition(":")
    if not module_name or not class_name:
        raise click.BadParameter(
            f"'{path}' is not of the form package.module:ClassName", param_hint="MODEL"
        )

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise click.BadParameter(f"Cannot import {module_name}: {e}", param_hint="MODEL")

    model = getattr(module, class_name, None)
    if not isinstance(model, type):
        raise click.BadParameter(
            f"{module_name} has no class {class_name}", param_hint="MODEL"
        )
    return model


def open_session(database_url: Optional[str]) -> Session:
    """Session on ``database_url`` or the configured database."""
    url = database_url or get_config().database_url
    if not url:
        raise click.UsageError(
            "No database configured. Pass --database-url or set "
            "SOFTDELETE_DATABASE_URL."
        )
    return Session(create_engine(url))


def setup_logging(verbose: bool) -> None:
    """Send toolkit log records to the console at the configured level."""
    level = logging.DEBUG if verbose else get_config().log_level.value
    package_logger = logging.getLogger("softdelete_toolkit")
    package_logger.setLevel(level)

    if not any(isinstance(h, RichHandler) for h in package_logger.handlers):
        handler = RichHandler(console=console, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
        package_logger.addHandler(handler)


database_option = click.option(
    "--database-url",
    envvar="SOFTDELETE_DATABASE_URL",
    help="SQLAlchemy database URL",
)


@click.group(invoke_without_command=True)
@click.version_option(version=__version__)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Soft Delete Toolkit - recoverable deletions for SQLAlchemy models."""
    setup_logging(verbose)
    if ctx.invoked_subcommand is None:
        console.print(
            Panel.fit(
                f"[bold blue]Soft Delete Toolkit[/bold blue] v{__version__}\n"
                "[dim]Recoverable deletions for SQLAlchemy models[/dim]\n\n"
                "Use [bold]softdelete --help[/bold] to see available commands.",
                border_style="blue",
            )
        )


@cli.group()
def config() -> None:
    """Show and validate toolkit configuration."""
    pass


@config.command("show")
@click.option("--format", type=click.Choice(["table", "json", "yaml"]), default="table")
def config_show(format: str) -> None:
    """Display current configuration."""
    try:
        config_dict = get_config().to_dict()

        if format == "json":
            console.print_json(data=config_dict)
        elif format == "yaml":
            import yaml

            console.print(yaml.safe_dump(config_dict, default_flow_style=False))
        else:
            table = Table(title="Soft Delete Configuration", show_header=True)
            table.add_column("Setting", style="cyan")
            table.add_column("Value", style="green")

            for setting, value in config_dict.items():
                if value is None:
                    value = "[dim]Not configured[/dim]"
                elif isinstance(value, bool):
                    value = "✓" if value else "✗"
                table.add_row(setting, str(value))

            console.print(table)

    except Exception as e:
        console.print(f"[red]Error loading configuration: {e}[/red]")
        sys.exit(1)


@config.command("validate")
def config_validate() -> None:
    """Validate current configuration."""
    try:
        config = get_config()
        warnings = []

        if config.deleted_field == config.deleted_date_field:
            console.print(
                "[red]✗ deleted_field and deleted_date_field must differ[/red]"
            )
            sys.exit(1)

        if config.retention_days < 7:
            warnings.append(
                f"Retention of {config.retention_days} day(s) leaves little time "
                "to restore records"
            )
        if not config.database_url:
            warnings.append("No database_url configured; commands need --database-url")

        console.print("[green]✓ Configuration is valid[/green]")

        if warnings:
            console.print("\n[yellow]⚠ Warnings:[/yellow]")
            for warning in warnings:
                console.print(f"  [yellow]• {warning}[/yellow]")

    except Exception as e:
        console.print(f"[red]Error validating configuration: {e}[/red]")
        sys.exit(1)


@cli.command("status")
@click.argument("model_path", metavar="MODEL")
@database_option
def status(model_path: str, database_url: Optional[str]) -> None:
    """Show active and deleted record counts for MODEL."""
    model = load_model(model_path)

    try:
        with open_session(database_url) as session:
            service = SoftDeleteService(session, model)
            total = service.count(FindOptions(with_deleted=True))
            active = service.count()
    except (click.Abort, click.UsageError):
        raise
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    table = Table(title=f"{model.__name__} records")
    table.add_column("State", style="cyan")
    table.add_column("Count", style="green", justify="right")
    table.add_row("Active", str(active))
    table.add_row("Deleted", str(total - active))
    table.add_row("[bold]Total[/bold]", f"[bold]{total}[/bold]")
    console.print(table)


@cli.command("list-deleted")
@click.argument("model_path", metavar="MODEL")
@database_option
@click.option("--limit", type=int, default=100, help="Maximum results to return")
@click.option("--format", type=click.Choice(["table", "json", "csv"]), default="table")
def list_deleted(
    model_path: str, database_url: Optional[str], limit: int, format: str
) -> None:
    """List soft-deleted records of MODEL, most recent first."""
    model = load_model(model_path)

    try:
        with open_session(database_url) as session:
            service = SoftDeleteService(session, model)
            records = [record_to_dict(r) for r in service.find_deleted(limit=limit)]
    except (click.Abort, click.UsageError):
        raise
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    if not records:
        console.print(f"[yellow]No deleted {model.__name__} records[/yellow]")
        return

    if format == "json":
        console.print_json(data=records)
    elif format == "csv":
        click.echo(pd.DataFrame(records).to_csv(index=False), nl=False)
    else:
        table = Table(title=f"Deleted {model.__name__} records (showing {len(records)})")
        for column in records[0]:
            table.add_column(column)
        for record in records:
            table.add_row(*(str(value) for value in record.values()))
        console.print(table)


@cli.command("purge")
@click.argument("model_path", metavar="MODEL")
@database_option
@click.option("--before", help="Purge records deleted at or before this date")
@click.option(
    "--older-than",
    type=click.IntRange(min=0),
    help="Purge records deleted more than this many days ago",
)
@click.option("--dry-run", is_flag=True, help="Only count purgeable records")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
def purge(
    model_path: str,
    database_url: Optional[str],
    before: Optional[str],
    older_than: Optional[int],
    dry_run: bool,
    yes: bool,
) -> None:
    """Permanently remove soft-deleted MODEL records past retention."""
    if before and older_than is not None:
        raise click.UsageError("Use either --before or --older-than, not both")

    model = load_model(model_path)
    config = get_config()

    try:
        cutoff = resolve_cutoff(before, older_than, config.retention_days)
    except (ValueError, OverflowError) as e:
        console.print(f"[red]Error: invalid --before value: {e}[/red]")
        sys.exit(1)

    try:
        with open_session(database_url) as session:
            service = SoftDeleteService(session, model)
            eligible = service.count_purgeable(cutoff)

            if dry_run:
                console.print(
                    f"{eligible} {model.__name__} record(s) deleted before "
                    f"{cutoff:%Y-%m-%d %H:%M:%S} would be purged"
                )
                return

            if eligible == 0:
                console.print("[yellow]Nothing to purge[/yellow]")
                return

            if not yes:
                click.confirm(
                    f"Permanently remove {eligible} {model.__name__} record(s)?",
                    abort=True,
                )

            purged = service.hard_delete_all(cutoff)
            session.commit()
    except (click.Abort, click.UsageError):
        raise
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    console.print(f"[green]✓[/green] Purged {purged} {model.__name__} record(s)")


def resolve_cutoff(
    before: Optional[str], older_than: Optional[int], retention_days: int
) -> datetime:
    """Purge boundary from the command line options."""
    if before:
        return to_cutoff(before, get_config())
    days = retention_days if older_than is None else older_than
    return get_config().now() - relativedelta(days=days)


def record_to_dict(record: Any) -> dict:
    if hasattr(record, "to_dict"):
        return record.to_dict()
    result = {}
    for column in record.__table__.columns:
        value = getattr(record, column.key)
        if hasattr(value, "isoformat"):
            value = value.isoformat()
        result[column.key] = value
    return result


if __name__ == "__main__":
    cli()
