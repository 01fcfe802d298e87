"""Click CLI entry point for mailbatch."""

import sys
from pathlib import Path

import click

from mailbatch.engine.errors import BatchError


@click.group()
def cli() -> None:
    """mailbatch: grouped label, move and flag updates for Fastmail."""


@cli.command()
@click.argument("plan", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--dry-run", is_flag=True, default=False, help="Print and log the calls without sending them")
def apply(plan: Path, dry_run: bool) -> None:
    """Apply the action plan in PLAN."""
    from mailbatch.__main__ import main

    try:
        report = main(plan, dry_run=dry_run)
    except BatchError as exc:
        click.echo(f"Error: {exc}", err=True)
        if exc.__cause__ is not None:
            click.echo(f"  caused by: {exc.__cause__}", err=True)
        sys.exit(1)

    verb = "Would apply" if dry_run else "Applied"
    click.echo(f"{verb} {report.calls} calls to {report.records} {report.kind}(s)")
