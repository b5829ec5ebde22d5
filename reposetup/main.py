"""
reposetup — CLI entrypoint.

Usage:
    reposetup              # register the vendor repository
    reposetup install      # ...and install the product packages
    python -m reposetup install

Configured through DOWNLOAD_URL, SETUP_URL, CHANNEL, DRY_RUN and
REPOSETUP_* environment variables (see core/config/loader.py).
"""

from __future__ import annotations

import logging

import click

from reposetup.core.config.loader import load_settings
from reposetup.core.engine.executor import ExecutionReport
from reposetup.core.errors import (
    ConfigError,
    PrivilegeUnavailable,
    UnsupportedDistribution,
)
from reposetup.core.models.settings import Settings
from reposetup.core.observability.logging_config import setup_logging
from reposetup.core.services import distro, elevation, provisioning

logger = logging.getLogger(__name__)

INSTALL_ARGUMENT = "install"


def _parse_arguments(args: tuple[str, ...]) -> bool:
    """Return whether ``install`` was requested; warn about anything else."""
    install = False
    for arg in args:
        if arg == INSTALL_ARGUMENT:
            install = True
        else:
            click.secho(f"WARNING: Unknown argument '{arg}' ignored", fg="yellow", err=True)
    return install


def _print_report(report: ExecutionReport, settings: Settings) -> None:
    if settings.dry_run:
        click.echo("# DRY_RUN: the following commands would run")
        for receipt in report.receipts:
            if receipt.status == "skipped":
                click.echo(f"+ {receipt.output}")

    failure = report.first_failure
    if failure is not None:
        command = failure.metadata.get("command", failure.action_id)
        click.secho(f"ERROR: '{command}' failed: {failure.error}", fg="red", err=True)
        if report.not_run:
            click.secho(
                f"{report.not_run} remaining step(s) not run; the host may be "
                "partially configured.",
                fg="yellow",
                err=True,
            )


@click.command(
    context_settings={
        "help_option_names": [],
        "ignore_unknown_options": True,
    }
)
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def cli(ctx: click.Context, args: tuple[str, ...]) -> None:
    """Register the vendor package repository, optionally installing packages."""
    try:
        settings = load_settings()
    except ConfigError as e:
        click.secho(f"ERROR: {e}", fg="red", err=True)
        ctx.exit(1)

    setup_logging(
        level=settings.log_level,
        log_file=settings.log_file,
        log_file_level=settings.log_file_level,
    )

    install = _parse_arguments(args)

    try:
        strategy = elevation.select()
    except PrivilegeUnavailable as e:
        click.secho(str(e), fg="red", err=True)
        ctx.exit(1)

    identity = distro.resolve()

    try:
        report = provisioning.dispatch(identity, strategy, settings, install=install)
    except UnsupportedDistribution as e:
        click.secho(f"ERROR: {e}", fg="red", err=True)
        ctx.exit(1)

    _print_report(report, settings)

    if report.all_ok and not settings.dry_run:
        click.secho(f"Repository '{settings.repo_name}' configured for {identity}.", fg="green")
        if install:
            click.secho(f"Installed: {', '.join(settings.product_packages)}", fg="green")

    ctx.exit(report.exit_code)


if __name__ == "__main__":
    cli()
