"""
Emergency Button Command Line Interface
Main entry point for triggering an incident capture and browsing past bundles.
"""

import logging
import shlex
import sys
from pathlib import Path
from typing import Optional, Tuple

import click

from emergency_button import __version__
from emergency_button.actions.backup import BackupAction
from emergency_button.actions.handoff import HandoffAction
from emergency_button.collectors.capture import CaptureOrchestrator
from emergency_button.collectors.catalog import OSFamily, build_catalog, detect_os
from emergency_button.config import VALID_OS_TAGS, AppConfig, load_config
from emergency_button.console import Console
from emergency_button.core.errors import BundleIOError, ConfigError, IncidentExistsError
from emergency_button.core.incident import IncidentManager
from emergency_button.core.utils import format_duration, format_size


# Configure logging
def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%H:%M:%S",
    )


def _load(ctx: click.Context, **overrides) -> AppConfig:
    try:
        return load_config(ctx.obj.get("config_path"), **overrides)
    except ConfigError as e:
        Console(color=ctx.obj.get("color", True)).error(str(e))
        sys.exit(1)


@click.group()
@click.version_option(__version__, prog_name="emergency-button")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option("--config", "-c", "config_path", type=click.Path(dir_okay=False), default=None,
              help="YAML configuration file")
@click.option("--no-color", is_flag=True, help="Disable coloured output")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config_path: Optional[str], no_color: bool) -> None:
    """
    Emergency Button

    One command to capture what a sick machine looks like right now:
    OS version, uptime, disks, memory, network and processes, bundled
    with a manifest and a receipt.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["config_path"] = config_path
    ctx.obj["color"] = not no_color
    setup_logging(verbose)


@cli.command()
@click.option("--dry-run", is_flag=True, help="Show what would happen without running or writing anything")
@click.option("--output", "-o", default=None, help="Directory in which to create the incident bundle")
@click.option("--timeout", "-t", type=float, default=None,
              help="Per-command timeout in seconds (0 disables)")
@click.option("--os", "os_tag", type=click.Choice(VALID_OS_TAGS), default=None,
              help="Use another platform's command catalog")
@click.option("--backup", "backup_sources", multiple=True, type=click.Path(file_okay=False),
              help="Directory to back up (repeatable)")
@click.option("--backup-dest", default=None, type=click.Path(file_okay=False),
              help="Where backup copies are created")
@click.option("--no-handoff", is_flag=True, help="Do not launch an external incident tool")
@click.pass_context
def trigger(
    ctx: click.Context,
    dry_run: bool,
    output: Optional[str],
    timeout: Optional[float],
    os_tag: Optional[str],
    backup_sources: Tuple[str, ...],
    backup_dest: Optional[str],
    no_handoff: bool,
) -> None:
    """
    Capture diagnostics into a new incident bundle.

    Creates incident-YYYYMMDD-HHmmss/ with incident.json, logs/ and
    receipt.adoc. Individual diagnostic failures never stop the run.
    """
    logger = logging.getLogger("emergency_button.cli.trigger")

    config = _load(
        ctx,
        base_dir=output,
        command_timeout_s=timeout,
        os_override=os_tag,
        backup_sources=list(backup_sources) or None,
        backup_dest=backup_dest,
        handoff_enabled=False if no_handoff else None,
        color=False if not ctx.obj.get("color", True) else None,
    )
    console = Console(color=config.color)

    console.banner("EMERGENCY BUTTON - Incident Capture")
    if dry_run:
        console.plan("Dry run: no commands will be executed and nothing will be written")

    manager = IncidentManager(
        config=config,
        console=console,
        args=" ".join(shlex.quote(a) for a in sys.argv[1:]),
    )

    try:
        incident = manager.create_bundle(config.base_dir, dry_run=dry_run)
    except IncidentExistsError as e:
        console.error(f"{e}. Wait a second and trigger again, or remove the stale directory.")
        sys.exit(1)
    except BundleIOError as e:
        logger.error(f"Bundle creation failed: {e}", exc_info=ctx.obj.get("verbose", False))
        console.error(f"Could not create incident bundle: {e}")
        sys.exit(1)

    console.info(f"Incident: {incident.id}")
    console.info(f"Bundle:   {incident.path}")

    console.heading("Capturing Diagnostics")
    orchestrator = CaptureOrchestrator(manager, config=config, console=console)
    orchestrator.run_all(incident, dry_run=dry_run)

    console.heading("Follow-up")
    BackupAction(config, console).run(incident, dry_run=dry_run)
    HandoffAction(config, console).run(incident, dry_run=dry_run)

    try:
        receipt_path = manager.write_receipt(incident)
    except BundleIOError as e:
        logger.error(f"Receipt failed: {e}", exc_info=ctx.obj.get("verbose", False))
        console.error(f"Could not write receipt: {e}")
        sys.exit(1)

    console.heading("Summary")
    console.info(f"{'Module':<14} {'Status':<8} {'Output':>10} {'Time':>10}")
    console.info("─" * 45)
    for row in orchestrator.summary():
        console.info(
            f"{row['name']:<14} {row['status']:<8} "
            f"{format_size(row['output_len']):>10} {format_duration(row['duration_s']):>10}"
        )

    if dry_run:
        console.plan(f"Receipt would be written to {receipt_path}")
    else:
        console.success(f"Receipt: {receipt_path}")


@cli.command()
@click.option("--output", "-o", default=None, help="Directory containing incident bundles")
@click.option("--limit", "-n", default=10, help="Number of incidents to list")
@click.pass_context
def ls(ctx: click.Context, output: Optional[str], limit: int) -> None:
    """
    List recent incident bundles.
    """
    config = _load(ctx, base_dir=output)
    console = Console(color=config.color)
    manager = IncidentManager(config=config, console=console)

    incidents = manager.list_incidents(config.base_dir, limit=limit)
    if not incidents:
        console.info(f"No incidents found in {Path(config.base_dir).resolve()}")
        return

    console.heading("Recent Incidents")
    console.info(f"{'Incident':<28} {'Host':<20} {'Modules':>8} {'Failed':>7} {'Receipt':>8}")
    console.info("─" * 75)
    for item in incidents:
        console.info(
            f"{item['id']:<28} {item['hostname'][:20]:<20} {item['commands']:>8} "
            f"{item['failed']:>7} {'yes' if item['has_receipt'] else 'no':>8}"
        )


@cli.command()
@click.option("--os", "os_tag", type=click.Choice(VALID_OS_TAGS), default=None,
              help="Show another platform's catalog")
@click.pass_context
def catalog(ctx: click.Context, os_tag: Optional[str]) -> None:
    """
    Show the diagnostic modules and commands for a platform.
    """
    config = _load(ctx, os_override=os_tag)
    console = Console(color=config.color)

    family = OSFamily.from_tag(config.os_override) if config.os_override else detect_os()
    console.heading(f"Capture Catalog ({family.value})")

    for module in build_catalog(family):
        console.info(f"\n{module.display_name} [{module.name}]")
        if module.is_empty:
            console.info("  (no commands, always skipped)")
        for command in module.commands:
            console.info(f"  $ {command}")


def main() -> None:
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
