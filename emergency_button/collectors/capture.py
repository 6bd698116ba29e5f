"""
Diagnostic Capture Orchestrator
Runs every capture module against an incident bundle, one command at a time.
"""

import logging
from typing import Callable, List, Optional

from emergency_button.collectors.catalog import CaptureModule, OSFamily, build_catalog
from emergency_button.config import AppConfig
from emergency_button.console import Console
from emergency_button.core.incident import Incident, IncidentManager
from emergency_button.core.schema import CaptureResult, CommandLogEntry
from emergency_button.core.utils import (
    ShellResult,
    Timer,
    format_duration,
    format_size,
    iso_timestamp,
    now_local,
    run_shell,
)

logger = logging.getLogger(__name__)

NO_OUTPUT_MSG = "no command produced output"
NO_COMMANDS_MSG = "no commands for this platform"


class CaptureOrchestrator:
    """
    Executes the capture catalog sequentially and records each module.

    Best effort throughout: a command that fails is skipped, a module that
    fails is recorded, and the next module always runs. After every module
    the manifest is checkpointed through the incident manager.
    """

    def __init__(
        self,
        manager: IncidentManager,
        config: Optional[AppConfig] = None,
        console: Optional[Console] = None,
        modules: Optional[List[CaptureModule]] = None,
        runner: Optional[Callable[..., ShellResult]] = None,
    ):
        self.manager = manager
        self.config = config or manager.config
        self.console = console or manager.console
        self.runner = runner or run_shell

        if modules is None:
            os_family = OSFamily.from_tag(self.config.os_override) if self.config.os_override else None
            modules = build_catalog(os_family)
        self.modules = list(modules)

        self.results: List[CaptureResult] = []

    def run_all(self, incident: Incident, dry_run: Optional[bool] = None) -> List[CaptureResult]:
        """Run every module in catalog order. Never raises for a module failure."""
        if dry_run is None:
            dry_run = incident.dry_run

        self.results = []
        total = len(self.modules)

        for idx, module in enumerate(self.modules, start=1):
            self.console.info(f"[{idx}/{total}] {module.display_name}...")
            result = self.run_module(incident, module, dry_run)
            self.results.append(result)
            self._report(result)

        succeeded = sum(1 for r in self.results if r.success)
        logger.info(f"Capture finished: {succeeded}/{total} modules produced output")
        return self.results

    def run_module(self, incident: Incident, module: CaptureModule, dry_run: bool) -> CaptureResult:
        """Run one module, persist its log, append its entry and checkpoint."""
        started_at = now_local()

        with Timer(module.name) as timer:
            output = self._execute(module, dry_run)

        ended_at = now_local()

        if module.is_empty:
            result = CaptureResult(
                name=module.name,
                success=False,
                error_msg=NO_COMMANDS_MSG,
                duration_s=timer.duration_s,
                skipped=True,
            )
        elif output:
            result = CaptureResult(
                name=module.name,
                success=True,
                output=output,
                duration_s=timer.duration_s,
            )
        else:
            result = CaptureResult(
                name=module.name,
                success=False,
                error_msg=NO_OUTPUT_MSG,
                duration_s=timer.duration_s,
            )

        if result.output and not dry_run:
            self._write_log(incident, result)

        entry = CommandLogEntry(
            name=module.name,
            command="; ".join(module.commands),
            started_at=iso_timestamp(started_at),
            ended_at=iso_timestamp(ended_at),
            exit_code=0 if result.success else 1,
            output_len=result.output_len,
        )
        incident.add_entry(entry)
        self.manager.write_manifest(incident)

        return result

    def _execute(self, module: CaptureModule, dry_run: bool) -> str:
        """Run the module's commands and aggregate output from the ones that exit 0."""
        blocks = []

        for command in module.commands:
            if dry_run:
                self.console.plan(f"Would execute: {command}")
                blocks.append(self._format_block(command, f"[dry-run] {command} not executed\n"))
                continue

            logger.debug(f"Executing: {command}")
            result = self.runner(
                command,
                timeout=self.config.command_timeout_s,
                shell=self.config.shell,
            )
            if result.ok:
                blocks.append(self._format_block(command, result.output))

        return "\n".join(blocks)

    @staticmethod
    def _format_block(command: str, output: str) -> str:
        if output and not output.endswith("\n"):
            output += "\n"
        return f"=== {command} ===\n{output}"

    def _write_log(self, incident: Incident, result: CaptureResult) -> None:
        log_path = incident.logs_path / f"{result.name}.log"
        try:
            with open(log_path, "w", encoding="utf-8", newline="") as f:
                f.write(result.output)
        except OSError as e:
            result.success = False
            result.error_msg = f"failed to write {log_path}: {e}"
            logger.warning(f"Log write failed for {result.name}: {e}")
            self.console.warn(f"Could not write log for {result.name}: {e}")

    def _report(self, result: CaptureResult) -> None:
        detail = f"{format_size(result.output_len)} in {format_duration(result.duration_s)}"
        if result.success:
            self.console.success(f"{result.name}: {detail}")
        elif result.skipped:
            self.console.info(f"  - {result.name}: skipped ({result.error_msg})")
        else:
            self.console.warn(f"{result.name}: {result.error_msg}")

    def summary(self) -> List[dict]:
        """One row per module from the last run, for terminal display."""
        return [
            {
                "name": r.name,
                "status": r.status,
                "output_len": r.output_len,
                "duration_s": r.duration_s,
                "error": r.error_msg,
            }
            for r in self.results
        ]
