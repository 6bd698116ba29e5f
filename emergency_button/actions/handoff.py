"""
Handoff to an external incident tool.

Looks for a known tool on PATH and launches it against the new bundle.
"""

import logging
import shutil
import subprocess
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from emergency_button.config import AppConfig
from emergency_button.console import Console
from emergency_button.core.incident import Incident

logger = logging.getLogger(__name__)

HANDOFF_LOG = "handoff.log"


@dataclass
class HandoffReport:
    """Outcome of the handoff action."""

    probed: List[str] = field(default_factory=list)
    tool: Optional[str] = None
    command: List[str] = field(default_factory=list)
    pid: Optional[int] = None
    error: str = ""
    skipped_reason: str = ""

    @property
    def launched(self) -> bool:
        return self.pid is not None


class HandoffAction:
    """Spawns the first available handoff tool with ``--incident <path>``."""

    def __init__(
        self,
        config: AppConfig,
        console: Optional[Console] = None,
        which: Callable[[str], Optional[str]] = shutil.which,
        spawn: Callable[..., subprocess.Popen] = subprocess.Popen,
    ):
        self.config = config
        self.console = console or Console(color=config.color)
        self.which = which
        self.spawn = spawn

    def find_tool(self, report: HandoffReport) -> Optional[str]:
        for name in self.config.handoff_tools:
            report.probed.append(name)
            path = self.which(name)
            if path:
                logger.debug(f"Handoff tool found: {name} -> {path}")
                return path
        return None

    def run(self, incident: Incident, dry_run: bool = False) -> HandoffReport:
        """Probe and launch. Failures are reported, never raised."""
        report = HandoffReport()

        if not self.config.handoff_enabled:
            report.skipped_reason = "handoff disabled"
            return report

        report.tool = self.find_tool(report)
        if report.tool is None:
            report.skipped_reason = "no handoff tool found on PATH"
            self.console.info(f"Handoff: none of {', '.join(report.probed) or '(no tools)'} found on PATH")
            if not dry_run:
                self._write_log(incident, report)
            return report

        report.command = [report.tool, "--incident", str(incident.path)]

        if dry_run:
            self.console.plan(f"Would launch: {' '.join(report.command)}")
            self.console.plan(f"Would write {incident.logs_path / HANDOFF_LOG}")
            return report

        try:
            proc = self.spawn(
                report.command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
            report.pid = proc.pid
            self.console.success(f"Handed off to {report.tool} (pid {report.pid})")
        except OSError as e:
            report.error = str(e)
            logger.warning(f"Handoff to {report.tool} failed: {e}")
            self.console.warn(f"Handoff to {report.tool} failed: {e}")

        self._write_log(incident, report)
        return report

    def _write_log(self, incident: Incident, report: HandoffReport) -> None:
        lines = [f"Probed: {', '.join(report.probed)}"]
        if report.tool:
            lines.append(f"Tool: {report.tool}")
            lines.append(f"Command: {' '.join(report.command)}")
            if report.launched:
                lines.append(f"Launched: pid {report.pid}")
            else:
                lines.append(f"Failed: {report.error}")
        else:
            lines.append(f"Skipped: {report.skipped_reason}")

        path = incident.logs_path / HANDOFF_LOG
        try:
            path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        except OSError as e:
            logger.warning(f"Cannot write {path}: {e}")
            self.console.warn(f"Could not write {path}: {e}")
