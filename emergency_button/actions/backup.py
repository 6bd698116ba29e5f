"""
Emergency Backup
Copies configured directories next to the incident before anything else changes.
"""

import logging
import os
import shutil
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional

from emergency_button.config import AppConfig
from emergency_button.console import Console
from emergency_button.core.incident import Incident
from emergency_button.core.utils import BACKUP_DIR_FORMAT, format_size, now_local

logger = logging.getLogger(__name__)

PLAN_LOG = "backup_plan.log"
RESULT_LOG = "backup_result.log"


@dataclass
class SourcePlan:
    """What a single source directory would contribute to the backup."""

    source: Path
    target: Path
    exists: bool
    file_count: int = 0
    total_bytes: int = 0


@dataclass
class SourceResult:
    source: Path
    target: Path
    status: str  # "ok", "skipped", "failed"
    detail: str = ""


@dataclass
class BackupReport:
    """Outcome of the backup action."""

    destination: Optional[Path] = None
    plans: List[SourcePlan] = field(default_factory=list)
    results: List[SourceResult] = field(default_factory=list)
    skipped_reason: str = ""

    @property
    def ran(self) -> bool:
        return not self.skipped_reason

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.status == "failed")


def scan_directory(path: Path) -> tuple:
    """Count files and bytes below ``path``. Unreadable entries are skipped."""
    file_count = 0
    total_bytes = 0

    for root, _dirs, files in os.walk(path):
        for name in files:
            try:
                total_bytes += os.lstat(os.path.join(root, name)).st_size
            except OSError:
                continue
            file_count += 1

    return file_count, total_bytes


class BackupAction:
    """
    Plans and performs whole-directory copies into
    ``<dest>/emergency-backup-<timestamp>/<source name>``.
    """

    def __init__(
        self,
        config: AppConfig,
        console: Optional[Console] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.config = config
        self.console = console or Console(color=config.color)
        self.clock = clock or now_local

    def plan(self, destination: Path) -> List[SourcePlan]:
        plans = []
        used_names = set()

        for raw in self.config.backup_sources:
            source = Path(raw).expanduser()
            name = source.name or "root"
            # Keep targets distinct when two sources share a basename.
            candidate, n = name, 1
            while candidate in used_names:
                n += 1
                candidate = f"{name}-{n}"
            used_names.add(candidate)

            item = SourcePlan(source=source, target=destination / candidate, exists=source.is_dir())
            if item.exists:
                item.file_count, item.total_bytes = scan_directory(source)
            plans.append(item)

        return plans

    def run(self, incident: Incident, dry_run: bool = False) -> BackupReport:
        """Run the backup. Failures are reported, never raised."""
        report = BackupReport()

        if not self.config.backup_sources:
            report.skipped_reason = "no backup sources configured"
            self.console.info("Backup: skipped (no sources configured)")
            return report
        if not self.config.backup_dest:
            report.skipped_reason = "no backup destination configured"
            self.console.info("Backup: skipped (no destination configured)")
            return report

        destination = Path(self.config.backup_dest).expanduser() / self.clock().strftime(
            BACKUP_DIR_FORMAT
        )
        report.destination = destination
        report.plans = self.plan(destination)

        plan_text = self._format_plan(report)

        if dry_run:
            for line in plan_text.splitlines():
                self.console.plan(line)
            self.console.plan(f"Would write {incident.logs_path / PLAN_LOG}")
            self.console.plan(f"Would write {incident.logs_path / RESULT_LOG}")
            return report

        self._write_log(incident, PLAN_LOG, plan_text)

        for item in report.plans:
            report.results.append(self._copy(item))

        self._write_log(incident, RESULT_LOG, self._format_results(report))

        if report.failed:
            self.console.warn(f"Backup: {report.failed} source(s) failed, see logs/{RESULT_LOG}")
        else:
            self.console.success(f"Backup written to {destination}")
        return report

    def _copy(self, item: SourcePlan) -> SourceResult:
        if not item.exists:
            return SourceResult(item.source, item.target, "skipped", "source is not a directory")

        try:
            shutil.copytree(item.source, item.target, symlinks=True)
        except (OSError, shutil.Error) as e:
            logger.warning(f"Backup of {item.source} failed: {e}")
            return SourceResult(item.source, item.target, "failed", str(e))

        logger.info(f"Backed up {item.source} -> {item.target}")
        return SourceResult(item.source, item.target, "ok")

    def _write_log(self, incident: Incident, name: str, text: str) -> None:
        path = incident.logs_path / name
        try:
            path.write_text(text, encoding="utf-8")
        except OSError as e:
            logger.warning(f"Cannot write {path}: {e}")
            self.console.warn(f"Could not write {path}: {e}")

    @staticmethod
    def _format_plan(report: BackupReport) -> str:
        lines = [f"Backup destination: {report.destination}"]
        for item in report.plans:
            if item.exists:
                lines.append(
                    f"{item.source} -> {item.target} "
                    f"({item.file_count} files, {format_size(item.total_bytes)})"
                )
            else:
                lines.append(f"{item.source} -> (missing, will be skipped)")
        return "\n".join(lines) + "\n"

    @staticmethod
    def _format_results(report: BackupReport) -> str:
        lines = []
        for result in report.results:
            if result.status == "ok":
                lines.append(f"OK: {result.source} -> {result.target}")
            elif result.status == "skipped":
                lines.append(f"SKIPPED: {result.source} ({result.detail})")
            else:
                lines.append(f"FAILED: {result.source} ({result.detail})")
        return "\n".join(lines) + "\n"
