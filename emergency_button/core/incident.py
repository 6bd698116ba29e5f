"""
Emergency Button Incident Management
Handles the incident bundle lifecycle: folder creation, manifest checkpoints,
and the final receipt.
"""

import getpass
import json
import logging
import os
import platform
import shutil
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from emergency_button.config import AppConfig
from emergency_button.console import Console
from emergency_button.core.errors import (
    BundleIOError,
    IncidentExistsError,
    ProbeError,
    UnsupportedSchemaError,
)
from emergency_button.core.schema import (
    LOGS_DIRNAME,
    MANIFEST_FILENAME,
    RECEIPT_FILENAME,
    CommandLogEntry,
    IncidentManifest,
    PlatformInfo,
    SchemaVersion,
    TriggerInfo,
)
from emergency_button.core.utils import (
    ShellResult,
    incident_id_for,
    now_local,
    rfc3339,
    run_shell,
    write_atomic,
)
from emergency_button.report.receipt import ReceiptRenderer

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"

Runner = Callable[..., ShellResult]


@dataclass
class Incident:
    """
    Handle for one incident bundle.

    Owned by the process that created it. Only its JSON projection
    (``incident.json``) is ever written to disk.
    """

    id: str
    path: Path
    logs_path: Path
    created_at: datetime
    dry_run: bool = False
    args: str = ""
    commands: List[CommandLogEntry] = field(default_factory=list)

    @property
    def manifest_path(self) -> Path:
        return self.path / MANIFEST_FILENAME

    @property
    def receipt_path(self) -> Path:
        return self.path / RECEIPT_FILENAME

    def add_entry(self, entry: CommandLogEntry) -> None:
        """Append a command log entry. Entries are never modified afterwards."""
        self.commands.append(entry)

    def log_files(self) -> List[str]:
        """Names of the files currently under ``logs/``, sorted."""
        if not self.logs_path.is_dir():
            return []
        return sorted(p.name for p in self.logs_path.iterdir() if p.is_file())


def load_manifest(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load an ``incident.json`` (or the one inside an incident directory).

    Raises UnsupportedSchemaError for any schema version other than the
    current one.
    """
    path = Path(path)
    if path.is_dir():
        path = path / MANIFEST_FILENAME

    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    version = data.get("schema_version") if isinstance(data, dict) else None
    if not SchemaVersion.is_supported(version):
        raise UnsupportedSchemaError(version, path)

    return data


class IncidentManager:
    """
    Creates incident bundles and keeps their manifest and receipt current.

    Every write path honours the incident's dry-run flag: nothing is created
    or modified, and the console reports what would have been written.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        console: Optional[Console] = None,
        runner: Optional[Runner] = None,
        clock: Optional[Callable[[], datetime]] = None,
        args: str = "",
    ):
        self.config = config or AppConfig()
        self.console = console or Console(color=self.config.color)
        self.runner = runner or run_shell
        self.clock = clock or now_local
        self.args = args

    # ------------------------------------------------------------------
    # Bundle creation
    # ------------------------------------------------------------------

    def create_bundle(
        self,
        base_dir: Optional[Union[str, Path]] = None,
        dry_run: bool = False,
    ) -> Incident:
        """
        Create ``<base_dir>/incident-YYYYMMDD-HHmmss/logs`` and the initial manifest.

        Raises:
            IncidentExistsError: the incident directory already exists.
            BundleIOError: the directories or the manifest could not be written.
        """
        base = Path(base_dir if base_dir is not None else self.config.base_dir)
        created_at = self.clock()
        incident_id = incident_id_for(created_at)
        path = base / incident_id

        incident = Incident(
            id=incident_id,
            path=path,
            logs_path=path / LOGS_DIRNAME,
            created_at=created_at,
            dry_run=dry_run,
            args=self.args,
        )

        if path.exists():
            raise IncidentExistsError(path)

        if dry_run:
            self.console.plan(f"Would create incident directory {incident.logs_path}")
            self.console.plan(f"Would write manifest {incident.manifest_path}")
            return incident

        try:
            base.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BundleIOError(f"Cannot create base directory {base}: {e}", base) from e

        try:
            path.mkdir()
        except FileExistsError as e:
            raise IncidentExistsError(path) from e
        except OSError as e:
            raise BundleIOError(f"Cannot create incident directory {path}: {e}", path) from e

        try:
            incident.logs_path.mkdir()
        except OSError as e:
            self._discard_partial(path)
            raise BundleIOError(
                f"Cannot create logs directory {incident.logs_path}: {e}", incident.logs_path
            ) from e

        try:
            self._write_manifest_file(incident)
        except BundleIOError:
            self._discard_partial(path)
            raise

        logger.info(f"Created incident bundle {path}")
        return incident

    def _discard_partial(self, path: Path) -> None:
        """Remove a bundle whose creation failed half way, or say where it was left."""
        try:
            shutil.rmtree(path)
            logger.debug(f"Removed partial bundle {path}")
        except OSError as e:
            logger.warning(f"Could not remove partial bundle {path}: {e}")
            self.console.warn(f"Partial incident directory left behind: {path}")

    # ------------------------------------------------------------------
    # Manifest
    # ------------------------------------------------------------------

    def build_manifest(self, incident: Incident) -> IncidentManifest:
        """Build the manifest from the handle plus freshly sampled host facts."""
        return IncidentManifest(
            id=incident.id,
            created_at=rfc3339(incident.created_at),
            hostname=self._hostname(),
            username=self._username(),
            working_dir=self._working_dir(),
            platform=self.platform_info(),
            trigger=TriggerInfo(
                version=self.config.version,
                dry_run=incident.dry_run,
                args=incident.args,
            ),
            commands=list(incident.commands),
        )

    def write_manifest(self, incident: Incident) -> bool:
        """
        Checkpoint the manifest to ``incident.json``.

        Failures are reported as a warning and never raised, so a full disk
        cannot stop the remaining diagnostics. Returns True when written.
        """
        if incident.dry_run:
            self.console.plan(
                f"Would update manifest {incident.manifest_path} "
                f"({len(incident.commands)} command entries)"
            )
            return False

        try:
            self._write_manifest_file(incident)
        except BundleIOError as e:
            logger.warning(f"Manifest checkpoint failed: {e}")
            self.console.warn(f"Could not update manifest: {e}")
            return False
        return True

    def _write_manifest_file(self, incident: Incident) -> None:
        manifest = self.build_manifest(incident)
        try:
            write_atomic(incident.manifest_path, manifest.encode())
        except OSError as e:
            raise BundleIOError(
                f"Cannot write manifest {incident.manifest_path}: {e}", incident.manifest_path
            ) from e

    # ------------------------------------------------------------------
    # Receipt
    # ------------------------------------------------------------------

    def write_receipt(self, incident: Incident) -> Path:
        """
        Render and write ``receipt.adoc``. Call once all capture has finished.

        Raises:
            BundleIOError: the receipt could not be written.
        """
        renderer = ReceiptRenderer(self.config)
        text = renderer.render(incident, self.build_manifest(incident))

        if incident.dry_run:
            self.console.plan(
                f"Would write receipt {incident.receipt_path} ({len(text.encode('utf-8'))} bytes)"
            )
            return incident.receipt_path

        try:
            write_atomic(incident.receipt_path, text.encode("utf-8"))
        except OSError as e:
            raise BundleIOError(
                f"Cannot write receipt {incident.receipt_path}: {e}", incident.receipt_path
            ) from e

        logger.info(f"Receipt written: {incident.receipt_path}")
        return incident.receipt_path

    # ------------------------------------------------------------------
    # Platform facts
    # ------------------------------------------------------------------

    def platform_info(self) -> PlatformInfo:
        """Sample OS family, architecture and kernel version."""
        from emergency_button.collectors.catalog import detect_os

        return PlatformInfo(
            os=detect_os().value,
            arch=platform.machine() or UNKNOWN,
            kernel=self.probe_kernel(),
        )

    def probe_kernel(self) -> str:
        """Kernel version from a shell probe, or ``"unknown"``."""
        command = "ver" if os.name == "nt" else "uname -r"
        try:
            return self._probe(command)
        except ProbeError as e:
            logger.debug(f"Kernel probe failed: {e}")
            return UNKNOWN

    def _probe(self, command: str) -> str:
        result = self.runner(
            command,
            timeout=self.config.command_timeout_s,
            shell=self.config.shell,
        )
        if not result.ok:
            raise ProbeError(f"{command!r} exited with {result.exit_code}")

        lines = [line.strip() for line in result.output.splitlines() if line.strip()]
        if not lines:
            raise ProbeError(f"{command!r} produced no output")
        return lines[0]

    @staticmethod
    def _hostname() -> str:
        return platform.node() or UNKNOWN

    @staticmethod
    def _username() -> str:
        try:
            return getpass.getuser()
        except (KeyError, OSError):
            return UNKNOWN

    @staticmethod
    def _working_dir() -> str:
        try:
            return os.getcwd()
        except OSError:
            return UNKNOWN

    # ------------------------------------------------------------------
    # Existing bundles
    # ------------------------------------------------------------------

    def list_incidents(
        self,
        base_dir: Optional[Union[str, Path]] = None,
        limit: int = 20,
    ) -> List[Dict[str, Any]]:
        """List incident bundles under ``base_dir``, newest first."""
        base = Path(base_dir if base_dir is not None else self.config.base_dir)
        incidents = []

        if not base.is_dir():
            return incidents

        for incident_dir in sorted(base.glob("incident-*"), reverse=True):
            if not incident_dir.is_dir():
                continue

            try:
                manifest = load_manifest(incident_dir)
            except (OSError, ValueError, UnsupportedSchemaError) as e:
                logger.debug(f"Skipping {incident_dir}: {e}")
                continue

            commands = manifest.get("commands")
            if not isinstance(commands, list):
                commands = []
            entries = [c for c in commands if isinstance(c, dict)]
            if len(entries) != len(commands):
                logger.debug(f"Ignoring malformed command entries in {incident_dir}")

            incidents.append(
                {
                    "id": str(manifest.get("id", incident_dir.name)),
                    "path": str(incident_dir),
                    "created_at": str(manifest.get("created_at", "")),
                    "hostname": str(manifest.get("hostname", "")),
                    "commands": len(entries),
                    "failed": sum(1 for c in entries if c.get("exit_code") != 0),
                    "has_receipt": (incident_dir / RECEIPT_FILENAME).exists(),
                }
            )

            if len(incidents) >= limit:
                break

        return incidents

    def get_latest_incident(self, base_dir: Optional[Union[str, Path]] = None) -> Optional[Path]:
        """Path of the most recent readable incident bundle."""
        incidents = self.list_incidents(base_dir, limit=1)
        if not incidents:
            return None
        return Path(incidents[0]["path"])
