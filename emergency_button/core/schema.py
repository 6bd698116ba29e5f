"""
Emergency Button Data Schema Definitions
Dataclasses for the incident manifest (``incident.json``) and capture results.
"""

import json
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List


SCHEMA_VERSION = "1.0"

MANIFEST_FILENAME = "incident.json"
RECEIPT_FILENAME = "receipt.adoc"
LOGS_DIRNAME = "logs"


class SchemaVersion:
    """Manifest schema version handling."""

    CURRENT = SCHEMA_VERSION
    SUPPORTED = [SCHEMA_VERSION]

    @classmethod
    def is_supported(cls, version: Any) -> bool:
        return version in cls.SUPPORTED


@dataclass
class PlatformInfo:
    """Platform facts sampled when the manifest is written."""

    os: str
    arch: str
    kernel: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class TriggerInfo:
    """How this run was triggered."""

    version: str
    dry_run: bool
    args: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CommandLogEntry:
    """
    One capture module's record in the manifest.

    ``exit_code`` is a derived success flag, not a process exit status:
    0 when at least one of the module's commands produced output that was
    stored, 1 otherwise.
    """

    name: str
    command: str
    started_at: str
    ended_at: str
    exit_code: int
    output_len: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "command": self.command,
            "started_at": self.started_at,
            "ended_at": self.ended_at,
            "exit_code": self.exit_code,
            "output_len": self.output_len,
        }

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


@dataclass
class IncidentManifest:
    """The ``incident.json`` envelope - a snapshot of one incident bundle."""

    id: str
    created_at: str
    hostname: str
    username: str
    working_dir: str
    platform: PlatformInfo
    trigger: TriggerInfo
    commands: List[CommandLogEntry] = field(default_factory=list)
    schema_version: str = SCHEMA_VERSION

    def to_dict(self) -> Dict[str, Any]:
        # Field order is part of the file format.
        return {
            "schema_version": self.schema_version,
            "id": self.id,
            "created_at": self.created_at,
            "hostname": self.hostname,
            "username": self.username,
            "working_dir": self.working_dir,
            "platform": self.platform.to_dict(),
            "trigger": self.trigger.to_dict(),
            "commands": [entry.to_dict() for entry in self.commands],
        }

    def encode(self) -> bytes:
        """Serialize as pretty-printed, deterministic JSON."""
        text = json.dumps(self.to_dict(), indent=2, ensure_ascii=False)
        return (text + "\n").encode("utf-8")


@dataclass
class CaptureResult:
    """Outcome of running one capture module. Not persisted directly."""

    name: str
    success: bool
    output: str = ""
    error_msg: str = ""
    duration_s: float = 0.0
    skipped: bool = False

    @property
    def output_len(self) -> int:
        return len(self.output.encode("utf-8"))

    @property
    def status(self) -> str:
        if self.skipped:
            return "skipped"
        return "ok" if self.success else "failed"
