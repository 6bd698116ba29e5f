"""
Emergency Button Utilities
Common helpers for shell execution, timestamps, atomic file writes and formatting.
"""

import logging
import os
import signal
import subprocess
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)

# Conventional shell exit statuses for "could not run" and "timed out".
EXIT_NOT_FOUND = 127
EXIT_TIMEOUT = 124

# Grace period for collecting output once a timed-out command is killed.
DRAIN_TIMEOUT_S = 2.0

INCIDENT_ID_FORMAT = "incident-%Y%m%d-%H%M%S"
BACKUP_DIR_FORMAT = "emergency-backup-%Y%m%d-%H%M%S"


@dataclass
class ShellResult:
    """Outcome of one shell command."""

    exit_code: int
    output: str
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and not self.timed_out


def get_monotonic_ns() -> int:
    """Get monotonic clock time in nanoseconds."""
    return time.monotonic_ns()


def now_local() -> datetime:
    """Current wall-clock time as a timezone-aware local datetime."""
    return datetime.now().astimezone()


def incident_id_for(moment: datetime) -> str:
    """Incident identifier with second resolution, e.g. ``incident-20261018-142501``."""
    return moment.strftime(INCIDENT_ID_FORMAT)


def rfc3339(moment: datetime) -> str:
    """RFC3339 timestamp with second resolution."""
    if moment.tzinfo is None:
        moment = moment.astimezone()
    return moment.isoformat(timespec="seconds")


def iso_timestamp(moment: datetime) -> str:
    """ISO-8601 timestamp with millisecond resolution."""
    if moment.tzinfo is None:
        moment = moment.astimezone()
    return moment.isoformat(timespec="milliseconds")


def _decode(raw: Optional[bytes]) -> str:
    if not raw:
        return ""
    return raw.decode("utf-8", errors="replace")


def _kill_process_tree(proc: subprocess.Popen) -> None:
    """Kill a shell and everything it started."""
    if os.name == "posix":
        try:
            os.killpg(proc.pid, signal.SIGKILL)
            return
        except (ProcessLookupError, PermissionError):
            pass
    proc.kill()


def _drain_after_kill(proc: subprocess.Popen) -> Optional[bytes]:
    """
    Collect what the killed command wrote, without waiting on stray holders of the pipe.

    A descendant that left the process group can keep stdout open forever,
    so the drain is bounded and the pipe is closed when it runs out.
    """
    try:
        out, _ = proc.communicate(timeout=DRAIN_TIMEOUT_S)
        return out
    except subprocess.TimeoutExpired:
        logger.debug(f"Output pipe still held after kill, closing it (pid {proc.pid})")
        if proc.stdout is not None:
            proc.stdout.close()
        try:
            proc.wait(timeout=DRAIN_TIMEOUT_S)
        except subprocess.TimeoutExpired:
            logger.warning(f"Killed command did not exit (pid {proc.pid})")
        return None


def run_shell(
    command: str,
    timeout: Optional[float] = None,
    shell: Optional[str] = None,
) -> ShellResult:
    """
    Run a command string through the shell and capture combined stdout/stderr.

    Never raises for a failing command: a shell that cannot be started maps to
    exit code 127 and an expired timeout to 124 with ``timed_out`` set.
    """
    if shell:
        args: Union[str, list] = [shell, "-c", command]
        use_shell = False
    else:
        args = command
        use_shell = True

    popen_kwargs = {}
    if os.name == "posix":
        # Own process group so a timeout can take down pipelines too.
        popen_kwargs["start_new_session"] = True

    try:
        proc = subprocess.Popen(
            args,
            shell=use_shell,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            **popen_kwargs,
        )
    except OSError as e:
        logger.debug(f"Command could not be started: {command}, {e}")
        return ShellResult(exit_code=EXIT_NOT_FOUND, output="")

    try:
        out, _ = proc.communicate(timeout=timeout)
    except subprocess.TimeoutExpired:
        _kill_process_tree(proc)
        out = _drain_after_kill(proc)
        logger.warning(f"Command timed out after {timeout}s: {command}")
        return ShellResult(exit_code=EXIT_TIMEOUT, output=_decode(out), timed_out=True)

    if proc.returncode != 0:
        logger.debug(f"Command failed ({proc.returncode}): {command}")
    return ShellResult(exit_code=proc.returncode, output=_decode(out))


def write_atomic(path: Union[str, Path], data: bytes) -> None:
    """Write bytes to ``path`` through a temp file and rename."""
    path = Path(path)
    temp_path = path.with_name(path.name + ".tmp")

    try:
        with open(temp_path, "wb") as f:
            f.write(data)
        temp_path.replace(path)
    except OSError as e:
        logger.error(f"Failed to write {path}: {e}")
        if temp_path.exists():
            temp_path.unlink()
        raise


def format_size(num_bytes: int) -> str:
    """Format bytes as human-readable string."""
    if abs(num_bytes) < 1024:
        return f"{num_bytes} B"
    size = float(num_bytes)
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if abs(size) < 1024.0:
            return f"{size:.1f} {unit}"
        size /= 1024.0
    return f"{size:.1f} PB"


def format_duration(seconds: float) -> str:
    """Format duration as human-readable string."""
    if seconds < 1:
        return f"{seconds * 1000:.0f} ms"
    elif seconds < 60:
        return f"{seconds:.2f} s"
    elif seconds < 3600:
        return f"{seconds / 60:.1f} min"
    else:
        return f"{seconds / 3600:.1f} h"


class Timer:
    """Context manager for timing code blocks."""

    def __init__(self, name: str = ""):
        self.name = name
        self.start_ns = 0
        self.end_ns = 0
        self.duration_ns = 0

    def __enter__(self) -> "Timer":
        self.start_ns = get_monotonic_ns()
        return self

    def __exit__(self, *args) -> None:
        self.end_ns = get_monotonic_ns()
        self.duration_ns = self.end_ns - self.start_ns

        if self.name:
            logger.debug(f"{self.name}: {self.duration_s:.3f} s")

    @property
    def duration_s(self) -> float:
        return self.duration_ns / 1e9
