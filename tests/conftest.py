"""
Emergency Button Test Configuration and Fixtures
================================================
Shared fixtures and configuration for all tests.
"""

import pytest
import shutil
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Generator, List, Optional

from emergency_button.config import AppConfig
from emergency_button.console import Console
from emergency_button.core.incident import IncidentManager
from emergency_button.core.utils import ShellResult


FIXED_TIME = datetime(2026, 10, 18, 14, 25, 1, tzinfo=timezone.utc)
FIXED_ID = "incident-20261018-142501"


class FakeRunner:
    """Stands in for run_shell: scripted results, every call recorded."""

    def __init__(
        self,
        responses: Optional[Dict[str, ShellResult]] = None,
        default: Optional[ShellResult] = None,
    ):
        self.responses = responses or {}
        self.default = default or ShellResult(exit_code=1, output="")
        self.calls: List[str] = []

    def __call__(self, command: str, timeout=None, shell=None) -> ShellResult:
        self.calls.append(command)
        return self.responses.get(command, self.default)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    path = Path(tempfile.mkdtemp(prefix="emergency_button_test_"))
    yield path
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def fixed_clock():
    """Clock that always returns the same instant."""
    return lambda: FIXED_TIME


@pytest.fixture
def fake_runner() -> FakeRunner:
    """Runner where every command fails unless scripted."""
    return FakeRunner(
        responses={
            "uname -r": ShellResult(exit_code=0, output="6.1.0-test\n"),
            "ver": ShellResult(exit_code=0, output="Microsoft Windows [Version 10.0]\n"),
        }
    )


@pytest.fixture
def app_config(temp_dir) -> AppConfig:
    """Configuration bound to the temp directory, no handoff, no colour."""
    return AppConfig(
        base_dir=str(temp_dir),
        color=False,
        command_timeout_s=10,
        handoff_enabled=False,
    )


@pytest.fixture
def console() -> Console:
    return Console(color=False)


@pytest.fixture
def manager(app_config, console, fake_runner, fixed_clock) -> IncidentManager:
    """Incident manager with a fake runner and a fixed clock."""
    return IncidentManager(
        config=app_config,
        console=console,
        runner=fake_runner,
        clock=fixed_clock,
        args="trigger",
    )


def snapshot_tree(root: Path) -> Dict[str, bytes]:
    """Relative path -> content (directories map to b'') for every entry under root."""
    tree = {}
    for path in sorted(root.rglob("*")):
        rel = str(path.relative_to(root))
        tree[rel] = path.read_bytes() if path.is_file() else b""
    return tree


@pytest.fixture
def runner_factory():
    """Build a FakeRunner with scripted responses."""
    return FakeRunner


@pytest.fixture
def snapshot():
    """Capture a directory tree for before/after comparisons."""
    return snapshot_tree


@pytest.fixture
def fixed_id() -> str:
    return FIXED_ID


# =============================================================================
# Test Markers
# =============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "integration: marks tests that run real shell commands")
