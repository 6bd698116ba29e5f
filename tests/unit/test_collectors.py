"""
Emergency Button Test Suite - Collector Tests
=============================================
Tests for the capture catalog and the capture orchestrator.
"""

import json
import shutil

import pytest

from emergency_button.collectors.capture import CaptureOrchestrator
from emergency_button.collectors.catalog import (
    CATALOG,
    CaptureModule,
    OSFamily,
    build_catalog,
    detect_os,
)
from emergency_button.config import AppConfig
from emergency_button.core.utils import ShellResult


MODULE_NAMES = ["os_version", "uptime", "disk_usage", "memory", "network", "processes"]


def ok(output: str) -> ShellResult:
    return ShellResult(exit_code=0, output=output)


class TestCatalog:
    """Tests for the platform command catalog."""

    @pytest.mark.parametrize("family", list(OSFamily))
    def test_every_platform_has_all_modules_in_order(self, family):
        modules = build_catalog(family)

        assert [m.name for m in modules] == MODULE_NAMES
        assert all(m.display_name for m in modules)

    @pytest.mark.parametrize("family", [OSFamily.LINUX, OSFamily.MACOS, OSFamily.WINDOWS])
    def test_known_platforms_have_commands(self, family):
        assert all(not m.is_empty for m in build_catalog(family))

    def test_other_platform_fallbacks(self):
        modules = {m.name: m for m in build_catalog(OSFamily.OTHER)}

        assert modules["os_version"].commands == ("uname -a",)
        assert not modules["uptime"].is_empty
        assert not modules["disk_usage"].is_empty
        assert modules["memory"].is_empty
        assert modules["network"].is_empty
        assert modules["processes"].is_empty

    def test_linux_network_falls_back_in_shell(self):
        network = {m.name: m for m in build_catalog(OSFamily.LINUX)}["network"]
        assert network.commands == ("ip addr || ifconfig -a",)

    def test_catalog_table_is_unique(self):
        names = [name for name, _, _ in CATALOG]
        assert len(names) == len(set(names))

    @pytest.mark.parametrize(
        "platform_name,expected",
        [
            ("linux", OSFamily.LINUX),
            ("linux2", OSFamily.LINUX),
            ("darwin", OSFamily.MACOS),
            ("win32", OSFamily.WINDOWS),
            ("cygwin", OSFamily.WINDOWS),
            ("freebsd13", OSFamily.OTHER),
            ("aix", OSFamily.OTHER),
        ],
    )
    def test_detect_os(self, platform_name, expected):
        assert detect_os(platform_name) is expected

    def test_from_tag(self):
        assert OSFamily.from_tag("macos") is OSFamily.MACOS
        assert OSFamily.from_tag("Linux") is OSFamily.LINUX
        with pytest.raises(ValueError):
            OSFamily.from_tag("beos")

    def test_modules_are_immutable(self):
        module = build_catalog(OSFamily.LINUX)[0]
        with pytest.raises(AttributeError):
            module.name = "changed"


class TestCaptureOrchestrator:
    """Tests for CaptureOrchestrator."""

    def make(self, manager, modules, runner):
        return CaptureOrchestrator(manager, modules=modules, runner=runner)

    def test_failing_then_succeeding_module(self, manager, temp_dir, runner_factory):
        """A fails, B succeeds: entries in catalog order, only B gets a log."""
        modules = [
            CaptureModule("A", "Module A", ("false",)),
            CaptureModule("B", "Module B", ("echo ok",)),
        ]
        runner = runner_factory(responses={"echo ok": ok("ok\n")})
        incident = manager.create_bundle(temp_dir)

        results = self.make(manager, modules, runner).run_all(incident, dry_run=False)

        assert [r.success for r in results] == [False, True]
        data = json.loads(incident.manifest_path.read_text())
        assert [(c["name"], c["exit_code"]) for c in data["commands"]] == [("A", 1), ("B", 0)]
        assert not (incident.logs_path / "A.log").exists()
        assert (incident.logs_path / "B.log").read_text() == "=== echo ok ===\nok\n"
        assert data["commands"][1]["output_len"] == len("=== echo ok ===\nok\n")
        assert data["commands"][0]["output_len"] == 0

    def test_all_commands_fail(self, manager, temp_dir, runner_factory):
        modules = [CaptureModule("memory", "Memory", ("free -h", "vmstat"))]
        incident = manager.create_bundle(temp_dir)

        results = self.make(manager, modules, runner_factory()).run_all(incident)

        assert results[0].success is False
        assert results[0].error_msg == "no command produced output"
        assert incident.commands[0].exit_code == 1
        assert incident.commands[0].command == "free -h; vmstat"
        assert incident.log_files() == []

    def test_any_successful_command_counts(self, manager, temp_dir, runner_factory):
        """A failing first strategy does not fail the module."""
        modules = [CaptureModule("os_version", "OS", ("cat /etc/os-release", "uname -a"))]
        runner = runner_factory(responses={"uname -a": ok("Linux box 6.1.0\n")})
        incident = manager.create_bundle(temp_dir)

        self.make(manager, modules, runner).run_all(incident)

        assert runner.calls == ["cat /etc/os-release", "uname -a"]
        assert incident.commands[0].exit_code == 0
        log = (incident.logs_path / "os_version.log").read_text()
        assert log == "=== uname -a ===\nLinux box 6.1.0\n"

    def test_outputs_are_aggregated_with_headers(self, manager, temp_dir, runner_factory):
        modules = [CaptureModule("os_version", "OS", ("sw_vers", "uname -a"))]
        runner = runner_factory(
            responses={"sw_vers": ok("ProductVersion: 15.0"), "uname -a": ok("Darwin\n")}
        )
        incident = manager.create_bundle(temp_dir)

        self.make(manager, modules, runner).run_all(incident)

        log = (incident.logs_path / "os_version.log").read_text()
        assert log == "=== sw_vers ===\nProductVersion: 15.0\n\n=== uname -a ===\nDarwin\n"

    def test_timeout_counts_as_failure(self, manager, temp_dir, runner_factory):
        modules = [CaptureModule("processes", "Processes", ("ps aux",))]
        runner = runner_factory(
            responses={"ps aux": ShellResult(exit_code=124, output="partial", timed_out=True)}
        )
        incident = manager.create_bundle(temp_dir)

        self.make(manager, modules, runner).run_all(incident)

        assert incident.commands[0].exit_code == 1
        assert incident.log_files() == []

    def test_checkpoint_after_every_module(self, manager, temp_dir, runner_factory, monkeypatch):
        modules = [
            CaptureModule("one", "One", ("echo 1",)),
            CaptureModule("two", "Two", ("echo 2",)),
            CaptureModule("three", "Three", ()),
        ]
        incident = manager.create_bundle(temp_dir)

        seen = []
        original = manager.write_manifest

        def spy(inc):
            seen.append(len(inc.commands))
            return original(inc)

        monkeypatch.setattr(manager, "write_manifest", spy)
        self.make(manager, modules, runner_factory()).run_all(incident)

        assert seen == [1, 2, 3]
        assert len(json.loads(incident.manifest_path.read_text())["commands"]) == 3

    def test_empty_catalog(self, manager, temp_dir, runner_factory):
        """Every module present with exit code 1, nothing logged, receipt shows 0 B."""
        modules = [CaptureModule(name, name.title(), ()) for name in MODULE_NAMES]
        runner = runner_factory()
        incident = manager.create_bundle(temp_dir)

        results = self.make(manager, modules, runner).run_all(incident)

        assert runner.calls == []
        assert all(r.skipped for r in results)
        data = json.loads(incident.manifest_path.read_text())
        assert [c["name"] for c in data["commands"]] == MODULE_NAMES
        assert all(c["exit_code"] == 1 and c["output_len"] == 0 for c in data["commands"])
        assert list(incident.logs_path.iterdir()) == []

        receipt = manager.write_receipt(incident).read_text()
        for name in MODULE_NAMES:
            assert f"|{name}|1|0 B" in receipt

    def test_log_write_failure_downgrades_and_continues(
        self, manager, temp_dir, runner_factory, capsys
    ):
        modules = [
            CaptureModule("uptime", "Uptime", ("uptime",)),
            CaptureModule("disk_usage", "Disk", ("df -h",)),
        ]
        runner = runner_factory(responses={"uptime": ok("up 1 day\n"), "df -h": ok("/dev/sda1\n")})
        incident = manager.create_bundle(temp_dir)
        shutil.rmtree(incident.logs_path)

        results = self.make(manager, modules, runner).run_all(incident)

        assert [r.success for r in results] == [False, False]
        assert "failed to write" in results[0].error_msg
        assert [c.exit_code for c in incident.commands] == [1, 1]
        assert runner.calls == ["uptime", "df -h"]
        assert "Could not write log for uptime" in capsys.readouterr().err

    def test_dry_run_executes_nothing(self, manager, temp_dir, runner_factory, snapshot, capsys):
        modules = build_catalog(OSFamily.OTHER)
        runner = runner_factory()
        incident = manager.create_bundle(temp_dir, dry_run=True)
        before = snapshot(temp_dir)

        results = self.make(manager, modules, runner).run_all(incident, dry_run=True)

        assert runner.calls == []
        assert snapshot(temp_dir) == before
        assert len(incident.commands) == len(modules)
        by_name = {c.name: c.exit_code for c in incident.commands}
        assert by_name["os_version"] == 0
        assert by_name["memory"] == 1
        assert [r.success for r in results] == [not m.is_empty for m in modules]

        out = capsys.readouterr().out
        assert "[dry-run] Would execute: uname -a" in out
        assert "[dry-run] Would execute: df -h" in out

    def test_default_modules_follow_os_override(self, manager):
        manager.config.os_override = "windows"
        orchestrator = CaptureOrchestrator(manager)

        commands = {m.name: m.commands for m in orchestrator.modules}
        assert commands["network"] == ("ipconfig /all",)

    def test_summary_rows(self, manager, temp_dir, runner_factory):
        modules = [
            CaptureModule("uptime", "Uptime", ("uptime",)),
            CaptureModule("network", "Network", ()),
        ]
        runner = runner_factory(responses={"uptime": ok("up\n")})
        incident = manager.create_bundle(temp_dir)
        orchestrator = self.make(manager, modules, runner)

        orchestrator.run_all(incident)

        rows = orchestrator.summary()
        assert [(r["name"], r["status"]) for r in rows] == [("uptime", "ok"), ("network", "skipped")]


class TestConfigCatalogInjection:
    """The catalog is selected from configuration, not compiled conditionals."""

    def test_other_config(self, app_config, console, fake_runner):
        from emergency_button.core.incident import IncidentManager

        config = AppConfig(base_dir=app_config.base_dir, os_override="other", color=False)
        manager = IncidentManager(config=config, console=console, runner=fake_runner)

        orchestrator = CaptureOrchestrator(manager)

        empty = [m.name for m in orchestrator.modules if m.is_empty]
        assert empty == ["memory", "network", "processes"]
