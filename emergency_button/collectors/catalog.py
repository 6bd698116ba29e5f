"""
Capture Module Catalog
The fixed set of diagnostic modules, as a data table keyed by OS family.
"""

import sys
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple


class OSFamily(Enum):
    """Operating system families with their own command catalogs."""

    LINUX = "linux"
    MACOS = "macos"
    WINDOWS = "windows"
    OTHER = "other"

    @classmethod
    def from_tag(cls, tag: str) -> "OSFamily":
        for member in cls:
            if member.value == tag.lower():
                return member
        raise ValueError(f"Unknown OS tag: {tag}")


@dataclass(frozen=True)
class CaptureModule:
    """One category of diagnostic data and the commands that collect it."""

    name: str
    display_name: str
    commands: Tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.commands


# name -> (display name, per-OS commands). Order is execution order.
# Commands in one list are independent probing strategies; each one that
# exits 0 contributes output.
CATALOG: List[Tuple[str, str, Dict[OSFamily, List[str]]]] = [
    (
        "os_version",
        "Operating System Version",
        {
            OSFamily.LINUX: ["cat /etc/os-release", "uname -a"],
            OSFamily.MACOS: ["sw_vers", "uname -a"],
            OSFamily.WINDOWS: ["ver", "systeminfo"],
            OSFamily.OTHER: ["uname -a"],
        },
    ),
    (
        "uptime",
        "System Uptime",
        {
            OSFamily.LINUX: ["uptime"],
            OSFamily.MACOS: ["uptime"],
            OSFamily.WINDOWS: ["net statistics workstation"],
            OSFamily.OTHER: ["uptime"],
        },
    ),
    (
        "disk_usage",
        "Disk Usage",
        {
            OSFamily.LINUX: ["df -h"],
            OSFamily.MACOS: ["df -h"],
            OSFamily.WINDOWS: ["wmic logicaldisk get caption,freespace,size"],
            OSFamily.OTHER: ["df -h"],
        },
    ),
    (
        "memory",
        "Memory Usage",
        {
            OSFamily.LINUX: ["free -h"],
            OSFamily.MACOS: ["vm_stat"],
            OSFamily.WINDOWS: ["wmic OS get FreePhysicalMemory,TotalVisibleMemorySize /Value"],
        },
    ),
    (
        "network",
        "Network Interfaces",
        {
            OSFamily.LINUX: ["ip addr || ifconfig -a"],
            OSFamily.MACOS: ["ifconfig -a"],
            OSFamily.WINDOWS: ["ipconfig /all"],
        },
    ),
    (
        "processes",
        "Process Summary",
        {
            OSFamily.LINUX: ["ps aux --sort=-%cpu | head -n 25"],
            OSFamily.MACOS: ["ps aux -r | head -n 25"],
            OSFamily.WINDOWS: ["tasklist"],
        },
    ),
]


def detect_os(platform_name: Optional[str] = None) -> OSFamily:
    """Map ``sys.platform`` (or the given value) to an OS family."""
    name = platform_name if platform_name is not None else sys.platform

    if name.startswith("linux"):
        return OSFamily.LINUX
    if name == "darwin":
        return OSFamily.MACOS
    if name in ("win32", "cygwin"):
        return OSFamily.WINDOWS
    return OSFamily.OTHER


def build_catalog(os_family: Optional[OSFamily] = None) -> List[CaptureModule]:
    """Select the module list for one OS family. Detects the OS when not given."""
    family = os_family or detect_os()
    return [
        CaptureModule(
            name=name,
            display_name=display_name,
            commands=tuple(commands.get(family, [])),
        )
        for name, display_name, commands in CATALOG
    ]
