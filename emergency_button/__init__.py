"""
Emergency Button

One-shot emergency diagnostics for a misbehaving machine. A single
``emergency-button trigger`` creates a timestamped incident bundle, runs a
fixed catalog of non-destructive OS diagnostics into it, records everything
in ``incident.json`` and finishes with a human-readable ``receipt.adoc``.

Licensed under the GNU Affero General Public License v3.0 or later.
"""

__version__ = "0.1.0"
__license__ = "AGPL-3.0-or-later"

from emergency_button.core.incident import Incident, IncidentManager
from emergency_button.core.schema import (
    CaptureResult,
    CommandLogEntry,
    IncidentManifest,
    SCHEMA_VERSION,
)
from emergency_button.collectors.catalog import CaptureModule, OSFamily, build_catalog
from emergency_button.collectors.capture import CaptureOrchestrator
from emergency_button.config import AppConfig, load_config

__all__ = [
    "__version__",
    "AppConfig",
    "load_config",
    "Incident",
    "IncidentManager",
    "IncidentManifest",
    "CommandLogEntry",
    "CaptureResult",
    "SCHEMA_VERSION",
    "CaptureModule",
    "OSFamily",
    "build_catalog",
    "CaptureOrchestrator",
]
