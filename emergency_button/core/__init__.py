"""
Emergency Button Core Module - Incident bundles, manifest schema, and utilities.
"""

from emergency_button.core.errors import (
    EmergencyButtonError,
    IncidentExistsError,
    BundleIOError,
    UnsupportedSchemaError,
)
from emergency_button.core.schema import *
from emergency_button.core.incident import Incident, IncidentManager, load_manifest

__all__ = [
    "Incident",
    "IncidentManager",
    "load_manifest",
    "EmergencyButtonError",
    "IncidentExistsError",
    "BundleIOError",
    "UnsupportedSchemaError",
]
