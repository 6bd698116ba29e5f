"""
Emergency Button error taxonomy.

Only bundle creation and receipt writing are allowed to stop a run; every
other failure is caught where it happens and reported as a warning.
"""


class EmergencyButtonError(Exception):
    """Base class for all emergency-button errors."""


class IncidentExistsError(EmergencyButtonError):
    """The incident directory for this timestamp already exists."""

    def __init__(self, path):
        self.path = path
        super().__init__(f"Incident directory already exists: {path}")


class BundleIOError(EmergencyButtonError):
    """A bundle directory or file could not be created or written."""

    def __init__(self, message: str, path=None):
        self.path = path
        super().__init__(message)


class ProbeError(EmergencyButtonError):
    """A platform fact probe failed. Never escapes the probe helper."""


class ConfigError(EmergencyButtonError):
    """Configuration file is unreadable or invalid."""


class UnsupportedSchemaError(EmergencyButtonError):
    """A manifest declares a schema_version this tool does not understand."""

    def __init__(self, version, path=None):
        self.version = version
        self.path = path
        super().__init__(f"Unsupported incident schema version {version!r} in {path}")
