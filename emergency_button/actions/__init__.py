"""
Emergency Button Actions - Optional follow-ups after capture (backup, handoff).
"""

from emergency_button.actions.backup import BackupAction, BackupReport
from emergency_button.actions.handoff import HandoffAction, HandoffReport

__all__ = ["BackupAction", "BackupReport", "HandoffAction", "HandoffReport"]
