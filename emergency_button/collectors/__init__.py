"""
Emergency Button Collectors Module - Diagnostic catalog and capture orchestration.
"""

from emergency_button.collectors.catalog import (
    CaptureModule,
    OSFamily,
    build_catalog,
    detect_os,
)
from emergency_button.collectors.capture import CaptureOrchestrator

__all__ = ["CaptureModule", "OSFamily", "build_catalog", "detect_os", "CaptureOrchestrator"]
