"""
Emergency Button Report Module - Receipt generation.
"""

from emergency_button.report.receipt import ReceiptRenderer

__all__ = ["ReceiptRenderer"]
