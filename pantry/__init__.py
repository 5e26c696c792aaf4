"""
Receipt ingestion and product reconciliation for household inventories.
"""
from pantry.receipt_lines import extract_receipt_lines
from pantry.session import ReconciliationSession, ScanServices

__version__ = "1.0.0"

__all__ = [
    "extract_receipt_lines",
    "ReconciliationSession",
    "ScanServices",
]
