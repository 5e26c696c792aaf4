"""
Pydantic schemas for request/response validation.
"""
from pantry.schemas.receipt import (
    OcrObservation, ReceiptLine, ExtractionStatus, ExtractionResult, ReceiptMarkers
)
from pantry.schemas.product import (
    ProductBase, ProductCreate, ProductRecord, CatalogCandidate
)
from pantry.schemas.resolution import ResolutionKind, ResolutionState
from pantry.schemas.inventory import (
    InventoryEntry, RowResult, CommitLineResult, CommitResult,
    InventoryItem, ExpirySection, InventoryOverview
)
from pantry.schemas.scan import (
    SessionStatus, ScanCreate, ScanLineView, ScanResponse,
    SelectionUpdate, AutoSelectRequest, CommitRequest
)

__all__ = [
    # Receipt schemas
    "OcrObservation", "ReceiptLine", "ExtractionStatus", "ExtractionResult", "ReceiptMarkers",

    # Product schemas
    "ProductBase", "ProductCreate", "ProductRecord", "CatalogCandidate",

    # Resolution schemas
    "ResolutionKind", "ResolutionState",

    # Inventory schemas
    "InventoryEntry", "RowResult", "CommitLineResult", "CommitResult",
    "InventoryItem", "ExpirySection", "InventoryOverview",

    # Scan session schemas
    "SessionStatus", "ScanCreate", "ScanLineView", "ScanResponse",
    "SelectionUpdate", "AutoSelectRequest", "CommitRequest",
]
