"""
Pydantic schemas for household inventory rows and commit reports.
"""
from typing import Optional
from datetime import date
from enum import Enum
import uuid
from pydantic import BaseModel, Field, ConfigDict

from pantry.schemas.receipt import ReceiptLine


class InventoryEntry(BaseModel):
    """Inventory row to be persisted for a household."""
    model_config = ConfigDict(from_attributes=True, frozen=True)

    house_id: uuid.UUID
    product_id: uuid.UUID
    quantity: int = Field(1, ge=1)
    purchase_date: date
    best_before_date: date


class RowResult(BaseModel):
    """Outcome of persisting one inventory row."""
    entry: InventoryEntry
    ok: bool
    inventory_id: Optional[uuid.UUID] = None
    error: Optional[str] = None


class CommitLineResult(BaseModel):
    """Outcome of committing one receipt line."""
    line: ReceiptLine
    product_id: Optional[uuid.UUID] = None
    entry: Optional[InventoryEntry] = None
    error: Optional[str] = None


class CommitResult(BaseModel):
    """Per-line commit report; failed lines can be retried."""
    succeeded: list[CommitLineResult] = Field(default_factory=list)
    failed: list[CommitLineResult] = Field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failed


class InventoryItem(BaseModel):
    """Stored inventory row joined with its product name."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    house_id: uuid.UUID
    product_id: uuid.UUID
    product_name: str
    image_url: Optional[str] = None
    quantity: int
    purchase_date: date
    best_before_date: date


class ExpirySection(str, Enum):
    EXPIRED = "expired"
    TODAY = "today"
    TOMORROW = "tomorrow"
    LATER = "later"


class InventoryOverview(BaseModel):
    """Household inventory bucketed by best-before date."""
    house_id: uuid.UUID
    sections: dict[ExpirySection, list[InventoryItem]]
