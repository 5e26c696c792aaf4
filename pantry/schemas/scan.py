"""
Request/response schemas for the scan session endpoints.
"""
from typing import Optional
from datetime import date
from enum import Enum
import uuid
from pydantic import BaseModel, Field, model_validator

from pantry.schemas.receipt import OcrObservation
from pantry.schemas.product import CatalogCandidate
from pantry.schemas.resolution import ResolutionState


class SessionStatus(str, Enum):
    """What the caller should show next."""
    EMPTY = "empty"                # nothing to scan
    NEEDS_REVIEW = "needs_review"  # some lines need manual verification
    READY = "ready"                # every line is resolved
    COMMITTED = "committed"        # every committable line is stored


class ScanCreate(BaseModel):
    """OCR rows of one photographed receipt, top to bottom."""
    observations: list[OcrObservation] = Field(..., min_length=1)


class ScanLineView(BaseModel):
    index: int
    text: str
    state: ResolutionState
    committed: bool = False


class ScanResponse(BaseModel):
    id: uuid.UUID
    status: SessionStatus
    lines: list[ScanLineView]


class SelectionUpdate(BaseModel):
    """Pick a catalog candidate, type a name, or clear both."""
    candidate: Optional[CatalogCandidate] = None
    manual_name: Optional[str] = Field(None, min_length=1, max_length=500)

    @model_validator(mode="after")
    def _one_choice(self) -> "SelectionUpdate":
        if self.candidate is not None and self.manual_name is not None:
            raise ValueError("Provide either candidate or manual_name, not both")
        return self


class AutoSelectRequest(BaseModel):
    min_score: Optional[float] = Field(None, ge=0, le=100)


class CommitRequest(BaseModel):
    house_id: uuid.UUID
    purchase_date: Optional[date] = None
