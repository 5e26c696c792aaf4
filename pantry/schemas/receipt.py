"""
Pydantic schemas for OCR input and extracted receipt lines.
"""
from typing import Optional
from enum import Enum
from pydantic import BaseModel, Field, ConfigDict


class OcrObservation(BaseModel):
    """One recognized text row, as produced by the OCR engine."""
    text: str
    confidence: Optional[float] = Field(None, ge=0, le=1)
    # Lower-ranked alternatives; ignored by extraction
    candidates: list[str] = Field(default_factory=list)


class ReceiptLine(BaseModel):
    """An OCR row believed to be a purchased item."""
    model_config = ConfigDict(frozen=True)

    index: int = Field(..., ge=0)
    text: str


class ExtractionStatus(str, Enum):
    """Outcome of receipt line extraction."""
    OK = "ok"
    NOT_A_RECEIPT = "not_a_receipt"
    NO_ITEMS_FOUND = "no_items_found"


class ExtractionResult(BaseModel):
    """Extracted lines plus the reason when there are none."""
    status: ExtractionStatus
    lines: list[ReceiptLine] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == ExtractionStatus.OK


class ReceiptMarkers(BaseModel):
    """Lower-case substrings that steer extraction."""
    model_config = ConfigDict(frozen=True)

    start: tuple[str, ...] = ("=", "omschrijving", "bedrag")
    end: tuple[str, ...] = (
        "totaal", "te betalen", "betaald", "pinnen",
        "maestro", "mastercard", "visa", "v pay",
    )
    abort: tuple[str, ...] = ("kopie", "akkoord")
    denylist: tuple[str, ...] = ("statie",)
