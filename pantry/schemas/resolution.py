"""
Per-line resolution state.
"""
from typing import Optional
from enum import Enum
import uuid
from pydantic import BaseModel, ConfigDict

from pantry.schemas.product import CatalogCandidate


class ResolutionKind(str, Enum):
    PENDING = "pending"
    KNOWN = "known"
    UNKNOWN = "unknown"
    SELECTED = "selected"


class ResolutionState(BaseModel):
    """
    Pending -> Known(product_id) when an alias exists, else Unknown.
    Unknown <-> Selected(candidate) while the user reviews.
    """
    model_config = ConfigDict(frozen=True)

    kind: ResolutionKind
    product_id: Optional[uuid.UUID] = None
    candidate: Optional[CatalogCandidate] = None

    @classmethod
    def pending(cls) -> "ResolutionState":
        return cls(kind=ResolutionKind.PENDING)

    @classmethod
    def known(cls, product_id: uuid.UUID) -> "ResolutionState":
        return cls(kind=ResolutionKind.KNOWN, product_id=product_id)

    @classmethod
    def unknown(cls) -> "ResolutionState":
        return cls(kind=ResolutionKind.UNKNOWN)

    @classmethod
    def selected(cls, candidate: CatalogCandidate) -> "ResolutionState":
        return cls(kind=ResolutionKind.SELECTED, candidate=candidate)

    @property
    def is_committable(self) -> bool:
        return self.kind in (ResolutionKind.KNOWN, ResolutionKind.SELECTED)
