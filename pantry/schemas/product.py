"""
Pydantic schemas for canonical products and catalog search results.
"""
from typing import Optional
from decimal import Decimal
import uuid
from pydantic import BaseModel, Field, ConfigDict


class ProductBase(BaseModel):
    """Base product schema."""
    name: str = Field(..., min_length=1, max_length=500)
    image_url: Optional[str] = None
    expiration_days: Optional[int] = Field(None, gt=0)
    catalog_source_id: Optional[str] = Field(None, max_length=100)


class ProductCreate(ProductBase):
    """Schema for creating a product."""
    pass


class ProductRecord(ProductBase):
    """Stored canonical product."""
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: uuid.UUID


class CatalogCandidate(BaseModel):
    """A search hit from the external product catalog; never stored as-is."""
    model_config = ConfigDict(frozen=True)

    external_id: Optional[str] = None
    title: str = Field(..., min_length=1, max_length=500)
    image_url: Optional[str] = None
    price: Optional[Decimal] = None
    # Similarity to the query, 0..100
    score: float = 0.0

    @classmethod
    def manual(cls, name: str) -> "CatalogCandidate":
        """A user-typed product name with no catalog backing."""
        return cls(title=name.strip(), score=100.0)

    def to_product(self, expiration_days: Optional[int] = None) -> ProductCreate:
        return ProductCreate(
            name=self.title,
            image_url=self.image_url,
            expiration_days=expiration_days,
            catalog_source_id=self.external_id,
        )
