"""
Product model: the canonical, deduplicated identity of a grocery item.
"""
from typing import Optional
from sqlalchemy import String, Integer, Text, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pantry.core.database import Base


class Product(Base):
    """Canonical product shared by all households."""

    __tablename__ = "products"

    # Product identification
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    # Normalized name; the identity key used for fetch-or-create
    name_key: Mapped[str] = mapped_column(String(500), nullable=False, unique=True)
    catalog_source_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Additional information
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    expiration_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Relationships
    aliases = relationship("ProductAlias", back_populates="product")
    inventories = relationship("HouseInventory", back_populates="product")

    # Indexes
    __table_args__ = (
        Index("idx_products_catalog_source", "catalog_source_id"),
    )

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, name={self.name}, expiration_days={self.expiration_days})>"
