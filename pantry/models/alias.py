"""
Alias model: raw receipt text mapped to a canonical product.
"""
import uuid
from sqlalchemy import String, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pantry.core.database import Base


class ProductAlias(Base):
    """Receipt text as printed by a store, pointing at one product."""

    __tablename__ = "product_receipt_names"

    receipt_text: Mapped[str] = mapped_column(String(500), nullable=False, unique=True)
    product_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False
    )

    # Relationships
    product = relationship("Product", back_populates="aliases")

    __table_args__ = (
        Index("idx_product_receipt_names_product", "product_id"),
    )

    def __repr__(self) -> str:
        return f"<ProductAlias(receipt_text={self.receipt_text!r}, product_id={self.product_id})>"
