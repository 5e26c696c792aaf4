"""
Household inventory model: one dated unit of a product in a house.
"""
import uuid
from datetime import date
from sqlalchemy import Integer, Date, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pantry.core.database import Base


class HouseInventory(Base):
    """Inventory row owned by a household."""

    __tablename__ = "house_inventories"

    # Households live in an external membership service; no FK here
    house_id: Mapped[uuid.UUID] = mapped_column(nullable=False)
    product_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False
    )

    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    purchase_date: Mapped[date] = mapped_column(Date, nullable=False)
    best_before_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Relationships
    product = relationship("Product", back_populates="inventories")

    __table_args__ = (
        Index("idx_house_inventories_house", "house_id"),
        Index("idx_house_inventories_best_before", "house_id", "best_before_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<HouseInventory(id={self.id}, house_id={self.house_id}, "
            f"product_id={self.product_id}, best_before={self.best_before_date})>"
        )
