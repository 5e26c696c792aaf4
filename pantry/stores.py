"""
Storage boundary: alias cache, shared product registry and household
inventory, all on top of the async session factory.

Inserts that must not duplicate (aliases, products) are plain INSERTs
guarded by a unique constraint. Losing the race raises IntegrityError,
after which the winner's row is read back. There is no read-then-write
window.
"""
from typing import Optional, Sequence
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .logging_config import get_logger
from .match import normalize_name
from .models import HouseInventory, Product, ProductAlias
from .schemas.inventory import InventoryEntry, InventoryItem, RowResult
from .schemas.product import ProductCreate, ProductRecord

logger = get_logger("stores")


class AliasStore:
    """receipt text -> product id; first writer wins, never overwritten."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get(self, receipt_text: str) -> Optional[uuid.UUID]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(ProductAlias.product_id).where(ProductAlias.receipt_text == receipt_text)
            )
            return result.scalar_one_or_none()

    async def put_if_absent(self, receipt_text: str, product_id: uuid.UUID) -> bool:
        """Returns True when this call created the mapping."""
        try:
            async with self._session_factory() as session:
                session.add(ProductAlias(receipt_text=receipt_text, product_id=product_id))
                await session.commit()
            return True
        except IntegrityError:
            existing = await self.get(receipt_text)
            if existing is None:
                # Not a duplicate key; most likely a dangling product id
                raise
            if existing != product_id:
                logger.info(
                    f"[ALIAS] Kept existing mapping {receipt_text!r} -> {existing} "
                    f"(ignored {product_id})"
                )
            return False


class ProductRegistry:
    """Shared canonical products, keyed by normalized name."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get(self, product_id: uuid.UUID) -> Optional[ProductRecord]:
        async with self._session_factory() as session:
            product = await session.get(Product, product_id)
            return ProductRecord.model_validate(product) if product else None

    async def find_by_name(self, name: str) -> Optional[ProductRecord]:
        key = normalize_name(name)
        if not key:
            return None
        async with self._session_factory() as session:
            result = await session.execute(select(Product).where(Product.name_key == key))
            product = result.scalar_one_or_none()
            return ProductRecord.model_validate(product) if product else None

    async def get_or_create(self, data: ProductCreate) -> tuple[ProductRecord, bool]:
        """
        Insert the product unless one with the same normalized name exists.
        Returns (record, created).
        """
        key = normalize_name(data.name)
        row = Product(
            name=data.name.strip(),
            name_key=key,
            image_url=data.image_url,
            expiration_days=data.expiration_days,
            catalog_source_id=data.catalog_source_id,
        )
        try:
            async with self._session_factory() as session:
                session.add(row)
                await session.commit()
                return ProductRecord.model_validate(row), True
        except IntegrityError:
            existing = await self.find_by_name(data.name)
            if existing is None:
                raise
            logger.debug(f"[PRODUCT] Concurrent insert for {key!r}; reusing {existing.id}")
            return existing, False

    async def create(self, data: ProductCreate) -> ProductRecord:
        record, _ = await self.get_or_create(data)
        return record


class InventoryStore:
    """Household inventory rows."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def insert_inventory_batch(self, entries: Sequence[InventoryEntry]) -> list[RowResult]:
        """
        Insert all rows in one transaction. If that fails, fall back to one
        transaction per row so a bad row only fails itself.
        """
        if not entries:
            return []

        rows = [self._to_row(e) for e in entries]
        try:
            async with self._session_factory() as session:
                session.add_all(rows)
                await session.commit()
            return [RowResult(entry=e, ok=True, inventory_id=r.id) for e, r in zip(entries, rows)]
        except SQLAlchemyError as exc:
            logger.warning(f"[COMMIT] Batch insert of {len(entries)} rows failed, retrying per row: {exc}")

        results: list[RowResult] = []
        for entry in entries:
            results.append(await self._insert_one(entry))
        return results

    async def _insert_one(self, entry: InventoryEntry) -> RowResult:
        row = self._to_row(entry)
        try:
            async with self._session_factory() as session:
                session.add(row)
                await session.commit()
            return RowResult(entry=entry, ok=True, inventory_id=row.id)
        except SQLAlchemyError as exc:
            logger.warning(f"[COMMIT] Row insert failed for product {entry.product_id}: {exc}")
            return RowResult(entry=entry, ok=False, error=str(exc))

    @staticmethod
    def _to_row(entry: InventoryEntry) -> HouseInventory:
        return HouseInventory(
            id=uuid.uuid4(),
            house_id=entry.house_id,
            product_id=entry.product_id,
            quantity=entry.quantity,
            purchase_date=entry.purchase_date,
            best_before_date=entry.best_before_date,
        )

    async def list_for_house(self, house_id: uuid.UUID) -> list[InventoryItem]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(HouseInventory, Product.name, Product.image_url)
                .join(Product, HouseInventory.product_id == Product.id)
                .where(HouseInventory.house_id == house_id)
                .order_by(HouseInventory.best_before_date, Product.name)
            )
            return [
                InventoryItem(
                    id=inv.id,
                    house_id=inv.house_id,
                    product_id=inv.product_id,
                    product_name=name,
                    image_url=image_url,
                    quantity=inv.quantity,
                    purchase_date=inv.purchase_date,
                    best_before_date=inv.best_before_date,
                )
                for inv, name, image_url in result.all()
            ]
