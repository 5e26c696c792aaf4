"""Commit resolved receipt lines into a household inventory."""
import asyncio
from datetime import date, timedelta
from typing import Dict, Iterable, Mapping, Optional, Protocol, Sequence, Tuple
import uuid

from sqlalchemy.exc import SQLAlchemyError

from .error_handlers import AppException, CommitRowFailedError
from .expiry import ExpiryEstimator
from .logging_config import get_logger
from .schemas.inventory import (
    CommitLineResult,
    CommitResult,
    ExpirySection,
    InventoryEntry,
    InventoryItem,
    RowResult,
)
from .schemas.product import CatalogCandidate, ProductCreate, ProductRecord
from .schemas.receipt import ReceiptLine
from .schemas.resolution import ResolutionKind, ResolutionState

logger = get_logger("inventory")


class ProductStore(Protocol):
    async def get(self, product_id: uuid.UUID) -> Optional[ProductRecord]: ...
    async def find_by_name(self, name: str) -> Optional[ProductRecord]: ...
    async def get_or_create(self, data: ProductCreate) -> Tuple[ProductRecord, bool]: ...


class AliasWriter(Protocol):
    async def put_if_absent(self, receipt_text: str, product_id: uuid.UUID) -> bool: ...


class InventoryWriter(Protocol):
    async def insert_inventory_batch(self, entries: Sequence[InventoryEntry]) -> list[RowResult]: ...


class InventoryCommitter:
    """
    Turns Known/Selected lines into inventory rows.

    Lines are prepared concurrently (bounded), each on its own: a failure
    on one line is reported and the rest carry on. Product and alias
    writes are fetch-or-create, so re-running a commit for failed lines
    does not duplicate anything.
    """

    def __init__(
        self,
        products: ProductStore,
        aliases: AliasWriter,
        inventory: InventoryWriter,
        expiry: ExpiryEstimator,
        concurrency: int = 4,
    ):
        self._products = products
        self._aliases = aliases
        self._inventory = inventory
        self._expiry = expiry
        self._concurrency = max(1, concurrency)

    async def commit(
        self,
        lines: Sequence[ReceiptLine],
        states: Mapping[int, ResolutionState],
        house_id: uuid.UUID,
        purchase_date: Optional[date] = None,
    ) -> CommitResult:
        purchase_date = purchase_date or date.today()
        # Selections may change while lines are being prepared
        states = dict(states)
        included = [line for line in lines if states.get(line.index, ResolutionState.pending()).is_committable]
        skipped = len(lines) - len(included)
        logger.info(
            f"[COMMIT] house_id={house_id} lines={len(included)} skipped_unresolved={skipped}"
        )

        sem = asyncio.Semaphore(self._concurrency)

        async def _guarded(line: ReceiptLine) -> CommitLineResult:
            async with sem:
                return await self._prepare_line(line, states[line.index], house_id, purchase_date)

        prepared = await asyncio.gather(*(_guarded(line) for line in included))

        result = CommitResult()
        ready = [p for p in prepared if p.entry is not None]
        result.failed.extend(p for p in prepared if p.entry is None)

        rows = await self._insert(ready)
        for line_result, row in zip(ready, rows):
            if row.ok:
                result.succeeded.append(line_result)
            else:
                err = CommitRowFailedError(line_result.line.index, row.error or "insert failed")
                result.failed.append(line_result.model_copy(update={"entry": None, "error": err.message}))

        result.succeeded.sort(key=lambda r: r.line.index)
        result.failed.sort(key=lambda r: r.line.index)
        logger.info(
            f"[COMMIT] house_id={house_id} succeeded={len(result.succeeded)} failed={len(result.failed)}"
        )
        return result

    async def _insert(self, ready: Sequence[CommitLineResult]) -> list[RowResult]:
        if not ready:
            return []
        entries = [r.entry for r in ready]
        try:
            return await self._inventory.insert_inventory_batch(entries)
        except SQLAlchemyError as exc:
            logger.error(f"[COMMIT] Inventory store unavailable: {exc}")
            return [RowResult(entry=e, ok=False, error=str(exc)) for e in entries]

    async def _prepare_line(
        self,
        line: ReceiptLine,
        state: ResolutionState,
        house_id: uuid.UUID,
        purchase_date: date,
    ) -> CommitLineResult:
        try:
            if state.kind == ResolutionKind.KNOWN:
                product = await self._products.get(state.product_id)
                if product is None:
                    raise CommitRowFailedError(line.index, f"product {state.product_id} does not exist")
            elif state.kind == ResolutionKind.SELECTED and state.candidate is not None:
                product = await self._product_for(state.candidate)
                await self._aliases.put_if_absent(line.text, product.id)
            else:
                raise CommitRowFailedError(line.index, f"line is {state.kind.value}, not resolved")
        except (SQLAlchemyError, AppException) as exc:
            message = exc.message if isinstance(exc, AppException) else str(exc)
            logger.warning(f"[COMMIT] Line {line.index} ({line.text!r}) failed: {message}")
            return CommitLineResult(line=line, error=message)
        except Exception as exc:
            # Reported like any other line failure
            logger.exception(f"[COMMIT] Line {line.index} ({line.text!r}) failed unexpectedly")
            return CommitLineResult(line=line, error=CommitRowFailedError(line.index, str(exc)).message)

        entry = InventoryEntry(
            house_id=house_id,
            product_id=product.id,
            quantity=1,
            purchase_date=purchase_date,
            best_before_date=self._expiry.best_before(purchase_date, product.expiration_days),
        )
        return CommitLineResult(line=line, product_id=product.id, entry=entry)

    async def _product_for(self, candidate: CatalogCandidate) -> ProductRecord:
        existing = await self._products.find_by_name(candidate.title)
        if existing is not None:
            return existing

        # Only brand-new names are estimated
        days = await self._expiry.estimate(candidate.title)
        record, created = await self._products.get_or_create(candidate.to_product(days))
        if created:
            logger.info(f"[COMMIT] Created product {record.name!r} (expiration_days={record.expiration_days})")
        return record


def group_by_expiry(
    items: Iterable[InventoryItem],
    today: Optional[date] = None,
) -> Dict[ExpirySection, list[InventoryItem]]:
    """Bucket inventory rows by best-before date relative to today."""
    today = today or date.today()
    tomorrow = today + timedelta(days=1)
    sections: Dict[ExpirySection, list[InventoryItem]] = {s: [] for s in ExpirySection}
    for item in items:
        if item.best_before_date < today:
            sections[ExpirySection.EXPIRED].append(item)
        elif item.best_before_date == today:
            sections[ExpirySection.TODAY].append(item)
        elif item.best_before_date == tomorrow:
            sections[ExpirySection.TOMORROW].append(item)
        else:
            sections[ExpirySection.LATER].append(item)
    return sections
