"""Receipt line -> canonical product resolution."""
import asyncio
from typing import Dict, Optional, Protocol, Sequence
import uuid

from sqlalchemy.exc import SQLAlchemyError

from .error_handlers import InvalidTransitionError
from .logging_config import get_logger
from .schemas.product import CatalogCandidate
from .schemas.receipt import ReceiptLine
from .schemas.resolution import ResolutionKind, ResolutionState

logger = get_logger("resolver")


class AliasLookup(Protocol):
    async def get(self, receipt_text: str) -> Optional[uuid.UUID]: ...


class CatalogSearch(Protocol):
    async def search(self, query: str) -> list[CatalogCandidate]: ...


class ProductIdentityResolver:
    """
    Read-only half of reconciliation. Nothing here writes: aliases and
    products are only created when a session commits.
    """

    def __init__(self, aliases: AliasLookup, catalog: CatalogSearch, concurrency: int = 8):
        self._aliases = aliases
        self._catalog = catalog
        self._concurrency = max(1, concurrency)

    async def resolve(self, line: ReceiptLine) -> ResolutionState:
        try:
            product_id = await self._aliases.get(line.text)
        except SQLAlchemyError as exc:
            logger.warning(f"[RESOLVE] Alias lookup failed for line {line.index} ({line.text!r}): {exc}")
            return ResolutionState.unknown()
        if product_id is None:
            return ResolutionState.unknown()
        return ResolutionState.known(product_id)

    async def resolve_all(self, lines: Sequence[ReceiptLine]) -> Dict[int, ResolutionState]:
        """Resolve every line concurrently; keyed by line index."""
        sem = asyncio.Semaphore(self._concurrency)

        async def _one(line: ReceiptLine) -> ResolutionState:
            async with sem:
                return await self.resolve(line)

        states = await asyncio.gather(*(_one(line) for line in lines))
        return {line.index: state for line, state in zip(lines, states)}

    async def search(self, text: str) -> list[CatalogCandidate]:
        """Ranked catalog candidates; an empty list when the catalog is down."""
        return await self._catalog.search(text)

    @staticmethod
    def select(current: ResolutionState, candidate: Optional[CatalogCandidate]) -> ResolutionState:
        """
        Unknown/Selected -> Selected(candidate), or back to Unknown on None.
        Known lines are settled by their alias and cannot be re-pointed.
        """
        if current.kind == ResolutionKind.KNOWN:
            raise InvalidTransitionError(
                "Line is already resolved by an existing alias",
                product_id=str(current.product_id),
            )
        if current.kind == ResolutionKind.PENDING:
            raise InvalidTransitionError("Line has not been resolved yet")
        if candidate is None:
            return ResolutionState.unknown()
        return ResolutionState.selected(candidate)
