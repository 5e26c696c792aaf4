"""
Reconciliation session: the state machine a UI (or the HTTP adapter)
drives from scanned OCR rows to committed inventory.

Everything before `commit` is in memory only; abandoning a session
needs no cleanup.
"""
import asyncio
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Protocol, Union
import uuid

from .core.config import Settings, settings as default_settings
from .error_handlers import (
    InvalidTransitionError,
    NoItemsFoundError,
    NotAReceiptError,
    ResourceNotFoundError,
)
from .expiry import ExpiryEstimator, ShelfLifeSource
from .inventory import AliasWriter, InventoryCommitter, InventoryWriter, ProductStore
from .logging_config import get_logger
from .match import best_candidate
from .receipt_lines import extract_receipt_lines, markers_from_settings
from .resolver import AliasLookup, CatalogSearch, ProductIdentityResolver
from .schemas.inventory import CommitResult
from .schemas.product import CatalogCandidate
from .schemas.receipt import ExtractionStatus, OcrObservation, ReceiptLine, ReceiptMarkers
from .schemas.resolution import ResolutionKind, ResolutionState
from .schemas.scan import ScanLineView, ScanResponse, SessionStatus

logger = get_logger("session")

LineRef = Union[ReceiptLine, int]


class AliasStoreLike(AliasLookup, AliasWriter, Protocol):
    pass


@dataclass
class ScanServices:
    """Collaborators shared by every session."""
    aliases: AliasStoreLike
    products: ProductStore
    inventory: InventoryWriter
    catalog: CatalogSearch
    shelf_life: ShelfLifeSource
    settings: Settings = field(default_factory=lambda: default_settings)
    markers: Optional[ReceiptMarkers] = None

    def receipt_markers(self) -> ReceiptMarkers:
        return self.markers or markers_from_settings(self.settings)


class ReconciliationSession:
    """Per-scan state: the extracted lines and one ResolutionState per line."""

    def __init__(self, lines: Iterable[ReceiptLine], services: ScanServices):
        self.id = uuid.uuid4()
        self.lines: List[ReceiptLine] = list(lines)
        self._by_index: Dict[int, ReceiptLine] = {line.index: line for line in self.lines}
        self._states: Dict[int, ResolutionState] = {
            line.index: ResolutionState.pending() for line in self.lines
        }
        self._committed: set[int] = set()
        self._cancelled = False
        self._commit_lock = asyncio.Lock()

        self.services = services
        cfg = services.settings
        self.resolver = ProductIdentityResolver(
            services.aliases, services.catalog, concurrency=cfg.resolve_concurrency
        )
        # One estimator per session: shelf life is asked at most once per new name
        self.expiry = ExpiryEstimator(services.shelf_life, default_days=cfg.default_shelf_life_days)
        self.committer = InventoryCommitter(
            services.products,
            services.aliases,
            services.inventory,
            self.expiry,
            concurrency=cfg.commit_concurrency,
        )

    @classmethod
    def start(
        cls,
        observations: Iterable[Union[OcrObservation, str]],
        services: ScanServices,
    ) -> "ReconciliationSession":
        """Extract item lines; a slip or an empty scan ends the flow here."""
        result = extract_receipt_lines(observations, services.receipt_markers())
        if result.status == ExtractionStatus.NOT_A_RECEIPT:
            logger.info("[SCAN] Rejected scan: not an itemized receipt")
            raise NotAReceiptError()
        if result.status == ExtractionStatus.NO_ITEMS_FOUND:
            logger.info("[SCAN] Rejected scan: no item lines")
            raise NoItemsFoundError()

        session = cls(result.lines, services)
        logger.info(f"[SCAN] Session {session.id} started with {len(session.lines)} lines")
        return session

    # --- state ---------------------------------------------------------

    @property
    def states(self) -> Dict[int, ResolutionState]:
        return dict(self._states)

    def state(self, line: LineRef) -> ResolutionState:
        return self._states[self._line(line).index]

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def committing(self) -> bool:
        return self._commit_lock.locked()

    @property
    def status(self) -> SessionStatus:
        if not self.lines:
            return SessionStatus.EMPTY
        open_lines = [i for i in self._states if i not in self._committed]
        if self._committed and all(
            not self._states[i].is_committable for i in open_lines
        ):
            return SessionStatus.COMMITTED
        if all(self._states[i].is_committable for i in open_lines):
            return SessionStatus.READY
        return SessionStatus.NEEDS_REVIEW

    def is_committed(self, line: LineRef) -> bool:
        return self._line(line).index in self._committed

    def view(self) -> ScanResponse:
        return ScanResponse(
            id=self.id,
            status=self.status,
            lines=[
                ScanLineView(
                    index=line.index,
                    text=line.text,
                    state=self._states[line.index],
                    committed=line.index in self._committed,
                )
                for line in self.lines
            ],
        )

    # --- resolution ----------------------------------------------------

    async def resolve(self, line: LineRef) -> ResolutionState:
        self._ensure_open()
        line = self._line(line)
        current = self._states[line.index]
        if current.kind in (ResolutionKind.KNOWN, ResolutionKind.SELECTED):
            return current
        state = await self.resolver.resolve(line)
        self._states[line.index] = state
        return state

    async def resolve_all(self) -> Dict[int, ResolutionState]:
        """Resolve Pending/Unknown lines; selections and known lines stay put."""
        self._ensure_open()
        todo = [
            line for line in self.lines
            if self._states[line.index].kind in (ResolutionKind.PENDING, ResolutionKind.UNKNOWN)
        ]
        resolved = await self.resolver.resolve_all(todo)
        self._states.update(resolved)
        known = sum(1 for s in self._states.values() if s.kind == ResolutionKind.KNOWN)
        logger.info(f"[SCAN] Session {self.id}: {known}/{len(self.lines)} lines known")
        return self.states

    async def search(self, query: Union[LineRef, str]) -> list[CatalogCandidate]:
        """Catalog candidates for a line (its receipt text) or a free query."""
        text = query if isinstance(query, str) else self._line(query).text
        return await self.resolver.search(text)

    def select(self, line: LineRef, candidate: Optional[CatalogCandidate]) -> ResolutionState:
        self._ensure_open()
        line = self._line(line)
        if line.index in self._committed:
            raise InvalidTransitionError("Line is already committed", line_index=line.index)
        if self.committing:
            raise InvalidTransitionError("A commit is in progress", line_index=line.index)
        state = self.resolver.select(self._states[line.index], candidate)
        self._states[line.index] = state
        return state

    def select_manual(self, line: LineRef, name: str) -> ResolutionState:
        """Force a line through with a typed product name."""
        if not name or not name.strip():
            raise ValueError("Product name must not be empty")
        return self.select(line, CatalogCandidate.manual(name))

    async def auto_select(self, min_score: Optional[float] = None) -> Dict[int, ResolutionState]:
        """Select the top catalog hit for Unknown lines that match well enough."""
        self._ensure_open()
        cutoff = self.services.settings.auto_select_score if min_score is None else min_score
        unknown = [
            line for line in self.lines
            if self._states[line.index].kind == ResolutionKind.UNKNOWN
            and line.index not in self._committed
        ]

        async def _pick(line: ReceiptLine) -> Optional[CatalogCandidate]:
            candidates = await self.resolver.search(line.text)
            cand, _ = best_candidate(line.text, candidates, score_cutoff=cutoff)
            return cand

        picks = await asyncio.gather(*(_pick(line) for line in unknown))
        for line, cand in zip(unknown, picks):
            # The user may have picked something while we were searching
            if cand is not None and self._states[line.index].kind == ResolutionKind.UNKNOWN:
                self._states[line.index] = ResolutionState.selected(cand)
        return self.states

    # --- commit ----------------------------------------------------------

    async def commit(self, house_id: uuid.UUID, purchase_date: Optional[date] = None) -> CommitResult:
        """
        Store every Known/Selected line not yet committed by this session.
        Calling again retries only what failed before.
        """
        self._ensure_open()
        async with self._commit_lock:
            pending = [line for line in self.lines if line.index not in self._committed]
            result = await self.committer.commit(pending, dict(self._states), house_id, purchase_date)
            for ok in result.succeeded:
                self._committed.add(ok.line.index)
                # The alias now exists; future scans will see this line as known
                self._states[ok.line.index] = ResolutionState.known(ok.product_id)
            return result

    def cancel(self) -> None:
        self._cancelled = True
        logger.info(f"[SCAN] Session {self.id} cancelled")

    # --- helpers ---------------------------------------------------------

    def _line(self, ref: LineRef) -> ReceiptLine:
        index = ref.index if isinstance(ref, ReceiptLine) else ref
        line = self._by_index.get(index)
        if line is None:
            raise ResourceNotFoundError("Receipt line", index)
        return line

    def _ensure_open(self) -> None:
        if self._cancelled:
            raise InvalidTransitionError("Session was cancelled", session_id=str(self.id))
