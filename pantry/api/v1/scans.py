"""
Scan session endpoints: the caller-facing reconciliation flow over HTTP.
"""
from typing import Optional
import uuid
from fastapi import APIRouter, Depends, Query, status

from pantry.api.deps import ScanRegistry, get_scan_registry, get_scan_services
from pantry.logging_config import get_logger
from pantry.schemas.inventory import CommitResult
from pantry.schemas.product import CatalogCandidate
from pantry.schemas.scan import (
    AutoSelectRequest,
    CommitRequest,
    ScanCreate,
    ScanLineView,
    ScanResponse,
    SelectionUpdate,
)
from pantry.session import ReconciliationSession, ScanServices

logger = get_logger("api.scans")

router = APIRouter(prefix="/scans", tags=["Scans"])


@router.post("", response_model=ScanResponse, status_code=status.HTTP_201_CREATED)
async def create_scan(
    payload: ScanCreate,
    services: ScanServices = Depends(get_scan_services),
    registry: ScanRegistry = Depends(get_scan_registry),
):
    """
    Start a scan session from OCR rows and resolve every line against
    known aliases.

    Returns 422 when the image is a payment slip or has no item lines.
    """
    session = ReconciliationSession.start(payload.observations, services)
    await session.resolve_all()
    registry.add(session)
    return session.view()


@router.get("/{scan_id}", response_model=ScanResponse)
async def get_scan(
    scan_id: uuid.UUID,
    registry: ScanRegistry = Depends(get_scan_registry),
):
    """Current per-line state of a scan session."""
    return registry.get(scan_id).view()


@router.post("/{scan_id}/resolve", response_model=ScanResponse)
async def resolve_scan(
    scan_id: uuid.UUID,
    registry: ScanRegistry = Depends(get_scan_registry),
):
    """Re-check unresolved lines against the alias store."""
    session = registry.get(scan_id)
    await session.resolve_all()
    return session.view()


@router.get("/{scan_id}/lines/{index}/candidates", response_model=list[CatalogCandidate])
async def search_candidates(
    scan_id: uuid.UUID,
    index: int,
    q: Optional[str] = Query(None, min_length=1, max_length=200),
    registry: ScanRegistry = Depends(get_scan_registry),
):
    """
    Catalog candidates for a line, best match first.

    - **q**: optional query replacing the receipt text
    """
    session = registry.get(scan_id)
    session.state(index)  # 404 for unknown lines
    return await session.search(q if q else index)


@router.put("/{scan_id}/lines/{index}/selection", response_model=ScanLineView)
async def update_selection(
    scan_id: uuid.UUID,
    index: int,
    payload: SelectionUpdate,
    registry: ScanRegistry = Depends(get_scan_registry),
):
    """Select a candidate, type a product name, or clear the selection."""
    session = registry.get(scan_id)
    if payload.manual_name is not None:
        state = session.select_manual(index, payload.manual_name)
    else:
        state = session.select(index, payload.candidate)
    line = next(line for line in session.lines if line.index == index)
    return ScanLineView(index=index, text=line.text, state=state, committed=session.is_committed(index))


@router.post("/{scan_id}/auto-select", response_model=ScanResponse)
async def auto_select(
    scan_id: uuid.UUID,
    payload: Optional[AutoSelectRequest] = None,
    registry: ScanRegistry = Depends(get_scan_registry),
):
    """Select the closest catalog match for unknown lines above a score."""
    session = registry.get(scan_id)
    await session.auto_select(payload.min_score if payload else None)
    return session.view()


@router.post("/{scan_id}/commit", response_model=CommitResult)
async def commit_scan(
    scan_id: uuid.UUID,
    payload: CommitRequest,
    registry: ScanRegistry = Depends(get_scan_registry),
):
    """
    Store resolved lines in the household inventory.

    Unresolved lines are skipped. Failed lines are reported and can be
    retried by committing again.
    """
    session = registry.get(scan_id)
    result = await session.commit(payload.house_id, payload.purchase_date)
    logger.info(
        f"[REQUEST] Commit scan {scan_id}: {len(result.succeeded)} ok, {len(result.failed)} failed"
    )
    return result


@router.delete("/{scan_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_scan(
    scan_id: uuid.UUID,
    registry: ScanRegistry = Depends(get_scan_registry),
):
    """Abandon a scan session. Nothing has been stored before commit."""
    registry.discard(scan_id).cancel()
