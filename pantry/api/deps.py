"""
Shared dependencies for the API routers.
"""
from functools import lru_cache
from typing import Callable, Dict, Optional
import time
import uuid

from pantry.catalog import CatalogClient
from pantry.core.config import get_settings
from pantry.core.database import get_session_factory
from pantry.error_handlers import ResourceNotFoundError
from pantry.logging_config import get_logger
from pantry.session import ReconciliationSession, ScanServices
from pantry.shelf_life import ShelfLifeEstimator
from pantry.stores import AliasStore, InventoryStore, ProductRegistry

logger = get_logger("api.deps")


class ScanRegistry:
    """
    In-memory scan sessions, keyed by session id.

    Sessions idle for longer than `ttl_seconds` are cancelled and dropped
    the next time the registry is touched. Nothing is lost: an abandoned
    session has written nothing, and a committed one is already stored.
    """

    def __init__(self, ttl_seconds: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else get_settings().scan_session_ttl
        self._clock = clock
        self._sessions: Dict[uuid.UUID, ReconciliationSession] = {}
        self._touched: Dict[uuid.UUID, float] = {}

    def add(self, session: ReconciliationSession) -> None:
        self.purge_expired()
        self._sessions[session.id] = session
        self._touched[session.id] = self._clock()

    def get(self, session_id: uuid.UUID) -> ReconciliationSession:
        self.purge_expired()
        session = self._sessions.get(session_id)
        if session is None:
            raise ResourceNotFoundError("Scan session", session_id)
        self._touched[session_id] = self._clock()
        return session

    def discard(self, session_id: uuid.UUID) -> ReconciliationSession:
        session = self.get(session_id)
        del self._sessions[session_id]
        del self._touched[session_id]
        return session

    def purge_expired(self) -> int:
        """Drop idle sessions; returns how many were removed."""
        cutoff = self._clock() - self.ttl_seconds
        expired = [
            sid for sid, touched in self._touched.items()
            if touched <= cutoff and not self._sessions[sid].committing
        ]
        for sid in expired:
            session = self._sessions.pop(sid)
            del self._touched[sid]
            if not session.cancelled:
                session.cancel()
        if expired:
            logger.info(f"[SCAN] Evicted {len(expired)} idle scan sessions")
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)


_registry = ScanRegistry()


def get_scan_registry() -> ScanRegistry:
    return _registry


@lru_cache(maxsize=1)
def get_scan_services() -> ScanServices:
    session_factory = get_session_factory()
    return ScanServices(
        aliases=AliasStore(session_factory),
        products=ProductRegistry(session_factory),
        inventory=InventoryStore(session_factory),
        catalog=CatalogClient(),
        shelf_life=ShelfLifeEstimator(),
        settings=get_settings(),
    )


def get_inventory_store() -> InventoryStore:
    return InventoryStore(get_session_factory())
