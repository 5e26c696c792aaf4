"""Shelf-life lookup for newly created products, one request per name."""
import asyncio
from datetime import date, timedelta
from typing import Dict, Optional, Protocol

import httpx

from .core.config import settings
from .error_handlers import EstimationUnavailableError
from .logging_config import get_logger
from .match import normalize_name

logger = get_logger("expiry")


class ShelfLifeSource(Protocol):
    async def estimate(self, product_name: str) -> Optional[int]: ...


class ExpiryEstimator:
    """
    Memoizing, single-flight wrapper around a shelf-life source.

    Lives as long as one session. Concurrent callers asking about the same
    normalized name await the same task; later callers get the cached value.
    A failed lookup is cached as None too, so a flaky service is not hit
    again for the same name within the session.
    """

    def __init__(self, source: ShelfLifeSource, default_days: Optional[int] = None):
        self._source = source
        self.default_days = default_days or settings.default_shelf_life_days
        self._tasks: Dict[str, asyncio.Task] = {}

    async def estimate(self, product_name: str) -> Optional[int]:
        key = normalize_name(product_name)
        task = self._tasks.get(key)
        if task is None:
            task = asyncio.ensure_future(self._lookup(product_name))
            self._tasks[key] = task
        # A cancelled waiter must not cancel the lookup other lines share
        return await asyncio.shield(task)

    async def _lookup(self, product_name: str) -> Optional[int]:
        try:
            days = await self._source.estimate(product_name)
        except (EstimationUnavailableError, httpx.HTTPError, ValueError) as exc:
            logger.warning(f"[EXPIRY] Estimation failed for {product_name!r}: {exc}")
            return None
        except Exception:
            logger.exception(f"[EXPIRY] Shelf-life source crashed for {product_name!r}")
            return None
        if not isinstance(days, int) or days <= 0:
            return None
        return days

    def best_before(self, purchase_date: date, days: Optional[int]) -> date:
        """The default applies to the date only; it is never stored on the product."""
        return purchase_date + timedelta(days=days if days else self.default_days)

    @property
    def lookups(self) -> int:
        return len(self._tasks)
