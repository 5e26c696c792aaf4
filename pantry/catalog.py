"""Read-only client for the supermarket product search API."""
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import httpx

from .core.config import settings
from .error_handlers import CatalogUnavailableError
from .logging_config import get_logger
from .match import rank_candidates
from .schemas.product import CatalogCandidate

logger = get_logger("catalog")

DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0",
    "Accept": "application/json",
}


class CatalogClient:
    """
    Searches the external grocery catalog. Transport and decoding errors
    never escape `search`; they degrade to an empty result.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        limit: Optional[int] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = (base_url or settings.catalog_base_url).rstrip("/")
        self.limit = limit or settings.catalog_search_limit
        self.timeout = timeout or settings.catalog_timeout
        self._client = client

    async def search(self, query: str) -> list[CatalogCandidate]:
        if not query or not query.strip():
            return []
        try:
            payload = await self._fetch(query.strip())
        except CatalogUnavailableError as exc:
            logger.warning(f"[CATALOG] Search for {query!r} degraded to no results: {exc.message}")
            return []

        candidates = parse_search_response(payload)
        logger.debug(f"[CATALOG] {len(candidates)} available products for {query!r}")
        return rank_candidates(query, candidates)

    async def _fetch(self, query: str) -> Any:
        url = f"{self.base_url}/search"
        params = {"q": query, "offset": 0, "limit": self.limit}
        try:
            if self._client is not None:
                response = await self._client.get(url, params=params, headers=DEFAULT_HEADERS)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(url, params=params, headers=DEFAULT_HEADERS)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as exc:
            raise CatalogUnavailableError(
                f"HTTP {exc.response.status_code}", original_error=str(exc)
            ) from exc
        except httpx.HTTPError as exc:
            raise CatalogUnavailableError(type(exc).__name__, original_error=str(exc)) from exc
        except ValueError as exc:
            raise CatalogUnavailableError("invalid JSON", original_error=str(exc)) from exc


def _price_from_cents(raw: Any) -> Optional[Decimal]:
    if raw is None:
        return None
    try:
        return (Decimal(str(raw)) / 100).quantize(Decimal("0.01"))
    except (InvalidOperation, ValueError):
        return None


def parse_search_response(payload: Any) -> list[CatalogCandidate]:
    """
    {"products": {"data": [{"id", "title", "available",
      "prices": {"price": {"amount": 109}},
      "imageInfo": {"primaryView": [{"url": ...}]}}]}}
    Unavailable and malformed entries are skipped.
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("products"), dict):
        return []
    data = payload["products"].get("data") or []
    if not isinstance(data, list):
        return []

    out: list[CatalogCandidate] = []
    for item in data:
        try:
            candidate = _parse_item(item)
        except (AttributeError, KeyError, IndexError, TypeError, ValueError) as exc:
            logger.debug(f"[CATALOG] Skipped malformed product entry: {exc}")
            continue
        if candidate is not None:
            out.append(candidate)
    return out


def _parse_item(item: Any) -> Optional[CatalogCandidate]:
    if not isinstance(item, dict):
        return None
    title = item.get("title")
    if not isinstance(title, str) or not title.strip() or item.get("available") is False:
        return None

    price = _price_from_cents(((item.get("prices") or {}).get("price") or {}).get("amount"))
    views = (item.get("imageInfo") or {}).get("primaryView") or []
    image_url = views[0].get("url") if isinstance(views, list) and views and isinstance(views[0], dict) else None

    external_id = item.get("id")
    return CatalogCandidate(
        external_id=str(external_id) if external_id is not None else None,
        title=title.strip(),
        image_url=image_url if isinstance(image_url, str) else None,
        price=price,
    )
