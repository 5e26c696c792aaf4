"""
Household inventory endpoints.
"""
from datetime import date
from typing import Optional
import uuid
from fastapi import APIRouter, Depends, Query

from pantry.api.deps import get_inventory_store
from pantry.inventory import group_by_expiry
from pantry.schemas.inventory import InventoryOverview
from pantry.stores import InventoryStore

router = APIRouter(prefix="/houses", tags=["Houses"])


@router.get("/{house_id}/inventory", response_model=InventoryOverview)
async def get_house_inventory(
    house_id: uuid.UUID,
    today: Optional[date] = Query(None, description="Reference date, defaults to today"),
    store: InventoryStore = Depends(get_inventory_store),
):
    """Household inventory grouped into expired / today / tomorrow / later."""
    items = await store.list_for_house(house_id)
    return InventoryOverview(house_id=house_id, sections=group_by_expiry(items, today))
