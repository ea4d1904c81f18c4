from fastapi import APIRouter, Depends, Query

from app.api.deps import get_location_index
from app.services.locations import LocationIndex

router = APIRouter(prefix="/locations", tags=["locations"])


@router.get("/search")
async def search_locations(
    q: str = Query("", description="City, state or ZIP fragment"),
    limit: int = Query(200, ge=1, le=500),
    index: LocationIndex = Depends(get_location_index),
):
    return index.search(q, limit)


@router.get("/popular")
async def popular_locations(
    limit: int = Query(200, ge=1, le=200),
    index: LocationIndex = Depends(get_location_index),
):
    return index.popular_locations(limit)
