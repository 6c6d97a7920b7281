"""
Nearby Routes

GET /nearby?lat=&lng=&radius=&type= - approved properties, messes and points
of interest within `radius` meters, grouped by kind, nearest first.

Distances use the planar approximation in app.services.geo; entities without
coordinates are included with distance=null.
"""

from fastapi import APIRouter, Depends, Query

from app.db.mongodb import MongoPool, get_pool
from app.services.geo import filter_nearby
from app.services.mongo_service import PLACE_GROUPS, PUBLIC_FILTER, ListingService, PlaceService, serialize_docs
from app.schemas.schemas import NearbyType

router = APIRouter(tags=["Nearby"])

PER_GROUP_LIMIT = 20


@router.get("/nearby")
async def nearby(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    radius: float = Query(5000, gt=0, description="Radius in meters"),
    type: NearbyType = Query(NearbyType.all),
    pool: MongoPool = Depends(get_pool),
):
    def wanted(kind: NearbyType) -> bool:
        return type in (NearbyType.all, kind)

    results = {}
    if wanted(NearbyType.property):
        candidates = ListingService(pool, "properties").find(dict(PUBLIC_FILTER))
        results["properties"] = serialize_docs(filter_nearby(candidates, lat, lng, radius, PER_GROUP_LIMIT))
    if wanted(NearbyType.mess):
        candidates = ListingService(pool, "messes").find(dict(PUBLIC_FILTER))
        results["messes"] = serialize_docs(filter_nearby(candidates, lat, lng, radius, PER_GROUP_LIMIT))

    places = PlaceService(pool)
    for group, kind in (
        ("restaurants", NearbyType.restaurant),
        ("hospitals", NearbyType.hospital),
        ("transport", NearbyType.transport),
        ("colleges", NearbyType.college),
    ):
        if wanted(kind):
            candidates = places.find_by_types(PLACE_GROUPS[group])
            results[group] = serialize_docs(filter_nearby(candidates, lat, lng, radius, PER_GROUP_LIMIT))

    return results
