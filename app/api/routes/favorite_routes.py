"""
Favorite Routes

GET    /favorites - ids of the current user's saved properties
POST   /favorites - save a property
DELETE /favorites?propertyId= - remove a saved property
"""

from fastapi import APIRouter, Depends, Query

from app.core.auth import require
from app.core.policy import Action
from app.db.mongodb import MongoPool, get_pool
from app.services.mongo_service import FavoriteService
from app.schemas.schemas import FavoriteRequest

router = APIRouter(prefix="/favorites", tags=["Favorites"])


@router.get("")
async def list_favorites(
    user: dict = Depends(require(Action.engage_listing)),
    pool: MongoPool = Depends(get_pool),
):
    return {"favorites": FavoriteService(pool).property_ids(user["user_id"])}


@router.post("")
async def add_favorite(
    body: FavoriteRequest,
    user: dict = Depends(require(Action.engage_listing)),
    pool: MongoPool = Depends(get_pool),
):
    if not FavoriteService(pool).add(user["user_id"], body.propertyId):
        return {"message": "Already in favorites", "alreadyExists": True}
    return {"message": "Added to favorites", "alreadyExists": False}


@router.delete("")
async def remove_favorite(
    property_id: str = Query(..., alias="propertyId"),
    user: dict = Depends(require(Action.engage_listing)),
    pool: MongoPool = Depends(get_pool),
):
    FavoriteService(pool).remove(user["user_id"], property_id)
    return {"message": "Removed from favorites"}
