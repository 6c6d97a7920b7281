"""
Like Routes

POST /likes - toggle the current user's like on a property or mess
GET  /likes?itemType=&itemId= - like count, plus userLiked for a signed-in caller
GET  /likes/mine - listings the current user liked (public ones only)
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.core.auth import get_optional_user, require
from app.core.policy import Action
from app.db.mongodb import MongoPool, get_pool
from app.services.mongo_service import LikeService, serialize_docs
from app.schemas.schemas import ItemType, LikeRequest

router = APIRouter(prefix="/likes", tags=["Likes"])


@router.post("")
async def toggle_like(
    body: LikeRequest,
    user: dict = Depends(require(Action.engage_listing)),
    pool: MongoPool = Depends(get_pool),
):
    result = LikeService(pool).toggle(user["user_id"], body.itemType.value, body.itemId)
    return {"success": True, **result}


@router.get("")
async def like_status(
    item_type: ItemType = Query(..., alias="itemType"),
    item_id: str = Query(..., alias="itemId"),
    user: Optional[dict] = Depends(get_optional_user),
    pool: MongoPool = Depends(get_pool),
):
    likes = LikeService(pool)
    return {
        "likeCount": likes.count(item_type.value, item_id),
        "userLiked": user is not None and likes.has_liked(user["user_id"], item_type.value, item_id),
    }


@router.get("/mine")
async def my_likes(
    user: dict = Depends(require(Action.engage_listing)),
    pool: MongoPool = Depends(get_pool),
):
    liked = LikeService(pool).liked_listings(user["user_id"])
    return {kind: serialize_docs(docs) for kind, docs in liked.items()}
