"""
Review Routes

POST /reviews - rate an approved property or mess (1-5); resubmitting replaces
                the caller's earlier review
GET  /reviews?itemType=&itemId= - reviews newest first, with averageRating
"""

import logging
import math

from fastapi import APIRouter, Depends, Query

from app.core.auth import require
from app.core.policy import Action
from app.db.mongodb import MongoPool, get_pool
from app.services.mongo_service import ReviewService, serialize_doc, serialize_docs
from app.schemas.schemas import ItemType, ReviewCreate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reviews", tags=["Reviews"])


@router.post("")
async def submit_review(
    body: ReviewCreate,
    user: dict = Depends(require(Action.engage_listing)),
    pool: MongoPool = Depends(get_pool),
):
    review, created = ReviewService(pool).submit(
        user["user_id"], body.itemType.value, body.itemId, body.rating, body.comment
    )
    logger.info("Review by %s on %s %s (rating %s)", user["user_id"], body.itemType.value, body.itemId, body.rating)
    return {
        "success": True,
        "message": "Review submitted successfully" if created else "Review updated successfully",
        "review": serialize_doc(review),
    }


@router.get("")
async def list_reviews(
    item_type: ItemType = Query(..., alias="itemType"),
    item_id: str = Query(..., alias="itemId"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    pool: MongoPool = Depends(get_pool),
):
    result = ReviewService(pool).list_for_item(item_type.value, item_id, page, limit)
    return {
        "reviews": serialize_docs(result["reviews"]),
        "averageRating": round(result["averageRating"], 1),
        "pagination": {
            "total": result["total"],
            "pages": math.ceil(result["total"] / limit),
            "current": page,
            "limit": limit,
        },
    }
