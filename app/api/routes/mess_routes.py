"""
Mess Routes

GET  /messes - approved messes, search by name/location, price range
GET  /messes/{id} - one mess (non-public ones only for owner/admin)
POST /messes - list a mess (pending until an admin approves it)
"""

import math
import re
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_mess_gate
from app.core.auth import get_optional_user, require
from app.core.errors import NotFound
from app.core.policy import Action, authorize
from app.services.moderation import ModerationGate, is_public
from app.services.mongo_service import PUBLIC_FILTER, serialize_doc, serialize_docs
from app.schemas.schemas import MessCreate

router = APIRouter(prefix="/messes", tags=["Messes"])


@router.get("")
async def list_messes(
    query: str = Query("", description="Search in name or location"),
    min_price: float = Query(0, alias="minPrice", ge=0),
    max_price: float = Query(10000, alias="maxPrice", ge=0),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    gate: ModerationGate = Depends(get_mess_gate),
):
    """Approved messes, best rated first."""
    mongo_filter = {**PUBLIC_FILTER, "monthlyPrice": {"$gte": min_price, "$lte": max_price}}
    if query:
        pattern = {"$regex": re.escape(query), "$options": "i"}
        mongo_filter["$or"] = [{"name": pattern}, {"location": pattern}]

    total = gate.listings.count(mongo_filter)
    messes = gate.listings.find(
        mongo_filter, sort=[("rating", -1)], skip=(page - 1) * limit, limit=limit
    )
    return {
        "messes": serialize_docs(messes),
        "pagination": {
            "total": total,
            "page": page,
            "limit": limit,
            "pages": math.ceil(total / limit),
        },
    }


@router.get("/{mess_id}")
async def get_mess(
    mess_id: str,
    user: Optional[dict] = Depends(get_optional_user),
    gate: ModerationGate = Depends(get_mess_gate),
):
    mess = gate.listings.get(mess_id)
    if not is_public(mess):
        is_owner = user is not None and str(mess.get("owner")) == user["user_id"]
        if not (is_owner or authorize(user and user["role"], Action.view_unpublished_listing)):
            raise NotFound("Mess not found")
    return {"success": True, "mess": serialize_doc(mess)}


@router.post("", status_code=201)
async def create_mess(
    body: MessCreate,
    user: dict = Depends(require(Action.create_listing)),
    gate: ModerationGate = Depends(get_mess_gate),
):
    mess = gate.listings.insert(user["user_id"], body.model_dump(mode="json"))
    return {"message": "Mess listed successfully", "mess": serialize_doc(mess)}
