"""
Property Routes

GET  /properties - public listings (approved only) with filters and pagination
GET  /properties/verified - public listings carrying the verified badge
GET  /properties/featured - up to six public listings rated 4 or higher
GET  /properties/{id} - one listing (non-public ones only for owner/admin)
POST /properties - create listing; AI advisor scores it, listing stays pending
GET  /properties/{id}/verify - badge status for the owner
POST /properties/{id}/verify - owner paid the badge fee, queue executive visit
"""

import logging
import math
import re
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_property_gate, get_verification_advisor
from app.core.auth import get_optional_user, require
from app.core.config import get_settings
from app.core.errors import NotFound
from app.core.policy import Action, authorize
from app.services.moderation import ModerationGate, is_public
from app.services.mongo_service import PUBLIC_FILTER, serialize_doc, serialize_docs
from app.services.verification_advisor import VerificationAdvisor, stored_review
from app.schemas.schemas import Gender, PropertyCreate, PropertyType, VerificationPaymentRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/properties", tags=["Properties"])


@router.get("")
async def list_properties(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    type: Optional[PropertyType] = Query(None),
    gender: Optional[Gender] = Query(None),
    min_price: Optional[float] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[float] = Query(None, alias="maxPrice", ge=0),
    location: Optional[str] = Query(None, description="Case-insensitive match on location"),
    gate: ModerationGate = Depends(get_property_gate),
):
    """Approved properties, verified ones first, then newest."""
    query = dict(PUBLIC_FILTER)
    if type:
        query["type"] = type.value
    if gender:
        query["gender"] = gender.value
    if min_price is not None or max_price is not None:
        query["price"] = {}
        if min_price is not None:
            query["price"]["$gte"] = min_price
        if max_price is not None:
            query["price"]["$lte"] = max_price
    if location:
        query["location"] = {"$regex": re.escape(location), "$options": "i"}

    total = gate.listings.count(query)
    properties = gate.listings.find(
        query,
        sort=[("verificationStatus", -1), ("createdAt", -1)],
        skip=(page - 1) * limit,
        limit=limit,
    )
    return {
        "properties": serialize_docs(properties),
        "pagination": {
            "total": total,
            "pages": math.ceil(total / limit),
            "current": page,
            "limit": limit,
        },
    }


@router.get("/verified")
async def list_verified(gate: ModerationGate = Depends(get_property_gate)):
    query = {**PUBLIC_FILTER, "verificationStatus": "verified"}
    properties = serialize_docs(gate.listings.find(query, sort=[("verifiedAt", -1), ("createdAt", -1)]))
    return {"success": True, "properties": properties, "count": len(properties)}


FEATURED_MIN_RATING = 4
FEATURED_LIMIT = 6


@router.get("/featured")
async def list_featured(gate: ModerationGate = Depends(get_property_gate)):
    """Top-rated public properties in the compact card shape."""
    query = {**PUBLIC_FILTER, "rating": {"$gte": FEATURED_MIN_RATING}}
    properties = gate.listings.find(
        query,
        sort=[("rating", -1), ("reviews", -1), ("createdAt", -1)],
        limit=FEATURED_LIMIT,
    )
    return {
        "properties": [
            {
                "_id": str(p["_id"]),
                "title": p.get("title") or "Untitled Property",
                "location": p.get("location") or "Location not specified",
                "rating": p.get("rating") or 0,
                "reviews": p.get("reviews") or 0,
                "price": p.get("price") or 0,
                "image": (p.get("images") or ["/placeholder.jpg"])[0],
                "type": p.get("type") or "PG",
            }
            for p in properties
        ]
    }


@router.get("/{property_id}")
async def get_property(
    property_id: str,
    user: Optional[dict] = Depends(get_optional_user),
    gate: ModerationGate = Depends(get_property_gate),
):
    listing = gate.listings.get(property_id)
    if not is_public(listing):
        is_owner = user is not None and str(listing.get("owner")) == user["user_id"]
        if not (is_owner or authorize(user and user["role"], Action.view_unpublished_listing)):
            raise NotFound("Property not found")
    return {"success": True, "property": serialize_doc(listing)}


@router.post("", status_code=201)
def create_property(
    body: PropertyCreate,
    user: dict = Depends(require(Action.create_listing)),
    gate: ModerationGate = Depends(get_property_gate),
    advisor: VerificationAdvisor = Depends(get_verification_advisor),
):
    """
    Create a listing. The AI assessment is stored with it; an admin still has
    to approve before it becomes public.
    """
    data = body.model_dump(mode="json")
    assessment = advisor.assess(data)
    listing = gate.listings.insert(user["user_id"], data, ai_review=stored_review(assessment))
    logger.info(
        "Property %s created by %s (AI %s, score %s)",
        listing["_id"], user["user_id"], assessment["recommendation"], assessment["score"],
    )

    if assessment["needsReview"]:
        message = "Your property is under review. Our team will verify it within 24 hours."
    else:
        message = "Property submitted successfully! It will be listed after admin approval."

    return {
        "message": message,
        "status": "pending_review",
        "property": serialize_doc(listing),
        "aiVerification": assessment,
    }


@router.get("/{property_id}/verify")
async def verification_status(
    property_id: str,
    user: dict = Depends(require(Action.manage_account)),
    gate: ModerationGate = Depends(get_property_gate),
):
    summary = gate.verification_summary(property_id, user)
    summary["verificationFee"] = get_settings().verification_fee
    return serialize_doc(summary)


@router.post("/{property_id}/verify")
async def request_verification(
    property_id: str,
    body: VerificationPaymentRequest,
    user: dict = Depends(require(Action.manage_account)),
    gate: ModerationGate = Depends(get_property_gate),
):
    listing = gate.request_verification(
        property_id, user, body.paymentId, fee=get_settings().verification_fee
    )
    return {
        "success": True,
        "message": "Payment successful! Our executive will visit your property soon for verification checks.",
        "verificationStatus": listing["verificationStatus"],
        "property": serialize_doc({
            "_id": listing["_id"],
            "title": listing.get("title"),
            "verificationStatus": listing.get("verificationStatus"),
            "verificationPaidAt": listing.get("verificationPaidAt"),
        }),
    }
