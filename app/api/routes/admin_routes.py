"""
Admin Routes - moderation and verification

GET  /admin/properties?status=all|pending|approved|rejected - moderation queue (admin)
POST /admin/properties/{id}/approve - approve listing (admin)
POST /admin/properties/{id}/reject - reject listing with reason (admin)
GET  /admin/properties/complete-verification?status=pending|verified - badge queue (admin, executive)
POST /admin/properties/{id}/complete-verification - record executive visit (admin, executive)
POST /admin/properties/{id}/ai-review - run the AI advisor on a stored listing (any user)
GET  /admin/messes?status=... , POST /admin/messes/{id}/approve|reject - same gate for messes
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_mess_gate, get_property_gate, get_verification_advisor
from app.core.auth import get_current_user, require
from app.core.policy import Action
from app.services.moderation import ModerationGate
from app.services.mongo_service import serialize_doc, serialize_docs
from app.services.verification_advisor import VerificationAdvisor, stored_review
from app.schemas.schemas import CompleteVerificationRequest, RejectRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


# ============================================================
# PROPERTIES
# ============================================================

@router.get("/properties")
async def list_properties(
    status: str = Query("all", description="all, pending, approved, rejected"),
    user: dict = Depends(get_current_user),
    gate: ModerationGate = Depends(get_property_gate),
):
    """All properties for admin review, newest first."""
    return {"properties": serialize_docs(gate.list_by_status(status, user))}


@router.get("/properties/complete-verification")
async def list_pending_verifications(
    status: str = Query("pending", description="pending or verified"),
    user: dict = Depends(get_current_user),
    gate: ModerationGate = Depends(get_property_gate),
):
    """Approved listings waiting for (or done with) an executive visit."""
    properties = serialize_docs(gate.list_verifications(status, user))
    return {"success": True, "properties": properties, "count": len(properties)}


@router.post("/properties/{property_id}/approve")
async def approve_property(
    property_id: str,
    user: dict = Depends(get_current_user),
    gate: ModerationGate = Depends(get_property_gate),
):
    listing = gate.approve(property_id, user)
    return {"message": "Property approved successfully", "property": serialize_doc(listing)}


@router.post("/properties/{property_id}/reject")
async def reject_property(
    property_id: str,
    body: Optional[RejectRequest] = None,
    user: dict = Depends(get_current_user),
    gate: ModerationGate = Depends(get_property_gate),
):
    listing = gate.reject(property_id, user, body.reason if body else None)
    return {"message": "Property rejected successfully", "property": serialize_doc(listing)}


@router.post("/properties/{property_id}/complete-verification")
async def complete_verification(
    property_id: str,
    body: CompleteVerificationRequest,
    user: dict = Depends(get_current_user),
    gate: ModerationGate = Depends(get_property_gate),
):
    """Executive visit done: apply or refuse the verified badge."""
    listing = gate.complete_verification(property_id, user, body.checks(), approve=body.approve)
    return {
        "success": True,
        "message": (
            "Property verified successfully! Badge has been applied."
            if body.approve else "Verification rejected."
        ),
        "property": serialize_doc({
            "_id": listing["_id"],
            "title": listing.get("title"),
            "verificationStatus": listing.get("verificationStatus"),
            "executiveVisit": listing.get("executiveVisit"),
            "verifiedAt": listing.get("verifiedAt"),
        }),
    }


@router.post("/properties/{property_id}/ai-review")
def ai_review_property(
    property_id: str,
    user: dict = Depends(require(Action.request_ai_review)),
    gate: ModerationGate = Depends(get_property_gate),
    advisor: VerificationAdvisor = Depends(get_verification_advisor),
):
    """
    Score a stored listing and save the assessment as `aiReview`.
    Moderation state is left for an admin to change.
    """
    listing = gate.listings.get(property_id)
    assessment = advisor.assess(listing)
    updated = gate.listings.update_fields(listing["_id"], {"aiReview": stored_review(assessment)})
    return {
        "message": "AI review completed",
        "approved": bool(updated.get("isApproved")),
        "confidence": assessment["confidence"],
        "score": assessment["score"],
        "recommendation": assessment["recommendation"],
        "result": assessment,
        "property": serialize_doc(updated),
    }


# ============================================================
# MESSES
# ============================================================

@router.get("/messes")
async def list_messes(
    status: str = Query("all", description="all, pending, approved, rejected"),
    user: dict = Depends(get_current_user),
    gate: ModerationGate = Depends(get_mess_gate),
):
    return {"messes": serialize_docs(gate.list_by_status(status, user))}


@router.post("/messes/{mess_id}/approve")
async def approve_mess(
    mess_id: str,
    user: dict = Depends(get_current_user),
    gate: ModerationGate = Depends(get_mess_gate),
):
    listing = gate.approve(mess_id, user)
    return {"message": "Mess approved successfully", "mess": serialize_doc(listing)}


@router.post("/messes/{mess_id}/reject")
async def reject_mess(
    mess_id: str,
    body: Optional[RejectRequest] = None,
    user: dict = Depends(get_current_user),
    gate: ModerationGate = Depends(get_mess_gate),
):
    listing = gate.reject(mess_id, user, body.reason if body else None)
    return {"message": "Mess rejected successfully", "mess": serialize_doc(listing)}
