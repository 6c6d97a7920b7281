"""
Moderation Gate - the listing approval state machine.

Two independent axes live on every listing document:

MODERATION (controls public visibility)
    PENDING   isApproved=False, isRejected=False   (initial)
    APPROVED  isApproved=True,  isRejected=False
    REJECTED  isApproved=False, isRejected=True

    approve() and reject() are admin-only and may be applied from any state,
    so a rejected listing can be re-approved and vice versa. Each transition
    writes its flags and audit fields in a single atomic update. The previous
    transition's audit fields are not cleared; the last transition wins.

VERIFICATION (badge only, never gates visibility)
    (none) --owner pays--> pending --executive visit--> verified | rejected

A listing is public only when isApproved=True AND isRejected=False.
The AI advisor never moves either axis; it only stores an assessment.
"""

import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from app.core.errors import Forbidden, Unauthorized, ValidationError
from app.core.policy import Action, enforce
from app.services.mongo_service import PUBLIC_FILTER, ListingService, parse_object_id, utcnow
from app.services.notifications import ModerationOutcome, Notifier, deliver

logger = logging.getLogger(__name__)


class ModerationState(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class VerificationStatus(str, Enum):
    pending = "pending"
    verified = "verified"
    rejected = "rejected"


# ============================================================
# READ-SIDE FILTERS
# ============================================================

MODERATION_FILTERS: Dict[str, dict] = {
    "all": {},
    # explicitly rejected records are not pending
    "pending": {"isApproved": False, "isRejected": {"$ne": True}},
    "approved": {"isApproved": True},
    "rejected": {"isRejected": True},
}

VERIFICATION_FILTERS: Dict[str, dict] = {
    "pending": {"verificationStatus": VerificationStatus.pending.value},
    "verified": {"verificationStatus": VerificationStatus.verified.value},
}


def moderation_filter(status: str) -> dict:
    """Mongo query for ?status=all|pending|approved|rejected."""
    try:
        return dict(MODERATION_FILTERS[status])
    except KeyError:
        raise ValidationError(f"Invalid status: {status}")


def verification_filter(status: str) -> dict:
    """Approved, non-rejected listings with the given verification status."""
    try:
        extra = VERIFICATION_FILTERS[status]
    except KeyError:
        raise ValidationError(f"Invalid verification status: {status}")
    return {**PUBLIC_FILTER, **extra}


# Badge preconditions, evaluated inside the update filter
REQUESTABLE = {
    "isApproved": True,
    "verificationStatus": {"$nin": [VerificationStatus.pending.value, VerificationStatus.verified.value]},
}
COMPLETABLE = {"verificationStatus": VerificationStatus.pending.value}


def _check_can_request(listing: dict) -> None:
    status = listing.get("verificationStatus")
    if status == VerificationStatus.verified.value:
        raise ValidationError("Property is already verified")
    if status == VerificationStatus.pending.value:
        raise ValidationError("Verification is already pending. Executive visit scheduled.")
    if not listing.get("isApproved"):
        raise ValidationError("Property must be approved before verification")


def _check_can_complete(listing: dict) -> None:
    status = listing.get("verificationStatus")
    if status == VerificationStatus.verified.value:
        raise ValidationError("Property is already verified")
    if status != VerificationStatus.pending.value:
        raise ValidationError("Property verification payment not completed")


def state_of(listing: dict) -> ModerationState:
    if listing.get("isApproved") and not listing.get("isRejected"):
        return ModerationState.approved
    if listing.get("isRejected"):
        return ModerationState.rejected
    return ModerationState.pending


def is_public(listing: dict) -> bool:
    return bool(listing.get("isApproved")) and not listing.get("isRejected")


# ============================================================
# TRANSITION PAYLOADS
# ============================================================

def approval_fields(admin_id: Any, now=None) -> dict:
    return {
        "isApproved": True,
        "isRejected": False,
        "approvedAt": now or utcnow(),
        "approvedBy": parse_object_id(admin_id, "admin ID"),
        "approvalMethod": "manual",
    }


def rejection_fields(admin_id: Any, reason: str, now=None) -> dict:
    return {
        "isApproved": False,
        "isRejected": True,
        "rejectedAt": now or utcnow(),
        "rejectedBy": parse_object_id(admin_id, "admin ID"),
        "rejectionReason": reason,
    }


# ============================================================
# GATE
# ============================================================

Scheduler = Callable[..., Any]


class ModerationGate:
    """
    Applies moderation and verification transitions to one listing kind.

    `notifier` receives a ModerationOutcome after each transition is stored.
    `schedule` defers delivery (FastAPI's BackgroundTasks.add_task in routes);
    without it delivery runs inline. Either way a notifier error is only logged.
    """

    def __init__(
        self,
        listings: ListingService,
        notifier: Optional[Notifier] = None,
        schedule: Optional[Scheduler] = None,
    ):
        self.listings = listings
        self.notifier = notifier
        self.schedule = schedule

    # ---------- moderation axis ----------

    def list_by_status(self, status: str, actor: Optional[dict]) -> List[dict]:
        enforce(_role(actor), Action.view_moderation_queue)
        return self.listings.find(moderation_filter(status), sort=[("createdAt", -1)])

    def approve(self, listing_id: Any, actor: Optional[dict]) -> dict:
        enforce(_role(actor), Action.moderate_listing)
        listing = self.listings.update_fields(listing_id, approval_fields(actor["user_id"]))
        logger.info("%s %s approved by %s", self.listings.label, listing_id, actor["user_id"])
        self._announce(listing, "approved")
        return listing

    def reject(self, listing_id: Any, actor: Optional[dict], reason: Optional[str]) -> dict:
        enforce(_role(actor), Action.moderate_listing)
        if reason is None or not str(reason).strip():
            raise ValidationError("Rejection reason is required")
        listing = self.listings.update_fields(
            listing_id, rejection_fields(actor["user_id"], str(reason).strip())
        )
        logger.info("%s %s rejected by %s", self.listings.label, listing_id, actor["user_id"])
        self._announce(listing, "rejected", reason=listing.get("rejectionReason"))
        return listing

    # ---------- verification axis ----------

    def list_verifications(self, status: str, actor: Optional[dict]) -> List[dict]:
        enforce(_role(actor), Action.view_verifications)
        return self.listings.find(verification_filter(status), sort=[("verificationPaidAt", -1)])

    def verification_summary(self, listing_id: Any, actor: Optional[dict]) -> dict:
        listing = self._owned_listing(listing_id, actor)
        status = listing.get("verificationStatus")
        return {
            "verificationStatus": status,
            "isVerified": status == VerificationStatus.verified.value,
            "canVerify": bool(listing.get("isApproved")) and not status,
            "property": {"_id": listing["_id"], "title": listing.get("title")},
        }

    def request_verification(
        self,
        listing_id: Any,
        actor: Optional[dict],
        payment_id: Optional[str],
        fee: int,
    ) -> dict:
        """Owner has paid the badge fee: the listing waits for an executive visit."""
        listing = self._owned_listing(listing_id, actor)
        _check_can_request(listing)

        now = utcnow()
        updated = self.listings.update_if(listing["_id"], REQUESTABLE, {
            "verificationStatus": VerificationStatus.pending.value,
            "verificationFee": fee,
            "verificationPaymentId": payment_id,
            "verificationPaidAt": now,
            "updatedAt": now,
        })
        if updated is None:
            # lost a race with another request or a moderation change
            _check_can_request(self.listings.get(listing["_id"]))
            raise ValidationError("Property verification could not be requested")
        return updated

    def complete_verification(
        self,
        listing_id: Any,
        actor: Optional[dict],
        checks: dict,
        approve: bool = True,
    ) -> dict:
        """Record the executive visit and settle the badge."""
        enforce(_role(actor), Action.complete_verification)
        listing = self.listings.get(listing_id)
        _check_can_complete(listing)

        now = utcnow()
        actor_oid = parse_object_id(actor["user_id"], "user ID")
        fields = {
            "executiveVisit": {
                "visitedAt": now,
                "visitedBy": actor_oid,
                "checks": checks,
                "approvedAt": now if approve else None,
                "approvedBy": actor_oid if approve else None,
            },
            "updatedAt": now,
        }
        if approve:
            fields.update({
                "verificationStatus": VerificationStatus.verified.value,
                "verifiedAt": now,
                "verifiedBy": actor_oid,
            })
        else:
            fields["verificationStatus"] = VerificationStatus.rejected.value

        updated = self.listings.update_if(listing["_id"], COMPLETABLE, fields)
        if updated is None:
            _check_can_complete(self.listings.get(listing["_id"]))
            raise ValidationError("Property verification could not be completed")
        self._announce(updated, "verified" if approve else "verification_rejected")
        return updated

    # ---------- helpers ----------

    def _owned_listing(self, listing_id: Any, actor: Optional[dict]) -> dict:
        if not actor:
            raise Unauthorized()
        listing = self.listings.get(listing_id)
        if str(listing.get("owner")) != str(actor["user_id"]):
            raise Forbidden("You don't own this property")
        return listing

    def _announce(self, listing: dict, decision: str, reason: str = None) -> None:
        if self.notifier is None or not listing.get("owner"):
            return
        outcome = ModerationOutcome(
            owner_id=str(listing["owner"]),
            kind=self.listings.kind,
            listing_id=str(listing["_id"]),
            title=listing.get("title") or listing.get("name") or "",
            decision=decision,
            reason=reason,
        )
        if self.schedule is not None:
            self.schedule(deliver, self.notifier, outcome)
        else:
            deliver(self.notifier, outcome)


def _role(actor: Optional[dict]) -> Optional[str]:
    return actor.get("role") if actor else None
