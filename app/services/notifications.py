"""
Moderation outcome notifications.

The moderation gate calls `deliver(notifier, outcome)` after a transition has
been written. Delivery is fire-and-forget: a failing notifier is logged and
the transition stands.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from app.db.mongodb import MongoPool
from app.services.mongo_service import NotificationService

logger = logging.getLogger(__name__)


@dataclass
class ModerationOutcome:
    owner_id: str
    kind: str             # "properties" or "messes"
    listing_id: str
    title: str
    decision: str         # "approved", "rejected", "verified", "verification_rejected"
    reason: Optional[str] = None


class Notifier:
    """Base notifier. Subclasses deliver an outcome to the listing owner."""

    def notify(self, outcome: ModerationOutcome) -> None:
        raise NotImplementedError


class InAppNotifier(Notifier):
    """Writes the outcome into the owner's notification feed."""

    TITLES = {
        "approved": "Your listing is live",
        "rejected": "Your listing was not approved",
        "verified": "Your listing is verified",
        "verification_rejected": "Verification was not completed",
    }

    def __init__(self, pool: MongoPool):
        self.notifications = NotificationService(pool)

    def _message(self, outcome: ModerationOutcome) -> str:
        if outcome.decision == "approved":
            return f'"{outcome.title}" has been approved and is now visible to students.'
        if outcome.decision == "rejected":
            reason = outcome.reason or "No reason given"
            return f'"{outcome.title}" was rejected. Reason: {reason}'
        if outcome.decision == "verified":
            return f'"{outcome.title}" passed the executive visit and now shows the verified badge.'
        return f'The verification visit for "{outcome.title}" was not approved.'

    def notify(self, outcome: ModerationOutcome) -> None:
        self.notifications.insert(
            user_id=outcome.owner_id,
            notification_type="property",
            title=self.TITLES.get(outcome.decision, "Listing update"),
            message=self._message(outcome),
            link=f"/{'messes' if outcome.kind == 'messes' else 'listings'}/{outcome.listing_id}",
            priority="high" if outcome.decision == "rejected" else "medium",
            metadata={
                "listingId": outcome.listing_id,
                "kind": outcome.kind,
                "decision": outcome.decision,
            },
        )


def deliver(notifier: Notifier, outcome: ModerationOutcome) -> None:
    """Run a notifier, logging instead of raising on failure."""
    try:
        notifier.notify(outcome)
    except Exception:
        logger.exception(
            "Failed to notify owner %s about listing %s", outcome.owner_id, outcome.listing_id
        )
