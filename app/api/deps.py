"""
Shared route dependencies: service objects built per request from the
process MongoPool, so tests can swap any of them via dependency_overrides.
"""

from fastapi import BackgroundTasks, Depends

from app.db.mongodb import MongoPool, get_pool
from app.services.ai_client import get_ai_client
from app.services.moderation import ModerationGate
from app.services.mongo_service import ListingService
from app.services.notifications import InAppNotifier, Notifier
from app.services.verification_advisor import VerificationAdvisor


def get_notifier(pool: MongoPool = Depends(get_pool)) -> Notifier:
    return InAppNotifier(pool)


def get_verification_advisor() -> VerificationAdvisor:
    return VerificationAdvisor(get_ai_client())


def _gate_for(kind: str):
    def dependency(
        background_tasks: BackgroundTasks,
        pool: MongoPool = Depends(get_pool),
        notifier: Notifier = Depends(get_notifier),
    ) -> ModerationGate:
        return ModerationGate(
            ListingService(pool, kind),
            notifier=notifier,
            schedule=background_tasks.add_task,
        )

    return dependency


get_property_gate = _gate_for("properties")
get_mess_gate = _gate_for("messes")
