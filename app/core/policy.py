"""
Authorization policy - one table keyed by (role, action).

Every admin, executive and owner endpoint asks this module instead of
comparing roles inline. `authorize` answers allow/deny; `enforce` raises the
error the action is documented to return when denied.
"""

from enum import Enum
from typing import Dict, FrozenSet, Optional, Type

from app.core.errors import AppError, Forbidden, Unauthorized


class Role(str, Enum):
    user = "user"
    owner = "owner"
    admin = "admin"
    executive = "executive"


class Action(str, Enum):
    moderate_listing = "moderate_listing"
    view_moderation_queue = "view_moderation_queue"
    view_verifications = "view_verifications"
    complete_verification = "complete_verification"
    request_ai_review = "request_ai_review"
    create_listing = "create_listing"
    manage_account = "manage_account"
    view_unpublished_listing = "view_unpublished_listing"
    manage_any_booking = "manage_any_booking"
    book_listing = "book_listing"
    engage_listing = "engage_listing"


ALL_ROLES: FrozenSet[Role] = frozenset(Role)

POLICY: Dict[Action, FrozenSet[Role]] = {
    Action.moderate_listing: frozenset({Role.admin}),
    Action.view_moderation_queue: frozenset({Role.admin}),
    Action.view_verifications: frozenset({Role.admin, Role.executive}),
    Action.complete_verification: frozenset({Role.admin, Role.executive}),
    Action.request_ai_review: ALL_ROLES,
    Action.create_listing: ALL_ROLES,
    Action.manage_account: ALL_ROLES,
    Action.view_unpublished_listing: frozenset({Role.admin}),
    Action.manage_any_booking: frozenset({Role.admin}),
    Action.book_listing: ALL_ROLES,
    Action.engage_listing: ALL_ROLES,
}

# Admin-only moderation answers 401 on a wrong role; the executive-facing
# verification routes answer 403.
DENIAL_ERRORS: Dict[Action, Type[AppError]] = {
    Action.moderate_listing: Unauthorized,
    Action.view_moderation_queue: Unauthorized,
    Action.view_verifications: Forbidden,
    Action.complete_verification: Forbidden,
}

DENIAL_MESSAGES: Dict[Action, str] = {
    Action.view_verifications: "Only admins and executives can view pending verifications",
    Action.complete_verification: "Only admins and executives can complete verification",
}


def authorize(role: Optional[str], action: Action) -> bool:
    """Return True when `role` may perform `action`."""
    if not role:
        return False
    try:
        return Role(role) in POLICY[action]
    except ValueError:
        return False


def enforce(role: Optional[str], action: Action) -> None:
    """Raise the action's denial error unless `role` is allowed."""
    if authorize(role, action):
        return
    if not role:
        raise Unauthorized()
    error_cls = DENIAL_ERRORS.get(action, Forbidden)
    raise error_cls(DENIAL_MESSAGES.get(action, error_cls.default_message))
