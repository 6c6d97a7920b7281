import pytest

from app.core.errors import Forbidden, Unauthorized
from app.core.policy import POLICY, Action, authorize, enforce


@pytest.mark.parametrize(
    "role, action, allowed",
    [
        ("admin", Action.moderate_listing, True),
        ("executive", Action.moderate_listing, False),
        ("owner", Action.moderate_listing, False),
        ("user", Action.view_moderation_queue, False),
        ("admin", Action.view_verifications, True),
        ("executive", Action.view_verifications, True),
        ("executive", Action.complete_verification, True),
        ("owner", Action.complete_verification, False),
        ("user", Action.request_ai_review, True),
        ("owner", Action.create_listing, True),
        ("user", Action.manage_account, True),
        ("admin", Action.view_unpublished_listing, True),
        ("executive", Action.view_unpublished_listing, False),
        ("owner", Action.manage_any_booking, False),
        ("admin", Action.manage_any_booking, True),
        ("user", Action.book_listing, True),
        ("executive", Action.engage_listing, True),
    ],
)
def test_policy_table(role, action, allowed):
    assert authorize(role, action) is allowed


def test_unknown_or_missing_role_is_denied():
    assert authorize(None, Action.create_listing) is False
    assert authorize("superuser", Action.create_listing) is False


def test_every_action_has_a_rule():
    assert set(POLICY) == set(Action)


def test_enforce_errors():
    enforce("admin", Action.moderate_listing)

    with pytest.raises(Unauthorized):
        enforce(None, Action.create_listing)
    with pytest.raises(Unauthorized):
        enforce("owner", Action.moderate_listing)
    with pytest.raises(Forbidden, match="executives"):
        enforce("user", Action.complete_verification)
