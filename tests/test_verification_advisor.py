import json

import openai
import pytest

from app.core.config import Settings
from app.core.errors import UpstreamDegraded
from app.services.ai_client import AIClient, extract_json
from app.services.verification_advisor import (
    MANUAL_REVIEW,
    SYSTEM_PROMPT,
    VerificationAdvisor,
    build_listing_summary,
    derive_verdict,
    normalize_assessment,
    stored_review,
)
from tests.fakes import chat_request, chat_response, fake_openai, make_advisor

LISTING = {
    "title": "Sunrise PG",
    "type": "PG",
    "gender": "Unisex",
    "city": "Pune",
    "address": "12 College Road, Near University Gate",
    "price": 8000,
    "deposit": 16000,
    "description": "Clean rooms near campus",
    "amenities": ["WiFi", "Meals"],
}


def _reply(**fields):
    return json.dumps(fields)


# ============================================================
# VERDICT RULES
# ============================================================

def test_approve_with_high_score_is_verified():
    advisor = make_advisor(_reply(score=72, recommendation="APPROVE", confidence=80, redFlags=[], reason="Looks fine"))
    result = advisor.assess(LISTING)

    assert result["verified"] is True
    assert result["needsReview"] is False
    assert result["score"] == 72
    assert result["confidence"] == 80
    assert result["recommendation"] == "APPROVE"
    assert result["reason"] == "Looks fine"


def test_review_in_middle_band_needs_review():
    advisor = make_advisor(_reply(score=55, recommendation="REVIEW", confidence=60, redFlags=["vague"], reason="x"))
    result = advisor.assess(LISTING)

    assert result["verified"] is False
    assert result["needsReview"] is True
    assert result["redFlags"] == ["vague"]


@pytest.mark.parametrize(
    "recommendation, score, verified, needs_review",
    [
        ("APPROVE", 70, True, False),
        ("APPROVE", 69, False, True),
        ("APPROVE", 40, False, False),
        ("REVIEW", 90, False, True),
        ("REJECT", 60, False, True),
        ("REJECT", 20, False, False),
        ("REJECT", 95, False, False),
    ],
)
def test_derive_verdict(recommendation, score, verified, needs_review):
    assert derive_verdict(recommendation, score) == (verified, needs_review)


def test_normalize_clamps_and_defaults():
    result = normalize_assessment({"score": 150, "confidence": -5, "recommendation": "maybe", "redFlags": "cash only"})

    assert result["score"] == 100
    assert result["confidence"] == 0
    assert result["recommendation"] == "REVIEW"
    assert result["needsReview"] is True
    assert result["redFlags"] == ["cash only"]
    assert result["reason"] == "Analysis completed"


def test_normalize_handles_junk_numbers():
    result = normalize_assessment({"score": "high", "confidence": None, "recommendation": "approve"})
    assert result["score"] == 0
    assert result["confidence"] == 0
    assert result["recommendation"] == "APPROVE"
    assert result["verified"] is False


# ============================================================
# FAILURE MODES -> MANUAL_REVIEW
# ============================================================

def _assert_manual_review(result, cause):
    assert result["recommendation"] == MANUAL_REVIEW
    assert result["verified"] is False
    assert result["needsReview"] is False
    assert result["score"] == 0
    assert result["confidence"] == 0
    assert result["redFlags"] == [cause]


def test_missing_credentials():
    _assert_manual_review(VerificationAdvisor(None).assess(LISTING), "service unavailable")


def test_rate_limited():
    error = openai.RateLimitError("Rate limit reached", response=chat_response(429), body=None)
    _assert_manual_review(make_advisor(error=error).assess(LISTING), "rate limited")


def test_timeout():
    error = openai.APITimeoutError(request=chat_request())
    _assert_manual_review(make_advisor(error=error).assess(LISTING), "service unavailable")


def test_connection_error():
    error = openai.APIConnectionError(request=chat_request())
    _assert_manual_review(make_advisor(error=error).assess(LISTING), "service unavailable")


def test_upstream_server_error():
    error = openai.InternalServerError("Bad gateway", response=chat_response(502), body=None)
    _assert_manual_review(make_advisor(error=error).assess(LISTING), "service unavailable")


def test_unexpected_exception_is_contained():
    result = make_advisor(error=RuntimeError("socket closed")).assess(LISTING)
    _assert_manual_review(result, "service unavailable")
    assert result["error"] == "socket closed"


def test_garbage_reply_is_unparseable():
    result = make_advisor("I think this listing is probably fine!").assess(LISTING)
    _assert_manual_review(result, "response unparseable")
    assert result["analysis"] == {"rawResponse": "I think this listing is probably fine!"}


def test_empty_reply_is_unparseable():
    _assert_manual_review(make_advisor("").assess(LISTING), "response unparseable")


def test_assess_tolerates_empty_listing():
    advisor = make_advisor(_reply(score=10, recommendation="REJECT", confidence=90, reason="Empty"))
    result = advisor.assess({})
    assert result["recommendation"] == "REJECT"


# ============================================================
# JSON EXTRACTION
# ============================================================

def test_extract_json_from_code_fence():
    text = 'Here you go:\n```json\n{"score": 80, "recommendation": "APPROVE"}\n```'
    assert extract_json(text) == {"score": 80, "recommendation": "APPROVE"}


def test_extract_json_skips_broken_braces():
    text = 'Scores {like this} vary. {"score": 40, "reason": "uses {braces}"} trailing'
    assert extract_json(text) == {"score": 40, "reason": "uses {braces}"}


@pytest.mark.parametrize("text", ["[1, 2, 3]", "no json here", "   ", None])
def test_extract_json_rejects_non_objects(text):
    with pytest.raises(UpstreamDegraded) as exc:
        extract_json(text)
    assert exc.value.cause == UpstreamDegraded.RESPONSE_UNPARSEABLE


# ============================================================
# PROMPT AND CLIENT
# ============================================================

def test_summary_truncates_description_and_address():
    listing = dict(LISTING, description="d" * 500, address="a" * 120)
    summary = build_listing_summary(listing)

    assert "d" * 200 + "..." in summary
    assert "d" * 201 not in summary
    assert "a" * 50 in summary
    assert "a" * 51 not in summary
    assert "Title: Sunrise PG" in summary
    assert "Amenities: WiFi, Meals" in summary


def test_client_sends_system_prompt_and_summary():
    openai_client = fake_openai(_reply(score=90, recommendation="APPROVE", confidence=90))
    advisor = VerificationAdvisor(AIClient(Settings(ai_api_key="k", ai_model="test-model"), client=openai_client))

    advisor.assess(LISTING)

    call = openai_client.chat.completions.calls[0]
    assert call["model"] == "test-model"
    assert call["messages"][0] == {"role": "system", "content": SYSTEM_PROMPT}
    assert call["messages"][1]["content"] == build_listing_summary(LISTING)


def test_client_has_timeout_and_no_retries():
    client = AIClient(Settings(ai_api_key="k", ai_timeout_seconds=3.0))
    assert client.client.timeout == 3.0
    assert client.client.max_retries == 0


def test_stored_review_keeps_verdict():
    assessment = make_advisor(_reply(score=72, recommendation="APPROVE", confidence=80)).assess(LISTING)
    review = stored_review(assessment)

    assert review["reviewed"] is True
    assert review["verified"] is True
    assert review["score"] == 72
    assert review["reviewedAt"] == assessment["reviewedAt"]


@pytest.mark.parametrize(
    "text",
    [
        '{"score": NaN, "recommendation": "REVIEW", "confidence": 1}',
        '{"score": 80, "recommendation": "APPROVE", "confidence": Infinity}',
        '{"score": -Infinity, "recommendation": "REJECT"}',
        '{"score": 1e999, "recommendation": "APPROVE"}',
        '{"score": 99999999999999999999999, "recommendation": "APPROVE"}',
        'Result: {"details": {"ok": true}, "score": NaN}',
    ],
)
def test_extract_json_rejects_unrepresentable_numbers(text):
    with pytest.raises(UpstreamDegraded) as exc:
        extract_json(text)
    assert exc.value.cause == UpstreamDegraded.RESPONSE_UNPARSEABLE


def test_nan_reply_degrades_to_manual_review():
    result = make_advisor('{"score": NaN, "recommendation": "REVIEW", "confidence": 1}').assess(LISTING)
    _assert_manual_review(result, "response unparseable")
    json.dumps(result, default=str, allow_nan=False)
