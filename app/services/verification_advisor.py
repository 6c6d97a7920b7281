"""
Verification Advisor - AI legitimacy scoring for listings.

PURPOSE:
Score a listing 0-100 on five signals (price realism, description quality,
contact/spam patterns, completeness, title legitimacy) and recommend
APPROVE, REVIEW or REJECT. The assessment is advisory: it is stored on the
listing as `aiReview` and shown to admins, but it never approves or rejects
anything by itself.

VERDICT RULES:
    verified    = recommendation == APPROVE and score >= 70
    needsReview = recommendation == REVIEW or 50 <= score < 70

FAILURE POLICY:
assess() never raises. Missing credentials, timeouts, rate limits, transport
errors and unparseable output all return the same manual-review assessment
(score 0, confidence 0, recommendation MANUAL_REVIEW) with a red flag naming
the cause.
"""

import logging
import math
from typing import Any, List, Optional, Tuple

from app.core.errors import UpstreamDegraded
from app.services.ai_client import AIClient
from app.services.mongo_service import utcnow

logger = logging.getLogger(__name__)

APPROVE = "APPROVE"
REVIEW = "REVIEW"
REJECT = "REJECT"
MANUAL_REVIEW = "MANUAL_REVIEW"

RECOMMENDATIONS = (APPROVE, REVIEW, REJECT)

VERIFIED_MIN_SCORE = 70
REVIEW_MIN_SCORE = 50

DESCRIPTION_PREFIX = 200
ADDRESS_PREFIX = 50

MANUAL_REVIEW_REASONS = {
    UpstreamDegraded.SERVICE_UNAVAILABLE: "AI verification unavailable - requires manual review",
    UpstreamDegraded.RATE_LIMITED: "AI service temporarily unavailable - property queued for manual review",
    UpstreamDegraded.RESPONSE_UNPARSEABLE: "AI analysis format error - requires manual review",
}

SYSTEM_PROMPT = """You review student-accommodation listings for legitimacy.
Check for:
1. Price realism (market rates)
2. Description quality & authenticity
3. Contact info spam/scam patterns
4. Incomplete/suspicious details
5. Title legitimacy

Return ONLY this JSON:
{
  "score": 0-100,
  "recommendation": "APPROVE"|"REVIEW"|"REJECT",
  "confidence": 0-100,
  "redFlags": ["issue1", "issue2"],
  "reason": "brief explanation"
}"""


# ============================================================
# PROMPT
# ============================================================

def _first(data: dict, *keys: str, default: Any = None) -> Any:
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return value
    return default


def _prefix(value: Any, length: int) -> Optional[str]:
    if not value:
        return None
    return str(value)[:length]


def build_listing_summary(listing: dict) -> str:
    """
    Render the public listing fields the advisor sees.
    Description and address are truncated to bounded prefixes.
    """
    amenities = listing.get("amenities") or []
    if not isinstance(amenities, list):
        amenities = [str(amenities)]

    description = _prefix(listing.get("description"), DESCRIPTION_PREFIX)
    return "\n".join([
        f"Property: {_first(listing, 'propertyType', 'type', default='N/A')}"
        f" - {_first(listing, 'propertySubtype', 'gender', default='N/A')}",
        f"Title: {_first(listing, 'title', 'name', default='N/A')}",
        f"Location: {_first(listing, 'city', 'location', default='N/A')}, "
        f"{_prefix(listing.get('address'), ADDRESS_PREFIX) or 'N/A'}",
        f"Price: ₹{_first(listing, 'monthlyRent', 'price', 'monthlyPrice', default=0)}/month",
        f"Deposit: ₹{_first(listing, 'securityDeposit', 'deposit', default=0)}",
        f"Description: {description + '...' if description else 'N/A'}",
        f"Amenities: {', '.join(str(a) for a in amenities) if amenities else 'None'}",
    ])


# ============================================================
# NORMALIZATION
# ============================================================

def _bounded_number(value: Any) -> float:
    """Coerce to a number clamped to 0-100; anything unusable is 0."""
    if isinstance(value, bool):
        return 0
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0
    if math.isnan(number):
        return 0
    number = max(0.0, min(100.0, number))
    return int(number) if number.is_integer() else number


def _red_flags(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list):
        return [str(flag) for flag in value if flag not in (None, "")]
    return [str(value)]


def derive_verdict(recommendation: str, score: float) -> Tuple[bool, bool]:
    """Return (verified, needsReview) for a normalized recommendation and score."""
    verified = recommendation == APPROVE and score >= VERIFIED_MIN_SCORE
    needs_review = recommendation == REVIEW or REVIEW_MIN_SCORE <= score < VERIFIED_MIN_SCORE
    return verified, needs_review


def normalize_assessment(analysis: dict) -> dict:
    """Turn the model's JSON into a well-formed Verification Assessment."""
    score = _bounded_number(analysis.get("score"))
    confidence = _bounded_number(analysis.get("confidence"))

    recommendation = str(analysis.get("recommendation") or "").strip().upper()
    if recommendation not in RECOMMENDATIONS:
        recommendation = REVIEW

    verified, needs_review = derive_verdict(recommendation, score)
    return {
        "verified": verified,
        "needsReview": needs_review,
        "confidence": confidence,
        "score": score,
        "recommendation": recommendation,
        "reason": str(analysis.get("reason") or "Analysis completed"),
        "redFlags": _red_flags(analysis.get("redFlags")),
        "analysis": analysis,
        "reviewedAt": utcnow(),
    }


def manual_review(cause: str, detail: str = None, raw_response: str = None) -> dict:
    """The uniform fallback assessment."""
    assessment = {
        "verified": False,
        "needsReview": False,
        "confidence": 0,
        "score": 0,
        "recommendation": MANUAL_REVIEW,
        "reason": MANUAL_REVIEW_REASONS.get(cause, MANUAL_REVIEW_REASONS[UpstreamDegraded.SERVICE_UNAVAILABLE]),
        "redFlags": [cause],
        "analysis": None,
        "reviewedAt": utcnow(),
    }
    if raw_response:
        assessment["analysis"] = {"rawResponse": raw_response}
    if detail and detail != cause:
        assessment["error"] = detail
    return assessment


# ============================================================
# ADVISOR
# ============================================================

class VerificationAdvisor:
    """
    Stateless scorer. `client` is None when no credentials are configured.
    """

    def __init__(self, client: Optional[AIClient]):
        self.client = client

    def assess(self, listing: dict) -> dict:
        if self.client is None:
            logger.warning("AI advisor has no credentials; routing to manual review")
            return manual_review(UpstreamDegraded.SERVICE_UNAVAILABLE)

        try:
            analysis = self.client.complete_json(SYSTEM_PROMPT, build_listing_summary(listing or {}))
        except UpstreamDegraded as e:
            logger.warning("AI verification degraded (%s): %s", e.cause, e.detail)
            return manual_review(e.cause, e.detail, e.raw_response)
        except Exception as e:
            logger.exception("AI verification failed")
            return manual_review(UpstreamDegraded.SERVICE_UNAVAILABLE, str(e))

        assessment = normalize_assessment(analysis)
        logger.info(
            "AI verification: score=%s recommendation=%s verified=%s",
            assessment["score"], assessment["recommendation"], assessment["verified"],
        )
        return assessment


def stored_review(assessment: dict) -> dict:
    """The subset of an assessment persisted on the listing as `aiReview`."""
    return {
        "reviewed": True,
        "reviewedAt": assessment.get("reviewedAt") or utcnow(),
        "confidence": assessment.get("confidence", 0),
        "score": assessment.get("score", 0),
        "recommendation": assessment.get("recommendation", MANUAL_REVIEW),
        "verified": assessment.get("verified", False),
        "needsReview": assessment.get("needsReview", False),
        "analysis": assessment.get("analysis"),
        "redFlags": assessment.get("redFlags", []),
        "reason": assessment.get("reason", ""),
    }
