"""
AI Routes

POST /ai/verify-property - score raw listing fields (no auth)

Always answers 200 with a Verification Assessment; when the AI service is
missing, slow, rate limited or incoherent the assessment is MANUAL_REVIEW.
"""

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from app.api.deps import get_verification_advisor
from app.services.verification_advisor import VerificationAdvisor
from app.schemas.schemas import VerificationAssessment

router = APIRouter(prefix="/ai", tags=["AI"])


@router.post("/verify-property", response_model=VerificationAssessment, response_model_exclude_none=True)
def verify_property(
    listing: Dict[str, Any] = Body(...),
    advisor: VerificationAdvisor = Depends(get_verification_advisor),
):
    return advisor.assess(listing)
