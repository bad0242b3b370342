"""
routes.py
=========
All API endpoint definitions.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from loguru import logger

from docreview.core.config import settings
from docreview.models.schemas import HealthResponse, ReviewRequest, ReviewResponse
from docreview.services.review_pipeline import ReviewPipeline, get_review_pipeline

router = APIRouter()


def verify_api_key(x_api_key: Optional[str] = Header(None)):
    # No key configured on the server: the API is open (local development)
    if not settings.API_KEY:
        return None

    if x_api_key != settings.API_KEY:
        raise HTTPException(status_code=401, detail="Unauthorized")

    return x_api_key


# ─────────────────────────────────────────────
# HEALTH CHECK
# ─────────────────────────────────────────────

@router.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check(pipeline: ReviewPipeline = Depends(get_review_pipeline)):
    """Check if the model provider is configured."""
    return HealthResponse(
        status="healthy" if pipeline.is_ready else "degraded",
        model_configured=pipeline.is_ready,
        detection_model=pipeline.detection_model.profile.model,
        review_model=pipeline.review_model.profile.model,
        docs_authenticated=pipeline.docs_client.is_authenticated,
        version=settings.APP_VERSION,
    )


# ─────────────────────────────────────────────
# MAIN REVIEW ENDPOINT
# ─────────────────────────────────────────────

@router.post("/review", response_model=ReviewResponse, tags=["Review"])
async def review_code(
    request: ReviewRequest,
    pipeline: ReviewPipeline = Depends(get_review_pipeline),
    api_key: Optional[str] = Depends(verify_api_key),
):
    """
    Submit code for documentation-aware AI review.

    Returns a list of findings, each with:
    - severity and category
    - line number
    - message, suggestion and explanation
    """
    if len(request.code or "") > settings.MAX_CODE_LENGTH:
        raise HTTPException(
            status_code=413,
            detail=f"Code too long. Max {settings.MAX_CODE_LENGTH} characters."
        )

    # InvalidSubmissionError / AnalysisFailedError are mapped in main.py
    submission = request.to_submission()
    pipeline.validate(submission)

    if not pipeline.is_ready:
        raise HTTPException(status_code=503, detail="Model provider is not configured")

    logger.info(
        f"Review request | file={request.filename or 'snippet'} | "
        f"lang={request.language} | size={len(submission.code)}"
    )

    report = await pipeline.review(submission)
    return ReviewResponse.from_report(report)
