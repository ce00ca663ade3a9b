import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ai.feed_analyzer import FeedScanAnalyzer
from ai.feed_models import FeedScanRequest, describe_validation_errors
from ai.providers import get_provider
from config import settings
from db.database import get_db
from services.errors import FeedScanError, ScanValidationError
from services.feed_scan_service import run_feed_scan

logger = logging.getLogger(__name__)

router = APIRouter(tags=["feed-scan"])


def get_feed_analyzer() -> FeedScanAnalyzer:
    provider = get_provider(
        settings.AI_PROVIDER,
        settings.ANTHROPIC_API_KEY,
        reasoning_model=settings.ANTHROPIC_MODEL,
        max_tokens=settings.ANTHROPIC_MAX_TOKENS,
        timeout_seconds=settings.ANTHROPIC_TIMEOUT_SECONDS,
    )
    # Model comes from the provider so its model-name guard applies
    return FeedScanAnalyzer(
        provider,
        max_tokens=settings.ANTHROPIC_MAX_TOKENS,
        sponsor_brand=settings.FEED_SPONSOR_BRAND,
        strict_schema=settings.ANALYSIS_STRICT_SCHEMA,
        default_media_type=settings.DEFAULT_IMAGE_MEDIA_TYPE,
        max_image_bytes=settings.MAX_IMAGE_BYTES,
    )


def _error_response(exc: FeedScanError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_response())


def _is_missing_image(err: dict) -> bool:
    return err.get("type") == "missing" and tuple(err.get("loc", ())) in {("body",), ("body", "imageBase64")}


def request_validation_response(errors: list[dict]) -> JSONResponse:
    """Map a rejected analyze-feed body onto the ``{"error": ...}`` shape."""
    if any(_is_missing_image(err) for err in errors):
        return _error_response(ScanValidationError("No image provided"))
    issues = describe_validation_errors(errors)
    return _error_response(ScanValidationError("Invalid request", details="; ".join(issues)))


@router.post("/analyze-feed")
async def analyze_feed(
    payload: FeedScanRequest,
    db: Session = Depends(get_db),
    analyzer: FeedScanAnalyzer = Depends(get_feed_analyzer),
):
    """Analyze a feed tag photo against an optional horse profile."""
    try:
        outcome = await run_feed_scan(analyzer, db, payload)
    except Exception as e:
        logger.exception("Analysis error")
        return JSONResponse(status_code=500, content={"error": "Analysis failed", "details": str(e)})

    if outcome.status == "failed":
        return _error_response(outcome.error)

    if outcome.status == "persist_failed":
        if settings.SCAN_FAIL_ON_PERSIST_ERROR:
            return _error_response(outcome.error)
        logger.warning(f"Returning feed analysis without history record: {outcome.error.payload.get('details')}")
        return JSONResponse(content=outcome.result, headers={"X-Scan-Recorded": "false"})

    return outcome.result
