from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from sqlalchemy.orm import Session

from ai.feed_analyzer import FeedScanAnalyzer
from ai.feed_models import FeedScanRequest
from services.errors import FeedScanError, PersistenceError
from services.scan_service import record_scan

logger = logging.getLogger(__name__)

ScanStatus = Literal["succeeded", "persist_failed", "failed"]


@dataclass
class ScanOutcome:
    status: ScanStatus
    result: dict | None = None
    scan_id: int | None = None
    error: FeedScanError | None = None

    @property
    def analysis_succeeded(self) -> bool:
        return self.result is not None


async def run_feed_scan(
    analyzer: FeedScanAnalyzer,
    db: Session,
    request: FeedScanRequest,
) -> ScanOutcome:
    """Analyze a feed label, then record it in the horse's history when possible.

    Errors from the pipeline are returned in the outcome, not raised.
    """
    try:
        result = await analyzer.analyze(request)
    except FeedScanError as exc:
        logger.warning(f"Feed scan failed: {exc.message} ({type(exc).__name__})")
        return ScanOutcome(status="failed", error=exc)

    try:
        scan = record_scan(db, result, request.horse, request.user_id)
    except PersistenceError as exc:
        return ScanOutcome(status="persist_failed", result=result, error=exc)

    return ScanOutcome(status="succeeded", result=result, scan_id=scan.id if scan else None)
