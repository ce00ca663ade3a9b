from __future__ import annotations

import json
import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ai.feed_models import HorseProfile
from db.models import FeedScan
from services.errors import PersistenceError

logger = logging.getLogger(__name__)


def _dump(value: Any) -> str | None:
    if value is None:
        return None
    return json.dumps(value)


def _load(value: str | None) -> Any:
    if not value:
        return None
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        return value


def should_record_scan(horse: HorseProfile | None, user_id: int | None) -> bool:
    return horse is not None and horse.id is not None and user_id is not None


def record_scan(
    db: Session,
    result: dict,
    horse: HorseProfile | None,
    user_id: int | None,
) -> FeedScan | None:
    """Store one analysis in the horse's scan history.

    Skipped (returns None) unless both the horse id and the user id are known.
    """
    if not should_record_scan(horse, user_id):
        logger.debug("Feed scan not recorded: horse id or user id missing")
        return None

    scan = FeedScan(
        horse_id=horse.id,
        user_id=user_id,
        feed_name=result.get("feedName"),
        brand=result.get("brand"),
        match_score=result.get("matchScore"),
        verdict=result.get("verdict"),
        nutrients=_dump(result.get("nutrients")),
        warnings=_dump(result.get("warnings")),
        positives=_dump(result.get("positives")),
        recommendations=_dump(result.get("recommendations")),
        feeding_recommendation=result.get("feedingRecommendation"),
        raw_analysis=json.dumps(result),
    )
    try:
        db.add(scan)
        db.commit()
        db.refresh(scan)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(f"Feed scan insert failed for horse {horse.id}: {exc}")
        raise PersistenceError(str(exc)) from exc
    logger.info(f"Recorded feed scan {scan.id} for horse {horse.id}")
    return scan


def list_scans(db: Session, horse_id: int, limit: int = 50) -> list[FeedScan]:
    return (
        db.query(FeedScan)
        .filter(FeedScan.horse_id == horse_id)
        .order_by(FeedScan.scanned_at.desc(), FeedScan.id.desc())
        .limit(max(int(limit), 1))
        .all()
    )


def scan_to_dict(scan: FeedScan) -> dict:
    return {
        "id": scan.id,
        "horse_id": scan.horse_id,
        "user_id": scan.user_id,
        "feed_name": scan.feed_name,
        "brand": scan.brand,
        "match_score": scan.match_score,
        "verdict": scan.verdict,
        "nutrients": _load(scan.nutrients),
        "warnings": _load(scan.warnings) or [],
        "positives": _load(scan.positives) or [],
        "recommendations": _load(scan.recommendations),
        "feeding_recommendation": scan.feeding_recommendation,
        "raw_analysis": _load(scan.raw_analysis),
        "scanned_at": scan.scanned_at.isoformat() if scan.scanned_at else None,
    }
