from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from config import settings
from db.database import get_db
from services.scan_service import list_scans, scan_to_dict

router = APIRouter(prefix="/scans", tags=["scans"])


@router.get("/{horse_id}")
def get_scan_history(horse_id: int, db: Session = Depends(get_db)):
    """Most recent feed scans for a horse."""
    scans = list_scans(db, horse_id, limit=settings.SCAN_HISTORY_LIMIT)
    return [scan_to_dict(s) for s in scans]
