"""
Scheduler API Routes

Internal endpoints for the external poller. Read-only: reviews due today,
stale cases, expired monitoring periods and re-entries that have arrived.
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Header
from sqlalchemy.orm import Session

from ..config import INTERNAL_API_KEY
from ..database import get_db
from ..services.interventions import CaseMonitor, InterventionError
from .common import http_error


router = APIRouter(prefix="/internal", tags=["scheduler"])


# =============================================================================
# INTERNAL API KEY VALIDATION
# =============================================================================

async def verify_internal_key(x_internal_key: str = Header(...)):
    """Verify internal API key for scheduler endpoints."""
    if x_internal_key != INTERNAL_API_KEY:
        raise HTTPException(status_code=403, detail="Invalid internal API key")
    return True


# =============================================================================
# MONITORING ENDPOINTS (READ-ONLY)
# =============================================================================

@router.get("/monitoring/daily-report", response_model=dict)
async def daily_report(
    on_date: Optional[date] = None,
    db: Session = Depends(get_db),
    _: bool = Depends(verify_internal_key),
):
    """
    Everything the nightly job acts on, as case ids.

    Nothing is changed; reminders and closures are the poller's call.
    """
    try:
        return CaseMonitor(db).daily_report(on_date)
    except InterventionError as e:
        raise http_error(e)
