"""
Level A API Routes

Logging filter, append-only coaching log, outcome updates and per-student stats.
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..database import get_db
from ..identity import get_current_staff, StaffIdentity
from ..models.db_models import LevelAInterventionType, LevelAOutcome
from ..models.interventions import CreateLevelARequest
from ..services.interventions import (
    LevelAService,
    DomainCatalog,
    PatternDetector,
    SqlLevelBStore,
    DecisionTreeEngine,
    InterventionError,
    NotFoundError,
)
from .common import http_error, serialize_level_a


router = APIRouter(prefix="/interventions/level-a", tags=["level-a"])


# =============================================================================
# REQUEST MODELS
# =============================================================================

class ShouldLogRequest(BaseModel):
    student_id: str
    domain_id: int
    affected_others: bool = False


class LogLevelARequest(BaseModel):
    """Request to log a coaching intervention."""
    student_id: str = Field(..., description="Student the intervention was with")
    domain_id: int = Field(..., description="Behavioral domain")
    intervention_type: LevelAInterventionType
    behavior_description: Optional[str] = None
    location: Optional[str] = None
    outcome: LevelAOutcome = Field(default=LevelAOutcome.COMPLIED)
    affected_others: bool = False
    event_timestamp: Optional[datetime] = Field(None, description="Defaults to now")


class SetOutcomeRequest(BaseModel):
    outcome: LevelAOutcome
    escalated_to_b: bool = False


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post("/should-log", response_model=dict)
async def should_log(
    request: ShouldLogRequest,
    db: Session = Depends(get_db),
    current_staff: StaffIdentity = Depends(get_current_staff),
):
    """Whether this incident belongs in the log."""
    engine = DecisionTreeEngine(PatternDetector(db), SqlLevelBStore(db), DomainCatalog(db))

    try:
        result = engine.should_log_level_a(
            request.student_id, request.domain_id, request.affected_others
        )
    except InterventionError as e:
        raise http_error(e)

    return {"should_log": result.should_log, "reason": result.reason}


@router.post("", response_model=dict, status_code=201)
async def log_level_a(
    request: LogLevelARequest,
    db: Session = Depends(get_db),
    current_staff: StaffIdentity = Depends(get_current_staff),
):
    """Log a Level A intervention for the acting staff member."""
    service = LevelAService(db)

    try:
        intervention = service.log(
            CreateLevelARequest(**request.model_dump()),
            staff_id=current_staff.staff_id,
            staff_name=current_staff.staff_name,
        )
    except InterventionError as e:
        raise http_error(e)

    return serialize_level_a(intervention)


@router.get("", response_model=dict)
async def list_level_a(
    student_id: Optional[str] = None,
    domain_id: Optional[int] = None,
    staff_id: Optional[str] = None,
    from_date: Optional[datetime] = None,
    to_date: Optional[datetime] = None,
    today_only: bool = Query(False, description="Only the acting staff member's interventions today"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    current_staff: StaffIdentity = Depends(get_current_staff),
):
    service = LevelAService(db)

    try:
        if today_only:
            rows = service.todays_interventions(staff_id=current_staff.staff_id)
            total = len(rows)
        else:
            rows, total = service.list_interventions(
                student_id=student_id,
                domain_id=domain_id,
                staff_id=staff_id,
                from_date=from_date,
                to_date=to_date,
                limit=limit,
                offset=offset,
            )
    except InterventionError as e:
        raise http_error(e)

    return {
        "interventions": [serialize_level_a(row) for row in rows],
        "total_count": total,
    }


@router.get("/students/{student_id}/stats", response_model=dict)
async def student_stats(
    student_id: str,
    days: int = Query(30, ge=1),
    db: Session = Depends(get_db),
    current_staff: StaffIdentity = Depends(get_current_staff),
):
    try:
        return LevelAService(db).student_stats(student_id, days=days)
    except InterventionError as e:
        raise http_error(e)


@router.get("/{intervention_id}", response_model=dict)
async def get_level_a(
    intervention_id: str,
    db: Session = Depends(get_db),
    current_staff: StaffIdentity = Depends(get_current_staff),
):
    try:
        intervention = LevelAService(db).get_by_id(intervention_id)
        if intervention is None:
            raise NotFoundError(f"Level A intervention not found: {intervention_id}")
    except InterventionError as e:
        raise http_error(e)

    return serialize_level_a(intervention)


@router.patch("/{intervention_id}/outcome", response_model=dict)
async def set_outcome(
    intervention_id: str,
    request: SetOutcomeRequest,
    db: Session = Depends(get_db),
    current_staff: StaffIdentity = Depends(get_current_staff),
):
    """Update outcome / escalated_to_b. Nothing else on the record can change."""
    try:
        intervention = LevelAService(db).set_outcome(
            intervention_id, request.outcome, escalated_to_b=request.escalated_to_b
        )
    except InterventionError as e:
        raise http_error(e)

    return serialize_level_a(intervention)
