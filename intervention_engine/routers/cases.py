"""
Level C Case API Routes

Case creation, phase updates, monitoring and closure.
Every write returns the full case so the client holds the latest version.
"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..database import get_db
from ..identity import get_current_staff, StaffIdentity
from ..models.db_models import (
    LevelCTriggerType,
    LevelCCaseType,
    LevelCStatus,
    AdminResponseType,
    ReentryType,
    CaseOutcomeStatus,
)
from ..models.interventions import (
    CreateCaseRequest,
    ContextPacketUpdate,
    AdminResponseRequest,
    ReentryPlanRequest,
    CaseListFilters,
    DailyCheckIn,
    RepairAction,
    RepairActionType,
    ReadinessChecklistItem,
)
from ..services.interventions import CaseService, InterventionError
from .common import http_error, serialize_case


router = APIRouter(prefix="/cases", tags=["level-c"])


# =============================================================================
# REQUEST MODELS
# =============================================================================

class CreateCaseBody(BaseModel):
    """Request to open a Level C case."""
    student_id: str
    trigger_type: LevelCTriggerType
    case_type: Optional[LevelCCaseType] = Field(None, description="Derived from trigger_type when omitted")
    domain_focus_id: Optional[int] = None
    escalated_from_level_b_ids: List[str] = Field(default_factory=list)
    sis_demerit_points_at_creation: Optional[int] = Field(None, ge=0, description="Manual entry from SIS")
    case_manager_id: Optional[str] = Field(None, description="Defaults to the acting staff member")
    case_manager_name: Optional[str] = None


class AssignCaseManagerBody(BaseModel):
    case_manager_id: str
    case_manager_name: Optional[str] = None


class ContextPacketBody(BaseModel):
    """Partial update - omitted fields are left as they are."""
    incident_summary: Optional[str] = None
    pattern_review: Optional[str] = None
    environmental_factors: Optional[List[str]] = None
    prior_interventions_summary: Optional[str] = None


class AdminResponseBody(BaseModel):
    admin_response_type: Optional[AdminResponseType] = None
    admin_response_details: Optional[str] = None
    consequence_start_date: Optional[date] = None
    consequence_end_date: Optional[date] = None


class RepairActionBody(BaseModel):
    description: str
    type: RepairActionType = RepairActionType.IMMEDIATE
    completed: bool = False
    notes: Optional[str] = None


class ReentryPlanBody(BaseModel):
    support_plan_goal: Optional[str] = None
    reentry_date: Optional[date] = None
    support_plan_strategies: List[str] = Field(default_factory=list)
    adult_mentor_id: Optional[str] = None
    adult_mentor_name: Optional[str] = None
    repair_actions: List[RepairActionBody] = Field(default_factory=list)
    reentry_type: ReentryType = ReentryType.STANDARD
    reentry_restrictions: List[str] = Field(default_factory=list)
    reentry_checklist: Optional[List[str]] = Field(None, description="Checklist items; default four-point checklist when omitted")


class ChecklistItemBody(BaseModel):
    completed: bool


class RepairActionUpdateBody(BaseModel):
    completed: bool
    notes: Optional[str] = None


class CheckInBody(BaseModel):
    check_in_date: Optional[date] = Field(None, description="Defaults to today")
    notes: str = ""
    success_rate: Optional[int] = Field(None, description="0-100 when a point sheet is used")


class CloseCaseBody(BaseModel):
    outcome_status: CaseOutcomeStatus
    outcome_notes: Optional[str] = None
    closure_criteria: Optional[str] = None


# =============================================================================
# QUERY ENDPOINTS
# =============================================================================

@router.get("", response_model=dict)
async def list_cases(
    student_id: Optional[str] = None,
    case_manager_id: Optional[str] = None,
    status: Optional[List[LevelCStatus]] = Query(None),
    my_caseload: bool = Query(False, description="Open cases managed by the acting staff member"),
    pending_reentries: bool = Query(False, description="Cases whose re-entry date has arrived"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    current_staff: StaffIdentity = Depends(get_current_staff),
):
    service = CaseService(db)

    try:
        if my_caseload:
            cases = service.caseload_for(current_staff.staff_id)
            total = len(cases)
        elif pending_reentries:
            cases = service.pending_reentries()
            total = len(cases)
        else:
            result = service.list_cases(CaseListFilters(
                student_id=student_id,
                case_manager_id=case_manager_id,
                status=status,
                limit=limit,
                offset=offset,
            ))
            cases, total = result.cases, result.total_count
    except InterventionError as e:
        raise http_error(e)

    return {"cases": [serialize_case(c) for c in cases], "total_count": total}


@router.get("/{case_id}", response_model=dict)
async def get_case(
    case_id: str,
    db: Session = Depends(get_db),
    current_staff: StaffIdentity = Depends(get_current_staff),
):
    try:
        case = CaseService(db).require(case_id)
    except InterventionError as e:
        raise http_error(e)

    return serialize_case(case)


# =============================================================================
# LIFECYCLE ENDPOINTS
# =============================================================================

@router.post("", response_model=dict, status_code=201)
async def create_case(
    request: CreateCaseBody,
    db: Session = Depends(get_db),
    current_staff: StaffIdentity = Depends(get_current_staff),
):
    """
    Open a Level C case.

    Level B records listed in escalated_from_level_b_ids are flagged as
    escalated in the same transaction.
    """
    case_manager_id = request.case_manager_id or current_staff.staff_id
    case_manager_name = request.case_manager_name
    if request.case_manager_id is None:
        case_manager_name = current_staff.staff_name

    try:
        case = CaseService(db).create(
            CreateCaseRequest(
                student_id=request.student_id,
                trigger_type=request.trigger_type,
                case_type=request.case_type,
                domain_focus_id=request.domain_focus_id,
                escalated_from_level_b_ids=request.escalated_from_level_b_ids,
                sis_demerit_points_at_creation=request.sis_demerit_points_at_creation,
            ),
            case_manager_id=case_manager_id,
            case_manager_name=case_manager_name,
        )
    except InterventionError as e:
        raise http_error(e)

    return serialize_case(case)


@router.post("/{case_id}/case-manager", response_model=dict)
async def assign_case_manager(
    case_id: str,
    request: AssignCaseManagerBody,
    db: Session = Depends(get_db),
    current_staff: StaffIdentity = Depends(get_current_staff),
):
    try:
        case = CaseService(db).assign_case_manager(
            case_id, request.case_manager_id, request.case_manager_name
        )
    except InterventionError as e:
        raise http_error(e)

    return serialize_case(case)


@router.post("/{case_id}/context-packet", response_model=dict)
async def update_context_packet(
    case_id: str,
    request: ContextPacketBody,
    db: Session = Depends(get_db),
    current_staff: StaffIdentity = Depends(get_current_staff),
):
    try:
        case = CaseService(db).update_context_packet(
            case_id, ContextPacketUpdate(**request.model_dump())
        )
    except InterventionError as e:
        raise http_error(e)

    return serialize_case(case)


@router.post("/{case_id}/admin-response", response_model=dict)
async def record_admin_response(
    case_id: str,
    request: AdminResponseBody,
    db: Session = Depends(get_db),
    current_staff: StaffIdentity = Depends(get_current_staff),
):
    try:
        case = CaseService(db).record_admin_response(
            case_id, AdminResponseRequest(**request.model_dump())
        )
    except InterventionError as e:
        raise http_error(e)

    return serialize_case(case)


@router.post("/{case_id}/reentry-plan", response_model=dict)
async def create_reentry_plan(
    case_id: str,
    request: ReentryPlanBody,
    db: Session = Depends(get_db),
    current_staff: StaffIdentity = Depends(get_current_staff),
):
    checklist = None
    if request.reentry_checklist is not None:
        checklist = [ReadinessChecklistItem(item=item) for item in request.reentry_checklist]

    plan = ReentryPlanRequest(
        support_plan_goal=request.support_plan_goal,
        reentry_date=request.reentry_date,
        support_plan_strategies=request.support_plan_strategies,
        adult_mentor_id=request.adult_mentor_id,
        adult_mentor_name=request.adult_mentor_name,
        repair_actions=[RepairAction(**action.model_dump()) for action in request.repair_actions],
        reentry_type=request.reentry_type,
        reentry_restrictions=request.reentry_restrictions,
        reentry_checklist=checklist,
    )

    try:
        case = CaseService(db).create_reentry_plan(case_id, plan)
    except InterventionError as e:
        raise http_error(e)

    return serialize_case(case)


@router.patch("/{case_id}/reentry-checklist/{index}", response_model=dict)
async def update_checklist_item(
    case_id: str,
    index: int,
    request: ChecklistItemBody,
    db: Session = Depends(get_db),
    current_staff: StaffIdentity = Depends(get_current_staff),
):
    try:
        case = CaseService(db).update_checklist_item(
            case_id, index, request.completed, completed_by=current_staff.staff_name
        )
    except InterventionError as e:
        raise http_error(e)

    return serialize_case(case)


@router.patch("/{case_id}/repair-actions/{index}", response_model=dict)
async def update_repair_action(
    case_id: str,
    index: int,
    request: RepairActionUpdateBody,
    db: Session = Depends(get_db),
    current_staff: StaffIdentity = Depends(get_current_staff),
):
    try:
        case = CaseService(db).update_repair_action(
            case_id, index, request.completed, notes=request.notes
        )
    except InterventionError as e:
        raise http_error(e)

    return serialize_case(case)


@router.post("/{case_id}/monitoring", response_model=dict)
async def start_monitoring(
    case_id: str,
    db: Session = Depends(get_db),
    current_staff: StaffIdentity = Depends(get_current_staff),
):
    """Generate review dates from the re-entry date and start monitoring."""
    try:
        case = CaseService(db).start_monitoring(case_id)
    except InterventionError as e:
        raise http_error(e)

    return serialize_case(case)


@router.post("/{case_id}/check-ins", response_model=dict)
async def log_check_in(
    case_id: str,
    request: CheckInBody,
    db: Session = Depends(get_db),
    current_staff: StaffIdentity = Depends(get_current_staff),
):
    check_in = DailyCheckIn(
        date=request.check_in_date or date.today(),
        notes=request.notes,
        logged_by=current_staff.staff_name,
        success_rate=request.success_rate,
    )

    try:
        case = CaseService(db).log_check_in(case_id, check_in)
    except InterventionError as e:
        raise http_error(e)

    return serialize_case(case)


@router.post("/{case_id}/close", response_model=dict)
async def close_case(
    case_id: str,
    request: CloseCaseBody,
    db: Session = Depends(get_db),
    current_staff: StaffIdentity = Depends(get_current_staff),
):
    try:
        case = CaseService(db).close(
            case_id,
            request.outcome_status,
            notes=request.outcome_notes,
            closure_criteria=request.closure_criteria,
        )
    except InterventionError as e:
        raise http_error(e)

    return serialize_case(case)
