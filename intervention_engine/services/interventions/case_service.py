"""
Level C Case Service

Case management lifecycle (2-4 weeks):

1. Context packet   - incident summary, pattern review, environmental factors, prior interventions
2. Admin response   - detention / ISS / OSS / contract / parent conference
3. Re-entry plan    - support goal, strategies, mentor, repair actions, readiness checklist
4. Monitoring       - review schedule from the re-entry date, daily check-ins
5. Closure          - outcome status, terminal

Each mutation is a single read-modify-write guarded by the case version
column. A writer that lost a race gets ConflictError and must reload.
"""
import logging
from datetime import date, datetime
from typing import List, Optional
from uuid import uuid4

from sqlalchemy.orm import Session

from ...models.db_models import (
    LevelCCaseDB,
    LevelCStatus,
    CaseOutcomeStatus,
)
from ...models.interventions import (
    CreateCaseRequest,
    ContextPacketUpdate,
    AdminResponseRequest,
    ReentryPlanRequest,
    CaseListFilters,
    CaseListResult,
    DailyCheckIn,
    RepairAction,
    ReadinessChecklistItem,
    default_reentry_checklist,
)
from .domain_catalog import DomainCatalog
from .errors import NotFoundError, ValidationError, InvalidTransitionError
from .level_b_store import LevelBStore, SqlLevelBStore
from .monitoring_schedule import (
    build_monitoring_schedule,
    classify_case_type,
    monitoring_duration_for,
)
from .state_machine import CaseStateMachine, PhaseOrderPolicy
from .unit_of_work import unit_of_work, store_read

logger = logging.getLogger(__name__)


def _filled(value) -> bool:
    if isinstance(value, str):
        return bool(value.strip())
    return bool(value)


class CaseService:

    def __init__(
        self,
        db_session: Session,
        level_b_store: Optional[LevelBStore] = None,
        catalog: Optional[DomainCatalog] = None,
        policy: Optional[PhaseOrderPolicy] = None,
    ):
        """Initialize with database session and collaborators."""
        self.db = db_session
        self.level_b_store = level_b_store or SqlLevelBStore(db_session)
        self.catalog = catalog or DomainCatalog(db_session)
        self.policy = policy or PhaseOrderPolicy()
        self.state_machine = CaseStateMachine()

    # =========================================================================
    # CREATION
    # =========================================================================

    def create(
        self,
        request: CreateCaseRequest,
        case_manager_id: Optional[str] = None,
        case_manager_name: Optional[str] = None,
    ) -> LevelCCaseDB:
        """
        Open a case.

        Case type comes from the trigger unless given explicitly. Monitoring
        duration always follows the trigger-derived type, so an explicit
        case_type relabels the case without changing its duration. Level B
        records the case escalated from are flagged in the same transaction.
        """
        if request.domain_focus_id is not None:
            self.catalog.require(request.domain_focus_id)

        derived_type = classify_case_type(request.trigger_type)
        case_type = request.case_type or derived_type
        level_b_ids = list(dict.fromkeys(request.escalated_from_level_b_ids))

        case = LevelCCaseDB(
            id=str(uuid4()),
            student_id=request.student_id,
            case_manager_id=case_manager_id,
            case_manager_name=case_manager_name,
            trigger_type=request.trigger_type,
            case_type=case_type,
            domain_focus_id=request.domain_focus_id,
            escalated_from_level_b_ids=level_b_ids,
            sis_demerit_points_at_creation=request.sis_demerit_points_at_creation,
            environmental_factors=[],
            support_plan_strategies=[],
            repair_actions=[],
            reentry_restrictions=[],
            reentry_checklist=[],
            monitoring_duration_days=monitoring_duration_for(derived_type),
            monitoring_schedule=[],
            review_dates=[],
            daily_check_ins=[],
            status=LevelCStatus.ACTIVE,
        )

        with unit_of_work(self.db, "create_case"):
            self.db.add(case)
            if level_b_ids:
                self.level_b_store.mark_escalated(level_b_ids)

        logger.info(
            f"Case {case.id} opened for student {case.student_id} "
            f"({request.trigger_type.value} -> {case_type.value}, "
            f"{case.monitoring_duration_days}d monitoring, {len(level_b_ids)} Level B escalated)"
        )
        return case

    def assign_case_manager(
        self,
        case_id: str,
        case_manager_id: str,
        case_manager_name: Optional[str] = None,
    ) -> LevelCCaseDB:
        with unit_of_work(self.db, "assign_case_manager"):
            case = self._load_writable(case_id, "assign_case_manager")
            case.case_manager_id = case_manager_id
            case.case_manager_name = case_manager_name

        logger.info(f"Case {case.id} assigned to {case_manager_id} ({case.status.value})")
        return case

    # =========================================================================
    # PHASE 1: CONTEXT PACKET
    # =========================================================================

    def update_context_packet(self, case_id: str, update: ContextPacketUpdate) -> LevelCCaseDB:
        """
        Merge supplied fields into the context packet.

        Once incident summary, pattern review, environmental factors and prior
        interventions summary are all non-empty, the packet is complete and
        the case moves straight to admin_response.
        """
        with unit_of_work(self.db, "update_context_packet"):
            case = self._load_writable(case_id, "update_context_packet")

            if update.incident_summary is not None:
                case.incident_summary = update.incident_summary
            if update.pattern_review is not None:
                case.pattern_review = update.pattern_review
            if update.environmental_factors is not None:
                case.environmental_factors = sorted({
                    factor.strip() for factor in update.environmental_factors if _filled(factor)
                })
            if update.prior_interventions_summary is not None:
                case.prior_interventions_summary = update.prior_interventions_summary

            complete = all(_filled(value) for value in (
                case.incident_summary,
                case.pattern_review,
                case.environmental_factors,
                case.prior_interventions_summary,
            ))
            if complete:
                case.context_packet_completed = True
                self.state_machine.advance(case, LevelCStatus.ADMIN_RESPONSE)

        logger.info(
            f"Case {case.id} context packet updated "
            f"(completed={case.context_packet_completed}, status={case.status.value})"
        )
        return case

    # =========================================================================
    # PHASE 2: ADMIN RESPONSE
    # =========================================================================

    def record_admin_response(self, case_id: str, request: AdminResponseRequest) -> LevelCCaseDB:
        if request.admin_response_type is None:
            raise ValidationError("admin_response_type is required")
        if (
            request.consequence_start_date and request.consequence_end_date
            and request.consequence_end_date < request.consequence_start_date
        ):
            raise ValidationError("consequence_end_date is before consequence_start_date")

        with unit_of_work(self.db, "record_admin_response"):
            case = self._load_writable(case_id, "record_admin_response")
            self.policy.check("record_admin_response", case)

            case.admin_response_type = request.admin_response_type
            case.admin_response_details = request.admin_response_details
            case.consequence_start_date = request.consequence_start_date
            case.consequence_end_date = request.consequence_end_date
            case.admin_response_completed = True
            self.state_machine.advance(case, LevelCStatus.PENDING_REENTRY)

        logger.info(
            f"Case {case.id} admin response {request.admin_response_type.value} "
            f"recorded ({case.status.value})"
        )
        return case

    # =========================================================================
    # PHASE 3: RE-ENTRY PLAN
    # =========================================================================

    def create_reentry_plan(self, case_id: str, request: ReentryPlanRequest) -> LevelCCaseDB:
        """
        Record the support plan and re-entry details.

        Status is left alone: the case stays pending_reentry until monitoring
        is started explicitly.
        """
        if not _filled(request.support_plan_goal):
            raise ValidationError("support_plan_goal is required")
        if request.reentry_date is None:
            raise ValidationError("reentry_date is required")

        checklist = request.reentry_checklist
        if checklist is None:
            checklist = default_reentry_checklist()

        with unit_of_work(self.db, "create_reentry_plan"):
            case = self._load_writable(case_id, "create_reentry_plan")
            self.policy.check("create_reentry_plan", case)

            case.support_plan_goal = request.support_plan_goal
            case.support_plan_strategies = list(request.support_plan_strategies)
            case.adult_mentor_id = request.adult_mentor_id
            case.adult_mentor_name = request.adult_mentor_name
            case.repair_actions = [action.to_dict() for action in request.repair_actions]
            case.reentry_date = request.reentry_date
            case.reentry_type = request.reentry_type
            case.reentry_restrictions = list(request.reentry_restrictions)
            case.reentry_checklist = [item.to_dict() for item in checklist]
            case.reentry_planning_completed = True

        logger.info(
            f"Case {case.id} re-entry plan set for {case.reentry_date.isoformat()} "
            f"({case.status.value})"
        )
        return case

    def update_checklist_item(
        self,
        case_id: str,
        index: int,
        completed: bool,
        completed_by: Optional[str] = None,
    ) -> LevelCCaseDB:
        """Tick or untick one readiness checklist item. Status is unchanged."""
        with unit_of_work(self.db, "update_checklist_item"):
            case = self._load_writable(case_id, "update_checklist_item")
            items = [ReadinessChecklistItem.from_dict(d) for d in case.reentry_checklist or []]
            if not 0 <= index < len(items):
                raise ValidationError(f"Checklist item {index} does not exist on case {case.id}")

            items[index].completed = completed
            items[index].completed_by = completed_by if completed else None
            items[index].completed_at = datetime.utcnow() if completed else None
            case.reentry_checklist = [item.to_dict() for item in items]

        logger.info(f"Case {case.id} checklist item {index} completed={completed}")
        return case

    def update_repair_action(
        self,
        case_id: str,
        index: int,
        completed: bool,
        notes: Optional[str] = None,
    ) -> LevelCCaseDB:
        with unit_of_work(self.db, "update_repair_action"):
            case = self._load_writable(case_id, "update_repair_action")
            actions = [RepairAction.from_dict(d) for d in case.repair_actions or []]
            if not 0 <= index < len(actions):
                raise ValidationError(f"Repair action {index} does not exist on case {case.id}")

            actions[index].completed = completed
            if notes is not None:
                actions[index].notes = notes
            case.repair_actions = [action.to_dict() for action in actions]

        logger.info(f"Case {case.id} repair action {index} completed={completed}")
        return case

    # =========================================================================
    # PHASE 4: MONITORING
    # =========================================================================

    def start_monitoring(self, case_id: str, today: Optional[date] = None) -> LevelCCaseDB:
        """
        Generate the review schedule and move the case to monitoring.

        The schedule starts at the re-entry date, or today when no re-entry
        date was planned.
        """
        with unit_of_work(self.db, "start_monitoring"):
            case = self._load_writable(case_id, "start_monitoring")
            if case.status == LevelCStatus.MONITORING:
                raise InvalidTransitionError(f"Case {case.id} is already in monitoring")
            self.policy.check("start_monitoring", case)

            start_date = case.reentry_date or today or date.today()
            schedule = build_monitoring_schedule(start_date, case.monitoring_duration_days)

            case.monitoring_schedule = [entry.to_dict() for entry in schedule]
            case.review_dates = [entry.date.isoformat() for entry in schedule]
            self.state_machine.advance(case, LevelCStatus.MONITORING)

        logger.info(
            f"Case {case.id} monitoring from {start_date.isoformat()} "
            f"to {schedule[-1].date.isoformat()} ({len(schedule)} reviews)"
        )
        return case

    def log_check_in(self, case_id: str, check_in: DailyCheckIn) -> LevelCCaseDB:
        """Append a check-in. Any date, any number per day."""
        if check_in.success_rate is not None and not 0 <= check_in.success_rate <= 100:
            raise ValidationError("success_rate must be between 0 and 100")

        with unit_of_work(self.db, "log_check_in"):
            case = self._load_writable(case_id, "log_check_in")
            case.daily_check_ins = list(case.daily_check_ins or []) + [check_in.to_dict()]

        logger.info(
            f"Case {case.id} check-in for {check_in.date.isoformat()} "
            f"by {check_in.logged_by} ({len(case.daily_check_ins)} total)"
        )
        return case

    # =========================================================================
    # PHASE 5: CLOSURE
    # =========================================================================

    def close(
        self,
        case_id: str,
        outcome_status: CaseOutcomeStatus,
        notes: Optional[str] = None,
        closure_criteria: Optional[str] = None,
        today: Optional[date] = None,
    ) -> LevelCCaseDB:
        """Close the case. Terminal: every later write is rejected."""
        with unit_of_work(self.db, "close_case"):
            case = self._load_writable(case_id, "close_case")
            case.outcome_status = outcome_status
            case.outcome_notes = notes
            case.closure_criteria = closure_criteria
            case.closure_date = today or date.today()
            self.state_machine.advance(case, LevelCStatus.CLOSED)

        logger.info(f"Case {case.id} closed ({outcome_status.value})")
        return case

    # =========================================================================
    # QUERIES
    # =========================================================================

    @store_read("get_case")
    def get_by_id(self, case_id: str) -> Optional[LevelCCaseDB]:
        return self.db.query(LevelCCaseDB).filter(LevelCCaseDB.id == case_id).first()

    def require(self, case_id: str) -> LevelCCaseDB:
        """Get a case or raise NotFoundError."""
        case = self.get_by_id(case_id)
        if case is None:
            raise NotFoundError(f"Level C case not found: {case_id}")
        return case

    @store_read("list_cases")
    def list_cases(self, filters: Optional[CaseListFilters] = None) -> CaseListResult:
        """Filtered, newest-first page plus the total match count."""
        filters = filters or CaseListFilters()
        query = self.db.query(LevelCCaseDB)

        if filters.student_id:
            query = query.filter(LevelCCaseDB.student_id == filters.student_id)
        if filters.case_manager_id:
            query = query.filter(LevelCCaseDB.case_manager_id == filters.case_manager_id)
        if filters.status:
            if isinstance(filters.status, (list, tuple, set)):
                query = query.filter(LevelCCaseDB.status.in_(list(filters.status)))
            else:
                query = query.filter(LevelCCaseDB.status == filters.status)

        total = query.count()
        cases = query.order_by(
            LevelCCaseDB.created_at.desc()
        ).offset(filters.offset).limit(filters.limit).all()

        return CaseListResult(cases=cases, total_count=total)

    @store_read("caseload_for")
    def caseload_for(self, case_manager_id: str) -> List[LevelCCaseDB]:
        """All open cases for a case manager."""
        return self.db.query(LevelCCaseDB).filter(
            LevelCCaseDB.case_manager_id == case_manager_id,
            LevelCCaseDB.status != LevelCStatus.CLOSED,
        ).order_by(LevelCCaseDB.created_at.desc()).all()

    @store_read("pending_reentries")
    def pending_reentries(self, today: Optional[date] = None) -> List[LevelCCaseDB]:
        """Cases waiting on re-entry whose re-entry date has arrived."""
        today = today or date.today()
        return self.db.query(LevelCCaseDB).filter(
            LevelCCaseDB.status == LevelCStatus.PENDING_REENTRY,
            LevelCCaseDB.reentry_date <= today,
        ).order_by(LevelCCaseDB.reentry_date.asc()).all()

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _load_writable(self, case_id: str, operation: str) -> LevelCCaseDB:
        case = self.require(case_id)
        self.state_machine.ensure_writable(case, operation)
        return case
