"""
Shared router helpers: error mapping and response serialization.
"""
from typing import Any, Dict

from fastapi import HTTPException

from ..models.db_models import (
    BehavioralDomainDB,
    LevelAInterventionDB,
    LevelCCaseDB,
    LEVEL_A_INTERVENTION_LABELS,
)
from ..services.interventions import (
    InterventionError,
    NotFoundError,
    ValidationError,
    ConflictError,
    UpstreamError,
    display_phase,
)


ERROR_STATUS_CODES = [
    (NotFoundError, 404),
    (ValidationError, 400),
    (ConflictError, 409),
    (UpstreamError, 503),
]


def http_error(e: InterventionError) -> HTTPException:
    """Map a service error onto its HTTP status."""
    for error_cls, status_code in ERROR_STATUS_CODES:
        if isinstance(e, error_cls):
            return HTTPException(status_code=status_code, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


def _iso(value):
    return value.isoformat() if value else None


def serialize_domain(domain: BehavioralDomainDB) -> Dict[str, Any]:
    return {
        "id": domain.id,
        "domain_key": domain.domain_key,
        "display_name": domain.display_name,
        "description": domain.description,
        "expectations": domain.expectations or [],
        "repair_menu_immediate": domain.repair_menu_immediate or [],
        "repair_menu_restorative": domain.repair_menu_restorative or [],
    }


def serialize_level_a(intervention: LevelAInterventionDB) -> Dict[str, Any]:
    return {
        "id": intervention.id,
        "student_id": intervention.student_id,
        "staff_id": intervention.staff_id,
        "staff_name": intervention.staff_name,
        "domain_id": intervention.domain_id,
        "domain_key": intervention.domain.domain_key if intervention.domain else None,
        "intervention_type": intervention.intervention_type.value,
        "intervention_label": LEVEL_A_INTERVENTION_LABELS[intervention.intervention_type],
        "behavior_description": intervention.behavior_description,
        "location": intervention.location,
        "outcome": intervention.outcome.value,
        "escalated_to_b": intervention.escalated_to_b,
        "is_repeated_same_day": intervention.is_repeated_same_day,
        "affected_others": intervention.affected_others,
        "is_pattern_student": intervention.is_pattern_student,
        "event_timestamp": _iso(intervention.event_timestamp),
        "created_at": _iso(intervention.created_at),
    }


def serialize_case(case: LevelCCaseDB) -> Dict[str, Any]:
    return {
        "id": case.id,
        "student_id": case.student_id,
        "case_manager_id": case.case_manager_id,
        "case_manager_name": case.case_manager_name,
        "trigger_type": case.trigger_type.value,
        "case_type": case.case_type.value,
        "domain_focus_id": case.domain_focus_id,
        "escalated_from_level_b_ids": case.escalated_from_level_b_ids or [],
        "sis_demerit_points_at_creation": case.sis_demerit_points_at_creation,
        # Context packet
        "incident_summary": case.incident_summary,
        "pattern_review": case.pattern_review,
        "environmental_factors": case.environmental_factors or [],
        "prior_interventions_summary": case.prior_interventions_summary,
        "context_packet_completed": case.context_packet_completed,
        # Admin response
        "admin_response_type": case.admin_response_type.value if case.admin_response_type else None,
        "admin_response_details": case.admin_response_details,
        "consequence_start_date": _iso(case.consequence_start_date),
        "consequence_end_date": _iso(case.consequence_end_date),
        "admin_response_completed": case.admin_response_completed,
        # Support plan & re-entry
        "support_plan_goal": case.support_plan_goal,
        "support_plan_strategies": case.support_plan_strategies or [],
        "adult_mentor_id": case.adult_mentor_id,
        "adult_mentor_name": case.adult_mentor_name,
        "repair_actions": case.repair_actions or [],
        "reentry_date": _iso(case.reentry_date),
        "reentry_type": case.reentry_type.value,
        "reentry_restrictions": case.reentry_restrictions or [],
        "reentry_checklist": case.reentry_checklist or [],
        "reentry_planning_completed": case.reentry_planning_completed,
        # Monitoring
        "monitoring_duration_days": case.monitoring_duration_days,
        "monitoring_schedule": case.monitoring_schedule or [],
        "review_dates": case.review_dates or [],
        "daily_check_ins": case.daily_check_ins or [],
        # Closure
        "outcome_status": case.outcome_status.value if case.outcome_status else None,
        "outcome_notes": case.outcome_notes,
        "closure_criteria": case.closure_criteria,
        "closure_date": _iso(case.closure_date),
        "status": case.status.value,
        "display_phase": display_phase(case).value,
        "version": case.version_id,
        "created_at": _iso(case.created_at),
        "updated_at": _iso(case.updated_at),
    }
