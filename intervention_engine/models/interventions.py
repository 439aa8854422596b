"""
Intervention Engine - Domain Models

Value objects embedded in Level C cases (stored as JSON arrays) and the
ephemeral request/result objects passed between the services.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .db_models import (
    InterventionLevel,
    LevelAInterventionType,
    LevelAOutcome,
    LevelCTriggerType,
    LevelCCaseType,
    LevelCStatus,
    AdminResponseType,
    ReentryType,
)


def _iso(value: Optional[Union[date, datetime]]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_date(value: Any) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(value)


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


# =============================================================================
# CASE VALUE OBJECTS (JSON-BACKED)
# =============================================================================

class ReviewType(str, Enum):
    CHECK_IN = "check_in"
    FINAL = "final"


class RepairActionType(str, Enum):
    IMMEDIATE = "immediate"
    RESTORATIVE = "restorative"


@dataclass
class RepairAction:
    """A repair the student owes (apology, service, restorative circle...)."""
    description: str
    completed: bool = False
    type: RepairActionType = RepairActionType.IMMEDIATE
    notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "description": self.description,
            "completed": self.completed,
            "type": self.type.value,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RepairAction":
        return cls(
            # Portal-created rows use "action" for the description
            description=data.get("description") or data.get("action", ""),
            completed=bool(data.get("completed", data.get("status") == "completed")),
            type=RepairActionType(data.get("type", RepairActionType.IMMEDIATE.value)),
            notes=data.get("notes"),
        )


@dataclass
class ReadinessChecklistItem:
    item: str
    completed: bool = False
    completed_by: Optional[str] = None
    completed_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "item": self.item,
            "completed": self.completed,
            "completed_by": self.completed_by,
            "completed_at": _iso(self.completed_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReadinessChecklistItem":
        return cls(
            item=data["item"],
            completed=bool(data.get("completed", False)),
            completed_by=data.get("completed_by"),
            completed_at=_parse_datetime(data.get("completed_at")),
        )


DEFAULT_REENTRY_CHECKLIST = (
    "Student can articulate what happened",
    "Student can name the expectation broken",
    "Student has identified repair action",
    "Student can state reset goal",
)


def default_reentry_checklist() -> List[ReadinessChecklistItem]:
    """Four-point readiness checklist, all items open."""
    return [ReadinessChecklistItem(item=item) for item in DEFAULT_REENTRY_CHECKLIST]


@dataclass
class DailyCheckIn:
    """One monitoring check-in. Append-only on the case."""
    date: date
    notes: str
    logged_by: str
    logged_at: datetime = field(default_factory=datetime.utcnow)
    success_rate: Optional[int] = None  # 0-100 when a point sheet is used

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "notes": self.notes,
            "logged_by": self.logged_by,
            "logged_at": self.logged_at.isoformat(),
            "success_rate": self.success_rate,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DailyCheckIn":
        return cls(
            date=_parse_date(data["date"]),
            notes=data.get("notes", ""),
            logged_by=data.get("logged_by", ""),
            logged_at=_parse_datetime(data.get("logged_at")) or datetime.utcnow(),
            success_rate=data.get("success_rate"),
        )


@dataclass(frozen=True)
class MonitoringScheduleEntry:
    date: date
    type: ReviewType

    def to_dict(self) -> Dict[str, Any]:
        return {"date": self.date.isoformat(), "type": self.type.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MonitoringScheduleEntry":
        return cls(date=_parse_date(data["date"]), type=ReviewType(data["type"]))


# =============================================================================
# DECISION TREE
# =============================================================================

@dataclass
class IncidentAssessment:
    """Structured description of one incident. Built per evaluation call."""
    student_id: str
    domain_id: int
    is_safety_incident: bool = False
    demerit_assigned: bool = False
    ignored_prompts: int = 0
    affected_peers: bool = False
    disrupted_space: bool = False
    is_safety_risk: bool = False


@dataclass
class DecisionTreeResult:
    recommended_level: InterventionLevel
    reasons: List[str]
    is_pattern_student: bool
    prior_level_b_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "recommended_level": self.recommended_level.value,
            "reasons": list(self.reasons),
            "is_pattern_student": self.is_pattern_student,
            "prior_level_b_count": self.prior_level_b_count,
        }


@dataclass
class ShouldLogResult:
    should_log: bool
    reason: str


@dataclass(frozen=True)
class EscalationSummary:
    level: InterventionLevel
    color: str
    title: str
    description: str


# =============================================================================
# SERVICE REQUESTS
# =============================================================================

@dataclass
class CreateLevelARequest:
    student_id: str
    domain_id: int
    intervention_type: LevelAInterventionType
    behavior_description: Optional[str] = None
    location: Optional[str] = None
    outcome: LevelAOutcome = LevelAOutcome.COMPLIED
    affected_others: bool = False
    event_timestamp: Optional[datetime] = None  # Defaults to now


@dataclass
class CreateCaseRequest:
    student_id: str
    trigger_type: LevelCTriggerType
    case_type: Optional[LevelCCaseType] = None  # Derived from trigger when omitted
    domain_focus_id: Optional[int] = None
    escalated_from_level_b_ids: List[str] = field(default_factory=list)
    sis_demerit_points_at_creation: Optional[int] = None


@dataclass
class ContextPacketUpdate:
    """Partial update - None means "leave as is"."""
    incident_summary: Optional[str] = None
    pattern_review: Optional[str] = None
    environmental_factors: Optional[List[str]] = None
    prior_interventions_summary: Optional[str] = None


@dataclass
class AdminResponseRequest:
    admin_response_type: Optional[AdminResponseType]
    admin_response_details: Optional[str] = None
    consequence_start_date: Optional[date] = None
    consequence_end_date: Optional[date] = None


@dataclass
class ReentryPlanRequest:
    support_plan_goal: Optional[str]
    reentry_date: Optional[date]
    support_plan_strategies: List[str] = field(default_factory=list)
    adult_mentor_id: Optional[str] = None
    adult_mentor_name: Optional[str] = None
    repair_actions: List[RepairAction] = field(default_factory=list)
    reentry_type: ReentryType = ReentryType.STANDARD
    reentry_restrictions: List[str] = field(default_factory=list)
    reentry_checklist: Optional[List[ReadinessChecklistItem]] = None  # Default checklist when omitted


@dataclass
class CaseListFilters:
    student_id: Optional[str] = None
    case_manager_id: Optional[str] = None
    status: Optional[Union[LevelCStatus, List[LevelCStatus]]] = None
    limit: int = 50
    offset: int = 0


@dataclass
class CaseListResult:
    cases: list
    total_count: int


__all__ = [
    "ReviewType", "RepairActionType",
    "RepairAction", "ReadinessChecklistItem", "DailyCheckIn", "MonitoringScheduleEntry",
    "DEFAULT_REENTRY_CHECKLIST", "default_reentry_checklist",
    "IncidentAssessment", "DecisionTreeResult", "ShouldLogResult", "EscalationSummary",
    "CreateLevelARequest", "CreateCaseRequest", "ContextPacketUpdate",
    "AdminResponseRequest", "ReentryPlanRequest", "CaseListFilters", "CaseListResult",
]
