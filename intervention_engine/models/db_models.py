"""
Intervention Engine - SQLAlchemy ORM Models
Persistent storage for the A/B/C intervention framework
"""
from datetime import datetime
from enum import Enum
from sqlalchemy import Column, String, Integer, DateTime, Text, JSON, ForeignKey, Enum as SQLEnum, Boolean, Date
from sqlalchemy.orm import relationship
from ..database import Base


# =============================================================================
# ENUMS FOR INTERVENTION FRAMEWORK
# =============================================================================

class InterventionLevel(str, Enum):
    """Escalation tiers."""
    A = "A"  # In-the-moment coaching
    B = "B"  # Structured reset conference
    C = "C"  # Case management


class LevelAInterventionType(str, Enum):
    """In-the-moment coaching techniques (30-90 seconds)."""
    PRE_CORRECT = "pre_correct"
    POSITIVE_NARRATION = "positive_narration"
    QUICK_REDIRECT = "quick_redirect"
    REDO = "redo"
    CHOICE_CONSEQUENCE = "choice_consequence"
    PRIVATE_CHECK = "private_check"
    MICRO_REPAIR = "micro_repair"
    QUICK_REINFORCEMENT = "quick_reinforcement"


LEVEL_A_INTERVENTION_LABELS = {
    LevelAInterventionType.PRE_CORRECT: "Pre-Correct",
    LevelAInterventionType.POSITIVE_NARRATION: "Positive Narration",
    LevelAInterventionType.QUICK_REDIRECT: "Quick Redirect",
    LevelAInterventionType.REDO: '"Do It Again" Redo',
    LevelAInterventionType.CHOICE_CONSEQUENCE: "Choice + Consequence",
    LevelAInterventionType.PRIVATE_CHECK: "Brief Private Check",
    LevelAInterventionType.MICRO_REPAIR: "Micro-Repair",
    LevelAInterventionType.QUICK_REINFORCEMENT: "Quick Reinforcement",
}


class LevelAOutcome(str, Enum):
    COMPLIED = "complied"
    ESCALATED = "escalated"
    PARTIAL = "partial"


class LevelBStatus(str, Enum):
    """Status of a structured reset conference (owned by the Level B workflow)."""
    IN_PROGRESS = "in_progress"
    MONITORING = "monitoring"
    COMPLETED_SUCCESS = "completed_success"
    COMPLETED_ESCALATED = "completed_escalated"
    CANCELLED = "cancelled"


class LevelCTriggerType(str, Enum):
    """What opened a Level C case."""
    SAFETY_INCIDENT = "safety_incident"
    NO_IMPROVEMENT_2_LEVEL_B = "no_improvement_2_level_b"
    CHRONIC_PATTERN = "chronic_pattern"
    POST_OSS_REENTRY = "post_oss_reentry"
    THRESHOLD_20_POINTS = "threshold_20_points"
    THRESHOLD_30_POINTS = "threshold_30_points"
    THRESHOLD_35_POINTS = "threshold_35_points"
    THRESHOLD_40_POINTS = "threshold_40_points"
    ADMIN_REFERRAL = "admin_referral"


class LevelCCaseType(str, Enum):
    STANDARD = "standard"
    LITE = "lite"
    INTENSIVE = "intensive"


class AdminResponseType(str, Enum):
    DETENTION = "detention"
    ISS = "iss"
    OSS = "oss"
    BEHAVIOR_CONTRACT = "behavior_contract"
    PARENT_CONFERENCE = "parent_conference"
    OTHER = "other"


class LevelCStatus(str, Enum):
    """Persisted lifecycle states of a Level C case."""
    ACTIVE = "active"
    ADMIN_RESPONSE = "admin_response"
    PENDING_REENTRY = "pending_reentry"
    MONITORING = "monitoring"
    CLOSED = "closed"


class CaseDisplayPhase(str, Enum):
    """
    Presentational phase labels.

    CONTEXT_PACKET is derived from the case flags and is never persisted.
    """
    ACTIVE = "active"
    CONTEXT_PACKET = "context_packet"
    ADMIN_RESPONSE = "admin_response"
    PENDING_REENTRY = "pending_reentry"
    MONITORING = "monitoring"
    CLOSED = "closed"


class ReentryType(str, Enum):
    STANDARD = "standard"
    RESTRICTED = "restricted"


class CaseOutcomeStatus(str, Enum):
    CLOSED_SUCCESS = "closed_success"
    CLOSED_CONTINUED_SUPPORT = "closed_continued_support"
    CLOSED_ESCALATED = "closed_escalated"


def _enum(enum_cls):
    """Persist enum values (lowercase keys shared with the portal), not member names."""
    return SQLEnum(
        enum_cls,
        name=enum_cls.__name__.lower(),
        values_callable=lambda members: [m.value for m in members],
    )


# =============================================================================
# REFERENCE DATA
# =============================================================================

class BehavioralDomainDB(Base):
    """
    Behavioral domain catalog (prayer space, hallways, lunch/recess, respect).
    Reference data - read-only to the intervention services.
    """
    __tablename__ = "behavioral_domains"

    id = Column(Integer, primary_key=True, autoincrement=True)
    domain_key = Column(String(50), unique=True, nullable=False)
    domain_name = Column(String(255), nullable=False)  # Display name
    description = Column(Text, nullable=True)

    # Expectations and repair menus shown to staff
    expectations = Column(JSON, default=list)
    repair_menu_immediate = Column(JSON, default=list)
    repair_menu_restorative = Column(JSON, default=list)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    @property
    def display_name(self) -> str:
        return self.domain_name


# =============================================================================
# LEVEL A - IN-THE-MOMENT COACHING
# =============================================================================

class LevelAInterventionDB(Base):
    """
    Brief coaching intervention.
    Immutable once logged except outcome / escalated_to_b. Never deleted.
    """
    __tablename__ = "level_a_interventions"

    id = Column(String(36), primary_key=True)  # UUID
    student_id = Column(String(36), nullable=False, index=True)
    staff_id = Column(String(36), nullable=True)
    staff_name = Column(String(255), nullable=False)

    # Intervention Details
    domain_id = Column(Integer, ForeignKey("behavioral_domains.id"), nullable=True, index=True)
    intervention_type = Column(_enum(LevelAInterventionType), nullable=False)
    behavior_description = Column(Text, nullable=True)
    location = Column(String(255), nullable=True)

    # Outcome
    outcome = Column(_enum(LevelAOutcome), nullable=False, default=LevelAOutcome.COMPLIED)
    escalated_to_b = Column(Boolean, default=False, nullable=False)

    # Context flags - snapshotted at write time
    is_repeated_same_day = Column(Boolean, default=False, nullable=False)
    affected_others = Column(Boolean, default=False, nullable=False)
    is_pattern_student = Column(Boolean, default=False, nullable=False)

    # Timestamps
    event_timestamp = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    domain = relationship("BehavioralDomainDB")


# =============================================================================
# LEVEL B - STRUCTURED RESET (EXTERNAL WORKFLOW)
# =============================================================================

class LevelBInterventionDB(Base):
    """
    Structured reset conference record.

    The 7-step conference workflow owns this table. Only the columns the
    escalation engine reads or flags are mapped here.
    """
    __tablename__ = "level_b_interventions"

    id = Column(String(36), primary_key=True)  # UUID
    student_id = Column(String(36), nullable=False, index=True)
    staff_name = Column(String(255), nullable=True)
    domain_id = Column(Integer, ForeignKey("behavioral_domains.id"), nullable=True, index=True)

    status = Column(_enum(LevelBStatus), nullable=False, default=LevelBStatus.IN_PROGRESS)
    escalated_to_c = Column(Boolean, default=False, nullable=False)
    escalation_reason = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


# =============================================================================
# LEVEL C - CASE MANAGEMENT
# =============================================================================

class LevelCCaseDB(Base):
    """
    Intensive case (2-4 weeks).
    Phases: context packet -> admin response -> re-entry plan -> monitoring -> closure.
    Read-only once closed.
    """
    __tablename__ = "level_c_cases"

    id = Column(String(36), primary_key=True)  # UUID
    student_id = Column(String(36), nullable=False, index=True)
    case_manager_id = Column(String(36), nullable=True, index=True)
    case_manager_name = Column(String(255), nullable=True)

    # ==========================================================================
    # CLASSIFICATION
    # ==========================================================================
    trigger_type = Column(_enum(LevelCTriggerType), nullable=False)
    case_type = Column(_enum(LevelCCaseType), nullable=False, default=LevelCCaseType.STANDARD)
    domain_focus_id = Column(Integer, ForeignKey("behavioral_domains.id"), nullable=True)
    escalated_from_level_b_ids = Column(JSON, default=list)  # Array of Level B ids
    sis_demerit_points_at_creation = Column(Integer, nullable=True)  # Manual entry from SIS

    # ==========================================================================
    # CONTEXT PACKET
    # ==========================================================================
    incident_summary = Column(Text, nullable=True)
    pattern_review = Column(Text, nullable=True)
    environmental_factors = Column(JSON, default=list)  # Set of strings, stored sorted
    prior_interventions_summary = Column(Text, nullable=True)
    context_packet_completed = Column(Boolean, default=False, nullable=False)

    # ==========================================================================
    # ADMIN RESPONSE
    # ==========================================================================
    admin_response_type = Column(_enum(AdminResponseType), nullable=True)
    admin_response_details = Column(Text, nullable=True)
    consequence_start_date = Column(Date, nullable=True)
    consequence_end_date = Column(Date, nullable=True)
    admin_response_completed = Column(Boolean, default=False, nullable=False)

    # ==========================================================================
    # SUPPORT PLAN & RE-ENTRY
    # ==========================================================================
    support_plan_goal = Column(Text, nullable=True)
    support_plan_strategies = Column(JSON, default=list)
    adult_mentor_id = Column(String(36), nullable=True)
    adult_mentor_name = Column(String(255), nullable=True)
    repair_actions = Column(JSON, default=list)  # [RepairAction]
    reentry_date = Column(Date, nullable=True)
    reentry_type = Column(_enum(ReentryType), nullable=False, default=ReentryType.STANDARD)
    reentry_restrictions = Column(JSON, default=list)
    reentry_checklist = Column(JSON, default=list)  # [ReadinessChecklistItem]
    reentry_planning_completed = Column(Boolean, default=False, nullable=False)

    # ==========================================================================
    # MONITORING
    # ==========================================================================
    monitoring_duration_days = Column(Integer, nullable=False, default=10)
    monitoring_schedule = Column(JSON, default=list)  # [MonitoringScheduleEntry]
    review_dates = Column(JSON, default=list)  # ISO dates
    daily_check_ins = Column(JSON, default=list)  # [DailyCheckIn], append-only

    # ==========================================================================
    # CLOSURE
    # ==========================================================================
    outcome_status = Column(_enum(CaseOutcomeStatus), nullable=True)
    outcome_notes = Column(Text, nullable=True)
    closure_criteria = Column(Text, nullable=True)
    closure_date = Column(Date, nullable=True)

    # Status
    status = Column(_enum(LevelCStatus), nullable=False, default=LevelCStatus.ACTIVE, index=True)

    # Optimistic concurrency - every UPDATE is conditional on the version read
    version_id = Column(Integer, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    domain = relationship("BehavioralDomainDB")

    __mapper_args__ = {"version_id_col": version_id}
