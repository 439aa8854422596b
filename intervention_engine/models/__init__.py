"""Intervention Engine - Data Models"""
from .db_models import (
    # Enums
    InterventionLevel, LevelAInterventionType, LevelAOutcome, LevelBStatus,
    LevelCTriggerType, LevelCCaseType, AdminResponseType, LevelCStatus,
    CaseDisplayPhase, ReentryType, CaseOutcomeStatus,
    # Tables
    BehavioralDomainDB, LevelAInterventionDB, LevelBInterventionDB, LevelCCaseDB,
)
from .interventions import (
    # Case value objects
    ReviewType, RepairActionType, RepairAction, ReadinessChecklistItem,
    DailyCheckIn, MonitoringScheduleEntry, default_reentry_checklist,
    # Decision tree
    IncidentAssessment, DecisionTreeResult, ShouldLogResult, EscalationSummary,
    # Requests
    CreateLevelARequest, CreateCaseRequest, ContextPacketUpdate,
    AdminResponseRequest, ReentryPlanRequest, CaseListFilters, CaseListResult,
)

__all__ = [
    "InterventionLevel", "LevelAInterventionType", "LevelAOutcome", "LevelBStatus",
    "LevelCTriggerType", "LevelCCaseType", "AdminResponseType", "LevelCStatus",
    "CaseDisplayPhase", "ReentryType", "CaseOutcomeStatus",
    "BehavioralDomainDB", "LevelAInterventionDB", "LevelBInterventionDB", "LevelCCaseDB",
    "ReviewType", "RepairActionType", "RepairAction", "ReadinessChecklistItem",
    "DailyCheckIn", "MonitoringScheduleEntry", "default_reentry_checklist",
    "IncidentAssessment", "DecisionTreeResult", "ShouldLogResult", "EscalationSummary",
    "CreateLevelARequest", "CreateCaseRequest", "ContextPacketUpdate",
    "AdminResponseRequest", "ReentryPlanRequest", "CaseListFilters", "CaseListResult",
]
