"""
Intervention Services

A/B/C escalation framework:
- DecisionTreeEngine: classify an incident into Level A / B / C
- PatternDetector: 3+ Level A incidents in 10 days, same domain
- LevelAService: append-only log of in-the-moment coaching
- CaseService: Level C case lifecycle
- CaseMonitor: read-only queries for the external scheduler
"""

from .errors import (
    InterventionError,
    NotFoundError,
    ValidationError,
    InvalidTransitionError,
    ConflictError,
    UpstreamError,
)
from .domain_catalog import DomainCatalog
from .pattern_detector import PatternDetector
from .level_b_store import LevelBStore, SqlLevelBStore
from .decision_tree import DecisionTreeEngine, escalation_summary
from .level_a_service import LevelAService
from .state_machine import CaseStateMachine, PhaseOrderPolicy, display_phase
from .monitoring_schedule import build_monitoring_schedule, classify_case_type
from .case_service import CaseService
from .case_monitor import CaseMonitor

__all__ = [
    # Errors
    'InterventionError',
    'NotFoundError',
    'ValidationError',
    'InvalidTransitionError',
    'ConflictError',
    'UpstreamError',
    # Escalation
    'DomainCatalog',
    'PatternDetector',
    'LevelBStore',
    'SqlLevelBStore',
    'DecisionTreeEngine',
    'escalation_summary',
    # Level A
    'LevelAService',
    # Level C
    'CaseStateMachine',
    'PhaseOrderPolicy',
    'display_phase',
    'build_monitoring_schedule',
    'classify_case_type',
    'CaseService',
    'CaseMonitor',
]
