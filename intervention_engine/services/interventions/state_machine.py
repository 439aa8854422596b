"""
Level C Case State Machine

Persisted lifecycle: active -> admin_response -> pending_reentry -> monitoring -> closed.
Status only moves forward. Closed is terminal and makes the case read-only.

"context_packet" is a display phase derived from the case flags; it is
never written to the status column.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from ...config import STRICT_PHASE_ORDER
from ...models.db_models import LevelCStatus, CaseDisplayPhase, LevelCCaseDB
from .errors import InvalidTransitionError, ValidationError

logger = logging.getLogger(__name__)


# =============================================================================
# STATE CONFIGURATION
# =============================================================================

CASE_STATE_CONFIG = {
    LevelCStatus.ACTIVE: {
        "description": "Case opened, context packet being gathered",
        "allowed_transitions": [
            LevelCStatus.ADMIN_RESPONSE,
            LevelCStatus.PENDING_REENTRY,
            LevelCStatus.MONITORING,
            LevelCStatus.CLOSED,
        ],
        "terminal": False,
    },
    LevelCStatus.ADMIN_RESPONSE: {
        "description": "Context packet complete, awaiting administrative response",
        "allowed_transitions": [
            LevelCStatus.PENDING_REENTRY,
            LevelCStatus.MONITORING,
            LevelCStatus.CLOSED,
        ],
        "terminal": False,
    },
    LevelCStatus.PENDING_REENTRY: {
        "description": "Consequence assigned, support plan and re-entry in preparation",
        "allowed_transitions": [
            LevelCStatus.MONITORING,
            LevelCStatus.CLOSED,
        ],
        "terminal": False,
    },
    LevelCStatus.MONITORING: {
        "description": "Student back in class, check-ins against the review schedule",
        "allowed_transitions": [LevelCStatus.CLOSED],
        "terminal": False,
    },
    LevelCStatus.CLOSED: {
        "description": "Case closed with an outcome",
        "allowed_transitions": [],  # Terminal state
        "terminal": True,
    },
}

# Lifecycle position of each status
STATUS_ORDER = {
    LevelCStatus.ACTIVE: 0,
    LevelCStatus.ADMIN_RESPONSE: 1,
    LevelCStatus.PENDING_REENTRY: 2,
    LevelCStatus.MONITORING: 3,
    LevelCStatus.CLOSED: 4,
}


# =============================================================================
# PHASE DEPENDENCIES
# =============================================================================
#
# Operation -> completion flags that must already be set when strict
# ordering is on. Permissive mode (the default) ignores this table.
#

PHASE_DEPENDENCIES = {
    "record_admin_response": ["context_packet_completed"],
    "create_reentry_plan": ["admin_response_completed"],
    "start_monitoring": ["reentry_planning_completed"],
}


class CaseStateMachine:

    def get_state_config(self, status: LevelCStatus) -> Dict[str, Any]:
        return CASE_STATE_CONFIG.get(status, {})

    def can_transition(
        self,
        from_status: LevelCStatus,
        to_status: LevelCStatus,
    ) -> Tuple[bool, str]:
        """Check if a status transition is allowed."""
        config = self.get_state_config(from_status)
        allowed = config.get("allowed_transitions", [])

        if to_status in allowed:
            return True, "Transition allowed"

        return False, f"Cannot transition from {from_status.value} to {to_status.value}"

    def is_terminal_state(self, status: LevelCStatus) -> bool:
        return self.get_state_config(status).get("terminal", False)

    def get_next_states(self, status: LevelCStatus) -> List[LevelCStatus]:
        return self.get_state_config(status).get("allowed_transitions", [])

    def ensure_writable(self, case: LevelCCaseDB, operation: str) -> None:
        """Closed cases are read-only."""
        if self.is_terminal_state(case.status):
            raise InvalidTransitionError(
                f"{operation}: case {case.id} is {case.status.value} and cannot be modified"
            )

    def advance(self, case: LevelCCaseDB, target: LevelCStatus) -> LevelCStatus:
        """
        Move the case toward target.

        A target at or behind the current status leaves the status as is, so
        late edits to an earlier phase never pull a case backwards.
        """
        current = case.status
        if STATUS_ORDER[target] <= STATUS_ORDER[current]:
            return current

        allowed, reason = self.can_transition(current, target)
        if not allowed:
            raise InvalidTransitionError(reason)

        logger.debug(f"Case {case.id}: {current.value} -> {target.value}")
        case.status = target
        return target


class PhaseOrderPolicy:
    """Optional enforcement of PHASE_DEPENDENCIES."""

    def __init__(self, strict: Optional[bool] = None):
        self.strict = STRICT_PHASE_ORDER if strict is None else strict

    def missing_phases(self, operation: str, case: LevelCCaseDB) -> List[str]:
        required = PHASE_DEPENDENCIES.get(operation, [])
        return [flag for flag in required if not getattr(case, flag)]

    def check(self, operation: str, case: LevelCCaseDB) -> None:
        if not self.strict:
            return

        missing = self.missing_phases(operation, case)
        if missing:
            raise ValidationError(
                f"{operation} requires {', '.join(missing)} on case {case.id}"
            )


def context_packet_started(case: LevelCCaseDB) -> bool:
    return any([
        case.incident_summary,
        case.pattern_review,
        case.environmental_factors,
        case.prior_interventions_summary,
    ])


def display_phase(case: LevelCCaseDB) -> CaseDisplayPhase:
    """Phase label for dashboards. Derived, never persisted."""
    if (
        case.status == LevelCStatus.ACTIVE
        and not case.context_packet_completed
        and context_packet_started(case)
    ):
        return CaseDisplayPhase.CONTEXT_PACKET
    return CaseDisplayPhase(case.status.value)
