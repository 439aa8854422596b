"""
Level B Store

The structured-reset (Level B) workflow lives outside this engine. The
escalation services only need two things from it: how many conferences a
student has completed in a domain, and a way to flag conferences that fed
into a Level C case.
"""
import logging
from typing import List, Protocol

from sqlalchemy.orm import Session

from ...models.db_models import LevelBInterventionDB, LevelBStatus
from .unit_of_work import store_read

logger = logging.getLogger(__name__)


# Conference outcomes that count as a completed attempt
COMPLETED_LEVEL_B_STATUSES = (
    LevelBStatus.COMPLETED_SUCCESS,
    LevelBStatus.COMPLETED_ESCALATED,
)


class LevelBStore(Protocol):
    def count_completed(self, student_id: str, domain_id: int) -> int:
        ...

    def mark_escalated(self, ids: List[str]) -> None:
        ...


class SqlLevelBStore:
    """LevelBStore over the shared level_b_interventions table."""

    def __init__(self, db_session: Session):
        """Initialize with database session."""
        self.db = db_session

    @store_read("count_completed_level_b")
    def count_completed(self, student_id: str, domain_id: int) -> int:
        return self.db.query(LevelBInterventionDB).filter(
            LevelBInterventionDB.student_id == student_id,
            LevelBInterventionDB.domain_id == domain_id,
            LevelBInterventionDB.status.in_(COMPLETED_LEVEL_B_STATUSES),
        ).count()

    def mark_escalated(self, ids: List[str]) -> None:
        """
        Flag Level B records as escalated to Level C.

        Runs inside the caller's unit of work - no commit here, so the flag
        lands together with the case that caused it.
        """
        if not ids:
            return

        updated = self.db.query(LevelBInterventionDB).filter(
            LevelBInterventionDB.id.in_(ids)
        ).update({LevelBInterventionDB.escalated_to_c: True}, synchronize_session=False)

        if updated != len(set(ids)):
            logger.warning(f"mark_escalated: {len(set(ids)) - updated} Level B id(s) not found")
