"""
Level A Intervention Service

In-the-moment coaching (30-90 seconds). Eight techniques: Pre-Correct,
Positive Narration, Quick Redirect, "Do It Again" Redo, Choice + Consequence,
Brief Private Check, Micro-Repair, Quick Reinforcement.

Records are append-only. Pattern and same-day flags are snapshotted at write
time and never recomputed. Only outcome / escalated_to_b can change later.
Opening the actual Level B conference is the caller's job.
"""
import logging
from datetime import datetime, time, timedelta
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from sqlalchemy.orm import Session

from ...models.db_models import LevelAInterventionDB, LevelAOutcome
from ...models.interventions import CreateLevelARequest
from .domain_catalog import DomainCatalog
from .errors import NotFoundError
from .pattern_detector import PatternDetector
from .unit_of_work import unit_of_work, store_read

logger = logging.getLogger(__name__)


class LevelAService:

    def __init__(self, db_session: Session):
        """Initialize with database session."""
        self.db = db_session
        self.pattern_detector = PatternDetector(db_session)
        self.catalog = DomainCatalog(db_session)

    # =========================================================================
    # LOGGING
    # =========================================================================

    def log(
        self,
        request: CreateLevelARequest,
        staff_id: Optional[str],
        staff_name: str,
    ) -> LevelAInterventionDB:
        """Record a coaching intervention."""
        self.catalog.require(request.domain_id)

        event_timestamp = request.event_timestamp or datetime.utcnow()

        # Context flags as of this incident
        is_pattern_student = self.pattern_detector.has_pattern(
            request.student_id, request.domain_id, now=event_timestamp
        )
        is_repeated_same_day = self.pattern_detector.count_same_day(
            request.student_id, request.domain_id, now=event_timestamp
        ) > 0

        intervention = LevelAInterventionDB(
            id=str(uuid4()),
            student_id=request.student_id,
            staff_id=staff_id,
            staff_name=staff_name,
            domain_id=request.domain_id,
            intervention_type=request.intervention_type,
            behavior_description=request.behavior_description,
            location=request.location,
            outcome=request.outcome,
            escalated_to_b=request.outcome == LevelAOutcome.ESCALATED,
            is_repeated_same_day=is_repeated_same_day,
            affected_others=request.affected_others,
            is_pattern_student=is_pattern_student,
            event_timestamp=event_timestamp,
        )

        with unit_of_work(self.db, "log_level_a"):
            self.db.add(intervention)

        logger.info(
            f"Level A {intervention.id} logged for student {request.student_id} "
            f"({request.intervention_type.value}, pattern={is_pattern_student}, "
            f"repeat_same_day={is_repeated_same_day})"
        )
        return intervention

    def set_outcome(
        self,
        intervention_id: str,
        outcome: LevelAOutcome,
        escalated_to_b: bool = False,
    ) -> LevelAInterventionDB:
        """Update outcome / escalated_to_b. Every other field is immutable."""
        with unit_of_work(self.db, "set_level_a_outcome"):
            intervention = self._require(intervention_id)
            intervention.outcome = outcome
            intervention.escalated_to_b = escalated_to_b

        return intervention

    # =========================================================================
    # QUERIES
    # =========================================================================

    @store_read("get_level_a")
    def get_by_id(self, intervention_id: str) -> Optional[LevelAInterventionDB]:
        return self.db.query(LevelAInterventionDB).filter(
            LevelAInterventionDB.id == intervention_id
        ).first()

    def _require(self, intervention_id: str) -> LevelAInterventionDB:
        intervention = self.get_by_id(intervention_id)
        if intervention is None:
            raise NotFoundError(f"Level A intervention not found: {intervention_id}")
        return intervention

    @store_read("list_level_a")
    def list_interventions(
        self,
        student_id: Optional[str] = None,
        domain_id: Optional[int] = None,
        staff_id: Optional[str] = None,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[LevelAInterventionDB], int]:
        """Filtered, newest-first page plus the total match count."""
        query = self.db.query(LevelAInterventionDB)

        if student_id:
            query = query.filter(LevelAInterventionDB.student_id == student_id)
        if domain_id:
            query = query.filter(LevelAInterventionDB.domain_id == domain_id)
        if staff_id:
            query = query.filter(LevelAInterventionDB.staff_id == staff_id)
        if from_date:
            query = query.filter(LevelAInterventionDB.event_timestamp >= from_date)
        if to_date:
            query = query.filter(LevelAInterventionDB.event_timestamp <= to_date)

        total = query.count()
        rows = query.order_by(
            LevelAInterventionDB.event_timestamp.desc()
        ).offset(offset).limit(limit).all()

        return rows, total

    @store_read("todays_level_a")
    def todays_interventions(
        self,
        staff_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> List[LevelAInterventionDB]:
        """Today's interventions for the staff dashboard."""
        now = now or datetime.utcnow()
        day_start = datetime.combine(now.date(), time.min)

        query = self.db.query(LevelAInterventionDB).filter(
            LevelAInterventionDB.event_timestamp >= day_start,
            LevelAInterventionDB.event_timestamp < day_start + timedelta(days=1),
        )
        if staff_id:
            query = query.filter(LevelAInterventionDB.staff_id == staff_id)

        return query.order_by(LevelAInterventionDB.event_timestamp.desc()).all()

    @store_read("level_a_student_stats")
    def student_stats(
        self,
        student_id: str,
        days: int = 30,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Counts by domain and outcome plus the A->B escalation rate (%)."""
        now = now or datetime.utcnow()
        cutoff = now - timedelta(days=days)

        rows = self.db.query(LevelAInterventionDB).filter(
            LevelAInterventionDB.student_id == student_id,
            LevelAInterventionDB.event_timestamp >= cutoff,
        ).all()

        by_domain: Dict[str, int] = {}
        by_outcome: Dict[str, int] = {outcome.value: 0 for outcome in LevelAOutcome}
        escalated = 0

        for row in rows:
            domain_key = row.domain.domain_key if row.domain else "unknown"
            by_domain[domain_key] = by_domain.get(domain_key, 0) + 1
            by_outcome[row.outcome.value] += 1
            if row.escalated_to_b:
                escalated += 1

        return {
            "student_id": student_id,
            "days": days,
            "total_count": len(rows),
            "by_domain": by_domain,
            "by_outcome": by_outcome,
            "escalation_rate": (escalated / len(rows)) * 100 if rows else 0.0,
        }
