"""
Pattern Detector

A student is a "pattern student" in a domain when 3+ Level A interventions
were logged for that domain inside the trailing window (default 10 days).

Window is [now - window_days, now], lower bound inclusive: an incident
exactly window_days old still counts.
"""
from datetime import datetime, time, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ...config import PATTERN_WINDOW_DAYS, PATTERN_INCIDENT_THRESHOLD
from ...models.db_models import LevelAInterventionDB
from .unit_of_work import store_read


class PatternDetector:
    """
    Read-only counters over Level A history.

    Every call queries the store; nothing is cached between calls.
    """

    def __init__(self, db_session: Session):
        """Initialize with database session."""
        self.db = db_session

    @store_read("count_level_a_in_window")
    def count_in_window(
        self,
        student_id: str,
        domain_id: int,
        window_days: int = PATTERN_WINDOW_DAYS,
        now: Optional[datetime] = None,
    ) -> int:
        """Count Level A interventions for the pair inside the trailing window."""
        now = now or datetime.utcnow()
        cutoff = now - timedelta(days=window_days)

        return self.db.query(LevelAInterventionDB).filter(
            LevelAInterventionDB.student_id == student_id,
            LevelAInterventionDB.domain_id == domain_id,
            LevelAInterventionDB.event_timestamp >= cutoff,
            LevelAInterventionDB.event_timestamp <= now,
        ).count()

    def has_pattern(
        self,
        student_id: str,
        domain_id: int,
        window_days: int = PATTERN_WINDOW_DAYS,
        now: Optional[datetime] = None,
    ) -> bool:
        count = self.count_in_window(student_id, domain_id, window_days=window_days, now=now)
        return count >= PATTERN_INCIDENT_THRESHOLD

    @store_read("count_level_a_same_day")
    def count_same_day(
        self,
        student_id: str,
        domain_id: int,
        now: Optional[datetime] = None,
    ) -> int:
        """Count Level A interventions for the pair on the current calendar day."""
        now = now or datetime.utcnow()
        day_start = datetime.combine(now.date(), time.min)
        day_end = day_start + timedelta(days=1)

        return self.db.query(LevelAInterventionDB).filter(
            LevelAInterventionDB.student_id == student_id,
            LevelAInterventionDB.domain_id == domain_id,
            LevelAInterventionDB.event_timestamp >= day_start,
            LevelAInterventionDB.event_timestamp < day_end,
        ).count()
