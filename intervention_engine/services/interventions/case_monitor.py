"""
Case Monitor

Read-only queries for an external scheduler. Nothing here sends reminders
or closes cases; the poller decides what to do with the results.
"""
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ...config import STALE_CASE_DAYS
from ...models.db_models import LevelCCaseDB, LevelCStatus
from ...models.interventions import MonitoringScheduleEntry
from .case_service import CaseService
from .unit_of_work import store_read


class CaseMonitor:

    def __init__(self, db_session: Session):
        """Initialize with database session."""
        self.db = db_session
        self.case_service = CaseService(db_session)

    def _monitoring_cases(self) -> List[LevelCCaseDB]:
        return self.db.query(LevelCCaseDB).filter(
            LevelCCaseDB.status == LevelCStatus.MONITORING
        ).order_by(LevelCCaseDB.created_at.asc()).all()

    @store_read("due_reviews")
    def due_reviews(self, on_date: date) -> List[Tuple[LevelCCaseDB, MonitoringScheduleEntry]]:
        """Monitoring cases with a scheduled review on on_date."""
        due = []
        for case in self._monitoring_cases():
            for raw in case.monitoring_schedule or []:
                entry = MonitoringScheduleEntry.from_dict(raw)
                if entry.date == on_date:
                    due.append((case, entry))
        return due

    @store_read("stale_cases")
    def stale_cases(
        self,
        now: Optional[datetime] = None,
        stale_days: int = STALE_CASE_DAYS,
    ) -> List[LevelCCaseDB]:
        """
        Open cases outside monitoring that nobody has touched for stale_days.
        Monitoring cases are excluded; they are driven by their review dates.
        """
        now = now or datetime.utcnow()
        cutoff = now - timedelta(days=stale_days)

        return self.db.query(LevelCCaseDB).filter(
            LevelCCaseDB.status.notin_([LevelCStatus.CLOSED, LevelCStatus.MONITORING]),
            LevelCCaseDB.updated_at < cutoff,
        ).order_by(LevelCCaseDB.updated_at.asc()).all()

    @store_read("expired_monitoring")
    def expired_monitoring(self, today: Optional[date] = None) -> List[LevelCCaseDB]:
        """Monitoring cases whose final review date has passed."""
        today = today or date.today()
        expired = []
        for case in self._monitoring_cases():
            if not case.review_dates:
                continue
            if date.fromisoformat(case.review_dates[-1]) < today:
                expired.append(case)
        return expired

    def daily_report(
        self,
        today: Optional[date] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Everything the nightly job needs, as case ids.

        Both the run date and the staleness cutoff come from one UTC clock
        reading; today defaults to now.date().
        """
        now = now or datetime.utcnow()
        today = today or now.date()

        due = self.due_reviews(today)
        stale = self.stale_cases(now=now)
        expired = self.expired_monitoring(today)
        pending = self.case_service.pending_reentries(today)

        return {
            "run_date": today.isoformat(),
            "due_reviews": [
                {"case_id": case.id, "review_type": entry.type.value}
                for case, entry in due
            ],
            "stale_cases": [case.id for case in stale],
            "expired_monitoring": [case.id for case in expired],
            "pending_reentries": [case.id for case in pending],
        }
