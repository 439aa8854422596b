"""
Monitoring Schedule

Case classification and review-date generation for Level C monitoring.

Pure computation: building the schedule does not book reminders. An
external poller reads the stored dates (see CaseMonitor).
"""
from datetime import date, timedelta
from typing import List

from ...models.db_models import LevelCTriggerType, LevelCCaseType
from ...models.interventions import MonitoringScheduleEntry, ReviewType


# =============================================================================
# CASE CLASSIFICATION
# =============================================================================

CASE_TYPE_BY_TRIGGER = {
    LevelCTriggerType.THRESHOLD_20_POINTS: LevelCCaseType.LITE,
    LevelCTriggerType.THRESHOLD_35_POINTS: LevelCCaseType.INTENSIVE,
    LevelCTriggerType.THRESHOLD_40_POINTS: LevelCCaseType.INTENSIVE,
    LevelCTriggerType.SAFETY_INCIDENT: LevelCCaseType.INTENSIVE,
}

# Days of monitoring after re-entry.
# NOTE: intensive matches standard even though intensive cases are meant to run
# 4-6+ weeks. Change here if that is confirmed.
MONITORING_DURATION_DAYS = {
    LevelCCaseType.LITE: 14,
    LevelCCaseType.STANDARD: 10,
    LevelCCaseType.INTENSIVE: 10,
}

REVIEW_INTERVAL_DAYS = 3  # Stride between check-in reviews


def classify_case_type(trigger_type: LevelCTriggerType) -> LevelCCaseType:
    """Case type implied by the trigger. Unlisted triggers are standard."""
    return CASE_TYPE_BY_TRIGGER.get(trigger_type, LevelCCaseType.STANDARD)


def monitoring_duration_for(case_type: LevelCCaseType) -> int:
    return MONITORING_DURATION_DAYS[case_type]


def build_monitoring_schedule(
    start_date: date,
    duration_days: int,
) -> List[MonitoringScheduleEntry]:
    """
    Review dates from start_date over duration_days.

    Steps forward REVIEW_INTERVAL_DAYS at a time; every stride that lands
    strictly before the end date is a check-in. The end date itself is
    always appended as the final review, whether or not a stride hits it.

    2025-01-01 + 10 days -> 01-04, 01-07, 01-10 (check_in), 01-11 (final)
    """
    end_date = start_date + timedelta(days=duration_days)
    schedule = []

    current = start_date + timedelta(days=REVIEW_INTERVAL_DAYS)
    while current < end_date:
        schedule.append(MonitoringScheduleEntry(date=current, type=ReviewType.CHECK_IN))
        current += timedelta(days=REVIEW_INTERVAL_DAYS)

    schedule.append(MonitoringScheduleEntry(date=end_date, type=ReviewType.FINAL))
    return schedule
