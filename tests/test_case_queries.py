"""
Tests for case queries and the scheduler-facing case monitor.
"""
import pytest
from datetime import date, datetime, timedelta

from intervention_engine.models.db_models import (
    AdminResponseType,
    CaseOutcomeStatus,
    LevelCStatus,
    LevelCTriggerType,
)
from intervention_engine.models.interventions import (
    AdminResponseRequest,
    CaseListFilters,
    CreateCaseRequest,
    ReentryPlanRequest,
    ReviewType,
)
from intervention_engine.services.interventions import CaseMonitor, CaseService, NotFoundError


@pytest.fixture
def service(db, domains):
    return CaseService(db)


def open_case(service, student_id="s1", case_manager_id="cm-1"):
    return service.create(
        CreateCaseRequest(student_id=student_id, trigger_type=LevelCTriggerType.CHRONIC_PATTERN),
        case_manager_id=case_manager_id,
        case_manager_name="Case Manager",
    )


def set_created_at(db, case, when):
    case.created_at = when
    db.commit()


def to_pending_reentry(service, case, reentry_date):
    service.record_admin_response(case.id, AdminResponseRequest(admin_response_type=AdminResponseType.ISS))
    return service.create_reentry_plan(case.id, ReentryPlanRequest(
        support_plan_goal="Reset goal",
        reentry_date=reentry_date,
    ))


# =============================================================================
# TEST: CASE SERVICE QUERIES
# =============================================================================

class TestListCases:

    def test_newest_first_with_pagination(self, db, service):
        cases = [open_case(service) for _ in range(3)]
        for offset, case in enumerate(cases):
            set_created_at(db, case, datetime(2025, 1, 1) + timedelta(days=offset))

        result = service.list_cases(CaseListFilters(limit=2))

        assert result.total_count == 3
        assert [c.id for c in result.cases] == [cases[2].id, cases[1].id]

        page_two = service.list_cases(CaseListFilters(limit=2, offset=2))
        assert [c.id for c in page_two.cases] == [cases[0].id]

    def test_filter_by_student_and_manager(self, service):
        open_case(service, student_id="s1", case_manager_id="cm-1")
        open_case(service, student_id="s2", case_manager_id="cm-1")
        open_case(service, student_id="s2", case_manager_id="cm-2")

        assert service.list_cases(CaseListFilters(student_id="s2")).total_count == 2
        assert service.list_cases(CaseListFilters(case_manager_id="cm-1")).total_count == 2
        assert service.list_cases(CaseListFilters(student_id="s2", case_manager_id="cm-2")).total_count == 1

    def test_filter_by_one_or_many_statuses(self, service):
        active = open_case(service)
        pending = open_case(service)
        closed = open_case(service)
        service.record_admin_response(pending.id, AdminResponseRequest(admin_response_type=AdminResponseType.ISS))
        service.close(closed.id, CaseOutcomeStatus.CLOSED_SUCCESS)

        single = service.list_cases(CaseListFilters(status=LevelCStatus.ACTIVE))
        many = service.list_cases(CaseListFilters(
            status=[LevelCStatus.ACTIVE, LevelCStatus.PENDING_REENTRY]
        ))

        assert [c.id for c in single.cases] == [active.id]
        assert {c.id for c in many.cases} == {active.id, pending.id}

    def test_get_by_id_and_require(self, service):
        case = open_case(service)

        assert service.get_by_id(case.id).id == case.id
        assert service.get_by_id("missing") is None
        with pytest.raises(NotFoundError):
            service.require("missing")


class TestCaseload:

    def test_caseload_excludes_closed_and_other_managers(self, service):
        mine = open_case(service, case_manager_id="cm-1")
        closed = open_case(service, case_manager_id="cm-1")
        open_case(service, case_manager_id="cm-2")
        service.close(closed.id, CaseOutcomeStatus.CLOSED_SUCCESS)

        caseload = service.caseload_for("cm-1")

        assert [c.id for c in caseload] == [mine.id]

    def test_reassignment_moves_case(self, service):
        case = open_case(service, case_manager_id="cm-1")

        service.assign_case_manager(case.id, "cm-2", "Mr. Okafor")

        assert service.caseload_for("cm-1") == []
        assert [c.id for c in service.caseload_for("cm-2")] == [case.id]


class TestPendingReentries:

    def test_due_reentries_ordered_by_date(self, service):
        later = to_pending_reentry(service, open_case(service), date(2025, 3, 5))
        earlier = to_pending_reentry(service, open_case(service), date(2025, 3, 3))
        to_pending_reentry(service, open_case(service), date(2025, 3, 20))

        due = service.pending_reentries(today=date(2025, 3, 10))

        assert [c.id for c in due] == [earlier.id, later.id]

    def test_monitoring_cases_not_pending(self, service):
        case = to_pending_reentry(service, open_case(service), date(2025, 3, 5))
        service.start_monitoring(case.id)

        assert service.pending_reentries(today=date(2025, 3, 10)) == []


# =============================================================================
# TEST: CASE MONITOR
# =============================================================================

class TestCaseMonitor:

    def test_due_reviews(self, db, service):
        case = to_pending_reentry(service, open_case(service), date(2025, 1, 1))
        service.start_monitoring(case.id)
        monitor = CaseMonitor(db)

        check_in = monitor.due_reviews(date(2025, 1, 7))
        final = monitor.due_reviews(date(2025, 1, 11))

        assert [(c.id, e.type) for c, e in check_in] == [(case.id, ReviewType.CHECK_IN)]
        assert [(c.id, e.type) for c, e in final] == [(case.id, ReviewType.FINAL)]
        assert monitor.due_reviews(date(2025, 1, 8)) == []

    def test_expired_monitoring(self, db, service):
        case = to_pending_reentry(service, open_case(service), date(2025, 1, 1))
        service.start_monitoring(case.id)
        monitor = CaseMonitor(db)

        assert monitor.expired_monitoring(today=date(2025, 1, 11)) == []
        assert [c.id for c in monitor.expired_monitoring(today=date(2025, 1, 12))] == [case.id]

    def test_stale_cases(self, db, service):
        stale = open_case(service)
        fresh = open_case(service)
        monitoring = open_case(service)
        service.start_monitoring(monitoring.id, today=date(2025, 1, 1))

        for case in (stale, monitoring):
            case.updated_at = datetime(2025, 1, 1)
        fresh.updated_at = datetime(2025, 1, 9)
        db.commit()

        result = CaseMonitor(db).stale_cases(now=datetime(2025, 1, 10))

        assert [c.id for c in result] == [stale.id]

    def test_daily_report(self, db, service):
        reviewing = to_pending_reentry(service, open_case(service), date(2025, 1, 1))
        service.start_monitoring(reviewing.id)
        waiting = to_pending_reentry(service, open_case(service), date(2025, 1, 4))

        report = CaseMonitor(db).daily_report(today=date(2025, 1, 4))

        assert report["run_date"] == "2025-01-04"
        assert report["due_reviews"] == [{"case_id": reviewing.id, "review_type": "check_in"}]
        assert report["pending_reentries"] == [waiting.id]
        assert report["expired_monitoring"] == []
        assert set(report) == {
            "run_date", "due_reviews", "stale_cases", "expired_monitoring", "pending_reentries",
        }

    def test_daily_report_uses_one_utc_clock(self, db, service):
        """The run date and the staleness cutoff both come from now."""
        stale = open_case(service)
        fresh = open_case(service)
        stale.updated_at = datetime(2025, 1, 6, 23, 0)
        fresh.updated_at = datetime(2025, 1, 7, 1, 0)
        db.commit()

        report = CaseMonitor(db).daily_report(now=datetime(2025, 1, 10, 0, 30))

        assert report["run_date"] == "2025-01-10"
        assert report["stale_cases"] == [stale.id]
