"""
Tests for the Level C case lifecycle.

1. Creation: case type / duration derivation, Level B side effect
2. Context packet merge and completion
3. Admin response, re-entry plan, monitoring, check-ins, closure
4. Status never regresses; closed cases are read-only
5. Strict phase ordering
6. Atomicity of creation
7. Full round trip
"""
import pytest
from datetime import date
from unittest.mock import MagicMock

from intervention_engine.models.db_models import (
    AdminResponseType,
    CaseDisplayPhase,
    CaseOutcomeStatus,
    LevelBInterventionDB,
    LevelCCaseDB,
    LevelCCaseType,
    LevelCStatus,
    LevelCTriggerType,
)
from intervention_engine.models.interventions import (
    AdminResponseRequest,
    ContextPacketUpdate,
    CreateCaseRequest,
    DailyCheckIn,
    ReentryPlanRequest,
    RepairAction,
    DEFAULT_REENTRY_CHECKLIST,
)
from intervention_engine.services.interventions import (
    CaseService,
    InvalidTransitionError,
    NotFoundError,
    PhaseOrderPolicy,
    UpstreamError,
    ValidationError,
    display_phase,
)


FULL_PACKET = ContextPacketUpdate(
    incident_summary="Shoved a peer during dismissal",
    pattern_review="Third hallway incident in two weeks",
    environmental_factors=["crowded hallway", "end of day"],
    prior_interventions_summary="Two Level B resets in hallways",
)


@pytest.fixture
def service(db, domains):
    return CaseService(db)


def open_case(service, trigger=LevelCTriggerType.CHRONIC_PATTERN, **kwargs):
    return service.create(
        CreateCaseRequest(student_id="s1", trigger_type=trigger, **kwargs),
        case_manager_id="cm-1",
        case_manager_name="Ms. Haddad",
    )


def reentry_plan(reentry_date=date(2025, 1, 1), **kwargs):
    return ReentryPlanRequest(
        support_plan_goal="Walk hallways without contact for two weeks",
        reentry_date=reentry_date,
        **kwargs,
    )


# =============================================================================
# TEST: CREATION
# =============================================================================

class TestCreateCase:

    def test_threshold_20_is_lite_with_14_days(self, service):
        case = open_case(service, LevelCTriggerType.THRESHOLD_20_POINTS)

        assert case.case_type == LevelCCaseType.LITE
        assert case.monitoring_duration_days == 14
        assert case.status == LevelCStatus.ACTIVE
        assert case.version_id == 1

    def test_safety_incident_is_intensive_with_10_days(self, service):
        case = open_case(service, LevelCTriggerType.SAFETY_INCIDENT)

        assert case.case_type == LevelCCaseType.INTENSIVE
        assert case.monitoring_duration_days == 10

    def test_explicit_case_type_wins(self, service):
        case = open_case(service, LevelCTriggerType.THRESHOLD_20_POINTS, case_type=LevelCCaseType.STANDARD)

        assert case.case_type == LevelCCaseType.STANDARD

    def test_duration_follows_trigger_not_explicit_type(self, service):
        """An explicit case_type relabels the case; the trigger sets the duration."""
        lite_override = open_case(service, LevelCTriggerType.SAFETY_INCIDENT, case_type=LevelCCaseType.LITE)
        standard_override = open_case(
            service, LevelCTriggerType.THRESHOLD_20_POINTS, case_type=LevelCCaseType.STANDARD
        )

        assert lite_override.case_type == LevelCCaseType.LITE
        assert lite_override.monitoring_duration_days == 10
        assert standard_override.case_type == LevelCCaseType.STANDARD
        assert standard_override.monitoring_duration_days == 14

    def test_case_manager_recorded(self, service):
        case = open_case(service)

        assert case.case_manager_id == "cm-1"
        assert case.case_manager_name == "Ms. Haddad"

    def test_marks_level_b_escalated(self, db, service, domains, add_level_b):
        hallways = domains["hallways"].id
        first = add_level_b("s1", hallways)
        second = add_level_b("s1", hallways)
        untouched = add_level_b("s1", hallways)

        case = open_case(
            service,
            LevelCTriggerType.NO_IMPROVEMENT_2_LEVEL_B,
            domain_focus_id=hallways,
            escalated_from_level_b_ids=[first.id, second.id],
        )

        flags = {
            row.id: row.escalated_to_c
            for row in db.query(LevelBInterventionDB).all()
        }
        assert flags == {first.id: True, second.id: True, untouched.id: False}
        assert case.escalated_from_level_b_ids == [first.id, second.id]

    def test_unknown_domain_focus(self, db, service):
        with pytest.raises(NotFoundError):
            open_case(service, domain_focus_id=999)

        assert db.query(LevelCCaseDB).count() == 0

    def test_failed_level_b_flag_rolls_back_case(self, db, domains):
        level_b_store = MagicMock()
        level_b_store.mark_escalated.side_effect = UpstreamError("level b store down")
        service = CaseService(db, level_b_store=level_b_store)

        with pytest.raises(UpstreamError):
            open_case(service, escalated_from_level_b_ids=["b-1"])

        assert db.query(LevelCCaseDB).count() == 0


# =============================================================================
# TEST: CONTEXT PACKET
# =============================================================================

class TestContextPacket:

    def test_partial_update_keeps_status(self, service):
        case = open_case(service)

        case = service.update_context_packet(case.id, ContextPacketUpdate(
            incident_summary="Shoved a peer",
            pattern_review="Third incident",
            environmental_factors=["crowded hallway"],
        ))

        assert case.context_packet_completed is False
        assert case.status == LevelCStatus.ACTIVE
        assert display_phase(case) == CaseDisplayPhase.CONTEXT_PACKET

    def test_merge_completes_packet(self, service):
        case = open_case(service)
        service.update_context_packet(case.id, ContextPacketUpdate(
            incident_summary="Shoved a peer",
            pattern_review="Third incident",
            environmental_factors=["crowded hallway"],
        ))

        case = service.update_context_packet(case.id, ContextPacketUpdate(
            prior_interventions_summary="Two Level B resets",
        ))

        assert case.incident_summary == "Shoved a peer"
        assert case.context_packet_completed is True
        assert case.status == LevelCStatus.ADMIN_RESPONSE

    def test_empty_environmental_factors_incomplete(self, service):
        case = open_case(service)

        case = service.update_context_packet(case.id, ContextPacketUpdate(
            incident_summary="Shoved a peer",
            pattern_review="Third incident",
            environmental_factors=[],
            prior_interventions_summary="Two Level B resets",
        ))

        assert case.context_packet_completed is False
        assert case.status == LevelCStatus.ACTIVE

    def test_blank_text_is_incomplete(self, service):
        case = open_case(service)

        case = service.update_context_packet(case.id, ContextPacketUpdate(
            incident_summary="   ",
            pattern_review="Third incident",
            environmental_factors=["crowded hallway"],
            prior_interventions_summary="Two Level B resets",
        ))

        assert case.context_packet_completed is False

    def test_environmental_factors_are_a_set(self, service):
        case = open_case(service)

        case = service.update_context_packet(case.id, ContextPacketUpdate(
            environmental_factors=["substitute staff", "crowded hallway", "substitute staff"],
        ))

        assert case.environmental_factors == ["crowded hallway", "substitute staff"]

    def test_blank_environmental_factors_incomplete(self, service):
        case = open_case(service)

        case = service.update_context_packet(case.id, ContextPacketUpdate(
            incident_summary="Shoved a peer",
            pattern_review="Third incident",
            environmental_factors=["  ", ""],
            prior_interventions_summary="Two Level B resets",
        ))

        assert case.environmental_factors == []
        assert case.context_packet_completed is False
        assert case.status == LevelCStatus.ACTIVE

    def test_environmental_factors_are_trimmed(self, service):
        case = open_case(service)

        case = service.update_context_packet(case.id, ContextPacketUpdate(
            environmental_factors=[" crowded hallway ", "crowded hallway", "\t"],
        ))

        assert case.environmental_factors == ["crowded hallway"]

    def test_completing_late_does_not_regress_status(self, service):
        case = open_case(service)
        service.record_admin_response(case.id, AdminResponseRequest(admin_response_type=AdminResponseType.ISS))

        case = service.update_context_packet(case.id, FULL_PACKET)

        assert case.context_packet_completed is True
        assert case.status == LevelCStatus.PENDING_REENTRY

    def test_unknown_case(self, service):
        with pytest.raises(NotFoundError):
            service.update_context_packet("missing", FULL_PACKET)


# =============================================================================
# TEST: ADMIN RESPONSE
# =============================================================================

class TestAdminResponse:

    def test_requires_type(self, service):
        case = open_case(service)

        with pytest.raises(ValidationError):
            service.record_admin_response(case.id, AdminResponseRequest(admin_response_type=None))

        assert service.require(case.id).status == LevelCStatus.ACTIVE

    def test_moves_to_pending_reentry(self, service):
        case = open_case(service)
        service.update_context_packet(case.id, FULL_PACKET)

        case = service.record_admin_response(case.id, AdminResponseRequest(
            admin_response_type=AdminResponseType.OSS,
            admin_response_details="Two days OSS",
            consequence_start_date=date(2024, 12, 27),
            consequence_end_date=date(2024, 12, 30),
        ))

        assert case.admin_response_completed is True
        assert case.status == LevelCStatus.PENDING_REENTRY
        assert case.consequence_end_date == date(2024, 12, 30)

    def test_permissive_without_context_packet(self, service):
        case = open_case(service)

        case = service.record_admin_response(case.id, AdminResponseRequest(
            admin_response_type=AdminResponseType.DETENTION,
        ))

        assert case.context_packet_completed is False
        assert case.status == LevelCStatus.PENDING_REENTRY

    def test_consequence_dates_out_of_order(self, service):
        case = open_case(service)

        with pytest.raises(ValidationError):
            service.record_admin_response(case.id, AdminResponseRequest(
                admin_response_type=AdminResponseType.ISS,
                consequence_start_date=date(2025, 1, 5),
                consequence_end_date=date(2025, 1, 3),
            ))


class TestStrictPhaseOrder:

    @pytest.fixture
    def strict_service(self, db, domains):
        return CaseService(db, policy=PhaseOrderPolicy(strict=True))

    def test_admin_response_requires_context_packet(self, strict_service):
        case = open_case(strict_service)

        with pytest.raises(ValidationError):
            strict_service.record_admin_response(
                case.id, AdminResponseRequest(admin_response_type=AdminResponseType.ISS)
            )

        case = strict_service.require(case.id)
        assert case.admin_response_completed is False
        assert case.status == LevelCStatus.ACTIVE

    def test_reentry_plan_requires_admin_response(self, strict_service):
        case = open_case(strict_service)
        strict_service.update_context_packet(case.id, FULL_PACKET)

        with pytest.raises(ValidationError):
            strict_service.create_reentry_plan(case.id, reentry_plan())

    def test_monitoring_requires_reentry_plan(self, strict_service):
        case = open_case(strict_service)
        strict_service.update_context_packet(case.id, FULL_PACKET)
        strict_service.record_admin_response(
            case.id, AdminResponseRequest(admin_response_type=AdminResponseType.ISS)
        )

        with pytest.raises(ValidationError):
            strict_service.start_monitoring(case.id)

    def test_in_order_passes(self, strict_service):
        case = open_case(strict_service)
        strict_service.update_context_packet(case.id, FULL_PACKET)
        strict_service.record_admin_response(
            case.id, AdminResponseRequest(admin_response_type=AdminResponseType.ISS)
        )
        strict_service.create_reentry_plan(case.id, reentry_plan())

        case = strict_service.start_monitoring(case.id)

        assert case.status == LevelCStatus.MONITORING


# =============================================================================
# TEST: RE-ENTRY PLAN
# =============================================================================

class TestReentryPlan:

    def test_requires_goal_and_date(self, service):
        case = open_case(service)

        with pytest.raises(ValidationError):
            service.create_reentry_plan(case.id, ReentryPlanRequest(support_plan_goal="", reentry_date=date(2025, 1, 1)))
        with pytest.raises(ValidationError):
            service.create_reentry_plan(case.id, ReentryPlanRequest(support_plan_goal="Goal", reentry_date=None))

        assert service.require(case.id).reentry_planning_completed is False

    def test_default_checklist_and_status_unchanged(self, service):
        case = open_case(service)
        service.record_admin_response(case.id, AdminResponseRequest(admin_response_type=AdminResponseType.ISS))

        case = service.create_reentry_plan(case.id, reentry_plan(
            repair_actions=[RepairAction(description="Apologize to peer")],
            support_plan_strategies=["Check-in with mentor each morning"],
        ))

        assert case.reentry_planning_completed is True
        assert case.status == LevelCStatus.PENDING_REENTRY
        assert [item["item"] for item in case.reentry_checklist] == list(DEFAULT_REENTRY_CHECKLIST)
        assert all(item["completed"] is False for item in case.reentry_checklist)
        assert case.repair_actions[0]["description"] == "Apologize to peer"

    def test_checklist_and_repair_updates(self, service):
        case = open_case(service)
        service.create_reentry_plan(case.id, reentry_plan(
            repair_actions=[RepairAction(description="Apologize to peer")],
        ))

        service.update_checklist_item(case.id, 1, True, completed_by="Ms. Haddad")
        case = service.update_repair_action(case.id, 0, True, notes="Done at lunch")

        assert case.reentry_checklist[1]["completed"] is True
        assert case.reentry_checklist[1]["completed_by"] == "Ms. Haddad"
        assert case.reentry_checklist[0]["completed"] is False
        assert case.repair_actions[0] == {
            "description": "Apologize to peer",
            "completed": True,
            "type": "immediate",
            "notes": "Done at lunch",
        }
        assert case.status == LevelCStatus.ACTIVE

    def test_checklist_index_out_of_range(self, service):
        case = open_case(service)
        service.create_reentry_plan(case.id, reentry_plan())

        with pytest.raises(ValidationError):
            service.update_checklist_item(case.id, 4, True)


# =============================================================================
# TEST: MONITORING AND CHECK-INS
# =============================================================================

class TestMonitoring:

    def test_review_dates_from_reentry_date(self, service):
        case = open_case(service)
        service.create_reentry_plan(case.id, reentry_plan(reentry_date=date(2025, 1, 1)))

        case = service.start_monitoring(case.id)

        assert case.status == LevelCStatus.MONITORING
        assert case.review_dates == ["2025-01-04", "2025-01-07", "2025-01-10", "2025-01-11"]
        assert case.monitoring_schedule[-1] == {"date": "2025-01-11", "type": "final"}
        assert all(entry["type"] == "check_in" for entry in case.monitoring_schedule[:-1])

    def test_falls_back_to_today(self, service):
        case = open_case(service, LevelCTriggerType.THRESHOLD_20_POINTS)

        case = service.start_monitoring(case.id, today=date(2025, 2, 1))

        assert case.review_dates[-1] == "2025-02-15"

    def test_cannot_start_twice(self, service):
        case = open_case(service)
        service.start_monitoring(case.id, today=date(2025, 2, 1))

        with pytest.raises(InvalidTransitionError):
            service.start_monitoring(case.id, today=date(2025, 2, 5))

    def test_check_ins_append(self, service):
        case = open_case(service)
        service.start_monitoring(case.id, today=date(2025, 2, 1))

        service.log_check_in(case.id, DailyCheckIn(date=date(2025, 2, 2), notes="Good day", logged_by="Ms. Haddad"))
        case = service.log_check_in(case.id, DailyCheckIn(
            date=date(2025, 2, 2), notes="Afternoon", logged_by="Mr. Okafor", success_rate=80,
        ))

        assert [c["notes"] for c in case.daily_check_ins] == ["Good day", "Afternoon"]
        assert case.daily_check_ins[1]["success_rate"] == 80
        assert case.status == LevelCStatus.MONITORING

    def test_check_in_outside_review_dates_accepted(self, service):
        case = open_case(service)

        case = service.log_check_in(case.id, DailyCheckIn(date=date(2030, 1, 1), notes="", logged_by="x"))

        assert len(case.daily_check_ins) == 1
        assert case.status == LevelCStatus.ACTIVE

    def test_success_rate_bounds(self, service):
        case = open_case(service)

        with pytest.raises(ValidationError):
            service.log_check_in(case.id, DailyCheckIn(
                date=date(2025, 2, 2), notes="", logged_by="x", success_rate=120,
            ))


# =============================================================================
# TEST: CLOSURE
# =============================================================================

class TestClose:

    def test_close_sets_terminal_status(self, service):
        case = open_case(service)

        case = service.close(
            case.id, CaseOutcomeStatus.CLOSED_SUCCESS, notes="Goals met", today=date(2025, 2, 20)
        )

        assert case.status == LevelCStatus.CLOSED
        assert case.closure_date == date(2025, 2, 20)
        assert case.outcome_notes == "Goals met"

    def test_closed_case_rejects_every_write(self, service):
        case = open_case(service)
        service.close(case.id, CaseOutcomeStatus.CLOSED_ESCALATED)

        writes = [
            lambda: service.update_context_packet(case.id, FULL_PACKET),
            lambda: service.record_admin_response(
                case.id, AdminResponseRequest(admin_response_type=AdminResponseType.ISS)
            ),
            lambda: service.create_reentry_plan(case.id, reentry_plan()),
            lambda: service.start_monitoring(case.id),
            lambda: service.log_check_in(case.id, DailyCheckIn(date=date(2025, 2, 2), notes="", logged_by="x")),
            lambda: service.assign_case_manager(case.id, "cm-2"),
            lambda: service.close(case.id, CaseOutcomeStatus.CLOSED_SUCCESS),
        ]
        for write in writes:
            with pytest.raises(InvalidTransitionError):
                write()

        case = service.require(case.id)
        assert case.status == LevelCStatus.CLOSED
        assert case.outcome_status == CaseOutcomeStatus.CLOSED_ESCALATED


# =============================================================================
# TEST: ROUND TRIP
# =============================================================================

class TestRoundTrip:

    def test_full_lifecycle(self, service, domains):
        case = open_case(service, domain_focus_id=domains["hallways"].id)

        service.update_context_packet(case.id, FULL_PACKET)
        service.record_admin_response(case.id, AdminResponseRequest(admin_response_type=AdminResponseType.ISS))
        service.create_reentry_plan(case.id, reentry_plan())
        service.start_monitoring(case.id)
        service.log_check_in(case.id, DailyCheckIn(date=date(2025, 1, 2), notes="Settled", logged_by="Ms. Haddad"))
        service.close(case.id, CaseOutcomeStatus.CLOSED_SUCCESS)

        fetched = service.get_by_id(case.id)

        assert fetched.context_packet_completed is True
        assert fetched.admin_response_completed is True
        assert fetched.reentry_planning_completed is True
        assert fetched.status == LevelCStatus.CLOSED
        assert fetched.version_id == 7
