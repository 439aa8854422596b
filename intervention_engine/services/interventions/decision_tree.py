"""
Decision Tree Engine

Classifies an incident into Level A / B / C:

1. Safety / major harm?           -> Level C (nothing else is evaluated)
2. Any escalation trigger?        -> Level B, or Level C after 2+ completed Level B attempts
3. Otherwise                      -> Level A

Store failures abort the evaluation. A failed lookup is never read as
"no escalation", and a domain that does not resolve is an error rather
than a classification.
"""
import logging
from typing import List

from ...config import LEVEL_B_ATTEMPTS_FOR_LEVEL_C
from ...models.db_models import InterventionLevel
from ...models.interventions import (
    IncidentAssessment,
    DecisionTreeResult,
    ShouldLogResult,
    EscalationSummary,
)
from .domain_catalog import DomainCatalog
from .pattern_detector import PatternDetector
from .level_b_store import LevelBStore

logger = logging.getLogger(__name__)


# =============================================================================
# REASON STRINGS (display order is significant)
# =============================================================================

SAFETY_INCIDENT_REASON = "Safety incident detected"
NO_TRIGGERS_REASON = "No escalation triggers present"

DEMERIT_REASON = "Demerit was assigned"
IGNORED_PROMPTS_REASON = "Ignored {count} prompts"
PATTERN_REASON = "3rd incident in 10 days (same domain)"
PEER_IMPACT_REASON = "Affected other students"
SPACE_DISRUPTION_REASON = "Disrupted shared space"
SAFETY_RISK_REASON = "Safety risk identified"
PRIOR_LEVEL_B_REASON = "{count} Level B attempts already completed for this domain"

IGNORED_PROMPTS_THRESHOLD = 2


ESCALATION_SUMMARIES = {
    InterventionLevel.A: EscalationSummary(
        level=InterventionLevel.A,
        color="green",
        title="Level A: In-the-moment Coaching",
        description="Quick redirect (30-90 seconds). Use universal script and positive closure.",
    ),
    InterventionLevel.B: EscalationSummary(
        level=InterventionLevel.B,
        color="yellow",
        title="Level B: Structured Reset Conference",
        description="Pull student for 15-20 minute reset. Complete all 7 steps and set monitoring period.",
    ),
    InterventionLevel.C: EscalationSummary(
        level=InterventionLevel.C,
        color="red",
        title="Level C: Case Management",
        description="Escalate to Case Manager. 2-4 week intensive support required.",
    ),
}


class DecisionTreeEngine:

    def __init__(
        self,
        pattern_detector: PatternDetector,
        level_b_store: LevelBStore,
        catalog: DomainCatalog,
    ):
        self.pattern_detector = pattern_detector
        self.level_b_store = level_b_store
        self.catalog = catalog

    def decide(self, assessment: IncidentAssessment) -> DecisionTreeResult:
        """Recommend an intervention level for one incident."""
        # Unknown or retired domains are never classified
        self.catalog.require(assessment.domain_id)

        # Step 1: Safety always wins - no counters are consulted
        if assessment.is_safety_incident:
            logger.info(f"Student {assessment.student_id}: safety incident -> Level C")
            return DecisionTreeResult(
                recommended_level=InterventionLevel.C,
                reasons=[SAFETY_INCIDENT_REASON],
                is_pattern_student=False,
                prior_level_b_count=0,
            )

        # Step 2: Pattern status
        is_pattern_student = self.pattern_detector.has_pattern(
            assessment.student_id,
            assessment.domain_id,
        )

        # Step 3: Escalation triggers
        reasons = self.collect_escalation_reasons(assessment, is_pattern_student)

        if reasons:
            # Step 4: Repeated Level B cycles escalate to case management
            prior_level_b_count = self.level_b_store.count_completed(
                assessment.student_id,
                assessment.domain_id,
            )

            if prior_level_b_count >= LEVEL_B_ATTEMPTS_FOR_LEVEL_C:
                reasons.append(PRIOR_LEVEL_B_REASON.format(count=prior_level_b_count))
                level = InterventionLevel.C
            else:
                level = InterventionLevel.B

            logger.info(
                f"Student {assessment.student_id} domain {assessment.domain_id}: "
                f"{len(reasons)} reason(s), {prior_level_b_count} prior Level B -> Level {level.value}"
            )
            return DecisionTreeResult(
                recommended_level=level,
                reasons=reasons,
                is_pattern_student=is_pattern_student,
                prior_level_b_count=prior_level_b_count,
            )

        # Step 5: Nothing escalates
        return DecisionTreeResult(
            recommended_level=InterventionLevel.A,
            reasons=[NO_TRIGGERS_REASON],
            is_pattern_student=is_pattern_student,
            prior_level_b_count=0,
        )

    @staticmethod
    def collect_escalation_reasons(
        assessment: IncidentAssessment,
        is_pattern_student: bool,
    ) -> List[str]:
        reasons = []

        if assessment.demerit_assigned:
            reasons.append(DEMERIT_REASON)

        if assessment.ignored_prompts >= IGNORED_PROMPTS_THRESHOLD:
            reasons.append(IGNORED_PROMPTS_REASON.format(count=assessment.ignored_prompts))

        if is_pattern_student:
            reasons.append(PATTERN_REASON)

        if assessment.affected_peers:
            reasons.append(PEER_IMPACT_REASON)

        if assessment.disrupted_space:
            reasons.append(SPACE_DISRUPTION_REASON)

        if assessment.is_safety_risk:
            reasons.append(SAFETY_RISK_REASON)

        return reasons

    def should_log_level_a(
        self,
        student_id: str,
        domain_id: int,
        affected_others: bool,
    ) -> ShouldLogResult:
        """
        Logging filter for Level A.

        Isolated, first-of-the-day minor incidents are not logged. Anything
        that affected others, involves a pattern student or repeats the same
        day always is.
        """
        self.catalog.require(domain_id)

        if affected_others:
            return ShouldLogResult(should_log=True, reason="Affected other students")

        if self.pattern_detector.has_pattern(student_id, domain_id):
            return ShouldLogResult(should_log=True, reason="Known pattern student")

        if self.pattern_detector.count_same_day(student_id, domain_id) > 0:
            return ShouldLogResult(should_log=True, reason="Repeated incident same day")

        return ShouldLogResult(should_log=False, reason="First minor incident of the day")


def escalation_summary(result: DecisionTreeResult) -> EscalationSummary:
    """Display card for a recommendation."""
    return ESCALATION_SUMMARIES[result.recommended_level]
