"""
Escalation API Routes

Behavioral domain catalog and the A/B/C decision tree.
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..database import get_db
from ..identity import get_current_staff, StaffIdentity
from ..models.interventions import IncidentAssessment
from ..services.interventions import (
    DomainCatalog,
    PatternDetector,
    SqlLevelBStore,
    DecisionTreeEngine,
    InterventionError,
    escalation_summary,
)
from .common import http_error, serialize_domain


router = APIRouter(prefix="/interventions", tags=["interventions"])


# =============================================================================
# REQUEST MODELS
# =============================================================================

class AssessmentRequest(BaseModel):
    """Incident description for the decision tree."""
    student_id: str
    domain_id: int
    is_safety_incident: bool = Field(default=False, description="Safety / major harm - goes straight to Level C")
    demerit_assigned: bool = False
    ignored_prompts: int = Field(default=0, ge=0, description="Prompts ignored before this point")
    affected_peers: bool = False
    disrupted_space: bool = False
    is_safety_risk: bool = False


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get("/domains", response_model=dict)
async def list_domains(
    db: Session = Depends(get_db),
    current_staff: StaffIdentity = Depends(get_current_staff),
):
    """Active behavioral domains with expectations and repair menus."""
    try:
        domains = DomainCatalog(db).list_active()
    except InterventionError as e:
        raise http_error(e)

    return {"domains": [serialize_domain(d) for d in domains]}


@router.post("/decide", response_model=dict)
async def decide(
    request: AssessmentRequest,
    db: Session = Depends(get_db),
    current_staff: StaffIdentity = Depends(get_current_staff),
):
    """
    Recommend Level A, B or C for an incident.

    Advisory only - nothing is written.
    """
    engine = DecisionTreeEngine(PatternDetector(db), SqlLevelBStore(db), DomainCatalog(db))

    try:
        result = engine.decide(IncidentAssessment(**request.model_dump()))
    except InterventionError as e:
        raise http_error(e)

    summary = escalation_summary(result)
    return {
        **result.to_dict(),
        "summary": {
            "color": summary.color,
            "title": summary.title,
            "description": summary.description,
        },
    }
