"""
Shared fixtures: an in-memory SQLite store built from the ORM metadata.
"""
import os

# Keep the module-level engine off PostgreSQL during tests
os.environ["DATABASE_URL"] = "sqlite://"

from datetime import datetime
from uuid import uuid4

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from intervention_engine.database import Base
from intervention_engine.models.db_models import (
    BehavioralDomainDB,
    LevelAInterventionDB,
    LevelAInterventionType,
    LevelAOutcome,
    LevelBInterventionDB,
    LevelBStatus,
)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture
def domains(db):
    """Two active domains and one retired one, keyed by domain_key."""
    rows = {
        "hallways": BehavioralDomainDB(
            domain_key="hallways",
            domain_name="Hallways & Transitions",
            expectations=["Walk on right side", "Use quiet voices"],
            repair_menu_immediate=["Redo transition silently"],
            repair_menu_restorative=["Hallway monitor helper duty"],
            is_active=True,
        ),
        "respect": BehavioralDomainDB(
            domain_key="respect",
            domain_name="Respect & Community",
            expectations=["Treat peers with kindness"],
            repair_menu_immediate=["4-step apology format"],
            repair_menu_restorative=["Restorative circle participation"],
            is_active=True,
        ),
        "retired": BehavioralDomainDB(
            domain_key="retired",
            domain_name="Retired Domain",
            is_active=False,
        ),
    }
    db.add_all(rows.values())
    db.commit()
    return rows


@pytest.fixture
def add_level_a(db):
    """Insert a Level A row directly, bypassing the service."""
    def _add(student_id: str, domain_id: int, when: datetime, outcome=LevelAOutcome.COMPLIED):
        row = LevelAInterventionDB(
            id=str(uuid4()),
            student_id=student_id,
            staff_name="Ms. Rahman",
            domain_id=domain_id,
            intervention_type=LevelAInterventionType.QUICK_REDIRECT,
            outcome=outcome,
            escalated_to_b=outcome == LevelAOutcome.ESCALATED,
            event_timestamp=when,
        )
        db.add(row)
        db.commit()
        return row
    return _add


@pytest.fixture
def add_level_b(db):
    """Insert a Level B record as the conference workflow would."""
    def _add(student_id: str, domain_id: int, status=LevelBStatus.COMPLETED_SUCCESS):
        row = LevelBInterventionDB(
            id=str(uuid4()),
            student_id=student_id,
            staff_name="Mr. Okafor",
            domain_id=domain_id,
            status=status,
        )
        db.add(row)
        db.commit()
        return row
    return _add
