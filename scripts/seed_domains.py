#!/usr/bin/env python3
"""
Behavioral Domain Seed Script
Loads the four behavioral domains with their expectations and repair menus.

Re-running updates existing domains in place (matched on domain_key).

Usage:
    python -m scripts.seed_domains
"""
import sys
import os

# Add the parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from intervention_engine.database import SessionLocal, engine, Base
from intervention_engine.models.db_models import BehavioralDomainDB


DOMAIN_SEEDS = [
    {
        "domain_key": "prayer_space",
        "domain_name": "Prayer Space (Salah & Transitions)",
        "description": "Sacred space respect, wudu preparation, stillness during prayer, proper entry/exit",
        "expectations": [
            "Maintain wudu properly",
            "Enter prayer space with adab",
            "Maintain stillness during salah",
            "Respectful entry and exit transitions",
        ],
        "repair_menu_immediate": [
            "Redo entry with adab",
            "Silent line reset",
            "Apologize to affected peers",
            "Reset disrupted space",
        ],
        "repair_menu_restorative": [
            "Write reflection on salah adab",
            "Help set up prayer space for next salah",
            "Staff commitment meeting",
        ],
    },
    {
        "domain_key": "hallways",
        "domain_name": "Hallways & Transitions",
        "description": "Right-side flow, quiet voices, hands-to-self, respectful spacing",
        "expectations": [
            "Walk on right side",
            "Use quiet voices",
            "Keep hands to self",
            "Maintain respectful spacing",
        ],
        "repair_menu_immediate": [
            "Redo transition silently",
            "Flow correction practice",
            "Apologize for crowding or disruption",
        ],
        "repair_menu_restorative": [
            "Greeting culture repair activity",
            "Reflection note on safety risks",
            "Hallway monitor helper duty",
        ],
    },
    {
        "domain_key": "lunch_recess",
        "domain_name": "Lunch/Recess & Unstructured Time",
        "description": "Inclusion behaviors, environmental care, conflict resolution",
        "expectations": [
            "Include others in activities",
            "Care for shared space and environment",
            "Resolve conflicts peacefully",
            "Follow adult directions promptly",
        ],
        "repair_menu_immediate": [
            "Clean area fully",
            "Specific peer apology",
            "Supervised inclusion invitation to peer",
        ],
        "repair_menu_restorative": [
            "Service repair (table/chair reset duty)",
            "Conflict replay writing exercise",
            "Lunch helper duty for week",
        ],
    },
    {
        "domain_key": "respect",
        "domain_name": "Respect & Community",
        "description": "Appropriate speech, authority relationships, peer interactions, disagreement with dignity",
        "expectations": [
            "Use appropriate and respectful language",
            "Respect authority figures",
            "Treat peers with kindness",
            "Disagree with dignity and respect",
        ],
        "repair_menu_immediate": [
            "4-step apology format",
            "Public correction of public disrespect",
            "Private reflection time",
        ],
        "repair_menu_restorative": [
            "72-hour respect contract",
            "Community service activity",
            "Restorative circle participation",
        ],
    },
]


def seed_domains(db: Session) -> int:
    """Insert or update every seeded domain. Returns the number created."""
    created = 0
    for seed in DOMAIN_SEEDS:
        domain = db.query(BehavioralDomainDB).filter(
            BehavioralDomainDB.domain_key == seed["domain_key"]
        ).first()

        if domain is None:
            db.add(BehavioralDomainDB(is_active=True, **seed))
            created += 1
        else:
            for field, value in seed.items():
                setattr(domain, field, value)

    db.commit()
    return created


def main():
    # Ensure tables exist
    Base.metadata.create_all(bind=engine)

    db: Session = SessionLocal()
    try:
        created = seed_domains(db)
        print(f"Seeded behavioral domains: {created} created, {len(DOMAIN_SEEDS) - created} updated")
    except SQLAlchemyError as e:
        db.rollback()
        print(f"Error seeding behavioral domains: {e}")
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
