"""
Migration: Add A/B/C intervention tables.

Creates the enum types and 4 tables used by the escalation engine:
1. behavioral_domains - Reference catalog (seed with scripts/seed_domains.py)
2. level_a_interventions - Append-only coaching log
3. level_b_interventions - Structured reset records (owned by the Level B workflow)
4. level_c_cases - Case management, version_id for optimistic locking

Safe to re-run: existing types and tables are left alone.
"""
from sqlalchemy import create_engine, text
import os

# Use same DB URL pattern as main app
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql://{os.getenv('USER', 'postgres')}@localhost:5432/intervention_engine"
)


ENUM_TYPES = {
    "levelainterventiontype": [
        "pre_correct", "positive_narration", "quick_redirect", "redo",
        "choice_consequence", "private_check", "micro_repair", "quick_reinforcement",
    ],
    "levelaoutcome": ["complied", "escalated", "partial"],
    "levelbstatus": [
        "in_progress", "monitoring", "completed_success", "completed_escalated", "cancelled",
    ],
    "levelctriggertype": [
        "safety_incident", "no_improvement_2_level_b", "chronic_pattern", "post_oss_reentry",
        "threshold_20_points", "threshold_30_points", "threshold_35_points",
        "threshold_40_points", "admin_referral",
    ],
    "levelccasetype": ["standard", "lite", "intensive"],
    "adminresponsetype": [
        "detention", "iss", "oss", "behavior_contract", "parent_conference", "other",
    ],
    "reentrytype": ["standard", "restricted"],
    "caseoutcomestatus": ["closed_success", "closed_continued_support", "closed_escalated"],
    "levelcstatus": ["active", "admin_response", "pending_reentry", "monitoring", "closed"],
}


def table_exists(conn, table_name: str) -> bool:
    """Check if a table exists in the database."""
    result = conn.execute(text("""
        SELECT EXISTS (
            SELECT FROM information_schema.tables
            WHERE table_name = :table_name
        )
    """), {"table_name": table_name})
    return result.fetchone()[0]


def type_exists(conn, type_name: str) -> bool:
    """Check if an enum type exists in the database."""
    result = conn.execute(text("""
        SELECT EXISTS (
            SELECT FROM pg_type WHERE typname = :type_name
        )
    """), {"type_name": type_name})
    return result.fetchone()[0]


def run_migration():
    """Create all intervention tables."""
    engine = create_engine(DATABASE_URL)

    with engine.connect() as conn:
        # =================================================================
        # ENUM TYPES
        # =================================================================
        for type_name, values in ENUM_TYPES.items():
            if type_exists(conn, type_name):
                print(f"{type_name} type already exists")
                continue
            labels = ", ".join(f"'{value}'" for value in values)
            conn.execute(text(f"CREATE TYPE {type_name} AS ENUM ({labels})"))
            print(f"Created {type_name} type")

        # =================================================================
        # TABLE 1: behavioral_domains
        # =================================================================
        if table_exists(conn, "behavioral_domains"):
            print("behavioral_domains table already exists")
        else:
            conn.execute(text("""
                CREATE TABLE behavioral_domains (
                    id SERIAL PRIMARY KEY,
                    domain_key VARCHAR(50) UNIQUE NOT NULL,
                    domain_name VARCHAR(255) NOT NULL,
                    description TEXT,
                    expectations JSON,
                    repair_menu_immediate JSON,
                    repair_menu_restorative JSON,
                    is_active BOOLEAN NOT NULL DEFAULT TRUE,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """))
            print("Created behavioral_domains table")

        # =================================================================
        # TABLE 2: level_a_interventions
        # =================================================================
        if table_exists(conn, "level_a_interventions"):
            print("level_a_interventions table already exists")
        else:
            conn.execute(text("""
                CREATE TABLE level_a_interventions (
                    id VARCHAR(36) PRIMARY KEY,
                    student_id VARCHAR(36) NOT NULL,
                    staff_id VARCHAR(36),
                    staff_name VARCHAR(255) NOT NULL,
                    domain_id INTEGER REFERENCES behavioral_domains(id),
                    intervention_type levelainterventiontype NOT NULL,
                    behavior_description TEXT,
                    location VARCHAR(255),
                    outcome levelaoutcome NOT NULL DEFAULT 'complied',
                    escalated_to_b BOOLEAN NOT NULL DEFAULT FALSE,
                    is_repeated_same_day BOOLEAN NOT NULL DEFAULT FALSE,
                    affected_others BOOLEAN NOT NULL DEFAULT FALSE,
                    is_pattern_student BOOLEAN NOT NULL DEFAULT FALSE,
                    event_timestamp TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """))
            conn.execute(text("""
                CREATE INDEX idx_level_a_student_domain_time
                ON level_a_interventions(student_id, domain_id, event_timestamp)
            """))
            conn.execute(text("""
                CREATE INDEX idx_level_a_staff ON level_a_interventions(staff_id)
            """))
            print("Created level_a_interventions table")

        # =================================================================
        # TABLE 3: level_b_interventions
        # =================================================================
        if table_exists(conn, "level_b_interventions"):
            print("level_b_interventions table already exists")
        else:
            conn.execute(text("""
                CREATE TABLE level_b_interventions (
                    id VARCHAR(36) PRIMARY KEY,
                    student_id VARCHAR(36) NOT NULL,
                    staff_name VARCHAR(255),
                    domain_id INTEGER REFERENCES behavioral_domains(id),
                    status levelbstatus NOT NULL DEFAULT 'in_progress',
                    escalated_to_c BOOLEAN NOT NULL DEFAULT FALSE,
                    escalation_reason TEXT,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """))
            conn.execute(text("""
                CREATE INDEX idx_level_b_student_domain ON level_b_interventions(student_id, domain_id)
            """))
            print("Created level_b_interventions table")

        # =================================================================
        # TABLE 4: level_c_cases
        # =================================================================
        if table_exists(conn, "level_c_cases"):
            print("level_c_cases table already exists")
        else:
            conn.execute(text("""
                CREATE TABLE level_c_cases (
                    id VARCHAR(36) PRIMARY KEY,
                    student_id VARCHAR(36) NOT NULL,
                    case_manager_id VARCHAR(36),
                    case_manager_name VARCHAR(255),

                    trigger_type levelctriggertype NOT NULL,
                    case_type levelccasetype NOT NULL DEFAULT 'standard',
                    domain_focus_id INTEGER REFERENCES behavioral_domains(id),
                    escalated_from_level_b_ids JSON,
                    sis_demerit_points_at_creation INTEGER,

                    incident_summary TEXT,
                    pattern_review TEXT,
                    environmental_factors JSON,
                    prior_interventions_summary TEXT,
                    context_packet_completed BOOLEAN NOT NULL DEFAULT FALSE,

                    admin_response_type adminresponsetype,
                    admin_response_details TEXT,
                    consequence_start_date DATE,
                    consequence_end_date DATE,
                    admin_response_completed BOOLEAN NOT NULL DEFAULT FALSE,

                    support_plan_goal TEXT,
                    support_plan_strategies JSON,
                    adult_mentor_id VARCHAR(36),
                    adult_mentor_name VARCHAR(255),
                    repair_actions JSON,
                    reentry_date DATE,
                    reentry_type reentrytype NOT NULL DEFAULT 'standard',
                    reentry_restrictions JSON,
                    reentry_checklist JSON,
                    reentry_planning_completed BOOLEAN NOT NULL DEFAULT FALSE,

                    monitoring_duration_days INTEGER NOT NULL DEFAULT 10,
                    monitoring_schedule JSON,
                    review_dates JSON,
                    daily_check_ins JSON,

                    outcome_status caseoutcomestatus,
                    outcome_notes TEXT,
                    closure_criteria TEXT,
                    closure_date DATE,

                    status levelcstatus NOT NULL DEFAULT 'active',
                    version_id INTEGER NOT NULL,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """))
            conn.execute(text("""
                CREATE INDEX idx_level_c_student ON level_c_cases(student_id)
            """))
            conn.execute(text("""
                CREATE INDEX idx_level_c_status ON level_c_cases(status)
            """))
            conn.execute(text("""
                CREATE INDEX idx_level_c_case_manager ON level_c_cases(case_manager_id)
            """))
            conn.execute(text("""
                CREATE INDEX idx_level_c_reentry ON level_c_cases(reentry_date)
                WHERE status = 'pending_reentry'
            """))
            print("Created level_c_cases table")

        conn.commit()
        print("\nIntervention tables migration completed successfully!")


if __name__ == "__main__":
    run_migration()
