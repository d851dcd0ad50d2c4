#!/usr/bin/env python3
# CUI // SP-PROPIN
# Controlled by: Contract Rollup Portal
# CUI Category: PROPIN (Proprietary Business Information)
# Distribution: D
# POC: Contract Rollup System Administrator
"""Initialize the contracts system-of-record database.

Creates tables for:
  - Contracts (identity, classification, financials, PoP, contacts)
  - CLINs (line items with funded / invoiced amounts)
  - Modifications (status machine, value / funding / PoP deltas)
  - Options (option periods, exercise deadlines)
  - Deliverables (CDRL items, due dates, review status)

Usage:
    python tools/db/init_db.py [--json] [--db-path PATH]
"""

import json
import sqlite3
import sys
from datetime import datetime, timezone
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent.parent

if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from tools.contracts.config import db_path as configured_db_path

DB_PATH = Path(configured_db_path())


SCHEMA_SQL = """
-- ============================================================
-- CONTRACTS
-- ============================================================

CREATE TABLE IF NOT EXISTS contracts (
    id TEXT PRIMARY KEY,
    contract_number TEXT NOT NULL UNIQUE,
    title TEXT NOT NULL,
    description TEXT,
    contract_type TEXT NOT NULL DEFAULT 'OTHER'
        CHECK(contract_type IN ('FIRM_FIXED_PRICE', 'TIME_AND_MATERIALS',
               'COST_PLUS_FIXED_FEE', 'COST_PLUS_INCENTIVE_FEE', 'COST_PLUS_AWARD_FEE',
               'COST_REIMBURSEMENT', 'INDEFINITE_DELIVERY', 'BLANKET_PURCHASE_AGREEMENT',
               'BASIC_ORDERING_AGREEMENT', 'TASK_ORDER', 'DELIVERY_ORDER', 'GRANT',
               'COOPERATIVE_AGREEMENT', 'OTHER')),
    status TEXT NOT NULL DEFAULT 'DRAFT'
        CHECK(status IN ('DRAFT', 'AWARDED', 'PENDING_SIGNATURE', 'ACTIVE', 'ON_HOLD',
               'COMPLETED', 'TERMINATED', 'CANCELLED', 'CLOSED')),
    parent_contract_id TEXT REFERENCES contracts(id),
    opportunity_id TEXT,
    agency TEXT,
    agency_code TEXT,
    sub_agency TEXT,
    office TEXT,
    pop_start_date TEXT,
    pop_end_date TEXT,
    base_period_end_date TEXT,
    final_option_end_date TEXT,
    base_value REAL,
    total_value REAL,
    ceiling_value REAL,
    funded_value REAL,
    naics_code TEXT,
    psc_code TEXT,
    place_of_performance_city TEXT,
    place_of_performance_state TEXT,
    place_of_performance_country TEXT,
    contracting_officer_name TEXT,
    contracting_officer_email TEXT,
    cor_name TEXT,
    cor_email TEXT,
    prime_contractor TEXT,
    is_subcontract INTEGER NOT NULL DEFAULT 0,
    contract_vehicle TEXT,
    set_aside_type TEXT,
    requires_clearance INTEGER NOT NULL DEFAULT 0,
    clearance_level TEXT,
    program_manager_name TEXT,
    contract_manager_name TEXT,
    award_date TEXT,
    internal_notes TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_contract_status ON contracts(status);
CREATE INDEX IF NOT EXISTS idx_contract_agency ON contracts(agency);
CREATE INDEX IF NOT EXISTS idx_contract_pop_end ON contracts(pop_end_date);

-- ============================================================
-- CLINS
-- ============================================================

CREATE TABLE IF NOT EXISTS contract_clins (
    id TEXT PRIMARY KEY,
    contract_id TEXT NOT NULL REFERENCES contracts(id) ON DELETE CASCADE,
    clin_number TEXT NOT NULL,
    description TEXT,
    clin_type TEXT NOT NULL DEFAULT 'BASE'
        CHECK(clin_type IN ('BASE', 'OPTION', 'DATA', 'SERVICES', 'SUPPLIES', 'OTHER')),
    pricing_type TEXT
        CHECK(pricing_type IS NULL OR pricing_type IN ('FIRM_FIXED_PRICE',
               'TIME_AND_MATERIALS', 'LABOR_HOUR', 'COST_PLUS_FIXED_FEE',
               'COST_PLUS_INCENTIVE_FEE', 'COST_REIMBURSEMENT')),
    unit_of_issue TEXT,
    quantity REAL,
    unit_price REAL,
    total_value REAL,
    funded_amount REAL,
    obligated_amount REAL,
    invoiced_amount REAL,
    naics_code TEXT,
    psc_code TEXT,
    is_option INTEGER NOT NULL DEFAULT 0,
    option_period INTEGER,
    notes TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now')),
    UNIQUE(contract_id, clin_number)
);

CREATE INDEX IF NOT EXISTS idx_clin_contract ON contract_clins(contract_id);

-- ============================================================
-- MODIFICATIONS
-- ============================================================

CREATE TABLE IF NOT EXISTS contract_modifications (
    id TEXT PRIMARY KEY,
    contract_id TEXT NOT NULL REFERENCES contracts(id) ON DELETE CASCADE,
    modification_number TEXT NOT NULL,
    modification_type TEXT NOT NULL DEFAULT 'OTHER',
    status TEXT NOT NULL DEFAULT 'PENDING'
        CHECK(status IN ('DRAFT', 'PENDING', 'UNDER_REVIEW', 'APPROVED',
               'EXECUTED', 'REJECTED', 'CANCELLED')),
    title TEXT,
    description TEXT,
    effective_date TEXT,
    executed_date TEXT,
    value_change REAL,
    funding_change REAL,
    new_total_value REAL,
    pop_extension_days INTEGER,
    new_pop_end_date TEXT,
    scope_change_summary TEXT,
    requesting_office TEXT,
    contracting_officer_name TEXT,
    reason TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now')),
    UNIQUE(contract_id, modification_number)
);

CREATE INDEX IF NOT EXISTS idx_mod_contract ON contract_modifications(contract_id);
CREATE INDEX IF NOT EXISTS idx_mod_status ON contract_modifications(status);

-- ============================================================
-- OPTIONS
-- ============================================================

CREATE TABLE IF NOT EXISTS contract_options (
    id TEXT PRIMARY KEY,
    contract_id TEXT NOT NULL REFERENCES contracts(id) ON DELETE CASCADE,
    option_number INTEGER NOT NULL,
    option_year INTEGER,
    description TEXT,
    status TEXT NOT NULL DEFAULT 'PENDING'
        CHECK(status IN ('PENDING', 'EXERCISED', 'DECLINED', 'EXPIRED')),
    start_date TEXT,
    end_date TEXT,
    exercise_deadline TEXT,
    exercised_date TEXT,
    option_value REAL,
    duration_months INTEGER,
    exercise_modification_number TEXT,
    notes TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now')),
    UNIQUE(contract_id, option_number)
);

CREATE INDEX IF NOT EXISTS idx_option_contract ON contract_options(contract_id);

-- ============================================================
-- DELIVERABLES
-- ============================================================

CREATE TABLE IF NOT EXISTS contract_deliverables (
    id TEXT PRIMARY KEY,
    contract_id TEXT NOT NULL REFERENCES contracts(id) ON DELETE CASCADE,
    cdrl_number TEXT,
    title TEXT NOT NULL,
    description TEXT,
    deliverable_type TEXT NOT NULL DEFAULT 'OTHER',
    status TEXT NOT NULL DEFAULT 'PENDING'
        CHECK(status IN ('PENDING', 'IN_PROGRESS', 'SUBMITTED', 'UNDER_REVIEW',
               'ACCEPTED', 'REJECTED', 'REVISION_REQUIRED', 'WAIVED')),
    due_date TEXT,
    submitted_date TEXT,
    accepted_date TEXT,
    frequency TEXT,
    next_due_date TEXT,
    clin_id TEXT REFERENCES contract_clins(id) ON DELETE SET NULL,
    owner_name TEXT,
    reviewer_name TEXT,
    review_comments TEXT,
    format_requirements TEXT,
    notes TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_deliv_contract ON contract_deliverables(contract_id);
CREATE INDEX IF NOT EXISTS idx_deliv_due ON contract_deliverables(due_date);
CREATE INDEX IF NOT EXISTS idx_deliv_status ON contract_deliverables(status);
"""


def init_db(db_path=None):
    """Initialize the contracts database."""
    path = db_path or str(DB_PATH)
    db_dir = Path(path).parent
    db_dir.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(path))
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")

    conn.executescript(SCHEMA_SQL)
    conn.commit()

    table_count = conn.execute(
        "SELECT COUNT(*) FROM sqlite_master WHERE type='table'"
    ).fetchone()[0]
    index_count = conn.execute(
        "SELECT COUNT(*) FROM sqlite_master WHERE type='index' "
        "AND name NOT LIKE 'sqlite_%'"
    ).fetchone()[0]

    conn.close()

    return {
        "status": "initialized",
        "db_path": str(path),
        "tables": table_count,
        "indexes": index_count,
        "initialized_at": datetime.now(timezone.utc).isoformat(),
    }


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Initialize contracts database")
    parser.add_argument("--json", action="store_true", help="JSON output")
    parser.add_argument("--db-path", help="Override database path")
    args = parser.parse_args()

    result = init_db(db_path=args.db_path)

    if args.json:
        print(json.dumps(result, indent=2))
    else:
        print("Contracts database initialized:")
        print(f"  Path:    {result['db_path']}")
        print(f"  Tables:  {result['tables']}")
        print(f"  Indexes: {result['indexes']}")
        print(f"  Time:    {result['initialized_at']}")
