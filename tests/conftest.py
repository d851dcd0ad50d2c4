#!/usr/bin/env python3
# CUI // SP-PROPIN
"""Shared test fixtures for the Contract Rollup test suite."""

import os
import sqlite3
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add project root to path
BASE_DIR = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(BASE_DIR))

CONTRACT_ID = "CTR-test-001"


def utc_today():
    return datetime.now(timezone.utc).date()


def days_from_today(days):
    return (utc_today() + timedelta(days=days)).isoformat()


def _patch_db_path(db_path):
    """Patch DB_PATH in all tool modules that cache it at import time."""
    p = Path(db_path)
    modules_to_patch = [
        "tools.db.init_db",
        "tools.delivery.contract_manager",
        "tools.dashboard.app",
    ]
    for mod_name in modules_to_patch:
        if mod_name in sys.modules:
            mod = sys.modules[mod_name]
            if hasattr(mod, "DB_PATH"):
                mod.DB_PATH = p


@pytest.fixture
def tmp_db(tmp_path):
    """Create a temporary contracts database with full schema."""
    db_path = tmp_path / "test_contracts.db"

    from tools.db.init_db import init_db
    init_db(str(db_path))

    os.environ["CONTRACTS_DB_PATH"] = str(db_path)
    _patch_db_path(db_path)
    yield db_path
    if "CONTRACTS_DB_PATH" in os.environ:
        del os.environ["CONTRACTS_DB_PATH"]


@pytest.fixture
def db_conn(tmp_db):
    """Get a connection to the test database."""
    conn = sqlite3.connect(str(tmp_db))
    conn.row_factory = sqlite3.Row
    yield conn
    conn.close()


@pytest.fixture
def sample_contract(db_conn):
    """Insert an ACTIVE FFP contract and return its ID."""
    db_conn.execute(
        """INSERT INTO contracts
           (id, contract_number, title, contract_type, status, agency,
            pop_start_date, pop_end_date, total_value, funded_value,
            contracting_officer_name, cor_name, prime_contractor)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (CONTRACT_ID, "W911QX-26-C-0001", "Enterprise IT Modernization Support",
         "FIRM_FIXED_PRICE", "ACTIVE", "Department of the Army",
         "2026-01-01", "2026-12-31", 1000000.0, 400000.0,
         "Jane Contracting", "Sam Representative", "Acme Federal LLC")
    )
    db_conn.commit()
    return CONTRACT_ID


@pytest.fixture
def sample_clins(db_conn, sample_contract):
    """Two CLINs: funded 100/200, invoiced 40/190."""
    clins = [
        ("CLIN-test-001", sample_contract, "0001", "BASE", "FIRM_FIXED_PRICE",
         150.0, 100.0, 40.0),
        ("CLIN-test-002", sample_contract, "0002", "SERVICES", "TIME_AND_MATERIALS",
         250.0, 200.0, 190.0),
    ]
    for c in clins:
        db_conn.execute(
            """INSERT INTO contract_clins
               (id, contract_id, clin_number, clin_type, pricing_type,
                total_value, funded_amount, invoiced_amount)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""", c
        )
    db_conn.commit()
    return [c[0] for c in clins]


@pytest.fixture
def sample_modifications(db_conn, sample_contract):
    """One APPROVED modification with deltas, one PENDING."""
    mods = [
        ("MOD-test-001", sample_contract, "P00001", "BILATERAL", "APPROVED",
         "2026-03-01", 50000.0, 25000.0, 30),
        ("MOD-test-002", sample_contract, "P00002", "INCREMENTAL_FUNDING", "PENDING",
         "2026-04-01", None, 10000.0, None),
    ]
    for m in mods:
        db_conn.execute(
            """INSERT INTO contract_modifications
               (id, contract_id, modification_number, modification_type, status,
                effective_date, value_change, funding_change, pop_extension_days)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""", m
        )
    db_conn.commit()
    return {"approved": "MOD-test-001", "pending": "MOD-test-002"}


@pytest.fixture
def sample_deliverables(db_conn, sample_contract):
    """Deliverables relative to today: overdue, due soon, submitted, accepted, undated."""
    items = [
        ("DLV-overdue", "Monthly Status Report", "STATUS_REPORT", "IN_PROGRESS",
         days_from_today(-1)),
        ("DLV-due-soon", "Quarterly Financial Report", "FINANCIAL_REPORT", "PENDING",
         days_from_today(3)),
        ("DLV-submitted", "System Design Document", "DOCUMENTATION", "SUBMITTED",
         days_from_today(20)),
        ("DLV-accepted", "Kickoff Briefing", "MILESTONE", "ACCEPTED",
         days_from_today(-30)),
        ("DLV-undated", "Transition Plan", "REPORT", "PENDING", None),
    ]
    for d in items:
        db_conn.execute(
            """INSERT INTO contract_deliverables
               (id, contract_id, title, deliverable_type, status, due_date)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (d[0], sample_contract, d[1], d[2], d[3], d[4])
        )
    db_conn.commit()
    return {d[0].replace("DLV-", "").replace("-", "_"): d[0] for d in items}


@pytest.fixture
def sample_option(db_conn, sample_contract):
    """PENDING option year 1 with an exercise deadline 10 days out."""
    opt_id = "OPT-test-001"
    db_conn.execute(
        """INSERT INTO contract_options
           (id, contract_id, option_number, option_year, status, start_date,
            end_date, exercise_deadline, option_value, duration_months)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (opt_id, sample_contract, 1, 1, "PENDING", "2027-01-01", "2027-12-31",
         days_from_today(10), 250000.0, 12)
    )
    db_conn.commit()
    return opt_id


@pytest.fixture
def client(tmp_db):
    """Create a Flask test client with API key auth disabled."""
    from tools.dashboard.app import app
    app.config["TESTING"] = True
    app.config["API_KEY"] = ""
    with app.test_client() as client:
        yield client
