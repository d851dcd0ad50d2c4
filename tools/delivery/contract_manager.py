#!/usr/bin/env python3
# CUI // SP-PROPIN
# Controlled by: Contract Rollup Portal
# CUI Category: PROPIN (Proprietary Business Information)
# Distribution: D
# POC: Contract Rollup System Administrator
"""Contract system of record — contracts, CLINs, modifications, options, deliverables.

Backs the ``/api/contracts`` endpoints of the dashboard. Every function
opens its own connection, returns a plain dict, and reports problems as
``{"error": message, "code": ...}`` where code is one of ``not_found``,
``validation`` or ``conflict``. Validation failures also carry
``fields`` (field -> message).

Executing a modification is gated: only APPROVED modifications execute.
On execution the modification deltas roll into the parent contract
(new_total_value or value_change, funding_change, new_pop_end_date or
pop_extension_days).

Functions:
    create_contract            — Create a contract (starts DRAFT)
    get_contract               — Fetch one contract
    list_contracts             — List / search contracts
    update_contract            — Partial update of contract fields
    update_contract_status     — Set contract lifecycle status
    add_clin / list_clins / update_clin
    create_modification        — New modification (DRAFT or PENDING)
    list_modifications
    update_modification_status — Walk the modification status machine
    execute_modification       — Execute an APPROVED modification
    add_option / list_options / exercise_option
    add_deliverable / list_deliverables / update_deliverable_status
    get_contract_summary       — ContractSummary rollup for one contract
    expiring_contracts         — ACTIVE contracts whose PoP ends soon
    overdue_deliverables       — Overdue deliverables across contracts
    contract_dashboard_data    — Portfolio aggregate for the home card

Usage:
    python tools/delivery/contract_manager.py --create --contract-number W911QX-26-C-0001 \\
        --title "Enterprise IT Support" --contract-type FIRM_FIXED_PRICE \\
        --total-value 1200000 --funded-value 400000 --json
    python tools/delivery/contract_manager.py --get --contract-id CTR-abc --json
    python tools/delivery/contract_manager.py --list [--status ACTIVE] [--q army] --json
    python tools/delivery/contract_manager.py --summary --contract-id CTR-abc --json
    python tools/delivery/contract_manager.py --mod-status --contract-id CTR-abc \\
        --mod-id MOD-abc --status APPROVED --json
    python tools/delivery/contract_manager.py --execute-mod --contract-id CTR-abc \\
        --mod-id MOD-abc --json
    python tools/delivery/contract_manager.py --check-overdue --json
    python tools/delivery/contract_manager.py --dashboard --json
"""

import json
import logging
import sqlite3
import sys
import uuid
from dataclasses import fields
from datetime import date, datetime, timedelta, timezone
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent.parent

if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from tools.contracts import deliverable_tracker, rollup
from tools.contracts.config import db_path as configured_db_path
from tools.contracts.config import load_config
from tools.contracts.contract_types import (
    Contract,
    ContractClin,
    ContractDeliverable,
    ContractModification,
    ContractOption,
    ContractStatus,
    DeliverableStatus,
    ModificationStatus,
    OptionStatus,
    to_snake,
)
from tools.contracts.forms import (
    validate_clin_form,
    validate_contract_form,
    validate_deliverable_form,
    validate_modification_form,
    validate_option_form,
)
from tools.contracts.modification_gate import (
    InvalidTransitionError,
    can_execute,
    check_transition,
    execution_changes,
)

DB_PATH = Path(configured_db_path())

logger = logging.getLogger("contracts.manager")

# -- Statuses a new modification may be created in --
_INITIAL_MOD_STATUSES = (ModificationStatus.DRAFT, ModificationStatus.PENDING)


def _now():
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _today():
    return datetime.now(timezone.utc).date()


def _uid(prefix="CTR"):
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def _get_db(db_path=None):
    path = db_path or str(DB_PATH)
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys=ON")
    return conn


def _begin_write(conn):
    """Take the write lock before reading state that a later write depends on."""
    conn.execute("BEGIN IMMEDIATE")


def _error(message, code="validation", **extra):
    result = {"error": message, "code": code}
    result.update(extra)
    return result


def _normalize(data):
    """camelCase or snake_case keys -> snake_case."""
    return {(to_snake(k) if any(c.isupper() for c in k) else k): v
            for k, v in (data or {}).items()}


def _columns(record_cls, skip=()):
    return tuple(f.name for f in fields(record_cls)
                 if f.name not in ("id", "created_at", "updated_at") + tuple(skip))


CONTRACT_COLUMNS = _columns(Contract)
CLIN_COLUMNS = _columns(ContractClin, skip=("remaining_funds",))
MODIFICATION_COLUMNS = _columns(ContractModification)
OPTION_COLUMNS = _columns(ContractOption)
DELIVERABLE_COLUMNS = _columns(ContractDeliverable, skip=("clin_number",))


def _values(record, columns):
    data = record.to_dict()
    return {c: data[c] for c in columns}


def _iso(value):
    return value.isoformat() if isinstance(value, date) else value


def _insert(conn, table, record_id, values):
    cols = ["id"] + list(values) + ["created_at", "updated_at"]
    now = _now()
    conn.execute(
        f"INSERT INTO {table} ({', '.join(cols)}) VALUES ({', '.join('?' * len(cols))})",
        [record_id, *values.values(), now, now]
    )


def _write(conn, table, record_id, values):
    if not values:
        return
    assignments = ", ".join(f"{c} = ?" for c in values)
    conn.execute(
        f"UPDATE {table} SET {assignments}, updated_at = ? WHERE id = ?",
        [*values.values(), _now(), record_id]
    )


def _contract_row(conn, contract_id):
    return conn.execute("SELECT * FROM contracts WHERE id = ?", (contract_id,)).fetchone()


def _child_row(conn, table, record_id, contract_id):
    return conn.execute(
        f"SELECT * FROM {table} WHERE id = ? AND contract_id = ?",
        (record_id, contract_id)
    ).fetchone()


def _contract_missing(contract_id):
    return _error(f"Contract {contract_id} not found", "not_found")


_DELIVERABLE_SELECT = (
    "SELECT d.*, cl.clin_number AS clin_number "
    "FROM contract_deliverables d "
    "LEFT JOIN contract_clins cl ON d.clin_id = cl.id "
)


def _load_records(conn, contract_id):
    """Contract plus child records as dataclasses (None if the contract is missing)."""
    row = _contract_row(conn, contract_id)
    if not row:
        return None
    return {
        "contract": Contract.from_dict(dict(row)),
        "clins": [ContractClin.from_dict(dict(r)) for r in conn.execute(
            "SELECT * FROM contract_clins WHERE contract_id = ? ORDER BY clin_number",
            (contract_id,)).fetchall()],
        "modifications": [ContractModification.from_dict(dict(r)) for r in conn.execute(
            "SELECT * FROM contract_modifications WHERE contract_id = ? "
            "ORDER BY modification_number", (contract_id,)).fetchall()],
        "options": [ContractOption.from_dict(dict(r)) for r in conn.execute(
            "SELECT * FROM contract_options WHERE contract_id = ? ORDER BY option_number",
            (contract_id,)).fetchall()],
        "deliverables": [ContractDeliverable.from_dict(dict(r)) for r in conn.execute(
            _DELIVERABLE_SELECT + "WHERE d.contract_id = ? "
            "ORDER BY d.due_date IS NULL, d.due_date, d.created_at",
            (contract_id,)).fetchall()],
    }


# ── Contracts ────────────────────────────────────────────────────────────


def create_contract(data, db_path=None):
    """Create a contract. Status defaults to DRAFT."""
    data = _normalize(data)
    errors = validate_contract_form(data)
    if errors:
        return _error("Contract validation failed", fields=errors)

    contract = Contract.from_dict({**data, "id": _uid("CTR")})
    conn = _get_db(db_path)
    try:
        dup = conn.execute("SELECT id FROM contracts WHERE contract_number = ?",
                           (contract.contract_number,)).fetchone()
        if dup:
            return _error(f"Contract number {contract.contract_number} already exists",
                          "conflict", contract_id=dup["id"])
        if contract.parent_contract_id and not _contract_row(conn, contract.parent_contract_id):
            return _error(f"Parent contract {contract.parent_contract_id} not found",
                          fields={"parent_contract_id": "Unknown contract"})

        _insert(conn, "contracts", contract.id, _values(contract, CONTRACT_COLUMNS))
        conn.commit()
        logger.info("Created contract %s (%s)", contract.contract_number, contract.id)
        return {
            "status": "created",
            "contract": Contract.from_dict(dict(_contract_row(conn, contract.id))).to_dict(),
        }
    finally:
        conn.close()


def get_contract(contract_id, db_path=None):
    conn = _get_db(db_path)
    try:
        row = _contract_row(conn, contract_id)
        if not row:
            return _contract_missing(contract_id)
        return {"contract": Contract.from_dict(dict(row)).to_dict()}
    finally:
        conn.close()


def list_contracts(status=None, q=None, db_path=None):
    """List contracts, optionally filtered by status and a search term.

    ``q`` matches contract number, title, agency or prime contractor
    (case-insensitive substring).
    """
    conn = _get_db(db_path)
    try:
        query = "SELECT * FROM contracts WHERE 1=1"
        params = []
        if status:
            query += " AND status = ?"
            params.append(str(status).upper())
        if q:
            query += (" AND (contract_number LIKE ? OR title LIKE ? "
                      "OR agency LIKE ? OR prime_contractor LIKE ?)")
            params.extend([f"%{q}%"] * 4)
        query += " ORDER BY pop_end_date IS NULL, pop_end_date, contract_number"
        rows = conn.execute(query, params).fetchall()
        contracts = [Contract.from_dict(dict(r)).to_dict() for r in rows]
        return {"contracts": contracts, "count": len(contracts)}
    finally:
        conn.close()


def update_contract(contract_id, data, db_path=None):
    """Partial update; unknown keys are ignored."""
    updates = {k: v for k, v in _normalize(data).items() if k in CONTRACT_COLUMNS}
    if not updates:
        return _error("No updatable contract fields provided")

    conn = _get_db(db_path)
    try:
        row = _contract_row(conn, contract_id)
        if not row:
            return _contract_missing(contract_id)
        merged = {**dict(row), **updates}
        errors = validate_contract_form(merged)
        if errors:
            return _error("Contract validation failed", fields=errors)

        if merged["contract_number"] != row["contract_number"]:
            dup = conn.execute(
                "SELECT id FROM contracts WHERE contract_number = ? AND id != ?",
                (merged["contract_number"], contract_id)).fetchone()
            if dup:
                return _error(f"Contract number {merged['contract_number']} already exists",
                              "conflict")

        contract = Contract.from_dict(merged)
        _write(conn, "contracts", contract_id, _values(contract, CONTRACT_COLUMNS))
        conn.commit()
        return {
            "status": "updated",
            "contract": Contract.from_dict(dict(_contract_row(conn, contract_id))).to_dict(),
        }
    finally:
        conn.close()


def update_contract_status(contract_id, status, db_path=None):
    try:
        new_status = ContractStatus(str(status).upper())
    except ValueError:
        valid = [s.value for s in ContractStatus]
        return _error(f"Invalid status. Must be one of: {valid}",
                      fields={"status": f"Unknown value: {status}"})
    return update_contract(contract_id, {"status": new_status.value}, db_path=db_path)


# ── CLINs ────────────────────────────────────────────────────────────────


def add_clin(contract_id, data, db_path=None):
    data = _normalize(data)
    errors = validate_clin_form(data)
    if errors:
        return _error("CLIN validation failed", fields=errors)

    conn = _get_db(db_path)
    try:
        if not _contract_row(conn, contract_id):
            return _contract_missing(contract_id)
        clin = ContractClin.from_dict({**data, "id": _uid("CLIN"), "contract_id": contract_id})
        try:
            _insert(conn, "contract_clins", clin.id, _values(clin, CLIN_COLUMNS))
        except sqlite3.IntegrityError:
            return _error(f"CLIN {clin.clin_number} already exists on this contract",
                          "conflict", fields={"clin_number": "Already in use"})
        conn.commit()
        row = _child_row(conn, "contract_clins", clin.id, contract_id)
        return {"status": "created", "clin": ContractClin.from_dict(dict(row)).to_dict()}
    finally:
        conn.close()


def list_clins(contract_id, db_path=None):
    conn = _get_db(db_path)
    try:
        if not _contract_row(conn, contract_id):
            return _contract_missing(contract_id)
        rows = conn.execute(
            "SELECT * FROM contract_clins WHERE contract_id = ? ORDER BY clin_number",
            (contract_id,)
        ).fetchall()
        clins = [ContractClin.from_dict(dict(r)) for r in rows]
        return {
            "contract_id": contract_id,
            "clins": [c.to_dict() for c in clins],
            "count": len(clins),
            "totals": rollup.clin_totals(clins),
        }
    finally:
        conn.close()


def update_clin(contract_id, clin_id, data, db_path=None):
    updates = {k: v for k, v in _normalize(data).items() if k in CLIN_COLUMNS}
    updates.pop("contract_id", None)
    if not updates:
        return _error("No updatable CLIN fields provided")

    conn = _get_db(db_path)
    try:
        row = _child_row(conn, "contract_clins", clin_id, contract_id)
        if not row:
            return _error(f"CLIN {clin_id} not found", "not_found")
        merged = {**dict(row), **updates}
        errors = validate_clin_form(merged)
        if errors:
            return _error("CLIN validation failed", fields=errors)
        clin = ContractClin.from_dict(merged)
        try:
            _write(conn, "contract_clins", clin_id, _values(clin, CLIN_COLUMNS))
        except sqlite3.IntegrityError:
            return _error(f"CLIN {clin.clin_number} already exists on this contract",
                          "conflict", fields={"clin_number": "Already in use"})
        conn.commit()
        row = _child_row(conn, "contract_clins", clin_id, contract_id)
        return {"status": "updated", "clin": ContractClin.from_dict(dict(row)).to_dict()}
    finally:
        conn.close()


# ── Modifications ────────────────────────────────────────────────────────


def create_modification(contract_id, data, db_path=None):
    """Create a modification in DRAFT or PENDING (default PENDING)."""
    data = _normalize(data)
    errors = validate_modification_form(data)
    if errors:
        return _error("Modification validation failed", fields=errors)

    mod = ContractModification.from_dict({**data, "id": _uid("MOD"),
                                          "contract_id": contract_id})
    if mod.status not in _INITIAL_MOD_STATUSES:
        return _error(f"New modifications must start as DRAFT or PENDING, not "
                      f"{mod.status.value}", fields={"status": "Not allowed on create"})

    conn = _get_db(db_path)
    try:
        if not _contract_row(conn, contract_id):
            return _contract_missing(contract_id)
        try:
            _insert(conn, "contract_modifications", mod.id,
                    _values(mod, MODIFICATION_COLUMNS))
        except sqlite3.IntegrityError:
            return _error(f"Modification {mod.modification_number} already exists",
                          "conflict", fields={"modification_number": "Already in use"})
        conn.commit()
        row = _child_row(conn, "contract_modifications", mod.id, contract_id)
        return {"status": "created",
                "modification": ContractModification.from_dict(dict(row)).to_dict()}
    finally:
        conn.close()


def list_modifications(contract_id, db_path=None):
    conn = _get_db(db_path)
    try:
        if not _contract_row(conn, contract_id):
            return _contract_missing(contract_id)
        rows = conn.execute(
            "SELECT * FROM contract_modifications WHERE contract_id = ? "
            "ORDER BY modification_number",
            (contract_id,)
        ).fetchall()
        mods = [ContractModification.from_dict(dict(r)) for r in rows]
        return {
            "contract_id": contract_id,
            "modifications": [m.to_dict() for m in mods],
            "count": len(mods),
            "executed_value_change": rollup.modification_value_delta(mods),
            "executed_funding_change": rollup.modification_funding_delta(mods),
        }
    finally:
        conn.close()


def update_modification_status(contract_id, modification_id, status, db_path=None):
    """Move a modification along its status machine.

    A move to EXECUTED is routed through ``execute_modification`` so the
    contract rollup is applied.
    """
    try:
        target = ModificationStatus(str(status).upper())
    except ValueError:
        valid = [s.value for s in ModificationStatus]
        return _error(f"Invalid status. Must be one of: {valid}",
                      fields={"status": f"Unknown value: {status}"})
    if target == ModificationStatus.EXECUTED:
        return execute_modification(contract_id, modification_id, db_path=db_path)

    conn = _get_db(db_path)
    try:
        _begin_write(conn)
        row = _child_row(conn, "contract_modifications", modification_id, contract_id)
        if not row:
            conn.rollback()
            return _error(f"Modification {modification_id} not found", "not_found")
        try:
            check_transition(row["status"], target)
        except InvalidTransitionError as exc:
            conn.rollback()
            return _error(str(exc), "conflict", current_status=row["status"])

        _write(conn, "contract_modifications", modification_id, {"status": target.value})
        conn.commit()
        row = _child_row(conn, "contract_modifications", modification_id, contract_id)
        return {"status": "updated",
                "modification": ContractModification.from_dict(dict(row)).to_dict()}
    finally:
        conn.close()


def execute_modification(contract_id, modification_id, db_path=None):
    """Execute an APPROVED modification and roll its deltas into the contract."""
    conn = _get_db(db_path)
    try:
        # Gate check and contract totals are read under the write lock so
        # concurrent executions serialize instead of overwriting each other.
        _begin_write(conn)
        row = _child_row(conn, "contract_modifications", modification_id, contract_id)
        if not row:
            conn.rollback()
            return _error(f"Modification {modification_id} not found", "not_found")
        mod = ContractModification.from_dict(dict(row))
        if not can_execute(mod):
            conn.rollback()
            return _error(
                f"Modification {mod.modification_number} is {mod.status.value}; "
                f"only APPROVED modifications can be executed",
                "conflict", current_status=mod.status.value)

        contract = Contract.from_dict(dict(_contract_row(conn, contract_id)))
        changes = {k: _iso(v) for k, v in execution_changes(contract, mod).items()}

        _write(conn, "contracts", contract_id, changes)
        _write(conn, "contract_modifications", modification_id, {
            "status": ModificationStatus.EXECUTED.value,
            "executed_date": _today().isoformat(),
        })
        conn.commit()
        logger.info("Executed modification %s on contract %s: %s",
                    mod.modification_number, contract.contract_number, changes or "no changes")

        mod_row = _child_row(conn, "contract_modifications", modification_id, contract_id)
        return {
            "status": "executed",
            "modification": ContractModification.from_dict(dict(mod_row)).to_dict(),
            "contract": Contract.from_dict(dict(_contract_row(conn, contract_id))).to_dict(),
            "changes": changes,
        }
    finally:
        conn.close()


# ── Options ──────────────────────────────────────────────────────────────


def add_option(contract_id, data, db_path=None):
    data = _normalize(data)
    errors = validate_option_form(data)
    if errors:
        return _error("Option validation failed", fields=errors)

    option = ContractOption.from_dict({**data, "id": _uid("OPT"), "contract_id": contract_id})
    option.option_number = int(float(option.option_number))
    conn = _get_db(db_path)
    try:
        if not _contract_row(conn, contract_id):
            return _contract_missing(contract_id)
        try:
            _insert(conn, "contract_options", option.id, _values(option, OPTION_COLUMNS))
        except sqlite3.IntegrityError:
            return _error(f"Option {option.option_number} already exists",
                          "conflict", fields={"option_number": "Already in use"})
        conn.commit()
        row = _child_row(conn, "contract_options", option.id, contract_id)
        return {"status": "created", "option": ContractOption.from_dict(dict(row)).to_dict()}
    finally:
        conn.close()


def list_options(contract_id, db_path=None):
    window = int(load_config()["tracking"].get("option_deadline_days", 30))
    conn = _get_db(db_path)
    try:
        if not _contract_row(conn, contract_id):
            return _contract_missing(contract_id)
        rows = conn.execute(
            "SELECT * FROM contract_options WHERE contract_id = ? ORDER BY option_number",
            (contract_id,)
        ).fetchall()
        options = [ContractOption.from_dict(dict(r)) for r in rows]
        items = []
        for opt in options:
            item = opt.to_dict()
            item["is_deadline_approaching"] = rollup.is_option_deadline_approaching(
                opt, window_days=window)
            items.append(item)
        return {
            "contract_id": contract_id,
            "options": items,
            "count": len(items),
            "pending_option_value": rollup.pending_option_value(options),
        }
    finally:
        conn.close()


def exercise_option(contract_id, option_id, modification_number=None, db_path=None):
    """Exercise a PENDING option: extend the PoP and add its value to the contract."""
    conn = _get_db(db_path)
    try:
        _begin_write(conn)
        row = _child_row(conn, "contract_options", option_id, contract_id)
        if not row:
            conn.rollback()
            return _error(f"Option {option_id} not found", "not_found")
        option = ContractOption.from_dict(dict(row))
        if option.status != OptionStatus.PENDING:
            conn.rollback()
            return _error(f"Option {option.option_number} is {option.status.value}; "
                          f"only PENDING options can be exercised",
                          "conflict", current_status=option.status.value)

        contract = Contract.from_dict(dict(_contract_row(conn, contract_id)))
        changes = {}
        if option.end_date and (contract.pop_end_date is None
                                or option.end_date > contract.pop_end_date):
            changes["pop_end_date"] = option.end_date.isoformat()
        if option.option_value:
            changes["total_value"] = (rollup.coalesce_amount(contract.total_value)
                                      + option.option_value)

        _write(conn, "contracts", contract_id, changes)
        _write(conn, "contract_options", option_id, {
            "status": OptionStatus.EXERCISED.value,
            "exercised_date": _today().isoformat(),
            "exercise_modification_number": modification_number,
        })
        conn.commit()
        logger.info("Exercised option %s on contract %s", option.option_number,
                    contract.contract_number)

        opt_row = _child_row(conn, "contract_options", option_id, contract_id)
        return {
            "status": "exercised",
            "option": ContractOption.from_dict(dict(opt_row)).to_dict(),
            "contract": Contract.from_dict(dict(_contract_row(conn, contract_id))).to_dict(),
            "changes": changes,
        }
    finally:
        conn.close()


# ── Deliverables ─────────────────────────────────────────────────────────


def add_deliverable(contract_id, data, db_path=None):
    data = _normalize(data)
    errors = validate_deliverable_form(data)
    if errors:
        return _error("Deliverable validation failed", fields=errors)

    deliverable = ContractDeliverable.from_dict(
        {**data, "id": _uid("DLV"), "contract_id": contract_id})
    conn = _get_db(db_path)
    try:
        if not _contract_row(conn, contract_id):
            return _contract_missing(contract_id)
        if deliverable.clin_id and not _child_row(conn, "contract_clins",
                                                  deliverable.clin_id, contract_id):
            return _error(f"CLIN {deliverable.clin_id} not found on this contract",
                          fields={"clin_id": "Unknown CLIN"})
        _insert(conn, "contract_deliverables", deliverable.id,
                _values(deliverable, DELIVERABLE_COLUMNS))
        conn.commit()
        row = conn.execute(_DELIVERABLE_SELECT + "WHERE d.id = ?",
                           (deliverable.id,)).fetchone()
        return {"status": "created",
                "deliverable": ContractDeliverable.from_dict(dict(row)).to_dict()}
    finally:
        conn.close()


def list_deliverables(contract_id, db_path=None):
    """Deliverables with is_overdue / is_due_soon / days_until_due flags."""
    window = int(load_config()["tracking"].get("due_soon_days",
                                               deliverable_tracker.DEFAULT_DUE_SOON_DAYS))
    today = _today()
    conn = _get_db(db_path)
    try:
        if not _contract_row(conn, contract_id):
            return _contract_missing(contract_id)
        rows = conn.execute(
            _DELIVERABLE_SELECT + "WHERE d.contract_id = ? "
            "ORDER BY d.due_date IS NULL, d.due_date, d.created_at",
            (contract_id,)
        ).fetchall()
        items = [ContractDeliverable.from_dict(dict(r)) for r in rows]
        return {
            "contract_id": contract_id,
            "deliverables": [deliverable_tracker.annotate(d, today, window) for d in items],
            "count": len(items),
            "counts": deliverable_tracker.summary_counts(items, today, window),
        }
    finally:
        conn.close()


def update_deliverable_status(contract_id, deliverable_id, status, review_comments=None,
                              db_path=None):
    """Set a deliverable's status, stamping submitted/accepted dates once."""
    try:
        target = DeliverableStatus(str(status).upper())
    except ValueError:
        valid = [s.value for s in DeliverableStatus]
        return _error(f"Invalid status. Must be one of: {valid}",
                      fields={"status": f"Unknown value: {status}"})

    conn = _get_db(db_path)
    try:
        row = _child_row(conn, "contract_deliverables", deliverable_id, contract_id)
        if not row:
            return _error(f"Deliverable {deliverable_id} not found", "not_found")

        updates = {"status": target.value}
        if target == DeliverableStatus.SUBMITTED and not row["submitted_date"]:
            updates["submitted_date"] = _today().isoformat()
        if target == DeliverableStatus.ACCEPTED and not row["accepted_date"]:
            updates["accepted_date"] = _today().isoformat()
        if review_comments is not None:
            updates["review_comments"] = review_comments

        _write(conn, "contract_deliverables", deliverable_id, updates)
        conn.commit()
        row = conn.execute(_DELIVERABLE_SELECT + "WHERE d.id = ?",
                           (deliverable_id,)).fetchone()
        return {"status": "updated",
                "deliverable": ContractDeliverable.from_dict(dict(row)).to_dict()}
    finally:
        conn.close()


# ── Rollups ──────────────────────────────────────────────────────────────


def get_contract_summary(contract_id, today=None, db_path=None):
    conn = _get_db(db_path)
    try:
        records = _load_records(conn, contract_id)
    finally:
        conn.close()
    if records is None:
        return _contract_missing(contract_id)
    summary = rollup.build_contract_summary(
        records["contract"],
        clins=records["clins"],
        modifications=records["modifications"],
        options=records["options"],
        deliverables=records["deliverables"],
        today=today,
    )
    return {"summary": summary.to_dict()}


def expiring_contracts(days=None, today=None, db_path=None):
    """ACTIVE contracts whose PoP ends within ``days`` (default from config)."""
    if days is None:
        days = int(load_config()["tracking"].get("expiring_contract_days", 90))
    today = today or _today()
    horizon = today + timedelta(days=days)
    conn = _get_db(db_path)
    try:
        rows = conn.execute(
            "SELECT * FROM contracts WHERE status = ? "
            "AND pop_end_date IS NOT NULL AND pop_end_date >= ? AND pop_end_date <= ? "
            "ORDER BY pop_end_date",
            (ContractStatus.ACTIVE.value, today.isoformat(), horizon.isoformat())
        ).fetchall()
    finally:
        conn.close()
    contracts = []
    for r in rows:
        contract = Contract.from_dict(dict(r))
        item = contract.to_dict()
        item["days_remaining"] = (contract.pop_end_date - today).days
        contracts.append(item)
    return {"contracts": contracts, "count": len(contracts), "window_days": days}


def overdue_deliverables(today=None, db_path=None):
    """Overdue deliverables across every contract, oldest due date first."""
    today = today or _today()
    conn = _get_db(db_path)
    try:
        rows = conn.execute(
            "SELECT d.*, cl.clin_number AS clin_number, "
            "c.contract_number AS contract_number "
            "FROM contract_deliverables d "
            "JOIN contracts c ON d.contract_id = c.id "
            "LEFT JOIN contract_clins cl ON d.clin_id = cl.id "
            "WHERE d.due_date IS NOT NULL AND d.due_date < ? ORDER BY d.due_date",
            (today.isoformat(),)
        ).fetchall()
    finally:
        conn.close()
    items = []
    for r in rows:
        deliverable = ContractDeliverable.from_dict(dict(r))
        if not deliverable_tracker.is_overdue(deliverable, today=today):
            continue
        item = deliverable_tracker.annotate(deliverable, today)
        item["contract_number"] = r["contract_number"]
        items.append(item)
    return {"deliverables": items, "count": len(items), "checked_at": _now()}


def contract_dashboard_data(today=None, db_path=None):
    """Aggregate stats for dashboard home card."""
    conn = _get_db(db_path)
    try:
        ids = [r["id"] for r in conn.execute("SELECT id FROM contracts").fetchall()]
        active = conn.execute(
            "SELECT COUNT(*) as cnt FROM contracts WHERE status = ?",
            (ContractStatus.ACTIVE.value,)
        ).fetchone()["cnt"]
        summaries = []
        for contract_id in ids:
            records = _load_records(conn, contract_id)
            summaries.append(rollup.build_contract_summary(
                records["contract"],
                clins=records["clins"],
                modifications=records["modifications"],
                options=records["options"],
                deliverables=records["deliverables"],
                today=today,
            ))
    finally:
        conn.close()

    result = rollup.portfolio_totals(summaries)
    result["active_contracts"] = active
    result["expiring_contracts"] = expiring_contracts(today=today, db_path=db_path)["count"]
    return result


# ── CLI ──────────────────────────────────────────────────────────────────

if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Contract system of record")

    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--create", action="store_true", help="Create a contract")
    group.add_argument("--get", action="store_true", help="Get contract")
    group.add_argument("--list", action="store_true", help="List contracts")
    group.add_argument("--summary", action="store_true", help="Contract rollup summary")
    group.add_argument("--add-clin", action="store_true", help="Add a CLIN")
    group.add_argument("--list-clins", action="store_true", help="List CLINs")
    group.add_argument("--create-mod", action="store_true", help="Create a modification")
    group.add_argument("--list-mods", action="store_true", help="List modifications")
    group.add_argument("--mod-status", action="store_true", help="Change modification status")
    group.add_argument("--execute-mod", action="store_true",
                       help="Execute an APPROVED modification")
    group.add_argument("--exercise-option", action="store_true", help="Exercise an option")
    group.add_argument("--add-deliverable", action="store_true", help="Add a deliverable")
    group.add_argument("--deliverable-status", action="store_true",
                       help="Change deliverable status")
    group.add_argument("--expiring", action="store_true", help="Contracts expiring soon")
    group.add_argument("--check-overdue", action="store_true", help="Overdue deliverables")
    group.add_argument("--dashboard", action="store_true", help="Dashboard aggregate data")

    parser.add_argument("--contract-id", help="Contract ID")
    parser.add_argument("--contract-number", help="Contract number")
    parser.add_argument("--title", help="Contract or deliverable title")
    parser.add_argument("--contract-type", default="OTHER", help="ContractType value")
    parser.add_argument("--total-value", help="Total value (contract or CLIN)")
    parser.add_argument("--funded-value", help="Funded value / CLIN funded amount")
    parser.add_argument("--invoiced", help="CLIN invoiced amount")
    parser.add_argument("--pop-start", help="Period of Performance start (YYYY-MM-DD)")
    parser.add_argument("--pop-end", help="Period of Performance end (YYYY-MM-DD)")
    parser.add_argument("--clin-number", help="CLIN number")
    parser.add_argument("--clin-type", default="BASE", help="ClinType value")
    parser.add_argument("--mod-id", help="Modification ID")
    parser.add_argument("--mod-number", help="Modification number")
    parser.add_argument("--mod-type", default="OTHER", help="ModificationType value")
    parser.add_argument("--value-change", help="Modification value change")
    parser.add_argument("--funding-change", help="Modification funding change")
    parser.add_argument("--option-id", help="Option ID")
    parser.add_argument("--deliverable-id", help="Deliverable ID")
    parser.add_argument("--due-date", help="Deliverable due date (YYYY-MM-DD)")
    parser.add_argument("--status", help="Status value")
    parser.add_argument("--q", help="Search text for --list")
    parser.add_argument("--days", type=int, help="Window in days for --expiring")
    parser.add_argument("--db-path", help="Override database path")
    parser.add_argument("--json", action="store_true", help="JSON output")

    args = parser.parse_args()

    def _require(*names):
        missing = [n for n in names if not getattr(args, n)]
        if missing:
            flags = ", ".join("--" + n.replace("_", "-") for n in missing)
            print(f"ERROR: {flags} required")
            sys.exit(1)

    result = {}

    if args.create:
        _require("contract_number", "title")
        result = create_contract({
            "contract_number": args.contract_number, "title": args.title,
            "contract_type": args.contract_type, "total_value": args.total_value,
            "funded_value": args.funded_value, "pop_start_date": args.pop_start,
            "pop_end_date": args.pop_end, "status": args.status,
        }, db_path=args.db_path)
    elif args.get:
        _require("contract_id")
        result = get_contract(args.contract_id, db_path=args.db_path)
    elif args.list:
        result = list_contracts(status=args.status, q=args.q, db_path=args.db_path)
    elif args.summary:
        _require("contract_id")
        result = get_contract_summary(args.contract_id, db_path=args.db_path)
    elif args.add_clin:
        _require("contract_id", "clin_number")
        result = add_clin(args.contract_id, {
            "clin_number": args.clin_number, "clin_type": args.clin_type,
            "total_value": args.total_value, "funded_amount": args.funded_value,
            "invoiced_amount": args.invoiced,
        }, db_path=args.db_path)
    elif args.list_clins:
        _require("contract_id")
        result = list_clins(args.contract_id, db_path=args.db_path)
    elif args.create_mod:
        _require("contract_id", "mod_number")
        result = create_modification(args.contract_id, {
            "modification_number": args.mod_number, "modification_type": args.mod_type,
            "value_change": args.value_change, "funding_change": args.funding_change,
            "status": args.status,
        }, db_path=args.db_path)
    elif args.list_mods:
        _require("contract_id")
        result = list_modifications(args.contract_id, db_path=args.db_path)
    elif args.mod_status:
        _require("contract_id", "mod_id", "status")
        result = update_modification_status(args.contract_id, args.mod_id, args.status,
                                             db_path=args.db_path)
    elif args.execute_mod:
        _require("contract_id", "mod_id")
        result = execute_modification(args.contract_id, args.mod_id, db_path=args.db_path)
    elif args.exercise_option:
        _require("contract_id", "option_id")
        result = exercise_option(args.contract_id, args.option_id,
                                 modification_number=args.mod_number, db_path=args.db_path)
    elif args.add_deliverable:
        _require("contract_id", "title")
        result = add_deliverable(args.contract_id, {
            "title": args.title, "due_date": args.due_date, "status": args.status,
        }, db_path=args.db_path)
    elif args.deliverable_status:
        _require("contract_id", "deliverable_id", "status")
        result = update_deliverable_status(args.contract_id, args.deliverable_id,
                                           args.status, db_path=args.db_path)
    elif args.expiring:
        result = expiring_contracts(days=args.days, db_path=args.db_path)
    elif args.check_overdue:
        result = overdue_deliverables(db_path=args.db_path)
    elif args.dashboard:
        result = contract_dashboard_data(db_path=args.db_path)

    if args.json:
        print(json.dumps(result, indent=2, default=str))
    elif "error" in result:
        print(f"ERROR: {result['error']}")
        for field_name, message in result.get("fields", {}).items():
            print(f"  {field_name}: {message}")
    elif "contracts" in result:
        print(f"Contracts: {result['count']}")
        for c in result["contracts"]:
            print(f"  [{c['status']}] {c['contract_number']} — {(c['title'] or '')[:50]}")
    elif "summary" in result:
        s = result["summary"]
        print(f"{s['contract_number']}: {s['title']}")
        print(f"  Funded:   {s['funding_percentage']:.1f}% of total value")
        print(f"  Burn:     {s['burn_rate']:.1f}% of CLIN funding")
        print(f"  Remaining ${s['remaining_funds']:,.0f}")
        print(f"  Pending mods: {s['pending_modifications']}  "
              f"Overdue deliverables: {s['overdue_deliverables']}")
    elif "deliverables" in result:
        print(f"Deliverables: {result['count']}")
        for d in result["deliverables"]:
            flag = "OVERDUE" if d.get("is_overdue") else d["status"]
            print(f"  [{flag}] {d.get('due_date') or 'no date'} {d['title'][:60]}")
    else:
        print(json.dumps(result, indent=2, default=str))
