#!/usr/bin/env python3
# CUI // SP-PROPIN
# Controlled by: Contract Rollup Portal
# CUI Category: PROPIN
# Distribution: D
# POC: Contract Rollup System Administrator
"""Contract Rollup dashboard — Flask JSON API.

System of record:
    GET    /api/contracts                              — List (?status=, ?q=)
    POST   /api/contracts                              — Create
    GET    /api/contracts/<id>                         — Fetch
    PATCH  /api/contracts/<id>                         — Update
    GET    /api/contracts/<id>/summary                 — ContractSummary rollup
    GET    /api/contracts/<id>/clins                   — List CLINs
    POST   /api/contracts/<id>/clins                   — Add CLIN
    PATCH  /api/contracts/<id>/clins/<clin_id>         — Update CLIN
    GET    /api/contracts/<id>/modifications           — List modifications
    POST   /api/contracts/<id>/modifications           — Create modification
    PATCH  /api/contracts/<id>/modifications/<mid>/status  — Status transition
    POST   /api/contracts/<id>/modifications/<mid>/execute — Execute (APPROVED only, else 409)
    GET    /api/contracts/<id>/options                 — List options
    POST   /api/contracts/<id>/options                 — Add option
    POST   /api/contracts/<id>/options/<oid>/exercise  — Exercise option
    GET    /api/contracts/<id>/deliverables            — List deliverables
    POST   /api/contracts/<id>/deliverables            — Add deliverable
    PATCH  /api/contracts/<id>/deliverables/<did>/status   — Update status

Views (assembled for the contract page and home card):
    GET    /api/views/contracts/<id>   — value chart, CLIN table, tracker, timeline
    GET    /api/views/portfolio        — portfolio totals across contracts
    GET    /api/dashboard              — home card aggregate
    GET    /api/health

All JSON keys are camelCase on the wire. Errors are ``{"error", "code"}``
plus ``fields`` for validation failures (400); unknown records are 404 and
refused state changes (e.g. executing a non-APPROVED modification) are 409.

Usage:
    python tools/dashboard/app.py [--port 5001] [--debug]
"""

import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path

# ── Load .env file if present (development convenience) ──────────────────────
from dotenv import load_dotenv

_env_path = Path(__file__).resolve().parent.parent.parent / ".env"
if _env_path.exists():
    load_dotenv(_env_path, override=False)  # override=False: real env vars win

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger("contracts.dashboard")

BASE_DIR = Path(__file__).resolve().parent.parent.parent

if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from flask import Flask, jsonify, request

from tools.contracts.api_client import ContractApiError, ContractNotFoundError
from tools.contracts.config import db_path as configured_db_path
from tools.contracts.contract_loader import (
    build_contract_view,
    load_contract_bundle,
    load_portfolio,
)
from tools.contracts.contract_types import (
    Contract,
    ContractClin,
    ContractDeliverable,
    ContractModification,
    ContractOption,
    ContractSummary,
    to_camel,
)
from tools.delivery import contract_manager as store

DB_PATH = Path(configured_db_path())

# =========================================================================
# APP SETUP
# =========================================================================
app = Flask(__name__)
app.config["API_KEY"] = os.environ.get("CONTRACTS_API_KEY", "").strip()

_ERROR_STATUS = {"not_found": 404, "validation": 400, "conflict": 409}


def _db():
    return str(DB_PATH)


def _now():
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _wire(value):
    """snake_case keys -> camelCase, recursively."""
    if isinstance(value, dict):
        return {(to_camel(k) if isinstance(k, str) else k): _wire(v)
                for k, v in value.items()}
    if isinstance(value, list):
        return [_wire(v) for v in value]
    return value


def _respond(result, key=None, status=200):
    """Map a store result to a JSON response.

    Error dicts get the HTTP status matching their ``code``; otherwise
    ``result[key]`` (or the whole result) is returned.
    """
    if "error" in result:
        return jsonify(_wire(result)), _ERROR_STATUS.get(result.get("code"), 400)
    body = result[key] if key else result
    return jsonify(_wire(body)), status


def _body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else None


def _bad_body():
    return jsonify({"error": "JSON object body required", "code": "validation"}), 400


class _StoreSource:
    """Read interface of ContractApiClient served straight from the local store."""

    def __init__(self, db_path):
        self.db_path = db_path

    def _unwrap(self, result, key):
        if "error" in result:
            if result.get("code") == "not_found":
                raise ContractNotFoundError(result["error"], status_code=404, payload=result)
            raise ContractApiError(result["error"], payload=result)
        return result[key]

    def get_contract(self, contract_id):
        return Contract.from_dict(self._unwrap(
            store.get_contract(contract_id, db_path=self.db_path), "contract"))

    def list_contracts(self, status=None, q=None):
        return [Contract.from_dict(c) for c in self._unwrap(
            store.list_contracts(status=status, q=q, db_path=self.db_path), "contracts")]

    def get_summary(self, contract_id):
        return ContractSummary.from_dict(self._unwrap(
            store.get_contract_summary(contract_id, db_path=self.db_path), "summary"))

    def list_clins(self, contract_id):
        return [ContractClin.from_dict(c) for c in self._unwrap(
            store.list_clins(contract_id, db_path=self.db_path), "clins")]

    def list_modifications(self, contract_id):
        return [ContractModification.from_dict(m) for m in self._unwrap(
            store.list_modifications(contract_id, db_path=self.db_path), "modifications")]

    def list_deliverables(self, contract_id):
        return [ContractDeliverable.from_dict(d) for d in self._unwrap(
            store.list_deliverables(contract_id, db_path=self.db_path), "deliverables")]

    def list_options(self, contract_id):
        return [ContractOption.from_dict(o) for o in self._unwrap(
            store.list_options(contract_id, db_path=self.db_path), "options")]


# =========================================================================
# ERROR HANDLERS
# =========================================================================
@app.errorhandler(404)
def page_not_found(e):
    return jsonify({"error": "Not found", "code": "not_found"}), 404


@app.errorhandler(405)
def method_not_allowed(e):
    return jsonify({"error": "Method not allowed", "code": "validation"}), 405


@app.errorhandler(500)
def internal_server_error(e):
    logger.error("500 Internal Server Error: %s", e)
    return jsonify({"error": "Internal server error"}), 500


# =========================================================================
# AUTH (before_request)
# =========================================================================
@app.before_request
def _before_request():
    api_key = app.config.get("API_KEY")
    if api_key and request.path.startswith("/api/") and request.path != "/api/health":
        provided = (
            request.headers.get("X-Api-Key", "")
            or request.args.get("api_key", "")
        )
        if provided != api_key:
            return jsonify({"error": "Unauthorized. Provide X-Api-Key header."}), 401


# =========================================================================
# HEALTH
# =========================================================================
@app.route("/api/health")
def health():
    """Health check endpoint."""
    return jsonify({
        "status": "healthy",
        "service": "contract-rollup-dashboard",
        "dbPath": _db(),
        "dbExists": DB_PATH.exists(),
        "timestamp": _now(),
    })


# =========================================================================
# CONTRACTS
# =========================================================================
@app.route("/api/contracts", methods=["GET"])
def api_list_contracts():
    return _respond(store.list_contracts(status=request.args.get("status"),
                                         q=request.args.get("q"), db_path=_db()))


@app.route("/api/contracts", methods=["POST"])
def api_create_contract():
    data = _body()
    if data is None:
        return _bad_body()
    return _respond(store.create_contract(data, db_path=_db()), "contract", 201)


@app.route("/api/contracts/<contract_id>", methods=["GET"])
def api_get_contract(contract_id):
    return _respond(store.get_contract(contract_id, db_path=_db()), "contract")


@app.route("/api/contracts/<contract_id>", methods=["PATCH"])
def api_update_contract(contract_id):
    data = _body()
    if data is None:
        return _bad_body()
    return _respond(store.update_contract(contract_id, data, db_path=_db()), "contract")


@app.route("/api/contracts/<contract_id>/summary")
def api_contract_summary(contract_id):
    return _respond(store.get_contract_summary(contract_id, db_path=_db()), "summary")


# =========================================================================
# CLINS
# =========================================================================
@app.route("/api/contracts/<contract_id>/clins", methods=["GET"])
def api_list_clins(contract_id):
    return _respond(store.list_clins(contract_id, db_path=_db()))


@app.route("/api/contracts/<contract_id>/clins", methods=["POST"])
def api_add_clin(contract_id):
    data = _body()
    if data is None:
        return _bad_body()
    return _respond(store.add_clin(contract_id, data, db_path=_db()), "clin", 201)


@app.route("/api/contracts/<contract_id>/clins/<clin_id>", methods=["PATCH"])
def api_update_clin(contract_id, clin_id):
    data = _body()
    if data is None:
        return _bad_body()
    return _respond(store.update_clin(contract_id, clin_id, data, db_path=_db()), "clin")


# =========================================================================
# MODIFICATIONS
# =========================================================================
@app.route("/api/contracts/<contract_id>/modifications", methods=["GET"])
def api_list_modifications(contract_id):
    return _respond(store.list_modifications(contract_id, db_path=_db()))


@app.route("/api/contracts/<contract_id>/modifications", methods=["POST"])
def api_create_modification(contract_id):
    data = _body()
    if data is None:
        return _bad_body()
    return _respond(store.create_modification(contract_id, data, db_path=_db()),
                    "modification", 201)


@app.route("/api/contracts/<contract_id>/modifications/<mod_id>/status", methods=["PATCH"])
def api_modification_status(contract_id, mod_id):
    data = _body() or {}
    new_status = data.get("status")
    if not new_status:
        return jsonify({"error": "status required", "code": "validation",
                        "fields": {"status": "This field is required"}}), 400
    result = store.update_modification_status(contract_id, mod_id, new_status, db_path=_db())
    return _respond(result, "modification")


@app.route("/api/contracts/<contract_id>/modifications/<mod_id>/execute", methods=["POST"])
def api_execute_modification(contract_id, mod_id):
    """Execute an APPROVED modification; 409 for any other status."""
    return _respond(store.execute_modification(contract_id, mod_id, db_path=_db()))


# =========================================================================
# OPTIONS
# =========================================================================
@app.route("/api/contracts/<contract_id>/options", methods=["GET"])
def api_list_options(contract_id):
    return _respond(store.list_options(contract_id, db_path=_db()))


@app.route("/api/contracts/<contract_id>/options", methods=["POST"])
def api_add_option(contract_id):
    data = _body()
    if data is None:
        return _bad_body()
    return _respond(store.add_option(contract_id, data, db_path=_db()), "option", 201)


@app.route("/api/contracts/<contract_id>/options/<option_id>/exercise", methods=["POST"])
def api_exercise_option(contract_id, option_id):
    data = _body() or {}
    mod_number = data.get("modificationNumber") or data.get("modification_number")
    return _respond(store.exercise_option(contract_id, option_id,
                                          modification_number=mod_number, db_path=_db()))


# =========================================================================
# DELIVERABLES
# =========================================================================
@app.route("/api/contracts/<contract_id>/deliverables", methods=["GET"])
def api_list_deliverables(contract_id):
    return _respond(store.list_deliverables(contract_id, db_path=_db()))


@app.route("/api/contracts/<contract_id>/deliverables", methods=["POST"])
def api_add_deliverable(contract_id):
    data = _body()
    if data is None:
        return _bad_body()
    return _respond(store.add_deliverable(contract_id, data, db_path=_db()),
                    "deliverable", 201)


@app.route("/api/contracts/<contract_id>/deliverables/<deliverable_id>/status",
           methods=["PATCH"])
def api_deliverable_status(contract_id, deliverable_id):
    data = _body() or {}
    new_status = data.get("status")
    if not new_status:
        return jsonify({"error": "status required", "code": "validation",
                        "fields": {"status": "This field is required"}}), 400
    comments = data.get("reviewComments", data.get("review_comments"))
    result = store.update_deliverable_status(contract_id, deliverable_id, new_status,
                                             review_comments=comments, db_path=_db())
    return _respond(result, "deliverable")


# =========================================================================
# VIEWS
# =========================================================================
@app.route("/api/views/contracts/<contract_id>")
def api_contract_view(contract_id):
    """Everything the contract page renders, with failed sub-fetches named."""
    try:
        bundle = load_contract_bundle(_StoreSource(_db()), contract_id)
    except ContractNotFoundError as exc:
        return jsonify({"error": str(exc), "code": "not_found"}), 404
    except ContractApiError as exc:
        logger.error("Contract view %s failed: %s", contract_id, exc)
        return jsonify({"error": str(exc)}), 502
    return jsonify(_wire(build_contract_view(bundle)))


@app.route("/api/views/portfolio")
def api_portfolio_view():
    try:
        result = load_portfolio(_StoreSource(_db()), status=request.args.get("status"))
    except ContractApiError as exc:
        logger.error("Portfolio view failed: %s", exc)
        return jsonify({"error": str(exc)}), 502
    return jsonify(_wire(result))


@app.route("/api/dashboard")
def api_dashboard():
    return _respond(store.contract_dashboard_data(db_path=_db()))


# =========================================================================
# MAIN
# =========================================================================
if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Contract Rollup Dashboard")
    parser.add_argument("--port", type=int, default=5001)
    parser.add_argument("--debug", action="store_true")
    parser.add_argument("--host", default="127.0.0.1")
    args = parser.parse_args()

    print(f"Contract Rollup Dashboard starting on http://{args.host}:{args.port}")
    print(f"Database: {DB_PATH}")
    app.run(host=args.host, port=args.port, debug=args.debug)
