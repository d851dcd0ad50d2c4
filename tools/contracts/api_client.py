#!/usr/bin/env python3
# CUI // SP-PROPIN
# Controlled by: Contract Rollup Portal
# CUI Category: PROPIN (Proprietary Business Information)
# Distribution: D
# POC: Contract Rollup System Administrator
"""REST client for the contracts system of record.

Wraps the ``/api/contracts`` endpoints served by ``tools.dashboard.app``
(or any backend speaking the same camelCase JSON). Responses are parsed
into the record types of ``tools.contracts.contract_types``; request
bodies are sent with camelCase keys.

Nothing here retries. A failed call raises ``ContractApiError`` and the
caller decides whether to offer a re-fetch.

Usage:
    from tools.contracts.api_client import ContractApiClient
    client = ContractApiClient()
    contract = client.get_contract("ctr-1a2b3c4d")
    clins = client.list_clins(contract.id)
"""

import logging

import requests

from tools.contracts.config import load_config
from tools.contracts.contract_types import (
    Contract,
    ContractClin,
    ContractDeliverable,
    ContractModification,
    ContractOption,
    ContractSummary,
    to_camel,
)

logger = logging.getLogger("contracts.api_client")


class ContractApiError(Exception):
    """A request to the contracts API failed (network, HTTP status, or body)."""

    def __init__(self, message, status_code=None, payload=None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload or {}

    @property
    def fields(self):
        return self.payload.get("fields") or {}


class ContractNotFoundError(ContractApiError):
    """The requested contract (or child record) does not exist."""


def _camel_body(data):
    return {to_camel(k) if "_" in k else k: v for k, v in (data or {}).items()}


class ContractApiClient:
    """Thin ``requests.Session`` wrapper around the contracts endpoints."""

    def __init__(self, base_url=None, api_key=None, timeout=None, session=None,
                 config=None):
        cfg = (config or load_config())["api"]
        self.base_url = (base_url or cfg["base_url"]).rstrip("/")
        self.timeout = timeout or cfg.get("timeout_seconds", 15)
        self._session = session or requests.Session()
        self._session.headers.update({
            "Accept": "application/json",
            "User-Agent": "Contract-Rollup-Portal/1.0",
        })
        key = api_key if api_key is not None else cfg.get("api_key")
        if key:
            self._session.headers["X-Api-Key"] = key

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _request(self, method, path, json_body=None, params=None):
        url = f"{self.base_url}{path}"
        try:
            resp = self._session.request(method, url, json=json_body, params=params,
                                         timeout=self.timeout)
        except requests.exceptions.Timeout as exc:
            raise ContractApiError(f"Request to {path} timed out after "
                                   f"{self.timeout}s") from exc
        except requests.exceptions.RequestException as exc:
            raise ContractApiError(f"Connection error on {path}: {exc}") from exc

        body, bad_json = {}, False
        if resp.content:
            try:
                body = resp.json()
            except ValueError:
                bad_json = True
        error_body = body if isinstance(body, dict) else {}

        if resp.status_code == 404:
            raise ContractNotFoundError(error_body.get("error") or f"Not found: {path}",
                                        status_code=404, payload=error_body)
        if resp.status_code >= 400:
            message = error_body.get("error") or f"HTTP {resp.status_code} on {path}"
            raise ContractApiError(message, status_code=resp.status_code,
                                   payload=error_body)
        if bad_json:
            raise ContractApiError(f"Invalid JSON response from {path}",
                                   status_code=resp.status_code)
        return body

    def _list(self, path, record_cls, key, params=None):
        body = self._request("GET", path, params=params)
        items = body.get(key, []) if isinstance(body, dict) else body
        return [record_cls.from_dict(item) for item in items or []]

    # ------------------------------------------------------------------
    # Contracts
    # ------------------------------------------------------------------

    def list_contracts(self, status=None, q=None):
        params = {k: v for k, v in (("status", status), ("q", q)) if v}
        return self._list("/api/contracts", Contract, "contracts", params=params or None)

    def get_contract(self, contract_id):
        return Contract.from_dict(self._request("GET", f"/api/contracts/{contract_id}"))

    def create_contract(self, data):
        return Contract.from_dict(self._request("POST", "/api/contracts",
                                                json_body=_camel_body(data)))

    def update_contract(self, contract_id, data):
        return Contract.from_dict(self._request("PATCH", f"/api/contracts/{contract_id}",
                                                json_body=_camel_body(data)))

    def get_summary(self, contract_id):
        return ContractSummary.from_dict(
            self._request("GET", f"/api/contracts/{contract_id}/summary"))

    # ------------------------------------------------------------------
    # CLINs
    # ------------------------------------------------------------------

    def list_clins(self, contract_id):
        return self._list(f"/api/contracts/{contract_id}/clins", ContractClin, "clins")

    def create_clin(self, contract_id, data):
        return ContractClin.from_dict(self._request(
            "POST", f"/api/contracts/{contract_id}/clins", json_body=_camel_body(data)))

    def update_clin(self, contract_id, clin_id, data):
        return ContractClin.from_dict(self._request(
            "PATCH", f"/api/contracts/{contract_id}/clins/{clin_id}",
            json_body=_camel_body(data)))

    # ------------------------------------------------------------------
    # Modifications
    # ------------------------------------------------------------------

    def list_modifications(self, contract_id):
        return self._list(f"/api/contracts/{contract_id}/modifications",
                          ContractModification, "modifications")

    def create_modification(self, contract_id, data):
        return ContractModification.from_dict(self._request(
            "POST", f"/api/contracts/{contract_id}/modifications",
            json_body=_camel_body(data)))

    def update_modification_status(self, contract_id, modification_id, status):
        return ContractModification.from_dict(self._request(
            "PATCH", f"/api/contracts/{contract_id}/modifications/{modification_id}/status",
            json_body={"status": getattr(status, "value", status)}))

    def execute_modification(self, contract_id, modification_id):
        """Execute an APPROVED modification. The server answers 409 otherwise."""
        body = self._request(
            "POST", f"/api/contracts/{contract_id}/modifications/{modification_id}/execute")
        return ContractModification.from_dict(body.get("modification", body))

    # ------------------------------------------------------------------
    # Options
    # ------------------------------------------------------------------

    def list_options(self, contract_id):
        return self._list(f"/api/contracts/{contract_id}/options", ContractOption, "options")

    def create_option(self, contract_id, data):
        return ContractOption.from_dict(self._request(
            "POST", f"/api/contracts/{contract_id}/options", json_body=_camel_body(data)))

    def exercise_option(self, contract_id, option_id, modification_number=None):
        body = self._request(
            "POST", f"/api/contracts/{contract_id}/options/{option_id}/exercise",
            json_body={"modificationNumber": modification_number})
        return ContractOption.from_dict(body.get("option", body))

    # ------------------------------------------------------------------
    # Deliverables
    # ------------------------------------------------------------------

    def list_deliverables(self, contract_id):
        return self._list(f"/api/contracts/{contract_id}/deliverables",
                          ContractDeliverable, "deliverables")

    def create_deliverable(self, contract_id, data):
        return ContractDeliverable.from_dict(self._request(
            "POST", f"/api/contracts/{contract_id}/deliverables",
            json_body=_camel_body(data)))

    def update_deliverable_status(self, contract_id, deliverable_id, status):
        return ContractDeliverable.from_dict(self._request(
            "PATCH", f"/api/contracts/{contract_id}/deliverables/{deliverable_id}/status",
            json_body={"status": getattr(status, "value", status)}))
