#!/usr/bin/env python3
# CUI // SP-PROPIN
# Controlled by: Contract Rollup Portal
# CUI Category: PROPIN (Proprietary Business Information)
# Distribution: D
# POC: Contract Rollup System Administrator
"""Form input validation for contracts, CLINs, modifications, deliverables.

Each validator takes the raw submitted mapping (snake_case or camelCase
keys) and returns ``{field: message}``. An empty dict means the input is
valid. Validators never raise; callers surface the messages next to the
offending field and keep the form open.
"""

from typing import Dict, Iterable

from tools.contracts.contract_types import (
    ClinType,
    ContractStatus,
    ContractType,
    DeliverableFrequency,
    DeliverableStatus,
    DeliverableType,
    ModificationStatus,
    ModificationType,
    OptionStatus,
    PricingType,
    parse_amount,
    parse_date,
    to_snake,
)


def _normalize(data) -> dict:
    return {(to_snake(k) if any(c.isupper() for c in k) else k): v
            for k, v in dict(data or {}).items()}


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _check_required(data: dict, names: Iterable[str], errors: Dict[str, str]):
    for name in names:
        if _blank(data.get(name)):
            errors[name] = "This field is required"


def _check_numeric(data: dict, names: Iterable[str], errors: Dict[str, str]):
    for name in names:
        if name in errors or _blank(data.get(name)):
            continue
        try:
            parse_amount(data.get(name))
        except (TypeError, ValueError):
            errors[name] = "Must be a number"


def _check_integer(data: dict, names: Iterable[str], errors: Dict[str, str]):
    for name in names:
        value = data.get(name)
        if _blank(value) or name in errors:
            continue
        try:
            if isinstance(value, bool) or float(value) != int(float(value)):
                raise ValueError(value)
        except (TypeError, ValueError, OverflowError):
            errors[name] = "Must be a whole number"


def _check_enum(data: dict, enums: Dict[str, type], errors: Dict[str, str]):
    for name, enum_cls in enums.items():
        value = data.get(name)
        if _blank(value) or name in errors:
            continue
        try:
            enum_cls(str(value).upper())
        except ValueError:
            errors[name] = f"Unknown value: {value}"


def _check_dates(data: dict, names: Iterable[str], errors: Dict[str, str]):
    for name in names:
        value = data.get(name)
        if _blank(value) or name in errors:
            continue
        if parse_date(value) is None:
            errors[name] = "Must be a date (YYYY-MM-DD)"


def validate_contract_form(data) -> Dict[str, str]:
    """Required: contract_number, title, contract_type."""
    data = _normalize(data)
    errors: Dict[str, str] = {}
    _check_required(data, ("contract_number", "title", "contract_type"), errors)
    _check_numeric(data, ("base_value", "total_value", "ceiling_value",
                          "funded_value"), errors)
    _check_enum(data, {"contract_type": ContractType,
                       "status": ContractStatus}, errors)
    _check_dates(data, ("pop_start_date", "pop_end_date", "base_period_end_date",
                        "final_option_end_date", "award_date"), errors)

    start, end = parse_date(data.get("pop_start_date")), parse_date(data.get("pop_end_date"))
    if start and end and end < start and "pop_end_date" not in errors:
        errors["pop_end_date"] = "End date must be on or after the start date"
    return errors


def validate_clin_form(data) -> Dict[str, str]:
    """Required: clin_number."""
    data = _normalize(data)
    errors: Dict[str, str] = {}
    _check_required(data, ("clin_number",), errors)
    _check_numeric(data, ("quantity", "unit_price", "total_value", "funded_amount",
                          "obligated_amount", "invoiced_amount"), errors)
    _check_integer(data, ("option_period",), errors)
    _check_enum(data, {"clin_type": ClinType, "pricing_type": PricingType}, errors)
    return errors


def validate_modification_form(data) -> Dict[str, str]:
    """Required: modification_number, modification_type."""
    data = _normalize(data)
    errors: Dict[str, str] = {}
    _check_required(data, ("modification_number", "modification_type"), errors)
    _check_numeric(data, ("value_change", "funding_change", "new_total_value"), errors)
    _check_integer(data, ("pop_extension_days",), errors)
    _check_enum(data, {"modification_type": ModificationType,
                       "status": ModificationStatus}, errors)
    _check_dates(data, ("effective_date", "new_pop_end_date"), errors)
    return errors


def validate_deliverable_form(data) -> Dict[str, str]:
    """Required: title."""
    data = _normalize(data)
    errors: Dict[str, str] = {}
    _check_required(data, ("title",), errors)
    _check_enum(data, {"deliverable_type": DeliverableType,
                       "status": DeliverableStatus,
                       "frequency": DeliverableFrequency}, errors)
    _check_dates(data, ("due_date", "next_due_date"), errors)
    return errors


def validate_option_form(data) -> Dict[str, str]:
    """Required: option_number (whole number)."""
    data = _normalize(data)
    errors: Dict[str, str] = {}
    _check_required(data, ("option_number",), errors)
    _check_integer(data, ("option_number", "option_year", "duration_months"), errors)
    _check_numeric(data, ("option_value",), errors)
    _check_enum(data, {"status": OptionStatus}, errors)
    _check_dates(data, ("start_date", "end_date", "exercise_deadline"), errors)
    return errors
