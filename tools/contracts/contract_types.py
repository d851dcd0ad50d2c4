#!/usr/bin/env python3
# CUI // SP-PROPIN
# Controlled by: Contract Rollup Portal
# CUI Category: PROPIN (Proprietary Business Information)
# Distribution: D
# POC: Contract Rollup System Administrator
"""Contract domain model — enums and record shapes.

Records are built from either SQLite rows (snake_case keys) or REST
payloads (camelCase keys) via ``from_dict`` and serialized back with
``to_dict(camel=True)`` for the wire. Nullable numeric and date fields
stay ``None``; zero-defaulting happens only in ``tools.contracts.rollup``.

Record types:
    Contract, ContractClin, ContractModification, ContractDeliverable,
    ContractOption, ContractSummary
"""

import math
import re
from dataclasses import dataclass, field, fields
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional


# =========================================================================
# ENUMS
# =========================================================================
class ContractType(str, Enum):
    FIRM_FIXED_PRICE = "FIRM_FIXED_PRICE"
    TIME_AND_MATERIALS = "TIME_AND_MATERIALS"
    COST_PLUS_FIXED_FEE = "COST_PLUS_FIXED_FEE"
    COST_PLUS_INCENTIVE_FEE = "COST_PLUS_INCENTIVE_FEE"
    COST_PLUS_AWARD_FEE = "COST_PLUS_AWARD_FEE"
    COST_REIMBURSEMENT = "COST_REIMBURSEMENT"
    INDEFINITE_DELIVERY = "INDEFINITE_DELIVERY"
    BLANKET_PURCHASE_AGREEMENT = "BLANKET_PURCHASE_AGREEMENT"
    BASIC_ORDERING_AGREEMENT = "BASIC_ORDERING_AGREEMENT"
    TASK_ORDER = "TASK_ORDER"
    DELIVERY_ORDER = "DELIVERY_ORDER"
    GRANT = "GRANT"
    COOPERATIVE_AGREEMENT = "COOPERATIVE_AGREEMENT"
    OTHER = "OTHER"


class ContractStatus(str, Enum):
    DRAFT = "DRAFT"
    AWARDED = "AWARDED"
    PENDING_SIGNATURE = "PENDING_SIGNATURE"
    ACTIVE = "ACTIVE"
    ON_HOLD = "ON_HOLD"
    COMPLETED = "COMPLETED"
    TERMINATED = "TERMINATED"
    CANCELLED = "CANCELLED"
    CLOSED = "CLOSED"


class ClinType(str, Enum):
    BASE = "BASE"
    OPTION = "OPTION"
    DATA = "DATA"
    SERVICES = "SERVICES"
    SUPPLIES = "SUPPLIES"
    OTHER = "OTHER"


class PricingType(str, Enum):
    FIRM_FIXED_PRICE = "FIRM_FIXED_PRICE"
    TIME_AND_MATERIALS = "TIME_AND_MATERIALS"
    LABOR_HOUR = "LABOR_HOUR"
    COST_PLUS_FIXED_FEE = "COST_PLUS_FIXED_FEE"
    COST_PLUS_INCENTIVE_FEE = "COST_PLUS_INCENTIVE_FEE"
    COST_REIMBURSEMENT = "COST_REIMBURSEMENT"


class ModificationType(str, Enum):
    ADMINISTRATIVE = "ADMINISTRATIVE"
    BILATERAL = "BILATERAL"
    UNILATERAL = "UNILATERAL"
    SUPPLEMENTAL = "SUPPLEMENTAL"
    INCREMENTAL_FUNDING = "INCREMENTAL_FUNDING"
    NO_COST_EXTENSION = "NO_COST_EXTENSION"
    OPTION_EXERCISE = "OPTION_EXERCISE"
    TERMINATION = "TERMINATION"
    SCOPE_CHANGE = "SCOPE_CHANGE"
    OTHER = "OTHER"


class ModificationStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    UNDER_REVIEW = "UNDER_REVIEW"
    APPROVED = "APPROVED"
    EXECUTED = "EXECUTED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class DeliverableType(str, Enum):
    REPORT = "REPORT"
    DATA = "DATA"
    SOFTWARE = "SOFTWARE"
    DOCUMENTATION = "DOCUMENTATION"
    HARDWARE = "HARDWARE"
    SERVICES = "SERVICES"
    MILESTONE = "MILESTONE"
    STATUS_REPORT = "STATUS_REPORT"
    FINANCIAL_REPORT = "FINANCIAL_REPORT"
    TECHNICAL_REPORT = "TECHNICAL_REPORT"
    OTHER = "OTHER"


class DeliverableStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    SUBMITTED = "SUBMITTED"
    UNDER_REVIEW = "UNDER_REVIEW"
    REVISION_REQUIRED = "REVISION_REQUIRED"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    WAIVED = "WAIVED"


class DeliverableFrequency(str, Enum):
    ONE_TIME = "ONE_TIME"
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    BI_WEEKLY = "BI_WEEKLY"
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    SEMI_ANNUALLY = "SEMI_ANNUALLY"
    ANNUALLY = "ANNUALLY"
    AS_REQUIRED = "AS_REQUIRED"


class OptionStatus(str, Enum):
    PENDING = "PENDING"
    EXERCISED = "EXERCISED"
    DECLINED = "DECLINED"
    EXPIRED = "EXPIRED"


# =========================================================================
# KEY / VALUE HELPERS
# =========================================================================
_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def to_snake(name: str) -> str:
    return _CAMEL_RE.sub("_", name).lower()


def to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def parse_date(value) -> Optional[date]:
    """Parse an ISO date (or datetime) string; None for empty or bad input."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value)[:10], "%Y-%m-%d").date()
    except ValueError:
        return None


def parse_amount(value) -> Optional[float]:
    """Parse a nullable monetary amount. Raises ValueError on non-numeric or non-finite input."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError(f"Not a numeric amount: {value!r}")
    amount = float(value)
    if not math.isfinite(amount):
        raise ValueError(f"Not a finite amount: {value!r}")
    return amount


def _coerce_enum(enum_cls, value):
    if value is None or value == "":
        return None
    if isinstance(value, enum_cls):
        return value
    return enum_cls(str(value).upper())


# =========================================================================
# RECORD BASE
# =========================================================================
class _Record:
    """Mixin giving dataclasses dict/wire conversion."""

    _enums: Dict[str, type] = {}
    _dates: tuple = ()
    _amounts: tuple = ()
    _bools: tuple = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        """Build a record from a snake_case row or a camelCase payload.

        Unknown keys are ignored. Enum values are validated (ValueError on
        an unknown member); dates are parsed leniently.
        """
        if data is None:
            raise ValueError(f"Cannot build {cls.__name__} from None")
        normalized = {}
        for key, value in dict(data).items():
            normalized[to_snake(key) if any(c.isupper() for c in key) else key] = value

        kwargs = {}
        for f in fields(cls):
            if f.name not in normalized:
                continue
            value = normalized[f.name]
            if f.name in cls._enums:
                value = _coerce_enum(cls._enums[f.name], value)
                if value is None:
                    continue
            elif f.name in cls._dates:
                value = parse_date(value)
            elif f.name in cls._amounts:
                value = parse_amount(value)
            elif f.name in cls._bools:
                value = bool(value) if value is not None else False
            kwargs[f.name] = value
        return cls(**kwargs)

    def to_dict(self, camel: bool = False) -> Dict[str, Any]:
        out = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, date):
                value = value.isoformat()
            out[to_camel(f.name) if camel else f.name] = value
        return out


# =========================================================================
# RECORDS
# =========================================================================
@dataclass
class Contract(_Record):
    id: str
    contract_number: str
    title: str = ""
    contract_type: ContractType = ContractType.OTHER
    status: ContractStatus = ContractStatus.DRAFT
    description: Optional[str] = None
    parent_contract_id: Optional[str] = None
    opportunity_id: Optional[str] = None
    agency: Optional[str] = None
    agency_code: Optional[str] = None
    sub_agency: Optional[str] = None
    office: Optional[str] = None
    pop_start_date: Optional[date] = None
    pop_end_date: Optional[date] = None
    base_period_end_date: Optional[date] = None
    final_option_end_date: Optional[date] = None
    base_value: Optional[float] = None
    total_value: Optional[float] = None
    ceiling_value: Optional[float] = None
    funded_value: Optional[float] = None
    naics_code: Optional[str] = None
    psc_code: Optional[str] = None
    place_of_performance_city: Optional[str] = None
    place_of_performance_state: Optional[str] = None
    place_of_performance_country: Optional[str] = None
    contracting_officer_name: Optional[str] = None
    contracting_officer_email: Optional[str] = None
    cor_name: Optional[str] = None
    cor_email: Optional[str] = None
    prime_contractor: Optional[str] = None
    is_subcontract: bool = False
    contract_vehicle: Optional[str] = None
    set_aside_type: Optional[str] = None
    requires_clearance: bool = False
    clearance_level: Optional[str] = None
    program_manager_name: Optional[str] = None
    contract_manager_name: Optional[str] = None
    award_date: Optional[date] = None
    internal_notes: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    _enums = {"contract_type": ContractType, "status": ContractStatus}
    _dates = ("pop_start_date", "pop_end_date", "base_period_end_date",
              "final_option_end_date", "award_date")
    _amounts = ("base_value", "total_value", "ceiling_value", "funded_value")
    _bools = ("is_subcontract", "requires_clearance")


@dataclass
class ContractClin(_Record):
    id: str
    clin_number: str
    clin_type: ClinType = ClinType.BASE
    contract_id: Optional[str] = None
    description: Optional[str] = None
    pricing_type: Optional[PricingType] = None
    unit_of_issue: Optional[str] = None
    quantity: Optional[float] = None
    unit_price: Optional[float] = None
    total_value: Optional[float] = None
    funded_amount: Optional[float] = None
    obligated_amount: Optional[float] = None
    invoiced_amount: Optional[float] = None
    remaining_funds: Optional[float] = None
    naics_code: Optional[str] = None
    psc_code: Optional[str] = None
    is_option: bool = False
    option_period: Optional[int] = None
    notes: Optional[str] = None

    _enums = {"clin_type": ClinType, "pricing_type": PricingType}
    _amounts = ("quantity", "unit_price", "total_value", "funded_amount",
                "obligated_amount", "invoiced_amount", "remaining_funds")
    _bools = ("is_option",)

    def __post_init__(self):
        # remaining = funded - invoiced when the source leaves it out
        if self.remaining_funds is None and (
                self.funded_amount is not None or self.invoiced_amount is not None):
            self.remaining_funds = (self.funded_amount or 0.0) - (self.invoiced_amount or 0.0)


@dataclass
class ContractModification(_Record):
    id: str
    modification_number: str
    modification_type: ModificationType = ModificationType.OTHER
    status: ModificationStatus = ModificationStatus.PENDING
    contract_id: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    effective_date: Optional[date] = None
    executed_date: Optional[date] = None
    value_change: Optional[float] = None
    funding_change: Optional[float] = None
    new_total_value: Optional[float] = None
    pop_extension_days: Optional[int] = None
    new_pop_end_date: Optional[date] = None
    scope_change_summary: Optional[str] = None
    requesting_office: Optional[str] = None
    contracting_officer_name: Optional[str] = None
    reason: Optional[str] = None
    created_at: Optional[str] = None

    _enums = {"modification_type": ModificationType, "status": ModificationStatus}
    _dates = ("effective_date", "executed_date", "new_pop_end_date")
    _amounts = ("value_change", "funding_change", "new_total_value")


@dataclass
class ContractDeliverable(_Record):
    id: str
    title: str
    deliverable_type: DeliverableType = DeliverableType.OTHER
    status: DeliverableStatus = DeliverableStatus.PENDING
    contract_id: Optional[str] = None
    cdrl_number: Optional[str] = None
    description: Optional[str] = None
    due_date: Optional[date] = None
    submitted_date: Optional[date] = None
    accepted_date: Optional[date] = None
    frequency: Optional[DeliverableFrequency] = None
    next_due_date: Optional[date] = None
    clin_id: Optional[str] = None
    clin_number: Optional[str] = None
    owner_name: Optional[str] = None
    reviewer_name: Optional[str] = None
    review_comments: Optional[str] = None
    format_requirements: Optional[str] = None
    notes: Optional[str] = None

    _enums = {"deliverable_type": DeliverableType, "status": DeliverableStatus,
              "frequency": DeliverableFrequency}
    _dates = ("due_date", "submitted_date", "accepted_date", "next_due_date")


@dataclass
class ContractOption(_Record):
    id: str
    option_number: int
    status: OptionStatus = OptionStatus.PENDING
    contract_id: Optional[str] = None
    option_year: Optional[int] = None
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    exercise_deadline: Optional[date] = None
    exercised_date: Optional[date] = None
    option_value: Optional[float] = None
    duration_months: Optional[int] = None
    exercise_modification_number: Optional[str] = None
    notes: Optional[str] = None

    _enums = {"status": OptionStatus}
    _dates = ("start_date", "end_date", "exercise_deadline", "exercised_date")
    _amounts = ("option_value",)


@dataclass
class ContractSummary(_Record):
    """Read-only rollup over one contract. Recomputed per fetch."""

    contract_id: str
    contract_number: str
    title: str = ""
    status: ContractStatus = ContractStatus.DRAFT
    total_value: Optional[float] = None
    funded_value: Optional[float] = None
    clin_total_value: float = 0.0
    clin_funded_amount: float = 0.0
    clin_invoiced_amount: float = 0.0
    remaining_funds: float = 0.0
    modification_count: int = 0
    pending_modifications: int = 0
    pending_options: int = 0
    pending_option_value: float = 0.0
    pending_deliverables: int = 0
    overdue_deliverables: int = 0
    pop_start_date: Optional[date] = None
    pop_end_date: Optional[date] = None
    funding_percentage: float = 0.0
    burn_rate: float = 0.0

    _enums = {"status": ContractStatus}
    _dates = ("pop_start_date", "pop_end_date")
    _amounts = ("total_value", "funded_value")
