#!/usr/bin/env python3
# CUI // SP-PROPIN
# Controlled by: Contract Rollup Portal
# CUI Category: PROPIN (Proprietary Business Information)
# Distribution: D
# POC: Contract Rollup System Administrator
"""Label and format helpers for contract enums, currency and dates.

Every lookup table must cover its enum exactly; ``check_label_coverage``
runs at import time so enum/label drift fails on first import rather
than rendering a blank label.
"""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

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
)

NOT_AVAILABLE = "N/A"


class MissingLabelError(LookupError):
    """Raised when an enum value has no label (or is not a member at all)."""


CONTRACT_TYPE_LABELS = {
    ContractType.FIRM_FIXED_PRICE: "Firm Fixed Price (FFP)",
    ContractType.TIME_AND_MATERIALS: "Time and Materials (T&M)",
    ContractType.COST_PLUS_FIXED_FEE: "Cost Plus Fixed Fee (CPFF)",
    ContractType.COST_PLUS_INCENTIVE_FEE: "Cost Plus Incentive Fee (CPIF)",
    ContractType.COST_PLUS_AWARD_FEE: "Cost Plus Award Fee (CPAF)",
    ContractType.COST_REIMBURSEMENT: "Cost Reimbursement (CR)",
    ContractType.INDEFINITE_DELIVERY: "Indefinite Delivery (IDIQ)",
    ContractType.BLANKET_PURCHASE_AGREEMENT: "Blanket Purchase Agreement (BPA)",
    ContractType.BASIC_ORDERING_AGREEMENT: "Basic Ordering Agreement (BOA)",
    ContractType.TASK_ORDER: "Task Order",
    ContractType.DELIVERY_ORDER: "Delivery Order",
    ContractType.GRANT: "Grant",
    ContractType.COOPERATIVE_AGREEMENT: "Cooperative Agreement",
    ContractType.OTHER: "Other",
}

CONTRACT_STATUS_LABELS = {
    ContractStatus.DRAFT: "Draft",
    ContractStatus.AWARDED: "Awarded",
    ContractStatus.PENDING_SIGNATURE: "Pending Signature",
    ContractStatus.ACTIVE: "Active",
    ContractStatus.ON_HOLD: "On Hold",
    ContractStatus.COMPLETED: "Completed",
    ContractStatus.TERMINATED: "Terminated",
    ContractStatus.CANCELLED: "Cancelled",
    ContractStatus.CLOSED: "Closed",
}

CLIN_TYPE_LABELS = {
    ClinType.BASE: "Base",
    ClinType.OPTION: "Option",
    ClinType.DATA: "Data",
    ClinType.SERVICES: "Services",
    ClinType.SUPPLIES: "Supplies",
    ClinType.OTHER: "Other",
}

PRICING_TYPE_LABELS = {
    PricingType.FIRM_FIXED_PRICE: "FFP",
    PricingType.TIME_AND_MATERIALS: "T&M",
    PricingType.LABOR_HOUR: "Labor Hour",
    PricingType.COST_PLUS_FIXED_FEE: "CPFF",
    PricingType.COST_PLUS_INCENTIVE_FEE: "CPIF",
    PricingType.COST_REIMBURSEMENT: "Cost Reimbursement",
}

MODIFICATION_TYPE_LABELS = {
    ModificationType.ADMINISTRATIVE: "Administrative",
    ModificationType.BILATERAL: "Bilateral",
    ModificationType.UNILATERAL: "Unilateral",
    ModificationType.SUPPLEMENTAL: "Supplemental",
    ModificationType.INCREMENTAL_FUNDING: "Incremental Funding",
    ModificationType.NO_COST_EXTENSION: "No-Cost Extension",
    ModificationType.OPTION_EXERCISE: "Option Exercise",
    ModificationType.TERMINATION: "Termination",
    ModificationType.SCOPE_CHANGE: "Scope Change",
    ModificationType.OTHER: "Other",
}

MODIFICATION_STATUS_LABELS = {
    ModificationStatus.DRAFT: "Draft",
    ModificationStatus.PENDING: "Pending",
    ModificationStatus.UNDER_REVIEW: "Under Review",
    ModificationStatus.APPROVED: "Approved",
    ModificationStatus.EXECUTED: "Executed",
    ModificationStatus.REJECTED: "Rejected",
    ModificationStatus.CANCELLED: "Cancelled",
}

DELIVERABLE_TYPE_LABELS = {
    DeliverableType.REPORT: "Report",
    DeliverableType.DATA: "Data",
    DeliverableType.SOFTWARE: "Software",
    DeliverableType.DOCUMENTATION: "Documentation",
    DeliverableType.HARDWARE: "Hardware",
    DeliverableType.SERVICES: "Services",
    DeliverableType.MILESTONE: "Milestone",
    DeliverableType.STATUS_REPORT: "Status Report",
    DeliverableType.FINANCIAL_REPORT: "Financial Report",
    DeliverableType.TECHNICAL_REPORT: "Technical Report",
    DeliverableType.OTHER: "Other",
}

DELIVERABLE_STATUS_LABELS = {
    DeliverableStatus.PENDING: "Pending",
    DeliverableStatus.IN_PROGRESS: "In Progress",
    DeliverableStatus.SUBMITTED: "Submitted",
    DeliverableStatus.UNDER_REVIEW: "Under Review",
    DeliverableStatus.REVISION_REQUIRED: "Revision Required",
    DeliverableStatus.ACCEPTED: "Accepted",
    DeliverableStatus.REJECTED: "Rejected",
    DeliverableStatus.WAIVED: "Waived",
}

DELIVERABLE_FREQUENCY_LABELS = {
    DeliverableFrequency.ONE_TIME: "One-time",
    DeliverableFrequency.DAILY: "Daily",
    DeliverableFrequency.WEEKLY: "Weekly",
    DeliverableFrequency.BI_WEEKLY: "Bi-weekly",
    DeliverableFrequency.MONTHLY: "Monthly",
    DeliverableFrequency.QUARTERLY: "Quarterly",
    DeliverableFrequency.SEMI_ANNUALLY: "Semi-annually",
    DeliverableFrequency.ANNUALLY: "Annually",
    DeliverableFrequency.AS_REQUIRED: "As Required",
}

OPTION_STATUS_LABELS = {
    OptionStatus.PENDING: "Pending",
    OptionStatus.EXERCISED: "Exercised",
    OptionStatus.DECLINED: "Declined",
    OptionStatus.EXPIRED: "Expired",
}

# Badge variants used by the dashboard view models
MODIFICATION_STATUS_VARIANTS = {
    ModificationStatus.DRAFT: "secondary",
    ModificationStatus.PENDING: "warning",
    ModificationStatus.UNDER_REVIEW: "info",
    ModificationStatus.APPROVED: "primary",
    ModificationStatus.EXECUTED: "success",
    ModificationStatus.REJECTED: "danger",
    ModificationStatus.CANCELLED: "secondary",
}

DELIVERABLE_STATUS_VARIANTS = {
    DeliverableStatus.PENDING: "secondary",
    DeliverableStatus.IN_PROGRESS: "info",
    DeliverableStatus.SUBMITTED: "primary",
    DeliverableStatus.UNDER_REVIEW: "warning",
    DeliverableStatus.REVISION_REQUIRED: "danger",
    DeliverableStatus.ACCEPTED: "success",
    DeliverableStatus.REJECTED: "danger",
    DeliverableStatus.WAIVED: "secondary",
}

_TABLES = {
    "contract_type": (ContractType, CONTRACT_TYPE_LABELS),
    "contract_status": (ContractStatus, CONTRACT_STATUS_LABELS),
    "clin_type": (ClinType, CLIN_TYPE_LABELS),
    "pricing_type": (PricingType, PRICING_TYPE_LABELS),
    "modification_type": (ModificationType, MODIFICATION_TYPE_LABELS),
    "modification_status": (ModificationStatus, MODIFICATION_STATUS_LABELS),
    "deliverable_type": (DeliverableType, DELIVERABLE_TYPE_LABELS),
    "deliverable_status": (DeliverableStatus, DELIVERABLE_STATUS_LABELS),
    "deliverable_frequency": (DeliverableFrequency, DELIVERABLE_FREQUENCY_LABELS),
    "option_status": (OptionStatus, OPTION_STATUS_LABELS),
    "modification_status_variant": (ModificationStatus, MODIFICATION_STATUS_VARIANTS),
    "deliverable_status_variant": (DeliverableStatus, DELIVERABLE_STATUS_VARIANTS),
}


def check_label_coverage():
    """Verify every table covers its enum exactly. Raises MissingLabelError."""
    problems = []
    for name, (enum_cls, table) in _TABLES.items():
        missing = [m.value for m in enum_cls if m not in table]
        extra = [k for k in table if not isinstance(k, enum_cls)]
        if missing:
            problems.append(f"{name}: missing {', '.join(missing)}")
        if extra:
            problems.append(f"{name}: unexpected keys {extra}")
    if problems:
        raise MissingLabelError("; ".join(problems))
    return {"tables": len(_TABLES), "status": "complete"}


def _lookup(enum_cls, table, value):
    try:
        member = value if isinstance(value, enum_cls) else enum_cls(value)
    except ValueError:
        raise MissingLabelError(
            f"{value!r} is not a valid {enum_cls.__name__}") from None
    try:
        return table[member]
    except KeyError:
        raise MissingLabelError(
            f"No label for {enum_cls.__name__}.{member.value}") from None


def contract_type_label(value):
    return _lookup(ContractType, CONTRACT_TYPE_LABELS, value)


def contract_status_label(value):
    return _lookup(ContractStatus, CONTRACT_STATUS_LABELS, value)


def clin_type_label(value):
    return _lookup(ClinType, CLIN_TYPE_LABELS, value)


def pricing_type_label(value):
    """Pricing type is optional on a CLIN; None renders as N/A."""
    if value is None:
        return NOT_AVAILABLE
    return _lookup(PricingType, PRICING_TYPE_LABELS, value)


def modification_type_label(value):
    return _lookup(ModificationType, MODIFICATION_TYPE_LABELS, value)


def modification_status_label(value):
    return _lookup(ModificationStatus, MODIFICATION_STATUS_LABELS, value)


def deliverable_type_label(value):
    return _lookup(DeliverableType, DELIVERABLE_TYPE_LABELS, value)


def deliverable_status_label(value):
    return _lookup(DeliverableStatus, DELIVERABLE_STATUS_LABELS, value)


def frequency_label(value):
    if value is None:
        return DELIVERABLE_FREQUENCY_LABELS[DeliverableFrequency.ONE_TIME]
    return _lookup(DeliverableFrequency, DELIVERABLE_FREQUENCY_LABELS, value)


def option_status_label(value):
    return _lookup(OptionStatus, OPTION_STATUS_LABELS, value)


def modification_status_variant(value):
    return _lookup(ModificationStatus, MODIFICATION_STATUS_VARIANTS, value)


def deliverable_status_variant(value):
    return _lookup(DeliverableStatus, DELIVERABLE_STATUS_VARIANTS, value)


def format_currency(value):
    """US dollars, no decimals: 1234.5 -> "$1,235", -50 -> "-$50", None -> "N/A"."""
    if value is None:
        return NOT_AVAILABLE
    amount = int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    if amount < 0:
        return f"-${abs(amount):,.0f}"
    return f"${amount:,.0f}"


def format_signed_currency(value):
    """Currency with an explicit "+" for increases (modification deltas)."""
    if value is None:
        return NOT_AVAILABLE
    text = format_currency(value)
    return f"+{text}" if float(value) > 0 else text


def format_date(value):
    """en-US short date: "Jan 5, 2026". None -> "N/A"; unparseable text is returned as-is."""
    if value is None:
        return NOT_AVAILABLE
    if isinstance(value, datetime):
        value = value.date()
    if not isinstance(value, date):
        try:
            value = datetime.strptime(str(value)[:10], "%Y-%m-%d").date()
        except ValueError:
            return str(value)
    return f"{value:%b} {value.day}, {value.year}"


def format_percentage(value, digits=1):
    if value is None:
        return NOT_AVAILABLE
    return f"{float(value):.{digits}f}%"


check_label_coverage()
