#!/usr/bin/env python3
# CUI // SP-PROPIN
# Controlled by: Contract Rollup Portal
# CUI Category: PROPIN (Proprietary Business Information)
# Distribution: D
# POC: Contract Rollup System Administrator
"""Deliverable tracker — overdue / due-soon classification and grouping.

A deliverable is overdue when its due date is before today and it is not
ACCEPTED or WAIVED. It is due soon when it is not overdue, not ACCEPTED
or WAIVED, and due within the configured window (default 7 days,
inclusive of today). The two flags are mutually exclusive.

Groups (each deliverable lands in exactly one):
    overdue → due_soon → in_progress | submitted | accepted | rejected
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional

from tools.contracts.contract_types import ContractDeliverable, DeliverableStatus

DEFAULT_DUE_SOON_DAYS = 7

CLOSED_STATUSES = frozenset({DeliverableStatus.ACCEPTED, DeliverableStatus.WAIVED})

GROUP_ORDER = ("overdue", "due_soon", "in_progress", "submitted", "accepted", "rejected")

_STATUS_GROUPS = {
    DeliverableStatus.PENDING: "in_progress",
    DeliverableStatus.IN_PROGRESS: "in_progress",
    DeliverableStatus.REVISION_REQUIRED: "in_progress",
    DeliverableStatus.SUBMITTED: "submitted",
    DeliverableStatus.UNDER_REVIEW: "submitted",
    DeliverableStatus.ACCEPTED: "accepted",
    DeliverableStatus.WAIVED: "accepted",
    DeliverableStatus.REJECTED: "rejected",
}

_PROGRESS = {
    DeliverableStatus.PENDING: 0.0,
    DeliverableStatus.IN_PROGRESS: 50.0,
    DeliverableStatus.SUBMITTED: 75.0,
    DeliverableStatus.UNDER_REVIEW: 80.0,
    DeliverableStatus.REVISION_REQUIRED: 60.0,
    DeliverableStatus.ACCEPTED: 100.0,
    DeliverableStatus.REJECTED: 0.0,
    DeliverableStatus.WAIVED: 100.0,
}


def _today():
    return datetime.now(timezone.utc).date()


def days_until_due(deliverable: ContractDeliverable, today=None) -> Optional[int]:
    if deliverable.due_date is None:
        return None
    return (deliverable.due_date - (today or _today())).days


def is_overdue(deliverable: ContractDeliverable, today=None) -> bool:
    if deliverable.status in CLOSED_STATUSES:
        return False
    days = days_until_due(deliverable, today)
    return days is not None and days < 0


def is_due_soon(deliverable: ContractDeliverable, today=None,
                window_days: int = DEFAULT_DUE_SOON_DAYS) -> bool:
    if deliverable.status in CLOSED_STATUSES:
        return False
    days = days_until_due(deliverable, today)
    return days is not None and 0 <= days <= window_days


def progress_percentage(deliverable: ContractDeliverable) -> float:
    return _PROGRESS[deliverable.status]


def classify(deliverable: ContractDeliverable, today=None,
             window_days: int = DEFAULT_DUE_SOON_DAYS) -> str:
    """Return the single display group for one deliverable."""
    if is_overdue(deliverable, today):
        return "overdue"
    if is_due_soon(deliverable, today, window_days):
        return "due_soon"
    return _STATUS_GROUPS[deliverable.status]


def partition(deliverables: Optional[List[ContractDeliverable]], today=None,
              window_days: int = DEFAULT_DUE_SOON_DAYS) -> Dict[str, List[ContractDeliverable]]:
    """Split deliverables into display groups, keeping input order within each."""
    today = today or _today()
    groups = {name: [] for name in GROUP_ORDER}
    for d in deliverables or []:
        groups[classify(d, today, window_days)].append(d)
    return groups


def upcoming(deliverables: Optional[List[ContractDeliverable]]) -> List[ContractDeliverable]:
    """Open deliverables by ascending due date; undated ones last, original order kept."""
    open_items = [d for d in (deliverables or []) if d.status not in CLOSED_STATUSES]
    dated = sorted((d for d in open_items if d.due_date is not None),
                   key=lambda d: d.due_date)
    undated = [d for d in open_items if d.due_date is None]
    return dated + undated


def summary_counts(deliverables: Optional[List[ContractDeliverable]], today=None,
                   window_days: int = DEFAULT_DUE_SOON_DAYS) -> Dict[str, int]:
    groups = partition(deliverables, today, window_days)
    counts = {name: len(items) for name, items in groups.items()}
    counts["total"] = sum(counts.values())
    counts["pending"] = sum(1 for d in deliverables or []
                            if d.status == DeliverableStatus.PENDING)
    return counts


def annotate(deliverable: ContractDeliverable, today=None,
             window_days: int = DEFAULT_DUE_SOON_DAYS, camel: bool = False) -> dict:
    """Record dict plus the derived tracking fields."""
    today = today or _today()
    data = deliverable.to_dict(camel=camel)
    derived = {
        "is_overdue": is_overdue(deliverable, today),
        "is_due_soon": is_due_soon(deliverable, today, window_days),
        "days_until_due": days_until_due(deliverable, today),
        "progress_percentage": progress_percentage(deliverable),
    }
    if camel:
        derived = {"isOverdue": derived["is_overdue"],
                   "isDueSoon": derived["is_due_soon"],
                   "daysUntilDue": derived["days_until_due"],
                   "progressPercentage": derived["progress_percentage"]}
    data.update(derived)
    return data
