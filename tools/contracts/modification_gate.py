#!/usr/bin/env python3
# CUI // SP-PROPIN
# Controlled by: Contract Rollup Portal
# CUI Category: PROPIN (Proprietary Business Information)
# Distribution: D
# POC: Contract Rollup System Administrator
"""Modification status machine and the Execute gate.

Statuses:
    DRAFT → PENDING → UNDER_REVIEW → APPROVED → EXECUTED
    DRAFT | PENDING | UNDER_REVIEW → REJECTED | CANCELLED (terminal)

Only an APPROVED modification may be executed. The dashboard offers the
"execute" action exactly when ``can_execute`` is true; the system of
record enforces the same rule through ``check_transition``.
"""

from datetime import timedelta
from typing import List

from tools.contracts.contract_types import (
    Contract,
    ContractModification,
    ModificationStatus,
)

OPEN_STATUSES = frozenset({
    ModificationStatus.DRAFT,
    ModificationStatus.PENDING,
    ModificationStatus.UNDER_REVIEW,
    ModificationStatus.APPROVED,
})

TERMINAL_STATUSES = frozenset({
    ModificationStatus.EXECUTED,
    ModificationStatus.REJECTED,
    ModificationStatus.CANCELLED,
})

# Status transitions: from → allowed_to
TRANSITIONS = {
    ModificationStatus.DRAFT: [ModificationStatus.PENDING,
                               ModificationStatus.REJECTED,
                               ModificationStatus.CANCELLED],
    ModificationStatus.PENDING: [ModificationStatus.UNDER_REVIEW,
                                 ModificationStatus.REJECTED,
                                 ModificationStatus.CANCELLED],
    ModificationStatus.UNDER_REVIEW: [ModificationStatus.APPROVED,
                                      ModificationStatus.REJECTED,
                                      ModificationStatus.CANCELLED],
    ModificationStatus.APPROVED: [ModificationStatus.EXECUTED],
}

# Action name offered in the timeline for each target status
ACTIONS = {
    ModificationStatus.PENDING: "submit",
    ModificationStatus.UNDER_REVIEW: "start_review",
    ModificationStatus.APPROVED: "approve",
    ModificationStatus.EXECUTED: "execute",
    ModificationStatus.REJECTED: "reject",
    ModificationStatus.CANCELLED: "cancel",
}


class InvalidTransitionError(ValueError):
    """Raised when a modification status change is not allowed."""

    def __init__(self, current, target):
        self.current = ModificationStatus(current)
        self.target = ModificationStatus(target)
        allowed = [s.value for s in TRANSITIONS.get(self.current, [])]
        super().__init__(
            f"Cannot transition modification from {self.current.value} to "
            f"{self.target.value}. Allowed: {allowed or 'none (terminal)'}"
        )


def can_transition(current, target) -> bool:
    return ModificationStatus(target) in TRANSITIONS.get(ModificationStatus(current), [])


def check_transition(current, target):
    """Raise InvalidTransitionError unless current → target is allowed."""
    if not can_transition(current, target):
        raise InvalidTransitionError(current, target)
    return ModificationStatus(target)


def can_execute(modification: ContractModification) -> bool:
    return modification.status == ModificationStatus.APPROVED


def available_actions(modification: ContractModification) -> List[str]:
    return [ACTIONS[target] for target in TRANSITIONS.get(modification.status, [])]


def execution_changes(contract: Contract, modification: ContractModification) -> dict:
    """Contract field updates produced by executing ``modification``.

    new_total_value replaces the total outright; otherwise value_change is
    added to it. funding_change is added to the funded value.
    new_pop_end_date replaces the PoP end; otherwise pop_extension_days
    extends the current end date. Returns only the fields that change.
    """
    changes = {}
    if modification.new_total_value is not None:
        changes["total_value"] = modification.new_total_value
    elif modification.value_change:
        changes["total_value"] = (contract.total_value or 0.0) + modification.value_change

    if modification.funding_change:
        changes["funded_value"] = (contract.funded_value or 0.0) + modification.funding_change

    if modification.new_pop_end_date is not None:
        changes["pop_end_date"] = modification.new_pop_end_date
    elif modification.pop_extension_days and contract.pop_end_date is not None:
        changes["pop_end_date"] = (contract.pop_end_date
                                   + timedelta(days=int(modification.pop_extension_days)))
    return changes
