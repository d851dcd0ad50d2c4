#!/usr/bin/env python3
# CUI // SP-PROPIN
# Controlled by: Contract Rollup Portal
# CUI Category: PROPIN (Proprietary Business Information)
# Distribution: D
# POC: Contract Rollup System Administrator
"""Contract financial rollup — CLIN totals, funding %, burn rate, summary.

All functions are pure: they never mutate their inputs, accept empty
lists, and never raise on missing amounts. Null amounts become zero in
exactly one place, ``coalesce_amount``.

Functions:
    coalesce_amount            — None -> 0.0 for monetary sums
    clin_totals                — total value / funded / invoiced / remaining
    funding_percentage         — funded / total * 100 (0 when total is 0)
    burn_rate                  — invoiced / funded * 100 (0 when funded is 0)
    progress_ratio             — progress-bar fill percent, clamped to 0..100
    modification_value_delta   — sum of value_change over EXECUTED mods
    modification_funding_delta — sum of funding_change over EXECUTED mods
    pending_option_value       — sum of option_value over PENDING options
    is_option_deadline_approaching — PENDING option near its exercise deadline
    build_contract_summary     — ContractSummary for one contract
    portfolio_totals           — flat rollup across several summaries
"""

from datetime import date, datetime, timezone
from typing import Iterable, List, Optional

from tools.contracts.contract_types import (
    Contract,
    ContractClin,
    ContractDeliverable,
    ContractModification,
    ContractOption,
    ContractSummary,
    DeliverableStatus,
    ModificationStatus,
    OptionStatus,
)
from tools.contracts.deliverable_tracker import is_overdue
from tools.contracts.modification_gate import OPEN_STATUSES


def coalesce_amount(value) -> float:
    """The single zero-default point for nullable amounts."""
    if value is None:
        return 0.0
    return float(value)


def _sum(items: Iterable, attr: str) -> float:
    return sum((coalesce_amount(getattr(item, attr, None)) for item in items), 0.0)


def clin_totals(clins: Optional[List[ContractClin]]) -> dict:
    """Sum each CLIN amount field across the list."""
    clins = list(clins or [])
    return {
        "total_value": _sum(clins, "total_value"),
        "total_funded": _sum(clins, "funded_amount"),
        "total_invoiced": _sum(clins, "invoiced_amount"),
        "total_remaining": _sum(clins, "remaining_funds"),
        "clin_count": len(clins),
    }


def funding_percentage(funded_value, total_value) -> float:
    total = coalesce_amount(total_value)
    if total == 0:
        return 0.0
    return coalesce_amount(funded_value) / total * 100


def burn_rate(invoiced_amount, funded_amount) -> float:
    funded = coalesce_amount(funded_amount)
    if funded == 0:
        return 0.0
    return coalesce_amount(invoiced_amount) / funded * 100


def progress_ratio(value, maximum) -> float:
    """Progress-bar fill in percent, clamped to [0, 100]."""
    top = coalesce_amount(maximum)
    if top <= 0:
        return 0.0
    return max(0.0, min(coalesce_amount(value) / top * 100, 100.0))


def _executed(mods):
    return [m for m in (mods or []) if m.status == ModificationStatus.EXECUTED]


def modification_value_delta(mods: Optional[List[ContractModification]]) -> float:
    return _sum(_executed(mods), "value_change")


def modification_funding_delta(mods: Optional[List[ContractModification]]) -> float:
    return _sum(_executed(mods), "funding_change")


def pending_option_value(options: Optional[List[ContractOption]]) -> float:
    return _sum([o for o in (options or []) if o.status == OptionStatus.PENDING],
                "option_value")


def build_contract_summary(contract: Contract,
                           clins: Optional[List[ContractClin]] = None,
                           modifications: Optional[List[ContractModification]] = None,
                           options: Optional[List[ContractOption]] = None,
                           deliverables: Optional[List[ContractDeliverable]] = None,
                           today: Optional[date] = None) -> ContractSummary:
    """Roll one contract and its child collections into a ContractSummary."""
    modifications = list(modifications or [])
    options = list(options or [])
    deliverables = list(deliverables or [])
    totals = clin_totals(clins)

    return ContractSummary(
        contract_id=contract.id,
        contract_number=contract.contract_number,
        title=contract.title,
        status=contract.status,
        total_value=contract.total_value,
        funded_value=contract.funded_value,
        clin_total_value=totals["total_value"],
        clin_funded_amount=totals["total_funded"],
        clin_invoiced_amount=totals["total_invoiced"],
        remaining_funds=totals["total_funded"] - totals["total_invoiced"],
        modification_count=len(modifications),
        pending_modifications=sum(1 for m in modifications if m.status in OPEN_STATUSES),
        pending_options=sum(1 for o in options if o.status == OptionStatus.PENDING),
        pending_option_value=pending_option_value(options),
        pending_deliverables=sum(1 for d in deliverables
                                 if d.status == DeliverableStatus.PENDING),
        overdue_deliverables=sum(1 for d in deliverables
                                 if is_overdue(d, today=today)),
        pop_start_date=contract.pop_start_date,
        pop_end_date=contract.pop_end_date,
        funding_percentage=funding_percentage(contract.funded_value, contract.total_value),
        burn_rate=burn_rate(totals["total_invoiced"], totals["total_funded"]),
    )


def portfolio_totals(summaries: Optional[List[ContractSummary]]) -> dict:
    """Flat rollup across several contract summaries for the home card."""
    summaries = list(summaries or [])
    total_value = _sum(summaries, "total_value")
    funded_value = _sum(summaries, "funded_value")
    clin_funded = _sum(summaries, "clin_funded_amount")
    clin_invoiced = _sum(summaries, "clin_invoiced_amount")
    return {
        "contract_count": len(summaries),
        "total_value": total_value,
        "funded_value": funded_value,
        "clin_funded_amount": clin_funded,
        "clin_invoiced_amount": clin_invoiced,
        "remaining_funds": clin_funded - clin_invoiced,
        "funding_percentage": funding_percentage(funded_value, total_value),
        "burn_rate": burn_rate(clin_invoiced, clin_funded),
        "pending_modifications": sum(s.pending_modifications for s in summaries),
        "overdue_deliverables": sum(s.overdue_deliverables for s in summaries),
        "pending_option_value": _sum(summaries, "pending_option_value"),
    }


def is_option_deadline_approaching(option: ContractOption, today: Optional[date] = None,
                                   window_days: int = 30) -> bool:
    """PENDING option whose exercise deadline is today or within the window."""
    if option.status != OptionStatus.PENDING or option.exercise_deadline is None:
        return False
    today = today or datetime.now(timezone.utc).date()
    return 0 <= (option.exercise_deadline - today).days <= window_days
