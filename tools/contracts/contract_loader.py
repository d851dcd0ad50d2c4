#!/usr/bin/env python3
# CUI // SP-PROPIN
# Controlled by: Contract Rollup Portal
# CUI Category: PROPIN (Proprietary Business Information)
# Distribution: D
# POC: Contract Rollup System Administrator
"""Contract page loader — parallel fetch, partial-failure defaults, views.

A contract page needs the contract itself plus four independent lists
(CLINs, modifications, deliverables, options). The contract fetch must
succeed; if it fails the page shows an error and nothing else renders.
The four list fetches run concurrently on a small thread pool. Any that
fail contribute an empty list, are logged at WARNING, and are named in
``failed_sources`` so the page can offer a manual re-fetch.

``source`` is anything with the ContractApiClient read methods
(get_contract, list_clins, list_modifications, list_deliverables,
list_options, list_contracts, get_summary).

View models (all plain dicts, ready for jsonify):
    value_chart            funding / invoicing bars with color flags
    clin_table             CLIN rows with labels and formatted amounts
    deliverable_tracker    groups, counts, upcoming list
    modification_timeline  newest first, with available actions
    options                option rows with deadline flags
"""

import logging
import sys
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import date
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

BASE_DIR = Path(__file__).resolve().parent.parent.parent
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from tools.contracts import deliverable_tracker, labels, modification_gate, rollup
from tools.contracts.config import load_config

logger = logging.getLogger("contracts.loader")

# =========================================================================
# PARTIAL-FAILURE REDUCER
# =========================================================================
def collect_results(results: Dict[str, Tuple[bool, object]],
                    defaults: Optional[Dict[str, object]] = None) -> Tuple[dict, List[str]]:
    """Reduce per-source outcomes to values plus the list of failed sources.

    ``results`` maps source name to ``(ok, value_or_exception)``. A failed
    source takes its default (empty list unless given) and is reported.
    Failed names are returned in sorted order.
    """
    defaults = defaults or {}
    values, failed = {}, []
    for name, (ok, value) in results.items():
        if ok:
            values[name] = value
        else:
            logger.warning("Fetch of %s failed, using empty default: %s", name, value)
            values[name] = defaults.get(name, [])
            failed.append(name)
    return values, sorted(failed)


def fetch_parallel(fetchers: Dict[str, Callable[[], object]],
                   max_workers: int = 4) -> Dict[str, Tuple[bool, object]]:
    """Run independent zero-arg fetchers concurrently; wait for all of them."""
    results: Dict[str, Tuple[bool, object]] = {}
    if not fetchers:
        return results
    with ThreadPoolExecutor(max_workers=max(1, min(len(fetchers), max_workers))) as executor:
        futures = {executor.submit(fn): name for name, fn in fetchers.items()}
        for future in as_completed(futures):
            name = futures[future]
            try:
                results[name] = (True, future.result())
            except Exception as exc:
                results[name] = (False, exc)
    return results


# =========================================================================
# LOADERS
# =========================================================================
def load_contract_bundle(source, contract_id: str, today: Optional[date] = None,
                         config: Optional[dict] = None) -> dict:
    """Fetch one contract with its child lists and roll up the summary.

    Raises whatever ``source.get_contract`` raises (page-level failure).

    Returns:
        Dict with contract, clins, modifications, deliverables, options,
        summary (ContractSummary) and failed_sources.
    """
    cfg = config or load_config()
    contract = source.get_contract(contract_id)

    fetchers = {
        "clins": lambda: source.list_clins(contract_id),
        "modifications": lambda: source.list_modifications(contract_id),
        "deliverables": lambda: source.list_deliverables(contract_id),
        "options": lambda: source.list_options(contract_id),
    }
    results = fetch_parallel(fetchers, cfg["api"].get("max_parallel_fetches", 4))
    values, failed = collect_results(results)

    summary = rollup.build_contract_summary(
        contract,
        clins=values["clins"],
        modifications=values["modifications"],
        options=values["options"],
        deliverables=values["deliverables"],
        today=today,
    )
    bundle = {"contract": contract, "summary": summary, "failed_sources": failed}
    bundle.update(values)
    return bundle


def load_portfolio(source, status: Optional[str] = None,
                   config: Optional[dict] = None) -> dict:
    """Fetch every contract's summary in parallel and total them.

    The contract list itself must load. Individual summaries that fail
    are left out of the totals and named in ``failed_sources``.
    """
    cfg = config or load_config()
    contracts = source.list_contracts(status=status)
    fetchers = {c.id: (lambda cid=c.id: source.get_summary(cid)) for c in contracts}
    results = fetch_parallel(fetchers, cfg["api"].get("max_parallel_fetches", 4))
    values, failed = collect_results(results, defaults={cid: None for cid in fetchers})

    summaries = [values[c.id] for c in contracts if values.get(c.id) is not None]
    return {
        "totals": rollup.portfolio_totals(summaries),
        "summaries": [s.to_dict() for s in summaries],
        "failed_sources": failed,
    }


# =========================================================================
# VIEW MODELS
# =========================================================================
def value_chart_view(summary, burn_warning_pct: float = 90.0) -> dict:
    funded_pct = summary.funding_percentage
    burn = summary.burn_rate
    return {
        "total_value": summary.total_value,
        "funded_value": summary.funded_value,
        "total_value_display": labels.format_currency(summary.total_value),
        "funded_value_display": labels.format_currency(summary.funded_value),
        "funding_percentage": funded_pct,
        "funding_percentage_display": labels.format_percentage(funded_pct),
        "funding_bar": rollup.progress_ratio(summary.funded_value, summary.total_value),
        "clin_funded_amount": summary.clin_funded_amount,
        "clin_invoiced_amount": summary.clin_invoiced_amount,
        "invoiced_display": labels.format_currency(summary.clin_invoiced_amount),
        "remaining_funds": summary.remaining_funds,
        "remaining_funds_display": labels.format_currency(summary.remaining_funds),
        "remaining_funds_color": "danger" if summary.remaining_funds < 0 else "success",
        "burn_rate": burn,
        "burn_rate_display": labels.format_percentage(burn),
        "burn_bar": rollup.progress_ratio(summary.clin_invoiced_amount,
                                          summary.clin_funded_amount),
        "burn_rate_color": "danger" if burn > burn_warning_pct else "primary",
        "pop_display": (f"{labels.format_date(summary.pop_start_date)} - "
                        f"{labels.format_date(summary.pop_end_date)}"),
    }


def clin_table_view(clins) -> dict:
    rows = []
    for clin in clins or []:
        remaining = rollup.coalesce_amount(clin.remaining_funds)
        rows.append({
            "id": clin.id,
            "clin_number": clin.clin_number,
            "description": clin.description,
            "clin_type": clin.clin_type.value,
            "clin_type_label": labels.clin_type_label(clin.clin_type),
            "pricing_type_label": labels.pricing_type_label(clin.pricing_type),
            "total_value_display": labels.format_currency(clin.total_value),
            "funded_amount_display": labels.format_currency(clin.funded_amount),
            "invoiced_amount_display": labels.format_currency(clin.invoiced_amount),
            "remaining_funds_display": labels.format_currency(clin.remaining_funds),
            "remaining_funds_color": "danger" if remaining < 0 else None,
            "is_option": clin.is_option,
        })
    totals = rollup.clin_totals(clins)
    totals_display = {k + "_display": labels.format_currency(v)
                      for k, v in totals.items() if k != "clin_count"}
    return {"rows": rows, "totals": totals, "totals_display": totals_display}


def _deliverable_row(d, today, window_days):
    row = deliverable_tracker.annotate(d, today=today, window_days=window_days)
    row.update({
        "status_label": labels.deliverable_status_label(d.status),
        "status_variant": labels.deliverable_status_variant(d.status),
        "type_label": labels.deliverable_type_label(d.deliverable_type),
        "frequency_label": labels.frequency_label(d.frequency),
        "due_date_display": labels.format_date(d.due_date),
    })
    return row


def deliverable_tracker_view(deliverables, today: Optional[date] = None,
                             window_days: int = deliverable_tracker.DEFAULT_DUE_SOON_DAYS,
                             upcoming_limit: int = 30) -> dict:
    groups = deliverable_tracker.partition(deliverables, today, window_days)
    return {
        "counts": deliverable_tracker.summary_counts(deliverables, today, window_days),
        "groups": {name: [_deliverable_row(d, today, window_days) for d in items]
                   for name, items in groups.items()},
        "upcoming": [_deliverable_row(d, today, window_days)
                     for d in deliverable_tracker.upcoming(deliverables)[:upcoming_limit]],
    }


def modification_timeline_view(modifications) -> List[dict]:
    """Newest modification first (by effective date, then number)."""
    ordered = sorted(modifications or [],
                     key=lambda m: (m.effective_date or date.min, m.modification_number),
                     reverse=True)
    items = []
    for mod in ordered:
        row = mod.to_dict()
        row.update({
            "type_label": labels.modification_type_label(mod.modification_type),
            "status_label": labels.modification_status_label(mod.status),
            "status_variant": labels.modification_status_variant(mod.status),
            "value_change_display": (labels.format_signed_currency(mod.value_change)
                                     if mod.value_change is not None else None),
            "funding_change_display": (labels.format_signed_currency(mod.funding_change)
                                       if mod.funding_change is not None else None),
            "effective_date_display": labels.format_date(mod.effective_date),
            "actions": modification_gate.available_actions(mod),
            "can_execute": modification_gate.can_execute(mod),
        })
        items.append(row)
    return items


def options_view(options, today: Optional[date] = None, window_days: int = 30) -> List[dict]:
    rows = []
    for opt in sorted(options or [], key=lambda o: o.option_number):
        row = opt.to_dict()
        row.update({
            "status_label": labels.option_status_label(opt.status),
            "option_value_display": labels.format_currency(opt.option_value),
            "exercise_deadline_display": labels.format_date(opt.exercise_deadline),
            "is_deadline_approaching": rollup.is_option_deadline_approaching(
                opt, today=today, window_days=window_days),
        })
        rows.append(row)
    return rows


def build_contract_view(bundle: dict, today: Optional[date] = None,
                        config: Optional[dict] = None) -> dict:
    """Assemble every view model for one loaded contract bundle."""
    cfg = config or load_config()
    tracking, display = cfg["tracking"], cfg["display"]
    contract, summary = bundle["contract"], bundle["summary"]

    header = contract.to_dict()
    header.update({
        "contract_type_label": labels.contract_type_label(contract.contract_type),
        "status_label": labels.contract_status_label(contract.status),
    })
    return {
        "contract": header,
        "summary": summary.to_dict(),
        "value_chart": value_chart_view(summary, display.get("burn_rate_warning_pct", 90)),
        "clin_table": clin_table_view(bundle["clins"]),
        "deliverable_tracker": deliverable_tracker_view(
            bundle["deliverables"], today=today,
            window_days=int(tracking.get("due_soon_days", 7)),
            upcoming_limit=int(display.get("upcoming_limit", 30))),
        "modification_timeline": modification_timeline_view(bundle["modifications"]),
        "options": options_view(bundle["options"], today=today,
                                window_days=int(tracking.get("option_deadline_days", 30))),
        "failed_sources": list(bundle.get("failed_sources", [])),
    }


if __name__ == "__main__":
    import argparse
    import json

    from tools.contracts.api_client import ContractApiClient, ContractApiError

    logging.basicConfig(level=logging.INFO,
                        format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
    parser = argparse.ArgumentParser(description="Load a contract page from the REST API")
    parser.add_argument("--contract-id", help="Contract ID to load")
    parser.add_argument("--portfolio", action="store_true", help="Load all contract summaries")
    parser.add_argument("--status", help="Status filter for --portfolio")
    parser.add_argument("--base-url", help="Override API base URL")
    parser.add_argument("--json", action="store_true", help="JSON output")
    args = parser.parse_args()

    client = ContractApiClient(base_url=args.base_url)
    try:
        if args.portfolio:
            result = load_portfolio(client, status=args.status)
        elif args.contract_id:
            result = build_contract_view(load_contract_bundle(client, args.contract_id))
        else:
            parser.print_help()
            raise SystemExit(1)
    except ContractApiError as exc:
        result = {"error": str(exc)}

    if args.json:
        print(json.dumps(result, indent=2, default=str))
    elif "error" in result:
        print(f"ERROR: {result['error']}")
    elif args.portfolio:
        totals = result["totals"]
        print(f"Contracts: {totals['contract_count']}  "
              f"Total: {labels.format_currency(totals['total_value'])}  "
              f"Funded: {labels.format_currency(totals['funded_value'])}")
        if result["failed_sources"]:
            print(f"Failed: {', '.join(result['failed_sources'])}")
    else:
        chart = result["value_chart"]
        print(f"{result['contract']['contract_number']}: {result['contract']['title']}")
        print(f"  Value {chart['total_value_display']}  Funded "
              f"{chart['funding_percentage_display']}  Burn {chart['burn_rate_display']}")
        counts = result["deliverable_tracker"]["counts"]
        print(f"  Deliverables overdue={counts['overdue']} due_soon={counts['due_soon']}")
        if result["failed_sources"]:
            print(f"  Partial data, failed: {', '.join(result['failed_sources'])}")
