#!/usr/bin/env python3
# CUI // SP-PROPIN
# Controlled by: Contract Rollup Portal
# CUI Category: PROPIN (Proprietary Business Information)
# Distribution: D
# POC: Contract Rollup System Administrator
"""Configuration loader for the Contract Rollup Portal.

Reads args/contract_config.yaml, expands ``${VAR:-default}`` patterns, and
applies environment overrides. A .env file at the repository root is
loaded first (real environment variables win).

Environment overrides:
    CONTRACTS_CONFIG_PATH     alternate YAML file
    CONTRACTS_DB_PATH         SQLite path for the system of record
    CONTRACTS_API_URL         base URL of the contracts REST API
    CONTRACTS_API_KEY         X-Api-Key sent by the client / required by the API
    CONTRACTS_DUE_SOON_DAYS   deliverable due-soon window
"""

import copy
import logging
import os
import re
from pathlib import Path

import yaml
from dotenv import load_dotenv

logger = logging.getLogger("contracts.config")

BASE_DIR = Path(__file__).resolve().parent.parent.parent
DEFAULT_CONFIG_PATH = BASE_DIR / "args" / "contract_config.yaml"

_env_path = BASE_DIR / ".env"
if _env_path.exists():
    load_dotenv(_env_path, override=False)

DEFAULTS = {
    "tracking": {
        "due_soon_days": 7,
        "option_deadline_days": 30,
        "expiring_contract_days": 90,
    },
    "display": {
        "burn_rate_warning_pct": 90,
        "currency": "USD",
        "upcoming_limit": 30,
    },
    "api": {
        "base_url": "http://127.0.0.1:5001",
        "api_key": "",
        "timeout_seconds": 15,
        "max_parallel_fetches": 4,
    },
    "database": {
        "path": "data/contracts.db",
    },
}

_ENV_OVERRIDES = {
    "CONTRACTS_DB_PATH": ("database", "path", str),
    "CONTRACTS_API_URL": ("api", "base_url", str),
    "CONTRACTS_API_KEY": ("api", "api_key", str),
    "CONTRACTS_DUE_SOON_DAYS": ("tracking", "due_soon_days", int),
}


def _expand_env(value):
    """Expand ${VAR:-default} patterns in string values."""
    if not isinstance(value, str):
        return value
    pattern = r'\$\{([^}]+)\}'

    def replacer(match):
        expr = match.group(1)
        if ":-" in expr:
            var, default = expr.split(":-", 1)
            return os.environ.get(var, default)
        return os.environ.get(expr, match.group(0))
    return re.sub(pattern, replacer, value)


def _merge(base, override):
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = _expand_env(value)
    return base


def effective_config_path(path=None):
    """The YAML file in effect: explicit path, then CONTRACTS_CONFIG_PATH, then the default."""
    return Path(path or os.environ.get("CONTRACTS_CONFIG_PATH") or DEFAULT_CONFIG_PATH)


def load_config(config_path=None):
    """Return the merged configuration dict (defaults < YAML < environment)."""
    path = effective_config_path(config_path)
    config = copy.deepcopy(DEFAULTS)

    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            _merge(config, yaml.safe_load(f) or {})
    else:
        logger.warning("Contract config not found at %s — using defaults", path)

    for env_var, (section, key, cast) in _ENV_OVERRIDES.items():
        raw = os.environ.get(env_var)
        if raw is None or raw == "":
            continue
        try:
            config[section][key] = cast(raw)
        except ValueError:
            logger.warning("Ignoring %s=%r: expected %s", env_var, raw, cast.__name__)

    db_path = Path(config["database"]["path"])
    if not db_path.is_absolute():
        config["database"]["path"] = str(BASE_DIR / db_path)
    return config


def due_soon_days(config=None):
    cfg = config or load_config()
    return int(cfg["tracking"]["due_soon_days"])


def db_path(config=None):
    cfg = config or load_config()
    return cfg["database"]["path"]


if __name__ == "__main__":
    import argparse
    import json

    parser = argparse.ArgumentParser(description="Show effective contract configuration")
    parser.add_argument("--config", help="Alternate YAML path")
    args = parser.parse_args()

    print(json.dumps(load_config(args.config), indent=2))
