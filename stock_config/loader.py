"""
Configuration Loader (``stock_config.loader``).

Responsibility
--------------
Loads an engine configuration YAML file and parses it into a typed
``EngineConfig``.  Runtime callers go through
``stock_config.get_active_config()``; this module is its tooling.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown key or invalid value  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from stock_config.schema import AgingBracket, EngineConfig

# Top-level mappings whose keys are lifted into EngineConfig fields
SECTIONS = (
    "valuation", "movement", "abc", "aging", "consumption", "reorder", "optimization", "runtime",
)

_DECIMAL_FIELDS = {
    "annualization_factor",
    "fast_moving_velocity",
    "medium_moving_velocity",
    "abc_class_a_percent",
    "abc_class_b_percent",
    "medium_risk_impact",
    "high_risk_impact",
    "critical_risk_impact",
    "consumption_trend_threshold_percent",
    "irregular_variance_percent",
    "seasonal_variance_percent",
    "declining_trend_percent",
    "high_urgency_lead_multiplier",
    "medium_urgency_level_ratio",
    "service_level_percent",
    "demand_variation_factor",
    "ordering_cost",
    "carrying_cost_rate",
    "default_unit_cost",
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_date(value: Any) -> date:
    """Parse a date from YAML (string or date object)."""
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value)
    raise ValueError(f"Cannot parse date from {value!r}")


def parse_decimal(name: str, value: Any) -> Decimal:
    """Parse a Decimal from YAML.  Floats go through str() to avoid binary noise."""
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{name} must be a decimal number, got {value!r}") from None


def flatten_sections(data: dict[str, Any]) -> dict[str, Any]:
    """Lift section mappings into one flat dict; a key may appear only once."""
    flat: dict[str, Any] = {}
    for key, value in data.items():
        if key in SECTIONS:
            if not isinstance(value, dict):
                raise ValueError(f"Section '{key}' must be a mapping")
            items = value.items()
        else:
            items = [(key, value)]
        for name, item in items:
            if name in flat:
                raise ValueError(f"Duplicate engine config key: {name}")
            flat[name] = item
    return flat


def parse_engine_config(data: dict[str, Any]) -> EngineConfig:
    """Build an EngineConfig from parsed YAML."""
    flat = flatten_sections(data)

    for name in _DECIMAL_FIELDS & flat.keys():
        flat[name] = parse_decimal(name, flat[name])

    if flat.get("opening_stock_date") is not None:
        flat["opening_stock_date"] = parse_date(flat["opening_stock_date"])

    if "aging_brackets" in flat:
        flat["aging_brackets"] = tuple(
            AgingBracket(
                label=str(b["label"]),
                min_days=int(b["min_days"]),
                max_days=None if b.get("max_days") is None else int(b["max_days"]),
            )
            for b in flat["aging_brackets"]
        )

    return EngineConfig.from_dict(flat)


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
