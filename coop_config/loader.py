"""
Configuration Loader (``coop_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the typed
``coop_config.schema`` dataclasses.  Runtime callers go through
``coop_config.get_active_config()``; this module is the parsing backend.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` with the section path.
* Invalid values (unknown policy, bad decimal)  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from coop_config.schema import (
    CoopFinanceConfig,
    DatabaseConfig,
    ErpConfig,
    FeeStatusPolicy,
    IngestionConfig,
    ModuleVocabulary,
    RatioConfig,
    TokenTable,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML file and return its contents as a dict."""
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """Deterministic SHA-256 of the parsed document."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _require(data: dict[str, Any], key: str, section: str) -> Any:
    if key not in data:
        raise KeyError(f"Missing required key '{section}.{key}'")
    return data[key]


def parse_decimal(value: Any, name: str) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValueError(f"{name} is not a valid decimal: {value!r}") from None


def parse_database(data: dict[str, Any]) -> DatabaseConfig:
    return DatabaseConfig(
        url=_require(data, "url", "database"),
        echo=bool(data.get("echo", False)),
        pool_size=int(data.get("pool_size", 10)),
        max_overflow=int(data.get("max_overflow", 5)),
    )


def parse_token_table(data: dict[str, Any], section: str) -> TokenTable:
    entries = _require(data, "entries", section)
    if not isinstance(entries, dict) or not entries:
        raise ValueError(f"{section}.entries must be a non-empty mapping")
    return TokenTable(
        entries={str(k): str(v) for k, v in entries.items()},
        fallback=str(_require(data, "fallback", section)),
    )


def parse_ingestion(data: dict[str, Any]) -> IngestionConfig:
    vocab_data = _require(data, "vocabularies", "ingestion")
    vocabularies = {
        module: ModuleVocabulary(columns={str(k): str(v) for k, v in cols.items()})
        for module, cols in vocab_data.items()
    }
    policy_raw = data.get("fee_status_policy", FeeStatusPolicy.EXPLICIT_WINS.value)
    try:
        policy = FeeStatusPolicy(policy_raw)
    except ValueError:
        raise ValueError(
            f"ingestion.fee_status_policy must be one of "
            f"{[p.value for p in FeeStatusPolicy]}, got {policy_raw!r}"
        ) from None

    return IngestionConfig(
        instruction_prefixes=tuple(
            str(p).strip().lower() for p in data.get("instruction_prefixes", ())
        ),
        vocabularies=vocabularies,
        balance_categories=parse_token_table(
            _require(data, "balance_categories", "ingestion"), "ingestion.balance_categories"
        ),
        cash_flow_categories=parse_token_table(
            _require(data, "cash_flow_categories", "ingestion"), "ingestion.cash_flow_categories"
        ),
        fee_statuses=parse_token_table(
            _require(data, "fee_statuses", "ingestion"), "ingestion.fee_statuses"
        ),
        ratio_trends=parse_token_table(
            _require(data, "ratio_trends", "ingestion"), "ingestion.ratio_trends"
        ),
        fee_status_policy=policy,
        default_expected_contribution=parse_decimal(
            data.get("default_expected_contribution", "500"),
            "ingestion.default_expected_contribution",
        ),
    )


def parse_ratios(data: dict[str, Any]) -> RatioConfig:
    return RatioConfig(
        current_asset_fraction=parse_decimal(
            data.get("current_asset_fraction", "0.6"), "ratios.current_asset_fraction"
        ),
        current_liability_fraction=parse_decimal(
            data.get("current_liability_fraction", "0.5"), "ratios.current_liability_fraction"
        ),
        operating_margin=float(data.get("operating_margin", 0.18)),
        trend_tolerance=float(data.get("trend_tolerance", 0.01)),
        history_months=int(data.get("history_months", 6)),
        descriptions={str(k): str(v) for k, v in (data.get("descriptions") or {}).items()},
    )


def parse_erp(data: dict[str, Any]) -> ErpConfig:
    return ErpConfig(
        timeout_s=float(data.get("timeout_s", 15.0)),
        posted_state=str(data.get("posted_state", "posted")),
    )


def parse_config(data: dict[str, Any]) -> CoopFinanceConfig:
    """Parse a full configuration document."""
    return CoopFinanceConfig(
        database=parse_database(_require(data, "database", "")),
        ingestion=parse_ingestion(_require(data, "ingestion", "")),
        ratios=parse_ratios(data.get("ratios") or {}),
        erp=parse_erp(data.get("erp") or {}),
        checksum=compute_checksum(data),
    )


def load_config(path: Path) -> CoopFinanceConfig:
    """Load and parse a configuration file."""
    return parse_config(load_yaml_file(path))
