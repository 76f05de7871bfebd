"""
Configuration schema (``coop_config.schema``).

Responsibility
--------------
Frozen dataclasses describing the runtime configuration of the period
ingestion engine: database connection, source vocabularies and token
tables for the Record Normalizer, ratio parameters, and ERP transport
settings.

Architecture position
---------------------
**Config layer** -- pure value objects.  ZERO I/O.  Populated by
``coop_config.loader`` and consumed through ``coop_config.get_active_config()``.

Invariants enforced
-------------------
* Every object is immutable once parsed.
* Column vocabularies are stored with lower-cased, stripped keys so that
  header matching is case-insensitive.
* Fractions are in ``(0, 1]``; trend tolerance is non-negative.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Mapping


class FeeStatusPolicy(str, Enum):
    """How an explicit source status interacts with the computed debt status."""

    EXPLICIT_WINS = "explicit_wins"
    COMPUTED_WINS = "computed_wins"


def _frozen(mapping: Mapping[str, str]) -> Mapping[str, str]:
    return MappingProxyType({str(k).strip().lower(): v for k, v in mapping.items()})


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection settings passed to ``init_engine_from_url``."""

    url: str
    echo: bool = False
    pool_size: int = 10
    max_overflow: int = 5


@dataclass(frozen=True)
class TokenTable:
    """Closed lookup table for an enum-like source token.

    ``fallback`` is returned for a non-blank token that is not in the table.
    """

    entries: Mapping[str, str]
    fallback: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "entries", _frozen(self.entries))

    def lookup(self, token: object) -> tuple[str, bool]:
        """Return (canonical value, recognized)."""
        key = str(token).strip().lower()
        if key in self.entries:
            return self.entries[key], True
        return self.fallback, False


@dataclass(frozen=True)
class ModuleVocabulary:
    """Source header token -> canonical field name, for one module."""

    columns: Mapping[str, str]

    def __post_init__(self) -> None:
        object.__setattr__(self, "columns", _frozen(self.columns))

    def canonical(self, header: object) -> str | None:
        return self.columns.get(str(header).strip().lower())

    @property
    def header_tokens(self) -> frozenset[str]:
        return frozenset(self.columns)


@dataclass(frozen=True)
class IngestionConfig:
    """Normalizer vocabulary and policies."""

    instruction_prefixes: tuple[str, ...]
    vocabularies: Mapping[str, ModuleVocabulary]
    balance_categories: TokenTable
    cash_flow_categories: TokenTable
    fee_statuses: TokenTable
    ratio_trends: TokenTable
    fee_status_policy: FeeStatusPolicy = FeeStatusPolicy.EXPLICIT_WINS
    default_expected_contribution: Decimal = Decimal("500")

    def vocabulary(self, module: str) -> ModuleVocabulary:
        try:
            return self.vocabularies[module]
        except KeyError:
            raise KeyError(f"No column vocabulary configured for module {module!r}") from None


@dataclass(frozen=True)
class RatioConfig:
    """Ratio Engine parameters.

    The current-asset and current-liability fractions approximate the
    current portion of the balance sheet totals.  They stand in until
    accounts carry a current / non-current classification.
    """

    current_asset_fraction: Decimal = Decimal("0.6")
    current_liability_fraction: Decimal = Decimal("0.5")
    operating_margin: float = 0.18
    trend_tolerance: float = 0.01
    history_months: int = 6
    descriptions: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for name in ("current_asset_fraction", "current_liability_fraction"):
            value = getattr(self, name)
            if not (Decimal("0") < value <= Decimal("1")):
                raise ValueError(f"{name} must be in (0, 1], got {value}")
        if self.trend_tolerance < 0:
            raise ValueError("trend_tolerance cannot be negative")
        object.__setattr__(self, "descriptions", MappingProxyType(dict(self.descriptions)))


@dataclass(frozen=True)
class ErpConfig:
    """ERP transport settings shared by every cooperative."""

    timeout_s: float = 15.0
    posted_state: str = "posted"


@dataclass(frozen=True)
class CoopFinanceConfig:
    """Root configuration object returned by ``get_active_config()``."""

    database: DatabaseConfig
    ingestion: IngestionConfig
    ratios: RatioConfig
    erp: ErpConfig
    checksum: str = ""
