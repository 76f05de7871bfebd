"""
coop_ingestion.domain.types -- Pure frozen dataclasses for ingestion.

ZERO I/O.  Imports only from coop_kernel.domain.

Raw rows are a tagged variant: ``SpreadsheetRow`` carries localized header
keys exactly as they appeared in the uploaded file; ``ErpRow`` carries the
ERP's native record shape.  Both stop at the Record Normalizer; everything
downstream sees canonical records from ``coop_kernel.domain.records``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from coop_kernel.domain.records import CanonicalRecord
from coop_kernel.domain.values import Module


# =============================================================================
# Raw rows
# =============================================================================


@dataclass(frozen=True)
class SpreadsheetRow:
    """One data row of an uploaded file, keyed by its header cells."""

    row_number: int
    cells: Mapping[str, Any]

    def __post_init__(self) -> None:
        object.__setattr__(self, "cells", MappingProxyType(dict(self.cells)))

    @property
    def first_value(self) -> Any:
        for value in self.cells.values():
            return value
        return None


@dataclass(frozen=True)
class ErpRow:
    """One record returned by an ERP fetch operation, in the ERP's own shape."""

    row_number: int
    record: Mapping[str, Any]

    def __post_init__(self) -> None:
        object.__setattr__(self, "record", MappingProxyType(dict(self.record)))


RawRow = SpreadsheetRow | ErpRow


# =============================================================================
# Sources
# =============================================================================


@dataclass(frozen=True)
class ErpQuery:
    """Fetch the unit's rows from the cooperative's configured ERP."""


@dataclass(frozen=True)
class FileUpload:
    """An uploaded spreadsheet buffer (.xlsx or .csv)."""

    content: bytes
    filename: str
    sheet: str | int | None = None

    def __repr__(self) -> str:
        return f"FileUpload(filename={self.filename!r}, size={len(self.content)})"


Source = ErpQuery | FileUpload


@dataclass(frozen=True)
class ErpCredentials:
    url: str
    database: str
    username: str
    api_key: str = field(repr=False)


# =============================================================================
# Normalization output
# =============================================================================


@dataclass(frozen=True)
class CoercionWarning:
    """A field value that was replaced rather than rejected."""

    row_number: int
    field: str
    raw_value: str
    message: str

    def __str__(self) -> str:
        return f"row {self.row_number}: {self.field}={self.raw_value!r} {self.message}"


@dataclass(frozen=True)
class RejectedRow:
    row_number: int
    reason: str


@dataclass(frozen=True)
class NormalizationResult:
    module: Module
    records: tuple[CanonicalRecord, ...]
    rejected: tuple[RejectedRow, ...] = ()
    warnings: tuple[CoercionWarning, ...] = ()
    filtered_count: int = 0

    @property
    def rejected_count(self) -> int:
        return len(self.rejected)


# =============================================================================
# Orchestrator result
# =============================================================================


class IngestionStatus(str, Enum):
    COMPLETED = "completed"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass(frozen=True)
class IngestionResult:
    """Structured outcome of one ``ingest`` or ``compute_ratios`` call."""

    status: IngestionStatus
    module: Module
    cooperative_id: str
    year: int
    month: int
    records_count: int = 0
    rejected_count: int = 0
    warnings: tuple[str, ...] = ()
    error_code: str | None = None
    message: str = ""
    # Set when a balance sheet ingest also computed the period's ratios
    ratios: IngestionResult | None = None

    @property
    def ok(self) -> bool:
        return self.status == IngestionStatus.COMPLETED
