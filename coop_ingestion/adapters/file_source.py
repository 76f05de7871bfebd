"""
FileSource -- turns an uploaded buffer into ``SpreadsheetRow`` values.

Picks the adapter from the filename extension, reads the first sheet (or the
requested one), and numbers data rows from 1.  Any parser failure surfaces as
``SourceUnavailableError`` carrying the parser's message, so the orchestrator
records it as a failed attempt without touching storage.
"""

from __future__ import annotations

import csv
import zipfile
from pathlib import PurePath
from typing import Any

from openpyxl.utils.exceptions import InvalidFileException

from coop_ingestion.adapters.base import SourceAdapter
from coop_ingestion.adapters.csv_adapter import CsvSourceAdapter
from coop_ingestion.adapters.xlsx_adapter import XlsxSourceAdapter
from coop_ingestion.domain.types import FileUpload, SpreadsheetRow
from coop_kernel.exceptions import SourceUnavailableError
from coop_kernel.logging_config import get_logger

logger = get_logger("ingestion.file_source")

_ADAPTERS: dict[str, SourceAdapter] = {
    ".csv": CsvSourceAdapter(),
    ".xlsx": XlsxSourceAdapter(),
    ".xlsm": XlsxSourceAdapter(),
}

_PARSE_ERRORS = (
    InvalidFileException,
    zipfile.BadZipFile,
    UnicodeDecodeError,
    csv.Error,
    KeyError,
    IndexError,
    ValueError,
    OSError,
)


def supported_extensions() -> tuple[str, ...]:
    return tuple(sorted(_ADAPTERS))


class FileSource:
    """Reads an uploaded file into spreadsheet rows."""

    def read(
        self, upload: FileUpload, header_keywords: frozenset[str] | None = None
    ) -> list[SpreadsheetRow]:
        suffix = PurePath(upload.filename).suffix.lower()
        adapter = _ADAPTERS.get(suffix)
        if adapter is None:
            raise SourceUnavailableError(
                f"unsupported file type {suffix or '(none)'!r} for {upload.filename}; "
                f"expected one of {', '.join(supported_extensions())}"
            )
        if not upload.content:
            raise SourceUnavailableError(f"file {upload.filename} is empty")

        options: dict[str, Any] = {}
        if upload.sheet is not None:
            options["sheet"] = upload.sheet
        if header_keywords:
            options["header_keywords"] = header_keywords

        try:
            rows = [
                SpreadsheetRow(row_number=i, cells=cells)
                for i, cells in enumerate(adapter.read_bytes(upload.content, options), start=1)
            ]
        except _PARSE_ERRORS as exc:
            logger.warning(
                "file_parse_failed",
                extra={"source_file": upload.filename, "error": str(exc)},
            )
            raise SourceUnavailableError(
                f"could not parse {upload.filename}: {exc}"
            ) from exc

        logger.info(
            "file_parsed",
            extra={"source_file": upload.filename, "row_count": len(rows)},
        )
        return rows
