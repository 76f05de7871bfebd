"""
XLSX source adapter for cooperative report templates.

Supports flexible layout:
  - sheet by index (0-based) or name
  - header row by index or auto-detect (scans the first rows for known
    column names, so title and instruction rows above the table are skipped)
  - normalizes cell values (strip, blank->empty string, integral floats->int)

Auto-detect looks for the first row containing at least 2 of the caller's
``header_keywords`` (the configured column vocabulary of the target module).
"""

from __future__ import annotations

import io
import re
from pathlib import Path
from typing import Any, BinaryIO, Iterator

import openpyxl

_DEFAULT_HEADER_KEYWORDS = frozenset({
    "codigo_cuenta", "nombre_cuenta", "tipo_cuenta", "monto",
    "tipo_actividad", "descripcion", "id_socio", "nombre_socio",
    "nombre_ratio", "valor", "account_code", "account_name", "category",
    "amount", "description", "member_id", "member_name", "name", "value",
})

_MAX_ROWS = 100_000


def _normalize_header_cell(value: Any) -> str:
    if value is None:
        return ""
    return re.sub(r"\s+", " ", str(value)).strip()


def _cell_value(row: Any, col_idx: int) -> Any:
    """Get cell value from an openpyxl row (0-based column index)."""
    try:
        cell = row[col_idx]
    except IndexError:
        return ""
    v = getattr(cell, "value", None)
    if v is None:
        return ""
    if isinstance(v, bool):
        return str(v)
    if isinstance(v, float):
        if v == int(v):
            return int(v)
        return v
    if isinstance(v, int):
        return v
    return str(v).strip()


def _detect_header_row(
    rows: list, keywords: frozenset[str], max_search: int = 15, min_keywords: int = 2
) -> int:
    """0-based index of the first row with at least ``min_keywords`` known headers."""
    for i, row in enumerate(rows[:max_search]):
        found = {
            str(_cell_value(row, c)).strip().lower()
            for c in range(len(row))
        } & keywords
        if len(found) >= min_keywords:
            return i
    return 0


def _column_count(row: Any) -> int:
    n = 0
    for c in range(len(row)):
        if _cell_value(row, c) != "":
            n = c + 1
    return max(n, 1)


class XlsxSourceAdapter:
    """
    Read .xlsx workbooks as one dict per row, keyed by the header row.

    options:
      sheet: 0-based sheet index (int) or sheet name (str). Default: first sheet.
      header_row: 0-based row index to use as header; disables auto-detect.
      header_keywords: lower-cased header tokens used by auto-detect.
    """

    def read(self, source_path: Path, options: dict[str, Any]) -> Iterator[dict[str, Any]]:
        with source_path.open("rb") as f:
            yield from self._read(f, options)

    def read_bytes(self, content: bytes, options: dict[str, Any]) -> Iterator[dict[str, Any]]:
        yield from self._read(io.BytesIO(content), options)

    def _read(self, stream: BinaryIO, options: dict[str, Any]) -> Iterator[dict[str, Any]]:
        wb = openpyxl.load_workbook(stream, read_only=True, data_only=True)
        try:
            sheet = self._get_sheet(wb, options)
            rows = list(sheet.iter_rows(min_row=1, max_row=_MAX_ROWS))
            if not rows:
                return

            if options.get("header_row") is not None:
                hi = int(options["header_row"])
            else:
                keywords = frozenset(
                    k.lower() for k in options.get("header_keywords", _DEFAULT_HEADER_KEYWORDS)
                )
                hi = _detect_header_row(rows, keywords)

            header_row = rows[hi]
            ncols = _column_count(header_row)
            headers: list[str] = []
            for c in range(ncols):
                key = _normalize_header_cell(_cell_value(header_row, c)) or f"Column_{c+1}"
                base = key
                cnt = 0
                while key in headers:
                    cnt += 1
                    key = f"{base}_{cnt}"
                headers.append(key)

            for row in rows[hi + 1 :]:
                vals = [_cell_value(row, c) for c in range(ncols)]
                if not any(v != "" for v in vals):
                    continue
                yield dict(zip(headers, vals))
        finally:
            wb.close()

    def _get_sheet(self, wb: Any, options: dict[str, Any]) -> Any:
        sheet_ref = options.get("sheet")
        if sheet_ref is None:
            return wb.worksheets[0]
        if isinstance(sheet_ref, int):
            return wb.worksheets[sheet_ref]
        return wb[sheet_ref]
