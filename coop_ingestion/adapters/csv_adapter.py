"""
CSV source adapter.

Uses csv.DictReader.  Configurable: delimiter, encoding, skip_rows.  Handles
BOM via utf-8-sig when encoding is utf-8.  Cells beyond the header width are
dropped.
"""

from __future__ import annotations

import csv
import io
from pathlib import Path
from typing import Any, Iterator, TextIO


def _get_encoding(options: dict[str, Any]) -> str:
    enc = options.get("encoding", "utf-8")
    if enc.lower() == "utf-8":
        return "utf-8-sig"  # Strip BOM if present
    return enc


def _rows(f: TextIO, options: dict[str, Any]) -> Iterator[dict[str, Any]]:
    for _ in range(int(options.get("skip_rows", 0))):
        next(f, None)
    reader = csv.DictReader(f, delimiter=options.get("delimiter", ","))
    for row in reader:
        cells = {
            k.strip(): (v.strip() if isinstance(v, str) else "")
            for k, v in row.items()
            if k is not None
        }
        if not any(cells.values()):
            continue
        yield cells


class CsvSourceAdapter:
    """Read CSV files as one dict per row."""

    def read(self, source_path: Path, options: dict[str, Any]) -> Iterator[dict[str, Any]]:
        with source_path.open("r", encoding=_get_encoding(options), newline="") as f:
            yield from _rows(f, options)

    def read_bytes(self, content: bytes, options: dict[str, Any]) -> Iterator[dict[str, Any]]:
        text = content.decode(_get_encoding(options))
        yield from _rows(io.StringIO(text, newline=""), options)
