"""
Source adapter protocol.

Contract:
    ``read()`` yields one dict per data row of a file on disk;
    ``read_bytes()`` does the same for an in-memory upload buffer.
    Keys are the header cells as written in the file; values are strings or
    numbers.  Adapters do no mapping and raise the parser's own exceptions;
    ``FileSource`` turns those into ``SourceUnavailableError``.

Architecture: coop_ingestion/adapters.  File I/O only, no DB or kernel imports.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterator, Protocol, runtime_checkable


@runtime_checkable
class SourceAdapter(Protocol):
    """Protocol for reading spreadsheet-like sources into row dicts."""

    def read(self, source_path: Path, options: dict[str, Any]) -> Iterator[dict[str, Any]]:
        ...

    def read_bytes(self, content: bytes, options: dict[str, Any]) -> Iterator[dict[str, Any]]:
        ...
