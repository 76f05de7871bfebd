"""Source adapters for spreadsheet uploads (file I/O only, no DB)."""

from coop_ingestion.adapters.base import SourceAdapter
from coop_ingestion.adapters.csv_adapter import CsvSourceAdapter
from coop_ingestion.adapters.file_source import FileSource, supported_extensions
from coop_ingestion.adapters.xlsx_adapter import XlsxSourceAdapter

__all__ = [
    "SourceAdapter",
    "CsvSourceAdapter",
    "FileSource",
    "XlsxSourceAdapter",
    "supported_extensions",
]
