"""Raw row to canonical record mapping (pure)."""

from coop_ingestion.mapping.normalizer import (
    RecordNormalizer,
    coerce_amount,
    is_instruction_row,
)

__all__ = ["RecordNormalizer", "coerce_amount", "is_instruction_row"]
