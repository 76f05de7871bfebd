"""Pure value types for the ingestion layer."""
