"""
coop_ingestion -- period data ingestion for cooperative finance.

Sources (uploaded spreadsheets, ERP JSON-RPC) feed the Record Normalizer;
the Ingestion Orchestrator replaces one (cooperative, year, month, module)
unit atomically and records the outcome in the Upload History ledger.
"""
