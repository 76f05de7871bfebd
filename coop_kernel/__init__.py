"""
coop_kernel -- persistence, domain values, errors and logging for the
cooperative period ingestion engine.
"""
