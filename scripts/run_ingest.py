#!/usr/bin/env python3
"""
Ingest a cooperative's period data, compute ratios, or inspect upload history.

Uses the active config (coop_config.get_active_config); DATABASE_URL or
--db-url selects the database.

Usage:
    python3 scripts/run_ingest.py init-db
    python3 scripts/run_ingest.py ingest --coop <id> --year <y> --month <m> \
        --module <module> (--file <path> | --erp) [--overwrite] [--with-ratios]
    python3 scripts/run_ingest.py ratios --coop <id> --year <y> --month <m> [--overwrite]
    python3 scripts/run_ingest.py history --coop <id> [--limit N]

Examples:
    # Upload a balance sheet workbook and compute the month's ratios
    python3 scripts/run_ingest.py ingest --coop coop-1 --year 2025 --month 6 \
        --module balance_sheet --file balance_junio.xlsx --with-ratios

    # Re-pull payments from the ERP, replacing what is stored
    python3 scripts/run_ingest.py ingest --coop coop-1 --year 2025 --month 6 \
        --module cash_flow --erp --overwrite
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

RAW_MODULE_CHOICES = ("balance_sheet", "cash_flow", "membership_fees", "ratios")


def _add_period_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--coop", required=True, help="Cooperative id.")
    parser.add_argument("--year", required=True, type=int)
    parser.add_argument("--month", required=True, type=int)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Cooperative period data ingestion.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--db-url",
        default=None,
        help="Database URL (default: DATABASE_URL env or the config file).",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Configuration YAML (default: COOP_FINANCE_CONFIG env or bundled defaults).",
    )
    parser.add_argument(
        "--actor-id",
        default=os.environ.get("RUN_INGEST_ACTOR_ID"),
        help="Actor recorded in upload history (default: RUN_INGEST_ACTOR_ID env).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create all tables.")

    ingest = sub.add_parser("ingest", help="Ingest one period unit.")
    _add_period_args(ingest)
    ingest.add_argument("--module", required=True, choices=RAW_MODULE_CHOICES)
    src = ingest.add_mutually_exclusive_group(required=True)
    src.add_argument("--file", type=Path, help="Spreadsheet to upload (.xlsx or .csv).")
    src.add_argument("--erp", action="store_true", help="Fetch from the configured ERP.")
    ingest.add_argument("--sheet", default=None, help="Worksheet name (default: first sheet).")
    ingest.add_argument("--overwrite", action="store_true", help="Replace existing rows.")
    ingest.add_argument(
        "--with-ratios",
        action="store_true",
        help="After a balance sheet ingest, compute the period's ratios.",
    )

    ratios = sub.add_parser("ratios", help="Compute ratios from stored balance entries.")
    _add_period_args(ratios)
    ratios.add_argument("--overwrite", action="store_true")

    history = sub.add_parser("history", help="List recent ingestion attempts.")
    history.add_argument("--coop", required=True)
    history.add_argument("--limit", type=int, default=20)

    return parser.parse_args(argv)


def _print_result(result) -> None:
    print(f"{result.status.value.upper()}: {result.message}")
    if result.error_code:
        print(f"  error_code: {result.error_code}")
    print(f"  records: {result.records_count}  rejected rows: {result.rejected_count}")
    for warning in result.warnings[:20]:
        print(f"  warning: {warning}")
    if len(result.warnings) > 20:
        print(f"  ... and {len(result.warnings) - 20} more warnings.")
    if result.ratios is not None:
        print("Ratios:")
        _print_result(result.ratios)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    # Lazy imports so we fail fast on args first
    from coop_config import get_active_config
    from coop_ingestion.domain.types import ErpQuery, FileUpload
    from coop_ingestion.services import IngestionOrchestrator
    from coop_kernel.db.engine import (
        create_tables,
        get_session_factory,
        init_engine_from_url,
    )
    from coop_kernel.exceptions import CoopFinanceError

    try:
        config = get_active_config(args.config)
    except (OSError, KeyError, ValueError) as e:
        print(f"ERROR: Failed to load config: {e}", file=sys.stderr)
        return 1

    db = config.database
    try:
        init_engine_from_url(
            args.db_url or db.url,
            echo=db.echo,
            pool_size=db.pool_size,
            max_overflow=db.max_overflow,
        )
    except Exception as e:
        print(f"ERROR: Database init failed: {e}", file=sys.stderr)
        return 1

    if args.command == "init-db":
        create_tables()
        print("Tables created.")
        return 0

    orchestrator = IngestionOrchestrator(get_session_factory(), config)

    if args.command == "history":
        for h in orchestrator.list_history(args.coop, args.limit):
            print(
                f"{h.recorded_at.isoformat()}  {h.month:>2}/{h.year}  {h.module.value:<16} "
                f"{h.status.value:<8} {h.records_count:>6}  {h.error_message or ''}"
            )
        return 0

    try:
        if args.command == "ratios":
            result = orchestrator.compute_ratios(
                args.coop, args.year, args.month,
                overwrite=args.overwrite, actor_id=args.actor_id,
            )
        else:
            if args.erp:
                source = ErpQuery()
            else:
                path = args.file.resolve()
                if not path.is_file():
                    print(f"ERROR: File not found: {path}", file=sys.stderr)
                    return 1
                source = FileUpload(path.read_bytes(), path.name, args.sheet)
            result = orchestrator.ingest(
                args.coop, args.year, args.month, args.module, source,
                overwrite=args.overwrite,
                actor_id=args.actor_id,
                compute_ratios_after_balance=args.with_ratios,
            )
    except CoopFinanceError as e:
        print(f"ERROR [{e.code}]: {e}", file=sys.stderr)
        return 1

    _print_result(result)
    return 0 if result.ok else 2


if __name__ == "__main__":
    sys.exit(main())
