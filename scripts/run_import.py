#!/usr/bin/env python3
"""
Import a tabular file into an entity: map -> enrich -> validate -> commit.

Uses the entity definitions under intake_config/entities. The suggested
mapping (stored mapping for these columns, else auto-matched columns) is
confirmed automatically; when rows collide under the entity's key, the
proposed key fields are accepted.

Usage:
    python3 scripts/run_import.py --entity <key> --file <path> [options]

Examples:
    # Append invoice lines to a SQLite database
    python3 scripts/run_import.py --entity invoice_items --file costs.csv --db sqlite:///intake.db

    # Replace all systems rows
    python3 scripts/run_import.py --entity systems --file systems.json --mode overwrite

    # Probe the sheet that would be read (row count, columns, sample) without importing
    python3 scripts/run_import.py --entity invoice_items --file costs.csv --probe-only

    # Transforms offered per field
    python3 scripts/run_import.py --entity invoice_items --list-transforms
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

DB_URL = "sqlite:///intake.db"


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run the tabular import pipeline for one entity.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--entity",
        required=True,
        help="Entity key (a file name under intake_config/entities, e.g. invoice_items).",
    )
    parser.add_argument(
        "--file",
        type=Path,
        default=None,
        help="Path to source file (CSV or JSON).",
    )
    parser.add_argument(
        "--mode",
        choices=("append", "overwrite"),
        default="append",
        help="append adds rows; overwrite clears the entity first (default: append).",
    )
    parser.add_argument(
        "--db",
        default=DB_URL,
        help=f"Database URL for settings and rows (default: {DB_URL!r}).",
    )
    parser.add_argument(
        "--keyword",
        default=None,
        help="Sheet name keyword (default: the entity's sheet keyword).",
    )
    parser.add_argument(
        "--probe-only",
        action="store_true",
        help="Show row count, columns and sample rows of the selected sheet and exit.",
    )
    parser.add_argument(
        "--list-transforms",
        action="store_true",
        help="List the transforms offered for each field of the entity and exit.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    # Lazy imports so we fail fast on args first
    from intake_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
    from intake_kernel.exceptions import BatchValidationError, IntakeError
    from intake_pipeline.adapters import decoder_for, load_source, probe_source
    from intake_pipeline.mapping import DEFAULT_CATALOG
    from intake_pipeline.services import ImportEventHub, load_import_target, run_import
    from intake_pipeline.stores import MappingStore, SqlAlchemyKeyValueStore, SqlAlchemyRowStorage

    try:
        target = load_import_target(args.entity)
    except FileNotFoundError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    if args.list_transforms:
        for field in target.schema:
            transforms = DEFAULT_CATALOG.list_transforms(field.key)
            if transforms:
                print(f"{field.key}: " + ", ".join(tid for tid, _ in transforms))
        return 0

    if args.file is None:
        print("ERROR: --file is required", file=sys.stderr)
        return 1
    source_path = args.file.resolve()
    if not source_path.is_file():
        print(f"ERROR: File not found: {source_path}", file=sys.stderr)
        return 1

    keyword = args.keyword or target.sheet_keyword
    decoder = decoder_for(source_path)

    if args.probe_only:
        try:
            probe = probe_source(decoder, source_path, keyword)
        except IntakeError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return 1
        print(f"Sheet: {probe.sheet_name} (of {list(probe.sheet_names)})")
        print(f"Rows: {probe.row_count}")
        print(f"Columns: {list(probe.columns)}")
        print("Sample (first 3):")
        for i, row in enumerate(probe.sample_rows[:3], 1):
            print(f"  {i}: {row}")
        return 0

    try:
        init_engine_from_url(args.db)
        create_tables()
    except Exception as e:
        print(f"ERROR: Database init failed: {e}", file=sys.stderr)
        return 1

    factory = get_session_factory()
    store = MappingStore(SqlAlchemyKeyValueStore(factory))
    storage = SqlAlchemyRowStorage(factory)
    events = ImportEventHub()
    events.subscribe(lambda event: print(f"  event: {event}"))

    try:
        sheet = load_source(decoder, source_path, keyword)
        print(f"Importing {len(sheet.rows)} rows from sheet {sheet.name!r} into {target.entity_key} ({args.mode})...")
        outcome = run_import(sheet, target, store, storage, mode=args.mode, events=events)
    except BatchValidationError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        for message in e.errors[:20]:
            print(f"  {message}", file=sys.stderr)
        if len(e.errors) > 20:
            print(f"  ... and {len(e.errors) - 20} more.", file=sys.stderr)
        return 2
    except IntakeError as e:
        print(f"ERROR [{e.code}]: {e}", file=sys.stderr)
        return 1

    print(f"  Inserted {outcome.inserted} rows (batch_id={outcome.batch_id})")
    if outcome.cleared is not None:
        print(f"  Cleared {outcome.cleared} existing rows")
    print(f"  Key fields: {', '.join(outcome.key_fields)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
