#!/usr/bin/env python
"""
Customer CSV Import

The header row names the columns: basic customer fields (first_name,
primary_email, ...) or custom field labels / ids. Rows that fail are reported
and skipped; the rest are committed.

Usage:
    python scripts/import_customers.py customers.csv
    python scripts/import_customers.py customers.csv --as admin@example.com
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.crm.importer import ImportResult, parse_import_csv
from app.crm.modules.customers.service import bulk_insert_customers
from scripts._db_utils import actor_by_email, resolve_db_url, script_session


def run_import(path: Path, *, actor_email: str | None = None, database_url: str | None = None) -> ImportResult:
    field_names, field_values = parse_import_csv(path.read_bytes())
    with script_session(resolve_db_url(database_url)) as s:
        actor = actor_by_email(s, actor_email)
        return bulk_insert_customers(s, field_names, field_values, user=actor)


def main() -> None:
    parser = argparse.ArgumentParser(description="Import customers from a CSV export")
    parser.add_argument("path", type=Path, help="CSV file")
    parser.add_argument("--as", dest="actor_email", help="Email of the acting user (owner + audit trail)")
    args = parser.parse_args()

    if not args.path.is_file():
        parser.error(f"{args.path} does not exist")

    result = run_import(args.path, actor_email=args.actor_email)
    print(f"Rows: {result.total}  created: {result.success}  failed: {result.failed}")
    for err in result.errors:
        print(f"  row {err.row_number}: {err.message}")
    if result.failed:
        sys.exit(1)


if __name__ == "__main__":
    main()
