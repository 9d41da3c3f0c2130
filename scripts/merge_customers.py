#!/usr/bin/env python
"""
Customer Merge Script

Folds several customer records into one new record. Tags, companies, emails
and phones are unioned; activity logs, conversations, engage deliveries and
internal notes move to the new record. All-or-nothing: any failure rolls the
whole merge back.

Usage:
    python scripts/merge_customers.py --ids 12,15 --fields '{"first_name": "Ada", "primary_email": "ada@example.com"}'
    python scripts/merge_customers.py --ids 12,15 --fields '{}' --as admin@example.com

Environment:
    DATABASE_URL: database connection string
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.crm.modules.customers.service import merge_customers
from scripts._db_utils import actor_by_email, resolve_db_url, script_session


def parse_ids(raw: str) -> list[int]:
    ids = [int(p) for p in raw.replace(" ", "").split(",") if p]
    if not ids:
        raise argparse.ArgumentTypeError("at least one customer id is required")
    return ids


def run_merge(customer_ids: list[int], fields: dict, *, actor_email: str | None = None, database_url: str | None = None) -> int:
    with script_session(resolve_db_url(database_url)) as s:
        actor = actor_by_email(s, actor_email)
        survivor = merge_customers(s, customer_ids, fields, user=actor)
        survivor_id = survivor.id
    return survivor_id


def main() -> None:
    parser = argparse.ArgumentParser(description="Merge customer records")
    parser.add_argument("--ids", type=parse_ids, required=True, help="Comma-separated customer ids to merge")
    parser.add_argument("--fields", default="{}", help="JSON object with the merged customer's fields")
    parser.add_argument("--as", dest="actor_email", help="Email of the acting user (audit trail)")
    args = parser.parse_args()

    try:
        fields = json.loads(args.fields)
    except json.JSONDecodeError as e:
        parser.error(f"--fields is not valid JSON: {e}")
    if not isinstance(fields, dict):
        parser.error("--fields must be a JSON object")

    survivor_id = run_merge(args.ids, fields, actor_email=args.actor_email)
    print(f"Merged {', '.join(str(i) for i in args.ids)} into customer {survivor_id}.")


if __name__ == "__main__":
    main()
