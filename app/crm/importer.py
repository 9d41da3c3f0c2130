"""
Generic column-mapped import.

A spreadsheet export arrives as a header row plus value rows. Each header is
either a basic field of the target record (listed in `basic_infos`) or the
label / id of a custom field defined for the content type. Every row becomes
one `create(s, doc, user)` call inside its own SAVEPOINT, so a bad row never
poisons the rows around it.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.crm.models import User
from app.crm.modules.fields.service import find_field


@dataclass(frozen=True)
class ImportRowError:
    row_number: int  # 1 = header
    message: str


@dataclass
class ImportResult:
    total: int = 0
    ids: list[int] = field(default_factory=list)
    errors: list[ImportRowError] = field(default_factory=list)

    @property
    def success(self) -> int:
        return len(self.ids)

    @property
    def failed(self) -> int:
        return len(self.errors)


def parse_import_csv(file_bytes: bytes) -> tuple[list[str], list[list[str]]]:
    """
    Split a CSV export into (field_names, field_values).
    Fully empty rows are dropped; short rows are padded with "".
    """
    text = file_bytes.decode("utf-8-sig", errors="replace")
    reader = csv.reader(io.StringIO(text))
    try:
        header = next(reader)
    except StopIteration:
        raise ValueError("CSV has no header row.")
    field_names = [h.strip() for h in header]
    if not any(field_names):
        raise ValueError("CSV has no header row.")

    rows: list[list[str]] = []
    for raw in reader:
        if not raw or all((v or "").strip() == "" for v in raw):
            continue
        rows.append(raw + [""] * (len(field_names) - len(raw)))
    return field_names, rows


def _resolve_columns(
    s: Session, field_names: Sequence[str], basic_infos: Sequence[str], content_type: str
) -> tuple[list[tuple[str, str]], list[ImportRowError]]:
    columns: list[tuple[str, str]] = []
    errors: list[ImportRowError] = []
    for name in field_names:
        name = (name or "").strip()
        if name in basic_infos:
            columns.append(("basic", name))
            continue
        f = find_field(s, content_type, name)
        if f is None:
            errors.append(ImportRowError(1, f"Bad column name {name}"))
            continue
        columns.append(("custom", str(f.id)))
    return columns, errors


def bulk_insert(
    s: Session,
    *,
    field_names: Sequence[str],
    field_values: Sequence[Sequence[Any]],
    user: User | None,
    basic_infos: Sequence[str],
    content_type: str,
    create: Callable[..., Any],
) -> ImportResult:
    """
    Create one record per row of `field_values`.

    Column names are validated up front: any unknown column aborts the whole
    import with one error per bad column and nothing is created. After that,
    row failures are collected and the import carries on.
    """
    result = ImportResult(total=len(field_values))

    columns, errors = _resolve_columns(s, field_names, basic_infos, content_type)
    if errors:
        result.errors.extend(errors)
        return result

    for idx, row in enumerate(field_values, start=2):  # 1 = header
        if len(row) > len(columns):
            result.errors.append(ImportRowError(idx, f"Expected {len(columns)} columns, got {len(row)}."))
            continue

        doc: dict[str, Any] = {"custom_fields_data": {}}
        for (kind, key), value in zip(columns, row):
            if isinstance(value, str):
                value = value.strip()
            if kind == "basic":
                if value not in (None, ""):
                    doc[key] = value
            else:
                doc["custom_fields_data"][key] = value

        try:
            with s.begin_nested():
                obj = create(s, doc, user)
        except (ValueError, IntegrityError) as e:
            result.errors.append(ImportRowError(idx, str(e)))
            continue
        result.ids.append(obj.id)

    return result
