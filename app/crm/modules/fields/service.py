from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any

from sqlalchemy.orm import Session

from app.crm.errors import CrmError
from app.crm.modules.fields.models import Field

VALID_VALIDATIONS = (None, "email", "number", "date")

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class FieldValidationError(CrmError):
    """A custom field value does not match its definition."""

    def __init__(self, field: Field, message: str):
        super().__init__(f"{field.text}: {message}")
        self.field_id = field.id


def create_field(
    s: Session,
    *,
    text: str,
    content_type: str = "customer",
    validation: str | None = None,
    is_required: bool = False,
    order: int = 0,
) -> Field:
    text = (text or "").strip()
    if not text:
        raise ValueError("Field text is required.")
    if validation not in VALID_VALIDATIONS:
        raise ValueError(f"Invalid validation {validation!r}. Must be one of: email, number, date")
    f = Field(
        content_type=content_type,
        text=text,
        validation=validation,
        is_required=is_required,
        order=order,
    )
    s.add(f)
    s.flush()
    return f


def list_fields(s: Session, content_type: str) -> list[Field]:
    return (
        s.query(Field)
        .filter(Field.content_type == content_type)
        .order_by(Field.order.asc(), Field.id.asc())
        .all()
    )


def find_field(s: Session, content_type: str, name: str) -> Field | None:
    """Resolve an import column to a field, by label first and then by id."""
    name = (name or "").strip()
    if not name:
        return None
    f = (
        s.query(Field)
        .filter(Field.content_type == content_type, Field.text == name)
        .order_by(Field.id.asc())
        .first()
    )
    if f or not name.isdigit():
        return f
    f = s.get(Field, int(name))
    if f and f.content_type == content_type:
        return f
    return None


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def clean(field: Field, value: Any) -> Any:
    """
    Validate one value against its field definition and coerce it to the
    declared type. Coerced values are JSON-serializable and cleaning them
    again returns them unchanged.
    """
    if _is_empty(value):
        if field.is_required:
            raise FieldValidationError(field, "required")
        return None

    if field.validation == "number":
        if isinstance(value, bool):
            raise FieldValidationError(field, "Invalid number")
        if isinstance(value, (int, float)):
            return value
        raw = str(value).strip()
        try:
            return int(raw)
        except ValueError:
            pass
        try:
            return float(raw)
        except ValueError:
            raise FieldValidationError(field, "Invalid number")

    if field.validation == "date":
        if isinstance(value, datetime):
            return value.date().isoformat()
        if isinstance(value, date):
            return value.isoformat()
        raw = str(value).strip()
        try:
            return date.fromisoformat(raw[:10]).isoformat()
        except ValueError:
            raise FieldValidationError(field, "Invalid date")

    if field.validation == "email":
        raw = str(value).strip().lower()
        if not _EMAIL_RE.match(raw):
            raise FieldValidationError(field, "Invalid email")
        return raw

    if isinstance(value, str):
        return value.strip()
    return value


def clean_multi(s: Session, data: dict[str, Any] | None = None) -> dict[str, Any]:
    """
    Clean a custom field payload keyed by field id.

    Unknown ids are dropped. Keys in the result are strings so the payload
    round-trips through JSON columns unchanged.
    """
    if not data:
        return {}

    ids: list[int] = []
    for key in data.keys():
        try:
            ids.append(int(key))
        except (TypeError, ValueError):
            continue
    if not ids:
        return {}

    fields = {f.id: f for f in s.query(Field).filter(Field.id.in_(ids)).all()}

    cleaned: dict[str, Any] = {}
    for key, value in data.items():
        try:
            field = fields.get(int(key))
        except (TypeError, ValueError):
            field = None
        if field is None:
            continue
        cleaned[str(field.id)] = clean(field, value)
    return cleaned
