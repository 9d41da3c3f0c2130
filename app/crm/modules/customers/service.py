"""
CUSTOMER SERVICE
================

Create / update / merge / remove for the Customer aggregate.

IDENTITY INVARIANT:
- Among customers not being excluded, a twitter id, facebook id, primary
  email or primary phone belongs to at most one customer.
- A primary email may not also sit in anyone's secondary `emails` list
  (same for phones).

check_duplication() enforces this before every write. Unique constraints on
the four primary columns back it up; a concurrent writer that slips past the
check is caught on flush and reported as the same DuplicateFieldError.

UNIT OF WORK:
Functions here flush but never commit. Run removal and merge inside one
session_scope() (or one request) so a failing cascade rolls everything back.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.crm.audit import record_event
from app.crm.errors import DuplicateFieldError, NotFoundError
from app.crm.importer import ImportResult, bulk_insert
from app.crm.models import User
from app.crm.modules.activity_logs import service as activity_logs
from app.crm.modules.companies.models import Company
from app.crm.modules.companies.service import create_company
from app.crm.modules.conversations import service as conversations
from app.crm.modules.customers.models import Customer, CustomerContact
from app.crm.modules.engage_messages import service as engage_messages
from app.crm.modules.fields.service import clean_multi
from app.crm.modules.internal_notes import service as internal_notes

logger = logging.getLogger(__name__)

CUSTOMER_FIELDS = (
    "first_name",
    "last_name",
    "primary_email",
    "emails",
    "primary_phone",
    "phones",
    "owner_id",
    "position",
    "department",
    "lead_status",
    "lifecycle_state",
    "has_authority",
    "description",
    "do_not_disturb",
    "links",
    "is_user",
    "integration_id",
    "tag_ids",
    "company_ids",
    "custom_fields_data",
    "messenger_data",
    "twitter_data",
    "facebook_data",
    "location",
    "visitor_contact_info",
    "url_visits",
)

# Columns a spreadsheet import may fill directly; anything else must be a custom field.
CUSTOMER_BASIC_INFOS = (
    "first_name",
    "last_name",
    "primary_email",
    "primary_phone",
    "position",
    "department",
    "lead_status",
    "lifecycle_state",
    "has_authority",
    "description",
    "do_not_disturb",
)

_TEXT_FIELDS = (
    "first_name",
    "last_name",
    "primary_email",
    "primary_phone",
    "position",
    "department",
    "lead_status",
    "lifecycle_state",
    "has_authority",
    "description",
    "do_not_disturb",
    "integration_id",
)


def _clean_text(value: Any) -> str | None:
    if value is None:
        return None
    v = str(value).strip()
    return v or None


def _unique(values: Iterable[Any]) -> list[Any]:
    """Drop blanks and repeats, keeping first-seen order."""
    return list(dict.fromkeys(v for v in values if v not in (None, "")))


def _identity_id(data: dict | None) -> str | None:
    if not data:
        return None
    return _clean_text(data.get("id"))


def _normalize(doc: dict[str, Any]) -> dict[str, Any]:
    unknown = sorted(set(doc) - set(CUSTOMER_FIELDS))
    if unknown:
        raise ValueError(f"Unknown customer field(s): {', '.join(unknown)}")
    out = dict(doc)
    for key in _TEXT_FIELDS:
        if key in out:
            out[key] = _clean_text(out[key])
    return out


def _apply_fields(c: Customer, doc: dict[str, Any]) -> None:
    for key, value in doc.items():
        if key == "twitter_data":
            c.twitter_data = value or None
            c.twitter_id = _identity_id(value)
        elif key == "facebook_data":
            c.facebook_data = value or None
            c.facebook_id = _identity_id(value)
        elif key in ("emails", "phones"):
            setattr(c, key, _unique(_clean_text(v) for v in (value or [])))
        elif key in ("tag_ids", "company_ids"):
            setattr(c, key, _unique(value or []))
        elif key == "is_user":
            c.is_user = bool(value)
        else:
            setattr(c, key, value)


def _excluding(query, ids_to_exclude: int | Iterable[int] | None):
    if ids_to_exclude is None:
        return query
    if isinstance(ids_to_exclude, (list, tuple, set, frozenset)):
        return query.filter(Customer.id.notin_(list(ids_to_exclude)))
    return query.filter(Customer.id != ids_to_exclude)


def _taken(s: Session, ids_to_exclude, *criteria) -> bool:
    q = _excluding(s.query(Customer.id).filter(*criteria), ids_to_exclude)
    return q.first() is not None


def _taken_as_contact(s: Session, ids_to_exclude, kind: str, value: str) -> bool:
    q = (
        s.query(Customer.id)
        .join(CustomerContact, CustomerContact.customer_id == Customer.id)
        .filter(CustomerContact.kind == kind, CustomerContact.value == value)
    )
    return _excluding(q, ids_to_exclude).first() is not None


def check_duplication(
    s: Session,
    customer_fields: dict[str, Any],
    ids_to_exclude: int | Iterable[int] | None = None,
) -> None:
    """
    Raise DuplicateFieldError if an identity field of `customer_fields` is
    already held by another customer.

    Checks run twitter, facebook, email, phone and stop at the first hit.
    `ids_to_exclude` is a single id (excluded with !=) or a collection of ids
    (excluded with NOT IN). Read-only.
    """
    twitter_id = _identity_id(customer_fields.get("twitter_data"))
    if twitter_id and _taken(s, ids_to_exclude, Customer.twitter_id == twitter_id):
        raise DuplicateFieldError("twitter")

    facebook_id = _identity_id(customer_fields.get("facebook_data"))
    if facebook_id and _taken(s, ids_to_exclude, Customer.facebook_id == facebook_id):
        raise DuplicateFieldError("facebook")

    email = _clean_text(customer_fields.get("primary_email"))
    if email:
        if _taken(s, ids_to_exclude, Customer.primary_email == email):
            raise DuplicateFieldError("email")
        if _taken_as_contact(s, ids_to_exclude, "email", email):
            raise DuplicateFieldError("email")

    phone = _clean_text(customer_fields.get("primary_phone"))
    if phone:
        if _taken(s, ids_to_exclude, Customer.primary_phone == phone):
            raise DuplicateFieldError("phone")
        if _taken_as_contact(s, ids_to_exclude, "phone", phone):
            raise DuplicateFieldError("phone")


def _write_checked(s: Session, c: Customer, doc: dict[str, Any], ids_to_exclude=None, **stamps: Any) -> None:
    """
    Apply `doc` (plus `stamps`) to `c` and flush, all inside one SAVEPOINT.

    Changes are made after the SAVEPOINT opens so a unique-constraint hit
    rolls back only this write. Such a hit means another writer took an
    identity value after our check; re-run the check to report which.
    """
    try:
        with s.begin_nested():
            _apply_fields(c, doc)
            for key, value in stamps.items():
                setattr(c, key, value)
            s.add(c)
            s.flush()
    except IntegrityError:
        check_duplication(s, doc, ids_to_exclude)
        raise


def get_customer_by_id(s: Session, customer_id: int) -> Customer | None:
    return s.query(Customer).filter(Customer.id == customer_id).one_or_none()


def get_customer(s: Session, customer_id: int) -> Customer:
    c = get_customer_by_id(s, customer_id)
    if c is None:
        raise NotFoundError("Customer", customer_id)
    return c


def _refetch(s: Session, c: Customer) -> Customer:
    customer_id = c.id
    s.flush()
    s.expire(c)
    return get_customer(s, customer_id)


def list_customers(s: Session, *, q: str | None = None, limit: int = 50, offset: int = 0) -> list[Customer]:
    query = s.query(Customer)
    q = (q or "").strip()
    if q:
        like = f"%{q}%"
        query = query.filter(
            or_(
                Customer.first_name.ilike(like),
                Customer.last_name.ilike(like),
                Customer.primary_email.ilike(like),
                Customer.primary_phone.ilike(like),
            )
        )
    return query.order_by(Customer.created_at.desc(), Customer.id.desc()).offset(offset).limit(limit).all()


def create_customer(s: Session, doc: dict[str, Any], user: User | None = None) -> Customer:
    doc = _normalize(doc)
    check_duplication(s, doc)

    if not doc.get("owner_id") and user:
        doc["owner_id"] = user.id

    doc["custom_fields_data"] = clean_multi(s, doc.get("custom_fields_data") or {})

    now = datetime.utcnow()
    c = Customer()
    _write_checked(s, c, doc, created_at=now, updated_at=now)

    activity_logs.add_activity_log(s, customer_id=c.id, action="customer.create", user=user)
    record_event(
        s,
        actor=user,
        action="customer.create",
        entity_type="Customer",
        entity_id=str(c.id),
        metadata={"primary_email": c.primary_email, "primary_phone": c.primary_phone},
    )
    return c


def update_customer(s: Session, customer_id: int, doc: dict[str, Any], *, user: User | None = None) -> Customer:
    """
    Partial update. Only keys present in `doc` are written.
    Returns the record as re-read from the session, not the input.
    """
    doc = _normalize(doc)
    check_duplication(s, doc, customer_id)

    if doc.get("custom_fields_data"):
        doc["custom_fields_data"] = clean_multi(s, doc["custom_fields_data"])

    c = get_customer(s, customer_id)
    before = {k: getattr(c, k) for k in doc}
    _write_checked(s, c, doc, customer_id, updated_at=datetime.utcnow())

    fields_changed = sorted(k for k in doc if before[k] != getattr(c, k))
    record_event(
        s,
        actor=user,
        action="customer.update",
        entity_type="Customer",
        entity_id=str(customer_id),
        metadata={"fields_changed": fields_changed},
    )
    return _refetch(s, c)


def mark_customer_as_active(s: Session, customer_id: int) -> Customer:
    c = get_customer(s, customer_id)
    data = dict(c.messenger_data or {})
    data["is_active"] = True
    c.messenger_data = data
    return _refetch(s, c)


def mark_customer_as_not_active(s: Session, customer_id: int) -> Customer:
    c = get_customer(s, customer_id)
    data = dict(c.messenger_data or {})
    data["is_active"] = False
    data["last_seen_at"] = datetime.utcnow().isoformat()
    c.messenger_data = data
    return _refetch(s, c)


def add_company(s: Session, customer_id: int, *, name: str, website: str | None = None) -> Company:
    """Create a company and add it to the customer's company set."""
    c = get_customer(s, customer_id)
    company = create_company(s, {"name": name, "website": website})

    company_ids = list(c.company_ids or [])
    if company.id not in company_ids:
        company_ids.append(company.id)
        c.company_ids = company_ids
    s.flush()
    return company


def update_companies(s: Session, customer_id: int, company_ids: list[int]) -> Customer:
    """Replace the company list as given. De-duplication is the caller's job."""
    c = get_customer(s, customer_id)
    c.company_ids = list(company_ids or [])
    return _refetch(s, c)


def remove_customer(s: Session, customer_id: int, *, user: User | None = None) -> None:
    """
    Delete a customer and everything that hangs off it.

    Cascades run one by one and any failure propagates as-is, leaving the
    customer row in place. Within a single session_scope() the earlier
    cascades are rolled back with it.
    """
    c = get_customer(s, customer_id)

    removed = {
        "activity_logs": activity_logs.remove_customer_activity_log(s, customer_id),
        "conversations": conversations.remove_customer_conversations(s, customer_id),
        "engage_messages": engage_messages.remove_customer_engages(s, customer_id),
        "internal_notes": internal_notes.remove_customer_internal_notes(s, customer_id),
    }

    s.delete(c)
    s.flush()

    record_event(
        s,
        actor=user,
        action="customer.remove",
        entity_type="Customer",
        entity_id=str(customer_id),
        metadata=removed,
    )
    logger.info("Removed customer %s (%s)", customer_id, removed)


def merge_customers(
    s: Session,
    customer_ids: list[int],
    customer_fields: dict[str, Any],
    *,
    user: User | None = None,
) -> Customer:
    """
    Fold `customer_ids` into one new customer built from `customer_fields`.

    - Identity check runs first, ignoring the customers being merged.
    - Tags, companies, emails and phones are unioned across all inputs.
    - integration_id comes from the last input that exists.
    - Inputs are deleted as they are folded; the survivor is created after.
    - Activity logs, conversations, engage deliveries and internal notes of
      every input id are repointed to the survivor.
    """
    customer_ids = list(customer_ids or [])
    if not customer_ids:
        raise ValueError("At least one customer id is required to merge.")

    fields = _normalize(customer_fields)
    check_duplication(s, fields, customer_ids)

    tag_ids: list[Any] = []
    company_ids: list[Any] = []
    emails: list[str] = []
    phones: list[str] = []

    if fields.get("primary_email"):
        emails.append(fields["primary_email"])
    if fields.get("primary_phone"):
        phones.append(fields["primary_phone"])

    merged_ids: list[int] = []
    for customer_id in customer_ids:
        c = get_customer_by_id(s, customer_id)
        if c is None:
            logger.warning("Merge skipped missing customer %s", customer_id)
            continue

        fields["integration_id"] = c.integration_id

        tag_ids.extend(c.tag_ids or [])
        company_ids.extend(c.company_ids or [])
        emails.extend(c.emails)
        phones.extend(c.phones)

        s.delete(c)
        s.flush()
        merged_ids.append(customer_id)

    fields.update(
        tag_ids=_unique(tag_ids),
        company_ids=_unique(company_ids),
        emails=_unique(emails),
        phones=_unique(phones),
    )
    customer = create_customer(s, fields, user)

    repointed = {
        "activity_logs": activity_logs.change_customer(s, customer.id, customer_ids),
        "conversations": conversations.change_customer(s, customer.id, customer_ids),
        "engage_messages": engage_messages.change_customer(s, customer.id, customer_ids),
        "internal_notes": internal_notes.change_customer(s, customer.id, customer_ids),
    }

    activity_logs.add_activity_log(
        s,
        customer_id=customer.id,
        action="customer.merge",
        content=f"Merged customers {', '.join(str(i) for i in merged_ids)}",
        user=user,
    )
    record_event(
        s,
        actor=user,
        action="customer.merge",
        entity_type="Customer",
        entity_id=str(customer.id),
        metadata={"merged_customer_ids": merged_ids, "repointed": repointed},
    )
    logger.info("Merged customers %s into %s", merged_ids, customer.id)
    return customer


def bulk_insert_customers(
    s: Session,
    field_names: list[str],
    field_values: list[list[Any]],
    *,
    user: User | None = None,
) -> ImportResult:
    """Import customers from spreadsheet columns (basic fields + custom field labels)."""
    result = bulk_insert(
        s,
        field_names=field_names,
        field_values=field_values,
        user=user,
        basic_infos=CUSTOMER_BASIC_INFOS,
        content_type="customer",
        create=create_customer,
    )
    record_event(
        s,
        actor=user,
        action="customer.import",
        entity_type="Customer",
        metadata={"total": result.total, "success": result.success, "failed": result.failed},
    )
    logger.info("Customer import: %s created, %s failed", result.success, result.failed)
    return result
