from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Session

from app.crm.audit import record_event
from app.crm.models import User
from app.crm.modules.internal_notes.models import InternalNote

CONTENT_TYPE = "customer"


def add_internal_note(s: Session, *, customer_id: int, content: str, user: User | None) -> InternalNote:
    text = (content or "").strip()
    if not text:
        raise ValueError("Note text is required.")
    now = datetime.utcnow()
    n = InternalNote(
        content_type=CONTENT_TYPE,
        content_type_id=customer_id,
        content=text,
        created_user_id=user.id if user else None,
        created_at=now,
        updated_at=now,
    )
    s.add(n)
    s.flush()
    record_event(
        s,
        actor=user,
        action="internal_note.create",
        entity_type="InternalNote",
        entity_id=str(n.id),
        metadata={"customer_id": customer_id},
    )
    return n


def edit_internal_note(s: Session, note: InternalNote, *, content: str, user: User | None) -> InternalNote:
    text = (content or "").strip()
    if not text:
        raise ValueError("Note text is required.")
    before = {"content": note.content}
    note.content = text
    note.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action="internal_note.update",
        entity_type="InternalNote",
        entity_id=str(note.id),
        metadata={"before": before, "after": {"content": note.content}, "customer_id": note.content_type_id},
    )
    return note


def list_customer_internal_notes(s: Session, customer_id: int) -> list[InternalNote]:
    return (
        s.query(InternalNote)
        .filter(InternalNote.content_type == CONTENT_TYPE, InternalNote.content_type_id == customer_id)
        .order_by(InternalNote.created_at.desc(), InternalNote.id.desc())
        .all()
    )


def remove_customer_internal_notes(s: Session, customer_id: int) -> int:
    return (
        s.query(InternalNote)
        .filter(InternalNote.content_type == CONTENT_TYPE, InternalNote.content_type_id == customer_id)
        .delete()
    )


def change_customer(s: Session, new_customer_id: int, old_customer_ids: list[int]) -> int:
    if not old_customer_ids:
        return 0
    return (
        s.query(InternalNote)
        .filter(InternalNote.content_type == CONTENT_TYPE, InternalNote.content_type_id.in_(old_customer_ids))
        .update({"content_type_id": new_customer_id, "updated_at": datetime.utcnow()})
    )
