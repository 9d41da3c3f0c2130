from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Session

from app.crm.models import User
from app.crm.modules.engage_messages.models import EngageMessage, EngageMessageCustomer

VALID_METHODS = ("email", "messenger")


def create_engage_message(
    s: Session,
    *,
    title: str,
    customer_ids: list[int],
    method: str = "email",
    content: str | None = None,
    user: User | None = None,
) -> EngageMessage:
    title = (title or "").strip()
    if not title:
        raise ValueError("Engage message title is required.")
    if method not in VALID_METHODS:
        raise ValueError(f"Invalid method {method!r}. Must be one of: {', '.join(VALID_METHODS)}")
    msg = EngageMessage(
        title=title,
        method=method,
        content=content,
        from_user_id=user.id if user else None,
        created_at=datetime.utcnow(),
    )
    for cid in dict.fromkeys(customer_ids):
        msg.deliveries.append(EngageMessageCustomer(customer_id=cid))
    s.add(msg)
    s.flush()
    return msg


def mark_received(s: Session, engage_message_id: int, customer_id: int) -> EngageMessageCustomer | None:
    d = (
        s.query(EngageMessageCustomer)
        .filter(
            EngageMessageCustomer.engage_message_id == engage_message_id,
            EngageMessageCustomer.customer_id == customer_id,
        )
        .one_or_none()
    )
    if d and d.received_at is None:
        d.received_at = datetime.utcnow()
    return d


def list_customer_engage_messages(s: Session, customer_id: int) -> list[EngageMessage]:
    return (
        s.query(EngageMessage)
        .join(EngageMessageCustomer, EngageMessageCustomer.engage_message_id == EngageMessage.id)
        .filter(EngageMessageCustomer.customer_id == customer_id)
        .order_by(EngageMessage.created_at.desc(), EngageMessage.id.desc())
        .all()
    )


def remove_customer_engages(s: Session, customer_id: int) -> int:
    """Drop the customer from every engage message audience. The messages themselves stay."""
    return s.query(EngageMessageCustomer).filter(EngageMessageCustomer.customer_id == customer_id).delete()


def change_customer(s: Session, new_customer_id: int, old_customer_ids: list[int]) -> int:
    """
    Move deliveries of merged-away customers onto the survivor.

    When several old customers received the same message, the survivor keeps
    one delivery (the earliest received one) so the audience stays a set.
    """
    if not old_customer_ids:
        return 0
    rows = (
        s.query(EngageMessageCustomer)
        .filter(EngageMessageCustomer.customer_id.in_(list(old_customer_ids) + [new_customer_id]))
        .order_by(EngageMessageCustomer.engage_message_id.asc(), EngageMessageCustomer.id.asc())
        .all()
    )
    by_message: dict[int, list[EngageMessageCustomer]] = {}
    for d in rows:
        by_message.setdefault(d.engage_message_id, []).append(d)

    changed = 0
    for deliveries in by_message.values():
        received = [d.received_at for d in deliveries if d.received_at is not None]
        keep = deliveries[0]
        for d in deliveries[1:]:
            s.delete(d)
        s.flush()
        if keep.customer_id != new_customer_id:
            keep.customer_id = new_customer_id
            changed += 1
        keep.received_at = min(received) if received else None
    s.flush()
    return changed
