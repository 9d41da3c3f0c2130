from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Session

from app.crm.models import User
from app.crm.modules.activity_logs.models import ActivityLog

CONTENT_TYPE = "customer"


def add_activity_log(
    s: Session,
    *,
    customer_id: int,
    action: str,
    content: str | None = None,
    user: User | None = None,
) -> ActivityLog:
    log = ActivityLog(
        content_type=CONTENT_TYPE,
        content_id=customer_id,
        action=action,
        content=content,
        performed_by_user_id=user.id if user else None,
        created_at=datetime.utcnow(),
    )
    s.add(log)
    s.flush()
    return log


def list_customer_activity_logs(s: Session, customer_id: int) -> list[ActivityLog]:
    return (
        s.query(ActivityLog)
        .filter(ActivityLog.content_type == CONTENT_TYPE, ActivityLog.content_id == customer_id)
        .order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
        .all()
    )


def remove_customer_activity_log(s: Session, customer_id: int) -> int:
    """Delete every activity entry of a customer. Returns the number of rows removed."""
    return (
        s.query(ActivityLog)
        .filter(ActivityLog.content_type == CONTENT_TYPE, ActivityLog.content_id == customer_id)
        .delete()
    )


def change_customer(s: Session, new_customer_id: int, old_customer_ids: list[int]) -> int:
    """Repoint activity entries from merged-away customers to the survivor."""
    if not old_customer_ids:
        return 0
    return (
        s.query(ActivityLog)
        .filter(ActivityLog.content_type == CONTENT_TYPE, ActivityLog.content_id.in_(old_customer_ids))
        .update({"content_id": new_customer_id})
    )
