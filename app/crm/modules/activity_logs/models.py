from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.crm.models import Base


class ActivityLog(Base):
    """
    One entry in a record's activity feed.
    `content_id` is a loose reference (no FK): merge repoints it after the
    original customer rows are gone.
    """

    __tablename__ = "activity_logs"
    __table_args__ = (
        Index("idx_activity_logs_content", "content_type", "content_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    content_type: Mapped[str] = mapped_column(String(64), nullable=False, default="customer")
    content_id: Mapped[int] = mapped_column(Integer, nullable=False)

    action: Mapped[str] = mapped_column(String(128), nullable=False)  # e.g. "customer.create"
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    performed_by_user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
