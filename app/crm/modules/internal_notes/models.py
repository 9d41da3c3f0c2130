from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.crm.models import Base


class InternalNote(Base):
    __tablename__ = "internal_notes"
    __table_args__ = (
        Index("idx_internal_notes_content", "content_type", "content_type_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    content_type: Mapped[str] = mapped_column(String(64), nullable=False, default="customer")
    content_type_id: Mapped[int] = mapped_column(Integer, nullable=False)  # loose reference

    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
