from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.crm.models import Base


class Field(Base):
    __tablename__ = "fields"
    __table_args__ = (
        Index("idx_fields_content_type", "content_type", "order"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    content_type: Mapped[str] = mapped_column(String(64), nullable=False, default="customer")
    text: Mapped[str] = mapped_column(Text, nullable=False)  # label shown in forms and import headers
    validation: Mapped[str | None] = mapped_column(String(32), nullable=True)  # None, "email", "number", "date"
    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
