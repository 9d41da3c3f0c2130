from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.crm.models import Base


class EngageMessage(Base):
    __tablename__ = "engage_messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    method: Mapped[str] = mapped_column(String(32), nullable=False, default="email")  # email, messenger
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    from_user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    deliveries: Mapped[list["EngageMessageCustomer"]] = relationship(
        "EngageMessageCustomer",
        back_populates="engage_message",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class EngageMessageCustomer(Base):
    """A customer targeted by an engage message; `received_at` is set once the messenger shows it."""

    __tablename__ = "engage_message_customers"
    __table_args__ = (
        UniqueConstraint("engage_message_id", "customer_id", name="uq_engage_message_customer"),
        Index("idx_engage_message_customers_customer_id", "customer_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    engage_message_id: Mapped[int] = mapped_column(ForeignKey("engage_messages.id", ondelete="CASCADE"), nullable=False)
    customer_id: Mapped[int] = mapped_column(Integer, nullable=False)  # loose reference
    received_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)

    engage_message: Mapped[EngageMessage] = relationship("EngageMessage", back_populates="deliveries")
