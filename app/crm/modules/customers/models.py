from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.crm.models import Base, JSONType


class Customer(Base):
    __tablename__ = "customers"
    __table_args__ = (
        Index("idx_customers_owner_id", "owner_id"),
        Index("idx_customers_integration_id", "integration_id"),
        Index("idx_customers_last_name", "last_name"),
        # Ids of deleted (merged) customers must never be handed out again.
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    first_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_name: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Identity fields. Unique constraints back the duplication check at the storage layer.
    primary_email: Mapped[str | None] = mapped_column(String(320), nullable=True, unique=True)
    primary_phone: Mapped[str | None] = mapped_column(String(64), nullable=True, unique=True)
    twitter_id: Mapped[str | None] = mapped_column(String(128), nullable=True, unique=True)
    facebook_id: Mapped[str | None] = mapped_column(String(128), nullable=True, unique=True)
    twitter_data: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    facebook_data: Mapped[dict | None] = mapped_column(JSONType, nullable=True)

    owner_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    position: Mapped[str | None] = mapped_column(Text, nullable=True)
    department: Mapped[str | None] = mapped_column(Text, nullable=True)
    lead_status: Mapped[str | None] = mapped_column(String(64), nullable=True)
    lifecycle_state: Mapped[str | None] = mapped_column(String(64), nullable=True)
    has_authority: Mapped[str | None] = mapped_column(String(16), nullable=True)  # "Yes" / "No"
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    do_not_disturb: Mapped[str | None] = mapped_column(String(16), nullable=True)  # "Yes" / "No"
    links: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    is_user: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    integration_id: Mapped[str | None] = mapped_column(String(128), nullable=True)

    # Set semantics; kept as plain JSON lists of ids.
    tag_ids: Mapped[list | None] = mapped_column(JSONType, nullable=True, default=list)
    company_ids: Mapped[list | None] = mapped_column(JSONType, nullable=True, default=list)

    custom_fields_data: Mapped[dict | None] = mapped_column(JSONType, nullable=True, default=dict)

    messenger_data: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    location: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    visitor_contact_info: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    url_visits: Mapped[dict | None] = mapped_column(JSONType, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    owner = relationship("User", foreign_keys=[owner_id], lazy="selectin")
    contacts: Mapped[list["CustomerContact"]] = relationship(
        "CustomerContact",
        back_populates="customer",
        cascade="all, delete-orphan",
        order_by="CustomerContact.position",
        lazy="selectin",
    )

    @property
    def emails(self) -> list[str]:
        return [c.value for c in self.contacts if c.kind == "email"]

    @emails.setter
    def emails(self, values: list[str] | None) -> None:
        self._set_contacts("email", values)

    @property
    def phones(self) -> list[str]:
        return [c.value for c in self.contacts if c.kind == "phone"]

    @phones.setter
    def phones(self, values: list[str] | None) -> None:
        self._set_contacts("phone", values)

    def _set_contacts(self, kind: str, values: list[str] | None) -> None:
        kept = [c for c in self.contacts if c.kind != kind]
        fresh = [CustomerContact(kind=kind, value=v) for v in (values or []) if v]
        self.contacts = kept + fresh
        for i, c in enumerate(self.contacts):
            c.position = i

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)


class CustomerContact(Base):
    """Secondary email or phone of a customer (the `emails` / `phones` lists)."""

    __tablename__ = "customer_contacts"
    __table_args__ = (
        Index("idx_customer_contacts_kind_value", "kind", "value"),
        Index("idx_customer_contacts_customer_id", "customer_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    customer_id: Mapped[int] = mapped_column(ForeignKey("customers.id", ondelete="CASCADE"), nullable=False)
    kind: Mapped[str] = mapped_column(String(16), nullable=False)  # "email" | "phone"
    value: Mapped[str] = mapped_column(String(320), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    customer: Mapped[Customer] = relationship("Customer", back_populates="contacts")
