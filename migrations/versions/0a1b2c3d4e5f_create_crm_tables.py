"""create crm tables (users, audit, customers and collaborators)

Revision ID: 0a1b2c3d4e5f
Revises:
Create Date: 2026-10-18

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "0a1b2c3d4e5f"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=False), nullable=False, server_default=sa.func.current_timestamp()),
        sa.Column("updated_at", sa.DateTime(timezone=False), nullable=False, server_default=sa.func.current_timestamp()),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=False), nullable=False, server_default=sa.func.current_timestamp()),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=False), nullable=False, server_default=sa.func.current_timestamp()),
        sa.Column("request_id", sa.String(length=64), nullable=True),
        sa.Column("actor_user_id", sa.Integer(), nullable=True),
        sa.Column("actor_user_email", sa.String(length=320), nullable=True),
        sa.Column("action", sa.String(length=128), nullable=False),
        sa.Column("entity_type", sa.String(length=128), nullable=True),
        sa.Column("entity_id", sa.String(length=128), nullable=True),
        sa.Column("reason", sa.String(length=512), nullable=True),
        sa.Column("metadata_json", sa.Text(), nullable=True),
        sa.Column("client_ip", sa.String(length=64), nullable=True),
        sa.ForeignKeyConstraint(["actor_user_id"], ["users.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("request_id", "id", name="uq_audit_request_id_id"),
    )

    op.create_table(
        "customers",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("first_name", sa.Text(), nullable=True),
        sa.Column("last_name", sa.Text(), nullable=True),
        sa.Column("primary_email", sa.String(length=320), nullable=True),
        sa.Column("primary_phone", sa.String(length=64), nullable=True),
        sa.Column("twitter_id", sa.String(length=128), nullable=True),
        sa.Column("facebook_id", sa.String(length=128), nullable=True),
        sa.Column("twitter_data", JSONType, nullable=True),
        sa.Column("facebook_data", JSONType, nullable=True),
        sa.Column("owner_id", sa.Integer(), nullable=True),
        sa.Column("position", sa.Text(), nullable=True),
        sa.Column("department", sa.Text(), nullable=True),
        sa.Column("lead_status", sa.String(length=64), nullable=True),
        sa.Column("lifecycle_state", sa.String(length=64), nullable=True),
        sa.Column("has_authority", sa.String(length=16), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("do_not_disturb", sa.String(length=16), nullable=True),
        sa.Column("links", JSONType, nullable=True),
        sa.Column("is_user", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("integration_id", sa.String(length=128), nullable=True),
        sa.Column("tag_ids", JSONType, nullable=True),
        sa.Column("company_ids", JSONType, nullable=True),
        sa.Column("custom_fields_data", JSONType, nullable=True),
        sa.Column("messenger_data", JSONType, nullable=True),
        sa.Column("location", JSONType, nullable=True),
        sa.Column("visitor_contact_info", JSONType, nullable=True),
        sa.Column("url_visits", JSONType, nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("primary_email", name="uq_customers_primary_email"),
        sa.UniqueConstraint("primary_phone", name="uq_customers_primary_phone"),
        sa.UniqueConstraint("twitter_id", name="uq_customers_twitter_id"),
        sa.UniqueConstraint("facebook_id", name="uq_customers_facebook_id"),
        sqlite_autoincrement=True,
    )
    op.create_index("idx_customers_owner_id", "customers", ["owner_id"])
    op.create_index("idx_customers_integration_id", "customers", ["integration_id"])
    op.create_index("idx_customers_last_name", "customers", ["last_name"])

    op.create_table(
        "customer_contacts",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=False),
        sa.Column("kind", sa.String(length=16), nullable=False),
        sa.Column("value", sa.String(length=320), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"], ondelete="CASCADE"),
    )
    op.create_index("idx_customer_contacts_kind_value", "customer_contacts", ["kind", "value"])
    op.create_index("idx_customer_contacts_customer_id", "customer_contacts", ["customer_id"])

    op.create_table(
        "companies",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("website", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("idx_companies_name", "companies", ["name"])

    op.create_table(
        "fields",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("content_type", sa.String(length=64), nullable=False, server_default="customer"),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("validation", sa.String(length=32), nullable=True),
        sa.Column("is_required", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=False), nullable=False, server_default=sa.func.current_timestamp()),
    )
    op.create_index("idx_fields_content_type", "fields", ["content_type", "order"])

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("content_type", sa.String(length=64), nullable=False, server_default="customer"),
        sa.Column("content_id", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(length=128), nullable=False),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("performed_by_user_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=False), nullable=False, server_default=sa.func.current_timestamp()),
        sa.ForeignKeyConstraint(["performed_by_user_id"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_index("idx_activity_logs_content", "activity_logs", ["content_type", "content_id", "created_at"])

    op.create_table(
        "conversations",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=True),
        sa.Column("integration_id", sa.String(length=128), nullable=True),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="new"),
        sa.Column("message_count", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_index("idx_conversations_customer_id", "conversations", ["customer_id"])
    op.create_index("idx_conversations_status", "conversations", ["status"])

    op.create_table(
        "conversation_messages",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("conversation_id", sa.Integer(), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=True),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=False), nullable=False, server_default=sa.func.current_timestamp()),
        sa.ForeignKeyConstraint(["conversation_id"], ["conversations.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_index("idx_conversation_messages_conversation_id", "conversation_messages", ["conversation_id", "created_at"])
    op.create_index("idx_conversation_messages_customer_id", "conversation_messages", ["customer_id"])

    op.create_table(
        "engage_messages",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("method", sa.String(length=32), nullable=False, server_default="email"),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("from_user_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=False), nullable=False, server_default=sa.func.current_timestamp()),
        sa.ForeignKeyConstraint(["from_user_id"], ["users.id"], ondelete="SET NULL"),
    )

    op.create_table(
        "engage_message_customers",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("engage_message_id", sa.Integer(), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=False),
        sa.Column("received_at", sa.DateTime(timezone=False), nullable=True),
        sa.ForeignKeyConstraint(["engage_message_id"], ["engage_messages.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("engage_message_id", "customer_id", name="uq_engage_message_customer"),
    )
    op.create_index("idx_engage_message_customers_customer_id", "engage_message_customers", ["customer_id"])

    op.create_table(
        "internal_notes",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("content_type", sa.String(length=64), nullable=False, server_default="customer"),
        sa.Column("content_type_id", sa.Integer(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_user_id", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["created_user_id"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_index("idx_internal_notes_content", "internal_notes", ["content_type", "content_type_id", "created_at"])


def downgrade() -> None:
    for table in (
        "internal_notes",
        "engage_message_customers",
        "engage_messages",
        "conversation_messages",
        "conversations",
        "activity_logs",
        "fields",
        "companies",
        "customer_contacts",
        "customers",
        "audit_events",
        "users",
    ):
        op.drop_table(table)
