from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Session

from app.crm.models import User
from app.crm.modules.conversations.models import Conversation, ConversationMessage


def create_conversation(
    s: Session,
    *,
    customer_id: int,
    content: str,
    integration_id: str | None = None,
) -> Conversation:
    """Open a conversation with the customer's first message."""
    text = (content or "").strip()
    if not text:
        raise ValueError("Conversation content is required.")
    now = datetime.utcnow()
    c = Conversation(
        customer_id=customer_id,
        integration_id=integration_id,
        content=text,
        status="new",
        message_count=0,
        created_at=now,
        updated_at=now,
    )
    s.add(c)
    s.flush()
    add_message(s, c, content=text, customer_id=customer_id)
    return c


def add_message(
    s: Session,
    conversation: Conversation,
    *,
    content: str,
    customer_id: int | None = None,
    user: User | None = None,
) -> ConversationMessage:
    m = ConversationMessage(
        conversation_id=conversation.id,
        customer_id=customer_id,
        user_id=user.id if user else None,
        content=content,
        created_at=datetime.utcnow(),
    )
    s.add(m)
    conversation.message_count = (conversation.message_count or 0) + 1
    conversation.updated_at = m.created_at
    s.flush()
    return m


def list_customer_conversations(s: Session, customer_id: int) -> list[Conversation]:
    return (
        s.query(Conversation)
        .filter(Conversation.customer_id == customer_id)
        .order_by(Conversation.updated_at.desc(), Conversation.id.desc())
        .all()
    )


def remove_customer_conversations(s: Session, customer_id: int) -> int:
    """
    Delete a customer's conversations together with all of their messages,
    plus any stray messages the customer wrote elsewhere.
    Returns the number of conversations removed.
    """
    conversation_ids = [
        row[0] for row in s.query(Conversation.id).filter(Conversation.customer_id == customer_id).all()
    ]
    if conversation_ids:
        s.query(ConversationMessage).filter(
            ConversationMessage.conversation_id.in_(conversation_ids)
        ).delete()
    s.query(ConversationMessage).filter(ConversationMessage.customer_id == customer_id).delete()
    if not conversation_ids:
        return 0
    return s.query(Conversation).filter(Conversation.id.in_(conversation_ids)).delete()


def change_customer(s: Session, new_customer_id: int, old_customer_ids: list[int]) -> int:
    """Repoint conversations and messages of merged-away customers to the survivor."""
    if not old_customer_ids:
        return 0
    s.query(ConversationMessage).filter(
        ConversationMessage.customer_id.in_(old_customer_ids)
    ).update({"customer_id": new_customer_id})
    return (
        s.query(Conversation)
        .filter(Conversation.customer_id.in_(old_customer_ids))
        .update({"customer_id": new_customer_id})
    )
