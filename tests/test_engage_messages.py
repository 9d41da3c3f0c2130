from datetime import datetime

from app.crm.db import session_scope
from app.crm.modules.engage_messages.models import EngageMessageCustomer
from app.crm.modules.engage_messages.service import (
    change_customer,
    create_engage_message,
    list_customer_engage_messages,
    remove_customer_engages,
)


def _deliveries(s, message_id):
    return (
        s.query(EngageMessageCustomer)
        .filter(EngageMessageCustomer.engage_message_id == message_id)
        .order_by(EngageMessageCustomer.id.asc())
        .all()
    )


def test_change_customer_collapses_shared_deliveries(app):
    with session_scope(app) as s:
        shared = create_engage_message(s, title="Launch", customer_ids=[1, 2])
        only_b = create_engage_message(s, title="Follow-up", customer_ids=[2])
        first, second = _deliveries(s, shared.id)
        first.received_at = datetime(2024, 3, 2, 9, 0)
        second.received_at = datetime(2024, 3, 1, 9, 0)
        s.flush()

        changed = change_customer(s, 10, [1, 2])

        kept = _deliveries(s, shared.id)
        assert [d.customer_id for d in kept] == [10]
        assert kept[0].received_at == datetime(2024, 3, 1, 9, 0)
        assert [d.customer_id for d in _deliveries(s, only_b.id)] == [10]
        assert changed == 2

    with session_scope(app) as s:
        assert {m.title for m in list_customer_engage_messages(s, 10)} == {"Launch", "Follow-up"}
        assert list_customer_engage_messages(s, 1) == []
        assert list_customer_engage_messages(s, 2) == []


def test_change_customer_keeps_existing_survivor_delivery(app):
    with session_scope(app) as s:
        msg = create_engage_message(s, title="Launch", customer_ids=[1, 10])
        source, survivor = _deliveries(s, msg.id)
        assert survivor.customer_id == 10
        source.received_at = datetime(2024, 3, 1, 9, 0)
        s.flush()

        change_customer(s, 10, [1])
        kept = _deliveries(s, msg.id)
        assert len(kept) == 1
        assert kept[0].customer_id == 10
        assert kept[0].received_at == datetime(2024, 3, 1, 9, 0)


def test_remove_customer_engages_keeps_messages(app):
    with session_scope(app) as s:
        msg = create_engage_message(s, title="Launch", customer_ids=[1, 2])
        assert remove_customer_engages(s, 1) == 1
        assert [d.customer_id for d in _deliveries(s, msg.id)] == [2]
