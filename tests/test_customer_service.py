import pytest

from app.crm.db import session_scope
from app.crm.errors import NotFoundError
from app.crm.models import AuditEvent
from app.crm.modules.activity_logs.service import list_customer_activity_logs
from app.crm.modules.conversations import service as conversations
from app.crm.modules.customers.service import (
    add_company,
    create_customer,
    get_customer_by_id,
    list_customers,
    mark_customer_as_active,
    mark_customer_as_not_active,
    remove_customer,
    update_companies,
    update_customer,
)
from app.crm.modules.engage_messages import service as engage_messages
from app.crm.modules.fields.service import FieldValidationError, create_field
from app.crm.modules.internal_notes.service import add_internal_note, list_customer_internal_notes
from app.crm.testing import user_factory


def test_create_customer_defaults_owner_and_stamps(app):
    with session_scope(app) as s:
        u = user_factory(s)
        c = create_customer(s, {"first_name": " Ada ", "last_name": "Lovelace", "emails": ["x@example.com", "x@example.com", ""]}, u)
        cid, uid = c.id, u.id

    with session_scope(app) as s:
        c = get_customer_by_id(s, cid)
        assert c.owner_id == uid
        assert c.first_name == "Ada"
        assert c.full_name == "Ada Lovelace"
        assert c.emails == ["x@example.com"]
        assert c.created_at == c.updated_at
        assert [l.action for l in list_customer_activity_logs(s, cid)] == ["customer.create"]
        ev = s.query(AuditEvent).filter(AuditEvent.action == "customer.create").one()
        assert ev.entity_id == str(cid)
        assert ev.actor_user_id == uid


def test_explicit_owner_is_kept(app):
    with session_scope(app) as s:
        owner = user_factory(s)
        actor = user_factory(s)
        c = create_customer(s, {"owner_id": owner.id}, actor)
        assert c.owner_id == owner.id


def test_create_rejects_unknown_keys(app):
    with session_scope(app) as s:
        with pytest.raises(ValueError):
            create_customer(s, {"shoe_size": 44})


def test_custom_fields_are_cleaned(app):
    with session_scope(app) as s:
        age = create_field(s, text="Age", validation="number")
        c = create_customer(s, {"custom_fields_data": {str(age.id): "42", "9999": "dropped"}})
        assert c.custom_fields_data == {str(age.id): 42}

        with pytest.raises(FieldValidationError):
            create_customer(s, {"custom_fields_data": {str(age.id): "forty"}})


def test_update_only_touches_given_fields(app):
    with session_scope(app) as s:
        c = create_customer(s, {"first_name": "Ann", "last_name": "Lee", "custom_fields_data": {}})
        created_at = c.created_at
        updated = update_customer(s, c.id, {"last_name": "Park", "phones": ["1", "2"]})
        assert updated.first_name == "Ann"
        assert updated.last_name == "Park"
        assert updated.phones == ["1", "2"]
        assert updated.created_at == created_at
        assert updated.updated_at >= created_at

        ev = s.query(AuditEvent).filter(AuditEvent.action == "customer.update").one()
        assert "last_name" in ev.metadata_json


def test_update_unknown_customer(app):
    with session_scope(app) as s:
        with pytest.raises(NotFoundError):
            update_customer(s, 424242, {"first_name": "Ghost"})


def test_messenger_toggles(app):
    with session_scope(app) as s:
        c = create_customer(s, {"messenger_data": {"session_count": 3}})

        c = mark_customer_as_not_active(s, c.id)
        assert c.messenger_data["is_active"] is False
        assert c.messenger_data["session_count"] == 3
        assert c.messenger_data["last_seen_at"]

        c = mark_customer_as_active(s, c.id)
        assert c.messenger_data["is_active"] is True

        with pytest.raises(NotFoundError):
            mark_customer_as_active(s, 424242)


def test_add_company_links_once(app):
    with session_scope(app) as s:
        c = create_customer(s, {"first_name": "Ann"})
        acme = add_company(s, c.id, name="Acme", website="https://acme.test")
        globex = add_company(s, c.id, name="Globex")
        c = get_customer_by_id(s, c.id)
        assert c.company_ids == [acme.id, globex.id]
        assert acme.website == "https://acme.test"

        with pytest.raises(ValueError):
            add_company(s, c.id, name="  ")


def test_update_companies_is_verbatim(app):
    with session_scope(app) as s:
        c = create_customer(s, {"first_name": "Ann"})
        c = update_companies(s, c.id, [7, 7, 3])
        assert c.company_ids == [7, 7, 3]


def test_list_customers_search(app):
    with session_scope(app) as s:
        create_customer(s, {"first_name": "Ann", "primary_email": "ann@example.com"})
        create_customer(s, {"first_name": "Bob", "primary_email": "bob@example.com"})
        assert [c.first_name for c in list_customers(s, q="bob")] == ["Bob"]
        assert len(list_customers(s)) == 2
        assert len(list_customers(s, limit=1)) == 1


def _customer_with_related(s):
    u = user_factory(s)
    c = create_customer(s, {"first_name": "Ann", "emails": ["ann@example.com"]}, u)
    conversations.create_conversation(s, customer_id=c.id, content="Hello")
    engage_messages.create_engage_message(s, title="Welcome", customer_ids=[c.id])
    add_internal_note(s, customer_id=c.id, content="VIP", user=u)
    return c


def test_remove_cascades_to_related_records(app):
    with session_scope(app) as s:
        c = _customer_with_related(s)
        cid = c.id

    with session_scope(app) as s:
        remove_customer(s, cid)

    with session_scope(app) as s:
        assert get_customer_by_id(s, cid) is None
        assert list_customer_activity_logs(s, cid) == []
        assert conversations.list_customer_conversations(s, cid) == []
        assert engage_messages.list_customer_engage_messages(s, cid) == []
        assert list_customer_internal_notes(s, cid) == []
        ev = s.query(AuditEvent).filter(AuditEvent.action == "customer.remove").one()
        assert ev.entity_id == str(cid)


def test_remove_runs_cascades_in_order(app, monkeypatch):
    from app.crm.modules.activity_logs import service as activity_logs
    from app.crm.modules.internal_notes import service as internal_notes

    calls = []

    def spy(module, name):
        original = getattr(module, name)

        def wrapper(s, customer_id):
            calls.append(name)
            return original(s, customer_id)

        monkeypatch.setattr(module, name, wrapper)

    spy(activity_logs, "remove_customer_activity_log")
    spy(conversations, "remove_customer_conversations")
    spy(engage_messages, "remove_customer_engages")
    spy(internal_notes, "remove_customer_internal_notes")

    with session_scope(app) as s:
        c = _customer_with_related(s)
        remove_customer(s, c.id)

    assert calls == [
        "remove_customer_activity_log",
        "remove_customer_conversations",
        "remove_customer_engages",
        "remove_customer_internal_notes",
    ]


def test_failed_cascade_keeps_customer(app, monkeypatch):
    with session_scope(app) as s:
        c = _customer_with_related(s)
        cid = c.id

    def boom(s, customer_id):
        raise RuntimeError("engage store unavailable")

    monkeypatch.setattr(engage_messages, "remove_customer_engages", boom)

    with pytest.raises(RuntimeError, match="engage store unavailable"):
        with session_scope(app) as s:
            remove_customer(s, cid)

    with session_scope(app) as s:
        assert get_customer_by_id(s, cid) is not None
        # Earlier cascades rolled back with the failed unit of work.
        assert list_customer_activity_logs(s, cid)
        assert conversations.list_customer_conversations(s, cid)


def test_remove_unknown_customer(app):
    with session_scope(app) as s:
        with pytest.raises(NotFoundError):
            remove_customer(s, 424242)
