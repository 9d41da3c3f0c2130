import pytest

from app.crm.db import session_scope
from app.crm.errors import DuplicateFieldError
from app.crm.modules.customers.service import check_duplication, create_customer, update_customer


def test_duplicate_primary_email_rejected(app):
    with session_scope(app) as s:
        create_customer(s, {"primary_email": "a@example.com"})
        with pytest.raises(DuplicateFieldError) as ei:
            create_customer(s, {"primary_email": "a@example.com"})
    assert str(ei.value) == "Duplicated email"
    assert ei.value.field == "email"


def test_primary_email_collides_with_secondary_email(app):
    with session_scope(app) as s:
        create_customer(s, {"primary_email": "a@example.com", "emails": ["b@example.com"]})
        with pytest.raises(DuplicateFieldError) as ei:
            create_customer(s, {"primary_email": "b@example.com"})
    assert ei.value.field == "email"


def test_primary_phone_collides_with_secondary_phone(app):
    with session_scope(app) as s:
        create_customer(s, {"primary_phone": "111", "phones": ["222"]})
        with pytest.raises(DuplicateFieldError) as ei:
            create_customer(s, {"primary_phone": "222"})
    assert str(ei.value) == "Duplicated phone"


def test_social_ids_are_checked(app):
    with session_scope(app) as s:
        create_customer(s, {"twitter_data": {"id": "tw-1"}, "facebook_data": {"id": "fb-1"}})
        with pytest.raises(DuplicateFieldError) as tw:
            check_duplication(s, {"twitter_data": {"id": "tw-1"}})
        with pytest.raises(DuplicateFieldError) as fb:
            check_duplication(s, {"facebook_data": {"id": "fb-1"}})
    assert tw.value.field == "twitter"
    assert fb.value.field == "facebook"


def test_checks_run_in_fixed_order(app):
    with session_scope(app) as s:
        create_customer(s, {"twitter_data": {"id": "tw-1"}})
        create_customer(s, {"primary_email": "e@example.com"})
        create_customer(s, {"primary_phone": "555"})
        with pytest.raises(DuplicateFieldError) as ei:
            check_duplication(
                s,
                {"primary_phone": "555", "primary_email": "e@example.com", "twitter_data": {"id": "tw-1"}},
            )
        assert ei.value.field == "twitter"

        with pytest.raises(DuplicateFieldError) as ei:
            check_duplication(s, {"primary_phone": "555", "primary_email": "e@example.com"})
        assert ei.value.field == "email"


def test_exclusion_by_single_id_and_by_list(app):
    with session_scope(app) as s:
        a = create_customer(s, {"primary_email": "a@example.com"})
        b = create_customer(s, {"primary_email": "b@example.com"})

        check_duplication(s, {"primary_email": "a@example.com"}, a.id)
        check_duplication(s, {"primary_email": "a@example.com"}, [a.id, b.id])
        with pytest.raises(DuplicateFieldError):
            check_duplication(s, {"primary_email": "a@example.com"}, [b.id])
        with pytest.raises(DuplicateFieldError):
            check_duplication(s, {"primary_email": "a@example.com"}, b.id)


def test_update_excludes_self(app):
    with session_scope(app) as s:
        a = create_customer(s, {"primary_email": "a@example.com", "first_name": "Ann"})
        updated = update_customer(s, a.id, {"primary_email": "a@example.com", "first_name": "Anna"})
    assert updated.first_name == "Anna"
    assert updated.primary_email == "a@example.com"


def test_update_to_taken_email_rejected(app):
    with session_scope(app) as s:
        create_customer(s, {"primary_email": "a@example.com"})
        b = create_customer(s, {"primary_email": "b@example.com"})
        with pytest.raises(DuplicateFieldError):
            update_customer(s, b.id, {"primary_email": "a@example.com"})


def test_empty_identity_values_are_ignored(app):
    with session_scope(app) as s:
        create_customer(s, {"first_name": "No contact"})
        create_customer(s, {"first_name": "Also none", "primary_email": "  "})
        check_duplication(s, {"primary_email": "", "primary_phone": None, "twitter_data": {}})


def _skip_first_check(monkeypatch):
    """Let the up-front check pass once, as if another writer committed right after it."""
    from app.crm.modules.customers import service

    original = service.check_duplication
    calls = []

    def racing(*args, **kwargs):
        calls.append(args)
        if len(calls) == 1:
            return None
        return original(*args, **kwargs)

    monkeypatch.setattr(service, "check_duplication", racing)
    return calls


def test_create_race_reports_duplicate(app, monkeypatch):
    with session_scope(app) as s:
        create_customer(s, {"primary_email": "taken@example.com"})

    calls = _skip_first_check(monkeypatch)
    with session_scope(app) as s:
        with pytest.raises(DuplicateFieldError) as ei:
            create_customer(s, {"first_name": "Late", "primary_email": "taken@example.com"})
        assert ei.value.field == "email"
        assert len(calls) == 2

        # The session stays usable after the failed write.
        other = create_customer(s, {"primary_email": "free@example.com"})
        assert other.id is not None


def test_update_race_reports_duplicate(app, monkeypatch):
    with session_scope(app) as s:
        create_customer(s, {"primary_email": "taken@example.com"})
        b = create_customer(s, {"primary_email": "b@example.com", "first_name": "Bea"})
        bid = b.id

    calls = _skip_first_check(monkeypatch)
    with session_scope(app) as s:
        with pytest.raises(DuplicateFieldError) as ei:
            update_customer(s, bid, {"primary_email": "taken@example.com", "first_name": "Bee"})
        assert ei.value.field == "email"
        assert len(calls) == 2

        b = update_customer(s, bid, {"last_name": "Ok"})
        assert b.primary_email == "b@example.com"
        assert b.first_name == "Bea"
        assert b.last_name == "Ok"
