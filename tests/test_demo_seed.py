from datetime import datetime

import pytest

from app.core.errors import InvalidOperationError
from app.demo.seed import (
    CARE_EVENTS, CARE_FAMILY_NAME, FAMILY_EVENTS, FAMILY_NAME, MARIA_HOURLY_RATE, seed_demo_account
)
from app.modules.users.schemas import UserUpsert

NOW = datetime(2024, 5, 15, 13, 30)


def _demo_user(storage, user_id="demo-1"):
    storage.upsert_user(UserUpsert(id=user_id, first_name="Demo", last_name="User", auth_provider="demo"))
    return user_id


def test_seed_builds_both_calendars(storage):
    user_id = _demo_user(storage)
    assert seed_demo_account(storage, user_id, now=NOW) is True

    families = storage.get_user_families(user_id)
    assert [f.name for f in families] == [FAMILY_NAME, CARE_FAMILY_NAME]
    family, care = families
    assert len(storage.get_events(family.id)) == len(FAMILY_EVENTS)
    assert len(storage.get_events(care.id)) == len(CARE_EVENTS)
    assert len(storage.get_family_members(family.id)) == 4
    assert len(storage.get_family_members(care.id)) == 5

    completed = [e for e in storage.get_events(care.id) if e.completed]
    assert completed and all(e.completed_at is not None for e in completed)
    assert any(e.photo_url for e in storage.get_events(family.id))


def test_seed_adds_care_team(storage):
    user_id = _demo_user(storage)
    seed_demo_account(storage, user_id, now=NOW)
    care = storage.get_user_families(user_id)[1]

    roles = {m.user_id: m.role for m in storage.get_family_memberships(care.id)}
    assert roles == {user_id: "owner", f"{user_id}-maria": "caregiver", f"{user_id}-david": "member"}

    rate = storage.get_caregiver_pay_rate(care.id, f"{user_id}-maria")
    assert rate.hourly_rate == MARIA_HOURLY_RATE
    entries = storage.get_caregiver_time_entries(care.id, f"{user_id}-maria")
    assert len(entries) == 3
    assert all(e.calculated_pay == round(3.5 * MARIA_HOURLY_RATE, 2) for e in entries)

    assert len(storage.get_medications(care.id)) == 4
    assert storage.get_medication_logs(care.id)
    messages = storage.get_family_messages(care.id)
    assert any(m.parent_message_id for m in messages)


def _soccer(storage, family_id):
    return next(e for e in storage.get_events(family_id) if e.title == "Emma's Soccer Championship")


def test_seed_has_threaded_notes(storage):
    user_id = _demo_user(storage)
    seed_demo_account(storage, user_id, now=NOW)
    family = storage.get_user_families(user_id)[0]
    soccer = next(e for e in storage.get_events(family.id) if e.title == "Emma's Soccer Championship")
    notes = storage.get_event_notes(family.id, soccer.id)
    assert len(notes) == 2
    assert notes[1].parent_note_id == notes[0].id


def test_seed_is_idempotent(storage):
    user_id = _demo_user(storage)
    seed_demo_account(storage, user_id, now=NOW)
    assert seed_demo_account(storage, user_id, now=NOW) is False
    assert len(storage.get_user_families(user_id)) == 2


def test_demo_accounts_are_independent(storage):
    first = _demo_user(storage, "demo-1")
    second = _demo_user(storage, "demo-2")
    seed_demo_account(storage, first, now=NOW)
    seed_demo_account(storage, second, now=NOW)

    first_ids = {f.id for f in storage.get_user_families(first)}
    second_ids = {f.id for f in storage.get_user_families(second)}
    assert first_ids.isdisjoint(second_ids)

    family = storage.get_user_families(first)[0]
    storage.delete_event(family.id, storage.get_events(family.id)[0].id)
    other = storage.get_user_families(second)[0]
    assert len(storage.get_events(other.id)) == len(FAMILY_EVENTS)


def test_seed_stays_out_of_persistent_storage(storage):
    user_id = _demo_user(storage)
    seed_demo_account(storage, user_id, now=NOW)
    assert storage.persistent.families == {}
    assert storage.persistent.events == {}
    assert storage.get_all_families() == []


def test_seed_requires_a_family(memory_storage):
    memory_storage.upsert_user(UserUpsert(id="demo-x"), ensure_family=False)
    with pytest.raises(InvalidOperationError):
        seed_demo_account(memory_storage, "demo-x", now=NOW)


def test_retry_after_failure_reseeds_cleanly(storage, monkeypatch):
    user_id = _demo_user(storage)

    def broken_create_family(*args, **kwargs):
        raise RuntimeError("storage went away")

    monkeypatch.setattr(storage, "create_family", broken_create_family)
    with pytest.raises(RuntimeError):
        seed_demo_account(storage, user_id, now=NOW)
    family = storage.get_user_families(user_id)[0]
    assert len(storage.get_events(family.id)) == len(FAMILY_EVENTS)

    monkeypatch.undo()
    assert seed_demo_account(storage, user_id, now=NOW) is True
    family, care = storage.get_user_families(user_id)
    assert len(storage.get_events(family.id)) == len(FAMILY_EVENTS)
    assert len(storage.get_family_members(family.id)) == 4
    assert len(storage.get_event_notes(family.id, _soccer(storage, family.id).id)) == 2
    assert care.name == CARE_FAMILY_NAME
