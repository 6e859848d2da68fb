from datetime import datetime, timedelta

import pytest

from app.core.errors import InvalidOperationError, NotFoundError
from app.storage.base import INVITE_CODE_ALPHABET, INVITE_CODE_LENGTH
from app.modules.users.schemas import UserUpsert
from app.modules.families.schemas import FamilyCreate
from app.modules.family_members.schemas import FamilyMemberCreate, FamilyMemberUpdate
from app.modules.events.schemas import EventCreate, EventUpdate, EventNoteCreate, MessageCreate
from app.modules.medications.schemas import MedicationCreate, MedicationLogCreate
from app.modules.messages.schemas import FamilyMessageCreate
from app.modules.caregivers.schemas import PayRateSet, TimeEntryCreate

START = datetime(2024, 5, 1, 9, 0)


def _family(storage, user_id="u1", first_name="Ana"):
    storage.upsert_user(UserUpsert(id=user_id, email=f"{user_id}@example.com", first_name=first_name))
    return storage.get_user_families(user_id)[0]


def _member(storage, family_id, name="Emma"):
    return storage.create_family_member(family_id, FamilyMemberCreate(name=name, color="#F472B6"))


def _event(storage, family_id, member_ids, title="Dentist", start=START, hours=1):
    return storage.create_event(family_id, EventCreate(
        title=title,
        start_time=start,
        end_time=start + timedelta(hours=hours),
        member_ids=member_ids,
        color="#F472B6",
    ))


class TestProvisioning:
    def test_first_login_gets_owned_family(self, memory_storage):
        family = _family(memory_storage)
        assert family.name == "Ana's Family"
        assert memory_storage.get_user_family_membership("u1", family.id).role == "owner"
        assert len(family.invite_code) == INVITE_CODE_LENGTH
        assert set(family.invite_code) <= set(INVITE_CODE_ALPHABET)

    def test_no_first_name_falls_back(self, memory_storage):
        memory_storage.upsert_user(UserUpsert(id="u2"))
        assert memory_storage.get_user_families("u2")[0].name == "My Family"

    def test_second_upsert_does_not_provision_again(self, memory_storage):
        _family(memory_storage)
        memory_storage.upsert_user(UserUpsert(id="u1", last_name="Lopez"))
        assert len(memory_storage.get_user_families("u1")) == 1
        assert memory_storage.get_user("u1").last_name == "Lopez"
        assert memory_storage.get_user("u1").first_name == "Ana"

    def test_upsert_resolves_by_email(self, memory_storage):
        _family(memory_storage)
        user = memory_storage.upsert_user(UserUpsert(id="other-id", email="U1@example.com", first_name="Ann"))
        assert user.id == "u1"
        assert "other-id" not in memory_storage.users

    def test_ensure_family_false_skips_provisioning(self, memory_storage):
        memory_storage.upsert_user(UserUpsert(id="helper"), ensure_family=False)
        assert memory_storage.get_user_families("helper") == []


class TestFamilies:
    def test_join_by_invite_code(self, memory_storage):
        family = _family(memory_storage)
        memory_storage.upsert_user(UserUpsert(id="u2", first_name="Bo"))
        membership = memory_storage.join_family("u2", family.invite_code.lower())
        assert membership.role == "member"
        assert family.id in {f.id for f in memory_storage.get_user_families("u2")}

    def test_join_is_idempotent(self, memory_storage):
        family = _family(memory_storage)
        first = memory_storage.join_family("u2", family.invite_code)
        second = memory_storage.join_family("u2", family.invite_code)
        assert first.id == second.id

    def test_invalid_invite_code(self, memory_storage):
        with pytest.raises(NotFoundError):
            memory_storage.join_family("u2", "NOPE1234")

    def test_created_families_have_unique_codes(self, memory_storage):
        for i in range(20):
            memory_storage.create_family("u1", FamilyCreate(name=f"F{i}"))
        codes = [f.invite_code for f in memory_storage.families.values()]
        assert len(codes) == len(set(codes))


class TestIsolation:
    def test_foreign_ids_do_not_resolve(self, memory_storage):
        mine = _family(memory_storage, "u1")
        theirs = _family(memory_storage, "u2", "Bo")
        event = _event(memory_storage, theirs.id, [_member(memory_storage, theirs.id).id])

        assert memory_storage.get_event(mine.id, event.id) is None
        with pytest.raises(NotFoundError):
            memory_storage.update_event(mine.id, event.id, EventUpdate(title="Mine now"))
        with pytest.raises(NotFoundError):
            memory_storage.delete_event(mine.id, event.id)
        assert memory_storage.get_event(theirs.id, event.id).title == "Dentist"

    def test_event_members_must_belong_to_family(self, memory_storage):
        mine = _family(memory_storage, "u1")
        theirs = _family(memory_storage, "u2", "Bo")
        foreign_member = _member(memory_storage, theirs.id)
        with pytest.raises(NotFoundError):
            _event(memory_storage, mine.id, [foreign_member.id])

    def test_lists_are_family_scoped(self, memory_storage):
        mine = _family(memory_storage, "u1")
        theirs = _family(memory_storage, "u2", "Bo")
        _event(memory_storage, theirs.id, [_member(memory_storage, theirs.id).id])
        assert memory_storage.get_events(mine.id) == []
        assert memory_storage.get_family_members(mine.id) == []


class TestCascades:
    def test_member_removal_strips_events_and_deletes_orphans(self, memory_storage):
        family = _family(memory_storage)
        emma = _member(memory_storage, family.id, "Emma")
        lucas = _member(memory_storage, family.id, "Lucas")
        shared = _event(memory_storage, family.id, [emma.id, lucas.id], "Movie night")
        solo = _event(memory_storage, family.id, [emma.id], "Ballet")
        memory_storage.create_message(family.id, MessageCreate(
            event_id=solo.id, sender_name="Ana", content="Bring tights"))

        memory_storage.delete_family_member(family.id, emma.id)

        assert memory_storage.get_event(family.id, shared.id).member_ids == [lucas.id]
        assert memory_storage.get_event(family.id, solo.id) is None
        assert memory_storage.messages == {}
        assert memory_storage.get_family_member(family.id, emma.id) is None

    def test_event_delete_removes_messages_and_notes(self, memory_storage):
        family = _family(memory_storage)
        event = _event(memory_storage, family.id, [_member(memory_storage, family.id).id])
        memory_storage.create_message(family.id, MessageCreate(
            event_id=event.id, sender_name="Ana", content="On my way"))
        memory_storage.create_event_note(family.id, EventNoteCreate(
            event_id=event.id, author_id="u1", content="Bring insurance card"))

        memory_storage.delete_event(family.id, event.id)

        assert memory_storage.get_event_messages(family.id, event.id) == []
        assert memory_storage.get_event_notes(family.id, event.id) == []

    def test_note_replies_are_one_level_and_cascade(self, memory_storage):
        family = _family(memory_storage)
        event = _event(memory_storage, family.id, [_member(memory_storage, family.id).id])
        root = memory_storage.create_event_note(family.id, EventNoteCreate(
            event_id=event.id, author_id="u1", content="Root"))
        reply = memory_storage.create_event_note(family.id, EventNoteCreate(
            event_id=event.id, author_id="u1", content="Reply", parent_note_id=root.id))
        with pytest.raises(InvalidOperationError):
            memory_storage.create_event_note(family.id, EventNoteCreate(
                event_id=event.id, author_id="u1", content="Too deep", parent_note_id=reply.id))

        memory_storage.delete_event_note(family.id, root.id)
        assert memory_storage.get_event_notes(family.id, event.id) == []

    def test_family_message_replies(self, memory_storage):
        family = _family(memory_storage)
        root = memory_storage.create_family_message(family.id, FamilyMessageCreate(author_id="u1", content="Hi"))
        reply = memory_storage.create_family_message(family.id, FamilyMessageCreate(
            author_id="u1", content="Hello", parent_message_id=root.id))
        with pytest.raises(InvalidOperationError):
            memory_storage.create_family_message(family.id, FamilyMessageCreate(
                author_id="u1", content="Deep", parent_message_id=reply.id))
        memory_storage.delete_family_message(family.id, root.id)
        assert memory_storage.get_family_messages(family.id) == []


class TestEvents:
    def test_completion_toggle_round_trip(self, memory_storage):
        family = _family(memory_storage)
        event = _event(memory_storage, family.id, [_member(memory_storage, family.id).id])
        assert not event.completed and event.completed_at is None

        done = memory_storage.toggle_event_completion(family.id, event.id)
        assert done.completed and done.completed_at is not None

        undone = memory_storage.toggle_event_completion(family.id, event.id)
        assert not undone.completed and undone.completed_at is None

    def test_partial_update_checks_merged_times(self, memory_storage):
        family = _family(memory_storage)
        event = _event(memory_storage, family.id, [_member(memory_storage, family.id).id])
        with pytest.raises(InvalidOperationError):
            memory_storage.update_event(family.id, event.id, EventUpdate(end_time=START - timedelta(hours=1)))

    def test_update_can_clear_description(self, memory_storage):
        family = _family(memory_storage)
        member = _member(memory_storage, family.id)
        event = memory_storage.create_event(family.id, EventCreate(
            title="Dentist", description="Dr. Chen", start_time=START, end_time=START,
            member_ids=[member.id], color="#F472B6"))
        updated = memory_storage.update_event(family.id, event.id, EventUpdate(description=None))
        assert updated.description is None
        assert updated.title == "Dentist"

    def test_events_sorted_by_start(self, memory_storage):
        family = _family(memory_storage)
        member_id = _member(memory_storage, family.id).id
        _event(memory_storage, family.id, [member_id], "Later", START + timedelta(days=1))
        _event(memory_storage, family.id, [member_id], "Sooner", START)
        assert [e.title for e in memory_storage.get_events(family.id)] == ["Sooner", "Later"]

    def test_member_update_keeps_unsent_fields(self, memory_storage):
        family = _family(memory_storage)
        member = _member(memory_storage, family.id)
        updated = memory_storage.update_family_member(family.id, member.id, FamilyMemberUpdate(name="Em"))
        assert updated.name == "Em"
        assert updated.color == member.color


class TestMedications:
    def test_soft_delete(self, memory_storage):
        family = _family(memory_storage)
        member = _member(memory_storage, family.id, "Dorothy")
        medication = memory_storage.create_medication(family.id, MedicationCreate(
            member_id=member.id, name="Lisinopril", dosage="10 mg", frequency="Once daily",
            scheduled_times=["08:00"]))
        memory_storage.create_medication_log(family.id, MedicationLogCreate(
            medication_id=medication.id, administered_by="u1", administered_at=START))

        memory_storage.delete_medication(family.id, medication.id)

        assert memory_storage.get_medications(family.id) == []
        inactive = memory_storage.get_medications(family.id, include_inactive=True)
        assert [m.is_active for m in inactive] == [False]
        assert len(memory_storage.get_medication_logs(family.id, medication.id)) == 1

    def test_discontinued_medication_cannot_be_logged(self, memory_storage):
        family = _family(memory_storage)
        member = _member(memory_storage, family.id, "Dorothy")
        medication = memory_storage.create_medication(family.id, MedicationCreate(
            member_id=member.id, name="Warfarin", dosage="5 mg", frequency="Once daily"))
        memory_storage.delete_medication(family.id, medication.id)

        with pytest.raises(InvalidOperationError):
            memory_storage.create_medication_log(family.id, MedicationLogCreate(
                medication_id=medication.id, administered_by="u1", administered_at=START))
        assert memory_storage.get_medication_logs(family.id) == []

    def test_logs_since_filter(self, memory_storage):
        family = _family(memory_storage)
        member = _member(memory_storage, family.id, "Dorothy")
        medication = memory_storage.create_medication(family.id, MedicationCreate(
            member_id=member.id, name="Vitamin D3", dosage="2000 IU", frequency="Once daily"))
        for days in (3, 1):
            memory_storage.create_medication_log(family.id, MedicationLogCreate(
                medication_id=medication.id, administered_by="u1",
                administered_at=START - timedelta(days=days)))
        recent = memory_storage.get_medication_logs(family.id, since=START - timedelta(days=2))
        assert len(recent) == 1

    def test_medication_member_must_be_in_family(self, memory_storage):
        mine = _family(memory_storage, "u1")
        theirs = _family(memory_storage, "u2", "Bo")
        with pytest.raises(NotFoundError):
            memory_storage.create_medication(mine.id, MedicationCreate(
                member_id=_member(memory_storage, theirs.id).id,
                name="Aspirin", dosage="81 mg", frequency="Daily"))


class TestCaregiverPay:
    def test_time_entry_snapshots_rate(self, memory_storage):
        family = _family(memory_storage)
        memory_storage.set_caregiver_pay_rate(family.id, "maria", PayRateSet(hourly_rate=20))
        entry = memory_storage.create_caregiver_time_entry(family.id, "maria", TimeEntryCreate(
            start_time=START, end_time=START + timedelta(hours=2)))
        assert entry.hours == 2.0
        assert entry.calculated_pay == 40.0

        memory_storage.set_caregiver_pay_rate(family.id, "maria", PayRateSet(hourly_rate=30))
        assert len(memory_storage.get_caregiver_pay_rates(family.id)) == 1

        stored = memory_storage.get_caregiver_time_entries(family.id, "maria")[0]
        assert stored.hourly_rate_at_time == 20
        assert stored.calculated_pay == 40.0

    def test_pay_is_rounded_to_cents(self, memory_storage):
        family = _family(memory_storage)
        memory_storage.set_caregiver_pay_rate(family.id, "maria", PayRateSet(hourly_rate=18))
        entry = memory_storage.create_caregiver_time_entry(family.id, "maria", TimeEntryCreate(
            start_time=START, end_time=START + timedelta(minutes=100)))
        assert entry.hours == 1.67
        assert entry.calculated_pay == 30.06

    def test_time_entry_without_rate_is_rejected(self, memory_storage):
        family = _family(memory_storage)
        with pytest.raises(InvalidOperationError):
            memory_storage.create_caregiver_time_entry(family.id, "maria", TimeEntryCreate(
                start_time=START, end_time=START + timedelta(hours=1)))
