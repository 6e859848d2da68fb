from datetime import datetime
from typing import Dict, List, Optional
import logging
import uuid

from app.core.errors import NotFoundError, InvalidOperationError
from app.storage.base import (
    Storage, generate_invite_code, default_family_name, calculate_pay,
    merged_times_valid, update_fields, DELETE_POLICY
)
from app.modules.users.schemas import UserUpsert, UserResponse
from app.modules.auth.schemas import SessionRecord
from app.modules.families.schemas import (
    FamilyCreate, FamilyUpdate, FamilyResponse, FamilyMembershipResponse
)
from app.modules.family_members.schemas import (
    FamilyMemberCreate, FamilyMemberUpdate, FamilyMemberResponse
)
from app.modules.events.schemas import (
    EventCreate, EventUpdate, EventResponse,
    MessageCreate, MessageResponse,
    EventNoteCreate, EventNoteResponse
)
from app.modules.medications.schemas import (
    MedicationCreate, MedicationUpdate, MedicationResponse,
    MedicationLogCreate, MedicationLogResponse
)
from app.modules.messages.schemas import FamilyMessageCreate, FamilyMessageResponse
from app.modules.caregivers.schemas import (
    PayRateSet, PayRateResponse, TimeEntryCreate, TimeEntryResponse
)

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return str(uuid.uuid4())


class MemoryStorage(Storage):
    """
    Process-local storage backed by dicts keyed by generated ids.
    List calls scan and filter by family_id. Used for demo identities and
    when no database is configured.
    """

    def __init__(self):
        self.users: Dict[str, UserResponse] = {}
        self.families: Dict[str, FamilyResponse] = {}
        self.memberships: Dict[str, FamilyMembershipResponse] = {}
        self.family_members: Dict[str, FamilyMemberResponse] = {}
        self.events: Dict[str, EventResponse] = {}
        self.messages: Dict[str, MessageResponse] = {}
        self.event_notes: Dict[str, EventNoteResponse] = {}
        self.medications: Dict[str, MedicationResponse] = {}
        self.medication_logs: Dict[str, MedicationLogResponse] = {}
        self.family_messages: Dict[str, FamilyMessageResponse] = {}
        self.pay_rates: Dict[str, PayRateResponse] = {}
        self.time_entries: Dict[str, TimeEntryResponse] = {}
        self.sessions: Dict[str, SessionRecord] = {}

    def has_family(self, family_id: str) -> bool:
        return family_id in self.families

    @staticmethod
    def _scoped(table: Dict, family_id: str, record_id: str):
        record = table.get(record_id)
        if record is None or record.family_id != family_id:
            return None
        return record

    # Users

    def get_user(self, user_id: str) -> Optional[UserResponse]:
        return self.users.get(user_id)

    def get_user_by_email(self, email: str) -> Optional[UserResponse]:
        if not email:
            return None
        for user in self.users.values():
            if user.email and user.email.lower() == email.lower():
                return user
        return None

    def upsert_user(self, data: UserUpsert, ensure_family: bool = True) -> UserResponse:
        now = datetime.utcnow()
        existing = self.users.get(data.id) or self.get_user_by_email(data.email)
        if existing:
            fields = data.model_dump(exclude={"id"}, exclude_none=True)
            user = existing.model_copy(update={**fields, "updated_at": now})
        else:
            user = UserResponse(**data.model_dump(), created_at=now, updated_at=now)
        self.users[user.id] = user

        if ensure_family and not self._memberships_for_user(user.id):
            family = self.create_family(user.id, FamilyCreate(name=default_family_name(data)))
            logger.info(f"Provisioned family {family.id} for user {user.id}")
        return user

    # Families & memberships

    def _memberships_for_user(self, user_id: str) -> List[FamilyMembershipResponse]:
        return [m for m in self.memberships.values() if m.user_id == user_id]

    def get_user_families(self, user_id: str) -> List[FamilyResponse]:
        memberships = sorted(self._memberships_for_user(user_id), key=lambda m: m.joined_at)
        return [self.families[m.family_id] for m in memberships if m.family_id in self.families]

    def get_user_family(self, user_id: str, family_id: str) -> Optional[FamilyResponse]:
        if not self.get_user_family_membership(user_id, family_id):
            return None
        return self.families.get(family_id)

    def get_all_families(self) -> List[FamilyResponse]:
        return sorted(self.families.values(), key=lambda f: f.created_at)

    def create_family(self, user_id: str, data: FamilyCreate) -> FamilyResponse:
        codes = {f.invite_code for f in self.families.values()}
        invite_code = generate_invite_code()
        while invite_code in codes:
            invite_code = generate_invite_code()
        family = FamilyResponse(
            id=_new_id(),
            name=data.name,
            invite_code=invite_code,
            created_by=user_id,
            created_at=datetime.utcnow(),
        )
        self.families[family.id] = family
        self.add_family_membership(family.id, user_id, "owner")
        return family

    def update_family(self, family_id: str, data: FamilyUpdate) -> FamilyResponse:
        family = self.families.get(family_id)
        if not family:
            raise NotFoundError("Family not found")
        family = family.model_copy(update=update_fields(data))
        self.families[family_id] = family
        return family

    def join_family(self, user_id: str, invite_code: str, role: str = "member") -> FamilyMembershipResponse:
        for family in self.families.values():
            if family.invite_code == invite_code.upper():
                return self.add_family_membership(family.id, user_id, role)
        raise NotFoundError("Invalid invite code")

    def get_user_family_membership(self, user_id: str, family_id: str) -> Optional[FamilyMembershipResponse]:
        for membership in self.memberships.values():
            if membership.user_id == user_id and membership.family_id == family_id:
                return membership
        return None

    def get_family_memberships(self, family_id: str) -> List[FamilyMembershipResponse]:
        return sorted(
            (m for m in self.memberships.values() if m.family_id == family_id),
            key=lambda m: m.joined_at,
        )

    def add_family_membership(self, family_id: str, user_id: str, role: str) -> FamilyMembershipResponse:
        if family_id not in self.families:
            raise NotFoundError("Family not found")
        existing = self.get_user_family_membership(user_id, family_id)
        if existing:
            return existing
        membership = FamilyMembershipResponse(
            id=_new_id(),
            family_id=family_id,
            user_id=user_id,
            role=role,
            joined_at=datetime.utcnow(),
        )
        self.memberships[membership.id] = membership
        return membership

    def update_membership_role(self, family_id: str, user_id: str, role: str) -> FamilyMembershipResponse:
        membership = self.get_user_family_membership(user_id, family_id)
        if not membership:
            raise NotFoundError("Membership not found")
        membership = membership.model_copy(update={"role": role})
        self.memberships[membership.id] = membership
        return membership

    # Family members

    def get_family_members(self, family_id: str) -> List[FamilyMemberResponse]:
        return sorted(
            (m for m in self.family_members.values() if m.family_id == family_id),
            key=lambda m: m.created_at,
        )

    def get_family_member(self, family_id: str, member_id: str) -> Optional[FamilyMemberResponse]:
        return self._scoped(self.family_members, family_id, member_id)

    def create_family_member(self, family_id: str, data: FamilyMemberCreate) -> FamilyMemberResponse:
        member = FamilyMemberResponse(
            id=_new_id(),
            family_id=family_id,
            created_at=datetime.utcnow(),
            **data.model_dump(),
        )
        self.family_members[member.id] = member
        return member

    def update_family_member(self, family_id: str, member_id: str, data: FamilyMemberUpdate) -> FamilyMemberResponse:
        member = self.get_family_member(family_id, member_id)
        if not member:
            raise NotFoundError("Family member not found")
        member = member.model_copy(update=update_fields(data, nullable=("avatar",)))
        self.family_members[member_id] = member
        return member

    def delete_family_member(self, family_id: str, member_id: str) -> None:
        if not self.get_family_member(family_id, member_id):
            raise NotFoundError("Family member not found")
        for event in [e for e in self.events.values() if e.family_id == family_id]:
            if member_id not in event.member_ids:
                continue
            remaining = [m for m in event.member_ids if m != member_id]
            if remaining:
                self.events[event.id] = event.model_copy(update={"member_ids": remaining})
            else:
                self.delete_event(family_id, event.id)
        del self.family_members[member_id]

    # Events

    def _check_members(self, family_id: str, member_ids: List[str]) -> None:
        for member_id in member_ids:
            if not self.get_family_member(family_id, member_id):
                raise NotFoundError("Family member not found")

    def get_events(self, family_id: str) -> List[EventResponse]:
        return sorted(
            (e for e in self.events.values() if e.family_id == family_id),
            key=lambda e: e.start_time,
        )

    def get_event(self, family_id: str, event_id: str) -> Optional[EventResponse]:
        return self._scoped(self.events, family_id, event_id)

    def create_event(self, family_id: str, data: EventCreate) -> EventResponse:
        self._check_members(family_id, data.member_ids)
        now = datetime.utcnow()
        event = EventResponse(
            id=_new_id(),
            family_id=family_id,
            completed_at=now if data.completed else None,
            created_at=now,
            **data.model_dump(),
        )
        self.events[event.id] = event
        return event

    def update_event(self, family_id: str, event_id: str, data: EventUpdate) -> EventResponse:
        event = self.get_event(family_id, event_id)
        if not event:
            raise NotFoundError("Event not found")
        fields = update_fields(data, nullable=("description", "photo_url"))
        if "member_ids" in fields:
            self._check_members(family_id, fields["member_ids"])
        updated = event.model_copy(update=fields)
        if not merged_times_valid(updated.start_time, updated.end_time):
            raise InvalidOperationError("end_time must not be before start_time")
        self.events[event_id] = updated
        return updated

    def set_event_photo(self, family_id: str, event_id: str, photo_url: Optional[str]) -> EventResponse:
        event = self.get_event(family_id, event_id)
        if not event:
            raise NotFoundError("Event not found")
        event = event.model_copy(update={"photo_url": photo_url})
        self.events[event_id] = event
        return event

    def delete_event(self, family_id: str, event_id: str) -> None:
        if not self.get_event(family_id, event_id):
            raise NotFoundError("Event not found")
        for message_id in [m.id for m in self.messages.values() if m.event_id == event_id]:
            del self.messages[message_id]
        for note_id in [n.id for n in self.event_notes.values() if n.event_id == event_id]:
            del self.event_notes[note_id]
        del self.events[event_id]

    def toggle_event_completion(self, family_id: str, event_id: str) -> EventResponse:
        event = self.get_event(family_id, event_id)
        if not event:
            raise NotFoundError("Event not found")
        completed = not event.completed
        event = event.model_copy(update={
            "completed": completed,
            "completed_at": datetime.utcnow() if completed else None,
        })
        self.events[event_id] = event
        return event

    # Event messages

    def get_event_messages(self, family_id: str, event_id: str) -> List[MessageResponse]:
        return sorted(
            (m for m in self.messages.values() if m.family_id == family_id and m.event_id == event_id),
            key=lambda m: m.created_at,
            reverse=True,
        )

    def create_message(self, family_id: str, data: MessageCreate) -> MessageResponse:
        if not self.get_event(family_id, data.event_id):
            raise NotFoundError("Event not found")
        message = MessageResponse(
            id=_new_id(),
            family_id=family_id,
            created_at=datetime.utcnow(),
            **data.model_dump(),
        )
        self.messages[message.id] = message
        return message

    def delete_message(self, family_id: str, message_id: str) -> None:
        if not self._scoped(self.messages, family_id, message_id):
            raise NotFoundError("Message not found")
        del self.messages[message_id]

    # Event notes

    def get_event_notes(self, family_id: str, event_id: str) -> List[EventNoteResponse]:
        return sorted(
            (n for n in self.event_notes.values() if n.family_id == family_id and n.event_id == event_id),
            key=lambda n: n.created_at,
        )

    def create_event_note(self, family_id: str, data: EventNoteCreate) -> EventNoteResponse:
        if not self.get_event(family_id, data.event_id):
            raise NotFoundError("Event not found")
        if data.parent_note_id:
            parent = self._scoped(self.event_notes, family_id, data.parent_note_id)
            if not parent or parent.event_id != data.event_id:
                raise NotFoundError("Parent note not found")
            if parent.parent_note_id:
                raise InvalidOperationError("Replies can only be one level deep")
        note = EventNoteResponse(
            id=_new_id(),
            family_id=family_id,
            created_at=datetime.utcnow(),
            **data.model_dump(),
        )
        self.event_notes[note.id] = note
        return note

    def delete_event_note(self, family_id: str, note_id: str) -> None:
        if not self._scoped(self.event_notes, family_id, note_id):
            raise NotFoundError("Note not found")
        for reply_id in [n.id for n in self.event_notes.values() if n.parent_note_id == note_id]:
            del self.event_notes[reply_id]
        del self.event_notes[note_id]

    # Medications

    def get_medications(self, family_id: str, include_inactive: bool = False) -> List[MedicationResponse]:
        return sorted(
            (
                m for m in self.medications.values()
                if m.family_id == family_id and (include_inactive or m.is_active)
            ),
            key=lambda m: m.name.lower(),
        )

    def get_medication(self, family_id: str, medication_id: str) -> Optional[MedicationResponse]:
        return self._scoped(self.medications, family_id, medication_id)

    def create_medication(self, family_id: str, data: MedicationCreate) -> MedicationResponse:
        if not self.get_family_member(family_id, data.member_id):
            raise NotFoundError("Family member not found")
        medication = MedicationResponse(
            id=_new_id(),
            family_id=family_id,
            is_active=True,
            created_at=datetime.utcnow(),
            **data.model_dump(),
        )
        self.medications[medication.id] = medication
        return medication

    def update_medication(self, family_id: str, medication_id: str, data: MedicationUpdate) -> MedicationResponse:
        medication = self.get_medication(family_id, medication_id)
        if not medication:
            raise NotFoundError("Medication not found")
        fields = update_fields(data, nullable=("instructions", "scheduled_times"))
        medication = medication.model_copy(update=fields)
        self.medications[medication_id] = medication
        return medication

    def delete_medication(self, family_id: str, medication_id: str) -> None:
        medication = self.get_medication(family_id, medication_id)
        if not medication:
            raise NotFoundError("Medication not found")
        self.medications[medication_id] = medication.model_copy(update={DELETE_POLICY["medication"]["flag"]: False})

    def get_medication_logs(
        self,
        family_id: str,
        medication_id: Optional[str] = None,
        since: Optional[datetime] = None
    ) -> List[MedicationLogResponse]:
        logs = [
            log for log in self.medication_logs.values()
            if log.family_id == family_id
            and (medication_id is None or log.medication_id == medication_id)
            and (since is None or log.administered_at >= since)
        ]
        return sorted(logs, key=lambda log: log.administered_at, reverse=True)

    def create_medication_log(self, family_id: str, data: MedicationLogCreate) -> MedicationLogResponse:
        medication = self.get_medication(family_id, data.medication_id)
        if not medication:
            raise NotFoundError("Medication not found")
        if not medication.is_active:
            raise InvalidOperationError("Medication has been discontinued")
        log = MedicationLogResponse(id=_new_id(), family_id=family_id, **data.model_dump())
        self.medication_logs[log.id] = log
        return log

    # Family messages

    def get_family_messages(self, family_id: str) -> List[FamilyMessageResponse]:
        return sorted(
            (m for m in self.family_messages.values() if m.family_id == family_id),
            key=lambda m: m.created_at,
        )

    def create_family_message(self, family_id: str, data: FamilyMessageCreate) -> FamilyMessageResponse:
        if data.parent_message_id:
            parent = self._scoped(self.family_messages, family_id, data.parent_message_id)
            if not parent:
                raise NotFoundError("Parent message not found")
            if parent.parent_message_id:
                raise InvalidOperationError("Replies can only be one level deep")
        message = FamilyMessageResponse(
            id=_new_id(),
            family_id=family_id,
            created_at=datetime.utcnow(),
            **data.model_dump(),
        )
        self.family_messages[message.id] = message
        return message

    def delete_family_message(self, family_id: str, message_id: str) -> None:
        if not self._scoped(self.family_messages, family_id, message_id):
            raise NotFoundError("Message not found")
        for reply_id in [m.id for m in self.family_messages.values() if m.parent_message_id == message_id]:
            del self.family_messages[reply_id]
        del self.family_messages[message_id]

    # Caregiver pay

    def get_caregiver_pay_rate(self, family_id: str, caregiver_user_id: str) -> Optional[PayRateResponse]:
        for rate in self.pay_rates.values():
            if rate.family_id == family_id and rate.caregiver_user_id == caregiver_user_id:
                return rate
        return None

    def get_caregiver_pay_rates(self, family_id: str) -> List[PayRateResponse]:
        return [r for r in self.pay_rates.values() if r.family_id == family_id]

    def set_caregiver_pay_rate(self, family_id: str, caregiver_user_id: str, data: PayRateSet) -> PayRateResponse:
        existing = self.get_caregiver_pay_rate(family_id, caregiver_user_id)
        rate = PayRateResponse(
            id=existing.id if existing else _new_id(),
            family_id=family_id,
            caregiver_user_id=caregiver_user_id,
            hourly_rate=data.hourly_rate,
            currency=data.currency.upper(),
            updated_at=datetime.utcnow(),
        )
        self.pay_rates[rate.id] = rate
        return rate

    def get_caregiver_time_entries(
        self,
        family_id: str,
        caregiver_user_id: Optional[str] = None
    ) -> List[TimeEntryResponse]:
        entries = [
            e for e in self.time_entries.values()
            if e.family_id == family_id
            and (caregiver_user_id is None or e.caregiver_user_id == caregiver_user_id)
        ]
        return sorted(entries, key=lambda e: e.start_time, reverse=True)

    def create_caregiver_time_entry(
        self,
        family_id: str,
        caregiver_user_id: str,
        data: TimeEntryCreate
    ) -> TimeEntryResponse:
        rate = self.get_caregiver_pay_rate(family_id, caregiver_user_id)
        if not rate:
            raise InvalidOperationError("No pay rate configured for this caregiver")
        hours = data.hours
        entry = TimeEntryResponse(
            id=_new_id(),
            family_id=family_id,
            caregiver_user_id=caregiver_user_id,
            start_time=data.start_time,
            end_time=data.end_time,
            hours=hours,
            hourly_rate_at_time=rate.hourly_rate,
            calculated_pay=calculate_pay(hours, rate.hourly_rate),
            notes=data.notes,
            created_at=datetime.utcnow(),
        )
        self.time_entries[entry.id] = entry
        return entry

    def delete_caregiver_time_entry(self, family_id: str, entry_id: str) -> None:
        if not self._scoped(self.time_entries, family_id, entry_id):
            raise NotFoundError("Time entry not found")
        del self.time_entries[entry_id]

    # Sessions

    def get_session(self, sid: str) -> Optional[SessionRecord]:
        return self.sessions.get(sid)

    def save_session(self, sid: str, sess: dict, expire: datetime) -> SessionRecord:
        record = SessionRecord(sid=sid, sess=sess, expire=expire)
        self.sessions[sid] = record
        return record

    def delete_session(self, sid: str) -> None:
        self.sessions.pop(sid, None)
