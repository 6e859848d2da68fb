from datetime import datetime
from typing import List, Optional
import logging

from supabase import Client

from app.core.errors import NotFoundError, InvalidOperationError
from app.storage.base import (
    Storage, generate_invite_code, default_family_name, calculate_pay,
    merged_times_valid, update_fields, DELETE_POLICY
)
from app.modules.users.models import USERS_TABLE
from app.modules.auth.models import SESSIONS_TABLE
from app.modules.families.models import FAMILIES_TABLE, FAMILY_MEMBERSHIPS_TABLE
from app.modules.family_members.models import FAMILY_MEMBERS_TABLE
from app.modules.events.models import EVENTS_TABLE, MESSAGES_TABLE, EVENT_NOTES_TABLE
from app.modules.medications.models import MEDICATIONS_TABLE, MEDICATION_LOGS_TABLE
from app.modules.messages.models import FAMILY_MESSAGES_TABLE
from app.modules.caregivers.models import CAREGIVER_PAY_RATES_TABLE, CAREGIVER_TIME_ENTRIES_TABLE
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

MAX_INVITE_CODE_ATTEMPTS = 10


def _json(fields: dict) -> dict:
    """Datetimes go over the wire as ISO strings"""
    return {k: v.isoformat() if isinstance(v, datetime) else v for k, v in fields.items()}


class SupabaseStorage(Storage):
    """
    Persistent storage over Supabase tables. Every query on a family-owned
    table carries an eq("family_id", ...) predicate next to the id predicate.
    Multi-step deletes are sequential statements, children first.
    """

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _scoped_row(self, table: str, family_id: str, record_id: str) -> Optional[dict]:
        result = self.supabase.table(table)\
            .select("*")\
            .eq("id", record_id)\
            .eq("family_id", family_id)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def _scoped_update(self, table: str, family_id: str, record_id: str, fields: dict) -> Optional[dict]:
        result = self.supabase.table(table)\
            .update(_json(fields))\
            .eq("id", record_id)\
            .eq("family_id", family_id)\
            .execute()
        return result.data[0] if result.data else None

    def _scoped_delete(self, table: str, family_id: str, record_id: str) -> bool:
        result = self.supabase.table(table)\
            .delete()\
            .eq("id", record_id)\
            .eq("family_id", family_id)\
            .execute()
        return len(result.data) > 0

    def _insert(self, table: str, fields: dict) -> dict:
        result = self.supabase.table(table).insert(_json(fields)).execute()
        return result.data[0]

    # Users

    def get_user(self, user_id: str) -> Optional[UserResponse]:
        result = self.supabase.table(USERS_TABLE)\
            .select("*")\
            .eq("id", user_id)\
            .limit(1)\
            .execute()
        return UserResponse(**result.data[0]) if result.data else None

    def get_user_by_email(self, email: str) -> Optional[UserResponse]:
        if not email:
            return None
        result = self.supabase.table(USERS_TABLE)\
            .select("*")\
            .eq("email", email.lower())\
            .limit(1)\
            .execute()
        return UserResponse(**result.data[0]) if result.data else None

    def upsert_user(self, data: UserUpsert, ensure_family: bool = True) -> UserResponse:
        existing = self.get_user(data.id) or self.get_user_by_email(data.email)
        if existing:
            fields = data.model_dump(exclude={"id"}, exclude_none=True)
            fields["updated_at"] = datetime.utcnow()
            result = self.supabase.table(USERS_TABLE)\
                .update(_json(fields))\
                .eq("id", existing.id)\
                .execute()
            user = UserResponse(**result.data[0])
        else:
            user = UserResponse(**self._insert(USERS_TABLE, data.model_dump()))

        if ensure_family:
            memberships = self.supabase.table(FAMILY_MEMBERSHIPS_TABLE)\
                .select("id")\
                .eq("user_id", user.id)\
                .limit(1)\
                .execute()
            if not memberships.data:
                family = self.create_family(user.id, FamilyCreate(name=default_family_name(data)))
                logger.info(f"Provisioned family {family.id} for user {user.id}")
        return user

    # Families & memberships

    def get_user_families(self, user_id: str) -> List[FamilyResponse]:
        result = self.supabase.table(FAMILY_MEMBERSHIPS_TABLE)\
            .select("family_id, families(*)")\
            .eq("user_id", user_id)\
            .order("joined_at")\
            .execute()
        families = []
        for item in result.data or []:
            if item.get("families"):
                families.append(FamilyResponse(**item["families"]))
        return families

    def get_user_family(self, user_id: str, family_id: str) -> Optional[FamilyResponse]:
        if not self.get_user_family_membership(user_id, family_id):
            return None
        result = self.supabase.table(FAMILIES_TABLE)\
            .select("*")\
            .eq("id", family_id)\
            .limit(1)\
            .execute()
        return FamilyResponse(**result.data[0]) if result.data else None

    def get_all_families(self) -> List[FamilyResponse]:
        result = self.supabase.table(FAMILIES_TABLE)\
            .select("*")\
            .order("created_at")\
            .execute()
        return [FamilyResponse(**family) for family in result.data]

    def _unused_invite_code(self) -> str:
        for _ in range(MAX_INVITE_CODE_ATTEMPTS):
            code = generate_invite_code()
            taken = self.supabase.table(FAMILIES_TABLE)\
                .select("id")\
                .eq("invite_code", code)\
                .limit(1)\
                .execute()
            if not taken.data:
                return code
        raise RuntimeError("Could not generate a unique invite code")

    def create_family(self, user_id: str, data: FamilyCreate) -> FamilyResponse:
        family = FamilyResponse(**self._insert(FAMILIES_TABLE, {
            "name": data.name,
            "invite_code": self._unused_invite_code(),
            "created_by": user_id,
        }))
        self.add_family_membership(family.id, user_id, "owner")
        return family

    def update_family(self, family_id: str, data: FamilyUpdate) -> FamilyResponse:
        fields = update_fields(data)
        if not fields:
            result = self.supabase.table(FAMILIES_TABLE).select("*").eq("id", family_id).limit(1).execute()
        else:
            result = self.supabase.table(FAMILIES_TABLE)\
                .update(fields)\
                .eq("id", family_id)\
                .execute()
        if not result.data:
            raise NotFoundError("Family not found")
        return FamilyResponse(**result.data[0])

    def join_family(self, user_id: str, invite_code: str, role: str = "member") -> FamilyMembershipResponse:
        result = self.supabase.table(FAMILIES_TABLE)\
            .select("id")\
            .eq("invite_code", invite_code.upper())\
            .limit(1)\
            .execute()
        if not result.data:
            raise NotFoundError("Invalid invite code")
        return self.add_family_membership(result.data[0]["id"], user_id, role)

    def get_user_family_membership(self, user_id: str, family_id: str) -> Optional[FamilyMembershipResponse]:
        result = self.supabase.table(FAMILY_MEMBERSHIPS_TABLE)\
            .select("*")\
            .eq("user_id", user_id)\
            .eq("family_id", family_id)\
            .limit(1)\
            .execute()
        return FamilyMembershipResponse(**result.data[0]) if result.data else None

    def get_family_memberships(self, family_id: str) -> List[FamilyMembershipResponse]:
        result = self.supabase.table(FAMILY_MEMBERSHIPS_TABLE)\
            .select("*")\
            .eq("family_id", family_id)\
            .order("joined_at")\
            .execute()
        return [FamilyMembershipResponse(**m) for m in result.data]

    def add_family_membership(self, family_id: str, user_id: str, role: str) -> FamilyMembershipResponse:
        existing = self.get_user_family_membership(user_id, family_id)
        if existing:
            return existing
        return FamilyMembershipResponse(**self._insert(FAMILY_MEMBERSHIPS_TABLE, {
            "family_id": family_id,
            "user_id": user_id,
            "role": role,
        }))

    def update_membership_role(self, family_id: str, user_id: str, role: str) -> FamilyMembershipResponse:
        result = self.supabase.table(FAMILY_MEMBERSHIPS_TABLE)\
            .update({"role": role})\
            .eq("user_id", user_id)\
            .eq("family_id", family_id)\
            .execute()
        if not result.data:
            raise NotFoundError("Membership not found")
        return FamilyMembershipResponse(**result.data[0])

    # Family members

    def get_family_members(self, family_id: str) -> List[FamilyMemberResponse]:
        result = self.supabase.table(FAMILY_MEMBERS_TABLE)\
            .select("*")\
            .eq("family_id", family_id)\
            .order("created_at")\
            .execute()
        return [FamilyMemberResponse(**m) for m in result.data]

    def get_family_member(self, family_id: str, member_id: str) -> Optional[FamilyMemberResponse]:
        row = self._scoped_row(FAMILY_MEMBERS_TABLE, family_id, member_id)
        return FamilyMemberResponse(**row) if row else None

    def create_family_member(self, family_id: str, data: FamilyMemberCreate) -> FamilyMemberResponse:
        return FamilyMemberResponse(**self._insert(FAMILY_MEMBERS_TABLE, {
            "family_id": family_id,
            **data.model_dump(),
        }))

    def update_family_member(self, family_id: str, member_id: str, data: FamilyMemberUpdate) -> FamilyMemberResponse:
        fields = update_fields(data, nullable=("avatar",))
        row = self._scoped_update(FAMILY_MEMBERS_TABLE, family_id, member_id, fields) if fields \
            else self._scoped_row(FAMILY_MEMBERS_TABLE, family_id, member_id)
        if not row:
            raise NotFoundError("Family member not found")
        return FamilyMemberResponse(**row)

    def delete_family_member(self, family_id: str, member_id: str) -> None:
        if not self.get_family_member(family_id, member_id):
            raise NotFoundError("Family member not found")

        referencing = self.supabase.table(EVENTS_TABLE)\
            .select("id, member_ids")\
            .eq("family_id", family_id)\
            .contains("member_ids", [member_id])\
            .execute()
        for event in referencing.data or []:
            remaining = [m for m in event["member_ids"] if m != member_id]
            if remaining:
                self._scoped_update(EVENTS_TABLE, family_id, event["id"], {"member_ids": remaining})
            else:
                self.delete_event(family_id, event["id"])

        self._scoped_delete(FAMILY_MEMBERS_TABLE, family_id, member_id)

    # Events

    def _check_members(self, family_id: str, member_ids: List[str]) -> None:
        wanted = set(member_ids)
        result = self.supabase.table(FAMILY_MEMBERS_TABLE)\
            .select("id")\
            .eq("family_id", family_id)\
            .in_("id", list(wanted))\
            .execute()
        if len(result.data or []) != len(wanted):
            raise NotFoundError("Family member not found")

    def get_events(self, family_id: str) -> List[EventResponse]:
        result = self.supabase.table(EVENTS_TABLE)\
            .select("*")\
            .eq("family_id", family_id)\
            .order("start_time")\
            .execute()
        return [EventResponse(**e) for e in result.data]

    def get_event(self, family_id: str, event_id: str) -> Optional[EventResponse]:
        row = self._scoped_row(EVENTS_TABLE, family_id, event_id)
        return EventResponse(**row) if row else None

    def create_event(self, family_id: str, data: EventCreate) -> EventResponse:
        self._check_members(family_id, data.member_ids)
        fields = {"family_id": family_id, **data.model_dump()}
        if data.completed:
            fields["completed_at"] = datetime.utcnow()
        return EventResponse(**self._insert(EVENTS_TABLE, fields))

    def update_event(self, family_id: str, event_id: str, data: EventUpdate) -> EventResponse:
        event = self.get_event(family_id, event_id)
        if not event:
            raise NotFoundError("Event not found")
        fields = update_fields(data, nullable=("description", "photo_url"))
        if not fields:
            return event
        if "member_ids" in fields:
            self._check_members(family_id, fields["member_ids"])
        merged = event.model_copy(update=fields)
        if not merged_times_valid(merged.start_time, merged.end_time):
            raise InvalidOperationError("end_time must not be before start_time")
        row = self._scoped_update(EVENTS_TABLE, family_id, event_id, fields)
        if not row:
            raise NotFoundError("Event not found")
        return EventResponse(**row)

    def set_event_photo(self, family_id: str, event_id: str, photo_url: Optional[str]) -> EventResponse:
        row = self._scoped_update(EVENTS_TABLE, family_id, event_id, {"photo_url": photo_url})
        if not row:
            raise NotFoundError("Event not found")
        return EventResponse(**row)

    def delete_event(self, family_id: str, event_id: str) -> None:
        if not self.get_event(family_id, event_id):
            raise NotFoundError("Event not found")

        # Delete messages and notes first
        self.supabase.table(MESSAGES_TABLE)\
            .delete()\
            .eq("event_id", event_id)\
            .eq("family_id", family_id)\
            .execute()
        self.supabase.table(EVENT_NOTES_TABLE)\
            .delete()\
            .eq("event_id", event_id)\
            .eq("family_id", family_id)\
            .execute()

        self._scoped_delete(EVENTS_TABLE, family_id, event_id)

    def toggle_event_completion(self, family_id: str, event_id: str) -> EventResponse:
        event = self.get_event(family_id, event_id)
        if not event:
            raise NotFoundError("Event not found")
        completed = not event.completed
        row = self._scoped_update(EVENTS_TABLE, family_id, event_id, {
            "completed": completed,
            "completed_at": datetime.utcnow() if completed else None,
        })
        if not row:
            raise NotFoundError("Event not found")
        return EventResponse(**row)

    # Event messages

    def get_event_messages(self, family_id: str, event_id: str) -> List[MessageResponse]:
        result = self.supabase.table(MESSAGES_TABLE)\
            .select("*")\
            .eq("family_id", family_id)\
            .eq("event_id", event_id)\
            .order("created_at", desc=True)\
            .execute()
        return [MessageResponse(**m) for m in result.data]

    def create_message(self, family_id: str, data: MessageCreate) -> MessageResponse:
        if not self.get_event(family_id, data.event_id):
            raise NotFoundError("Event not found")
        return MessageResponse(**self._insert(MESSAGES_TABLE, {"family_id": family_id, **data.model_dump()}))

    def delete_message(self, family_id: str, message_id: str) -> None:
        if not self._scoped_delete(MESSAGES_TABLE, family_id, message_id):
            raise NotFoundError("Message not found")

    # Event notes

    def get_event_notes(self, family_id: str, event_id: str) -> List[EventNoteResponse]:
        result = self.supabase.table(EVENT_NOTES_TABLE)\
            .select("*")\
            .eq("family_id", family_id)\
            .eq("event_id", event_id)\
            .order("created_at")\
            .execute()
        return [EventNoteResponse(**n) for n in result.data]

    def create_event_note(self, family_id: str, data: EventNoteCreate) -> EventNoteResponse:
        if not self.get_event(family_id, data.event_id):
            raise NotFoundError("Event not found")
        if data.parent_note_id:
            parent = self._scoped_row(EVENT_NOTES_TABLE, family_id, data.parent_note_id)
            if not parent or parent["event_id"] != data.event_id:
                raise NotFoundError("Parent note not found")
            if parent.get("parent_note_id"):
                raise InvalidOperationError("Replies can only be one level deep")
        return EventNoteResponse(**self._insert(EVENT_NOTES_TABLE, {"family_id": family_id, **data.model_dump()}))

    def delete_event_note(self, family_id: str, note_id: str) -> None:
        if not self._scoped_row(EVENT_NOTES_TABLE, family_id, note_id):
            raise NotFoundError("Note not found")
        self.supabase.table(EVENT_NOTES_TABLE)\
            .delete()\
            .eq("parent_note_id", note_id)\
            .eq("family_id", family_id)\
            .execute()
        self._scoped_delete(EVENT_NOTES_TABLE, family_id, note_id)

    # Medications

    def get_medications(self, family_id: str, include_inactive: bool = False) -> List[MedicationResponse]:
        query = self.supabase.table(MEDICATIONS_TABLE)\
            .select("*")\
            .eq("family_id", family_id)
        if not include_inactive:
            query = query.eq("is_active", True)
        result = query.order("name").execute()
        return [MedicationResponse(**m) for m in result.data]

    def get_medication(self, family_id: str, medication_id: str) -> Optional[MedicationResponse]:
        row = self._scoped_row(MEDICATIONS_TABLE, family_id, medication_id)
        return MedicationResponse(**row) if row else None

    def create_medication(self, family_id: str, data: MedicationCreate) -> MedicationResponse:
        if not self.get_family_member(family_id, data.member_id):
            raise NotFoundError("Family member not found")
        return MedicationResponse(**self._insert(MEDICATIONS_TABLE, {
            "family_id": family_id,
            "is_active": True,
            **data.model_dump(),
        }))

    def update_medication(self, family_id: str, medication_id: str, data: MedicationUpdate) -> MedicationResponse:
        fields = update_fields(data, nullable=("instructions", "scheduled_times"))
        row = self._scoped_update(MEDICATIONS_TABLE, family_id, medication_id, fields) if fields \
            else self._scoped_row(MEDICATIONS_TABLE, family_id, medication_id)
        if not row:
            raise NotFoundError("Medication not found")
        return MedicationResponse(**row)

    def delete_medication(self, family_id: str, medication_id: str) -> None:
        flag = DELETE_POLICY["medication"]["flag"]
        if not self._scoped_update(MEDICATIONS_TABLE, family_id, medication_id, {flag: False}):
            raise NotFoundError("Medication not found")

    def get_medication_logs(
        self,
        family_id: str,
        medication_id: Optional[str] = None,
        since: Optional[datetime] = None
    ) -> List[MedicationLogResponse]:
        query = self.supabase.table(MEDICATION_LOGS_TABLE)\
            .select("*")\
            .eq("family_id", family_id)
        if medication_id:
            query = query.eq("medication_id", medication_id)
        if since:
            query = query.gte("administered_at", since.isoformat())
        result = query.order("administered_at", desc=True).execute()
        return [MedicationLogResponse(**log) for log in result.data]

    def create_medication_log(self, family_id: str, data: MedicationLogCreate) -> MedicationLogResponse:
        medication = self.get_medication(family_id, data.medication_id)
        if not medication:
            raise NotFoundError("Medication not found")
        if not medication.is_active:
            raise InvalidOperationError("Medication has been discontinued")
        return MedicationLogResponse(**self._insert(MEDICATION_LOGS_TABLE, {
            "family_id": family_id,
            **data.model_dump(),
        }))

    # Family messages

    def get_family_messages(self, family_id: str) -> List[FamilyMessageResponse]:
        result = self.supabase.table(FAMILY_MESSAGES_TABLE)\
            .select("*")\
            .eq("family_id", family_id)\
            .order("created_at")\
            .execute()
        return [FamilyMessageResponse(**m) for m in result.data]

    def create_family_message(self, family_id: str, data: FamilyMessageCreate) -> FamilyMessageResponse:
        if data.parent_message_id:
            parent = self._scoped_row(FAMILY_MESSAGES_TABLE, family_id, data.parent_message_id)
            if not parent:
                raise NotFoundError("Parent message not found")
            if parent.get("parent_message_id"):
                raise InvalidOperationError("Replies can only be one level deep")
        return FamilyMessageResponse(**self._insert(FAMILY_MESSAGES_TABLE, {
            "family_id": family_id,
            **data.model_dump(),
        }))

    def delete_family_message(self, family_id: str, message_id: str) -> None:
        if not self._scoped_row(FAMILY_MESSAGES_TABLE, family_id, message_id):
            raise NotFoundError("Message not found")
        self.supabase.table(FAMILY_MESSAGES_TABLE)\
            .delete()\
            .eq("parent_message_id", message_id)\
            .eq("family_id", family_id)\
            .execute()
        self._scoped_delete(FAMILY_MESSAGES_TABLE, family_id, message_id)

    # Caregiver pay

    def get_caregiver_pay_rate(self, family_id: str, caregiver_user_id: str) -> Optional[PayRateResponse]:
        result = self.supabase.table(CAREGIVER_PAY_RATES_TABLE)\
            .select("*")\
            .eq("family_id", family_id)\
            .eq("caregiver_user_id", caregiver_user_id)\
            .limit(1)\
            .execute()
        return PayRateResponse(**result.data[0]) if result.data else None

    def get_caregiver_pay_rates(self, family_id: str) -> List[PayRateResponse]:
        result = self.supabase.table(CAREGIVER_PAY_RATES_TABLE)\
            .select("*")\
            .eq("family_id", family_id)\
            .execute()
        return [PayRateResponse(**r) for r in result.data]

    def set_caregiver_pay_rate(self, family_id: str, caregiver_user_id: str, data: PayRateSet) -> PayRateResponse:
        result = self.supabase.table(CAREGIVER_PAY_RATES_TABLE)\
            .upsert(_json({
                "family_id": family_id,
                "caregiver_user_id": caregiver_user_id,
                "hourly_rate": data.hourly_rate,
                "currency": data.currency.upper(),
                "updated_at": datetime.utcnow(),
            }), on_conflict="family_id,caregiver_user_id")\
            .execute()
        return PayRateResponse(**result.data[0])

    def get_caregiver_time_entries(
        self,
        family_id: str,
        caregiver_user_id: Optional[str] = None
    ) -> List[TimeEntryResponse]:
        query = self.supabase.table(CAREGIVER_TIME_ENTRIES_TABLE)\
            .select("*")\
            .eq("family_id", family_id)
        if caregiver_user_id:
            query = query.eq("caregiver_user_id", caregiver_user_id)
        result = query.order("start_time", desc=True).execute()
        return [TimeEntryResponse(**e) for e in result.data]

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
        return TimeEntryResponse(**self._insert(CAREGIVER_TIME_ENTRIES_TABLE, {
            "family_id": family_id,
            "caregiver_user_id": caregiver_user_id,
            "start_time": data.start_time,
            "end_time": data.end_time,
            "hours": hours,
            "hourly_rate_at_time": rate.hourly_rate,
            "calculated_pay": calculate_pay(hours, rate.hourly_rate),
            "notes": data.notes,
        }))

    def delete_caregiver_time_entry(self, family_id: str, entry_id: str) -> None:
        if not self._scoped_delete(CAREGIVER_TIME_ENTRIES_TABLE, family_id, entry_id):
            raise NotFoundError("Time entry not found")

    # Sessions

    def get_session(self, sid: str) -> Optional[SessionRecord]:
        result = self.supabase.table(SESSIONS_TABLE)\
            .select("*")\
            .eq("sid", sid)\
            .limit(1)\
            .execute()
        return SessionRecord(**result.data[0]) if result.data else None

    def save_session(self, sid: str, sess: dict, expire: datetime) -> SessionRecord:
        result = self.supabase.table(SESSIONS_TABLE)\
            .upsert(_json({"sid": sid, "sess": sess, "expire": expire}), on_conflict="sid")\
            .execute()
        return SessionRecord(**result.data[0])

    def delete_session(self, sid: str) -> None:
        self.supabase.table(SESSIONS_TABLE).delete().eq("sid", sid).execute()
