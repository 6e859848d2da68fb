"""
Storage interface shared by the Supabase engine and the in-memory engine.

Every family-scoped method takes the family_id together with the entity id,
so a caller can never address a row without naming the family it expects
the row to belong to. Lookups return None or an empty list; targeted
mutations raise NotFoundError when the id does not resolve inside the family.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional
import secrets

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

# How each entity is removed. "soft" flips a flag, "hard" removes the row
# after removing the rows listed under "cascade".
DELETE_POLICY = {
    "family_member": {"mode": "hard", "cascade": ["event_member_ids"]},
    "event": {"mode": "hard", "cascade": ["messages", "event_notes"]},
    "message": {"mode": "hard", "cascade": []},
    "event_note": {"mode": "hard", "cascade": ["direct_replies"]},
    "family_message": {"mode": "hard", "cascade": ["direct_replies"]},
    "medication": {"mode": "soft", "flag": "is_active"},
    "caregiver_time_entry": {"mode": "hard", "cascade": []},
}

INVITE_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
INVITE_CODE_LENGTH = 8


def generate_invite_code() -> str:
    return "".join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(INVITE_CODE_LENGTH))


def default_family_name(user: UserUpsert) -> str:
    if user.first_name:
        return f"{user.first_name}'s Family"
    return "My Family"


def calculate_pay(hours: float, hourly_rate: float) -> float:
    return round(hours * hourly_rate, 2)


def merged_times_valid(start_time: datetime, end_time: datetime) -> bool:
    return end_time >= start_time


def update_fields(data, nullable=()) -> dict:
    """Fields the client actually sent; None only survives for nullable columns"""
    fields = data.model_dump(exclude_unset=True)
    return {k: v for k, v in fields.items() if v is not None or k in nullable}


class Storage(ABC):

    # Users

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[UserResponse]:
        ...

    @abstractmethod
    def get_user_by_email(self, email: str) -> Optional[UserResponse]:
        ...

    @abstractmethod
    def upsert_user(self, data: UserUpsert, ensure_family: bool = True) -> UserResponse:
        """Insert or update by id, falling back to email; provision a personal
        family with an owner membership when the user has none"""

    # Families & memberships

    @abstractmethod
    def get_user_families(self, user_id: str) -> List[FamilyResponse]:
        ...

    @abstractmethod
    def get_user_family(self, user_id: str, family_id: str) -> Optional[FamilyResponse]:
        ...

    @abstractmethod
    def get_all_families(self) -> List[FamilyResponse]:
        ...

    @abstractmethod
    def create_family(self, user_id: str, data: FamilyCreate) -> FamilyResponse:
        ...

    @abstractmethod
    def update_family(self, family_id: str, data: FamilyUpdate) -> FamilyResponse:
        ...

    @abstractmethod
    def join_family(self, user_id: str, invite_code: str, role: str = "member") -> FamilyMembershipResponse:
        ...

    @abstractmethod
    def get_user_family_membership(self, user_id: str, family_id: str) -> Optional[FamilyMembershipResponse]:
        ...

    @abstractmethod
    def get_family_memberships(self, family_id: str) -> List[FamilyMembershipResponse]:
        ...

    @abstractmethod
    def add_family_membership(self, family_id: str, user_id: str, role: str) -> FamilyMembershipResponse:
        ...

    @abstractmethod
    def update_membership_role(self, family_id: str, user_id: str, role: str) -> FamilyMembershipResponse:
        ...

    # Family members

    @abstractmethod
    def get_family_members(self, family_id: str) -> List[FamilyMemberResponse]:
        ...

    @abstractmethod
    def get_family_member(self, family_id: str, member_id: str) -> Optional[FamilyMemberResponse]:
        ...

    @abstractmethod
    def create_family_member(self, family_id: str, data: FamilyMemberCreate) -> FamilyMemberResponse:
        ...

    @abstractmethod
    def update_family_member(self, family_id: str, member_id: str, data: FamilyMemberUpdate) -> FamilyMemberResponse:
        ...

    @abstractmethod
    def delete_family_member(self, family_id: str, member_id: str) -> None:
        """Strip the member from every event; events left without members are deleted"""

    # Events

    @abstractmethod
    def get_events(self, family_id: str) -> List[EventResponse]:
        ...

    @abstractmethod
    def get_event(self, family_id: str, event_id: str) -> Optional[EventResponse]:
        ...

    @abstractmethod
    def create_event(self, family_id: str, data: EventCreate) -> EventResponse:
        ...

    @abstractmethod
    def update_event(self, family_id: str, event_id: str, data: EventUpdate) -> EventResponse:
        ...

    @abstractmethod
    def set_event_photo(self, family_id: str, event_id: str, photo_url: Optional[str]) -> EventResponse:
        ...

    @abstractmethod
    def delete_event(self, family_id: str, event_id: str) -> None:
        ...

    @abstractmethod
    def toggle_event_completion(self, family_id: str, event_id: str) -> EventResponse:
        ...

    # Event messages

    @abstractmethod
    def get_event_messages(self, family_id: str, event_id: str) -> List[MessageResponse]:
        ...

    @abstractmethod
    def create_message(self, family_id: str, data: MessageCreate) -> MessageResponse:
        ...

    @abstractmethod
    def delete_message(self, family_id: str, message_id: str) -> None:
        ...

    # Event notes

    @abstractmethod
    def get_event_notes(self, family_id: str, event_id: str) -> List[EventNoteResponse]:
        ...

    @abstractmethod
    def create_event_note(self, family_id: str, data: EventNoteCreate) -> EventNoteResponse:
        ...

    @abstractmethod
    def delete_event_note(self, family_id: str, note_id: str) -> None:
        ...

    # Medications

    @abstractmethod
    def get_medications(self, family_id: str, include_inactive: bool = False) -> List[MedicationResponse]:
        ...

    @abstractmethod
    def get_medication(self, family_id: str, medication_id: str) -> Optional[MedicationResponse]:
        ...

    @abstractmethod
    def create_medication(self, family_id: str, data: MedicationCreate) -> MedicationResponse:
        ...

    @abstractmethod
    def update_medication(self, family_id: str, medication_id: str, data: MedicationUpdate) -> MedicationResponse:
        ...

    @abstractmethod
    def delete_medication(self, family_id: str, medication_id: str) -> None:
        ...

    @abstractmethod
    def get_medication_logs(
        self,
        family_id: str,
        medication_id: Optional[str] = None,
        since: Optional[datetime] = None
    ) -> List[MedicationLogResponse]:
        ...

    @abstractmethod
    def create_medication_log(self, family_id: str, data: MedicationLogCreate) -> MedicationLogResponse:
        ...

    # Family messages

    @abstractmethod
    def get_family_messages(self, family_id: str) -> List[FamilyMessageResponse]:
        ...

    @abstractmethod
    def create_family_message(self, family_id: str, data: FamilyMessageCreate) -> FamilyMessageResponse:
        ...

    @abstractmethod
    def delete_family_message(self, family_id: str, message_id: str) -> None:
        ...

    # Caregiver pay

    @abstractmethod
    def get_caregiver_pay_rate(self, family_id: str, caregiver_user_id: str) -> Optional[PayRateResponse]:
        ...

    @abstractmethod
    def get_caregiver_pay_rates(self, family_id: str) -> List[PayRateResponse]:
        ...

    @abstractmethod
    def set_caregiver_pay_rate(self, family_id: str, caregiver_user_id: str, data: PayRateSet) -> PayRateResponse:
        ...

    @abstractmethod
    def get_caregiver_time_entries(
        self,
        family_id: str,
        caregiver_user_id: Optional[str] = None
    ) -> List[TimeEntryResponse]:
        ...

    @abstractmethod
    def create_caregiver_time_entry(
        self,
        family_id: str,
        caregiver_user_id: str,
        data: TimeEntryCreate
    ) -> TimeEntryResponse:
        """Snapshot the current pay rate into the entry"""

    @abstractmethod
    def delete_caregiver_time_entry(self, family_id: str, entry_id: str) -> None:
        ...

    # Sessions

    @abstractmethod
    def get_session(self, sid: str) -> Optional[SessionRecord]:
        """Stored session or None; expiry is checked by the caller"""

    @abstractmethod
    def save_session(self, sid: str, sess: dict, expire: datetime) -> SessionRecord:
        ...

    @abstractmethod
    def delete_session(self, sid: str) -> None:
        ...
