"""
Routes every storage call to one of two engines.

Demo identities and the families they own live in a process-local memory
engine; everyone else goes to the persistent engine. A call is routed by its
user id where it has one, otherwise by whether the family id exists in the
memory engine.
"""

from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from app.config import settings
from app.storage.base import Storage
from app.storage.memory import MemoryStorage


class StorageBackend(str, Enum):
    PERSISTENT = "persistent"
    MEMORY = "memory"


def is_demo_user_id(user_id: Optional[str]) -> bool:
    return bool(user_id) and user_id.startswith(settings.demo_user_prefix)


class DemoAwareStorage(Storage):

    def __init__(
        self,
        persistent: Storage,
        memory: MemoryStorage,
        is_demo_user: Optional[Callable[[str], bool]] = None
    ):
        self.persistent = persistent
        self.memory = memory
        self.is_demo_user = is_demo_user or is_demo_user_id

    def backend_for_user(self, user_id: str) -> StorageBackend:
        if self.is_demo_user(user_id):
            return StorageBackend.MEMORY
        return StorageBackend.PERSISTENT

    def backend_for_family(self, family_id: str) -> StorageBackend:
        if self.memory.has_family(family_id):
            return StorageBackend.MEMORY
        return StorageBackend.PERSISTENT

    def _engine(self, backend: StorageBackend) -> Storage:
        return self.memory if backend == StorageBackend.MEMORY else self.persistent

    def _user(self, user_id: str) -> Storage:
        return self._engine(self.backend_for_user(user_id))

    def _family(self, family_id: str) -> Storage:
        return self._engine(self.backend_for_family(family_id))

    def _user_or_family(self, user_id: str, family_id: str) -> Storage:
        if self.is_demo_user(user_id):
            return self.memory
        return self._family(family_id)

    # Users

    def get_user(self, user_id):
        return self._user(user_id).get_user(user_id)

    def get_user_by_email(self, email):
        return self.persistent.get_user_by_email(email)

    def upsert_user(self, data, ensure_family=True):
        return self._user(data.id).upsert_user(data, ensure_family=ensure_family)

    # Families & memberships

    def get_user_families(self, user_id):
        return self._user(user_id).get_user_families(user_id)

    def get_user_family(self, user_id, family_id):
        return self._user_or_family(user_id, family_id).get_user_family(user_id, family_id)

    def get_all_families(self):
        return self.persistent.get_all_families()

    def create_family(self, user_id, data):
        return self._user(user_id).create_family(user_id, data)

    def update_family(self, family_id, data):
        return self._family(family_id).update_family(family_id, data)

    def join_family(self, user_id, invite_code, role="member"):
        return self._user(user_id).join_family(user_id, invite_code, role)

    def get_user_family_membership(self, user_id, family_id):
        return self._user_or_family(user_id, family_id).get_user_family_membership(user_id, family_id)

    def get_family_memberships(self, family_id):
        return self._family(family_id).get_family_memberships(family_id)

    def add_family_membership(self, family_id, user_id, role):
        return self._family(family_id).add_family_membership(family_id, user_id, role)

    def update_membership_role(self, family_id, user_id, role):
        return self._family(family_id).update_membership_role(family_id, user_id, role)

    # Family members

    def get_family_members(self, family_id):
        return self._family(family_id).get_family_members(family_id)

    def get_family_member(self, family_id, member_id):
        return self._family(family_id).get_family_member(family_id, member_id)

    def create_family_member(self, family_id, data):
        return self._family(family_id).create_family_member(family_id, data)

    def update_family_member(self, family_id, member_id, data):
        return self._family(family_id).update_family_member(family_id, member_id, data)

    def delete_family_member(self, family_id, member_id):
        return self._family(family_id).delete_family_member(family_id, member_id)

    # Events

    def get_events(self, family_id):
        return self._family(family_id).get_events(family_id)

    def get_event(self, family_id, event_id):
        return self._family(family_id).get_event(family_id, event_id)

    def create_event(self, family_id, data):
        return self._family(family_id).create_event(family_id, data)

    def update_event(self, family_id, event_id, data):
        return self._family(family_id).update_event(family_id, event_id, data)

    def set_event_photo(self, family_id, event_id, photo_url):
        return self._family(family_id).set_event_photo(family_id, event_id, photo_url)

    def delete_event(self, family_id, event_id):
        return self._family(family_id).delete_event(family_id, event_id)

    def toggle_event_completion(self, family_id, event_id):
        return self._family(family_id).toggle_event_completion(family_id, event_id)

    # Event messages

    def get_event_messages(self, family_id, event_id):
        return self._family(family_id).get_event_messages(family_id, event_id)

    def create_message(self, family_id, data):
        return self._family(family_id).create_message(family_id, data)

    def delete_message(self, family_id, message_id):
        return self._family(family_id).delete_message(family_id, message_id)

    # Event notes

    def get_event_notes(self, family_id, event_id):
        return self._family(family_id).get_event_notes(family_id, event_id)

    def create_event_note(self, family_id, data):
        return self._family(family_id).create_event_note(family_id, data)

    def delete_event_note(self, family_id, note_id):
        return self._family(family_id).delete_event_note(family_id, note_id)

    # Medications

    def get_medications(self, family_id, include_inactive=False):
        return self._family(family_id).get_medications(family_id, include_inactive)

    def get_medication(self, family_id, medication_id):
        return self._family(family_id).get_medication(family_id, medication_id)

    def create_medication(self, family_id, data):
        return self._family(family_id).create_medication(family_id, data)

    def update_medication(self, family_id, medication_id, data):
        return self._family(family_id).update_medication(family_id, medication_id, data)

    def delete_medication(self, family_id, medication_id):
        return self._family(family_id).delete_medication(family_id, medication_id)

    def get_medication_logs(self, family_id, medication_id=None, since: Optional[datetime] = None):
        return self._family(family_id).get_medication_logs(family_id, medication_id, since)

    def create_medication_log(self, family_id, data):
        return self._family(family_id).create_medication_log(family_id, data)

    # Family messages

    def get_family_messages(self, family_id):
        return self._family(family_id).get_family_messages(family_id)

    def create_family_message(self, family_id, data):
        return self._family(family_id).create_family_message(family_id, data)

    def delete_family_message(self, family_id, message_id):
        return self._family(family_id).delete_family_message(family_id, message_id)

    # Caregiver pay

    def get_caregiver_pay_rate(self, family_id, caregiver_user_id):
        return self._family(family_id).get_caregiver_pay_rate(family_id, caregiver_user_id)

    def get_caregiver_pay_rates(self, family_id):
        return self._family(family_id).get_caregiver_pay_rates(family_id)

    def set_caregiver_pay_rate(self, family_id, caregiver_user_id, data):
        return self._family(family_id).set_caregiver_pay_rate(family_id, caregiver_user_id, data)

    def get_caregiver_time_entries(self, family_id, caregiver_user_id=None):
        return self._family(family_id).get_caregiver_time_entries(family_id, caregiver_user_id)

    def create_caregiver_time_entry(self, family_id, caregiver_user_id, data):
        return self._family(family_id).create_caregiver_time_entry(family_id, caregiver_user_id, data)

    def delete_caregiver_time_entry(self, family_id, entry_id):
        return self._family(family_id).delete_caregiver_time_entry(family_id, entry_id)

    # Sessions

    def get_session(self, sid):
        return self.memory.get_session(sid) or self.persistent.get_session(sid)

    def save_session(self, sid, sess, expire):
        return self._user(sess["id"]).save_session(sid, sess, expire)

    def delete_session(self, sid):
        if self.memory.get_session(sid):
            self.memory.delete_session(sid)
        else:
            self.persistent.delete_session(sid)
