from datetime import datetime, timedelta, timezone

from app.modules.cron.service import WeeklySummaryService
from app.modules.events.schemas import EventCreate
from app.modules.family_members.schemas import FamilyMemberCreate
from app.modules.users.schemas import UserUpsert
from tests.conftest import add_user

NOW = datetime(2024, 5, 13, 15, 0)


class FakeEmailClient:
    def __init__(self, succeed=True):
        self.succeed = succeed
        self.sent = []

    def send(self, to_email, subject, html, text):
        self.sent.append({"to": to_email, "subject": subject, "html": html, "text": text})
        return self.succeed


def _family_with_events(storage):
    storage.upsert_user(UserUpsert(id="owner", email="ana@example.com", first_name="Ana"))
    family = storage.get_user_families("owner")[0]
    emma = storage.create_family_member(family.id, FamilyMemberCreate(name="Emma", color="#F472B6"))

    def event(title, start):
        storage.create_event(family.id, EventCreate(
            title=title, start_time=start, end_time=start + timedelta(hours=1),
            member_ids=[emma.id], color="#F472B6",
        ))

    event("Ballet", datetime(2024, 5, 14, 16, 0))
    event("Piano", datetime(2024, 5, 13, 9, 0, tzinfo=timezone(timedelta(hours=2))))
    event("Last week", datetime(2024, 5, 10, 9, 0))
    event("Next month", datetime(2024, 6, 10, 9, 0))
    return family


def test_upcoming_window(memory_storage):
    family = _family_with_events(memory_storage)
    service = WeeklySummaryService(memory_storage, FakeEmailClient())
    week_start = NOW.replace(hour=0, minute=0)
    titles = [e.title for e in service.upcoming_events(family.id, week_start)]
    assert titles == ["Piano", "Ballet"]


def test_run_sends_to_members_with_email(memory_storage):
    family = _family_with_events(memory_storage)
    add_user(memory_storage, family.id, "carer", "caregiver")
    add_user(memory_storage, family.id, "uncle", "member", email="uncle@example.com")
    email_client = FakeEmailClient()

    result = WeeklySummaryService(memory_storage, email_client).run(now=NOW)

    assert result.families_processed == 1
    assert result.emails_sent == 2
    assert sorted(m["to"] for m in email_client.sent) == ["ana@example.com", "uncle@example.com"]

    message = next(m for m in email_client.sent if m["to"] == "ana@example.com")
    assert message["subject"] == "Your agenda for May 13-19, 2024"
    assert "Hi Ana," in message["text"]
    assert "Tuesday, May 14" in message["text"]
    assert "4:00 PM - Ballet (Emma)" in message["text"]
    assert "Next month" not in message["text"]
    assert "No events scheduled" in message["text"]
    assert "<strong>Ballet</strong>" in message["html"]


def test_failed_sends_are_not_counted(memory_storage):
    _family_with_events(memory_storage)
    result = WeeklySummaryService(memory_storage, FakeEmailClient(succeed=False)).run(now=NOW)
    assert result.emails_sent == 0
    assert result.families_processed == 1


def test_html_escapes_titles(memory_storage):
    service = WeeklySummaryService(memory_storage, FakeEmailClient())
    html = service.render_html("Ana", "Smith & Co", NOW, [], {})
    assert "Smith &amp; Co" in html
