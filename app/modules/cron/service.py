from datetime import datetime, timedelta
from html import escape
from typing import Dict, List, Optional
import logging

from app.core.timeutils import naive_utc
from app.modules.cron.email_client import ResendEmailClient
from app.modules.cron.schemas import WeeklySummaryResult
from app.modules.events.schemas import EventResponse
from app.storage.base import Storage

logger = logging.getLogger(__name__)

DAYS_AHEAD = 7


def _week_range(week_start: datetime, week_end: datetime) -> str:
    return f"{week_start.strftime('%b')} {week_start.day}-{week_end.day}, {week_end.year}"


def _time_label(event: EventResponse) -> str:
    return event.start_time.strftime("%I:%M %p").lstrip("0")


class WeeklySummaryService:
    def __init__(self, storage: Storage, email_client: Optional[ResendEmailClient] = None):
        self.storage = storage
        self.email_client = email_client or ResendEmailClient()

    def upcoming_events(self, family_id: str, week_start: datetime) -> List[EventResponse]:
        week_end = week_start + timedelta(days=DAYS_AHEAD)
        events = [e.model_copy(update={"start_time": naive_utc(e.start_time)}) for e in self.storage.get_events(family_id)]
        return [e for e in events if week_start <= e.start_time < week_end]

    def render_text(self, recipient: str, family_name: str, week_start: datetime,
                    events: List[EventResponse], member_names: Dict[str, str]) -> str:
        week_end = week_start + timedelta(days=DAYS_AHEAD - 1)
        lines = [
            f"Hi {recipient},",
            "",
            f"Here's your family's agenda for {_week_range(week_start, week_end)}",
            f"Family: {family_name}",
            "",
            "=" * 40,
            "",
        ]
        for offset in range(DAYS_AHEAD):
            day = (week_start + timedelta(days=offset)).date()
            lines.append(f"{day.strftime('%A, %B')} {day.day}")
            lines.append("-" * 30)
            day_events = [e for e in events if e.start_time.date() == day]
            if not day_events:
                lines.append("  No events scheduled")
            for event in day_events:
                line = f"  {_time_label(event)} - {event.title}"
                names = [member_names[m] for m in event.member_ids if m in member_names]
                if names:
                    line += f" ({', '.join(names)})"
                lines.append(line)
            lines.append("")
        lines.extend(["=" * 40, "", "View your full calendar at Kindora"])
        return "\n".join(lines)

    def render_html(self, recipient: str, family_name: str, week_start: datetime,
                    events: List[EventResponse], member_names: Dict[str, str]) -> str:
        week_end = week_start + timedelta(days=DAYS_AHEAD - 1)
        rows = []
        for offset in range(DAYS_AHEAD):
            day = (week_start + timedelta(days=offset)).date()
            rows.append(f"<tr><th align=\"left\">{day.strftime('%A, %B')} {day.day}</th></tr>")
            day_events = [e for e in events if e.start_time.date() == day]
            if not day_events:
                rows.append("<tr><td><em>No events scheduled</em></td></tr>")
            for event in day_events:
                names = ", ".join(member_names[m] for m in event.member_ids if m in member_names)
                rows.append(
                    f"<tr><td>{_time_label(event)} <strong>{escape(event.title)}</strong>"
                    f"{f' <small>{escape(names)}</small>' if names else ''}</td></tr>"
                )
        return (
            "<!DOCTYPE html><html><body>"
            f"<p>Hi {escape(recipient)},</p>"
            f"<p>Here's your family's agenda for <strong>{_week_range(week_start, week_end)}</strong></p>"
            f"<p>{escape(family_name)}</p>"
            f"<table width=\"100%\" cellpadding=\"6\">{''.join(rows)}</table>"
            "<p>Kindora: keeping families connected &amp; organized</p>"
            "</body></html>"
        )

    def run(self, now: Optional[datetime] = None) -> WeeklySummaryResult:
        week_start = (now or datetime.utcnow()).replace(hour=0, minute=0, second=0, microsecond=0)
        week_end = week_start + timedelta(days=DAYS_AHEAD - 1)
        subject = f"Your agenda for {_week_range(week_start, week_end)}"
        emails_sent = 0
        families_processed = 0

        for family in self.storage.get_all_families():
            families_processed += 1
            events = self.upcoming_events(family.id, week_start)
            member_names = {m.id: m.name for m in self.storage.get_family_members(family.id)}

            for membership in self.storage.get_family_memberships(family.id):
                user = self.storage.get_user(membership.user_id)
                if not user or not user.email:
                    continue
                recipient = user.first_name or "there"
                text = self.render_text(recipient, family.name, week_start, events, member_names)
                html = self.render_html(recipient, family.name, week_start, events, member_names)
                if self.email_client.send(user.email, subject, html, text):
                    emails_sent += 1

        logger.info(f"Weekly summary: {emails_sent} emails sent for {families_processed} families")
        return WeeklySummaryResult(emails_sent=emails_sent, families_processed=families_processed)
