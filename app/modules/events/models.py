# Supabase tables: events, messages, event_notes
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in app/storage/supabase_storage.py

EVENTS_TABLE = "events"
MESSAGES_TABLE = "messages"
EVENT_NOTES_TABLE = "event_notes"

"""
Expected Supabase table structure:

events:
- id: uuid (primary key)
- family_id: uuid (foreign key to families.id, not null)
- title: text (not null)
- description: text (nullable)
- start_time: timestamp (not null)
- end_time: timestamp (not null)
- member_ids: text[] (not null) - family_members ids, never empty
- color: text (not null)
- photo_url: text (nullable)
- completed: boolean (not null, default: false)
- completed_at: timestamp (nullable) - set only while completed is true
- created_at: timestamp (default: now())

messages:
- id: uuid (primary key)
- family_id: uuid (not null)
- event_id: uuid (foreign key to events.id, not null)
- sender_id: text (nullable)
- sender_name: text (not null)
- content: text (not null)
- created_at: timestamp (default: now())

event_notes:
- id: uuid (primary key)
- family_id: uuid (not null)
- event_id: uuid (foreign key to events.id, not null)
- author_id: text (not null)
- content: text (not null)
- parent_note_id: uuid (foreign key to event_notes.id, nullable) - one level of replies
- created_at: timestamp (default: now())

Deleting an event removes its messages and notes first, then the event row.
The statements are not wrapped in a transaction.
"""
