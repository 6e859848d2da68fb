# Supabase table: family_messages
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in app/storage/supabase_storage.py

FAMILY_MESSAGES_TABLE = "family_messages"

"""
Expected Supabase table structure:
- id: uuid (primary key)
- family_id: uuid (foreign key to families.id, not null)
- author_id: text (foreign key to users.id, not null)
- content: text (not null)
- parent_message_id: uuid (foreign key to family_messages.id, nullable) - one level of replies
- created_at: timestamp (default: now())
"""
