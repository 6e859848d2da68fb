# Supabase table: family_members
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in app/storage/supabase_storage.py

FAMILY_MEMBERS_TABLE = "family_members"

"""
Expected Supabase table structure:
- id: uuid (primary key)
- family_id: uuid (foreign key to families.id, not null)
- name: text (not null)
- color: text (not null) - hex color used on the calendar
- avatar: text (nullable)
- created_at: timestamp (default: now())

A family member is anyone who can appear on the calendar (a child, a pet,
a caregiver) and is independent of the users table.
"""
