# Supabase tables: families, family_memberships
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in app/storage/supabase_storage.py

FAMILIES_TABLE = "families"
FAMILY_MEMBERSHIPS_TABLE = "family_memberships"

"""
Expected Supabase table structure:

families:
- id: uuid (primary key, default: gen_random_uuid())
- name: text (not null)
- invite_code: text (unique, not null) - 8 uppercase characters, shared to join
- created_by: text (foreign key to users.id, not null)
- created_at: timestamp (default: now())

family_memberships:
- id: uuid (primary key)
- family_id: uuid (foreign key to families.id, not null)
- user_id: text (foreign key to users.id, not null)
- role: text (not null, default: 'member') - values: owner, member, caregiver
- joined_at: timestamp (default: now())
- unique constraint on (user_id, family_id)
"""
