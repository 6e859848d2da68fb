# Supabase tables: medications, medication_logs
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in app/storage/supabase_storage.py

MEDICATIONS_TABLE = "medications"
MEDICATION_LOGS_TABLE = "medication_logs"

"""
Expected Supabase table structure:

medications:
- id: uuid (primary key)
- family_id: uuid (foreign key to families.id, not null)
- member_id: uuid (foreign key to family_members.id, not null)
- name: text (not null)
- dosage: text (not null)
- frequency: text (not null)
- instructions: text (nullable)
- scheduled_times: text[] (nullable) - "HH:MM" values
- is_active: boolean (not null, default: true)
- created_at: timestamp (default: now())

medication_logs:
- id: uuid (primary key)
- family_id: uuid (not null)
- medication_id: uuid (foreign key to medications.id, not null)
- administered_by: text (foreign key to users.id, not null)
- administered_at: timestamp (not null)
- scheduled_time: timestamp (nullable)
- status: text (not null) - values: given, skipped
- notes: text (nullable)

Medications are never deleted; is_active is set to false so logs keep
pointing at a valid row.
"""
