# Supabase tables: caregiver_pay_rates, caregiver_time_entries
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in app/storage/supabase_storage.py

CAREGIVER_PAY_RATES_TABLE = "caregiver_pay_rates"
CAREGIVER_TIME_ENTRIES_TABLE = "caregiver_time_entries"

"""
Expected Supabase table structure:

caregiver_pay_rates:
- id: uuid (primary key)
- family_id: uuid (foreign key to families.id, not null)
- caregiver_user_id: text (foreign key to users.id, not null)
- hourly_rate: numeric (not null)
- currency: text (not null, default: 'USD')
- updated_at: timestamp (default: now())
- unique constraint on (family_id, caregiver_user_id)

caregiver_time_entries:
- id: uuid (primary key)
- family_id: uuid (not null)
- caregiver_user_id: text (not null)
- start_time: timestamp (not null)
- end_time: timestamp (not null)
- hours: numeric (not null)
- hourly_rate_at_time: numeric (not null) - copied from the pay rate on insert
- calculated_pay: numeric (not null) - hours * hourly_rate_at_time on insert
- notes: text (nullable)
- created_at: timestamp (default: now())

hourly_rate_at_time and calculated_pay are never recomputed after insert.
"""
