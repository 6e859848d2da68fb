# Supabase table: users
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in app/storage/supabase_storage.py
# Identity comes from the OIDC provider or the demo login; this table only mirrors it.

USERS_TABLE = "users"

"""
Expected Supabase table structure:

users:
- id: text (primary key) - OIDC subject, or "demo-..." for demo identities
- email: text (unique, nullable)
- first_name: text (nullable)
- last_name: text (nullable)
- profile_image_url: text (nullable)
- auth_provider: text (nullable) - values: oidc, demo
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

Rows are upserted on every login and never deleted by the app.
"""
