# Supabase table: sessions
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in app/storage/supabase_storage.py

SESSIONS_TABLE = "sessions"

"""
Expected Supabase table structure:

sessions:
- sid: text (primary key) - random id, the only thing the cookie carries
- sess: jsonb - SessionUser payload {id, provider, access_token, refresh_token, expires_at}
- expire: timestamp - end of the one week session lifetime

Index on expire for purging stale rows. Sessions of demo identities are kept
in the in-memory engine and never reach this table.

Cookie keys (Starlette SessionMiddleware, signed not encrypted):
- sid: id of the row above
- oidc_state: anti-forgery state for the authorization-code redirect
"""

SESSION_ID_KEY = "sid"
SESSION_STATE_KEY = "oidc_state"
