# Supabase table: profiles
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py
# Authentication is handled by Supabase Auth (auth.users table)

"""
Expected Supabase table structure:

profiles:
- id: uuid (primary key, references auth.users.id)
- display_name: text (not null)
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())

Rows are created by the on-signup trigger from user_metadata.display_name.
"""

PROFILES_TABLE = "profiles"

UNKNOWN_USER = "Unknown User"
