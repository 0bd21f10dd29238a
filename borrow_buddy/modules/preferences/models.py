# Supabase table: user_preferences
# Mirrors what the get_or_create_user_preferences(target_user_id) routine returns

"""
user_preferences:
- id: uuid (primary key)
- user_id: uuid (unique, references profiles.id)
- email_notifications: boolean (default: true)
- push_notifications: boolean (default: true)
- tool_request_notifications: boolean (default: true)
- group_invite_notifications: boolean (default: true)
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())
"""

PREFERENCES_TABLE = "user_preferences"

DEFAULT_PREFERENCES = {
    "email_notifications": True,
    "push_notifications": True,
    "tool_request_notifications": True,
    "group_invite_notifications": True,
}
