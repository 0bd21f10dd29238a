# Supabase table: notifications
# Realtime change notification on this table is handled by Supabase itself

"""
notifications:
- id: uuid (primary key)
- user_id: uuid (recipient, references profiles.id)
- type: text (see NotificationType)
- title: text (not null)
- message: text (not null)
- data: jsonb (nullable) - {"request_id": ...} or {"group_id": ..., "invite_code": ...}
- read: boolean (default: false)
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())
"""
from enum import Enum

NOTIFICATIONS_TABLE = "notifications"

LIST_LIMIT = 50


class NotificationType(str, Enum):
    TOOL_REQUEST = "tool_request"
    REQUEST_APPROVED = "request_approved"
    REQUEST_DENIED = "request_denied"
    REQUEST_CANCELED = "request_canceled"
    TOOL_PICKED_UP = "tool_picked_up"
    RETURN_PENDING = "return_pending"
    TOOL_RETURNED = "tool_returned"
    REQUEST_OVERDUE = "request_overdue"
    NEW_MESSAGE = "new_message"
    GROUP_INVITE = "group_invite"


# Which user_preferences flag gates each notification type
PREFERENCE_FLAGS = {
    NotificationType.GROUP_INVITE: "group_invite_notifications",
}
DEFAULT_PREFERENCE_FLAG = "tool_request_notifications"
