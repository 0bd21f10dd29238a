# Supabase table: request_messages
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
request_messages:
- id: uuid (primary key)
- request_id: uuid (foreign key to tool_requests.id, not null)
- sender_id: uuid (foreign key to profiles.id, not null)
- content: text (not null)
- is_read: boolean (default: false)
- created_at: timestamp
"""

REQUEST_MESSAGES_TABLE = "request_messages"
MAX_MESSAGE_LENGTH = 2000
