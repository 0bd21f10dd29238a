# Supabase table: tool_requests
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
tool_requests:
- id: uuid (primary key)
- tool_id: uuid (foreign key to tools.id, not null)
- requester_id: uuid (foreign key to profiles.id, not null)
- start_date: date (not null)
- end_date: date (not null)
- message: text (nullable)
- status: text (default: 'pending') - see RequestStatus
- picked_up_at: timestamp (nullable)
- returned_at: timestamp (nullable)
- return_notes: text (nullable)
- created_at / updated_at: timestamp
"""
from enum import Enum

TOOL_REQUESTS_TABLE = "tool_requests"


class RequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"
    PICKED_UP = "picked_up"
    RETURN_PENDING = "return_pending"
    RETURNED = "returned"
    CANCELED = "canceled"
    OVERDUE = "overdue"


# Statuses a request can still go overdue from
OVERDUE_ELIGIBLE_STATUSES = (
    RequestStatus.PENDING,
    RequestStatus.APPROVED,
    RequestStatus.PICKED_UP,
    RequestStatus.RETURN_PENDING,
)

# Statuses during which the tool is promised to or held by the borrower
ACTIVE_BORROW_STATUSES = (
    RequestStatus.APPROVED,
    RequestStatus.PICKED_UP,
    RequestStatus.RETURN_PENDING,
    RequestStatus.OVERDUE,
)
