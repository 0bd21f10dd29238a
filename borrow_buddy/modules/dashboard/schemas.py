from pydantic import BaseModel
from typing import Optional, Literal, List
from datetime import date

ActivityType = Literal["borrowing", "lending", "pending_to_me", "pending_from_me"]


class ActivityItem(BaseModel):
    id: str
    type: ActivityType
    tool_id: str
    tool_name: Optional[str] = None
    tool_image: Optional[str] = None
    status: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    other_party_name: Optional[str] = None
    message: Optional[str] = None
    unread_messages: int = 0
    total_messages: int = 0
    is_overdue: bool = False


class DashboardSummary(BaseModel):
    activities: List[ActivityItem] = []
    unread_notifications: int = 0
