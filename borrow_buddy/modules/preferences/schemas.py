from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class PreferencesUpdate(BaseModel):
    email_notifications: Optional[bool] = None
    push_notifications: Optional[bool] = None
    tool_request_notifications: Optional[bool] = None
    group_invite_notifications: Optional[bool] = None


class PreferencesResponse(BaseModel):
    id: str
    user_id: str
    email_notifications: bool = True
    push_notifications: bool = True
    tool_request_notifications: bool = True
    group_invite_notifications: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
