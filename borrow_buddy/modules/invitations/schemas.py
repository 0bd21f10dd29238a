from pydantic import BaseModel, EmailStr
from typing import Optional
from datetime import datetime


class InviteCreate(BaseModel):
    group_id: str
    email: EmailStr


class InviteResponse(BaseModel):
    id: str
    group_id: str
    email: str
    invite_code: str
    created_by: str
    created_at: datetime
    expires_at: Optional[datetime] = None
    group_name: Optional[str] = None

    class Config:
        from_attributes = True


class InviteLookupResponse(BaseModel):
    invite_id: str
    invite_code: str
    group_id: str
    group_name: str
    group_description: Optional[str] = None
    creator_name: str
    is_general: bool


class InviteAcceptResponse(BaseModel):
    group_id: str
    already_member: bool
    membership_id: Optional[str] = None
