from pydantic import BaseModel, Field
from typing import Optional, Literal
from datetime import datetime


class GroupCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    is_private: bool = False


class GroupUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    is_private: Optional[bool] = None


class GroupResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    is_private: bool = False
    creator_id: str
    member_count: Optional[int] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class GroupMemberResponse(BaseModel):
    id: str
    group_id: str
    user_id: str
    role: str
    display_name: Optional[str] = None
    is_creator: bool = False
    created_at: datetime

    class Config:
        from_attributes = True


class GroupMemberRoleUpdate(BaseModel):
    role: Literal["member", "admin"]
