from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import date, datetime


class RequestCreate(BaseModel):
    tool_id: str
    start_date: date
    end_date: date
    message: Optional[str] = Field(default=None, max_length=1000)


class ReturnConfirm(BaseModel):
    notes: Optional[str] = Field(default=None, max_length=1000)


class RequestResponse(BaseModel):
    id: str
    tool_id: str
    tool_name: Optional[str] = None
    tool_image: Optional[str] = None
    owner_id: Optional[str] = None
    owner_name: Optional[str] = None
    requester_id: str
    requester_name: Optional[str] = None
    start_date: date
    end_date: date
    message: Optional[str] = None
    status: str
    picked_up_at: Optional[datetime] = None
    returned_at: Optional[datetime] = None
    return_notes: Optional[str] = None
    is_overdue: bool = False
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OverdueSweepResponse(BaseModel):
    updated: int
    request_ids: List[str] = []
