from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
from borrow_buddy.modules.tools.models import (
    ToolStatus, ToolCondition, PowerSource, LEGACY_STATUS_ALIASES
)


def _normalize_status(value):
    if isinstance(value, str):
        return LEGACY_STATUS_ALIASES.get(value, value)
    return value


class ToolCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    description: Optional[str] = None
    category_id: Optional[str] = None
    condition: Optional[ToolCondition] = None
    status: ToolStatus = ToolStatus.AVAILABLE
    brand: Optional[str] = None
    power_source: Optional[PowerSource] = None
    image_url: Optional[str] = None

    _status = field_validator("status", mode="before")(_normalize_status)


class ToolUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    description: Optional[str] = None
    category_id: Optional[str] = None
    condition: Optional[ToolCondition] = None
    status: Optional[ToolStatus] = None
    brand: Optional[str] = None
    power_source: Optional[PowerSource] = None
    image_url: Optional[str] = None

    _status = field_validator("status", mode="before")(_normalize_status)


class ToolResponse(BaseModel):
    id: str
    owner_id: str
    name: str
    description: Optional[str] = None
    category_id: Optional[str] = None
    category_name: Optional[str] = None
    condition: Optional[str] = None
    status: str
    brand: Optional[str] = None
    power_source: Optional[str] = None
    image_url: Optional[str] = None
    owner_name: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    _status = field_validator("status", mode="before")(_normalize_status)

    class Config:
        from_attributes = True


class ToolVisibilityUpdate(BaseModel):
    group_id: str
    is_hidden: bool


class ToolVisibilityResponse(BaseModel):
    tool_id: str
    group_id: str
    is_hidden: bool


class ToolHistoryEntry(BaseModel):
    id: str
    request_id: Optional[str] = None
    action_type: str
    action_by: str
    action_by_name: Optional[str] = None
    borrower_name: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    actual_pickup_date: Optional[datetime] = None
    actual_return_date: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime


class CategoryResponse(BaseModel):
    id: str
    name: str
