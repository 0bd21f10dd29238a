from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class ProfileUpdate(BaseModel):
    display_name: str = Field(min_length=1, max_length=80)


class ProfileResponse(BaseModel):
    id: str
    display_name: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
