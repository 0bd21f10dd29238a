from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from borrow_buddy.modules.messages.models import MAX_MESSAGE_LENGTH


class MessageCreate(BaseModel):
    content: str = Field(min_length=1, max_length=MAX_MESSAGE_LENGTH)


class MessageResponse(BaseModel):
    id: str
    request_id: str
    sender_id: str
    sender_name: Optional[str] = None
    content: str
    is_read: bool = False
    created_at: datetime

    class Config:
        from_attributes = True


class MessageCounts(BaseModel):
    request_id: str
    unread: int = 0
    total: int = 0
