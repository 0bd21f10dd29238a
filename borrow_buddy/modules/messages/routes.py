from fastapi import APIRouter, Depends
from borrow_buddy.database.supabase_client import get_supabase
from borrow_buddy.modules.messages.schemas import MessageCreate, MessageResponse, MessageCounts
from borrow_buddy.modules.messages.service import MessageService
from borrow_buddy.core.dependencies import get_current_user_id
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/requests/{request_id}/messages", tags=["messages"])


def get_message_service(supabase: Client = Depends(get_supabase)) -> MessageService:
    return MessageService(supabase)


@router.get("", response_model=List[MessageResponse])
async def list_messages(
    request_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: MessageService = Depends(get_message_service)
):
    return service.list_messages(request_id, user_data["id"])


@router.post("", response_model=MessageResponse, status_code=201)
async def send_message(
    request_id: str,
    message_data: MessageCreate,
    user_data: Dict = Depends(get_current_user_id),
    service: MessageService = Depends(get_message_service)
):
    """Message the other party of a request; they get a notification"""
    return service.send(request_id, user_data["id"], message_data)


@router.post("/read")
async def mark_messages_read(
    request_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: MessageService = Depends(get_message_service)
):
    return {"updated": service.mark_read(request_id, user_data["id"])}


@router.get("/counts", response_model=MessageCounts)
async def message_counts(
    request_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: MessageService = Depends(get_message_service)
):
    return service.get_counts(request_id, user_data["id"])
