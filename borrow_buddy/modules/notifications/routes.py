from fastapi import APIRouter, Depends, Query
from borrow_buddy.database.supabase_client import get_supabase
from borrow_buddy.modules.notifications.schemas import NotificationResponse, UnreadCountResponse
from borrow_buddy.modules.notifications.service import NotificationService
from borrow_buddy.modules.notifications.models import LIST_LIMIT
from borrow_buddy.core.dependencies import get_current_user_id
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/notifications", tags=["notifications"])


def get_notification_service(supabase: Client = Depends(get_supabase)) -> NotificationService:
    return NotificationService(supabase)


@router.get("", response_model=List[NotificationResponse])
async def list_notifications(
    limit: int = Query(LIST_LIMIT, ge=1, le=LIST_LIMIT),
    user_data: Dict = Depends(get_current_user_id),
    service: NotificationService = Depends(get_notification_service)
):
    return service.list_notifications(user_data["id"], limit=limit)


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    user_data: Dict = Depends(get_current_user_id),
    service: NotificationService = Depends(get_notification_service)
):
    return UnreadCountResponse(unread_count=service.unread_count(user_data["id"]))


@router.post("/read-all")
async def mark_all_as_read(
    user_data: Dict = Depends(get_current_user_id),
    service: NotificationService = Depends(get_notification_service)
):
    return {"updated": service.mark_all_as_read(user_data["id"])}


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_as_read(
    notification_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: NotificationService = Depends(get_notification_service)
):
    return service.mark_as_read(user_data["id"], notification_id)
