from supabase import Client
from borrow_buddy.modules.notifications.models import (
    NOTIFICATIONS_TABLE, LIST_LIMIT, NotificationType,
    PREFERENCE_FLAGS, DEFAULT_PREFERENCE_FLAG
)
from borrow_buddy.modules.notifications.schemas import NotificationResponse
from borrow_buddy.modules.preferences.service import PreferencesService
from typing import List, Optional, Dict, Any
from fastapi import HTTPException
from datetime import datetime
import logging

logger = logging.getLogger(__name__)


class NotificationService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def notify(
        self,
        user_id: str,
        notification_type: NotificationType,
        title: str,
        message: str,
        data: Optional[Dict[str, Any]] = None
    ) -> Optional[str]:
        """Insert a notification for user_id. Best-effort: returns the new id, or None when skipped or failed."""
        flag = PREFERENCE_FLAGS.get(notification_type, DEFAULT_PREFERENCE_FLAG)
        if not PreferencesService(self.supabase).allows(user_id, flag):
            logger.debug(f"Notification {notification_type.value} to {user_id} muted by {flag}")
            return None
        try:
            result = self.supabase.table(NOTIFICATIONS_TABLE).insert({
                "user_id": user_id,
                "type": notification_type.value,
                "title": title,
                "message": message,
                "data": data or {},
                "read": False
            }).execute()
            return result.data[0]["id"] if result.data else None
        except Exception as e:
            logger.error(f"Failed to notify {user_id} ({notification_type.value}): {e}")
            return None

    def list_notifications(self, user_id: str, limit: int = LIST_LIMIT) -> List[NotificationResponse]:
        """Newest first"""
        try:
            result = self.supabase.table(NOTIFICATIONS_TABLE)\
                .select("*")\
                .eq("user_id", user_id)\
                .order("created_at", desc=True)\
                .limit(min(limit, LIST_LIMIT))\
                .execute()
            return [NotificationResponse(**n) for n in result.data or []]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def unread_count(self, user_id: str) -> int:
        try:
            result = self.supabase.table(NOTIFICATIONS_TABLE)\
                .select("id", count="exact")\
                .eq("user_id", user_id)\
                .eq("read", False)\
                .execute()
            if result.count is not None:
                return result.count
            return len(result.data or [])
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def mark_as_read(self, user_id: str, notification_id: str) -> NotificationResponse:
        try:
            result = self.supabase.table(NOTIFICATIONS_TABLE)\
                .update({"read": True, "updated_at": datetime.utcnow().isoformat()})\
                .eq("id", notification_id)\
                .eq("user_id", user_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Notification not found")
            return NotificationResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def mark_all_as_read(self, user_id: str) -> int:
        """Returns how many notifications changed"""
        try:
            result = self.supabase.table(NOTIFICATIONS_TABLE)\
                .update({"read": True, "updated_at": datetime.utcnow().isoformat()})\
                .eq("user_id", user_id)\
                .eq("read", False)\
                .execute()
            return len(result.data or [])
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
