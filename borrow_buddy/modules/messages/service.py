from supabase import Client
from borrow_buddy.modules.messages.models import REQUEST_MESSAGES_TABLE
from borrow_buddy.modules.messages.schemas import MessageCreate, MessageResponse, MessageCounts
from borrow_buddy.modules.requests.service import RequestService
from borrow_buddy.modules.notifications.models import NotificationType
from borrow_buddy.modules.notifications.service import NotificationService
from borrow_buddy.modules.profiles.service import ProfileService
from typing import List, Dict
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 80


class MessageService:
    """Chat between the requester and the tool owner of one request"""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def send(self, request_id: str, user_id: str, message_data: MessageCreate) -> MessageResponse:
        request, tool = RequestService(self.supabase).get_with_tool(request_id, user_id)
        content = message_data.content.strip()
        if not content:
            raise HTTPException(status_code=400, detail="Message cannot be empty")
        try:
            result = self.supabase.table(REQUEST_MESSAGES_TABLE).insert({
                "request_id": request_id,
                "sender_id": user_id,
                "content": content,
                "is_read": False
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to send message")
            message = result.data[0]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

        recipient = tool["owner_id"] if user_id == request["requester_id"] else request["requester_id"]
        sender_name = ProfileService(self.supabase).get_display_names([user_id])[user_id]
        preview = content if len(content) <= PREVIEW_LENGTH else content[:PREVIEW_LENGTH] + "..."
        NotificationService(self.supabase).notify(
            recipient,
            NotificationType.NEW_MESSAGE,
            f"New message about {tool['name']}",
            f"{sender_name}: {preview}",
            {"request_id": request_id, "message_id": message["id"]}
        )
        return MessageResponse(**message, sender_name=sender_name)

    def list_messages(self, request_id: str, user_id: str) -> List[MessageResponse]:
        """Conversation of a request, oldest first"""
        RequestService(self.supabase).get_with_tool(request_id, user_id)
        try:
            result = self.supabase.table(REQUEST_MESSAGES_TABLE)\
                .select("*")\
                .eq("request_id", request_id)\
                .order("created_at")\
                .execute()
            messages = result.data or []
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        names = ProfileService(self.supabase).get_display_names(m["sender_id"] for m in messages)
        return [MessageResponse(**m, sender_name=names.get(m["sender_id"])) for m in messages]

    def mark_read(self, request_id: str, user_id: str) -> int:
        """Mark the other party's messages read; returns how many changed"""
        RequestService(self.supabase).get_with_tool(request_id, user_id)
        try:
            result = self.supabase.table(REQUEST_MESSAGES_TABLE)\
                .update({"is_read": True})\
                .eq("request_id", request_id)\
                .neq("sender_id", user_id)\
                .eq("is_read", False)\
                .execute()
            return len(result.data or [])
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def counts(self, request_ids: List[str], user_id: str) -> Dict[str, MessageCounts]:
        """Unread (sent by the other party) and total message counts per request"""
        ids = list(set(request_ids))
        counts = {rid: MessageCounts(request_id=rid) for rid in ids}
        if not ids:
            return counts
        try:
            result = self.supabase.table(REQUEST_MESSAGES_TABLE)\
                .select("request_id, sender_id, is_read")\
                .in_("request_id", ids)\
                .execute()
        except Exception as e:
            logger.error(f"Error counting messages: {e}")
            return counts
        for m in result.data or []:
            entry = counts[m["request_id"]]
            entry.total += 1
            if not m.get("is_read") and m["sender_id"] != user_id:
                entry.unread += 1
        return counts

    def get_counts(self, request_id: str, user_id: str) -> MessageCounts:
        RequestService(self.supabase).get_with_tool(request_id, user_id)
        return self.counts([request_id], user_id)[request_id]
