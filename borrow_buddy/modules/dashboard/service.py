from supabase import Client
from borrow_buddy.modules.dashboard.schemas import ActivityItem, DashboardSummary
from borrow_buddy.modules.requests.models import RequestStatus
from borrow_buddy.modules.requests.state_machine import holds_tool
from borrow_buddy.modules.requests.schemas import RequestResponse
from borrow_buddy.modules.requests.service import RequestService, ROLE_INCOMING, ROLE_OUTGOING
from borrow_buddy.modules.messages.service import MessageService
from borrow_buddy.modules.notifications.service import NotificationService
from typing import List
import logging

logger = logging.getLogger(__name__)


class DashboardService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _classify(self, request: RequestResponse, user_id: str):
        """Activity type for the user's side of a request, or None when it is finished"""
        mine = request.requester_id == user_id
        if holds_tool(request.model_dump()):
            return "borrowing" if mine else "lending"
        # Expired before pickup still waits on a deny or cancel
        if request.status in (RequestStatus.PENDING.value, RequestStatus.OVERDUE.value):
            return "pending_from_me" if mine else "pending_to_me"
        return None

    def activities(self, user_id: str) -> List[ActivityItem]:
        """Ongoing borrows, loans and pending requests with message counts"""
        requests_service = RequestService(self.supabase)
        outgoing = requests_service.list_requests(user_id, role=ROLE_OUTGOING)
        incoming = requests_service.list_requests(user_id, role=ROLE_INCOMING)

        grouped = {"borrowing": [], "lending": [], "pending_to_me": [], "pending_from_me": []}
        for request in outgoing + incoming:
            activity_type = self._classify(request, user_id)
            if activity_type:
                grouped[activity_type].append((activity_type, request))

        ordered = grouped["borrowing"] + grouped["lending"] + grouped["pending_to_me"] + grouped["pending_from_me"]
        counts = MessageService(self.supabase).counts([r.id for _, r in ordered], user_id)

        items = []
        for activity_type, r in ordered:
            other_party = r.owner_name if r.requester_id == user_id else r.requester_name
            items.append(ActivityItem(
                id=r.id,
                type=activity_type,
                tool_id=r.tool_id,
                tool_name=r.tool_name,
                tool_image=r.tool_image,
                status=r.status,
                start_date=r.start_date,
                end_date=r.end_date,
                other_party_name=other_party,
                message=r.message,
                unread_messages=counts[r.id].unread,
                total_messages=counts[r.id].total,
                is_overdue=r.is_overdue
            ))
        return items

    def summary(self, user_id: str) -> DashboardSummary:
        return DashboardSummary(
            activities=self.activities(user_id),
            unread_notifications=NotificationService(self.supabase).unread_count(user_id)
        )
