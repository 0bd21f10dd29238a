from supabase import Client
from borrow_buddy.modules.requests.models import (
    TOOL_REQUESTS_TABLE, RequestStatus, OVERDUE_ELIGIBLE_STATUSES, ACTIVE_BORROW_STATUSES
)
from borrow_buddy.modules.requests.schemas import (
    RequestCreate, RequestResponse, OverdueSweepResponse
)
from borrow_buddy.modules.requests.state_machine import validate_transition, is_terminal, holds_tool
from borrow_buddy.modules.tools.models import TOOLS_TABLE, TOOL_HISTORY_TABLE, ToolStatus
from borrow_buddy.modules.tools.service import ToolService, normalize_status
from borrow_buddy.modules.notifications.models import NotificationType
from borrow_buddy.modules.notifications.service import NotificationService
from borrow_buddy.modules.profiles.service import ProfileService
from typing import List, Optional, Dict, Any
from fastapi import HTTPException
from datetime import date, datetime
import logging

logger = logging.getLogger(__name__)

ROLE_INCOMING = "incoming"
ROLE_OUTGOING = "outgoing"

OWNER = "owner"
REQUESTER = "requester"


def _as_date(value) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def is_overdue(request: Dict[str, Any], today: Optional[date] = None) -> bool:
    """Past its end date and not finished"""
    if request.get("status") == RequestStatus.OVERDUE.value:
        return True
    if is_terminal(request["status"]):
        return False
    end_date = _as_date(request.get("end_date"))
    return end_date is not None and end_date < (today or date.today())


class RequestService:
    """
    Borrow requests and their lifecycle. Every status change is checked
    against the transition table and written conditionally on the status
    that was read, so two racing callers cannot both apply a move.
    History rows and notifications follow the change and never undo it.
    """

    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.tools = ToolService(supabase)
        self.notifications = NotificationService(supabase)

    def _get_row(self, request_id: str) -> Dict[str, Any]:
        try:
            result = self.supabase.table(TOOL_REQUESTS_TABLE)\
                .select("*")\
                .eq("id", request_id)\
                .maybe_single()\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        if not result or not result.data:
            raise HTTPException(status_code=404, detail="Request not found")
        return result.data

    def get_with_tool(self, request_id: str, user_id: str):
        """Request and its tool, readable only by the requester and the tool owner"""
        request = self._get_row(request_id)
        tool = self.tools.get_tool_row(request["tool_id"])
        if user_id not in (request["requester_id"], tool["owner_id"]):
            raise HTTPException(status_code=404, detail="Request not found")
        return request, tool

    def _tools_by_id(self, tool_ids: List[str]) -> Dict[str, Dict[str, Any]]:
        ids = list(set(tool_ids))
        if not ids:
            return {}
        result = self.supabase.table(TOOLS_TABLE)\
            .select("id, name, image_url, owner_id")\
            .in_("id", ids)\
            .execute()
        return {t["id"]: t for t in result.data or []}

    def to_responses(
        self,
        requests: List[Dict[str, Any]],
        tools: Optional[Dict[str, Dict[str, Any]]] = None
    ) -> List[RequestResponse]:
        if tools is None:
            tools = self._tools_by_id([r["tool_id"] for r in requests])
        user_ids = [r["requester_id"] for r in requests]
        user_ids += [t["owner_id"] for t in tools.values()]
        names = ProfileService(self.supabase).get_display_names(user_ids)
        today = date.today()
        responses = []
        for r in requests:
            tool = tools.get(r["tool_id"], {})
            responses.append(RequestResponse(
                **r,
                tool_name=tool.get("name"),
                tool_image=tool.get("image_url"),
                owner_id=tool.get("owner_id"),
                owner_name=names.get(tool.get("owner_id")),
                requester_name=names.get(r["requester_id"]),
                is_overdue=is_overdue(r, today)
            ))
        return responses

    def create_request(self, request_data: RequestCreate, user_id: str) -> RequestResponse:
        """Ask to borrow a group member's available tool"""
        tool = self.tools.get_tool_row(request_data.tool_id)
        if tool["owner_id"] == user_id:
            raise HTTPException(status_code=400, detail="You cannot borrow your own tool")
        if not self.tools.can_view(tool, user_id):
            raise HTTPException(status_code=403, detail="You can only borrow tools from members of your groups")
        if normalize_status(tool.get("status")) != ToolStatus.AVAILABLE.value:
            raise HTTPException(status_code=409, detail="This tool is not available")
        if request_data.start_date > request_data.end_date:
            raise HTTPException(status_code=400, detail="Start date must be on or before the end date")

        try:
            result = self.supabase.table(TOOL_REQUESTS_TABLE).insert({
                "tool_id": tool["id"],
                "requester_id": user_id,
                "start_date": request_data.start_date.isoformat(),
                "end_date": request_data.end_date.isoformat(),
                "message": request_data.message,
                "status": RequestStatus.PENDING.value
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create request")
            request = result.data[0]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

        logger.info(f"Request {request['id']} for tool {tool['id']} created by {user_id}")
        self._record_history(request, tool, RequestStatus.PENDING, user_id)
        requester = ProfileService(self.supabase).get_display_names([user_id])[user_id]
        self.notifications.notify(
            tool["owner_id"],
            NotificationType.TOOL_REQUEST,
            "New tool request",
            f"{requester} wants to borrow your {tool['name']}",
            {"request_id": request["id"], "tool_id": tool["id"]}
        )
        return self.to_responses([request], {tool["id"]: tool})[0]

    def get_request(self, request_id: str, user_id: str) -> RequestResponse:
        request, tool = self.get_with_tool(request_id, user_id)
        return self.to_responses([request], {tool["id"]: tool})[0]

    def list_requests(
        self,
        user_id: str,
        role: Optional[str] = None,
        status: Optional[RequestStatus] = None
    ) -> List[RequestResponse]:
        """Requests the user made (outgoing), received on their tools (incoming), or both"""
        try:
            rows: Dict[str, Dict[str, Any]] = {}
            if role in (None, ROLE_OUTGOING):
                query = self.supabase.table(TOOL_REQUESTS_TABLE)\
                    .select("*")\
                    .eq("requester_id", user_id)
                if status:
                    query = query.eq("status", status.value)
                for r in query.execute().data or []:
                    rows[r["id"]] = r

            if role in (None, ROLE_INCOMING):
                owned = self.supabase.table(TOOLS_TABLE)\
                    .select("id")\
                    .eq("owner_id", user_id)\
                    .execute()
                tool_ids = [t["id"] for t in owned.data or []]
                if tool_ids:
                    query = self.supabase.table(TOOL_REQUESTS_TABLE)\
                        .select("*")\
                        .in_("tool_id", tool_ids)
                    if status:
                        query = query.eq("status", status.value)
                    for r in query.execute().data or []:
                        rows[r["id"]] = r

            requests = sorted(rows.values(), key=lambda r: r.get("created_at") or "", reverse=True)
            return self.to_responses(requests)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def _transition(
        self,
        request_id: str,
        user_id: str,
        target: RequestStatus,
        actor: str,
        extra: Optional[Dict[str, Any]] = None
    ):
        request, tool = self.get_with_tool(request_id, user_id)
        expected = tool["owner_id"] if actor == OWNER else request["requester_id"]
        if user_id != expected:
            raise HTTPException(
                status_code=403,
                detail=f"Only the {'tool owner' if actor == OWNER else 'requester'} can do this"
            )
        validate_transition(request["status"], target, picked_up=bool(request.get("picked_up_at")))
        if target == RequestStatus.PICKED_UP and normalize_status(tool.get("status")) == ToolStatus.IN_USE.value:
            raise HTTPException(status_code=409, detail="This tool is currently lent to someone else")

        update_data = {"status": target.value, "updated_at": datetime.utcnow().isoformat()}
        update_data.update(extra or {})
        try:
            result = self.supabase.table(TOOL_REQUESTS_TABLE)\
                .update(update_data)\
                .eq("id", request_id)\
                .eq("status", request["status"])\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        if not result.data:
            raise HTTPException(status_code=409, detail="The request was changed by someone else, reload and try again")

        logger.info(f"Request {request_id}: {request['status']} -> {target.value} by {user_id}")
        return result.data[0], tool

    def _record_history(
        self,
        request: Dict[str, Any],
        tool: Dict[str, Any],
        action: RequestStatus,
        action_by: str,
        notes: Optional[str] = None
    ):
        self.tools.record_history({
            "tool_id": tool["id"],
            "request_id": request["id"],
            "borrower_id": request["requester_id"],
            "owner_id": tool["owner_id"],
            "action_type": action.value,
            "action_by": action_by,
            "start_date": request.get("start_date"),
            "end_date": request.get("end_date"),
            "actual_pickup_date": request.get("picked_up_at"),
            "actual_return_date": request.get("returned_at"),
            "notes": notes
        })

    def _after(
        self,
        request: Dict[str, Any],
        tool: Dict[str, Any],
        action: RequestStatus,
        user_id: str,
        recipient: str,
        notification_type: NotificationType,
        title: str,
        message: str,
        notes: Optional[str] = None
    ) -> RequestResponse:
        self._record_history(request, tool, action, user_id, notes)
        self.notifications.notify(
            recipient, notification_type, title, message,
            {"request_id": request["id"], "tool_id": tool["id"]}
        )
        return self.to_responses([request], {tool["id"]: tool})[0]

    def approve(self, request_id: str, user_id: str) -> RequestResponse:
        request, tool = self._transition(request_id, user_id, RequestStatus.APPROVED, OWNER)
        return self._after(
            request, tool, RequestStatus.APPROVED, user_id, request["requester_id"],
            NotificationType.REQUEST_APPROVED, "Request approved",
            f"Your request to borrow {tool['name']} was approved"
        )

    def deny(self, request_id: str, user_id: str) -> RequestResponse:
        request, tool = self._transition(request_id, user_id, RequestStatus.DENIED, OWNER)
        return self._after(
            request, tool, RequestStatus.DENIED, user_id, request["requester_id"],
            NotificationType.REQUEST_DENIED, "Request denied",
            f"Your request to borrow {tool['name']} was denied"
        )

    def cancel(self, request_id: str, user_id: str) -> RequestResponse:
        request, tool = self._transition(request_id, user_id, RequestStatus.CANCELED, REQUESTER)
        return self._after(
            request, tool, RequestStatus.CANCELED, user_id, tool["owner_id"],
            NotificationType.REQUEST_CANCELED, "Request canceled",
            f"A request to borrow your {tool['name']} was canceled"
        )

    def confirm_pickup(self, request_id: str, user_id: str) -> RequestResponse:
        request, tool = self._transition(
            request_id, user_id, RequestStatus.PICKED_UP, REQUESTER,
            {"picked_up_at": datetime.utcnow().isoformat()}
        )
        self.tools.set_status(tool["id"], ToolStatus.IN_USE)
        return self._after(
            request, tool, RequestStatus.PICKED_UP, user_id, tool["owner_id"],
            NotificationType.TOOL_PICKED_UP, "Tool picked up",
            f"Your {tool['name']} has been picked up"
        )

    def initiate_return(self, request_id: str, user_id: str) -> RequestResponse:
        request, tool = self._transition(request_id, user_id, RequestStatus.RETURN_PENDING, REQUESTER)
        return self._after(
            request, tool, RequestStatus.RETURN_PENDING, user_id, tool["owner_id"],
            NotificationType.RETURN_PENDING, "Return started",
            f"Your {tool['name']} is on its way back, confirm once you have it"
        )

    def _held_by_another_request(self, tool_id: str, request_id: str) -> bool:
        try:
            result = self.supabase.table(TOOL_REQUESTS_TABLE)\
                .select("id, status, picked_up_at")\
                .eq("tool_id", tool_id)\
                .neq("id", request_id)\
                .in_("status", [s.value for s in ACTIVE_BORROW_STATUSES])\
                .execute()
        except Exception as e:
            logger.error(f"Could not check other requests on tool {tool_id}: {e}")
            return False
        # Approved but not yet collected does not keep the tool out
        return any(r.get("picked_up_at") and holds_tool(r) for r in result.data or [])

    def confirm_return(self, request_id: str, user_id: str, notes: Optional[str] = None) -> RequestResponse:
        request, tool = self._transition(
            request_id, user_id, RequestStatus.RETURNED, OWNER,
            {"returned_at": datetime.utcnow().isoformat(), "return_notes": notes}
        )
        if self._held_by_another_request(tool["id"], request_id):
            logger.warning(f"Tool {tool['id']} returned on {request_id} but still lent out on another request")
        else:
            self.tools.set_status(tool["id"], ToolStatus.AVAILABLE)
        return self._after(
            request, tool, RequestStatus.RETURNED, user_id, request["requester_id"],
            NotificationType.TOOL_RETURNED, "Return confirmed",
            f"The owner confirmed the return of {tool['name']}",
            notes=notes
        )

    def _already_flagged(self, request_ids: List[str]) -> set:
        """Requests that were marked overdue before, according to their history"""
        if not request_ids:
            return set()
        try:
            result = self.supabase.table(TOOL_HISTORY_TABLE)\
                .select("request_id")\
                .in_("request_id", request_ids)\
                .eq("action_type", RequestStatus.OVERDUE.value)\
                .execute()
        except Exception as e:
            logger.error(f"Could not load overdue history: {e}")
            return set()
        return {h["request_id"] for h in result.data or []}

    def mark_overdue(self, today: Optional[date] = None) -> OverdueSweepResponse:
        """
        Flip every unfinished request past its end date to overdue.
        A request is flagged once: after a late borrower starts the return
        the sweep leaves it in return_pending.
        """
        today = today or date.today()
        eligible = [s.value for s in OVERDUE_ELIGIBLE_STATUSES]
        try:
            candidates = self.supabase.table(TOOL_REQUESTS_TABLE)\
                .select("id")\
                .lt("end_date", today.isoformat())\
                .in_("status", eligible)\
                .execute()
            candidate_ids = [r["id"] for r in candidates.data or []]
            flagged = self._already_flagged(candidate_ids)
            fresh_ids = [rid for rid in candidate_ids if rid not in flagged]
            if not fresh_ids:
                return OverdueSweepResponse(updated=0)

            result = self.supabase.table(TOOL_REQUESTS_TABLE)\
                .update({
                    "status": RequestStatus.OVERDUE.value,
                    "updated_at": datetime.utcnow().isoformat()
                })\
                .in_("id", fresh_ids)\
                .in_("status", eligible)\
                .execute()
            updated = result.data or []
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

        if updated:
            logger.info(f"Marked {len(updated)} request(s) overdue")
        try:
            tools = self._tools_by_id([r["tool_id"] for r in updated])
        except Exception as e:
            logger.error(f"Could not load tools of overdue requests: {e}")
            tools = {}
        for request in updated:
            tool = tools.get(request["tool_id"])
            if tool:
                self._record_history(request, tool, RequestStatus.OVERDUE, tool["owner_id"])
            self.notifications.notify(
                request["requester_id"],
                NotificationType.REQUEST_OVERDUE,
                "Tool overdue",
                f"{tool['name'] if tool else 'A borrowed tool'} was due back on {request['end_date']}",
                {"request_id": request["id"], "tool_id": request["tool_id"]}
            )
        return OverdueSweepResponse(updated=len(updated), request_ids=[r["id"] for r in updated])
