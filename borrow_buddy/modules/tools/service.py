from supabase import Client
from borrow_buddy.config import settings
from borrow_buddy.core.dependencies import get_member_groups
from borrow_buddy.modules.tools.models import (
    TOOLS_TABLE, TOOL_CATEGORIES_TABLE, TOOL_VISIBILITY_TABLE, TOOL_HISTORY_TABLE,
    ToolStatus, LEGACY_STATUS_ALIASES
)
from borrow_buddy.modules.tools.schemas import (
    ToolCreate, ToolUpdate, ToolResponse, ToolVisibilityResponse,
    ToolHistoryEntry, CategoryResponse
)
from borrow_buddy.modules.requests.models import TOOL_REQUESTS_TABLE, ACTIVE_BORROW_STATUSES
from borrow_buddy.modules.requests.state_machine import holds_tool
from borrow_buddy.modules.profiles.service import ProfileService
from typing import List, Optional, Dict, Any, Iterable
from fastapi import HTTPException, UploadFile
from datetime import datetime
import os
import uuid
import logging

logger = logging.getLogger(__name__)


def normalize_status(status: Optional[str]) -> Optional[str]:
    if status is None:
        return None
    return LEGACY_STATUS_ALIASES.get(status, status)


class ToolService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_tool_row(self, tool_id: str) -> Dict[str, Any]:
        """Raw tools row; 404 when missing"""
        try:
            result = self.supabase.table(TOOLS_TABLE)\
                .select("*")\
                .eq("id", tool_id)\
                .maybe_single()\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        if not result or not result.data:
            raise HTTPException(status_code=404, detail="Tool not found")
        return result.data

    def category_names(self, category_ids: Iterable[str]) -> Dict[str, str]:
        ids = list({c for c in category_ids if c})
        if not ids:
            return {}
        try:
            result = self.supabase.table(TOOL_CATEGORIES_TABLE)\
                .select("id, name")\
                .in_("id", ids)\
                .execute()
            return {c["id"]: c["name"] for c in result.data or []}
        except Exception as e:
            logger.error(f"Error loading category names: {e}")
            return {}

    def to_responses(self, tools: List[Dict[str, Any]]) -> List[ToolResponse]:
        """Attach category and owner names"""
        categories = self.category_names(t.get("category_id") for t in tools)
        owners = ProfileService(self.supabase).get_display_names(t["owner_id"] for t in tools)
        return [
            ToolResponse(
                **{k: v for k, v in t.items() if not k.startswith("_")},
                category_name=categories.get(t.get("category_id")),
                owner_name=owners.get(t["owner_id"])
            )
            for t in tools
        ]

    def hidden_pairs(self, tool_ids: List[str]) -> set:
        """(tool_id, group_id) pairs hidden by their owners"""
        if not tool_ids:
            return set()
        result = self.supabase.table(TOOL_VISIBILITY_TABLE)\
            .select("tool_id, group_id")\
            .in_("tool_id", tool_ids)\
            .eq("is_hidden", True)\
            .execute()
        return {(v["tool_id"], v["group_id"]) for v in result.data or []}

    def visible_tool_rows(self, user_id: str, cache: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """
        Tools the user can see: their own plus those of every member of their
        groups. Another member's tool is visible through each shared group in
        which it is not hidden, and dropped when hidden in all of them.
        Each row gets a `_group_ids` key listing those groups.
        """
        member_groups = get_member_groups(user_id, self.supabase, cache)
        owner_ids = set(member_groups.keys())
        owner_ids.add(user_id)
        try:
            result = self.supabase.table(TOOLS_TABLE)\
                .select("*")\
                .in_("owner_id", list(owner_ids))\
                .execute()
            tools = result.data or []
            hidden = self.hidden_pairs([t["id"] for t in tools])
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

        visible = []
        for tool in tools:
            shared = member_groups.get(tool["owner_id"], [])
            if tool["owner_id"] == user_id:
                tool["_group_ids"] = list(shared)
                visible.append(tool)
                continue
            groups = [g for g in shared if (tool["id"], g) not in hidden]
            if groups:
                tool["_group_ids"] = groups
                visible.append(tool)
        return visible

    def can_view(self, tool: Dict[str, Any], user_id: str, cache: Optional[Dict[str, Any]] = None) -> bool:
        if tool["owner_id"] == user_id:
            return True
        return any(t["id"] == tool["id"] for t in self.visible_tool_rows(user_id, cache))

    def _ensure_owner(self, tool: Dict[str, Any], user_id: str):
        if tool["owner_id"] != user_id:
            raise HTTPException(status_code=403, detail="Only the tool owner can do this")

    def create_tool(self, tool_data: ToolCreate, owner_id: str) -> ToolResponse:
        try:
            payload = tool_data.model_dump(mode="json")
            payload["name"] = payload["name"].strip()
            payload["owner_id"] = owner_id
            result = self.supabase.table(TOOLS_TABLE).insert(payload).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create tool")
            logger.info(f"Tool {result.data[0]['id']} created by {owner_id}")
            return self.to_responses(result.data)[0]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_tool(self, tool_id: str, user_id: str, cache: Optional[Dict[str, Any]] = None) -> ToolResponse:
        """Tool by id, if the caller owns it or can see it through a group"""
        tool = self.get_tool_row(tool_id)
        if not self.can_view(tool, user_id, cache):
            # Same answer as a missing tool so ids of hidden tools do not leak
            raise HTTPException(status_code=404, detail="Tool not found")
        return self.to_responses([tool])[0]

    def update_tool(self, tool_id: str, tool_data: ToolUpdate, user_id: str) -> ToolResponse:
        tool = self.get_tool_row(tool_id)
        self._ensure_owner(tool, user_id)
        try:
            update_data = tool_data.model_dump(mode="json", exclude_none=True)
            if "name" in update_data:
                update_data["name"] = update_data["name"].strip()
            update_data["updated_at"] = datetime.utcnow().isoformat()
            result = self.supabase.table(TOOLS_TABLE)\
                .update(update_data)\
                .eq("id", tool_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Tool not found")
            return self.to_responses(result.data)[0]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def delete_tool(self, tool_id: str, user_id: str) -> bool:
        """Delete an owned tool that is not promised to or held by a borrower"""
        tool = self.get_tool_row(tool_id)
        self._ensure_owner(tool, user_id)
        try:
            active = self.supabase.table(TOOL_REQUESTS_TABLE)\
                .select("id, status, picked_up_at")\
                .eq("tool_id", tool_id)\
                .in_("status", [s.value for s in ACTIVE_BORROW_STATUSES])\
                .execute()
            if any(holds_tool(r) for r in active.data or []):
                raise HTTPException(status_code=409, detail="Tool has an active borrow request")

            self.supabase.table(TOOL_VISIBILITY_TABLE)\
                .delete()\
                .eq("tool_id", tool_id)\
                .execute()
            result = self.supabase.table(TOOLS_TABLE)\
                .delete()\
                .eq("id", tool_id)\
                .execute()
            logger.info(f"Tool {tool_id} deleted by {user_id}")
            return len(result.data) > 0
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_my_tools(self, owner_id: str) -> List[ToolResponse]:
        try:
            result = self.supabase.table(TOOLS_TABLE)\
                .select("*")\
                .eq("owner_id", owner_id)\
                .order("created_at", desc=True)\
                .execute()
            return self.to_responses(result.data or [])
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_visible_tools(
        self,
        user_id: str,
        category_id: Optional[str] = None,
        group_id: Optional[str] = None,
        status: Optional[str] = None,
        include_own: bool = False,
        cache: Optional[Dict[str, Any]] = None
    ) -> List[ToolResponse]:
        """Tools of the caller's group members, newest first"""
        status = normalize_status(status)
        tools = []
        for tool in self.visible_tool_rows(user_id, cache):
            if not include_own and tool["owner_id"] == user_id:
                continue
            if category_id and tool.get("category_id") != category_id:
                continue
            if group_id and group_id not in tool["_group_ids"]:
                continue
            if status and normalize_status(tool.get("status")) != status:
                continue
            tools.append(tool)
        tools.sort(key=lambda t: t.get("created_at") or "", reverse=True)
        return self.to_responses(tools)

    def set_status(self, tool_id: str, status: ToolStatus) -> bool:
        """Best-effort status sync driven by borrow requests"""
        try:
            result = self.supabase.table(TOOLS_TABLE)\
                .update({"status": status.value, "updated_at": datetime.utcnow().isoformat()})\
                .eq("id", tool_id)\
                .execute()
            return bool(result.data)
        except Exception as e:
            logger.error(f"Failed to set tool {tool_id} to {status.value}: {e}")
            return False

    async def upload_image(self, tool_id: str, user_id: str, file: UploadFile) -> ToolResponse:
        """Store an image in the tool images bucket and point the tool at it"""
        tool = self.get_tool_row(tool_id)
        self._ensure_owner(tool, user_id)

        extension = os.path.splitext(file.filename or "")[1].lower() or ".jpg"
        path = f"{user_id}/{tool_id}-{uuid.uuid4().hex[:8]}{extension}"
        content = await file.read()
        bucket = self.supabase.storage.from_(settings.tool_images_bucket)
        try:
            bucket.upload(
                path,
                content,
                file_options={"content-type": file.content_type or "image/jpeg"}
            )
            image_url = bucket.get_public_url(path)
        except Exception as e:
            logger.error(f"Image upload for tool {tool_id} failed: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to upload image: {e}")

        logger.info(f"Uploaded image {path} for tool {tool_id}")
        return self.update_tool(tool_id, ToolUpdate(image_url=image_url), user_id)

    def set_visibility(self, tool_id: str, group_id: str, is_hidden: bool, user_id: str) -> ToolVisibilityResponse:
        tool = self.get_tool_row(tool_id)
        self._ensure_owner(tool, user_id)
        try:
            existing = self.supabase.table(TOOL_VISIBILITY_TABLE)\
                .select("id")\
                .eq("tool_id", tool_id)\
                .eq("group_id", group_id)\
                .execute()
            if existing.data:
                self.supabase.table(TOOL_VISIBILITY_TABLE)\
                    .update({"is_hidden": is_hidden})\
                    .eq("id", existing.data[0]["id"])\
                    .execute()
            else:
                self.supabase.table(TOOL_VISIBILITY_TABLE).insert({
                    "tool_id": tool_id,
                    "group_id": group_id,
                    "is_hidden": is_hidden
                }).execute()
            return ToolVisibilityResponse(tool_id=tool_id, group_id=group_id, is_hidden=is_hidden)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_visibility(self, tool_id: str, user_id: str) -> List[ToolVisibilityResponse]:
        tool = self.get_tool_row(tool_id)
        self._ensure_owner(tool, user_id)
        try:
            result = self.supabase.table(TOOL_VISIBILITY_TABLE)\
                .select("*")\
                .eq("tool_id", tool_id)\
                .execute()
            return [ToolVisibilityResponse(**v) for v in result.data or []]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def record_history(self, entry: Dict[str, Any]) -> None:
        """Best-effort insert into tool_history"""
        try:
            self.supabase.table(TOOL_HISTORY_TABLE).insert(entry).execute()
        except Exception as e:
            logger.error(f"Failed to record history for tool {entry.get('tool_id')}: {e}")

    def get_history(self, tool_id: str, user_id: str, cache: Optional[Dict[str, Any]] = None) -> List[ToolHistoryEntry]:
        """Lending history of a tool, newest first"""
        tool = self.get_tool_row(tool_id)
        if not self.can_view(tool, user_id, cache):
            raise HTTPException(status_code=404, detail="Tool not found")
        try:
            result = self.supabase.table(TOOL_HISTORY_TABLE)\
                .select("*")\
                .eq("tool_id", tool_id)\
                .order("created_at", desc=True)\
                .execute()
            rows = result.data or []
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

        names = ProfileService(self.supabase).get_display_names(
            [r.get("action_by") for r in rows] + [r.get("borrower_id") for r in rows]
        )
        return [
            ToolHistoryEntry(
                id=r["id"],
                request_id=r.get("request_id"),
                action_type=r["action_type"],
                action_by=r["action_by"],
                action_by_name=names.get(r.get("action_by")),
                borrower_name=names.get(r.get("borrower_id")),
                start_date=r.get("start_date"),
                end_date=r.get("end_date"),
                actual_pickup_date=r.get("actual_pickup_date"),
                actual_return_date=r.get("actual_return_date"),
                notes=r.get("notes"),
                created_at=r["created_at"]
            )
            for r in rows
        ]

    def list_categories(self) -> List[CategoryResponse]:
        try:
            result = self.supabase.table(TOOL_CATEGORIES_TABLE)\
                .select("id, name")\
                .order("name")\
                .execute()
            return [CategoryResponse(**c) for c in result.data or []]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
