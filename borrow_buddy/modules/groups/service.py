from supabase import Client
from borrow_buddy.modules.groups.models import (
    GROUPS_TABLE, GROUP_MEMBERS_TABLE, ROLE_ADMIN, ROLE_MEMBER
)
from borrow_buddy.modules.groups.schemas import (
    GroupCreate, GroupUpdate, GroupResponse, GroupMemberResponse
)
from borrow_buddy.modules.invitations.models import GROUP_INVITES_TABLE
from borrow_buddy.modules.tools.models import TOOL_VISIBILITY_TABLE
from borrow_buddy.modules.profiles.service import ProfileService
from typing import List, Optional
from fastapi import HTTPException
from datetime import datetime
import logging

logger = logging.getLogger(__name__)


class GroupService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def create_group(self, group_data: GroupCreate, user_id: str) -> GroupResponse:
        """Create a new group and add the creator as its first admin"""
        try:
            result = self.supabase.table(GROUPS_TABLE).insert({
                "name": group_data.name.strip(),
                "description": group_data.description,
                "is_private": group_data.is_private,
                "creator_id": user_id
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create group")
            group = result.data[0]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

        try:
            self.supabase.table(GROUP_MEMBERS_TABLE).insert({
                "group_id": group["id"],
                "user_id": user_id,
                "role": ROLE_ADMIN
            }).execute()
        except Exception as e:
            logger.error(f"Adding creator to group {group['id']} failed, removing group: {e}")
            try:
                self.supabase.table(GROUPS_TABLE).delete().eq("id", group["id"]).execute()
            except Exception as cleanup_error:
                logger.error(f"Orphaned group {group['id']} could not be removed: {cleanup_error}")
            raise HTTPException(status_code=500, detail=f"Failed to add creator to group: {e}")

        logger.info(f"Group {group['id']} created by {user_id}")
        return GroupResponse(**group, member_count=1)

    def get_group_by_id(self, group_id: str) -> GroupResponse:
        """Get group by ID"""
        try:
            result = self.supabase.table(GROUPS_TABLE)\
                .select("*")\
                .eq("id", group_id)\
                .maybe_single()\
                .execute()

            if not result or not result.data:
                raise HTTPException(status_code=404, detail="Group not found")

            return GroupResponse(**result.data, member_count=self._member_count(group_id))
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def _member_count(self, group_id: str) -> int:
        result = self.supabase.table(GROUP_MEMBERS_TABLE)\
            .select("id", count="exact")\
            .eq("group_id", group_id)\
            .execute()
        if result.count is not None:
            return result.count
        return len(result.data or [])

    def update_group(self, group_id: str, group_data: GroupUpdate) -> GroupResponse:
        """Update group"""
        try:
            update_data = {"updated_at": datetime.utcnow().isoformat()}
            if group_data.name:
                update_data["name"] = group_data.name.strip()
            if group_data.description is not None:
                update_data["description"] = group_data.description
            if group_data.is_private is not None:
                update_data["is_private"] = group_data.is_private

            result = self.supabase.table(GROUPS_TABLE)\
                .update(update_data)\
                .eq("id", group_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Group not found")

            return GroupResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_groups(self, user_id: str, group_ids: Optional[List[str]] = None) -> List[GroupResponse]:
        """Groups the user is a member of, newest first. Pass group_ids to avoid an extra group_members query."""
        try:
            if group_ids is None:
                members_result = self.supabase.table(GROUP_MEMBERS_TABLE)\
                    .select("group_id")\
                    .eq("user_id", user_id)\
                    .execute()
                group_ids = [m["group_id"] for m in members_result.data or []]
            if not group_ids:
                return []

            result = self.supabase.table(GROUPS_TABLE)\
                .select("*")\
                .in_("id", group_ids)\
                .order("created_at", desc=True)\
                .execute()

            counts_result = self.supabase.table(GROUP_MEMBERS_TABLE)\
                .select("group_id")\
                .in_("group_id", group_ids)\
                .execute()
            counts = {}
            for m in counts_result.data or []:
                counts[m["group_id"]] = counts.get(m["group_id"], 0) + 1

            return [GroupResponse(**g, member_count=counts.get(g["id"], 0)) for g in result.data or []]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def delete_group(self, group_id: str) -> bool:
        """Delete group with its memberships, invites and tool visibility rows"""
        try:
            for table in (GROUP_MEMBERS_TABLE, GROUP_INVITES_TABLE, TOOL_VISIBILITY_TABLE):
                self.supabase.table(table)\
                    .delete()\
                    .eq("group_id", group_id)\
                    .execute()

            result = self.supabase.table(GROUPS_TABLE)\
                .delete()\
                .eq("id", group_id)\
                .execute()

            return len(result.data) > 0
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_members(self, group_id: str) -> List[GroupMemberResponse]:
        """List all members of a group with display names; creator first, then admins"""
        try:
            group = self.get_group_by_id(group_id)
            result = self.supabase.table(GROUP_MEMBERS_TABLE)\
                .select("*")\
                .eq("group_id", group_id)\
                .order("created_at")\
                .execute()
            members = result.data or []
            names = ProfileService(self.supabase).get_display_names(m["user_id"] for m in members)
            responses = [
                GroupMemberResponse(
                    **m,
                    display_name=names.get(m["user_id"]),
                    is_creator=m["user_id"] == group.creator_id
                )
                for m in members
            ]
            return sorted(responses, key=lambda m: (not m.is_creator, m.role != ROLE_ADMIN))
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def _ensure_not_creator(self, group_id: str, user_id: str, action: str):
        group = self.get_group_by_id(group_id)
        if group.creator_id == user_id:
            raise HTTPException(status_code=400, detail=f"The group creator cannot be {action}")

    def remove_member(self, group_id: str, user_id: str) -> bool:
        """Remove a member from the group"""
        self._ensure_not_creator(group_id, user_id, "removed")
        try:
            result = self.supabase.table(GROUP_MEMBERS_TABLE)\
                .delete()\
                .eq("group_id", group_id)\
                .eq("user_id", user_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Member not found")
            return True
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def leave_group(self, group_id: str, user_id: str) -> bool:
        # Same rules as removal: the creator has to delete the group instead
        return self.remove_member(group_id, user_id)

    def set_member_role(self, group_id: str, user_id: str, role: str) -> GroupMemberResponse:
        """Promote to admin or demote to member"""
        if role == ROLE_MEMBER:
            self._ensure_not_creator(group_id, user_id, "demoted")
        try:
            result = self.supabase.table(GROUP_MEMBERS_TABLE)\
                .update({"role": role})\
                .eq("group_id", group_id)\
                .eq("user_id", user_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Member not found")

            logger.info(f"Member {user_id} of group {group_id} is now {role}")
            return GroupMemberResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
