from supabase import Client
from postgrest.exceptions import APIError
from borrow_buddy.config import settings
from borrow_buddy.modules.invitations.models import (
    GROUP_INVITES_TABLE, GENERAL_INVITE_EMAIL, UNIQUE_VIOLATION
)
from borrow_buddy.modules.invitations.schemas import (
    InviteResponse, InviteLookupResponse, InviteAcceptResponse
)
from borrow_buddy.modules.groups.models import GROUPS_TABLE, GROUP_MEMBERS_TABLE, ROLE_MEMBER
from borrow_buddy.modules.notifications.models import NotificationType
from borrow_buddy.modules.notifications.service import NotificationService
from borrow_buddy.modules.profiles.service import ProfileService
from typing import List, Optional, Dict, Any
from fastapi import HTTPException
from datetime import datetime, timedelta, timezone
import uuid
import logging

logger = logging.getLogger(__name__)


def new_invite_code() -> str:
    return uuid.uuid4().hex[:12]


def is_general(invite: Dict[str, Any]) -> bool:
    return invite.get("email") == GENERAL_INVITE_EMAIL


def is_expired(invite: Dict[str, Any], now: Optional[datetime] = None) -> bool:
    expires_at = invite.get("expires_at")
    if not expires_at:
        return False
    if isinstance(expires_at, str):
        expires_at = datetime.fromisoformat(expires_at.replace("Z", "+00:00"))
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at < (now or datetime.now(timezone.utc))


class InvitationService:
    """
    Invites come in two shapes sharing one table: a personal invite addressed
    to one email and consumed on acceptance or decline, and the group's
    general link invite (email '*') which is never consumed.
    """

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _expiry(self) -> str:
        return (datetime.now(timezone.utc) + timedelta(days=settings.invite_ttl_days)).isoformat()

    def _group_names(self, group_ids: List[str]) -> Dict[str, str]:
        ids = list(set(group_ids))
        if not ids:
            return {}
        result = self.supabase.table(GROUPS_TABLE)\
            .select("id, name")\
            .in_("id", ids)\
            .execute()
        return {g["id"]: g["name"] for g in result.data or []}

    def _get_invite(self, invite_id: str) -> Dict[str, Any]:
        result = self.supabase.table(GROUP_INVITES_TABLE)\
            .select("*")\
            .eq("id", invite_id)\
            .maybe_single()\
            .execute()
        if not result or not result.data:
            raise HTTPException(status_code=404, detail="Invitation not found")
        return result.data

    def create_personal(self, group_id: str, email: str, created_by: str) -> InviteResponse:
        """Invite one email address to the group"""
        email = email.strip().lower()
        try:
            existing = self.supabase.table(GROUP_INVITES_TABLE)\
                .select("id")\
                .eq("group_id", group_id)\
                .eq("email", email)\
                .execute()
            if existing.data:
                raise HTTPException(status_code=409, detail="This email has already been invited to the group")

            result = self.supabase.table(GROUP_INVITES_TABLE).insert({
                "group_id": group_id,
                "email": email,
                "invite_code": new_invite_code(),
                "created_by": created_by,
                "expires_at": self._expiry()
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create invitation")

            logger.info(f"Invitation to group {group_id} created for {email}")
            return InviteResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_or_create_link(self, group_id: str, created_by: str) -> InviteResponse:
        """Return the group's reusable link invite, creating it on first use"""
        try:
            existing = self.supabase.table(GROUP_INVITES_TABLE)\
                .select("*")\
                .eq("group_id", group_id)\
                .eq("email", GENERAL_INVITE_EMAIL)\
                .limit(1)\
                .execute()
            if existing.data:
                return InviteResponse(**existing.data[0])

            result = self.supabase.table(GROUP_INVITES_TABLE).insert({
                "group_id": group_id,
                "email": GENERAL_INVITE_EMAIL,
                "invite_code": new_invite_code(),
                "created_by": created_by
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create invitation link")
            return InviteResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def find_by_code(self, invite_code: str, email: Optional[str]) -> Dict[str, Any]:
        """General invite with this code first, then a personal invite addressed to email"""
        candidates = [GENERAL_INVITE_EMAIL]
        if email:
            candidates.append(email.strip().lower())
        for candidate in candidates:
            result = self.supabase.table(GROUP_INVITES_TABLE)\
                .select("*")\
                .eq("invite_code", invite_code)\
                .eq("email", candidate)\
                .limit(1)\
                .execute()
            if result.data:
                invite = result.data[0]
                if settings.invite_expiry_enforced and is_expired(invite):
                    raise HTTPException(status_code=410, detail="Invitation has expired")
                return invite
        raise HTTPException(status_code=404, detail="Invalid or expired invitation")

    def lookup(self, invite_code: str, email: Optional[str]) -> InviteLookupResponse:
        invite = self.find_by_code(invite_code, email)
        group_result = self.supabase.table(GROUPS_TABLE)\
            .select("*")\
            .eq("id", invite["group_id"])\
            .maybe_single()\
            .execute()
        if not group_result or not group_result.data:
            raise HTTPException(status_code=404, detail="Group not found")
        group = group_result.data
        creator_name = ProfileService(self.supabase).get_display_names([group["creator_id"]])[group["creator_id"]]
        return InviteLookupResponse(
            invite_id=invite["id"],
            invite_code=invite["invite_code"],
            group_id=group["id"],
            group_name=group["name"],
            group_description=group.get("description"),
            creator_name=creator_name,
            is_general=is_general(invite)
        )

    def accept_by_code(self, invite_code: str, user: Dict[str, Any]) -> InviteAcceptResponse:
        invite = self.find_by_code(invite_code, user.get("email"))
        return self._accept(invite, user)

    def accept_by_id(self, invite_id: str, user: Dict[str, Any]) -> InviteAcceptResponse:
        invite = self._get_invite(invite_id)
        self._ensure_addressed_to(invite, user)
        if settings.invite_expiry_enforced and is_expired(invite):
            raise HTTPException(status_code=410, detail="Invitation has expired")
        return self._accept(invite, user)

    def _ensure_addressed_to(self, invite: Dict[str, Any], user: Dict[str, Any]):
        if is_general(invite):
            return
        if (user.get("email") or "").strip().lower() != invite["email"]:
            raise HTTPException(status_code=403, detail="This invitation was sent to someone else")

    def _accept(self, invite: Dict[str, Any], user: Dict[str, Any]) -> InviteAcceptResponse:
        """
        Check-then-insert membership, then consume a personal invite.
        Not atomic: a concurrent accept can still race to the insert, in which
        case the unique (group_id, user_id) constraint turns it into a no-op.
        """
        group_id = invite["group_id"]
        user_id = user["id"]
        try:
            existing = self.supabase.table(GROUP_MEMBERS_TABLE)\
                .select("id")\
                .eq("group_id", group_id)\
                .eq("user_id", user_id)\
                .execute()
            if existing.data:
                self._consume(invite)
                return InviteAcceptResponse(
                    group_id=group_id,
                    already_member=True,
                    membership_id=existing.data[0]["id"]
                )

            try:
                result = self.supabase.table(GROUP_MEMBERS_TABLE).insert({
                    "group_id": group_id,
                    "user_id": user_id,
                    "role": ROLE_MEMBER
                }).execute()
            except APIError as e:
                if e.code == UNIQUE_VIOLATION:
                    self._consume(invite)
                    return InviteAcceptResponse(group_id=group_id, already_member=True)
                raise
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to join group")
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

        self._consume(invite)
        logger.info(f"User {user_id} joined group {group_id} via invitation {invite['id']}")

        if invite.get("created_by") and invite["created_by"] != user_id:
            joiner = ProfileService(self.supabase).get_display_names([user_id])[user_id]
            NotificationService(self.supabase).notify(
                invite["created_by"],
                NotificationType.GROUP_INVITE,
                "Invitation accepted",
                f"{joiner} joined your group",
                {"group_id": group_id}
            )
        return InviteAcceptResponse(
            group_id=group_id,
            already_member=False,
            membership_id=result.data[0]["id"]
        )

    def _consume(self, invite: Dict[str, Any]):
        if is_general(invite):
            return
        try:
            self.supabase.table(GROUP_INVITES_TABLE)\
                .delete()\
                .eq("id", invite["id"])\
                .execute()
        except Exception as e:
            logger.error(f"Failed to delete consumed invitation {invite['id']}: {e}")

    def decline(self, invite_id: str, user: Dict[str, Any]) -> bool:
        invite = self._get_invite(invite_id)
        if is_general(invite):
            raise HTTPException(status_code=400, detail="Link invitations cannot be declined")
        self._ensure_addressed_to(invite, user)
        return self._delete(invite_id)

    def cancel(self, invite_id: str, user_id: str, is_group_admin: bool) -> bool:
        """Withdraw an invite; allowed for its creator and for group admins"""
        invite = self._get_invite(invite_id)
        if invite.get("created_by") != user_id and not is_group_admin:
            raise HTTPException(status_code=403, detail="Only the inviter or a group admin can cancel this invitation")
        return self._delete(invite_id)

    def _delete(self, invite_id: str) -> bool:
        try:
            result = self.supabase.table(GROUP_INVITES_TABLE)\
                .delete()\
                .eq("id", invite_id)\
                .execute()
            return len(result.data) > 0
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_invite_group_id(self, invite_id: str) -> str:
        return self._get_invite(invite_id)["group_id"]

    def list_received(self, email: Optional[str]) -> List[InviteResponse]:
        """Personal invitations addressed to the caller"""
        if not email:
            return []
        return self._list(("email", email.strip().lower()))

    def list_sent(self, user_id: str) -> List[InviteResponse]:
        """Personal invitations the caller created"""
        return self._list(("created_by", user_id))

    def list_for_group(self, group_id: str) -> List[InviteResponse]:
        return self._list(("group_id", group_id))

    def _list(self, where: tuple) -> List[InviteResponse]:
        try:
            column, value = where
            result = self.supabase.table(GROUP_INVITES_TABLE)\
                .select("*")\
                .eq(column, value)\
                .neq("email", GENERAL_INVITE_EMAIL)\
                .order("created_at", desc=True)\
                .execute()
            invites = result.data or []
            names = self._group_names([i["group_id"] for i in invites])
            return [InviteResponse(**i, group_name=names.get(i["group_id"])) for i in invites]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
