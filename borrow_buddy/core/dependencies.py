"""
Core dependencies for route protection and group-scoped access checks
"""

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from borrow_buddy.database.supabase_client import get_supabase
from borrow_buddy.modules.auth.service import AuthService
from supabase import Client
from typing import List, Optional, Dict, Any
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()

ADMIN_ROLES = ("admin",)


def _get_request_cache(request: Request) -> Dict[str, Any]:
    """Return request-scoped cache for access data (group_ids, member_groups)."""
    if not hasattr(request.state, "access_cache"):
        request.state.access_cache = {}
    return request.state.access_cache


def get_access_cache(request: Request) -> Dict[str, Any]:
    """Dependency that returns the request-scoped access cache."""
    return _get_request_cache(request)


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Extract current user info from JWT token"""
    token = credentials.credentials
    user_data = auth_service.get_current_user(token)
    return user_data


def get_user_group_ids(user_id: str, supabase: Client, cache: Optional[Dict[str, Any]] = None) -> List[str]:
    """Return group_ids from group_members. Uses request-scoped cache when provided."""
    if cache is not None and "group_ids" in cache:
        return cache["group_ids"]
    try:
        result = supabase.table("group_members")\
            .select("group_id")\
            .eq("user_id", user_id)\
            .execute()
        ids = [g["group_id"] for g in result.data] if result.data else []
        if cache is not None:
            cache["group_ids"] = ids
        return ids
    except Exception as e:
        logger.error(f"Error getting user group ids: {e}")
        return []


def get_member_groups(user_id: str, supabase: Client, cache: Optional[Dict[str, Any]] = None) -> Dict[str, List[str]]:
    """Map every user sharing a group with user_id (user_id included) to the shared group ids."""
    if cache is not None and "member_groups" in cache:
        return cache["member_groups"]
    group_ids = get_user_group_ids(user_id, supabase, cache)
    member_groups: Dict[str, List[str]] = {}
    if group_ids:
        try:
            result = supabase.table("group_members")\
                .select("user_id, group_id")\
                .in_("group_id", group_ids)\
                .execute()
            for m in result.data or []:
                member_groups.setdefault(m["user_id"], []).append(m["group_id"])
        except Exception as e:
            logger.error(f"Error getting group members: {e}")
    if cache is not None:
        cache["member_groups"] = member_groups
    return member_groups


def user_can_access_user(current_user_id: str, target_user_id: str, supabase: Client) -> bool:
    """True if target is self or shares at least one group with current user"""
    if current_user_id == target_user_id:
        return True
    my_group_ids = get_user_group_ids(current_user_id, supabase)
    if not my_group_ids:
        return False
    member_result = supabase.table("group_members")\
        .select("id")\
        .eq("user_id", target_user_id)\
        .in_("group_id", my_group_ids)\
        .limit(1)\
        .execute()
    return bool(member_result.data)


def is_group_creator(group_id: str, user_id: str, supabase: Client) -> bool:
    group_result = supabase.table("groups")\
        .select("creator_id")\
        .eq("id", group_id)\
        .maybe_single()\
        .execute()
    if not group_result or not group_result.data:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Group not found"
        )
    return group_result.data.get("creator_id") == user_id


def get_user_group_role(group_id: str, user_id: str, supabase: Client) -> Optional[str]:
    """Membership role of user_id in group_id, or None when not a member"""
    member_result = supabase.table("group_members")\
        .select("role")\
        .eq("group_id", group_id)\
        .eq("user_id", user_id)\
        .execute()
    if not member_result.data:
        return None
    return member_result.data[0].get("role") or "member"


def check_group_admin(
    group_id: str,
    user_data: dict = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase)
) -> dict:
    """Check if user is the creator or an admin of a group"""
    user_id = user_data["id"]

    if is_group_creator(group_id, user_id, supabase):
        return user_data

    if get_user_group_role(group_id, user_id, supabase) in ADMIN_ROLES:
        return user_data

    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="You must be the group creator or an admin to perform this action"
    )


def check_group_member(
    group_id: str,
    user_data: dict = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase)
) -> dict:
    """Check if user is a member of a group"""
    if get_user_group_role(group_id, user_data["id"], supabase) is not None:
        return user_data

    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="You must be a member of this group"
    )
