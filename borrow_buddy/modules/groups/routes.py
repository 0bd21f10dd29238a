from fastapi import APIRouter, Depends
from borrow_buddy.database.supabase_client import get_supabase
from borrow_buddy.modules.groups.schemas import (
    GroupCreate, GroupUpdate, GroupResponse,
    GroupMemberResponse, GroupMemberRoleUpdate
)
from borrow_buddy.modules.groups.service import GroupService
from borrow_buddy.core.dependencies import (
    get_current_user_id, check_group_admin, check_group_member,
    get_access_cache, get_user_group_ids
)
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/groups", tags=["groups"])


def get_group_service(supabase: Client = Depends(get_supabase)) -> GroupService:
    return GroupService(supabase)


@router.post("", response_model=GroupResponse, status_code=201)
async def create_group(
    group_data: GroupCreate,
    user_data: Dict = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service)
):
    """Create a new group; the creator becomes its admin"""
    return service.create_group(group_data, user_data["id"])


@router.get("", response_model=List[GroupResponse])
async def list_groups(
    user_data: Dict = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service),
    supabase: Client = Depends(get_supabase),
    cache: Dict = Depends(get_access_cache)
):
    """List groups the user is a member of"""
    group_ids = get_user_group_ids(user_data["id"], supabase, cache)
    return service.list_groups(user_data["id"], group_ids=group_ids)


@router.get("/{group_id}", response_model=GroupResponse)
async def get_group(
    group_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service),
    supabase: Client = Depends(get_supabase)
):
    """Get group by ID (only if user is a member)"""
    check_group_member(group_id, user_data, supabase)
    return service.get_group_by_id(group_id)


@router.put("/{group_id}", response_model=GroupResponse)
async def update_group(
    group_id: str,
    group_data: GroupUpdate,
    current_user: Dict = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service),
    supabase: Client = Depends(get_supabase)
):
    """Update group (creator or admin)"""
    check_group_admin(group_id, current_user, supabase)
    return service.update_group(group_id, group_data)


@router.delete("/{group_id}", status_code=204)
async def delete_group(
    group_id: str,
    current_user: Dict = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service),
    supabase: Client = Depends(get_supabase)
):
    """Delete group (creator or admin)"""
    check_group_admin(group_id, current_user, supabase)
    service.delete_group(group_id)
    return None


@router.get("/{group_id}/members", response_model=List[GroupMemberResponse])
async def list_members(
    group_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service),
    supabase: Client = Depends(get_supabase)
):
    """List all members of a group (only if user is a member)"""
    check_group_member(group_id, user_data, supabase)
    return service.list_members(group_id)


@router.put("/{group_id}/members/{user_id}", response_model=GroupMemberResponse)
async def set_member_role(
    group_id: str,
    user_id: str,
    role_data: GroupMemberRoleUpdate,
    current_user: Dict = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service),
    supabase: Client = Depends(get_supabase)
):
    """Promote or demote a member (creator or admin)"""
    check_group_admin(group_id, current_user, supabase)
    return service.set_member_role(group_id, user_id, role_data.role)


@router.delete("/{group_id}/members/{user_id}", status_code=204)
async def remove_member(
    group_id: str,
    user_id: str,
    current_user: Dict = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service),
    supabase: Client = Depends(get_supabase)
):
    """Remove a member from the group (creator or admin)"""
    check_group_admin(group_id, current_user, supabase)
    service.remove_member(group_id, user_id)
    return None


@router.post("/{group_id}/leave", status_code=204)
async def leave_group(
    group_id: str,
    current_user: Dict = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service),
    supabase: Client = Depends(get_supabase)
):
    check_group_member(group_id, current_user, supabase)
    service.leave_group(group_id, current_user["id"])
    return None
