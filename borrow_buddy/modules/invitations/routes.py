from fastapi import APIRouter, Depends, HTTPException
from borrow_buddy.database.supabase_client import get_supabase
from borrow_buddy.modules.invitations.schemas import (
    InviteCreate, InviteResponse, InviteLookupResponse, InviteAcceptResponse
)
from borrow_buddy.modules.invitations.service import InvitationService
from borrow_buddy.core.dependencies import (
    get_current_user_id, check_group_admin, check_group_member
)
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/invitations", tags=["invitations"])


def get_invitation_service(supabase: Client = Depends(get_supabase)) -> InvitationService:
    return InvitationService(supabase)


@router.get("", response_model=List[InviteResponse])
async def list_received(
    user_data: Dict = Depends(get_current_user_id),
    service: InvitationService = Depends(get_invitation_service)
):
    """Personal invitations addressed to the caller's email"""
    return service.list_received(user_data.get("email"))


@router.get("/sent", response_model=List[InviteResponse])
async def list_sent(
    user_data: Dict = Depends(get_current_user_id),
    service: InvitationService = Depends(get_invitation_service)
):
    return service.list_sent(user_data["id"])


@router.post("", response_model=InviteResponse, status_code=201)
async def create_invitation(
    invite_data: InviteCreate,
    user_data: Dict = Depends(get_current_user_id),
    service: InvitationService = Depends(get_invitation_service),
    supabase: Client = Depends(get_supabase)
):
    """Invite an email address to a group (creator or admin)"""
    check_group_admin(invite_data.group_id, user_data, supabase)
    return service.create_personal(invite_data.group_id, invite_data.email, user_data["id"])


@router.get("/group/{group_id}", response_model=List[InviteResponse])
async def list_group_invitations(
    group_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: InvitationService = Depends(get_invitation_service),
    supabase: Client = Depends(get_supabase)
):
    """Pending personal invitations of a group (creator or admin)"""
    check_group_admin(group_id, user_data, supabase)
    return service.list_for_group(group_id)


@router.get("/link/{group_id}", response_model=InviteResponse)
async def get_invite_link(
    group_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: InvitationService = Depends(get_invitation_service),
    supabase: Client = Depends(get_supabase)
):
    """The group's reusable invitation link (any member)"""
    check_group_member(group_id, user_data, supabase)
    return service.get_or_create_link(group_id, user_data["id"])


@router.get("/code/{invite_code}", response_model=InviteLookupResponse)
async def lookup_invitation(
    invite_code: str,
    user_data: Dict = Depends(get_current_user_id),
    service: InvitationService = Depends(get_invitation_service)
):
    """Group details behind an invitation code"""
    return service.lookup(invite_code, user_data.get("email"))


@router.post("/code/{invite_code}/accept", response_model=InviteAcceptResponse)
async def accept_by_code(
    invite_code: str,
    user_data: Dict = Depends(get_current_user_id),
    service: InvitationService = Depends(get_invitation_service)
):
    return service.accept_by_code(invite_code, user_data)


@router.post("/{invite_id}/accept", response_model=InviteAcceptResponse)
async def accept_invitation(
    invite_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: InvitationService = Depends(get_invitation_service)
):
    return service.accept_by_id(invite_id, user_data)


@router.post("/{invite_id}/decline", status_code=204)
async def decline_invitation(
    invite_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: InvitationService = Depends(get_invitation_service)
):
    service.decline(invite_id, user_data)
    return None


@router.delete("/{invite_id}", status_code=204)
async def cancel_invitation(
    invite_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: InvitationService = Depends(get_invitation_service),
    supabase: Client = Depends(get_supabase)
):
    """Withdraw a sent invitation (inviter or group admin)"""
    group_id = service.get_invite_group_id(invite_id)
    try:
        check_group_admin(group_id, user_data, supabase)
        is_admin = True
    except HTTPException:
        is_admin = False
    service.cancel(invite_id, user_data["id"], is_group_admin=is_admin)
    return None
