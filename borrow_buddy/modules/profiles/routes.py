from fastapi import APIRouter, Depends, HTTPException, status
from borrow_buddy.database.supabase_client import get_supabase
from borrow_buddy.modules.profiles.schemas import ProfileUpdate, ProfileResponse
from borrow_buddy.modules.profiles.service import ProfileService
from borrow_buddy.core.dependencies import get_current_user_id, user_can_access_user
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/profiles", tags=["profiles"])


def get_profile_service(supabase: Client = Depends(get_supabase)) -> ProfileService:
    return ProfileService(supabase)


@router.get("/me", response_model=ProfileResponse)
async def get_my_profile(
    user_data: Dict = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service)
):
    return service.get_profile(user_data["id"])


@router.put("/me", response_model=ProfileResponse)
async def update_my_profile(
    profile_data: ProfileUpdate,
    user_data: Dict = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service)
):
    """Change the caller's display name"""
    return service.update_profile(user_data["id"], profile_data)


@router.get("/{user_id}", response_model=ProfileResponse)
async def get_profile(
    user_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service),
    supabase: Client = Depends(get_supabase)
):
    """Get a profile (only self or someone sharing a group)"""
    if not user_can_access_user(user_data["id"], user_id, supabase):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Profile not accessible")
    return service.get_profile(user_id)
