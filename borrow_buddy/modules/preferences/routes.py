from fastapi import APIRouter, Depends
from borrow_buddy.database.supabase_client import get_supabase
from borrow_buddy.modules.preferences.schemas import PreferencesUpdate, PreferencesResponse
from borrow_buddy.modules.preferences.service import PreferencesService
from borrow_buddy.core.dependencies import get_current_user_id
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/preferences", tags=["preferences"])


def get_preferences_service(supabase: Client = Depends(get_supabase)) -> PreferencesService:
    return PreferencesService(supabase)


@router.get("", response_model=PreferencesResponse)
async def get_preferences(
    user_data: Dict = Depends(get_current_user_id),
    service: PreferencesService = Depends(get_preferences_service)
):
    """Get (or create with defaults) the caller's notification preferences"""
    return service.get_or_create(user_data["id"])


@router.put("", response_model=PreferencesResponse)
async def update_preferences(
    changes: PreferencesUpdate,
    user_data: Dict = Depends(get_current_user_id),
    service: PreferencesService = Depends(get_preferences_service)
):
    return service.update(user_data["id"], changes)
