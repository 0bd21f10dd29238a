from supabase import Client
from borrow_buddy.modules.profiles.models import PROFILES_TABLE, UNKNOWN_USER
from borrow_buddy.modules.profiles.schemas import ProfileUpdate, ProfileResponse
from typing import Dict, Iterable, Optional
from fastapi import HTTPException
from datetime import datetime
import logging

logger = logging.getLogger(__name__)


class ProfileService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def find_profile(self, user_id: str) -> Optional[ProfileResponse]:
        """Profile for user_id, or None when it does not exist"""
        try:
            result = self.supabase.table(PROFILES_TABLE)\
                .select("*")\
                .eq("id", user_id)\
                .maybe_single()\
                .execute()
            if not result or not result.data:
                return None
            return ProfileResponse(**result.data)
        except Exception as e:
            logger.error(f"Error loading profile {user_id}: {e}")
            return None

    def get_profile(self, user_id: str) -> ProfileResponse:
        """Get profile by ID"""
        profile = self.find_profile(user_id)
        if profile is None:
            raise HTTPException(status_code=404, detail="Profile not found")
        return profile

    def update_profile(self, user_id: str, profile_data: ProfileUpdate) -> ProfileResponse:
        """Update the caller's display name"""
        try:
            result = self.supabase.table(PROFILES_TABLE)\
                .update({
                    "display_name": profile_data.display_name.strip(),
                    "updated_at": datetime.utcnow().isoformat()
                })\
                .eq("id", user_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Profile not found")

            return ProfileResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_display_names(self, user_ids: Iterable[str]) -> Dict[str, str]:
        """Map user ids to display names; missing profiles map to a placeholder"""
        ids = list({uid for uid in user_ids if uid})
        if not ids:
            return {}
        names = {uid: UNKNOWN_USER for uid in ids}
        try:
            result = self.supabase.table(PROFILES_TABLE)\
                .select("id, display_name")\
                .in_("id", ids)\
                .execute()
            for row in result.data or []:
                names[row["id"]] = row.get("display_name") or UNKNOWN_USER
        except Exception as e:
            logger.error(f"Error loading display names: {e}")
        return names
