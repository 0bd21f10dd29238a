from supabase import Client
from borrow_buddy.modules.preferences.models import PREFERENCES_TABLE, DEFAULT_PREFERENCES
from borrow_buddy.modules.preferences.schemas import PreferencesUpdate, PreferencesResponse
from fastapi import HTTPException
from datetime import datetime
import logging

logger = logging.getLogger(__name__)


class PreferencesService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_or_create(self, user_id: str) -> PreferencesResponse:
        """Return the user's preferences, inserting the defaults on first access"""
        try:
            result = self.supabase.table(PREFERENCES_TABLE)\
                .select("*")\
                .eq("user_id", user_id)\
                .maybe_single()\
                .execute()
            if result and result.data:
                return PreferencesResponse(**result.data)

            insert_result = self.supabase.table(PREFERENCES_TABLE).insert({
                "user_id": user_id,
                **DEFAULT_PREFERENCES
            }).execute()
            if not insert_result.data:
                raise HTTPException(status_code=500, detail="Failed to create preferences")
            return PreferencesResponse(**insert_result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def update(self, user_id: str, changes: PreferencesUpdate) -> PreferencesResponse:
        """Update preferences; only fields that were sent are written"""
        self.get_or_create(user_id)
        update_data = changes.model_dump(exclude_none=True)
        if not update_data:
            return self.get_or_create(user_id)
        update_data["updated_at"] = datetime.utcnow().isoformat()
        try:
            result = self.supabase.table(PREFERENCES_TABLE)\
                .update(update_data)\
                .eq("user_id", user_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Preferences not found")
            return PreferencesResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def allows(self, user_id: str, flag: str) -> bool:
        """Whether the user accepts notifications of the given preference flag. Defaults to True on lookup errors."""
        try:
            result = self.supabase.table(PREFERENCES_TABLE)\
                .select(flag)\
                .eq("user_id", user_id)\
                .maybe_single()\
                .execute()
            if not result or not result.data:
                return DEFAULT_PREFERENCES.get(flag, True)
            value = result.data.get(flag)
            return True if value is None else bool(value)
        except Exception as e:
            logger.warning(f"Could not read preference {flag} for {user_id}: {e}")
            return True
