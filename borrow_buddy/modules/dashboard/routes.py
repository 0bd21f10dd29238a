from fastapi import APIRouter, Depends
from borrow_buddy.database.supabase_client import get_supabase
from borrow_buddy.modules.dashboard.schemas import ActivityItem, DashboardSummary
from borrow_buddy.modules.dashboard.service import DashboardService
from borrow_buddy.core.dependencies import get_current_user_id
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


def get_dashboard_service(supabase: Client = Depends(get_supabase)) -> DashboardService:
    return DashboardService(supabase)


@router.get("", response_model=DashboardSummary)
async def get_dashboard(
    user_data: Dict = Depends(get_current_user_id),
    service: DashboardService = Depends(get_dashboard_service)
):
    return service.summary(user_data["id"])


@router.get("/activities", response_model=List[ActivityItem])
async def list_activities(
    user_data: Dict = Depends(get_current_user_id),
    service: DashboardService = Depends(get_dashboard_service)
):
    """Borrowing, lending and pending requests in one list"""
    return service.activities(user_data["id"])
