from fastapi import APIRouter, Depends, Query
from borrow_buddy.database.supabase_client import get_supabase
from borrow_buddy.modules.search.schemas import SearchResult, FilterOptions
from borrow_buddy.modules.search.service import SearchService, PREVIEW_LIMIT, MAX_LIMIT
from borrow_buddy.modules.tools.schemas import ToolResponse
from borrow_buddy.core.dependencies import get_current_user_id, get_access_cache
from supabase import Client
from typing import List, Dict, Optional

router = APIRouter(prefix="/search", tags=["search"])


def get_search_service(supabase: Client = Depends(get_supabase)) -> SearchService:
    return SearchService(supabase)


@router.get("", response_model=List[SearchResult])
async def search_tools(
    q: str = Query("", max_length=200),
    limit: Optional[int] = Query(None, ge=1, le=MAX_LIMIT),
    category: Optional[str] = Query(None),
    group: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    user_data: Dict = Depends(get_current_user_id),
    service: SearchService = Depends(get_search_service),
    cache: Dict = Depends(get_access_cache)
):
    """Search tools shared with me; every word of q has to match"""
    return service.search(
        user_data["id"], q, limit=limit,
        category=category, group=group, status=status, cache=cache
    )


@router.get("/preview", response_model=List[SearchResult])
async def search_preview(
    q: str = Query("", max_length=200),
    user_data: Dict = Depends(get_current_user_id),
    service: SearchService = Depends(get_search_service),
    cache: Dict = Depends(get_access_cache)
):
    """First few matches for the search box dropdown"""
    return service.search(user_data["id"], q, limit=PREVIEW_LIMIT, cache=cache)


@router.get("/filters", response_model=FilterOptions)
async def filter_options(
    user_data: Dict = Depends(get_current_user_id),
    service: SearchService = Depends(get_search_service),
    cache: Dict = Depends(get_access_cache)
):
    return service.filter_options(user_data["id"], cache=cache)


@router.get("/new-tools", response_model=List[ToolResponse])
async def new_tools(
    limit: int = Query(10, ge=1, le=MAX_LIMIT),
    user_data: Dict = Depends(get_current_user_id),
    service: SearchService = Depends(get_search_service),
    cache: Dict = Depends(get_access_cache)
):
    return service.new_tools_feed(user_data["id"], limit=limit, cache=cache)
