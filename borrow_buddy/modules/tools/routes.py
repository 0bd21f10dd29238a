from fastapi import APIRouter, Depends, HTTPException, UploadFile, File, Query
from borrow_buddy.database.supabase_client import get_supabase
from borrow_buddy.modules.tools.models import ToolStatus
from borrow_buddy.modules.tools.schemas import (
    ToolCreate, ToolUpdate, ToolResponse, ToolVisibilityUpdate,
    ToolVisibilityResponse, ToolHistoryEntry, CategoryResponse
)
from borrow_buddy.modules.tools.service import ToolService
from borrow_buddy.core.dependencies import get_current_user_id, get_access_cache, check_group_member
from supabase import Client
from typing import List, Dict, Optional

router = APIRouter(prefix="/tools", tags=["tools"])
categories_router = APIRouter(prefix="/categories", tags=["tools"])


def get_tool_service(supabase: Client = Depends(get_supabase)) -> ToolService:
    return ToolService(supabase)


@router.post("", response_model=ToolResponse, status_code=201)
async def create_tool(
    tool_data: ToolCreate,
    user_data: Dict = Depends(get_current_user_id),
    service: ToolService = Depends(get_tool_service)
):
    return service.create_tool(tool_data, user_data["id"])


@router.get("", response_model=List[ToolResponse])
async def list_tools(
    category_id: Optional[str] = Query(None),
    group_id: Optional[str] = Query(None),
    status: Optional[ToolStatus] = Query(None),
    include_own: bool = Query(False),
    user_data: Dict = Depends(get_current_user_id),
    service: ToolService = Depends(get_tool_service),
    cache: Dict = Depends(get_access_cache)
):
    """Tools shared with me through my groups"""
    return service.list_visible_tools(
        user_data["id"],
        category_id=category_id,
        group_id=group_id,
        status=status.value if status else None,
        include_own=include_own,
        cache=cache
    )


@router.get("/mine", response_model=List[ToolResponse])
async def list_my_tools(
    user_data: Dict = Depends(get_current_user_id),
    service: ToolService = Depends(get_tool_service)
):
    return service.list_my_tools(user_data["id"])


@router.get("/{tool_id}", response_model=ToolResponse)
async def get_tool(
    tool_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: ToolService = Depends(get_tool_service),
    cache: Dict = Depends(get_access_cache)
):
    return service.get_tool(tool_id, user_data["id"], cache=cache)


@router.put("/{tool_id}", response_model=ToolResponse)
async def update_tool(
    tool_id: str,
    tool_data: ToolUpdate,
    user_data: Dict = Depends(get_current_user_id),
    service: ToolService = Depends(get_tool_service)
):
    """Update tool (owner only)"""
    return service.update_tool(tool_id, tool_data, user_data["id"])


@router.delete("/{tool_id}", status_code=204)
async def delete_tool(
    tool_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: ToolService = Depends(get_tool_service)
):
    """Delete tool (owner only, not while lent out)"""
    service.delete_tool(tool_id, user_data["id"])
    return None


@router.post("/{tool_id}/image", response_model=ToolResponse)
async def upload_tool_image(
    tool_id: str,
    file: UploadFile = File(...),
    user_data: Dict = Depends(get_current_user_id),
    service: ToolService = Depends(get_tool_service)
):
    """Upload a photo of the tool"""
    if not (file.content_type or "").startswith("image/"):
        raise HTTPException(status_code=400, detail="File must be an image")
    return await service.upload_image(tool_id, user_data["id"], file)


@router.get("/{tool_id}/visibility", response_model=List[ToolVisibilityResponse])
async def list_tool_visibility(
    tool_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: ToolService = Depends(get_tool_service)
):
    return service.list_visibility(tool_id, user_data["id"])


@router.put("/{tool_id}/visibility", response_model=ToolVisibilityResponse)
async def set_tool_visibility(
    tool_id: str,
    visibility: ToolVisibilityUpdate,
    user_data: Dict = Depends(get_current_user_id),
    service: ToolService = Depends(get_tool_service),
    supabase: Client = Depends(get_supabase)
):
    """Hide or show a tool in one of my groups"""
    check_group_member(visibility.group_id, user_data, supabase)
    return service.set_visibility(tool_id, visibility.group_id, visibility.is_hidden, user_data["id"])


@router.get("/{tool_id}/history", response_model=List[ToolHistoryEntry])
async def get_tool_history(
    tool_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: ToolService = Depends(get_tool_service),
    cache: Dict = Depends(get_access_cache)
):
    return service.get_history(tool_id, user_data["id"], cache=cache)


@categories_router.get("", response_model=List[CategoryResponse])
async def list_categories(
    user_data: Dict = Depends(get_current_user_id),
    service: ToolService = Depends(get_tool_service)
):
    return service.list_categories()
