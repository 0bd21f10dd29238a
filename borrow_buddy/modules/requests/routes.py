from fastapi import APIRouter, Depends, Query
from borrow_buddy.database.supabase_client import get_supabase
from borrow_buddy.modules.requests.models import RequestStatus
from borrow_buddy.modules.requests.schemas import (
    RequestCreate, RequestResponse, ReturnConfirm, OverdueSweepResponse
)
from borrow_buddy.modules.requests.service import RequestService
from borrow_buddy.core.dependencies import get_current_user_id
from supabase import Client
from typing import List, Dict, Optional, Literal

router = APIRouter(prefix="/requests", tags=["requests"])


def get_request_service(supabase: Client = Depends(get_supabase)) -> RequestService:
    return RequestService(supabase)


@router.post("", response_model=RequestResponse, status_code=201)
async def create_request(
    request_data: RequestCreate,
    user_data: Dict = Depends(get_current_user_id),
    service: RequestService = Depends(get_request_service)
):
    """Ask to borrow a tool; the owner is notified"""
    return service.create_request(request_data, user_data["id"])


@router.get("", response_model=List[RequestResponse])
async def list_requests(
    role: Optional[Literal["incoming", "outgoing"]] = Query(None),
    status: Optional[RequestStatus] = Query(None),
    user_data: Dict = Depends(get_current_user_id),
    service: RequestService = Depends(get_request_service)
):
    """Requests on my tools (incoming), requests I made (outgoing), or both"""
    return service.list_requests(user_data["id"], role=role, status=status)


@router.post("/mark-overdue", response_model=OverdueSweepResponse)
async def mark_overdue(
    user_data: Dict = Depends(get_current_user_id),
    service: RequestService = Depends(get_request_service)
):
    """Flip unfinished requests past their end date to overdue"""
    return service.mark_overdue()


@router.get("/{request_id}", response_model=RequestResponse)
async def get_request(
    request_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: RequestService = Depends(get_request_service)
):
    return service.get_request(request_id, user_data["id"])


@router.post("/{request_id}/approve", response_model=RequestResponse)
async def approve_request(
    request_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: RequestService = Depends(get_request_service)
):
    return service.approve(request_id, user_data["id"])


@router.post("/{request_id}/deny", response_model=RequestResponse)
async def deny_request(
    request_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: RequestService = Depends(get_request_service)
):
    return service.deny(request_id, user_data["id"])


@router.post("/{request_id}/cancel", response_model=RequestResponse)
async def cancel_request(
    request_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: RequestService = Depends(get_request_service)
):
    return service.cancel(request_id, user_data["id"])


@router.post("/{request_id}/pickup", response_model=RequestResponse)
async def confirm_pickup(
    request_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: RequestService = Depends(get_request_service)
):
    """Borrower confirms they have the tool"""
    return service.confirm_pickup(request_id, user_data["id"])


@router.post("/{request_id}/return", response_model=RequestResponse)
async def initiate_return(
    request_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: RequestService = Depends(get_request_service)
):
    """Borrower hands the tool back"""
    return service.initiate_return(request_id, user_data["id"])


@router.post("/{request_id}/confirm-return", response_model=RequestResponse)
async def confirm_return(
    request_id: str,
    return_data: Optional[ReturnConfirm] = None,
    user_data: Dict = Depends(get_current_user_id),
    service: RequestService = Depends(get_request_service)
):
    """Owner confirms the tool is back, optionally with notes on its condition"""
    notes = return_data.notes if return_data else None
    return service.confirm_return(request_id, user_data["id"], notes=notes)
