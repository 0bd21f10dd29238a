from fastapi import APIRouter, Depends, HTTPException, UploadFile, File
from borrow_buddy.database.supabase_client import get_supabase
from borrow_buddy.modules.analysis.schemas import (
    ImageAnalysisRequest, ToolAnalysis, BatchAnalysisResponse,
    ThumbnailRequest, ThumbnailResponse
)
from borrow_buddy.modules.analysis.service import AnalysisService, to_data_url
from borrow_buddy.core.dependencies import get_current_user_id
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/analysis", tags=["analysis"])


def get_analysis_service(supabase: Client = Depends(get_supabase)) -> AnalysisService:
    return AnalysisService(supabase)


@router.post("/image", response_model=ToolAnalysis)
async def analyze_image(
    analysis_request: ImageAnalysisRequest,
    user_data: Dict = Depends(get_current_user_id),
    service: AnalysisService = Depends(get_analysis_service)
):
    """Suggest name, description, category, condition, brand and power source from a photo"""
    return service.analyze_image(analysis_request.image)


@router.post("/image/upload", response_model=ToolAnalysis)
async def analyze_uploaded_image(
    file: UploadFile = File(...),
    user_data: Dict = Depends(get_current_user_id),
    service: AnalysisService = Depends(get_analysis_service)
):
    if not (file.content_type or "").startswith("image/"):
        raise HTTPException(status_code=400, detail="File must be an image")
    content = await file.read()
    return service.analyze_image(to_data_url(content, file.content_type))


@router.post("/batch", response_model=BatchAnalysisResponse)
async def batch_analyze(
    user_data: Dict = Depends(get_current_user_id),
    service: AnalysisService = Depends(get_analysis_service)
):
    """Fill in missing brand and power source on my tools that have photos"""
    return await service.batch_analyze(user_data["id"])


@router.post("/thumbnails", response_model=ThumbnailResponse)
async def generate_thumbnails(
    thumbnail_request: ThumbnailRequest,
    user_data: Dict = Depends(get_current_user_id),
    service: AnalysisService = Depends(get_analysis_service)
):
    urls = service.thumbnails(user_data["id"], thumbnail_request.image_path, thumbnail_request.bucket)
    return ThumbnailResponse(urls=urls)
