from pydantic import BaseModel, Field
from typing import Optional, List, Dict


class ImageAnalysisRequest(BaseModel):
    image: str = Field(min_length=1, description="data: URL or public URL of the photo")


class ToolAnalysis(BaseModel):
    tool_name: str
    description: str
    category: str
    condition: str
    confidence: float
    brand: Optional[str] = None
    power_source: Optional[str] = None


class BatchAnalysisItem(BaseModel):
    tool_id: str
    tool_name: str
    success: bool
    brand: Optional[str] = None
    power_source: Optional[str] = None
    error: Optional[str] = None


class BatchAnalysisResponse(BaseModel):
    message: str
    processed: int = 0
    updated: int = 0
    failed: int = 0
    details: List[BatchAnalysisItem] = []


class ThumbnailRequest(BaseModel):
    image_path: str = Field(min_length=1)
    bucket: Optional[str] = None


class ThumbnailResponse(BaseModel):
    urls: Dict[str, str]
