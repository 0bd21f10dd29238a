from supabase import Client
from borrow_buddy.config import settings
from borrow_buddy.modules.analysis.gateway_client import AIGatewayClient
from borrow_buddy.modules.analysis.models import NOT_DETECTED
from borrow_buddy.modules.analysis.schemas import (
    ToolAnalysis, BatchAnalysisItem, BatchAnalysisResponse
)
from borrow_buddy.modules.analysis.thumbnails import generate_thumbnails
from borrow_buddy.modules.tools.models import TOOLS_TABLE
from typing import Callable, Dict, List, Optional, Any
from fastapi import HTTPException
from datetime import datetime
import asyncio
import base64
import logging

logger = logging.getLogger(__name__)


def to_data_url(content: bytes, content_type: Optional[str]) -> str:
    encoded = base64.b64encode(content).decode()
    return f"data:{content_type or 'image/jpeg'};base64,{encoded}"


class AnalysisService:
    def __init__(self, supabase: Client, client_factory: Optional[Callable[[], AIGatewayClient]] = None):
        self.supabase = supabase
        self.client_factory = client_factory or AIGatewayClient

    def analyze_image(self, image: str) -> ToolAnalysis:
        """Identify a tool from a photo given as a data: URL or a public URL"""
        if not image or not image.strip():
            raise HTTPException(status_code=400, detail="No image provided")
        logger.info("Analyzing tool image")
        return self.client_factory().analyze(image.strip())

    def _tools_needing_analysis(self, user_id: str) -> List[Dict[str, Any]]:
        try:
            result = self.supabase.table(TOOLS_TABLE)\
                .select("id, name, image_url, brand, power_source, owner_id")\
                .eq("owner_id", user_id)\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to fetch tools: {e}")
        return [
            t for t in result.data or []
            if t.get("image_url") and (not t.get("brand") or not t.get("power_source"))
        ]

    async def batch_analyze(self, user_id: str) -> BatchAnalysisResponse:
        """Fill in missing brand and power source of the user's photographed tools"""
        tools = self._tools_needing_analysis(user_id)
        if not tools:
            return BatchAnalysisResponse(message="No tools found that need analysis")

        client = self.client_factory()
        logger.info(f"Batch analysis of {len(tools)} tool(s) for {user_id}")
        details = []
        updated = 0
        failed = 0
        for index, tool in enumerate(tools):
            if index and settings.batch_analysis_delay_sec:
                await asyncio.sleep(settings.batch_analysis_delay_sec)
            try:
                analysis = await asyncio.to_thread(client.analyze, tool["image_url"])
                changes = {}
                if analysis.brand and not tool.get("brand"):
                    changes["brand"] = analysis.brand
                if analysis.power_source and not tool.get("power_source"):
                    changes["power_source"] = analysis.power_source

                if not changes:
                    details.append(BatchAnalysisItem(
                        tool_id=tool["id"],
                        tool_name=tool["name"],
                        success=True,
                        brand=tool.get("brand") or NOT_DETECTED,
                        power_source=tool.get("power_source") or NOT_DETECTED
                    ))
                    continue

                changes["updated_at"] = datetime.utcnow().isoformat()
                self.supabase.table(TOOLS_TABLE)\
                    .update(changes)\
                    .eq("id", tool["id"])\
                    .execute()
                updated += 1
                details.append(BatchAnalysisItem(
                    tool_id=tool["id"],
                    tool_name=tool["name"],
                    success=True,
                    brand=changes.get("brand"),
                    power_source=changes.get("power_source")
                ))
            except HTTPException as e:
                failed += 1
                details.append(BatchAnalysisItem(
                    tool_id=tool["id"], tool_name=tool["name"], success=False, error=str(e.detail)
                ))
            except Exception as e:
                logger.error(f"Batch analysis of tool {tool['id']} failed: {e}")
                failed += 1
                details.append(BatchAnalysisItem(
                    tool_id=tool["id"], tool_name=tool["name"], success=False, error=str(e)
                ))

        logger.info(f"Batch analysis done: {len(tools)} processed, {updated} updated, {failed} failed")
        return BatchAnalysisResponse(
            message="Batch analysis completed",
            processed=len(tools),
            updated=updated,
            failed=failed,
            details=details
        )

    def thumbnails(self, user_id: str, image_path: str, bucket: Optional[str] = None) -> Dict[str, str]:
        """Resized copies of one of the caller's uploaded tool photos"""
        bucket = bucket or settings.tool_images_bucket
        if bucket != settings.tool_images_bucket:
            raise HTTPException(status_code=400, detail="Unknown image bucket")
        image_path = image_path.strip("/")
        if not image_path.startswith(f"{user_id}/"):
            raise HTTPException(status_code=403, detail="You can only process your own images")
        return generate_thumbnails(self.supabase, image_path, bucket)
