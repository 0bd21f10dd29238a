"""
AI gateway client
Sends tool photos to an OpenAI-compatible chat completions endpoint and
forces the analyze_tool function call
"""
import httpx
import json
import logging
from typing import Optional, Dict, Any
from fastapi import HTTPException
from pydantic import ValidationError
from borrow_buddy.config import settings
from borrow_buddy.modules.analysis.models import (
    ANALYZE_TOOL_FUNCTION, ANALYZE_FUNCTION_NAME, ANALYSIS_PROMPT
)
from borrow_buddy.modules.analysis.schemas import ToolAnalysis

logger = logging.getLogger(__name__)


class AIGatewayClient:
    """Client for the hosted multimodal model"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None
    ):
        self.api_key = api_key or settings.ai_gateway_api_key
        self.url = url or settings.ai_gateway_url
        self.model = model or settings.ai_analysis_model
        self.timeout = timeout or settings.ai_request_timeout
        self.transport = transport

        if not self.api_key:
            raise HTTPException(status_code=503, detail="AI analysis is not configured")

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }

    def _payload(self, image_url: str) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": ANALYSIS_PROMPT},
                        {"type": "image_url", "image_url": {"url": image_url}}
                    ]
                }
            ],
            "tools": [ANALYZE_TOOL_FUNCTION],
            "tool_choice": {"type": "function", "function": {"name": ANALYZE_FUNCTION_NAME}}
        }

    def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(self.url, headers=self._headers(), json=payload)
        except httpx.HTTPError as e:
            logger.error(f"AI gateway unreachable: {e}")
            raise HTTPException(status_code=502, detail="AI analysis failed")

        if response.status_code == 429:
            raise HTTPException(status_code=429, detail="Rate limits exceeded. Please try again later.")
        if response.status_code == 402:
            raise HTTPException(status_code=402, detail="Payment required. Please add credits to the AI workspace.")
        if response.is_error:
            logger.error(f"AI gateway error {response.status_code}: {response.text[:500]}")
            raise HTTPException(status_code=502, detail="AI analysis failed")
        try:
            return response.json()
        except ValueError:
            raise HTTPException(status_code=502, detail="AI gateway returned invalid JSON")

    def analyze(self, image_url: str) -> ToolAnalysis:
        """Identify the tool in a photo given as a data: URL or a public URL"""
        data = self._post(self._payload(image_url))
        try:
            tool_call = data["choices"][0]["message"]["tool_calls"][0]
            arguments = tool_call["function"]["arguments"]
        except (KeyError, IndexError, TypeError):
            logger.error(f"AI response without tool call: {json.dumps(data)[:500]}")
            raise HTTPException(status_code=502, detail="No tool analysis data received")

        try:
            if isinstance(arguments, str):
                arguments = json.loads(arguments)
            return ToolAnalysis(**arguments)
        except (ValueError, TypeError, ValidationError) as e:
            logger.error(f"Unusable analysis arguments: {e}")
            raise HTTPException(status_code=502, detail="AI returned an unusable analysis")
