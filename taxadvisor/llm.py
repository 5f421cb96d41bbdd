import json
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from .config import GeminiConfig
from .schemas import Content, GenerateContentResponse, Tool, system_text


class GeminiError(RuntimeError):
    """Raised for any failed generateContent call (HTTP, transport or decoding)."""

    def __init__(self, message: str, status_code: Optional[int] = None, detail: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


def _extract_error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
        if isinstance(data, dict):
            return json.dumps(data, ensure_ascii=False)
    except Exception:
        pass
    try:
        return response.text
    except Exception:
        return ""


class GeminiClient:
    def __init__(self, config: GeminiConfig):
        self.config = config
        self.client = httpx.AsyncClient(
            timeout=config.timeout_s,
            limits=httpx.Limits(max_connections=32, max_keepalive_connections=16),
        )

    def is_configured(self) -> bool:
        return bool(self.config.api_key and self.config.api_key.strip())

    def _endpoint(self) -> str:
        base = self.config.base_url.rstrip("/")
        return f"{base}/v1beta/models/{self.config.model}:generateContent"

    def build_payload(
        self,
        conversation: List[Content],
        tools: List[Tool],
        system_instruction: str,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "contents": [turn.model_dump(by_alias=True, exclude_none=True) for turn in conversation],
            "systemInstruction": system_text(system_instruction).model_dump(by_alias=True, exclude_none=True),
        }
        if tools:
            payload["tools"] = [tool.model_dump(by_alias=True, exclude_none=True) for tool in tools]
            payload["toolConfig"] = {"functionCallingConfig": {"mode": "AUTO"}}
        return payload

    async def generate_content(
        self,
        conversation: List[Content],
        tools: List[Tool],
        system_instruction: str,
    ) -> GenerateContentResponse:
        payload = self.build_payload(conversation, tools, system_instruction)
        try:
            resp = await self.client.post(
                self._endpoint(),
                params={"key": self.config.api_key or ""},
                json=payload,
            )
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            detail = _extract_error_detail(exc.response)
            raise GeminiError(
                f"Gemini API error: {detail}",
                status_code=exc.response.status_code,
                detail=detail,
            ) from exc
        except httpx.RequestError as exc:
            raise GeminiError(f"Gemini request failed: {exc}") from exc
        try:
            return GenerateContentResponse.model_validate(resp.json())
        except (ValueError, ValidationError) as exc:
            raise GeminiError(f"Gemini response could not be decoded: {exc}") from exc

    async def close(self) -> None:
        if not self.client.is_closed:
            await self.client.aclose()
