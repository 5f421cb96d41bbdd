from typing import Any, Dict, Optional

import httpx

from .config import ImageModelConfig

IMAGE_MODALITY = ["IMAGE"]
DEFAULT_MIME_TYPE = "image/png"


class ImageGenerationError(RuntimeError):
    pass


def _to_data_uri(inline_data: Any) -> Optional[str]:
    if not isinstance(inline_data, dict):
        return None
    data = inline_data.get("data")
    if not isinstance(data, str) or not data.strip():
        return None
    mime_type = inline_data.get("mimeType") or inline_data.get("mime_type")
    if not isinstance(mime_type, str) or not mime_type.strip():
        mime_type = DEFAULT_MIME_TYPE
    return f"data:{mime_type};base64,{data}"


def extract_image_data_uri(response: Dict[str, Any]) -> str:
    """Return the first non-blank inline image across all candidates, or ""."""
    for candidate in response.get("candidates") or []:
        if not isinstance(candidate, dict):
            continue
        content = candidate.get("content") or {}
        for part in content.get("parts") or []:
            if not isinstance(part, dict):
                continue
            uri = _to_data_uri(part.get("inlineData") or part.get("inline_data"))
            if uri:
                return uri
    return ""


class ImageClient:
    def __init__(self, config: ImageModelConfig):
        self.config = config
        self.client = httpx.AsyncClient(timeout=config.timeout_s)

    def is_configured(self) -> bool:
        return bool(self.config.api_key and self.config.api_key.strip())

    async def generate_image_base64(self, prompt: str) -> str:
        if not self.is_configured():
            return ""
        base = self.config.base_url.rstrip("/")
        url = f"{base}/v1beta/models/{self.config.model}:generateContent"
        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"responseModalities": IMAGE_MODALITY},
        }
        try:
            resp = await self.client.post(url, params={"key": self.config.api_key}, json=payload)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as exc:
            raise ImageGenerationError(f"Nano Banana API error: {exc.response.text}") from exc
        except httpx.RequestError as exc:
            raise ImageGenerationError(f"Nano Banana request failed: {exc}") from exc
        except ValueError as exc:
            raise ImageGenerationError(f"Nano Banana response could not be decoded: {exc}") from exc
        if not isinstance(data, dict):
            return ""
        return extract_image_data_uri(data)

    async def close(self) -> None:
        if not self.client.is_closed:
            await self.client.aclose()
