import asyncio
import logging
from typing import Optional

from .agents import INFOGRAPHIC_PROMPT_TEMPLATE
from .imagegen import ImageClient

logger = logging.getLogger("uvicorn.error")

DEFAULT_TIMEOUT_S = 70.0
SUMMARY_MAX_CHARS = 600


def _normalize(value: Optional[str]) -> str:
    if value is None or value == "":
        return "(empty)"
    return value.strip()


def summarize(text: Optional[str], max_chars: int = SUMMARY_MAX_CHARS) -> str:
    if text is None:
        return "(none)"
    if len(text) > max_chars:
        return text[:max_chars] + "..."
    return text


def build_infographic_prompt(question: Optional[str], primary: Optional[str], audit: Optional[str]) -> str:
    return INFOGRAPHIC_PROMPT_TEMPLATE.format(
        question=summarize(_normalize(question)),
        primary=summarize(_normalize(primary)),
        audit=summarize(_normalize(audit)),
    )


class TaxGraphicAgent:
    """Best-effort infographic renderer; every failure yields ""."""

    def __init__(self, images: ImageClient, timeout_s: float = DEFAULT_TIMEOUT_S):
        self.images = images
        self.timeout_s = timeout_s

    async def create_infographic(
        self,
        question: Optional[str],
        primary_answer: Optional[str],
        audit_review: Optional[str],
    ) -> str:
        logger.info("Agent 3 (Designer): requesting infographic image...")

        if not self.images.is_configured():
            logger.warning("Agent 3 (Designer): Nano Banana API key missing; skipping image generation.")
            return ""

        prompt = build_infographic_prompt(question, primary_answer, audit_review)
        try:
            image = await asyncio.wait_for(self.images.generate_image_base64(prompt), timeout=self.timeout_s)
        except asyncio.TimeoutError:
            logger.error("Agent 3 (Designer): image generation timed out after %ss.", self.timeout_s)
            return ""
        except Exception:
            logger.exception("Agent 3 (Designer): image generation failed.")
            return ""

        if not image or not image.strip():
            logger.warning("Agent 3 (Designer): image data was empty.")
            return ""
        logger.info("Agent 3: infographic rendered")
        return image
