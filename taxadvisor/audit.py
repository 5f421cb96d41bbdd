import logging
from typing import Optional

from .agents import AUDIT_EMPTY_INPUT, AUDIT_FALLBACK, AUDIT_INPUT_TEMPLATE, AUDITOR_SYSTEM
from .llm import GeminiClient
from .schemas import user_text

logger = logging.getLogger("uvicorn.error")


def _normalize(value: Optional[str]) -> str:
    return AUDIT_EMPTY_INPUT if value is None or not value.strip() else value.strip()


class TaxAuditAgent:
    """Single-turn reviewer of the primary strategy. Never raises."""

    def __init__(self, gemini: GeminiClient):
        self.gemini = gemini

    async def audit(self, question: Optional[str], primary_answer: Optional[str]) -> str:
        logger.info("Agent 2 (Auditor): reviewing the primary strategy for risks...")

        if not self.gemini.is_configured():
            logger.warning("Agent 2 (Auditor): Gemini API key missing; returning the default risk review.")
            return AUDIT_FALLBACK

        audit_input = AUDIT_INPUT_TEMPLATE.format(
            question=_normalize(question),
            primary_answer=_normalize(primary_answer),
        )
        try:
            response = await self.gemini.generate_content([user_text(audit_input)], [], AUDITOR_SYSTEM)
        except Exception:
            logger.exception("Agent 2 (Auditor): review failed; returning the default risk review.")
            return AUDIT_FALLBACK

        candidate = response.first_candidate()
        text = candidate.content.joined_text() if candidate is not None and candidate.content is not None else ""
        if not text.strip():
            logger.warning("Agent 2 (Auditor): empty review; returning the default risk review.")
            return AUDIT_FALLBACK
        logger.info("Agent 2: review complete")
        return text
