import logging
import time
from typing import Optional

from .advisor import TaxAdvisorAgent
from .audit import TaxAuditAgent
from .illustration import TaxGraphicAgent
from .schemas import PipelineResult

logger = logging.getLogger("uvicorn.error")


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


class AdvicePipeline:
    """Runs strategist -> auditor -> designer; each stage carries its own fallback."""

    def __init__(self, advisor: TaxAdvisorAgent, auditor: TaxAuditAgent, designer: TaxGraphicAgent):
        self.advisor = advisor
        self.auditor = auditor
        self.designer = designer

    async def run_pipeline(self, question: Optional[str], user_id: str) -> PipelineResult:
        logger.info("Advice pipeline start: Agent 1 -> Agent 2 -> Agent 3 (user_id=%s)", user_id)
        pipeline_started = time.perf_counter()

        logger.info("Pipeline stage 1: Agent 1 strategy")
        started = time.perf_counter()
        primary = await self.advisor.advise(question, user_id)
        logger.info(
            "Pipeline stage 1 done: answer_length=%s, iterations=%s, fallback_used=%s, elapsed_ms=%s",
            len(primary.answer),
            primary.iterations,
            primary.fallback_used,
            _elapsed_ms(started),
        )

        logger.info("Pipeline stage 2: Agent 2 risk audit")
        started = time.perf_counter()
        audit_review = await self.auditor.audit(question, primary.answer)
        logger.info(
            "Pipeline stage 2 done: audit_length=%s, elapsed_ms=%s",
            len(audit_review),
            _elapsed_ms(started),
        )

        logger.info("Pipeline stage 3: Agent 3 infographic")
        started = time.perf_counter()
        image = await self.designer.create_infographic(question, primary.answer, audit_review)
        logger.info(
            "Pipeline stage 3 done: image_generated=%s, elapsed_ms=%s",
            bool(image.strip()),
            _elapsed_ms(started),
        )

        logger.info("Advice pipeline finished: total_elapsed_ms=%s", _elapsed_ms(pipeline_started))
        return PipelineResult(primary_result=primary, audit_review=audit_review, base64_image=image or "")
