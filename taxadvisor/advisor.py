"""Primary strategist: a bounded tool-calling loop against the Gemini gateway.

Every run computes a local tax preview first so a deterministic answer exists
even without model access. The model must call at least one registered tool
before a text answer is accepted, and the loop never runs more than
``max_iterations`` model calls.
"""

import logging
from decimal import Decimal
from typing import List, Optional

from .agents import (
    DEFAULT_QUESTION,
    FALLBACK_ADVICE_TEMPLATE,
    FORCE_TOOL_CALL,
    STRATEGIST_SYSTEM,
    USER_IDENTITY_PREFIX,
)
from .dispatcher import ToolDispatcher, summarize_tool_result
from .llm import GeminiClient
from .portfolio import PortfolioQueryService, format_won
from .schemas import AgentResult, Content, TaxPreview, user_function_response, user_text
from .tax import TaxCalculationService
from .tools import build_tools, is_supported_tool

logger = logging.getLogger("uvicorn.error")

PREVIEW_CHARS = 140


def normalize_question(question: Optional[str]) -> str:
    if question is None or not question.strip():
        return DEFAULT_QUESTION
    return question.strip()


def abbreviate(value: Optional[str], max_length: int = PREVIEW_CHARS) -> str:
    if value is None or not value.strip():
        return "(empty)"
    normalized = value.replace("\n", " ").strip()
    if len(normalized) <= max_length:
        return normalized
    return normalized[:max_length] + "..."


def build_fallback_advice(preview: TaxPreview) -> str:
    return FALLBACK_ADVICE_TEMPLATE.format(
        realized_gain=format_won(preview.realized_gain),
        unrealized_loss=format_won(abs(preview.unrealized_loss)),
        tax_before=format_won(preview.estimated_tax_before_harvest),
        tax_after=format_won(preview.estimated_tax_after_harvest),
        tax_savings=format_won(preview.estimated_tax_savings),
    )


class TaxAdvisorAgent:
    def __init__(
        self,
        gemini: GeminiClient,
        dispatcher: ToolDispatcher,
        portfolio: PortfolioQueryService,
        tax: TaxCalculationService,
        max_iterations: int = 6,
    ):
        self.gemini = gemini
        self.dispatcher = dispatcher
        self.portfolio = portfolio
        self.tax = tax
        self.max_iterations = max_iterations

    async def advise(self, question: Optional[str], user_id: str) -> AgentResult:
        normalized = normalize_question(question)
        logger.info("Agent 1 input received: user_id=%s, question=%s", user_id, normalized)

        preview = await self.tax.calculate_preview(user_id)
        await self._log_user_baseline(user_id, preview)
        fallback_advice = build_fallback_advice(preview)

        if not self.gemini.is_configured():
            logger.warning("Gemini API key missing; answering from the local calculation.")
            return AgentResult(answer=fallback_advice, iterations=0, tax_preview=preview, fallback_used=True)

        conversation: List[Content] = [
            user_text(USER_IDENTITY_PREFIX.format(user_id=user_id) + normalized)
        ]
        return await self._run_loop(conversation, user_id, preview, fallback_advice)

    async def _run_loop(
        self,
        conversation: List[Content],
        user_id: str,
        preview: TaxPreview,
        fallback_advice: str,
    ) -> AgentResult:
        max_iterations = self.max_iterations
        tools = build_tools()
        iteration = 1
        tool_called = False

        def fallback(iterations: int) -> AgentResult:
            return AgentResult(answer=fallback_advice, iterations=iterations, tax_preview=preview, fallback_used=True)

        while True:
            if iteration > max_iterations:
                logger.warning("Max iterations (%s) exceeded; finishing with the local calculation.", max_iterations)
                return fallback(max_iterations)

            logger.info(
                "Agent 1 iteration start: iteration=%s/%s, conversation_size=%s, tool_called=%s",
                iteration,
                max_iterations,
                len(conversation),
                tool_called,
            )

            try:
                response = await self.gemini.generate_content(conversation, tools, STRATEGIST_SYSTEM)
            except Exception:
                logger.exception("Gemini call failed; returning the local calculation.")
                return fallback(iteration)

            candidate = response.first_candidate()
            model_content = candidate.content if candidate is not None else None
            if model_content is None:
                logger.warning("Gemini response had no candidate; returning the local calculation.")
                return fallback(iteration)

            conversation.append(model_content)
            function_calls = model_content.function_calls()
            model_text = model_content.joined_text()
            logger.info(
                "Agent 1 model response: iteration=%s, function_call_count=%s, text_length=%s, text_preview=%s",
                iteration,
                len(function_calls),
                len(model_text),
                abbreviate(model_text),
            )

            if not function_calls:
                if not tool_called:
                    logger.warning("Answer produced without a function call; asking again. iteration=%s", iteration)
                    conversation.append(user_text(FORCE_TOOL_CALL))
                    iteration += 1
                    continue

                fallback_used = not model_text.strip()
                answer = fallback_advice if fallback_used else model_text
                logger.info(
                    "Agent 1 final answer: iteration=%s, fallback_used=%s, answer_length=%s",
                    iteration,
                    fallback_used,
                    len(answer),
                )
                return AgentResult(
                    answer=answer,
                    iterations=iteration,
                    tax_preview=preview,
                    fallback_used=fallback_used,
                )

            for call in function_calls:
                logger.info("Gemini requested a function: name=%s, args=%s", call.name, call.args)
                result = await self.dispatcher.execute(call, user_id)
                conversation.append(user_function_response(call.name, {"data": result.payload}))
                tool_called = tool_called or is_supported_tool(call.name)
                logger.info(
                    "Agent 1 tool finished: iteration=%s, name=%s, result_summary=%s",
                    iteration,
                    call.name,
                    summarize_tool_result(call.name, result.payload),
                )
            iteration += 1

    async def _log_user_baseline(self, user_id: str, preview: TaxPreview) -> None:
        positions = await self.portfolio.find_positions(user_id)
        cost_basis = sum((p.average_price * p.quantity for p in positions), Decimal("0"))
        market_value = sum((p.current_price * p.quantity for p in positions), Decimal("0"))
        unrealized_pnl = sum((p.unrealized_gain for p in positions), Decimal("0"))
        unrealized_loss = sum((p.unrealized_gain for p in positions if p.unrealized_gain < 0), Decimal("0"))
        logger.info(
            "User baseline (user_id=%s): market_value=%s won, cost_basis=%s won, unrealized_pnl=%s won, "
            "unrealized_loss=%s won, realized_gain=%s won, expected_tax_savings=%s won",
            user_id,
            format_won(market_value),
            format_won(cost_basis),
            format_won(unrealized_pnl),
            format_won(unrealized_loss),
            format_won(preview.realized_gain),
            format_won(preview.estimated_tax_savings),
        )
