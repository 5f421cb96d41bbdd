import asyncio
from typing import Any, Dict, List, Optional, Union

from taxadvisor.schemas import (
    Content,
    FunctionCall,
    GenerateContentResponse,
    Part,
    Position,
    RealizedGain,
    Tool,
)


def text_response(text: str) -> GenerateContentResponse:
    return GenerateContentResponse.model_validate(
        {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}
    )


def call_response(*names: str, user_id: Optional[str] = "me") -> GenerateContentResponse:
    args = {"userId": user_id} if user_id is not None else {}
    content = Content(
        role="model",
        parts=[Part(function_call=FunctionCall(name=name, args=dict(args))) for name in names],
    )
    return GenerateContentResponse(candidates=[{"content": content}])


def empty_response() -> GenerateContentResponse:
    return GenerateContentResponse(candidates=[])


Scripted = Union[GenerateContentResponse, Exception]


class FakeGeminiClient:
    """Replays scripted responses in order; an Exception entry is raised instead."""

    def __init__(self, responses: Optional[List[Scripted]] = None, configured: bool = True) -> None:
        self.responses = list(responses or [])
        self.configured = configured
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def is_configured(self) -> bool:
        return self.configured

    async def generate_content(
        self,
        conversation: List[Content],
        tools: List[Tool],
        system_instruction: str,
    ) -> GenerateContentResponse:
        self.calls.append(
            {
                "conversation": [turn.model_copy(deep=True) for turn in conversation],
                "tools": list(tools),
                "system": system_instruction,
            }
        )
        if not self.responses:
            raise AssertionError("FakeGeminiClient ran out of scripted responses")
        nxt = self.responses.pop(0)
        if isinstance(nxt, Exception):
            raise nxt
        return nxt

    async def close(self) -> None:
        self.closed = True


class FakeImageClient:
    def __init__(
        self,
        image: str = "",
        configured: bool = True,
        delay_seconds: float = 0.0,
        error: Optional[Exception] = None,
    ) -> None:
        self.image = image
        self.configured = configured
        self.delay_seconds = delay_seconds
        self.error = error
        self.prompts: List[str] = []
        self.closed = False

    def is_configured(self) -> bool:
        return self.configured

    async def generate_image_base64(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        if self.error is not None:
            raise self.error
        return self.image

    async def close(self) -> None:
        self.closed = True


class FakePortfolioStore:
    def __init__(
        self,
        positions: Optional[List[Position]] = None,
        gains: Optional[List[RealizedGain]] = None,
        error: Optional[Exception] = None,
    ) -> None:
        self.positions = list(positions or [])
        self.gains = list(gains or [])
        self.error = error
        self.portfolio_lookups: List[str] = []
        self.gain_lookups: List[str] = []

    async def find_portfolio(self, user_id: str) -> List[Position]:
        self.portfolio_lookups.append(user_id)
        if self.error is not None:
            raise self.error
        return [p for p in self.positions if p.user_id == user_id]

    async def find_realized_gains(self, user_id: str) -> List[RealizedGain]:
        self.gain_lookups.append(user_id)
        if self.error is not None:
            raise self.error
        return [g for g in self.gains if g.user_id == user_id]


def position(market: str, name: str, avg: str, cur: str, qty: int, user_id: str = "me") -> Position:
    return Position(
        user_id=user_id,
        market=market,
        stock_name=name,
        average_price=avg,
        current_price=cur,
        quantity=qty,
    )


def gain(name: str, amount: str, realized: str = "2026-03-14", user_id: str = "me") -> RealizedGain:
    return RealizedGain(user_id=user_id, stock_name=name, gain_amount=amount, realized_date=realized)
