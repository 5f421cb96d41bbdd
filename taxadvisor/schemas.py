from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel


Market = Literal["KR", "US"]

# Gemini speaks camelCase on the wire; models accept either spelling and keep
# unknown vendor fields so model turns can be replayed verbatim.
WIRE_CONFIG = {
    "alias_generator": to_camel,
    "populate_by_name": True,
    "extra": "allow",
}


class FunctionCall(BaseModel):
    name: str
    args: Optional[Dict[str, Any]] = Field(default_factory=dict)

    model_config = WIRE_CONFIG

    @field_validator("args", mode="before")
    @classmethod
    def _null_args_to_empty(cls, value: Any) -> Any:
        return {} if value is None else value


class FunctionResponse(BaseModel):
    name: str
    response: Dict[str, Any] = Field(default_factory=dict)

    model_config = WIRE_CONFIG


class Part(BaseModel):
    text: Optional[str] = None
    function_call: Optional[FunctionCall] = None
    function_response: Optional[FunctionResponse] = None
    thought_signature: Optional[str] = None

    model_config = WIRE_CONFIG


class Content(BaseModel):
    role: Optional[str] = None
    parts: List[Part] = Field(default_factory=list)

    model_config = WIRE_CONFIG

    def function_calls(self) -> List[FunctionCall]:
        return [part.function_call for part in self.parts if part.function_call is not None]

    def joined_text(self) -> str:
        texts = [part.text for part in self.parts if part.text is not None]
        joined = ""
        for text in texts:
            joined = joined + ("" if not joined.strip() else "\n") + text
        return joined.strip()


class FunctionDeclaration(BaseModel):
    name: str
    description: str
    parameters: Dict[str, Any]

    model_config = WIRE_CONFIG


class Tool(BaseModel):
    function_declarations: List[FunctionDeclaration] = Field(default_factory=list)

    model_config = WIRE_CONFIG


class Candidate(BaseModel):
    content: Optional[Content] = None

    model_config = {"alias_generator": to_camel, "populate_by_name": True, "extra": "ignore"}


class GenerateContentResponse(BaseModel):
    candidates: List[Candidate] = Field(default_factory=list)

    model_config = {"alias_generator": to_camel, "populate_by_name": True, "extra": "ignore"}

    def first_candidate(self) -> Optional[Candidate]:
        return self.candidates[0] if self.candidates else None


def user_text(text: str) -> Content:
    return Content(role="user", parts=[Part(text=text)])


def system_text(text: str) -> Content:
    return Content(parts=[Part(text=text)])


def user_function_response(name: str, payload: Dict[str, Any]) -> Content:
    return Content(
        role="user",
        parts=[Part(function_response=FunctionResponse(name=name, response=payload))],
    )


class Position(BaseModel):
    user_id: str = "me"
    market: Market
    stock_name: str
    average_price: Decimal
    current_price: Decimal
    quantity: int

    @property
    def unrealized_gain(self) -> Decimal:
        return (self.current_price - self.average_price) * self.quantity

    @property
    def unrealized_rate_percent(self) -> Decimal:
        if not self.average_price:
            return Decimal("0")
        ratio = ((self.current_price - self.average_price) / self.average_price).quantize(
            Decimal("0.0001"), rounding=ROUND_HALF_UP
        )
        return ratio * 100


class RealizedGain(BaseModel):
    user_id: str = "me"
    stock_name: str
    gain_amount: Decimal
    realized_date: date


class TaxPreview(BaseModel):
    realized_gain: int
    unrealized_loss: int
    estimated_tax_before_harvest: int
    estimated_tax_after_harvest: int
    estimated_tax_savings: int

    model_config = {"frozen": True}


class ToolResult(BaseModel):
    name: str
    payload: Dict[str, Any]
    ok: bool = True


class AgentResult(BaseModel):
    answer: str
    iterations: int
    tax_preview: TaxPreview
    fallback_used: bool


class PipelineResult(BaseModel):
    primary_result: AgentResult
    audit_review: str
    base64_image: str = ""


class AdviceRequest(BaseModel):
    question: Optional[str] = None


class AdviceResponse(BaseModel):
    user_id: str
    question: Optional[str] = None
    primary_strategy: str
    audit_review: str
    base64_image: str
    iterations: int
    fallback_used: bool
    tax_preview: TaxPreview

    @classmethod
    def from_pipeline(cls, user_id: str, question: Optional[str], result: PipelineResult) -> "AdviceResponse":
        primary = result.primary_result
        return cls(
            user_id=user_id,
            question=question,
            primary_strategy=primary.answer,
            audit_review=result.audit_review,
            base64_image=result.base64_image,
            iterations=primary.iterations,
            fallback_used=primary.fallback_used,
            tax_preview=primary.tax_preview,
        )
