import logging
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

from .portfolio import PortfolioQueryService, json_number, position_view
from .schemas import FunctionCall, Position, ToolResult
from .tools import GET_REALIZED_GAINS, GET_USER_PORTFOLIO, is_supported_tool

logger = logging.getLogger("uvicorn.error")


def resolve_user_id(args: Optional[Mapping[str, Any]], default_user_id: str) -> str:
    """Use args["userId"] when it is a non-blank string, else the default identity."""
    raw = (args or {}).get("userId")
    if isinstance(raw, str) and raw.strip():
        return raw.strip()
    return default_user_id


def group_by_market(positions: List[Position]) -> Dict[str, List[Position]]:
    grouped: Dict[str, List[Position]] = {}
    for position in positions:
        grouped.setdefault(position.market, []).append(position)
    return grouped


def market_summary(grouped: Dict[str, List[Position]]) -> Dict[str, Dict[str, Any]]:
    return {
        market: {
            "positionCount": len(items),
            "totalUnrealizedGain": json_number(sum((p.unrealized_gain for p in items), Decimal("0"))),
        }
        for market, items in grouped.items()
    }


def summarize_tool_result(name: str, payload: Any) -> str:
    if not isinstance(payload, dict):
        return "non-map-result"
    if name == GET_USER_PORTFOLIO:
        portfolio = payload.get("portfolio")
        if isinstance(portfolio, list):
            return f"portfolioCount={len(portfolio)}"
        return "portfolioCount=unknown"
    if name == GET_REALIZED_GAINS:
        items = payload.get("items")
        item_count = len(items) if isinstance(items, list) else -1
        return f"totalRealizedGain={payload.get('totalRealizedGain')}, itemCount={item_count}"
    return f"keys={list(payload.keys())}"


class ToolDispatcher:
    def __init__(self, portfolio: PortfolioQueryService):
        self.portfolio = portfolio

    async def execute(self, invocation: FunctionCall, default_user_id: str) -> ToolResult:
        """Run one model tool call; `default_user_id` is the run's identity when args carry none."""
        name = invocation.name
        user_id = resolve_user_id(invocation.args, default_user_id)
        if not is_supported_tool(name):
            logger.warning("Model called an undefined function: name=%s", name)
            return ToolResult(name=name, payload={"error": f"Unknown function: {name}"}, ok=False)
        try:
            if name == GET_USER_PORTFOLIO:
                payload = await self._user_portfolio(user_id)
            else:
                payload = await self._realized_gains(user_id)
        except Exception:
            logger.exception("Tool execution failed: name=%s, user_id=%s", name, user_id)
            return ToolResult(name=name, payload={"error": f"Tool execution failed: {name}"}, ok=False)
        return ToolResult(name=name, payload=payload, ok=True)

    async def _user_portfolio(self, user_id: str) -> Dict[str, Any]:
        positions = await self.portfolio.get_user_portfolio(user_id)
        grouped = group_by_market(positions)
        return {
            "userId": user_id,
            "portfolio": [position_view(p) for p in positions],
            "portfolioByMarket": {
                market: [position_view(p) for p in items] for market, items in grouped.items()
            },
            "marketSummary": market_summary(grouped),
        }

    async def _realized_gains(self, user_id: str) -> Dict[str, Any]:
        view = await self.portfolio.get_realized_gains(user_id)
        return {
            "userId": user_id,
            "totalRealizedGain": view["totalRealizedGain"],
            "items": view["items"],
        }
