"""Read-only portfolio and ledger queries shaped for tool payloads."""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Protocol, Union

from .schemas import Position, RealizedGain

logger = logging.getLogger("uvicorn.error")


class PortfolioStore(Protocol):
    async def find_portfolio(self, user_id: str) -> List[Position]: ...

    async def find_realized_gains(self, user_id: str) -> List[RealizedGain]: ...


def format_won(value: Union[Decimal, int, float]) -> str:
    return f"{Decimal(value).quantize(Decimal('1')):,}"


def json_number(value: Decimal) -> Union[int, float]:
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def position_view(position: Position) -> Dict[str, Any]:
    return {
        "market": position.market,
        "stockName": position.stock_name,
        "averagePrice": json_number(position.average_price),
        "currentPrice": json_number(position.current_price),
        "quantity": position.quantity,
        "unrealizedGain": json_number(position.unrealized_gain),
        "unrealizedRatePercent": json_number(position.unrealized_rate_percent),
    }


class PortfolioQueryService:
    def __init__(self, store: PortfolioStore):
        self.store = store

    async def find_positions(self, user_id: str) -> List[Position]:
        return await self.store.find_portfolio(user_id)

    async def find_realized_gains(self, user_id: str) -> List[RealizedGain]:
        return await self.store.find_realized_gains(user_id)

    async def get_user_portfolio(self, user_id: str) -> List[Position]:
        logger.info("Model requested the user portfolio: user_id=%s", user_id)
        positions = await self.find_positions(user_id)
        gainers = [p for p in positions if p.unrealized_gain > 0]
        if gainers:
            top = max(gainers, key=lambda p: p.unrealized_gain)
            logger.info(
                "Detected unrealized gain of %s won (stock=%s)",
                format_won(top.unrealized_gain),
                top.stock_name,
            )
        return positions

    async def get_realized_gains(self, user_id: str) -> Dict[str, Any]:
        logger.info("Model requested realized gains: user_id=%s", user_id)
        gains = await self.find_realized_gains(user_id)
        total = sum((gain.gain_amount for gain in gains), Decimal("0"))
        logger.info("Realized gain total loaded: %s won", format_won(total))
        return {
            "totalRealizedGain": json_number(total),
            "items": [
                {
                    "stockName": gain.stock_name,
                    "gainAmount": json_number(gain.gain_amount),
                    "realizedDate": gain.realized_date.isoformat(),
                }
                for gain in gains
            ],
        }
