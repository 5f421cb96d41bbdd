"""Demo tax model: a flat 22% on the positive taxable base, before and after loss harvesting."""

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

from .portfolio import PortfolioQueryService
from .schemas import TaxPreview

TAX_RATE = Decimal("0.22")

Number = Union[Decimal, int, str]


def _won(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _floor_to_zero(value: Decimal) -> Decimal:
    return value if value > 0 else Decimal("0")


def calculate_preview(realized_gain: Number, unrealized_loss: Number, tax_rate: Number = TAX_RATE) -> TaxPreview:
    realized = Decimal(realized_gain)
    loss = Decimal(unrealized_loss)
    rate = Decimal(tax_rate)
    tax_before = _won(_floor_to_zero(realized) * rate)
    tax_after = _won(_floor_to_zero(realized + loss) * rate)
    return TaxPreview(
        realized_gain=_won(realized),
        unrealized_loss=_won(loss),
        estimated_tax_before_harvest=tax_before,
        estimated_tax_after_harvest=tax_after,
        estimated_tax_savings=max(tax_before - tax_after, 0),
    )


class TaxCalculationService:
    def __init__(self, portfolio: PortfolioQueryService):
        self.portfolio = portfolio

    async def calculate_preview(self, user_id: str) -> TaxPreview:
        gains = await self.portfolio.find_realized_gains(user_id)
        positions = await self.portfolio.find_positions(user_id)
        total_realized = sum((gain.gain_amount for gain in gains), Decimal("0"))
        total_unrealized_loss = sum(
            (p.unrealized_gain for p in positions if p.unrealized_gain < 0),
            Decimal("0"),
        )
        return calculate_preview(total_realized, total_unrealized_loss)
