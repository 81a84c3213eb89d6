"""Liquidation threshold and liquidated-amount arithmetic."""

from __future__ import annotations

from dataclasses import dataclass

from liqsim.position.cdp_position import clamp_non_negative


@dataclass(frozen=True)
class LiquidationThreshold:
    """Threshold at which the position becomes liquidatable, and the debt to recover.

    Attributes:
        threshold: Collateral value x liquidation LTV (USD).
        liquidated_amount: Debt-equivalent amount that brings the position
            from the liquidation LTV back down to the borrow LTV.
    """

    threshold: float
    liquidated_amount: float


class LiquidationThresholdCalculator:
    """Pure LTV arithmetic. LTV inputs are percentages."""

    def __init__(self, liquidation_ltv: float, borrow_ltv: float) -> None:
        self.liquidation_ltv = clamp_non_negative(liquidation_ltv, "liquidation LTV")
        self.borrow_ltv = clamp_non_negative(borrow_ltv, "borrow LTV")

    def threshold(self, collateral_value: float) -> float:
        """threshold = collateral_value * liquidation_ltv / 100

        Any zero input, borrow LTV included, yields 0.
        """
        collateral_value = clamp_non_negative(collateral_value, "collateral value")
        if collateral_value <= 0 or self.liquidation_ltv <= 0 or self.borrow_ltv <= 0:
            return 0.0
        return collateral_value * self.liquidation_ltv / 100

    def liquidated_amount(self, collateral_value: float) -> float:
        """liquidated = max(0, collateral_value * (liquidation_ltv - borrow_ltv) / 100)

        Any zero input yields 0.
        """
        collateral_value = clamp_non_negative(collateral_value, "collateral value")
        if collateral_value <= 0 or self.liquidation_ltv <= 0 or self.borrow_ltv <= 0:
            return 0.0
        ltv_gap = self.liquidation_ltv - self.borrow_ltv
        if ltv_gap <= 0:
            return 0.0
        return collateral_value * ltv_gap / 100

    def compute(self, collateral_value: float) -> LiquidationThreshold:
        return LiquidationThreshold(
            threshold=self.threshold(collateral_value),
            liquidated_amount=self.liquidated_amount(collateral_value),
        )


def progress_percentage(fulfilled: float, liquidated_amount: float) -> float:
    """Share of the liquidated amount covered by ``fulfilled``, capped at 100."""
    if liquidated_amount <= 0:
        return 0.0
    return min(100.0, fulfilled / liquidated_amount * 100)
