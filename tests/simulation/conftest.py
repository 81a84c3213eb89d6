"""Shared fixtures: a scriptable query double and a three-asset position."""

from __future__ import annotations

import pytest

from liqsim.data.interfaces import QueueFill, SaleSimulation, SellOrder, WaterfallQueries
from liqsim.position.cdp_position import (
    CollateralAsset,
    Position,
    PositionSnapshot,
    Venue,
    from_raw_amount,
)

CDT = "ucdt"


class FakeQueries(WaterfallQueries):
    """Query double driven by plain dicts.

    ``recall`` maps venue -> amount or exception. ``queue_repay_rate`` maps
    denom -> fraction of the routed collateral matched, or an exception;
    ``queue_fills`` pins the exact response per denom instead. ``sale`` is
    the route simulation response, or an exception to raise.
    """

    def __init__(
        self,
        recall: dict | None = None,
        queue_repay_rate: dict | None = None,
        queue_fills: dict | None = None,
        sale: SaleSimulation | Exception | None = None,
        prices: dict | None = None,
        snapshot: PositionSnapshot | None = None,
    ) -> None:
        self.recall = recall or {}
        self.queue_repay_rate = queue_repay_rate or {}
        self.queue_fills = queue_fills or {}
        self.sale = sale
        self.prices = prices or {}
        self.snapshot = snapshot
        self.queue_calls: list[tuple] = []
        self.sale_calls: list[list[SellOrder]] = []

    def get_price(self, denom: str) -> float | None:
        return self.prices.get(denom)

    def read_position(self, user: str, position_id: str | None = None) -> PositionSnapshot | None:
        return self.snapshot

    def get_retrievable_amount(self, venue_address: str, user: str) -> float:
        value = self.recall.get(venue_address, 0.0)
        if isinstance(value, Exception):
            raise value
        return value

    def check_liquidatible(
        self,
        asset_denom: str,
        collateral_amount: int,
        asset_price: float,
        credit_denom: str,
        credit_price: float,
    ) -> QueueFill:
        self.queue_calls.append((asset_denom, collateral_amount, asset_price, credit_denom, credit_price))
        if asset_denom in self.queue_fills:
            return self.queue_fills[asset_denom]
        rate = self.queue_repay_rate.get(asset_denom, 0.0)
        if isinstance(rate, Exception):
            raise rate
        amount = from_raw_amount(collateral_amount)
        matched = amount * rate
        return QueueFill(
            debt_repaid=matched * asset_price / credit_price,
            leftover_collateral=amount - matched,
        )

    def simulate_market_sale(
        self, sell_list: list[SellOrder], target_denom: str
    ) -> SaleSimulation | None:
        self.sale_calls.append(list(sell_list))
        if isinstance(self.sale, Exception):
            raise self.sale
        return self.sale


def sale(output: float, input_value: float | None = None) -> SaleSimulation:
    input_value = output if input_value is None else input_value
    return SaleSimulation(
        total_input_value=input_value,
        total_output_value=output,
        slippage_cost=input_value - output,
    )


@pytest.fixture
def position() -> Position:
    """$1,000 of collateral split 50/30/20, 80% / 70% LTVs, two venues."""
    return Position(
        position_id="1",
        owner="osmo1owner",
        collateral_assets=(
            CollateralAsset("uosmo", amount=1_000.0, weight=0.5, price=0.5, symbol="OSMO"),
            CollateralAsset("uatom", amount=30.0, weight=0.3, price=10.0, symbol="ATOM"),
            CollateralAsset("ustatom", amount=16.0, weight=0.2, price=12.5, symbol="stATOM"),
        ),
        debt_amount=750.0,
        liquidation_ltv=80.0,
        borrow_ltv=70.0,
        venues=(Venue("venue-a"), Venue("venue-b")),
    )


@pytest.fixture
def snapshot(position: Position) -> PositionSnapshot:
    return PositionSnapshot(position=position, credit_price=1.0, credit_denom=CDT)


@pytest.fixture
def fake_queries() -> type[FakeQueries]:
    return FakeQueries


@pytest.fixture
def make_sale():
    return sale
