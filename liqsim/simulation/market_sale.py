"""Market sale stage: last-resort sale of remaining collateral over swap routes.

Sell sizing is ``held_amount * weight`` per asset, a proportional slice of
whatever collateral is still held. It is deliberately not derived from the
USD value of the remaining debt.
"""

from __future__ import annotations

import logging
import threading
from typing import Sequence

from liqsim.data.constants import MARKET_SALE
from liqsim.data.interfaces import SaleSimulation, SellOrder, WaterfallQueries
from liqsim.errors import SimulationSuperseded
from liqsim.position.cdp_position import CollateralAsset, clamp_non_negative, to_raw_amount
from liqsim.simulation.fanout import call_with_timeout
from liqsim.simulation.params import SimulatorConfig
from liqsim.simulation.results import SaleAssetResult, StageOutcome, StageResult

logger = logging.getLogger(__name__)

MIXED_COLLATERAL = "Mixed Collateral"


def build_sell_list(weighted_assets: Sequence[tuple[CollateralAsset, float]]) -> list[SellOrder]:
    """Sell orders for every asset with weight > 0 and a positive held amount."""
    orders = []
    for asset, weight in weighted_assets:
        if weight <= 0 or asset.amount <= 0:
            continue
        raw = to_raw_amount(asset.amount * weight, asset.decimals)
        if raw > 0:
            orders.append(SellOrder(denom=asset.denom, amount=raw))
    return orders


def _per_asset_breakdown(
    sale: SaleSimulation,
    weighted_assets: Sequence[tuple[CollateralAsset, float]],
    slippage_cost: float,
) -> tuple[SaleAssetResult, ...]:
    symbols = {asset.denom: asset.label for asset, _ in weighted_assets}
    if not sale.per_asset:
        return (
            SaleAssetResult(
                denom="multiple",
                symbol=MIXED_COLLATERAL,
                input_value=sale.total_input_value,
                output_value=sale.total_output_value,
                slippage_cost=slippage_cost,
            ),
        )
    return tuple(
        SaleAssetResult(
            denom=route.denom,
            symbol=symbols.get(route.denom, route.denom),
            input_value=route.input_value,
            output_value=route.output_value,
            slippage_cost=clamp_non_negative(
                route.input_value - route.output_value, f"slippage for {route.denom}"
            ),
            routes=route.hops,
        )
        for route in sale.per_asset
    )


def run_market_sale(
    remaining_debt: float,
    weighted_assets: Sequence[tuple[CollateralAsset, float]],
    credit_denom: str,
    queries: WaterfallQueries,
    config: SimulatorConfig | None = None,
    cancel: threading.Event | None = None,
) -> StageResult:
    """Simulate selling remaining collateral into the credit asset.

    Any failure of the route simulation (no route, timeout, empty response)
    yields ``NO_DATA``; it is never reported as a zero-output sale.

    Args:
        remaining_debt: Debt left after the liquidation queue.
        weighted_assets: (asset, weight) pairs with weight > 0.
        credit_denom: Target denom of the sale.
        queries: Query capabilities.
        config: Timeout.
        cancel: Abandons the pending route simulation when set.

    Returns:
        StageResult where ``fulfilled`` is the sale's output value and
        ``cost`` its slippage.
    """
    config = config or SimulatorConfig()
    sell_list = build_sell_list(weighted_assets)

    if remaining_debt <= 0 or not sell_list:
        logger.debug(
            "Market sale skipped (remaining=%s, sell orders=%d)", remaining_debt, len(sell_list)
        )
        return StageResult(
            name=MARKET_SALE,
            outcome=StageOutcome.COMPUTED_ZERO,
            fulfilled=0.0,
            cost=0.0,
            remaining_before=max(0.0, remaining_debt),
            remaining_after=max(0.0, remaining_debt),
        )

    try:
        sale = call_with_timeout(
            lambda: queries.simulate_market_sale(sell_list, credit_denom),
            timeout=config.query_timeout,
            cancel=cancel,
        )
    except SimulationSuperseded:
        raise
    except Exception as exc:
        logger.warning("Market sale simulation failed: %r", exc, exc_info=True)
        sale = None

    if sale is None:
        return StageResult(
            name=MARKET_SALE,
            outcome=StageOutcome.NO_DATA,
            fulfilled=0.0,
            cost=0.0,
            failed_items=tuple(order.denom for order in sell_list),
            remaining_before=remaining_debt,
            remaining_after=remaining_debt,
        )

    input_value = clamp_non_negative(sale.total_input_value, "sale input value")
    output_value = clamp_non_negative(sale.total_output_value, "sale output value")
    slippage_cost = clamp_non_negative(input_value - output_value, "sale slippage")
    if abs(slippage_cost - sale.slippage_cost) > 1e-9:
        logger.debug(
            "Reported slippage %s differs from input - output %s", sale.slippage_cost, slippage_cost
        )

    computed = output_value > 0 or slippage_cost > 0
    return StageResult(
        name=MARKET_SALE,
        outcome=StageOutcome.COMPUTED if computed else StageOutcome.COMPUTED_ZERO,
        fulfilled=output_value,
        cost=slippage_cost,
        items=_per_asset_breakdown(sale, weighted_assets, slippage_cost),
        remaining_before=remaining_debt,
        remaining_after=max(0.0, remaining_debt - output_value),
    )
