"""Liquidation queue stage: match collateral against standing discounted bids.

The remaining debt is split across collateral assets by weight. Each asset's
share is converted to the collateral amount that covers it at oracle prices:

    debt_share          = remaining_debt * weight
    required_collateral = debt_share * credit_price / asset_price

and dry-run against the queue. Collateral the queue cannot match is counted
as the stage's cost at the asset's price.
"""

from __future__ import annotations

import logging
import threading
from typing import Sequence

from liqsim.data.constants import LIQUIDATION_QUEUE
from liqsim.data.interfaces import QueueFill, WaterfallQueries
from liqsim.position.cdp_position import CollateralAsset, clamp_non_negative, to_raw_amount
from liqsim.simulation.fanout import fan_out, log_failures
from liqsim.simulation.params import SimulatorConfig
from liqsim.simulation.results import QueueAssetResult, StageOutcome, StageResult

logger = logging.getLogger(__name__)


def split_debt(
    remaining_debt: float, weighted_assets: Sequence[tuple[CollateralAsset, float]]
) -> list[float]:
    """Debt share per asset; sums to ``remaining_debt`` when weights sum to 1."""
    return [remaining_debt * weight for _, weight in weighted_assets]


def required_collateral(debt_share: float, credit_price: float, asset_price: float) -> float:
    """Collateral (human units) whose oracle value covers ``debt_share`` of credit."""
    return debt_share * credit_price / asset_price


def _no_data(remaining_debt: float, failed: Sequence[str] = ()) -> StageResult:
    return StageResult(
        name=LIQUIDATION_QUEUE,
        outcome=StageOutcome.NO_DATA,
        fulfilled=0.0,
        cost=0.0,
        failed_items=tuple(failed),
        remaining_before=remaining_debt,
        remaining_after=remaining_debt,
    )


def run_liquidation_queue(
    remaining_debt: float,
    weighted_assets: Sequence[tuple[CollateralAsset, float]],
    credit_denom: str,
    credit_price: float | None,
    queries: WaterfallQueries,
    config: SimulatorConfig | None = None,
    cancel: threading.Event | None = None,
) -> StageResult:
    """Simulate the liquidation queue for every asset with weight > 0.

    Per-asset queries run concurrently. A failed asset is excluded from both
    sums and listed in ``failed_items``. The stage is ``NO_DATA`` only when
    the credit price is unknown, no asset can be priced, or every asset
    query fails.

    Args:
        remaining_debt: Debt left after capital recall.
        weighted_assets: (asset, weight) pairs with weight > 0.
        credit_denom: Credit asset denom.
        credit_price: Credit asset reference price (USD).
        queries: Query capabilities.
        config: Timeout and pool size.
        cancel: Abandons pending sub-queries when set.

    Returns:
        StageResult with a per-asset breakdown in collateral order.
    """
    config = config or SimulatorConfig()

    if remaining_debt <= 0:
        logger.debug("Liquidation queue skipped: no remaining debt")
        return StageResult(
            name=LIQUIDATION_QUEUE,
            outcome=StageOutcome.COMPUTED_ZERO,
            fulfilled=0.0,
            cost=0.0,
        )

    if not credit_price or credit_price <= 0:
        logger.warning("Liquidation queue has no credit price for %s", credit_denom)
        return _no_data(remaining_debt)

    debt_shares = split_debt(remaining_debt, weighted_assets)

    missing_price = []
    pending = []
    for (asset, _), debt_share in zip(weighted_assets, debt_shares):
        if not asset.price or asset.price <= 0:
            missing_price.append(asset.denom)
            continue
        amount = required_collateral(debt_share, credit_price, asset.price)
        pending.append((asset, debt_share, to_raw_amount(amount, asset.decimals)))

    if missing_price:
        logger.warning("Liquidation queue skipping unpriced collateral: %s", missing_price)
    if not pending:
        return _no_data(remaining_debt, missing_price)

    outcomes = fan_out(
        pending,
        lambda req: queries.check_liquidatible(
            req[0].denom, req[2], req[0].price, credit_denom, credit_price
        ),
        timeout=config.query_timeout,
        max_workers=config.max_workers,
        cancel=cancel,
    )
    failed = log_failures(outcomes, "CheckLiquidatible", lambda req: req[0].denom)

    per_asset = []
    for outcome in outcomes:
        if not outcome.ok:
            continue
        asset, debt_share, raw_amount = outcome.item
        fill: QueueFill = outcome.value
        debt_repaid = clamp_non_negative(fill.debt_repaid, f"debt repaid for {asset.denom}")
        leftover = clamp_non_negative(
            fill.leftover_collateral, f"leftover collateral for {asset.denom}"
        )
        per_asset.append(
            QueueAssetResult(
                denom=asset.denom,
                symbol=asset.label,
                debt_share=debt_share,
                collateral_amount=raw_amount,
                debt_repaid=debt_repaid,
                cost=leftover * asset.price,
            )
        )

    if not per_asset:
        return _no_data(remaining_debt, missing_price + failed)

    total_repaid = sum(r.debt_repaid for r in per_asset)
    total_cost = sum(r.cost for r in per_asset)
    computed = total_repaid > 0 or total_cost > 0
    return StageResult(
        name=LIQUIDATION_QUEUE,
        outcome=StageOutcome.COMPUTED if computed else StageOutcome.COMPUTED_ZERO,
        fulfilled=total_repaid,
        cost=total_cost,
        items=tuple(per_asset),
        failed_items=tuple(missing_price + failed),
        remaining_before=remaining_debt,
        remaining_after=max(0.0, remaining_debt - total_repaid),
    )
