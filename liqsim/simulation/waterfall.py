"""Liquidation waterfall: threshold, then capital recall, liquidation queue and market sale.

Each stage consumes what it can of the remaining debt and hands the rest on:

    remaining(n) = max(0, remaining(n-1) - fulfilled(n))

A stage with no data fulfils nothing, so the same remaining debt flows to
the next stage.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from collections.abc import Sequence

from liqsim.data.constants import CAPITAL_RECALL, LIQUIDATION_QUEUE, MARKET_SALE
from liqsim.data.interfaces import WaterfallQueries
from liqsim.errors import MissingInputError, QueryError, SimulationSuperseded
from liqsim.position.cdp_position import PositionSnapshot
from liqsim.protocol.threshold import LiquidationThresholdCalculator
from liqsim.simulation.capital_recall import run_capital_recall
from liqsim.simulation.liquidation_queue import run_liquidation_queue
from liqsim.simulation.market_sale import run_market_sale
from liqsim.simulation.params import SimulatorConfig
from liqsim.simulation.results import SimulationResult, StageOutcome, StageResult

logger = logging.getLogger(__name__)


def _check_cancelled(cancel: threading.Event | None) -> None:
    if cancel is not None and cancel.is_set():
        raise SimulationSuperseded("simulation inputs changed; run abandoned")


def _next_remaining(remaining: float, stage: StageResult) -> float:
    if not stage.has_data:
        return remaining
    return max(0.0, remaining - stage.fulfilled)


def simulate(
    snapshot: PositionSnapshot,
    queries: WaterfallQueries,
    user: str | None = None,
    config: SimulatorConfig | None = None,
    cancel: threading.Event | None = None,
) -> SimulationResult:
    """Run the full liquidation waterfall for one position snapshot.

    The snapshot (position, prices, credit price) is used as-is for every
    stage; nothing is re-fetched mid-run. Does NOT mutate the snapshot.

    Args:
        snapshot: Position and pricing read once for this run.
        queries: Query capabilities for venues, the queue and swap routes.
        user: Address used for venue queries; defaults to the position owner.
        config: Timeouts and pool sizes.
        cancel: When set, the run is abandoned: pending sub-queries are
            dropped and no further stage starts.

    Returns:
        SimulationResult with exactly three stages. When held collateral has
        no price and no collateral value override is given, the threshold
        cannot be computed and every stage is NO_DATA, listing the unpriced
        denoms as failed.

    Raises:
        SimulationSuperseded: ``cancel`` was set during the run.
    """
    config = config or SimulatorConfig()
    position = snapshot.position
    user = user or position.owner

    if snapshot.collateral_value_override is None:
        unpriced = position.unpriced_denoms()
        if unpriced:
            logger.warning(
                "Position %s: no price for %s; collateral value unknown",
                position.position_id,
                ", ".join(unpriced),
            )
            return no_data_result(unpriced)

    calculator = LiquidationThresholdCalculator(position.liquidation_ltv, position.borrow_ltv)
    levels = calculator.compute(snapshot.collateral_value())
    weighted_assets = position.weighted_assets()

    _check_cancelled(cancel)
    recall = run_capital_recall(
        levels.liquidated_amount, position.venues, user, queries, config, cancel=cancel
    )
    remaining1 = _next_remaining(levels.liquidated_amount, recall)

    _check_cancelled(cancel)
    queue = run_liquidation_queue(
        remaining1,
        weighted_assets,
        snapshot.credit_denom,
        snapshot.credit_price,
        queries,
        config,
        cancel=cancel,
    )
    queue = dataclasses.replace(queue, remaining_before=remaining1)
    remaining2 = _next_remaining(remaining1, queue)
    queue = dataclasses.replace(queue, remaining_after=remaining2)

    _check_cancelled(cancel)
    sale = run_market_sale(
        remaining2, weighted_assets, snapshot.credit_denom, queries, config, cancel=cancel
    )
    final_remainder = _next_remaining(remaining2, sale)
    sale = dataclasses.replace(sale, remaining_before=remaining2, remaining_after=final_remainder)

    result = SimulationResult(
        threshold=levels.threshold,
        liquidated_amount=levels.liquidated_amount,
        stages=(recall, queue, sale),
        final_remainder=final_remainder,
    )
    if result.shortfall:
        logger.warning(
            "Position %s: %.6f of %.6f liquidated debt left uncovered after all stages",
            position.position_id,
            final_remainder,
            levels.liquidated_amount,
        )
    return result


def _lookup_price(queries: WaterfallQueries, denom: str) -> float | None:
    try:
        return queries.get_price(denom)
    except QueryError:
        logger.warning("Price lookup failed for %s; treating as unknown", denom, exc_info=True)
        return None


def load_snapshot(
    queries: WaterfallQueries, user: str, position_id: str | None = None
) -> PositionSnapshot:
    """Read position, collateral prices and credit price once.

    Prices already carried by the position are kept; missing ones are looked
    up through ``get_price``. Assets that stay unpriced are left as None; a
    snapshot with one simulates to an all no-data result.

    Raises:
        MissingInputError: The position cannot be read.
    """
    snapshot = queries.read_position(user, position_id)
    if snapshot is None:
        raise MissingInputError(f"no position {position_id!r} for {user}")

    assets = []
    for asset in snapshot.position.collateral_assets:
        if asset.price is None:
            asset = dataclasses.replace(asset, price=_lookup_price(queries, asset.denom))
        assets.append(asset)
    position = dataclasses.replace(snapshot.position, collateral_assets=tuple(assets))

    credit_price = snapshot.credit_price
    if credit_price is None:
        credit_price = _lookup_price(queries, snapshot.credit_denom)

    return dataclasses.replace(snapshot, position=position, credit_price=credit_price)


def no_data_result(missing: Sequence[str] = ()) -> SimulationResult:
    """Result for a simulation whose inputs could not be read.

    ``missing`` names the inputs (usually denoms) that were unavailable; it is
    reported as ``failed_items`` on every stage.
    """
    stages = tuple(
        StageResult(
            name=name,
            outcome=StageOutcome.NO_DATA,
            fulfilled=0.0,
            cost=0.0,
            failed_items=tuple(missing),
        )
        for name in (CAPITAL_RECALL, LIQUIDATION_QUEUE, MARKET_SALE)
    )
    return SimulationResult(threshold=0.0, liquidated_amount=0.0, stages=stages, final_remainder=0.0)


def simulate_position(
    queries: WaterfallQueries,
    user: str,
    position_id: str | None = None,
    config: SimulatorConfig | None = None,
    cancel: threading.Event | None = None,
) -> SimulationResult:
    """Load a snapshot and simulate it; unreadable inputs give an all-no-data result."""
    try:
        snapshot = load_snapshot(queries, user, position_id)
    except (MissingInputError, QueryError):
        logger.warning(
            "Cannot simulate liquidation for %s: position unavailable", user, exc_info=True
        )
        return no_data_result()
    return simulate(snapshot, queries, user=user, config=config, cancel=cancel)
