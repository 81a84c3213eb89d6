"""Capital recall stage: pull the user's own capital back from deployment venues."""

from __future__ import annotations

import logging
import threading
from typing import Sequence

from liqsim.data.constants import CAPITAL_RECALL
from liqsim.data.interfaces import WaterfallQueries
from liqsim.position.cdp_position import Venue, clamp_non_negative
from liqsim.simulation.fanout import fan_out, log_failures
from liqsim.simulation.params import SimulatorConfig
from liqsim.simulation.results import StageOutcome, StageResult, VenueRecall

logger = logging.getLogger(__name__)


def run_capital_recall(
    remaining_debt: float,
    venues: Sequence[Venue],
    user: str,
    queries: WaterfallQueries,
    config: SimulatorConfig | None = None,
    cancel: threading.Event | None = None,
) -> StageResult:
    """Sum what the user can retrieve from every venue tied to the position.

    Venues are queried concurrently. A failed or timed-out venue contributes
    0 and is listed in ``failed_items``; it never fails the stage. Recalling
    owned capital has no fee or slippage, so cost is always 0.

    Args:
        remaining_debt: Liquidated amount entering the waterfall.
        venues: Deployment venues of the position.
        user: Position owner address.
        queries: Query capabilities.
        config: Timeout and pool size.
        cancel: Abandons pending sub-queries when set.

    Returns:
        StageResult with a per-venue breakdown in venue order.
    """
    config = config or SimulatorConfig()

    if remaining_debt <= 0 or not venues:
        logger.debug(
            "Capital recall skipped (remaining=%s, venues=%d)", remaining_debt, len(venues)
        )
        return StageResult(
            name=CAPITAL_RECALL,
            outcome=StageOutcome.COMPUTED_ZERO,
            fulfilled=0.0,
            cost=0.0,
            remaining_before=max(0.0, remaining_debt),
            remaining_after=max(0.0, remaining_debt),
        )

    outcomes = fan_out(
        list(venues),
        lambda venue: queries.get_retrievable_amount(venue.address, user),
        timeout=config.query_timeout,
        max_workers=config.max_workers,
        cancel=cancel,
    )
    failed = log_failures(outcomes, "RetrievableCDT", lambda venue: venue.address)

    per_venue = []
    for outcome in outcomes:
        amount = 0.0
        if outcome.ok:
            amount = clamp_non_negative(float(outcome.value), f"recall from {outcome.item.address}")
        per_venue.append(VenueRecall(venue=outcome.item.address, amount=amount))

    total = sum(v.amount for v in per_venue)
    return StageResult(
        name=CAPITAL_RECALL,
        outcome=StageOutcome.COMPUTED if total > 0 else StageOutcome.COMPUTED_ZERO,
        fulfilled=total,
        cost=0.0,
        items=tuple(per_venue),
        failed_items=tuple(failed),
        remaining_before=remaining_debt,
        remaining_after=max(0.0, remaining_debt - total),
    )
