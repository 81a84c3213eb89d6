"""Result dataclasses for waterfall simulation outputs."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import pandas as pd

from liqsim.protocol.threshold import progress_percentage


class StageOutcome(str, Enum):
    """Tri-state outcome of a waterfall stage.

    ``NO_DATA`` means the stage could not be simulated and must never be
    read as a zero result.
    """

    COMPUTED = "computed"
    COMPUTED_ZERO = "computed-zero"
    NO_DATA = "no-data"


@dataclass(frozen=True)
class VenueRecall:
    """Capital recalled from one deployment venue."""

    venue: str
    amount: float


@dataclass(frozen=True)
class QueueAssetResult:
    """Liquidation-queue fill for one collateral asset.

    Attributes:
        denom: Collateral denom.
        symbol: Display symbol.
        debt_share: Share of remaining debt routed to this asset (credit units).
        collateral_amount: Raw native units sent to the queue.
        debt_repaid: Debt repaid by matched bids (credit units).
        cost: USD value of collateral left unmatched.
    """

    denom: str
    symbol: str
    debt_share: float
    collateral_amount: int
    debt_repaid: float
    cost: float


@dataclass(frozen=True)
class RouteHop:
    """A single swap hop on a market-sale route."""

    dex: str
    token_in: str
    token_out: str
    amount_in: float
    amount_out: float


@dataclass(frozen=True)
class SaleAssetResult:
    """Market-sale outcome for one asset (or the aggregated mix)."""

    denom: str
    symbol: str
    input_value: float
    output_value: float
    slippage_cost: float
    routes: tuple[RouteHop, ...] = ()


@dataclass(frozen=True)
class StageResult:
    """One row of the waterfall.

    Attributes:
        name: Stage name.
        outcome: Computed, computed-zero or no-data.
        fulfilled: Debt-equivalent amount recovered.
        cost: Value lost to the process.
        items: Ordered breakdown (per venue or per asset).
        failed_items: Venues/denoms whose sub-query failed.
        remaining_before: Debt entering the stage.
        remaining_after: Debt handed to the next stage.
    """

    name: str
    outcome: StageOutcome
    fulfilled: float
    cost: float
    items: tuple = ()
    failed_items: tuple[str, ...] = ()
    remaining_before: float = 0.0
    remaining_after: float = 0.0

    @property
    def has_data(self) -> bool:
        return self.outcome is not StageOutcome.NO_DATA

    @property
    def partial(self) -> bool:
        """True when some sub-queries failed but the stage still computed."""
        return self.has_data and bool(self.failed_items)


@dataclass(frozen=True)
class SimulationResult:
    """Full liquidation waterfall for one position snapshot."""

    threshold: float
    liquidated_amount: float
    stages: tuple[StageResult, ...]
    final_remainder: float

    @property
    def shortfall(self) -> bool:
        """Uncovered debt remains after every stage (potential bad debt)."""
        return self.final_remainder > 0

    @property
    def is_complete(self) -> bool:
        return all(stage.has_data for stage in self.stages)

    @property
    def total_fulfilled(self) -> float:
        return sum(stage.fulfilled for stage in self.stages)

    @property
    def total_cost(self) -> float:
        return sum(stage.cost for stage in self.stages)

    def stage(self, name: str) -> StageResult:
        for stage in self.stages:
            if stage.name == name:
                return stage
        raise KeyError(name)

    def to_frame(self) -> pd.DataFrame:
        """Stage table for display.

        Returns:
            DataFrame with columns: stage, outcome, fulfilled, cost,
            remaining_after, progress_pct. ``NO_DATA`` rows carry NaN
            amounts rather than zeros.
        """
        rows = []
        for stage in self.stages:
            if stage.has_data:
                fulfilled, cost = stage.fulfilled, stage.cost
                progress = progress_percentage(stage.fulfilled, self.liquidated_amount)
            else:
                fulfilled = cost = progress = float("nan")
            rows.append(
                {
                    "stage": stage.name,
                    "outcome": stage.outcome.value,
                    "fulfilled": fulfilled,
                    "cost": cost,
                    "remaining_after": stage.remaining_after,
                    "progress_pct": progress,
                }
            )
        return pd.DataFrame(
            rows,
            columns=["stage", "outcome", "fulfilled", "cost", "remaining_after", "progress_pct"],
        )
