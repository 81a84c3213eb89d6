"""CDP position state consumed by the liquidation waterfall."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import numpy as np

from liqsim.data.constants import CDT_DENOM, DEFAULT_DECIMALS, WEIGHT_SUM_TOLERANCE

logger = logging.getLogger(__name__)


def to_raw_amount(amount: float, decimals: int = DEFAULT_DECIMALS) -> int:
    """Convert a human-unit amount to the token's integer base units.

    Rounds to the nearest base unit (``1.0000006`` OSMO -> ``1000001`` uosmo).
    """
    if amount <= 0:
        return 0
    return int(round(amount * 10**decimals))


def from_raw_amount(raw: int | str, decimals: int = DEFAULT_DECIMALS) -> float:
    """Convert integer base units (int or Uint128 string) to human units."""
    return int(raw) / 10**decimals


def clamp_non_negative(value: float, what: str) -> float:
    """Clamp a negative amount to zero, logging the invariant violation."""
    if value < 0:
        logger.warning("Invariant violation: negative %s (%r) clamped to 0", what, value)
        return 0.0
    return value


@dataclass(frozen=True)
class CollateralAsset:
    """One collateral asset held by a position.

    Attributes:
        denom: Native denom on chain.
        amount: Currently held amount in human units.
        weight: Share of the position's collateral value (cAsset ratio).
        price: Oracle price in USD, or None when unknown.
        symbol: Display symbol.
        decimals: Native unit precision.
    """

    denom: str
    amount: float
    weight: float
    price: float | None = None
    symbol: str = ""
    decimals: int = DEFAULT_DECIMALS

    @property
    def label(self) -> str:
        return self.symbol or self.denom

    @property
    def value(self) -> float:
        """USD value of the held amount; 0 when the price is unknown."""
        if self.price is None:
            return 0.0
        return self.amount * self.price


@dataclass(frozen=True)
class Venue:
    """A capital-deployment venue holding debt on the user's behalf."""

    address: str
    deployed_amount: float = 0.0


@dataclass(frozen=True)
class Position:
    """A collateralized-debt position.

    LTVs are percentages (``80.0`` means 80%).
    """

    position_id: str
    owner: str
    collateral_assets: tuple[CollateralAsset, ...]
    debt_amount: float
    liquidation_ltv: float
    borrow_ltv: float
    venues: tuple[Venue, ...] = ()

    def collateral_value(self) -> float:
        """Total USD value of collateral with a known price."""
        return float(sum(asset.value for asset in self.collateral_assets))

    def unpriced_denoms(self) -> list[str]:
        """Denoms of held collateral whose price is unknown."""
        return [
            asset.denom
            for asset in self.collateral_assets
            if asset.amount > 0 and asset.price is None
        ]

    def effective_weights(self) -> list[float]:
        """Weights clamped to [0, 1], in collateral order.

        Clamps are logged as invariant violations, and a sum of positive
        weights that drifts from 1 beyond rounding tolerance is logged too.
        """
        weights = np.array([asset.weight for asset in self.collateral_assets], dtype=float)
        if weights.size == 0:
            return []

        out_of_range = (weights < 0.0) | (weights > 1.0)
        if out_of_range.any():
            logger.warning(
                "Invariant violation: weights %s out of [0, 1] for position %s; clamped",
                weights[out_of_range].tolist(),
                self.position_id,
            )
            weights = np.clip(weights, 0.0, 1.0)

        total = float(weights[weights > 0].sum())
        if total > 0 and abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
            logger.warning(
                "Collateral weights for position %s sum to %.8f, expected 1",
                self.position_id,
                total,
            )
        return weights.tolist()

    def weighted_assets(self) -> list[tuple[CollateralAsset, float]]:
        """(asset, weight) pairs for assets with weight > 0."""
        return [
            (asset, weight)
            for asset, weight in zip(self.collateral_assets, self.effective_weights())
            if weight > 0
        ]


@dataclass(frozen=True)
class PositionSnapshot:
    """Position plus credit-asset pricing, read once per simulation run."""

    position: Position
    credit_price: float | None
    credit_denom: str = CDT_DENOM
    collateral_value_override: float | None = field(default=None)

    def collateral_value(self) -> float:
        if self.collateral_value_override is not None:
            return self.collateral_value_override
        return self.position.collateral_value()
