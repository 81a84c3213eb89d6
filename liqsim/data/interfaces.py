"""Abstract query capabilities consumed by the liquidation waterfall."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from liqsim.position.cdp_position import PositionSnapshot
from liqsim.simulation.results import RouteHop


@dataclass(frozen=True)
class QueueFill:
    """Liquidation queue response for one collateral asset."""

    debt_repaid: float  # Credit asset, human units
    leftover_collateral: float  # Collateral asset, human units


@dataclass(frozen=True)
class SellOrder:
    """One entry of a market-sale sell list."""

    denom: str
    amount: int  # Raw native units


@dataclass(frozen=True)
class AssetRoute:
    """Per-asset sale breakdown returned by the route simulation."""

    denom: str
    input_value: float
    output_value: float
    hops: tuple[RouteHop, ...] = ()


@dataclass(frozen=True)
class SaleSimulation:
    """Route simulation response for a whole sell list."""

    total_input_value: float
    total_output_value: float
    slippage_cost: float
    per_asset: tuple[AssetRoute, ...] | None = None


class WaterfallQueries(ABC):
    """Read-only chain queries the waterfall depends on."""

    @abstractmethod
    def get_price(self, denom: str) -> float | None:
        """Oracle price in USD, or None when the feed has no price."""

    @abstractmethod
    def read_position(self, user: str, position_id: str | None = None) -> PositionSnapshot | None:
        """Read a user's position and basket state.

        Returns None when the user has no such position.
        """

    @abstractmethod
    def get_retrievable_amount(self, venue_address: str, user: str) -> float:
        """Credit asset the user can currently recall from a deployment venue."""

    @abstractmethod
    def check_liquidatible(
        self,
        asset_denom: str,
        collateral_amount: int,
        asset_price: float,
        credit_denom: str,
        credit_price: float,
    ) -> QueueFill:
        """Dry-run ``collateral_amount`` raw units of collateral against queue bids."""

    @abstractmethod
    def simulate_market_sale(
        self, sell_list: list[SellOrder], target_denom: str
    ) -> SaleSimulation | None:
        """Simulate selling ``sell_list`` into ``target_denom`` over swap routes.

        Raises ``RouteNotFoundError`` (or any ``QueryError``) when no route
        can be simulated.
        """
