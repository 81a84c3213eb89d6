"""Static query provider with a hardcoded Osmosis CDP snapshot.

The snapshot is a $1,000 position (80% liquidation LTV, 70% borrow LTV)
collateralised 50/30/20 by OSMO, ATOM and stATOM, with two deployment venues.
Queue and route responses follow fixed fill and slippage rates so the
waterfall is reproducible without an RPC endpoint.
"""

from __future__ import annotations

from liqsim.data.constants import ATOM, CDT_DENOM, OSMO, STATOM, symbol_for
from liqsim.data.interfaces import (
    AssetRoute,
    QueueFill,
    SaleSimulation,
    SellOrder,
    WaterfallQueries,
)
from liqsim.errors import RouteNotFoundError
from liqsim.position.cdp_position import (
    CollateralAsset,
    Position,
    PositionSnapshot,
    Venue,
    from_raw_amount,
)
from liqsim.simulation.results import RouteHop

# --- Snapshot ---

_PRICES: dict[str, float] = {
    OSMO: 0.50,
    ATOM: 10.00,
    STATOM: 12.50,
    CDT_DENOM: 1.00,
}

_COLLATERAL = (
    CollateralAsset(denom=OSMO, symbol=symbol_for(OSMO), amount=1_000.0, weight=0.5),
    CollateralAsset(denom=ATOM, symbol=symbol_for(ATOM), amount=30.0, weight=0.3),
    CollateralAsset(denom=STATOM, symbol=symbol_for(STATOM), amount=16.0, weight=0.2),
)

_VENUES: dict[str, float] = {
    "osmo1fqcwupyh6s703rn0lkxfx0ch2lyrw6lz4dedecx0y3ced2jq04tq0mva2l": 18.0,
    "osmo1tmqefg7v9zhtj2hlsrtn3mp8zz83x9lxtedlzesnky4c74l4g9ws29dqxr": 12.0,
}

# --- Liquidation queue: fraction of routed collateral matched by bids ---

_QUEUE_FILL_RATES: dict[str, float] = {
    OSMO: 0.85,
    ATOM: 0.90,
    STATOM: 0.80,
}

# --- Market sale routes: (dex, token_out, value retained per hop) ---

_ROUTES: dict[str, list[tuple[str, str, float]]] = {
    OSMO: [("astroport", CDT_DENOM, 0.92)],
    ATOM: [("astroport", OSMO, 0.95), ("astroport", CDT_DENOM, 0.88 / 0.95)],
    STATOM: [
        ("astroport", ATOM, 0.97),
        ("astroport", OSMO, 0.95),
        ("astroport", CDT_DENOM, 0.90 / (0.97 * 0.95)),
    ],
}


class StaticQueries(WaterfallQueries):
    """Query provider answering from the hardcoded snapshot."""

    def get_price(self, denom: str) -> float | None:
        return _PRICES.get(denom)

    def read_position(self, user: str, position_id: str | None = None) -> PositionSnapshot | None:
        if position_id not in (None, "1"):
            return None
        position = Position(
            position_id="1",
            owner=user,
            collateral_assets=tuple(_COLLATERAL),
            debt_amount=750.0,
            liquidation_ltv=80.0,
            borrow_ltv=70.0,
            venues=tuple(Venue(address=a, deployed_amount=v) for a, v in _VENUES.items()),
        )
        return PositionSnapshot(position=position, credit_price=None, credit_denom=CDT_DENOM)

    def get_retrievable_amount(self, venue_address: str, user: str) -> float:
        return _VENUES.get(venue_address, 0.0)

    def check_liquidatible(
        self,
        asset_denom: str,
        collateral_amount: int,
        asset_price: float,
        credit_denom: str,
        credit_price: float,
    ) -> QueueFill:
        fill_rate = _QUEUE_FILL_RATES.get(asset_denom, 0.0)
        amount = from_raw_amount(collateral_amount)
        matched = amount * fill_rate
        return QueueFill(
            debt_repaid=matched * asset_price / credit_price,
            leftover_collateral=amount - matched,
        )

    def simulate_market_sale(
        self, sell_list: list[SellOrder], target_denom: str
    ) -> SaleSimulation | None:
        per_asset = []
        for order in sell_list:
            path = _ROUTES.get(order.denom)
            if not path or path[-1][1] != target_denom:
                raise RouteNotFoundError(f"no route from {order.denom} to {target_denom}")

            input_value = from_raw_amount(order.amount) * _PRICES[order.denom]
            hops = []
            token_in, value_in = order.denom, input_value
            for dex, token_out, retained in path:
                value_out = value_in * retained
                hops.append(RouteHop(dex, token_in, token_out, value_in, value_out))
                token_in, value_in = token_out, value_out
            per_asset.append(
                AssetRoute(
                    denom=order.denom,
                    input_value=input_value,
                    output_value=value_in,
                    hops=tuple(hops),
                )
            )

        total_in = sum(a.input_value for a in per_asset)
        total_out = sum(a.output_value for a in per_asset)
        return SaleSimulation(
            total_input_value=total_in,
            total_output_value=total_out,
            slippage_cost=total_in - total_out,
            per_asset=tuple(per_asset),
        )
