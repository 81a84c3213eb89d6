"""CosmWasm LCD query provider, reading live CDP state over REST via requests."""

from __future__ import annotations

import base64
import json
import logging
from typing import Any
from urllib.parse import quote

from liqsim.data.constants import CDT_DECIMALS, CDT_DENOM, DEFAULT_DECIMALS, symbol_for
from liqsim.data.contracts import (
    LIQUIDATION_QUEUE_CONTRACT,
    ORACLE_CONTRACT,
    POSITIONS_CONTRACT,
    basket_msg,
    basket_positions_msg,
    check_liquidatible_msg,
    oracle_price_msg,
    retrievable_cdt_msg,
    simulate_liquidation_msg,
)
from liqsim.data.interfaces import (
    AssetRoute,
    QueueFill,
    SaleSimulation,
    SellOrder,
    WaterfallQueries,
)
from liqsim.errors import QueryError, RouteNotFoundError
from liqsim.position.cdp_position import (
    CollateralAsset,
    Position,
    PositionSnapshot,
    Venue,
    from_raw_amount,
)
from liqsim.simulation.results import RouteHop

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _encode_query(msg: dict) -> str:
    """Base64-encode a smart-query message for the LCD URL path."""
    raw = json.dumps(msg, separators=(",", ":")).encode()
    return quote(base64.b64encode(raw).decode(), safe="")


def _native_denom(asset_info: dict) -> str:
    try:
        return asset_info["native_token"]["denom"]
    except (KeyError, TypeError) as exc:
        raise QueryError(f"unsupported asset info: {asset_info!r}") from exc


def _uint(value: Any) -> int:
    """Uint128 payloads arrive as strings or as ``{"amount": "..."}``."""
    if isinstance(value, dict):
        value = value.get("amount", "0")
    return int(value)


# ---------------------------------------------------------------------------
# LcdQueries
# ---------------------------------------------------------------------------

class LcdQueries(WaterfallQueries):
    """Live query provider over a CosmWasm LCD endpoint.

    Parameters
    ----------
    lcd_url : str
        LCD REST base URL, e.g. ``https://lcd.osmosis.zone``.
    timeout : float
        Per-request HTTP timeout in seconds.
    decimals : dict[str, int] | None
        Native precision per denom; unknown denoms use 6.
    session : Any
        Optional ``requests.Session`` (injected in tests).
    """

    def __init__(
        self,
        lcd_url: str,
        timeout: float = 10.0,
        decimals: dict[str, int] | None = None,
        session: Any = None,
    ) -> None:
        if session is None:
            import requests

            session = requests.Session()
        self._base_url = lcd_url.rstrip("/")
        self._timeout = timeout
        self._decimals = dict(decimals or {})
        self._session = session

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _decimals_for(self, denom: str) -> int:
        if denom == CDT_DENOM:
            return CDT_DECIMALS
        return self._decimals.get(denom, DEFAULT_DECIMALS)

    def _smart_query(self, contract: str, msg: dict) -> Any:
        """GET a smart query and return its ``data`` payload.

        Raises:
            QueryError: Transport failure, non-2xx status or malformed body.
        """
        url = f"{self._base_url}/cosmwasm/wasm/v1/contract/{contract}/smart/{_encode_query(msg)}"
        logger.debug("LCD smart query %s on %s", next(iter(msg)), contract)
        try:
            resp = self._session.get(url, timeout=self._timeout)
            resp.raise_for_status()
            body = resp.json()
        except Exception as exc:
            raise QueryError(f"smart query {next(iter(msg))} on {contract} failed: {exc}") from exc

        if not isinstance(body, dict) or "data" not in body:
            raise QueryError(f"smart query {next(iter(msg))} on {contract}: no data in {body!r}")
        return body["data"]

    # ------------------------------------------------------------------
    # WaterfallQueries interface
    # ------------------------------------------------------------------

    def get_price(self, denom: str) -> float | None:
        data = self._smart_query(ORACLE_CONTRACT, oracle_price_msg(denom))
        if not data:
            return None
        price = float(data[0]["price"])
        return price if price > 0 else None

    def read_position(self, user: str, position_id: str | None = None) -> PositionSnapshot | None:
        try:
            return self._read_position(user, position_id)
        except (KeyError, TypeError, ValueError) as exc:
            raise QueryError(f"malformed position payload for {user}: {exc!r}") from exc

    def _read_position(self, user: str, position_id: str | None) -> PositionSnapshot | None:
        responses = self._smart_query(POSITIONS_CONTRACT, basket_positions_msg(user))
        raw_positions = [p for r in responses or [] for p in r.get("positions", [])]
        if position_id is not None:
            raw_positions = [p for p in raw_positions if str(p.get("position_id")) == position_id]
        if not raw_positions:
            return None
        raw = raw_positions[0]

        ratios = raw.get("cAsset_ratios") or []
        collaterals = raw.get("collateral_assets") or []
        if len(ratios) != len(collaterals):
            raise QueryError(
                f"position {raw.get('position_id')}: {len(collaterals)} assets but {len(ratios)} ratios"
            )

        assets = []
        for cAsset, ratio in zip(collaterals, ratios):
            denom = _native_denom(cAsset["asset"]["info"])
            decimals = self._decimals_for(denom)
            assets.append(
                CollateralAsset(
                    denom=denom,
                    amount=from_raw_amount(_uint(cAsset["asset"]["amount"]), decimals),
                    weight=float(ratio),
                    symbol=symbol_for(denom),
                    decimals=decimals,
                )
            )

        venues = tuple(
            Venue(
                address=v["address"],
                deployed_amount=from_raw_amount(
                    _uint(v.get("deployed_debt_amount", "0")), CDT_DECIMALS
                ),
            )
            for v in raw.get("deployed_to") or []
        )

        position = Position(
            position_id=str(raw.get("position_id")),
            owner=user,
            collateral_assets=tuple(assets),
            debt_amount=from_raw_amount(_uint(raw.get("credit_amount", "0")), CDT_DECIMALS),
            liquidation_ltv=float(raw.get("avg_max_LTV", 0)) * 100,
            borrow_ltv=float(raw.get("avg_borrow_LTV", 0)) * 100,
            venues=venues,
        )

        basket = self._smart_query(POSITIONS_CONTRACT, basket_msg())
        credit_denom = CDT_DENOM
        credit_info = (basket.get("credit_asset") or {}).get("info")
        if credit_info:
            credit_denom = _native_denom(credit_info)
        credit_price_raw = (basket.get("credit_price") or {}).get("price")
        credit_price = float(credit_price_raw) if credit_price_raw is not None else None

        return PositionSnapshot(position=position, credit_price=credit_price, credit_denom=credit_denom)

    def get_retrievable_amount(self, venue_address: str, user: str) -> float:
        data = self._smart_query(venue_address, retrievable_cdt_msg(user))
        return from_raw_amount(_uint(data), CDT_DECIMALS)

    def check_liquidatible(
        self,
        asset_denom: str,
        collateral_amount: int,
        asset_price: float,
        credit_denom: str,
        credit_price: float,
    ) -> QueueFill:
        msg = check_liquidatible_msg(
            asset_denom, collateral_amount, asset_price, credit_denom, credit_price
        )
        data = self._smart_query(LIQUIDATION_QUEUE_CONTRACT, msg)
        return QueueFill(
            debt_repaid=from_raw_amount(
                _uint(data["total_debt_repaid"]), self._decimals_for(credit_denom)
            ),
            leftover_collateral=from_raw_amount(
                _uint(data["leftover_collateral"]), self._decimals_for(asset_denom)
            ),
        )

    def simulate_market_sale(
        self, sell_list: list[SellOrder], target_denom: str
    ) -> SaleSimulation | None:
        msg = simulate_liquidation_msg([(o.denom, o.amount) for o in sell_list], target_denom)
        try:
            data = self._smart_query(POSITIONS_CONTRACT, msg)
        except QueryError as exc:
            raise RouteNotFoundError(str(exc)) from exc
        if not data:
            return None

        per_asset = None
        if data.get("per_asset"):
            per_asset = tuple(
                AssetRoute(
                    denom=entry["denom"],
                    input_value=float(entry["input_value"]),
                    output_value=float(entry["output_value"]),
                    hops=tuple(
                        RouteHop(
                            dex=hop.get("dex", ""),
                            token_in=hop["token_in"],
                            token_out=hop["token_out"],
                            amount_in=float(hop["amount_in"]),
                            amount_out=float(hop["amount_out"]),
                        )
                        for hop in entry.get("routes", [])
                    ),
                )
                for entry in data["per_asset"]
            )

        return SaleSimulation(
            total_input_value=float(data["total_input_value"]),
            total_output_value=float(data["total_output_value"]),
            slippage_cost=float(data.get("slippage_cost", 0)),
            per_asset=per_asset,
        )

    @property
    def is_connected(self) -> bool:
        """Check that the LCD node answers its status endpoint."""
        try:
            resp = self._session.get(
                f"{self._base_url}/cosmos/base/tendermint/v1beta1/node_info", timeout=self._timeout
            )
            return resp.ok
        except Exception:
            return False
