"""Contract addresses and smart-query message builders for the CosmWasm LCD."""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Osmosis mainnet contract addresses
# ---------------------------------------------------------------------------
POSITIONS_CONTRACT = "osmo1gy5gpqqlth0jpm9ydxlmff6g5mpnfvrfxd3mfc8dhyt03waumtzqt8exxr"
LIQUIDATION_QUEUE_CONTRACT = "osmo1ycmtfa7h0efexjxuaw7yh3h3qayy5lspt9q4n4e3stn06cdcgm8s50zmjl"
ORACLE_CONTRACT = "osmo16sgcpe0hcs42qk5vumk06jzmstkpka9gjda9tfdelwn65ksu3l7s7d4ggs"

# Oracle query parameters
ORACLE_TIME_LIMIT = 10
TWAP_TIMEFRAME = 0


def decimal_str(value: float) -> str:
    """Render a price as a CosmWasm ``Decimal`` string (18 fractional digits max)."""
    text = f"{value:.18f}".rstrip("0").rstrip(".")
    return text or "0"


def native_asset_info(denom: str) -> dict:
    return {"native_token": {"denom": denom}}


# ---------------------------------------------------------------------------
# Query messages, only the read-only queries we issue
# ---------------------------------------------------------------------------

def retrievable_cdt_msg(user: str) -> dict:
    """Deployment venue query for CDT the user can pull back."""
    return {"retrievable_c_d_t": {"user": user}}


def check_liquidatible_msg(
    asset_denom: str,
    collateral_amount: int,
    asset_price: float,
    credit_denom: str,
    credit_price: float,
) -> dict:
    """Liquidation queue dry-run for ``collateral_amount`` raw units of collateral."""
    return {
        "check_liquidatible": {
            "bid_for": native_asset_info(asset_denom),
            "collateral_amount": str(collateral_amount),
            "collateral_price": decimal_str(asset_price),
            "credit_info": native_asset_info(credit_denom),
            "credit_price": decimal_str(credit_price),
        }
    }


def simulate_liquidation_msg(sell_list: list[tuple[str, int]], target_denom: str) -> dict:
    """Positions contract multi-hop sale simulation."""
    return {
        "simulate_liquidation": {
            "collateral_to_sell": [
                {"denom": denom, "amount": str(amount)} for denom, amount in sell_list
            ],
            "target_denom": target_denom,
        }
    }


def basket_positions_msg(user: str) -> dict:
    return {"get_basket_positions": {"user": user}}


def basket_msg() -> dict:
    return {"get_basket": {}}


def oracle_price_msg(denom: str) -> dict:
    return {
        "prices": {
            "asset_infos": [native_asset_info(denom)],
            "oracle_time_limit": ORACLE_TIME_LIMIT,
            "twap_timeframe": TWAP_TIMEFRAME,
        }
    }
