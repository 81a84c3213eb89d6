"""Asset identifiers and protocol constants."""

# Credit asset (CDT) on Osmosis
CDT_DENOM = "factory/osmo1s794h9rxggytja3a4pmwul53u98k06zy2qtrdvjnfuxruh7s8yjs6cyxgd/ucdt"
CDT_DECIMALS = 6

# Collateral denoms used by the static snapshot
OSMO = "uosmo"
ATOM = "ibc/27394FB092D2ECCD56123C74F36E4C1F926001CEADA9CA97EA622B25F41E5EB2"
STATOM = "ibc/C140AFD542AE77BD7DCC83F13FDD8C5E5BB8C4929785E6EC2F4C636F98F17901"

# Display symbols for known denoms
SYMBOLS = {
    CDT_DENOM: "CDT",
    OSMO: "OSMO",
    ATOM: "ATOM",
    STATOM: "stATOM",
}

# Native token precision when the asset registry has no entry
DEFAULT_DECIMALS = 6

# Stage names, in waterfall order
CAPITAL_RECALL = "Capital Recall"
LIQUIDATION_QUEUE = "Liquidation Queue"
MARKET_SALE = "Market Sale"

# Tolerance for "weights sum to one" and conservation checks
WEIGHT_SUM_TOLERANCE = 1e-6


def symbol_for(denom: str) -> str:
    """Display symbol for a known denom, else the denom itself."""
    return SYMBOLS.get(denom, denom)
