"""Sidebar parameter controls."""

from dataclasses import dataclass

import streamlit as st

DEFAULT_USER = "osmo1cyyzpxplxdzkeea7kwsydadg87357qnahakaks"


@dataclass
class SidebarParams:
    """Position selection from the sidebar."""

    user: str
    position_id: str | None


@dataclass
class WhatIfParams:
    """Snapshot overrides from the sidebar; None keeps the live value."""

    collateral_value_override: float | None
    credit_price_override: float | None


def render_sidebar() -> SidebarParams:
    """Render the position selection controls."""
    # The data source toggle is rendered in app.py before this is called.

    st.sidebar.header("Position")

    user = st.sidebar.text_input("Owner Address", value=DEFAULT_USER).strip()
    position_id = st.sidebar.text_input("Position ID", value="1").strip() or None

    return SidebarParams(user=user, position_id=position_id)


def render_what_if(default_collateral_value: float = 0.0) -> WhatIfParams:
    """Render what-if overrides and return the selected values.

    Parameters
    ----------
    default_collateral_value : float
        Starting value for the collateral override input (the loaded
        position's priced collateral value).
    """
    st.sidebar.header("What-If Analysis")

    collateral_override: float | None = None
    if st.sidebar.checkbox("Override Collateral Value", value=False):
        collateral_override = st.sidebar.number_input(
            "Collateral Value (USD)",
            min_value=0.0,
            value=float(default_collateral_value),
            step=50.0,
            format="%.2f",
        )
        st.sidebar.caption(
            "Models a collateral price move: the liquidation threshold and "
            "liquidated amount are recomputed from this value."
        )

    credit_price_override: float | None = None
    if st.sidebar.checkbox("Override CDT Price", value=False):
        credit_price_override = st.sidebar.slider(
            "CDT Price (USD)",
            min_value=0.80,
            max_value=1.10,
            value=1.00,
            step=0.005,
            format="%.3f",
        )

    return WhatIfParams(
        collateral_value_override=collateral_override,
        credit_price_override=credit_price_override,
    )
