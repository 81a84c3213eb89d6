"""Liquidation Waterfall page: threshold, stage table, breakdowns and chart."""

import pandas as pd
import streamlit as st

from liqsim.dashboard.components.charts import stage_cost_chart, waterfall_chart
from liqsim.dashboard.components.metrics_cards import format_amount, kpi_row
from liqsim.data.constants import CAPITAL_RECALL, LIQUIDATION_QUEUE, MARKET_SALE, symbol_for
from liqsim.position.cdp_position import PositionSnapshot
from liqsim.protocol.threshold import progress_percentage
from liqsim.simulation.results import SimulationResult, StageResult


def _stage_table(result: SimulationResult) -> pd.DataFrame:
    df = result.to_frame()
    return pd.DataFrame(
        {
            "Stage": df["stage"],
            "Outcome": df["outcome"],
            "Fulfilled": df["fulfilled"].map(format_amount),
            "Cost": df["cost"].map(format_amount),
            "Remaining After": df["remaining_after"].map(format_amount),
            "Progress": df["progress_pct"].map(lambda p: format_amount(p, "%")),
        }
    )


def _render_recall(stage: StageResult) -> None:
    rows = [
        {"Venue": item.venue, "Retrievable (CDT)": f"{item.amount:,.2f}"}
        for item in stage.items
    ]
    if rows:
        st.table(pd.DataFrame(rows))
    else:
        st.caption("No capital deployed to venues.")


def _render_queue(stage: StageResult) -> None:
    rows = [
        {
            "Asset": item.symbol,
            "Debt Share (CDT)": f"{item.debt_share:,.2f}",
            "Collateral Sent (base units)": f"{item.collateral_amount:,}",
            "Debt Repaid (CDT)": f"{item.debt_repaid:,.2f}",
            "Unmatched Value (USD)": f"{item.cost:,.2f}",
        }
        for item in stage.items
    ]
    if rows:
        st.table(pd.DataFrame(rows))


def _render_sale(stage: StageResult) -> None:
    for item in stage.items:
        st.markdown(
            f"**{item.symbol}**: sold ${item.input_value:,.2f}, "
            f"received ${item.output_value:,.2f}, slippage ${item.slippage_cost:,.2f}"
        )
        if item.routes:
            st.table(
                pd.DataFrame(
                    [
                        {
                            "DEX": hop.dex,
                            "From": symbol_for(hop.token_in),
                            "To": symbol_for(hop.token_out),
                            "In": f"{hop.amount_in:,.2f}",
                            "Out": f"{hop.amount_out:,.2f}",
                        }
                        for hop in item.routes
                    ]
                )
            )


_BREAKDOWNS = {
    CAPITAL_RECALL: _render_recall,
    LIQUIDATION_QUEUE: _render_queue,
    MARKET_SALE: _render_sale,
}


def render_waterfall(result: SimulationResult, snapshot: PositionSnapshot | None) -> None:
    """Render the liquidation waterfall page."""
    st.header("Liquidation Waterfall")

    unavailable = not any(stage.has_data for stage in result.stages)
    if snapshot is None:
        st.error("Position could not be read; every stage shows n/a.")
    elif unavailable:
        missing = ", ".join(symbol_for(denom) for denom in result.stages[0].failed_items)
        st.error(f"No price for {missing}; collateral value unknown, every stage shows n/a.")

    kpi_row(
        [
            ("Liquidation Threshold", f"${result.threshold:,.2f}", None),
            ("Liquidated Amount", f"{result.liquidated_amount:,.2f} CDT", None),
            ("Covered", f"{result.total_fulfilled:,.2f} CDT", None),
            ("Cost", f"${result.total_cost:,.2f}", None),
            ("Uncovered", f"{result.final_remainder:,.2f} CDT", None),
        ]
    )

    if snapshot is not None:
        position = snapshot.position
        st.caption(
            f"Position {position.position_id}: collateral ${snapshot.collateral_value():,.2f}, "
            f"debt {position.debt_amount:,.2f} CDT, liquidation LTV {position.liquidation_ltv:.2f}%, "
            f"borrow LTV {position.borrow_ltv:.2f}%"
        )

    if unavailable:
        st.info("No liquidation estimate without a collateral value.")
    elif result.liquidated_amount <= 0:
        st.success("Nothing would be liquidated at the current threshold.")
    elif result.shortfall:
        st.warning(
            f"{result.final_remainder:,.2f} CDT "
            f"({progress_percentage(result.final_remainder, result.liquidated_amount):.2f}%) "
            "is left uncovered after every stage."
        )
    else:
        st.success("The liquidated amount is fully covered.")

    st.divider()

    st.subheader("Stages")
    st.table(_stage_table(result))

    for stage in result.stages:
        if not stage.has_data:
            st.info(f"{stage.name}: no data, so the full remaining debt passed to the next stage.")
        elif stage.partial:
            st.warning(f"{stage.name}: sub-queries failed for {', '.join(stage.failed_items)}")

    col1, col2 = st.columns([3, 2])
    with col1:
        st.plotly_chart(waterfall_chart(result), use_container_width=True)
    with col2:
        st.plotly_chart(stage_cost_chart(result), use_container_width=True)

    st.subheader("Breakdown")
    for stage in result.stages:
        with st.expander(stage.name, expanded=False):
            if not stage.has_data:
                st.caption("n/a")
                continue
            _BREAKDOWNS[stage.name](stage)
