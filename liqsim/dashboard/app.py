"""Liquidation Waterfall Simulator: main Streamlit entry point."""

import dataclasses
import logging
import os
from concurrent.futures import CancelledError
from pathlib import Path

import streamlit as st

# Load .env file if present (for LCD_URL, LIQSIM_* settings)
_env_path = Path(__file__).resolve().parents[2] / ".env"
if _env_path.exists():
    for line in _env_path.read_text().splitlines():
        line = line.strip()
        if line and not line.startswith("#") and "=" in line:
            key, _, value = line.partition("=")
            os.environ.setdefault(key.strip(), value.strip())

from liqsim.dashboard.components.sidebar import render_sidebar, render_what_if
from liqsim.dashboard.tabs.waterfall import render_waterfall
from liqsim.data.cache import CachedQueries
from liqsim.data.provider_factory import create_queries
from liqsim.errors import MissingInputError, QueryError, SimulationSuperseded
from liqsim.simulation.params import SimulatorConfig
from liqsim.simulation.runner import LatestRunner
from liqsim.simulation.waterfall import load_snapshot, no_data_result

logger = logging.getLogger(__name__)


def _runner_for(queries, config: SimulatorConfig, source: str) -> LatestRunner:
    """One runner per data source, kept across Streamlit reruns."""
    key = f"runner:{source}"
    runner = st.session_state.get(key)
    if runner is None:
        runner = LatestRunner(queries, config=config)
        st.session_state[key] = runner
        st.session_state[f"queries:{source}"] = queries
    return runner


def main() -> None:
    st.set_page_config(
        page_title="Liquidation Waterfall Simulator",
        page_icon="💧",
        layout="wide",
    )

    st.title("Liquidation Waterfall Simulator")
    st.caption("Capital recall, liquidation queue and market sale for a CDP position")

    config = SimulatorConfig.from_env()

    st.sidebar.header("Data Source")
    use_onchain = st.sidebar.checkbox("Use On-Chain Data", value=False, key="use_onchain")
    source = "onchain" if use_onchain else "static"

    queries = st.session_state.get(f"queries:{source}")
    if queries is None:
        queries = create_queries(use_onchain=use_onchain, config=config)
    runner = _runner_for(queries, config, source)

    if use_onchain:
        if isinstance(queries, CachedQueries):
            st.sidebar.success("On-chain: LCD provider active")
            if st.sidebar.button("Refresh On-Chain Data"):
                queries.refresh()
                st.rerun()
        else:
            st.sidebar.error("Fell back to static data (set LCD_URL)")

    params = render_sidebar()

    snapshot = None
    if params.user:
        try:
            snapshot = load_snapshot(queries, params.user, params.position_id)
        except (MissingInputError, QueryError) as exc:
            logger.warning("Position unavailable for %s: %s", params.user, exc)
            st.sidebar.error(f"Position unavailable: {exc}")

    if snapshot is None:
        render_waterfall(no_data_result(), None)
        return

    what_if = render_what_if(snapshot.collateral_value())
    if what_if.collateral_value_override is not None:
        snapshot = dataclasses.replace(
            snapshot, collateral_value_override=what_if.collateral_value_override
        )
    if what_if.credit_price_override is not None:
        snapshot = dataclasses.replace(snapshot, credit_price=what_if.credit_price_override)

    future = runner.submit(snapshot, user=params.user)
    try:
        result = future.result()
    except (SimulationSuperseded, CancelledError):
        # A newer rerun owns the page; show whatever was last published.
        result = runner.latest
        if result is None:
            st.info("Simulation superseded by newer inputs.")
            return

    render_waterfall(result, snapshot)


if __name__ == "__main__":
    main()
