"""Reusable metric card components for the dashboard."""

import math

import streamlit as st


def format_amount(value: float, unit: str = "") -> str:
    """Two-decimal display amount; NaN (a stage without data) renders as n/a."""
    if value is None or math.isnan(value):
        return "n/a"
    text = f"{value:,.2f}"
    return f"{text} {unit}" if unit else text


def kpi_row(metrics: list[tuple[str, str, str | None]]) -> None:
    """Display a row of KPI cards.

    Args:
        metrics: List of (label, value, delta) tuples.
    """
    cols = st.columns(len(metrics))
    for col, (label, value, delta) in zip(cols, metrics):
        with col:
            st.metric(label=label, value=value, delta=delta)
