"""Reusable Plotly chart components."""

import plotly.graph_objects as go

from liqsim.simulation.results import SimulationResult


def waterfall_chart(result: SimulationResult) -> go.Figure:
    """Waterfall: liquidated amount, minus each stage's fulfilment, down to the remainder.

    Stages without data are drawn as zero-height steps labelled "n/a" so the
    gap stays visible instead of reading as a covered amount.
    """
    if result.liquidated_amount <= 0:
        fig = go.Figure()
        fig.update_layout(title="Nothing to liquidate", template="plotly_dark", height=400)
        return fig

    labels = ["Liquidated Amount"]
    measures = ["absolute"]
    values = [result.liquidated_amount]
    texts = [f"${result.liquidated_amount:,.2f}"]

    for stage in result.stages:
        labels.append(stage.name)
        measures.append("relative")
        if stage.has_data:
            covered = stage.remaining_before - stage.remaining_after
            values.append(-covered)
            texts.append(f"-${covered:,.2f}")
        else:
            values.append(0.0)
            texts.append("n/a")

    labels.append("Uncovered")
    measures.append("total")
    values.append(result.final_remainder)
    texts.append(f"${result.final_remainder:,.2f}")

    fig = go.Figure(
        go.Waterfall(
            x=labels,
            y=values,
            measure=measures,
            text=texts,
            textposition="outside",
            decreasing=dict(marker=dict(color="#22c55e")),
            increasing=dict(marker=dict(color="#ef4444")),
            totals=dict(marker=dict(color="#ef4444" if result.shortfall else "#6b7280")),
            connector=dict(line=dict(color="#6b7280", dash="dot")),
        )
    )

    fig.add_hline(
        y=result.liquidated_amount,
        line_dash="dash",
        line_color="#f59e0b",
        annotation_text=f"Liquidated: ${result.liquidated_amount:,.2f}",
    )

    fig.update_layout(
        title="Liquidation Waterfall",
        yaxis_title="Debt (CDT)",
        template="plotly_dark",
        height=450,
        showlegend=False,
    )

    return fig


def stage_cost_chart(result: SimulationResult) -> go.Figure:
    """Grouped bars: amount fulfilled vs cost per stage."""
    stages = [s for s in result.stages if s.has_data]
    names = [s.name for s in stages]

    fig = go.Figure()

    fig.add_trace(
        go.Bar(
            x=names,
            y=[s.fulfilled for s in stages],
            name="Fulfilled",
            marker_color="#22c55e",
            opacity=0.8,
            hovertemplate="%{x}<br>Fulfilled: $%{y:,.2f}<extra></extra>",
        )
    )

    fig.add_trace(
        go.Bar(
            x=names,
            y=[s.cost for s in stages],
            name="Cost",
            marker_color="#ef4444",
            opacity=0.8,
            hovertemplate="%{x}<br>Cost: $%{y:,.2f}<extra></extra>",
        )
    )

    fig.update_layout(
        title="Fulfilled vs Cost by Stage",
        yaxis_title="USD",
        barmode="group",
        template="plotly_dark",
        height=400,
    )

    return fig
