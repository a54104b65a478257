"""
Chart builders for the triage dashboard.
Return plotly figures; the app renders them with st.plotly_chart.
"""

from typing import Optional, Sequence

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from .dashboard_metrics import format_br_date
from .triage_records import RISK_CATEGORIES, TriageRecord, records_to_payload

COLOR_MAP = {c["label"]: c["color"] for c in RISK_CATEGORIES}
LABELS = {c["key"]: c["label"] for c in RISK_CATEGORIES}


def _empty_figure(message: str) -> go.Figure:
    fig = go.Figure()
    fig.add_annotation(
        text=message, showarrow=False, xref="paper", yref="paper", x=0.5, y=0.5,
        font=dict(size=14, color="#94a3b8"),
    )
    fig.update_layout(xaxis_visible=False, yaxis_visible=False, height=320)
    return fig


def _long_frame(records: Sequence[TriageRecord]) -> pd.DataFrame:
    df = pd.DataFrame(records_to_payload(records))
    df["Data"] = df["dia"].map(format_br_date)
    long_df = df.melt(
        id_vars=["id", "dia", "Data"],
        value_vars=list(LABELS),
        var_name="categoria",
        value_name="Pacientes",
    )
    long_df["Classificação"] = long_df["categoria"].map(LABELS)
    return long_df


def daily_breakdown_figure(record: Optional[TriageRecord]) -> go.Figure:
    """Bar per risk category for a single shift."""
    if record is None:
        return _empty_figure("Sem registros no período")

    df = pd.DataFrame({
        "Classificação": [c["label"] for c in RISK_CATEGORIES],
        "Pacientes": [getattr(record, c["key"]) for c in RISK_CATEGORIES],
    })
    fig = px.bar(
        df, x="Classificação", y="Pacientes", color="Classificação",
        color_discrete_map=COLOR_MAP, text="Pacientes",
        title=f"Classificação do dia {format_br_date(record.dia)}",
    )
    fig.update_layout(showlegend=False, height=320, margin=dict(t=50, b=10, l=10, r=10))
    return fig


def trend_figure(records: Sequence[TriageRecord]) -> go.Figure:
    """Stacked area of the categories across the selected month."""
    if not records:
        return _empty_figure("Sem registros no período")

    long_df = _long_frame(records)
    fig = px.area(
        long_df, x="dia", y="Pacientes", color="Classificação",
        color_discrete_map=COLOR_MAP, title="Evolução no mês",
    )
    fig.update_xaxes(
        tickvals=[r.dia for r in records],
        ticktext=[format_br_date(r.dia)[:5] for r in records],
        title=None,
    )
    fig.update_layout(height=320, margin=dict(t=50, b=10, l=10, r=10), legend_title=None)
    return fig


def comparison_figure(records: Sequence[TriageRecord]) -> go.Figure:
    """Grouped bars per category for each selected shift."""
    if not records:
        return _empty_figure("Escolha os plantões para visualizar o gráfico")

    long_df = _long_frame(records)
    fig = px.bar(
        long_df, x="Data", y="Pacientes", color="Classificação", barmode="group",
        color_discrete_map=COLOR_MAP, title="Desempenho comparativo",
    )
    fig.update_layout(height=380, margin=dict(t=50, b=10, l=10, r=10), legend_title=None)
    return fig
