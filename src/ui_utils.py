"""
UI Utilities for the Triage Dashboard.
Contains the timeline of recorded shifts.
"""

from typing import Any, Dict, Sequence

import streamlit as st
from streamlit_timeline import timeline

from .dashboard_metrics import format_br_date
from .triage_records import RISK_CATEGORIES, TriageRecord


def build_timeline_data(records: Sequence[TriageRecord]) -> Dict[str, Any]:
    """
    TimelineJS payload with one event per shift, grouped by the month.

    Args:
        records: Shifts to show, any order
    """
    events = []
    for r in sorted(records, key=lambda rec: rec.dia):
        year, month, day = r.dia.split("-")
        breakdown = " | ".join(f"{c['label']}: {getattr(r, c['key'])}" for c in RISK_CATEGORIES)
        events.append({
            "start_date": {"year": year, "month": str(int(month)), "day": str(int(day))},
            "text": {
                "headline": f"{format_br_date(r.dia)} - {r.total} atendimentos",
                "text": breakdown,
            },
            "group": f"{month}/{year}",
        })

    return {"events": events}


def render_records_timeline(records: Sequence[TriageRecord], height: int = 320):
    """Render the shift timeline, or a hint when there is nothing to show."""
    if not records:
        st.caption("Nenhum plantão registrado.")
        return

    timeline(build_timeline_data(records), height=height)
