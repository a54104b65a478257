"""
Dashboard Metrics
Derived figures for the triage dashboard: month grouping, last-shift KPIs,
monthly totals, peak/low days and multi-day comparison.

All functions are pure and take the record list as input.
"""

from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .triage_records import CATEGORY_KEYS, RISK_CATEGORIES, TriageRecord

# pt-BR month names (no locale dependency on the host)
MONTH_NAMES_PT = [
    "janeiro", "fevereiro", "março", "abril", "maio", "junho",
    "julho", "agosto", "setembro", "outubro", "novembro", "dezembro",
]


def format_br_date(dia: str) -> str:
    """
    Format an ISO date as DD/MM/YYYY.

    Examples:
        >>> format_br_date("2023-10-05")
        '05/10/2023'
    """
    year, month, day = dia.split("-")
    return f"{day}/{month}/{year}"


def month_key(dia: str) -> str:
    return dia[:7]


def month_label(key: str) -> str:
    """
    Human label for a YYYY-MM month key.

    Examples:
        >>> month_label("2023-10")
        'outubro de 2023'
    """
    year, month = key.split("-")
    return f"{MONTH_NAMES_PT[int(month) - 1]} de {year}"


def available_months(records: Iterable[TriageRecord]) -> List[str]:
    """Distinct month keys, oldest first."""
    return sorted({month_key(r.dia) for r in records})


def filter_month(records: Iterable[TriageRecord], key: str) -> List[TriageRecord]:
    """Records of one month sorted by day. An empty key selects everything."""
    selected = [r for r in records if not key or month_key(r.dia) == key]
    return sorted(selected, key=lambda r: r.dia)


def last_record(records: Sequence[TriageRecord]) -> Optional[TriageRecord]:
    """Most recent shift of a day-sorted list."""
    return records[-1] if records else None


def category_shares(record: Optional[TriageRecord]) -> Dict[str, float]:
    """
    Percentage of the day's total per category, one decimal.

    A zero total is treated as 1 so an empty day shows 0% everywhere.
    """
    if record is None:
        return {key: 0.0 for key in CATEGORY_KEYS}
    total = record.total or 1
    return {key: round(getattr(record, key) / total * 100, 1) for key in CATEGORY_KEYS}


def monthly_totals(records: Iterable[TriageRecord]) -> Dict[str, int]:
    totals = {key: 0 for key in CATEGORY_KEYS + ["total"]}
    for r in records:
        for key in CATEGORY_KEYS:
            totals[key] += getattr(r, key)
        totals["total"] += r.total
    return totals


def peak_and_low(records: Sequence[TriageRecord]) -> Tuple[Optional[TriageRecord], Optional[TriageRecord]]:
    """
    Busiest and quietest day by total.

    On ties the busiest is the earliest such day and the quietest is the
    latest such day.
    """
    if not records:
        return None, None
    by_total = sorted(records, key=lambda r: (-r.total, r.dia))
    return by_total[0], by_total[-1]


def history_rows(records: Iterable[TriageRecord]) -> List[TriageRecord]:
    """Records newest first, for the history table."""
    return sorted(records, key=lambda r: r.dia, reverse=True)


def comparison_records(records: Iterable[TriageRecord], ids: Iterable[str]) -> List[TriageRecord]:
    wanted = set(ids)
    return sorted((r for r in records if r.id in wanted), key=lambda r: r.dia)


def day_over_day(records: Sequence[TriageRecord]) -> Optional[int]:
    """Change in total between the last two shifts, None with fewer than two."""
    if len(records) < 2:
        return None
    return records[-1].total - records[-2].total


def records_context(records: Iterable[TriageRecord]) -> str:
    """
    Compact text rendering of the records for model prompts.

    Examples:
        >>> from src.triage_records import make_record
        >>> records_context([make_record("2023-10-01", {"verde": 3}, record_id="1")])
        '01/10/2023: Vermelho 0, Laranja (CRAI) 0, Amarelo 0, Verde 3, Azul 0, Total 3'
    """
    lines = []
    for r in records:
        parts = [f"{c['label']} {getattr(r, c['key'])}" for c in RISK_CATEGORIES]
        lines.append(f"{format_br_date(r.dia)}: {', '.join(parts)}, Total {r.total}")
    return "\n".join(lines)
