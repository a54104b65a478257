"""
Export Engine
Spreadsheet and PDF exports of the triage records.

- Excel: one sheet, one row per record, localized date + counts + total
- PDF: single landscape A4 page with a grouped bar chart of the selected
  shifts and a per-day table
"""

from datetime import datetime
from io import BytesIO
from typing import List, Optional, Sequence
import logging

import pandas as pd
from reportlab.graphics.charts.barcharts import VerticalBarChart
from reportlab.graphics.charts.legends import Legend
from reportlab.graphics.shapes import Drawing
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import KeepInFrame, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from .dashboard_metrics import format_br_date
from .triage_records import RISK_CATEGORIES, TriageRecord

logger = logging.getLogger(__name__)

EXCEL_FILENAME = "relatorio_triagem.xlsx"
EXCEL_SHEET = "Dados Triagem"
EXCEL_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

PDF_FILENAME = "comparativo_triagem.pdf"
PDF_MIME = "application/pdf"

EXCEL_COLUMNS = ["Data"] + [c["label"] for c in RISK_CATEGORIES] + ["Total"]


def records_frame(records: Sequence[TriageRecord]) -> pd.DataFrame:
    """Tabular view of the records with spreadsheet column names."""
    rows = []
    for r in records:
        row = {"Data": format_br_date(r.dia)}
        for c in RISK_CATEGORIES:
            row[c["label"]] = getattr(r, c["key"])
        row["Total"] = r.total
        rows.append(row)
    return pd.DataFrame(rows, columns=EXCEL_COLUMNS)


def build_records_excel(records: Sequence[TriageRecord]) -> BytesIO:
    """Create the triage report workbook."""
    out = BytesIO()
    with pd.ExcelWriter(out, engine="openpyxl") as writer:
        records_frame(records).to_excel(writer, index=False, sheet_name=EXCEL_SHEET)
    out.seek(0)
    logger.info(f"Built Excel export with {len(records)} rows")
    return out


def _comparison_chart(records: Sequence[TriageRecord], width: float, height: float) -> Drawing:
    drawing = Drawing(width, height)

    chart = VerticalBarChart()
    chart.x = 40
    chart.y = 30
    chart.width = width - 160
    chart.height = height - 50
    chart.data = [tuple(getattr(r, c["key"]) for r in records) for c in RISK_CATEGORIES]
    chart.categoryAxis.categoryNames = [format_br_date(r.dia) for r in records]
    chart.categoryAxis.labels.fontSize = 8
    chart.valueAxis.valueMin = 0
    chart.valueAxis.labels.fontSize = 8
    chart.groupSpacing = 10
    for i, c in enumerate(RISK_CATEGORIES):
        chart.bars[i].fillColor = colors.HexColor(c["color"])
        chart.bars[i].strokeColor = None
    drawing.add(chart)

    legend = Legend()
    legend.x = width - 110
    legend.y = height - 20
    legend.fontSize = 8
    legend.alignment = "right"
    legend.colorNamePairs = [(colors.HexColor(c["color"]), c["label"]) for c in RISK_CATEGORIES]
    drawing.add(legend)

    return drawing


def build_comparison_pdf(
    records: Sequence[TriageRecord],
    generated_at: Optional[datetime] = None,
) -> BytesIO:
    """
    Create the multi-day comparison report.

    Args:
        records: Selected shifts, in the order they should appear
        generated_at: Timestamp printed in the header (defaults to now)

    Raises:
        ValueError: If no records are selected
    """
    if not records:
        raise ValueError("Select at least one shift to export")

    generated_at = generated_at or datetime.now()
    buf = BytesIO()
    page = landscape(A4)
    doc = SimpleDocTemplate(
        buf, pagesize=page,
        leftMargin=12 * mm, rightMargin=12 * mm, topMargin=10 * mm, bottomMargin=10 * mm,
        title="Comparativo de Triagem",
    )
    styles = getSampleStyleSheet()
    frame_width, frame_height = doc.width - 12, doc.height - 12

    story: List = [
        Paragraph("Comparativo Multi-Datas", styles["Title"]),
        Paragraph(f"Gerado em {generated_at.strftime('%d/%m/%Y %H:%M')}", styles["Normal"]),
        Spacer(1, 4 * mm),
        _comparison_chart(records, frame_width, 90 * mm),
        Spacer(1, 4 * mm),
    ]

    header = ["Data"] + [c["label"] for c in RISK_CATEGORIES] + ["Total"]
    rows = [header] + [
        [format_br_date(r.dia)] + [str(getattr(r, c["key"])) for c in RISK_CATEGORIES] + [str(r.total)]
        for r in records
    ]
    table = Table(rows, repeatRows=1)
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#1e293b")),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 8),
        ("ALIGN", (1, 0), (-1, -1), "CENTER"),
        ("GRID", (0, 0), (-1, -1), 0.25, colors.HexColor("#cbd5e1")),
        ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#f1f5f9")]),
    ]))
    story.append(table)

    # Scaled down to the frame (6pt padding per side); the report is always one page
    doc.build([KeepInFrame(frame_width, frame_height, story, mode="shrink")])
    buf.seek(0)
    logger.info(f"Built comparison PDF for {len(records)} shifts")
    return buf
