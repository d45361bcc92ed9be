# report.py
from __future__ import annotations

import io
from datetime import date, datetime
from typing import Iterable

import pandas as pd
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from aggregation import WorkHoursAggregator
from domain import Shift
from services import effective_start
from utils import format_instant, format_minutes

STATUS_LABELS = {"planned": "Geplant", "running": "Läuft", "finished": "Beendet"}
MONTHS_DE = ["Januar", "Februar", "März", "April", "Mai", "Juni", "Juli",
             "August", "September", "Oktober", "November", "Dezember"]


def shifts_to_dataframe(shifts: Iterable[Shift], now: datetime,
                        aggregator: WorkHoursAggregator | None = None) -> pd.DataFrame:
    aggregator = aggregator or WorkHoursAggregator()
    rows = []
    for s in shifts:
        begin = effective_start(s)
        week = s.iso_year_week
        rows.append({
            "ID": s.id,
            "Date": begin.date().isoformat() if begin else "",
            "ISO Week": f"{week[0]}-W{week[1]:02d}" if week else "",
            "Start": format_instant(begin, "%H:%M"),
            "End": format_instant(s.end, "%H:%M"),
            "Pause (min)": s.pause_minutes,
            "Worked": format_minutes(aggregator.contribution(s, now)),
            "Status": STATUS_LABELS[s.status.value],
        })
    df = pd.DataFrame(rows)
    if not df.empty:
        df = df.sort_values(["Date", "Start"], ascending=False).reset_index(drop=True)
    return df


def month_title(day: date) -> str:
    return f"{MONTHS_DE[day.month - 1]} {day.year}"


def month_report_pdf(shifts: Iterable[Shift], month_day: date, now: datetime,
                     title: str = "Schichten",
                     aggregator: WorkHoursAggregator | None = None) -> bytes:
    """Landscape A4 table of the month's shifts plus a summary box."""
    aggregator = aggregator or WorkHoursAggregator()
    begin, end = aggregator.month_window(month_day)
    in_month = [s for s in shifts if (b := effective_start(s)) is not None and begin <= b < end]

    df = shifts_to_dataframe(in_month, now, aggregator)
    if not df.empty:
        df = df.drop(columns=["ID"]).sort_values(["Date", "Start"]).reset_index(drop=True)
    total = aggregator.total_minutes(in_month, begin, end, now)
    average = aggregator.average_per_shift(in_month, now)

    buf = io.BytesIO()
    doc = SimpleDocTemplate(buf, pagesize=landscape(A4), topMargin=24, bottomMargin=24, leftMargin=24, rightMargin=24)
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(name="TitleCentered", parent=styles["Title"], alignment=TA_CENTER)
    summary_style = ParagraphStyle(
        name="Summary", parent=styles["Normal"], alignment=TA_CENTER,
        textColor=colors.black, fontSize=11, leading=13, spaceBefore=4, spaceAfter=2
    )
    story = [Paragraph(f"{title} · {month_title(begin.date())}", title_style), Spacer(1, 8)]
    if df.empty:
        story.append(Paragraph("Keine Schichten in diesem Monat.", styles["Normal"]))
    else:
        data = [list(df.columns)] + df.astype(str).values.tolist()
        table = Table(data, repeatRows=1, hAlign="CENTER")
        table.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#F5F5F7")),
            ("ALIGN", (0, 0), (-1, -1), "CENTER"),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 10),
            ("GRID", (0, 0), (-1, -1), 0.25, colors.HexColor("#E0E0E0")),
            ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.whitesmoke, colors.white]),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ]))
        story.append(table)

    lines = [f"Gesamt im Monat: {format_minutes(total)}",
             f"Durchschnitt / Schicht: {format_minutes(average) if average else '—'}"]
    story.append(Spacer(1, 12))
    summary = Table([[Paragraph(line, summary_style)] for line in lines],
                    colWidths=[min(520, 0.65 * doc.width)], hAlign="CENTER")
    summary.setStyle(TableStyle([
        ("ALIGN", (0, 0), (-1, -1), "CENTER"),
        ("BOX", (0, 0), (-1, -1), 0.6, colors.HexColor("#C7CCD6")),
    ]))
    story.append(summary)

    def draw_page_border(canvas, doc_obj):
        canvas.saveState()
        w, h = doc_obj.pagesize
        canvas.setStrokeColor(colors.HexColor("#C7CCD6"))
        canvas.setLineWidth(0.8)
        canvas.rect(12, 12, w - 24, h - 24)
        canvas.restoreState()

    doc.build(story, onFirstPage=draw_page_border, onLaterPages=draw_page_border)
    return buf.getvalue()


__all__ = ["shifts_to_dataframe", "month_title", "month_report_pdf"]
