"""
Payslip PDF for a payroll entry.
Returns bytes; nothing is written to disk.
"""
from __future__ import annotations

import io
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import cm
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer, HRFlowable

if TYPE_CHECKING:
    from shiftdesk.models.employee import Employee
    from shiftdesk.models.payroll import PayrollEntry, PayrollPeriod


_NAVY  = colors.HexColor("#1E3A5F")
_LIGHT = colors.HexColor("#F0F4F8")
_WHITE = colors.white
_GRAY  = colors.HexColor("#6B7280")
_GRID  = colors.HexColor("#E5E7EB")

STATUS_LABELS = {
    "DRAFT":    "Draft",
    "APPROVED": "Approved",
    "PAID":     "Paid",
}

METHOD_LABELS = {
    "shifts":         "Average of shift wages",
    "employee_group": "Employee group default",
    "none":           "No wage data",
}


def _fmt_money(val: float | None) -> str:
    if val is None:
        return "-"
    return f"{val:,.2f}"


def _fmt_hours(val: float | None) -> str:
    if not val:
        return "-"
    return f"{val:.2f} h"


def _table(rows: list, widths: list[float], total_row: int | None = None) -> Table:
    style = [
        ("BACKGROUND",    (0, 0), (-1, 0),  _NAVY),
        ("TEXTCOLOR",     (0, 0), (-1, 0),  _WHITE),
        ("FONTNAME",      (0, 0), (-1, 0),  "Helvetica-Bold"),
        ("FONTSIZE",      (0, 0), (-1, -1), 9),
        ("ALIGN",         (1, 0), (-1, -1), "RIGHT"),
        ("ROWBACKGROUNDS", (0, 1), (-1, -1), [_WHITE, _LIGHT]),
        ("TOPPADDING",    (0, 0), (-1, -1), 4),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
        ("LEFTPADDING",   (0, 0), (-1, -1), 6),
        ("RIGHTPADDING",  (0, 0), (-1, -1), 6),
        ("GRID",          (0, 0), (-1, -1), 0.25, _GRID),
    ]
    if total_row is not None:
        style += [
            ("FONTNAME",  (0, total_row), (-1, total_row), "Helvetica-Bold"),
            ("LINEABOVE", (0, total_row), (-1, total_row), 0.5, _NAVY),
        ]
    tbl = Table(rows, colWidths=widths)
    tbl.setStyle(TableStyle(style))
    return tbl


def generate_payslip_pdf(
    entry: "PayrollEntry",
    employee: "Employee",
    period: "PayrollPeriod",
    business_name: str,
) -> bytes:
    """Render the payslip of one payroll entry."""

    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=A4,
        leftMargin=2 * cm,
        rightMargin=2 * cm,
        topMargin=2 * cm,
        bottomMargin=2 * cm,
        title=f"Payslip {employee.full_name} {period.name}",
    )

    styles = getSampleStyleSheet()
    normal = styles["Normal"]
    normal.fontName = "Helvetica"
    normal.fontSize = 9
    normal.leading = 13

    heading = ParagraphStyle(
        "heading",
        parent=normal,
        fontSize=11,
        fontName="Helvetica-Bold",
        textColor=_NAVY,
        spaceAfter=4,
    )
    small_gray = ParagraphStyle("small_gray", parent=normal, fontSize=8, textColor=_GRAY)

    status_label = STATUS_LABELS.get(entry.status, entry.status)
    page_w = A4[0] - 4 * cm
    story = []

    # ── Header ────────────────────────────────────────────────────────────────
    header_tbl = Table(
        [[
            Paragraph("<font color='white'><b>Payslip</b></font>", normal),
            Paragraph(f"<font color='white'>{business_name}</font>", normal),
        ]],
        colWidths=[page_w * 0.6, page_w * 0.4],
    )
    header_tbl.setStyle(TableStyle([
        ("BACKGROUND",    (0, 0), (-1, -1), _NAVY),
        ("ALIGN",         (1, 0), (1, 0),   "RIGHT"),
        ("TOPPADDING",    (0, 0), (-1, -1), 8),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 8),
        ("LEFTPADDING",   (0, 0), (-1, -1), 10),
        ("RIGHTPADDING",  (0, 0), (-1, -1), 10),
    ]))
    story.append(header_tbl)
    story.append(Spacer(1, 0.4 * cm))

    # ── Employee + period ─────────────────────────────────────────────────────
    period_label = f"{period.name} ({period.start_date:%Y-%m-%d} to {period.end_date:%Y-%m-%d})"
    info_rows = [
        ["Employee", employee.full_name, "Period", period_label],
        ["Employee no.", employee.employee_no or "-", "Status", status_label],
    ]
    col_w = page_w / 4
    info_tbl = Table(info_rows, colWidths=[col_w * 0.7, col_w * 1.1, col_w * 0.5, col_w * 1.7])
    info_tbl.setStyle(TableStyle([
        ("FONTNAME",      (0, 0), (0, -1), "Helvetica-Bold"),
        ("FONTNAME",      (2, 0), (2, -1), "Helvetica-Bold"),
        ("FONTSIZE",      (0, 0), (-1, -1), 9),
        ("TOPPADDING",    (0, 0), (-1, -1), 3),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
        ("LEFTPADDING",   (0, 0), (-1, -1), 4),
        ("ROWBACKGROUNDS", (0, 0), (-1, -1), [_WHITE, _LIGHT]),
    ]))
    story.append(info_tbl)
    story.append(Spacer(1, 0.4 * cm))

    # ── Hours ─────────────────────────────────────────────────────────────────
    story.append(Paragraph("Hours", heading))
    hours_rows = [
        ["", "Hours"],
        ["Regular", _fmt_hours(float(entry.regular_hours or 0))],
        ["Overtime", _fmt_hours(float(entry.overtime_hours or 0))],
        ["Total", _fmt_hours(float(entry.total_hours or 0))],
    ]
    story.append(_table(hours_rows, [page_w * 0.7, page_w * 0.3], total_row=3))
    story.append(Spacer(1, 0.4 * cm))

    # ── Pay ───────────────────────────────────────────────────────────────────
    story.append(Paragraph("Pay", heading))
    regular_pay = float(entry.regular_hours or 0) * float(entry.regular_rate or 0)
    overtime_pay = float(entry.overtime_hours or 0) * float(entry.overtime_rate or 0)
    pay_rows = [
        ["", "Rate", "Amount"],
        ["Regular pay", _fmt_money(float(entry.regular_rate or 0)), _fmt_money(regular_pay)],
        ["Overtime pay", _fmt_money(float(entry.overtime_rate or 0)), _fmt_money(overtime_pay)],
    ]
    bonuses = float(entry.bonuses or 0)
    if bonuses:
        pay_rows.append(["Bonuses", "", _fmt_money(bonuses)])
    pay_rows.append(["Gross pay", "", _fmt_money(float(entry.gross_pay or 0))])
    deductions = float(entry.deductions or 0)
    if deductions:
        pay_rows.append(["Deductions", "", _fmt_money(-deductions)])
    pay_rows.append(["Net pay", "", _fmt_money(float(entry.net_pay or 0))])
    story.append(_table(pay_rows, [page_w * 0.5, page_w * 0.2, page_w * 0.3], total_row=len(pay_rows) - 1))

    story.append(Spacer(1, 0.2 * cm))
    story.append(Paragraph(
        f"Rate source: {METHOD_LABELS.get(entry.wage_calculation_method, entry.wage_calculation_method)}",
        small_gray,
    ))

    # ── Notes ─────────────────────────────────────────────────────────────────
    if entry.notes:
        story.append(Spacer(1, 0.4 * cm))
        story.append(Paragraph("Notes", heading))
        story.append(Paragraph(entry.notes, normal))

    # ── Footer ────────────────────────────────────────────────────────────────
    story.append(Spacer(1, 0.5 * cm))
    story.append(HRFlowable(width="100%", thickness=0.5, color=_GRAY))
    story.append(Spacer(1, 0.15 * cm))
    now = datetime.now(timezone.utc).strftime("%Y-%m-%d")
    story.append(Paragraph(f"Generated on {now} · {business_name} · Status: {status_label}", small_gray))

    doc.build(story)
    return buf.getvalue()
