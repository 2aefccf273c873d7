"""CSV and PDF export of the current (filtered, sorted) record collection."""

from __future__ import annotations

import io
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Optional, Union

import pandas as pd
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from .analytics import compute_category_breakdown, compute_statistics
from .exceptions import ExportError
from .formatting import format_display_date, format_pdf_currency, month_name
from .records import RecordKind

logger = logging.getLogger(__name__)

CSV_HEADER = ['Title', 'Category', 'Amount', 'Date', 'Description']
ACCENT = colors.Color(16 / 255, 185 / 255, 129 / 255)


# ---------------------------------------------------------------------------
# CSV
# ---------------------------------------------------------------------------


def records_to_csv(data: pd.DataFrame) -> str:
    """Serialize records in their current order.

    Fields containing commas, quotes or newlines are quoted per RFC 4180.
    """
    table = pd.DataFrame({
        'Title': data['title'].fillna('').astype(str) if 'title' in data else pd.Series(dtype=str),
        'Category': data['category'].fillna('').astype(str) if 'category' in data else pd.Series(dtype=str),
        'Amount': pd.to_numeric(data['amount'], errors='coerce') if 'amount' in data else pd.Series(dtype=float),
        'Date': pd.to_datetime(data['date'], errors='coerce').dt.strftime('%Y-%m-%d') if 'date' in data else pd.Series(dtype=str),
        'Description': data['note'].fillna('').astype(str) if 'note' in data else pd.Series(dtype=str),
    }, columns=CSV_HEADER)
    return table.to_csv(index=False, float_format='%.2f', lineterminator='\n')


def csv_filename(kind: Union[RecordKind, str], today: Optional[date] = None) -> str:
    """``expenses_2024-03-01.csv`` style download name."""
    kind = RecordKind(kind)
    return f"{kind.plural}_{(today or date.today()).isoformat()}.csv"


def write_csv(data: pd.DataFrame, kind: Union[RecordKind, str], directory: Path,
              today: Optional[date] = None) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    target = directory / csv_filename(kind, today)
    target.write_text(records_to_csv(data), encoding='utf-8')
    logger.info("Wrote %d records to %s", len(data), target)
    return target


# ---------------------------------------------------------------------------
# PDF
# ---------------------------------------------------------------------------


def period_label(time_range: str, year: Optional[int] = None, month: Optional[int] = None) -> str:
    """Human label for the analytics period selector (``month`` is 1-based)."""
    if time_range == 'month' and year is not None and month is not None:
        return f"{month_name(month)} {year}"
    if time_range == 'year' and year is not None:
        return f"Year {year}"
    return 'All Time'


def pdf_filename(kind: Union[RecordKind, str], time_range: str, today: Optional[date] = None) -> str:
    kind = RecordKind(kind)
    return f"{kind.value}_report_{time_range}_{(today or date.today()).isoformat()}.pdf"


def _header_style() -> list:
    return [
        ('BACKGROUND', (0, 0), (-1, 0), ACCENT),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
    ]


def build_pdf_report(
    data: pd.DataFrame,
    kind: Union[RecordKind, str],
    period: str = 'All Time',
    generated_at: Optional[datetime] = None,
) -> bytes:
    """Render the analytics report for ``data`` and return the PDF bytes."""
    kind = RecordKind(kind)
    generated_at = generated_at or datetime.now()
    stats = compute_statistics(data)
    breakdown = compute_category_breakdown(data)

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle('ReportTitle', parent=styles['Title'], textColor=ACCENT, alignment=0)
    heading_style = ParagraphStyle('ReportHeading', parent=styles['Heading2'], textColor=ACCENT)
    body_style = styles['BodyText']
    cell_style = ParagraphStyle('Cell', parent=body_style, fontSize=8, leading=10)

    story = [
        Paragraph(f"{kind.label} Report", title_style),
        Paragraph(f"Generated: {generated_at.strftime('%m/%d/%Y, %I:%M:%S %p')}", body_style),
        Paragraph(f"Period: {period}", body_style),
        Spacer(1, 4 * mm),
        Paragraph('Summary Statistics', heading_style),
        Paragraph(f"Total {kind.label}s: {format_pdf_currency(stats.total)}", body_style),
        Paragraph(f"Average {kind.label}: {format_pdf_currency(stats.average)}", body_style),
        Paragraph(f"Highest {kind.label}: {format_pdf_currency(stats.max)}", body_style),
        Paragraph(f"Lowest {kind.label}: {format_pdf_currency(stats.min)}", body_style),
        Paragraph(f"Number of Transactions: {stats.count}", body_style),
    ]

    if breakdown:
        story.append(Paragraph(f"{kind.category_label} Breakdown", heading_style))
        rows = [[kind.category_label, 'Amount', 'Percentage']]
        rows.extend(
            [share.name, format_pdf_currency(share.value), f"{share.percentage:.1f}%"]
            for share in breakdown
        )
        table = Table(rows, hAlign='LEFT')
        table.setStyle(TableStyle(_header_style() + [
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
            ('FONTSIZE', (0, 0), (-1, -1), 10),
        ]))
        story.append(table)

    if not data.empty:
        story.append(Paragraph(f"Detailed {kind.label} List", heading_style))
        rows = [['Title', kind.category_label, 'Amount', 'Date', 'Description']]
        dates = pd.to_datetime(data['date'], errors='coerce')
        amounts = pd.to_numeric(data['amount'], errors='coerce').fillna(0.0)
        for idx in data.index:
            timestamp = dates.loc[idx]
            note = str(data.at[idx, 'note'] or '') if 'note' in data.columns else ''
            rows.append([
                Paragraph(_escape(data.at[idx, 'title']), cell_style),
                str(data.at[idx, 'category']),
                format_pdf_currency(amounts.loc[idx]),
                format_display_date(None if pd.isna(timestamp) else timestamp.date()),
                Paragraph(_escape(note) or '-', cell_style),
            ])
        table = Table(rows, hAlign='LEFT', repeatRows=1,
                      colWidths=[40 * mm, 30 * mm, 25 * mm, 22 * mm, 55 * mm])
        table.setStyle(TableStyle(_header_style() + [
            ('FONTSIZE', (0, 0), (-1, -1), 8),
            ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.whitesmoke]),
        ]))
        story.append(table)

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, title=f"{kind.label} Report",
                            leftMargin=14 * mm, rightMargin=14 * mm)
    doc.build(story)
    return buffer.getvalue()


def _escape(value) -> str:
    text = '' if value is None else str(value)
    return text.replace('&', '&amp;').replace('<', '&lt;').replace('>', '&gt;')


def export_pdf_report(
    data: pd.DataFrame,
    kind: Union[RecordKind, str],
    time_range: str = 'all',
    year: Optional[int] = None,
    month: Optional[int] = None,
    generated_at: Optional[datetime] = None,
) -> bytes:
    """Build the report, converting any rendering fault into :class:`ExportError`."""
    try:
        return build_pdf_report(data, kind, period_label(time_range, year, month), generated_at)
    except Exception as exc:
        logger.error("Error generating PDF: %s", exc, exc_info=True)
        raise ExportError("Failed to generate PDF. Please try again.") from exc
