import csv
import io
import logging
from datetime import datetime, timezone

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from constructx.models.financial import EXPORT_FORMATS

logger = logging.getLogger(__name__)

HEADER_FILL = PatternFill(start_color="354A5F", end_color="354A5F", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True, size=11)
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class ExportNotImplemented(Exception):
    """Raised for formats that are accepted but not produced yet (pdf)."""


def _apply_header_style(ws, row: int, col_count: int) -> None:
    for col in range(1, col_count + 1):
        cell = ws.cell(row=row, column=col)
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        cell.border = THIN_BORDER
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)


def _auto_width(ws) -> None:
    """Size columns to content, capped at 60 chars."""
    for col in ws.columns:
        max_len = 0
        col_letter = get_column_letter(col[0].column)
        for cell in col:
            if cell.value is not None:
                max_len = max(max_len, min(len(str(cell.value)), 60))
        ws.column_dimensions[col_letter].width = max(max_len + 4, 12)


def flatten(data, prefix=""):
    """Flatten nested report data into ``[(key, value)]`` rows.

    Dicts join keys with ``.``; lists of dicts use ``key[i].field``.
    """
    rows = []
    if isinstance(data, dict):
        for key, value in data.items():
            path = f"{prefix}.{key}" if prefix else str(key)
            rows.extend(flatten(value, path))
    elif isinstance(data, list):
        if not data:
            rows.append((prefix, ""))
        for i, value in enumerate(data):
            rows.extend(flatten(value, f"{prefix}[{i}]"))
    else:
        rows.append((prefix, data))
    return rows


def _table_sections(data):
    """Split report data into scalar rows and list-of-dict tables."""
    scalars, tables = [], []
    for key, value in (data or {}).items():
        if isinstance(value, list) and value and all(isinstance(v, dict) for v in value):
            tables.append((key, value))
        elif isinstance(value, dict):
            scalars.extend(flatten(value, key))
        else:
            scalars.append((key, value))
    return scalars, tables


def report_to_xlsx(report) -> bytes:
    """Styled workbook: a Summary sheet plus one sheet per tabular section."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Summary"

    ws.merge_cells("A1:D1")
    ws["A1"] = report.name
    ws["A1"].font = Font(size=16, bold=True, color="354A5F")
    ws["A2"] = f"{report.type} | {report.start_date.isoformat()} to {report.end_date.isoformat()}"
    ws["A3"] = f"Generated: {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M UTC')}"
    ws["A3"].font = Font(italic=True, color="666666")

    scalars, tables = _table_sections(report.data)

    row = 5
    ws.cell(row=row, column=1, value="Field")
    ws.cell(row=row, column=2, value="Value")
    _apply_header_style(ws, row, 2)
    for key, value in scalars:
        row += 1
        ws.cell(row=row, column=1, value=key).border = THIN_BORDER
        ws.cell(row=row, column=2, value=value if not isinstance(value, (dict, list)) else str(value)).border = THIN_BORDER
    _auto_width(ws)

    for title, records in tables:
        sheet = wb.create_sheet(title[:31].replace("_", " ").title())
        headers = list(records[0].keys())
        for col, header in enumerate(headers, 1):
            sheet.cell(row=1, column=col, value=header)
        _apply_header_style(sheet, 1, len(headers))
        for r, record in enumerate(records, 2):
            for col, header in enumerate(headers, 1):
                value = record.get(header)
                if isinstance(value, (dict, list)):
                    value = str(value)
                sheet.cell(row=r, column=col, value=value).border = THIN_BORDER
        _auto_width(sheet)

    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def report_to_csv(report) -> str:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(["Report", report.name])
    writer.writerow(["Type", report.type])
    writer.writerow(["Start Date", report.start_date.isoformat()])
    writer.writerow(["End Date", report.end_date.isoformat()])
    writer.writerow([])
    writer.writerow(["Field", "Value"])
    for key, value in flatten(report.data or {}):
        writer.writerow([key, value])
    return output.getvalue()


def export_report(report, fmt):
    """Return ``(payload, mimetype, filename)`` for the requested format.

    ``xlsx`` is accepted as an alias for ``excel``.

    Raises:
        ValueError: unknown format.
        ExportNotImplemented: pdf.
    """
    fmt = (fmt or "").lower()
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"Invalid format. Must be one of: {', '.join(sorted(EXPORT_FORMATS))}")
    stem = f"report-{report.id}"
    if fmt in ("excel", "xlsx"):
        return report_to_xlsx(report), XLSX_MIMETYPE, f"{stem}.xlsx"
    if fmt == "csv":
        return report_to_csv(report).encode("utf-8"), "text/csv", f"{stem}.csv"
    logger.info("PDF export requested for report %s", report.id)
    raise ExportNotImplemented("PDF export not implemented yet.")
