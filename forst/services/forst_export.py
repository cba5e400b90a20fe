"""
FORST spreadsheet export.

Renders the complete report dict (the same object /complete-report returns)
into ONE worksheet. Money is shown in lakhs, percentages to one decimal.

Section order:
    title block → Offers Highlights → Zone-wise Monthly → Quarterly Forecast
    → Product-Type Summary → Person-wise Performance → Product Forecast → footer
"""

import io
import logging
from datetime import datetime, timezone

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from forst.services.aggregation import MONTH_NAMES, to_lakhs
from forst.services.forst_records import ReportSettings

logger = logging.getLogger(__name__)

HEADER_FILL = PatternFill(start_color="354A5F", end_color="354A5F", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True, size=11)
SECTION_FILL = PatternFill(start_color="1F77B4", end_color="1F77B4", fill_type="solid")
SECTION_FONT = Font(color="FFFFFF", bold=True, size=13)
SUBSECTION_FONT = Font(bold=True, size=11, color="354A5F")
TOTAL_FILL = PatternFill(start_color="E8EEF4", end_color="E8EEF4", fill_type="solid")
TOTAL_FONT = Font(bold=True)
POSITIVE_FONT = Font(color="27AE60", bold=True)
NEGATIVE_FONT = Font(color="E74C3C", bold=True)
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)

MONEY_FORMAT = "#,##0.00"
PCT_FORMAT = "0.0"

# Column kinds for _write_table
TEXT, COUNT, MONEY, PCT, DEV = "text", "count", "money", "pct", "dev"


def sheet_title(year: int) -> str:
    return f"FORST {year}"


def export_filename(year: int) -> str:
    return f"FORST_Report_{year}.xlsx"


# ── Cell helpers ─────────────────────────────────────────────────────────────


def _apply_header_style(ws, row: int, col_count: int) -> None:
    """Apply dark-header styling to an Excel row (1-indexed)."""
    for col in range(1, col_count + 1):
        cell = ws.cell(row=row, column=col)
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        cell.border = THIN_BORDER
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)


def _auto_width(ws) -> None:
    """Auto-size column widths based on content (capped at 40 chars)."""
    widths: dict[int, int] = {}
    for row in ws.iter_rows():
        for cell in row:
            if cell.value is None:
                continue
            widths[cell.column] = max(widths.get(cell.column, 0), min(len(str(cell.value)), 40))
    for col, width in widths.items():
        ws.column_dimensions[get_column_letter(col)].width = max(width + 2, 12)


def _section(ws, row: int, title: str, width: int) -> int:
    ws.merge_cells(start_row=row, start_column=1, end_row=row, end_column=width)
    cell = ws.cell(row=row, column=1, value=title)
    cell.fill = SECTION_FILL
    cell.font = SECTION_FONT
    cell.alignment = Alignment(horizontal="left", vertical="center")
    return row + 1


def _subsection(ws, row: int, title: str) -> int:
    ws.cell(row=row, column=1, value=title).font = SUBSECTION_FONT
    return row + 1


def _display(value, kind: str, divisor: int):
    if value is None:
        return None
    if kind == MONEY:
        return to_lakhs(value, divisor)
    if kind in (PCT, DEV):
        return round(value or 0, 1)
    return value


def _write_table(ws, row: int, columns, rows, settings: ReportSettings, total_row=None) -> int:
    """Header + data rows (+ optional bold total row). Returns the next free row."""
    for col, (header, _kind) in enumerate(columns, 1):
        ws.cell(row=row, column=col, value=header)
    _apply_header_style(ws, row, len(columns))
    row += 1

    body = [(values, False) for values in rows]
    if total_row is not None:
        body.append((total_row, True))

    for values, is_total in body:
        for col, ((_header, kind), value) in enumerate(zip(columns, values), 1):
            cell = ws.cell(row=row, column=col, value=_display(value, kind, settings.lakh_divisor))
            cell.border = THIN_BORDER
            if kind == MONEY:
                cell.number_format = MONEY_FORMAT
            elif kind in (PCT, DEV):
                cell.number_format = PCT_FORMAT
            if is_total:
                cell.fill = TOTAL_FILL
                cell.font = TOTAL_FONT
            if kind == DEV and value is not None:
                cell.font = POSITIVE_FONT if (value or 0) >= 0 else NEGATIVE_FONT
        row += 1
    return row + 1


# ── Sections ─────────────────────────────────────────────────────────────────


def _highlights_section(ws, row, report, settings, width):
    row = _section(ws, row, "Offers Highlights", width)
    columns = [
        ("Zone", TEXT), ("No. of Offers", COUNT), ("Offers Value", MONEY),
        ("Orders Received", MONEY), ("No. of Orders", COUNT), ("Open Funnel", MONEY),
        ("Order Booking", MONEY), ("BU", MONEY), ("Dev %", DEV),
        ("Balance BU", MONEY), ("Hit Rate %", PCT),
    ]

    def _values(r):
        return [
            r["zoneName"], r["numOffers"], r["offersValue"], r["ordersReceived"],
            r["numOrders"], r["openFunnel"], r["orderBooking"], r["bu"],
            r["devPercent"], r["balanceBu"], r["hitRate"],
        ]

    return _write_table(
        ws, row, columns, [_values(r) for r in report["zones"]], settings,
        total_row=_values(report["totals"]),
    )


def _zone_monthly_section(ws, row, report, settings, width):
    row = _section(ws, row, "Zone-wise Monthly", width)
    columns = [
        ("Month", TEXT), ("No. of Offers", COUNT), ("Offers Value", MONEY),
        ("Orders Received", MONEY), ("Open Funnel", MONEY), ("Order Booking", MONEY),
        ("BU", MONEY), ("Dev %", DEV), ("Balance BU", MONEY),
        ("Offers MoM %", DEV), ("Orders MoM %", DEV),
    ]
    for zone in report["zones"]:
        row = _subsection(ws, row, zone["zoneName"])
        rows = [
            [
                m["monthName"], m["numOffers"], m["offersValue"], m["ordersReceived"],
                m["openFunnel"], m["orderBooking"], m["bu"], m["devPercent"],
                m["balanceBu"], m["offersMomPercent"], m["ordersMomPercent"],
            ]
            for m in zone["months"]
        ]
        t = zone["totals"]
        total = [
            "TOTAL", t["numOffers"], t["offersValue"], t["ordersReceived"], t["openFunnel"],
            t["orderBooking"], t["bu"], t["devPercent"], t["balanceBu"], None, None,
        ]
        row = _write_table(ws, row, columns, rows, settings, total_row=total)
    return row


def _quarterly_section(ws, row, report, settings, width):
    row = _section(ws, row, "Quarterly Forecast", width)
    row = _subsection(
        ws, row,
        f"Target source: {report['targetSource']}  |  "
        f"Yearly target: {to_lakhs(report['yearlyTarget'], settings.lakh_divisor)} L",
    )
    columns = [
        ("Quarter", TEXT), ("Forecast", MONEY), ("Actual", MONEY), ("Target", MONEY),
        ("Forecast Ach. %", PCT), ("Actual Ach. %", PCT), ("Dev %", DEV), ("Gap", MONEY),
    ] + [(zone_name, MONEY) for zone_name in report["zones"]]
    rows = [
        [
            q["quarter"], q["forecast"], q["actual"], q["target"],
            q["forecastAchievement"], q["actualAchievement"], q["devPercent"], q["gap"],
        ] + [q["byZone"].get(zone_name, 0) for zone_name in report["zones"]]
        for q in report["quarters"]
    ]
    return _write_table(ws, row, columns, rows, settings)


def _product_type_section(ws, row, report, settings, width):
    row = _section(ws, row, "Product-Type Summary", width)
    codes = settings.product_codes_with_unknown
    columns = (
        [("Person", TEXT)]
        + [(settings.product_label(code), MONEY) for code in codes]
        + [("Total", MONEY)]
    )
    for zone in report["zones"]:
        row = _subsection(ws, row, zone["zoneName"])
        rows = [
            [p["userName"]] + [p["products"][code] for code in codes] + [p["total"]]
            for p in zone["persons"]
        ]
        total = ["TOTAL"] + [zone["productTotals"][code] for code in codes] + [zone["total"]]
        row = _write_table(ws, row, columns, rows, settings, total_row=total)
    return row


def _person_section(ws, row, report, settings, width):
    row = _section(ws, row, "Person-wise Performance", width)
    codes = settings.product_codes_with_unknown
    columns = (
        [("Month", TEXT)]
        + [(settings.product_label(code), MONEY) for code in codes]
        + [("Total", MONEY)]
    )
    for person in report["persons"]:
        row = _subsection(
            ws, row,
            f"{person['userName']} ({person['zoneName']})  |  Offers: {person['numOffers']}  "
            f"Orders: {person['numOrders']}  Hit rate: {person['hitRate']}%",
        )
        rows = [
            [m["monthName"]] + [m["products"][code] for code in codes] + [m["total"]]
            for m in person["months"]
        ]
        total = ["TOTAL"] + [person["productTotals"][code] for code in codes] + [person["total"]]
        row = _write_table(ws, row, columns, rows, settings, total_row=total)
    return row


def _product_forecast_section(ws, row, report, settings, width):
    row = _section(ws, row, "Product Forecast", width)
    columns = [("Product", TEXT)] + [(name, MONEY) for name in MONTH_NAMES] + [("Total", MONEY)]
    for zone in report["zones"]:
        row = _subsection(ws, row, zone["zoneName"])
        rows = [[p["label"]] + list(p["months"]) + [p["total"]] for p in zone["products"]]
        total = ["TOTAL"] + list(zone["monthTotals"]) + [zone["total"]]
        row = _write_table(ws, row, columns, rows, settings, total_row=total)
    return row


def _footer(ws, row, report, settings):
    highlights = report["highlights"]
    totals = highlights["totals"]
    columns = [
        ("Summary", TEXT), ("Total Offers", COUNT), ("Offers Value", MONEY),
        ("Total Orders", COUNT), ("Orders Received", MONEY), ("Hit Rate %", PCT),
        ("Forecast Grand Total", MONEY),
    ]
    footer = [
        "GRAND TOTAL", highlights["totalOffers"], totals["offersValue"],
        highlights["totalOrders"], totals["ordersReceived"], highlights["hitRate"],
        report["productForecast"]["grandTotal"],
    ]
    return _write_table(ws, row, columns, [], settings, total_row=footer)


# ── Public API ───────────────────────────────────────────────────────────────


def render_complete_report_xlsx(report: dict, settings: ReportSettings) -> bytes:
    """
    Render the complete FORST report into a single-sheet workbook.
    Returns the .xlsx file content as bytes.
    """
    year = report["year"]
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_title(year)

    width = max(14, len(settings.product_codes_with_unknown) + 2)

    ws.merge_cells(start_row=1, start_column=1, end_row=1, end_column=width)
    ws["A1"] = f"FORST Report {year}"
    ws["A1"].font = Font(size=16, bold=True)
    generated = report.get("generatedAt") or datetime.now(timezone.utc).isoformat()
    ws["A2"] = f"Generated: {generated}"
    ws["A2"].font = Font(size=10, italic=True, color="666666")
    ws["A3"] = "All values in Lakhs (₹). Percentages rounded to one decimal."
    ws["A3"].font = Font(size=10, italic=True, color="666666")

    row = 5
    row = _highlights_section(ws, row, report["highlights"], settings, width)
    row = _zone_monthly_section(ws, row, report["zoneMonthly"], settings, width)
    row = _quarterly_section(ws, row, report["quarterly"], settings, width)
    row = _product_type_section(ws, row, report["productTypeSummary"], settings, width)
    row = _person_section(ws, row, report["personPerformance"], settings, width)
    row = _product_forecast_section(ws, row, report["productForecast"], settings, width)
    row = _footer(ws, row, report, settings)

    _auto_width(ws)
    ws.freeze_panes = "B5"

    buf = io.BytesIO()
    wb.save(buf)
    logger.info("Rendered FORST workbook year=%s rows=%d", year, row, extra={"year": year})
    return buf.getvalue()
