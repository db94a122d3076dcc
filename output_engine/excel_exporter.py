"""
Excel exporter — writes the award report to a formatted .xlsx file.

The workbook has two sheets:
  1. "Bidder Summary" — one row per bidder, most recent award first
  2. "Raw Awards"     — every tender record found, in processing order

Each sheet has a merged title in row 1, the header in row 2 and data
from row 3 onwards.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Sequence, Tuple, Union

import openpyxl
from openpyxl.styles import (
    Alignment,
    Border,
    Font,
    PatternFill,
    Side,
)
from openpyxl.utils import get_column_letter

from sources.models import NormalizedRow, SummaryRow

logger = logging.getLogger(__name__)

SUMMARY_SHEET = "Bidder Summary"
RAW_SHEET     = "Raw Awards"

# ── Colour fills ──────────────────────────────────────────────────────────────
FILL_HEADER  = PatternFill("solid", fgColor="1B3A6B")   # Navy blue header
FILL_ALT_ROW = PatternFill("solid", fgColor="F0F4FF")   # Light blue alt row

FONT_HEADER = Font(name="Calibri", bold=True, color="FFFFFF", size=11)
FONT_NAME   = Font(name="Calibri", bold=True, color="1B3A6B", size=10)
FONT_BODY   = Font(name="Calibri", size=10)

THIN_BORDER = Border(
    left=Side(style="thin", color="D0D7E5"),
    right=Side(style="thin", color="D0D7E5"),
    top=Side(style="thin", color="D0D7E5"),
    bottom=Side(style="thin", color="D0D7E5"),
)

ColumnDef = Tuple[str, int, str, Callable]

SUMMARY_COLUMNS: List[ColumnDef] = [
    # (header,             width, number_format, getter)
    ("Company Name",       36,    "@",          lambda s: s.company_name),
    ("Award Notice Date",  18,    "@",          lambda s: s.award_notice_date),
    ("Latest Award (M)",   16,    "#,##0.0",    lambda s: s.latest_price_million),
    ("Award Count",        12,    "0",          lambda s: s.cumulative_count),
    ("Total Award (M)",    16,    "#,##0.0",    lambda s: s.cumulative_sum_million),
]

RAW_COLUMNS: List[ColumnDef] = [
    ("Source File",        22,    "@",            lambda r: r.source_file),
    ("Tender No.",         20,    "@",            lambda r: r.tender_no),
    ("Tender Name",        48,    "@",            lambda r: r.tender_name),
    ("Organisation",       28,    "@",            lambda r: r.org_name),
    ("Bidder",             32,    "@",            lambda r: r.bidder_name),
    ("Award Date",         14,    "@",            lambda r: r.award_date),
    ("Award Price",        16,    "#,##0",        lambda r: r.award_price),
    ("Award Price (M)",    16,    "#,##0.000000", lambda r: r.award_price_million),
]

_WRAP_HEADERS = ("Company Name", "Tender Name", "Organisation")


def _write_sheet(
    ws,
    rows: Sequence[Union[SummaryRow, NormalizedRow]],
    columns: List[ColumnDef],
    title: str,
    run_date: str,
) -> None:
    """Write one table of rows into a worksheet."""

    # ── Title row ─────────────────────────────────────────────────────────────
    ws.merge_cells(f"A1:{get_column_letter(len(columns))}1")
    title_cell = ws["A1"]
    title_cell.value = f"{title}  |  Run: {run_date}  |  {len(rows)} row(s)"
    title_cell.font = Font(name="Calibri", bold=True, size=13, color="1B3A6B")
    title_cell.alignment = Alignment(horizontal="center", vertical="center")
    ws.row_dimensions[1].height = 24

    # ── Header row ────────────────────────────────────────────────────────────
    for col_idx, (header, width, _, _) in enumerate(columns, start=1):
        cell = ws.cell(row=2, column=col_idx, value=header)
        cell.font = FONT_HEADER
        cell.fill = FILL_HEADER
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
        cell.border = THIN_BORDER
        ws.column_dimensions[get_column_letter(col_idx)].width = width

    ws.row_dimensions[2].height = 22

    # ── Data rows ─────────────────────────────────────────────────────────────
    for row_idx, row in enumerate(rows, start=1):
        excel_row = row_idx + 2
        alt = (row_idx % 2 == 0)

        for col_idx, (header, _, number_format, getter) in enumerate(columns, start=1):
            cell = ws.cell(row=excel_row, column=col_idx, value=getter(row))
            cell.border = THIN_BORDER
            cell.font = FONT_BODY
            cell.number_format = number_format
            cell.alignment = Alignment(
                vertical="center",
                wrap_text=(header in _WRAP_HEADERS),
            )

            if alt:
                cell.fill = FILL_ALT_ROW

            if header in ("Company Name", "Bidder"):
                cell.font = FONT_NAME

    # ── Freeze panes & auto-filter ────────────────────────────────────────────
    ws.freeze_panes = "A3"
    ws.auto_filter.ref = f"A2:{get_column_letter(len(columns))}{len(rows) + 2}"


def export_to_excel(
    summary: Sequence[SummaryRow],
    raw_rows: Sequence[NormalizedRow],
    filepath: Union[str, Path],
) -> str:
    """
    Write the two-sheet workbook and return its absolute path.

    Args:
        summary:  Per-bidder rows (Bidder Summary sheet).
        raw_rows: Every normalised tender row (Raw Awards sheet).
        filepath: Destination .xlsx file; overwritten if present.
    """
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    run_date = datetime.now().strftime("%d %b %Y %H:%M")

    wb = openpyxl.Workbook()

    # ── Sheet 1: Bidder Summary ───────────────────────────────────────────────
    ws1 = wb.active
    ws1.title = SUMMARY_SHEET
    _write_sheet(ws1, summary, SUMMARY_COLUMNS, "Award Summary by Bidder", run_date)

    # ── Sheet 2: Raw Awards ───────────────────────────────────────────────────
    ws2 = wb.create_sheet(RAW_SHEET)
    _write_sheet(ws2, raw_rows, RAW_COLUMNS, "All Award Records", run_date)

    wb.save(filepath)
    logger.info("Excel saved: %s", filepath.resolve())
    return str(filepath.resolve())
