"""
Report writer — names the output files, writes the JSON dump and keeps
the history log in the reports folder.

Output names come from the period tokens that were attempted, e.g.
"20240101_20240202.xlsx" and "20240101_20240202.json". Running the same
range again overwrites those files but still adds a new history entry.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import config
from output_engine.excel_exporter import export_to_excel
from sources.models import NormalizedRow, ReportResult, SummaryRow, TenderRecord

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def build_base_name(tokens: Sequence[str], now: Optional[datetime] = None) -> str:
    """
    "{first}_{last}" over the sorted non-empty tokens.
    Falls back to a timestamp when nothing was attempted.
    """
    cleaned = sorted(t for t in tokens if t)
    if cleaned:
        return f"{cleaned[0]}_{cleaned[-1]}"
    stamp = (now or datetime.now()).strftime("%Y%m%d%H%M%S")
    return f"{stamp}_{stamp}"


def write_json_dump(
    records: Sequence[Tuple[str, TenderRecord]],
    filepath: PathLike,
) -> str:
    """Write every extracted record as {"sourceFile", "tenderRecord"}."""
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    payload = [
        {"sourceFile": source_file, "tenderRecord": record}
        for source_file, record in records
    ]
    with open(filepath, "w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)

    logger.info("JSON saved: %s (%d record(s))", filepath.resolve(), len(payload))
    return str(filepath.resolve())


# ── History ───────────────────────────────────────────────────────────────────

def _history_path(output_dir: Optional[PathLike]) -> Path:
    return Path(output_dir or config.OUTPUT_DIR) / config.HISTORY_FILENAME


def read_history(output_dir: Optional[PathLike] = None) -> List[Dict[str, Any]]:
    """
    Load the history list. A missing, unreadable or non-list file reads
    as an empty history.
    """
    path = _history_path(output_dir)
    if not path.exists():
        return []
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as exc:
        logger.warning("History file %s unreadable, starting fresh: %s", path, exc)
        return []
    if not isinstance(data, list):
        logger.warning("History file %s is not a list, starting fresh.", path)
        return []
    return data


def append_history(
    entry: Dict[str, Any],
    output_dir: Optional[PathLike] = None,
) -> List[Dict[str, Any]]:
    """Put entry at the front of the history and rewrite the file."""
    history = [entry] + read_history(output_dir)
    path = _history_path(output_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(history, f, ensure_ascii=False, indent=2)
    return history


# ── Emit ──────────────────────────────────────────────────────────────────────

def emit_report(
    summary: Sequence[SummaryRow],
    raw_rows: Sequence[NormalizedRow],
    records: Sequence[Tuple[str, TenderRecord]],
    tokens: Sequence[str],
    output_dir: Optional[PathLike] = None,
) -> ReportResult:
    """
    Write the JSON dump and workbook, then record the run in the history.
    Any I/O error propagates to the caller.
    """
    out_dir = Path(output_dir or config.OUTPUT_DIR)
    out_dir.mkdir(parents=True, exist_ok=True)

    base_name = build_base_name(tokens)
    json_name = f"{base_name}.json"
    report_name = f"{base_name}.xlsx"

    write_json_dump(records, out_dir / json_name)
    export_to_excel(summary, raw_rows, out_dir / report_name)

    append_history(
        {
            "file": report_name,
            "json": json_name,
            "summaryCount": len(summary),
            "rawCount": len(raw_rows),
            "created": datetime.now().isoformat(timespec="seconds"),
        },
        out_dir,
    )

    return ReportResult(
        base_name=base_name,
        report_file=report_name,
        json_file=json_name,
        summary_count=len(summary),
        raw_count=len(raw_rows),
    )
