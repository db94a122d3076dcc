"""
Report pipeline — resolve periods → fetch → extract → aggregate → emit.

Files are processed one after another. A file that can't be fetched or
parsed becomes a failed FileResult: it is reported as a zero-count
progress entry and the job moves on. Only an error outside the per-file
loop (writing the report, in practice) fails the whole job.
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple, Union

from aggregation.bidder_summary import BidderAggregator
from jobs.progress import ProgressReporter
from output_engine.report_writer import emit_report
from sources.extractor import DocumentError, extract_tenders, normalize, parse_document
from sources.fetcher import FetchError, SourceFetcher
from sources.models import FileResult, Period, ReportResult, TenderRecord
from sources.periods import DateLike, resolve_periods

logger = logging.getLogger(__name__)


def process_file(period: Period, fetcher: SourceFetcher) -> FileResult:
    """Fetch and extract one period's file. Never raises for per-file problems."""
    try:
        payload = fetcher.fetch(period.file_id)
    except FetchError as exc:
        logger.warning("✗  %s: %s", period.file_id, exc)
        return FileResult(period=period, error=f"download failed: {exc}")

    try:
        records = extract_tenders(parse_document(payload))
    except DocumentError as exc:
        logger.warning("✗  %s: %s", period.file_id, exc)
        return FileResult(period=period, error=f"parse failed: {exc}")

    logger.info("✓  %s: %d tender record(s)", period.file_id, len(records))
    return FileResult(period=period, records=records)


def generate_report(
    start: DateLike,
    end: DateLike,
    reporter: ProgressReporter,
    fetcher: Optional[SourceFetcher] = None,
    output_dir: Optional[Union[str, Path]] = None,
) -> ReportResult:
    """
    Full report cycle for [start, end]. Returns what was written.
    Emission errors propagate.
    """
    fetcher = fetcher or SourceFetcher()

    periods = resolve_periods(start, end)
    reporter.set_total(len(periods))

    aggregator = BidderAggregator()
    records: List[Tuple[str, TenderRecord]] = []
    tokens: List[str] = []

    for period in periods:
        tokens.append(period.token)
        result = process_file(period, fetcher)

        if not result.ok:
            reporter.update(period.file_id, 0, f"{period.file_id}: {result.error}")
            continue

        for record in result.records:
            records.append((period.file_id, record))
            aggregator.add(normalize(record, period.file_id))
        reporter.update(period.file_id, len(result.records))

    summary = aggregator.summary_rows()
    report = emit_report(summary, aggregator.rows, records, tokens, output_dir)

    reporter.mark_done(
        True,
        f"Report ready: {report.report_file}",
        report_file=report.report_file,
        summary_row_count=report.summary_count,
        raw_row_count=report.raw_count,
    )
    logger.info(
        "Report %s written — %d bidder(s), %d row(s).",
        report.report_file, report.summary_count, report.raw_count,
    )
    return report


def run_job(
    start: DateLike,
    end: DateLike,
    reporter: ProgressReporter,
    fetcher: Optional[SourceFetcher] = None,
    output_dir: Optional[Union[str, Path]] = None,
) -> Optional[ReportResult]:
    """generate_report, with any escaping error turned into a failed completion."""
    try:
        return generate_report(start, end, reporter, fetcher, output_dir)
    except Exception as exc:
        logger.error("Report job failed: %s", exc, exc_info=True)
        reporter.mark_done(False, str(exc) or "Report generation failed")
        return None
