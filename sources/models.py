"""
Data model for periods, tender rows and per-file outcomes.
The fetch → extract → aggregate stages pass these between each other.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

# A tender record is whatever the XML converter produced for one <TENDER>.
TenderRecord = Dict[str, Any]


@dataclass(frozen=True)
class Period:
    """One biweekly source file: days 1-15 ("01") or 16-end ("02") of a month."""

    token: str        # "YYYYMM" + "01" | "02"
    file_id: str      # token embedded in the filename template
    start: date
    end: date


@dataclass
class NormalizedRow:
    # ── Identity ─────────────────────────────────────────────────────────────
    source_file: str = ""
    tender_no: str = ""
    tender_name: str = ""
    org_name: str = ""

    # ── Award ────────────────────────────────────────────────────────────────
    bidder_name: str = ""     # "" = no bidder, kept in raw rows only
    award_date: str = ""      # original text from the source file
    award_price: float = 0.0
    award_price_million: float = 0.0   # 6 dp


@dataclass
class BidderAggregate:
    count: int = 0
    sum_million: float = 0.0
    latest_date: str = ""
    latest_price_million: float = 0.0


@dataclass
class SummaryRow:
    company_name: str = ""
    award_notice_date: str = ""
    latest_price_million: float = 0.0     # 1 dp
    cumulative_count: int = 0
    cumulative_sum_million: float = 0.0   # 1 dp


@dataclass
class FileResult:
    """Outcome of fetching and extracting one period's file."""

    period: Period
    records: List[TenderRecord] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class ReportResult:
    base_name: str
    report_file: str
    json_file: str
    summary_count: int
    raw_count: int
