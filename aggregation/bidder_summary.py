"""
Bidder aggregation — folds normalised rows into per-bidder statistics.

For every bidder with a name:
  count        — number of awards
  sum_million  — cumulative award value, in millions
  latest_date  — most recent non-empty award date
  latest_price — award value on that most recent row (not the largest award)

Rows with no bidder stay in the raw row list but never reach the summary.
Rows with an empty award date still count towards count and sum_million.
"""

import logging
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Optional

from sources.models import BidderAggregate, NormalizedRow, SummaryRow

logger = logging.getLogger(__name__)

_DATE_FMTS = [
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%Y%m%d",
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d %H:%M:%S",
]

# ROC calendar year 1 = 1912
_ROC_OFFSET = 1911


def parse_award_date(raw: str) -> Optional[date]:
    """
    Read an award date as a calendar date.
    Accepts Gregorian formats above and ROC dates like "113/01/05".
    """
    if not raw:
        return None
    raw = raw.strip()
    for fmt in _DATE_FMTS:
        try:
            return datetime.strptime(raw, fmt).date()
        except ValueError:
            continue

    parts = raw.replace("-", "/").split("/")
    if len(parts) == 3 and all(p.isdigit() for p in parts) and len(parts[0]) <= 3:
        try:
            return date(int(parts[0]) + _ROC_OFFSET, int(parts[1]), int(parts[2]))
        except ValueError:
            return None
    return None


def round_half_up(value: float, places: int) -> float:
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def _is_later(candidate: str, current: str) -> bool:
    new_day = parse_award_date(candidate)
    if new_day is None:
        return False
    old_day = parse_award_date(current)
    # Any readable date beats one that can't be read.
    return old_day is None or new_day > old_day


class BidderAggregator:
    """Accumulates raw rows and per-bidder totals across all source files."""

    def __init__(self) -> None:
        self.rows: List[NormalizedRow] = []
        self.bidders: Dict[str, BidderAggregate] = {}

    def add(self, row: NormalizedRow) -> None:
        self.rows.append(row)

        name = row.bidder_name
        if not name:
            return

        agg = self.bidders.get(name)
        if agg is None:
            agg = self.bidders[name] = BidderAggregate()

        agg.count += 1
        agg.sum_million += row.award_price_million

        if row.award_date and (not agg.latest_date or _is_later(row.award_date, agg.latest_date)):
            agg.latest_date = row.award_date
            agg.latest_price_million = row.award_price_million

    def add_all(self, rows: Iterable[NormalizedRow]) -> None:
        for row in rows:
            self.add(row)

    def summary_rows(self) -> List[SummaryRow]:
        """
        One row per bidder, most recent award first.

        Bidders without a readable latest date sort last. Order among
        equal dates is whatever the sort leaves it as.
        """
        summary = [
            SummaryRow(
                company_name=name,
                award_notice_date=agg.latest_date,
                latest_price_million=round_half_up(agg.latest_price_million, 1),
                cumulative_count=agg.count,
                cumulative_sum_million=round_half_up(agg.sum_million, 1),
            )
            for name, agg in self.bidders.items()
        ]
        summary.sort(
            key=lambda s: parse_award_date(s.award_notice_date) or date.min,
            reverse=True,
        )

        logger.info(
            "Aggregated %d row(s) into %d bidder(s).", len(self.rows), len(summary)
        )
        return summary
