"""Tests for per-bidder aggregation."""
from __future__ import annotations

from datetime import date

import pytest

from aggregation.bidder_summary import BidderAggregator, parse_award_date, round_half_up
from sources.models import NormalizedRow


def _row(bidder, award_date, million, source="f.xml"):
    return NormalizedRow(
        source_file=source,
        bidder_name=bidder,
        award_date=award_date,
        award_price=million * 1_000_000,
        award_price_million=million,
    )


def test_latest_date_wins_over_processing_order():
    agg = BidderAggregator()
    agg.add_all([
        _row("Acme", "2024/03/01", 5.0),
        _row("Acme", "2024/01/15", 9.0),
        _row("Acme", "2024/02/10", 7.0),
    ])
    acme = agg.bidders["Acme"]
    assert acme.count == 3
    assert acme.latest_date == "2024/03/01"
    assert acme.latest_price_million == 5.0
    assert acme.sum_million == pytest.approx(21.0)


def test_latest_price_is_not_the_maximum_price():
    agg = BidderAggregator()
    agg.add_all([_row("Acme", "2024/01/01", 100.0), _row("Acme", "2024/01/02", 1.0)])
    assert agg.bidders["Acme"].latest_price_million == 1.0


def test_empty_dates_count_but_never_set_latest():
    agg = BidderAggregator()
    agg.add_all([_row("Acme", "2024/01/05", 2.0), _row("Acme", "", 3.0)])
    acme = agg.bidders["Acme"]
    assert acme.count == 2
    assert acme.sum_million == pytest.approx(5.0)
    assert acme.latest_date == "2024/01/05"
    assert acme.latest_price_million == 2.0


def test_rows_without_bidder_stay_raw_only():
    agg = BidderAggregator()
    agg.add_all([_row("", "2024/01/05", 2.0), _row("Acme", "2024/01/05", 1.0)])
    assert len(agg.rows) == 2
    assert list(agg.bidders) == ["Acme"]
    assert len(agg.summary_rows()) == 1


def test_summary_rounds_to_one_decimal():
    agg = BidderAggregator()
    agg.add_all([_row("Acme", "2024/01/05", 1.234567), _row("Acme", "2024/01/01", 2.26)])
    (row,) = agg.summary_rows()
    assert row.company_name == "Acme"
    assert row.award_notice_date == "2024/01/05"
    assert row.latest_price_million == 1.2
    assert row.cumulative_count == 2
    assert row.cumulative_sum_million == 3.5


def test_summary_sorted_by_date_descending_with_undated_last():
    agg = BidderAggregator()
    agg.add_all([
        _row("Old", "2023/06/01", 1.0),
        _row("Undated", "", 1.0),
        _row("New", "2024/02/01", 1.0),
        _row("Mid", "2024/01/01", 1.0),
        _row("AlsoMid", "2024/01/01", 1.0),
    ])
    summary = agg.summary_rows()
    names = [s.company_name for s in summary]
    assert names[0] == "New"
    assert names[-2:] == ["Old", "Undated"]
    # Only the date order is guaranteed; equal dates may come in any order.
    assert set(names[1:3]) == {"Mid", "AlsoMid"}
    days = [parse_award_date(s.award_notice_date) or date.min for s in summary]
    assert days == sorted(days, reverse=True)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("2024-01-05", date(2024, 1, 5)),
        ("2024/01/05", date(2024, 1, 5)),
        ("20240105", date(2024, 1, 5)),
        ("113/01/05", date(2024, 1, 5)),
        ("", None),
        ("soon", None),
        ("113/13/40", None),
    ],
)
def test_parse_award_date(raw, expected):
    assert parse_award_date(raw) == expected


def test_roc_and_gregorian_dates_compare_as_calendar_dates():
    agg = BidderAggregator()
    agg.add_all([_row("Acme", "2024/01/05", 1.0), _row("Acme", "113/02/01", 2.0)])
    assert agg.bidders["Acme"].latest_date == "113/02/01"


def test_round_half_up():
    assert round_half_up(0.25, 1) == 0.3
    assert round_half_up(1.234567, 1) == 1.2
    assert round_half_up(2.0, 1) == 2.0


def test_readable_date_replaces_unreadable_latest():
    agg = BidderAggregator()
    agg.add_all([_row("Acme", "N/A", 1.0), _row("Acme", "2024/01/05", 4.0)])
    acme = agg.bidders["Acme"]
    assert acme.latest_date == "2024/01/05"
    assert acme.latest_price_million == 4.0


def test_unreadable_date_never_replaces_readable_latest():
    agg = BidderAggregator()
    agg.add_all([_row("Acme", "2024/01/05", 4.0), _row("Acme", "N/A", 1.0)])
    assert agg.bidders["Acme"].latest_date == "2024/01/05"
    assert agg.bidders["Acme"].count == 2
