"""Tests for the two-host source fetcher."""
from __future__ import annotations

import pytest
import requests

from sources.fetcher import FetchError, SourceFetcher, looks_like_html
from tests.mocks.awards import FakeResponse, FakeSession, make_award_document, make_tender_xml

HOSTS = ["https://primary.example/{file_id}", "https://secondary.example/get?f={file_id}"]
XML = make_award_document(make_tender_xml())
HTML_ERROR = b"<!DOCTYPE html><html><head><title>System busy</title></head><body>x</body></html>"


def _fetcher(outcomes):
    session = FakeSession(outcomes)
    return SourceFetcher(hosts=HOSTS, timeout=45, session=session), session


def test_primary_success_skips_secondary():
    fetcher, session = _fetcher([FakeResponse(200, XML)])
    assert fetcher.fetch("award_20240101.xml") == XML
    assert session.calls == [("https://primary.example/award_20240101.xml", 45)]


def test_network_error_falls_back_to_secondary():
    fetcher, session = _fetcher([requests.ConnectionError("boom"), FakeResponse(200, XML)])
    assert fetcher.fetch("award_20240101.xml") == XML
    assert session.calls[1][0] == "https://secondary.example/get?f=award_20240101.xml"


def test_timeout_falls_back_to_secondary():
    fetcher, _ = _fetcher([requests.Timeout("slow"), FakeResponse(200, XML)])
    assert fetcher.fetch("award_20240101.xml") == XML


def test_html_error_page_counts_as_failure():
    fetcher, session = _fetcher([FakeResponse(200, HTML_ERROR), FakeResponse(200, XML)])
    assert fetcher.fetch("award_20240101.xml") == XML
    assert len(session.calls) == 2


def test_both_hosts_failing_reports_last_status():
    fetcher, _ = _fetcher([FakeResponse(500), FakeResponse(404)])
    with pytest.raises(FetchError) as exc_info:
        fetcher.fetch("award_20240101.xml")
    assert exc_info.value.status_code == 404
    assert "404" in str(exc_info.value)


def test_no_status_seen_reports_not_available():
    fetcher, _ = _fetcher([requests.ConnectionError("a"), requests.ConnectionError("b")])
    with pytest.raises(FetchError) as exc_info:
        fetcher.fetch("award_20240101.xml")
    assert exc_info.value.status_code is None
    assert "N/A" in str(exc_info.value)


def test_only_two_attempts_are_made():
    fetcher, session = _fetcher([FakeResponse(503), FakeResponse(503), FakeResponse(200, XML)])
    with pytest.raises(FetchError):
        fetcher.fetch("award_20240101.xml")
    assert len(session.calls) == 2


@pytest.mark.parametrize(
    "payload,expected",
    [
        (b"<!DOCTYPE html><html></html>", True),
        (b"  \n<HTML><body>error</body></HTML>", True),
        (b"\xef\xbb\xbf<!doctype HTML>", True),
        (XML, False),
        (b"", False),
    ],
)
def test_looks_like_html(payload, expected):
    assert looks_like_html(payload) is expected
