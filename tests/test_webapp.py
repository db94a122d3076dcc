"""Tests for the Flask surface around the report job."""
from __future__ import annotations

import json

import pytest

from webapp import create_app
from tests.mocks.awards import FakeFetcher, make_award_document, make_tender_xml


@pytest.fixture()
def fetcher():
    return FakeFetcher({"award_20240101.xml": make_award_document(make_tender_xml())})


@pytest.fixture()
def app(reports_dir, fetcher):
    return create_app(output_dir=reports_dir, fetcher=fetcher, run_async=False)


@pytest.fixture()
def client(app):
    return app.test_client()


def test_generate_requires_both_dates(client):
    resp = client.post("/generate", json={"startDate": "2024-01-01"})
    assert resp.status_code == 400


def test_generate_rejects_while_running(app, client):
    app.config["JOB_GUARD"].try_acquire()
    resp = client.post("/generate", json={"startDate": "2024-01-01", "endDate": "2024-01-05"})
    assert resp.status_code == 409


def test_busy_check_comes_before_validation(app, client):
    app.config["JOB_GUARD"].try_acquire()
    assert client.post("/generate", json={}).status_code == 409


def test_generate_runs_job_and_records_history(app, client, reports_dir):
    resp = client.post("/generate", json={"startDate": "2024-01-01", "endDate": "2024-01-05"})
    assert resp.status_code == 200
    assert resp.get_json() == {"started": True}

    latest = app.config["BROADCASTER"].latest
    assert latest["complete"] is True and latest["error"] is False
    assert latest["reportFile"] == "20240101_20240101.xlsx"
    assert app.config["JOB_GUARD"].running is False

    history = client.get("/history").get_json()
    assert len(history) == 1
    assert set(history[0]) == {"file", "summaryCount", "rawCount", "created"}
    assert history[0]["file"] == "20240101_20240101.xlsx"


def test_invalid_dates_are_accepted_and_produce_empty_report(app, client):
    resp = client.post("/generate", json={"startDate": "soon", "endDate": "later"})
    assert resp.status_code == 200
    latest = app.config["BROADCASTER"].latest
    assert latest["complete"] is True and latest["total"] == 0


def test_history_survives_corrupt_file(client, reports_dir):
    reports_dir.mkdir(parents=True)
    (reports_dir / "history.json").write_text("oops", encoding="utf-8")
    assert client.get("/history").get_json() == []


def test_download(client):
    client.post("/generate", json={"startDate": "2024-01-01", "endDate": "2024-01-05"})
    resp = client.get("/download/20240101_20240101.json")
    assert resp.status_code == 200
    assert json.loads(resp.data)[0]["sourceFile"] == "award_20240101.xml"
    assert client.get("/download/missing.xlsx").status_code == 404


def test_progress_stream_starts_with_snapshot(app, client):
    resp = client.get("/progress")
    assert resp.mimetype == "text/event-stream"
    assert resp.headers["X-Accel-Buffering"] == "no"
    first = next(resp.iter_encoded()).decode("utf-8")
    assert first.startswith("data: ")
    assert json.loads(first[len("data: "):])["current"] == 0
    resp.close()


def test_status(app, client):
    body = client.get("/api/status").get_json()
    assert body["running"] is False
    assert body["progress"]["complete"] is False
