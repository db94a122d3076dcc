"""
webapp.py — HTTP surface for the award report job.

Run:  python webapp.py
Then: POST /generate {"startDate": "2024-01-01", "endDate": "2024-01-31"}
      GET  /progress   (server-sent events)
"""

import json
import logging
import queue
import threading
from pathlib import Path

from flask import Flask, Response, abort, jsonify, request, send_from_directory

import config
from jobs.pipeline import run_job
from jobs.progress import JobGuard, ProgressBroadcaster, ProgressReporter
from output_engine.report_writer import read_history

log = logging.getLogger("webapp")


def _sse(data: dict) -> str:
    """Format a dict as an SSE data line."""
    return f"data: {json.dumps(data, ensure_ascii=False)}\n\n"


def create_app(output_dir=None, fetcher=None, run_async: bool = True) -> Flask:
    """
    Build the Flask app.

    output_dir and fetcher default to the configured ones; tests pass
    their own and set run_async=False to run the job inline.
    """
    app = Flask(__name__)

    reports_dir = Path(output_dir or config.OUTPUT_DIR)
    broadcaster = ProgressBroadcaster()
    guard = JobGuard()

    app.config["BROADCASTER"] = broadcaster
    app.config["JOB_GUARD"] = guard

    def _job(start_date: str, end_date: str, reporter: ProgressReporter) -> None:
        try:
            run_job(start_date, end_date, reporter, fetcher=fetcher, output_dir=reports_dir)
        finally:
            guard.release()

    # ── Routes ────────────────────────────────────────────────────────────────

    @app.post("/generate")
    def generate():
        busy = jsonify({"message": "A report is already being generated, please wait."}), 409
        if guard.running:
            return busy

        body = request.get_json(silent=True) or {}
        start_date = body.get("startDate")
        end_date = body.get("endDate")
        if not start_date or not end_date:
            return jsonify({"message": "startDate and endDate are required"}), 400

        if not guard.try_acquire():
            return busy

        reporter = ProgressReporter(broadcaster)
        reporter.reset()
        log.info("Report job admitted for %s → %s", start_date, end_date)

        if run_async:
            t = threading.Thread(target=_job, args=(start_date, end_date, reporter), daemon=True)
            t.start()
        else:
            _job(start_date, end_date, reporter)
        return jsonify({"started": True})

    @app.get("/progress")
    def progress():
        q = broadcaster.subscribe()
        first = broadcaster.latest

        def stream():
            try:
                yield _sse(first)
                while True:
                    try:
                        snapshot = q.get(timeout=config.SSE_PING_SECONDS)
                    except queue.Empty:
                        yield ": ping\n\n"
                        continue
                    yield _sse(snapshot)
            finally:
                broadcaster.unsubscribe(q)

        return Response(
            stream(),
            mimetype="text/event-stream",
            headers={
                "Cache-Control": "no-cache, no-transform",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",
            },
        )

    @app.get("/api/status")
    def api_status():
        return jsonify({"running": guard.running, "progress": broadcaster.latest})

    @app.get("/history")
    def history():
        entries = [
            {
                "file": x.get("file"),
                "summaryCount": x.get("summaryCount"),
                "rawCount": x.get("rawCount"),
                "created": x.get("created"),
            }
            for x in read_history(reports_dir)
            if isinstance(x, dict)
        ]
        return jsonify(entries)

    @app.get("/download/<path:filename>")
    def download(filename: str):
        """Serve a generated report file."""
        if not (reports_dir / filename).is_file():
            abort(404)
        return send_from_directory(reports_dir.resolve(), filename, as_attachment=True)

    return app


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s — %(message)s")
    create_app().run(host=config.WEB_HOST, port=config.WEB_PORT, threaded=True)
