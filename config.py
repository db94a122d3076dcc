"""
config.py — reads all settings from settings.yaml and exposes them
as the constants that the rest of the application uses.

Set AWARD_REPORT_SETTINGS to load a different file.
"""

import os
import sys

import yaml

# ── Load settings.yaml ────────────────────────────────────────────────────────

_HERE = os.path.dirname(os.path.abspath(__file__))
_SETTINGS_FILE = os.environ.get(
    "AWARD_REPORT_SETTINGS", os.path.join(_HERE, "settings.yaml")
)

if not os.path.exists(_SETTINGS_FILE):
    print(
        "ERROR: settings.yaml not found.\n"
        f"Expected it at: {_SETTINGS_FILE}\n"
        "Please make sure the file exists and try again."
    )
    sys.exit(1)

with open(_SETTINGS_FILE, encoding="utf-8") as _f:
    _p = yaml.safe_load(_f) or {}

# ── Source files ──────────────────────────────────────────────────────────────

_source = _p.get("source", {})

SOURCE_HOSTS      = list(_source.get("hosts", []))
FILENAME_TEMPLATE = str(_source.get("filename_template", "award_{token}.xml"))
FETCH_TIMEOUT     = float(_source.get("timeout_seconds", 45))
TENDER_TAG        = str(_source.get("tender_tag", "TENDER"))

# ── Output ────────────────────────────────────────────────────────────────────

_output = _p.get("output", {})

OUTPUT_DIR       = os.path.join(_HERE, str(_output.get("reports_dir", "reports")))
HISTORY_FILENAME = str(_output.get("history_file", "history.json"))

# ── Web dashboard ─────────────────────────────────────────────────────────────

_web = _p.get("web", {})

WEB_HOST         = str(_web.get("host", "0.0.0.0"))
WEB_PORT         = int(os.environ.get("PORT", _web.get("port", 3000)))
SSE_PING_SECONDS = float(_web.get("ping_seconds", 15))
