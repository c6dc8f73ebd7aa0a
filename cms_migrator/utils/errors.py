"""
Structured event logs for migration errors and successes.

Every failed or successful step for a record is appended to a JSON Lines
file under ``reports/migration`` so a run can be reviewed or parsed after
the fact, independently of the console log.

Two public functions are provided:

``report_error``
    Record an error for a record.  An optional exception is serialized
    into the entry.

``report_ok``
    Record a successful step for a record.  Extra key/value information
    can be attached via ``extra``.

``ERRORS`` maps event codes to human readable messages.  Codes missing
from the dictionary fall back to the code itself.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

# Event codes used throughout the migration; the same lookup serves
# report_error and report_ok.
ERRORS: Dict[str, str] = {
    "INGEST_FAILED": "Could not read the WordPress export",
    "STORE_INSERT": "Failed to insert record into Airtable",
    "STORE_SCAN": "Failed to list records from Airtable",
    "STORE_UPDATE": "Failed to update record in Airtable",
    "RENDER": "Failed to render page in the headless browser",
    "ASSET_UPLOAD": "Failed to rehost asset file",
    "INSERTED": "Record inserted successfully",
    "UPDATED": "Record updated successfully",
    "RENDER_OK": "Page rendered properly",
    "RENDER_ISSUES": "Page has rendering issues",
    "ASSET_MIGRATED": "Asset files rehosted",
}

_REPORT_DIR = os.path.join("reports", "migration")


def set_report_dir(path: str) -> None:
    """Redirect the JSON Lines logs to ``path``."""
    global _REPORT_DIR
    _REPORT_DIR = path


def _write_jsonl(filename: str, data: Dict[str, Any]) -> None:
    """Append ``data`` as a JSON object followed by a newline."""
    os.makedirs(_REPORT_DIR, exist_ok=True)
    with open(os.path.join(_REPORT_DIR, filename), "a", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False)
        f.write("\n")


def _entry(code: str, record: Any) -> Dict[str, Any]:
    if isinstance(record, dict):
        slug, title = record.get("slug"), record.get("title")
    else:
        slug, title = getattr(record, "slug", None), getattr(record, "title", None)
    return {
        "code": code,
        "message": ERRORS.get(code, code),
        "slug": slug,
        "title": title,
    }


def report_error(code: str, record: Any, exc: Optional[BaseException] = None) -> None:
    """Log an error event for ``record``.

    Parameters
    ----------
    code:
        A key identifying the type of error.  If ``code`` is present in
        :data:`ERRORS` its value is used as the message.
    record:
        The record (model or dictionary) the error belongs to.  Only its
        ``slug`` and ``title`` are referenced.
    exc:
        Optional exception that triggered the error; its string form is
        included in the entry.
    """
    entry = _entry(code, record)
    if exc is not None:
        entry["error"] = str(exc)
    logger.error("%s - %s%s", entry["message"], entry["slug"] or "", f": {exc}" if exc else "")
    _write_jsonl("errors.jsonl", entry)


def report_ok(code: str, record: Any, extra: Optional[Dict[str, Any]] = None) -> None:
    """Log a successful event for ``record``.

    ``extra`` is merged into the entry.
    """
    entry = _entry(code, record)
    if extra:
        entry.update(extra)
    logger.info("%s - %s", entry["message"], entry["slug"] or "")
    _write_jsonl("success.jsonl", entry)
