"""
Message Ingest Service - Metrics Module

Tracks basic per-instance runtime metrics.
"""

import time
from datetime import datetime, timezone
from typing import Optional

START_TIME = time.time()
REQUESTS_TOTAL = 0
LAST_REQUEST_AT: Optional[str] = None
MESSAGES_STORED = 0
MESSAGES_MALFORMED = 0
STORAGE_FAILURES = 0


def record_request(path: str) -> None:
    """
    Record an incoming request.
    Skips /health and /metrics so they don't pollute counters.
    """
    global REQUESTS_TOTAL, LAST_REQUEST_AT
    if path.startswith("/health") or path.startswith("/metrics"):
        return
    REQUESTS_TOTAL += 1
    LAST_REQUEST_AT = datetime.now(timezone.utc).isoformat()


def record_stored() -> None:
    global MESSAGES_STORED
    MESSAGES_STORED += 1


def record_malformed() -> None:
    global MESSAGES_MALFORMED
    MESSAGES_MALFORMED += 1


def record_storage_failure() -> None:
    global STORAGE_FAILURES
    STORAGE_FAILURES += 1


def snapshot() -> dict:
    """
    Return a snapshot of current metrics as a dict.
    """
    uptime = int(time.time() - START_TIME)
    return {
        "service": "message-ingest",
        "uptime_seconds": uptime,
        "requests_total": REQUESTS_TOTAL,
        "last_request_at": LAST_REQUEST_AT,
        "messages_stored": MESSAGES_STORED,
        "messages_malformed": MESSAGES_MALFORMED,
        "storage_failures": STORAGE_FAILURES,
    }
