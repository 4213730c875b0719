"""Shared configuration for the etcd client and watch controller."""

from __future__ import annotations

import os
from typing import Optional

from etcd_watch.logger import get_logger, safe_float, safe_int


LOGGER = get_logger("etcd_watch.config")

ETCD_HOST = os.environ.get("ETCD_HOST", "127.0.0.1")
ETCD_PORT = safe_int(os.environ.get("ETCD_PORT"), 2379, logger=LOGGER, context="ETCD_PORT")

# Point reads and mutations
TIMEOUT_SECS = safe_float(os.environ.get("ETCD_TIMEOUT"), 10.0, logger=LOGGER, context="ETCD_TIMEOUT")
CONNECT_TIMEOUT_SECS = safe_float(
    os.environ.get("ETCD_CONNECT_TIMEOUT"), 5.0, logger=LOGGER, context="ETCD_CONNECT_TIMEOUT"
)

# Consecutive failures tolerated by Watch.run before giving up
MAX_FAILURES = max(1, safe_int(os.environ.get("ETCD_MAX_FAILURES"), 5, logger=LOGGER, context="ETCD_MAX_FAILURES"))

# urllib3 connect retries on the session adapter; reads are never retried
HTTP_RETRIES = max(0, safe_int(os.environ.get("ETCD_HTTP_RETRIES"), 0, logger=LOGGER, context="ETCD_HTTP_RETRIES"))

USER_AGENT = "etcd-watch/1.0"


def watch_timeout() -> Optional[float]:
    """Read timeout for ``wait=true`` requests; None waits for the server."""
    val = safe_float(os.environ.get("ETCD_WATCH_TIMEOUT"), 0.0, logger=LOGGER, context="ETCD_WATCH_TIMEOUT")
    return val if val > 0 else None


def server_address() -> tuple[str, int]:
    return ETCD_HOST, ETCD_PORT
