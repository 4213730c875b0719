import sys
from pathlib import Path

import pytest

# Ensure repository root is on sys.path so `import etcd_watch...` works locally
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture(autouse=True)
def _isolate_etcd_env(monkeypatch):
    """Keep a developer's ETCD_* environment from leaking into unit tests."""
    for name in (
        "ETCD_HOST",
        "ETCD_PORT",
        "ETCD_TIMEOUT",
        "ETCD_CONNECT_TIMEOUT",
        "ETCD_WATCH_TIMEOUT",
        "ETCD_MAX_FAILURES",
        "ETCD_HTTP_RETRIES",
    ):
        monkeypatch.delenv(name, raising=False)
    yield
