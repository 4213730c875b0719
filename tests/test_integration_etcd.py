import os
import threading
import time
import uuid

import pytest

from etcd_watch.client import Client
from etcd_watch.transport import Transport
from etcd_watch.watch import Watch

pytestmark = pytest.mark.integration

ETCD_IMAGE = os.environ.get("ETCD_TEST_IMAGE", "quay.io/coreos/etcd:v3.3.27")


@pytest.fixture(scope="module")
def etcd_server():
    os.environ.setdefault("TESTCONTAINERS_RYUK_DISABLED", "true")
    try:
        from testcontainers.core.container import DockerContainer
    except Exception:  # pragma: no cover
        pytest.skip("testcontainers not available")
    import requests

    container = (
        DockerContainer(ETCD_IMAGE)
        .with_command(
            "etcd --enable-v2=true "
            "--listen-client-urls http://0.0.0.0:2379 "
            "--advertise-client-urls http://0.0.0.0:2379"
        )
        .with_exposed_ports(2379)
    )
    try:
        container.start()
    except Exception as e:  # pragma: no cover
        pytest.skip(f"docker not available: {e}")

    host = container.get_container_host_ip()
    port = int(container.get_exposed_port(2379))
    ready = False
    for _ in range(60):
        try:
            if requests.get(f"http://{host}:{port}/v2/keys/", timeout=1).status_code < 500:
                ready = True
                break
        except Exception:
            pass
        time.sleep(0.5)
    if not ready:  # pragma: no cover
        container.stop()
        pytest.skip("etcd did not become ready")
    try:
        yield host, port
    finally:
        container.stop()


def _key():
    return f"/it-{uuid.uuid4().hex[:8]}"


def test_set_then_watch_delivers_value(etcd_server):
    host, port = etcd_server
    key = _key()
    with Client(host, port) as client:
        written = client.set(key, "你好")

    seen = []
    watch = Watch(host, port, transport=Transport(watch_timeout=10))
    watch.run_once(key, seen.append, written.get_modified_index() - 1)
    watch.close()

    assert seen[0].get_all() == {key: "你好"}
    assert watch.prev_index == written.get_modified_index()


def test_watch_observes_concurrent_write(etcd_server):
    host, port = etcd_server
    key = _key()
    seen = []
    watch = Watch(host, port, transport=Transport(watch_timeout=10))

    def writer():
        time.sleep(0.5)
        with Client(host, port) as client:
            client.set(key + "/a", "1")

    t = threading.Thread(target=writer)
    t.start()
    watch.run_once(key + "/a", seen.append)
    t.join()
    watch.close()

    assert seen and seen[0].get_all() == {key + "/a": "1"}


def test_resync_after_cleared_index(etcd_server):
    host, port = etcd_server
    key = _key()
    with Client(host, port) as client:
        client.set(key, "first")
        # push the event history (1000 entries) past the first write
        for i in range(1001):
            client.set(key + "-filler", str(i))
        current = client.set(key, "latest")

    seen = []
    watch = Watch(host, port, transport=Transport(watch_timeout=10))
    watch.run_once(key, seen.append, 1)
    watch.close()

    assert seen[0].get_all() == {key: "latest"}
    assert watch.prev_index >= current.get_modified_index()
