"""Long-poll watch on an etcd key or directory.

``Watch`` keeps the last observed modification index and re-issues
``?wait=true&waitIndex=N`` requests. When etcd answers with error 401 (the
requested index was cleared from history) it fetches the current state, hands
it to the callback and re-anchors on the ``X-Etcd-Index`` response header.
"""
from __future__ import annotations

from typing import Callable, Mapping, Optional, Protocol, Type

from etcd_watch import config
from etcd_watch.client import build_url_prefix
from etcd_watch.logger import ClientException, ConfigurationError, ContextLogger, ReplyException, get_logger
from etcd_watch.reply import EVENT_INDEX_CLEARED, JsonReply, Reply
from etcd_watch.transport import Transport

logger = get_logger(__name__)

ETCD_INDEX_HEADER = "X-Etcd-Index"

Callback = Callable[[Reply], None]


class CancelToken(Protocol):
    def is_set(self) -> bool: ...


def index_from_headers(headers: Mapping[str, str]) -> Optional[int]:
    """Return the X-Etcd-Index header as an int, or None if absent or invalid."""
    for name, value in headers.items():
        if str(name).strip().lower() != ETCD_INDEX_HEADER.lower():
            continue
        text = str(value).strip()
        # int() would also take "+7", "1_000" and non-ASCII digits
        if not (text.isascii() and text.isdigit()):
            return None
        return int(text)
    return None


class Watch:
    """Watch a key or directory through repeated long-poll requests.

    ``prev_index`` survives between calls on the same instance, so calling
    ``run_once`` in a loop continues where the previous call stopped.
    Not thread-safe; use one instance per thread.
    """

    def __init__(
        self,
        server: str,
        port: int,
        reply_type: Type[Reply] = JsonReply,
        transport: Optional[Transport] = None,
        max_failures: Optional[int] = None,
    ):
        try:
            self.transport = transport if transport is not None else Transport()
        except Exception as e:
            raise ClientException(str(e)) from e
        self.reply_type = reply_type
        self.url_prefix = build_url_prefix(server, port)
        self.max_failures = config.MAX_FAILURES if max_failures is None else int(max_failures)
        if self.max_failures < 1:
            raise ConfigurationError(f"max_failures must be >= 1, got {self.max_failures}")
        self.prev_index = 0

    def close(self) -> None:
        self.transport.close()

    def run(
        self,
        key: str,
        callback: Callback,
        prev_index: int = 0,
        cancel: Optional[CancelToken] = None,
    ) -> None:
        """Watch ``key`` until the failure budget runs out or ``cancel`` is set.

        The callback is invoked once per change, and once more with the
        current state whenever the watch has to resynchronize. Errors raised
        by the callback propagate to the caller.

        Raises:
            ClientException: after ``max_failures`` consecutive failures.
        """
        log = ContextLogger(logger, key=key)
        watch_url = self._watch_url(key, prev_index)
        failures_left = self.max_failures

        while failures_left:
            if cancel is not None and cancel.is_set():
                log.info("Watch cancelled", index=self.prev_index)
                return
            try:
                reply, index = self._fetch(watch_url)
            except ReplyException as e:
                if e.error_code == EVENT_INDEX_CLEARED:
                    watch_url = self._resync(key, callback, watch_url, log)
                # a cleared index still counts against the budget
                failures_left -= 1
                log.warning(f"Watch reply error: {e}", failures_left=failures_left, error_code=e.error_code)
                continue
            except Exception as e:
                failures_left -= 1
                log.warning(f"Watch request failed: {e}", failures_left=failures_left, url=watch_url)
                continue

            callback(reply)
            self.prev_index = index
            watch_url = self._watch_url(key)
            failures_left = self.max_failures
            log.debug("Observed change", index=index)

        log.error("Watch gave up", max_failures=self.max_failures, index=self.prev_index)
        raise ClientException("watch failed or timedout")

    def run_once(self, key: str, callback: Callback, prev_index: int = 0) -> None:
        """Wait for a single change on ``key`` and return.

        Rescheduling is up to the caller; the new index is kept on the
        instance. A cleared index triggers a resynchronization instead of an
        error.

        Raises:
            ClientException: on any failure other than a cleared index.
        """
        log = ContextLogger(logger, key=key)
        watch_url = self._watch_url(key, prev_index)
        try:
            reply, index = self._fetch(watch_url)
        except ReplyException as e:
            if e.error_code == EVENT_INDEX_CLEARED:
                self._resync(key, callback, watch_url, log)
                return
            raise ClientException(f"failed with {e}") from e
        except Exception as e:
            raise ClientException(f"failed with {e}") from e

        callback(reply)
        self.prev_index = index
        log.debug("Observed change", index=index)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _watch_url(self, key: str, prev_index: int = 0) -> str:
        if prev_index:
            self.prev_index = prev_index
        url = self.url_prefix + key + "?wait=true"
        if self.prev_index:
            url += f"&waitIndex={self.prev_index + 1}"
        return url

    def _fetch(self, url: str):
        """Long-poll ``url``; a reply without a usable index is a failed request."""
        reply = self.reply_type(self.transport.get(url, wait=True))
        return reply, reply.get_modified_index()

    def _resync(self, key: str, callback: Callback, watch_url: str, log: ContextLogger) -> str:
        """Fetch current state after a cleared index; return the next watch URL.

        Request and decoding failures are logged and the previous URL is kept.
        """
        try:
            self.transport.enable_header(True)
            # the root listing carries no modifiedIndex; the header is the anchor
            reply = self.reply_type(self.transport.get(self.url_prefix + key))
            headers = self.transport.get_header()
        except Exception as e:
            log.warning(f"Resync failed: {e}", index=self.prev_index)
            return watch_url
        finally:
            self.transport.enable_header(False)

        callback(reply)

        index = index_from_headers(headers)
        if index is None:
            log.warning(f"Resync reply had no usable {ETCD_INDEX_HEADER} header", index=self.prev_index)
        else:
            self.prev_index = index
            log.info("Resynchronized", index=index)
        return self._watch_url(key)
