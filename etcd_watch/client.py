"""Thin key/value client over the etcd v2 keys API."""
from __future__ import annotations

from typing import Dict, Optional, Type

from etcd_watch.logger import ClientException, ReplyParseError, TransportError, get_logger
from etcd_watch.reply import JsonReply, Reply
from etcd_watch.transport import Transport

logger = get_logger(__name__)


def build_url_prefix(server: str, port: int) -> str:
    return f"http://{server}:{port}/v2/keys"


class Client:
    """Single-shot get/set/delete requests, each wrapped in ``reply_type``.

    Server-side errors (key not found, not a file, ...) propagate as
    ``ReplyException``; everything else is raised as ``ClientException``.
    """

    def __init__(
        self,
        server: str,
        port: int,
        reply_type: Type[Reply] = JsonReply,
        transport: Optional[Transport] = None,
    ):
        try:
            self.transport = transport if transport is not None else Transport()
        except Exception as e:
            raise ClientException(str(e)) from e
        self.reply_type = reply_type
        self.url_prefix = build_url_prefix(server, port)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self) -> None:
        self.transport.close()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get(self, key: str) -> Reply:
        return self._request("GET", self.url_prefix + key)

    def ls(self, key: str, recursive: bool = False) -> Reply:
        query = "?sorted=true" + ("&recursive=true" if recursive else "")
        return self._request("GET", self.url_prefix + key + query)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def set(self, key: str, value: str, ttl: Optional[int] = None) -> Reply:
        options: Dict[str, object] = {"value": value}
        if ttl is not None:
            options["ttl"] = int(ttl)
        return self._request("PUT", self.url_prefix + key, options)

    def add(self, key: str, value: str) -> Reply:
        """Create an in-order key under the directory ``key``."""
        return self._request("POST", self.url_prefix + key, {"value": value})

    def mkdir(self, key: str) -> Reply:
        return self._request("PUT", self.url_prefix + key, {"dir": "true"})

    def delete(self, key: str) -> Reply:
        return self._request("DELETE", self.url_prefix + key)

    def rmdir(self, key: str, recursive: bool = False) -> Reply:
        query = "?dir=true" + ("&recursive=true" if recursive else "")
        return self._request("DELETE", self.url_prefix + key + query)

    def _request(self, method: str, url: str, options: Optional[Dict[str, object]] = None) -> Reply:
        try:
            if method == "GET":
                body = self.transport.get(url)
            else:
                body = self.transport.set(url, method, options or {})
        except TransportError as e:
            raise ClientException(str(e)) from e
        try:
            return self.reply_type(body)
        except ReplyParseError as e:
            raise ClientException(f"{method} {url}: {e}") from e
