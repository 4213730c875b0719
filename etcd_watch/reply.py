"""Decoding of etcd v2 JSON responses.

The watch controller and client only depend on the ``Reply`` protocol, so a
caller can plug in another decoder as long as it can be built from the body
text and exposes ``get_modified_index`` and ``get_all``.
"""
from __future__ import annotations

import json
from typing import Any, Dict, Iterator, Optional, Protocol, runtime_checkable

from etcd_watch.logger import ReplyException, ReplyParseError

# etcd v2 error codes the library cares about
EVENT_INDEX_CLEARED = 401
KEY_NOT_FOUND = 100


@runtime_checkable
class Reply(Protocol):
    def __init__(self, body: str) -> None: ...

    def get_modified_index(self) -> int: ...

    def get_all(self) -> Dict[str, str]: ...


class JsonReply:
    """Reply backed by the JSON document etcd returns.

    Raises ``ReplyException`` for error documents and ``ReplyParseError`` for
    empty or malformed bodies.
    """

    def __init__(self, body: str):
        if body is None or not str(body).strip():
            raise ReplyParseError("empty reply")
        try:
            doc = json.loads(body)
        except ValueError as e:
            raise ReplyParseError(f"invalid JSON reply: {e}") from e
        if not isinstance(doc, dict):
            raise ReplyParseError(f"unexpected reply type: {type(doc).__name__}")

        if "errorCode" in doc:
            try:
                code = int(doc["errorCode"])
            except (TypeError, ValueError) as e:
                raise ReplyParseError(f"invalid errorCode: {doc['errorCode']!r}") from e
            index = doc.get("index")
            raise ReplyException(
                code,
                str(doc.get("message") or ""),
                cause=doc.get("cause"),
                index=int(index) if isinstance(index, int) else None,
            )

        node = doc.get("node")
        if not isinstance(node, dict):
            raise ReplyParseError("reply has no node")
        self.doc = doc
        self.node: Dict[str, Any] = node

    @property
    def action(self) -> str:
        return str(self.doc.get("action") or "")

    @property
    def prev_node(self) -> Optional[Dict[str, Any]]:
        prev = self.doc.get("prevNode")
        return prev if isinstance(prev, dict) else None

    @property
    def key(self) -> str:
        return str(self.node.get("key") or "")

    def is_dir(self) -> bool:
        return bool(self.node.get("dir"))

    def get_value(self) -> Optional[str]:
        value = self.node.get("value")
        return None if value is None else str(value)

    def get_modified_index(self) -> int:
        """The node's ``modifiedIndex``.

        etcd leaves it out on the root directory listing; a missing or
        non-integer index raises ``ReplyParseError`` rather than reading as 0.
        """
        index = self.node.get("modifiedIndex")
        if isinstance(index, bool) or not isinstance(index, int) or index < 0:
            raise ReplyParseError(f"invalid modifiedIndex: {index!r}")
        return index

    def get_all(self) -> Dict[str, str]:
        """Flatten the node tree into ``{key: value}`` for every leaf."""
        return dict(_iter_leaves(self.node))

    def __repr__(self) -> str:
        return f"JsonReply(action={self.action!r}, key={self.key!r}, index={self.node.get('modifiedIndex')!r})"


def _iter_leaves(node: Dict[str, Any]) -> Iterator[tuple]:
    if node.get("dir"):
        for child in node.get("nodes") or []:
            if isinstance(child, dict):
                yield from _iter_leaves(child)
        return
    key = node.get("key")
    if key is None:
        return
    value = node.get("value")
    yield str(key), "" if value is None else str(value)
