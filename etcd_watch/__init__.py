"""
etcd_watch - client for the etcd v2 keys API with long-poll watches.

Public API:
- Watch: watch a key or directory, resynchronizing on cleared indexes
- Client: single-shot get/set/delete
- Transport: requests-based HTTP transport
- JsonReply / Reply: response decoding
"""
from __future__ import annotations

from .client import Client
from .logger import (
    ClientException,
    ConfigurationError,
    EtcdError,
    ReplyException,
    ReplyParseError,
    TransportError,
)
from .reply import EVENT_INDEX_CLEARED, JsonReply, Reply
from .transport import Transport
from .watch import Watch, index_from_headers

__all__ = [
    "Client",
    "Watch",
    "Transport",
    "JsonReply",
    "Reply",
    "EVENT_INDEX_CLEARED",
    "index_from_headers",
    "EtcdError",
    "ClientException",
    "ConfigurationError",
    "ReplyException",
    "ReplyParseError",
    "TransportError",
]
