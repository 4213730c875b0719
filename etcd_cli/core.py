"""Shared helpers for CLI commands."""
from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Dict, Tuple

from etcd_watch import config
from etcd_watch.logger import ReplyParseError


def resolve_address(args: argparse.Namespace) -> Tuple[str, int]:
    """Resolve server address: CLI arg > env > default."""
    host = getattr(args, "host", None) or config.ETCD_HOST
    port = getattr(args, "port", None) or config.ETCD_PORT
    return host, int(port)


def get_client(args: argparse.Namespace):
    from etcd_watch.client import Client

    host, port = resolve_address(args)
    return Client(host, port)


def get_watch(args: argparse.Namespace):
    from etcd_watch.watch import Watch

    host, port = resolve_address(args)
    return Watch(host, port)


def reply_to_dict(reply: Any) -> Dict[str, Any]:
    """Summarize a reply for JSON output; ``index`` is None for the root listing."""
    try:
        index = reply.get_modified_index()
    except ReplyParseError:
        index = None
    data: Dict[str, Any] = {
        "index": index,
        "values": reply.get_all(),
    }
    action = getattr(reply, "action", None)
    if action:
        data["action"] = action
    return data


def output_json(data: Any) -> None:
    """Write JSON to stdout — single place for all commands."""
    json.dump(data, sys.stdout, indent=2, default=str)
    sys.stdout.write("\n")


def output_line(data: Any) -> None:
    """Write one compact JSON line and flush; used for streaming output."""
    json.dump(data, sys.stdout, default=str, ensure_ascii=False)
    sys.stdout.write("\n")
    sys.stdout.flush()
