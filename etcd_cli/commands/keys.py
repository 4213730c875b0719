"""Key commands: get, set, rm, ls."""
from __future__ import annotations

import argparse

from etcd_cli.core import get_client, output_json, reply_to_dict


def cmd_get(args: argparse.Namespace) -> None:
    with get_client(args) as client:
        reply = client.get(args.key)
    output_json({"ok": True, "key": args.key, **reply_to_dict(reply)})


def cmd_set(args: argparse.Namespace) -> None:
    with get_client(args) as client:
        reply = client.set(args.key, args.value, ttl=getattr(args, "ttl", None))
    output_json({"ok": True, "key": args.key, **reply_to_dict(reply)})


def cmd_rm(args: argparse.Namespace) -> None:
    with get_client(args) as client:
        if getattr(args, "dir", False) or getattr(args, "recursive", False):
            reply = client.rmdir(args.key, recursive=bool(getattr(args, "recursive", False)))
        else:
            reply = client.delete(args.key)
    output_json({"ok": True, "key": args.key, **reply_to_dict(reply)})


def cmd_ls(args: argparse.Namespace) -> None:
    with get_client(args) as client:
        reply = client.ls(args.key, recursive=bool(getattr(args, "recursive", False)))
    output_json({"ok": True, "key": args.key, **reply_to_dict(reply)})
