"""CLI entry point — argparse dispatcher for all subcommands."""
from __future__ import annotations

import argparse
import json
import sys
import traceback


# ---------------------------------------------------------------------------
# Command registry: command name → (module_path, function_name)
# Lazy-imported at dispatch time to keep startup fast.
# ---------------------------------------------------------------------------
COMMANDS = {
    "get":   ("etcd_cli.commands.keys",  "cmd_get"),
    "set":   ("etcd_cli.commands.keys",  "cmd_set"),
    "rm":    ("etcd_cli.commands.keys",  "cmd_rm"),
    "ls":    ("etcd_cli.commands.keys",  "cmd_ls"),
    "watch": ("etcd_cli.commands.watch", "cmd_watch"),
}


# ---------------------------------------------------------------------------
# Parser builder
# ---------------------------------------------------------------------------
def build_parser() -> argparse.ArgumentParser:
    from etcd_cli._version import __version__

    parser = argparse.ArgumentParser(
        prog="etcd-watch",
        description="etcd v2 key/value client with long-poll watches",
    )
    parser.add_argument("--debug", action="store_true", help="Show stack traces on error")
    parser.add_argument("-v", "--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--host", help="etcd host (default: $ETCD_HOST or 127.0.0.1)")
    parser.add_argument("--port", type=int, help="etcd client port (default: $ETCD_PORT or 2379)")
    sub = parser.add_subparsers(dest="command", required=True)

    # get
    p = sub.add_parser("get", help="Read a key")
    p.add_argument("key", help="Key path, e.g. /message")

    # set
    p = sub.add_parser("set", help="Write a key")
    p.add_argument("key", help="Key path")
    p.add_argument("value", help="Value to store")
    p.add_argument("--ttl", type=int, help="Time to live in seconds")

    # rm
    p = sub.add_parser("rm", help="Delete a key or directory")
    p.add_argument("key", help="Key path")
    p.add_argument("--dir", action="store_true", help="Delete an empty directory")
    p.add_argument("-r", "--recursive", action="store_true", help="Delete a directory and its contents")

    # ls
    p = sub.add_parser("ls", help="List a directory")
    p.add_argument("key", nargs="?", default="/", help="Directory path")
    p.add_argument("-r", "--recursive", action="store_true", help="Include nested directories")

    # watch
    p = sub.add_parser("watch", help="Stream changes on a key or directory")
    p.add_argument("key", help="Key or directory path")
    p.add_argument("--index", type=int, default=0, help="Last index already seen")
    p.add_argument("--once", action="store_true", help="Return after the first change")

    return parser


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------
def main() -> None:
    parser = build_parser()
    args = parser.parse_args(sys.argv[1:])

    entry = COMMANDS.get(args.command)
    if not entry:
        parser.print_help()
        sys.exit(1)

    mod_path, fn_name = entry
    try:
        import importlib
        mod = importlib.import_module(mod_path)
        fn = getattr(mod, fn_name)
        fn(args)
    except KeyboardInterrupt:
        sys.exit(130)
    except Exception as exc:
        json.dump({"ok": False, "error": str(exc)}, sys.stdout, default=str)
        sys.stdout.write("\n")
        if args.debug:
            traceback.print_exc(file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
