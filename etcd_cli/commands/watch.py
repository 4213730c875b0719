"""Watch command: stream changes on a key or directory."""
from __future__ import annotations

import argparse
import signal
import sys
import threading

from etcd_cli.core import get_watch, output_line, reply_to_dict


def cmd_watch(args: argparse.Namespace) -> None:
    """Print one JSON line per change until interrupted or the watch gives up."""
    key = args.key
    start_index = int(getattr(args, "index", 0) or 0)
    watch = get_watch(args)

    def on_change(reply) -> None:
        output_line({"key": key, **reply_to_dict(reply)})

    try:
        if getattr(args, "once", False):
            watch.run_once(key, on_change, start_index)
            return

        stop = threading.Event()
        # SIGTERM only stops the loop before the next long-poll is issued
        signal.signal(signal.SIGTERM, lambda *_: stop.set())
        print(f"Watching {key} on {watch.url_prefix}", file=sys.stderr)
        watch.run(key, on_change, start_index, cancel=stop)
    finally:
        watch.close()
