"""Serve a file or string until interrupted.

    python -m webserve --file report.html --port 9000
    python -m webserve --text '<h1>hello</h1>'
    python -m webserve --file report.html --reload   # re-serve on file change

Exit Codes:
  0 clean shutdown
  2 invalid arguments, unreadable file, or bind failure
"""
from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
import threading
from pathlib import Path

from .api import DEFAULT_DOCUMENT, get_controller, serve, stop
from .exceptions import BindError, ValidationError
from .metrics import setup_metrics_server
from .settings import get_settings
from .utils.logging_utils import setup_logging

logger = logging.getLogger("webserve")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    settings = get_settings()
    p = argparse.ArgumentParser(prog="webserve", description="Serve one HTML document over HTTP")
    source = p.add_mutually_exclusive_group()
    source.add_argument("--file", type=Path, help="HTML file to serve")
    source.add_argument("--text", help="Literal document to serve")
    p.add_argument("--port", type=int, default=settings.port, help="Listen port (default %(default)s)")
    p.add_argument("--address", default=settings.address, help="Bind address (default %(default)s)")
    p.add_argument("--reload", action="store_true", help="Re-serve --file whenever it changes")
    p.add_argument("--reload-interval", type=float, default=1.0, help="File poll interval seconds")
    p.add_argument("--metrics-port", type=int, default=0, help="Expose Prometheus metrics on this port (0=off)")
    p.add_argument("--log-level", default=os.environ.get("WEBSERVE_CLI_LOG_LEVEL", "INFO"))
    p.add_argument("--log-file", default=None)
    args = p.parse_args(argv)
    if args.reload and args.file is None:
        p.error("--reload requires --file")
    return args


def read_document(args: argparse.Namespace) -> str:
    if args.file is not None:
        return args.file.read_text(encoding="utf-8")
    if args.text is not None:
        return args.text
    return DEFAULT_DOCUMENT


def _mtime(path: Path) -> float | None:
    try:
        return path.stat().st_mtime
    except OSError:
        return None


def _install_signal_handlers(stop_event: threading.Event) -> None:
    def _on_signal(signum, _frame):
        logger.info("Received signal %s; stopping", signum)
        stop_event.set()

    signal.signal(signal.SIGINT, _on_signal)
    signal.signal(signal.SIGTERM, _on_signal)


def main(argv: list[str] | None = None, stop_event: threading.Event | None = None) -> int:
    """Run until SIGINT/SIGTERM, or until ``stop_event`` is set when one is given."""
    args = parse_args(argv)
    setup_logging(args.log_level, args.log_file)
    try:
        document = read_document(args)
    except (OSError, UnicodeDecodeError) as e:
        logger.error("Cannot read %s: %s", args.file, e)
        return 2
    if args.metrics_port:
        try:
            setup_metrics_server(args.metrics_port)
        except OSError as e:
            logger.error("Cannot expose metrics on port %s: %s", args.metrics_port, e)
            return 2

    controller = get_controller()
    try:
        serve(document, args.port, args.address, controller=controller)
    except (ValidationError, BindError) as e:
        logger.error("%s", e)
        return 2

    addr = controller.bound_address or (args.address, args.port)
    logger.info("Serving http://%s:%s/ (Ctrl-C to stop)", *addr)

    if stop_event is None:
        stop_event = threading.Event()
        _install_signal_handlers(stop_event)

    last_mtime = _mtime(args.file) if args.reload else None
    try:
        while not stop_event.wait(args.reload_interval if args.reload else 0.5):
            if not args.reload:
                continue
            current = _mtime(args.file)
            if current is None or current == last_mtime:
                continue
            last_mtime = current
            try:
                serve(read_document(args), args.port, args.address, controller=controller)
                logger.info("Reloaded %s", args.file)
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Reload of %s failed: %s", args.file, e)
    finally:
        stop(controller=controller)
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
