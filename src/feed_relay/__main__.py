# ABOUTME: CLI entry point for the FeedRelay update engine.
# ABOUTME: Provides subcommands: run, watch, serve, subscribe, unsubscribe, list, export.

import argparse
import logging
import sys
import time
from dataclasses import asdict

import structlog

from feed_relay.config import get_settings
from feed_relay.exceptions import FeedRelayError


def configure_logging() -> None:
    """Configure structlog for console or JSON output."""
    settings = get_settings()

    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    if settings.log_format == "json":
        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.add_log_level,
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(log_level),
        )
    else:
        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
                structlog.processors.add_log_level,
                structlog.dev.ConsoleRenderer(colors=True),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(log_level),
        )


def cmd_run(args: argparse.Namespace) -> int:
    """Run a single update sweep and print its summary."""
    from feed_relay.engine import FeedRelay

    log = structlog.get_logger()
    log.info("cmd_run_start")

    try:
        with FeedRelay() as relay:
            summary = relay.scheduler.run_once()
    except Exception:
        log.exception("cmd_run_failed")
        return 1

    for name, value in asdict(summary).items():
        print(f"{name}: {value}")
    return 0


def cmd_watch(args: argparse.Namespace) -> int:
    """Run sweeps forever at a fixed cadence.

    Sweeps run back to back in this process, so they never overlap.
    """
    from feed_relay.engine import FeedRelay

    log = structlog.get_logger()
    settings = get_settings()
    interval = args.interval or settings.poll_interval
    log.info("cmd_watch_start", interval=interval)

    with FeedRelay() as relay:
        try:
            while True:
                tick = time.monotonic()
                try:
                    relay.scheduler.run_once()
                except Exception:
                    log.exception("watch_tick_failed")
                if args.once:
                    return 0
                time.sleep(max(0.0, interval - (time.monotonic() - tick)))
        except KeyboardInterrupt:
            log.info("cmd_watch_stopped")
            return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Serve the HTTP trigger and health endpoints."""
    import uvicorn

    uvicorn.run("feed_relay.web.app:app", host=args.host, port=args.port)
    return 0


def cmd_subscribe(args: argparse.Namespace) -> int:
    from feed_relay.engine import FeedRelay

    log = structlog.get_logger()
    try:
        with FeedRelay() as relay:
            subscription = relay.subscriptions.subscribe(args.subscriber, args.url)
    except FeedRelayError as e:
        log.error("cmd_subscribe_failed", error=str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Subscribed to {subscription.display_title}")
    return 0


def cmd_unsubscribe(args: argparse.Namespace) -> int:
    from feed_relay.engine import FeedRelay

    log = structlog.get_logger()
    try:
        with FeedRelay() as relay:
            removed = relay.subscriptions.unsubscribe(args.subscriber, args.url)
    except FeedRelayError as e:
        log.error("cmd_unsubscribe_failed", error=str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Unsubscribed from {removed.display_title}")
    return 0


def cmd_list(args: argparse.Namespace) -> int:
    from feed_relay.engine import FeedRelay

    log = structlog.get_logger()
    try:
        with FeedRelay() as relay:
            subscriptions = relay.subscriptions.list_subscriptions(args.subscriber)
    except FeedRelayError as e:
        log.error("cmd_list_failed", error=str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not subscriptions:
        print("No subscriptions")
        return 0

    for index, sub in enumerate(subscriptions, start=1):
        print(f"{index}. {sub.display_title} - {sub.feed_url}")
    return 0


def cmd_export(args: argparse.Namespace) -> int:
    from feed_relay.engine import FeedRelay

    log = structlog.get_logger()
    try:
        with FeedRelay() as relay:
            opml = relay.subscriptions.export_opml(args.subscriber)
    except FeedRelayError as e:
        log.error("cmd_export_failed", error=str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(opml)
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="feed-relay",
        description="FeedRelay - deliver new RSS/Atom entries to subscribers",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("run", help="Run one update sweep")

    watch_parser = subparsers.add_parser("watch", help="Run update sweeps on a fixed cadence")
    watch_parser.add_argument(
        "--interval",
        type=int,
        default=None,
        help="Seconds between sweeps (default: POLL_INTERVAL setting)",
    )
    watch_parser.add_argument(
        "--once",
        action="store_true",
        help="Stop after the first sweep",
    )

    serve_parser = subparsers.add_parser("serve", help="Serve the HTTP trigger endpoint")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    for name, help_text in (
        ("subscribe", "Subscribe a chat to a feed"),
        ("unsubscribe", "Unsubscribe a chat from a feed"),
    ):
        sub_parser = subparsers.add_parser(name, help=help_text)
        sub_parser.add_argument("subscriber", help="Chat ID of the user or group")
        sub_parser.add_argument("url", help="Feed URL")

    list_parser = subparsers.add_parser("list", help="List a chat's subscriptions")
    list_parser.add_argument("subscriber", help="Chat ID of the user or group")

    export_parser = subparsers.add_parser("export", help="Export a chat's subscriptions as OPML")
    export_parser.add_argument("subscriber", help="Chat ID of the user or group")

    return parser


def main() -> int:
    """Main entry point."""
    configure_logging()

    parser = create_parser()
    args = parser.parse_args()

    commands = {
        "run": cmd_run,
        "watch": cmd_watch,
        "serve": cmd_serve,
        "subscribe": cmd_subscribe,
        "unsubscribe": cmd_unsubscribe,
        "list": cmd_list,
        "export": cmd_export,
    }

    handler = commands.get(args.command)
    if handler:
        return handler(args)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
