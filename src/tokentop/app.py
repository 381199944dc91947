"""Command-line entry point: print session usage, optionally following changes."""

import argparse
import logging
import signal
import sys
from dataclasses import replace

import orjson
from PySide6.QtCore import QCoreApplication, QTimer

from tokentop.services.activity_watcher import ActivityWatcher
from tokentop.services.config_manager import ConfigManager
from tokentop.services.session_summary import summarize_sessions
from tokentop.services.usage_store import SessionUsageStore
from tokentop.types import ActivityUpdate, SessionAggregate, UsageRow
from tokentop.utils.pricing import format_cost, format_token_count

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tokentop", description="Agent session token usage")
    parser.add_argument("--storage", help="agent storage root (default from settings)")
    parser.add_argument("--session", help="only this session id")
    parser.add_argument("--limit", type=int, help="maximum number of sessions")
    parser.add_argument("--json", action="store_true", help="emit raw usage rows as JSON")
    parser.add_argument("--follow", action="store_true", help="keep running and print updates")
    parser.add_argument("--debug", action="store_true", help="enable debug logging")
    return parser


def format_summary(aggregate: SessionAggregate) -> str:
    totals = aggregate.totals
    cost = format_cost(aggregate.total_cost_usd) if aggregate.total_cost_usd is not None else "-"
    models = ", ".join(f"{s.provider_id}/{s.model_id}" for s in aggregate.streams)
    return (
        f"{aggregate.session_id:<32} {aggregate.status.value:<6} "
        f"in={format_token_count(totals.input):>8} out={format_token_count(totals.output):>8} "
        f"req={aggregate.request_count:<4} {cost:>9}  {models}"
    )


def format_activity(update: ActivityUpdate) -> str:
    return (
        f"+ {update.session_id} {update.message_id} "
        f"in={update.tokens.input} out={update.tokens.output}"
    )


def _print_rows(rows: list[UsageRow], as_json: bool, active_threshold_ms: int):
    if as_json:
        sys.stdout.write(orjson.dumps([r.to_dict() for r in rows]).decode() + "\n")
    else:
        for aggregate in summarize_sessions(rows, active_threshold_ms=active_threshold_ms):
            print(format_summary(aggregate))
    sys.stdout.flush()


def run(argv: list[str] | None = None) -> int:
    """Launch the application."""
    args = _build_parser().parse_args(argv)

    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    app.setApplicationName("tokentop")
    app.setOrganizationName("tokentop")

    config = ConfigManager()
    settings = config.ingest_settings()

    logging.basicConfig(
        level=logging.DEBUG if args.debug or settings.debug_logging else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    if args.storage:
        settings = replace(settings, storage_root=args.storage)
    store = SessionUsageStore.from_settings(settings)

    if not args.follow:
        rows = store.list_usage(session_id=args.session, limit=args.limit)
        _print_rows(rows, args.json, settings.active_threshold_ms)
        store.cleanup()
        return 0

    # Allow Ctrl+C to kill the app
    signal.signal(signal.SIGINT, signal.SIG_DFL)

    activity = ActivityWatcher(store.resolver)
    activity.activity.connect(lambda update: print(format_activity(update), flush=True))
    store.usage_refreshed.connect(
        lambda rows: _print_rows(rows, args.json, settings.active_threshold_ms)
    )

    timer = QTimer()
    timer.setInterval(settings.refresh_interval_ms)
    timer.timeout.connect(store.refresh)

    store.start()
    activity.start()
    timer.start()
    store.refresh()

    ret = app.exec()
    timer.stop()
    activity.stop()
    store.cleanup()
    return ret
