"""
Run the submission ingestion pipeline from CLI.

Without --once the worker polls until interrupted (SIGINT / SIGTERM), then
releases its database connections.
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import os
import signal

from app.config import get_submission_pipeline_settings
from app.scheduler.polling_loop import PollingLoop
from app.services.ingestion_pipeline import get_ingestion_pipeline


def _configure_logging() -> None:
    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def resolve_interval(override: float | None) -> float:
    """An explicit --interval wins, including 0; otherwise the configured interval."""
    if override is not None:
        return override
    return get_submission_pipeline_settings().poll_interval_seconds


def main() -> int:
    parser = argparse.ArgumentParser(description="Poll the submission spreadsheet into the database.")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single poll cycle, print its summary and exit.",
    )
    parser.add_argument(
        "--interval",
        dest="interval",
        type=float,
        default=None,
        help="Override SUBMISSIONS_POLL_INTERVAL_SECONDS.",
    )
    args = parser.parse_args()

    _configure_logging()
    pipeline = get_ingestion_pipeline()

    if args.once:
        try:
            summary = pipeline.run_cycle()
        finally:
            pipeline.shutdown()
        print(json.dumps(dataclasses.asdict(summary), default=str, indent=2))
        return 0

    interval = resolve_interval(args.interval)
    loop = PollingLoop(
        run_cycle=pipeline.run_cycle,
        interval_seconds=interval,
        on_shutdown=pipeline.shutdown,
    )

    def _request_stop(signum: int, _frame: object) -> None:
        logging.getLogger(__name__).info("Received signal %s; stopping after the current cycle", signum)
        loop.stop()

    signal.signal(signal.SIGINT, _request_stop)
    signal.signal(signal.SIGTERM, _request_stop)

    loop.run_forever()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
