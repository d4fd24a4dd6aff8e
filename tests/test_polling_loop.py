"""
tests/test_polling_loop.py

Fixed-delay ticker behaviour without real wall-clock waits.
"""

from __future__ import annotations

from datetime import datetime, timezone

from app.domain.ingestion import PollCycleOutcome, PollCycleSummary
from app.scheduler.polling_loop import PollingLoop

_NOW = datetime(2026, 10, 19, tzinfo=timezone.utc)


def _summary(outcome: str = PollCycleOutcome.EMPTY) -> PollCycleSummary:
    return PollCycleSummary(outcome=outcome, started_at=_NOW, finished_at=_NOW)


class ScriptedWait:
    """Records requested sleeps; reports a stop after `stop_after` waits."""

    def __init__(self, stop_after: int) -> None:
        self.stop_after = stop_after
        self.waits: list[float] = []

    def __call__(self, seconds: float) -> bool:
        self.waits.append(seconds)
        return len(self.waits) >= self.stop_after


def test_sleeps_the_interval_between_cycles() -> None:
    wait = ScriptedWait(stop_after=3)
    cycles: list[int] = []
    loop = PollingLoop(
        run_cycle=lambda: cycles.append(1) or _summary(),
        interval_seconds=60,
        wait=wait,
    )

    loop.run_forever()

    assert len(cycles) == 3
    assert wait.waits == [60, 60, 60]


def test_cycle_errors_never_end_the_loop() -> None:
    outcomes = iter([RuntimeError("database gone"), _summary(PollCycleOutcome.COMMITTED)])

    def _run_cycle() -> PollCycleSummary:
        outcome = next(outcomes)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    loop = PollingLoop(run_cycle=_run_cycle, interval_seconds=1, wait=ScriptedWait(stop_after=2))

    loop.run_forever()

    assert loop.cycles_run == 2


def test_stop_interrupts_the_sleep_phase() -> None:
    shutdowns: list[bool] = []
    loop: PollingLoop

    def _run_cycle() -> PollCycleSummary:
        loop.stop()
        return _summary()

    loop = PollingLoop(
        run_cycle=_run_cycle,
        interval_seconds=3600,
        on_shutdown=lambda: shutdowns.append(True),
    )

    loop.run_forever()

    assert loop.cycles_run == 1
    assert loop.stopped
    assert shutdowns == [True]


def test_stop_before_start_runs_no_cycle_but_still_cleans_up() -> None:
    shutdowns: list[bool] = []
    loop = PollingLoop(
        run_cycle=_summary,
        interval_seconds=60,
        on_shutdown=lambda: shutdowns.append(True),
    )
    loop.stop()

    loop.run_forever()

    assert loop.cycles_run == 0
    assert shutdowns == [True]


def test_run_once_returns_none_on_failure() -> None:
    def _boom() -> PollCycleSummary:
        raise RuntimeError("boom")

    loop = PollingLoop(run_cycle=_boom, interval_seconds=60)

    assert loop.run_once() is None
