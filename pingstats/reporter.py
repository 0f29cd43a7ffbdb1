"""Background task that periodically prints ranked per-address request counts."""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Callable

from pingstats.counter import RequestCounter

ReportSink = Callable[[str], None]

stats_logger = logging.getLogger("pingstats.stats")


def write_to_stdout(report: str) -> None:
    """Write one report followed by a blank separator line."""

    sys.stdout.write(report + "\n")
    sys.stdout.flush()


class StatsReporter:
    """Emit ``counter.format_report()`` on a fixed-period schedule.

    The first report is emitted immediately, later ones every ``interval_seconds``
    measured from the start, not from the end of the previous cycle. A cycle
    that overruns makes the next one fire right away.
    """

    def __init__(
        self,
        counter: RequestCounter,
        *,
        interval_seconds: float = 1.0,
        sink: ReportSink | None = None,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self._counter = counter
        self._interval = interval_seconds
        self._sink = sink or write_to_stdout
        self._task: asyncio.Task[None] | None = None

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def task(self) -> asyncio.Task[None] | None:
        return self._task

    def report_once(self) -> None:
        self._sink(self._counter.format_report())

    async def run(self) -> None:
        """Report forever; ``CounterLockError`` ends the loop and propagates."""

        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        while True:
            delay = next_tick - loop.time()
            if delay > 0:
                await asyncio.sleep(delay)
            self.report_once()
            next_tick += self._interval

    def start(self) -> asyncio.Task[None]:
        if self._task is not None and not self._task.done():
            return self._task
        self._task = asyncio.create_task(self.run(), name="stats-reporter")
        self._task.add_done_callback(_log_reporter_exit)
        return self._task

    async def stop(self) -> None:
        task = self._task
        if task is None:
            return
        self._task = None
        if task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


def _log_reporter_exit(task: asyncio.Task[None]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is None:
        return
    stats_logger.error("stats_reporter_failed error=%s", exc, exc_info=exc)
