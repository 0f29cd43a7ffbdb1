from __future__ import annotations

import asyncio
import logging

import pytest

from pingstats.counter import CounterLockError, RequestCounter
from pingstats.reporter import StatsReporter, write_to_stdout


def _poisoned_counter() -> RequestCounter:
    counter = RequestCounter()
    with pytest.raises(TypeError):
        counter.increment([])  # type: ignore[arg-type]
    return counter


async def test_reporter_emits_ranked_reports_repeatedly() -> None:
    counter = RequestCounter()
    counter.increment("10.0.0.1")
    counter.increment("127.0.0.1")
    counter.increment("127.0.0.1")

    reports: list[str] = []
    enough = asyncio.Event()

    def _sink(report: str) -> None:
        reports.append(report)
        if len(reports) >= 3:
            enough.set()

    reporter = StatsReporter(counter, interval_seconds=0.01, sink=_sink)
    reporter.start()
    await asyncio.wait_for(enough.wait(), timeout=2)
    await reporter.stop()

    assert reporter.task is None
    assert reports[0] == "IPs:\n  127.0.0.1: 2\n  10.0.0.1: 1\n"
    assert all(report == reports[0] for report in reports)


async def test_reporter_first_report_is_immediate() -> None:
    counter = RequestCounter()
    reports: list[str] = []
    reporter = StatsReporter(counter, interval_seconds=60, sink=reports.append)

    reporter.start()
    for _ in range(50):
        if reports:
            break
        await asyncio.sleep(0.01)
    await reporter.stop()

    assert reports == ["IPs:\n"]


async def test_reporter_sees_new_increments_on_later_ticks() -> None:
    counter = RequestCounter()
    reports: list[str] = []
    reporter = StatsReporter(counter, interval_seconds=0.01, sink=reports.append)

    reporter.start()
    await asyncio.sleep(0.03)
    counter.increment("127.0.0.1")
    for _ in range(100):
        if reports and reports[-1] == "IPs:\n  127.0.0.1: 1\n":
            break
        await asyncio.sleep(0.01)
    await reporter.stop()

    assert reports[0] == "IPs:\n"
    assert reports[-1] == "IPs:\n  127.0.0.1: 1\n"


async def test_reporter_run_stops_on_lock_failure() -> None:
    reports: list[str] = []
    reporter = StatsReporter(_poisoned_counter(), interval_seconds=0.01, sink=reports.append)

    with pytest.raises(CounterLockError):
        await asyncio.wait_for(reporter.run(), timeout=2)

    assert reports == []


async def test_supervised_reporter_logs_lock_failure(caplog) -> None:
    caplog.set_level(logging.ERROR, logger="pingstats.stats")
    reporter = StatsReporter(_poisoned_counter(), interval_seconds=0.01, sink=lambda _report: None)

    task = reporter.start()
    await asyncio.wait({task}, timeout=2)
    await asyncio.sleep(0)

    assert task.done()
    assert isinstance(task.exception(), CounterLockError)
    assert any("stats_reporter_failed" in record.getMessage() for record in caplog.records)

    await reporter.stop()
    assert reporter.task is None


async def test_stop_without_start_is_noop() -> None:
    reporter = StatsReporter(RequestCounter())
    await reporter.stop()
    assert reporter.task is None


async def test_start_is_idempotent_while_running() -> None:
    reporter = StatsReporter(RequestCounter(), interval_seconds=60, sink=lambda _report: None)
    first = reporter.start()
    second = reporter.start()
    assert first is second
    await reporter.stop()
    assert first.cancelled()


def test_interval_must_be_positive() -> None:
    with pytest.raises(ValueError):
        StatsReporter(RequestCounter(), interval_seconds=0)


def test_write_to_stdout_appends_blank_separator(capsys) -> None:
    counter = RequestCounter()
    counter.increment("127.0.0.1")

    write_to_stdout(counter.format_report())
    write_to_stdout(counter.format_report())

    assert capsys.readouterr().out == "IPs:\n  127.0.0.1: 1\n\nIPs:\n  127.0.0.1: 1\n\n"


def test_report_once_uses_default_stdout_sink(capsys) -> None:
    reporter = StatsReporter(RequestCounter())
    reporter.report_once()
    assert capsys.readouterr().out == "IPs:\n\n"
