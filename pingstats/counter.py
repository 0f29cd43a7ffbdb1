"""Per-address request counter shared by the request path and the reporter."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from threading import Lock


class CounterLockError(RuntimeError):
    """Raised when the counter guard is unusable after a failed critical section."""


class RequestCounter:
    """Thread-safe mapping of client address to number of requests served.

    Every access, read or write, holds one lock. Writes are a single upsert;
    reads copy the mapping under the lock and sort the copy outside it, so the
    sorting cost lands on the (rare) reporter rather than on each request.

    An exception escaping a critical section poisons the counter: the mapping
    may be half-updated, so every later access raises ``CounterLockError``
    instead of serving possibly corrupted counts.
    """

    def __init__(self) -> None:
        self._counts: dict[str, int] = {}
        self._lock = Lock()
        self._poisoned = False

    @contextmanager
    def _guard(self) -> Iterator[dict[str, int]]:
        with self._lock:
            if self._poisoned:
                raise CounterLockError("Request counter lock is poisoned")
            try:
                yield self._counts
            except BaseException:
                self._poisoned = True
                raise

    @property
    def poisoned(self) -> bool:
        return self._poisoned

    def increment(self, address: str) -> None:
        with self._guard() as counts:
            counts[address] = counts.get(address, 0) + 1

    def get(self, address: str) -> int:
        with self._guard() as counts:
            return counts.get(address, 0)

    def snapshot(self) -> dict[str, int]:
        with self._guard() as counts:
            return dict(counts)

    def snapshot_sorted(self) -> list[tuple[str, int]]:
        """Return ``(address, count)`` pairs ordered by count, highest first.

        Equal counts keep no particular order.
        """

        entries = list(self.snapshot().items())
        entries.sort(key=lambda entry: entry[1], reverse=True)
        return entries

    def format_report(self) -> str:
        lines = ["IPs:"]
        lines.extend(f"  {address}: {count}" for address, count in self.snapshot_sorted())
        return "\n".join(lines) + "\n"

    def clear(self) -> None:
        with self._guard() as counts:
            counts.clear()

    def __len__(self) -> int:
        with self._guard() as counts:
            return len(counts)
