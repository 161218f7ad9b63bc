"""Opening sinks by URL and combining write syncers."""

from __future__ import annotations

import threading
from contextlib import suppress
from dataclasses import dataclass
from typing import Callable

from zaplog.sink import Sink, new_sink


def _raise_combined(errors: list[BaseException]) -> None:
    if not errors:
        return
    if len(errors) == 1:
        raise errors[0]
    raise OSError("; ".join(str(e) for e in errors)) from errors[0]


@dataclass(frozen=True)
class DiscardWriteSyncer:
    """A write syncer that discards everything."""

    def write(self, data) -> int:
        return len(data)

    def sync(self) -> None:
        return None


class MultiWriteSyncer:
    """Duplicates writes and syncs to every wrapped write syncer."""

    def __init__(self, writers) -> None:
        self._writers = tuple(writers)

    def write(self, data) -> int:
        """Write to every writer; return the smallest count, raise any failures."""
        errors = []
        written = None
        for w in self._writers:
            try:
                n = w.write(data)
            except Exception as exc:
                errors.append(exc)
                continue
            if n is not None:
                written = n if written is None else min(written, n)
        _raise_combined(errors)
        return len(data) if written is None else written

    def sync(self) -> None:
        """Sync every writer, raising any failures after all were tried."""
        errors = []
        for w in self._writers:
            try:
                w.sync()
            except Exception as exc:
                errors.append(exc)
        _raise_combined(errors)


class LockedWriteSyncer:
    """Serializes access to a write syncer with a lock."""

    def __init__(self, ws) -> None:
        self._ws = ws
        self._lock = threading.Lock()

    def write(self, data) -> int:
        with self._lock:
            return self._ws.write(data)

    def sync(self) -> None:
        with self._lock:
            self._ws.sync()


def combine_write_syncers(*writers):
    """Combine writers into one locked write syncer; none gives a discarder."""
    if not writers:
        return DiscardWriteSyncer()
    return LockedWriteSyncer(MultiWriteSyncer(writers))


def open_sinks(*paths: str) -> tuple[object, Callable[[], None]]:
    """Open every URL or path and combine them into one write syncer.

    Returns the write syncer and a function that closes what was opened.
    If any path fails, everything opened is closed and ``ValueError`` is
    raised describing every failure.
    """
    sinks: list[Sink] = []
    failures: list[tuple[str, BaseException]] = []
    for path in paths:
        try:
            sinks.append(new_sink(path))
        except Exception as exc:
            failures.append((path, exc))

    def close() -> None:
        for s in sinks:
            with suppress(Exception):
                s.close()

    if failures:
        close()
        message = "; ".join(f'couldn\'t open sink "{p}": {e}' for p, e in failures)
        raise ValueError(message) from failures[0][1]
    return combine_write_syncers(*sinks), close