"""Writer spies and timeout scaling for testing log output."""

from __future__ import annotations

import logging
import os
import time
from typing import Callable

_log = logging.getLogger(__name__)


def _to_bytes(data: bytes | bytearray | memoryview | str) -> bytes:
    if isinstance(data, str):
        return data.encode()
    return bytes(data)


class Syncer:
    """Spy for the sync half of a write syncer."""

    def __init__(self) -> None:
        self._err: BaseException | None = None
        self._called = False

    def set_error(self, err: BaseException | None) -> None:
        """Set the exception that ``sync`` will raise."""
        self._err = err

    def sync(self) -> None:
        """Record the call, then raise the configured error if any."""
        self._called = True
        if self._err is not None:
            raise self._err

    @property
    def called(self) -> bool:
        """Whether ``sync`` has been called."""
        return self._called


class Discarder(Syncer):
    """Write syncer that throws every write away."""

    def write(self, data) -> int:
        return len(_to_bytes(data))


class FailWriter(Syncer):
    """Write syncer whose writes always fail."""

    def write(self, data) -> int:
        raise OSError("failed")


class ShortWriter(Syncer):
    """Write syncer that reports writing one byte less than given."""

    def write(self, data) -> int:
        return len(_to_bytes(data)) - 1


class Buffer(Syncer):
    """Write syncer that accumulates writes in memory."""

    def __init__(self) -> None:
        super().__init__()
        self._buf = bytearray()

    def write(self, data) -> int:
        chunk = _to_bytes(data)
        self._buf.extend(chunk)
        return len(chunk)

    def getvalue(self) -> str:
        """Return everything written so far as text."""
        return self._buf.decode()

    def __str__(self) -> str:
        return self.getvalue()

    def lines(self) -> list[str]:
        """Return the contents split on newlines, dropping the final piece."""
        return self.getvalue().split("\n")[:-1]

    def stripped(self) -> str:
        """Return the contents with trailing newlines removed."""
        return self.getvalue().rstrip("\n")


_timeout_scale = 1.0


def timeout(base: float) -> float:
    """Scale a duration in seconds by the current timeout scale."""
    return base * _timeout_scale


def sleep(base: float) -> None:
    """Sleep for the scaled duration."""
    time.sleep(timeout(base))


def initialize(factor: str) -> Callable[[], None]:
    """Set the timeout scale from text; return a function that undoes it."""
    global _timeout_scale
    original = _timeout_scale
    value = float(factor)
    _timeout_scale = value

    def undo() -> None:
        global _timeout_scale
        _timeout_scale = original

    return undo


_env_scale = os.environ.get("TEST_TIMEOUT_SCALE", "")
if _env_scale:
    initialize(_env_scale)
    _log.info("Scaling timeouts by %sx.", _timeout_scale)