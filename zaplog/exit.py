"""Process termination that tests can replace with a recording stub."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import Callable


def _terminate() -> None:
    sys.exit(1)


_real: Callable[[], None] = _terminate


def exit_process() -> None:
    """Terminate the process with status 1, unless a stub is installed."""
    _real()


@dataclass
class StubbedExit:
    """A recording replacement for process termination."""

    exited: bool = False
    _prev: Callable[[], None] = field(default=_terminate, repr=False)

    def _exit(self) -> None:
        self.exited = True

    def unstub(self) -> None:
        """Restore the exit function that was active before this stub."""
        global _real
        _real = self._prev

    def __enter__(self) -> StubbedExit:
        return self

    def __exit__(self, *exc_info) -> None:
        self.unstub()


def stub() -> StubbedExit:
    """Install a stub in place of process termination and return it."""
    global _real
    s = StubbedExit(_prev=_real)
    _real = s._exit
    return s


def with_stub(f: Callable[[], None]) -> StubbedExit:
    """Run ``f`` with termination stubbed and return the stub used."""
    s = stub()
    try:
        f()
    finally:
        s.unstub()
    return s