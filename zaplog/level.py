"""Logging levels, level enablers and an atomically changeable level."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, ClassVar

_NAMES = {
    -1: "debug",
    0: "info",
    1: "warn",
    2: "error",
    3: "dpanic",
    4: "panic",
    5: "fatal",
}
_BY_NAME = {name: value for value, name in _NAMES.items()}


class Level(int):
    """A logging priority. Higher levels are more important.

    Arithmetic with integers yields another ``Level``, so ``Level.FATAL + 1``
    is a level above every named one.
    """

    DEBUG: ClassVar[Level]
    INFO: ClassVar[Level]
    WARN: ClassVar[Level]
    ERROR: ClassVar[Level]
    DPANIC: ClassVar[Level]
    PANIC: ClassVar[Level]
    FATAL: ClassVar[Level]

    def __new__(cls, value: int = 0) -> Level:
        return super().__new__(cls, value)

    def enabled(self, lvl: int) -> bool:
        """Report whether ``lvl`` is at or above this level."""
        return lvl >= self

    def __str__(self) -> str:
        name = _NAMES.get(int(self))
        return name if name is not None else f"Level({int(self)})"

    def __repr__(self) -> str:
        name = _NAMES.get(int(self))
        return f"Level.{name.upper()}" if name is not None else f"Level({int(self)})"

    def __format__(self, spec: str) -> str:
        return format(str(self), spec)

    def __add__(self, other):
        result = int.__add__(self, other)
        return result if result is NotImplemented else Level(result)

    __radd__ = __add__

    def __sub__(self, other):
        result = int.__sub__(self, other)
        return result if result is NotImplemented else Level(result)


Level.DEBUG = Level(-1)
Level.INFO = Level(0)
Level.WARN = Level(1)
Level.ERROR = Level(2)
Level.DPANIC = Level(3)
Level.PANIC = Level(4)
Level.FATAL = Level(5)

DEBUG = Level.DEBUG
INFO = Level.INFO
WARN = Level.WARN
ERROR = Level.ERROR
DPANIC = Level.DPANIC
PANIC = Level.PANIC
FATAL = Level.FATAL


def parse_level(text: str | bytes) -> Level:
    """Parse a level name such as ``"info"`` or ``"INFO"``.

    The empty string means info. Names must be all lower or all upper case.
    Raises ``ValueError`` for anything else.
    """
    if isinstance(text, (bytes, bytearray, memoryview)):
        text = bytes(text).decode("utf-8", errors="replace")
    if text == "":
        return Level.INFO
    if text == text.lower() or text == text.upper():
        value = _BY_NAME.get(text.lower())
        if value is not None:
            return Level(value)
    raise ValueError(f'unrecognized level: "{text}"')


@dataclass(frozen=True)
class LevelEnablerFunc:
    """A level enabler backed by a plain function."""

    func: Callable[[Level], bool]

    def enabled(self, lvl: Level) -> bool:
        """Call the wrapped function."""
        return bool(self.func(lvl))


class AtomicLevel:
    """A thread-safe, dynamically changeable minimum level.

    Loggers sharing one instance all see changes made through it.
    """

    def __init__(self, lvl: int = Level.INFO) -> None:
        self._lock = threading.Lock()
        self._level = Level(lvl)

    def enabled(self, lvl: int) -> bool:
        """Report whether ``lvl`` is at or above the current level."""
        return self.level().enabled(lvl)

    def level(self) -> Level:
        """Return the current minimum enabled level."""
        with self._lock:
            return self._level

    def set_level(self, lvl: int) -> None:
        """Change the current level."""
        with self._lock:
            self._level = Level(lvl)

    def unmarshal_text(self, text: str | bytes) -> None:
        """Set the level from its text form; raise ``ValueError`` if unknown."""
        self.set_level(parse_level(text))

    def marshal_text(self) -> bytes:
        """Return the text form of the current level."""
        return str(self.level()).encode()

    def __str__(self) -> str:
        return str(self.level())

    def __repr__(self) -> str:
        return f"AtomicLevel({self.level()!r})"


def new_atomic_level_at(lvl: int) -> AtomicLevel:
    """Create an atomic level set to ``lvl``."""
    return AtomicLevel(lvl)