"""Entries, checked entries and the cores that write them."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import Any, Iterable

from zaplog.exit import exit_process
from zaplog.level import Level


@dataclass(frozen=True)
class Field:
    """A key and a value attached to a log entry."""

    key: str
    value: Any = None

    def add_to(self, enc) -> None:
        """Add this field to an encoder via its ``add(key, value)`` method."""
        enc.add(self.key, self.value)


@dataclass
class EntryCaller:
    """The place in the program that made a logging call."""

    defined: bool = False
    pc: int = 0
    file: str = ""
    line: int = 0
    function: str = ""

    def full_path(self) -> str:
        """Return ``file:line``, or ``undefined`` if the caller is unknown."""
        if not self.defined:
            return "undefined"
        return f"{self.file}:{self.line}"

    def __str__(self) -> str:
        return self.full_path()


@dataclass
class Entry:
    """A single log message and its metadata."""

    level: Level = Level.INFO
    time: datetime | None = None
    logger_name: str = ""
    message: str = ""
    caller: EntryCaller = field(default_factory=EntryCaller)
    stack: str = ""


class CheckWriteAction(IntEnum):
    """What to do after an entry has been written."""

    WRITE_THEN_NOOP = 0
    WRITE_THEN_GOEXIT = 1
    WRITE_THEN_PANIC = 2
    WRITE_THEN_FATAL = 3


class PanicError(Exception):
    """Raised after writing an entry whose action is to panic."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


def _to_bytes(data) -> bytes:
    if isinstance(data, str):
        return data.encode()
    return bytes(data)


@dataclass
class CheckedEntry:
    """An entry that passed the level checks, with the cores that accept it."""

    entry: Entry = field(default_factory=Entry)
    error_output: Any = None
    should_action: CheckWriteAction = CheckWriteAction.WRITE_THEN_NOOP
    cores: list = field(default_factory=list)
    _dirty: bool = field(default=False, repr=False, compare=False)

    def add_core(self, ent: Entry, core: Core) -> CheckedEntry:
        """Add a core that agreed to write this entry; return self."""
        self.cores.append(core)
        return self

    def should(self, ent: Entry, action: CheckWriteAction) -> CheckedEntry:
        """Set the action taken after writing; return self."""
        self.should_action = CheckWriteAction(action)
        return self

    def _report(self, message: str) -> None:
        self.error_output.write(message.encode())
        try:
            self.error_output.sync()
        except Exception:
            pass

    def write(self, *args: Field) -> None:
        """Write the entry and fields to every core, then take the action.

        Write failures are reported to ``error_output``. A panic action
        raises ``PanicError``; a fatal action terminates the process.
        """
        if self._dirty:
            if self.error_output is not None:
                self._report(
                    f"{self.entry.time} Unsafe CheckedEntry re-use near Entry {self.entry!r}.\n"
                )
            return
        self._dirty = True

        fields = list(args)
        errors = []
        for core in self.cores:
            try:
                core.write(self.entry, fields)
            except Exception as exc:
                errors.append(exc)
        if errors and self.error_output is not None:
            detail = "; ".join(str(e) for e in errors)
            self._report(f"{self.entry.time} write error: {detail}\n")

        action = self.should_action
        if action == CheckWriteAction.WRITE_THEN_PANIC:
            raise PanicError(self.entry.message)
        if action == CheckWriteAction.WRITE_THEN_FATAL:
            exit_process()
        elif action == CheckWriteAction.WRITE_THEN_GOEXIT:
            raise SystemExit(0)


class Core(ABC):
    """Minimal logger interface: level check, context, writing and syncing."""

    @abstractmethod
    def enabled(self, lvl: Level) -> bool:
        """Report whether ``lvl`` would be logged."""

    @abstractmethod
    def with_fields(self, fields: Iterable[Field]) -> Core:
        """Return a core carrying the extra context fields."""

    @abstractmethod
    def check(self, ent: Entry, ce: CheckedEntry | None) -> CheckedEntry | None:
        """Add this core to ``ce`` if the entry should be logged."""

    @abstractmethod
    def write(self, ent: Entry, fields: list[Field]) -> None:
        """Serialize and write the entry; raise on failure."""

    @abstractmethod
    def sync(self) -> None:
        """Flush any buffered output."""


class NopCore(Core):
    """A core that never logs anything."""

    def enabled(self, lvl: Level) -> bool:
        return False

    def with_fields(self, fields: Iterable[Field]) -> Core:
        return self

    def check(self, ent: Entry, ce: CheckedEntry | None) -> CheckedEntry | None:
        return ce

    def write(self, ent: Entry, fields: list[Field]) -> None:
        return None

    def sync(self) -> None:
        return None


class IOCore(Core):
    """A core that encodes entries and writes them to a write syncer.

    The encoder provides ``clone()``, ``add(key, value)`` and
    ``encode_entry(entry, fields)`` returning bytes or text. The output
    provides ``write(data)`` and ``sync()``. The enabler is a level or any
    object with an ``enabled(level)`` method.
    """

    def __init__(self, enc, out, enab) -> None:
        if isinstance(enab, int) and not isinstance(enab, Level):
            enab = Level(enab)
        self._enabler = enab
        self._enc = enc
        self._out = out

    def enabled(self, lvl: Level) -> bool:
        return self._enabler.enabled(lvl)

    def with_fields(self, fields: Iterable[Field]) -> Core:
        clone = IOCore(self._enc.clone(), self._out, self._enabler)
        for f in fields:
            f.add_to(clone._enc)
        return clone

    def check(self, ent: Entry, ce: CheckedEntry | None) -> CheckedEntry | None:
        if not self.enabled(ent.level):
            return ce
        if ce is None:
            ce = CheckedEntry(entry=ent)
        return ce.add_core(ent, self)

    def write(self, ent: Entry, fields: list[Field]) -> None:
        data = self._enc.encode_entry(ent, list(fields))
        self._out.write(_to_bytes(data))
        if ent.level > Level.ERROR:
            # The program may be about to stop; flush, ignoring failures.
            try:
                self.sync()
            except Exception:
                pass

    def sync(self) -> None:
        self._out.sync()