"""The structured, leveled Logger and the options that configure it."""

from __future__ import annotations

import copy
import sys
from contextlib import suppress
from datetime import datetime, timezone
from typing import Callable, Iterable, Protocol

from zaplog.core import (
    CheckedEntry,
    CheckWriteAction,
    Core,
    Entry,
    EntryCaller,
    Field,
    NopCore,
)
from zaplog.level import Level
from zaplog.stacktrace import _function_name, take_stacktrace
from zaplog.writer import DiscardWriteSyncer, LockedWriteSyncer

# The private check method is always called directly by a public Logger
# method, which in turn is called by the user.
_CALLER_SKIP_OFFSET = 2

_MIN_LEVEL = Level.DEBUG
_MAX_LEVEL = Level.FATAL


class Clock(Protocol):
    """Anything that can tell the current time."""

    def now(self) -> datetime: ...


class _SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


_SYSTEM_CLOCK = _SystemClock()


class _StderrWriteSyncer:
    """Writes to whatever ``sys.stderr`` is at the time of writing."""

    def write(self, data) -> int:
        chunk = data.encode() if isinstance(data, str) else bytes(data)
        sys.stderr.write(chunk.decode(errors="replace"))
        return len(chunk)

    def sync(self) -> None:
        sys.stderr.flush()


def _as_enabler(lvl):
    if isinstance(lvl, int) and not isinstance(lvl, Level):
        return Level(lvl)
    return lvl


def _write_text(out, text: str) -> None:
    out.write(text.encode())


class _HookedCore(Core):
    """Runs hook functions for every entry the wrapped core writes."""

    def __init__(self, core: Core, funcs: tuple[Callable[[Entry], None], ...]) -> None:
        self._core = core
        self._funcs = funcs

    def enabled(self, lvl: Level) -> bool:
        return self._core.enabled(lvl)

    def with_fields(self, fields: Iterable[Field]) -> Core:
        return _HookedCore(self._core.with_fields(fields), self._funcs)

    def check(self, ent: Entry, ce: CheckedEntry | None) -> CheckedEntry | None:
        downstream = self._core.check(ent, ce)
        if downstream is not None:
            return downstream.add_core(ent, self)
        return ce

    def write(self, ent: Entry, fields: list[Field]) -> None:
        errors = []
        for func in self._funcs:
            try:
                func(ent)
            except Exception as exc:
                errors.append(exc)
        if len(errors) == 1:
            raise errors[0]
        if errors:
            raise RuntimeError("; ".join(str(e) for e in errors)) from errors[0]

    def sync(self) -> None:
        self._core.sync()


class _LevelFilterCore(Core):
    """Restricts a core to levels that an extra enabler also allows."""

    def __init__(self, core: Core, level) -> None:
        self._core = core
        self._level = level

    def enabled(self, lvl: Level) -> bool:
        return self._level.enabled(lvl)

    def with_fields(self, fields: Iterable[Field]) -> Core:
        return _LevelFilterCore(self._core.with_fields(fields), self._level)

    def check(self, ent: Entry, ce: CheckedEntry | None) -> CheckedEntry | None:
        if not self._level.enabled(ent.level):
            return ce
        return self._core.check(ent, ce)

    def write(self, ent: Entry, fields: list[Field]) -> None:
        self._core.write(ent, fields)

    def sync(self) -> None:
        self._core.sync()


def _new_increase_level_core(core: Core, level) -> Core:
    level = _as_enabler(level)
    lvl = _MAX_LEVEL
    while lvl >= _MIN_LEVEL:
        if not core.enabled(lvl) and level.enabled(lvl):
            raise ValueError(
                f'invalid increase level, as level "{lvl}" is allowed by '
                "increased level, but not by existing core"
            )
        lvl = lvl - 1
    return _LevelFilterCore(core, level)


def _should(ce: CheckedEntry | None, ent: Entry, action: CheckWriteAction) -> CheckedEntry:
    if ce is None:
        ce = CheckedEntry(entry=ent)
    return ce.should(ent, action)


def _caller_frame(depth: int):
    """Return the frame ``depth`` levels above the function calling this one."""
    if depth < 0:
        return None
    frame = sys._getframe(1)
    for _ in range(depth):
        frame = frame.f_back
        if frame is None:
            return None
    return frame


class Logger:
    """Fast, leveled, structured logging. Safe for concurrent use."""

    def __init__(
        self,
        core: Core,
        *,
        error_output=None,
        add_stack=None,
        clock: Clock | None = None,
    ) -> None:
        self._core = core
        self._development = False
        self._add_caller = False
        self._on_fatal = CheckWriteAction.WRITE_THEN_NOOP
        self._name = ""
        self._error_output = (
            error_output if error_output is not None else DiscardWriteSyncer()
        )
        self._add_stack = add_stack if add_stack is not None else Level.FATAL + 1
        self._caller_skip = 0
        self._clock = clock if clock is not None else _SYSTEM_CLOCK

    def _clone(self) -> Logger:
        return copy.copy(self)

    def sugar(self):
        """Wrap this logger in a more ergonomic, loosely typed API."""
        from zaplog.sugar import SugaredLogger

        base = self._clone()
        base._caller_skip += 2
        return SugaredLogger(base)

    def named(self, s: str) -> Logger:
        """Add a period-separated segment to the logger's name."""
        if s == "":
            return self
        clone = self._clone()
        clone._name = s if self._name == "" else f"{self._name}.{s}"
        return clone

    def with_options(self, *opts: Option) -> Logger:
        """Clone the logger and apply the options to the clone."""
        clone = self._clone()
        for opt in opts:
            opt(clone)
        return clone

    def with_fields(self, *fields: Field) -> Logger:
        """Return a child logger carrying extra context fields."""
        if not fields:
            return self
        clone = self._clone()
        clone._core = clone._core.with_fields(list(fields))
        return clone

    def check(self, lvl: int, msg: str) -> CheckedEntry | None:
        """Return a checked entry if logging ``msg`` at ``lvl`` has any effect."""
        return self._check(lvl, msg)

    def debug(self, msg: str, *fields: Field) -> None:
        """Log at debug level."""
        ce = self._check(Level.DEBUG, msg)
        if ce is not None:
            ce.write(*fields)

    def info(self, msg: str, *fields: Field) -> None:
        """Log at info level."""
        ce = self._check(Level.INFO, msg)
        if ce is not None:
            ce.write(*fields)

    def warn(self, msg: str, *fields: Field) -> None:
        """Log at warn level."""
        ce = self._check(Level.WARN, msg)
        if ce is not None:
            ce.write(*fields)

    def error(self, msg: str, *fields: Field) -> None:
        """Log at error level."""
        ce = self._check(Level.ERROR, msg)
        if ce is not None:
            ce.write(*fields)

    def dpanic(self, msg: str, *fields: Field) -> None:
        """Log at dpanic level; in development mode, then raise ``PanicError``."""
        ce = self._check(Level.DPANIC, msg)
        if ce is not None:
            ce.write(*fields)

    def panic(self, msg: str, *fields: Field) -> None:
        """Log at panic level, then raise ``PanicError`` even if disabled."""
        ce = self._check(Level.PANIC, msg)
        if ce is not None:
            ce.write(*fields)

    def fatal(self, msg: str, *fields: Field) -> None:
        """Log at fatal level, then terminate the process even if disabled."""
        ce = self._check(Level.FATAL, msg)
        if ce is not None:
            ce.write(*fields)

    def sync(self) -> None:
        """Flush any buffered entries in the underlying core."""
        self._core.sync()

    def core(self) -> Core:
        """Return the underlying core."""
        return self._core

    def _check(self, lvl: int, msg: str) -> CheckedEntry | None:
        lvl = Level(lvl)
        # Panic and above may stop the program, so they always go through.
        if lvl < Level.DPANIC and not self._core.enabled(lvl):
            return None

        ent = Entry(
            level=lvl,
            time=self._clock.now(),
            logger_name=self._name,
            message=msg,
        )
        ce = self._core.check(ent, None)
        will_write = ce is not None

        if lvl == Level.PANIC:
            ce = _should(ce, ent, CheckWriteAction.WRITE_THEN_PANIC)
        elif lvl == Level.FATAL:
            action = self._on_fatal
            # A no-op action would let execution continue after fatal.
            if action == CheckWriteAction.WRITE_THEN_NOOP:
                action = CheckWriteAction.WRITE_THEN_FATAL
            ce = _should(ce, ent, action)
        elif lvl == Level.DPANIC and self._development:
            ce = _should(ce, ent, CheckWriteAction.WRITE_THEN_PANIC)

        if not will_write:
            return ce

        ce.error_output = self._error_output
        if self._add_caller:
            frame = _caller_frame(self._caller_skip + _CALLER_SKIP_OFFSET)
            if frame is None:
                when = ent.time.astimezone(timezone.utc) if ent.time else ent.time
                with suppress(Exception):
                    _write_text(
                        self._error_output,
                        f"{when} Logger.check error: failed to get caller\n",
                    )
                    self._error_output.sync()
                ce.entry.caller = EntryCaller()
            else:
                ce.entry.caller = EntryCaller(
                    defined=True,
                    pc=frame.f_lasti,
                    file=frame.f_code.co_filename,
                    line=frame.f_lineno,
                    function=_function_name(frame),
                )
        if self._add_stack.enabled(ce.entry.level):
            ce.entry.stack = take_stacktrace(self._caller_skip + _CALLER_SKIP_OFFSET)
        return ce


Option = Callable[[Logger], None]


def new(core: Core | None, *options: Option) -> Logger:
    """Build a logger over ``core``; a missing core gives a no-op logger."""
    if core is None:
        return new_nop()
    log = Logger(core, error_output=LockedWriteSyncer(_StderrWriteSyncer()))
    return log.with_options(*options)


def new_nop() -> Logger:
    """Return a logger that never writes logs or internal errors."""
    return Logger(NopCore(), error_output=DiscardWriteSyncer())


def wrap_core(f: Callable[[Core], Core]) -> Option:
    """Wrap or replace the logger's core."""

    def apply(log: Logger) -> None:
        log._core = f(log._core)

    return apply


def hooks(*funcs: Callable[[Entry], None]) -> Option:
    """Call each function for every entry the logger writes; additive."""

    def apply(log: Logger) -> None:
        log._core = _HookedCore(log._core, tuple(funcs))

    return apply


def fields(*fs: Field) -> Option:
    """Add context fields to the logger."""

    def apply(log: Logger) -> None:
        log._core = log._core.with_fields(list(fs))

    return apply


def error_output(w) -> Option:
    """Send the logger's internal errors to ``w``."""

    def apply(log: Logger) -> None:
        log._error_output = w

    return apply


def development() -> Option:
    """Make dpanic-level logs raise after writing."""

    def apply(log: Logger) -> None:
        log._development = True

    return apply


def add_caller() -> Option:
    """Annotate entries with the calling file, line and function."""
    return with_caller(True)


def with_caller(enabled: bool) -> Option:
    """Turn caller annotation on or off."""

    def apply(log: Logger) -> None:
        log._add_caller = bool(enabled)

    return apply


def add_caller_skip(skip: int) -> Option:
    """Skip extra frames when finding the caller."""

    def apply(log: Logger) -> None:
        log._caller_skip += skip

    return apply


def add_stacktrace(lvl) -> Option:
    """Record a stack trace for entries that ``lvl`` enables."""

    def apply(log: Logger) -> None:
        log._add_stack = _as_enabler(lvl)

    return apply


def increase_level(lvl) -> Option:
    """Raise the logger's level; an attempt to lower it is reported and ignored."""

    def apply(log: Logger) -> None:
        try:
            log._core = _new_increase_level_core(log._core, lvl)
        except ValueError as exc:
            with suppress(Exception):
                _write_text(log._error_output, f"failed to IncreaseLevel: {exc}\n")

    return apply


def on_fatal(action: CheckWriteAction) -> Option:
    """Set what happens after a fatal entry is written."""

    def apply(log: Logger) -> None:
        log._on_fatal = CheckWriteAction(action)

    return apply


def with_clock(clock: Clock) -> Option:
    """Use ``clock`` to timestamp entries."""

    def apply(log: Logger) -> None:
        log._clock = clock

    return apply