"""A loosely typed, more ergonomic wrapper around Logger."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from zaplog.core import Field
from zaplog.level import Level

ODD_NUMBER_ERR_MSG = "Ignored key without a value."
NON_STRING_KEY_ERR_MSG = "Ignored key-value pairs with non-string keys."

# Extra frames between the user and the logger's check: the public sugared
# method and the private ``_log`` helper.
_SUGAR_CALLER_SKIP = 2


@dataclass(frozen=True)
class InvalidPair:
    """A key-value pair whose key was not a string, with its argument position."""

    position: int
    key: Any
    value: Any

    def to_dict(self) -> dict[str, Any]:
        """Return the pair as a plain mapping."""
        return {"position": self.position, "key": self.key, "value": self.value}


def _format_value(value: Any) -> str:
    if value is None:
        return "<nil>"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _sprint(args: Sequence[Any]) -> str:
    """Concatenate values, adding spaces between operands that are not strings."""
    parts = []
    prev_is_str = True
    for i, arg in enumerate(args):
        is_str = isinstance(arg, str)
        if i > 0 and not is_str and not prev_is_str:
            parts.append(" ")
        parts.append(_format_value(arg))
        prev_is_str = is_str
    return "".join(parts)


def _sprintf(template: str, args: Sequence[Any]) -> str:
    try:
        return template % tuple(args)
    except (TypeError, ValueError):
        extra = ", ".join(f"{type(a).__name__}={_format_value(a)}" for a in args)
        return f"{template}%!(BADFORMAT {extra})"


def get_message(template: str, fmt_args: Sequence[Any] | None) -> str:
    """Build a message from a %-style template, by concatenation, or neither."""
    if not fmt_args:
        return template
    if template != "":
        return _sprintf(template, fmt_args)
    if len(fmt_args) == 1 and isinstance(fmt_args[0], str):
        return fmt_args[0]
    return _sprint(fmt_args)


class SugaredLogger:
    """Wraps a Logger with printf-style, print-style and key-value methods.

    Key-value arguments mix ``Field`` objects with alternating string keys
    and values. A dangling key or a non-string key is reported at dpanic
    level and skipped.
    """

    def __init__(self, base) -> None:
        self._base = base

    def desugar(self):
        """Return the underlying Logger."""
        base = self._base._clone()
        base._caller_skip -= _SUGAR_CALLER_SKIP
        return base

    def named(self, name: str) -> SugaredLogger:
        """Add a period-separated segment to the logger's name."""
        return SugaredLogger(self._base.named(name))

    def with_fields(self, *args: Any) -> SugaredLogger:
        """Return a child logger with extra context from fields and key-value pairs."""
        return SugaredLogger(self._base.with_fields(*self._sweeten_fields(args)))

    def debug(self, *args: Any) -> None:
        """Log the concatenated arguments at debug level."""
        self._log(Level.DEBUG, "", args, None)

    def info(self, *args: Any) -> None:
        """Log the concatenated arguments at info level."""
        self._log(Level.INFO, "", args, None)

    def warn(self, *args: Any) -> None:
        """Log the concatenated arguments at warn level."""
        self._log(Level.WARN, "", args, None)

    def error(self, *args: Any) -> None:
        """Log the concatenated arguments at error level."""
        self._log(Level.ERROR, "", args, None)

    def dpanic(self, *args: Any) -> None:
        """Log at dpanic level; raise ``PanicError`` in development mode."""
        self._log(Level.DPANIC, "", args, None)

    def panic(self, *args: Any) -> None:
        """Log at panic level, then raise ``PanicError``."""
        self._log(Level.PANIC, "", args, None)

    def fatal(self, *args: Any) -> None:
        """Log at fatal level, then terminate the process."""
        self._log(Level.FATAL, "", args, None)

    def debugf(self, template: str, *args: Any) -> None:
        """Log a formatted message at debug level."""
        self._log(Level.DEBUG, template, args, None)

    def infof(self, template: str, *args: Any) -> None:
        """Log a formatted message at info level."""
        self._log(Level.INFO, template, args, None)

    def warnf(self, template: str, *args: Any) -> None:
        """Log a formatted message at warn level."""
        self._log(Level.WARN, template, args, None)

    def errorf(self, template: str, *args: Any) -> None:
        """Log a formatted message at error level."""
        self._log(Level.ERROR, template, args, None)

    def dpanicf(self, template: str, *args: Any) -> None:
        """Log a formatted message at dpanic level."""
        self._log(Level.DPANIC, template, args, None)

    def panicf(self, template: str, *args: Any) -> None:
        """Log a formatted message at panic level, then raise ``PanicError``."""
        self._log(Level.PANIC, template, args, None)

    def fatalf(self, template: str, *args: Any) -> None:
        """Log a formatted message at fatal level, then terminate the process."""
        self._log(Level.FATAL, template, args, None)

    def debugw(self, msg: str, *args: Any) -> None:
        """Log a message with key-value context at debug level."""
        self._log(Level.DEBUG, msg, None, args)

    def infow(self, msg: str, *args: Any) -> None:
        """Log a message with key-value context at info level."""
        self._log(Level.INFO, msg, None, args)

    def warnw(self, msg: str, *args: Any) -> None:
        """Log a message with key-value context at warn level."""
        self._log(Level.WARN, msg, None, args)

    def errorw(self, msg: str, *args: Any) -> None:
        """Log a message with key-value context at error level."""
        self._log(Level.ERROR, msg, None, args)

    def dpanicw(self, msg: str, *args: Any) -> None:
        """Log a message with key-value context at dpanic level."""
        self._log(Level.DPANIC, msg, None, args)

    def panicw(self, msg: str, *args: Any) -> None:
        """Log a message with key-value context, then raise ``PanicError``."""
        self._log(Level.PANIC, msg, None, args)

    def fatalw(self, msg: str, *args: Any) -> None:
        """Log a message with key-value context, then terminate the process."""
        self._log(Level.FATAL, msg, None, args)

    def sync(self) -> None:
        """Flush any buffered entries."""
        self._base.sync()

    def _log(self, lvl: Level, template: str, fmt_args, context) -> None:
        # Skip message formatting entirely when the level is disabled.
        if lvl < Level.DPANIC and not self._base.core().enabled(lvl):
            return
        msg = get_message(template, fmt_args)
        ce = self._base.check(lvl, msg)
        if ce is not None:
            ce.write(*self._sweeten_fields(context))

    def _sweeten_fields(self, args) -> list[Field]:
        if not args:
            return []
        fields: list[Field] = []
        invalid: list[InvalidPair] = []
        i = 0
        n = len(args)
        while i < n:
            arg = args[i]
            if isinstance(arg, Field):
                fields.append(arg)
                i += 1
                continue
            if i == n - 1:
                self._base.dpanic(ODD_NUMBER_ERR_MSG, Field("ignored", arg))
                break
            key, value = arg, args[i + 1]
            if isinstance(key, str):
                fields.append(Field(key, value))
            else:
                invalid.append(InvalidPair(i, key, value))
            i += 2
        if invalid:
            self._base.dpanic(NON_STRING_KEY_ERR_MSG, Field("invalid", invalid))
        return fields