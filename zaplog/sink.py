"""Log destinations opened from URLs, with a registry of factories by scheme."""

from __future__ import annotations

import os
import sys
import threading
from abc import ABC, abstractmethod
from typing import Callable
from urllib.parse import SplitResult, unquote, urlsplit

SCHEME_FILE = "file"


def _to_bytes(data) -> bytes:
    if isinstance(data, str):
        return data.encode()
    return bytes(data)


class Sink(ABC):
    """A destination that can be written to, synced and closed."""

    @abstractmethod
    def write(self, data) -> int:
        """Write ``data`` and return the number of bytes written."""

    @abstractmethod
    def sync(self) -> None:
        """Flush buffered output to the destination."""

    def close(self) -> None:
        """Release the destination; does nothing by default."""

    def __enter__(self) -> Sink:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


SinkFactory = Callable[[SplitResult], Sink]


class SinkNotFoundError(LookupError):
    """Raised when no factory is registered for a URL's scheme."""

    def __init__(self, scheme: str) -> None:
        super().__init__(f'no sink found for scheme "{scheme}"')
        self.scheme = scheme


class _StreamSink(Sink):
    """Sink over a standard stream; closing it leaves the stream open."""

    def __init__(self, stream) -> None:
        self._stream = stream

    def write(self, data) -> int:
        chunk = _to_bytes(data)
        raw = getattr(self._stream, "buffer", None)
        if raw is None:
            self._stream.write(chunk.decode(errors="replace"))
        else:
            self._stream.flush()
            raw.write(chunk)
        return len(chunk)

    def sync(self) -> None:
        self._stream.flush()
        raw = getattr(self._stream, "buffer", None)
        if raw is not None:
            raw.flush()


class _FileSink(Sink):
    """Sink appending to a file, created if missing."""

    def __init__(self, path: str) -> None:
        self.name = path
        try:
            self._file = open(path, "ab", buffering=0)
        except OSError as exc:
            reason = exc.strerror or str(exc)
            raise OSError(
                exc.errno, f"open {path}: {reason[:1].lower()}{reason[1:]}"
            ) from exc

    def write(self, data) -> int:
        return self._file.write(_to_bytes(data))

    def sync(self) -> None:
        os.fsync(self._file.fileno())

    def close(self) -> None:
        self._file.close()


def _host_and_port(u: SplitResult) -> tuple[str, str]:
    hostport = u.netloc.rpartition("@")[2]
    if hostport.startswith("["):
        host, _, after = hostport[1:].partition("]")
        return host, after[1:] if after.startswith(":") else ""
    host, _, port = hostport.partition(":")
    return host, port


def _new_file_sink(u: SplitResult) -> Sink:
    shown = u.geturl()
    if "@" in u.netloc:
        raise ValueError(f"user and password not allowed with file URLs: got {shown}")
    if u.fragment:
        raise ValueError(f"fragments not allowed with file URLs: got {shown}")
    if u.query:
        raise ValueError(f"query parameters not allowed with file URLs: got {shown}")
    host, port = _host_and_port(u)
    # Checking the port separately from the host gives clearer messages.
    if port:
        raise ValueError(f"ports not allowed with file URLs: got {shown}")
    if host and host != "localhost":
        raise ValueError(f"file URLs must leave host empty or use localhost: got {shown}")

    path = unquote(u.path)
    if path == "stdout":
        return _StreamSink(sys.stdout)
    if path == "stderr":
        return _StreamSink(sys.stderr)
    return _FileSink(path)


_lock = threading.RLock()
_factories: dict[str, SinkFactory] = {}


def reset_sink_registry() -> None:
    """Forget all registered factories except the built-in file one."""
    with _lock:
        _factories.clear()
        _factories[SCHEME_FILE] = _new_file_sink


def normalize_scheme(s: str) -> str:
    """Lower-case a URL scheme and check it is valid; raise ``ValueError`` if not."""
    s = s.lower()
    if not s or not ("a" <= s[0] <= "z"):
        raise ValueError("must start with a letter")
    for c in s[1:]:
        if "a" <= c <= "z" or "0" <= c <= "9" or c in ".+-":
            continue
        raise ValueError(f"may not contain {c!r}")
    return s


def register_sink(scheme: str, factory: SinkFactory) -> None:
    """Register a factory for every sink URL with the given scheme.

    Raises ``ValueError`` for an empty or invalid scheme, or one that
    already has a factory.
    """
    with _lock:
        if scheme == "":
            raise ValueError("can't register a sink factory for empty string")
        try:
            normalized = normalize_scheme(scheme)
        except ValueError as exc:
            raise ValueError(f'"{scheme}" is not a valid scheme: {exc}') from exc
        if normalized in _factories:
            raise ValueError(
                f'sink factory already registered for scheme "{normalized}"'
            )
        _factories[normalized] = factory


def new_sink(raw_url: str) -> Sink:
    """Open the sink named by a URL; URLs without a scheme are file paths."""
    if raw_url.startswith(":"):
        raise ValueError(f'can\'t parse "{raw_url}" as a URL: missing protocol scheme')
    try:
        u = urlsplit(raw_url)
    except ValueError as exc:
        raise ValueError(f'can\'t parse "{raw_url}" as a URL: {exc}') from exc
    if not u.scheme:
        u = u._replace(scheme=SCHEME_FILE)

    with _lock:
        factory = _factories.get(u.scheme)
    if factory is None:
        raise SinkNotFoundError(u.scheme)
    return factory(u)


reset_sink_registry()