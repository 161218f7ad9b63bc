"""An HTTP endpoint that reports or changes an atomic level."""

from __future__ import annotations

import json
import re
from http import HTTPStatus
from urllib.parse import unquote_plus

from zaplog.level import AtomicLevel, Level, parse_level

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def _as_text(data: str | bytes) -> str:
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data).decode("utf-8", errors="surrogateescape")
    return data


def _parse_form(raw: str) -> list[tuple[str, str]]:
    """Parse url-encoded pairs, skipping any with malformed escapes."""
    pairs = []
    for part in raw.split("&"):
        if not part:
            continue
        key, _, value = part.partition("=")
        if _BAD_ESCAPE.search(key) or _BAD_ESCAPE.search(value):
            continue
        pairs.append((unquote_plus(key), unquote_plus(value)))
    return pairs


def _decode_put_url(query: str, body: str) -> Level:
    # Values from the body take precedence over the query string.
    text = next(
        (v for k, v in _parse_form(body) + _parse_form(query) if k == "level"), ""
    )
    if not text:
        raise ValueError("must specify logging level")
    return parse_level(text)


def _decode_put_json(body: str) -> Level:
    try:
        payload, _ = json.JSONDecoder().raw_decode(body.lstrip())
    except json.JSONDecodeError as exc:
        raise ValueError(f"malformed request body: {exc}") from exc
    if not isinstance(payload, dict):
        raise ValueError("malformed request body: expected a JSON object")

    raw = payload.get("level")
    if raw is None:
        raw = next((v for k, v in payload.items() if k.lower() == "level"), None)
    if raw is None:
        raise ValueError("must specify logging level")
    if not isinstance(raw, str):
        raise ValueError("malformed request body: level must be a string")
    try:
        return parse_level(raw)
    except ValueError as exc:
        raise ValueError(f"malformed request body: {exc}") from exc


def handle_request(
    level: AtomicLevel,
    method: str,
    query: str = "",
    content_type: str = "",
    body: str | bytes = "",
) -> tuple[HTTPStatus, dict]:
    """Serve one request against ``level``; return the status and JSON payload.

    GET reports the level. PUT changes it, reading ``level`` from a
    url-encoded form (body first, then query) or from a JSON object,
    depending on the content type. Other methods are refused.
    """
    query = _as_text(query).lstrip("?")
    body = _as_text(body)

    if method == "GET":
        return HTTPStatus.OK, {"level": str(level.level())}
    if method == "PUT":
        try:
            if content_type == FORM_CONTENT_TYPE:
                requested = _decode_put_url(query, body)
            else:
                requested = _decode_put_json(body)
        except ValueError as exc:
            return HTTPStatus.BAD_REQUEST, {"error": str(exc)}
        level.set_level(requested)
        return HTTPStatus.OK, {"level": str(level.level())}
    return HTTPStatus.METHOD_NOT_ALLOWED, {"error": "Only GET and PUT are supported."}


def wsgi_app(level: AtomicLevel):
    """Return a WSGI application serving ``level`` through ``handle_request``."""

    def app(environ, start_response):
        try:
            length = int(environ.get("CONTENT_LENGTH") or 0)
        except ValueError:
            length = 0
        body = environ["wsgi.input"].read(length) if length > 0 else b""
        status, payload = handle_request(
            level,
            environ.get("REQUEST_METHOD", "GET"),
            environ.get("QUERY_STRING", ""),
            environ.get("CONTENT_TYPE", ""),
            body,
        )
        data = (json.dumps(payload, separators=(",", ":")) + "\n").encode()
        start_response(
            f"{status.value} {status.phrase}",
            [("Content-Type", "application/json"), ("Content-Length", str(len(data)))],
        )
        return [data]

    return app