"""
Request logging middleware.

Every HTTP request produces two log records:

- ``skill_backend.request_dump``: the raw request (request line, headers,
  body), written before the handler runs;
- ``skill_backend.access``: a one-line summary written after the handler
  returns.

The body is buffered for the dump and replayed to the wrapped app as-is.
"""

from __future__ import annotations

import logging
import time

from starlette.types import ASGIApp, Message, Receive, Scope, Send

dump_logger = logging.getLogger("skill_backend.request_dump")
access_logger = logging.getLogger("skill_backend.access")


async def _read_body(receive: Receive) -> tuple[bytes, list[Message]]:
    chunks: list[bytes] = []
    trailing: list[Message] = []
    while True:
        message = await receive()
        if message["type"] != "http.request":
            # Client went away before the body was complete.
            trailing.append(message)
            break
        chunks.append(message.get("body", b""))
        if not message.get("more_body", False):
            break
    return b"".join(chunks), trailing


def _target(scope: Scope) -> str:
    raw_path = scope.get("raw_path") or scope.get("path", "/").encode("latin-1")
    path = raw_path.decode("latin-1").split("?", 1)[0]
    query = scope.get("query_string", b"")
    if query:
        return f"{path}?{query.decode('latin-1')}"
    return path


def _header(scope: Scope, name: bytes) -> str:
    for key, value in scope.get("headers", []):
        if key.lower() == name:
            return value.decode("latin-1")
    return ""


def _remote_addr(scope: Scope) -> str:
    client = scope.get("client")
    if not client:
        return "-"
    host, port = client
    return f"{host}:{port}"


def format_request_dump(scope: Scope, body: bytes) -> str:
    lines = [f"{scope['method']} {_target(scope)} HTTP/{scope.get('http_version', '1.1')}"]
    for key, value in scope.get("headers", []):
        lines.append(f"{key.decode('latin-1').title()}: {value.decode('latin-1')}")
    lines.append("")
    lines.append(body.decode("utf-8", errors="replace"))
    return "\r\n".join(lines)


class RequestLoggingMiddleware:
    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start = time.perf_counter()

        body, trailing = await _read_body(receive)
        dump_logger.info(format_request_dump(scope, body))

        replayed = False

        async def replay() -> Message:
            nonlocal replayed
            if not replayed:
                replayed = True
                return {"type": "http.request", "body": body, "more_body": False}
            if trailing:
                return trailing.pop(0)
            return await receive()

        await self.app(scope, replay, send)

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        access_logger.info(
            "%s - %s %s - %s - %dms",
            _remote_addr(scope),
            scope["method"],
            _target(scope),
            _header(scope, b"user-agent"),
            elapsed_ms,
        )
