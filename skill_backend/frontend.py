"""
Front-end delivery for requests no API route claims.

Chosen once at startup:
- dev: reverse-proxy to the separately running front-end dev server;
- production: serve the built front-end from disk.

Both variants are ASGI apps mounted at ``/`` after the API routes.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path

import httpx
from fastapi.responses import PlainTextResponse, Response
from fastapi.staticfiles import StaticFiles
from starlette.requests import Request
from starlette.types import Receive, Scope, Send

from skill_backend.config import FRONTEND_BUILD_DIR, FRONTEND_DEV_URL, Settings

logger = logging.getLogger(__name__)

# Connection-scoped headers must not be forwarded in either direction.
_HOP_BY_HOP = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailer",
    "transfer-encoding",
    "upgrade",
}


class FrontendDelivery(ABC):
    mode: str = ""

    @abstractmethod
    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        raise NotImplementedError

    async def aclose(self) -> None:
        return None


class ProxyDelivery(FrontendDelivery):
    mode = "proxy"

    def __init__(
        self,
        target_url: str = FRONTEND_DEV_URL,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout_s: float = 30.0,
    ):
        self.target_url = target_url.rstrip("/")
        self._client = httpx.AsyncClient(base_url=self.target_url, transport=transport, timeout=timeout_s)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            # Dev-server websockets (hot reload) are not proxied.
            if scope["type"] == "websocket":
                await send({"type": "websocket.close", "code": 1000})
            return

        request = Request(scope, receive)
        response = await self.forward(request)
        await response(scope, receive, send)

    async def forward(self, request: Request) -> Response:
        logger.info("Proxying request to React app")

        headers = [
            (k, v)
            for k, v in request.headers.items()
            if k.lower() not in _HOP_BY_HOP and k.lower() not in ("host", "content-length")
        ]
        body = await request.body()

        try:
            upstream = await self._client.request(
                request.method,
                request.url.path,
                params=request.url.query or None,
                headers=headers,
                content=body or None,
            )
        except httpx.HTTPError as exc:
            logger.warning("Front-end dev server at %s unreachable: %s", self.target_url, exc)
            return PlainTextResponse(f"Bad Gateway: {exc}", status_code=502)

        # httpx already decoded the body; length/encoding headers no longer apply.
        dropped = _HOP_BY_HOP | {"content-encoding", "content-length"}
        response = Response(content=upstream.content, status_code=upstream.status_code)
        response.raw_headers.extend(
            (k.lower().encode("latin-1"), v.encode("latin-1"))
            for k, v in upstream.headers.multi_items()
            if k.lower() not in dropped
        )
        return response

    async def aclose(self) -> None:
        await self._client.aclose()


class StaticDelivery(FrontendDelivery):
    mode = "static"

    def __init__(self, directory: str | Path = FRONTEND_BUILD_DIR):
        self.directory = Path(directory)
        if not self.directory.is_dir():
            logger.warning("Front-end build directory %s does not exist; static requests will fail", self.directory)
        self._files = StaticFiles(directory=self.directory, html=True, check_dir=False)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self._files(scope, receive, send)


def select_frontend(settings: Settings) -> FrontendDelivery:
    delivery: FrontendDelivery
    if settings.dev:
        logger.info("Running in development mode, setting up proxy to locally running dev React app")
        delivery = ProxyDelivery(FRONTEND_DEV_URL)
    else:
        delivery = StaticDelivery(FRONTEND_BUILD_DIR)
    logger.info("Front-end delivery mode: %s", delivery.mode)
    return delivery
