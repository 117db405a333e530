from __future__ import annotations

import logging

import uvicorn
from fastapi import FastAPI
from sqlalchemy.engine import Engine

from skill_backend.config import SHUTDOWN_TIMEOUT_SECONDS


logger = logging.getLogger(__name__)


class ServerLifecycle:
    """Owns the listener for one app and the store behind it.

    ``start`` blocks until the server stops. uvicorn handles SIGINT/SIGTERM:
    it stops accepting connections, gives in-flight requests
    ``SHUTDOWN_TIMEOUT_SECONDS`` to finish, then cancels the rest. The store
    is disposed only after that.
    """

    def __init__(
        self,
        app: FastAPI,
        engine: Engine,
        *,
        host: str = "0.0.0.0",
        port: int = 8080,
        log_level: str = "info",
    ):
        self.app = app
        self.engine = engine
        self.config = uvicorn.Config(
            app,
            host=host,
            port=port,
            log_level=log_level.lower(),
            timeout_graceful_shutdown=SHUTDOWN_TIMEOUT_SECONDS,
        )
        self.server = uvicorn.Server(self.config)

    @property
    def address(self) -> str:
        return f"{self.config.host}:{self.config.port}"

    def start(self) -> None:
        logger.info("Starting HTTP server on %s", self.address)
        try:
            # A bind failure makes uvicorn exit the process.
            self.server.run()
        finally:
            self._close_store()

    def close(self) -> None:
        """Ask a running server to drain and stop; ``start`` returns afterwards."""
        logger.info("HTTP server shutdown requested")
        self.server.should_exit = True

    def _close_store(self) -> None:
        self.engine.dispose()
        logger.info("Store closed")
