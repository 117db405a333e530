# main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import PlainTextResponse
from sqlalchemy.engine import Engine
from starlette.exceptions import HTTPException as StarletteHTTPException

from skill_backend.config import Settings, get_settings
from skill_backend.database import StoreOpenError, make_session_factory, open_engine
from skill_backend.db.migrator import MigrationError, run_migrations
from skill_backend.frontend import FrontendDelivery, select_frontend
from skill_backend.middleware.request_logging import RequestLoggingMiddleware
from skill_backend.routers import placeholder, skills
from skill_backend.server import ServerLifecycle


logger = logging.getLogger(__name__)


def create_app(
    *,
    engine: Engine,
    frontend: FrontendDelivery,
    settings: Settings | None = None,
) -> FastAPI:
    """Build the HTTP app around an already-migrated store.

    The store engine and the front-end delivery are owned by the caller; the
    app only closes the delivery's own resources on shutdown.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            yield
        finally:
            await frontend.aclose()

    application = FastAPI(
        title=settings.app_name,
        version=settings.version,
        lifespan=lifespan,
    )
    application.state.session_factory = make_session_factory(engine)

    # Errors are plain text, not FastAPI's JSON {"detail": ...}.
    @application.exception_handler(StarletteHTTPException)
    async def _plain_http_error(_: Request, exc: StarletteHTTPException) -> PlainTextResponse:
        return PlainTextResponse(str(exc.detail), status_code=exc.status_code, headers=getattr(exc, "headers", None))

    @application.exception_handler(RequestValidationError)
    async def _plain_validation_error(_: Request, exc: RequestValidationError) -> PlainTextResponse:
        return PlainTextResponse(f"Failed to unmarshal request body: {exc.errors()}", status_code=400)

    application.add_middleware(RequestLoggingMiddleware)

    application.include_router(placeholder.router)
    application.include_router(skills.router)

    # Catch-all for everything the API routes above do not match.
    application.mount("/", frontend, name="frontend")
    return application


def main() -> int:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        engine = open_engine(settings.db_path)
    except StoreOpenError as exc:
        logger.error("Error initializing database: %s", exc)
        return 1

    try:
        run_migrations(engine, settings.migration_source_url, settings.migration_target_version)
    except MigrationError as exc:
        logger.error("Can't run migrations: %s", exc)
        engine.dispose()
        return 1

    frontend = select_frontend(settings)
    app = create_app(engine=engine, frontend=frontend, settings=settings)

    ServerLifecycle(app, engine, host=settings.host, port=settings.port, log_level=settings.log_level).start()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
