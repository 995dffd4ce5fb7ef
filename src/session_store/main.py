"""
Application factory.

The lifespan owns the Store: it is opened (directory, WAL, schema) before the
first request is served and closed on shutdown, including the SIGINT/SIGTERM
shutdown driven by uvicorn.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from session_store import __version__
from session_store.api.v1.error_handlers import register_exception_handlers
from session_store.api.v1.router import api_router
from session_store.config.settings import Settings, get_settings
from session_store.core.logging import RequestIDMiddleware, setup_logging
from session_store.core.logging.middleware import REQUEST_ID_HEADER
from session_store.database.store import Store

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings)
        store = Store.from_settings(settings)
        await store.acquire()
        app.state.store = store
        logger.info(
            "app.startup",
            extra={"env": settings.ENV, "database_path": str(store.path)},
        )
        try:
            yield
        finally:
            await store.close()
            logger.info("app.shutdown")

    app = FastAPI(title="Session Store", version=__version__, lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )
    # Added last so it wraps CORS and sets the request id before anything logs
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)
    app.include_router(api_router)

    return app
