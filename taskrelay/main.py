"""
TaskRelay application factory.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from taskrelay.api.v1.router import api_router
from taskrelay.core.config import settings
from taskrelay.core.dependencies import DBSession
from taskrelay.core.exceptions import register_exception_handlers
from taskrelay.db.session import engine

logger = logging.getLogger(__name__)

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
    enabled=settings.RATE_LIMIT_ENABLED,
)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    configure_logging()
    logger.info("Starting %s v%s", settings.APP_NAME, settings.APP_VERSION)
    yield
    await engine.dispose()
    logger.info("%s stopped", settings.APP_NAME)


def install_middleware(app: FastAPI) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    # Per-client limits apply to every route unless a route overrides them.
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]


async def health_check(db: DBSession) -> JSONResponse:
    """Liveness plus a round trip to the database."""
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Health check could not reach the database")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unavailable", "service": settings.APP_NAME},
        )
    return JSONResponse(content={"status": "ok", "service": settings.APP_NAME})


def create_application() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description=(
            "Team task tracking API: task lifecycle, hierarchical subtasks, "
            "claim and group assignment workflows, and a per-task audit trail."
        ),
        lifespan=lifespan,
    )

    install_middleware(app)
    register_exception_handlers(app)
    app.include_router(api_router, prefix=settings.API_V1_STR)
    app.add_api_route(
        "/health", health_check, methods=["GET"], tags=["Health"], include_in_schema=False
    )
    return app


app = create_application()
