"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi import HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

import moblog_auth.runtime as runtime
from moblog_auth.api.routers.auth import router as auth_router
from moblog_auth.api.routers.health import router as health_router
from moblog_auth.auth.http import handle_http_exception
from moblog_auth.auth.http import handle_validation_exception
from moblog_auth.ratelimit.middleware import RateLimitMiddleware


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(_: FastAPI):
    runtime.startup()
    yield


def create_app() -> FastAPI:
    settings = runtime.settings
    configure_logging(settings.moblog_log_level)

    application = FastAPI(lifespan=lifespan)
    application.add_exception_handler(HTTPException, handle_http_exception)
    application.add_exception_handler(RequestValidationError, handle_validation_exception)

    application.include_router(auth_router, prefix=settings.moblog_auth_prefix.rstrip("/"))
    application.include_router(health_router)

    application.add_middleware(RateLimitMiddleware, controller=runtime.current_admission)
    # Outermost, so 429 responses still carry CORS headers.
    application.add_middleware(
        CORSMiddleware,
        allow_origins=[origin.strip() for origin in settings.moblog_cors_allow_origins.split(",")],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    return application


app = create_app()
