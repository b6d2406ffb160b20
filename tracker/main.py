"""FastAPI entrypoint for the project timeline tracker."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from tracker.api import register_handlers
from tracker.config import load_config
from tracker.errors import ErrorResponse, TrackerError, error_response
from tracker.logging_setup import setup_logging
from tracker.user_scope import (
    AUTH_EXEMPT_PATHS,
    SERVICE_TOKEN_HEADER,
    USER_ID_HEADER,
    normalize_user_id,
)

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        config = load_config()
        setup_logging(config.log_level)
        app.state.config = config
        app.state.data_path = config.data_path
        logger.info(
            "Tracker service starting with data root %s (timezone=%s)",
            config.data_path,
            config.timezone or "local",
        )
        yield
        logger.info("Tracker service stopped")

    app = FastAPI(lifespan=lifespan)

    @app.middleware("http")
    async def enforce_request_identity(request: Request, call_next):
        path = request.url.path
        if path in AUTH_EXEMPT_PATHS:
            return await call_next(request)

        config = getattr(request.app.state, "config", None)
        require_user_header = bool(
            getattr(config, "require_user_header", True)
        )
        service_token = getattr(config, "service_token", None)

        raw_user_id = request.headers.get(USER_ID_HEADER)
        if raw_user_id is None and require_user_header:
            error = ErrorResponse(
                code="AUTH_REQUIRED",
                message="Missing required user identity header.",
                details={"header": USER_ID_HEADER},
            )
            return JSONResponse(status_code=401, content=error_response(error))
        if raw_user_id is not None:
            try:
                request.state.user_id = normalize_user_id(raw_user_id)
            except TrackerError as exc:
                return JSONResponse(
                    status_code=401, content=error_response(exc.error)
                )

        if service_token:
            supplied_token = request.headers.get(SERVICE_TOKEN_HEADER)
            if supplied_token != service_token:
                error = ErrorResponse(
                    code="AUTH_FORBIDDEN",
                    message="Invalid service token.",
                    details={"header": SERVICE_TOKEN_HEADER},
                )
                return JSONResponse(
                    status_code=403, content=error_response(error)
                )

        return await call_next(request)

    @app.exception_handler(TrackerError)
    def handle_tracker_error(request: Request, exc: TrackerError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=exc.status_code, content=error_response(exc.error)
        )

    @app.get("/health", status_code=200)
    def health() -> dict[str, str]:
        return {"status": "ok"}

    register_handlers(app)
    return app


app = create_app()
