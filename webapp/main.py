from __future__ import annotations

import logging
import time
import uuid
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from expense_tracker import __version__
from expense_tracker.auth import TokenStore
from expense_tracker.config import load_config
from expense_tracker.database import check_connection
from expense_tracker.errors import ApiError
from webapp import auth_routes, transaction_routes

logger = logging.getLogger(__name__)


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "N/A")


async def log_requests(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id
    start = time.perf_counter()
    logger.debug("%s %s [%s]", request.method, request.url.path, request_id)

    response = await call_next(request)

    duration_ms = (time.perf_counter() - start) * 1000
    level = logging.WARNING if response.status_code >= 400 else logging.INFO
    logger.log(
        level,
        "%s %s - %s (%.1fms) [%s]",
        request.method,
        request.url.path,
        response.status_code,
        duration_ms,
        request_id,
    )
    response.headers["X-Request-ID"] = request_id
    return response


async def handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
    payload = exc.to_payload()
    payload["requestId"] = _request_id(request)
    return JSONResponse(payload, status_code=exc.status_code)


async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        payload = {"success": False, "error": "Route not found", "path": request.url.path, "code": "NOT_FOUND"}
    elif exc.status_code == 405:
        payload = {"success": False, "error": "Method not allowed", "path": request.url.path, "code": "METHOD_NOT_ALLOWED"}
    else:
        payload = {"success": False, "error": str(exc.detail), "code": "HTTP_ERROR"}
    payload["requestId"] = _request_id(request)
    return JSONResponse(payload, status_code=exc.status_code, headers=getattr(exc, "headers", None))


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [str(err.get("msg", err)) for err in exc.errors()]
    payload = {
        "success": False,
        "error": "Invalid request",
        "code": "VALIDATION_ERROR",
        "details": details,
        "requestId": _request_id(request),
    }
    return JSONResponse(payload, status_code=400)


def _make_unhandled_handler(environment: str):
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(
            "Unhandled error on %s %s [%s]", request.method, request.url.path, _request_id(request)
        )
        payload = {
            "success": False,
            "error": "Internal server error",
            "code": "SERVER_ERROR",
            "requestId": _request_id(request),
        }
        if environment == "development":
            payload["message"] = str(exc)
        return JSONResponse(
            payload, status_code=500, headers={"X-Request-ID": _request_id(request)}
        )

    return handle_unexpected


def create_app(config: dict | None = None, token_store: TokenStore | None = None) -> FastAPI:
    """Build the API application.

    ``config`` defaults to :func:`expense_tracker.config.load_config`. Run with
    ``uvicorn --factory webapp.main:create_app`` or ``expense-tracker serve``.
    """
    config = config or load_config()
    app = FastAPI(title="Expense Tracker API", version=__version__)
    app.state.config = config
    app.state.tokens = token_store or TokenStore(
        access_ttl=config["auth"]["access_ttl_seconds"],
        refresh_ttl=config["auth"]["refresh_ttl_seconds"],
    )
    app.state.started_at = time.monotonic()

    cors = config["cors"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors["origins"],
        allow_methods=cors["methods"],
        allow_headers=cors["allowed_headers"],
        allow_credentials=cors["credentials"],
    )
    app.middleware("http")(log_requests)

    app.add_exception_handler(ApiError, handle_api_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(Exception, _make_unhandled_handler(config["environment"]))

    app.include_router(auth_routes.router)
    app.include_router(transaction_routes.router)

    @app.get("/api/health")
    def health(request: Request):
        return {
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z"),
            "database": "connected" if check_connection(config["db_path"]) else "disconnected",
            "environment": config["environment"],
            "uptime": round(time.monotonic() - request.app.state.started_at, 3),
            "version": __version__,
        }

    logger.info(
        "Expense tracker API configured (env: %s, db: %s)", config["environment"], config["db_path"]
    )
    return app
