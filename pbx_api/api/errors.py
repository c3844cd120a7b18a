"""Render every failure in the ``{status, message, ...}`` JSON envelope."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..domain.errors import UserApiError

logger = logging.getLogger(__name__)

API_PREFIX = "/api"


async def user_api_error_handler(request: Request, exc: UserApiError) -> JSONResponse:
    logger.info("%s %s rejected: %s (%s)", request.method, request.url.path, exc.kind, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.body())


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        path = request.url.path
        if path.startswith(API_PREFIX + "/"):
            path = path[len(API_PREFIX) :]
        endpoint = path.strip("/").split("/", 1)[0]
        content = {"status": "error", "message": "Endpoint not found", "endpoint": endpoint}
    elif exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        content = {"status": "error", "message": "Method not allowed"}
    else:
        content = {"status": "error", "message": str(exc.detail)}
    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("%s %s failed", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"status": "error", "message": "Internal server error"},
    )


def register_error_handlers(app: FastAPI) -> None:
    """Attach the JSON envelope handlers to ``app``."""
    app.add_exception_handler(UserApiError, user_api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
