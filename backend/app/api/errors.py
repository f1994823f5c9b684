"""Global error handlers rendering ``{"error": ...}`` bodies with the request id."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.request_id import get_request_id
from app.moderation.domain.errors import ModerationError

logger = logging.getLogger(__name__)


def error_payload(request: Request, message: str) -> dict[str, str]:
    return {"error": message, "request_id": get_request_id(request)}


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ModerationError)
    async def moderation_exc_handler(request: Request, exc: ModerationError):  # type: ignore[override]
        if exc.status_code >= 500:
            logger.error(
                "moderation_request_failed",
                extra={"path": request.url.path, "error": type(exc).__name__},
            )
        return JSONResponse(status_code=exc.status_code, content=error_payload(request, exc.detail))

    @app.exception_handler(StarletteHTTPException)
    async def http_exc_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
        return JSONResponse(
            status_code=exc.status_code,
            content=error_payload(request, str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exc_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
        logger.info(
            "request_validation_failed",
            extra={"path": request.url.path, "fields": [".".join(str(p) for p in err.get("loc", ())) for err in exc.errors()]},
        )
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=error_payload(request, "Invalid request body"))
