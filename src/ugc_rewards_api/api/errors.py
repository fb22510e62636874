"""JSON error envelope shared by every route."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException


def error_response(detail: Any, status_code: int, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse({"success": False, "error": detail}, status_code=status_code, headers=headers)


def _describe_validation_error(error: dict[str, Any]) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()) if part not in {"body", "query", "header"})
    message = error.get("msg", "Invalid value")
    return f"{location}: {message}" if location else message


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(exc.detail, exc.status_code, getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = "; ".join(_describe_validation_error(error) for error in exc.errors()) or "Invalid request"
    return error_response(message, status.HTTP_400_BAD_REQUEST)


def register_exception_handlers(app: FastAPI, *, environment: str) -> None:
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.opt(exception=exc).error("Unhandled request error", path=request.url.path, method=request.method)
        if environment == "production":
            return error_response("Internal server error", status.HTTP_500_INTERNAL_SERVER_ERROR)
        return error_response(str(exc) or exc.__class__.__name__, status.HTTP_500_INTERNAL_SERVER_ERROR)

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)


__all__ = ["error_response", "register_exception_handlers"]
