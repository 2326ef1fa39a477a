"""
Global Error Handler Middleware
================================

Maps errors to HTTP status codes and the uniform ``{"errors": [...]}`` body:

- ServiceError: status from its ErrorKind, message verbatim
- RequestValidationError: 400 with one ``{message, field}`` per issue
- Unknown routes (Starlette HTTPException 404): "Resource not found"
- Anything else: logged with traceback, generic 500
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import Settings
from exceptions import ErrorKind, ServiceError


logger = logging.getLogger(__name__)

_LOCATION_PREFIXES = {"body", "query", "path", "header", "cookie"}


def error_response(error: ServiceError) -> JSONResponse:
    return JSONResponse(
        status_code=error.status_code,
        content=error.to_dict(),
        headers=error.headers or None,
    )


def validation_issues(exc: RequestValidationError) -> list[dict]:
    """
    Flatten FastAPI validation errors into ``{message, field}`` entries.

    The location prefix ("body", "query", ...) is dropped from the field
    path, so a bad ``email`` in the JSON body reports ``field: "email"``.
    """
    issues = []
    for error in exc.errors():
        location = list(error.get("loc", ()))
        if location and location[0] in _LOCATION_PREFIXES:
            location = location[1:]
        issue = {"message": error.get("msg", "Invalid value")}
        if location:
            issue["field"] = ".".join(str(part) for part in location)
        issues.append(issue)
    return issues


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    if exc.kind is ErrorKind.INTERNAL:
        logger.error(f"Internal error on {request.method} {request.url.path}: {exc.message}")
    return error_response(exc)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(ServiceError.validation(validation_issues(exc)))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return error_response(ServiceError.not_found())
    return JSONResponse(
        status_code=exc.status_code,
        content={"errors": [{"message": str(exc.detail)}]},
        headers=getattr(exc, "headers", None),
    )


def build_error_handler_middleware(settings: Settings):
    """
    Create the catch-all middleware for unexpected exceptions.

    Args:
        settings: Application settings (``api_debug`` exposes exception text)

    Returns:
        An ``http`` middleware function
    """

    async def error_handler_middleware(request: Request, call_next):
        try:
            return await call_next(request)
        except ServiceError as e:
            return error_response(e)
        except Exception as e:
            logger.exception(f"Unhandled error on {request.method} {request.url.path}")
            message = ErrorKind.INTERNAL.default_message
            if settings.api_debug:
                message = f"{message}: {e}"
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"errors": [{"message": message}]},
            )

    return error_handler_middleware


def setup_error_handling(app: FastAPI, settings: Settings) -> None:
    """
    Register the exception handlers and the catch-all middleware.

    Args:
        app: The FastAPI application instance
        settings: Application settings
    """
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.middleware("http")(build_error_handler_middleware(settings))
