"""
Error Handler Middleware

Renders every failure as ``{"error": {...}}``:
- AppError subclasses keep their status, code and message
- request validation failures become 400
- database and redis failures become 503 without internal detail
- anything else is logged with traceback and reduced to one generic message
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable

from fastapi import Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from venue_booking.core.exceptions import AppError, ErrorCategory

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Ett oväntat fel uppstod. Försök igen senare."


def _body(request: Request, *, code: str, category: str, message: str, details=None) -> dict:
    return {
        "error": {
            "code": code,
            "category": category,
            "message": message,
            "details": details or {},
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "path": request.url.path,
        }
    }


def handle_app_error(error: AppError, request: Request) -> JSONResponse:
    log = logger.error if error.status_code >= 500 else logger.info
    log(
        f"{error.category} on {request.method} {request.url.path}: "
        f"{error.error_code} {error.message}"
    )
    headers = {}
    if error.retry_after:
        headers["Retry-After"] = str(error.retry_after)
    return JSONResponse(
        status_code=error.status_code,
        content=_body(
            request,
            code=error.error_code,
            category=error.category,
            message=error.message,
            details=error.details,
        ),
        headers=headers,
    )


def handle_validation_error(error: RequestValidationError, request: Request) -> JSONResponse:
    errors = [
        {
            "field": ".".join(str(loc) for loc in err["loc"]),
            "message": err["msg"],
            "type": err["type"],
        }
        for err in error.errors()
    ]
    logger.warning(f"Validation error on {request.method} {request.url.path}: {errors}")
    return JSONResponse(
        status_code=400,
        content=_body(
            request,
            code="VALIDATION_ERROR",
            category=ErrorCategory.VALIDATION,
            message="Ogiltig förfrågan",
            details={"validation_errors": errors},
        ),
    )


def handle_database_error(error: SQLAlchemyError, request: Request) -> JSONResponse:
    logger.error(
        f"Database error on {request.method} {request.url.path}: {type(error).__name__}",
        exc_info=True,
    )
    unavailable = isinstance(error, OperationalError)
    return JSONResponse(
        status_code=503 if unavailable else 500,
        content=_body(
            request,
            code="DATABASE_ERROR",
            category=ErrorCategory.DATABASE,
            message="Databasen är inte tillgänglig just nu" if unavailable else GENERIC_ERROR_MESSAGE,
        ),
        headers={"Retry-After": "30"} if unavailable else {},
    )


def handle_redis_error(error: RedisError, request: Request) -> JSONResponse:
    logger.error(f"Redis error on {request.method} {request.url.path}: {error}", exc_info=True)
    return JSONResponse(
        status_code=503,
        content=_body(
            request,
            code="EXTERNAL_SERVICE_ERROR",
            category=ErrorCategory.EXTERNAL_SERVICE,
            message="Tjänsten är tillfälligt otillgänglig",
            details={"service": "redis"},
        ),
        headers={"Retry-After": "30"},
    )


def handle_unexpected_error(error: Exception, request: Request) -> JSONResponse:
    error_id = uuid.uuid4().hex[:12]
    logger.critical(
        f"Unexpected error {error_id} on {request.method} {request.url.path}: "
        f"{type(error).__name__}: {error}",
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content=_body(
            request,
            code="INTERNAL_ERROR",
            category=ErrorCategory.INTERNAL,
            message=GENERIC_ERROR_MESSAGE,
            details={"error_id": error_id},
        ),
    )


async def error_handler_middleware(request: Request, call_next: Callable) -> Response:
    """Tags each request with an id and catches whatever escapes the handlers."""
    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
    try:
        response = await call_next(request)
    except AppError as e:
        response = handle_app_error(e, request)
    except SQLAlchemyError as e:
        response = handle_database_error(e, request)
    except RedisError as e:
        response = handle_redis_error(e, request)
    except Exception as e:
        response = handle_unexpected_error(e, request)
    response.headers["X-Request-ID"] = request_id
    return response


# Exception handlers for FastAPI
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return handle_app_error(exc, request)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return handle_validation_error(exc, request)


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    return handle_database_error(exc, request)
