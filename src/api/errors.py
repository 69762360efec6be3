"""
Maps the domain error taxonomy onto HTTP responses.

=====================  ====  ====================================
Error                  Code  Extra body fields
=====================  ====  ====================================
ValidationError        400   ``errors`` (field-level detail)
NotFoundError          404   ``resource``, ``id``
AuthorizationError     403
CapacityError          400   ``available``
StateError             409   ``reason``
InfrastructureError    503   ``retryable`` + ``Retry-After`` header
=====================  ====  ====================================

Storage and Redis failures that escape a handler are logged and reported
as ``InfrastructureError``.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from src.domain.errors import (
    AuthorizationError,
    CapacityError,
    DomainError,
    InfrastructureError,
    NotFoundError,
    StateError,
    ValidationError,
)

logger = logging.getLogger(__name__)

STATUS_CODES: dict[type[DomainError], int] = {
    ValidationError: 400,
    NotFoundError: 404,
    AuthorizationError: 403,
    CapacityError: 400,
    StateError: 409,
    InfrastructureError: 503,
}


def _status_for(exc: DomainError) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_CODES:
            return STATUS_CODES[cls]
    return 500


def _infrastructure_response(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=503,
        content={"detail": message, "retryable": True},
        headers={"Retry-After": "1"},
    )


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    if isinstance(exc, InfrastructureError):
        logger.error("Infrastructure failure on %s: %s", request.url.path, exc.message)
        return _infrastructure_response(exc.message)
    return JSONResponse(
        status_code=_status_for(exc),
        content={"detail": exc.message, **exc.extra()},
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = [
        {
            "field": ".".join(str(part) for part in err["loc"] if part != "body"),
            "message": err["msg"],
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400, content={"detail": "Invalid request", "errors": errors}
    )


async def storage_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Storage failure on %s", request.url.path, exc_info=exc)
    return _infrastructure_response("Temporary storage failure, please retry")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(SQLAlchemyError, storage_error_handler)
    app.add_exception_handler(RedisError, storage_error_handler)
