"""
Custom exception hierarchy for gfscore.

Rule: every HTTP error has a machine-readable `code` string so clients
can branch on it without parsing English messages.
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class GFScoreException(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class VoteValidationError(GFScoreException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_VOTE"

    def __init__(self, message: str, field: str | None = None):
        super().__init__(
            message=message,
            details={"field": field} if field else {},
        )


class ProductNotFoundError(GFScoreException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: int):
        super().__init__(
            message=f"Product {product_id} does not exist.",
            details={"product_id": product_id},
        )


class ProductAlreadyExistsError(GFScoreException):
    http_status = status.HTTP_409_CONFLICT
    code = "PRODUCT_ALREADY_EXISTS"

    def __init__(self, name: str):
        super().__init__(
            message=f"A product named '{name}' already exists.",
            details={"name": name},
        )


class VoteNotFoundError(GFScoreException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "VOTE_NOT_FOUND"

    def __init__(self, vote_id: int):
        super().__init__(
            message=f"Vote {vote_id} does not exist.",
            details={"vote_id": vote_id},
        )


class VoteOwnershipError(GFScoreException):
    http_status = status.HTTP_403_FORBIDDEN
    code = "NOT_VOTE_OWNER"

    def __init__(self, vote_id: int):
        super().__init__(
            message=f"Vote {vote_id} belongs to a different voter.",
            details={"vote_id": vote_id},
        )


class InvalidSettingError(GFScoreException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_SETTING"

    def __init__(self, key: str, reason: str):
        super().__init__(
            message=f"Invalid value for setting {key}: {reason}",
            details={"key": key},
        )


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def gfscore_exception_handler(request: Request, exc: GFScoreException) -> JSONResponse:
    logger.info(
        "%s %s -> %d %s", request.method, request.url.path, exc.http_status, exc.code
    )
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return structured 422 with machine-readable field errors."""
    field_errors = []
    for error in exc.errors():
        field_errors.append({
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed.",
            "details": {"errors": field_errors},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
