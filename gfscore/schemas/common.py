"""
Error envelope schemas, used in router `responses=` docs.

Every 4xx/5xx body is `{code, message, details?}`. Request validation
failures (code VALIDATION_ERROR) list one ErrorDetail per bad field.
"""
from typing import Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    code: str
    message: str
    details: Optional[dict[str, Any]] = None


class ErrorDetail(BaseModel):
    field: str
    message: str
    type: str


class ValidationErrorDetails(BaseModel):
    errors: list[ErrorDetail]


class ValidationErrorResponse(ErrorResponse):
    """422 body for requests that fail schema validation."""
    details: ValidationErrorDetails
