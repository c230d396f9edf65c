"""
Message Ingest Service - Standardized Response Models

Provides consistent response structure across all endpoints.
"""

from typing import Any, Optional

from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Error detail structure."""

    code: str = Field(..., description="Error code for programmatic handling")
    message: str = Field(..., description="Human-readable error message")

    model_config = {
        "json_schema_extra": {
            "example": {"code": "MALFORMED_MESSAGE", "message": "missing message id"}
        }
    }


class APIResponse(BaseModel):
    """Standardized API response structure."""

    success: bool = Field(..., description="Whether the request was successful")
    data: Optional[Any] = Field(None, description="Response data on success")
    error: Optional[ErrorDetail] = Field(None, description="Error details on failure")

    model_config = {
        "json_schema_extra": {
            "example": {
                "success": True,
                "data": {"status": "stored", "id": "11111111-1111-1111-1111-111111111111"},
                "error": None,
            }
        }
    }


# --- Helper functions ---


def success_response(data: Any, status_code: int = 200) -> JSONResponse:
    """Create a success response."""
    return JSONResponse(
        content={"success": True, "data": data, "error": None},
        status_code=status_code,
    )


def error_response(code: str, message: str, status_code: int = 400) -> JSONResponse:
    """Create an error response."""
    return JSONResponse(
        content={
            "success": False,
            "data": None,
            "error": {"code": code, "message": message},
        },
        status_code=status_code,
    )


# --- Error codes ---


class ErrorCodes:
    """Standardized error codes."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_ENVELOPE = "INVALID_ENVELOPE"
    MISSING_MESSAGE = "MISSING_MESSAGE"
    INVALID_BASE64 = "INVALID_BASE64"
    MALFORMED_MESSAGE = "MALFORMED_MESSAGE"
    NOT_FOUND = "NOT_FOUND"
    STORAGE_UNAVAILABLE = "STORAGE_UNAVAILABLE"
    STORAGE_ERROR = "STORAGE_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
