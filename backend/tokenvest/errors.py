"""Engine error taxonomy and the JSON error envelope used by every endpoint."""
from typing import Any, Optional

import structlog
from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from tokenvest.services.asset_ledger import TransferError

logger = structlog.get_logger()


class ErrorResponse(BaseModel):
    """Standard error envelope returned by all API error handlers."""
    error: str
    message: str
    detail: Any = None
    request_id: str = "unknown"


class VestingError(Exception):
    """Base class for errors raised by the vesting engine."""

    code = "vesting_error"
    status_code = 400

    def __init__(self, message: Optional[str] = None, **detail: Any):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__
        self.detail = detail or None


# Admission errors: creation rejected before any funds move


class AdmissionError(VestingError):
    code = "admission_error"
    status_code = 400


class AssetNotSupported(AdmissionError):
    code = "asset_not_supported"


class InvalidAmount(AdmissionError):
    code = "invalid_amount"


class InvalidDuration(AdmissionError):
    code = "invalid_duration"


class InvalidReleaseParameters(AdmissionError):
    code = "invalid_release_parameters"


# State errors: the record is not in a state that allows the operation


class StateError(VestingError):
    code = "state_error"
    status_code = 409


class ScheduleNotFound(StateError):
    code = "schedule_not_found"
    status_code = 404


class AlreadyRevoked(StateError):
    code = "already_revoked"


class NotRevocable(StateError):
    code = "not_revocable"


class NoClaimableTokens(StateError):
    code = "no_claimable_tokens"


# Access errors: caller identity or global mode


class AccessError(VestingError):
    code = "access_error"
    status_code = 403


class NotOwner(AccessError):
    code = "not_owner"


class UnauthorizedCaller(AccessError):
    code = "unauthorized_caller"


class Paused(AccessError):
    code = "paused"
    status_code = 423


class ReentrantCall(AccessError):
    code = "reentrant_call"
    status_code = 409


def _request_id(request: Request) -> str:
    return request.headers.get("x-request-id", "unknown")


async def vesting_error_handler(request: Request, exc: VestingError) -> JSONResponse:
    """Render engine errors into the standard envelope."""
    logger.warning(
        "Vesting operation rejected",
        error=exc.code,
        message=exc.message,
        path=request.url.path,
        method=request.method,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=exc.code,
            message=exc.message,
            detail=exc.detail,
            request_id=_request_id(request),
        ).model_dump(),
    )


async def transfer_error_handler(request: Request, exc: TransferError) -> JSONResponse:
    """Render ledger transfer failures, which pass through the engine unmodified."""
    logger.warning(
        "Asset transfer failed",
        error=exc.code,
        message=exc.message,
        path=request.url.path,
        method=request.method,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=exc.code,
            message=exc.message,
            detail=exc.detail,
            request_id=_request_id(request),
        ).model_dump(),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Standardize HTTPException responses into the same JSON envelope."""
    if isinstance(exc.detail, dict):
        error = exc.detail.get("error", f"http_{exc.status_code}")
        message = exc.detail.get("message", str(exc.detail))
        detail: Any = exc.detail.get("detail")
    else:
        error = f"http_{exc.status_code}"
        message = str(exc.detail)
        detail = exc.detail

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": error,
            "message": message,
            "detail": detail,
            "request_id": _request_id(request),
        },
        headers=dict(exc.headers or {}),
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch unhandled exceptions and return a consistent JSON envelope."""
    request_id = _request_id(request)

    logger.error(
        "Unhandled exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
        request_id=request_id,
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred.",
            "request_id": request_id,
        },
    )
