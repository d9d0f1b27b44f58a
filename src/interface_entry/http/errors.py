from __future__ import annotations

"""HTTP exception handlers producing standard API envelopes."""

import logging
from typing import Any, List, Mapping

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from interface_entry.http.responses import ApiError, ApiMeta, ApiResponse
from project_utility.context import ContextBridge

log = logging.getLogger(__name__)


def _extract_error(detail: Any, default_code: str = "UNKNOWN_ERROR") -> ApiError:
    if isinstance(detail, Mapping):
        code = str(detail.get("code") or default_code)
        message = str(detail.get("message") or detail.get("detail") or "An error occurred")
        field = detail.get("field")
        return ApiError(code=code, message=message, field=str(field) if field else None)
    if isinstance(detail, str):
        return ApiError(code=default_code, message=detail)
    return ApiError(code=default_code, message=str(detail))


def error_response(status_code: int, errors: List[ApiError]) -> JSONResponse:
    payload = ApiResponse[dict[str, Any]](
        data=None,
        meta=ApiMeta(requestId=ContextBridge.request_id()),  # type: ignore[arg-type]
        errors=errors,
    )
    return JSONResponse(status_code=status_code, content=payload.model_dump(by_alias=True, exclude_none=True))


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return error_response(exc.status_code, [_extract_error(exc.detail, default_code="HTTP_ERROR")])


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        ApiError(
            code="INVALID_ACTIVITY",
            message=str(item.get("msg") or "invalid value"),
            field=".".join(str(part) for part in item.get("loc", ())) or None,
        )
        for item in exc.errors()
    ]
    return error_response(status.HTTP_400_BAD_REQUEST, errors)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    log.error(
        "http.unhandled_exception",
        exc_info=(type(exc), exc, exc.__traceback__),
        extra={"status_code": status.HTTP_500_INTERNAL_SERVER_ERROR},
    )
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        [ApiError(code="INTERNAL_ERROR", message="Unexpected server error")],
    )


__all__ = [
    "error_response",
    "http_exception_handler",
    "unhandled_exception_handler",
    "validation_exception_handler",
]
