"""
music_broker.api.errors

API error envelope.

Responsibilities:
- Define `ApiError`, the single exception routes raise to produce a failure response.
- Render every failure as structured JSON: `{"error": ...}` plus `errorCode` when known.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.status import HTTP_500_INTERNAL_SERVER_ERROR

from music_broker.observability.logging import get_logger

log = get_logger(__name__)


class ApiError(Exception):
    def __init__(self, *, status_code: int, error: str, error_code: str | None = None) -> None:
        super().__init__(error)
        self.status_code = status_code
        self.error = error
        self.error_code = error_code

    def to_body(self) -> dict[str, str]:
        body = {"error": self.error}
        if self.error_code is not None:
            body["errorCode"] = self.error_code
        return body


async def _api_error_handler(_: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def _unhandled_error_handler(_: Request, exc: Exception) -> JSONResponse:
    log.error("unhandled_error", error_type=type(exc).__name__)
    return JSONResponse(
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, _api_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_error_handler)


# --- Module Notes -----------------------------------------------------------
# Provider-internal payloads never reach this envelope; only the provider's
# error code is exposed (as `errorCode`) so clients can branch on it.
