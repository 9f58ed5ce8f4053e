from typing import Any, Optional

import httpx
from fastapi import Request
from fastapi.responses import JSONResponse


class ApiError(Exception):
    """An error returned to HTTP clients as ``{"error": ..., "details": ...}``."""

    def __init__(self, status_code: int, error: str, details: Optional[Any] = None):
        super().__init__(error)
        self.status_code = status_code
        self.error = error
        self.details = details


class UpstreamResponseError(Exception):
    """The upstream answered, but not in the shape we expected."""


def describe_upstream_error(exc: Exception) -> Any:
    """Best available detail for a failed upstream call.

    The upstream body if there is one, else the status code. Never the
    request URL, which carries the API key.
    """
    if isinstance(exc, httpx.HTTPStatusError):
        try:
            return exc.response.json()
        except ValueError:
            return exc.response.text or f"Request failed with status code {exc.response.status_code}"
    if isinstance(exc, httpx.RequestError):
        return f"{type(exc).__name__}: request to {exc.request.url.host} failed"
    return str(exc)


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    content = {"error": exc.error}
    if exc.details is not None:
        content["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=content)
