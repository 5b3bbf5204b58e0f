"""Normalization of failures into session status codes."""

import httpx
from pydantic import ValidationError

from veraison_client.domain.errors import (
    ChallengeResponseError,
    Status,
    StatusCode,
)


def normalize_exception(exc: BaseException) -> Status:
    """Map any failure raised during a session operation to a status."""
    if isinstance(exc, ChallengeResponseError):
        return Status(exc.code, str(exc))
    if isinstance(exc, httpx.TimeoutException):
        return Status(StatusCode.API_ERROR, f"request timed out: {exc}")
    if isinstance(exc, httpx.HTTPStatusError):
        return Status(
            StatusCode.API_ERROR,
            f"service returned HTTP {exc.response.status_code}",
        )
    if isinstance(exc, httpx.HTTPError):
        return Status(StatusCode.API_ERROR, f"transport failure: {_describe(exc)}")
    if isinstance(exc, ValidationError):
        return Status(
            StatusCode.API_ERROR,
            f"malformed service response: {exc.error_count()} validation error(s)",
        )
    return Status(StatusCode.UNMAPPED_ERROR, _describe(exc))


def status_from_code(code: int, message: str | None = None) -> Status:
    """Map an integer code from an external source to a status.

    Codes outside the known set become UNMAPPED_ERROR.
    """
    try:
        status_code = StatusCode(code)
    except ValueError:
        detail = f"unrecognized status code {code}"
        if message:
            detail = f"{detail}: {message}"
        return Status(StatusCode.UNMAPPED_ERROR, detail)
    return Status(status_code, message)


def _describe(exc: BaseException) -> str:
    text = str(exc)
    name = type(exc).__name__
    return f"{name}: {text}" if text else name
