"""Error taxonomy for upload operations."""
from __future__ import annotations

from typing import Any, Optional


class UploaderError(Exception):
    """Base class for every error raised by artifact_uploader."""


class ValidationError(UploaderError, ValueError):
    """Raised for invalid local input, before anything reaches the network."""


class HttpError(UploaderError):
    """
    Raised when a request fails.

    Attributes:
        context: Human-readable description of the failed operation
        status_code: HTTP status, or None when the request never completed
        body: Response body (or error detail) where available
    """

    def __init__(self, context: str, status_code: Optional[int] = None, body: Optional[str] = None):
        self.context = context
        self.status_code = status_code
        self.body = body
        message = context
        if status_code is not None:
            message = f"{message} (HTTP {status_code})"
        if body:
            message = f"{message}: {body}"
        super().__init__(message)


class JobFailureError(UploaderError):
    """Raised when the server reports that an indexing job failed."""

    def __init__(self, job_id: str, status_url: str):
        self.job_id = job_id
        self.status_url = status_url
        super().__init__(
            f"indexing failure on job {job_id}, see {status_url} for more details"
        )


def _error_detail(response: Any) -> str:
    try:
        payload = response.json()
    except Exception:
        return response.text
    if isinstance(payload, dict):
        for key in ("reason", "detail", "message"):
            if payload.get(key):
                return str(payload[key])
    return response.text


def check_http_response(response: Any, context: str) -> None:
    """
    Raise HttpError unless the response has a 2xx status.

    Args:
        response: httpx.Response (or anything exposing status_code/text/json)
        context: Description of the operation, used as the error message
    """
    if 200 <= response.status_code < 300:
        return
    raise HttpError(context, response.status_code, _error_detail(response))
