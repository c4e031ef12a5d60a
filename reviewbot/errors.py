"""Error taxonomy shared by the API clients, detectors and the review processor."""

from __future__ import annotations

from typing import Any


class ApiError(RuntimeError):
    """Raised when an outbound API request fails."""

    def __init__(self, message: str, status_code: int = 0, response_body: Any | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class TransientNetworkError(ApiError):
    """Connection reset, DNS failure, timeout... anything below HTTP."""


class RateLimitedError(ApiError):
    """The server asked us to wait ``wait_seconds`` before trying again."""

    def __init__(self, message: str, wait_seconds: float, status_code: int = 403, response_body: Any | None = None):
        super().__init__(message, status_code, response_body)
        self.wait_seconds = wait_seconds


class ApiPermissionError(ApiError, PermissionError):
    """403 without a rate-limit signal: the token lacks the required scopes."""

    REQUIRED_SCOPES = "contents:read, pull-requests:write, issues:write"


class NotFoundError(ApiError):
    """404 from the remote API."""


class MalformedResponseError(ValueError):
    """The language model replied with something we could not parse."""


class PerFileAnalysisError(RuntimeError):
    """Analysis of a single changed file failed."""

    def __init__(self, filename: str, original_error: Exception):
        super().__init__(f"Analysis of {filename} failed: {original_error}")
        self.filename = filename
        self.original_error = original_error


class ReviewRunError(RuntimeError):
    """Raised when a review run cannot complete."""

    def __init__(self, message: str, step: str, original_error: Exception | None = None):
        super().__init__(message)
        self.step = step
        self.original_error = original_error
