"""Retry, backoff and rate-limit handling shared by the outbound API clients.

Clients decorate their single transport method with :func:`with_retries`; the
decorated method performs one HTTP exchange and raises one of the
:mod:`reviewbot.errors` types (see :func:`raise_for_response`). The decorator
owns the loop:

* ``RateLimitedError`` - sleep for the server-specified wait and repeat the
  same attempt; rate-limit waits never count against the retry budget.
* ``NotFoundError`` / ``ApiPermissionError`` - re-raised immediately.
* any other ``ApiError`` (including ``TransientNetworkError``) - retried up
  to ``max_retries`` times with exponential backoff, then re-raised.
"""

from __future__ import annotations

import functools
import time
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

import httpx

from reviewbot.errors import ApiError, ApiPermissionError, NotFoundError, RateLimitedError
from reviewbot.logger import get_logger, log_with_context

logger = get_logger()

F = TypeVar("F", bound=Callable[..., Any])


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    initial_delay: float = 2.0
    backoff_factor: float = 2.0
    rate_limit_fallback: float = 60.0
    sleep: Callable[[float], None] = field(default=time.sleep, compare=False)
    clock: Callable[[], float] = field(default=time.time, compare=False)


DEFAULT_RETRY_POLICY = RetryPolicy()


def with_retries(func: F) -> F:
    """Wrap ``func(self, method, url, ...)`` with the owner's ``retry_policy``."""

    @functools.wraps(func)
    def wrapper(self, method: str, url: str, *args: Any, **kwargs: Any) -> Any:
        policy: RetryPolicy = getattr(self, "retry_policy", DEFAULT_RETRY_POLICY)
        ctx_logger = log_with_context(logger, method=method, url=url)
        delay = policy.initial_delay
        retries = 0

        while True:
            try:
                return func(self, method, url, *args, **kwargs)
            except RateLimitedError as exc:
                ctx_logger.warning(f"Rate limited ({exc.status_code}). Waiting {exc.wait_seconds:.0f}s before retrying")
                policy.sleep(exc.wait_seconds)
            except ApiPermissionError as exc:
                ctx_logger.error(
                    f"Permission denied ({exc.status_code}) for {method} {url}. "
                    f"Check that the token has: {ApiPermissionError.REQUIRED_SCOPES}"
                )
                raise
            except NotFoundError:
                ctx_logger.error(f"Resource not found (404): {method} {url}")
                raise
            except ApiError as exc:
                if retries >= policy.max_retries:
                    ctx_logger.error(f"Giving up on {method} {url} after {retries + 1} attempts: {exc}")
                    raise
                retries += 1
                ctx_logger.warning(
                    f"{type(exc).__name__}: {exc}. Retrying in {delay:g}s "
                    f"(retry {retries}/{policy.max_retries})"
                )
                policy.sleep(delay)
                delay *= policy.backoff_factor

    return wrapper  # type: ignore[return-value]


def _response_detail(response: httpx.Response) -> Any | None:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text[:500]


def rate_limit_wait(response: httpx.Response, policy: RetryPolicy = DEFAULT_RETRY_POLICY) -> float:
    """Seconds to wait before retrying a rate-limited request.

    ``Retry-After`` wins when present; otherwise the wait runs until
    ``X-RateLimit-Reset`` but never less than the policy's fallback.
    """

    retry_after = response.headers.get("Retry-After")
    if retry_after:
        try:
            return max(float(retry_after), 1.0)
        except ValueError:
            pass

    reset_raw = response.headers.get("X-RateLimit-Reset")
    if reset_raw:
        try:
            reset_at = float(reset_raw)
        except ValueError:
            return policy.rate_limit_fallback
        return max(reset_at - policy.clock(), policy.rate_limit_fallback)
    return policy.rate_limit_fallback


def is_rate_limited(response: httpx.Response) -> bool:
    if response.status_code == 429:
        return True
    return response.status_code == 403 and "rate limit" in response.text.lower()


def raise_for_response(
    response: httpx.Response,
    *,
    service: str,
    url: str,
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
) -> None:
    """Translate an HTTP error status into the matching :mod:`reviewbot.errors` type."""

    status_code = response.status_code
    if status_code < 400:
        return

    detail = _response_detail(response)
    if is_rate_limited(response):
        raise RateLimitedError(
            f"{service} rate limit hit for {url}",
            wait_seconds=rate_limit_wait(response, policy),
            status_code=status_code,
            response_body=detail,
        )
    if status_code == 403:
        raise ApiPermissionError(
            f"{service} denied access to {url} (403). Required scopes: {ApiPermissionError.REQUIRED_SCOPES}",
            status_code,
            detail,
        )
    if status_code == 404:
        raise NotFoundError(f"{service} resource not found: {url}", status_code, detail)
    raise ApiError(f"{service} request to {url} failed with status {status_code}.", status_code, detail)
