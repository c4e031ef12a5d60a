"""GitHub webhook ingestion: validate, filter and enqueue pull request reviews."""

from __future__ import annotations

import hashlib
import hmac
import json
import time
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import ValidationError

from reviewbot.config import Settings
from reviewbot.dependencies import settings_dependency
from reviewbot.logger import get_logger, log_failure, log_success, log_timing, log_with_context
from reviewbot.queue import enqueue_review_job
from reviewbot.queue.models import PullRequestInfo, PullRequestPayload, RepositoryInfo, ReviewJob

router = APIRouter(prefix="/github", tags=["webhook"])

logger = get_logger()

DELIVERY_TTL_SECONDS = 60 * 60  # retain delivery IDs for one hour
_delivery_cache: Dict[str, float] = {}
_supported_pr_actions = {"opened", "reopened", "synchronize", "ready_for_review"}


class IgnoreEventError(RuntimeError):
    """Raised when a webhook event should be acknowledged but not processed."""


def build_signature(secret: str, payload: bytes) -> str:
    digest = hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


def signature_is_valid(secret: str | None, payload: bytes, raw_signature: str | None) -> bool:
    """Constant-time check of ``X-Hub-Signature-256``; always valid when no secret is configured."""

    if not secret:
        return True
    if not raw_signature:
        return False
    return hmac.compare_digest(build_signature(secret, payload), raw_signature)


def _prune_delivery_cache(now: float) -> None:
    expiry_threshold = now - DELIVERY_TTL_SECONDS
    expired = [key for key, timestamp in _delivery_cache.items() if timestamp < expiry_threshold]
    for key in expired:
        _delivery_cache.pop(key, None)


def _is_duplicate(delivery_id: str, now: float) -> bool:
    _prune_delivery_cache(now)
    return delivery_id in _delivery_cache


def reset_delivery_cache() -> None:
    _delivery_cache.clear()


def _build_pull_request_payload(payload: Dict[str, Any], skip_marker: str) -> PullRequestPayload:
    action = payload.get("action")
    if action not in _supported_pr_actions:
        raise IgnoreEventError(f"Pull request action '{action}' not actionable.")

    repository = payload.get("repository") or {}
    pull_request = payload.get("pull_request") or {}

    if not repository.get("full_name"):
        raise ValueError("Pull request event missing repository metadata.")
    if not pull_request.get("number"):
        raise ValueError("Pull request payload missing number.")

    title = pull_request.get("title") or ""
    if pull_request.get("draft"):
        raise IgnoreEventError("Draft pull requests are not reviewed.")
    if skip_marker and skip_marker in title:
        raise IgnoreEventError(f"Pull request title contains {skip_marker}.")

    head = pull_request.get("head") or {}
    return PullRequestPayload(
        repository=RepositoryInfo(
            full_name=repository["full_name"],
            owner=(repository.get("owner") or {}).get("login"),
            name=repository.get("name"),
        ),
        action=action,
        pull_request=PullRequestInfo(
            number=pull_request["number"],
            title=title,
            draft=bool(pull_request.get("draft")),
            head_sha=head.get("sha"),
        ),
        sender=payload.get("sender") or {},
    )


def _build_job_payload(event: str, payload: Dict[str, Any], skip_marker: str) -> PullRequestPayload:
    if event == "pull_request":
        return _build_pull_request_payload(payload, skip_marker)
    raise IgnoreEventError(f"Event '{event}' is not handled.")


@router.post("/webhook", summary="Receive GitHub webhooks")
async def receive_webhook(
    request: Request,
    settings: Settings = Depends(settings_dependency),
) -> Dict[str, str]:
    """Verify webhook signatures, dedupe deliveries, and enqueue review jobs."""

    start_time = time.monotonic()
    delivery_id = request.headers.get("X-GitHub-Delivery")
    event = request.headers.get("X-GitHub-Event")
    raw_body = await request.body()

    if not delivery_id:
        log_failure(logger, "Missing X-GitHub-Delivery header", event_type=event)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing X-GitHub-Delivery header")
    if not event:
        log_failure(logger, "Missing X-GitHub-Event header", delivery_id=delivery_id)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing X-GitHub-Event header")

    ctx_logger = log_with_context(logger, delivery_id=delivery_id, event_type=event)
    ctx_logger.info(f"Processing {event} event")

    if not signature_is_valid(settings.github_webhook_secret, raw_body, request.headers.get("X-Hub-Signature-256")):
        log_failure(logger, "Webhook signature verification failed", delivery_id=delivery_id, event_type=event)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid signature")

    try:
        payload = json.loads(raw_body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        log_failure(logger, "Invalid JSON payload", exc, delivery_id=delivery_id, event_type=event)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON payload") from exc

    now = time.time()
    if _is_duplicate(delivery_id, now):
        ctx_logger.info("Duplicate delivery ignored")
        return {"status": "ignored", "reason": "duplicate"}

    try:
        job_payload = _build_job_payload(event, payload, settings.skip_marker)
        job = ReviewJob(delivery_id=delivery_id, event=event, payload=job_payload)
    except IgnoreEventError as exc:
        ctx_logger.info(f"Webhook ignored: {exc}")
        return {"status": "ignored", "reason": str(exc)}
    except (ValueError, ValidationError) as exc:
        log_failure(logger, f"Invalid payload structure: {exc}", exc, delivery_id=delivery_id, event_type=event)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    repo_name = job_payload.repository.full_name
    ctx_logger = log_with_context(logger, delivery_id=delivery_id, event_type=event, repository=repo_name)
    with log_timing(ctx_logger, "enqueue_review_job"):
        await enqueue_review_job(job)

    _delivery_cache[delivery_id] = now
    log_success(
        logger,
        f"Webhook accepted and enqueued review of {repo_name}#{job_payload.pull_request.number} "
        f"(processed in {time.monotonic() - start_time:.3f}s)",
        delivery_id=delivery_id,
        event_type=event,
        repository=repo_name,
    )
    return {"status": "accepted"}
