"""Issue detectors and the factory that picks one from configuration."""

from __future__ import annotations

import time
from typing import Callable, List, Protocol, runtime_checkable

from reviewbot.config import Settings, SettingsError
from reviewbot.github_client import GitHubClient
from reviewbot.model_client import ModelClient
from reviewbot.models import ChangedFile, Finding, ReviewRequest

from .model import ModelDetector, parse_model_reply
from .patterns import PatternDetector


@runtime_checkable
class Detector(Protocol):
    name: str

    def analyze(self, file: ChangedFile, context: ReviewRequest | None) -> List[Finding]:
        ...


def _head_content_fetcher(client: GitHubClient) -> Callable[[ChangedFile, ReviewRequest | None], str]:
    def fetch(file: ChangedFile, context: ReviewRequest | None) -> str:
        if context is None:
            return ""
        return client.get_file_content(context.owner, context.repo, file.filename, context.head_sha)

    return fetch


def build_detector(
    settings: Settings,
    *,
    strategy: str | None = None,
    github_client: GitHubClient | None = None,
    model_client: ModelClient | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Detector:
    """Return the detector named by ``strategy`` (default: ``settings.review_strategy``)."""

    strategy = (strategy or settings.review_strategy).strip().lower()
    if strategy == "patterns":
        return PatternDetector()
    if strategy == "model":
        if model_client is None:
            credentials = settings.require_model_credentials()
            model_client = ModelClient(
                credentials.api_key,
                model=credentials.model_name,
                base_url=credentials.base_url,
                timeout=settings.request_timeout,
            )
        return ModelDetector(
            model_client,
            content_fetcher=_head_content_fetcher(github_client) if github_client else None,
            cooldown_seconds=settings.model_cooldown_seconds,
            sleep=sleep,
        )
    raise SettingsError(f"Unknown review strategy {strategy!r}; expected 'patterns' or 'model'.")


__all__ = [
    "Detector",
    "ModelDetector",
    "PatternDetector",
    "build_detector",
    "parse_model_reply",
]
