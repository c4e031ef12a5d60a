"""Data models for review queue jobs."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Literal

from pydantic import BaseModel, Field


class RepositoryInfo(BaseModel):
    full_name: str
    owner: str | None = None
    name: str | None = None

    @property
    def owner_login(self) -> str:
        return self.owner or self.full_name.split("/", 1)[0]

    @property
    def repo_name(self) -> str:
        return self.name or self.full_name.split("/", 1)[-1]


class PullRequestInfo(BaseModel):
    number: int
    title: str | None = None
    draft: bool = False
    head_sha: str | None = None


class PullRequestPayload(BaseModel):
    repository: RepositoryInfo
    action: str
    pull_request: PullRequestInfo
    sender: Dict[str, Any] = Field(default_factory=dict)


class ReviewJob(BaseModel):
    delivery_id: str
    event: Literal["pull_request"] = "pull_request"
    payload: PullRequestPayload
    received_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def target(self) -> tuple[str, str, int]:
        """``(owner, repo, number)`` of the pull request to review."""
        repository = self.payload.repository
        return repository.owner_login, repository.repo_name, self.payload.pull_request.number
