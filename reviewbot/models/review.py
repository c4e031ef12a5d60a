"""Shared data structures for review processing."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    SUGGESTION = "suggestion"

    def __str__(self) -> str:
        return self.value


class Category(str, Enum):
    SECURITY = "security"
    PERFORMANCE = "performance"
    STYLE = "style"
    LOGIC = "logic"
    MAINTAINABILITY = "maintainability"
    GENERAL = "general"

    def __str__(self) -> str:
        return self.value


class FileStatus(str, Enum):
    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"
    RENAMED = "renamed"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_api(cls, raw: str | None) -> "FileStatus":
        # GitHub also reports "copied", "changed" and "unchanged"; all carry head content.
        try:
            return cls((raw or "").lower())
        except ValueError:
            return cls.MODIFIED


def file_extension(filename: str) -> str:
    """Lower-cased extension of ``filename``; ``Dockerfile`` maps to ``.dockerfile``."""

    base = os.path.basename(filename)
    extension = os.path.splitext(base)[1].lower()
    if not extension and base.lower() == "dockerfile":
        return ".dockerfile"
    return extension


@dataclass(frozen=True, slots=True)
class ChangedFile:
    filename: str
    additions: int
    deletions: int
    patch: str
    status: FileStatus
    extension: str

    @property
    def total_changes(self) -> int:
        return self.additions + self.deletions

    @property
    def is_removed(self) -> bool:
        return self.status is FileStatus.REMOVED

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "ChangedFile":
        filename = data.get("filename") or data.get("path")
        if not filename:
            raise ValueError(f"File entry missing filename: {data!r}")
        return cls(
            filename=filename,
            additions=max(int(data.get("additions", 0) or 0), 0),
            deletions=max(int(data.get("deletions", 0) or 0), 0),
            patch=data.get("patch") or "",
            status=FileStatus.from_api(data.get("status")),
            extension=file_extension(filename),
        )


@dataclass(frozen=True, slots=True)
class Finding:
    file_path: str
    line_number: int | None
    message: str
    severity: Severity
    category: Category


@dataclass(frozen=True, slots=True)
class ReviewRequest:
    owner: str
    repo: str
    id: int
    additions: int = 0
    deletions: int = 0
    title: str = ""
    description: str = ""
    head_sha: str | None = None
    author: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    def summary_context(self, *, max_description_chars: int = 500) -> str:
        """Title plus a truncated description, as handed to the language model."""
        description = (self.description or "No description provided")[:max_description_chars]
        return f"Title: {self.title}\nDescription: {description}"

    @classmethod
    def from_api(cls, owner: str, repo: str, data: Dict[str, Any]) -> "ReviewRequest":
        head = data.get("head") or {}
        user = data.get("user") or {}
        return cls(
            owner=owner,
            repo=repo,
            id=int(data["number"]),
            additions=int(data.get("additions", 0) or 0),
            deletions=int(data.get("deletions", 0) or 0),
            title=data.get("title") or "",
            description=data.get("body") or "",
            head_sha=head.get("sha"),
            author=user.get("login"),
        )


@dataclass(slots=True)
class ReviewOutcome:
    request: ReviewRequest
    files_reviewed: int = 0
    findings: List[Finding] = field(default_factory=list)
    failed_files: List[str] = field(default_factory=list)
    comment_posted: bool = False
