"""Model-backed strategy: one language-model prompt per changed file."""

from __future__ import annotations

import json
import re
import time
from typing import Any, Callable, List

from pydantic import BaseModel, ValidationError, field_validator

from reviewbot.diff import line_in_patch
from reviewbot.errors import ApiError, MalformedResponseError
from reviewbot.logger import get_logger, log_failure, log_with_context
from reviewbot.model_client import ModelClient
from reviewbot.models import Category, ChangedFile, Finding, ReviewRequest, Severity

logger = get_logger()

MAX_COMMENTS_PER_FILE = 10
MAX_CONTENT_CHARS = 2000
FALLBACK_EXCERPT_CHARS = 500

JSON_BLOCK_RE = re.compile(r"```json\s*(\{.*?\})\s*```", re.DOTALL)

ContentFetcher = Callable[[ChangedFile, ReviewRequest | None], str]

PROMPT_TEMPLATE = """You are an expert code reviewer. Please review this code change and provide constructive feedback.

**File:** {filename}
**Status:** {status}
**Changes:** +{additions} -{deletions}

**PR Context:** {context}

**File Content (if available):**
```
{content}
```

**Changes (Git Diff):**
```diff
{patch}
```

Please analyze this code and provide feedback in the following JSON format:
```json
{{
  "comments": [
    {{
      "line_number": null,
      "comment": "Your detailed review comment here",
      "severity": "error|warning|info|suggestion",
      "category": "security|performance|style|logic|maintainability"
    }}
  ]
}}
```

Focus on:
1. **Security vulnerabilities** (SQL injection, XSS, hardcoded secrets, etc.)
2. **Performance issues** (inefficient algorithms, memory leaks, etc.)
3. **Code quality** (readability, maintainability, best practices)
4. **Logic errors** (potential bugs, edge cases)
5. **Style consistency** (naming conventions, formatting)

Report at most {max_comments} significant issues that would benefit from developer attention. Provide specific, actionable feedback.
"""


class ModelComment(BaseModel):
    line_number: int | None = None
    comment: str = ""
    severity: Severity = Severity.INFO
    category: Category = Category.GENERAL

    @field_validator("line_number", mode="before")
    @classmethod
    def _coerce_line_number(cls, value: Any) -> int | None:
        if value is None or isinstance(value, bool):
            return None
        try:
            number = int(value)
        except (TypeError, ValueError):
            return None
        return number if number >= 1 else None

    @field_validator("comment", mode="before")
    @classmethod
    def _coerce_comment(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()

    @field_validator("severity", mode="before")
    @classmethod
    def _coerce_severity(cls, value: Any) -> Severity:
        try:
            return Severity(str(value).strip().lower())
        except ValueError:
            return Severity.INFO

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, value: Any) -> Category:
        try:
            return Category(str(value).strip().lower())
        except ValueError:
            return Category.GENERAL


def build_prompt(file: ChangedFile, context: ReviewRequest | None, content: str = "") -> str:
    return PROMPT_TEMPLATE.format(
        filename=file.filename,
        status=file.status,
        additions=file.additions,
        deletions=file.deletions,
        context=context.summary_context() if context else "Not available",
        content=content[:MAX_CONTENT_CHARS] if content else "Full content not available",
        patch=file.patch,
        max_comments=MAX_COMMENTS_PER_FILE,
    )


def parse_model_reply(text: str) -> List[ModelComment]:
    """Extract review comments from the first fenced ``json`` block of ``text``.

    An empty reply yields no comments. A reply without a block, with invalid
    JSON, or without a ``comments`` list raises :class:`MalformedResponseError`.
    Comments with no text are dropped and at most ten are returned.
    """

    if not text or not text.strip():
        return []

    match = JSON_BLOCK_RE.search(text)
    if not match:
        raise MalformedResponseError("No fenced JSON block in model reply")

    try:
        payload = json.loads(match.group(1))
    except json.JSONDecodeError as exc:
        raise MalformedResponseError(f"Invalid JSON in model reply: {exc}") from exc

    raw_comments = payload.get("comments", []) if isinstance(payload, dict) else None
    if not isinstance(raw_comments, list):
        raise MalformedResponseError("Model reply JSON has no 'comments' list")

    comments: List[ModelComment] = []
    for raw in raw_comments:
        if not isinstance(raw, dict):
            continue
        try:
            comment = ModelComment.model_validate(raw)
        except ValidationError as exc:
            logger.debug(f"Dropping invalid model comment: {exc}")
            continue
        if comment.comment:
            comments.append(comment)
        if len(comments) >= MAX_COMMENTS_PER_FILE:
            break
    return comments


class ModelDetector:
    """Ask the language model to review each file and translate its reply into findings."""

    name = "model"

    def __init__(
        self,
        client: ModelClient,
        *,
        content_fetcher: ContentFetcher | None = None,
        cooldown_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client
        self._content_fetcher = content_fetcher
        self._cooldown_seconds = cooldown_seconds
        self._sleep = sleep

    def close(self) -> None:
        self._client.close()

    def analyze(self, file: ChangedFile, context: ReviewRequest | None = None) -> List[Finding]:
        if file.is_removed or not file.patch:
            return []

        ctx_logger = log_with_context(logger, file=file.filename)
        content = self._content_fetcher(file, context) if self._content_fetcher else ""
        prompt = build_prompt(file, context, content)

        ctx_logger.info(f"Analyzing {file.filename} with the language model")
        try:
            reply = self._client.complete(prompt)
        except ApiError as exc:
            log_failure(ctx_logger, f"Model call for {file.filename}", exc)
            return []
        finally:
            if self._cooldown_seconds > 0:
                self._sleep(self._cooldown_seconds)

        try:
            comments = parse_model_reply(reply)
        except MalformedResponseError as exc:
            ctx_logger.warning(f"Could not parse model reply for {file.filename}: {exc}")
            return [
                Finding(
                    file_path=file.filename,
                    line_number=None,
                    message=f"AI Analysis:\n{reply[:FALLBACK_EXCERPT_CHARS]}",
                    severity=Severity.INFO,
                    category=Category.GENERAL,
                )
            ]

        findings = []
        for comment in comments:
            line_number = comment.line_number
            if line_number is not None and not line_in_patch(file.patch, line_number):
                ctx_logger.debug(f"Model line {line_number} is outside the diff; keeping the comment un-anchored")
                line_number = None
            findings.append(Finding(file.filename, line_number, comment.comment, comment.severity, comment.category))

        ctx_logger.info(f"Model found {len(findings)} issues in {file.filename}")
        return findings
