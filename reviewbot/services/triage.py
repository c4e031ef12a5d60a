"""Changed-file triage: reduce a pull request's file list to the reviewable subset."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Final, Iterable, List

from reviewbot.config import DEFAULT_REVIEWABLE_EXTENSIONS, Settings
from reviewbot.github_client import GitHubClient
from reviewbot.logger import get_logger, log_timing, log_with_context
from reviewbot.models import ChangedFile

logger = get_logger()

DEFAULT_MAX_FILE_CHANGES: Final[int] = 1500

GENERATED_PATH_MARKERS: Final[tuple[str, ...]] = (
    "node_modules/", "vendor/", ".git/", "dist/", "build/",
    "__pycache__/", ".pytest_cache/", "coverage/", ".venv/",
    "package-lock.json", "yarn.lock", "poetry.lock", "pipfile.lock",
    ".min.js", ".min.css", "bundle.js", "bundle.css", ".map",
    "migrations/", "locale/", "i18n/", "translations/",
    ".generated", "auto_generated", "codegen",
)


@dataclass(frozen=True)
class TriageOptions:
    reviewable_extensions: frozenset[str] = DEFAULT_REVIEWABLE_EXTENSIONS
    max_file_changes: int = DEFAULT_MAX_FILE_CHANGES
    filter_extensions: bool = True
    filter_large_files: bool = True
    filter_generated: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> "TriageOptions":
        return cls(
            reviewable_extensions=settings.reviewable_extensions,
            max_file_changes=settings.max_file_changes,
        )


def is_generated_file(filename: str) -> bool:
    """Check if a path looks like a dependency, lock file, bundle or generated artifact."""

    filename_lower = filename.lower()
    return any(marker in filename_lower for marker in GENERATED_PATH_MARKERS)


def filter_reviewable_files(
    raw_files: Iterable[Dict[str, Any]],
    options: TriageOptions | None = None,
) -> List[ChangedFile]:
    """Apply the extension, size and generated-path filters, keeping API order."""

    options = options or TriageOptions()
    reviewable: List[ChangedFile] = []

    for entry in raw_files:
        try:
            changed = ChangedFile.from_api(entry)
        except (TypeError, ValueError) as exc:
            logger.warning(f"Skipping malformed file entry: {exc}")
            continue

        if options.filter_extensions and changed.extension not in options.reviewable_extensions:
            logger.debug(f"Skipping non-reviewable file: {changed.filename}")
            continue

        if options.filter_large_files and changed.total_changes > options.max_file_changes:
            logger.info(f"Skipping large file: {changed.filename} ({changed.total_changes} changes)")
            continue

        if options.filter_generated and is_generated_file(changed.filename):
            logger.debug(f"Skipping generated file: {changed.filename}")
            continue

        reviewable.append(changed)

    return reviewable


def list_reviewable_files(
    client: GitHubClient,
    owner: str,
    repo: str,
    number: int,
    options: TriageOptions | None = None,
) -> List[ChangedFile]:
    ctx_logger = log_with_context(logger, repository=f"{owner}/{repo}", pull_number=number)
    with log_timing(ctx_logger, "list_pull_request_files"):
        raw_files = client.list_pull_request_files(owner, repo, number)

    files = filter_reviewable_files(raw_files, options)
    ctx_logger.info(f"{len(files)} of {len(raw_files)} files selected for review")
    return files
