"""Command-line entry point, suitable for a CI job triggered by a pull request."""

from __future__ import annotations

import argparse
import os
import sys
from typing import Sequence

from reviewbot.config import SettingsError, get_settings
from reviewbot.errors import ReviewRunError
from reviewbot.logger import get_logger, log_failure, log_success
from reviewbot.services.review_processor import run_review

logger = get_logger()


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Review a pull request and post the findings as a comment")
    parser.add_argument("--owner", default=os.getenv("REPO_OWNER"), help="Repository owner (default: $REPO_OWNER)")
    parser.add_argument("--repo", default=os.getenv("REPO_NAME"), help="Repository name (default: $REPO_NAME)")
    parser.add_argument("--pr", default=os.getenv("PR_NUMBER"), help="Pull request number (default: $PR_NUMBER)")
    parser.add_argument(
        "--strategy",
        choices=("patterns", "model"),
        default=None,
        help="Detector to use. Falls back to REVIEW_STRATEGY, then 'patterns'.",
    )
    parser.add_argument(
        "--title",
        default=os.getenv("PR_TITLE"),
        help="Pull request title, checked for the opt-out marker (default: $PR_TITLE)",
    )
    return parser.parse_args(argv)


def _environment_check(args: argparse.Namespace, strategy: str) -> list[str]:
    checks = {
        "GITHUB_TOKEN": bool(os.getenv("GITHUB_TOKEN")),
        "REPO_OWNER": bool(args.owner),
        "REPO_NAME": bool(args.repo),
        "PR_NUMBER": bool(args.pr),
    }
    if strategy == "model":
        checks["ANTHROPIC_API_KEY"] = bool(os.getenv("ANTHROPIC_API_KEY"))

    print("🔧 Environment check:")
    for name, present in checks.items():
        print(f"   - {name}: {'✅ Set' if present else '❌ Missing'}")
    return [name for name, present in checks.items() if not present]


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    strategy = (args.strategy or os.getenv("REVIEW_STRATEGY") or "patterns").strip().lower()
    print(f"🧠 Pull request reviewer starting ({strategy} strategy)...")

    missing = _environment_check(args, strategy)
    if missing:
        log_failure(logger, f"Missing required environment variables: {', '.join(missing)}")
        return 1

    try:
        number = int(args.pr)
    except ValueError:
        log_failure(logger, f"Invalid pull request number: {args.pr!r}")
        return 1

    try:
        settings = get_settings(strategy=strategy)
    except SettingsError as exc:
        log_failure(logger, "Configuration incomplete", exc)
        return 1

    if args.title and settings.skip_marker in args.title:
        print(f"⏭️ Skipping review: pull request title contains {settings.skip_marker}")
        return 0

    try:
        outcome = run_review(args.owner, args.repo, number, settings=settings, strategy=strategy)
    except (ReviewRunError, SettingsError) as exc:
        log_failure(logger, f"Review of {args.owner}/{args.repo}#{number} failed", exc)
        return 1

    log_success(
        logger,
        f"{len(outcome.findings)} total issues found across {outcome.files_reviewed} files",
        repository=f"{args.owner}/{args.repo}",
        pull_number=number,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
