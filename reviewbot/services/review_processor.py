"""Review orchestration: triage, detect, aggregate and post for one pull request."""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Callable, List

from reviewbot.config import Settings, get_settings
from reviewbot.detectors import Detector, build_detector
from reviewbot.errors import ApiError, PerFileAnalysisError, ReviewRunError
from reviewbot.github_client import GitHubClient
from reviewbot.logger import get_logger, log_failure, log_success, log_timing, log_with_context
from reviewbot.models import ChangedFile, Finding, ReviewOutcome, ReviewRequest
from reviewbot.queue.models import ReviewJob
from reviewbot.services.report import render_error_notice, render_no_files_notice, render_report
from reviewbot.services.triage import TriageOptions, list_reviewable_files

logger = get_logger()


class ReviewProcessor:
    """Run one review end to end. Holds no state between runs."""

    def __init__(
        self,
        github_client: GitHubClient,
        detector: Detector,
        *,
        triage_options: TriageOptions | None = None,
        server_url: str = "https://github.com",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._github = github_client
        self._detector = detector
        self._triage_options = triage_options or TriageOptions()
        self._server_url = server_url
        self._clock = clock

    def run(self, owner: str, repo: str, number: int) -> ReviewOutcome:
        ctx_logger = log_with_context(logger, repository=f"{owner}/{repo}", pull_number=number)
        ctx_logger.info(f"=== PROCESSOR: Starting {getattr(self._detector, 'name', 'review')} review ===")

        with log_timing(ctx_logger, "fetch_pull_request"):
            request = self._step(
                "fetch_pull_request", owner, repo, number,
                lambda: ReviewRequest.from_api(owner, repo, self._github.get_pull_request(owner, repo, number)),
            )
        ctx_logger.info(f"PR '{request.title}' by {request.author or 'unknown'}")

        with log_timing(ctx_logger, "triage_files"):
            files = self._step(
                "triage_files", owner, repo, number,
                lambda: list_reviewable_files(self._github, owner, repo, number, self._triage_options),
            )

        outcome = ReviewOutcome(request=request, files_reviewed=len(files))
        generated_at = self._clock() if self._clock else None

        if not files:
            ctx_logger.info("No reviewable files found - posting notification")
            body = render_no_files_notice(generated_at=generated_at)
            self._step("post_comment", owner, repo, number, lambda: self._github.create_issue_comment(owner, repo, number, body))
            outcome.comment_posted = True
            return outcome

        outcome.findings = self._analyze_files(files, request, outcome.failed_files)

        body = render_report(
            request,
            outcome.findings,
            outcome.files_reviewed,
            failed_files=outcome.failed_files,
            generated_at=generated_at,
        )
        with log_timing(ctx_logger, "post_comment"):
            self._step("post_comment", owner, repo, number, lambda: self._github.create_issue_comment(owner, repo, number, body))
        outcome.comment_posted = True

        log_success(
            logger,
            f"Review posted: {len(outcome.findings)} issues across {outcome.files_reviewed} files"
            f" ({len(outcome.failed_files)} failed)",
            repository=request.full_name,
            pull_number=number,
        )
        return outcome

    def _analyze_files(self, files: List[ChangedFile], request: ReviewRequest, failed: List[str]) -> List[Finding]:
        findings: List[Finding] = []
        total = len(files)
        for index, changed in enumerate(files, 1):
            file_logger = log_with_context(logger, repository=request.full_name, file=changed.filename)
            if changed.is_removed:
                file_logger.info(f"[{index}/{total}] Skipping removed file: {changed.filename}")
                continue

            file_logger.info(f"[{index}/{total}] Analyzing: {changed.filename}")
            try:
                file_findings = self._analyze_one(changed, request)
            except PerFileAnalysisError as exc:
                log_failure(file_logger, f"Analysis of {changed.filename} failed", exc.original_error)
                failed.append(changed.filename)
                continue

            file_logger.info(f"Found {len(file_findings)} issues in {changed.filename}")
            findings.extend(file_findings)
        return findings

    def _analyze_one(self, changed: ChangedFile, request: ReviewRequest) -> List[Finding]:
        try:
            return list(self._detector.analyze(changed, request))
        except Exception as exc:
            raise PerFileAnalysisError(changed.filename, exc) from exc

    def _step(self, step: str, owner: str, repo: str, number: int, action: Callable):
        try:
            return action()
        except (ApiError, ValueError, TypeError, KeyError) as exc:
            log_failure(logger, f"Review step '{step}' failed", exc, repository=f"{owner}/{repo}", pull_number=number)
            self._post_error_notice(owner, repo, number, f"Unexpected error during PR review: {exc}")
            raise ReviewRunError(f"Review failed at step '{step}': {exc}", step, exc) from exc

    def _post_error_notice(self, owner: str, repo: str, number: int, message: str) -> None:
        body = render_error_notice(owner, repo, message, server_url=self._server_url)
        try:
            self._github.create_issue_comment(owner, repo, number, body)
        except ApiError as exc:
            log_failure(logger, "Could not post error comment", exc, repository=f"{owner}/{repo}", pull_number=number)


def run_review(
    owner: str,
    repo: str,
    number: int,
    *,
    settings: Settings | None = None,
    strategy: str | None = None,
) -> ReviewOutcome:
    """Build the clients and detector from configuration and review one pull request."""

    settings = settings or get_settings()
    with GitHubClient(
        token=settings.github_token,
        base_url=settings.normalized_github_api_base_url,
        timeout=settings.request_timeout,
    ) as github_client:
        detector = build_detector(settings, strategy=strategy, github_client=github_client)
        try:
            processor = ReviewProcessor(
                github_client,
                detector,
                triage_options=TriageOptions.from_settings(settings),
                server_url=settings.normalized_github_server_url,
            )
            return processor.run(owner, repo, number)
        finally:
            close = getattr(detector, "close", None)
            if close is not None:
                close()


class QueuedReviewHandler:
    """Queue handler: runs the blocking review pipeline in a worker thread."""

    def __init__(self, runner: Callable[..., ReviewOutcome] = run_review) -> None:
        self._runner = runner

    async def __call__(self, job: ReviewJob) -> None:
        owner, repo, number = job.target
        ctx_logger = log_with_context(logger, delivery_id=job.delivery_id, repository=f"{owner}/{repo}", pull_number=number)
        ctx_logger.info("=== PROCESSOR: Starting queued review ===")
        outcome = await asyncio.to_thread(self._runner, owner, repo, number)
        ctx_logger.info(
            f"=== PROCESSOR: Queued review finished (findings={len(outcome.findings)}, "
            f"posted={outcome.comment_posted}) ==="
        )
