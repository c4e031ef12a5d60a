"""Markdown rendering for review comments posted on the pull request."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Final, Iterable, List, Sequence, Tuple

from reviewbot.config import DEFAULT_SKIP_MARKER
from reviewbot.models import Category, Finding, ReviewRequest, Severity

DEFAULT_REVIEWER_NAME: Final[str] = "AI Code Review"
DEFAULT_FOOTER_NOTE: Final[str] = (
    "🧠 *This review was generated automatically. The analysis considers security, "
    "performance, maintainability, and best practices.*"
)

MAX_ERRORS: Final[int] = 8
MAX_WARNINGS: Final[int] = 6
MAX_SUGGESTIONS: Final[int] = 4

CATEGORY_ICONS: Final[Dict[Category, str]] = {
    Category.SECURITY: "🔒",
    Category.PERFORMANCE: "⚡",
    Category.STYLE: "🎨",
    Category.LOGIC: "🧠",
    Category.MAINTAINABILITY: "🔧",
    Category.GENERAL: "📝",
}

# (heading, item cap, overflow noun)
_SECTIONS: Final[Tuple[Tuple[str, int, str], ...]] = (
    ("### 🚨 Critical Issues (Must Fix)", MAX_ERRORS, "critical issues"),
    ("### ⚠️ Warnings (Should Fix)", MAX_WARNINGS, "warnings"),
    ("### 💡 Suggestions (Consider)", MAX_SUGGESTIONS, "suggestions"),
)


def format_timestamp(generated_at: datetime | None = None) -> str:
    moment = generated_at or datetime.now(timezone.utc)
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%d %H:%M UTC")


def bucket_findings(findings: Iterable[Finding]) -> Tuple[List[Finding], List[Finding], List[Finding]]:
    """Split findings into errors, warnings and suggestions, keeping discovery order."""

    errors: List[Finding] = []
    warnings: List[Finding] = []
    suggestions: List[Finding] = []
    for finding in findings:
        if finding.severity is Severity.ERROR:
            errors.append(finding)
        elif finding.severity is Severity.WARNING:
            warnings.append(finding)
        else:
            suggestions.append(finding)
    return errors, warnings, suggestions


def category_histogram(findings: Iterable[Finding]) -> List[Tuple[Category, int]]:
    """Counts per category, most frequent first; ties keep first-seen order."""

    counts: Dict[Category, int] = {}
    first_seen: Dict[Category, int] = {}
    for index, finding in enumerate(findings):
        first_seen.setdefault(finding.category, index)
        counts[finding.category] = counts.get(finding.category, 0) + 1
    return sorted(counts.items(), key=lambda item: (-item[1], first_seen[item[0]]))


def _render_section(lines: List[str], heading: str, findings: Sequence[Finding], cap: int, noun: str) -> None:
    if not findings:
        return
    lines.append(f"{heading}\n")
    for index, finding in enumerate(findings[:cap], 1):
        anchor = f" (line {finding.line_number})" if finding.line_number else ""
        lines.append(f"**{index}. {finding.file_path}**{anchor}\n{finding.message}\n")
    if len(findings) > cap:
        lines.append(f"*... and {len(findings) - cap} more {noun}*\n")


def render_report(
    request: ReviewRequest,
    findings: Sequence[Finding],
    files_reviewed: int,
    *,
    failed_files: Sequence[str] = (),
    generated_at: datetime | None = None,
    reviewer_name: str = DEFAULT_REVIEWER_NAME,
    footer_note: str = DEFAULT_FOOTER_NOTE,
    skip_marker: str = DEFAULT_SKIP_MARKER,
) -> str:
    """Render the review comment.

    The output depends only on the arguments: the same request, findings and
    timestamp always produce the same Markdown. Each severity section is
    capped so a noisy pull request still gets a readable comment. Files listed
    in ``failed_files`` are named in the summary, and their presence replaces
    the all-clear section with an incomplete-review notice.
    """

    errors, warnings, suggestions = bucket_findings(findings)

    lines: List[str] = [
        f"## 🤖 {reviewer_name}\n",
        "**📊 Review Summary**",
        f"- **Files reviewed:** {files_reviewed}",
        f"- **Total changes:** +{request.additions} -{request.deletions}",
        f"- **Issues found:** {len(errors)} errors, {len(warnings)} warnings, {len(suggestions)} suggestions\n",
    ]
    if failed_files:
        lines.insert(-1, f"- **Could not analyze:** {', '.join(failed_files)}")

    if not findings and failed_files:
        lines.append("### ⚠️ Review Incomplete\n")
        lines.append(
            f"No issues were found in the files that could be analyzed, but {len(failed_files)} "
            "file(s) could not be analyzed. Review those changes manually.\n"
        )
    elif not findings:
        lines.append("### ✅ No Issues Found!\n")
        lines.append("The automated review found no significant issues in the changed code. 🎉\n")
    else:
        for (heading, cap, noun), bucket in zip(_SECTIONS, (errors, warnings, suggestions)):
            _render_section(lines, heading, bucket, cap, noun)

        lines.append("### 📈 Issues by Category\n")
        for category, count in category_histogram(findings):
            icon = CATEGORY_ICONS.get(category, "📝")
            lines.append(f"- {icon} **{category.value.title()}**: {count} issue{'s' if count != 1 else ''}")
        lines.append("")

    lines.extend([
        "---\n",
        f"{footer_note}\n",
        f"💡 *Add `{skip_marker}` to your PR title to skip automated reviews.*\n",
        f"⏰ *Generated at {format_timestamp(generated_at)}*",
    ])
    return "\n".join(lines)


def render_no_files_notice(
    *,
    generated_at: datetime | None = None,
    reviewer_name: str = DEFAULT_REVIEWER_NAME,
) -> str:
    return (
        f"🤖 **{reviewer_name}**\n\n"
        "No reviewable code files found in this PR. "
        "The reviewer supports common programming languages and configuration files.\n\n"
        f"*Generated at {format_timestamp(generated_at)}*"
    )


def render_error_notice(
    owner: str,
    repo: str,
    error_message: str,
    *,
    server_url: str = "https://github.com",
    reviewer_name: str = DEFAULT_REVIEWER_NAME,
) -> str:
    """Diagnostic comment posted when a run fails, pointing at the workflow runs page."""

    logs_url = f"{server_url.rstrip('/')}/{owner}/{repo}/actions"
    return (
        f"🤖 **{reviewer_name} Error**\n\n"
        "The automated code review encountered an error:\n\n"
        f"```\n{error_message}\n```\n\n"
        f"Please check the [workflow logs]({logs_url}) for more details.\n\n"
        "*You can re-run the review by closing and reopening this PR.*"
    )
