import re
from datetime import datetime, timezone

from reviewbot.models import Category, Finding, ReviewRequest, Severity
from reviewbot.services.report import (
    category_histogram,
    render_error_notice,
    render_no_files_notice,
    render_report,
)

REQUEST = ReviewRequest(owner="octo", repo="repo", id=5, additions=12, deletions=3, title="Add feature")
GENERATED_AT = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)

ITEM_RE = re.compile(r"^\*\*\d+\. ", re.MULTILINE)


def _finding(severity, category=Category.SECURITY, line=1, path="app.py", message="issue"):
    return Finding(path, line, message, severity, category)


def test_errors_are_capped_at_eight():
    findings = [_finding(Severity.ERROR, line=i + 1, message=f"issue {i}") for i in range(100)]

    report = render_report(REQUEST, findings, 1, generated_at=GENERATED_AT)

    assert len(ITEM_RE.findall(report)) == 8
    assert "**8. app.py** (line 8)" in report
    assert "**9. app.py**" not in report
    assert "*... and 92 more critical issues*" in report


def test_each_bucket_has_its_own_cap():
    findings = (
        [_finding(Severity.WARNING, Category.PERFORMANCE) for _ in range(7)]
        + [_finding(Severity.SUGGESTION, Category.STYLE) for _ in range(3)]
        + [_finding(Severity.INFO, Category.STYLE) for _ in range(3)]
    )

    report = render_report(REQUEST, findings, 2, generated_at=GENERATED_AT)

    assert len(ITEM_RE.findall(report)) == 6 + 4
    assert "*... and 1 more warnings*" in report
    assert "*... and 2 more suggestions*" in report
    assert "- **Issues found:** 0 errors, 7 warnings, 6 suggestions" in report


def test_no_findings_renders_only_the_no_issues_section():
    report = render_report(REQUEST, [], 3, generated_at=GENERATED_AT)

    assert "### ✅ No Issues Found!" in report
    for heading in ("Critical Issues", "Warnings (Should Fix)", "Suggestions (Consider)", "Issues by Category"):
        assert heading not in report
    assert ITEM_RE.findall(report) == []
    assert "Could not analyze" not in report


def test_header_and_footer():
    report = render_report(REQUEST, [], 3, generated_at=GENERATED_AT)

    assert report.startswith("## 🤖 AI Code Review")
    assert "- **Files reviewed:** 3" in report
    assert "- **Total changes:** +12 -3" in report
    assert "`[skip-ai-review]`" in report
    assert report.endswith("⏰ *Generated at 2024-05-01 12:30 UTC*")


def test_rendering_is_deterministic():
    findings = [_finding(Severity.ERROR), _finding(Severity.INFO, Category.STYLE, line=None)]
    first = render_report(REQUEST, findings, 1, generated_at=GENERATED_AT)
    assert first == render_report(REQUEST, findings, 1, generated_at=GENERATED_AT)


def test_unanchored_findings_have_no_line_suffix():
    report = render_report(REQUEST, [_finding(Severity.ERROR, line=None, message="General remark")], 1)
    assert "**1. app.py**\nGeneral remark" in report


def test_category_histogram_orders_by_count_then_first_seen():
    findings = [
        _finding(Severity.INFO, Category.STYLE),
        _finding(Severity.ERROR, Category.SECURITY),
        _finding(Severity.WARNING, Category.PERFORMANCE),
        _finding(Severity.ERROR, Category.SECURITY),
        _finding(Severity.WARNING, Category.PERFORMANCE),
    ]

    assert category_histogram(findings) == [
        (Category.SECURITY, 2),
        (Category.PERFORMANCE, 2),
        (Category.STYLE, 1),
    ]

    report = render_report(REQUEST, findings, 1, generated_at=GENERATED_AT)
    security = report.index("- 🔒 **Security**: 2 issues")
    performance = report.index("- ⚡ **Performance**: 2 issues")
    style = report.index("- 🎨 **Style**: 1 issue\n")
    assert security < performance < style


def test_notices():
    assert "No reviewable code files found" in render_no_files_notice(generated_at=GENERATED_AT)

    notice = render_error_notice("octo", "repo", "boom", server_url="https://github.example.com/")
    assert "```\nboom\n```" in notice
    assert "(https://github.example.com/octo/repo/actions)" in notice


def test_failed_files_are_named_and_suppress_the_all_clear():
    report = render_report(REQUEST, [], 2, failed_files=["a.py", "b.js"], generated_at=GENERATED_AT)

    assert "- **Could not analyze:** a.py, b.js" in report
    assert "### ⚠️ Review Incomplete" in report
    assert "2 file(s) could not be analyzed" in report
    assert "No Issues Found" not in report


def test_category_ties_follow_first_appearance_regardless_of_input_grouping():
    findings = [
        _finding(Severity.INFO, Category.STYLE),
        _finding(Severity.WARNING, Category.LOGIC),
        _finding(Severity.ERROR, Category.SECURITY),
        _finding(Severity.WARNING, Category.LOGIC),
        _finding(Severity.ERROR, Category.SECURITY),
        _finding(Severity.INFO, Category.STYLE),
    ]

    assert category_histogram(findings) == [
        (Category.STYLE, 2),
        (Category.LOGIC, 2),
        (Category.SECURITY, 2),
    ]
