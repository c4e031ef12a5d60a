from reviewbot.detectors import PatternDetector
from reviewbot.detectors.rules import DEFAULT_RULES, RuleFamily
from reviewbot.models import Category, FileStatus, Severity


def test_hardcoded_password_is_one_security_error(make_file):
    findings = PatternDetector().analyze(make_file("app.py", ['password = "abcdef1234"']), None)

    assert len(findings) == 1
    finding = findings[0]
    assert (finding.severity, finding.category, finding.line_number) == (Severity.ERROR, Category.SECURITY, 1)
    assert "credential" in finding.message


def test_short_or_empty_passwords_are_ignored(make_file):
    detector = PatternDetector()
    assert detector.analyze(make_file("app.py", ['password = ""']), None) == []
    assert detector.analyze(make_file("app.py", ['password = "abc"']), None) == []


def test_credentials_in_markdown_are_not_flagged(make_file):
    assert PatternDetector().analyze(make_file("README.md", ['password = "abcdef1234"']), None) == []


def test_each_family_reports_independently(make_file):
    findings = PatternDetector().analyze(make_file("app.py", ["result = eval(user_input)  # TODO remove"]), None)

    assert sorted(f.severity.value for f in findings) == ["error", "info"]
    assert {f.category for f in findings} == {Category.SECURITY, Category.STYLE}


def test_first_match_wins_within_a_family(make_file):
    findings = PatternDetector().analyze(make_file("app.py", ["x = eval(compile(s)); os.system(cmd)"]), None)

    assert len(findings) == 1
    assert "eval()" in findings[0].message


def test_blocking_sleep_is_a_performance_warning(make_file):
    findings = PatternDetector().analyze(make_file("worker.py", ["time.sleep(5)"]), None)

    assert [(f.severity, f.category) for f in findings] == [(Severity.WARNING, Category.PERFORMANCE)]


def test_rules_are_gated_by_extension(make_file):
    detector = PatternDetector()
    assert detector.analyze(make_file("app.py", ['console.log("x")']), None) == []

    findings = detector.analyze(make_file("app.js", ['console.log("x")']), None)
    assert len(findings) == 1
    assert "'console.log'" in findings[0].message
    assert findings[0].severity is Severity.INFO


def test_loose_equality_only_flags_double_equals(make_file):
    detector = PatternDetector()
    assert len(detector.analyze(make_file("app.ts", ["if (a == b) {"]), None)) == 1
    assert detector.analyze(make_file("app.ts", ["if (a === b) {"]), None) == []


def test_long_lines_report_their_length(make_file):
    line = 'x = "' + "a" * 130 + '"'
    findings = PatternDetector().analyze(make_file("app.py", [line]), None)

    assert len(findings) == 1
    assert "(136 chars)" in findings[0].message


def test_yaml_load_requires_safe_loader(make_file):
    detector = PatternDetector()
    assert detector.analyze(make_file("cfg.py", ["data = yaml.load(f, Loader=yaml.SafeLoader)"]), None) == []
    assert len(detector.analyze(make_file("cfg.py", ["data = yaml.load(f)"]), None)) == 1


def test_sql_concatenation_is_flagged(make_file):
    line = 'query = "SELECT * FROM users WHERE id = " + user_id'
    findings = PatternDetector().analyze(make_file("repo.py", [line]), None)

    assert [(f.severity, f.category) for f in findings] == [(Severity.ERROR, Category.SECURITY)]
    assert "SQL injection" in findings[0].message


def test_words_containing_markers_are_not_flagged(make_file):
    assert PatternDetector().analyze(make_file("app.py", ["debug_mode = True"]), None) == []


def test_line_numbers_come_from_the_patch(make_file):
    patch = "@@ -5,2 +5,3 @@\n context\n+print('hi')\n context"
    findings = PatternDetector().analyze(make_file("app.py", patch=patch), None)

    assert [f.line_number for f in findings] == [6]


def test_blank_removed_and_empty_files_produce_nothing(make_file):
    detector = PatternDetector()
    assert detector.analyze(make_file("app.py", ["", "   "]), None) == []
    assert detector.analyze(make_file("app.py", ["eval(x)"], status=FileStatus.REMOVED), None) == []
    assert detector.analyze(make_file("app.py"), None) == []


def test_every_family_has_rules():
    assert set(DEFAULT_RULES) == set(RuleFamily)
    assert all(DEFAULT_RULES[family] for family in RuleFamily)


def test_findings_after_plus_prefixed_lines_point_at_the_head_line(make_file):
    findings = PatternDetector().analyze(make_file("site.py", ["+++", "title = 'x'", "print('hi')"]), None)

    assert [(f.category, f.line_number) for f in findings] == [(Category.STYLE, 3)]
