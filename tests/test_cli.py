import pytest

from reviewbot import cli
from reviewbot.errors import ReviewRunError
from reviewbot.models import ReviewOutcome, ReviewRequest

ARGS = ["--owner", "octo", "--repo", "repo", "--pr", "7"]


@pytest.fixture
def runs(monkeypatch):
    calls = []

    def fake_run_review(owner, repo, number, *, settings=None, strategy=None):
        calls.append((owner, repo, number, strategy))
        return ReviewOutcome(request=ReviewRequest(owner=owner, repo=repo, id=number), files_reviewed=2)

    monkeypatch.setattr(cli, "run_review", fake_run_review)
    return calls


def test_successful_run_exits_zero(monkeypatch, runs):
    monkeypatch.setenv("GITHUB_TOKEN", "t")
    assert cli.main(ARGS) == 0
    assert runs == [("octo", "repo", 7, "patterns")]


def test_arguments_default_to_workflow_environment(monkeypatch, runs):
    monkeypatch.setenv("GITHUB_TOKEN", "t")
    monkeypatch.setenv("REPO_OWNER", "env-owner")
    monkeypatch.setenv("REPO_NAME", "env-repo")
    monkeypatch.setenv("PR_NUMBER", "12")

    assert cli.main([]) == 0
    assert runs == [("env-owner", "env-repo", 12, "patterns")]


def test_opt_out_marker_skips_the_review(monkeypatch, runs, capsys):
    monkeypatch.setenv("GITHUB_TOKEN", "t")

    assert cli.main(ARGS + ["--title", "Refactor [skip-ai-review]"]) == 0
    assert runs == []
    assert "Skipping review" in capsys.readouterr().out


def test_missing_configuration_exits_one(runs, capsys):
    assert cli.main(ARGS) == 1
    assert "GITHUB_TOKEN: ❌ Missing" in capsys.readouterr().out
    assert runs == []


def test_model_strategy_needs_its_key(monkeypatch, runs):
    monkeypatch.setenv("GITHUB_TOKEN", "t")
    assert cli.main(ARGS + ["--strategy", "model"]) == 1
    assert runs == []


def test_invalid_pull_request_number_exits_one(monkeypatch, runs):
    monkeypatch.setenv("GITHUB_TOKEN", "t")
    assert cli.main(["--owner", "octo", "--repo", "repo", "--pr", "seven"]) == 1


def test_failed_run_exits_one(monkeypatch):
    monkeypatch.setenv("GITHUB_TOKEN", "t")

    def failing_run_review(*args, **kwargs):
        raise ReviewRunError("Review failed at step 'post_comment'", "post_comment")

    monkeypatch.setattr(cli, "run_review", failing_run_review)
    assert cli.main(ARGS) == 1


def test_strategy_flag_overrides_environment_strategy(monkeypatch, runs):
    monkeypatch.setenv("GITHUB_TOKEN", "t")
    monkeypatch.setenv("REVIEW_STRATEGY", "model")

    assert cli.main(ARGS + ["--strategy", "patterns"]) == 0
    assert runs == [("octo", "repo", 7, "patterns")]
