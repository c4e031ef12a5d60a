import json

import pytest
from fastapi.testclient import TestClient

SECRET = "s3cret"


def _pr_payload(action="opened", number=5, title="Add feature", draft=False):
    return {
        "action": action,
        "repository": {"full_name": "octo/repo", "name": "repo", "owner": {"login": "octo"}},
        "pull_request": {"number": number, "title": title, "draft": draft, "head": {"sha": "abc"}},
        "sender": {"login": "dev"},
    }


@pytest.fixture
def webhook_client(monkeypatch):
    monkeypatch.setenv("GITHUB_TOKEN", "t")
    monkeypatch.setenv("GITHUB_WEBHOOK_SECRET", SECRET)

    from reviewbot import webhook
    from reviewbot.main import app

    webhook.reset_delivery_cache()
    jobs = []

    async def fake_enqueue(job):
        jobs.append(job)

    monkeypatch.setattr(webhook, "enqueue_review_job", fake_enqueue)
    yield TestClient(app), jobs
    webhook.reset_delivery_cache()


def _post(client, payload, *, delivery="d-1", event="pull_request", secret=SECRET, body=None):
    from reviewbot.webhook import build_signature

    raw = body if body is not None else json.dumps(payload).encode()
    headers = {"X-GitHub-Event": event, "X-GitHub-Delivery": delivery, "Content-Type": "application/json"}
    if secret:
        headers["X-Hub-Signature-256"] = build_signature(secret, raw)
    return client.post("/github/webhook", content=raw, headers=headers)


def test_opened_pull_request_is_enqueued(webhook_client):
    client, jobs = webhook_client

    response = _post(client, _pr_payload())

    assert response.status_code == 200
    assert response.json() == {"status": "accepted"}
    assert [job.target for job in jobs] == [("octo", "repo", 5)]
    assert jobs[0].payload.pull_request.head_sha == "abc"


def test_invalid_signature_is_rejected(webhook_client):
    client, jobs = webhook_client

    response = _post(client, _pr_payload(), secret="wrong")

    assert response.status_code == 401
    assert jobs == []


def test_duplicate_deliveries_are_ignored(webhook_client):
    client, jobs = webhook_client

    _post(client, _pr_payload(), delivery="same")
    response = _post(client, _pr_payload(), delivery="same")

    assert response.json() == {"status": "ignored", "reason": "duplicate"}
    assert len(jobs) == 1


@pytest.mark.parametrize(
    "payload,reason",
    [
        (_pr_payload(draft=True), "Draft"),
        (_pr_payload(title="WIP [skip-ai-review]"), "[skip-ai-review]"),
        (_pr_payload(action="closed"), "closed"),
    ],
)
def test_non_actionable_pull_requests_are_ignored(webhook_client, payload, reason):
    client, jobs = webhook_client

    response = _post(client, payload)

    assert response.status_code == 200
    assert response.json()["status"] == "ignored"
    assert reason in response.json()["reason"]
    assert jobs == []


def test_other_events_are_ignored(webhook_client):
    client, jobs = webhook_client
    response = _post(client, {"ref": "refs/heads/main"}, event="push")
    assert response.json()["status"] == "ignored"
    assert jobs == []


def test_missing_headers_and_bad_payloads_are_rejected(webhook_client):
    client, jobs = webhook_client

    missing = client.post("/github/webhook", content=b"{}", headers={"X-GitHub-Event": "pull_request"})
    invalid_json = _post(client, None, delivery="d-2", body=b"{not json")
    no_number = _post(client, {"action": "opened", "repository": {"full_name": "octo/repo"}}, delivery="d-3")

    assert missing.status_code == 400
    assert invalid_json.status_code == 400
    assert no_number.status_code == 400
    assert jobs == []


def test_signature_not_required_without_secret(webhook_client, monkeypatch):
    from reviewbot.config import reset_settings_cache

    monkeypatch.delenv("GITHUB_WEBHOOK_SECRET")
    reset_settings_cache()
    client, jobs = webhook_client

    response = _post(client, _pr_payload(), secret=None)

    assert response.status_code == 200
    assert len(jobs) == 1


def test_root_and_health(webhook_client):
    client, _ = webhook_client

    assert client.get("/").text == "pong"
    health = client.get("/health")
    assert health.status_code == 200
    assert "pending_jobs" in health.json()
