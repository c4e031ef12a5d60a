import sys
from pathlib import Path

import httpx
import pytest

# Ensure project root is on sys.path so `import reviewbot` works without installation
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from reviewbot.config import reset_settings_cache  # noqa: E402
from reviewbot.github_client import GitHubClient  # noqa: E402
from reviewbot.models import ChangedFile, FileStatus, file_extension  # noqa: E402
from reviewbot.retry import RetryPolicy  # noqa: E402

FIXED_NOW = 1_700_000_000.0

_ENV_VARS = (
    "GITHUB_TOKEN",
    "GITHUB_API_BASE_URL",
    "GITHUB_SERVER_URL",
    "GITHUB_WEBHOOK_SECRET",
    "REVIEW_STRATEGY",
    "ANTHROPIC_API_KEY",
    "MODEL_NAME",
    "MODEL_COOLDOWN_SECONDS",
    "MAX_FILE_CHANGES",
    "REVIEWABLE_EXTENSIONS",
    "REQUEST_TIMEOUT",
    "SKIP_MARKER",
    "REPO_OWNER",
    "REPO_NAME",
    "PR_NUMBER",
    "PR_TITLE",
)


class SleepRecorder:
    def __init__(self) -> None:
        self.calls = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_settings_cache()
    yield
    reset_settings_cache()


@pytest.fixture
def sleeps():
    return SleepRecorder()


@pytest.fixture
def make_github(sleeps):
    """Build a GitHubClient whose HTTP traffic goes to ``handler``."""

    opened = []

    def factory(handler):
        http = httpx.Client(transport=httpx.MockTransport(handler), base_url="https://api.github.com")
        opened.append(http)
        policy = RetryPolicy(sleep=sleeps, clock=lambda: FIXED_NOW)
        return GitHubClient(token="test-token", retry_policy=policy, client=http)

    yield factory
    for http in opened:
        http.close()


@pytest.fixture
def make_file():
    """Build a ChangedFile whose patch adds ``lines`` starting at head line 1."""

    def factory(filename, lines=(), status=FileStatus.MODIFIED, patch=None):
        lines = list(lines)
        if patch is None:
            patch = f"@@ -1,0 +1,{len(lines)} @@\n" + "\n".join(f"+{line}" for line in lines) if lines else ""
        return ChangedFile(
            filename=filename,
            additions=len(lines),
            deletions=0,
            patch=patch,
            status=status,
            extension=file_extension(filename),
        )

    return factory
