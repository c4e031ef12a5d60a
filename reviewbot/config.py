"""Application configuration helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Final, Literal

from dotenv import load_dotenv
from pydantic import AnyHttpUrl, BaseModel, Field, ValidationError

# Picks up a .env in the working directory for local runs; CI provides real env vars.
load_dotenv()


class SettingsError(RuntimeError):
    """Raised when application configuration is invalid or incomplete."""


DEFAULT_REVIEWABLE_EXTENSIONS: Final[frozenset[str]] = frozenset({
    ".py", ".js", ".ts", ".jsx", ".tsx", ".java", ".c", ".cpp", ".cs",
    ".php", ".rb", ".go", ".rs", ".swift", ".kt", ".scala", ".r",
    ".sql", ".yaml", ".yml", ".json", ".xml", ".html", ".css", ".scss",
    ".sh", ".bash", ".ps1", ".dockerfile", ".tf", ".hcl", ".md",
})

DEFAULT_SKIP_MARKER: Final[str] = "[skip-ai-review]"
DEFAULT_MODEL_NAME: Final[str] = "claude-3-5-haiku-20241022"

ReviewStrategy = Literal["patterns", "model"]


@dataclass(frozen=True)
class ModelCredentials:
    api_key: str
    model_name: str
    base_url: str


class Settings(BaseModel):
    """Runtime settings loaded from environment variables."""

    github_token: str
    github_api_base_url: AnyHttpUrl = "https://api.github.com"
    github_server_url: AnyHttpUrl = "https://github.com"
    github_webhook_secret: str | None = None
    review_strategy: ReviewStrategy = "patterns"
    anthropic_api_key: str | None = None
    model_name: str = DEFAULT_MODEL_NAME
    model_api_base_url: AnyHttpUrl = "https://api.anthropic.com/v1"
    model_cooldown_seconds: float = Field(default=1.0, ge=0)
    max_file_changes: int = Field(default=1500, ge=0)
    reviewable_extensions: frozenset[str] = DEFAULT_REVIEWABLE_EXTENSIONS
    request_timeout: float = Field(default=30.0, gt=0)
    skip_marker: str = DEFAULT_SKIP_MARKER

    @property
    def normalized_github_api_base_url(self) -> str:
        """Return the GitHub API base URL without a trailing slash."""
        return str(self.github_api_base_url).rstrip("/")

    @property
    def normalized_github_server_url(self) -> str:
        return str(self.github_server_url).rstrip("/")

    @property
    def normalized_model_api_base_url(self) -> str:
        return str(self.model_api_base_url).rstrip("/")

    def require_model_credentials(self) -> ModelCredentials:
        """Ensure the model-backed strategy is configured and return its credentials."""

        if not self.anthropic_api_key:
            raise SettingsError(
                "Model-backed review is not configured. Missing environment variables: ANTHROPIC_API_KEY."
            )
        return ModelCredentials(
            api_key=self.anthropic_api_key,
            model_name=self.model_name,
            base_url=self.normalized_model_api_base_url,
        )


def _parse_extensions(raw_value: str | None) -> frozenset[str]:
    """Parse ``.py, .js,ts`` into ``{".py", ".js", ".ts"}``."""

    if not raw_value or not raw_value.strip():
        return DEFAULT_REVIEWABLE_EXTENSIONS
    extensions = set()
    for item in raw_value.split(","):
        item = item.strip().lower()
        if not item:
            continue
        extensions.add(item if item.startswith(".") else f".{item}")
    return frozenset(extensions)


def _build_settings(strategy: str | None = None) -> Settings:
    github_token = os.getenv("GITHUB_TOKEN")
    if not github_token:
        raise SettingsError("GITHUB_TOKEN environment variable is required.")

    values: dict[str, object] = {
        "github_token": github_token,
        "github_api_base_url": os.getenv("GITHUB_API_BASE_URL") or "https://api.github.com",
        "github_server_url": os.getenv("GITHUB_SERVER_URL") or "https://github.com",
        "github_webhook_secret": os.getenv("GITHUB_WEBHOOK_SECRET") or None,
        "review_strategy": (strategy or os.getenv("REVIEW_STRATEGY") or "patterns").strip().lower(),
        "anthropic_api_key": os.getenv("ANTHROPIC_API_KEY") or None,
        "model_name": os.getenv("MODEL_NAME") or DEFAULT_MODEL_NAME,
        "model_api_base_url": os.getenv("MODEL_API_BASE_URL") or "https://api.anthropic.com/v1",
        "reviewable_extensions": _parse_extensions(os.getenv("REVIEWABLE_EXTENSIONS")),
        "skip_marker": os.getenv("SKIP_MARKER") or DEFAULT_SKIP_MARKER,
    }

    numeric_env = {
        "model_cooldown_seconds": ("MODEL_COOLDOWN_SECONDS", float),
        "max_file_changes": ("MAX_FILE_CHANGES", int),
        "request_timeout": ("REQUEST_TIMEOUT", float),
    }
    for field_name, (env_name, cast) in numeric_env.items():
        raw = os.getenv(env_name)
        if raw is None or not raw.strip():
            continue
        try:
            values[field_name] = cast(raw)
        except ValueError as exc:
            raise SettingsError(f"Invalid value for {env_name}: {raw!r}.") from exc

    try:
        settings = Settings(**values)
    except ValidationError as exc:
        raise SettingsError(f"Invalid application configuration: {exc}") from exc

    if settings.review_strategy == "model":
        settings.require_model_credentials()
    return settings


@lru_cache(maxsize=4)
def _cached_settings(strategy: str | None = None) -> Settings:
    return _build_settings(strategy)


def get_settings(strategy: str | None = None) -> Settings:
    """Retrieve cached application settings.

    ``strategy`` takes precedence over ``REVIEW_STRATEGY`` and is applied
    before credentials are checked.
    """
    return _cached_settings(strategy)


def reset_settings_cache() -> None:
    """Clear the cached settings (primarily for tests)."""
    _cached_settings.cache_clear()
