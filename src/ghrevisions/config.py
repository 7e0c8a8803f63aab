"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Constructor arguments
  2. Environment variables  (GHREVISIONS__GITHUB__API_KEY=...)
  3. ghrevisions.yaml       (searched in cwd, then platform config dir)
  4. Hardcoded defaults

Only the GitHub credential and repository coordinates are required; they are
checked by ``require_repository`` before any remote call is made.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
import structlog
from pydantic import BaseModel, SecretStr
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from ghrevisions.errors import ConfigurationError, ErrorCode

log = structlog.get_logger()

_DEFAULT_DATA_DIR = platformdirs.user_data_dir("ghrevisions")
_DEFAULT_DB_PATH = str(Path(_DEFAULT_DATA_DIR) / "revisions-cache.db")


def _find_config_file() -> str | None:
    """Return the path of the first ghrevisions.yaml found, or None."""
    candidates = [
        Path("ghrevisions.yaml"),
        Path(platformdirs.user_config_dir("ghrevisions")) / "ghrevisions.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class GitHubSettings(BaseModel):
    api_key: SecretStr | None = None
    repo_user: str | None = None
    repo_name: str | None = None
    branch: str = "master"
    api_url: str = "https://api.github.com"
    timeout_seconds: float = 30.0


class ContentSettings(BaseModel):
    content_root: str = ""
    message_prefix: str = "[Revisions]"


class CommitterSettings(BaseModel):
    # Space-separated member fields joined into the committer name
    name: str = "first_name last_name"
    email: str = "email"


class CacheSettings(BaseModel):
    backend: Literal["operation", "durable"] = "operation"
    db_path: str = _DEFAULT_DB_PATH


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"
    configure: bool = False  # Install the structlog config in open_revisions


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: GHREVISIONS__GITHUB__REPO_NAME=site
        env_prefix="GHREVISIONS__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    github: GitHubSettings = GitHubSettings()
    content: ContentSettings = ContentSettings()
    committer: CommitterSettings = CommitterSettings()
    cache: CacheSettings = CacheSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )


def missing_repository_fields(settings: Settings) -> list[str]:
    """Return the names of required GitHub settings that are unset or blank."""
    github = settings.github
    missing: list[str] = []
    if github.api_key is None or not github.api_key.get_secret_value():
        missing.append("api_key")
    if not github.repo_user:
        missing.append("repo_user")
    if not github.repo_name:
        missing.append("repo_name")
    return missing


def require_repository(settings: Settings) -> None:
    """Raise ConfigurationError unless the credential and repository are set."""
    missing = missing_repository_fields(settings)
    if not missing:
        return

    log.error("revisions_not_configured", missing=missing)
    raise ConfigurationError(
        code=ErrorCode.CONFIGURATION_INVALID,
        message=f"Missing GitHub settings: {', '.join(missing)}",
        suggestion="An API key and repository details (repo_user, repo_name) are required.",
        recoverable=False,
    )
