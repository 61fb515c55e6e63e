"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (MDAGGREGATOR__SERVER__PORT=9090)
  2. mdaggregator.yaml      (searched in cwd, then platform config dir)
  3. Hardcoded defaults

Sources have no defaults; they are declared in the YAML file:

    sources:
      handbook:
        flavour: github
        token: ghp_...
        owner: acme
        repo: handbook
        branch: main
      runbooks:
        flavour: gitlab
        id: 1234
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any, Literal

import platformdirs
from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

CONFIG_FILE_NAME = "mdaggregator.yaml"


def _find_config_file() -> str | None:
    """Return the path of the first mdaggregator.yaml found, or None."""
    candidates = [
        Path(CONFIG_FILE_NAME),
        Path(platformdirs.user_config_dir("mdaggregator")) / CONFIG_FILE_NAME,
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8080


class HttpSettings(BaseModel):
    timeout_seconds: float = 60.0
    connect_timeout_seconds: float = 60.0
    user_agent: str = "md-aggregator"


class RenewalSettings(BaseModel):
    interval_seconds: int = 3600


class CacheSettings(BaseModel):
    content_ttl_seconds: int = 3600


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class GitHubSource(BaseModel):
    flavour: Literal["github"] = "github"
    token: str
    owner: str
    repo: str
    branch: str


class GitLabSource(BaseModel):
    flavour: Literal["gitlab"] = "gitlab"
    token: str | None = None
    id: int
    branch: str | None = None
    base_url: str = "https://gitlab.com"


SourceSettings = Annotated[GitHubSource | GitLabSource, Field(discriminator="flavour")]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: MDAGGREGATOR__SERVER__PORT=9090
        env_prefix="MDAGGREGATOR__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    server: ServerSettings = ServerSettings()
    http: HttpSettings = HttpSettings()
    renewal: RenewalSettings = RenewalSettings()
    cache: CacheSettings = CacheSettings()
    logging: LoggingSettings = LoggingSettings()
    # Insertion order is the merge order of a renewal cycle.
    sources: dict[str, SourceSettings] = {}

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
