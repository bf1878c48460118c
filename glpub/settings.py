"""Settings resolution and the GitLab integration registry."""

from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path

import tomlkit
from pydantic import SecretStr
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from glpub.errors import ConfigurationError
from glpub.models import IntegrationConfig
from glpub.payload import DescriptionPolicy

CONFIG_PATH = Path.home() / ".config" / "glpub" / "config.toml"


class GlpubSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="GLPUB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    description_policy: DescriptionPolicy = DescriptionPolicy.CONCATENATE

    # Single integration defined from the environment; merged over the config file
    gitlab_host: str | None = None
    gitlab_base_url: str | None = None
    gitlab_token: SecretStr | None = None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # config.toml values arrive as init kwargs; env and .env still win over them
        return env_settings, dotenv_settings, init_settings, file_secret_settings


class GitLabIntegrations:
    """GitLab integration configs keyed by host."""

    def __init__(self, configs: list[IntegrationConfig]) -> None:
        self._by_host = {c.host: c for c in configs}

    def by_host(self, host: str) -> IntegrationConfig | None:
        return self._by_host.get(host)

    def list(self) -> list[IntegrationConfig]:
        return list(self._by_host.values())


class IntegrationRegistry:
    def __init__(self, gitlab: list[IntegrationConfig] | None = None) -> None:
        self.gitlab = GitLabIntegrations(gitlab or [])


@lru_cache(maxsize=1)
def _load_toml() -> tomlkit.TOMLDocument:
    """Load ~/.config/glpub/config.toml, returning empty document if missing."""
    if not CONFIG_PATH.exists():
        return tomlkit.document()
    return tomlkit.load(CONFIG_PATH.open())


def _integration_from_entry(entry: Mapping) -> IntegrationConfig:
    host = entry.get("host")
    if not host:
        raise ConfigurationError(f"GitLab integration without a host in {CONFIG_PATH}")
    token = entry.get("token")
    return IntegrationConfig(
        host=str(host),
        base_url=str(entry.get("base_url") or f"https://{host}").rstrip("/"),
        token=SecretStr(str(token)) if token else None,
    )


def get_settings() -> GlpubSettings:
    """Return settings with config.toml scalars as defaults.

    Env vars and .env always override the config file.
    """
    toml_config = _load_toml().unwrap()
    defaults = {k: v for k, v in toml_config.items() if not isinstance(v, (Mapping, list))}
    return GlpubSettings(**defaults)


def load_integrations(settings: GlpubSettings | None = None) -> IntegrationRegistry:
    """Build the registry from [[integrations.gitlab]] entries plus GLPUB_GITLAB_* env vars."""
    settings = settings or get_settings()
    toml_config = _load_toml()

    integrations = toml_config.get("integrations", {})
    entries = integrations.get("gitlab", []) if isinstance(integrations, Mapping) else []
    configs = [_integration_from_entry(e) for e in entries if isinstance(e, Mapping)]

    if settings.gitlab_host:
        configs.append(
            IntegrationConfig(
                host=settings.gitlab_host,
                base_url=(settings.gitlab_base_url or f"https://{settings.gitlab_host}").rstrip("/"),
                token=settings.gitlab_token,
            )
        )

    # Later entries win, so the env-defined integration overrides a file entry for the same host
    return IntegrationRegistry(gitlab=configs)
