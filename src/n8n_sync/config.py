"""n8n-sync configuration via pydantic-settings."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    YamlConfigSettingsSource,
)

from .errors import ValidationError

DEFAULT_INSTANCE_URL = "http://localhost:5678"
API_PATH = "/api/v1"

# Later files take precedence.
CONFIG_FILES = (Path.home() / ".n8n" / "config.yaml", Path("config.yaml"))


def format_api_base_url(instance_url: str) -> str:
    """Return the REST base URL for an instance URL.

    Trailing slashes are removed and ``/api/v1`` is appended unless already
    present. Sub-paths (``https://host/n8n``) are kept.
    """
    url = instance_url.rstrip("/")
    if not url.endswith(API_PATH):
        url += API_PATH
    return url


class Settings(BaseSettings):
    api_key: str = ""
    instance_url: str = DEFAULT_INSTANCE_URL
    debug: bool = False
    timeout: float = 30.0

    model_config = {
        "env_prefix": "N8N_",
        "env_file": ".env",
        "yaml_file": list(CONFIG_FILES),
        "extra": "ignore",
    }

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
        )

    @property
    def api_base_url(self) -> str:
        return format_api_base_url(self.instance_url)

    def require_api_key(self) -> str:
        if not self.api_key:
            raise ValidationError(
                "API key is required. Set N8N_API_KEY, add api_key to config.yaml or pass --api-key"
            )
        return self.api_key


def load_settings(**overrides) -> Settings:
    """Build settings, letting non-empty CLI overrides win over every other source."""
    return Settings(**{k: v for k, v in overrides.items() if v not in (None, "")})
