"""Provider chain configuration read from config/providers.yaml."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal, TypeVar

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent.parent / "config" / "providers.yaml"


def _inline_or_env(value: str | None, env_name: str | None) -> str | None:
    if value:
        return value
    return os.getenv(env_name) if env_name else None


class ProviderSettings(BaseModel):
    """Chain-wide behaviour shared by text and image providers."""

    timeout_seconds: int = 60
    max_retries: int = 3
    retry_delay_seconds: int = 2
    fallback_on_error: bool = True


class _ChainEntry(BaseModel):
    """Fields every provider in a chain carries."""

    priority: int
    enabled: bool = True
    api_key: str | None = None
    api_key_env: str | None = None

    def get_api_key(self) -> str | None:
        """Inline key first, then the named environment variable."""
        return _inline_or_env(self.api_key, self.api_key_env)


class TextProviderConfig(_ChainEntry):
    """A text model reachable through agno."""

    model: str  # "provider/model-id", e.g. "gemini/gemini-2.0-flash"
    base_url: str | None = None
    base_url_env: str | None = None
    timeout: int = 60

    def get_base_url(self) -> str | None:
        return _inline_or_env(self.base_url, self.base_url_env)

    @property
    def model_id(self) -> str:
        """Model id without the provider prefix."""
        return self.model.split("/", 1)[-1]


class ImageProviderConfig(_ChainEntry):
    """An image backend; ``settings`` holds backend-specific options."""

    type: Literal["gemini", "placeholder"]
    model: str
    timeout: int = 90
    settings: dict[str, Any] = Field(default_factory=dict)


EntryT = TypeVar("EntryT", bound=_ChainEntry)


def _by_priority(entries: dict[str, EntryT]) -> list[tuple[str, EntryT]]:
    enabled = [(name, entry) for name, entry in entries.items() if entry.enabled]
    return sorted(enabled, key=lambda item: item[1].priority)


class ProviderConfig(BaseModel):
    """Text and image provider chains."""

    provider_settings: ProviderSettings = Field(default_factory=ProviderSettings)
    text_providers: dict[str, TextProviderConfig] = Field(default_factory=dict)
    image_providers: dict[str, ImageProviderConfig] = Field(default_factory=dict)

    def get_enabled_text_providers(self) -> list[tuple[str, TextProviderConfig]]:
        return _by_priority(self.text_providers)

    def get_enabled_image_providers(self) -> list[tuple[str, ImageProviderConfig]]:
        return _by_priority(self.image_providers)


def load_provider_config(config_path: Path | None = None) -> ProviderConfig:
    """Load the provider chains, falling back to empty chains when no file exists."""
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    if not path.exists():
        return ProviderConfig()

    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    return ProviderConfig.model_validate(data)
