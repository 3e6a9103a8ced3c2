"""Configuration resolution — config.json > env > defaults."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path

from npcsync.core.errors import ConfigError, atomic_write

CONFIG_FILE_NAME = "config.json"
PLACEHOLDER_API_KEY = "YOUR-DEEPSEEK-KEY"
DEFAULT_SIZE_BUDGET = 4500
MAX_SIZE_BUDGET = 100_000
DEFAULT_CONCURRENCY = 3

DEFAULT_MODELS = {
    "deepseek": "deepseek-chat",
    "openai": "gpt-4o-mini",
    "openai-compatible": "deepseek-chat",
    "anthropic": "claude-sonnet-4-20250514",
}


def redact_api_key(key: str | None) -> str | None:
    """Redact an API key, showing only the first 4 and last 4 characters.

    Returns None if the key is None, or the redacted string otherwise.
    Short keys (8 chars or fewer) are fully redacted as '****'.
    """
    if key is None:
        return None
    if len(key) <= 8:
        return "****"
    return f"{key[:4]}...{key[-4:]}"


@dataclass
class LLMConfig:
    """Configuration for the text-generation provider.

    Supports four providers:
    - "deepseek": DeepSeek models via the OpenAI SDK (default)
    - "openai": OpenAI GPT models
    - "openai-compatible": Any OpenAI-compatible API (Ollama, vLLM, etc.)
    - "anthropic": Anthropic Claude models

    Config precedence: explicit config > env vars > defaults.

    Environment variables:
    - NPCSYNC_LLM_PROVIDER: override provider
    - NPCSYNC_LLM_MODEL: override model
    - NPCSYNC_LLM_BASE_URL: override base_url
    - DEEPSEEK_API_KEY / OPENAI_API_KEY / ANTHROPIC_API_KEY: provider keys
    """

    provider: str = "deepseek"
    model: str = "deepseek-chat"
    temperature: float = 0.7
    max_tokens: int = 4096
    base_url: str | None = None
    api_key: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> LLMConfig:
        """Create LLMConfig from a dict, applying env var overrides.

        Config precedence: explicit dict values > env vars > class defaults.
        A provider change without an explicit model picks that provider's
        default model.
        """
        config = cls()

        env_provider = os.environ.get("NPCSYNC_LLM_PROVIDER")
        if env_provider:
            config.provider = env_provider
        env_model = os.environ.get("NPCSYNC_LLM_MODEL")
        if env_model:
            config.model = env_model
        env_base_url = os.environ.get("NPCSYNC_LLM_BASE_URL")
        if env_base_url:
            config.base_url = env_base_url

        if "provider" in data:
            config.provider = data["provider"]
        if "model" in data:
            config.model = data["model"]
        elif not env_model:
            config.model = DEFAULT_MODELS.get(config.provider, config.model)
        if "temperature" in data:
            config.temperature = data["temperature"]
        if "max_tokens" in data:
            config.max_tokens = data["max_tokens"]
        if "base_url" in data:
            config.base_url = data["base_url"]
        if "api_key" in data:
            config.api_key = data["api_key"]

        return config

    def resolve_api_key(self) -> str | None:
        """Resolve the API key: explicit > env var per provider."""
        if self.api_key:
            return self.api_key
        if self.provider == "anthropic":
            return os.environ.get("ANTHROPIC_API_KEY")
        if self.provider == "deepseek":
            return os.environ.get("DEEPSEEK_API_KEY")
        # openai and openai-compatible both use OPENAI_API_KEY
        return os.environ.get("OPENAI_API_KEY")


@dataclass
class SyncConfig:
    """Contents of a data directory's config.json.

    ``size_budget`` is stored under the ``maxTokens`` key: the estimated
    token count at which a transcript gets condensed.
    """

    api_key: str = PLACEHOLDER_API_KEY
    size_budget: int = DEFAULT_SIZE_BUDGET
    current_character: str = "default"
    player_name: str = ""
    concurrency: int = DEFAULT_CONCURRENCY
    llm: LLMConfig = field(default_factory=LLMConfig)

    @classmethod
    def from_dict(cls, data: dict) -> SyncConfig:
        """Create SyncConfig from the camelCase keys used in config.json."""
        config = cls()
        if "apiKey" in data:
            config.api_key = data["apiKey"]
        if "maxTokens" in data:
            config.size_budget = data["maxTokens"]
        if "currentCharacter" in data:
            config.current_character = data["currentCharacter"]
        if "playerName" in data:
            config.player_name = data["playerName"]
        if "concurrency" in data:
            config.concurrency = data["concurrency"]

        llm_data: dict = {}
        if "provider" in data:
            llm_data["provider"] = data["provider"]
        if "model" in data:
            llm_data["model"] = data["model"]
        if "baseUrl" in data:
            llm_data["base_url"] = data["baseUrl"]
        if config.api_key and config.api_key != PLACEHOLDER_API_KEY:
            llm_data["api_key"] = config.api_key
        config.llm = LLMConfig.from_dict(llm_data)
        return config

    def to_dict(self) -> dict:
        """Serialize to the config.json layout."""
        data = {
            "apiKey": self.api_key,
            "maxTokens": self.size_budget,
            "currentCharacter": self.current_character,
            "playerName": self.player_name,
            "concurrency": self.concurrency,
            "provider": self.llm.provider,
            "model": self.llm.model,
        }
        if self.llm.base_url:
            data["baseUrl"] = self.llm.base_url
        return data

    def validate(self) -> None:
        """Raise ConfigError listing every problem found."""
        errors: list[str] = []

        key = self.llm.resolve_api_key()
        if not key or key == PLACEHOLDER_API_KEY:
            errors.append("API Key is empty or not configured")
        elif self.llm.provider == "deepseek" and not key.startswith("sk-"):
            errors.append("API Key must start with 'sk-' for the deepseek provider")

        if not isinstance(self.size_budget, int) or isinstance(self.size_budget, bool):
            errors.append("maxTokens must be an integer")
        elif self.size_budget <= 0:
            errors.append("maxTokens must be greater than 0")
        elif self.size_budget > MAX_SIZE_BUDGET:
            errors.append(f"maxTokens seems too high (maximum: {MAX_SIZE_BUDGET:,})")

        if not isinstance(self.concurrency, int) or self.concurrency < 1:
            errors.append("concurrency must be a positive integer")

        if not str(self.current_character).strip():
            errors.append("currentCharacter must not be empty")
        elif self.current_character == "default" and not str(self.player_name).strip():
            errors.append("playerName is required when currentCharacter is 'default' (outdated config)")

        if errors:
            lines = "\n".join(f"  - {e}" for e in errors)
            raise ConfigError(f"Invalid configuration:\n{lines}")


def load_config(path: Path) -> SyncConfig:
    """Load and validate a config.json file."""
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a JSON object in {path}")

    config = SyncConfig.from_dict(data)
    config.validate()
    return config


def write_default_config(
    path: Path,
    player_name: str,
    current_character: str = "default",
) -> SyncConfig:
    """Write a template config.json with a placeholder API key."""
    config = SyncConfig(player_name=player_name, current_character=current_character)
    path.parent.mkdir(parents=True, exist_ok=True)
    atomic_write(path, json.dumps(config.to_dict(), indent=2) + "\n")
    return config
