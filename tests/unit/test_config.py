"""Tests for config.json loading, validation and process settings."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from npcsync.config import get_settings, reset_settings
from npcsync.core.config import (
    DEFAULT_SIZE_BUDGET,
    PLACEHOLDER_API_KEY,
    LLMConfig,
    SyncConfig,
    load_config,
    redact_api_key,
    write_default_config,
)
from npcsync.core.errors import ConfigError


def _write(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# SyncConfig
# ---------------------------------------------------------------------------


class TestSyncConfig:
    def test_defaults(self):
        config = SyncConfig()
        assert config.api_key == PLACEHOLDER_API_KEY
        assert config.size_budget == DEFAULT_SIZE_BUDGET == 4500
        assert config.current_character == "default"
        assert config.concurrency == 3
        assert config.llm.provider == "deepseek"
        assert config.llm.model == "deepseek-chat"

    def test_from_dict_reads_camel_case_keys(self):
        config = SyncConfig.from_dict({
            "apiKey": "sk-abc123",
            "maxTokens": 3000,
            "currentCharacter": "Dragonborn",
            "playerName": "Dragonborn",
            "concurrency": 5,
        })
        assert config.size_budget == 3000
        assert config.current_character == "Dragonborn"
        assert config.player_name == "Dragonborn"
        assert config.concurrency == 5
        assert config.llm.api_key == "sk-abc123"

    def test_placeholder_key_is_not_passed_to_llm(self):
        config = SyncConfig.from_dict({"apiKey": PLACEHOLDER_API_KEY})
        assert config.llm.api_key is None

    def test_provider_and_model_keys(self):
        config = SyncConfig.from_dict({
            "apiKey": "key",
            "provider": "openai-compatible",
            "model": "llama3",
            "baseUrl": "http://localhost:11434/v1",
        })
        assert config.llm.provider == "openai-compatible"
        assert config.llm.model == "llama3"
        assert config.llm.base_url == "http://localhost:11434/v1"

    def test_to_dict_roundtrip(self):
        original = SyncConfig.from_dict({
            "apiKey": "sk-abc123",
            "maxTokens": 2000,
            "currentCharacter": "Nate",
            "playerName": "Nate",
        })
        again = SyncConfig.from_dict(original.to_dict())
        assert again.to_dict() == original.to_dict()
        assert "baseUrl" not in original.to_dict()

    def test_valid_config_passes(self):
        SyncConfig.from_dict({"apiKey": "sk-abc123", "maxTokens": 100_000, "playerName": "Nate"}).validate()

    def test_placeholder_key_rejected(self):
        with pytest.raises(ConfigError, match="API Key is empty"):
            SyncConfig.from_dict({"apiKey": PLACEHOLDER_API_KEY}).validate()

    def test_deepseek_key_prefix_required(self):
        with pytest.raises(ConfigError, match="must start with 'sk-'"):
            SyncConfig.from_dict({"apiKey": "abc123"}).validate()

    def test_other_providers_skip_prefix_check(self):
        SyncConfig.from_dict({"apiKey": "ant-key", "provider": "anthropic", "playerName": "Nate"}).validate()

    def test_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("DEEPSEEK_API_KEY", "sk-from-env")
        SyncConfig.from_dict({"apiKey": PLACEHOLDER_API_KEY, "playerName": "Nate"}).validate()

    def test_default_character_needs_player_name(self):
        config = SyncConfig.from_dict({"apiKey": "sk-abc", "currentCharacter": "default", "playerName": " "})
        with pytest.raises(ConfigError, match="outdated config"):
            config.validate()

    def test_named_character_allows_empty_player_name(self):
        SyncConfig.from_dict({"apiKey": "sk-abc", "currentCharacter": "Nate"}).validate()

    @pytest.mark.parametrize("budget,message", [
        (0, "greater than 0"),
        (-5, "greater than 0"),
        (100_001, "too high"),
        ("4500", "must be an integer"),
        (True, "must be an integer"),
    ])
    def test_budget_bounds(self, budget, message):
        config = SyncConfig.from_dict({"apiKey": "sk-abc", "maxTokens": budget})
        with pytest.raises(ConfigError, match=message):
            config.validate()

    def test_all_problems_reported_together(self):
        config = SyncConfig.from_dict({
            "apiKey": "",
            "maxTokens": 0,
            "currentCharacter": " ",
            "concurrency": 0,
        })
        with pytest.raises(ConfigError) as exc_info:
            config.validate()
        message = str(exc_info.value)
        assert "API Key" in message
        assert "maxTokens" in message
        assert "concurrency" in message
        assert "currentCharacter" in message


# ---------------------------------------------------------------------------
# load_config / write_default_config
# ---------------------------------------------------------------------------


class TestLoadConfig:
    def test_loads_valid_file(self, tmp_path):
        path = _write(tmp_path / "config.json", {"apiKey": "sk-abc", "playerName": "Nate"})
        config = load_config(path)
        assert config.player_name == "Nate"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "config.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{apiKey: ", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid JSON"):
            load_config(path)

    def test_non_object(self, tmp_path):
        path = _write(tmp_path / "config.json", ["sk-abc"])
        with pytest.raises(ConfigError, match="JSON object"):
            load_config(path)

    def test_invalid_values_raise(self, tmp_path):
        path = _write(tmp_path / "config.json", {"apiKey": "sk-abc", "maxTokens": 0})
        with pytest.raises(ConfigError, match="maxTokens"):
            load_config(path)


class TestWriteDefaultConfig:
    def test_writes_template(self, tmp_path):
        path = tmp_path / "config.json"
        write_default_config(path, player_name="Nate", current_character="default")
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["apiKey"] == PLACEHOLDER_API_KEY
        assert data["maxTokens"] == 4500
        assert data["playerName"] == "Nate"
        assert data["currentCharacter"] == "default"

    def test_template_needs_a_real_key(self, tmp_path):
        path = tmp_path / "config.json"
        write_default_config(path, player_name="Nate")
        with pytest.raises(ConfigError, match="API Key"):
            load_config(path)


# ---------------------------------------------------------------------------
# LLMConfig
# ---------------------------------------------------------------------------


class TestLLMConfig:
    def test_from_dict_empty_gives_defaults(self):
        config = LLMConfig.from_dict({})
        assert config.provider == "deepseek"
        assert config.model == "deepseek-chat"
        assert config.base_url is None

    def test_provider_change_picks_provider_default_model(self):
        config = LLMConfig.from_dict({"provider": "anthropic"})
        assert config.model == "claude-sonnet-4-20250514"

    def test_env_overrides_defaults(self, monkeypatch):
        monkeypatch.setenv("NPCSYNC_LLM_PROVIDER", "openai")
        monkeypatch.setenv("NPCSYNC_LLM_BASE_URL", "https://env.example.com/v1")
        config = LLMConfig.from_dict({})
        assert config.provider == "openai"
        assert config.model == "gpt-4o-mini"
        assert config.base_url == "https://env.example.com/v1"

    def test_env_model_wins_over_provider_default(self, monkeypatch):
        monkeypatch.setenv("NPCSYNC_LLM_MODEL", "deepseek-reasoner")
        config = LLMConfig.from_dict({})
        assert config.model == "deepseek-reasoner"

    def test_explicit_beats_env(self, monkeypatch):
        monkeypatch.setenv("NPCSYNC_LLM_PROVIDER", "openai")
        monkeypatch.setenv("NPCSYNC_LLM_MODEL", "gpt-4o")
        config = LLMConfig.from_dict({"provider": "deepseek", "model": "deepseek-chat"})
        assert config.provider == "deepseek"
        assert config.model == "deepseek-chat"

    @pytest.mark.parametrize("provider,env_var", [
        ("deepseek", "DEEPSEEK_API_KEY"),
        ("openai", "OPENAI_API_KEY"),
        ("openai-compatible", "OPENAI_API_KEY"),
        ("anthropic", "ANTHROPIC_API_KEY"),
    ])
    def test_resolve_api_key_per_provider(self, monkeypatch, provider, env_var):
        monkeypatch.setenv(env_var, "key-from-env")
        assert LLMConfig(provider=provider).resolve_api_key() == "key-from-env"

    def test_explicit_key_beats_env(self, monkeypatch):
        monkeypatch.setenv("DEEPSEEK_API_KEY", "env-key")
        assert LLMConfig(api_key="explicit").resolve_api_key() == "explicit"

    def test_no_key_anywhere(self):
        assert LLMConfig().resolve_api_key() is None


def test_redact_api_key():
    assert redact_api_key(None) is None
    assert redact_api_key("short") == "****"
    assert redact_api_key("sk-1234567890abcd") == "sk-1...abcd"


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


class TestSettings:
    def test_defaults(self):
        settings = get_settings()
        assert settings.cassette_mode == "off"
        assert settings.log_dir is None
        assert settings.concurrency is None

    def test_env_prefix(self, monkeypatch, tmp_path):
        monkeypatch.setenv("NPCSYNC_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("NPCSYNC_CONCURRENCY", "6")
        reset_settings()
        settings = get_settings()
        assert settings.data_dir == tmp_path
        assert settings.concurrency == 6

    def test_cached_until_reset(self, monkeypatch):
        first = get_settings()
        assert get_settings() is first
        reset_settings()
        assert get_settings() is not first

    def test_concurrency_must_be_positive(self, monkeypatch):
        monkeypatch.setenv("NPCSYNC_CONCURRENCY", "0")
        reset_settings()
        with pytest.raises(ValidationError):
            get_settings()
