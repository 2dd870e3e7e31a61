"""Tests for configuration loading and provider selection."""

import shutil
import tempfile
from pathlib import Path

import pytest

from vocabmaster.ai.anthropic import AnthropicProvider
from vocabmaster.ai.openai import OpenAIProvider
from vocabmaster.config import DEFAULT_CONFIG, create_provider, default_level, load_config
from vocabmaster.core.models import Level


class TestLoadConfig:
    """Test YAML config merged over defaults."""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()
        self.path = Path(self.temp_dir) / "config.yaml"

    def teardown_method(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_partial_override(self):
        self.path.write_text(
            "learning:\n  translation_language: Ukrainian\n"
            "tts:\n  tld: com\n",
            encoding="utf-8",
        )
        config = load_config(str(self.path))
        assert config["learning"]["translation_language"] == "Ukrainian"
        assert config["learning"]["default_level"] == "B1"
        assert config["tts"] == {"lang": "en", "tld": "com"}
        assert config["data"] == DEFAULT_CONFIG["data"]

    def test_empty_file(self):
        self.path.write_text("", encoding="utf-8")
        assert load_config(str(self.path)) == DEFAULT_CONFIG

    def test_defaults_not_mutated(self):
        self.path.write_text("data:\n  base_path: /tmp/elsewhere\n", encoding="utf-8")
        load_config(str(self.path))
        assert DEFAULT_CONFIG["data"]["base_path"] == "data"

    def test_not_a_mapping(self):
        self.path.write_text("- just\n- a list\n", encoding="utf-8")
        with pytest.raises(ValueError):
            load_config(str(self.path))

    def test_default_level(self):
        assert default_level({"learning": {"default_level": "c1"}}) == Level.C1
        assert default_level({"learning": {"default_level": "Z9"}}) == Level.B1
        assert default_level({}) == Level.B1


class TestCreateProvider:
    """Test choosing an AI provider from config and environment."""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    def make_config(self, default=None, anthropic_key=None, openai_key=None):
        return {
            "ai": {
                "default_provider": default,
                "anthropic": {"api_key": anthropic_key, "model": "claude-test"},
                "openai": {"api_key": openai_key, "model": "gpt-test"},
            }
        }

    def test_no_keys(self):
        assert create_provider(self.make_config()) is None

    def test_placeholder_ignored(self):
        config = self.make_config(anthropic_key="your-anthropic-api-key-here")
        assert create_provider(config) is None

    def test_anthropic_preferred(self):
        provider = create_provider(self.make_config(anthropic_key="a-key", openai_key="o-key"))
        assert isinstance(provider, AnthropicProvider)
        assert provider.model == "claude-test"
        assert provider.api_key == "a-key"

    def test_default_provider_wins(self):
        config = self.make_config(default="openai", anthropic_key="a-key", openai_key="o-key")
        provider = create_provider(config)
        assert isinstance(provider, OpenAIProvider)
        assert provider.model == "gpt-test"

    def test_default_without_key_falls_back(self):
        provider = create_provider(self.make_config(default="openai", anthropic_key="a-key"))
        assert isinstance(provider, AnthropicProvider)

    def test_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "env-key")
        provider = create_provider(self.make_config())
        assert isinstance(provider, OpenAIProvider)
        assert provider.api_key == "env-key"
        assert provider.is_available()
