"""Configuration loading."""

import copy
import logging
import os
from pathlib import Path
from typing import Optional

import yaml

from vocabmaster.ai.anthropic import DEFAULT_MODEL as ANTHROPIC_MODEL
from vocabmaster.ai.anthropic import AnthropicProvider
from vocabmaster.ai.base import AIProvider
from vocabmaster.ai.openai import DEFAULT_MODEL as OPENAI_MODEL
from vocabmaster.ai.openai import OpenAIProvider
from vocabmaster.core.models import Level

logger = logging.getLogger(__name__)

CONFIG_PATHS = [
    "config.yaml",
    "~/.config/vocabmaster/config.yaml",
]

DEFAULT_CONFIG = {
    "data": {
        "base_path": "data",
        "database": "vocab.db",
        "songs_dir": "songs",
        "song_folders_dir": "song_folders",
    },
    "ai": {
        "default_provider": None,
        "anthropic": {"model": ANTHROPIC_MODEL},
        "openai": {"model": OPENAI_MODEL},
    },
    "learning": {
        "translation_language": "Russian",
        "default_level": "B1",
    },
    "tts": {
        "lang": "en",
        "tld": "co.uk",
    },
    "logging": {
        "level": "WARNING",
        "file": None,
    },
}

# Values shipped in config.example.yaml
PLACEHOLDER_KEYS = {
    "your-anthropic-api-key-here",
    "your-openai-api-key-here",
}


def _merge(base: dict, override: dict) -> dict:
    """Recursively merge ``override`` into a copy of ``base``."""
    result = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _merge(result[key], value)
        else:
            result[key] = value
    return result


def find_config(config_path: Optional[str] = None) -> Optional[Path]:
    """First existing config file: explicit path, then the standard locations."""
    for path in [config_path, *CONFIG_PATHS]:
        if not path:
            continue
        path = Path(path).expanduser()
        if path.exists():
            return path
    return None


def load_config(config_path: Optional[str] = None) -> dict:
    """Load configuration merged over the defaults."""
    path = find_config(config_path)
    if path is None:
        return copy.deepcopy(DEFAULT_CONFIG)

    with open(path, "r", encoding="utf-8") as f:
        loaded = yaml.safe_load(f) or {}
    if not isinstance(loaded, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")

    logger.info("Loaded config from %s", path)
    return _merge(DEFAULT_CONFIG, loaded)


def default_level(config: dict) -> Level:
    value = str(config.get("learning", {}).get("default_level") or "B1").upper()
    try:
        return Level(value)
    except ValueError:
        logger.warning("Unknown default level %r, using B1", value)
        return Level.B1


def _api_key(section: dict, env_var: str) -> Optional[str]:
    key = section.get("api_key") or os.environ.get(env_var)
    if not key or key in PLACEHOLDER_KEYS:
        return None
    return key


def create_provider(config: dict) -> Optional[AIProvider]:
    """
    Build the configured AI provider, or None if no key is set.

    The configured default provider wins when it has a key; otherwise
    Anthropic is preferred over OpenAI.
    """
    ai_config = config.get("ai", {})
    anthropic_config = ai_config.get("anthropic") or {}
    openai_config = ai_config.get("openai") or {}

    anthropic_key = _api_key(anthropic_config, "ANTHROPIC_API_KEY")
    openai_key = _api_key(openai_config, "OPENAI_API_KEY")

    def anthropic_provider():
        return AnthropicProvider(
            api_key=anthropic_key,
            model=anthropic_config.get("model") or ANTHROPIC_MODEL,
        )

    def openai_provider():
        return OpenAIProvider(
            api_key=openai_key,
            model=openai_config.get("model") or OPENAI_MODEL,
        )

    default = ai_config.get("default_provider")
    if default == "anthropic" and anthropic_key:
        return anthropic_provider()
    if default == "openai" and openai_key:
        return openai_provider()
    if anthropic_key:
        return anthropic_provider()
    if openai_key:
        return openai_provider()
    return None
