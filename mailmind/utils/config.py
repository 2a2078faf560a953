"""
Configuration Management
========================

Centralized, read-only configuration for the agent.

Configuration is loaded from the environment (and a .env file, if present)
into a tree of frozen dataclasses. The resulting object is a SNAPSHOT:
nothing mutates it after loading. Reloading builds a brand new snapshot,
so an agent loop that is already running keeps the settings it started
with and only loops started afterwards see the change.

Usage:
    from mailmind.utils.config import get_config

    config = get_config()
    print(config.llm.mid.model)
    print(config.agent.max_iterations)
"""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from mailmind.prompts import PromptSet


DEFAULT_API_URL = "https://api.openai.com/v1/chat/completions"


def _optional(name: str, default: str) -> str:
    """
    Get an optional environment variable with a default.

    Empty values count as unset.
    """
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _optional_str(*names: str) -> str | None:
    """Return the first non-empty value among several variable names."""
    for name in names:
        value = os.getenv(name)
        if value and value.strip():
            return value.strip()
    return None


def _optional_number(name: str, default: float | None) -> float | None:
    """
    Parse a float environment variable.

    Unset, empty or unparseable values give `default` (which may be None).
    """
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        print(f"Warning: {name}={raw!r} is not a valid number, using default: {default}")
        return default


# ==============================================================================
# Configuration Dataclasses
# ==============================================================================

@dataclass(frozen=True)
class ModelTierConfig:
    """Model identifier and sampling temperature for one tier."""
    model: str
    temperature: float | None = None   # None -> the gateway's default for the tier


@dataclass(frozen=True)
class LLMConfig:
    """Endpoint, credential and per-tier model settings."""
    api_key: str | None
    api_url: str
    high: ModelTierConfig
    mid: ModelTierConfig
    low: ModelTierConfig
    temperature: float = 1.0
    output_language: str = "English"
    request_timeout: float = 60.0


@dataclass(frozen=True)
class AgentConfig:
    """Loop policy constants."""
    max_iterations: int = 15
    compression_threshold: int = 12000
    review_interval: int = 3


@dataclass(frozen=True)
class Config:
    """
    Root configuration object.

    Access via:
        config = get_config()
        config.llm.high.model
        config.agent.compression_threshold
        config.prompts.plan
    """
    llm: LLMConfig
    agent: AgentConfig = field(default_factory=AgentConfig)
    prompts: PromptSet = field(default_factory=PromptSet)
    log_level: str = "info"


def load_config() -> Config:
    """
    Load all configuration from the environment.

    The API key is optional here: a missing credential is reported by the
    model gateway when a call is attempted, not at startup. Unset tier
    temperatures stay None and are resolved by the gateway.

    Returns:
        Config: A new, immutable configuration snapshot
    """
    load_dotenv()

    prompts = PromptSet().with_overrides(
        persona=_optional_str("MAILMIND_PROMPT_PERSONA"),
        plan=_optional_str("MAILMIND_PROMPT_PLAN"),
        review=_optional_str("MAILMIND_PROMPT_REVIEW"),
        thought=_optional_str("MAILMIND_PROMPT_THOUGHT"),
        final=_optional_str("MAILMIND_PROMPT_FINAL"),
        compress=_optional_str("MAILMIND_PROMPT_COMPRESS"),
    )

    return Config(
        llm=LLMConfig(
            api_key=_optional_str("MAILMIND_API_KEY", "OPENAI_API_KEY"),
            api_url=_optional("MAILMIND_API_URL", DEFAULT_API_URL),
            high=ModelTierConfig(
                model=_optional("MAILMIND_HIGH_MODEL", "gpt-5.1"),
                temperature=_optional_number("MAILMIND_HIGH_TEMPERATURE", None),
            ),
            mid=ModelTierConfig(
                model=_optional("MAILMIND_MID_MODEL", "gpt-5-mini"),
                temperature=_optional_number("MAILMIND_MID_TEMPERATURE", None),
            ),
            low=ModelTierConfig(
                model=_optional("MAILMIND_LOW_MODEL", "gpt-5-nano"),
                temperature=_optional_number("MAILMIND_LOW_TEMPERATURE", None),
            ),
            temperature=_optional_number("MAILMIND_TEMPERATURE", 1.0),
            output_language=_optional("MAILMIND_OUTPUT_LANGUAGE", "English"),
            request_timeout=_optional_number("MAILMIND_REQUEST_TIMEOUT", 60.0),
        ),
        agent=AgentConfig(),
        prompts=prompts,
        log_level=_optional("LOG_LEVEL", "info"),
    )


# ==============================================================================
# Singleton Pattern
# ==============================================================================

_config_instance: Config | None = None


def get_config() -> Config:
    """
    Get the cached configuration snapshot, loading it on first access.
    """
    global _config_instance
    if _config_instance is None:
        _config_instance = load_config()
    return _config_instance


def reload_config() -> Config:
    """
    Replace the cached snapshot with a freshly loaded one.

    The previous snapshot is left untouched; components that already hold
    it keep using it until they are rebuilt.
    """
    global _config_instance
    _config_instance = load_config()
    return _config_instance


def is_api_key_configured() -> bool:
    """Check if a model API key is available."""
    return get_config().llm.api_key is not None
