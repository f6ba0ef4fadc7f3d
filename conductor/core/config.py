# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Conductor Configuration - Single source of truth.
YAML is king. Env vars ONLY for secrets (and the log level).

- ALL tunables in plain text (YAML)
- NO hidden state - everything inspectable via `cat`, `grep`
"""

import logging
import os
import yaml
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)


DEFAULT_LLM_PRICING: Dict[str, Dict[str, float]] = {
    # USD per million tokens
    "claude-sonnet-4-5": {"input": 3.0, "output": 15.0},
    "claude-haiku-4-5": {"input": 1.0, "output": 5.0},
    "gpt-4o": {"input": 2.5, "output": 10.0},
    "gpt-4o-mini": {"input": 0.15, "output": 0.6},
}


# =============================================================================
# CONFIGURATION DATACLASS
# =============================================================================

@dataclass(frozen=True)
class Config:
    """
    Immutable engine configuration.
    All values from YAML. No hidden state.
    """

    # -- Steps --
    default_timeout_seconds: int = 300
    max_steps: int = 20
    default_backoff_ms: int = 1000
    default_backoff_strategy: str = "fixed"
    max_backoff_ms: int = 1_800_000

    # -- Prompts --
    prompt_output_max_chars: int = 8000
    summary_value_max_chars: int = 2000

    # -- Reasoning defaults (used when neither step nor pipeline configure it) --
    reasoning_provider: str = "anthropic"
    reasoning_model: str = "claude-sonnet-4-5"
    reasoning_temperature: float = 0.2
    reasoning_max_tokens: int = 2000
    llm_pricing: Dict[str, Dict[str, float]] = field(
        default_factory=lambda: dict(DEFAULT_LLM_PRICING)
    )

    # -- Safety --
    safety_max_cost_usd: float = 5.0
    safety_max_duration_seconds: int = 1800

    # -- HTTP collaborators --
    gateway_url: str = "http://localhost:3000"
    gateway_timeout: float = 30.0
    history_url: Optional[str] = None
    history_timeout: float = 10.0

    # -- Logging --
    log_level: str = "INFO"
    log_format: str = "json"

    def get_anthropic_api_key(self) -> Optional[str]:
        """Get Anthropic API key from environment"""
        return get_anthropic_api_key()

    def get_openai_api_key(self) -> Optional[str]:
        """Get OpenAI API key from environment"""
        return get_openai_api_key()

    def get_gateway_api_key(self) -> Optional[str]:
        """Get gateway API key from environment"""
        return get_gateway_api_key()


# =============================================================================
# SECRETS - The ONLY thing from environment variables
# =============================================================================

def get_anthropic_api_key() -> Optional[str]:
    """API keys cannot be in version control."""
    return os.getenv("ANTHROPIC_API_KEY")


def get_openai_api_key() -> Optional[str]:
    """API keys cannot be in version control."""
    return os.getenv("OPENAI_API_KEY")


def get_gateway_api_key() -> Optional[str]:
    """API keys cannot be in version control."""
    return os.getenv("GATEWAY_API_KEY")


# =============================================================================
# LOADER
# =============================================================================

def load_config(path: str = "configs/conductor.yaml") -> Config:
    """
    Load configuration from YAML.
    Returns defaults if file doesn't exist.
    """
    if not Path(path).exists():
        logger.info(f"Config not found at {path}, using defaults")
        return Config()

    with open(path) as f:
        y = yaml.safe_load(f) or {}

    # Helper to safely navigate nested dicts
    def get(d: dict, *keys, default=None):
        for k in keys:
            if not isinstance(d, dict):
                return default
            d = d.get(k, {})
        return d if d != {} else default

    defaults = Config()

    return Config(
        # Steps
        default_timeout_seconds=get(y, "steps", "timeout_seconds") or defaults.default_timeout_seconds,
        max_steps=get(y, "steps", "max_steps") or defaults.max_steps,
        default_backoff_ms=get(y, "steps", "retry", "backoff_ms", default=defaults.default_backoff_ms),
        default_backoff_strategy=get(y, "steps", "retry", "strategy") or defaults.default_backoff_strategy,
        max_backoff_ms=get(y, "steps", "retry", "max_backoff_ms") or defaults.max_backoff_ms,

        # Prompts
        prompt_output_max_chars=get(y, "prompts", "output_max_chars") or defaults.prompt_output_max_chars,
        summary_value_max_chars=get(y, "prompts", "summary_value_max_chars") or defaults.summary_value_max_chars,

        # Reasoning
        reasoning_provider=get(y, "reasoning", "provider") or defaults.reasoning_provider,
        reasoning_model=get(y, "reasoning", "model") or defaults.reasoning_model,
        reasoning_temperature=get(y, "reasoning", "temperature", default=defaults.reasoning_temperature),
        reasoning_max_tokens=get(y, "reasoning", "max_tokens") or defaults.reasoning_max_tokens,
        llm_pricing=get(y, "reasoning", "pricing") or dict(DEFAULT_LLM_PRICING),

        # Safety
        safety_max_cost_usd=get(y, "safety", "max_cost_usd") or defaults.safety_max_cost_usd,
        safety_max_duration_seconds=get(y, "safety", "max_duration_seconds") or defaults.safety_max_duration_seconds,

        # HTTP
        gateway_url=get(y, "gateway", "url") or defaults.gateway_url,
        gateway_timeout=get(y, "gateway", "timeout") or defaults.gateway_timeout,
        history_url=get(y, "history", "url"),
        history_timeout=get(y, "history", "timeout") or defaults.history_timeout,

        # Logging
        log_level=os.getenv("LOG_LEVEL", get(y, "logging", "level") or defaults.log_level),
        log_format=get(y, "logging", "format") or defaults.log_format,
    )


# =============================================================================
# GLOBAL INSTANCE
# =============================================================================

_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create global config instance."""
    global _config
    if _config is None:
        config_path = os.getenv("CONDUCTOR_CONFIG_PATH", "configs/conductor.yaml")
        _config = load_config(config_path)
    return _config


def reload_config() -> Config:
    """Force reload configuration."""
    global _config
    _config = None
    return get_config()
