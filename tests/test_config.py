# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Tests for YAML configuration loading
"""

from conductor.core import config as config_module
from conductor.core.config import DEFAULT_LLM_PRICING, Config, load_config, reload_config


def test_missing_file_returns_defaults(tmp_path):
    config = load_config(str(tmp_path / "missing.yaml"))

    assert config == Config()
    assert config.default_timeout_seconds == 300
    assert config.max_steps == 20
    assert config.llm_pricing == DEFAULT_LLM_PRICING


def test_yaml_values(tmp_path, monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    path = tmp_path / "conductor.yaml"
    path.write_text(
        "steps:\n"
        "  timeout_seconds: 60\n"
        "  max_steps: 5\n"
        "  retry:\n"
        "    backoff_ms: 0\n"
        "    strategy: exponential\n"
        "reasoning:\n"
        "  model: gpt-4o\n"
        "  provider: openai\n"
        "safety:\n"
        "  max_cost_usd: 1.5\n"
        "history:\n"
        "  url: http://history:7005\n"
        "logging:\n"
        "  level: DEBUG\n"
    )

    config = load_config(str(path))

    assert config.default_timeout_seconds == 60
    assert config.max_steps == 5
    assert config.default_backoff_ms == 0
    assert config.default_backoff_strategy == "exponential"
    assert config.reasoning_provider == "openai"
    assert config.reasoning_model == "gpt-4o"
    assert config.safety_max_cost_usd == 1.5
    assert config.safety_max_duration_seconds == 1800
    assert config.history_url == "http://history:7005"
    assert config.log_level == "DEBUG"


def test_empty_yaml_returns_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    path = tmp_path / "conductor.yaml"
    path.write_text("")

    assert load_config(str(path)) == Config()


def test_log_level_env_override(tmp_path, monkeypatch):
    path = tmp_path / "conductor.yaml"
    path.write_text("logging:\n  level: DEBUG\n")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")

    assert load_config(str(path)).log_level == "WARNING"


def test_secrets_come_from_environment(monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant")
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    config = Config()
    assert config.get_anthropic_api_key() == "sk-ant"
    assert config.get_openai_api_key() is None


def test_reload_config_uses_env_path(tmp_path, monkeypatch):
    path = tmp_path / "custom.yaml"
    path.write_text("steps:\n  max_steps: 7\n")
    monkeypatch.setenv("CONDUCTOR_CONFIG_PATH", str(path))
    monkeypatch.setattr(config_module, "_config", None)

    assert reload_config().max_steps == 7
