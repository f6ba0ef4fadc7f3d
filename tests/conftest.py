# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Shared fixtures for pipeline engine tests
"""

from typing import Any, Dict

import pytest
from unittest.mock import AsyncMock

from conductor.core.config import Config
from conductor.pipelines.models import PipelineDefinition, PipelineStep
from conductor.reasoning.providers import LLMCompletion


def make_step(step_number: int, slug: str, **overrides: Any) -> PipelineStep:
    """Tool step with sensible defaults; pass tool_ref=None for reasoning-only."""
    data: Dict[str, Any] = {
        "step_number": step_number,
        "name": slug.replace("-", " ").title(),
        "slug": slug,
        "tool_ref": {"tool_id": f"tool-{slug}", "tool_type": "simple", "tool_slug": f"demo/{slug}"},
    }
    data.update(overrides)
    return PipelineStep(**data)


def make_definition(*steps: PipelineStep, **overrides: Any) -> PipelineDefinition:
    data: Dict[str, Any] = {
        "id": "pipe-1",
        "tenant_id": "tenant-1",
        "name": "Test Pipeline",
        "slug": "test-pipeline",
        "steps": list(steps),
    }
    data.update(overrides)
    return PipelineDefinition(**data)


@pytest.fixture
def config():
    """Config with defaults (no YAML)"""
    return Config()


@pytest.fixture
def mock_tool_invoker():
    """Mock ToolInvoker returning a fixed output"""
    invoker = AsyncMock()
    invoker.invoke = AsyncMock(return_value={"ok": True})
    return invoker


@pytest.fixture
def mock_reasoning_provider():
    """Mock ReasoningProvider returning a JSON completion"""
    provider = AsyncMock()
    provider.complete = AsyncMock(return_value=LLMCompletion(
        content='{"summary": "looks good"}',
        model="claude-sonnet-4-5",
        provider="anthropic",
        input_tokens=1000,
        output_tokens=200,
    ))
    return provider


@pytest.fixture
def fake_sleep():
    """Records backoff sleeps instead of waiting"""
    return AsyncMock()
