# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Pipeline State

Accumulated state of a pipeline run: the run input plus one recorded result
per processed step. State is immutable; every mutation returns a new
PipelineState and leaves the previous value intact.

State Structure:
    {
        "input": {...},
        "steps": {
            "<step-slug>": {
                "output": ...,          # raw tool output (None for reasoning-only)
                "reasoning": ...,       # LLM reasoning output, when enabled
                "status": "completed" | "failed" | "skipped",
                "error": "...",         # when failed
            }
        }
    }
"""

import copy
import json
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Union

from .models import StepStatus


@dataclass(frozen=True)
class StepResult:
    """Recorded outcome of one step"""
    output: Any
    status: StepStatus
    reasoning: Any = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "output": copy.deepcopy(self.output),
            "status": self.status.value,
        }
        if self.reasoning is not None:
            data["reasoning"] = copy.deepcopy(self.reasoning)
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class PipelineState:
    """Run input plus step results, in recording order"""
    input: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    steps: Mapping[str, StepResult] = field(default_factory=lambda: MappingProxyType({}))


def create_initial_state(input: Optional[Mapping[str, Any]] = None) -> PipelineState:
    """Create the initial state from the run input (deep-copied)."""
    return PipelineState(
        input=MappingProxyType(copy.deepcopy(dict(input or {}))),
        steps=MappingProxyType({}),
    )


def record_step_result(
    state: PipelineState,
    step_slug: str,
    output: Any,
    status: Union[StepStatus, str],
    reasoning: Any = None,
    error: Optional[str] = None,
) -> PipelineState:
    """
    Record a step's result and return a new state.

    The steps mapping of the returned state is a fresh mapping; the mapping
    of the given state is not touched.
    """
    steps = dict(state.steps)
    steps[step_slug] = StepResult(
        output=output,
        status=StepStatus(status),
        reasoning=reasoning,
        error=error,
    )
    return PipelineState(input=state.input, steps=MappingProxyType(steps))


def has_step_result(state: PipelineState, step_slug: str) -> bool:
    return step_slug in state.steps


def get_step_result(state: PipelineState, step_slug: str) -> Optional[StepResult]:
    return state.steps.get(step_slug)


def get_completed_step_slugs(state: PipelineState) -> List[str]:
    """Slugs of successfully completed steps, in recording order."""
    return [
        slug for slug, result in state.steps.items()
        if result.status == StepStatus.COMPLETED
    ]


def get_recorded_step_slugs(state: PipelineState) -> List[str]:
    """Slugs of every recorded step regardless of status, in recording order."""
    return list(state.steps.keys())


def get_step_status_counts(state: PipelineState) -> Dict[str, int]:
    counts = {status.value: 0 for status in StepStatus}
    for result in state.steps.values():
        counts[result.status.value] += 1
    return counts


def _render(value: Any, max_chars: int) -> str:
    rendered = json.dumps(value, indent=2, default=str, ensure_ascii=False)
    if len(rendered) > max_chars:
        omitted = len(rendered) - max_chars
        return f"{rendered[:max_chars]}... ({omitted} more characters omitted)"
    return rendered


def create_state_summary(state: PipelineState, max_value_chars: int = 2000) -> str:
    """
    Summarize state for LLM reasoning prompts.

    Always starts with the pipeline input; a step results section follows
    when at least one step has been recorded.
    """
    parts = ["## Pipeline Input", _render(dict(state.input), max_value_chars)]

    if state.steps:
        parts.append("\n## Step Results")
        for slug, result in state.steps.items():
            parts.append(f"\n### Step: {slug} ({result.status.value})")

            if result.status == StepStatus.FAILED and result.error:
                parts.append(f"Error: {result.error}")

            if result.output is not None:
                parts.append(f"Output: {_render(result.output, max_value_chars)}")

            if result.reasoning is not None:
                parts.append(f"Reasoning: {_render(result.reasoning, max_value_chars)}")

    return "\n".join(parts)


def serialize_state(state: PipelineState) -> Dict[str, Any]:
    """Convert state to a plain JSON-compatible dict for persistence."""
    return {
        "input": copy.deepcopy(dict(state.input)),
        "steps": {slug: result.to_dict() for slug, result in state.steps.items()},
    }


def deserialize_state(raw: Optional[Mapping[str, Any]]) -> PipelineState:
    """
    Rebuild state from its serialized form.

    Missing input/steps default to empty. Raises ValueError for an unknown
    step status.
    """
    raw = raw or {}
    steps: Dict[str, StepResult] = {}
    for slug, data in (raw.get("steps") or {}).items():
        steps[slug] = StepResult(
            output=data.get("output"),
            status=StepStatus(data.get("status")),
            reasoning=data.get("reasoning"),
            error=data.get("error"),
        )
    return PipelineState(
        input=MappingProxyType(copy.deepcopy(dict(raw.get("input") or {}))),
        steps=MappingProxyType(steps),
    )
