# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Reasoning Prompt Builder

Builds the system/user prompt pair for an inter-step reasoning call from
the step's output, the accumulated pipeline state and the step's
reasoning prompt.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

from conductor.pipelines.state import PipelineState, create_state_summary

DEFAULT_MAX_OUTPUT_CHARS = 8000

SYSTEM_PROMPT = """You are a data processing assistant embedded in an automated pipeline.
You receive the output of a pipeline step together with the results of earlier steps,
and you analyze, transform or summarize that data as instructed.

Rules:
- Return ONLY valid JSON. No prose before or after the JSON.
- Do not wrap the JSON in markdown code fences.
- Base your answer only on the data provided; do not invent values.
- If the data is insufficient, say so inside the JSON rather than guessing."""


@dataclass
class ReasoningPromptContext:
    reasoning_prompt: str
    step_output: Any
    pipeline_state: PipelineState
    step_name: str
    step_slug: str
    step_number: int
    total_steps: int
    output_schema: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class BuiltPrompt:
    system_prompt: str
    user_prompt: str


def _render_step_output(step_output: Any, max_chars: int) -> str:
    rendered = json.dumps(step_output, indent=2, default=str, ensure_ascii=False)
    if len(rendered) > max_chars:
        return f"{rendered[:max_chars]}\n... (truncated, showing first {max_chars} characters)"
    return rendered


def build_system_prompt(output_schema: Optional[Dict[str, Any]] = None) -> str:
    if not output_schema:
        return SYSTEM_PROMPT
    schema = json.dumps(output_schema, indent=2, ensure_ascii=False)
    return (
        f"{SYSTEM_PROMPT}\n\n"
        f"# Expected Output Schema:\n"
        f"Your JSON response must conform to this schema:\n{schema}"
    )


def build_reasoning_prompt(
    context: ReasoningPromptContext,
    max_output_chars: int = DEFAULT_MAX_OUTPUT_CHARS,
    max_summary_value_chars: int = 2000
) -> BuiltPrompt:
    """
    Build the prompts for one reasoning call.

    Only the rendering of the step output is shortened; the value stored in
    state is left as is.
    """
    sections = [
        f"# Pipeline Progress: Step {context.step_number} of {context.total_steps}",
        f"Step Name: {context.step_name} ({context.step_slug})",
    ]

    if context.step_output is not None:
        sections.append(
            "# Current Step Output:\n"
            + _render_step_output(context.step_output, max_output_chars)
        )
    else:
        sections.append(
            "# Current Step Output:\n"
            "(No tool output; this is a reasoning-only step)"
        )

    state = context.pipeline_state
    if state.input or state.steps:
        sections.append(
            "# Pipeline State So Far:\n"
            + create_state_summary(state, max_value_chars=max_summary_value_chars)
        )

    sections.append(f"# Your Task:\n{context.reasoning_prompt}")
    sections.append(
        "# Instructions:\n"
        "Analyze the data above and complete the task. "
        "Return ONLY valid JSON"
    )

    return BuiltPrompt(
        system_prompt=build_system_prompt(context.output_schema),
        user_prompt="\n\n".join(sections),
    )
