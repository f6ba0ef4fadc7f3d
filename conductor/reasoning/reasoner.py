# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Inter-step Reasoner

Consults an LLM between steps: builds the prompt, calls the provider and
parses the reply into a JSON object stored as the step's reasoning.
"""

import json
import re
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from conductor.core.config import Config, get_config
from conductor.core.logging import get_service_logger, log_event
from conductor.pipelines.exceptions import ReasoningProviderError
from conductor.pipelines.models import ReasoningConfig
from conductor.pipelines.state import PipelineState
from .prompt_builder import ReasoningPromptContext, build_reasoning_prompt
from .providers import ReasoningProvider, compute_cost

logger = get_service_logger("reasoning")

CODE_FENCE_PATTERN = re.compile(r"^\s*```(?:json)?\s*\n?(.*?)\n?\s*```\s*$", re.DOTALL)


@dataclass
class ReasoningRequest:
    step_slug: str
    step_name: str
    step_number: int
    total_steps: int
    reasoning_prompt: str
    step_output: Any
    pipeline_state: PipelineState
    step_config: Optional[ReasoningConfig] = None
    pipeline_config: Optional[ReasoningConfig] = None


@dataclass
class ReasoningResult:
    output: Dict[str, Any]
    model: str
    tokens_used: int
    cost_usd: float
    duration_ms: int


def parse_reasoning_output(content: str) -> Dict[str, Any]:
    """
    Parse a completion as JSON, tolerating a surrounding markdown fence.

    Non-object JSON is wrapped as {"result": value}. Raises ValueError when
    the completion is not JSON text.
    """
    if not isinstance(content, str):
        raise ValueError(f"expected text, got {type(content).__name__}")
    text = content.strip()
    fenced = CODE_FENCE_PATTERN.match(text)
    if fenced:
        text = fenced.group(1).strip()

    value = json.loads(text)
    if isinstance(value, dict):
        return value
    return {"result": value}


class InterStepReasoner:
    """Runs the reasoning call for one step"""

    def __init__(self, provider: ReasoningProvider, config: Optional[Config] = None):
        self.provider = provider
        self.config = config or get_config()

    def effective_config(
        self,
        step_config: Optional[ReasoningConfig],
        pipeline_config: Optional[ReasoningConfig]
    ) -> ReasoningConfig:
        """Step override, then pipeline default, then configured defaults."""
        if step_config is not None:
            return step_config
        if pipeline_config is not None:
            return pipeline_config
        return ReasoningConfig(
            provider=self.config.reasoning_provider,
            model=self.config.reasoning_model,
            temperature=self.config.reasoning_temperature,
            max_tokens=self.config.reasoning_max_tokens,
        )

    async def reason(self, request: ReasoningRequest) -> ReasoningResult:
        """
        Run reasoning for a step.

        Raises ReasoningProviderError (REASONING_LLM_CALL_FAILED or
        REASONING_INVALID_JSON).
        """
        config = self.effective_config(request.step_config, request.pipeline_config)
        prompt = build_reasoning_prompt(
            ReasoningPromptContext(
                reasoning_prompt=request.reasoning_prompt,
                step_output=request.step_output,
                pipeline_state=request.pipeline_state,
                step_name=request.step_name,
                step_slug=request.step_slug,
                step_number=request.step_number,
                total_steps=request.total_steps,
                output_schema=config.output_schema,
            ),
            max_output_chars=self.config.prompt_output_max_chars,
            max_summary_value_chars=self.config.summary_value_max_chars,
        )

        start = time.monotonic()
        try:
            completion = await self.provider.complete(prompt.system_prompt, prompt.user_prompt, config)
        except Exception as e:
            raise ReasoningProviderError(
                request.step_slug,
                f"Reasoning failed for step '{request.step_slug}': {e}",
                details={"provider": config.provider, "model": config.model},
            ) from e
        duration_ms = int((time.monotonic() - start) * 1000)

        cost_usd = compute_cost(
            self.config.llm_pricing, config.model, completion.input_tokens, completion.output_tokens
        )

        try:
            output = parse_reasoning_output(completion.content)
        except (TypeError, ValueError) as e:
            raise ReasoningProviderError(
                request.step_slug,
                f"Reasoning for step '{request.step_slug}' did not return valid JSON: {e}",
                code="REASONING_INVALID_JSON",
                details={
                    "provider": config.provider,
                    "model": config.model,
                    "tokens_used": completion.total_tokens,
                    "cost_usd": cost_usd,
                },
            ) from e

        log_event(
            logger,
            "reasoning_completed",
            step_slug=request.step_slug,
            provider=completion.provider,
            model=completion.model,
            tokens_used=completion.total_tokens,
            cost_usd=cost_usd,
            duration_ms=duration_ms,
        )

        return ReasoningResult(
            output=output,
            model=completion.model,
            tokens_used=completion.total_tokens,
            cost_usd=cost_usd,
            duration_ms=duration_ms,
        )
