# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Pipeline Step Executor

Runs a single step against the current state:

    condition -> input templating -> tool call (retry + timeout) -> reasoning

Every step failure is caught here and returned as a failed StepExecution;
the orchestrator decides what the failure means for the run (onError).
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from conductor.core.config import Config, get_config
from conductor.core.logging import get_service_logger, log_event
from conductor.reasoning.reasoner import InterStepReasoner, ReasoningRequest
from .conditions import evaluate_condition
from .exceptions import (
    ReasoningProviderError,
    RetryExhaustedError,
    StepExecutionError,
    StepInvocationError,
)
from .expressions import resolve_templates
from .models import PipelineStep, ReasoningConfig, StepStatus
from .retry import RetryOutcome, call_with_retry, get_backoff_strategy
from .state import PipelineState
from .tools import ToolInvoker, ToolResult

logger = get_service_logger("executor")


@dataclass
class StepExecution:
    """Outcome of running one step, before it is recorded in state"""
    step: PipelineStep
    status: StepStatus
    output: Any = None
    reasoning: Any = None
    error: Optional[StepExecutionError] = None
    skip_reason: Optional[str] = None
    attempts: int = 0
    tokens_used: int = 0
    cost_usd: float = 0.0
    duration_ms: int = 0

    @property
    def error_message(self) -> Optional[str]:
        return str(self.error) if self.error is not None else None


class StepExecutor:
    """Executes individual pipeline steps"""

    def __init__(
        self,
        tool_invoker: ToolInvoker,
        reasoner: Optional[InterStepReasoner] = None,
        config: Optional[Config] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    ):
        self.tool_invoker = tool_invoker
        self.reasoner = reasoner
        self.config = config or get_config()
        self.sleep = sleep

    async def execute(
        self,
        step: PipelineStep,
        state: PipelineState,
        total_steps: int,
        pipeline_reasoning_config: Optional[ReasoningConfig] = None
    ) -> StepExecution:
        start = time.monotonic()

        condition = evaluate_condition(step.condition, state)
        if condition.unresolved:
            log_event(
                logger,
                "pipeline_condition_unresolved",
                level="WARNING",
                step_slug=step.slug,
                reason=condition.reason,
            )
        if condition.should_skip:
            return StepExecution(step=step, status=StepStatus.SKIPPED, skip_reason=condition.reason)

        execution = StepExecution(step=step, status=StepStatus.COMPLETED)
        try:
            if not step.is_reasoning_only:
                payload = resolve_templates(step.input_mapping, state)
                outcome = await self._invoke_tool(step, payload)
                execution.attempts = outcome.attempts
                if isinstance(outcome.value, ToolResult):
                    execution.output = outcome.value.output
                    execution.cost_usd += outcome.value.cost_usd
                else:
                    execution.output = outcome.value

            if step.reasoning_enabled:
                result = await self._reason(step, execution.output, state, total_steps, pipeline_reasoning_config)
                execution.reasoning = result.output
                execution.tokens_used += result.tokens_used
                execution.cost_usd += result.cost_usd

        except StepExecutionError as e:
            # Tool output is kept when only reasoning failed
            execution.status = StepStatus.FAILED
            execution.error = e
            if isinstance(e, RetryExhaustedError):
                execution.attempts = e.attempts
            if isinstance(e, ReasoningProviderError):
                execution.tokens_used += e.details.get("tokens_used", 0)
                execution.cost_usd += e.details.get("cost_usd", 0.0)

        finally:
            execution.duration_ms = int((time.monotonic() - start) * 1000)

        return execution

    async def _invoke_tool(self, step: PipelineStep, payload: Dict[str, Any]) -> RetryOutcome:
        """Invoke the step's tool bounded by its timeout, retrying per retry_config"""
        retry = step.retry_config
        timeout_seconds = step.timeout_seconds or self.config.default_timeout_seconds
        strategy = get_backoff_strategy(
            retry.strategy if retry else self.config.default_backoff_strategy,
            max_delay_ms=self.config.max_backoff_ms,
        )

        async def attempt() -> Any:
            try:
                return await self.tool_invoker.invoke(step.tool_ref, payload, timeout_seconds * 1000)
            except StepExecutionError:
                raise
            except Exception as e:
                raise StepInvocationError(
                    step.slug,
                    str(e) or type(e).__name__,
                    code=getattr(e, "code", None),
                    details=getattr(e, "details", None),
                ) from e

        def on_retry(attempt_number: int, error: Exception, delay_ms: float) -> None:
            log_event(
                logger,
                "pipeline_step_retry",
                level="WARNING",
                step_slug=step.slug,
                attempt=attempt_number,
                delay_ms=delay_ms,
                error=str(error),
            )

        return await call_with_retry(
            attempt,
            step_slug=step.slug,
            max_retries=retry.max_retries if retry else 0,
            backoff_ms=retry.backoff_ms if retry else self.config.default_backoff_ms,
            timeout_seconds=timeout_seconds,
            strategy=strategy,
            sleep=self.sleep,
            on_retry=on_retry,
        )

    async def _reason(
        self,
        step: PipelineStep,
        step_output: Any,
        state: PipelineState,
        total_steps: int,
        pipeline_reasoning_config: Optional[ReasoningConfig]
    ):
        if self.reasoner is None:
            raise ReasoningProviderError(
                step.slug,
                f"Step '{step.slug}' has reasoning enabled but no reasoning provider is configured",
                code="REASONING_NOT_CONFIGURED",
            )

        return await self.reasoner.reason(ReasoningRequest(
            step_slug=step.slug,
            step_name=step.name,
            step_number=step.step_number,
            total_steps=total_steps,
            reasoning_prompt=step.reasoning_prompt,
            step_output=step_output,
            pipeline_state=state,
            step_config=step.reasoning_config,
            pipeline_config=pipeline_reasoning_config,
        ))
