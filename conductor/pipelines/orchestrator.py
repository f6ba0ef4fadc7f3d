# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Pipeline Orchestrator

Sequential step execution engine. Steps run strictly in step_number order;
each step sees the state produced by every step before it.

Per-step onError policy once a step has failed after its retries:

    fail_pipeline   record failed, stop the run, run status failed
    continue        record failed, go on with the next step
    skip_remaining  record failed, record every later step skipped, stop
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from conductor.core.config import Config, get_config
from conductor.core.logging import RunLogger, bind_run, get_service_logger, log_event
from conductor.reasoning.providers import ReasoningProvider
from conductor.reasoning.reasoner import InterStepReasoner
from .exceptions import PipelineAbortedError
from .executor import StepExecution, StepExecutor
from .history import RunHistoryLogger
from .models import PipelineDefinition, PipelineStep, RunStatus, StepOnError, StepStatus
from .output_mapper import build_pipeline_output
from .safety import check_safety_limits, resolve_effective_limits
from .state import (
    PipelineState,
    create_initial_state,
    get_step_status_counts,
    record_step_result,
    serialize_state,
)
from .tools import ToolInvoker
from .validation import find_template_warnings, validate_pipeline_steps

logger = get_service_logger("orchestrator")


@dataclass
class StepSummary:
    """Per-step entry of the run report"""
    step_number: int
    slug: str
    name: str
    status: StepStatus
    error: Optional[str] = None
    error_code: Optional[str] = None
    skip_reason: Optional[str] = None
    attempts: int = 0
    tokens_used: int = 0
    cost_usd: float = 0.0
    duration_ms: int = 0

    @classmethod
    def from_execution(cls, execution: StepExecution) -> "StepSummary":
        return cls(
            step_number=execution.step.step_number,
            slug=execution.step.slug,
            name=execution.step.name,
            status=execution.status,
            error=execution.error_message,
            error_code=execution.error.code if execution.error is not None else None,
            skip_reason=execution.skip_reason,
            attempts=execution.attempts,
            tokens_used=execution.tokens_used,
            cost_usd=execution.cost_usd,
            duration_ms=execution.duration_ms,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step_number": self.step_number,
            "slug": self.slug,
            "name": self.name,
            "status": self.status.value,
            "error": self.error,
            "error_code": self.error_code,
            "skip_reason": self.skip_reason,
            "attempts": self.attempts,
            "tokens_used": self.tokens_used,
            "cost_usd": self.cost_usd,
            "duration_ms": self.duration_ms,
        }


@dataclass
class PipelineRunResult:
    """Full run report: final state plus one overall run status"""
    run_id: str
    pipeline_id: str
    pipeline_slug: str
    status: RunStatus
    final_state: PipelineState
    started_at: datetime
    output: Any = None
    error: Optional[str] = None
    steps: List[StepSummary] = field(default_factory=list)
    total_cost_usd: float = 0.0
    total_tokens: int = 0
    completed_at: Optional[datetime] = None
    duration_ms: int = 0
    aborted_error: Optional[PipelineAbortedError] = field(default=None, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "pipeline_id": self.pipeline_id,
            "pipeline_slug": self.pipeline_slug,
            "status": self.status.value,
            "output": self.output,
            "error": self.error,
            "final_state": serialize_state(self.final_state),
            "steps": [step.to_dict() for step in self.steps],
            "total_cost_usd": self.total_cost_usd,
            "total_tokens": self.total_tokens,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_ms": self.duration_ms,
        }

    def raise_for_status(self) -> None:
        """Raise PipelineAbortedError if a fail_pipeline step aborted the run"""
        if self.aborted_error is not None:
            raise self.aborted_error


class PipelineOrchestrator:
    """
    Runs pipeline definitions.

    Holds no per-run state, so one instance can serve concurrent runs.
    """

    def __init__(
        self,
        tool_invoker: ToolInvoker,
        reasoning_provider: Optional[ReasoningProvider] = None,
        config: Optional[Config] = None,
        history: Optional[RunHistoryLogger] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    ):
        self.config = config or get_config()
        self.tool_invoker = tool_invoker
        self.history = history
        reasoner = InterStepReasoner(reasoning_provider, self.config) if reasoning_provider else None
        self.step_executor = StepExecutor(tool_invoker, reasoner, self.config, sleep=sleep)

    def validate(self, definition: PipelineDefinition) -> List[PipelineStep]:
        """
        Check step ordering and log template warnings.

        Raises DefinitionConfigurationError.
        """
        steps = validate_pipeline_steps(definition.steps, self.config.max_steps)
        for warning in find_template_warnings(steps):
            log_event(
                logger,
                "pipeline_template_warning",
                level="WARNING",
                pipeline_id=definition.id,
                warning=warning,
            )
        return steps

    async def run(
        self,
        definition: PipelineDefinition,
        input: Optional[Dict[str, Any]] = None
    ) -> PipelineRunResult:
        """
        Run a pipeline to completion or abort.

        Raises DefinitionConfigurationError before step 1 for a malformed
        definition. A fail_pipeline abort does not raise; the returned
        result has status failed and raise_for_status() re-raises it.
        """
        steps = self.validate(definition)
        limits = resolve_effective_limits(definition.safety_limits, self.config)

        run_id = f"run_{datetime.now(timezone.utc).strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:8]}"
        run_logger = bind_run(logger, run_id, pipeline_id=definition.id)
        state = create_initial_state(input)
        result = PipelineRunResult(
            run_id=run_id,
            pipeline_id=definition.id,
            pipeline_slug=definition.slug,
            status=RunStatus.RUNNING,
            final_state=state,
            started_at=datetime.now(timezone.utc),
        )

        # History session (fails gracefully if unavailable)
        session_id = None
        if self.history is not None:
            session_id = await self.history.create_session(run_id, definition.id, definition.name)

        log_event(
            run_logger,
            "pipeline_run_started",
            tenant_id=definition.tenant_id,
            step_count=len(steps),
        )

        loop = asyncio.get_running_loop()
        start = loop.time()

        try:
            for index, step in enumerate(steps):
                safety = check_safety_limits(limits, result.total_cost_usd, loop.time() - start)
                if not safety.ok:
                    log_event(run_logger, "pipeline_safety_limit", level="WARNING", reason=safety.reason)
                    state = await self._skip_steps(run_logger, steps[index:], state, result, safety.reason, session_id)
                    result.status = safety.run_status
                    result.error = safety.reason
                    break

                if self.history is not None:
                    await self.history.log_step_start(session_id, step.slug, step.step_number)

                execution = await self.step_executor.execute(
                    step, state, len(steps), definition.reasoning_config
                )
                result.steps.append(StepSummary.from_execution(execution))
                result.total_cost_usd += execution.cost_usd
                result.total_tokens += execution.tokens_used

                if execution.status == StepStatus.SKIPPED:
                    state = record_step_result(state, step.slug, None, StepStatus.SKIPPED)
                    await self._log_skipped(run_logger, step, execution.skip_reason, session_id)
                    continue

                if execution.status == StepStatus.COMPLETED:
                    state = record_step_result(
                        state, step.slug, execution.output, StepStatus.COMPLETED,
                        reasoning=execution.reasoning,
                    )
                    log_event(
                        run_logger,
                        "pipeline_step_completed",
                        step_slug=step.slug,
                        attempts=execution.attempts,
                        duration_ms=execution.duration_ms,
                    )
                    if self.history is not None:
                        await self.history.log_step_complete(
                            session_id, step.slug, execution.output, execution.reasoning
                        )
                    continue

                state = record_step_result(
                    state, step.slug, execution.output, StepStatus.FAILED,
                    error=execution.error_message,
                )
                log_event(
                    run_logger,
                    "pipeline_step_failed",
                    level="ERROR",
                    step_slug=step.slug,
                    on_error=step.on_error.value,
                    error=execution.error_message,
                    error_code=execution.error.code,
                )
                if self.history is not None:
                    await self.history.log_step_error(
                        session_id, step.slug, execution.error_message, execution.error.details
                    )

                if step.on_error == StepOnError.FAIL_PIPELINE:
                    raise PipelineAbortedError(step.slug, step.step_number, step.name, cause=execution.error)

                if step.on_error == StepOnError.SKIP_REMAINING:
                    state = await self._skip_steps(
                        run_logger,
                        steps[index + 1:],
                        state,
                        result,
                        f"Skipped because step '{step.slug}' failed (on_error=skip_remaining)",
                        session_id,
                    )
                    break

            if result.status == RunStatus.RUNNING:
                counts = get_step_status_counts(state)
                result.status = (
                    RunStatus.COMPLETED_WITH_SKIPS
                    if counts[StepStatus.SKIPPED.value]
                    else RunStatus.COMPLETED
                )

        except PipelineAbortedError as e:
            result.status = RunStatus.FAILED
            result.error = str(e)
            result.aborted_error = e
            e.result = result

        finally:
            result.final_state = state
            result.output = build_pipeline_output(definition.output_mapping, state)
            result.completed_at = datetime.now(timezone.utc)
            result.duration_ms = int((loop.time() - start) * 1000)

        log_event(
            run_logger,
            "pipeline_run_finished",
            status=result.status.value,
            duration_ms=result.duration_ms,
            total_cost_usd=result.total_cost_usd,
            **get_step_status_counts(state),
        )
        if self.history is not None:
            await self.history.log_run_complete(session_id, run_id, result.status.value, result.output)

        return result

    async def _skip_steps(
        self,
        run_logger: RunLogger,
        steps: Sequence[PipelineStep],
        state: PipelineState,
        result: PipelineRunResult,
        reason: Optional[str],
        session_id: Optional[str]
    ) -> PipelineState:
        """Record steps as skipped without evaluating them"""
        for step in steps:
            state = record_step_result(state, step.slug, None, StepStatus.SKIPPED)
            result.steps.append(StepSummary(
                step_number=step.step_number,
                slug=step.slug,
                name=step.name,
                status=StepStatus.SKIPPED,
                skip_reason=reason,
            ))
            await self._log_skipped(run_logger, step, reason, session_id)
        return state

    async def _log_skipped(
        self,
        run_logger: RunLogger,
        step: PipelineStep,
        reason: Optional[str],
        session_id: Optional[str]
    ) -> None:
        log_event(run_logger, "pipeline_step_skipped", step_slug=step.slug, reason=reason)
        if self.history is not None:
            await self.history.log_step_skipped(session_id, step.slug, reason)

    async def close(self) -> None:
        """Close HTTP clients owned by collaborators"""
        for collaborator in (self.tool_invoker, self.history):
            close = getattr(collaborator, "close", None)
            if close is not None:
                await close()


async def run_pipeline(
    definition: PipelineDefinition,
    input: Optional[Dict[str, Any]] = None,
    *,
    tool_invoker: ToolInvoker,
    reasoning_provider: Optional[ReasoningProvider] = None,
    config: Optional[Config] = None,
    history: Optional[RunHistoryLogger] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
) -> PipelineRunResult:
    """Run a pipeline with the given collaborators."""
    orchestrator = PipelineOrchestrator(
        tool_invoker,
        reasoning_provider=reasoning_provider,
        config=config,
        history=history,
        sleep=sleep,
    )
    return await orchestrator.run(definition, input)
