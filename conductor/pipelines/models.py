# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Pipeline Models

Pydantic models for pipeline definitions. Definitions are owned by the
definition store and consumed read-only for each run.

Stored definitions use camelCase keys (stepNumber, onError, skipWhen, ...);
both those aliases and the Python field names are accepted.
"""

from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ToolType(str, Enum):
    """Kind of tool a step invokes"""
    SIMPLE = "simple"
    COMPOSITE = "composite"
    AGENTIC = "agentic"


class StepOnError(str, Enum):
    """Run-level reaction to a step's final failure"""
    FAIL_PIPELINE = "fail_pipeline"
    CONTINUE = "continue"
    SKIP_REMAINING = "skip_remaining"


class StepStatus(str, Enum):
    """Status recorded for a step in pipeline state"""
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class RunStatus(str, Enum):
    """Overall pipeline run status"""
    RUNNING = "running"
    COMPLETED = "completed"
    COMPLETED_WITH_SKIPS = "completed_with_skips"
    FAILED = "failed"
    TIMEOUT = "timeout"


class BackoffStrategyName(str, Enum):
    """Delay growth between retry attempts"""
    FIXED = "fixed"
    EXPONENTIAL = "exponential"


class PipelineModel(BaseModel):
    """Base model accepting camelCase aliases and field names"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ToolRef(PipelineModel):
    """Reference to the tool a step invokes"""
    tool_id: str
    tool_type: ToolType
    tool_slug: Optional[str] = None  # gateway address, "integration/action" for simple tools


class RetryConfig(PipelineModel):
    """Per-step retry policy"""
    max_retries: int = Field(default=0, ge=0, le=5)
    backoff_ms: int = Field(default=1000, ge=0)
    strategy: BackoffStrategyName = BackoffStrategyName.FIXED


class StepCondition(PipelineModel):
    """Skip gate evaluated against accumulated state"""
    type: Literal["expression"] = "expression"
    expression: str = Field(min_length=1)
    skip_when: Literal["truthy", "falsy"]


class ReasoningConfig(PipelineModel):
    """LLM parameters for inter-step reasoning"""
    provider: Literal["anthropic", "openai"] = "anthropic"
    model: str = Field(min_length=1)
    temperature: float = Field(default=0.2, ge=0, le=1)
    max_tokens: int = Field(default=2000, ge=100, le=8000)
    output_schema: Optional[Dict[str, Any]] = None


class SafetyLimits(PipelineModel):
    """Run-wide limits checked between steps"""
    max_cost_usd: float = Field(default=5.0, ge=0.01, le=100)
    max_duration_seconds: int = Field(default=1800, ge=30, le=3600)


class OutputField(PipelineModel):
    source: str = Field(min_length=1)
    description: Optional[str] = None


class OutputMapping(PipelineModel):
    """How the final run output is assembled from state"""
    fields: Dict[str, OutputField] = Field(default_factory=dict)
    include_meta: bool = False


class PipelineStep(PipelineModel):
    """One unit of work: optional tool invocation plus optional reasoning"""
    step_number: int = Field(ge=1)
    name: str = Field(min_length=1)
    slug: str = Field(min_length=1)
    tool_ref: Optional[ToolRef] = None  # absent => reasoning-only step
    input_mapping: Dict[str, Any] = Field(default_factory=dict)
    on_error: StepOnError = StepOnError.FAIL_PIPELINE
    retry_config: Optional[RetryConfig] = None
    timeout_seconds: Optional[int] = Field(default=None, gt=0)  # None => configured default (300s)
    condition: Optional[StepCondition] = None
    reasoning_enabled: bool = False
    reasoning_prompt: str = ""
    reasoning_config: Optional[ReasoningConfig] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def is_reasoning_only(self) -> bool:
        return self.tool_ref is None


class PipelineDefinition(PipelineModel):
    """
    Named, ordered sequence of steps defined per tenant.

    Step ordering and uniqueness are checked by the orchestrator at run
    time, not here, so a malformed definition still loads and is reported
    as a configuration error instead of a parse failure.
    """
    id: str
    tenant_id: str
    name: str
    slug: str
    description: Optional[str] = None
    steps: List[PipelineStep] = Field(default_factory=list)
    reasoning_config: Optional[ReasoningConfig] = None
    safety_limits: Optional[SafetyLimits] = None
    output_mapping: Optional[OutputMapping] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class PipelineRunRequest(PipelineModel):
    """Request to run a pipeline"""
    definition: PipelineDefinition
    input: Dict[str, Any] = Field(default_factory=dict)
