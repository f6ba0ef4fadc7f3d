# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Pipeline engine

Sequential step execution over an immutable pipeline state.
The entry point is conductor.pipelines.orchestrator.run_pipeline.
"""

from .exceptions import (
    DefinitionConfigurationError,
    PipelineAbortedError,
    PipelineError,
    StepExecutionError,
)
from .models import PipelineDefinition, PipelineStep, RunStatus, StepStatus
from .state import PipelineState, StepResult

__all__ = [
    "DefinitionConfigurationError",
    "PipelineAbortedError",
    "PipelineError",
    "StepExecutionError",
    "PipelineDefinition",
    "PipelineStep",
    "RunStatus",
    "StepStatus",
    "PipelineState",
    "StepResult",
]
