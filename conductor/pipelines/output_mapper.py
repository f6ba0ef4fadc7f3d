# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Final pipeline output.

With an output mapping, each field's source expression is resolved against
the final state (unresolved sources become None). Without one, the output is
the last completed step's reasoning, falling back to its tool output.
"""

import copy
from typing import Any, Dict, Optional

from .expressions import UNRESOLVED, resolve_expression
from .models import OutputMapping, StepStatus
from .state import PipelineState, get_step_status_counts


def resolve_output_mapping(mapping: OutputMapping, state: PipelineState) -> Dict[str, Any]:
    output: Dict[str, Any] = {}

    for name, field in mapping.fields.items():
        value = resolve_expression(field.source, state)
        output[name] = None if value is UNRESOLVED else value

    if mapping.include_meta:
        counts = get_step_status_counts(state)
        output["_meta"] = {
            "stepsCompleted": counts[StepStatus.COMPLETED.value],
            "stepsFailed": counts[StepStatus.FAILED.value],
            "stepsSkipped": counts[StepStatus.SKIPPED.value],
            "stepResults": {
                slug: {"status": result.status.value, "error": result.error}
                for slug, result in state.steps.items()
            },
        }

    return output


def default_output(state: PipelineState) -> Any:
    last_completed = None
    for result in state.steps.values():
        if result.status == StepStatus.COMPLETED:
            last_completed = result

    if last_completed is None:
        return None
    if last_completed.reasoning is not None:
        return copy.deepcopy(last_completed.reasoning)
    return copy.deepcopy(last_completed.output)


def build_pipeline_output(mapping: Optional[OutputMapping], state: PipelineState) -> Any:
    if mapping is not None:
        return resolve_output_mapping(mapping, state)
    return default_output(state)
