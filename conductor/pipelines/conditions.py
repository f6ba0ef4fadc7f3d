# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Step Condition Evaluator

Decides whether a step runs or is skipped by resolving its condition
expression against pipeline state and applying the skip_when policy.

Falsy values: 0, 0.0, NaN, "", None, False, {}, [] and unresolved
references. Everything else is truthy, including the string "false".
"""

import math
from dataclasses import dataclass
from typing import Any, Optional

from .expressions import UNRESOLVED, resolve_expression
from .models import StepCondition
from .state import PipelineState


@dataclass(frozen=True)
class ConditionEvaluationResult:
    should_skip: bool
    resolved_value: Any = None
    reason: Optional[str] = None
    unresolved: bool = False


def is_falsy(value: Any) -> bool:
    """Uniform falsy rule for JSON-like values."""
    if value is None or value is UNRESOLVED:
        return True
    if isinstance(value, bool):
        return value is False
    if isinstance(value, (int, float)):
        return value == 0 or (isinstance(value, float) and math.isnan(value))
    if isinstance(value, (str, dict, list, tuple)):
        return len(value) == 0
    return False


def evaluate_condition(
    condition: Optional[StepCondition],
    state: PipelineState
) -> ConditionEvaluationResult:
    """
    Evaluate a step's skip condition.

    Returns should_skip=False when there is no condition. An unresolved
    reference counts as falsy and is flagged with unresolved=True.
    """
    if condition is None:
        return ConditionEvaluationResult(should_skip=False)

    value = resolve_expression(condition.expression, state)
    unresolved = value is UNRESOLVED
    falsy = is_falsy(value)
    should_skip = falsy if condition.skip_when == "falsy" else not falsy

    if unresolved:
        action = "skipping step" if should_skip else "step will execute"
        return ConditionEvaluationResult(
            should_skip=should_skip,
            resolved_value=None,
            reason=(
                f"Condition expression '{condition.expression}' could not be resolved "
                f"(treated as falsy); {action}"
            ),
            unresolved=True,
        )

    reason = None
    if should_skip:
        kind = "falsy" if falsy else "truthy"
        reason = (
            f"Condition expression '{condition.expression}' resolved to a {kind} value "
            f"(skip_when={condition.skip_when}); skipping step"
        )

    return ConditionEvaluationResult(
        should_skip=should_skip,
        resolved_value=value,
        reason=reason,
    )
