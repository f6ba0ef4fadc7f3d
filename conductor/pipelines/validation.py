# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Pipeline Definition Validation

Step ordering checks run before step 1. A definition that fails them is a
configuration error and the run never starts.
"""

from typing import List, Sequence

from .exceptions import DefinitionConfigurationError
from .expressions import strip_template, validate_template_expressions
from .models import PipelineStep


def validate_pipeline_steps(steps: Sequence[PipelineStep], max_steps: int = 20) -> List[PipelineStep]:
    """
    Validate step ordering and uniqueness.

    Returns the steps in execution order.

    Raises DefinitionConfigurationError if validation fails.
    """
    # 1. Empty pipeline check
    if len(steps) == 0:
        raise DefinitionConfigurationError(
            "Pipeline must have at least one step",
            code="EMPTY_PIPELINE"
        )

    # 2. Step cap
    if len(steps) > max_steps:
        raise DefinitionConfigurationError(
            f"Pipeline has {len(steps)} steps; the maximum is {max_steps}",
            code="MAX_STEPS_EXCEEDED",
            details={"step_count": len(steps), "max_steps": max_steps}
        )

    # 3. Duplicate slugs
    slugs = [step.slug for step in steps]
    if len(slugs) != len(set(slugs)):
        duplicates = sorted({slug for slug in slugs if slugs.count(slug) > 1})
        raise DefinitionConfigurationError(
            f"Duplicate step slugs found: {duplicates}",
            code="DUPLICATE_STEP_SLUG",
            details={"duplicates": duplicates}
        )

    # 4. Step numbers must be exactly 1..n in list order
    numbers = [step.step_number for step in steps]
    expected = list(range(1, len(steps) + 1))
    if numbers != expected:
        raise DefinitionConfigurationError(
            f"Step numbers must be contiguous from 1 in list order, got {numbers}",
            code="INVALID_STEP_ORDER",
            details={"step_numbers": numbers}
        )

    return list(steps)


def find_template_warnings(steps: Sequence[PipelineStep]) -> List[str]:
    """
    Check each step's references against the steps before it.

    Forward and unknown references are not fatal (they resolve as
    unresolved at run time), so they come back as warnings.
    """
    warnings: List[str] = []
    available: List[str] = []

    for step in steps:
        prefix = f"Step {step.step_number} ('{step.slug}')"
        for error in validate_template_expressions(step.input_mapping, available):
            warnings.append(f"{prefix} input_mapping: {error}")
        if step.condition is not None:
            for error in validate_template_expressions(
                "{{" + strip_template(step.condition.expression) + "}}", available
            ):
                warnings.append(f"{prefix} condition: {error}")
        available.append(step.slug)

    return warnings
