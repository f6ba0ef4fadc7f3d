# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for pipeline definition validation
"""

import pytest

from conductor.pipelines.exceptions import DefinitionConfigurationError
from conductor.pipelines.validation import find_template_warnings, validate_pipeline_steps
from tests.conftest import make_step


def test_valid_steps_pass():
    steps = [make_step(1, "a"), make_step(2, "b"), make_step(3, "c")]
    assert [s.slug for s in validate_pipeline_steps(steps)] == ["a", "b", "c"]


def test_empty_pipeline():
    with pytest.raises(DefinitionConfigurationError) as exc_info:
        validate_pipeline_steps([])
    assert exc_info.value.code == "EMPTY_PIPELINE"


def test_too_many_steps():
    steps = [make_step(n, f"s{n}") for n in range(1, 5)]
    with pytest.raises(DefinitionConfigurationError) as exc_info:
        validate_pipeline_steps(steps, max_steps=3)
    assert exc_info.value.code == "MAX_STEPS_EXCEEDED"


def test_duplicate_slugs():
    with pytest.raises(DefinitionConfigurationError) as exc_info:
        validate_pipeline_steps([make_step(1, "a"), make_step(2, "a")])
    assert exc_info.value.code == "DUPLICATE_STEP_SLUG"


@pytest.mark.parametrize("numbers", [[2, 1], [1, 1], [1, 3], [2, 3]])
def test_bad_step_numbers(numbers):
    """Numbers must be exactly 1..n in list order"""
    steps = [make_step(n, f"s{i}") for i, n in enumerate(numbers)]
    with pytest.raises(DefinitionConfigurationError) as exc_info:
        validate_pipeline_steps(steps)
    assert exc_info.value.code == "INVALID_STEP_ORDER"
    assert exc_info.value.status_code == 400


def test_template_warnings_for_forward_references():
    steps = [
        make_step(1, "first", input_mapping={"q": "{{input.query}}", "later": "{{steps.second.output}}"}),
        make_step(2, "second", input_mapping={"prev": "{{steps.first.output.items}}"},
                  condition={"expression": "{{steps.third.output}}", "skip_when": "falsy"}),
        make_step(3, "third"),
    ]

    warnings = find_template_warnings(steps)

    assert len(warnings) == 2
    assert "Step 1 ('first') input_mapping" in warnings[0]
    assert "second" in warnings[0]
    assert "Step 2 ('second') condition" in warnings[1]
    assert "third" in warnings[1]


def test_no_warnings_for_backward_references():
    steps = [
        make_step(1, "first"),
        make_step(2, "second", input_mapping={"x": "{{steps.first.output}}"},
                  condition={"expression": "steps.first.status", "skip_when": "falsy"}),
    ]
    assert find_template_warnings(steps) == []
