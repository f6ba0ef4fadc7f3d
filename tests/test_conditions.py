# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for step condition evaluation
"""

import pytest

from conductor.pipelines.conditions import evaluate_condition, is_falsy
from conductor.pipelines.expressions import UNRESOLVED
from conductor.pipelines.models import StepCondition, StepStatus
from conductor.pipelines.state import create_initial_state, record_step_result

FALSY = [0, 0.0, float("nan"), "", None, False, {}, [], UNRESOLVED]
TRUTHY = ["false", "0", " ", 1, -1, 0.5, True, {"a": 1}, [0], [None]]


@pytest.mark.parametrize("value", FALSY)
def test_falsy_values(value):
    assert is_falsy(value) is True


@pytest.mark.parametrize("value", TRUTHY)
def test_truthy_values(value):
    assert is_falsy(value) is False


def _state_with(value):
    state = create_initial_state({})
    return record_step_result(state, "step1", {"value": value}, StepStatus.COMPLETED)


@pytest.mark.parametrize("value", [0, "", None, False, {}, [], 3, "false", {"k": 1}, True])
@pytest.mark.parametrize("skip_when", ["falsy", "truthy"])
def test_skip_follows_falsy_rule(value, skip_when):
    """skip_when=falsy skips falsy values; skip_when=truthy skips the rest"""
    condition = StepCondition(expression="{{steps.step1.output.value}}", skip_when=skip_when)

    result = evaluate_condition(condition, _state_with(value))

    expected = is_falsy(value) if skip_when == "falsy" else not is_falsy(value)
    assert result.should_skip is expected
    assert result.unresolved is False


def test_no_condition_never_skips():
    result = evaluate_condition(None, create_initial_state({}))
    assert result.should_skip is False
    assert result.reason is None


def test_unresolved_reference_skips_when_falsy():
    """Unresolved references count as falsy and say so"""
    condition = StepCondition(expression="{{steps.missing.output.flag}}", skip_when="falsy")

    result = evaluate_condition(condition, create_initial_state({}))

    assert result.should_skip is True
    assert result.unresolved is True
    assert "could not be resolved" in result.reason


def test_unresolved_reference_runs_when_truthy():
    condition = StepCondition(expression="{{steps.missing.output.flag}}", skip_when="truthy")

    result = evaluate_condition(condition, create_initial_state({}))

    assert result.should_skip is False
    assert result.unresolved is True
    assert "could not be resolved" in result.reason


def test_condition_on_pipeline_input():
    """Bare paths without braces are accepted"""
    condition = StepCondition(expression="input.enabled", skip_when="falsy")

    assert evaluate_condition(condition, create_initial_state({"enabled": True})).should_skip is False
    assert evaluate_condition(condition, create_initial_state({"enabled": False})).should_skip is True


def test_condition_accepts_camel_case_fields():
    condition = StepCondition(**{"type": "expression", "expression": "{{input.x}}", "skipWhen": "truthy"})
    assert condition.skip_when == "truthy"
