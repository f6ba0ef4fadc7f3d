# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for immutable pipeline state
"""

import json

import pytest

from conductor.pipelines.models import StepStatus
from conductor.pipelines.state import (
    create_initial_state,
    create_state_summary,
    deserialize_state,
    get_completed_step_slugs,
    get_recorded_step_slugs,
    get_step_result,
    get_step_status_counts,
    has_step_result,
    record_step_result,
    serialize_state,
)


def test_initial_state_copies_input():
    """Later changes to the caller's dict do not leak into state"""
    payload = {"query": "x", "nested": {"n": 1}}
    state = create_initial_state(payload)

    payload["nested"]["n"] = 2

    assert state.input["nested"]["n"] == 1
    assert dict(state.steps) == {}


def test_state_mappings_are_read_only():
    state = create_initial_state({"a": 1})
    with pytest.raises(TypeError):
        state.input["a"] = 2
    with pytest.raises(TypeError):
        state.steps["x"] = None


def test_record_returns_new_state():
    """Recording never mutates the previous state"""
    state = create_initial_state({"q": 1})

    new_state = record_step_result(state, "step1", {"out": 1}, StepStatus.COMPLETED)

    assert new_state is not state
    assert new_state.steps is not state.steps
    assert "step1" not in state.steps
    assert new_state.steps["step1"].output == {"out": 1}
    assert new_state.input is state.input


def test_rerecording_replaces_in_place():
    state = create_initial_state({})
    state = record_step_result(state, "a", 1, StepStatus.COMPLETED)
    state = record_step_result(state, "b", 2, StepStatus.COMPLETED)
    state = record_step_result(state, "a", None, StepStatus.FAILED, error="retry failed")

    assert get_recorded_step_slugs(state) == ["a", "b"]
    assert state.steps["a"].status == StepStatus.FAILED


def test_queries():
    state = create_initial_state({})
    state = record_step_result(state, "one", 1, StepStatus.COMPLETED)
    state = record_step_result(state, "two", None, StepStatus.SKIPPED)
    state = record_step_result(state, "three", None, "failed", error="x")
    state = record_step_result(state, "four", 4, StepStatus.COMPLETED)

    assert has_step_result(state, "two")
    assert not has_step_result(state, "five")
    assert get_step_result(state, "five") is None
    assert get_step_result(state, "three").error == "x"
    assert get_completed_step_slugs(state) == ["one", "four"]
    assert get_recorded_step_slugs(state) == ["one", "two", "three", "four"]
    assert get_step_status_counts(state) == {"completed": 2, "failed": 1, "skipped": 1}


def test_record_rejects_unknown_status():
    with pytest.raises(ValueError):
        record_step_result(create_initial_state({}), "a", None, "exploded")


def test_serialize_round_trip():
    state = create_initial_state({"query": "x", "n": [1, 2]})
    state = record_step_result(state, "s1", {"a": 1}, StepStatus.COMPLETED, reasoning={"ok": True})
    state = record_step_result(state, "s2", None, StepStatus.FAILED, error="boom")

    raw = serialize_state(state)
    restored = deserialize_state(json.loads(json.dumps(raw)))

    assert dict(restored.input) == {"query": "x", "n": [1, 2]}
    assert restored.steps["s1"].output == {"a": 1}
    assert restored.steps["s1"].reasoning == {"ok": True}
    assert restored.steps["s1"].status == StepStatus.COMPLETED
    assert restored.steps["s2"].error == "boom"
    assert restored.steps["s2"].status == StepStatus.FAILED


def test_serialize_omits_absent_fields():
    state = record_step_result(create_initial_state({}), "s1", None, StepStatus.SKIPPED)
    assert serialize_state(state)["steps"]["s1"] == {"output": None, "status": "skipped"}


def test_deserialize_defaults_and_bad_status():
    empty = deserialize_state({})
    assert dict(empty.input) == {}
    assert dict(empty.steps) == {}

    with pytest.raises(ValueError):
        deserialize_state({"steps": {"s1": {"status": "unknown"}}})


def test_summary_input_only():
    summary = create_state_summary(create_initial_state({"query": "cats"}))

    assert "Pipeline Input" in summary
    assert "cats" in summary
    assert "Step Results" not in summary


def test_summary_with_steps():
    state = create_initial_state({"query": "cats"})
    state = record_step_result(state, "search", {"hits": 3}, StepStatus.COMPLETED)
    state = record_step_result(state, "fetch", None, StepStatus.FAILED, error="connection refused")

    summary = create_state_summary(state)

    assert "Step Results" in summary
    assert "search (completed)" in summary
    assert "connection refused" in summary
    assert "Reasoning" not in summary

    with_reasoning = record_step_result(state, "judge", None, StepStatus.COMPLETED, reasoning={"ok": 1})
    assert "Reasoning" in create_state_summary(with_reasoning)


def test_summary_shortens_long_values():
    state = record_step_result(create_initial_state({}), "big", "x" * 5000, StepStatus.COMPLETED)

    summary = create_state_summary(state, max_value_chars=100)

    assert "more characters omitted" in summary
    assert len(summary) < 1000
    assert len(state.steps["big"].output) == 5000
