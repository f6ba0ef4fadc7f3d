# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for the expression resolver
"""

import copy

import pytest

from conductor.pipelines.expressions import (
    UNRESOLVED,
    ExpressionSyntaxError,
    extract_template_expressions,
    parse_path,
    resolve_expression,
    resolve_template_string,
    resolve_templates,
    validate_template_expressions,
)
from conductor.pipelines.models import StepStatus
from conductor.pipelines.state import create_initial_state, record_step_result


@pytest.fixture
def state():
    s = create_initial_state({"query": "python", "limit": 5, "tags": ["a", "b"]})
    s = record_step_result(
        s, "web-search",
        {"results": [{"url": "https://a.example", "score": 0.9}, {"url": "https://b.example"}], "count": 2},
        StepStatus.COMPLETED,
        reasoning={"verdict": "relevant"},
    )
    s = record_step_result(s, "broken", None, StepStatus.FAILED, error="boom")
    return s


def test_parse_path_with_indices():
    """Dotted paths split into keys and integer indices"""
    assert parse_path("steps.search.output.results[0].url") == [
        "steps", "search", "output", "results", 0, "url"
    ]
    assert parse_path("input.matrix[1][2]") == ["input", "matrix", 1, 2]


@pytest.mark.parametrize("path", ["input..query", ".input", "input.", "input.a b", "input.[0]"])
def test_parse_path_rejects_malformed(path):
    """Empty or malformed segments are syntax errors"""
    with pytest.raises(ExpressionSyntaxError):
        parse_path(path)


def test_resolve_input_and_step_fields(state):
    """Input fields, nested outputs, reasoning and status resolve"""
    assert resolve_expression("{{input.query}}", state) == "python"
    assert resolve_expression("input.limit", state) == 5
    assert resolve_expression("{{ steps.web-search.output.results[0].url }}", state) == "https://a.example"
    assert resolve_expression("{{steps.web-search.reasoning.verdict}}", state) == "relevant"
    assert resolve_expression("{{steps.web-search.status}}", state) == "completed"
    assert resolve_expression("{{steps.broken.error}}", state) == "boom"


def test_resolve_length(state):
    """length works on lists and strings"""
    assert resolve_expression("{{steps.web-search.output.results.length}}", state) == 2
    assert resolve_expression("{{input.query.length}}", state) == 6


@pytest.mark.parametrize("expression", [
    "{{input.missing}}",
    "{{steps.not-run.output}}",
    "{{steps.web-search.output.results[5]}}",
    "{{steps.web-search.output.count.deeper}}",
    "{{steps.broken.output.anything}}",
    "{{steps.broken.reasoning}}",
    "{{context.foo}}",
    "{{input..bad}}",
])
def test_unresolvable_references_return_marker(state, expression):
    """Resolution never raises; unfollowable paths yield UNRESOLVED"""
    assert resolve_expression(expression, state) is UNRESOLVED


def test_resolved_null_is_not_unresolved(state):
    """A recorded None output resolves to None, not the marker"""
    assert resolve_expression("{{steps.broken.output}}", state) is None


def test_resolved_values_are_copies(state):
    """Mutating a resolved value must not touch state"""
    results = resolve_expression("{{steps.web-search.output.results}}", state)
    results.append({"url": "mutated"})
    assert len(state.steps["web-search"].output["results"]) == 2


def test_single_template_keeps_type(state):
    """A string that is exactly one reference resolves to the typed value"""
    assert resolve_template_string("{{input.tags}}", state) == ["a", "b"]
    assert resolve_template_string("{{input.missing}}", state) is None


def test_mixed_template_interpolates(state):
    """Mixed text is interpolated; non-strings are rendered as JSON"""
    assert resolve_template_string("q={{input.query}} n={{input.limit}}", state) == "q=python n=5"
    assert resolve_template_string("tags: {{input.tags}}", state) == 'tags: ["a", "b"]'
    assert resolve_template_string("x{{input.missing}}y", state) == "xy"


def test_resolve_templates_deep(state):
    """Nested dicts and lists are resolved; other values pass through"""
    mapping = {
        "q": "{{input.query}}",
        "opts": {"limit": "{{input.limit}}", "flag": True},
        "urls": ["{{steps.web-search.output.results[1].url}}", "static"],
    }
    original = copy.deepcopy(mapping)

    resolved = resolve_templates(mapping, state)

    assert resolved == {
        "q": "python",
        "opts": {"limit": 5, "flag": True},
        "urls": ["https://b.example", "static"],
    }
    assert mapping == original


def test_extract_template_expressions():
    """All reference paths in a nested value are found"""
    value = {"a": "{{input.x}} and {{ steps.s1.output }}", "b": ["{{steps.s2.status}}", 3]}
    assert extract_template_expressions(value) == ["input.x", "steps.s1.output", "steps.s2.status"]


def test_validate_template_expressions():
    """Unknown roots, unavailable steps and syntax errors are reported"""
    value = {
        "ok": "{{steps.first.output}}",
        "later": "{{steps.second.output}}",
        "root": "{{context.user}}",
        "syntax": "{{input..x}}",
    }
    errors = validate_template_expressions(value, ["first"])

    assert len(errors) == 3
    assert any("second" in e and "not available" in e for e in errors)
    assert any("must start with 'input' or 'steps'" in e for e in errors)
    assert any("Invalid expression" in e for e in errors)
