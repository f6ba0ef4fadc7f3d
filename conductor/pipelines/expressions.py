# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Expression Resolver

Resolves {{ ... }} references against pipeline state:

    {{input.query}}                          pipeline input field
    {{steps.search.output}}                  full output of a step
    {{steps.search.output.results[0].url}}   nested property + array index
    {{steps.search.output.results.length}}   list / string length
    {{steps.search.reasoning}}               LLM reasoning of a step
    {{steps.search.status}}                  status of a step

Resolution never raises. Anything that cannot be followed (syntax error,
unknown root, step not recorded, missing key, index out of range) yields
the UNRESOLVED marker, which is distinct from a resolved None.
"""

import copy
import json
import re
from types import MappingProxyType
from typing import Any, Iterable, List, Mapping, Union

from .state import PipelineState, StepResult

TEMPLATE_PATTERN = re.compile(r"\{\{([^}]+)\}\}")
SINGLE_TEMPLATE_PATTERN = re.compile(r"^\s*\{\{([^}]+)\}\}\s*$")
SEGMENT_PATTERN = re.compile(r"^([A-Za-z0-9_$-]+)((?:\[\d+\])*)$")
INDEX_PATTERN = re.compile(r"\[(\d+)\]")

ROOTS = ("input", "steps")
STEP_RESULT_FIELDS = ("output", "status", "reasoning", "error")

PathSegment = Union[str, int]


class _Unresolved:
    """Marker for a reference that could not be followed"""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNRESOLVED"

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self


UNRESOLVED = _Unresolved()


class ExpressionSyntaxError(ValueError):
    """Malformed reference path"""

    def __init__(self, expression: str, message: str):
        self.expression = expression
        super().__init__(f"Invalid expression '{expression}': {message}")


# =============================================================================
# Parsing
# =============================================================================

def parse_path(path: str) -> List[PathSegment]:
    """
    Split a dotted path with optional [n] indices into segments.

        "steps.search.output.results[0].url"
            -> ["steps", "search", "output", "results", 0, "url"]
    """
    segments: List[PathSegment] = []

    for raw_segment in path.strip().split("."):
        if not raw_segment:
            raise ExpressionSyntaxError(
                path, "Empty path segment (double dots or leading/trailing dot)"
            )

        match = SEGMENT_PATTERN.match(raw_segment)
        if not match:
            raise ExpressionSyntaxError(path, f"Invalid path segment '{raw_segment}'")

        segments.append(match.group(1))
        segments.extend(int(index) for index in INDEX_PATTERN.findall(match.group(2)))

    return segments


def strip_template(expression: str) -> str:
    """Return the path inside a single {{ }} wrapper, or the text itself."""
    match = SINGLE_TEMPLATE_PATTERN.match(expression)
    return (match.group(1) if match else expression).strip()


# =============================================================================
# Resolution
# =============================================================================

def _step_field(result: StepResult, name: PathSegment) -> Any:
    if name not in STEP_RESULT_FIELDS:
        return UNRESOLVED
    if name == "status":
        return result.status.value
    value = getattr(result, name)
    if name in ("reasoning", "error") and value is None:
        # Absent optional fields, not a recorded null
        return UNRESOLVED
    return value


def _descend(current: Any, segment: PathSegment) -> Any:
    if isinstance(current, StepResult):
        return _step_field(current, segment)

    if isinstance(current, Mapping):
        if isinstance(segment, str) and segment in current:
            return current[segment]
        return UNRESOLVED

    if isinstance(current, (list, tuple)):
        if isinstance(segment, str):
            if segment == "length":
                return len(current)
            if not segment.isdigit():
                return UNRESOLVED
            segment = int(segment)
        if 0 <= segment < len(current):
            return current[segment]
        return UNRESOLVED

    if isinstance(current, str) and segment == "length":
        return len(current)

    return UNRESOLVED


def _to_plain(value: Any) -> Any:
    if isinstance(value, StepResult):
        return value.to_dict()
    if isinstance(value, MappingProxyType):
        return {key: _to_plain(item) for key, item in value.items()}
    return copy.deepcopy(value)


def resolve_path(state: PipelineState, segments: List[PathSegment]) -> Any:
    """Walk parsed segments through state; UNRESOLVED when any hop fails."""
    if not segments or segments[0] not in ROOTS:
        return UNRESOLVED

    current: Any = state.input if segments[0] == "input" else state.steps
    for segment in segments[1:]:
        current = _descend(current, segment)
        if current is UNRESOLVED:
            return UNRESOLVED

    return _to_plain(current)


def resolve_expression(expression: str, state: PipelineState) -> Any:
    """
    Resolve a single reference, with or without the {{ }} wrapper.

    Returns a copy of the referenced value, or UNRESOLVED.
    """
    try:
        segments = parse_path(strip_template(expression))
    except ExpressionSyntaxError:
        return UNRESOLVED
    return resolve_path(state, segments)


def _stringify(value: Any) -> str:
    if value is None or value is UNRESOLVED:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value, default=str, ensure_ascii=False)


def resolve_template_string(template: str, state: PipelineState) -> Any:
    """
    Resolve every {{ }} reference in a string.

    A string that is exactly one reference resolves to the typed value
    (None when unresolved). Mixed text is interpolated into a string.
    """
    single = SINGLE_TEMPLATE_PATTERN.match(template)
    if single:
        value = resolve_expression(single.group(1), state)
        return None if value is UNRESOLVED else value

    return TEMPLATE_PATTERN.sub(
        lambda match: _stringify(resolve_expression(match.group(1), state)),
        template,
    )


def resolve_templates(value: Any, state: PipelineState) -> Any:
    """Deep-resolve templates in dicts/lists; other values pass through."""
    if isinstance(value, str):
        if TEMPLATE_PATTERN.search(value):
            return resolve_template_string(value, state)
        return value

    if isinstance(value, Mapping):
        return {key: resolve_templates(item, state) for key, item in value.items()}

    if isinstance(value, (list, tuple)):
        return [resolve_templates(item, state) for item in value]

    return value


# =============================================================================
# Design-time validation
# =============================================================================

def extract_template_expressions(value: Any) -> List[str]:
    """All reference paths found in a (possibly nested) value."""
    expressions: List[str] = []

    def walk(item: Any) -> None:
        if isinstance(item, str):
            expressions.extend(match.strip() for match in TEMPLATE_PATTERN.findall(item))
        elif isinstance(item, Mapping):
            for nested in item.values():
                walk(nested)
        elif isinstance(item, (list, tuple)):
            for nested in item:
                walk(nested)

    walk(value)
    return expressions


def validate_template_expressions(value: Any, available_step_slugs: Iterable[str]) -> List[str]:
    """
    Check reference syntax and step availability.

    Returns human-readable errors; an empty list means every reference is
    well formed and points at input or an available step.
    """
    available = list(available_step_slugs)
    errors: List[str] = []

    for expression in extract_template_expressions(value):
        try:
            segments = parse_path(expression)
        except ExpressionSyntaxError as e:
            errors.append(str(e))
            continue

        root = segments[0]
        if root not in ROOTS:
            errors.append(f"Expression '{expression}' must start with 'input' or 'steps'")
            continue

        if root == "steps":
            if len(segments) < 2 or not isinstance(segments[1], str):
                errors.append(f"Expression '{expression}' must reference a step slug after 'steps.'")
                continue
            if segments[1] not in available:
                errors.append(
                    f"Expression '{expression}' references step '{segments[1]}' which is not available. "
                    f"Available steps: {', '.join(available) or '(none)'}"
                )

    return errors
