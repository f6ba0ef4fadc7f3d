# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Tests for structured logging
"""

import json
import logging

from conductor.core.logging import JSONFormatter, TextFormatter, bind_run, get_logger, log_event


def test_run_logger_binds_run_fields(caplog):
    logger = get_logger("conductor.test.bind")
    run_logger = bind_run(logger, "run_1", pipeline_id="pipe-1")

    with caplog.at_level(logging.INFO, logger="conductor.test.bind"):
        log_event(run_logger, "pipeline_step_completed", step_slug="search", attempts=2)

    record = caplog.records[-1]
    assert record.getMessage() == "pipeline_step_completed"
    assert record.event == "pipeline_step_completed"
    assert record.run_id == "run_1"
    assert record.pipeline_id == "pipe-1"
    assert record.step_slug == "search"
    assert record.attempts == 2


def test_event_fields_override_bound_fields(caplog):
    logger = get_logger("conductor.test.override")
    run_logger = bind_run(logger, "run_1", pipeline_id="pipe-1")

    with caplog.at_level(logging.INFO, logger="conductor.test.override"):
        log_event(run_logger, "pipeline_run_started", pipeline_id="pipe-2")

    assert caplog.records[-1].pipeline_id == "pipe-2"


def test_json_formatter_includes_extra_fields(caplog):
    logger = get_logger("conductor.test.json")

    with caplog.at_level(logging.WARNING, logger="conductor.test.json"):
        log_event(bind_run(logger, "run_9"), "pipeline_safety_limit", level="WARNING", reason="Cost limit")

    data = json.loads(JSONFormatter().format(caplog.records[-1]))
    assert data["level"] == "WARNING"
    assert data["logger"] == "conductor.test.json"
    assert data["message"] == "pipeline_safety_limit"
    assert data["run_id"] == "run_9"
    assert data["reason"] == "Cost limit"
    assert data["timestamp"].endswith("Z")


def test_get_logger_formats():
    json_logger = get_logger("conductor.test.fmt", log_format="json")
    assert len(json_logger.handlers) == 1
    assert isinstance(json_logger.handlers[0].formatter, JSONFormatter)

    text_logger = get_logger("conductor.test.fmt", log_level="debug", log_format="text")
    assert len(text_logger.handlers) == 1
    assert isinstance(text_logger.handlers[0].formatter, TextFormatter)
    assert text_logger.level == logging.DEBUG
