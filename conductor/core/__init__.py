# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Core utilities and shared modules for Conductor.

This package contains:
- config: Configuration management
- errors: Custom exceptions
- logging: Structured logging
"""

from conductor.core.config import get_config, Config
from conductor.core.errors import ConductorError, ConfigurationError, ExecutionError
from conductor.core.logging import get_logger

__all__ = [
    "get_config",
    "Config",
    "ConductorError",
    "ConfigurationError",
    "ExecutionError",
    "get_logger",
]
