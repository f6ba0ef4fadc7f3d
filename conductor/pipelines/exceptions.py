# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Pipeline Exceptions

Error kinds raised by the pipeline engine. Per-step failures are caught by
the step executor and recorded in state; only definition errors and
fail_pipeline aborts reach the caller.
"""

from typing import Any, Optional

from conductor.core.errors import ConfigurationError, ExecutionError


class PipelineError(ExecutionError):
    """Base exception for the pipeline engine"""
    code = "PIPELINE_ERROR"

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, details=details)
        if code:
            self.code = code

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["code"] = self.code
        return data


class DefinitionConfigurationError(ConfigurationError):
    """Malformed step ordering; aborts before step 1 and is never retried"""

    def __init__(self, message: str, code: str = "INVALID_STEP_ORDER", details: Optional[dict] = None):
        super().__init__(message, details=details)
        self.status_code = 400
        self.code = code

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["code"] = self.code
        return data


class InvocationError(PipelineError):
    """Raised by tool invokers when a tool call fails"""
    code = "TOOL_INVOCATION_ERROR"


class StepExecutionError(PipelineError):
    """A single step failed"""
    code = "STEP_FAILED"

    def __init__(
        self,
        step_slug: str,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.step_slug = step_slug
        super().__init__(message, code=code, details=details)


class StepInvocationError(StepExecutionError):
    """Tool invocation failed"""
    code = "TOOL_INVOCATION_ERROR"


class StepTimeoutError(StepInvocationError):
    """Tool invocation exceeded the step timeout"""
    code = "STEP_TIMEOUT"

    def __init__(self, step_slug: str, timeout_seconds: float):
        super().__init__(
            step_slug,
            f"Step '{step_slug}' exceeded timeout ({timeout_seconds}s)",
            details={"timeout_seconds": timeout_seconds}
        )
        self.timeout_seconds = timeout_seconds


class RetryExhaustedError(StepExecutionError):
    """Final failure after every retry attempt"""
    code = "RETRY_EXHAUSTED"

    def __init__(self, step_slug: str, attempts: int, last_error: Exception):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            step_slug,
            f"Step '{step_slug}' failed after {attempts} attempt(s): {last_error}",
            details={
                "attempts": attempts,
                "last_error_code": getattr(last_error, "code", type(last_error).__name__),
            }
        )


class ReasoningProviderError(StepExecutionError):
    """Inter-step LLM reasoning failed"""
    code = "REASONING_LLM_CALL_FAILED"


class LLMProviderError(Exception):
    """Raised by reasoning provider implementations"""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(f"[{provider}] {message}")


class PipelineAbortedError(PipelineError):
    """A fail_pipeline step failed after exhausting its retries"""
    code = "STEP_FAILED"

    def __init__(self, failed_step: str, step_number: int, step_name: str, cause: Optional[Exception] = None):
        self.failed_step = failed_step
        self.step_number = step_number
        self.step_name = step_name
        self.cause = cause
        self.result: Optional[Any] = None  # PipelineRunResult, attached by the orchestrator
        super().__init__(
            f'Pipeline failed at step {step_number} ("{step_name}")',
            details={
                "failed_step": failed_step,
                "step_number": step_number,
                "cause": str(cause) if cause else None,
            }
        )
