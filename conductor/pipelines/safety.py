# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Run-level safety limits: accumulated reasoning cost and wall-clock time.

Checked before each step. A violated limit stops the run; the current and
remaining steps are recorded as skipped.
"""

from dataclasses import dataclass
from typing import Optional

from conductor.core.config import Config
from .models import RunStatus, SafetyLimits


@dataclass(frozen=True)
class SafetyCheckResult:
    ok: bool
    reason: Optional[str] = None
    run_status: Optional[RunStatus] = None


def resolve_effective_limits(limits: Optional[SafetyLimits], config: Config) -> SafetyLimits:
    """Pipeline limits when set, otherwise the configured defaults."""
    if limits is not None:
        return limits
    return SafetyLimits(
        max_cost_usd=config.safety_max_cost_usd,
        max_duration_seconds=config.safety_max_duration_seconds,
    )


def check_safety_limits(
    limits: SafetyLimits,
    total_cost_usd: float,
    elapsed_seconds: float
) -> SafetyCheckResult:
    if total_cost_usd >= limits.max_cost_usd:
        return SafetyCheckResult(
            ok=False,
            reason=(
                f"Cost limit reached: ${total_cost_usd:.4f} spent, "
                f"limit is ${limits.max_cost_usd:.2f}"
            ),
            run_status=RunStatus.FAILED,
        )

    if elapsed_seconds >= limits.max_duration_seconds:
        return SafetyCheckResult(
            ok=False,
            reason=(
                f"Duration limit reached: {elapsed_seconds:.1f}s elapsed, "
                f"limit is {limits.max_duration_seconds}s"
            ),
            run_status=RunStatus.TIMEOUT,
        )

    return SafetyCheckResult(ok=True)
