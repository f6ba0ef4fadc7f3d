# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Pipeline API Routes

Run and validate pipeline definitions.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

from conductor.core.errors import sanitize_error_for_user
from conductor.core.logging import get_api_logger, log_event
from conductor.pipelines.exceptions import DefinitionConfigurationError
from conductor.pipelines.models import PipelineDefinition, PipelineRunRequest
from conductor.pipelines.orchestrator import PipelineOrchestrator
from conductor.pipelines.validation import find_template_warnings, validate_pipeline_steps

router = APIRouter(prefix="/v1/pipelines", tags=["pipelines"])

logger = get_api_logger()


# Dependency injection placeholder - wired up in create_app()
def get_pipeline_orchestrator() -> PipelineOrchestrator:
    """Get PipelineOrchestrator instance (overridden in main.py)"""
    raise NotImplementedError("PipelineOrchestrator dependency not configured")


@router.post("/run")
async def run_pipeline(
    request: PipelineRunRequest,
    orchestrator: PipelineOrchestrator = Depends(get_pipeline_orchestrator)
) -> Dict[str, Any]:
    """Run a pipeline definition and return the full run report"""
    try:
        result = await orchestrator.run(request.definition, request.input)
    except DefinitionConfigurationError as e:
        raise HTTPException(status_code=400, detail=e.to_dict())
    except Exception as e:
        log_event(
            logger,
            "pipeline_run_error",
            level="ERROR",
            pipeline_id=request.definition.id,
            error=str(e),
        )
        raise HTTPException(
            status_code=500,
            detail=f"Pipeline execution failed: {sanitize_error_for_user(e)}"
        )

    return result.to_dict()


@router.post("/validate")
async def validate_pipeline(
    definition: PipelineDefinition,
    orchestrator: PipelineOrchestrator = Depends(get_pipeline_orchestrator)
) -> Dict[str, Any]:
    """Check step ordering and template references without running anything"""
    errors = []
    try:
        validate_pipeline_steps(definition.steps, orchestrator.config.max_steps)
    except DefinitionConfigurationError as e:
        errors.append({"code": e.code, "message": e.message})

    return {
        "valid": not errors,
        "errors": errors,
        "warnings": find_template_warnings(definition.steps),
    }
