# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
FastAPI application - Pipeline Orchestration API
Runs sequential tool pipelines with inter-step LLM reasoning
"""

from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from conductor.api import pipelines
from conductor.core.config import Config, get_config
from conductor.core.logging import get_api_logger, log_event
from conductor.pipelines.history import RunHistoryLogger
from conductor.pipelines.orchestrator import PipelineOrchestrator
from conductor.pipelines.tools import create_gateway_tool_invoker
from conductor.reasoning.providers import create_reasoning_provider


def build_orchestrator(config: Config) -> PipelineOrchestrator:
    """Wire the orchestrator to the gateway, LLM providers and History service"""
    return PipelineOrchestrator(
        create_gateway_tool_invoker(config),
        reasoning_provider=create_reasoning_provider(config),
        config=config,
        history=RunHistoryLogger(config.history_url, timeout=config.history_timeout),
    )


def create_app(orchestrator: Optional[PipelineOrchestrator] = None) -> FastAPI:
    config = get_config()
    orchestrator = orchestrator or build_orchestrator(config)
    logger = get_api_logger()

    app = FastAPI(
        title="Conductor Pipelines",
        description="Sequential tool pipelines with inter-step LLM reasoning",
        version="1.0.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, specify exact origins
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.orchestrator = orchestrator
    app.dependency_overrides[pipelines.get_pipeline_orchestrator] = lambda: orchestrator
    app.include_router(pipelines.router)

    @app.get("/health")
    async def health():
        return {"status": "healthy", "service": "conductor"}

    @app.on_event("shutdown")
    async def shutdown():
        log_event(logger, "app_shutdown")
        await orchestrator.close()

    return app


app = create_app()
