# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Tool Invocation

A step's tool is reached through a ToolInvoker. ToolDispatcher picks the
handler registered for the step's tool type at call time:

    simple     -> POST /api/v1/actions/{integration}/{action}
    composite  -> POST /api/v1/composite-tools/invoke
    agentic    -> POST /api/v1/agentic-tools/invoke

The gateway owns credentials, rate limiting and circuit breaking; this
module only shapes requests and maps the response envelope
({"success": bool, "data": ..., "error": {"code", "message"} | str,
 "metadata": {"totalCost": ...}}). Agentic tools report their LLM spend in
metadata.totalCost; it is returned as ToolResult.cost_usd so it counts
toward the run's cost limit.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Protocol

import httpx

from conductor.core.config import Config, get_config
from .exceptions import InvocationError
from .models import ToolRef, ToolType


@dataclass
class ToolResult:
    """Tool output plus the spend the tool reported for producing it"""
    output: Any
    cost_usd: float = 0.0


class ToolInvoker(Protocol):
    async def invoke(self, tool_ref: ToolRef, payload: Dict[str, Any], timeout_ms: int) -> Any:
        """
        Invoke a tool and return its output; raise on failure.

        Returning a ToolResult attaches a cost to the output; any other
        value is taken as the output itself at zero cost.
        """
        ...


ToolHandler = ToolInvoker


class ToolDispatcher:
    """Routes each invocation to the handler for its tool type"""

    def __init__(self, handlers: Mapping[ToolType, ToolHandler]):
        self.handlers = dict(handlers)

    async def invoke(self, tool_ref: ToolRef, payload: Dict[str, Any], timeout_ms: int) -> Any:
        handler = self.handlers.get(tool_ref.tool_type)
        if handler is None:
            raise InvocationError(
                f"No handler registered for tool type: {tool_ref.tool_type.value}",
                code="UNKNOWN_TOOL_TYPE"
            )
        return await handler.invoke(tool_ref, payload, timeout_ms)


# =============================================================================
# Gateway handlers
# =============================================================================

class GatewayClient:
    """Thin HTTP client for the invocation gateway"""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.headers = {"Content-Type": "application/json"}
        if api_key:
            self.headers["Authorization"] = f"Bearer {api_key}"
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def post(self, path: str, body: Dict[str, Any], timeout_ms: int) -> Any:
        """POST to the gateway and return the envelope's data"""
        envelope = await self.post_envelope(path, body, timeout_ms)
        return envelope.get("data")

    async def post_envelope(self, path: str, body: Dict[str, Any], timeout_ms: int) -> Dict[str, Any]:
        """POST to the gateway and return the whole successful envelope"""
        try:
            response = await self.client.post(
                f"{self.base_url}{path}",
                json=body,
                headers={**self.headers, "X-Gateway-Timeout": str(timeout_ms)},
                timeout=timeout_ms / 1000,
            )
        except httpx.HTTPError as e:
            raise InvocationError(
                f"Gateway request to {path} failed: {e}",
                code="GATEWAY_UNAVAILABLE"
            ) from e

        try:
            envelope = response.json()
        except ValueError:
            raise InvocationError(
                f"Gateway returned a non-JSON response (HTTP {response.status_code})",
                code="GATEWAY_BAD_RESPONSE"
            )

        if not isinstance(envelope, dict):
            raise InvocationError(
                "Gateway response envelope must be a JSON object",
                code="GATEWAY_BAD_RESPONSE"
            )

        if response.is_error or not envelope.get("success", False):
            error = envelope.get("error")
            if isinstance(error, str):
                error = {"message": error}
            elif not isinstance(error, dict):
                error = {}
            raise InvocationError(
                str(error.get("message") or f"Gateway returned HTTP {response.status_code}"),
                code=str(error.get("code") or "ACTION_FAILED"),
                details={"status_code": response.status_code, "path": path},
            )

        return envelope

    async def close(self) -> None:
        """Close HTTP client"""
        await self.client.aclose()


class SimpleToolHandler:
    """Direct gateway action; tool_slug is "integration/action"."""

    def __init__(self, gateway: GatewayClient):
        self.gateway = gateway

    async def invoke(self, tool_ref: ToolRef, payload: Dict[str, Any], timeout_ms: int) -> Any:
        slug = tool_ref.tool_slug or ""
        integration, _, action = slug.partition("/")
        if not integration or not action:
            raise InvocationError(
                f'Simple tool slug must be in "integration/action" format, got: "{slug}"',
                code="INVALID_TOOL_SLUG"
            )
        return await self.gateway.post(f"/api/v1/actions/{integration}/{action}", payload, timeout_ms)


class CompositeToolHandler:
    def __init__(self, gateway: GatewayClient):
        self.gateway = gateway

    async def invoke(self, tool_ref: ToolRef, payload: Dict[str, Any], timeout_ms: int) -> Any:
        body = {"tool": tool_ref.tool_slug or tool_ref.tool_id, "params": payload}
        return await self.gateway.post("/api/v1/composite-tools/invoke", body, timeout_ms)


class AgenticToolHandler:
    """Agentic tools take a natural-language task: payload["task"], else the JSON payload."""

    def __init__(self, gateway: GatewayClient):
        self.gateway = gateway

    async def invoke(self, tool_ref: ToolRef, payload: Dict[str, Any], timeout_ms: int) -> Any:
        task = payload.get("task")
        if not isinstance(task, str) or not task:
            task = json.dumps(payload, default=str, ensure_ascii=False)
        body = {"tool": tool_ref.tool_slug or tool_ref.tool_id, "task": task}
        envelope = await self.gateway.post_envelope("/api/v1/agentic-tools/invoke", body, timeout_ms)
        return ToolResult(output=envelope.get("data"), cost_usd=reported_cost(envelope))


def reported_cost(envelope: Dict[str, Any]) -> float:
    """metadata.totalCost from a gateway envelope, 0.0 when absent or malformed"""
    metadata = envelope.get("metadata")
    if not isinstance(metadata, dict):
        return 0.0
    try:
        return max(float(metadata.get("totalCost") or 0.0), 0.0)
    except (TypeError, ValueError):
        return 0.0


class GatewayToolInvoker(ToolDispatcher):
    """Dispatcher wired to one shared gateway client"""

    def __init__(self, gateway: GatewayClient):
        self.gateway = gateway
        super().__init__({
            ToolType.SIMPLE: SimpleToolHandler(gateway),
            ToolType.COMPOSITE: CompositeToolHandler(gateway),
            ToolType.AGENTIC: AgenticToolHandler(gateway),
        })

    async def close(self) -> None:
        await self.gateway.close()


def create_gateway_tool_invoker(
    config: Optional[Config] = None,
    client: Optional[httpx.AsyncClient] = None
) -> GatewayToolInvoker:
    config = config or get_config()
    gateway = GatewayClient(
        config.gateway_url,
        api_key=config.get_gateway_api_key(),
        timeout=config.gateway_timeout,
        client=client,
    )
    return GatewayToolInvoker(gateway)
