# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Pipeline Run History Logging

Logs pipeline run events to the History service for audit trail.
Fails gracefully if the History service is not available.
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx

from conductor.core.logging import get_service_logger

logger = get_service_logger("history")


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _tool_payload(result: Any) -> Optional[Dict[str, Any]]:
    """
    Decode an MCP tool reply: {"content": [{"type": "text", "text": "<json>"}]}.

    Returns None for any reply that does not have that shape.
    """
    if not isinstance(result, dict):
        return None
    content = result.get("content")
    if not isinstance(content, list) or not content or not isinstance(content[0], dict):
        return None
    text = content[0].get("text")
    if not isinstance(text, str):
        return None
    try:
        payload = json.loads(text)
    except ValueError:
        return None
    return payload if isinstance(payload, dict) else None


class RunHistoryLogger:
    """
    Logs pipeline runs to the History service.

    Disabled when no URL is configured. The first failed call disables the
    logger for the rest of its lifetime; runs never fail because of it.
    """

    def __init__(self, history_url: Optional[str], timeout: float = 10.0, client: Optional[httpx.AsyncClient] = None):
        self.history_url = history_url.rstrip("/") if history_url else None
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self.enabled = bool(history_url)

    async def _call_tool(self, tool: str, arguments: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if not self.enabled:
            return None

        try:
            response = await self.client.post(
                f"{self.history_url}/mcp/call_tool",
                json={"tool": tool, "arguments": arguments}
            )
            response.raise_for_status()
            result = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"History service unavailable, disabling run history: {e}")
            self.enabled = False
            return None

        return _tool_payload(result)

    async def _append(
        self,
        session_id: Optional[str],
        message_type: str,
        content: str,
        metadata: Dict[str, Any]
    ) -> None:
        if not session_id:
            return
        await self._call_tool("append_message", {
            "session_id": session_id,
            "type": message_type,
            "content": content,
            "metadata": {**metadata, "timestamp": _timestamp()},
        })

    async def create_session(self, run_id: str, pipeline_id: str, pipeline_name: str) -> Optional[str]:
        """
        Create a History session for a pipeline run.

        Returns session_id or None if History is unavailable.
        """
        data = await self._call_tool("create_session", {
            "title": f"Pipeline: {pipeline_name}",
            "metadata": {
                "type": "pipeline_run",
                "run_id": run_id,
                "pipeline_id": pipeline_id,
            }
        })
        if data and data.get("success"):
            return data.get("session_id")
        return None

    async def log_step_start(self, session_id: Optional[str], step_slug: str, step_number: int) -> None:
        await self._append(session_id, "system", f"Step {step_number} '{step_slug}' started", {
            "event": "step_start",
            "step_slug": step_slug,
            "step_number": step_number,
        })

    async def log_step_complete(
        self,
        session_id: Optional[str],
        step_slug: str,
        output: Any,
        reasoning: Any = None
    ) -> None:
        await self._append(
            session_id,
            "agent",
            json.dumps(reasoning if reasoning is not None else output, default=str),
            {"event": "step_complete", "step_slug": step_slug, "has_reasoning": reasoning is not None},
        )

    async def log_step_skipped(self, session_id: Optional[str], step_slug: str, reason: Optional[str]) -> None:
        await self._append(session_id, "system", f"Step '{step_slug}' skipped", {
            "event": "step_skipped",
            "step_slug": step_slug,
            "reason": reason,
        })

    async def log_step_error(
        self,
        session_id: Optional[str],
        step_slug: str,
        error: str,
        error_context: Optional[Dict[str, Any]] = None
    ) -> None:
        """Log step failure"""
        await self._append(session_id, "system", f"Step '{step_slug}' failed: {error}", {
            "event": "step_error",
            "step_slug": step_slug,
            "error": error,
            "error_context": error_context,
        })

    async def log_run_complete(
        self,
        session_id: Optional[str],
        run_id: str,
        status: str,
        output: Any = None
    ) -> None:
        await self._append(session_id, "system", f"Pipeline run completed with status: {status}", {
            "event": "run_complete",
            "run_id": run_id,
            "status": status,
            "output": output,
        })

    async def close(self) -> None:
        """Close HTTP client"""
        await self.client.aclose()
