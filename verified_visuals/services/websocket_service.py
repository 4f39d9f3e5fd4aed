"""
WebSocket Support for Real-time Pipeline Progress

One connection drives one orchestrator. Every snapshot the orchestrator
publishes is forwarded as a ``pipeline.state`` message; submitting a new
query cancels the in-flight run before starting the next one.
"""

import asyncio
import contextlib
import json
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

import structlog
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field, ValidationError

from verified_visuals.contracts import PipelineSnapshot
from verified_visuals.core.dependencies import OrchestratorFactory, get_orchestrator_factory
from verified_visuals.models.reports import ClientCommand, ReportRequest
from verified_visuals.services.errors import ProviderConfigurationError
from verified_visuals.services.pipeline_orchestrator import PipelineOrchestrator

logger = structlog.get_logger(__name__)

# --- WebSocket Event Types ---


class WSEventType(str, Enum):
    """WebSocket event types"""

    CONNECTED = "connected"
    ERROR = "error"
    PONG = "pong"
    PIPELINE_STATE = "pipeline.state"


class WSMessage(BaseModel):
    """WebSocket message structure"""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    type: WSEventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    data: Dict[str, Any]


# --- Session ---


class ReportSession:
    """Binds one WebSocket to one orchestrator and its current run task."""

    def __init__(self, websocket: WebSocket, orchestrator: PipelineOrchestrator):
        self.websocket = websocket
        self.orchestrator = orchestrator
        self._task: Optional[asyncio.Task] = None
        self._unsubscribe = orchestrator.subscribe(self._forward_snapshot)

    async def send(self, message: WSMessage) -> None:
        await self.websocket.send_json(message.model_dump(mode="json"))

    async def send_error(self, message: str, **details: Any) -> None:
        await self.send(WSMessage(type=WSEventType.ERROR, data={"message": message, **details}))

    async def _forward_snapshot(self, snapshot: PipelineSnapshot) -> None:
        await self.send(WSMessage(type=WSEventType.PIPELINE_STATE, data=snapshot.to_wire()))

    async def _cancel_task(self) -> None:
        task = self._task
        self._task = None
        if task and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def submit(self, request: ReportRequest) -> None:
        await self._cancel_task()
        self._task = asyncio.create_task(
            self.orchestrator.run(request.topic, request.audience)
        )

    async def cancel(self) -> None:
        await self._cancel_task()
        await self.orchestrator.reset()

    async def handle(self, raw: str) -> None:
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            if raw.strip().lower() == "ping":
                await self.send(WSMessage(type=WSEventType.PONG, data={}))
                return
            await self.send_error("Message must be JSON")
            return
        if not isinstance(payload, dict):
            await self.send_error("Message must be a JSON object")
            return

        if "action" in payload:
            try:
                command = ClientCommand.model_validate(payload)
            except ValidationError as exc:
                await self.send_error("Invalid command", errors=json.loads(exc.json(include_url=False)))
                return
            if command.action == "ping":
                data = {"request_id": command.request_id} if command.request_id else {}
                await self.send(WSMessage(type=WSEventType.PONG, data=data))
            else:
                logger.info("Run cancelled by client", request_id=command.request_id)
                await self.cancel()
            return

        try:
            request = ReportRequest.model_validate(payload)
        except ValidationError as exc:
            await self.send_error(
                "Invalid report request",
                errors=json.loads(exc.json(include_url=False)),
            )
            return
        await self.submit(request)

    async def close(self) -> None:
        await self._cancel_task()
        self._unsubscribe()


def create_websocket_router() -> APIRouter:
    """Create WebSocket router"""
    router = APIRouter()

    @router.websocket("/ws/reports")
    async def reports_websocket(
        websocket: WebSocket,
        orchestrator_factory: OrchestratorFactory = Depends(get_orchestrator_factory),
    ):
        await websocket.accept()
        try:
            orchestrator = orchestrator_factory()
        except ProviderConfigurationError as exc:
            logger.error("Provider unavailable", error=str(exc))
            await websocket.send_json(
                WSMessage(type=WSEventType.ERROR, data={"message": str(exc)}).model_dump(mode="json")
            )
            await websocket.close(code=1011)
            return

        session = ReportSession(websocket, orchestrator)
        await session.send(
            WSMessage(
                type=WSEventType.CONNECTED,
                data={"snapshot": orchestrator.snapshot.to_wire()},
            )
        )
        try:
            while True:
                raw = await websocket.receive_text()
                await session.handle(raw)
        except WebSocketDisconnect:
            logger.info("Report WebSocket disconnected")
        finally:
            await session.close()

    return router


__all__ = ["ReportSession", "WSEventType", "WSMessage", "create_websocket_router"]
