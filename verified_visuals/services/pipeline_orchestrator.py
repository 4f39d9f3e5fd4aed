"""
Research pipeline orchestrator
------------------------------
Sequences the three stages of a report run:

    researching -> structuring -> generating_image -> complete

Research and structuring are load-bearing: their failure moves the run to
``error``. Image generation is enrichment: its failure is logged and the
run still completes with the already-published report.

Each ``run``/``reset`` starts a new epoch. A superseded run keeps its own
local snapshot but never publishes again and never starts another stage.
"""

from __future__ import annotations

import asyncio
from typing import Dict, Optional, Set

import structlog

from verified_visuals.contracts import (
    Audience,
    GeneratedImage,
    PipelineSnapshot,
    PipelineState,
    ReportResult,
)
from verified_visuals.core import config
from verified_visuals.logging_config import bind_request_context
from verified_visuals.services.errors import (
    ImageGenerationFailed,
    InvalidTransition,
    PipelineError,
    ResearchFailed,
    StructuringFailed,
)
from verified_visuals.services.progress import ProgressPublisher, SnapshotListener
from verified_visuals.services.providers import get_provider
from verified_visuals.services.research_client import ResearchClient
from verified_visuals.services.structuring_client import StructuringClient
from verified_visuals.services.visual_client import VisualClient

logger = structlog.get_logger(__name__)

_ALLOWED_TRANSITIONS: Dict[PipelineState, Set[PipelineState]] = {
    PipelineState.IDLE: {PipelineState.RESEARCHING},
    PipelineState.RESEARCHING: {PipelineState.STRUCTURING, PipelineState.ERROR},
    PipelineState.STRUCTURING: {PipelineState.GENERATING_IMAGE, PipelineState.ERROR},
    PipelineState.GENERATING_IMAGE: {PipelineState.COMPLETE},
    PipelineState.COMPLETE: set(),
    PipelineState.ERROR: set(),
}


class PipelineOrchestrator:
    """Owns the pipeline state and drives one run at a time."""

    def __init__(
        self,
        research_client: ResearchClient,
        structuring_client: StructuringClient,
        visual_client: VisualClient,
        *,
        publisher: Optional[ProgressPublisher] = None,
    ):
        self.research_client = research_client
        self.structuring_client = structuring_client
        self.visual_client = visual_client
        self.publisher = publisher or ProgressPublisher()
        self._snapshot = PipelineSnapshot()
        self._epoch = 0
        # Serialises "swap snapshot + notify" so observers never interleave
        self._lock = asyncio.Lock()

    # ────────────────────────────────────────────────────────────
    #  State access
    # ────────────────────────────────────────────────────────────

    @property
    def snapshot(self) -> PipelineSnapshot:
        return self._snapshot

    @property
    def epoch(self) -> int:
        return self._epoch

    def subscribe(self, listener: SnapshotListener):
        return self.publisher.subscribe(listener)

    def _is_stale(self, snapshot: PipelineSnapshot) -> bool:
        return snapshot.run_id != self._epoch

    async def _start_epoch(self, state: PipelineState) -> PipelineSnapshot:
        async with self._lock:
            self._epoch += 1
            snapshot = PipelineSnapshot(run_id=self._epoch, state=state)
            self._snapshot = snapshot
            await self.publisher.publish(snapshot)
        return snapshot

    async def _advance(
        self,
        current: PipelineSnapshot,
        state: PipelineState,
        *,
        error: Optional[str] = None,
        result: Optional[ReportResult] = None,
        image: Optional[GeneratedImage] = None,
    ) -> PipelineSnapshot:
        if state not in _ALLOWED_TRANSITIONS[current.state]:
            raise InvalidTransition(
                f"Cannot move from {current.state.value} to {state.value}"
            )
        nxt = PipelineSnapshot(
            run_id=current.run_id,
            state=state,
            error=error,
            result=result if result is not None else current.result,
            image=image if image is not None else current.image,
        )
        async with self._lock:
            if self._is_stale(current):
                return nxt
            self._snapshot = nxt
            await self.publisher.publish(nxt)
        return nxt

    async def reset(self) -> PipelineSnapshot:
        """Return to ``idle``; any in-flight run is superseded."""
        return await self._start_epoch(PipelineState.IDLE)

    # ────────────────────────────────────────────────────────────
    #  Pipeline
    # ────────────────────────────────────────────────────────────

    async def _fail(
        self, snapshot: PipelineSnapshot, exc: PipelineError, log
    ) -> PipelineSnapshot:
        log.error("Pipeline failed", stage=exc.stage, error=str(exc))
        return await self._advance(snapshot, PipelineState.ERROR, error=str(exc))

    async def run(self, topic: str, audience: Audience) -> PipelineSnapshot:
        """Run the full pipeline and return this run's terminal snapshot.

        The returned snapshot's ``result`` holds the :class:`ReportResult`
        (absent on ``error``). Intermediate snapshots go to subscribers.
        """
        snapshot = await self._start_epoch(PipelineState.RESEARCHING)
        bind_request_context(run_id=snapshot.run_id)
        log = logger.bind(audience=audience.value)
        log.info("Pipeline started", topic=topic)

        try:
            findings = await self.research_client.research(topic, audience)
        except ResearchFailed as exc:
            return await self._fail(snapshot, exc, log)
        if self._is_stale(snapshot):
            log.info("Run superseded", after_stage="research")
            return snapshot
        snapshot = await self._advance(snapshot, PipelineState.STRUCTURING)

        try:
            structured = await self.structuring_client.structure(findings.text, audience)
        except StructuringFailed as exc:
            return await self._fail(snapshot, exc, log)
        if self._is_stale(snapshot):
            log.info("Run superseded", after_stage="structuring")
            return snapshot

        report = ReportResult.merge(structured, findings.sources)
        # Summary and chart go out before the illustration exists
        snapshot = await self._advance(
            snapshot, PipelineState.GENERATING_IMAGE, result=report
        )

        image: Optional[GeneratedImage] = None
        try:
            image = await self.visual_client.generate_image(report.image_prompt)
        except ImageGenerationFailed as exc:
            log.warning("Illustration skipped", stage=exc.stage, error=str(exc))
        if self._is_stale(snapshot):
            log.info("Run superseded", after_stage="image")
            return snapshot

        snapshot = await self._advance(snapshot, PipelineState.COMPLETE, image=image)
        log.info(
            "Pipeline complete",
            sources=len(report.sources),
            chart_kind=report.chart_kind.value,
            has_image=image is not None,
        )
        return snapshot


def build_orchestrator(
    provider=None,
    *,
    provider_name: Optional[str] = None,
    publisher: Optional[ProgressPublisher] = None,
) -> PipelineOrchestrator:
    """Wire the three stage clients to one provider from configuration."""
    name = provider_name or config.get_provider_name()
    provider = provider or get_provider(name)
    return PipelineOrchestrator(
        ResearchClient(provider, model=config.get_model_for_stage("research", name)),
        StructuringClient(provider, model=config.get_model_for_stage("structuring", name)),
        VisualClient(
            provider,
            model=config.get_model_for_stage("image", name),
            aspect_ratio=config.IMAGE_ASPECT_RATIO,
        ),
        publisher=publisher,
    )


__all__ = ["PipelineOrchestrator", "build_orchestrator"]
