"""
Common dependencies for the Verified Visuals API
"""

from typing import Callable

from verified_visuals.services.pipeline_orchestrator import (
    PipelineOrchestrator,
    build_orchestrator,
)

OrchestratorFactory = Callable[[], PipelineOrchestrator]


def get_orchestrator_factory() -> OrchestratorFactory:
    """Factory for a fresh orchestrator per request or WebSocket session.

    Overridden in tests via ``app.dependency_overrides``.
    """
    return build_orchestrator
