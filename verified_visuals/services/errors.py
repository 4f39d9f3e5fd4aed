"""
Pipeline error taxonomy.

Every stage wraps whatever its provider raised into its own named error so
the orchestrator can decide, per stage, whether the run ends or degrades.
"""

from __future__ import annotations

from typing import Optional


class PipelineError(Exception):
    """Base class for stage failures; carries the upstream provider message."""

    stage: str = "pipeline"
    prefix: str = "Pipeline failed"

    def __init__(self, upstream_message: str, *, cause: Optional[BaseException] = None):
        self.upstream_message = upstream_message
        self.cause = cause
        super().__init__(f"{self.prefix}: {upstream_message}")


class ResearchFailed(PipelineError):
    """Grounded research call failed. Fatal."""

    stage = "research"
    prefix = "Research failed"


class StructuringFailed(PipelineError):
    """Structuring call failed or its payload broke the report schema. Fatal."""

    stage = "structuring"
    prefix = "Data structuring failed"


class ImageGenerationFailed(PipelineError):
    """Illustration call failed. Non-fatal: the report survives without it."""

    stage = "image"
    prefix = "Image generation failed"


class NoImageReturned(ImageGenerationFailed):
    """The image call succeeded but no part carried inline image data."""

    def __init__(self, upstream_message: str = "No image data returned from model."):
        super().__init__(upstream_message)


class ProviderConfigurationError(RuntimeError):
    """Provider is unknown or missing credentials."""


class InvalidTransition(RuntimeError):
    """A state change not permitted by the pipeline state machine."""


__all__ = [
    "ImageGenerationFailed",
    "InvalidTransition",
    "NoImageReturned",
    "PipelineError",
    "ProviderConfigurationError",
    "ResearchFailed",
    "StructuringFailed",
]
