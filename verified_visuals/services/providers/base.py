"""
Capability contracts for the remote generative-AI provider.

The pipeline never talks to an SDK directly. Each stage depends on one of
the three protocols below; concrete adapters (Gemini, OpenAI) translate
them to their SDK and normalise the response into these plain types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable


class ReasoningEffort(str, Enum):
    """Deliberation budget requested from models that support thinking."""

    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class TextGenerationOptions:
    enable_web_grounding: bool = False
    reasoning_effort: ReasoningEffort = ReasoningEffort.NONE


@dataclass(frozen=True)
class Citation:
    """Raw citation as returned by the provider; either field may be missing."""

    title: Optional[str] = None
    uri: Optional[str] = None


@dataclass
class TextGenerationResponse:
    text: Optional[str] = None
    citations: List[Citation] = field(default_factory=list)


@dataclass(frozen=True)
class ImagePart:
    """One content part of an image response; only some parts carry image data."""

    mime_type: Optional[str] = None
    base64_data: Optional[str] = None

    @property
    def has_image(self) -> bool:
        return bool(self.mime_type and self.base64_data)


@dataclass
class ImageGenerationResponse:
    parts: List[ImagePart] = field(default_factory=list)


@runtime_checkable
class TextGenerationCapability(Protocol):
    async def generate_text(
        self, model: str, prompt: str, options: TextGenerationOptions
    ) -> TextGenerationResponse: ...


@runtime_checkable
class SchemaGenerationCapability(Protocol):
    async def generate_structured(
        self, model: str, prompt: str, schema: Dict[str, Any]
    ) -> str: ...


@runtime_checkable
class ImageGenerationCapability(Protocol):
    async def generate_image(
        self, model: str, prompt: str, *, aspect_ratio: str
    ) -> ImageGenerationResponse: ...


__all__ = [
    "Citation",
    "ImageGenerationCapability",
    "ImageGenerationResponse",
    "ImagePart",
    "ReasoningEffort",
    "SchemaGenerationCapability",
    "TextGenerationCapability",
    "TextGenerationOptions",
    "TextGenerationResponse",
]
