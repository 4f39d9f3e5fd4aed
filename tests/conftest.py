"""Shared pytest fixtures.

``FakeProvider`` implements all three capability contracts in memory so the
pipeline can be exercised end-to-end without network access.
"""

from __future__ import annotations

import asyncio
import base64
import json
import threading
from typing import Any, Dict, List, Optional

import pytest

from verified_visuals.services.pipeline_orchestrator import build_orchestrator
from verified_visuals.services.providers.base import (
    Citation,
    ImageGenerationResponse,
    ImagePart,
    TextGenerationOptions,
    TextGenerationResponse,
)

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image"
PNG_BASE64 = base64.b64encode(PNG_BYTES).decode("ascii")

HAPPY_STRUCTURED_PAYLOAD: Dict[str, Any] = {
    "summary": "Adoption grew steadily between 2022 and 2023.",
    "chartKind": "bar",
    "chartData": [
        {"name": "2022", "value": 10},
        {"name": "2023", "value": 15},
    ],
    "chartTitle": "Trend",
    "imagePrompt": "abstract growth graphic",
}


class FakeProvider:
    """In-memory provider recording every call it receives."""

    def __init__(
        self,
        *,
        text: Optional[str] = "In 2022 adoption was 10%; in 2023 it reached 15%.",
        citations: Optional[List[Citation]] = None,
        structured: Optional[str] = None,
        image_parts: Optional[List[ImagePart]] = None,
        text_error: Optional[Exception] = None,
        structured_error: Optional[Exception] = None,
        image_error: Optional[Exception] = None,
    ):
        self.text = text
        self.citations = citations if citations is not None else [
            Citation(title="Stats A", uri="https://a.example/report"),
            Citation(title="Stats B", uri="https://b.example/data"),
            Citation(title="Stats A again", uri="https://a.example/report"),
        ]
        self.structured = structured if structured is not None else json.dumps(HAPPY_STRUCTURED_PAYLOAD)
        self.image_parts = image_parts if image_parts is not None else [
            ImagePart(mime_type="image/png", base64_data=PNG_BASE64)
        ]
        self.text_error = text_error
        self.structured_error = structured_error
        self.image_error = image_error
        # When set, the first research call blocks until the event fires.
        # A threading.Event so tests can release it from outside the app loop.
        self.text_gate: Optional[threading.Event] = None

        self.text_calls: List[Dict[str, Any]] = []
        self.structured_calls: List[Dict[str, Any]] = []
        self.image_calls: List[Dict[str, Any]] = []

    async def generate_text(
        self, model: str, prompt: str, options: TextGenerationOptions
    ) -> TextGenerationResponse:
        self.text_calls.append({"model": model, "prompt": prompt, "options": options})
        if self.text_gate is not None and len(self.text_calls) == 1:
            while not self.text_gate.is_set():
                await asyncio.sleep(0.005)
        if self.text_error:
            raise self.text_error
        return TextGenerationResponse(text=self.text, citations=list(self.citations))

    async def generate_structured(self, model: str, prompt: str, schema: Dict[str, Any]) -> str:
        self.structured_calls.append({"model": model, "prompt": prompt, "schema": schema})
        if self.structured_error:
            raise self.structured_error
        return self.structured

    async def generate_image(
        self, model: str, prompt: str, *, aspect_ratio: str
    ) -> ImageGenerationResponse:
        self.image_calls.append({"model": model, "prompt": prompt, "aspect_ratio": aspect_ratio})
        if self.image_error:
            raise self.image_error
        return ImageGenerationResponse(parts=list(self.image_parts))


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def make_orchestrator():
    """Build an orchestrator wired to the given fake provider."""

    def _make(provider: FakeProvider):
        return build_orchestrator(provider, provider_name="gemini")

    return _make


@pytest.fixture
def provider_factory():
    """Return the ``FakeProvider`` class for tests needing custom behaviour."""
    return FakeProvider
