"""
OpenAI adapter
--------------
Implements the capability contracts with the ``openai`` SDK: the Responses
API (``web_search`` tool, ``json_schema`` text format) for research and
structuring, and the Images API for illustration.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from openai import AsyncOpenAI

from verified_visuals.services.errors import ProviderConfigurationError
from verified_visuals.services.providers.base import (
    Citation,
    ImageGenerationResponse,
    ImagePart,
    ReasoningEffort,
    TextGenerationOptions,
    TextGenerationResponse,
)

logger = structlog.get_logger(__name__)

_REASONING_EFFORTS: Dict[ReasoningEffort, str] = {
    ReasoningEffort.NONE: "minimal",
    ReasoningEffort.LOW: "low",
    ReasoningEffort.MEDIUM: "medium",
    ReasoningEffort.HIGH: "high",
}

# Images API only offers fixed sizes; pick the closest to each aspect ratio
_ASPECT_RATIO_SIZES: Dict[str, str] = {
    "16:9": "1536x1024",
    "3:2": "1536x1024",
    "4:3": "1536x1024",
    "1:1": "1024x1024",
    "3:4": "1024x1536",
    "2:3": "1024x1536",
    "9:16": "1024x1536",
}


def _is_reasoning_model(model: str) -> bool:
    """Check if model is o-series (o1/o3/o4) or gpt-5."""
    return str(model).startswith(("o", "gpt-5"))


def _reasoning_block(model: str, effort: ReasoningEffort) -> Optional[Dict[str, str]]:
    if not _is_reasoning_model(model):
        return None
    value = _REASONING_EFFORTS[effort]
    # o-series models reject "minimal"
    if value == "minimal" and not str(model).startswith("gpt-5"):
        value = "low"
    return {"effort": value}


def _extract_citations(response: Any) -> List[Citation]:
    citations: List[Citation] = []
    for item in getattr(response, "output", None) or []:
        if getattr(item, "type", None) != "message":
            continue
        for content in getattr(item, "content", None) or []:
            for annotation in getattr(content, "annotations", None) or []:
                if getattr(annotation, "type", None) != "url_citation":
                    continue
                citations.append(
                    Citation(
                        title=getattr(annotation, "title", None),
                        uri=getattr(annotation, "url", None),
                    )
                )
    return citations


class OpenAIProvider:
    """Capability adapter backed by ``openai.AsyncOpenAI``."""

    name = "openai"

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        client: Optional[AsyncOpenAI] = None,
        timeout_seconds: Optional[float] = None,
    ):
        if client is not None:
            self._client = client
            return
        if not api_key:
            raise ProviderConfigurationError("OPENAI_API_KEY environment variable is not set")
        self._client = AsyncOpenAI(api_key=api_key, timeout=timeout_seconds or 120)
        logger.info("✓ OpenAI client initialized")

    async def generate_text(
        self, model: str, prompt: str, options: TextGenerationOptions
    ) -> TextGenerationResponse:
        request: Dict[str, Any] = {"model": model, "input": prompt}
        if options.enable_web_grounding:
            request["tools"] = [{"type": "web_search"}]
        reasoning = _reasoning_block(model, options.reasoning_effort)
        if reasoning:
            request["reasoning"] = reasoning

        response = await self._client.responses.create(**request)
        return TextGenerationResponse(
            text=getattr(response, "output_text", None),
            citations=_extract_citations(response),
        )

    async def generate_structured(
        self, model: str, prompt: str, schema: Dict[str, Any]
    ) -> str:
        response = await self._client.responses.create(
            model=model,
            input=prompt,
            text={
                "format": {
                    "type": "json_schema",
                    "name": "research_report",
                    "schema": schema,
                    # strict mode would force every property to be required
                    "strict": False,
                }
            },
        )
        return getattr(response, "output_text", None) or ""

    async def generate_image(
        self, model: str, prompt: str, *, aspect_ratio: str
    ) -> ImageGenerationResponse:
        request: Dict[str, Any] = {
            "model": model,
            "prompt": prompt,
            "size": _ASPECT_RATIO_SIZES.get(aspect_ratio, "1536x1024"),
            "n": 1,
        }
        if str(model).startswith("dall-e"):
            request["response_format"] = "b64_json"

        response = await self._client.images.generate(**request)
        mime_type = f"image/{getattr(response, 'output_format', None) or 'png'}"
        parts = [
            ImagePart(mime_type=mime_type, base64_data=item.b64_json)
            if getattr(item, "b64_json", None)
            else ImagePart()
            for item in (getattr(response, "data", None) or [])
        ]
        return ImageGenerationResponse(parts=parts)


__all__ = ["OpenAIProvider"]
