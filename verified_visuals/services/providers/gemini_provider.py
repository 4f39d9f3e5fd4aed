"""
Gemini adapter
--------------
Implements the three capability contracts on top of the ``google-genai``
SDK: Google Search grounding for research, a JSON response schema for
structuring and inline image parts for illustration.
"""

from __future__ import annotations

import base64
from typing import Any, Dict, List, Optional

import structlog
from google import genai
from google.genai import types

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

# ReasoningEffort -> thinking token budget (0 disables thinking)
_THINKING_BUDGETS: Dict[ReasoningEffort, int] = {
    ReasoningEffort.NONE: 0,
    ReasoningEffort.LOW: 1024,
    ReasoningEffort.MEDIUM: 8192,
    ReasoningEffort.HIGH: 24576,
}


def to_gemini_schema(schema: Dict[str, Any]) -> types.Schema:
    """Translate a JSON-Schema style dict into the Gemini ``Schema`` dialect."""
    kwargs: Dict[str, Any] = {"type": types.Type(str(schema["type"]).upper())}
    if "properties" in schema:
        kwargs["properties"] = {
            name: to_gemini_schema(sub) for name, sub in schema["properties"].items()
        }
        # Keep the declared field order in the generated JSON
        kwargs["property_ordering"] = list(schema["properties"].keys())
    if "items" in schema:
        kwargs["items"] = to_gemini_schema(schema["items"])
    if "required" in schema:
        kwargs["required"] = list(schema["required"])
    if "enum" in schema:
        kwargs["enum"] = list(schema["enum"])
    if "description" in schema:
        kwargs["description"] = schema["description"]
    return types.Schema(**kwargs)


def _first_candidate(response: Any) -> Optional[Any]:
    candidates = getattr(response, "candidates", None) or []
    return candidates[0] if candidates else None


def _extract_citations(response: Any) -> List[Citation]:
    candidate = _first_candidate(response)
    metadata = getattr(candidate, "grounding_metadata", None) if candidate else None
    chunks = getattr(metadata, "grounding_chunks", None) or []
    citations: List[Citation] = []
    for chunk in chunks:
        web = getattr(chunk, "web", None)
        if web is None:
            citations.append(Citation())
            continue
        citations.append(Citation(title=getattr(web, "title", None), uri=getattr(web, "uri", None)))
    return citations


def _extract_image_parts(response: Any) -> List[ImagePart]:
    candidate = _first_candidate(response)
    content = getattr(candidate, "content", None) if candidate else None
    parts = getattr(content, "parts", None) or []
    extracted: List[ImagePart] = []
    for part in parts:
        inline = getattr(part, "inline_data", None)
        if inline is None or not getattr(inline, "data", None):
            extracted.append(ImagePart())
            continue
        data = inline.data
        # The SDK decodes to bytes; older payloads may still be base64 text
        if isinstance(data, (bytes, bytearray)):
            encoded = base64.b64encode(bytes(data)).decode("ascii")
        else:
            encoded = str(data)
        extracted.append(ImagePart(mime_type=inline.mime_type, base64_data=encoded))
    return extracted


class GeminiProvider:
    """Capability adapter backed by ``google.genai.Client``."""

    name = "gemini"

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        client: Optional[genai.Client] = None,
        timeout_seconds: Optional[float] = None,
    ):
        if client is not None:
            self._client = client
            return
        if not api_key:
            raise ProviderConfigurationError(
                "GEMINI_API_KEY (or GOOGLE_API_KEY) environment variable is not set"
            )
        http_options = None
        if timeout_seconds:
            http_options = types.HttpOptions(timeout=int(timeout_seconds * 1000))
        self._client = genai.Client(api_key=api_key, http_options=http_options)
        logger.info("✓ Gemini client initialized")

    async def generate_text(
        self, model: str, prompt: str, options: TextGenerationOptions
    ) -> TextGenerationResponse:
        tools = None
        if options.enable_web_grounding:
            tools = [types.Tool(google_search=types.GoogleSearch())]
        config = types.GenerateContentConfig(
            tools=tools,
            thinking_config=types.ThinkingConfig(
                thinking_budget=_THINKING_BUDGETS[options.reasoning_effort]
            ),
        )
        response = await self._client.aio.models.generate_content(
            model=model, contents=prompt, config=config
        )
        return TextGenerationResponse(
            text=response.text,
            citations=_extract_citations(response),
        )

    async def generate_structured(
        self, model: str, prompt: str, schema: Dict[str, Any]
    ) -> str:
        config = types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=to_gemini_schema(schema),
        )
        response = await self._client.aio.models.generate_content(
            model=model, contents=prompt, config=config
        )
        return response.text or ""

    async def generate_image(
        self, model: str, prompt: str, *, aspect_ratio: str
    ) -> ImageGenerationResponse:
        config = types.GenerateContentConfig(
            image_config=types.ImageConfig(aspect_ratio=aspect_ratio),
        )
        response = await self._client.aio.models.generate_content(
            model=model, contents=prompt, config=config
        )
        return ImageGenerationResponse(parts=_extract_image_parts(response))


__all__ = ["GeminiProvider", "to_gemini_schema"]
