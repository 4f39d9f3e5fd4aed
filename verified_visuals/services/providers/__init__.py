"""
Provider adapters for the generative-AI capabilities used by the pipeline.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from verified_visuals.core import config
from verified_visuals.services.errors import ProviderConfigurationError
from verified_visuals.services.providers.base import (
    Citation,
    ImageGenerationCapability,
    ImageGenerationResponse,
    ImagePart,
    ReasoningEffort,
    SchemaGenerationCapability,
    TextGenerationCapability,
    TextGenerationOptions,
    TextGenerationResponse,
)


def create_provider(name: Optional[str] = None):
    """Build a provider adapter from configuration.

    Raises:
        ProviderConfigurationError: unknown provider or missing credentials.
    """
    name = (name or config.get_provider_name()).lower()
    if name == "gemini":
        from verified_visuals.services.providers.gemini_provider import GeminiProvider

        return GeminiProvider(
            config.get_gemini_api_key(),
            timeout_seconds=config.PROVIDER_TIMEOUT_SECONDS,
        )
    if name == "openai":
        from verified_visuals.services.providers.openai_provider import OpenAIProvider

        return OpenAIProvider(
            config.get_openai_api_key(),
            timeout_seconds=config.PROVIDER_TIMEOUT_SECONDS,
        )
    raise ProviderConfigurationError(
        f"Unknown LLM_PROVIDER '{name}' (expected one of {', '.join(config.SUPPORTED_PROVIDERS)})"
    )


@lru_cache(maxsize=4)
def get_provider(name: Optional[str] = None):
    """Return a cached provider instance for ``name`` (or the configured one)."""
    return create_provider(name)


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
    "create_provider",
    "get_provider",
]
