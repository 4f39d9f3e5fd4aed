"""
Research stage: grounded text generation plus citation harvesting.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

import structlog

from verified_visuals.contracts import Audience, Source
from verified_visuals.core.config import NO_RESEARCH_FALLBACK_TEXT
from verified_visuals.services.errors import ResearchFailed
from verified_visuals.services.prompts import build_research_prompt
from verified_visuals.services.providers.base import (
    Citation,
    ReasoningEffort,
    TextGenerationCapability,
    TextGenerationOptions,
)
from verified_visuals.services.source_deduplicator import dedupe_sources

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ResearchFindings:
    text: str
    sources: List[Source] = field(default_factory=list)


def _citation_to_source(citation: Optional[Citation]) -> Optional[Source]:
    if citation is None or not citation.title or not citation.uri:
        return None
    return Source(title=citation.title, uri=citation.uri)


class ResearchClient:
    """Runs the grounded research call for a topic and audience."""

    def __init__(
        self,
        provider: TextGenerationCapability,
        *,
        model: str,
        reasoning_effort: ReasoningEffort = ReasoningEffort.NONE,
    ):
        self.provider = provider
        self.model = model
        # Latency matters more than deliberation here
        self.options = TextGenerationOptions(
            enable_web_grounding=True,
            reasoning_effort=reasoning_effort,
        )

    async def research(self, topic: str, audience: Audience) -> ResearchFindings:
        """Research ``topic`` for ``audience``.

        Missing text is replaced by a fallback so later stages still run;
        any provider error is raised as :class:`ResearchFailed`.
        """
        prompt = build_research_prompt(topic, audience)
        try:
            response = await self.provider.generate_text(self.model, prompt, self.options)
        except Exception as exc:
            logger.error("Research call failed", model=self.model, error=str(exc))
            raise ResearchFailed(str(exc), cause=exc) from exc

        text = response.text if response.text and response.text.strip() else None
        if text is None:
            logger.warning("Research returned no text; using fallback", model=self.model)
            text = NO_RESEARCH_FALLBACK_TEXT

        citations = response.citations or []
        sources = dedupe_sources(_citation_to_source(c) for c in citations)
        logger.info(
            "Research complete",
            model=self.model,
            text_chars=len(text),
            citations=len(citations),
            sources=len(sources),
        )
        return ResearchFindings(text=text, sources=sources)


__all__ = ["ResearchClient", "ResearchFindings"]
