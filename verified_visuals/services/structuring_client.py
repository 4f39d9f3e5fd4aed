"""
Structuring stage: turn free research text into a validated report payload.

The remote call is constrained by ``REPORT_RESPONSE_SCHEMA``, but the
response is still validated locally against :class:`StructuredReport`;
the provider's schema enforcement is treated as a hint, not a guarantee.
"""

from __future__ import annotations

from typing import Any, Dict

import structlog
from pydantic import ValidationError

from verified_visuals.contracts import Audience, ChartKind, StructuredReport
from verified_visuals.services.errors import StructuringFailed
from verified_visuals.services.prompts import build_structuring_prompt
from verified_visuals.services.providers.base import SchemaGenerationCapability

logger = structlog.get_logger(__name__)

# Provider-neutral JSON Schema; adapters translate it to their own dialect
REPORT_RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "summary": {"type": "string"},
        "chartKind": {
            "type": "string",
            "enum": [kind.value for kind in ChartKind],
        },
        "chartData": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "value": {"type": "number"},
                },
                "required": ["name", "value"],
            },
        },
        "chartTitle": {"type": "string"},
        "chartXAxis": {"type": "string"},
        "chartYAxis": {"type": "string"},
        "imagePrompt": {"type": "string"},
    },
    "required": ["summary", "chartKind", "chartData", "chartTitle", "imagePrompt"],
}


def parse_structured_report(payload: str) -> StructuredReport:
    """Validate a raw JSON payload; raise :class:`StructuringFailed` on any violation."""
    try:
        return StructuredReport.model_validate_json(payload or "{}")
    except ValidationError as exc:
        raise StructuringFailed(str(exc), cause=exc) from exc


class StructuringClient:
    """Extracts summary, chart data and an image prompt from research text."""

    def __init__(self, provider: SchemaGenerationCapability, *, model: str):
        self.provider = provider
        self.model = model

    async def structure(self, research_text: str, audience: Audience) -> StructuredReport:
        prompt = build_structuring_prompt(research_text, audience)
        try:
            payload = await self.provider.generate_structured(
                self.model, prompt, REPORT_RESPONSE_SCHEMA
            )
        except Exception as exc:
            logger.error("Structuring call failed", model=self.model, error=str(exc))
            raise StructuringFailed(str(exc), cause=exc) from exc

        try:
            report = parse_structured_report(payload)
        except StructuringFailed as exc:
            logger.error(
                "Structuring payload rejected",
                model=self.model,
                error=exc.upstream_message,
                payload_chars=len(payload or ""),
            )
            raise

        logger.info(
            "Structuring complete",
            model=self.model,
            chart_kind=report.chart_kind.value,
            data_points=len(report.chart_data),
        )
        return report


__all__ = ["REPORT_RESPONSE_SCHEMA", "StructuringClient", "parse_structured_report"]
