"""contracts
============

Canonical data contracts shared by the research pipeline stages and the
surfaces that display their output.

This module contains **zero** runtime side-effects. It defines the pydantic
models and enums that flow from the research stage, through structuring and
image generation, into the snapshots pushed to the UI. Every model is frozen
and serialises with camelCase aliases (``chartKind``, ``imagePrompt``...).
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Union

import structlog
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictFloat,
    StrictInt,
    StrictStr,
    computed_field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Enums / Constants
# ---------------------------------------------------------------------------


class Audience(str, Enum):
    """Target reader persona, fixed for the whole pipeline run."""

    GENERAL = "General Public"
    EXECUTIVE = "Business Executives"
    ACADEMIC = "Researchers & Academics"
    KIDS = "Children (5-10 years)"
    TEENS = "Students & Teens"


class ChartKind(str, Enum):
    BAR = "bar"
    PIE = "pie"
    AREA = "area"
    LINE = "line"
    NONE = "none"


_TYPED_CHART_KINDS = tuple(kind.value for kind in ChartKind if kind is not ChartKind.NONE)


class PipelineState(str, Enum):
    """Progress vocabulary shared with the UI, in pipeline order."""

    IDLE = "idle"
    RESEARCHING = "researching"
    STRUCTURING = "structuring"
    GENERATING_IMAGE = "generating_image"
    COMPLETE = "complete"
    ERROR = "error"


# Audience picker metadata: (short label, icon)
AUDIENCE_OPTIONS: Dict[Audience, Dict[str, str]] = {
    Audience.GENERAL: {"label": "General Public", "icon": "👥"},
    Audience.EXECUTIVE: {"label": "Business Executives", "icon": "💼"},
    Audience.ACADEMIC: {"label": "Researchers", "icon": "🔬"},
    Audience.KIDS: {"label": "Kids", "icon": "🎈"},
    Audience.TEENS: {"label": "Students", "icon": "🎓"},
}

# Progress bar percentage and caption shown for each state
STATE_PROGRESS: Dict[PipelineState, int] = {
    PipelineState.IDLE: 0,
    PipelineState.RESEARCHING: 30,
    PipelineState.STRUCTURING: 60,
    PipelineState.GENERATING_IMAGE: 90,
    PipelineState.COMPLETE: 100,
    PipelineState.ERROR: 100,
}

STATE_MESSAGES: Dict[PipelineState, str] = {
    PipelineState.RESEARCHING: "Scanning global database & verifying sources...",
    PipelineState.STRUCTURING: "Analyzing data points & structuring report...",
    PipelineState.GENERATING_IMAGE: "Painting custom visualization...",
}


class _Contract(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


# ---------------------------------------------------------------------------
# Core transfer objects
# ---------------------------------------------------------------------------


class Source(_Contract):
    """A grounding citation. Identity is the ``uri`` alone."""

    title: str = Field(..., min_length=1)
    uri: str = Field(..., min_length=1)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Source):
            return self.uri == other.uri
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.uri)


class DataPoint(BaseModel):
    """One chart point; extra named number/string series are kept verbatim."""

    model_config = ConfigDict(frozen=True, extra="allow")

    name: StrictStr
    value: Union[StrictInt, StrictFloat]

    @model_validator(mode="after")
    def _extras_are_scalars(self) -> "DataPoint":
        for key, extra in (self.model_extra or {}).items():
            if isinstance(extra, bool) or not isinstance(extra, (int, float, str)):
                raise ValueError(f"extra field '{key}' must be a number or string")
        return self


class StructuredReport(_Contract):
    """Output of the structuring stage: a report with no sources yet."""

    summary: str
    chart_kind: ChartKind
    chart_data: List[DataPoint]
    chart_title: str
    chart_x_axis: Optional[str] = None
    chart_y_axis: Optional[str] = None
    image_prompt: str

    @model_validator(mode="before")
    @classmethod
    def _chart_kind_needs_data(cls, data: Any) -> Any:
        # A typed chart with no points must never reach the display layer
        if not isinstance(data, dict):
            return data
        kind_key = "chartKind" if "chartKind" in data else "chart_kind"
        points_key = "chartData" if "chartData" in data else "chart_data"
        kind = getattr(data.get(kind_key), "value", data.get(kind_key))
        points = data.get(points_key)
        if kind in _TYPED_CHART_KINDS and isinstance(points, list) and not points:
            logger.warning("Chart kind downgraded to none: no data points", claimed_kind=kind)
            return {**data, kind_key: ChartKind.NONE.value}
        return data


class ReportResult(StructuredReport):
    """Canonical merged report: structured payload plus research sources."""

    sources: List[Source] = Field(default_factory=list)

    @field_validator("sources")
    @classmethod
    def _unique_uris(cls, value: List[Source]) -> List[Source]:
        seen = set()
        for source in value:
            if source.uri in seen:
                raise ValueError(f"duplicate source uri: {source.uri}")
            seen.add(source.uri)
        return value

    @classmethod
    def merge(
        cls, structured: StructuredReport, sources: Iterable[Source]
    ) -> "ReportResult":
        """Combine the structuring output with the deduplicated sources."""
        return cls(
            summary=structured.summary,
            chart_kind=structured.chart_kind,
            chart_data=list(structured.chart_data),
            chart_title=structured.chart_title,
            chart_x_axis=structured.chart_x_axis,
            chart_y_axis=structured.chart_y_axis,
            image_prompt=structured.image_prompt,
            sources=list(sources),
        )


class GeneratedImage(_Contract):
    """Self-contained illustration payload (``data:`` URI)."""

    encoded_content: str
    mime_type: str

    @classmethod
    def from_base64(cls, mime_type: str, base64_data: str) -> "GeneratedImage":
        return cls(
            encoded_content=f"data:{mime_type};base64,{base64_data}",
            mime_type=mime_type,
        )


class PipelineSnapshot(_Contract):
    """Immutable view of one pipeline run, published on every transition."""

    run_id: int = 0
    state: PipelineState = PipelineState.IDLE
    error: Optional[str] = None
    result: Optional[ReportResult] = None
    image: Optional[GeneratedImage] = None

    @computed_field  # type: ignore[misc]
    @property
    def progress(self) -> int:
        return STATE_PROGRESS[self.state]

    @computed_field  # type: ignore[misc]
    @property
    def message(self) -> Optional[str]:
        return STATE_MESSAGES.get(self.state)

    @computed_field  # type: ignore[misc]
    @property
    def is_loading(self) -> bool:
        return self.state in (
            PipelineState.RESEARCHING,
            PipelineState.STRUCTURING,
            PipelineState.GENERATING_IMAGE,
        )

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


__all__ = [
    "Audience",
    "AUDIENCE_OPTIONS",
    "ChartKind",
    "DataPoint",
    "GeneratedImage",
    "PipelineSnapshot",
    "PipelineState",
    "ReportResult",
    "Source",
    "STATE_MESSAGES",
    "STATE_PROGRESS",
    "StructuredReport",
]
