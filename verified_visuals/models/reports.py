"""
Report request/response models for the HTTP and WebSocket surfaces
"""

from typing import Annotated, Optional

from pydantic import BaseModel, Field, StringConstraints

from verified_visuals.contracts import Audience
from verified_visuals.core.config import TOPIC_MAX_LENGTH

Topic = Annotated[
    str,
    StringConstraints(strip_whitespace=True, min_length=1, max_length=TOPIC_MAX_LENGTH),
]


class ReportRequest(BaseModel):
    topic: Topic
    audience: Audience = Audience.GENERAL


class AudienceOption(BaseModel):
    value: Audience
    label: str
    icon: str


class ClientCommand(BaseModel):
    """Non-query WebSocket message (``{"action": "cancel"}`` / ``"ping"``)."""

    action: str = Field(..., pattern="^(cancel|ping)$")
    request_id: Optional[str] = None
