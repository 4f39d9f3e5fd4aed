"""
Illustration stage: generate a header image for the report.
"""

from __future__ import annotations

from typing import Optional

import structlog

from verified_visuals.contracts import GeneratedImage
from verified_visuals.core.config import IMAGE_ASPECT_RATIO
from verified_visuals.services.errors import ImageGenerationFailed, NoImageReturned
from verified_visuals.services.providers.base import (
    ImageGenerationCapability,
    ImageGenerationResponse,
)

logger = structlog.get_logger(__name__)


def _first_image(response: ImageGenerationResponse) -> Optional[GeneratedImage]:
    # Only the first image part is used
    for part in response.parts or []:
        if part.has_image:
            return GeneratedImage.from_base64(part.mime_type, part.base64_data)
    return None


class VisualClient:
    """Calls the image capability once and returns the first inline image."""

    def __init__(
        self,
        provider: ImageGenerationCapability,
        *,
        model: str,
        aspect_ratio: str = IMAGE_ASPECT_RATIO,
    ):
        self.provider = provider
        self.model = model
        self.aspect_ratio = aspect_ratio

    async def generate_image(self, prompt: str) -> GeneratedImage:
        try:
            response = await self.provider.generate_image(
                self.model, prompt, aspect_ratio=self.aspect_ratio
            )
            image = _first_image(response)
        except Exception as exc:
            raise ImageGenerationFailed(str(exc), cause=exc) from exc

        if image is None:
            raise NoImageReturned()

        logger.info(
            "Image generated",
            model=self.model,
            mime_type=image.mime_type,
            payload_chars=len(image.encoded_content),
        )
        return image


__all__ = ["VisualClient"]
