"""Gemini native image generation provider."""

import asyncio

from google import genai
from google.genai import types

from ugc_engine.adapters.image_gen.base import ImageGenProvider, ImageGenRequest, ImageGenResult
from ugc_engine.adapters.llm.gemini import to_gemini_parts, usage_from_response
from ugc_engine.config import settings
from ugc_engine.exceptions import ProviderError
from ugc_engine.logging import get_logger

logger = get_logger(__name__)


class GeminiImageProvider(ImageGenProvider):
    """Promotional image generation with Gemini image models.

    The product photos travel as inline parts so the model keeps the real
    product's look in the generated scene.
    """

    def __init__(self, api_key: str | None = None, model: str | None = None) -> None:
        self.api_key = api_key or settings.google_api_key
        self.model = model or settings.gemini_image_model
        self._client: genai.Client | None = None

        if not self.api_key:
            logger.warning("Google API key not configured for Gemini image generation")

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            if not self.api_key:
                raise ProviderError("Google API key not configured", provider=self.name)
            self._client = genai.Client(
                api_key=self.api_key,
                http_options=types.HttpOptions(timeout=int(settings.http_timeout * 1000)),
            )
        return self._client

    @property
    def name(self) -> str:
        return "google"

    async def generate(self, request: ImageGenRequest) -> ImageGenResult:
        """Generate one image from the request parts."""
        config = types.GenerateContentConfig(
            response_modalities=["TEXT", "IMAGE"],
            image_config=types.ImageConfig(
                aspect_ratio=request.aspect_ratio,
                image_size=request.image_size,
            ),
        )
        contents = to_gemini_parts(request.parts)

        loop = asyncio.get_running_loop()
        try:
            response = await loop.run_in_executor(
                None,
                lambda: self.client.models.generate_content(
                    model=self.model,
                    contents=contents,
                    config=config,
                ),
            )
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(f"Gemini image request failed: {e}", provider=self.name) from e

        image_data: bytes | None = None
        mime_type = "image/png"
        text_chunks: list[str] = []
        candidates = response.candidates or []
        if candidates and candidates[0].content and candidates[0].content.parts:
            for part in candidates[0].content.parts:
                if part.inline_data is not None and part.inline_data.data and image_data is None:
                    image_data = part.inline_data.data
                    mime_type = part.inline_data.mime_type or mime_type
                elif part.text:
                    text_chunks.append(part.text)

        if image_data is None:
            raise ProviderError("No image data in Gemini response", provider=self.name)

        logger.info(
            "gemini_image_generated",
            model=self.model,
            aspect_ratio=request.aspect_ratio,
            size_bytes=len(image_data),
        )

        return ImageGenResult(
            image_data=image_data,
            mime_type=mime_type,
            model=self.model,
            text="\n".join(text_chunks) or None,
            usage_metadata=usage_from_response(response),
        )

    async def health_check(self) -> bool:
        return bool(self.api_key)
