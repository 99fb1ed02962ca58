"""Google Gemini LLM provider with JSON-schema output."""

import asyncio
from typing import Any

from google import genai
from google.genai import types

from ugc_engine.adapters.content import ContentPart, ImagePart, TextPart
from ugc_engine.adapters.llm.base import LLMProvider, StructuredResult, T, decode_structured
from ugc_engine.config import settings
from ugc_engine.exceptions import ProviderError
from ugc_engine.logging import get_logger

logger = get_logger(__name__)


def to_gemini_parts(parts: list[ContentPart]) -> list[types.Part]:
    """Convert typed content parts to google-genai parts."""
    converted: list[types.Part] = []
    for part in parts:
        if isinstance(part, TextPart):
            converted.append(types.Part.from_text(text=part.text))
        elif isinstance(part, ImagePart):
            converted.append(types.Part.from_bytes(data=part.data, mime_type=part.mime_type))
    return converted


def usage_from_response(response: Any) -> dict[str, Any] | None:
    """Extract the usage metadata block as plain JSON."""
    usage = getattr(response, "usage_metadata", None)
    if usage is None:
        return None
    return usage.model_dump(mode="json", exclude_none=True)


class GeminiProvider(LLMProvider):
    """Google Gemini API provider.

    Multimodal: product photos are sent inline next to the instruction text,
    and the response is constrained to the requested pydantic schema.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
    ) -> None:
        """Initialize Gemini provider.

        Args:
            api_key: Google API key (uses GOOGLE_API_KEY from settings if not provided)
            model: Model name (defaults to settings.gemini_model)
        """
        self.api_key = api_key or settings.google_api_key
        self.model = model or settings.gemini_model
        self._client: genai.Client | None = None

        if not self.api_key:
            logger.warning("Google API key not configured for Gemini")

    @property
    def client(self) -> genai.Client:
        """Get or create the Gemini client."""
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

    async def generate_structured(
        self,
        parts: list[ContentPart],
        schema: type[T],
        temperature: float = 0.7,
    ) -> StructuredResult[T]:
        """Generate a schema-constrained completion."""
        config = types.GenerateContentConfig(
            temperature=temperature,
            response_mime_type="application/json",
            response_schema=schema,
        )
        contents = to_gemini_parts(parts)

        logger.debug(
            "gemini_request",
            model=self.model,
            schema=schema.__name__,
            part_count=len(contents),
        )

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
            raise ProviderError(f"Gemini request failed: {e}", provider=self.name) from e

        if not response.text:
            raise ProviderError("Gemini returned an empty response", provider=self.name)

        data = decode_structured(response.text, schema, self.name)
        usage = usage_from_response(response)

        logger.info(
            "gemini_response",
            model=self.model,
            schema=schema.__name__,
            tokens_used=(usage or {}).get("total_token_count", 0),
        )

        return StructuredResult(data=data, model=self.model, usage_metadata=usage)

    async def health_check(self) -> bool:
        return bool(self.api_key)
