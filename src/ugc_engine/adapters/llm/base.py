"""Base interface for LLM providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from ugc_engine.adapters.content import ContentPart
from ugc_engine.exceptions import SchemaValidationError

T = TypeVar("T", bound=BaseModel)


@dataclass
class StructuredResult(Generic[T]):
    """Schema-validated response from an LLM provider."""

    data: T
    model: str
    usage_metadata: dict[str, Any] | None = None


def decode_structured(raw: str | bytes, schema: type[T], provider: str) -> T:
    """Decode a JSON response into ``schema``, failing loudly on mismatch.

    Raises:
        SchemaValidationError: If the payload is not valid JSON for the schema
    """
    try:
        return schema.model_validate_json(raw)
    except ValidationError as e:
        raise SchemaValidationError(
            f"{provider} response does not match {schema.__name__}: "
            f"{e.error_count()} validation error(s)",
            provider=provider,
        ) from e


class LLMProvider(ABC):
    """Abstract base class for LLM providers.

    Implementations:
    - GeminiProvider: Google Gemini with native JSON-schema output
    - StubLLMProvider: Returns canned data for testing
    """

    model: str

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier (stored on artifacts)."""
        ...

    @abstractmethod
    async def generate_structured(
        self,
        parts: list[ContentPart],
        schema: type[T],
        temperature: float = 0.7,
    ) -> StructuredResult[T]:
        """Generate a response that conforms to ``schema``.

        Args:
            parts: Prompt as typed text/image parts
            schema: Pydantic model the response must validate against
            temperature: Sampling temperature

        Returns:
            StructuredResult with the validated model instance

        Raises:
            ProviderError: If the provider call fails
            SchemaValidationError: If the response does not match the schema
        """
        ...

    async def health_check(self) -> bool:
        """Check if the provider is available.

        Returns:
            True if provider is operational
        """
        return True
