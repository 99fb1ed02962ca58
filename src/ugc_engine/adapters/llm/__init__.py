"""LLM provider adapters."""

from ugc_engine.adapters.llm.base import LLMProvider, StructuredResult, decode_structured
from ugc_engine.adapters.llm.gemini import GeminiProvider
from ugc_engine.adapters.llm.stub import StubLLMProvider

__all__ = [
    "GeminiProvider",
    "LLMProvider",
    "StructuredResult",
    "StubLLMProvider",
    "decode_structured",
]
