"""Stub LLM provider for testing."""

import json
from typing import Any

from ugc_engine.adapters.content import ContentPart
from ugc_engine.adapters.llm.base import LLMProvider, StructuredResult, T, decode_structured
from ugc_engine.logging import get_logger

logger = get_logger(__name__)

_PRODUCT = {
    "name": "AeroPress Travel Mug",
    "description": "An insulated stainless steel travel mug with a one-hand flip lid.",
    "category": "Kitchenware",
    "appearance": {
        "shape": "Cylindrical with a tapered base",
        "color": ["matte black", "brushed steel"],
        "material": "Stainless steel and BPA-free plastic",
        "size": "About 20 cm tall, 350 ml",
        "design_features": ["flip lid", "non-slip base"],
    },
    "functionality": {
        "main_function": "Keeps drinks hot or cold on the go",
        "usage_method": "Fill, close the lid, flip open to sip",
        "unique_selling_points": ["12-hour heat retention", "leak-proof seal"],
    },
    "target_audience": {
        "age_range": "22-40",
        "gender": "All",
        "occupation": "Office workers and commuters",
        "lifestyle": "Busy, on the move",
    },
    "usage_scenario": {
        "primary_location": "Commute and office",
        "usage_timing": "Morning",
        "environment": "Urban",
    },
    "emotional_positioning": {
        "pain_points": ["coffee goes cold", "spills in the bag"],
        "benefits": ["hot coffee all morning", "no leaks"],
        "emotional_appeal": "A calm, put-together start to the day",
    },
}

_SCRIPT = {
    "title": "The Commute That Stayed Warm",
    "hook": "My coffee used to be cold before I even reached the office.",
    "storyline": "A commuter discovers the mug keeps coffee hot through a long, hectic morning.",
    "character": {
        "name": "Maya",
        "age": "28",
        "occupation": "Designer",
        "personality": "Upbeat and practical",
        "emotional_arc": "Frustrated to relieved",
    },
    "key_scenes": ["Rushing out the door with the mug", "Sipping hot coffee at her desk"],
}


def _shot(number: int) -> dict[str, Any]:
    return {
        "shot_number": number,
        "title": f"Shot {number}",
        "scene_reference": _SCRIPT["key_scenes"][(number - 1) % 2],
        "duration": 4,
        "shot_type": "medium shot",
        "camera_angle": "eye level",
        "camera_movement": "slow push in",
        "time_description": "Early morning",
        "location_description": "Apartment doorway",
        "action": "Maya grabs the mug and heads out",
        "result": "She looks confident",
        "atmosphere": "Fresh and busy",
        "product_appearance": "Mug held in her right hand",
        "lighting": "Soft window light",
        "mood": "Optimistic",
        "requires_product_in_frame": number == 1,
    }


CANNED_RESPONSES: dict[str, dict[str, Any]] = {
    "ProductAnalysis": _PRODUCT,
    "MultipleScripts": {"scripts": [_SCRIPT]},
    "MultipleShots": {"shots": [_shot(1), _shot(2), _shot(3)]},
}


class StubLLMProvider(LLMProvider):
    """Stub provider that returns canned structured responses for testing.

    Responses go through the same schema decode as the real provider, so
    a stale canned payload fails the same way a bad model response would.
    """

    def __init__(self, responses: dict[str, dict[str, Any]] | None = None) -> None:
        self.model = "stub-llm"
        self.responses = {**CANNED_RESPONSES, **(responses or {})}
        self.calls: list[str] = []

    @property
    def name(self) -> str:
        return "stub"

    async def generate_structured(
        self,
        parts: list[ContentPart],
        schema: type[T],
        temperature: float = 0.7,  # noqa: ARG002
    ) -> StructuredResult[T]:
        """Return the canned payload registered for ``schema``."""
        logger.info("stub_llm_generate", schema=schema.__name__, part_count=len(parts))
        self.calls.append(schema.__name__)

        payload = self.responses.get(schema.__name__, {})
        data = decode_structured(json.dumps(payload), schema, self.name)
        return StructuredResult(
            data=data,
            model=self.model,
            usage_metadata={"total_token_count": 0},
        )
