"""Stage 3 (video pipeline): break a script into storyboard shots."""

import json

from sqlalchemy import select
from sqlalchemy.orm import Session

from ugc_engine.adapters.content import TextPart
from ugc_engine.adapters.llm.base import LLMProvider
from ugc_engine.db.models import ProductModel, ScriptModel, ShotModel
from ugc_engine.domain.enums import LANGUAGE_NAMES, Language
from ugc_engine.domain.schemas import MultipleShots
from ugc_engine.logging import get_logger
from ugc_engine.utils import run_async

logger = get_logger(__name__)

DURATION_TOLERANCE = 1  # seconds


def build_shot_prompt(script: ScriptModel, product: ProductModel, target_duration: int) -> str:
    def block(value: object) -> str:
        return json.dumps(value, ensure_ascii=False, indent=2)

    return f"""You are an advertising storyboard artist and visual director. Turn the \
UGC script below into a detailed shot breakdown.

IMPORTANT: the shot durations must add up to {target_duration} seconds \
(within 1 second). Each shot lasts 2 to 6 seconds.

# Script
## Title
{script.title}

## Hook (first 3 seconds)
{script.hook}

## Storyline
{script.storyline}

## Character
{block(script.character)}

## Key scenes
{block(script.key_scenes)}

# Product
## Name
{product.name}

## Description
{product.description}

## Appearance
{block(product.appearance)}

# For every shot give
- shot number, short title and the key scene it belongs to
- duration in whole seconds
- shot type, camera angle and camera movement
- time of day and location
- the action on screen and its visible result
- atmosphere, lighting and mood
- how the product appears (write "no product" if it does not appear)
- whether the product must be clearly visible in frame

Write the descriptive fields in {LANGUAGE_NAMES[Language(script.language)]}."""


def generate_shot_breakdown(
    session: Session,
    script: ScriptModel,
    product: ProductModel,
    target_duration: int,
    llm: LLMProvider,
) -> list[ShotModel]:
    """Storyboard ``script``, or return its existing shots.

    Raises:
        ProviderError: If the model call fails or returns invalid shots
    """
    existing = list(
        session.execute(
            select(ShotModel)
            .where(ShotModel.script_id == script.id)
            .order_by(ShotModel.shot_number)
        ).scalars()
    )
    if existing:
        logger.info("shots_reused", script_id=str(script.id), count=len(existing))
        return existing

    prompt = build_shot_prompt(script, product, target_duration)
    result = run_async(llm.generate_structured([TextPart(prompt)], MultipleShots, temperature=0.7))

    total = sum(shot.duration for shot in result.data.shots)
    if abs(total - target_duration) > DURATION_TOLERANCE:
        logger.warning(
            "shot_duration_mismatch",
            script_id=str(script.id),
            target_duration=target_duration,
            total_duration=total,
        )

    shots: list[ShotModel] = []
    for index, item in enumerate(result.data.shots):
        shot = ShotModel(
            script_id=script.id,
            **item.model_dump(),
            provider=llm.name,
            model=result.model,
            usage_metadata=result.usage_metadata if index == 0 else None,
        )
        session.add(shot)
        shots.append(shot)
    session.commit()

    logger.info(
        "shots_generated",
        script_id=str(script.id),
        count=len(shots),
        total_duration=total,
    )
    return shots
