"""Stage 2 (video pipeline): write UGC scripts for the analyzed product."""

import json
import math

from sqlalchemy import select
from sqlalchemy.orm import Session

from ugc_engine.adapters.content import TextPart
from ugc_engine.adapters.llm.base import LLMProvider
from ugc_engine.db.models import GenerationTaskModel, ProductModel, ScriptModel
from ugc_engine.domain.enums import LANGUAGE_NAMES, Language
from ugc_engine.domain.schemas import MultipleScripts
from ugc_engine.exceptions import PreconditionError, ProviderError
from ugc_engine.logging import get_logger
from ugc_engine.utils import run_async

logger = get_logger(__name__)

MIN_SCRIPTS, MAX_SCRIPTS = 1, 10
MIN_DURATION, MAX_DURATION = 5, 60

# Leave room for the intro/outro the video model adds around the story
DURATION_HEADROOM = 0.17


def script_duration_for(target_duration: int) -> int:
    """Seconds of story content that fit in a clip of ``target_duration``."""
    return math.floor(target_duration * (1 - DURATION_HEADROOM))


def scene_count_for(target_duration: int) -> int:
    return 2 if target_duration <= 12 else 4


def build_script_prompt(
    product: ProductModel,
    count: int,
    target_duration: int,
    language: Language,
) -> str:
    script_duration = script_duration_for(target_duration)
    scenes = scene_count_for(target_duration)

    def block(value: object) -> str:
        return json.dumps(value, ensure_ascii=False, indent=2)

    return f"""You are an expert UGC video scriptwriter. Write {count} different short \
video scripts for the product below.

# Product
- Name: {product.name}
- Description: {product.description}
- Category: {product.category}

## Appearance
{block(product.appearance)}

## Functionality
{block(product.functionality)}

## Target audience
{block(product.target_audience)}

## Usage scenario
{block(product.usage_scenario)}

## Emotional positioning
{block(product.emotional_positioning)}

# Requirements
- Length: the whole story must fit in {script_duration} seconds
- Language: write everything in {LANGUAGE_NAMES[language]}
- Number of scripts: {count}, each with a different angle (scenario, emotion or audience)
- Voice: authentic first-person UGC style, natural and relatable, building trust
- Hook: the first 3 seconds must stop the scroll
- Character: a believable everyday user with a clear emotional arc
- Key scenes: exactly {scenes} scenes, each one sentence, in story order
- The product must appear naturally, never as a hard sell"""


def generate_scripts(
    session: Session,
    task: GenerationTaskModel,
    product: ProductModel,
    llm: LLMProvider,
) -> list[ScriptModel]:
    """Write ``task.count`` scripts, or return the ones already written for the task.

    Raises:
        PreconditionError: If count or duration is out of range
        ProviderError: If the model returns no scripts
    """
    count = task.count
    target_duration = task.target_duration
    if not MIN_SCRIPTS <= count <= MAX_SCRIPTS:
        raise PreconditionError(f"Script count must be between {MIN_SCRIPTS} and {MAX_SCRIPTS}")
    if target_duration is None or not MIN_DURATION <= target_duration <= MAX_DURATION:
        raise PreconditionError(
            f"Target duration must be between {MIN_DURATION} and {MAX_DURATION} seconds"
        )

    existing = list(
        session.execute(
            select(ScriptModel)
            .where(ScriptModel.task_id == task.id)
            .order_by(ScriptModel.created_at)
        ).scalars()
    )
    if existing:
        logger.info("scripts_reused", task_id=str(task.id), count=len(existing))
        return existing

    language = Language(task.language)
    prompt = build_script_prompt(product, count, target_duration, language)
    result = run_async(
        llm.generate_structured([TextPart(prompt)], MultipleScripts, temperature=0.9)
    )

    if not result.data.scripts:
        raise ProviderError("Failed to generate scripts", provider=llm.name)

    scripts: list[ScriptModel] = []
    for index, item in enumerate(result.data.scripts):
        script = ScriptModel(
            task_id=task.id,
            product_id=product.id,
            title=item.title,
            hook=item.hook,
            storyline=item.storyline,
            character=item.character.model_dump(),
            key_scenes=item.key_scenes,
            duration=script_duration_for(target_duration),
            language=language.value,
            provider=llm.name,
            model=result.model,
            # Usage covers the whole batch; record it once
            usage_metadata=result.usage_metadata if index == 0 else None,
        )
        session.add(script)
        scripts.append(script)
    session.commit()

    logger.info(
        "scripts_generated",
        task_id=str(task.id),
        requested=count,
        generated=len(scripts),
    )
    return scripts
