"""Image pipeline stage: promotional stills built from the product analysis."""

import time
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ugc_engine.adapters.content import TextPart
from ugc_engine.adapters.image_gen.base import ImageGenProvider, ImageGenRequest
from ugc_engine.db.models import GenerationTaskModel, ProductModel, PromotionalImageModel
from ugc_engine.domain.enums import LANGUAGE_NAMES, FrameRole, Language
from ugc_engine.logging import get_logger
from ugc_engine.services.product_analysis import load_source_image_parts
from ugc_engine.services.storage import StorageService
from ugc_engine.utils import run_async

logger = get_logger(__name__)

IMAGE_SIZE = "1K"


def _fact_lines(product: ProductModel) -> list[str]:
    appearance = product.appearance or {}
    functionality = product.functionality or {}
    audience = product.target_audience or {}
    scenario = product.usage_scenario or {}
    emotion = product.emotional_positioning or {}

    facts = [
        ("Product", product.name),
        ("Description", product.description),
        ("Category", product.category),
        ("Design features", ", ".join(appearance.get("design_features", []))),
        ("Main function", functionality.get("main_function", "")),
        ("Selling points", ", ".join(functionality.get("unique_selling_points", []))),
        ("Audience age", audience.get("age_range", "")),
        ("Audience lifestyle", audience.get("lifestyle", "")),
        ("Setting", scenario.get("primary_location", "")),
        ("Environment", scenario.get("environment", "")),
        ("Emotional appeal", emotion.get("emotional_appeal", "")),
    ]
    return [f"- {label}: {value}" for label, value in facts if value]


def build_image_prompt(product: ProductModel, language: Language, index: int, total: int) -> str:
    facts = "\n".join(_fact_lines(product))
    return f"""Create a professional promotional image for this product \
(variation {index + 1} of {total}).

{facts}

Requirements:
- Any text in the image must be written in {LANGUAGE_NAMES[language]}
- High quality commercial photography look
- The product is the clear focal point
- Include a short, catchy marketing line
- Composition suitable for social media"""


def list_promotional_images(session: Session, task_id: UUID) -> list[PromotionalImageModel]:
    return list(
        session.execute(
            select(PromotionalImageModel)
            .where(PromotionalImageModel.task_id == task_id)
            .order_by(PromotionalImageModel.image_index)
        ).scalars()
    )


def generate_promotional_image(
    session: Session,
    task: GenerationTaskModel,
    product: ProductModel,
    index: int,
    provider: ImageGenProvider,
    storage: StorageService,
) -> PromotionalImageModel:
    """Generate, store and record image number ``index`` (0-based).

    The product photos are sent along as reference images.

    Raises:
        ArtifactNotFoundError: If a source photo is missing
        ProviderError: If the provider returns no image
    """
    language = Language(task.language)
    prompt = build_image_prompt(product, language, index, task.count)
    photos = load_source_image_parts(
        session, storage, task.source_image_ids, role=FrameRole.REFERENCE_IMAGE
    )
    request = ImageGenRequest(
        parts=[TextPart(prompt), *photos],
        aspect_ratio=task.aspect_ratio,
        image_size=IMAGE_SIZE,
    )

    started = time.monotonic()
    result = run_async(provider.generate(request))
    elapsed_ms = int((time.monotonic() - started) * 1000)

    path = f"promotional/{task.id}/image_{index + 1}.png"
    asset = storage.save_bytes(path, result.image_data, result.mime_type)
    width, height = provider.get_aspect_ratio_size(task.aspect_ratio)

    image = PromotionalImageModel(
        task_id=task.id,
        product_id=product.id,
        image_index=index,
        path=path,
        mime_type=result.mime_type,
        width=width,
        height=height,
        file_size=asset.file_size_bytes,
        prompt=prompt,
        generated_text=result.text,
        generation_time_ms=elapsed_ms,
        provider=provider.name,
        model=result.model,
        usage_metadata=result.usage_metadata,
    )
    session.add(image)
    session.commit()

    logger.info(
        "promotional_image_generated",
        task_id=str(task.id),
        image_id=str(image.id),
        index=index,
        generation_time_ms=elapsed_ms,
    )
    return image
