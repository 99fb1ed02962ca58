"""Stage 1 (both pipelines): analyze the uploaded product photos."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ugc_engine.adapters.content import ContentPart, ImagePart, TextPart
from ugc_engine.adapters.llm.base import LLMProvider
from ugc_engine.db.models import GenerationTaskModel, ProductImageModel, ProductModel
from ugc_engine.domain.enums import FrameRole
from ugc_engine.domain.schemas import ProductAnalysis
from ugc_engine.exceptions import ArtifactNotFoundError
from ugc_engine.logging import get_logger
from ugc_engine.services.storage import StorageService
from ugc_engine.utils import run_async

logger = get_logger(__name__)

ANALYSIS_PROMPT = """You are a senior e-commerce product analyst preparing a brief for a \
UGC (user-generated content) marketing video.

Study the attached product photos and describe the product:
- name, one-paragraph description and category
- appearance: shape, main colors, materials, approximate size, notable design features
- functionality: main function, how it is used, unique selling points
- target audience: age range, gender, occupation, lifestyle
- usage scenario: where and when it is used, typical environment
- emotional positioning: customer pain points, benefits, the core emotional appeal

Only describe what the photos support; infer the audience and scenarios a \
marketer would reasonably target."""


def load_source_image_parts(
    session: Session,
    storage: StorageService,
    image_ids: list[str] | list[UUID],
    role: FrameRole | None = None,
) -> list[ImagePart]:
    """Read uploaded product photos as inline image parts, in request order."""
    ids = [UUID(str(i)) for i in image_ids]
    if not ids:
        return []

    rows = session.execute(
        select(ProductImageModel).where(ProductImageModel.id.in_(ids))
    ).scalars()
    by_id = {row.id: row for row in rows}

    parts: list[ImagePart] = []
    for image_id in ids:
        image = by_id.get(image_id)
        if image is None:
            raise ArtifactNotFoundError(f"Source image not found: {image_id}")
        parts.append(
            ImagePart(data=storage.read_bytes(image.path), mime_type=image.mime_type, role=role)
        )
    return parts


def analyze_product(
    session: Session,
    task: GenerationTaskModel,
    llm: LLMProvider,
    storage: StorageService,
) -> ProductModel:
    """Create the product analysis for ``task``, or return the existing one.

    Raises:
        ArtifactNotFoundError: If the task's source images are missing
        ProviderError: If the model call fails or returns an invalid analysis
    """
    existing = session.execute(
        select(ProductModel)
        .where(ProductModel.task_id == task.id)
        .order_by(ProductModel.created_at)
        .limit(1)
    ).scalar_one_or_none()
    if existing is not None:
        logger.info("product_analysis_reused", task_id=str(task.id), product_id=str(existing.id))
        return existing

    images = load_source_image_parts(session, storage, task.source_image_ids)
    if not images:
        raise ArtifactNotFoundError("No source images attached to task")

    parts: list[ContentPart] = [TextPart(ANALYSIS_PROMPT), *images]
    result = run_async(llm.generate_structured(parts, ProductAnalysis, temperature=0.4))
    analysis = result.data

    product = ProductModel(
        task_id=task.id,
        name=analysis.name,
        description=analysis.description,
        category=analysis.category,
        appearance=analysis.appearance.model_dump(),
        functionality=analysis.functionality.model_dump(),
        target_audience=analysis.target_audience.model_dump(),
        usage_scenario=analysis.usage_scenario.model_dump(),
        emotional_positioning=analysis.emotional_positioning.model_dump(),
        source_image_ids=[str(i) for i in task.source_image_ids],
        provider=llm.name,
        model=result.model,
        usage_metadata=result.usage_metadata,
    )
    session.add(product)
    session.commit()

    logger.info(
        "product_analyzed",
        task_id=str(task.id),
        product_id=str(product.id),
        product_name=product.name,
        image_count=len(images),
    )
    return product
