"""ByteDance Seedance video generation provider (Volcano Engine Ark API)."""

from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from ugc_engine.adapters.video_gen.base import (
    VideoGenProvider,
    VideoGenRequest,
    VideoOperationStatus,
)
from ugc_engine.config import settings
from ugc_engine.domain.enums import ClipStatus
from ugc_engine.exceptions import ProviderError, SchemaValidationError
from ugc_engine.logging import get_logger

logger = get_logger(__name__)

TASKS_PATH = "/contents/generations/tasks"


# Wire schemas. Strict: a response that does not decode is a provider
# failure, never coerced.


class _StrictModel(BaseModel):
    model_config = ConfigDict(strict=True, extra="ignore")


class SeedanceTaskCreated(_StrictModel):
    id: str


class SeedanceContent(_StrictModel):
    video_url: str | None = None
    last_frame_url: str | None = None


class SeedanceError(_StrictModel):
    code: str | None = None
    message: str


class SeedanceTask(_StrictModel):
    id: str
    model: str | None = None
    status: ClipStatus
    content: SeedanceContent | None = None
    error: SeedanceError | None = None
    usage: dict[str, Any] | None = None
    created_at: int | None = None
    updated_at: int | None = None


def build_seedance_payload(request: VideoGenRequest, model: str) -> dict[str, Any]:
    """Build the task-creation body.

    Text goes first, followed by one ``image_url`` part per image carrying
    its role (first_frame, last_frame, reference_image).
    """
    content: list[dict[str, Any]] = [{"type": "text", "text": request.prompt}]
    for image in request.images:
        part: dict[str, Any] = {
            "type": "image_url",
            "image_url": {"url": image.to_data_uri()},
        }
        if image.role is not None:
            part["role"] = image.role.value
        content.append(part)

    return {
        "model": model,
        "content": content,
        "ratio": request.ratio,
        "duration": request.duration_seconds,
        "watermark": request.watermark,
        "generate_audio": request.generate_audio,
        "draft": request.draft,
    }


class SeedanceProvider(VideoGenProvider):
    """Seedance image/text-to-video via the Ark content-generation API."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the Seedance provider.

        Args:
            api_key: Ark API key. Falls back to settings.
            model: Seedance model id. Falls back to settings.
            base_url: Ark API base URL. Falls back to settings.
            timeout: Per-request timeout in seconds.
            transport: Optional httpx transport (tests pass a MockTransport).
        """
        self.api_key = api_key or settings.volcano_api_key
        self.model = model or settings.seedance_model
        self.base_url = (base_url or settings.volcano_api_base).rstrip("/")
        self.timeout = timeout or settings.http_timeout
        self._transport = transport

        if not self.api_key:
            logger.warning("Volcano API key not configured for Seedance")

    @property
    def name(self) -> str:
        return "bytedance"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            transport=self._transport,
        )

    def _raise_for_status(self, response: httpx.Response, action: str) -> None:
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ProviderError(
                f"Seedance {action} failed with HTTP {response.status_code}: {response.text[:200]}",
                provider=self.name,
            ) from e

    async def submit(self, request: VideoGenRequest) -> str:
        """Create a generation task and return its id."""
        if not self.api_key:
            raise ProviderError("Volcano API key not configured", provider=self.name)

        payload = build_seedance_payload(request, self.model)
        logger.info(
            "seedance_task_submitting",
            model=self.model,
            prompt_length=len(request.prompt),
            image_count=len(request.images),
            ratio=request.ratio,
        )

        try:
            async with self._client() as client:
                response = await client.post(TASKS_PATH, json=payload)
        except httpx.HTTPError as e:
            raise ProviderError(f"Seedance request failed: {e}", provider=self.name) from e

        self._raise_for_status(response, "task creation")
        created = self._decode(response, SeedanceTaskCreated)

        logger.info("seedance_task_submitted", operation_id=created.id)
        return created.id

    async def get_status(self, operation_id: str) -> VideoOperationStatus:
        """Fetch the task and map it onto a clip status."""
        if not self.api_key:
            raise ProviderError("Volcano API key not configured", provider=self.name)

        try:
            async with self._client() as client:
                response = await client.get(f"{TASKS_PATH}/{operation_id}")
        except httpx.HTTPError as e:
            raise ProviderError(f"Seedance status query failed: {e}", provider=self.name) from e

        self._raise_for_status(response, "status query")
        task = self._decode(response, SeedanceTask)

        video_url = task.content.video_url if task.content else None
        if task.status == ClipStatus.SUCCEEDED and not video_url:
            raise SchemaValidationError(
                f"Seedance task {operation_id} succeeded without a video_url",
                provider=self.name,
            )

        return VideoOperationStatus(
            operation_id=task.id,
            status=task.status,
            video_url=video_url,
            error_message=task.error.message if task.error else None,
            usage=task.usage,
        )

    def _decode(self, response: httpx.Response, schema: type[_StrictModel]) -> Any:
        try:
            return schema.model_validate_json(response.content)
        except ValidationError as e:
            raise SchemaValidationError(
                f"Unexpected Seedance response for {schema.__name__}: "
                f"{e.error_count()} validation error(s)",
                provider=self.name,
            ) from e

    async def health_check(self) -> bool:
        return bool(self.api_key)
