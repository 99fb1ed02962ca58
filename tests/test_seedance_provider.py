"""Tests for the Seedance video generation provider."""

import json

import httpx
import pytest

from ugc_engine.adapters.content import ImagePart
from ugc_engine.adapters.video_gen.base import VideoGenRequest
from ugc_engine.adapters.video_gen.seedance import (
    TASKS_PATH,
    SeedanceProvider,
    build_seedance_payload,
)
from ugc_engine.domain.enums import ClipStatus, FrameRole
from ugc_engine.exceptions import ProviderError, SchemaValidationError

BASE_URL = "https://ark.example.com/api/v3"


def _provider(handler, api_key: str | None = "test-key") -> SeedanceProvider:
    return SeedanceProvider(
        api_key=api_key,
        model="seedance-test",
        base_url=BASE_URL,
        transport=httpx.MockTransport(handler),
    )


class TestSeedanceProviderName:
    def test_name(self) -> None:
        assert SeedanceProvider(api_key="test-key").name == "bytedance"


class TestBuildPayload:
    def test_text_first_then_role_tagged_images(self) -> None:
        request = VideoGenRequest(
            prompt="A mug on a desk",
            images=[
                ImagePart(data=b"first", role=FrameRole.FIRST_FRAME),
                ImagePart(data=b"ref", mime_type="image/jpeg", role=FrameRole.REFERENCE_IMAGE),
            ],
            ratio="16:9",
            duration_seconds=5,
            generate_audio=False,
        )

        payload = build_seedance_payload(request, "seedance-test")

        content = payload["content"]
        assert content[0] == {"type": "text", "text": "A mug on a desk"}
        assert [part["role"] for part in content[1:]] == ["first_frame", "reference_image"]
        assert content[2]["image_url"]["url"].startswith("data:image/jpeg;base64,")
        assert payload["model"] == "seedance-test"
        assert payload["ratio"] == "16:9"
        assert payload["duration"] == 5
        assert payload["generate_audio"] is False
        assert payload["watermark"] is False

    def test_untagged_image_has_no_role(self) -> None:
        payload = build_seedance_payload(
            VideoGenRequest(prompt="p", images=[ImagePart(data=b"x")]), "m"
        )
        assert "role" not in payload["content"][1]


class TestSubmit:
    @pytest.mark.asyncio
    async def test_submit_returns_operation_id(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"id": "cgt-123"})

        operation_id = await _provider(handler).submit(VideoGenRequest(prompt="A mug"))

        assert operation_id == "cgt-123"
        assert seen[0].method == "POST"
        assert seen[0].url.path.endswith(TASKS_PATH)
        assert seen[0].headers["Authorization"] == "Bearer test-key"
        assert json.loads(seen[0].content)["model"] == "seedance-test"

    @pytest.mark.asyncio
    async def test_http_error_raises_provider_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, text="rate limited")

        with pytest.raises(ProviderError, match="HTTP 429") as exc_info:
            await _provider(handler).submit(VideoGenRequest(prompt="A mug"))
        assert exc_info.value.provider == "bytedance"

    @pytest.mark.asyncio
    async def test_transport_error_raises_provider_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused")

        with pytest.raises(ProviderError, match="request failed"):
            await _provider(handler).submit(VideoGenRequest(prompt="A mug"))

    @pytest.mark.asyncio
    async def test_missing_id_is_schema_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"task": "cgt-123"})

        with pytest.raises(SchemaValidationError):
            await _provider(handler).submit(VideoGenRequest(prompt="A mug"))

    @pytest.mark.asyncio
    async def test_missing_api_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        from ugc_engine.config import settings

        monkeypatch.setattr(settings, "volcano_api_key", None)

        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        provider = _provider(handler, api_key=None)
        with pytest.raises(ProviderError, match="not configured"):
            await provider.submit(VideoGenRequest(prompt="A mug"))
        assert await provider.health_check() is False


class TestGetStatus:
    @pytest.mark.asyncio
    async def test_succeeded(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path.endswith(f"{TASKS_PATH}/cgt-123")
            return httpx.Response(
                200,
                json={
                    "id": "cgt-123",
                    "status": "succeeded",
                    "content": {"video_url": "https://cdn.example.com/v.mp4"},
                    "usage": {"completion_tokens": 1000},
                },
            )

        status = await _provider(handler).get_status("cgt-123")

        assert status.status == ClipStatus.SUCCEEDED
        assert status.video_url == "https://cdn.example.com/v.mp4"
        assert status.usage == {"completion_tokens": 1000}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("remote", ["queued", "running", "cancelled", "expired"])
    async def test_pending_and_terminal_statuses(self, remote: str) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"id": "cgt-1", "status": remote})

        status = await _provider(handler).get_status("cgt-1")

        assert status.status == ClipStatus(remote)
        assert status.video_url is None

    @pytest.mark.asyncio
    async def test_failed_carries_error_message(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={
                    "id": "cgt-1",
                    "status": "failed",
                    "error": {"code": "OutputVideoSensitive", "message": "content policy"},
                },
            )

        status = await _provider(handler).get_status("cgt-1")

        assert status.status == ClipStatus.FAILED
        assert status.error_message == "content policy"

    @pytest.mark.asyncio
    async def test_succeeded_without_url_is_schema_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"id": "cgt-1", "status": "succeeded", "content": {}})

        with pytest.raises(SchemaValidationError, match="without a video_url"):
            await _provider(handler).get_status("cgt-1")

    @pytest.mark.asyncio
    async def test_unknown_status_is_schema_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"id": "cgt-1", "status": "paused"})

        with pytest.raises(SchemaValidationError):
            await _provider(handler).get_status("cgt-1")

    @pytest.mark.asyncio
    async def test_server_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="bad gateway")

        with pytest.raises(ProviderError, match="HTTP 502"):
            await _provider(handler).get_status("cgt-1")
