"""Tests for the individual pipeline stages and their prompt builders."""

from uuid import uuid4

import pytest
from sqlalchemy.orm import Session

from ugc_engine.adapters.content import ImagePart, TextPart
from ugc_engine.adapters.image_gen.base import ImageGenRequest, ImageGenResult
from ugc_engine.adapters.image_gen.stub import StubImageGenProvider
from ugc_engine.adapters.llm.stub import StubLLMProvider
from ugc_engine.db.models import ShotModel
from ugc_engine.domain.enums import FrameRole, Language
from ugc_engine.domain.models import GeneratedFrameRef, UploadedFrameRef
from ugc_engine.exceptions import ArtifactNotFoundError, PreconditionError, ProviderError
from ugc_engine.services.image_generation import build_image_prompt, generate_promotional_image
from ugc_engine.services.product_analysis import analyze_product, load_source_image_parts
from ugc_engine.services.script_writer import (
    build_script_prompt,
    generate_scripts,
    scene_count_for,
    script_duration_for,
)
from ugc_engine.services.shot_breakdown import generate_shot_breakdown
from ugc_engine.services.video_generation import (
    build_merged_prompt,
    build_video_prompt,
    create_merged_video_task,
    load_frame_part,
    resolve_frame_ref,
)
from tests.conftest import PNG_BYTES


class RecordingImageGen(StubImageGenProvider):
    def __init__(self) -> None:
        super().__init__()
        self.requests: list[ImageGenRequest] = []

    async def generate(self, request: ImageGenRequest) -> ImageGenResult:
        self.requests.append(request)
        return await super().generate(request)


def _shot(number: int, **overrides) -> ShotModel:
    values = {
        "shot_number": number,
        "title": f"Shot {number}",
        "scene_reference": "scene",
        "duration": 4,
        "shot_type": "close-up",
        "camera_angle": "low angle",
        "camera_movement": "static",
        "time_description": "morning",
        "location_description": "kitchen",
        "action": "She pours coffee",
        "result": "steam rises",
        "atmosphere": "cozy",
        "product_appearance": "mug on the counter",
        "lighting": "warm",
        "mood": "calm",
        "requires_product_in_frame": False,
        "provider": "stub",
        "model": "stub-llm",
    }
    values.update(overrides)
    return ShotModel(**values)


class TestDurations:
    @pytest.mark.parametrize(
        ("target", "expected"), [(5, 4), (10, 8), (15, 12), (30, 24), (60, 49)]
    )
    def test_script_duration(self, target: int, expected: int) -> None:
        assert script_duration_for(target) == expected

    @pytest.mark.parametrize(("target", "expected"), [(5, 2), (12, 2), (13, 4), (60, 4)])
    def test_scene_count(self, target: int, expected: int) -> None:
        assert scene_count_for(target) == expected


class TestVideoPrompts:
    def test_shot_prompt(self) -> None:
        prompt = build_video_prompt(_shot(1))
        assert prompt == (
            "Action: She pours coffee. Camera movement: static. Shot type: close-up. "
            "Camera angle: low angle. Product: mug on the counter"
        )

    def test_no_product_is_omitted(self) -> None:
        prompt = build_video_prompt(_shot(1, product_appearance="No product"))
        assert "Product:" not in prompt

    def test_merged_prompt_numbers_shots(self) -> None:
        prompt = build_merged_prompt([_shot(1), _shot(2)])
        sections = prompt.split("\n\n")
        assert len(sections) == 2
        assert sections[0].startswith("[Shot 1/2] Action:")
        assert sections[1].startswith("[Shot 2/2] Action:")


class TestFrameRefs:
    def test_uploaded_ref_resolves_to_product_image(
        self, session: Session, storage, source_image
    ) -> None:
        ref = UploadedFrameRef(source_image.id)
        assert resolve_frame_ref(session, ref).id == source_image.id

        part = load_frame_part(session, storage, ref, FrameRole.FIRST_FRAME)
        assert part.data == PNG_BYTES
        assert part.role == FrameRole.FIRST_FRAME

    def test_generated_ref_does_not_match_uploaded_image(
        self, session: Session, source_image
    ) -> None:
        """The source tag decides the table; the same id in the wrong family is missing."""
        with pytest.raises(ArtifactNotFoundError):
            resolve_frame_ref(session, GeneratedFrameRef(source_image.id))

    def test_missing_ref(self, session: Session) -> None:
        with pytest.raises(ArtifactNotFoundError):
            resolve_frame_ref(session, UploadedFrameRef(uuid4()))


class TestProductAnalysis:
    def test_missing_source_image(self, session: Session, storage, make_task) -> None:
        task = make_task(source_image_ids=[uuid4()])
        with pytest.raises(ArtifactNotFoundError):
            load_source_image_parts(session, storage, task.source_image_ids)

    def test_analysis_is_stored_once(
        self, session: Session, storage, llm: StubLLMProvider, make_task
    ) -> None:
        task = make_task()
        first = analyze_product(session, task, llm, storage)
        second = analyze_product(session, task, llm, storage)

        assert first.id == second.id
        assert first.appearance["color"] == ["matte black", "brushed steel"]
        assert first.source_image_ids == task.source_image_ids
        assert llm.calls == ["ProductAnalysis"]


class TestScriptsAndShots:
    def test_script_count_out_of_range(
        self, session: Session, storage, llm: StubLLMProvider, make_task
    ) -> None:
        task = make_task(count=11)
        product = analyze_product(session, task, llm, storage)
        with pytest.raises(PreconditionError):
            generate_scripts(session, task, product, llm)

    def test_empty_script_batch_is_a_provider_error(
        self, session: Session, storage, make_task
    ) -> None:
        llm = StubLLMProvider(responses={"MultipleScripts": {"scripts": []}})
        task = make_task()
        product = analyze_product(session, task, llm, storage)
        with pytest.raises(ProviderError, match="Failed to generate scripts"):
            generate_scripts(session, task, product, llm)

    def test_script_prompt_mentions_language_and_product(
        self, session: Session, storage, llm: StubLLMProvider, make_task
    ) -> None:
        task = make_task()
        product = analyze_product(session, task, llm, storage)
        prompt = build_script_prompt(product, 2, 30, Language.JA)

        assert "Japanese" in prompt
        assert "AeroPress Travel Mug" in prompt

    def test_shots_are_ordered_and_reused(
        self, session: Session, storage, llm: StubLLMProvider, make_task
    ) -> None:
        task = make_task()
        product = analyze_product(session, task, llm, storage)
        script = generate_scripts(session, task, product, llm)[0]

        shots = generate_shot_breakdown(session, script, product, 15, llm)
        again = generate_shot_breakdown(session, script, product, 15, llm)

        assert [s.shot_number for s in shots] == [1, 2, 3]
        assert [s.id for s in again] == [s.id for s in shots]
        assert shots[0].usage_metadata is not None
        assert shots[1].usage_metadata is None
        assert llm.calls.count("MultipleShots") == 1

    def test_merged_video_needs_shots(
        self, session: Session, storage, llm, video_gen, make_task
    ) -> None:
        task = make_task()
        product = analyze_product(session, task, llm, storage)
        script = generate_scripts(session, task, product, llm)[0]
        with pytest.raises(PreconditionError):
            create_merged_video_task(session, task, script, [], video_gen, storage)

    def test_no_first_frame_without_product_shots(
        self, session: Session, storage, video_gen, make_task
    ) -> None:
        responses = {"MultipleShots": {"shots": [_shot_payload(1), _shot_payload(2)]}}
        llm = StubLLMProvider(responses=responses)
        task = make_task()
        product = analyze_product(session, task, llm, storage)
        script = generate_scripts(session, task, product, llm)[0]
        shots = generate_shot_breakdown(session, script, product, 15, llm)

        clip = create_merged_video_task(
            session, task, script, shots, video_gen, storage, generate_audio=False
        )

        assert clip.first_frame_image is None
        assert video_gen.requests[0].images == []
        assert video_gen.requests[0].generate_audio is False


class TestImagePrompt:
    def test_prompt_numbers_the_variation(
        self, session: Session, storage, llm: StubLLMProvider, make_task
    ) -> None:
        task = make_task()
        product = analyze_product(session, task, llm, storage)

        prompt = build_image_prompt(product, Language.EN, 1, 3)

        assert "AeroPress Travel Mug" in prompt
        assert "(variation 2 of 3)" in prompt

    def test_product_photos_are_sent_as_reference_images(
        self, session: Session, storage, llm: StubLLMProvider, make_task
    ) -> None:
        task = make_task(count=2)
        product = analyze_product(session, task, llm, storage)
        provider = RecordingImageGen()

        generate_promotional_image(session, task, product, 0, provider, storage)

        parts = provider.requests[0].parts
        assert len(parts) == 2
        assert isinstance(parts[0], TextPart)
        assert "(variation 1 of 2)" in parts[0].text
        assert isinstance(parts[1], ImagePart)
        assert parts[1].role == FrameRole.REFERENCE_IMAGE
        assert parts[1].data == PNG_BYTES
        assert parts[1].mime_type == "image/png"


def _shot_payload(number: int) -> dict:
    return {
        "shot_number": number,
        "title": f"Shot {number}",
        "scene_reference": "scene",
        "duration": 5,
        "shot_type": "wide shot",
        "camera_angle": "eye level",
        "camera_movement": "pan",
        "time_description": "noon",
        "location_description": "park",
        "action": "She walks",
        "result": "She smiles",
        "atmosphere": "sunny",
        "product_appearance": "no product",
        "lighting": "daylight",
        "mood": "happy",
        "requires_product_in_frame": False,
    }
