"""
Tests for storymaker/orchestrator.py
"""
import json

import pytest

from conftest import make_story
from storymaker.errors import ClientInputError, StageFatalError
from storymaker.models import BatchCursor, GenerationKind, PipelineRequest, StoryRequest


@pytest.fixture
def request_():
    return PipelineRequest(genre="mystery", description="a locked room", language="english")


class TestStoryPipeline:

    @pytest.mark.asyncio
    async def test_locked_room_scenario(self, make_pipeline, request_):
        pipeline = make_pipeline(image_fail_on={2})
        story = await pipeline.run(request_)

        assert len(story.scenes) == 5
        assert story.scenes[2].image_placeholder
        assert story.scenes[2].image.startswith("https://picsum.photos/1024/768?random=")
        for i, scene in enumerate(story.scenes):
            assert scene.title and scene.text and scene.audio
            if i != 2:
                assert scene.image == f"image-artifact:image prompt {i + 1}"
                assert not scene.image_placeholder
        assert story.metadata.images.failed == 1
        assert story.metadata.audio.successful == 5

    @pytest.mark.asyncio
    async def test_stage_ordering(self, make_pipeline, request_, call_log):
        pipeline = make_pipeline()
        await pipeline.run(request_)

        kinds = [entry.split(":", 1)[0] for entry in call_log]
        assert kinds == ["text"] + ["image"] * 5 + ["speech"] * 5
        # narration uses audioText, never the scene text or image prompt
        assert call_log[6:] == [f"speech:narration {i}" for i in range(1, 6)]

    @pytest.mark.asyncio
    async def test_prompt_carries_genre_and_language(self, make_pipeline):
        pipeline = make_pipeline()
        await pipeline.run(PipelineRequest(genre="fantasy", description="a lost dragon", language="spanish"))

        prompt = pipeline.providers.get(GenerationKind.TEXT).calls[0]["payload"]
        assert "fantasy" in prompt
        assert "a lost dragon" in prompt
        assert "Spanish" in prompt

    @pytest.mark.asyncio
    async def test_options_reach_providers(self, make_pipeline):
        pipeline = make_pipeline()
        await pipeline.run(PipelineRequest(genre="horror", description="fog", imageModel="sdxl",
                                           voice="voice-123", language="es-ES"))

        image_calls = pipeline.providers.get(GenerationKind.IMAGE).calls
        speech_calls = pipeline.providers.get(GenerationKind.SPEECH).calls
        assert image_calls[0]["options"] == {"model": "sdxl"}
        assert speech_calls[0]["options"] == {"language": "es-ES", "voice": "voice-123"}

    @pytest.mark.asyncio
    async def test_abort_on_invalid_story(self, make_pipeline, request_, call_log):
        pipeline = make_pipeline(text="I'd rather not write JSON today.")

        with pytest.raises(StageFatalError) as exc_info:
            await pipeline.run(request_)

        assert exc_info.value.category == "stage_fatal"
        assert "Could not extract" in exc_info.value.details
        assert call_log == ["text:" + pipeline.providers.get(GenerationKind.TEXT).calls[0]["payload"]]
        assert pipeline.providers.get(GenerationKind.IMAGE).calls == []
        assert pipeline.providers.get(GenerationKind.SPEECH).calls == []

    @pytest.mark.asyncio
    async def test_abort_on_wrong_scene_count(self, make_pipeline, request_):
        pipeline = make_pipeline(text=json.dumps(make_story(scene_count=4)))

        with pytest.raises(StageFatalError):
            await pipeline.run(request_)
        assert pipeline.providers.get(GenerationKind.IMAGE).calls == []

    @pytest.mark.asyncio
    async def test_story_stage_alone(self, make_pipeline):
        pipeline = make_pipeline()
        spec = await pipeline.story(StoryRequest(genre="mystery", description="a locked room"))

        assert len(spec.scenes) == 5

    @pytest.mark.asyncio
    async def test_images_stage_rejects_non_list(self, make_pipeline):
        pipeline = make_pipeline()

        with pytest.raises(ClientInputError):
            await pipeline.images("not a list")
        with pytest.raises(ClientInputError):
            await pipeline.audio(["ok", 3])

    @pytest.mark.asyncio
    async def test_images_stage_batches(self, make_pipeline):
        pipeline = make_pipeline()
        output = await pipeline.images([f"p{i}" for i in range(10)], cursor=BatchCursor(start_index=6, batch_size=3))

        assert [r.index for r in output.outcome.results] == [6, 7, 8]
        assert not output.outcome.completed
        assert len(output.requests) == 10
