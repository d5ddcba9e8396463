"""
Tests for storymaker/generator.py
"""
import asyncio

import pytest

from conftest import FakeProvider
from storymaker.generator import ItemGenerator
from storymaker.media import SILENT_AUDIO
from storymaker.models import GenerationKind, GenerationRequest, ResultStatus
from storymaker.providers import Artifact, ProviderRegistry


class SlowProvider(FakeProvider):
    async def generate(self, payload, options):
        await asyncio.sleep(5)
        return Artifact(ref="too late")


def _request(kind, payload="a prompt", index=0):
    return GenerationRequest(kind=kind, payload=payload, index=index)


@pytest.fixture
def generator(make_registry):
    return ItemGenerator(make_registry(image_fail_on={0}, speech_fail_on={0}), clock=lambda: 1700000000.0)


class TestItemGenerator:

    @pytest.mark.asyncio
    async def test_success(self, make_registry):
        gen = ItemGenerator(make_registry())
        result = await gen.run(_request(GenerationKind.IMAGE, "castle", index=3))

        assert result.status == ResultStatus.SUCCESS
        assert result.success
        assert result.index == 3
        assert result.artifact == "image-artifact:castle"
        assert result.error is None
        assert result.provider_meta["provider"] == "fake-image"

    @pytest.mark.asyncio
    async def test_image_failure_becomes_placeholder(self, generator):
        result = await generator.run(_request(GenerationKind.IMAGE, index=2))

        assert result.status == ResultStatus.PLACEHOLDER
        assert not result.success
        assert result.artifact == "https://picsum.photos/1024/768?random=1700000000000-2"
        assert "exploded" in result.error
        assert result.provider_meta["errorCode"] == "http_500"

    @pytest.mark.asyncio
    async def test_speech_failure_becomes_silence(self, generator):
        result = await generator.run(_request(GenerationKind.SPEECH))

        assert result.status == ResultStatus.PLACEHOLDER
        assert result.artifact == SILENT_AUDIO

    @pytest.mark.asyncio
    async def test_rejection_is_failed_with_placeholder(self, make_registry):
        gen = ItemGenerator(make_registry(image_reject_on={0}))
        result = await gen.run(_request(GenerationKind.IMAGE))

        assert result.status == ResultStatus.FAILED
        assert result.error == "NSFW content detected"
        assert result.artifact.startswith("https://picsum.photos/")

    @pytest.mark.asyncio
    async def test_empty_payload_is_contained(self, make_registry):
        gen = ItemGenerator(make_registry())
        result = await gen.run(_request(GenerationKind.IMAGE, payload="   "))

        assert result.status == ResultStatus.PLACEHOLDER
        assert result.provider_meta["errorCode"] == "empty_payload"

    @pytest.mark.asyncio
    async def test_timeout_becomes_placeholder(self, make_registry):
        base = make_registry()
        slow = SlowProvider(GenerationKind.IMAGE, "slow-image", frozenset())
        registry = ProviderRegistry(text=base.get(GenerationKind.TEXT), image=slow,
                                    speech=base.get(GenerationKind.SPEECH))
        gen = ItemGenerator(registry, timeout_s=0.01)
        result = await gen.run(_request(GenerationKind.IMAGE))

        assert result.status == ResultStatus.PLACEHOLDER
        assert result.provider_meta["errorCode"] == "timeout"

