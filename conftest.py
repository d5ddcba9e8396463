"""
Pytest configuration and shared fixtures.

Providers are replaced by in-memory fakes so no test touches the network,
and pacing sleeps are recorded instead of awaited.
"""
import json
from typing import Any, Dict, List, Mapping, Optional
from unittest.mock import AsyncMock

import pytest

from storymaker.errors import ProviderError
from storymaker.models import GenerationKind
from storymaker.orchestrator import StoryPipeline
from storymaker.providers import Artifact, ProviderRegistry


class FakeProvider:
    """Scripted provider: fails or rejects on given call numbers, echoes otherwise."""

    def __init__(self, kind: GenerationKind, name: str, options: frozenset,
                 fail_on=(), reject_on=(), text: Optional[str] = None, log: Optional[List[str]] = None):
        self.kind = kind
        self.name = name
        self.options = options
        self.fail_on = set(fail_on)
        self.reject_on = set(reject_on)
        self.text = text
        self.log = log if log is not None else []
        self.calls: List[Dict[str, Any]] = []

    async def generate(self, payload: str, options: Mapping[str, Any]) -> Artifact:
        call_no = len(self.calls)
        self.calls.append({"payload": payload, "options": dict(options)})
        self.log.append(f"{self.kind.value}:{payload}")
        if call_no in self.fail_on:
            raise ProviderError("http_500", f"{self.name} exploded on call {call_no}")
        if call_no in self.reject_on:
            return Artifact(ref=None, rejected="NSFW content detected")
        if self.kind == GenerationKind.TEXT:
            return Artifact(ref=self.text, meta={"model": "fake-text"})
        return Artifact(ref=f"{self.kind.value}-artifact:{payload}", meta={"model": "fake", "bytes": len(payload)})


def make_story(scene_count: int = 5, title: str = "The Locked Room") -> Dict[str, Any]:
    return {
        "title": title,
        "scenes": [
            {
                "id": i + 1,
                "title": f"Scene {i + 1}",
                "text": f"scene text {i + 1}",
                "imagePrompt": f"image prompt {i + 1}",
                "audioText": f"narration {i + 1}",
            }
            for i in range(scene_count)
        ],
    }


@pytest.fixture
def story_data() -> Dict[str, Any]:
    return make_story()


@pytest.fixture
def story_text(story_data) -> str:
    # Models like to wrap the JSON in prose and fences
    return "Here is your story:\n```json\n" + json.dumps(story_data, indent=2) + "\n```\nEnjoy!"


@pytest.fixture
def call_log() -> List[str]:
    return []


@pytest.fixture
def make_registry(story_text, call_log):
    def _make(text: Optional[str] = None, image_fail_on=(), image_reject_on=(), speech_fail_on=()):
        text_provider = FakeProvider(GenerationKind.TEXT, "fake-text", frozenset({"model"}),
                                     text=story_text if text is None else text, log=call_log)
        image_provider = FakeProvider(GenerationKind.IMAGE, "fake-image", frozenset({"model"}),
                                      fail_on=image_fail_on, reject_on=image_reject_on, log=call_log)
        speech_provider = FakeProvider(GenerationKind.SPEECH, "fake-speech",
                                       frozenset({"language", "voice", "speed", "output_format"}),
                                       fail_on=speech_fail_on, log=call_log)
        return ProviderRegistry(text=text_provider, image=image_provider, speech=speech_provider)
    return _make


@pytest.fixture
def sleep():
    return AsyncMock()


@pytest.fixture
def make_pipeline(make_registry, sleep):
    def _make(**kwargs):
        registry = make_registry(**kwargs)
        pipeline = StoryPipeline(
            registry,
            image_pacing_ms=2000,
            audio_pacing_ms=1500,
            scene_count=5,
            item_timeout_s=5,
            sleep=sleep,
            clock=lambda: 1700000000.0,
        )
        return pipeline
    return _make
