"""
Tolerant extraction of the story JSON from free-form model output.

Models are asked for pure JSON but often wrap it in prose or markdown fences,
so the parser takes the first syntactically valid JSON object found anywhere
in the text. Parsing never raises: callers branch on ``ParseResult.ok``.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from pydantic import ValidationError

from .models import StorySpec

logger = logging.getLogger(__name__)

_decoder = json.JSONDecoder()


@dataclass(frozen=True)
class ParseResult:
    story: Optional[StorySpec] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.story is not None


def first_json_object(text: str) -> Optional[Dict[str, Any]]:
    pos = text.find("{")
    while pos != -1:
        try:
            value, _end = _decoder.raw_decode(text, pos)
        except json.JSONDecodeError:
            pos = text.find("{", pos + 1)
            continue
        if isinstance(value, dict):
            return value
        pos = text.find("{", pos + 1)
    return None


def parse_story(text: Optional[str], expected_scenes: Optional[int] = None) -> ParseResult:
    if not text or not text.strip():
        return ParseResult(error="Empty response from text provider")

    data = first_json_object(text)
    if data is None:
        return ParseResult(error="Could not extract valid JSON from the response")

    scenes = data.get("scenes")
    if not isinstance(scenes, list):
        return ParseResult(error="Invalid response structure: 'scenes' must be a list")

    if expected_scenes is not None and len(scenes) != expected_scenes:
        return ParseResult(error=f"Expected {expected_scenes} scenes, got {len(scenes)}")

    try:
        story = StorySpec.model_validate(data)
    except ValidationError as e:
        return ParseResult(error=f"Invalid scene data: {e.errors(include_url=False)}")

    logger.info(f"Parsed story '{story.title}' with {len(story.scenes)} scenes")
    return ParseResult(story=story)
