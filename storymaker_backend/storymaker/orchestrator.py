import asyncio, time, logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence

from langgraph.graph import StateGraph, END
from pydantic import BaseModel, Field

from . import catalog, settings
from .assembler import assemble
from .errors import ClientInputError, ProviderError, StageFatalError
from .generator import ItemGenerator
from .models import (
    BatchCursor, GenerationKind, GenerationRequest, GenerationResult, PipelineRequest, Story, StoryRequest,
    StorySpec,
)
from .prompts import build_story_prompt
from .providers import ProviderRegistry
from .sequencer import BatchOutcome, BatchSequencer
from .story_parser import ParseResult, parse_story

logger = logging.getLogger(__name__)


class PipelineStage(str, Enum):
    IDLE = "idle"
    GENERATING_TEXT = "generating_text"
    GENERATING_IMAGES = "generating_images"
    GENERATING_AUDIO = "generating_audio"
    ASSEMBLED = "assembled"
    ABORTED = "aborted"


class OrchestrationState(BaseModel):
    request: PipelineRequest
    stage: PipelineStage = PipelineStage.IDLE
    spec: Optional[StorySpec] = None
    image_results: List[GenerationResult] = Field(default_factory=list)
    audio_results: List[GenerationResult] = Field(default_factory=list)
    story: Optional[Story] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class StageOutput:
    requests: List[GenerationRequest]
    outcome: BatchOutcome


def _require_text_list(field: str, values: Any) -> List[str]:
    if not isinstance(values, list):
        raise ClientInputError(f"{field} must be an array", f"got {type(values).__name__}")
    if not all(isinstance(v, str) for v in values):
        raise ClientInputError(f"{field} must be an array of strings")
    return values


def build_requests(kind: GenerationKind, payloads: Sequence[str], options: Mapping[str, Any]) -> List[GenerationRequest]:
    return [GenerationRequest(kind=kind, payload=p, index=i, options=dict(options)) for i, p in enumerate(payloads)]


def _value(final_state: Any, key: str) -> Any:
    # LangGraph hands back a dict of channel values rather than the model
    return final_state.get(key) if hasattr(final_state, "get") else getattr(final_state, key)


class StoryPipeline:
    """Runs story text, scene images and scene narration in strict sequence."""

    def __init__(self, providers: ProviderRegistry,
                 image_pacing_ms: int = settings.IMAGE_PACING_MS,
                 audio_pacing_ms: int = settings.AUDIO_PACING_MS,
                 scene_count: int = settings.SCENE_COUNT,
                 item_timeout_s: Optional[float] = settings.ITEM_TIMEOUT_S,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
                 clock: Callable[[], float] = time.time):
        self.providers = providers
        self.image_pacing_ms = image_pacing_ms
        self.audio_pacing_ms = audio_pacing_ms
        self.scene_count = scene_count
        self.sequencer = BatchSequencer(ItemGenerator(providers, item_timeout_s, clock), sleep)
        self._graph = self._build_graph()

    # --- stages ---

    async def text_stage(self, req: StoryRequest) -> ParseResult:
        language = catalog.story_language(req.language)
        prompt = build_story_prompt(req.genre, req.description, language, self.scene_count)
        logger.info(f"Generating {req.genre} story in {language}: {req.description[:100]}")
        try:
            artifact = await self.providers.generate(GenerationKind.TEXT, prompt, {})
        except ProviderError as e:
            logger.error(f"Text provider failed: {e}")
            return ParseResult(error=str(e))
        if artifact.rejected:
            return ParseResult(error=f"Story request rejected by provider: {artifact.rejected}")
        return parse_story(artifact.ref, expected_scenes=self.scene_count)

    async def story(self, req: StoryRequest) -> StorySpec:
        result = await self.text_stage(req)
        if not result.ok:
            raise StageFatalError("Error generating story", result.error)
        return result.story

    async def images(self, prompts: List[str], model: Optional[str] = None,
                     cursor: Optional[BatchCursor] = None) -> StageOutput:
        prompts = _require_text_list("imagePrompts", prompts)
        requests = build_requests(GenerationKind.IMAGE, prompts, {"model": catalog.image_model_name(model)})
        if cursor is None:
            outcome = await self.sequencer.run_batch(requests, self.image_pacing_ms)
        else:
            outcome = await self.sequencer.run_batch(requests, self.image_pacing_ms,
                                                     cursor.batch_size, cursor.start_index)
        return StageOutput(requests=requests, outcome=outcome)

    async def audio(self, texts: List[str], options: Optional[Mapping[str, Any]] = None) -> StageOutput:
        texts = _require_text_list("audioTexts", texts)
        requests = build_requests(GenerationKind.SPEECH, texts, options or {})
        outcome = await self.sequencer.run_batch(requests, self.audio_pacing_ms)
        return StageOutput(requests=requests, outcome=outcome)

    # --- graph nodes ---

    async def node_text(self, state: OrchestrationState) -> Dict[str, Any]:
        result = await self.text_stage(state.request)
        if not result.ok:
            logger.error(f"Story stage failed, aborting pipeline: {result.error}")
            return {"stage": PipelineStage.ABORTED, "error": result.error}
        logger.info(f"Story '{result.story.title}' ready, moving to images")
        return {"stage": PipelineStage.GENERATING_IMAGES, "spec": result.story}

    def route_after_text(self, state: OrchestrationState) -> str:
        return "abort" if state.stage == PipelineStage.ABORTED else "continue"

    async def node_images(self, state: OrchestrationState) -> Dict[str, Any]:
        output = await self.images([s.image_prompt for s in state.spec.scenes], model=state.request.image_model)
        return {"stage": PipelineStage.GENERATING_AUDIO, "image_results": output.outcome.results}

    async def node_audio(self, state: OrchestrationState) -> Dict[str, Any]:
        req = state.request
        options = {
            "language": req.language,
            "voice": req.voice,
            "speed": req.speed,
            "output_format": req.output_format,
        }
        output = await self.audio([s.audio_text for s in state.spec.scenes], options)
        return {"audio_results": output.outcome.results}

    async def node_assemble(self, state: OrchestrationState) -> Dict[str, Any]:
        story = assemble(state.spec, state.image_results, state.audio_results)
        return {"stage": PipelineStage.ASSEMBLED, "story": story}

    def _build_graph(self):
        g = StateGraph(OrchestrationState)
        g.add_node("text", self.node_text)
        g.add_node("images", self.node_images)
        g.add_node("audio", self.node_audio)
        g.add_node("assemble", self.node_assemble)
        g.set_entry_point("text")
        g.add_conditional_edges("text", self.route_after_text, {"continue": "images", "abort": END})
        g.add_edge("images", "audio")
        g.add_edge("audio", "assemble")
        g.add_edge("assemble", END)
        return g.compile()

    async def run(self, req: PipelineRequest) -> Story:
        state = OrchestrationState(request=req, stage=PipelineStage.GENERATING_TEXT)
        logger.info(f"Starting pipeline for genre={req.genre!r}")
        final_state = await self._graph.ainvoke(state)

        if _value(final_state, "stage") == PipelineStage.ABORTED:
            raise StageFatalError("Error generating story", _value(final_state, "error"))
        story = _value(final_state, "story")
        logger.info(f"Pipeline completed with {len(story.scenes)} scenes")
        return story
