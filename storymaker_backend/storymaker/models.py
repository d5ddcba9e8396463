from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class _FrozenModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)


# --- HTTP request bodies ---

class StoryRequest(_CamelModel):
    genre: str = Field(min_length=1)
    description: str = Field(min_length=1)
    language: Optional[str] = None


class ImagesRequest(_CamelModel):
    image_prompts: List[str] = Field(alias="imagePrompts")
    model: Optional[str] = None
    current_index: Optional[int] = Field(default=None, alias="currentIndex", ge=0)
    batch_size: Optional[int] = Field(default=None, alias="batchSize", ge=1)


class AudioRequest(_CamelModel):
    audio_texts: List[str] = Field(alias="audioTexts")
    language: Optional[str] = None
    voice: Optional[str] = None
    model: Optional[str] = None
    speed: Optional[float] = Field(default=None, gt=0)
    output_format: Optional[str] = Field(default=None, alias="outputFormat")
    stability: Optional[float] = Field(default=None, ge=0, le=1)
    similarity_boost: Optional[float] = Field(default=None, alias="similarityBoost", ge=0, le=1)

    def speech_options(self) -> Dict[str, Any]:
        return self.model_dump(exclude={"audio_texts"}, exclude_none=True)


class PipelineRequest(StoryRequest):
    image_model: Optional[str] = Field(default=None, alias="imageModel")
    voice: Optional[str] = None
    speed: Optional[float] = Field(default=None, gt=0)
    output_format: Optional[str] = Field(default=None, alias="outputFormat")


# --- generation units ---

class GenerationKind(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    SPEECH = "speech"


class ResultStatus(str, Enum):
    SUCCESS = "success"
    PLACEHOLDER = "placeholder"
    FAILED = "failed"


class GenerationRequest(_FrozenModel):
    kind: GenerationKind
    payload: str
    index: int = Field(ge=0)
    options: Dict[str, Any] = Field(default_factory=dict)


class GenerationResult(_FrozenModel):
    index: int
    status: ResultStatus
    artifact: Optional[str] = None
    error: Optional[str] = None
    provider_meta: Dict[str, Any] = Field(default_factory=dict, alias="providerMeta")

    @property
    def success(self) -> bool:
        return self.status == ResultStatus.SUCCESS


class BatchCursor(_FrozenModel):
    start_index: int = Field(default=0, alias="startIndex", ge=0)
    batch_size: int = Field(alias="batchSize", ge=1)


# --- story data ---

class SceneSpec(_FrozenModel):
    """One scene descriptor as returned by the text stage."""
    id: int
    title: str
    text: str
    image_prompt: str = Field(alias="imagePrompt", min_length=1)
    audio_text: str = Field(alias="audioText", min_length=1)


class StorySpec(_FrozenModel):
    title: str = ""
    scenes: List[SceneSpec]


class Scene(_FrozenModel):
    id: int
    title: str
    text: str
    image_prompt: str = Field(alias="imagePrompt")
    audio_text: str = Field(alias="audioText")
    image: Optional[str] = None
    audio: Optional[str] = None
    image_placeholder: bool = Field(default=False, alias="imagePlaceholder")
    audio_placeholder: bool = Field(default=False, alias="audioPlaceholder")


class StageSummary(_FrozenModel):
    total: int
    successful: int
    failed: int
    total_bytes: int = Field(alias="totalBytes")


class StoryMetadata(_FrozenModel):
    scene_count: int = Field(alias="sceneCount")
    images: StageSummary
    audio: StageSummary
    timestamp: str


class Story(_FrozenModel):
    title: str
    scenes: List[Scene]
    metadata: Optional[StoryMetadata] = None
