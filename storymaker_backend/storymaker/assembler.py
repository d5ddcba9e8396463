import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from .errors import AssemblyContractError
from .media import artifact_size
from .models import (
    GenerationRequest, GenerationResult, ResultStatus, Scene, StageSummary, Story, StoryMetadata, StorySpec,
)

logger = logging.getLogger(__name__)


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def summarize(results: Sequence[GenerationResult]) -> StageSummary:
    successful = sum(1 for r in results if r.success)
    return StageSummary(
        total=len(results),
        successful=successful,
        failed=len(results) - successful,
        total_bytes=sum(artifact_size(r.artifact) for r in results if r.success),
    )


def item_reports(requests: Sequence[GenerationRequest], results: Sequence[GenerationResult]) -> List[Dict[str, Any]]:
    """Per-item entries for the HTTP ``results`` list, numbered from 1."""
    by_index = {r.index: r for r in requests}
    reports = []
    for result in results:
        request = by_index[result.index]
        report: Dict[str, Any] = {
            "sceneIndex": result.index + 1,
            "prompt": request.payload,
            "success": result.success,
            "status": result.status.value,
        }
        report.update(result.provider_meta)
        if result.error:
            report["error"] = result.error
        reports.append(report)
    return reports


def _check_alignment(name: str, results: Sequence[GenerationResult], expected: int) -> None:
    if len(results) != expected:
        raise AssemblyContractError(
            "Stage results do not match the scene list",
            f"{name}: expected {expected} results, got {len(results)}",
        )
    for position, result in enumerate(results):
        if result.index != position:
            raise AssemblyContractError(
                "Stage results are out of order",
                f"{name}: result at position {position} has index {result.index}",
            )


def assemble(spec: StorySpec, image_results: Sequence[GenerationResult],
             audio_results: Sequence[GenerationResult], timestamp: Optional[str] = None) -> Story:
    """Merge scene text with image and audio results by position."""
    count = len(spec.scenes)
    _check_alignment("images", image_results, count)
    _check_alignment("audio", audio_results, count)

    scenes = [
        Scene(
            id=scene.id,
            title=scene.title,
            text=scene.text,
            image_prompt=scene.image_prompt,
            audio_text=scene.audio_text,
            image=image.artifact,
            audio=audio.artifact,
            image_placeholder=image.status != ResultStatus.SUCCESS,
            audio_placeholder=audio.status != ResultStatus.SUCCESS,
        )
        for scene, image, audio in zip(spec.scenes, image_results, audio_results)
    ]
    metadata = StoryMetadata(
        scene_count=count,
        images=summarize(image_results),
        audio=summarize(audio_results),
        timestamp=timestamp or utc_timestamp(),
    )
    logger.info(
        f"Assembled '{spec.title}': {count} scenes, "
        f"images {metadata.images.successful}/{count}, audio {metadata.audio.successful}/{count}"
    )
    return Story(title=spec.title, scenes=scenes, metadata=metadata)
