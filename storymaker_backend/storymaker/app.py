import os
import logging
from functools import lru_cache
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# Ensure .env is loaded before importing modules that read provider settings
from .settings import has_all_keys, ALLOWED_ORIGINS, IMAGE_BATCH_SIZE
from . import catalog
from .assembler import item_reports, utc_timestamp
from .errors import ClientInputError, StoryMakerError, suggestion_for
from .models import AudioRequest, BatchCursor, ImagesRequest, PipelineRequest, StoryRequest
from .orchestrator import StoryPipeline
from .providers import build_providers

logger = logging.getLogger(__name__)

app = FastAPI(title="StoryMaker Backend")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS or ["*"],
    allow_credentials=True,
    allow_methods=["POST", "GET", "OPTIONS"],
    allow_headers=["*"],
)


@lru_cache(maxsize=1)
def get_pipeline() -> StoryPipeline:
    return StoryPipeline(build_providers())


def _error_response(status_code: int, message: str, category: str,
                    details: Optional[str] = None, suggestion: Optional[str] = None) -> JSONResponse:
    body = {"error": message, "category": category, "details": details or message}
    if suggestion:
        body["suggestion"] = suggestion
    return JSONResponse(status_code=status_code, content=body)


@app.exception_handler(StoryMakerError)
async def storymaker_error_handler(request: Request, exc: StoryMakerError):
    logger.error(f"{request.method} {request.url.path} failed [{exc.category}]: {exc.message} ({exc.details})")
    suggestion = None
    if exc.category in ("stage_fatal", "provider_error"):
        suggestion = suggestion_for(exc.details)
    return _error_response(exc.status_code, exc.message, exc.category, exc.details, suggestion)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    problems = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()) if p != 'body') or 'body'}: {err.get('msg')}"
        for err in exc.errors()
    )
    logger.warning(f"Rejected {request.url.path}: {problems}")
    return _error_response(400, "Invalid request body", ClientInputError.category, problems)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    category = "client_error" if exc.status_code < 500 else "internal_error"
    return _error_response(exc.status_code, str(exc.detail), category)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"{request.method} {request.url.path} crashed", exc_info=exc)
    return _error_response(500, "Internal server error", "internal_error", str(exc))


@app.get("/health")
def health():
    keys_ok = has_all_keys()
    logger.info(f"Health check: API keys present = {keys_ok}")
    return {"ok": True, "has_keys": keys_ok}


@app.post("/api/generate-story")
async def generate_story(req: StoryRequest, pipeline: StoryPipeline = Depends(get_pipeline)):
    spec = await pipeline.story(req)
    return spec.model_dump(by_alias=True)


@app.post("/api/generate-images")
async def generate_images(req: ImagesRequest, pipeline: StoryPipeline = Depends(get_pipeline)):
    total = len(req.image_prompts)
    cursor = req.current_index or 0
    if cursor > total:
        raise ClientInputError("currentIndex is past the end of imagePrompts", f"currentIndex={cursor}, total={total}")
    batch_size = req.batch_size or IMAGE_BATCH_SIZE or None
    batch = None
    if batch_size or cursor:
        batch = BatchCursor(start_index=cursor, batch_size=batch_size or max(total - cursor, 1))

    logger.info(f"Generating {total} images (from {cursor}, batch size {batch_size or 'all'})")
    output = await pipeline.images(req.image_prompts, model=req.model, cursor=batch)
    outcome = output.outcome

    return {
        "images": [r.artifact for r in outcome.results],
        "results": item_reports(output.requests, outcome.results),
        "metadata": {
            "model": catalog.image_model_config(req.model)["model"],
            "total": total,
            "processed": len(outcome.results),
            "successful": outcome.successful,
            "failed": outcome.failed,
            "currentIndex": outcome.start_index,
            "batchSize": outcome.batch_size,
            "nextIndex": outcome.next_index,
            "completed": outcome.completed,
            "timestamp": utc_timestamp(),
            "rateLimitInfo": f"Replicate: ~{pipeline.image_pacing_ms / 1000:g}s between requests",
        },
    }


@app.post("/api/generate-audio")
async def generate_audio(req: AudioRequest, pipeline: StoryPipeline = Depends(get_pipeline)):
    options = req.speech_options()
    logger.info(f"Generating {len(req.audio_texts)} narrations (language={req.language})")
    output = await pipeline.audio(req.audio_texts, options)
    outcome = output.outcome
    reports = item_reports(output.requests, outcome.results)

    return {
        "audioUrls": [r.artifact for r in outcome.results],
        "results": reports,
        "metadata": {
            "voice": req.voice or catalog.voice_for(req.language),
            "model": req.model or catalog.speech_model_for(req.language),
            "total": len(req.audio_texts),
            "successful": outcome.successful,
            "failed": outcome.failed,
            "totalBytes": sum(r.get("bytes", 0) for r in reports if r["success"]),
            "timestamp": utc_timestamp(),
        },
    }


@app.post("/api/generate")
async def generate(req: PipelineRequest, pipeline: StoryPipeline = Depends(get_pipeline)):
    story = await pipeline.run(req)
    return story.model_dump(by_alias=True)


def main():
    import uvicorn
    uvicorn.run("storymaker.app:app", host=os.getenv("HOST", "127.0.0.1"), port=int(os.getenv("PORT", "8000")))


if __name__ == "__main__":
    main()
