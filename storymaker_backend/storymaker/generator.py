import asyncio, time, logging
from typing import Callable, Optional

from .errors import ProviderError
from .media import SILENT_AUDIO, placeholder_image_url
from .models import GenerationKind, GenerationRequest, GenerationResult, ResultStatus
from .providers import ProviderRegistry

logger = logging.getLogger(__name__)


def placeholder_for(request: GenerationRequest, now_ms: int) -> Optional[str]:
    if request.kind == GenerationKind.IMAGE:
        return placeholder_image_url(request.index, now_ms)
    if request.kind == GenerationKind.SPEECH:
        return SILENT_AUDIO
    return None


class ItemGenerator:
    """
    Generates a single artifact with one provider attempt.

    Provider failures and timeouts never escape ``run``: they become a
    Placeholder result, so one bad item cannot stop its siblings. Content
    rejections become Failed results, also carrying a placeholder artifact.
    """

    def __init__(self, providers: ProviderRegistry, timeout_s: Optional[float] = None,
                 clock: Callable[[], float] = time.time):
        self._providers = providers
        self._timeout_s = timeout_s
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    async def run(self, request: GenerationRequest) -> GenerationResult:
        name = self._providers.get(request.kind).name
        try:
            artifact = await asyncio.wait_for(
                self._providers.generate(request.kind, request.payload, request.options),
                timeout=self._timeout_s,
            )
        except ProviderError as e:
            logger.error(f"{request.kind.value} item {request.index + 1} failed on {name}: {e}")
            return self._substitute(request, ResultStatus.PLACEHOLDER, str(e), {"provider": name, "errorCode": e.code})
        except asyncio.TimeoutError:
            logger.error(f"{request.kind.value} item {request.index + 1} timed out after {self._timeout_s}s on {name}")
            return self._substitute(request, ResultStatus.PLACEHOLDER, f"Timed out after {self._timeout_s}s",
                                    {"provider": name, "errorCode": "timeout"})

        meta = {"provider": name, **artifact.meta}
        if artifact.rejected or artifact.ref is None:
            reason = artifact.rejected or "Provider returned no artifact"
            logger.warning(f"{request.kind.value} item {request.index + 1} rejected by {name}: {reason}")
            return self._substitute(request, ResultStatus.FAILED, reason, meta)

        logger.info(f"{request.kind.value} item {request.index + 1} generated by {name}")
        return GenerationResult(index=request.index, status=ResultStatus.SUCCESS,
                                artifact=artifact.ref, provider_meta=meta)

    def _substitute(self, request: GenerationRequest, status: ResultStatus, error: str, meta: dict) -> GenerationResult:
        artifact = placeholder_for(request, self._now_ms())
        return GenerationResult(
            index=request.index,
            status=status,
            artifact=artifact,
            error=error,
            provider_meta={**meta, "placeholder": artifact},
        )
