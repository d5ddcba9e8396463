"""
Sequential, paced processing of an ordered list of generation requests.

Requests run one at a time in index order with a pause after every item but
the last, so external rate limits are respected. Optionally only a slice
``[cursor, cursor + max_batch_size)`` is processed per call; the caller keeps
the cursor and resumes with ``BatchOutcome.next_index``.
"""
import asyncio, logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Sequence

from .generator import ItemGenerator
from .models import GenerationRequest, GenerationResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchOutcome:
    results: List[GenerationResult]
    start_index: int
    batch_size: int
    total: int

    @property
    def next_index(self) -> int:
        return self.start_index + len(self.results)

    @property
    def completed(self) -> bool:
        return self.start_index + self.batch_size >= self.total

    @property
    def successful(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return len(self.results) - self.successful


def _check_order(requests: Sequence[GenerationRequest]) -> None:
    indexes = [r.index for r in requests]
    if any(b <= a for a, b in zip(indexes, indexes[1:])):
        raise ValueError(f"requests must be in strictly increasing index order, got {indexes}")


class BatchSequencer:
    def __init__(self, generator: ItemGenerator, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self._generator = generator
        self._sleep = sleep

    async def run_batch(self, requests: Sequence[GenerationRequest], pacing_ms: int,
                        max_batch_size: Optional[int] = None, cursor: int = 0) -> BatchOutcome:
        _check_order(requests)
        total = len(requests)
        if cursor < 0:
            raise ValueError("cursor must be >= 0")
        if max_batch_size is not None and max_batch_size < 1:
            raise ValueError("max_batch_size must be >= 1")

        batch_size = max_batch_size if max_batch_size else max(total - cursor, 0)
        window = list(requests[cursor:cursor + batch_size])
        logger.info(f"Processing items {cursor + 1}-{cursor + len(window)} of {total}")

        results: List[GenerationResult] = []
        for i, request in enumerate(window):
            logger.info(f"Generating {request.kind.value} {request.index + 1}/{total}")
            results.append(await self._generator.run(request))
            # Pause between requests regardless of the item's outcome
            if i < len(window) - 1 and pacing_ms > 0:
                await self._sleep(pacing_ms / 1000.0)

        outcome = BatchOutcome(results=results, start_index=cursor, batch_size=batch_size, total=total)
        logger.info(f"Batch done: {outcome.successful} ok, {outcome.failed} substituted, completed={outcome.completed}")
        return outcome
