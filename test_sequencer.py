"""
Tests for storymaker/sequencer.py
"""
import pytest

from storymaker.generator import ItemGenerator
from storymaker.models import GenerationKind, GenerationRequest, ResultStatus
from storymaker.orchestrator import build_requests
from storymaker.sequencer import BatchSequencer


def _prompts(n):
    return [f"prompt #{i}" for i in range(n)]


@pytest.fixture
def make_sequencer(make_registry, sleep):
    def _make(**kwargs):
        registry = make_registry(**kwargs)
        return BatchSequencer(ItemGenerator(registry), sleep=sleep), registry
    return _make


class TestRunBatch:

    @pytest.mark.asyncio
    async def test_length_and_index_correspondence(self, make_sequencer):
        sequencer, _ = make_sequencer()
        requests = build_requests(GenerationKind.IMAGE, _prompts(7), {})
        outcome = await sequencer.run_batch(requests, pacing_ms=100)

        assert len(outcome.results) == 7
        for i, result in enumerate(outcome.results):
            assert result.index == i
            # fake provider echoes the payload, which encodes the index
            assert result.artifact == f"image-artifact:prompt #{i}"
        assert outcome.completed

    @pytest.mark.asyncio
    async def test_fault_isolation(self, make_sequencer):
        sequencer, _ = make_sequencer(image_fail_on={2})
        requests = build_requests(GenerationKind.IMAGE, _prompts(5), {})
        outcome = await sequencer.run_batch(requests, pacing_ms=100)

        statuses = [r.status for r in outcome.results]
        assert statuses == [ResultStatus.SUCCESS] * 2 + [ResultStatus.PLACEHOLDER] + [ResultStatus.SUCCESS] * 2
        assert outcome.successful == 4
        assert outcome.failed == 1
        assert outcome.completed

    @pytest.mark.asyncio
    async def test_all_failing_still_preserves_length(self, make_sequencer):
        sequencer, _ = make_sequencer(speech_fail_on=set(range(4)))
        requests = build_requests(GenerationKind.SPEECH, _prompts(4), {})
        outcome = await sequencer.run_batch(requests, pacing_ms=0)

        assert len(outcome.results) == 4
        assert all(r.status == ResultStatus.PLACEHOLDER for r in outcome.results)

    @pytest.mark.asyncio
    async def test_pacing_between_items_only(self, make_sequencer, sleep):
        sequencer, _ = make_sequencer(image_fail_on={1})
        requests = build_requests(GenerationKind.IMAGE, _prompts(4), {})
        await sequencer.run_batch(requests, pacing_ms=2000)

        # after every item except the last, failures included
        assert sleep.await_count == 3
        for call in sleep.await_args_list:
            assert call.args == (2.0,)

    @pytest.mark.asyncio
    async def test_no_pacing_when_disabled(self, make_sequencer, sleep):
        sequencer, _ = make_sequencer()
        await sequencer.run_batch(build_requests(GenerationKind.IMAGE, _prompts(3), {}), pacing_ms=0)

        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_batch_resumption(self, make_sequencer):
        sequencer, registry = make_sequencer()
        requests = build_requests(GenerationKind.IMAGE, _prompts(10), {})

        seen = []
        outcomes = []
        for cursor in (0, 3, 6, 9):
            outcome = await sequencer.run_batch(requests, pacing_ms=100, max_batch_size=3, cursor=cursor)
            outcomes.append(outcome)
            seen.extend(r.index for r in outcome.results)

        assert seen == list(range(10))
        assert [o.completed for o in outcomes] == [False, False, False, True]
        assert [o.next_index for o in outcomes] == [3, 6, 9, 10]
        assert len(registry.get(GenerationKind.IMAGE).calls) == 10

    @pytest.mark.asyncio
    async def test_rerunning_same_cursor_regenerates(self, make_sequencer):
        sequencer, registry = make_sequencer()
        requests = build_requests(GenerationKind.IMAGE, _prompts(5), {})

        first = await sequencer.run_batch(requests, pacing_ms=0, max_batch_size=2, cursor=2)
        second = await sequencer.run_batch(requests, pacing_ms=0, max_batch_size=2, cursor=2)

        assert [r.index for r in first.results] == [r.index for r in second.results] == [2, 3]
        assert len(registry.get(GenerationKind.IMAGE).calls) == 4

    @pytest.mark.asyncio
    async def test_empty_input(self, make_sequencer):
        sequencer, _ = make_sequencer()
        outcome = await sequencer.run_batch([], pacing_ms=100)

        assert outcome.results == []
        assert outcome.completed

    @pytest.mark.asyncio
    async def test_rejects_unordered_requests(self, make_sequencer):
        sequencer, _ = make_sequencer()
        requests = [
            GenerationRequest(kind=GenerationKind.IMAGE, payload="b", index=1),
            GenerationRequest(kind=GenerationKind.IMAGE, payload="a", index=0),
        ]
        with pytest.raises(ValueError):
            await sequencer.run_batch(requests, pacing_ms=0)
