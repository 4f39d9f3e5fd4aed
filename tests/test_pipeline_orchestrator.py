"""
Tests for the pipeline state machine: ordering, failure isolation and
suppression of superseded runs.
"""

import asyncio
import threading
from unittest.mock import AsyncMock

import pytest

from verified_visuals.contracts import Audience, PipelineSnapshot, PipelineState
from verified_visuals.services.errors import InvalidTransition


def _record(orchestrator):
    published = []
    orchestrator.subscribe(published.append)
    return published


def _states(published):
    return [snapshot.state for snapshot in published]


class TestHappyPath:
    @pytest.mark.asyncio
    async def test_states_follow_pipeline_order(self, fake_provider, make_orchestrator):
        orchestrator = make_orchestrator(fake_provider)
        published = _record(orchestrator)

        final = await orchestrator.run("EV adoption", Audience.GENERAL)

        assert _states(published) == [
            PipelineState.RESEARCHING,
            PipelineState.STRUCTURING,
            PipelineState.GENERATING_IMAGE,
            PipelineState.COMPLETE,
        ]
        assert [s.progress for s in published] == [30, 60, 90, 100]
        assert final == orchestrator.snapshot
        assert final.state is PipelineState.COMPLETE
        assert final.error is None

    @pytest.mark.asyncio
    async def test_result_merges_structure_and_sources(self, fake_provider, make_orchestrator):
        orchestrator = make_orchestrator(fake_provider)

        final = await orchestrator.run("EV adoption", Audience.GENERAL)

        result = final.result
        assert result.chart_kind.value == "bar"
        assert [(p.name, p.value) for p in result.chart_data] == [("2022", 10), ("2023", 15)]
        assert [s.uri for s in result.sources] == [
            "https://a.example/report",
            "https://b.example/data",
        ]
        assert final.image.mime_type == "image/png"
        assert final.image.encoded_content.startswith("data:image/png;base64,")

    @pytest.mark.asyncio
    async def test_report_is_published_before_the_image(self, fake_provider, make_orchestrator):
        orchestrator = make_orchestrator(fake_provider)
        published = _record(orchestrator)

        await orchestrator.run("EV adoption", Audience.GENERAL)

        generating = published[2]
        assert generating.state is PipelineState.GENERATING_IMAGE
        assert generating.result is not None
        assert generating.image is None
        # Earlier states never carry a result
        assert published[0].result is None and published[1].result is None

    @pytest.mark.asyncio
    async def test_image_prompt_and_audience_flow_through(self, fake_provider, make_orchestrator):
        orchestrator = make_orchestrator(fake_provider)

        await orchestrator.run("Ocean plastics", Audience.KIDS)

        assert "Ocean plastics" in fake_provider.text_calls[0]["prompt"]
        assert "Children (5-10 years)" in fake_provider.structured_calls[0]["prompt"]
        assert fake_provider.image_calls[0]["prompt"] == "abstract growth graphic"
        assert fake_provider.image_calls[0]["aspect_ratio"] == "16:9"

    @pytest.mark.asyncio
    async def test_all_snapshots_of_a_run_share_its_id(self, fake_provider, make_orchestrator):
        orchestrator = make_orchestrator(fake_provider)
        published = _record(orchestrator)

        await orchestrator.run("topic", Audience.GENERAL)
        await orchestrator.run("topic", Audience.GENERAL)

        assert [s.run_id for s in published] == [1, 1, 1, 1, 2, 2, 2, 2]


class TestFailures:
    @pytest.mark.asyncio
    async def test_research_failure_ends_the_run(self, provider_factory, make_orchestrator):
        provider = provider_factory(text_error=RuntimeError("quota exceeded"))
        orchestrator = make_orchestrator(provider)
        published = _record(orchestrator)

        final = await orchestrator.run("topic", Audience.GENERAL)

        assert _states(published) == [PipelineState.RESEARCHING, PipelineState.ERROR]
        assert final.state is PipelineState.ERROR
        assert final.error == "Research failed: quota exceeded"
        assert final.result is None
        assert provider.structured_calls == []
        assert provider.image_calls == []

    @pytest.mark.asyncio
    async def test_invalid_structured_payload_ends_the_run(self, provider_factory, make_orchestrator):
        provider = provider_factory(structured='{"summary": "missing everything else"}')
        orchestrator = make_orchestrator(provider)
        published = _record(orchestrator)

        final = await orchestrator.run("topic", Audience.GENERAL)

        assert _states(published) == [
            PipelineState.RESEARCHING,
            PipelineState.STRUCTURING,
            PipelineState.ERROR,
        ]
        assert final.error.startswith("Data structuring failed: ")
        assert all(snapshot.result is None for snapshot in published)
        assert provider.image_calls == []

    @pytest.mark.asyncio
    async def test_structuring_transport_error_ends_the_run(self, provider_factory, make_orchestrator):
        provider = provider_factory(structured_error=ConnectionError("reset by peer"))
        orchestrator = make_orchestrator(provider)

        final = await orchestrator.run("topic", Audience.GENERAL)

        assert final.state is PipelineState.ERROR
        assert final.error == "Data structuring failed: reset by peer"

    @pytest.mark.asyncio
    async def test_image_failure_still_completes(self, provider_factory, make_orchestrator):
        provider = provider_factory(image_error=RuntimeError("safety filter"))
        orchestrator = make_orchestrator(provider)
        published = _record(orchestrator)

        final = await orchestrator.run("topic", Audience.GENERAL)

        assert _states(published)[-1] is PipelineState.COMPLETE
        assert final.error is None
        assert final.result is not None
        assert final.image is None

    @pytest.mark.asyncio
    async def test_image_without_data_still_completes(self, provider_factory, make_orchestrator):
        provider = provider_factory(image_parts=[])
        orchestrator = make_orchestrator(provider)

        final = await orchestrator.run("topic", Audience.GENERAL)

        assert final.state is PipelineState.COMPLETE
        assert final.image is None

    @pytest.mark.asyncio
    async def test_malformed_image_response_still_completes(self, provider_factory, make_orchestrator):
        provider = provider_factory()
        provider.generate_image = AsyncMock(return_value=None)
        orchestrator = make_orchestrator(provider)
        published = _record(orchestrator)

        final = await orchestrator.run("topic", Audience.GENERAL)

        assert _states(published)[-2:] == [PipelineState.GENERATING_IMAGE, PipelineState.COMPLETE]
        assert final.result is not None
        assert final.image is None

    @pytest.mark.asyncio
    async def test_missing_research_text_still_structures(self, provider_factory, make_orchestrator):
        provider = provider_factory(text=None, citations=[])
        orchestrator = make_orchestrator(provider)

        final = await orchestrator.run("topic", Audience.GENERAL)

        assert "No research data found." in provider.structured_calls[0]["prompt"]
        assert final.state is PipelineState.COMPLETE
        assert final.result.sources == []

    @pytest.mark.asyncio
    async def test_new_run_clears_previous_error(self, provider_factory, make_orchestrator):
        provider = provider_factory(text_error=RuntimeError("boom"))
        orchestrator = make_orchestrator(provider)
        published = _record(orchestrator)

        await orchestrator.run("topic", Audience.GENERAL)
        provider.text_error = None
        final = await orchestrator.run("topic", Audience.GENERAL)

        restarted = published[2]
        assert restarted.state is PipelineState.RESEARCHING
        assert restarted.error is None and restarted.result is None
        assert final.state is PipelineState.COMPLETE


class TestSupersededRuns:
    @pytest.mark.asyncio
    async def test_stale_run_never_publishes(self, provider_factory, make_orchestrator):
        provider = provider_factory()
        provider.text_gate = threading.Event()
        orchestrator = make_orchestrator(provider)
        published = _record(orchestrator)

        first = asyncio.create_task(orchestrator.run("first", Audience.GENERAL))
        while not provider.text_calls:
            await asyncio.sleep(0)

        second = await orchestrator.run("second", Audience.GENERAL)
        published_before_release = len(published)
        provider.text_gate.set()
        first_result = await first

        assert second.run_id == 2 and second.state is PipelineState.COMPLETE
        assert first_result.run_id == 1
        assert first_result.state is PipelineState.RESEARCHING
        assert len(published) == published_before_release
        assert orchestrator.snapshot == second
        # The superseded run never reached structuring
        assert len(provider.structured_calls) == 1

    @pytest.mark.asyncio
    async def test_reset_supersedes_in_flight_run(self, provider_factory, make_orchestrator):
        provider = provider_factory()
        provider.text_gate = threading.Event()
        orchestrator = make_orchestrator(provider)
        published = _record(orchestrator)

        running = asyncio.create_task(orchestrator.run("topic", Audience.GENERAL))
        while not provider.text_calls:
            await asyncio.sleep(0)

        idle = await orchestrator.reset()
        provider.text_gate.set()
        await running

        assert idle.state is PipelineState.IDLE
        assert orchestrator.snapshot.state is PipelineState.IDLE
        assert _states(published) == [PipelineState.RESEARCHING, PipelineState.IDLE]
        assert provider.structured_calls == []

    @pytest.mark.asyncio
    async def test_reset_clears_result(self, fake_provider, make_orchestrator):
        orchestrator = make_orchestrator(fake_provider)
        await orchestrator.run("topic", Audience.GENERAL)

        snapshot = await orchestrator.reset()

        assert snapshot.result is None and snapshot.image is None
        assert snapshot.progress == 0
        assert orchestrator.epoch == 2


class TestListeners:
    @pytest.mark.asyncio
    async def test_failing_listener_does_not_break_the_run(self, fake_provider, make_orchestrator):
        orchestrator = make_orchestrator(fake_provider)

        def broken(snapshot):
            raise RuntimeError("display crashed")

        orchestrator.subscribe(broken)
        published = _record(orchestrator)

        final = await orchestrator.run("topic", Audience.GENERAL)

        assert final.state is PipelineState.COMPLETE
        assert len(published) == 4

    @pytest.mark.asyncio
    async def test_async_listener_and_unsubscribe(self, fake_provider, make_orchestrator):
        orchestrator = make_orchestrator(fake_provider)
        received = []

        async def listener(snapshot):
            received.append(snapshot.state)

        unsubscribe = orchestrator.subscribe(listener)
        await orchestrator.run("topic", Audience.GENERAL)
        unsubscribe()
        await orchestrator.run("topic", Audience.GENERAL)

        assert len(received) == 4
        assert orchestrator.publisher.listener_count == 0


@pytest.mark.asyncio
async def test_illegal_transition_is_rejected(fake_provider, make_orchestrator):
    orchestrator = make_orchestrator(fake_provider)
    done = PipelineSnapshot(run_id=orchestrator.epoch, state=PipelineState.COMPLETE)

    with pytest.raises(InvalidTransition):
        await orchestrator._advance(done, PipelineState.RESEARCHING)
