"""Tests for the live status pipeline."""
import asyncio

import pytest

from conftest import ControlledFetch, settle
from pyaxeos.exceptions import DeviceRequestError, PyAxeOSInvalidConfigurationParameter
from pyaxeos.pipeline import LiveStatusPipeline, Publisher


@pytest.mark.asyncio
async def test_start_fetches_immediately_and_replays_latest():
    fetch = ControlledFetch()
    pipeline = LiveStatusPipeline(fetch, 60, name="info")
    received = []
    pipeline.subscribe(received.append)

    assert pipeline.start() is pipeline
    await settle()
    assert len(fetch.pending) == 1

    fetch.resolve(0, "first")
    await settle()
    assert received == ["first"]

    late = []
    pipeline.subscribe(late.append)
    assert late == ["first"]
    pipeline.stop()


@pytest.mark.asyncio
async def test_start_is_idempotent():
    fetch = ControlledFetch()
    pipeline = LiveStatusPipeline(fetch, 60)
    pipeline.start()
    pipeline.start()
    await settle()
    assert len(fetch.pending) == 1
    pipeline.stop()


@pytest.mark.asyncio
async def test_stale_response_never_overwrites_newer():
    """A slow older fetch completing after a newer one is dropped."""
    fetch = ControlledFetch(ignore_cancel=True)
    pipeline = LiveStatusPipeline(fetch, 60)
    received = []
    pipeline.subscribe(received.append)
    pipeline.start()
    await settle()

    pipeline.refresh()
    await settle()
    assert len(fetch.pending) == 2

    fetch.resolve(1, "new")
    await settle()
    fetch.resolve(0, "old")
    await settle()

    assert received == ["new"]
    assert pipeline.latest == "new"
    pipeline.stop()


@pytest.mark.asyncio
async def test_superseded_fetch_is_cancelled():
    fetch = ControlledFetch()
    pipeline = LiveStatusPipeline(fetch, 60)
    pipeline.start()
    await settle()
    pipeline.refresh()
    await settle()

    assert fetch.pending[0].cancelled()
    assert not fetch.pending[1].done()
    pipeline.stop()


@pytest.mark.asyncio
async def test_stale_failure_is_ignored():
    fetch = ControlledFetch(ignore_cancel=True)
    pipeline = LiveStatusPipeline(fetch, 60)
    pipeline.start()
    await settle()
    pipeline.refresh()
    await settle()

    fetch.fail(0, DeviceRequestError("late failure"))
    await settle()
    assert pipeline.error_count == 0

    fetch.resolve(1, "ok")
    await settle()
    assert pipeline.latest == "ok"
    pipeline.stop()


@pytest.mark.asyncio
async def test_fetch_error_is_counted_and_next_tick_recovers():
    fetch = ControlledFetch()
    pipeline = LiveStatusPipeline(fetch, 60)
    received = []
    pipeline.subscribe(received.append)
    pipeline.start()
    await settle()

    fetch.fail(0, DeviceRequestError("Http failure response for http://bitaxe/api/system/info: 500"))
    await settle()
    assert received == []
    assert pipeline.error_count == 1
    assert isinstance(pipeline.last_error, DeviceRequestError)
    assert pipeline.running

    pipeline.refresh()
    await settle()
    fetch.resolve(1, "recovered")
    await settle()
    assert received == ["recovered"]
    pipeline.stop()


@pytest.mark.asyncio
async def test_stop_drops_inflight_result_and_is_idempotent():
    fetch = ControlledFetch(ignore_cancel=True)
    pipeline = LiveStatusPipeline(fetch, 60)
    received = []
    pipeline.subscribe(received.append)
    pipeline.start()
    await settle()

    pipeline.stop()
    pipeline.stop()
    fetch.resolve(0, "late")
    await settle()

    assert received == []
    assert not pipeline.running
    assert pipeline.latest is None
    assert pipeline.subscriber_count == 0


@pytest.mark.asyncio
async def test_refresh_after_stop_does_nothing():
    fetch = ControlledFetch()
    pipeline = LiveStatusPipeline(fetch, 60)
    pipeline.start()
    await settle()
    pipeline.stop()
    pipeline.refresh()
    await settle()
    assert len(fetch.pending) == 1


@pytest.mark.asyncio
async def test_stream_ends_on_stop_without_delivering_queued_value():
    fetch = ControlledFetch()
    pipeline = LiveStatusPipeline(fetch, 60)
    received = []

    async def consume():
        async for value in pipeline.stream():
            received.append(value)

    consumer = asyncio.ensure_future(consume())
    await settle()
    # Stops the pipeline while the stream still has the value queued
    pipeline.subscribe(lambda value: pipeline.stop())
    pipeline.start()
    await settle()
    fetch.resolve(0, "queued")

    await asyncio.wait_for(consumer, 1)
    assert received == []


@pytest.mark.asyncio
async def test_stream_yields_values_in_order():
    values = iter(["a", "b", "c"])

    async def fetch():
        return next(values)

    pipeline = LiveStatusPipeline(fetch, 60)
    stream = pipeline.stream()
    received = []

    async def consume():
        async for value in stream:
            received.append(value)
            if len(received) == 3:
                break

    consumer = asyncio.ensure_future(consume())
    await settle()
    pipeline.start()
    await settle()
    pipeline.refresh()
    await settle()
    pipeline.refresh()
    await asyncio.wait_for(consumer, 1)

    assert received == ["a", "b", "c"]
    await stream.aclose()
    assert pipeline.subscriber_count == 0
    pipeline.stop()


@pytest.mark.asyncio
async def test_single_fetch_when_no_cadence():
    calls = []

    async def fetch():
        calls.append(1)
        return {"ASICModel": "BM1370"}

    pipeline = LiveStatusPipeline(fetch, None, name="asic")
    received = []
    pipeline.subscribe(received.append)
    pipeline.start()
    await asyncio.sleep(0.05)

    assert len(calls) == 1
    assert received == [{"ASICModel": "BM1370"}]
    pipeline.stop()


@pytest.mark.asyncio
async def test_ticks_on_cadence():
    calls = []

    async def fetch():
        calls.append(1)
        return len(calls)

    pipeline = LiveStatusPipeline(fetch, 0.01)
    pipeline.start()
    await asyncio.sleep(0.08)
    pipeline.stop()
    count = len(calls)
    await asyncio.sleep(0.03)

    assert count >= 2
    assert len(calls) == count


@pytest.mark.asyncio
async def test_failing_subscriber_does_not_block_others():
    async def fetch():
        return "value"

    def broken(value):
        raise RuntimeError("subscriber bug")

    pipeline = LiveStatusPipeline(fetch, 60)
    received = []
    pipeline.subscribe(broken)
    pipeline.subscribe(received.append)
    pipeline.start()
    await settle()

    assert received == ["value"]
    pipeline.stop()


def test_invalid_cadence():
    async def fetch():
        return None

    with pytest.raises(PyAxeOSInvalidConfigurationParameter):
        LiveStatusPipeline(fetch, 0)


def test_subscription_context_manager():
    publisher = Publisher("test")
    received = []
    with publisher.subscribe(received.append) as subscription:
        publisher._publish(1)
    publisher._publish(2)

    assert received == [1]
    assert not subscription.active
    # second unsubscribe is harmless
    subscription.unsubscribe()
    assert publisher.subscriber_count == 0


@pytest.mark.asyncio
async def test_subscribers_share_an_on_demand_pipeline():
    fetch = ControlledFetch()
    pipeline = LiveStatusPipeline(fetch, 60, name="info")
    first, second = [], []
    sub_first = pipeline.subscribe(first.append)
    sub_second = pipeline.subscribe(second.append)
    assert pipeline.running
    await settle()
    assert len(fetch.pending) == 1

    sub_first.unsubscribe()
    assert pipeline.running
    assert sub_second.active
    fetch.resolve(0, "value")
    await settle()
    assert first == []
    assert second == ["value"]

    sub_second.unsubscribe()
    assert not pipeline.running
    assert pipeline.latest is None


@pytest.mark.asyncio
async def test_started_pipeline_outlives_its_subscribers():
    fetch = ControlledFetch()
    pipeline = LiveStatusPipeline(fetch, 60)
    pipeline.start()
    subscription = pipeline.subscribe(lambda value: None)
    subscription.unsubscribe()
    assert pipeline.running
    pipeline.stop()
    assert not pipeline.running
