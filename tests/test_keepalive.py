import asyncio
from unittest.mock import AsyncMock

import pytest

from callbridge.bot.keepalive import FallbackAudioPump, Heartbeat


@pytest.mark.asyncio
async def test_pump_sends_immediately_and_repeats():
    send = AsyncMock(return_value=True)
    pump = FallbackAudioPump(send, b"\xff" * 320, 0.01)

    pump.start()
    await asyncio.sleep(0.05)
    pump.stop()
    await pump.wait_closed()

    assert send.await_count >= 2
    send.assert_awaited_with(b"\xff" * 320)
    assert pump.frames_sent == send.await_count


@pytest.mark.asyncio
async def test_pump_stop_is_permanent():
    send = AsyncMock(return_value=True)
    pump = FallbackAudioPump(send, b"\xff", 0.01)

    pump.start()
    await asyncio.sleep(0.03)
    pump.stop()
    sent_at_stop = send.await_count
    await asyncio.sleep(0.05)

    assert send.await_count == sent_at_stop
    assert not pump.is_running
    pump.start()
    await asyncio.sleep(0.02)
    assert send.await_count == sent_at_stop


@pytest.mark.asyncio
async def test_pump_stopped_before_first_tick_sends_nothing():
    send = AsyncMock(return_value=True)
    pump = FallbackAudioPump(send, b"\xff", 0.01)

    pump.start()
    pump.stop()
    await pump.wait_closed()

    send.assert_not_awaited()


@pytest.mark.asyncio
async def test_pump_counts_only_delivered_fillers():
    send = AsyncMock(return_value=False)
    pump = FallbackAudioPump(send, b"\xff", 0.01)

    pump.start()
    await asyncio.sleep(0.03)
    pump.stop()
    await pump.wait_closed()

    assert send.await_count >= 1
    assert pump.frames_sent == 0


@pytest.mark.asyncio
async def test_pump_exits_on_send_failure():
    send = AsyncMock(side_effect=RuntimeError("socket gone"))
    pump = FallbackAudioPump(send, b"\xff", 0.01)

    pump.start()
    await asyncio.sleep(0.02)

    assert send.await_count == 1
    assert not pump.is_running


@pytest.mark.asyncio
async def test_heartbeat_beats_until_stopped():
    beat = AsyncMock()
    heartbeat = Heartbeat(beat, 0.01)

    heartbeat.start()
    await asyncio.sleep(0.05)
    heartbeat.stop()
    await heartbeat.wait_closed()
    beats = beat.await_count
    await asyncio.sleep(0.03)

    assert beats >= 2
    assert beat.await_count == beats


@pytest.mark.asyncio
async def test_heartbeat_survives_failed_beat():
    calls = []

    async def beat():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("boom")

    heartbeat = Heartbeat(beat, 0.01)

    heartbeat.start()
    await asyncio.sleep(0.05)
    heartbeat.stop()
    await heartbeat.wait_closed()

    assert len(calls) >= 2
    assert heartbeat.beats == len(calls) - 1
