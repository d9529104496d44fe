from __future__ import annotations

import queue

import pytest

from devnexus.terminal import EventChannel, ExitEvent, OutputEvent


def test_session_channel_iterates_until_exit() -> None:
    channel = EventChannel(7)
    channel.publish(OutputEvent(7, b"a"))
    channel.publish(OutputEvent(7, b"b"))
    channel.publish(ExitEvent(7, 0))

    assert list(channel) == [OutputEvent(7, b"a"), OutputEvent(7, b"b"), ExitEvent(7, 0)]


def test_closed_channel_drops_new_events_and_ends_iteration() -> None:
    channel = EventChannel()
    channel.publish(OutputEvent(1, b"kept"))
    channel.close()

    assert channel.publish(OutputEvent(1, b"dropped")) is False
    assert list(channel) == [OutputEvent(1, b"kept")]
    assert channel.get() is None


def test_get_times_out_when_idle() -> None:
    with pytest.raises(queue.Empty):
        EventChannel(1).get(timeout=0.01)
