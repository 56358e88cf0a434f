from __future__ import annotations

import threading
import time

import pytest

from relay_crawler.engine import Channel, ChannelClosedError, SchedulingError


def test_channel_is_fifo_for_single_consumer() -> None:
    channel: Channel[str] = Channel(3)
    for item in ("a", "b", "c"):
        channel.send(item)
    assert len(channel) == 3
    assert [channel.receive() for _ in range(3)] == ["a", "b", "c"]


def test_channel_rejects_non_positive_capacity() -> None:
    with pytest.raises(ValueError):
        Channel(0)


def test_channel_rejects_none_items() -> None:
    channel: Channel[str] = Channel(1)
    with pytest.raises(ValueError):
        channel.send(None)  # type: ignore[arg-type]


def test_send_blocks_while_full_until_consumer_receives() -> None:
    channel: Channel[int] = Channel(1)
    channel.send(1)
    sent = threading.Event()

    def producer() -> None:
        channel.send(2)
        sent.set()

    thread = threading.Thread(target=producer)
    thread.start()
    assert not sent.wait(0.1)
    assert channel.receive() == 1
    assert sent.wait(1.0)
    thread.join(1.0)
    assert channel.receive() == 2


def test_receive_returns_none_after_close_and_drain() -> None:
    channel: Channel[str] = Channel(2)
    channel.send("last")
    channel.close()
    assert channel.closed
    assert channel.receive() == "last"
    assert channel.receive() is None
    assert channel.receive() is None


def test_close_wakes_blocked_consumers() -> None:
    channel: Channel[str] = Channel(1)
    results: list[object] = []

    def consumer() -> None:
        results.append(channel.receive())

    threads = [threading.Thread(target=consumer) for _ in range(3)]
    for thread in threads:
        thread.start()
    time.sleep(0.05)
    channel.close()
    for thread in threads:
        thread.join(1.0)
    assert results == [None, None, None]


def test_send_after_close_raises_scheduling_error() -> None:
    channel: Channel[str] = Channel(1)
    channel.close()
    channel.close()
    with pytest.raises(ChannelClosedError):
        channel.send("late")
    assert issubclass(ChannelClosedError, SchedulingError)


def test_close_fails_blocked_producer() -> None:
    channel: Channel[int] = Channel(1)
    channel.send(1)
    errors: list[Exception] = []

    def producer() -> None:
        try:
            channel.send(2)
        except ChannelClosedError as exc:
            errors.append(exc)

    thread = threading.Thread(target=producer)
    thread.start()
    time.sleep(0.05)
    channel.close()
    thread.join(1.0)
    assert len(errors) == 1


def test_each_item_delivered_to_exactly_one_consumer() -> None:
    channel: Channel[int] = Channel(5)
    received: list[int] = []
    lock = threading.Lock()

    def consumer() -> None:
        while True:
            item = channel.receive()
            if item is None:
                return
            with lock:
                received.append(item)

    consumers = [threading.Thread(target=consumer) for _ in range(4)]
    for thread in consumers:
        thread.start()
    for value in range(200):
        channel.send(value)
    channel.close()
    for thread in consumers:
        thread.join(2.0)
    assert sorted(received) == list(range(200))
