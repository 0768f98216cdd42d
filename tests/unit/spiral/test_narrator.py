"""Tests for the narrator channel."""

from __future__ import annotations

import asyncio

from spiral.derivation import NarratorPhase
from spiral.narrator import MessageKind, NarratorChannel, narrator_name
from spiral.timers import TimerGroup


def test_repeated_message_is_suppressed():
    channel = NarratorChannel()
    assert channel.push("A") is True
    assert channel.push("A") is False
    assert [m.text for m in channel.scrollback] == ["A"]


def test_same_text_after_another_message_is_kept():
    channel = NarratorChannel()
    for text in ("A", "B", "A"):
        channel.push(text)
    assert [m.text for m in channel.scrollback] == ["A", "B", "A"]


def test_scrollback_keeps_last_twenty():
    channel = NarratorChannel()
    for i in range(25):
        channel.push(f"line {i}")
    texts = [m.text for m in channel.scrollback]
    assert len(texts) == 20
    assert texts == [f"line {i}" for i in range(5, 25)]


def test_blank_and_none_are_ignored():
    channel = NarratorChannel()
    assert channel.push("") is False
    assert channel.push("   ") is False
    assert channel.push(None) is False
    assert channel.scrollback == []
    assert channel.push(404) is True
    assert channel.latest == "404"


def test_kind_and_label():
    channel = NarratorChannel()
    channel.push("Oh, you're still here.", "passive-aggressive")
    channel.push("???", "not-a-kind")
    first, second = channel.scrollback
    assert first.kind == MessageKind.PASSIVE_AGGRESSIVE
    assert first.label == "Monitor"
    assert second.kind == MessageKind.SYSTEM


def test_subscribers_receive_deliveries():
    channel = NarratorChannel()
    received = []
    unsubscribe = channel.subscribe(lambda m: received.append(m.text))
    channel.push("one")
    unsubscribe()
    channel.push("two")
    assert received == ["one"]


def test_typing_delay_defers_scrollback(scripted_rng):
    async def _run() -> None:
        timers = TimerGroup("narrator", time_scale=0.01)
        channel = NarratorChannel(timers=timers, rng=scripted_rng(uniform=1.0))
        channel.push("Still trying?")
        assert channel.latest == "Still trying?"
        assert channel.is_typing
        assert channel.scrollback == []
        await asyncio.sleep(0.05)
        assert not channel.is_typing
        assert [m.text for m in channel.scrollback] == ["Still trying?"]
        timers.cancel_all()

    asyncio.run(_run())


async def _wait_until_typed(channel: NarratorChannel, timeout: float = 2.0) -> None:
    for _ in range(int(timeout / 0.01)):
        if not channel.is_typing:
            return
        await asyncio.sleep(0.01)


def test_typed_scrollback_follows_push_order(scripted_rng):
    async def _run() -> None:
        timers = TimerGroup("narrator", time_scale=0.001)
        # Each later message types faster than the one before it
        rng = scripted_rng(uniforms=[1.5 - i * 0.04 for i in range(25)])
        channel = NarratorChannel(timers=timers, rng=rng)
        for i in range(25):
            channel.push(f"line {i}")
        assert channel.scrollback == []
        assert channel.latest == "line 24"

        await _wait_until_typed(channel)
        assert not channel.is_typing
        assert [m.text for m in channel.scrollback] == [f"line {i}" for i in range(5, 25)]
        timers.cancel_all()

    asyncio.run(_run())


def test_typed_repeat_after_another_line_is_kept(scripted_rng):
    async def _run() -> None:
        timers = TimerGroup("narrator", time_scale=0.001)
        channel = NarratorChannel(timers=timers, rng=scripted_rng(uniforms=[1.5, 0.5, 0.5]))
        delivered = []
        channel.subscribe(lambda m: delivered.append(m.text))
        for text in ("A", "B", "A"):
            assert channel.push(text) is True
        await _wait_until_typed(channel)
        assert [m.text for m in channel.scrollback] == ["A", "B", "A"]
        assert delivered == ["A", "B", "A"]
        timers.cancel_all()

    asyncio.run(_run())


def test_push_without_running_loop_delivers_at_once():
    channel = NarratorChannel(timers=TimerGroup("narrator"))
    assert channel.push("no loop yet") is True
    assert not channel.is_typing
    assert [m.text for m in channel.scrollback] == ["no loop yet"]


def test_rapid_duplicates_are_suppressed_while_typing(scripted_rng):
    async def _run() -> None:
        timers = TimerGroup("narrator", time_scale=0.01)
        channel = NarratorChannel(timers=timers, rng=scripted_rng())
        assert channel.push("A") is True
        assert channel.push("A") is False
        channel.flush()
        assert [m.text for m in channel.scrollback] == ["A"]
        timers.cancel_all()

    asyncio.run(_run())


def test_close_drops_pending_messages(scripted_rng):
    async def _run() -> None:
        timers = TimerGroup("narrator", time_scale=0.01)
        channel = NarratorChannel(timers=timers, rng=scripted_rng())
        channel.push("never seen")
        channel.close()
        await asyncio.sleep(0.03)
        assert channel.scrollback == []
        assert not channel.is_typing
        timers.cancel_all()

    asyncio.run(_run())


def test_from_config_reads_limits():
    cfg = {"narrator": {"scrollback_limit": 3, "typing_delay_min": 0, "typing_delay_max": 0}}
    channel = NarratorChannel.from_config(cfg)
    for i in range(5):
        channel.push(str(i))
    assert [m.text for m in channel.scrollback] == ["2", "3", "4"]


def test_narrator_names():
    assert narrator_name(NarratorPhase.HELPFUL) == "System Assistant"
    assert narrator_name(NarratorPhase.PASSIVE_AGGRESSIVE) == "System Monitor"
    assert narrator_name(NarratorPhase.EXISTENTIAL, "dark_tourist") == "The Guide"
    assert narrator_name(NarratorPhase.EXISTENTIAL, "escapist") == "The Watcher"
    assert narrator_name(NarratorPhase.UNHINGED, "evil_apprentice") == "SYSTEM://ERROR"
