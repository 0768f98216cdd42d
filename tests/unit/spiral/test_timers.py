"""Tests for the timer group."""

from __future__ import annotations

import asyncio

import pytest

from spiral.timers import TimerGroup


def test_every_repeats_until_cancelled():
    async def _run() -> None:
        timers = TimerGroup("t", time_scale=0.001)
        ticks = []
        timers.every("tick", 5, lambda: ticks.append(1))
        await asyncio.sleep(0.05)
        assert timers.has_timer("tick")
        timers.cancel("tick")
        count = len(ticks)
        await asyncio.sleep(0.03)
        assert count >= 2
        assert len(ticks) == count
        assert not timers.has_timer("tick")

    asyncio.run(_run())


def test_period_is_reread_before_each_wait():
    async def _run() -> None:
        timers = TimerGroup("t", time_scale=0.001)
        periods = []

        def _period() -> float:
            periods.append(len(periods))
            return 2

        timers.every("tick", _period, lambda: None)
        await asyncio.sleep(0.03)
        timers.cancel_all()
        assert len(periods) >= 2

    asyncio.run(_run())


def test_later_fires_once_and_can_be_cancelled():
    async def _run() -> None:
        timers = TimerGroup("t", time_scale=0.001)
        fired = []
        timers.later(5, lambda: fired.append("a"))
        handle = timers.later(5, lambda: fired.append("b"))
        timers.cancel_handle(handle)
        assert timers.active == 1
        await asyncio.sleep(0.03)
        assert fired == ["a"]
        assert timers.active == 0

    asyncio.run(_run())


def test_later_without_a_running_loop_is_dropped():
    timers = TimerGroup("t")
    fired = []
    assert timers.later(0, lambda: fired.append("x")) is None
    assert timers.active == 0
    assert not timers.closed
    assert fired == []


def test_cancel_all_closes_the_group():
    async def _run() -> None:
        timers = TimerGroup("t", time_scale=0.001)
        fired = []
        timers.every("tick", 5, lambda: fired.append("tick"))
        timers.later(5, lambda: fired.append("later"))
        timers.cancel_all()
        await asyncio.sleep(0.03)
        assert fired == []
        assert timers.closed
        assert timers.later(1, lambda: fired.append("late")) is None
        with pytest.raises(RuntimeError):
            timers.every("again", 1, lambda: None)

    asyncio.run(_run())


def test_failing_callback_keeps_timer_alive():
    async def _run() -> None:
        timers = TimerGroup("t", time_scale=0.001)
        calls = []

        def _boom() -> None:
            calls.append(1)
            raise ValueError("glitch")

        timers.every("boom", 3, _boom)
        await asyncio.sleep(0.04)
        assert len(calls) >= 2
        assert timers.has_timer("boom")
        timers.cancel_all()

    asyncio.run(_run())
