"""Tests for the badge engine."""

from __future__ import annotations

import asyncio

from spiral.badges import (
    HUD_BADGES,
    PATTERN_BADGE_MAP,
    PATTERN_BADGES,
    BadgeEngine,
    get_badge,
)
from spiral.metrics import MetricStore
from spiral.timers import TimerGroup


def test_awards_only_when_roll_is_under_chance(scripted_rng):
    store = MetricStore()
    engine = BadgeEngine(store, rng=scripted_rng([0.5, 0.29], choice_index=2))
    assert engine.evaluate(store.snapshot()) is None
    assert engine.evaluate(store.snapshot()) == HUD_BADGES[2].id
    assert store.snapshot().earned_badges == [HUD_BADGES[2].id]


def test_never_offers_once_any_badge_is_held(scripted_rng):
    store = MetricStore()
    store.award_badge("soul_seller")
    rng = scripted_rng(default=0.0)
    engine = BadgeEngine(store, rng=rng)
    for _ in range(50):
        assert engine.evaluate(store.snapshot()) is None
    assert store.snapshot().earned_badges == ["soul_seller"]
    assert rng.random_calls == 0


def test_exhausted_catalog_is_stable(scripted_rng):
    store = MetricStore()
    for badge in HUD_BADGES:
        store.award_badge(badge.id)
    before = store.snapshot().earned_badges
    engine = BadgeEngine(store, rng=scripted_rng(default=0.0))
    for _ in range(20):
        engine.evaluate(store.snapshot())
    assert store.snapshot().earned_badges == before


def test_award_is_idempotent_and_rejects_unknown_ids():
    store = MetricStore()
    engine = BadgeEngine(store)
    assert engine.award("reality_glitcher") is True
    assert engine.award("reality_glitcher") is False
    assert engine.award("made_up") is False
    assert store.snapshot().earned_badges == ["reality_glitcher"]


def test_award_shows_toast_that_expires():
    async def _run() -> None:
        timers = TimerGroup("badges", time_scale=0.001)
        store = MetricStore()
        engine = BadgeEngine(store, timers=timers, toast_duration=5)
        engine.award("ux_victim")
        assert engine.toast is not None
        assert engine.toast.badge.name == "UX Victim"
        await asyncio.sleep(0.03)
        assert engine.toast is None
        timers.cancel_all()

    asyncio.run(_run())


def test_dismiss_toast():
    store = MetricStore()
    engine = BadgeEngine(store)
    engine.award("error_collector")
    engine.dismiss_toast()
    assert engine.toast is None


def test_pattern_badges_are_mapped(scripted_rng):
    engine = BadgeEngine(MetricStore(), rng=scripted_rng(choice_index=3))
    for pattern_id, badge_id in PATTERN_BADGE_MAP.items():
        assert engine.badge_for_pattern(pattern_id).id == badge_id
    assert engine.badge_for_pattern("impossible_moral_choice") == PATTERN_BADGES[3]
    assert get_badge("gaslight_victim").lesson.startswith("Dark Pattern: Gaslighting")


def test_from_config():
    store = MetricStore()
    engine = BadgeEngine.from_config({"badges": {"award_chance": 1.0}}, store)
    assert engine.evaluate(store.snapshot()) is not None
