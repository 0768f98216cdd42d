"""Event scheduler - the repeating timers that move the spiral forward.

Each tick reads a fresh snapshot, so a timer never trusts values another
timer may already have changed.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from narrative.progression import (
    DEFAULT_THRESHOLDS,
    TRANSITION_LINES,
    ExperiencePhase,
    advance_phase,
    load_thresholds,
)
from narrative.scripts import EXISTENTIAL_PROMPTS, PHASE_POOLS

from .derivation import NarratorPhase, narrator_phase, phase_gate_score
from .metrics import MetricStore
from .narrator import MessageKind, NarratorChannel
from .timers import TimerGroup

logger = logging.getLogger(__name__)

DEFAULT_NARRATOR_PERIODS = {
    NarratorPhase.PASSIVE_AGGRESSIVE.value: 60.0,
    NarratorPhase.EXISTENTIAL.value: 40.0,
    NarratorPhase.UNHINGED.value: 20.0,
}


@dataclass
class SchedulerSettings:
    spiral_period: float = 60.0
    spiral_frustration_delta: float = 0.3
    glitch_chance: float = 0.3
    glitch_duration: float = 0.3
    narrator_periods: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_NARRATOR_PERIODS))
    narrator_idle_poll: float = 10.0
    narrator_skip_chance: float = 0.3
    phase_check_period: float = 10.0
    prompt_period: float = 90.0
    prompt_min_depth: int = 3
    prompt_min_chaos: int = 2
    prompt_duration: float = 8.0
    phase_thresholds: dict[ExperiencePhase, float] = field(
        default_factory=lambda: dict(DEFAULT_THRESHOLDS)
    )

    @classmethod
    def from_config(cls, cfg: dict[str, Any]) -> SchedulerSettings:
        sched = cfg.get("scheduler", {}) or {}
        defaults = cls()
        periods = dict(DEFAULT_NARRATOR_PERIODS)
        for phase, seconds in (sched.get("narrator_periods") or {}).items():
            try:
                periods[str(phase)] = float(seconds)
            except (TypeError, ValueError):
                pass

        def _num(key: str) -> float:
            try:
                return float(sched.get(key, getattr(defaults, key)))
            except (TypeError, ValueError):
                return float(getattr(defaults, key))

        return cls(
            spiral_period=_num("spiral_period"),
            spiral_frustration_delta=_num("spiral_frustration_delta"),
            glitch_chance=_num("glitch_chance"),
            glitch_duration=_num("glitch_duration"),
            narrator_periods=periods,
            narrator_idle_poll=_num("narrator_idle_poll"),
            narrator_skip_chance=_num("narrator_skip_chance"),
            phase_check_period=_num("phase_check_period"),
            prompt_period=_num("prompt_period"),
            prompt_min_depth=int(_num("prompt_min_depth")),
            prompt_min_chaos=int(_num("prompt_min_chaos")),
            prompt_duration=_num("prompt_duration"),
            phase_thresholds=load_thresholds(cfg),
        )


class EventScheduler:
    """Drive spiral depth, narrator chatter, phase gates and prompts."""

    def __init__(
        self,
        store: MetricStore,
        channel: NarratorChannel,
        timers: TimerGroup,
        rng: random.Random | None = None,
        settings: SchedulerSettings | None = None,
        on_mirror: Callable[[], None] | None = None,
    ):
        self._store = store
        self._channel = channel
        self._timers = timers
        self._rng = rng or random.Random()
        self._settings = settings or SchedulerSettings()
        self._on_mirror = on_mirror

        self.glitch_active = False
        self.prompt: str | None = None
        self._glitch_handle: Any = None
        self._prompt_handle: Any = None

    @property
    def settings(self) -> SchedulerSettings:
        return self._settings

    def start(self) -> None:
        s = self._settings
        self._timers.every("spiral_depth", s.spiral_period, self.spiral_tick)
        self._timers.every("narrator", self.narrator_period, self.narrator_tick)
        self._timers.every("phase_gate", s.phase_check_period, self.phase_check)
        self._timers.every("existential_prompt", s.prompt_period, self.prompt_tick)
        logger.info("Scheduler started (%d timers)", 4)

    def stop(self) -> None:
        for name in ("spiral_depth", "narrator", "phase_gate", "existential_prompt"):
            self._timers.cancel(name)
        self._timers.cancel_handle(self._glitch_handle)
        self._timers.cancel_handle(self._prompt_handle)
        self.glitch_active = False
        self.prompt = None
        logger.info("Scheduler stopped")

    # ── Spiral depth ────────────────────────────────────────────

    def spiral_tick(self) -> None:
        depth = self._store.increment_spiral_depth()
        self._store.add_frustration(self._settings.spiral_frustration_delta)
        logger.debug("Spiral depth -> %d", depth)

        if self._rng.random() < self._settings.glitch_chance:
            self.glitch_active = True
            self._timers.cancel_handle(self._glitch_handle)
            self._glitch_handle = self._timers.later(self._settings.glitch_duration, self._clear_glitch)

    def _clear_glitch(self) -> None:
        self.glitch_active = False
        self._glitch_handle = None

    # ── Narrator chatter ────────────────────────────────────────

    def narrator_period(self) -> float:
        phase = narrator_phase(self._store.snapshot())
        return self._settings.narrator_periods.get(phase.value, self._settings.narrator_idle_poll)

    def narrator_tick(self) -> str | None:
        """Maybe push a random line for the current narrator phase."""
        phase = narrator_phase(self._store.snapshot())
        pool = PHASE_POOLS.get(phase.value)
        if not pool:
            return None
        if self._rng.random() < self._settings.narrator_skip_chance:
            return None
        line = self._rng.choice(pool)
        self._channel.push(line, MessageKind(phase.value))
        return line

    # ── Experience phase gate ───────────────────────────────────

    def phase_check(self) -> ExperiencePhase:
        snapshot = self._store.snapshot()
        current = snapshot.experience_phase
        target = advance_phase(current, phase_gate_score(snapshot), self._settings.phase_thresholds)
        if target == current or not self._store.advance_experience_phase(target):
            return current

        logger.info("Experience phase: %s -> %s", current.value, target.value)
        if target == ExperiencePhase.MIRROR_CONFRONTATION:
            if self._store.trigger_mirror():
                self._channel.push(TRANSITION_LINES[target])
                if self._on_mirror is not None:
                    self._on_mirror()
        else:
            self._channel.push(TRANSITION_LINES[target])
        return target

    # ── Existential prompts ─────────────────────────────────────

    def prompt_tick(self) -> str | None:
        snapshot = self._store.snapshot()
        if (
            snapshot.spiral_depth < self._settings.prompt_min_depth
            or snapshot.chaos_level < self._settings.prompt_min_chaos
        ):
            return None
        self.prompt = self._rng.choice(EXISTENTIAL_PROMPTS)
        self._timers.cancel_handle(self._prompt_handle)
        self._prompt_handle = self._timers.later(self._settings.prompt_duration, self._hide_prompt)
        return self.prompt

    def _hide_prompt(self) -> None:
        self.prompt = None
        self._prompt_handle = None

    @property
    def prompt_footer(self) -> str:
        return "None of your answers matter." if self._store.spiral_depth > 8 else "Think carefully."
