"""Shared test helpers: a scripted random source and a fast session config."""

from __future__ import annotations

import pytest


class ScriptedRandom:
    """Replays scripted ``random()`` and ``uniform()`` values; ``choice`` picks a fixed index.

    Once the script runs out ``random()`` returns ``default``, which is high
    enough that no probabilistic branch fires.
    """

    def __init__(
        self,
        randoms=(),
        default: float = 0.99,
        choice_index: int = 0,
        uniform: float | None = None,
        uniforms=(),
    ):
        self._randoms = list(randoms)
        self._uniforms = list(uniforms)
        self.default = default
        self.choice_index = choice_index
        self.uniform_value = uniform
        self.random_calls = 0

    def script(self, *values: float) -> None:
        self._randoms.extend(values)

    def random(self) -> float:
        self.random_calls += 1
        if self._randoms:
            return self._randoms.pop(0)
        return self.default

    def choice(self, seq):
        return seq[min(self.choice_index, len(seq) - 1)]

    def uniform(self, a: float, b: float) -> float:
        if self._uniforms:
            return self._uniforms.pop(0)
        return a if self.uniform_value is None else self.uniform_value


@pytest.fixture
def scripted_rng():
    """Factory for ScriptedRandom instances."""
    return ScriptedRandom


@pytest.fixture
def fast_config() -> dict:
    """Session config with instant narrator delivery and no random badges.

    Repeating timers are slowed far past any test's runtime, so tests drive
    ticks by hand while one-shot delays still elapse in milliseconds.
    """
    quiet = 10_000
    return {
        "session": {"mode": "infinite_spiral", "time_scale": 0.001, "shadow_competitor_delay": 30},
        "scheduler": {
            "spiral_period": quiet,
            "phase_check_period": quiet,
            "prompt_period": quiet,
            "narrator_idle_poll": quiet,
            "narrator_periods": {"passive-aggressive": quiet, "existential": quiet, "unhinged": quiet},
        },
        "narrator": {"scrollback_limit": 20, "typing_delay_min": 0, "typing_delay_max": 0},
        "badges": {"award_chance": 0.0, "toast_duration": 5},
    }
