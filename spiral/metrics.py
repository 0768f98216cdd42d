"""Metric store for a spiral session.

Snapshot = the raw signals every surface reads (chaos, suspicion, ...)
Store = the only writer; all mutation goes through named methods
"""

from __future__ import annotations

import copy
import logging
import math
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from narrative.progression import ExperiencePhase, phase_rank

logger = logging.getLogger(__name__)

CHAOS_MAX = 5
SUSPICION_MAX = 10
INTERACTIONS_PER_CHAOS_LEVEL = 10

# Interaction kinds that feed the chaos level, mapped to their counter.
_BEHAVIOR_KINDS = {
    "click": "click_count",
    "error": "error_count",
    "restart": "restart_count",
}


class GameMode(str, Enum):
    LINEAR = "linear"
    INFINITE_SPIRAL = "infinite_spiral"


# ── Snapshot ────────────────────────────────────────────────────


@dataclass
class UserBehavior:
    """Monotonic behaviour counters that drive the chaos level."""

    click_count: int = 0
    error_count: int = 0
    restart_count: int = 0

    @property
    def total(self) -> int:
        return self.click_count + self.error_count + self.restart_count


@dataclass
class MetricSnapshot:
    """All raw signals of one session. Derived values live in derivation.py."""

    # Signals
    chaos_level: int = 0  # 0..5
    suspicion_level: int = 0  # 0..10
    frustration_score: float = 0.0  # >= 0, no upper bound
    spiral_depth: int = 0

    # Behaviour
    user_behavior: UserBehavior = field(default_factory=UserBehavior)
    interactions: dict[str, int] = field(default_factory=dict)  # every kind, incl. non-chaos ones

    # Progress
    earned_badges: list[str] = field(default_factory=list)  # unique, display order
    learned_patterns: list[str] = field(default_factory=list)
    experience_phase: ExperiencePhase = ExperiencePhase.INTRO
    mirror_triggered: bool = False

    # Session identity
    game_mode: GameMode = GameMode.INFINITE_SPIRAL
    alignment: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["experience_phase"] = self.experience_phase.value
        data["game_mode"] = self.game_mode.value
        return data


# ── Coercion helpers ────────────────────────────────────────────


def _as_number(value: Any) -> float | None:
    """Coerce external input to a finite float, or None if unusable."""
    if isinstance(value, bool):
        return float(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        logger.debug("Ignoring non-numeric metric input: %r", value)
        return None
    if not math.isfinite(number):
        logger.debug("Ignoring non-finite metric input: %r", value)
        return None
    return number


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def chaos_for_interactions(total: int) -> int:
    return min(CHAOS_MAX, 1 + total // INTERACTIONS_PER_CHAOS_LEVEL)


# ── Store ───────────────────────────────────────────────────────

Listener = Callable[[MetricSnapshot], None]


class MetricStore:
    """Single writer for a session's MetricSnapshot.

    Every mutator is synchronous and total: out-of-range or malformed
    input is clamped or ignored, never raised. Listeners are called with
    a fresh copy of the snapshot after each effective change.
    """

    def __init__(
        self,
        game_mode: GameMode | str = GameMode.INFINITE_SPIRAL,
        alignment: str | None = None,
    ):
        try:
            mode = GameMode(game_mode)
        except ValueError:
            logger.warning("Unknown game mode %r, using infinite_spiral", game_mode)
            mode = GameMode.INFINITE_SPIRAL
        self._state = MetricSnapshot(game_mode=mode, alignment=alignment or None)
        self._listeners: list[Listener] = []

    # ── Reading ─────────────────────────────────────────────────

    def snapshot(self) -> MetricSnapshot:
        """Consistent copy of the current state."""
        return copy.deepcopy(self._state)

    @property
    def chaos_level(self) -> int:
        return self._state.chaos_level

    @property
    def suspicion_level(self) -> int:
        return self._state.suspicion_level

    @property
    def frustration_score(self) -> float:
        return self._state.frustration_score

    @property
    def spiral_depth(self) -> int:
        return self._state.spiral_depth

    @property
    def experience_phase(self) -> ExperiencePhase:
        return self._state.experience_phase

    def has_badge(self, badge_id: str) -> bool:
        return badge_id in self._state.earned_badges

    # ── Listeners ───────────────────────────────────────────────

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _changed(self) -> None:
        for listener in list(self._listeners):
            listener(self.snapshot())

    # ── Signal mutators ─────────────────────────────────────────

    def bump_chaos(self, amount: Any = 1) -> int:
        delta = _as_number(amount)
        if delta is None:
            return self._state.chaos_level
        new_level = int(_clamp(self._state.chaos_level + int(delta), 0, CHAOS_MAX))
        if new_level != self._state.chaos_level:
            self._state.chaos_level = new_level
            self._changed()
        return new_level

    def bump_suspicion(self, amount: Any = 1) -> int:
        delta = _as_number(amount)
        if delta is None:
            return self._state.suspicion_level
        new_level = int(_clamp(self._state.suspicion_level + int(delta), 0, SUSPICION_MAX))
        if new_level != self._state.suspicion_level:
            self._state.suspicion_level = new_level
            self._changed()
        return new_level

    def add_frustration(self, delta: Any) -> float:
        amount = _as_number(delta)
        if amount is None or amount == 0:
            return self._state.frustration_score
        self._state.frustration_score = max(0.0, self._state.frustration_score + amount)
        self._changed()
        return self._state.frustration_score

    def set_frustration_score(self, updater: Any) -> float:
        """Set frustration from a value or a ``previous -> new`` callable."""
        raw = updater(self._state.frustration_score) if callable(updater) else updater
        value = _as_number(raw)
        if value is None:
            return self._state.frustration_score
        value = max(0.0, value)
        if value != self._state.frustration_score:
            self._state.frustration_score = value
            self._changed()
        return value

    def increment_spiral_depth(self) -> int:
        self._state.spiral_depth += 1
        self._changed()
        return self._state.spiral_depth

    def set_spiral_depth(self, updater: Any) -> int:
        """Set depth from a value or a ``previous -> new`` callable."""
        raw = updater(self._state.spiral_depth) if callable(updater) else updater
        value = _as_number(raw)
        if value is None:
            return self._state.spiral_depth
        depth = max(0, int(value))
        if depth != self._state.spiral_depth:
            self._state.spiral_depth = depth
            self._changed()
        return depth

    def record_interaction(self, kind: Any) -> int:
        """Count one interaction and recompute chaos from the behaviour totals.

        Returns the chaos level after the update.
        """
        name = str(kind if kind is not None else "").strip().lower()
        if not name:
            return self._state.chaos_level

        self._state.interactions[name] = self._state.interactions.get(name, 0) + 1
        counter = _BEHAVIOR_KINDS.get(name)
        if counter:
            behavior = self._state.user_behavior
            setattr(behavior, counter, getattr(behavior, counter) + 1)
            self._state.chaos_level = chaos_for_interactions(behavior.total)

        self._changed()
        return self._state.chaos_level

    # ── Progress mutators ───────────────────────────────────────

    def award_badge(self, badge_id: str) -> bool:
        """Add a badge; returns False when it was already held."""
        if not badge_id or badge_id in self._state.earned_badges:
            return False
        self._state.earned_badges.append(badge_id)
        self._changed()
        return True

    def learn_pattern(self, pattern_id: str) -> bool:
        if not pattern_id or pattern_id in self._state.learned_patterns:
            return False
        self._state.learned_patterns.append(pattern_id)
        self._changed()
        return True

    def advance_experience_phase(self, phase: ExperiencePhase | str) -> bool:
        """Move the experience phase forward. Earlier phases are refused."""
        try:
            target = ExperiencePhase(phase)
        except ValueError:
            logger.debug("Ignoring unknown experience phase %r", phase)
            return False
        if phase_rank(target) <= phase_rank(self._state.experience_phase):
            return False
        self._state.experience_phase = target
        self._changed()
        return True

    def trigger_mirror(self) -> bool:
        """Set the one-shot mirror flag; True only the first time."""
        if self._state.mirror_triggered:
            return False
        self._state.mirror_triggered = True
        self._changed()
        return True
