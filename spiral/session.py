"""Spiral session - wires the store, narrator, badges and scheduler together.

One session = one descent. Everything it starts is owned by a single
TimerGroup and dies with ``stop()``.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable
from dataclasses import asdict, dataclass
from typing import Any

from narrative.progression import TRANSITION_LINES, ExperiencePhase
from narrative.scripts import (
    ALL_PATTERNS_SEEN_LINE,
    FAILURE_OVERRIDE_LINE,
    OVERRIDE_LINES,
    REALITY_BREAK_LINE,
    REALITY_RESTORED_LINE,
    WELCOME_LINE,
    HiddenScene,
    error_override,
    failure_line,
    hidden_scene_for_frustration,
    line_for_depth,
    memory_line,
    opening_line,
    random_ux_law,
)

from .badges import BadgeEngine
from .config import load_config
from .derivation import (
    DerivedState,
    baseline_glitch_intensity,
    derive,
    narrator_glitch_chance,
    narrator_phase,
    reality_break_ready,
    should_flip_screen,
)
from .metrics import GameMode, MetricSnapshot, MetricStore
from .narrator import MessageKind, NarratorChannel, narrator_name
from .patterns import DEFAULT_FRUSTRATION_INCREMENT, SpiralPattern, pick_pattern
from .scheduler import EventScheduler, SchedulerSettings
from .scrambler import ScrambledText
from .timers import TimerGroup

logger = logging.getLogger(__name__)

UX_LAW_DURATION = 6.0
OVERRIDE_ERROR_DURATION = 4.0
INTERFACE_REBELLION_DURATION = 5.0
MEMORY_COMMENT_DELAY = 5.0
REALITY_RESTORE_DELAY = 3.0
REALITY_REARM_DELAY = 5.0
FLIP_DURATION = 2.0
FLIP_COOLDOWN = 60.0
NARRATOR_GLITCH_DURATION = 0.3
MAX_GLITCH_INTENSITY = 10


@dataclass
class PatternMemory:
    """What the narrator remembers about one challenge."""

    attempts: int = 1
    failures: int = 0
    completed: bool = False


def _narrator_inputs(s: MetricSnapshot) -> tuple:
    return (s.chaos_level, s.suspicion_level, s.spiral_depth, s.frustration_score)


def _seeded_rng(seed: Any) -> random.Random:
    if seed is None or seed == "":
        return random.Random()
    return random.Random(seed)


class SpiralSession:
    """The infinite spiral: metrics in, narrator lines and effects out."""

    def __init__(
        self,
        config: dict | None = None,
        *,
        rng: random.Random | None = None,
        mode: GameMode | str | None = None,
        alignment: str | None = None,
        on_mirror: Callable[[], None] | None = None,
    ):
        self._cfg = config if config is not None else load_config()
        session_cfg = self._cfg.get("session", {}) or {}

        self._rng = rng or _seeded_rng(session_cfg.get("seed"))
        self.alignment = alignment or session_cfg.get("alignment") or None
        try:
            time_scale = float(session_cfg.get("time_scale", 1.0))
        except (TypeError, ValueError):
            time_scale = 1.0
        self._shadow_delay = float(session_cfg.get("shadow_competitor_delay", 30))
        self._on_mirror = on_mirror

        self._timers = TimerGroup("spiral", time_scale=time_scale)
        self._store = MetricStore(mode or session_cfg.get("mode", GameMode.INFINITE_SPIRAL), self.alignment)
        self._channel = NarratorChannel.from_config(self._cfg, self._timers, self._rng)
        self._badges = BadgeEngine.from_config(self._cfg, self._store, self._rng, self._timers)
        self._scheduler = EventScheduler(
            self._store,
            self._channel,
            self._timers,
            rng=self._rng,
            settings=SchedulerSettings.from_config(self._cfg),
            on_mirror=self._handle_mirror,
        )

        self._running = False
        self._last_seen = self._store.snapshot()

        # Pattern loop
        self.current_pattern: SpiralPattern | None = None
        self._memory: dict[str, PatternMemory] = {}

        # Effects read by renderers
        self.glitch_intensity = 0
        self.ux_law: str | None = None
        self.override_message: str | None = None
        self.override_error: str | None = None
        self.hidden_scene: HiddenScene | None = None
        self.screen_flipped = False
        self.reality_breaking = False
        self.shadow_competitor_visible = False
        self.mirror_active = False
        self.mirror_choice: str | None = None
        self.narrator_glitching = False

        self._flip_armed = True
        self._ux_law_handle: Any = None
        self._override_error_handle: Any = None
        self._rebellion_handle: Any = None
        self._narrator_glitch_handle: Any = None

    # ── Components ──────────────────────────────────────────────

    @property
    def store(self) -> MetricStore:
        return self._store

    @property
    def channel(self) -> NarratorChannel:
        return self._channel

    @property
    def badges(self) -> BadgeEngine:
        return self._badges

    @property
    def scheduler(self) -> EventScheduler:
        return self._scheduler

    @property
    def timers(self) -> TimerGroup:
        return self._timers

    @property
    def running(self) -> bool:
        return self._running

    # ── Lifecycle ───────────────────────────────────────────────

    async def start(self) -> None:
        if self._running:
            return
        if self._timers.closed:
            raise RuntimeError("Spiral session already stopped; create a new one")

        self._running = True
        self._last_seen = self._store.snapshot()
        self._store.add_listener(self._on_metrics)
        logger.info(
            "Spiral session started (mode=%s, alignment=%s)",
            self._store.snapshot().game_mode.value,
            self.alignment or "-",
        )

        self._store.record_interaction("started_infinite_spiral")
        self._channel.push(opening_line(self.alignment) if self.alignment else WELCOME_LINE)
        self._badges.evaluate(self._store.snapshot())
        self._scheduler.start()
        self._timers.later(self._shadow_delay, self._reveal_shadow_competitor)

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        self._store.remove_listener(self._on_metrics)
        self._scheduler.stop()
        self._channel.close()
        self._timers.cancel_all()
        logger.info("Spiral session stopped at depth %d", self._store.spiral_depth)

    async def __aenter__(self) -> SpiralSession:
        await self.start()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.stop()

    # ── Inbound mutators ────────────────────────────────────────

    def record_interaction(self, kind: Any) -> int:
        return self._store.record_interaction(kind)

    def set_spiral_depth(self, updater: Any) -> int:
        return self._store.set_spiral_depth(updater)

    def set_frustration_score(self, updater: Any) -> float:
        return self._store.set_frustration_score(updater)

    def bump_suspicion(self, amount: Any = 1) -> int:
        return self._store.bump_suspicion(amount)

    def set_narrator_message(self, text: Any) -> bool:
        return self._channel.push(text)

    # ── Challenge loop ──────────────────────────────────────────

    def next_pattern(self) -> SpiralPattern:
        """Pick the next dark-pattern challenge and let the narrator react."""
        snapshot = self._store.snapshot()
        if self._rng.random() < 0.3:
            self._channel.push(line_for_depth(snapshot.spiral_depth, self._rng))

        pattern, exhausted = pick_pattern(
            snapshot.learned_patterns,
            snapshot.spiral_depth,
            snapshot.frustration_score,
            self._rng,
        )
        if exhausted:
            self._store.set_spiral_depth(lambda depth: depth + 5)
            self._channel.push(ALL_PATTERNS_SEEN_LINE)

        self.current_pattern = pattern
        self._channel.push(pattern.narrator_reaction)

        memory = self._memory.get(pattern.id)
        if memory is None:
            self._memory[pattern.id] = PatternMemory()
        else:
            line = memory_line(memory.attempts, self._rng)
            self._timers.later(MEMORY_COMMENT_DELAY, lambda: self._channel.push(line))
            memory.attempts += 1

        logger.debug("Next pattern: %s (exhausted=%s)", pattern.id, exhausted)
        return pattern

    def on_complete(self) -> None:
        """A challenge widget reports success."""
        pattern = self.current_pattern
        if pattern is not None and self._store.learn_pattern(pattern.id):
            badge = self._badges.badge_for_pattern(pattern.id)
            self._badges.award(badge.id)
            self._channel.push(f"{badge.microcopy} {badge.lesson}")
            self._memory.setdefault(pattern.id, PatternMemory()).completed = True

        self._store.increment_spiral_depth()
        self._store.set_frustration_score(lambda score: max(0.0, score - 1))

    def on_fail(self) -> None:
        """A challenge widget reports that the visitor gave up."""
        pattern = self.current_pattern
        before = self._store.frustration_score
        increment = pattern.frustration_increment if pattern else DEFAULT_FRUSTRATION_INCREMENT

        self._store.add_frustration(increment)
        self._channel.push(failure_line(self.alignment))
        if pattern is not None:
            self._memory.setdefault(pattern.id, PatternMemory()).failures += 1

        # Decided on the score from before this failure
        if before > 8 and self._rng.random() < 0.4:
            self._show_ux_law()
        if before > 12 and self._rng.random() < 0.3:
            self._narrator_override(FAILURE_OVERRIDE_LINE)

    def pattern_memory(self, pattern_id: str) -> PatternMemory | None:
        return self._memory.get(pattern_id)

    # ── Mirror ──────────────────────────────────────────────────

    def _handle_mirror(self) -> None:
        self.mirror_active = True
        logger.info("Mirror confrontation reached; handing off")
        if self._on_mirror is not None:
            self._on_mirror()

    def on_mirror_resolved(self, version: str) -> None:
        """The mirror reports the visitor's choice between the two instances."""
        self.mirror_active = False
        self.mirror_choice = str(version)
        logger.info("Mirror resolved with version %s", self.mirror_choice)

        if self._store.snapshot().game_mode == GameMode.INFINITE_SPIRAL:
            self._store.set_frustration_score(10)
        target = ExperiencePhase.REALITY_BREAKDOWN
        self._channel.push(TRANSITION_LINES[target])
        self._store.advance_experience_phase(target)

    # ── Reactions to metric changes ─────────────────────────────

    def _on_metrics(self, snapshot: MetricSnapshot) -> None:
        previous = self._last_seen
        self._last_seen = snapshot
        if not self._running:
            return

        if snapshot.chaos_level != previous.chaos_level:
            self._badges.evaluate(snapshot)
        if snapshot.frustration_score != previous.frustration_score:
            self._check_hidden_scene(snapshot.frustration_score)
        if snapshot.spiral_depth != previous.spiral_depth:
            self._deep_spiral_effects(snapshot)

        if not self.reality_breaking and reality_break_ready(snapshot):
            self._break_reality()
        if self._flip_armed and should_flip_screen(snapshot):
            self._flip_screen()

        # Rolled after every other reaction
        if _narrator_inputs(snapshot) != _narrator_inputs(previous):
            self._maybe_glitch_narrator(snapshot)

    def _maybe_glitch_narrator(self, snapshot: MetricSnapshot) -> None:
        if self._rng.random() >= narrator_glitch_chance(snapshot):
            return
        self.narrator_glitching = True
        self._timers.cancel_handle(self._narrator_glitch_handle)
        self._narrator_glitch_handle = self._timers.later(
            NARRATOR_GLITCH_DURATION, self._settle_narrator_glitch
        )

    def _settle_narrator_glitch(self) -> None:
        self.narrator_glitching = False
        self._narrator_glitch_handle = None

    def _check_hidden_scene(self, frustration: float) -> None:
        scene = hidden_scene_for_frustration(frustration)
        if scene is None or (self.hidden_scene is not None and scene.id == self.hidden_scene.id):
            return
        self.hidden_scene = scene
        logger.info("Hidden scene unlocked: %s", scene.id)

        if scene.id == "narrator_mockery":
            self._show_ux_law()
        elif scene.id == "interface_rebellion":
            self.glitch_intensity = 5
            self._timers.cancel_handle(self._rebellion_handle)
            self._rebellion_handle = self._timers.later(
                INTERFACE_REBELLION_DURATION, self._settle_rebellion
            )
        elif scene.id == "meta_breakdown":
            self._narrator_override(scene.narrator_line)
        elif scene.id == "narrator_override":
            self._narrator_override(scene.narrator_line)
            self.glitch_intensity = 8
            self.override_error = error_override("404")
            self._timers.cancel_handle(self._override_error_handle)
            self._override_error_handle = self._timers.later(
                OVERRIDE_ERROR_DURATION, self._clear_override_error
            )

        self._channel.push(scene.narrator_line, MessageKind.UNHINGED)

    def _deep_spiral_effects(self, snapshot: MetricSnapshot) -> None:
        if snapshot.spiral_depth < 10:
            return
        if self._rng.random() < 0.2:
            self._show_ux_law()
        if self._rng.random() < 0.1:
            self._narrator_override(self._rng.choice(OVERRIDE_LINES))
        self.glitch_intensity = baseline_glitch_intensity(snapshot)

    def _break_reality(self) -> None:
        self.reality_breaking = True
        logger.info("Reality break triggered")
        self._channel.push(REALITY_BREAK_LINE, MessageKind.UNHINGED)
        self._timers.later(REALITY_RESTORE_DELAY, self._restore_reality)

    def _restore_reality(self) -> None:
        self._badges.award("reality_glitcher")
        self._channel.push(REALITY_RESTORED_LINE)
        self._timers.later(REALITY_REARM_DELAY, self._rearm_reality_break)

    def _rearm_reality_break(self) -> None:
        self.reality_breaking = False

    def _flip_screen(self) -> None:
        self.screen_flipped = True
        self._flip_armed = False
        logger.info("Screen flipped")
        self._timers.later(FLIP_DURATION, self._unflip_screen)
        self._timers.later(FLIP_COOLDOWN, self._rearm_flip)

    def _unflip_screen(self) -> None:
        self.screen_flipped = False

    def _rearm_flip(self) -> None:
        self._flip_armed = True

    # ── Overlays ────────────────────────────────────────────────

    def _show_ux_law(self) -> None:
        self.ux_law = random_ux_law(self._rng)
        self._timers.cancel_handle(self._ux_law_handle)
        self._ux_law_handle = self._timers.later(UX_LAW_DURATION, self._hide_ux_law)

    def _hide_ux_law(self) -> None:
        self.ux_law = None
        self._ux_law_handle = None

    def _narrator_override(self, message: str) -> None:
        self.override_message = message
        self.glitch_intensity = min(MAX_GLITCH_INTENSITY, self.glitch_intensity + 3)

    def dismiss_override(self) -> None:
        self.override_message = None
        self.glitch_intensity = max(0, self.glitch_intensity - 3)

    def _settle_rebellion(self) -> None:
        self.glitch_intensity = 2
        self._rebellion_handle = None

    def _clear_override_error(self) -> None:
        self.override_error = None
        self._override_error_handle = None

    def _reveal_shadow_competitor(self) -> None:
        self.shadow_competitor_visible = True

    def scrambled(self, text: str, multiplier: float = 1.0, glitch_on_hover: bool = False) -> ScrambledText:
        """Text whose rendering corrupts with this session's chaos level.

        Each call starts its own re-roll timer on the session group. Call
        ``stop()`` on the returned text when it leaves the screen; a text
        that is simply dropped releases its timer on the next tick.
        """
        scrambled = ScrambledText(
            text, self._store, multiplier=multiplier, rng=self._rng, glitch_on_hover=glitch_on_hover
        )
        scrambled.reroll()
        if self._running:
            scrambled.start(self._timers)
        return scrambled

    # ── Reading ─────────────────────────────────────────────────

    def snapshot(self) -> MetricSnapshot:
        return self._store.snapshot()

    def derived(self) -> DerivedState:
        return derive(self._store.snapshot())

    def view(self) -> dict[str, Any]:
        """Snapshot, derived values, narrator and effect state as plain data."""
        snapshot = self._store.snapshot()
        toast = self._badges.toast
        return {
            "metrics": snapshot.to_dict(),
            "derived": derive(snapshot).to_dict(),
            "narrator": {
                "name": narrator_name(narrator_phase(snapshot), self.alignment),
                "latest": self._channel.latest,
                "typing": self._channel.is_typing,
                "scrollback": [
                    {"text": m.text, "kind": m.kind.value, "label": m.label}
                    for m in self._channel.scrollback
                ],
            },
            "effects": {
                "glitch_active": self._scheduler.glitch_active,
                "narrator_glitching": self.narrator_glitching,
                "glitch_intensity": self.glitch_intensity,
                "screen_flipped": self.screen_flipped,
                "reality_breaking": self.reality_breaking,
                "ux_law": self.ux_law,
                "override_message": self.override_message,
                "override_error": self.override_error,
                "hidden_scene": self.hidden_scene.id if self.hidden_scene else None,
                "prompt": self._scheduler.prompt,
                "prompt_footer": self._scheduler.prompt_footer if self._scheduler.prompt else None,
                "shadow_competitor_visible": self.shadow_competitor_visible,
                "mirror_active": self.mirror_active,
                "toast": asdict(toast.badge) if toast else None,
            },
            "pattern": self.current_pattern.id if self.current_pattern else None,
        }
