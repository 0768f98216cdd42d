"""Display-only text corruption.

Scrambling never touches the semantic text: callers compare and store
``ScrambledText.text`` and only render ``ScrambledText.display``.
"""

from __future__ import annotations

import random
import weakref
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .metrics import MetricStore
    from .timers import TimerGroup

GLITCH_CHARS = (
    "!@#$%^&*()_+-=[]{}|;:,.<>?/\\~`\"'"
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789"
)
PRESERVED_CHARS = frozenset(" .,!?")

MIN_REFRESH_PERIOD = 0.1


def scramble_intensity(
    chaos_level: float,
    multiplier: float = 1.0,
    hovering: bool = False,
    glitch_on_hover: bool = False,
) -> float:
    """Per-character replacement probability, 0 when calm."""
    level = chaos_level * multiplier
    hover_glitch = hovering and glitch_on_hover
    if level <= 1 and not hover_glitch:
        return 0.0
    base = min((level - 1) / 4, 1.0)
    return max(0.0, base * (0.8 if hover_glitch else 0.3))


def refresh_period(chaos_level: float, multiplier: float = 1.0, animated: bool = True) -> float:
    """Seconds between re-rolls; shrinks as corruption rises."""
    if not animated:
        return 10.0
    return max(MIN_REFRESH_PERIOD, 2.0 - chaos_level * multiplier * 0.2)


def scramble(text: str, intensity: float, rng: random.Random | None = None) -> str:
    rng = rng or random.Random()
    if intensity <= 0:
        return text
    out = []
    for char in text:
        if char in PRESERVED_CHARS:
            out.append(char)
        elif rng.random() < intensity:
            out.append(rng.choice(GLITCH_CHARS))
        else:
            out.append(char)
    return "".join(out)


class ScrambledText:
    """A string with a time-varying corrupted rendering.

    ``display`` is re-rolled on a timer whose period follows the store's
    chaos level; ``text`` always holds the original string.
    """

    def __init__(
        self,
        text: str,
        store: MetricStore,
        multiplier: float = 1.0,
        rng: random.Random | None = None,
        glitch_on_hover: bool = False,
    ):
        self.text = text
        self.multiplier = multiplier
        self.glitch_on_hover = glitch_on_hover
        self.hovering = False
        self._store = store
        self._rng = rng or random.Random()
        self._display = text
        self._timers: TimerGroup | None = None
        self._timer_name = f"scramble:{id(self)}"

    def __str__(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f"ScrambledText({self.text!r}, display={self._display!r})"

    @property
    def display(self) -> str:
        return self._display

    @property
    def intensity(self) -> float:
        return scramble_intensity(
            self._store.chaos_level,
            self.multiplier,
            hovering=self.hovering,
            glitch_on_hover=self.glitch_on_hover,
        )

    def reroll(self) -> str:
        self._display = scramble(self.text, self.intensity, self._rng)
        return self._display

    def start(self, timers: TimerGroup) -> None:
        """Re-roll ``display`` on ``timers`` until ``stop()`` is called.

        The timer holds this text only weakly, so a text that is dropped
        without ``stop()`` cancels its own timer on the next tick.
        """
        self._timers = timers
        ref = weakref.ref(self)
        name = self._timer_name

        def _period() -> float:
            text = ref()
            if text is None:
                return 0.0
            return refresh_period(text._store.chaos_level, text.multiplier)

        def _tick() -> None:
            text = ref()
            if text is None:
                timers.cancel(name)
                return
            text.reroll()

        timers.every(name, _period, _tick)

    def stop(self) -> None:
        if self._timers is not None:
            self._timers.cancel(self._timer_name)
            self._timers = None
        self._display = self.text
