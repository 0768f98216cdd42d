"""Badge catalogue and the probabilistic award rule."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Any

from .metrics import MetricSnapshot, MetricStore
from .timers import TimerGroup

logger = logging.getLogger(__name__)

DEFAULT_AWARD_CHANCE = 0.3
DEFAULT_TOAST_DURATION = 5.0


@dataclass(frozen=True)
class Badge:
    id: str
    name: str
    description: str
    microcopy: str = ""
    lesson: str = ""


# Awarded at random by BadgeEngine.evaluate.
HUD_BADGES = (
    Badge("ux_victim", "UX Victim", "Survived multiple dark patterns"),
    Badge("button_chaser", "Button Chaser", "Clicked on more than 50 moving elements"),
    Badge("digital_masochist", "Digital Masochist", "Completed a form 3+ times"),
    Badge("error_collector", "Error Collector", "Accumulated 10+ form errors"),
    Badge("persistent_soul", "Persistent Soul", "Attempted to escape multiple times"),
    Badge("corrupted_entity", "Corrupted Entity", "Identity is now 75%+ scrambled"),
    Badge("consent_surrenderer", "Consent Surrenderer", "Accepted all cookies without reading"),
    Badge("pattern_prisoner", "Pattern Prisoner", "Trapped in 5+ standard dark patterns"),
    Badge("soul_seller", "Soul Seller", "Willingly gave up digital rights"),
    Badge("reality_glitcher", "Reality Glitcher", "Survived a complete UI inversion"),
)

# Awarded when a dark-pattern challenge is completed.
PATTERN_BADGES = (
    Badge(
        "confirmshamer", "Confirmshamer",
        "User clicked a guilt-inducing decline CTA",
        "You clicked 'No thanks, I enjoy being confused.'",
        "Dark Pattern: Confirmshaming – using shame to manipulate consent.",
    ),
    Badge(
        "roach_motel", "Roach Motel Resident",
        "User enters a flow with no visible way out",
        "You can check in, but you can't check out.",
        "Dark Pattern: Roach Motel – easy to get in, hard to get out.",
    ),
    Badge(
        "forced_funnel", "Funnel Victim",
        "All paths led to the same action despite different choices.",
        "Free will? That's cute.",
        "Dark Pattern: Forced Funnel – fake choices to drive behavior.",
    ),
    Badge(
        "ghost_exit", "Exit Mirage",
        "User clicked 3+ fake exits",
        "You chased freedom. It was never real.",
        "Dark Pattern: Fake Exit – misdirecting users who want to leave.",
    ),
    Badge(
        "gaslight_victim", "Gaslight Victim",
        "Tried to correct a field that had changed unexpectedly.",
        "You think you know what you typed. That's cute.",
        "Dark Pattern: Gaslighting – intentionally altering or questioning user memory.",
    ),
    Badge(
        "phantom_clicker", "Phantom Clicker",
        "Lost to the decoy ghost cursor 3 times.",
        "You were outclicked by yourself.",
        "Dark Pattern: Distraction Interference – mimicking user interaction to mislead.",
    ),
    Badge(
        "option_evaporator", "Option Evaporator",
        "Hesitated until the only choices disappeared.",
        "Indecision is a decision. Just a bad one.",
        "Dark Pattern: Time Pressure – forcing hasty actions by removing options.",
    ),
)

PATTERN_BADGE_MAP = {
    "breeding_modals": "confirmshamer",
    "recursive_menus": "roach_motel",
    "glitched_inputs": "forced_funnel",
    "false_progress": "ghost_exit",
    "identity_mirror_loop": "gaslight_victim",
    "ghost_cursor_duel": "phantom_clicker",
    "option_crumble": "option_evaporator",
}

_ALL_BADGES = {badge.id: badge for badge in HUD_BADGES + PATTERN_BADGES}


def get_badge(badge_id: str) -> Badge | None:
    return _ALL_BADGES.get(badge_id)


@dataclass
class Toast:
    badge: Badge


class BadgeEngine:
    """Award badges into the store and raise a short-lived toast.

    The random rule is kept deliberately weak: a badge can only be offered
    while none is held, so most sessions never earn more than one this way.
    """

    def __init__(
        self,
        store: MetricStore,
        rng: random.Random | None = None,
        timers: TimerGroup | None = None,
        catalog: tuple[Badge, ...] = HUD_BADGES,
        award_chance: float = DEFAULT_AWARD_CHANCE,
        toast_duration: float = DEFAULT_TOAST_DURATION,
    ):
        self._store = store
        self._rng = rng or random.Random()
        self._timers = timers
        self._catalog = catalog
        self._award_chance = award_chance
        self._toast_duration = toast_duration
        self._toast: Toast | None = None
        self._toast_handle: Any = None

    @classmethod
    def from_config(
        cls,
        cfg: dict[str, Any],
        store: MetricStore,
        rng: random.Random | None = None,
        timers: TimerGroup | None = None,
    ) -> BadgeEngine:
        badge_cfg = cfg.get("badges", {}) or {}
        return cls(
            store,
            rng=rng,
            timers=timers,
            award_chance=float(badge_cfg.get("award_chance", DEFAULT_AWARD_CHANCE)),
            toast_duration=float(badge_cfg.get("toast_duration", DEFAULT_TOAST_DURATION)),
        )

    @property
    def toast(self) -> Toast | None:
        return self._toast

    def evaluate(self, snapshot: MetricSnapshot) -> str | None:
        """One award check. Returns the badge id awarded, if any."""
        if snapshot.earned_badges:
            return None
        if self._rng.random() >= self._award_chance:
            return None
        available = [b for b in self._catalog if b.id not in snapshot.earned_badges]
        if not available:
            return None
        badge = self._rng.choice(available)
        return badge.id if self.award(badge.id) else None

    def award(self, badge_id: str) -> bool:
        """Grant a specific badge. False if unknown or already held."""
        badge = get_badge(badge_id)
        if badge is None:
            logger.warning("Unknown badge id: %s", badge_id)
            return False
        if not self._store.award_badge(badge_id):
            return False
        logger.info("Badge earned: %s", badge.name)
        self._show_toast(badge)
        return True

    def badge_for_pattern(self, pattern_id: str) -> Badge:
        """Badge that completing a pattern earns; random pattern badge if unmapped."""
        mapped = get_badge(PATTERN_BADGE_MAP.get(pattern_id, ""))
        if mapped is not None:
            return mapped
        return self._rng.choice(PATTERN_BADGES)

    def dismiss_toast(self) -> None:
        self._toast = None
        if self._timers is not None:
            self._timers.cancel_handle(self._toast_handle)
        self._toast_handle = None

    def _show_toast(self, badge: Badge) -> None:
        if self._timers is not None:
            self._timers.cancel_handle(self._toast_handle)
        self._toast = Toast(badge=badge)
        if self._timers is not None:
            self._toast_handle = self._timers.later(self._toast_duration, self._expire_toast)

    def _expire_toast(self) -> None:
        self._toast = None
        self._toast_handle = None
