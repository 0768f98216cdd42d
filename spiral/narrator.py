"""Narrator channel - latest message slot plus a typed-out scrollback."""

from __future__ import annotations

import logging
import random
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .derivation import NarratorPhase
from .timers import TimerGroup

logger = logging.getLogger(__name__)

DEFAULT_SCROLLBACK_LIMIT = 20
DEFAULT_TYPING_DELAY = (0.5, 1.5)


class MessageKind(str, Enum):
    HELPFUL = "helpful"
    PASSIVE_AGGRESSIVE = "passive-aggressive"
    EXISTENTIAL = "existential"
    UNHINGED = "unhinged"
    SYSTEM = "system"


KIND_LABELS = {
    MessageKind.SYSTEM: "System",
    MessageKind.HELPFUL: "Assistant",
    MessageKind.PASSIVE_AGGRESSIVE: "Monitor",
    MessageKind.EXISTENTIAL: "Observer",
    MessageKind.UNHINGED: "ERROR://",
}

_EXISTENTIAL_NAMES = {
    "evil_apprentice": "The Mentor",
    "shadow_enthusiast": "The Observer",
    "dark_tourist": "The Guide",
}


def narrator_name(phase: NarratorPhase, alignment: str | None = None) -> str:
    """Header name the narrator uses in the given phase."""
    if phase == NarratorPhase.HELPFUL:
        return "System Assistant"
    if phase == NarratorPhase.PASSIVE_AGGRESSIVE:
        return "System Monitor"
    if phase == NarratorPhase.EXISTENTIAL:
        return _EXISTENTIAL_NAMES.get(alignment or "", "The Watcher")
    return "SYSTEM://ERROR"


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


@dataclass(frozen=True)
class NarratorMessage:
    text: str
    kind: MessageKind = MessageKind.SYSTEM

    @property
    def label(self) -> str:
        return KIND_LABELS[self.kind]


Subscriber = Callable[[NarratorMessage], None]


class NarratorChannel:
    """Single broadcast point for narrator text.

    ``push`` updates the latest-message slot at once, then queues the
    message behind a single typing indicator. The head of the queue is
    held for a random typing delay, appended to the scrollback, and only
    then does the next message start typing, so the scrollback always
    follows push order. A message equal to the one accepted just before
    it is dropped. Without a timer group, or with a zero delay range,
    delivery is immediate.
    """

    def __init__(
        self,
        timers: TimerGroup | None = None,
        rng: random.Random | None = None,
        scrollback_limit: int = DEFAULT_SCROLLBACK_LIMIT,
        typing_delay: tuple[float, float] = DEFAULT_TYPING_DELAY,
    ):
        self._timers = timers
        self._rng = rng or random.Random()
        self._scrollback: deque[NarratorMessage] = deque(maxlen=max(1, int(scrollback_limit)))
        low, high = typing_delay
        self._delay = (max(0.0, float(low)), max(float(low), float(high)))
        self._queue: deque[NarratorMessage] = deque()
        self._typing_handle: Any = None
        self._latest = ""
        self._last_accepted: str | None = None
        self._subscribers: list[Subscriber] = []

    @classmethod
    def from_config(
        cls,
        cfg: dict[str, Any],
        timers: TimerGroup | None = None,
        rng: random.Random | None = None,
    ) -> NarratorChannel:
        narrator_cfg = cfg.get("narrator", {}) or {}
        return cls(
            timers=timers,
            rng=rng,
            scrollback_limit=narrator_cfg.get("scrollback_limit", DEFAULT_SCROLLBACK_LIMIT),
            typing_delay=(
                narrator_cfg.get("typing_delay_min", DEFAULT_TYPING_DELAY[0]),
                narrator_cfg.get("typing_delay_max", DEFAULT_TYPING_DELAY[1]),
            ),
        )

    # ── Reading ─────────────────────────────────────────────────

    @property
    def latest(self) -> str:
        return self._latest

    @property
    def scrollback(self) -> list[NarratorMessage]:
        return list(self._scrollback)

    @property
    def is_typing(self) -> bool:
        return bool(self._queue)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a delivery callback; returns an unsubscribe function."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    # ── Writing ─────────────────────────────────────────────────

    def push(self, text: Any, kind: MessageKind | str = MessageKind.SYSTEM) -> bool:
        """Queue a message. Returns False when blank or a repeat of the previous one."""
        body = _as_text(text)
        if not body.strip():
            return False
        if body == self._last_accepted:
            logger.debug("Dropping repeated narrator line: %s", body[:60])
            return False
        try:
            kind = MessageKind(kind)
        except ValueError:
            kind = MessageKind.SYSTEM

        self._latest = body
        self._last_accepted = body
        message = NarratorMessage(text=body, kind=kind)

        if self._timers is None or self._delay[1] <= 0:
            self._deliver(message)
            return True

        self._queue.append(message)
        if self._typing_handle is None:
            self._type_next()
        return True

    def flush(self) -> None:
        """Deliver every pending message now, in push order."""
        self._stop_typing()
        while self._queue:
            self._deliver(self._queue.popleft())

    def close(self) -> None:
        """Drop pending messages without delivering them."""
        self._stop_typing()
        self._queue.clear()

    def _stop_typing(self) -> None:
        if self._timers is not None:
            self._timers.cancel_handle(self._typing_handle)
        self._typing_handle = None

    def _type_next(self) -> None:
        while self._queue:
            delay = self._rng.uniform(*self._delay)
            handle = self._timers.later(delay, self._release_head)
            if handle is not None:
                self._typing_handle = handle
                return
            if self._timers.closed:
                # Owning scope already ended
                self._queue.clear()
                return
            # No event loop to type on
            self._deliver(self._queue.popleft())

    def _release_head(self) -> None:
        self._typing_handle = None
        if self._queue:
            self._deliver(self._queue.popleft())
        # A subscriber may have pushed and started the next message already
        if self._typing_handle is None:
            self._type_next()

    def _deliver(self, message: NarratorMessage) -> None:
        if self._scrollback and self._scrollback[-1].text == message.text:
            return
        self._scrollback.append(message)
        logger.debug("Narrator [%s]: %s", message.label, message.text[:80])
        for callback in list(self._subscribers):
            callback(message)
