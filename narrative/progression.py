"""Experience phase progression: a one-way ratchet driven by corruption."""

from __future__ import annotations

from enum import Enum
from typing import Any


class ExperiencePhase(str, Enum):
    """Overall stage of the scripted spiral narrative."""

    INTRO = "intro"
    PATTERN_SEQUENCES = "pattern-sequences"
    EXISTENTIAL_REFLECTION = "existential-reflection"
    MIRROR_CONFRONTATION = "mirror-confrontation"
    REALITY_BREAKDOWN = "reality-breakdown"


_PHASE_ORDER = tuple(ExperiencePhase)

# Gate scores must be strictly greater than these to enter the phase.
DEFAULT_THRESHOLDS = {
    ExperiencePhase.PATTERN_SEQUENCES: 6.0,
    ExperiencePhase.EXISTENTIAL_REFLECTION: 12.0,
    ExperiencePhase.MIRROR_CONFRONTATION: 18.0,
}

TRANSITION_LINES = {
    ExperiencePhase.PATTERN_SEQUENCES: (
        "The patterns are starting to recognize you. Isn't that interesting?"
    ),
    ExperiencePhase.EXISTENTIAL_REFLECTION: (
        "You're deep enough now that there's no point in going back. The only way is forward."
    ),
    ExperiencePhase.MIRROR_CONFRONTATION: (
        "ERROR: Reality fracture detected. System attempting to reconcile contradictory user states."
    ),
    ExperiencePhase.REALITY_BREAKDOWN: (
        "ERROR: User decision rejected. Both instances corrupted."
    ),
}


def phase_rank(phase: ExperiencePhase | str) -> int:
    return _PHASE_ORDER.index(ExperiencePhase(phase))


def load_thresholds(cfg: dict[str, Any] | None) -> dict[ExperiencePhase, float]:
    """Read gate thresholds from the ``narrative`` config section."""
    thresholds = dict(DEFAULT_THRESHOLDS)
    raw = ((cfg or {}).get("narrative") or {}).get("phase_thresholds") or {}
    for name, value in raw.items():
        try:
            phase = ExperiencePhase(name)
        except ValueError:
            continue
        if phase not in thresholds:
            continue
        try:
            thresholds[phase] = float(value)
        except (TypeError, ValueError):
            pass
    return thresholds


def determine_phase(
    gate_score: float,
    thresholds: dict[ExperiencePhase, float] | None = None,
) -> ExperiencePhase:
    """Return the phase a gate score qualifies for, ignoring history."""
    thresholds = thresholds or DEFAULT_THRESHOLDS
    reached = ExperiencePhase.INTRO
    for phase in _PHASE_ORDER[1:4]:
        if gate_score > thresholds[phase]:
            reached = phase
    return reached


def advance_phase(
    current: ExperiencePhase,
    gate_score: float,
    thresholds: dict[ExperiencePhase, float] | None = None,
) -> ExperiencePhase:
    """Ratchet forward from ``current``; never returns an earlier phase.

    A single check may skip intermediate phases when the score jumps,
    e.g. intro straight to existential-reflection.
    """
    target = determine_phase(gate_score, thresholds)
    if phase_rank(target) > phase_rank(current):
        return target
    return current
