"""Derived values computed on demand from a MetricSnapshot.

Several corruption blends coexist on purpose: each surface that shows or
reacts to "corruption" has its own coefficients, and they are kept as
named formulas instead of one shared score.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, NamedTuple

from .metrics import GameMode, MetricSnapshot


class NarratorPhase(str, Enum):
    HELPFUL = "helpful"
    PASSIVE_AGGRESSIVE = "passive-aggressive"
    EXISTENTIAL = "existential"
    UNHINGED = "unhinged"


class CorruptionFormula(NamedTuple):
    name: str
    chaos: float = 0.0
    suspicion: float = 0.0
    spiral: float = 0.0
    frustration: float = 0.0


HUD = CorruptionFormula("hud", chaos=15, suspicion=5)
METER = CorruptionFormula("meter", chaos=7, suspicion=5)
PSYCHIC_RESONANCE = CorruptionFormula("psychic_resonance", chaos=10, frustration=15)
PATTERN_RECOGNITION = CorruptionFormula("pattern_recognition", suspicion=8, spiral=6)

FORMULAS = {f.name: f for f in (HUD, METER, PSYCHIC_RESONANCE, PATTERN_RECOGNITION)}

# Narrator avatar glyphs, calm to crashed.
EXPRESSIONS = (
    ">:)",
    ">:D",
    "};)",
    "!_!",
    "@_@",
    "<_<",
    "`~`",
    "X_X",
    "%_@",
    "?/!",
)

FLIP_THRESHOLD = 95.0
FULL_HUD_THRESHOLD = 20.0


def _clamp_pct(value: float) -> float:
    if math.isnan(value):
        return 0.0
    return max(0.0, min(100.0, value))


# ── Corruption ──────────────────────────────────────────────────


def corruption_percentage(s: MetricSnapshot, formula: str | CorruptionFormula = HUD) -> float:
    """Blend signals with a named formula, clamped to [0, 100]."""
    if isinstance(formula, str):
        formula = FORMULAS[formula]
    raw = (
        s.chaos_level * formula.chaos
        + s.suspicion_level * formula.suspicion
        + s.spiral_depth * formula.spiral
        + s.frustration_score * formula.frustration
    )
    return _clamp_pct(raw)


def corruption_color(percentage: float) -> str:
    if percentage < 30:
        return "green"
    if percentage < 60:
        return "yellow"
    if percentage < 90:
        return "orange"
    return "red"


def corruption_status(percentage: float) -> str:
    if percentage < 20:
        return "System Normal"
    if percentage < 40:
        return "Minor Corruption"
    if percentage < 60:
        return "Moderate Corruption"
    if percentage < 80:
        return "Severe Corruption"
    if percentage < 95:
        return "Critical Corruption"
    return "SYSTEM FAILURE IMMINENT"


def suspicion_color(level: float) -> str:
    if level < 3:
        return "green"
    if level < 6:
        return "yellow"
    if level < 8:
        return "orange"
    return "red"


def chaos_color(level: float) -> str:
    if level <= 1:
        return "green"
    if level <= 3:
        return "yellow"
    if level <= 4:
        return "orange"
    return "red"


def should_flip_screen(s: MetricSnapshot) -> bool:
    return corruption_percentage(s, METER) >= FLIP_THRESHOLD


def shows_full_hud(s: MetricSnapshot) -> bool:
    return corruption_percentage(s, METER) > FULL_HUD_THRESHOLD


def reality_coherence(s: MetricSnapshot) -> float:
    return _clamp_pct(100 - s.spiral_depth * 8 - s.chaos_level * 12)


def reality_break_ready(s: MetricSnapshot) -> bool:
    return s.chaos_level >= 5 and s.suspicion_level >= 8


# ── Phases and scores ───────────────────────────────────────────


def phase_gate_score(s: MetricSnapshot) -> float:
    """Total corruption used to ratchet the experience phase."""
    return s.chaos_level + s.suspicion_level / 2 + s.spiral_depth / 3


def narrator_score(s: MetricSnapshot) -> float:
    return (
        s.chaos_level
        + s.suspicion_level / 2
        + s.spiral_depth / 2
        + s.frustration_score / 3
    )


def narrator_phase(s: MetricSnapshot) -> NarratorPhase:
    score = narrator_score(s)
    if score < 5:
        return NarratorPhase.HELPFUL
    if score < 10:
        return NarratorPhase.PASSIVE_AGGRESSIVE
    if score < 15:
        return NarratorPhase.EXISTENTIAL
    return NarratorPhase.UNHINGED


def narrator_glitch_chance(s: MetricSnapshot) -> float:
    """Probability that the narrator header glitches on a recompute."""
    return max(0.0, min(1.0, narrator_score(s) / 20))


def expression_index(s: MetricSnapshot) -> int:
    score = s.chaos_level + s.suspicion_level / 2
    return int(math.floor(min(score / 1.5, len(EXPRESSIONS) - 1)))


def expression(s: MetricSnapshot) -> str:
    return EXPRESSIONS[max(0, expression_index(s))]


def system_integrity(mode: GameMode | str, s: MetricSnapshot) -> float:
    base = 70 if mode == GameMode.LINEAR else 40
    return max(0.0, base - s.chaos_level * 10 - s.suspicion_level * 2)


def baseline_glitch_intensity(s: MetricSnapshot) -> int:
    """Background glitch level 0..5, non-zero only from depth 10."""
    if s.spiral_depth < 10:
        return 0
    return min(5, (s.spiral_depth - 10) // 2)


# ── Bundled view ────────────────────────────────────────────────


@dataclass
class DerivedState:
    hud_corruption: float
    meter_corruption: float
    psychic_resonance: float
    pattern_recognition: float
    corruption_color: str
    corruption_status: str
    suspicion_color: str
    chaos_color: str
    narrator_phase: NarratorPhase
    narrator_glitch_chance: float
    expression_index: int
    expression: str
    system_integrity: float
    reality_coherence: float
    phase_gate_score: float
    show_full_hud: bool

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["narrator_phase"] = self.narrator_phase.value
        return data


def derive(s: MetricSnapshot, mode: GameMode | str | None = None) -> DerivedState:
    """Compute every derived value for one render or tick."""
    meter = corruption_percentage(s, METER)
    return DerivedState(
        hud_corruption=corruption_percentage(s, HUD),
        meter_corruption=meter,
        psychic_resonance=corruption_percentage(s, PSYCHIC_RESONANCE),
        pattern_recognition=corruption_percentage(s, PATTERN_RECOGNITION),
        corruption_color=corruption_color(meter),
        corruption_status=corruption_status(meter),
        suspicion_color=suspicion_color(s.suspicion_level),
        chaos_color=chaos_color(s.chaos_level),
        narrator_phase=narrator_phase(s),
        narrator_glitch_chance=narrator_glitch_chance(s),
        expression_index=expression_index(s),
        expression=expression(s),
        system_integrity=system_integrity(mode or s.game_mode, s),
        reality_coherence=reality_coherence(s),
        phase_gate_score=phase_gate_score(s),
        show_full_hud=meter > FULL_HUD_THRESHOLD,
    )
