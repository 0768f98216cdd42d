"""Narrative system — experience phases, narrator scripts, hidden scenes."""

from .progression import (
    ExperiencePhase,
    advance_phase,
    determine_phase,
    load_thresholds,
    phase_rank,
)
from .scripts import (
    error_override,
    failure_line,
    hidden_scene_for_frustration,
    line_for_depth,
    memory_line,
    opening_line,
    random_ux_law,
)

__all__ = [
    "ExperiencePhase",
    "advance_phase",
    "determine_phase",
    "error_override",
    "failure_line",
    "hidden_scene_for_frustration",
    "line_for_depth",
    "load_thresholds",
    "memory_line",
    "opening_line",
    "phase_rank",
    "random_ux_law",
]
