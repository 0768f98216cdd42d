"""Tests for experience phase progression rules."""

from narrative import ExperiencePhase, advance_phase, determine_phase, load_thresholds, phase_rank


def test_determine_phase_uses_strict_thresholds():
    assert determine_phase(0) == ExperiencePhase.INTRO
    assert determine_phase(6) == ExperiencePhase.INTRO
    assert determine_phase(6.1) == ExperiencePhase.PATTERN_SEQUENCES
    assert determine_phase(12) == ExperiencePhase.PATTERN_SEQUENCES
    assert determine_phase(12.5) == ExperiencePhase.EXISTENTIAL_REFLECTION
    assert determine_phase(18.01) == ExperiencePhase.MIRROR_CONFRONTATION
    assert determine_phase(1000) == ExperiencePhase.MIRROR_CONFRONTATION


def test_advance_phase_only_moves_forward():
    phase = ExperiencePhase.INTRO
    for score in (3, 7, 2, 13, 0, 19, 5):
        phase = advance_phase(phase, score)
    assert phase == ExperiencePhase.MIRROR_CONFRONTATION
    assert advance_phase(ExperiencePhase.REALITY_BREAKDOWN, 30) == ExperiencePhase.REALITY_BREAKDOWN


def test_advance_phase_can_skip_on_a_jump():
    assert advance_phase(ExperiencePhase.INTRO, 13) == ExperiencePhase.EXISTENTIAL_REFLECTION


def test_phase_rank_orders_phases():
    ranks = [phase_rank(p) for p in ExperiencePhase]
    assert ranks == sorted(ranks) == list(range(5))
    assert phase_rank("mirror-confrontation") == 3


def test_load_thresholds_overrides_known_phases_only():
    cfg = {
        "narrative": {
            "phase_thresholds": {
                "pattern-sequences": 2,
                "existential-reflection": "nope",
                "reality-breakdown": 1,
                "made-up": 4,
            }
        }
    }
    thresholds = load_thresholds(cfg)
    assert thresholds[ExperiencePhase.PATTERN_SEQUENCES] == 2.0
    assert thresholds[ExperiencePhase.EXISTENTIAL_REFLECTION] == 12.0
    assert ExperiencePhase.REALITY_BREAKDOWN not in thresholds
    assert determine_phase(3, thresholds) == ExperiencePhase.PATTERN_SEQUENCES
    assert load_thresholds(None) == load_thresholds({})
