"""Tests for the command-line entry point helpers."""

import random

from main import _resolve_mirror
from narrative.progression import ExperiencePhase
from spiral.session import SpiralSession


def test_mirror_choice_repeats_for_a_seed(scripted_rng):
    picks = []
    for _ in range(3):
        session = SpiralSession({}, rng=scripted_rng())
        picks.append(_resolve_mirror(session, "7"))
        assert session.mirror_choice == picks[-1]
        assert session.store.experience_phase == ExperiencePhase.REALITY_BREAKDOWN

    assert picks == [random.Random("7").choice(("a", "b"))] * 3
