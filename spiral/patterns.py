"""Dark-pattern challenge catalogue and selection.

The challenge widgets themselves are external; the engine only picks the
next one and reacts to their completion or failure.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Sequence
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_FRUSTRATION_INCREMENT = 2.0


@dataclass(frozen=True)
class SpiralPattern:
    id: str
    title: str
    description: str
    narrator_reaction: str
    difficulty: int  # 1-5
    frustration_factor: int  # 1-5
    frustration_increment: float = DEFAULT_FRUSTRATION_INCREMENT


SPIRAL_PATTERNS = (
    SpiralPattern(
        "glitched_inputs", "Glitched Inputs",
        "Input fields that change value as you type, blur unexpectedly, or autocomplete with wrong data.",
        "Huh. I could've sworn you typed something else…",
        difficulty=3, frustration_factor=4, frustration_increment=1,
    ),
    SpiralPattern(
        "recursive_menus", "Recursive Menus",
        "Every choice leads you back to the same menu, disguised with slightly different wording each time.",
        "You're making progress. Probably. Maybe. No promises.",
        difficulty=4, frustration_factor=5, frustration_increment=2,
    ),
    SpiralPattern(
        "fake_competition_ui", "Fake Competition UI",
        "A fake live feed showing other users doing better than you. All fake.",
        "Looks like someone else is flying through this. Embarrassing, huh?",
        difficulty=2, frustration_factor=3, frustration_increment=1,
    ),
    SpiralPattern(
        "breeding_modals", "Breeding Modals",
        "Every modal you close spawns two more. And they multiply until you give up.",
        "Aw, you tried to leave the box. Bad idea.",
        difficulty=3, frustration_factor=5, frustration_increment=2,
    ),
    SpiralPattern(
        "false_progress", "False Progress Indicators",
        "Loading bars and checkmarks appear… but nothing ever progresses.",
        "Almost there. Almost. Almost. Almost.",
        difficulty=3, frustration_factor=4, frustration_increment=1.5,
    ),
    SpiralPattern(
        "identity_mirror_loop", "Identity Mirror Loop",
        "Displays old user inputs distorted as 'truths' — but gaslights the user if they try to correct it.",
        "That's not what you wrote. Are you rewriting your own history now?",
        difficulty=5, frustration_factor=5, frustration_increment=2.5,
    ),
    SpiralPattern(
        "option_crumble", "Option Crumble",
        "Buttons slowly fade or distort the more the user hesitates. Eventually they vanish.",
        "Oh. Too slow. We thought you were decisive.",
        difficulty=4, frustration_factor=4, frustration_increment=1.8,
    ),
    SpiralPattern(
        "ghost_cursor_duel", "Ghost Cursor Duel",
        "A fake cursor mimics the user and clicks things first. Sometimes incorrectly.",
        "Wait… who's driving? Are you *sure* that was you?",
        difficulty=4, frustration_factor=5, frustration_increment=2.3,
    ),
    SpiralPattern(
        "looping_undo_ghost", "Undo Haunt",
        "Every undo causes a different, unrelated part of the interface to change or break.",
        "Undo what? That's not how this works anymore.",
        difficulty=5, frustration_factor=4, frustration_increment=2,
    ),
    SpiralPattern(
        "impossible_moral_choice", "Moral Choice Dilemma",
        "Presents two fake options with ethical implications. Neither does what it says.",
        "You chose wisely. Or horribly. Either way, nothing changes.",
        difficulty=3, frustration_factor=4, frustration_increment=1.7,
    ),
)

_BY_ID = {p.id: p for p in SPIRAL_PATTERNS}


def get_pattern(pattern_id: str) -> SpiralPattern | None:
    return _BY_ID.get(pattern_id)


def pattern_weight(pattern: SpiralPattern, spiral_depth: int, frustration: float) -> int:
    # High frustration favours gentler patterns; depth favours harder ones.
    frustration_weight = (
        6 - pattern.frustration_factor if frustration > 7 else pattern.frustration_factor
    )
    difficulty_weight = pattern.difficulty if spiral_depth > 5 else 6 - pattern.difficulty
    return frustration_weight + difficulty_weight


def eligible_patterns(
    learned: Sequence[str],
    spiral_depth: int,
    rng: random.Random,
) -> list[SpiralPattern]:
    """Unlearned patterns, plus learned ones that resurface at depth > 5."""
    eligible = []
    for pattern in SPIRAL_PATTERNS:
        if pattern.id not in learned:
            eligible.append(pattern)
        elif spiral_depth > 5 and rng.random() < 0.3:
            eligible.append(pattern)
    return eligible


def pick_pattern(
    learned: Sequence[str],
    spiral_depth: int,
    frustration: float,
    rng: random.Random,
) -> tuple[SpiralPattern, bool]:
    """Choose the next challenge.

    Returns ``(pattern, exhausted)``; ``exhausted`` is True when every
    pattern was already learned and the pick fell back to a uniform choice.
    """
    eligible = eligible_patterns(learned, spiral_depth, rng)
    if not eligible:
        return rng.choice(SPIRAL_PATTERNS), True

    weighted = [(p, pattern_weight(p, spiral_depth, frustration)) for p in eligible]
    total = sum(weight for _, weight in weighted)
    remaining = rng.random() * total
    for pattern, weight in weighted:
        remaining -= weight
        if remaining <= 0:
            return pattern, False
    return eligible[0], False
