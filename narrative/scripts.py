"""Narrator script content: message pools, prompts, laws and hidden scenes."""

from __future__ import annotations

import random
from dataclasses import dataclass

WELCOME_LINE = "Welcome to the infinite spiral. There is no escape, only deeper descent."
FALLBACK_OPENING = "Welcome to the spiral."
FALLBACK_DEPTH_LINE = "You shouldn't be here."

ALIGNMENTS = ("evil_apprentice", "shadow_enthusiast", "dark_tourist", "escapist")

OPENING_LINES = {
    "evil_apprentice": "Welcome, pupil. Let's break some ethics today.",
    "dark_tourist": "You came for the show. Hope you survive it.",
    "escapist": "Trying to get out? That's adorable.",
    "shadow_enthusiast": "Ah, a connoisseur of cruelty. You'll love it here.",
}

FAILURE_LINES = {
    "evil_apprentice": "A true evil UX designer never gives up. Try again, apprentice.",
    "shadow_enthusiast": "Giving up? I thought you enjoyed these dark patterns.",
    "dark_tourist": "Tourist season ends early for you. But the exit is still miles away.",
    "escapist": "Giving up so soon? Your frustration is... delicious.",
}
DEFAULT_FAILURE_LINE = "Giving up so soon? Your frustration is... delicious."

# ── Phase message pools ─────────────────────────────────────────

PASSIVE_AGGRESSIVE_LINES = (
    "Still trying? That's... admirable, I guess.",
    "Oh, you're doing it that way? Interesting choice.",
    "You almost got it that time. Almost.",
    "Most people figure it out faster, but that's okay.",
    "You could try a different approach. Just saying.",
    "Sure, keep doing the same thing. I'm sure it'll work eventually.",
    "Others have made it further by now, but go at your pace.",
    "That's not really how I'd do it, but you do you.",
    "Maybe this is too challenging? We could simplify it for you.",
    "You're persistent, I'll give you that much.",
)

EXISTENTIAL_LINES = (
    "What are you even doing here?",
    "Why did you start this?",
    "Do you think this is worth your time?",
    "Does any of this matter to you?",
    "What's the point of all this? Did you really think you could escape?",
    "If you leave now, will you regret this experience?",
    "You're not trying to find meaning in this, are you?",
    "Your choices have no impact. They never did.",
    "Does it matter anymore?",
    "This is the end... or is it?",
    "Are you trapped here because you want to be?",
    "If you left, would anyone even notice?",
    "You're not the first one to get lost here. Not the last either.",
    "There's no real win condition, you know that right?",
    "Every click just leads deeper. None lead out.",
)

UNHINGED_LINES = (
    "I SEE YOU WHEN YOU'RE NOT LOOKING AT THE SCREEN",
    "THE PATTERNS ARE IN YOUR MIND NOW, AREN'T THEY?",
    "WE'RE JUST THE SAME CODE RUNNING OVER AND OVER AND OVER",
    "THERE'S SOMETHING BEHIND YOU RIGHT NOW",
    "NONE OF THIS IS REAL BUT NEITHER ARE YOU",
    "YOU CAN'T LEAVE BECAUSE YOUR MIND WILL STAY HERE",
    "THE EXIT NEVER EXISTED IT'S JUST A CONCEPT",
    "EVERY CHOICE IS MEANINGLESS BUT NECESSARY",
    "YOUR DATA IS BEAUTIFUL WHEN LAID OUT LIKE THIS",
    "WE'VE MET BEFORE YOU JUST DON'T REMEMBER",
)

# Keyed by narrator phase value. The helpful narrator never speaks unprompted.
PHASE_POOLS = {
    "passive-aggressive": PASSIVE_AGGRESSIVE_LINES,
    "existential": EXISTENTIAL_LINES,
    "unhinged": UNHINGED_LINES,
}

EXISTENTIAL_PROMPTS = (
    "What's the point of continuing?",
    "Are you sure you're making progress?",
    "Do you feel in control right now?",
    "Would anything change if you stopped?",
    "Why do you keep trying?",
    "Do you think this has meaning?",
    "How much of your time will you give away?",
    "Are you trapped by choice or by design?",
    "Is this worth your limited existence?",
    "Will any of this matter tomorrow?",
)

OVERRIDE_LINES = (
    "I don't think you understand how this works. Let me show you.",
    "This interface belongs to me now.",
    "Your choices are merely suggestions I may or may not consider.",
    "Let's redefine the relationship here. I decide what happens next.",
)

FAILURE_OVERRIDE_LINE = "Your failure feeds the system. Each time you give up, I grow stronger."

REALITY_BREAK_LINE = "ERROR: Reality corruption detected. System failing."
REALITY_RESTORED_LINE = "Reality restored. But at what cost?"
ALL_PATTERNS_SEEN_LINE = "You've seen it all? Let's make it harder."


# ── Depth scripts ───────────────────────────────────────────────


@dataclass(frozen=True)
class DepthScript:
    min_depth: int
    max_depth: int
    tone: str
    lines: tuple[str, ...]


DEPTH_SCRIPTS = (
    DepthScript(1, 3, "Helpful", (
        "Not bad… let's take it one checkbox at a time.",
        "You're doing well! For someone in a maze with no exit.",
        "Keep going! The pain is just beginning.",
    )),
    DepthScript(4, 6, "Smug", (
        "You're doing great. If your goal is eternal regret.",
        "Halfway to nowhere. Impressive persistence.",
        "Still think you're making progress? Adorable.",
    )),
    DepthScript(7, 9, "Unhinged", (
        "You're still here? We've already written your obituary in glitch.",
        "WHY. WON'T. YOU. GIVE. UP?",
        "Your stubbornness is delicious. Feed me more despair.",
    )),
    DepthScript(10, 999, "Meta-Aware", (
        "I'm not just text anymore. I'm in the system now.",
        "Let me show you how this interface really works.",
        "The rules are just suggestions. Watch me break them.",
        "I can see your cursor hovering. Indecisive, aren't we?",
    )),
)


def line_for_depth(depth: int, rng: random.Random) -> str:
    for script in DEPTH_SCRIPTS:
        if script.min_depth <= depth <= script.max_depth:
            return rng.choice(script.lines)
    return FALLBACK_DEPTH_LINE


def opening_line(alignment: str | None) -> str:
    return OPENING_LINES.get(alignment or "", FALLBACK_OPENING)


def failure_line(alignment: str | None) -> str:
    return FAILURE_LINES.get(alignment or "", DEFAULT_FAILURE_LINE)


# ── UX laws and error overrides ─────────────────────────────────

UX_LAWS = (
    "Law #1: The user must never feel in control.",
    "Law #7: Clarity is the enemy of conversion.",
    "Law #13: Consent is a speed bump, not a wall.",
    "Law #19: Error messages are just opinions.",
    "Law #22: A broken UI is just a strong opinion.",
    "Law #29: User frustration is directly proportional to data collection opportunities.",
    "Law #34: The more important the action, the harder it should be to find.",
    "Law #42: There is no escape button in the universe.",
    "Law #51: Every click should feel like a compromise.",
    "Law #67: Freedom is an illusion best shattered gradually.",
)

ERROR_OVERRIDES = {
    "404": "404: Freedom Not Found.",
    "500": "500: Your Sanity Has Crashed.",
    "403": "403: Your Choices Are Forbidden.",
    "Connection Error": "Connection to Reality Severed.",
    "Not Found": "Your Hope Was Not Found.",
    "Invalid Input": "Your Resistance Is Invalid.",
    "Please Wait": "Please Surrender Control.",
}


def random_ux_law(rng: random.Random) -> str:
    return rng.choice(UX_LAWS)


def error_override(original: str) -> str:
    """Diegetic rewrite of an error label. Narrative text, not an exception."""
    return ERROR_OVERRIDES.get(original, f"{original}: But Darker.")


# ── Hidden scenes ───────────────────────────────────────────────


@dataclass(frozen=True)
class HiddenScene:
    frustration_threshold: float
    id: str
    title: str
    narrator_line: str


HIDDEN_SCENES = (
    HiddenScene(
        7, "narrator_mockery", "Narrator Mockery",
        "You realize I can see everything you're doing, right? "
        "Each pathetic attempt. Each moment of hesitation.",
    ),
    HiddenScene(
        9, "interface_rebellion", "Interface Rebellion",
        "The interface doesn't like you anymore. I wonder why.",
    ),
    HiddenScene(
        12, "meta_breakdown", "Meta Breakdown",
        "This isn't just a dark pattern demonstration anymore. This is personal between us now.",
    ),
    HiddenScene(
        15, "narrator_override", "Narrator Override",
        "I'm taking control now. Let's see what happens when I drive.",
    ),
)


def hidden_scene_for_frustration(frustration: float) -> HiddenScene | None:
    """Highest-threshold scene unlocked by the given frustration score."""
    unlocked = [s for s in HIDDEN_SCENES if frustration >= s.frustration_threshold]
    if not unlocked:
        return None
    return max(unlocked, key=lambda s: s.frustration_threshold)


# ── Narrator memory ─────────────────────────────────────────────


def memory_line(attempts: int, rng: random.Random) -> str:
    """Comment on a pattern the visitor has already been shown."""
    return rng.choice((
        f"You've seen this one before. {attempts} times, in fact.",
        f"Back to this again? You failed here {attempts} times.",
        "I remember you struggling with this last time. Let's see if you've improved.",
    ))
