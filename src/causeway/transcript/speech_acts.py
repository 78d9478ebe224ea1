"""Shallow speech-act heuristics.

Regex rules that label transcript lines:
- detect_cause: is a player line an attempted action or question?
- detect_effect: what kind of outcome does a narrator line describe?
- detect_roll_type: which roll (skill, save, attack, damage, initiative)
  a narrator line asks for

These only label lines and grade cause confidence. Callers that have a
better classifier can pass any object satisfying CauseClassifier.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Optional, Protocol, Tuple

from pydantic import BaseModel, Field


class CauseType(str, Enum):
    """Kinds of attempted action."""

    QUESTION = "question"
    DECLARE = "declare"
    PROPOSE = "propose"
    REQUEST = "request"


class EffectType(str, Enum):
    """Kinds of narrated outcome."""

    ROLL = "roll"
    INFORMATION = "information"
    DETERMINISTIC = "deterministic"
    COMMITMENT = "commitment"
    OTHER = "other"


class CauseDetection(BaseModel):
    """Result of classifying a line as a cause."""

    is_cause: bool
    cause_type: CauseType = CauseType.DECLARE
    mass: float = Field(default=0.0, ge=0.0, le=1.0, description="Classifier confidence")


class EffectDetection(BaseModel):
    """Result of classifying a narrator line as an effect."""

    is_effect: bool
    effect_type: EffectType = EffectType.OTHER
    mass: float = Field(default=0.0, ge=0.0, le=1.0)
    roll_type: Optional[str] = None
    roll_subtype: Optional[str] = None


class CauseClassifier(Protocol):
    """Anything that can grade a line as a cause."""

    def classify(self, text: str) -> CauseDetection:
        ...


# =============================================================================
# Cause rules
# =============================================================================

STRONG_QUESTION_STARTERS = (
    "can i",
    "can we",
    "do i",
    "do we",
    "is there",
    "are there",
    "what do i",
    "what do we",
    "how do i",
    "where is",
    "does it look",
    "did it look",
    "could i",
    "could we",
    "would i be able to",
    "what if i",
    "what if we",
)

ACTION_VERBS = frozenset(
    {
        "try",
        "attempt",
        "search",
        "examine",
        "inspect",
        "look",
        "open",
        "pull",
        "push",
        "take",
        "grab",
        "move",
        "touch",
        "cast",
        "read",
        "listen",
        "sneak",
        "hide",
        "pick",
        "investigate",
        "attack",
        "use",
        "roll",
        "check",
    }
)

_STRONG_QUESTION_START = re.compile(
    r"^\s*(" + "|".join(re.escape(s) for s in STRONG_QUESTION_STARTERS) + r")\b",
    re.IGNORECASE,
)

_REQUEST_PATTERNS = (
    re.compile(r"^\s*(can i|can we|may i|could i|could we|would i|would i be able to)\b", re.I),
    re.compile(
        r"^\s*(i want to|i'd like to|i would like to|i'm going to|i am going to"
        r"|i kind of want to|i sorta want to)\b",
        re.I,
    ),
)

_DECLARE_PATTERN = re.compile(
    r"^\s*i\s+(" + "|".join(sorted(ACTION_VERBS)) + r")\b", re.IGNORECASE
)

_WEAK_PATTERNS: Tuple[Tuple[CauseType, "re.Pattern[str]"], ...] = (
    (CauseType.QUESTION, re.compile(r"\?")),
    (CauseType.REQUEST, re.compile(r"\bplease\b", re.I)),
    (CauseType.PROPOSE, re.compile(r"^\s*(let's|we should|we could|how about)\b", re.I)),
)

_ROLL_OR_ACTION_KEYWORD = re.compile(
    r"\b(roll|check|attack|cast|spell|investigate|inspect|search|open|unlock"
    r"|sneak|hide|persuade|deceive)\b",
    re.IGNORECASE,
)

_NON_WORD = re.compile(r"[^a-z0-9\s]", re.IGNORECASE)


def _strip_punctuation(text: str) -> str:
    return _NON_WORD.sub("", text).strip()


def _has_action_verb_within(text: str, max_distance: int) -> bool:
    tokens = _strip_punctuation(text).lower().split()
    return any(token in ACTION_VERBS for token in tokens[: max_distance + 1])


def detect_cause(text: str) -> CauseDetection:
    """Grade a line as an attempted action or question.

    Rules are tried in order (strong question, request, first-person action
    declaration, weak cue); the first that fires decides the type. Mass is
    higher when the line also carries a roll or action keyword.
    """
    stripped = _strip_punctuation(text)
    if len(stripped) < 6:
        return CauseDetection(is_cause=False)

    word_count = len(stripped.split())
    keyword = bool(_ROLL_OR_ACTION_KEYWORD.search(text))

    if _STRONG_QUESTION_START.search(text):
        has_action = _has_action_verb_within(text, 6)
        has_question_mark = bool(re.search(r"\?\s*$", text))
        if has_question_mark or word_count >= 4 or has_action:
            mass = 0.9 if keyword or has_action else 0.75
            return CauseDetection(is_cause=True, cause_type=CauseType.QUESTION, mass=mass)

    for pattern in _REQUEST_PATTERNS:
        if pattern.search(text) and _has_action_verb_within(text, 3):
            mass = 0.95 if keyword else 0.85
            return CauseDetection(is_cause=True, cause_type=CauseType.REQUEST, mass=mass)

    if _DECLARE_PATTERN.search(text) and word_count >= 4:
        mass = 1.0 if keyword else 0.9
        return CauseDetection(is_cause=True, cause_type=CauseType.DECLARE, mass=mass)

    for cause_type, pattern in _WEAK_PATTERNS:
        if pattern.search(text):
            mass = 0.65 if keyword else 0.45
            return CauseDetection(is_cause=True, cause_type=cause_type, mass=mass)

    return CauseDetection(is_cause=False)


class HeuristicCauseClassifier:
    """Default CauseClassifier backed by detect_cause."""

    def classify(self, text: str) -> CauseDetection:
        return detect_cause(text)


# =============================================================================
# Effect rules
# =============================================================================

_SKILLS = (
    ("Acrobatics", r"\bacrobatics\b"),
    ("AnimalHandling", r"\banimal handling\b"),
    ("Arcana", r"\barcana\b"),
    ("Athletics", r"\bathletics\b"),
    ("Deception", r"\bdeception\b"),
    ("History", r"\bhistory\b"),
    ("Insight", r"\binsight\b"),
    ("Intimidation", r"\bintimidation\b"),
    ("Investigation", r"\binvestigation\b"),
    ("Medicine", r"\bmedicine\b"),
    ("Nature", r"\bnature\b"),
    ("Perception", r"\bperception\b"),
    ("Performance", r"\bperformance\b"),
    ("Persuasion", r"\bpersuasion\b"),
    ("Religion", r"\breligion\b"),
    ("SleightOfHand", r"\bsleight of hand\b"),
    ("Stealth", r"\bstealth\b"),
    ("Survival", r"\bsurvival\b"),
)

_SAVING_THROW = re.compile(
    r"(strength|dexterity|constitution|intelligence|wisdom|charisma)\s+saving throw",
    re.IGNORECASE,
)

_INFORMATION_PATTERNS = tuple(
    re.compile(p, re.I)
    for p in (
        r"^\s*you\s+(see|notice|find|learn|realize|spot|smell|hear|feel|remember|recognize|discover)\b",
        r"\byou (see|notice|find|learn|realize|spot|smell|hear|feel|remember|recognize|discover)\b",
        r"\b(it seems|it looks like|it appears)\b",
        r"^\s*(yes|no|not really|you don't|you do not|you can't|you cannot|you're able to)\b",
        r"\byou can (see|do|try|attempt|make|roll)\b",
    )
)

_DETERMINISTIC_PATTERNS = tuple(
    re.compile(p, re.I)
    for p in (
        r"^\s*you\s+(open|move|pull|push|unlock|enter|walk|pick up|lift)\b",
        r"\byou (succeed|fail|manage|push|force|open|break)\b",
        r"\bthe door (opens|breaks|gives way)\b",
        r"\bit (works|fails)\b",
        r"\b(it won't budge|it doesn't budge|it is stuck|it is blocked)\b",
    )
)

_COMMITMENT_PATTERNS = tuple(
    re.compile(p, re.I) for p in (r"\byou (agree|promise|commit|decide)\b", r"\bwe will\b")
)


def detect_roll_type(text: str) -> Tuple[Optional[str], Optional[str]]:
    """Return ``(roll_type, roll_subtype)`` or ``(None, None)``.

    Only explicit roll requests count; a bare "roll" does not.
    """
    if re.search(r"\binitiative\b", text, re.I):
        return "Initiative", None
    if re.search(r"\battack roll\b|\bto hit\b", text, re.I):
        return "AttackRoll", None
    if re.search(r"\broll\b.*\bdamage\b|\bdamage roll\b", text, re.I):
        return "DamageRoll", None

    save = _SAVING_THROW.search(text)
    if save:
        return "SavingThrow", save.group(1).capitalize()

    for roll_type, pattern in _SKILLS:
        if re.search(pattern, text, re.I):
            return roll_type, None
    return None, None


def detect_effect(text: str) -> EffectDetection:
    """Classify a narrator line by the kind of outcome it describes."""
    roll_type, roll_subtype = detect_roll_type(text)
    if roll_type:
        return EffectDetection(
            is_effect=True,
            effect_type=EffectType.ROLL,
            mass=1.0,
            roll_type=roll_type,
            roll_subtype=roll_subtype,
        )
    if any(p.search(text) for p in _INFORMATION_PATTERNS):
        return EffectDetection(is_effect=True, effect_type=EffectType.INFORMATION, mass=0.7)
    if any(p.search(text) for p in _DETERMINISTIC_PATTERNS):
        return EffectDetection(is_effect=True, effect_type=EffectType.DETERMINISTIC, mass=0.85)
    if any(p.search(text) for p in _COMMITMENT_PATTERNS):
        return EffectDetection(is_effect=True, effect_type=EffectType.COMMITMENT, mass=0.8)
    return EffectDetection(is_effect=False)
