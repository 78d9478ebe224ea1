"""Distance and Lexical Scoring.

Pure scoring primitives shared by every linking phase.

Distance: Hill decay score = 1 / (1 + (d / tau) ** steepness)
- 1.0 at d = 0, exactly 0.5 at d = tau, monotonically decaying

Lexical: keyword overlap in [0, 1]
- unweighted: |A & B| / max(|A|, |B|)
- IDF-weighted: sum(idf, A & B) / sum(idf, A | B), idf = ln((N + 1) / (df + 1)) + 1

Bridge strength = distance_score * (1 + beta_lex * lexical_score), so lexical
overlap amplifies temporal proximity but never stands in for it.

Lever mode (optional) swaps the bridge for a bounded evidence mix:
E = 0.7 * distance + 0.3 * lexical, S = scale * E ** coupling, where shared
trigger words raise the lexical term and locality sets tau.
"""

from __future__ import annotations

import logging
import math
import re
from collections import Counter
from typing import Dict, FrozenSet, Iterable, NamedTuple, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)

STOPWORDS = frozenset(
    """
    the a an and or but to of in on for with at by from up down out over under
    again further then once here there when where why how all any both each few
    more most other some such no nor not only own same so than too very can will
    just don should now you your yours we our ours i me my mine they them their
    theirs he him his she her hers it its is are was were be been being do does
    did have has had what if this that these those as into about maybe could
    would able like want kind sorta
    """.split()
)

# Table-talk vocabulary shared by most lines regardless of topic
DOMAIN_STOPWORDS = frozenset(
    {"roll", "rolling", "check", "dice", "d20", "advantage", "disadvantage"}
)

_NON_TOKEN = re.compile(r"[^a-z0-9']+")
_QUOTES = re.compile(r"^'+|'+$")


def distance_score(distance: float, tau: float, steepness: float) -> float:
    """Hill decay score for a non-negative distance.

    Args:
        distance: Line or center distance (>= 0)
        tau: Distance at which the score is exactly 0.5 (> 0)
        steepness: Hill exponent (> 0)

    Returns:
        Score in (0, 1], 1.0 at distance 0

    Raises:
        ValueError: On negative distance or non-positive tau/steepness
    """
    if tau <= 0:
        raise ValueError("tau must be positive")
    if steepness <= 0:
        raise ValueError("steepness must be positive")
    if distance < 0:
        raise ValueError("distance must be non-negative")
    if distance == 0:
        return 1.0
    return 1.0 / (1.0 + (distance / tau) ** steepness)


def normalize_token(token: str) -> str:
    token = _NON_TOKEN.sub("", token.lower())
    token = re.sub(r"'+", "'", token)
    return _QUOTES.sub("", token)


def tokenize(text: str) -> FrozenSet[str]:
    """Distinct content keywords of a text (length >= 3, stopwords removed)."""
    tokens = (normalize_token(raw) for raw in text.split())
    return frozenset(
        t for t in tokens if len(t) >= 3 and t not in STOPWORDS and t not in DOMAIN_STOPWORDS
    )


class LexicalCorpusStats:
    """Document frequencies of one transcript, for IDF weighting.

    Built once per transcript; every line counts as one document.

    Example:
        >>> stats = LexicalCorpusStats.from_texts(["open the door", "the door creaks"])
        >>> stats.idf("door") < stats.idf("creaks")
        True
    """

    def __init__(self, document_count: int, document_frequency: Dict[str, int]):
        self._document_count = document_count
        self._df = dict(document_frequency)

    @classmethod
    def from_texts(cls, texts: Iterable[str]) -> "LexicalCorpusStats":
        df: Counter = Counter()
        count = 0
        for text in texts:
            count += 1
            df.update(tokenize(text))
        logger.debug(f"Built lexical stats over {count} documents, {len(df)} terms")
        return cls(count, df)

    @property
    def document_count(self) -> int:
        return self._document_count

    def idf(self, token: str) -> float:
        freq = self._df.get(token, 0)
        return math.log((self._document_count + 1) / (freq + 1)) + 1.0


def keyword_overlap(a: FrozenSet[str], b: FrozenSet[str], stats: Optional[LexicalCorpusStats] = None) -> float:
    """Overlap score of two keyword sets in [0, 1]."""
    if not a or not b:
        return 0.0
    shared = a & b
    if not shared:
        return 0.0
    if stats is None:
        return len(shared) / max(len(a), len(b))
    union_weight = sum(stats.idf(t) for t in a | b)
    if union_weight <= 0:
        return 0.0
    return sum(stats.idf(t) for t in shared) / union_weight


def lexical_score(text_a: str, text_b: str, stats: Optional[LexicalCorpusStats] = None) -> float:
    """Overlap score of two texts in [0, 1]."""
    return keyword_overlap(tokenize(text_a), tokenize(text_b), stats)


def bridge_strength(distance_component: float, lexical: float, beta_lex: float) -> float:
    """Combined evidence score: distance_score * (1 + beta_lex * lexical)."""
    return distance_component * (1.0 + beta_lex * lexical)


def mass_threshold(base: float, k: float, mass_a: float, mass_b: float) -> float:
    """Threshold that rises slowly with the masses being joined."""
    return base + k * math.log(1.0 + math.sqrt(max(0.0, mass_a) * max(0.0, mass_b)))


# Lever mode: bounded evidence E = 0.7 * D + 0.3 * L, strength S = scale * E ** coupling.
EVIDENCE_WEIGHT_DISTANCE = 0.7
EVIDENCE_WEIGHT_LEXICAL = 0.3

# Attempt and outcome trigger words. Shared triggers raise lexical evidence in
# lever mode; stopwords never reach this set since tokenize drops them.
TRIGGER_KEYWORDS = frozenset(
    """
    try attempt search examine inspect look open pull push take grab move touch
    cast read listen sneak hide pick investigate attack use please insight
    perception athletics acrobatics arcana deception history intimidation
    medicine nature performance persuasion religion stealth survival animal
    handling sleight hand see notice find learn realize spot smell hear feel
    remember recognize discover seems looks appears succeed fail manage force
    break works stuck blocked agree promise commit decide
    """.split()
)


class LexicalSignals(NamedTuple):
    """Lexical overlap plus the share of the overlap made of trigger words."""

    score: float
    trigger_share: float


def lexical_signals(
    a: FrozenSet[str], b: FrozenSet[str], stats: Optional[LexicalCorpusStats] = None
) -> LexicalSignals:
    shared = a & b
    if not shared:
        return LexicalSignals(0.0, 0.0)
    score = keyword_overlap(a, b, stats)
    triggers = shared & TRIGGER_KEYWORDS
    if stats is None:
        return LexicalSignals(score, len(triggers) / len(shared))
    shared_weight = sum(stats.idf(t) for t in shared)
    trigger_weight = sum(stats.idf(t) for t in triggers)
    return LexicalSignals(score, trigger_weight / shared_weight if shared_weight > 0 else 0.0)


def locality_to_tau(locality: float) -> float:
    """Hill tau for a locality in [0, 1]: 8 at locality 0, 4 at locality 1."""
    return 4.0 + 4.0 * (1.0 - min(1.0, max(0.0, locality)))


def evidence_score(distance_component: float, lexical: float, boost: float = 0.0) -> float:
    """Distance-dominant evidence mix, clamped to [0, 1]."""
    mixed = EVIDENCE_WEIGHT_DISTANCE * distance_component + EVIDENCE_WEIGHT_LEXICAL * lexical
    return min(1.0, max(0.0, mixed + boost))


def evidence_to_strength(evidence: float, coupling: float, scale: float = 2.0) -> float:
    """S = scale * E ** coupling. Coupling below 1 is forgiving, above 1 strict."""
    if evidence <= 0:
        return 0.0
    return scale * evidence ** coupling


def lever_strength(
    distance_component: float,
    signals: LexicalSignals,
    *,
    coupling: float,
    scale: float,
    keyword_bonus: float,
) -> float:
    """Lever-mode strength of one edge."""
    lexical = min(1.0, signals.score * (1.0 + signals.trigger_share * keyword_bonus))
    return evidence_to_strength(evidence_score(distance_component, lexical), coupling, scale)


class EvidenceLever(Protocol):
    """Anything that turns distance and lexical signals into a lever-mode strength."""

    def strength(self, distance_component: float, signals: LexicalSignals) -> float:
        ...


def edge_strength(
    distance_component: float,
    a: FrozenSet[str],
    b: FrozenSet[str],
    beta_lex: float,
    stats: Optional[LexicalCorpusStats] = None,
    levers: Optional[EvidenceLever] = None,
) -> Tuple[float, float]:
    """Lexical score and strength of one edge, as (lexical, strength).

    Uses the bridge formula unless ``levers`` is given.
    """
    if levers is None:
        lexical = keyword_overlap(a, b, stats)
        return lexical, bridge_strength(distance_component, lexical, beta_lex)
    signals = lexical_signals(a, b, stats)
    return signals.score, levers.strength(distance_component, signals)
