"""Level-1 Linker.

Pairs cause lines (player attempts) with effect lines (narrator outcomes)
inside a bounded forward window.

Algorithm:
1. Causes are eligible, non-narrator lines from registered actors that the
   classifier accepts; confidence >= strong_mass_cutoff makes them strong.
2. Effects are all eligible narrator lines.
3. Each cause scores its k_local nearest forward effects by
   distance_score * (1 + beta_lex * lexical_score) and keeps those at or
   above its strong/weak threshold and within max_l1_span.
4. Accepted edges are sorted globally by (strength desc, distance asc,
   cause asc, effect asc) and assigned greedily one-to-one, so competing
   causes are resolved by evidence, not by cause order.
5. Optionally (ambient_mass_boost) each claimed link's base mass grows by
   the damped evidence of nearby claimed links.

With levers set, step 3 uses the two-lever evidence strength instead.
"""

from __future__ import annotations

import logging
from typing import Dict, FrozenSet, List, Optional, Sequence

from pydantic import BaseModel, Field

from causeway.hierarchy.params import LeverParams, LinkerParams
from causeway.hierarchy.scoring import (
    LexicalCorpusStats,
    distance_score,
    edge_strength,
    tokenize,
)
from causeway.hierarchy.types import (
    CandidateReason,
    CauseStrength,
    CauseTrace,
    ClaimReason,
    EffectCandidate,
    Link,
    NodeKind,
)
from causeway.transcript.actors import ActorRegistry
from causeway.transcript.models import EligibilityMask, TranscriptLine
from causeway.transcript.speech_acts import (
    CauseClassifier,
    CauseDetection,
    HeuristicCauseClassifier,
    detect_effect,
)

logger = logging.getLogger(__name__)


class DetectedCause(BaseModel):
    """A transcript line accepted as a cause."""

    line_index: int
    actor_id: str
    detection: CauseDetection
    strength: CauseStrength


class Level1Result(BaseModel):
    """Output of the Level-1 linker."""

    links: List[Link] = Field(default_factory=list)
    causes: List[DetectedCause] = Field(default_factory=list)
    effect_indices: List[int] = Field(default_factory=list)
    unclaimed_effect_indices: List[int] = Field(default_factory=list)
    candidates: List[EffectCandidate] = Field(default_factory=list)
    traces: List[CauseTrace] = Field(default_factory=list)

    @property
    def claimed_links(self) -> List[Link]:
        return [link for link in self.links if link.claimed]


def level_one_link_id(cause_index: int, effect_index: Optional[int]) -> str:
    if effect_index is None:
        return f"U:{cause_index}"
    return f"L1:{cause_index}>{effect_index}"


def detect_causes(
    transcript: Sequence[TranscriptLine],
    mask: EligibilityMask,
    actors: ActorRegistry,
    params: LinkerParams,
    classifier: Optional[CauseClassifier] = None,
) -> List[DetectedCause]:
    """Eligible actor lines the classifier accepts as causes, in line order."""
    classifier = classifier or HeuristicCauseClassifier()
    causes: List[DetectedCause] = []
    for line in transcript:
        if not mask.is_eligible(line.line_index) or actors.is_narrator(line.author_name):
            continue
        actor = actors.match_speaker(line.author_name)
        if actor is None:
            continue
        detection = classifier.classify(line.content)
        if not detection.is_cause:
            continue
        strength = (
            CauseStrength.STRONG
            if detection.mass >= params.strong_mass_cutoff
            else CauseStrength.WEAK
        )
        causes.append(
            DetectedCause(
                line_index=line.line_index,
                actor_id=actor.id,
                detection=detection,
                strength=strength,
            )
        )
    return causes


def cause_threshold(params: LinkerParams, strength: CauseStrength) -> float:
    base = params.strong_min_score if strength == CauseStrength.STRONG else params.weak_min_score
    return max(params.min_pair_strength, base)


def link_level_one(
    transcript: Sequence[TranscriptLine],
    mask: EligibilityMask,
    actors: ActorRegistry,
    params: LinkerParams,
    *,
    session_id: str,
    classifier: Optional[CauseClassifier] = None,
    stats: Optional[LexicalCorpusStats] = None,
    emit_traces: bool = False,
    levers: Optional[LeverParams] = None,
) -> Level1Result:
    """Run the Level-1 linker over a validated transcript.

    Args:
        transcript: Lines with line_index == position
        mask: Eligibility mask of the same length
        actors: Registry used to resolve speakers and the narrator
        params: Linker parameters
        session_id: Stamped on every produced link
        classifier: Cause classifier, defaults to the regex heuristics
        stats: Corpus stats enabling IDF-weighted lexical scoring
        emit_traces: Keep one CauseTrace per cause
        levers: Two-lever evidence mode; replaces hill_tau and the bridge
            formula, and IDF-weights lexical overlap over the transcript

    Returns:
        One link per cause (claimed or unclaimed) plus every scored candidate
    """
    tau = params.hill_tau
    if levers is not None:
        tau = levers.hill_tau
        if stats is None:
            stats = LexicalCorpusStats.from_texts(line.content for line in transcript)

    causes = detect_causes(transcript, mask, actors, params, classifier)
    effect_indices = [
        line.line_index
        for line in transcript
        if mask.is_eligible(line.line_index) and actors.is_narrator(line.author_name)
    ]

    tokens: Dict[int, FrozenSet[str]] = {}

    def _tokens(index: int) -> FrozenSet[str]:
        if index not in tokens:
            tokens[index] = tokenize(transcript[index].content)
        return tokens[index]

    per_cause: Dict[int, List[EffectCandidate]] = {}
    accepted: List[EffectCandidate] = []
    effect_cursor = 0
    for cause in causes:
        i = cause.line_index
        while effect_cursor < len(effect_indices) and effect_indices[effect_cursor] <= i:
            effect_cursor += 1
        threshold = cause_threshold(params, cause.strength)
        candidates = []
        for j in effect_indices[effect_cursor:effect_cursor + params.k_local]:
            distance = max(1, j - i)
            ds = distance_score(distance, tau, params.hill_steepness)
            lex, strength = edge_strength(ds, _tokens(i), _tokens(j), params.beta_lex, stats, levers)
            if distance > params.max_l1_span:
                reason = CandidateReason.BEYOND_SPAN
            elif strength < threshold:
                reason = CandidateReason.BELOW_THRESHOLD
            else:
                reason = CandidateReason.CHOSEN
            candidate = EffectCandidate(
                cause_index=i,
                effect_index=j,
                distance=distance,
                distance_score=ds,
                lexical_score=lex,
                strength=strength,
                threshold=threshold,
                accepted=reason == CandidateReason.CHOSEN,
                reason=reason,
            )
            candidates.append(candidate)
            if candidate.accepted:
                accepted.append(candidate)
        per_cause[i] = candidates

    accepted.sort(key=lambda c: (-c.strength, c.distance, c.cause_index, c.effect_index))
    chosen: Dict[int, EffectCandidate] = {}
    claimed_effects: set = set()
    for candidate in accepted:
        if candidate.cause_index in chosen:
            candidate.reason = CandidateReason.CAUSE_CLAIMED
        elif candidate.effect_index in claimed_effects:
            candidate.reason = CandidateReason.EFFECT_CLAIMED
        else:
            candidate.chosen = True
            chosen[candidate.cause_index] = candidate
            claimed_effects.add(candidate.effect_index)

    links: List[Link] = []
    traces: List[CauseTrace] = []
    for cause in causes:
        i = cause.line_index
        pick = chosen.get(i)
        links.append(_build_link(transcript, cause, pick, params, session_id))
        if emit_traces:
            traces.append(_build_trace(cause, per_cause[i], pick, params))

    if params.ambient_mass_boost:
        links = boost_link_masses(links, params, levers=levers, stats=stats)

    all_candidates = [c for cause in causes for c in per_cause[cause.line_index]]
    unclaimed_effects = [j for j in effect_indices if j not in claimed_effects]

    logger.info(
        f"Level-1 linking: {len(causes)} causes, {len(effect_indices)} effects, "
        f"{len(chosen)} pairs, {len(all_candidates)} candidates"
    )
    return Level1Result(
        links=links,
        causes=causes,
        effect_indices=effect_indices,
        unclaimed_effect_indices=unclaimed_effects,
        candidates=all_candidates,
        traces=traces,
    )


def boost_link_masses(
    links: Sequence[Link],
    params: LinkerParams,
    *,
    levers: Optional[LeverParams] = None,
    stats: Optional[LexicalCorpusStats] = None,
) -> List[Link]:
    """Raise each claimed link's base mass by the evidence of its neighbours.

    Every other claimed link within link_window (by center distance)
    contributes edge strength * its own base mass; the sum is scaled by
    link_boost_damping. Contributions use the base masses from before any
    boost, so the result does not depend on link order.
    """
    claimed = [link for link in links if link.claimed]
    texts = {link.id: link.aggregate_text() for link in claimed}
    tokens = {link_id: tokenize(text) for link_id, text in texts.items()}
    tau = params.hill_tau
    if levers is not None:
        tau = levers.hill_tau
        stats = LexicalCorpusStats.from_texts(texts.values())

    boosted: Dict[str, Link] = {}
    for link in claimed:
        bonus = 0.0
        for other in claimed:
            gap = abs(link.center_index - other.center_index)
            if other.id == link.id or gap > params.link_window:
                continue
            ds = distance_score(gap, tau, params.hill_steepness)
            _, strength = edge_strength(
                ds, tokens[link.id], tokens[other.id], params.beta_lex_ll, stats, levers
            )
            bonus += strength * other.mass_base
        boosted[link.id] = link.model_copy(
            update={"mass_base": link.mass_base + bonus * params.link_boost_damping}
        )
    logger.debug(f"Ambient mass boost applied to {len(boosted)} links")
    return [boosted.get(link.id, link) for link in links]


def _build_link(
    transcript: Sequence[TranscriptLine],
    cause: DetectedCause,
    pick: Optional[EffectCandidate],
    params: LinkerParams,
    session_id: str,
) -> Link:
    i = cause.line_index
    common = dict(
        session_id=session_id,
        level=1,
        node_kind=NodeKind.SINGLETON,
        cause_anchor_index=i,
        cause_text=transcript[i].content,
        actor_id=cause.actor_id,
        cause_type=cause.detection.cause_type,
        cause_strength=cause.strength,
    )
    if pick is None:
        return Link(
            id=level_one_link_id(i, None),
            claimed=False,
            span_start_index=i,
            span_end_index=i,
            center_index=float(i),
            **common,
        )

    j = pick.effect_index
    return Link(
        id=level_one_link_id(i, j),
        effect_anchor_index=j,
        effect_text=transcript[j].content,
        effect_type=detect_effect(transcript[j].content).effect_type,
        claimed=True,
        strength_bridge=pick.strength,
        strength_internal=pick.strength,
        mass_base=params.leaf_mass,
        span_start_index=i,
        span_end_index=j,
        center_index=(i + j) / 2.0,
        **common,
    )


def _build_trace(
    cause: DetectedCause,
    candidates: List[EffectCandidate],
    pick: Optional[EffectCandidate],
    params: LinkerParams,
) -> CauseTrace:
    if pick is not None:
        reason = ClaimReason.CHOSEN
    elif any(c.accepted for c in candidates):
        reason = ClaimReason.OUTBID
    elif candidates:
        reason = ClaimReason.BELOW_THRESHOLD
    else:
        reason = ClaimReason.NO_CANDIDATE
    return CauseTrace(
        cause_index=cause.line_index,
        cause_type=cause.detection.cause_type,
        cause_strength=cause.strength,
        threshold=cause_threshold(params, cause.strength),
        candidates=[c.model_copy() for c in candidates],
        chosen_effect_index=pick.effect_index if pick else None,
        chosen_strength=pick.strength if pick else None,
        claim_reason=reason,
    )
