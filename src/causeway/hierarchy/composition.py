"""Level-N Linker.

Repeats the pairing logic one level up: nodes from the previous round are
paired with nearby forward nodes by center distance and shared vocabulary.

Threshold rises slowly with the masses being joined:
    t_link_base + t_link_k * log(1 + sqrt(mass_left * mass_right))

Promotion: a merge takes the higher child level and is promoted by one
(capped at max_level) only when both children are claimed and at the same
level. Two exchanges form a cluster, two clusters form a beat, and a bare
exchange joined to a cluster stays a cluster.

With levers set, strength is the two-lever evidence strength and the
threshold uses the lever threshold_base and growth_resistance.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Sequence

from causeway.hierarchy.params import CompositionParams, LeverParams
from causeway.hierarchy.scoring import (
    LexicalCorpusStats,
    distance_score,
    edge_strength,
    mass_threshold,
    tokenize,
)
from causeway.hierarchy.types import CandidateReason, Link, NodeKind, PairCandidate

logger = logging.getLogger(__name__)


@dataclass
class CompositionResult:
    """Nodes after one Level-N pass (composites plus carried nodes)."""

    nodes: List[Link] = field(default_factory=list)
    composites: List[Link] = field(default_factory=list)
    candidates: List[PairCandidate] = field(default_factory=list)

    @property
    def unpaired_count(self) -> int:
        return len(self.nodes) - len(self.composites)


def merged_level(left: Link, right: Link, max_level: int) -> int:
    level = max(left.level, right.level)
    if left.claimed and right.claimed and left.level == right.level:
        level += 1
    return min(level, max_level)


def composite_id(round_number: int, sequence: int) -> str:
    return f"r{round_number}:c{sequence}"


def compose_nodes(
    nodes: Sequence[Link],
    params: CompositionParams,
    *,
    round_number: int,
    max_level: int,
    stats: Optional[LexicalCorpusStats] = None,
    levers: Optional[LeverParams] = None,
) -> CompositionResult:
    """Pair nodes into composites one level up.

    Args:
        nodes: Previous round's node set
        params: Composition parameters
        round_number: Used for composite ids
        max_level: Nodes at this level are carried forward and never merged
        stats: Corpus stats enabling IDF-weighted lexical scoring
        levers: Two-lever evidence mode; replaces hill_tau, the bridge formula
            and the threshold, and IDF-weights overlap over the node texts

    Returns:
        CompositionResult with nodes ordered by (center, id)
    """
    ordered = sorted(nodes, key=lambda n: (n.center_index, n.id))
    pairable = [n for n in ordered if n.level < max_level]
    texts = {n.id: n.aggregate_text() for n in pairable}
    tokens: Dict[str, FrozenSet[str]] = {node_id: tokenize(text) for node_id, text in texts.items()}
    tau, base, growth = params.hill_tau, params.threshold_base, params.t_link_k
    if levers is not None:
        tau, base, growth = levers.hill_tau, levers.threshold_base, levers.growth_resistance
        if stats is None:
            stats = LexicalCorpusStats.from_texts(texts.values())

    candidates: List[PairCandidate] = []
    for position, left in enumerate(pairable):
        forward = [
            right
            for right in pairable[position + 1:]
            if 0 < right.center_index - left.center_index <= params.max_forward_lines
        ]
        for right in forward[: params.k_local_links]:
            distance = right.center_index - left.center_index
            ds = distance_score(distance, tau, params.hill_steepness)
            lex, strength = edge_strength(
                ds, tokens[left.id], tokens[right.id], params.beta_lex, stats, levers
            )
            threshold = mass_threshold(base, growth, left.mass, right.mass)
            accepted = strength >= threshold
            candidates.append(
                PairCandidate(
                    left_id=left.id,
                    right_id=right.id,
                    left_center=left.center_index,
                    right_center=right.center_index,
                    center_distance=distance,
                    lexical_score=lex,
                    strength_bridge=strength,
                    threshold=threshold,
                    accepted=accepted,
                    reason=CandidateReason.CHOSEN if accepted else CandidateReason.BELOW_THRESHOLD,
                )
            )

    by_id = {n.id: n for n in pairable}
    accepted = sorted(
        (c for c in candidates if c.accepted),
        key=lambda c: (-c.strength_bridge, c.center_distance, c.left_center, c.left_id, c.right_id),
    )
    used: set = set()
    composites: List[Link] = []
    for candidate in accepted:
        if candidate.left_id in used or candidate.right_id in used:
            candidate.reason = CandidateReason.ENDPOINT_TAKEN
            continue
        candidate.chosen = True
        used.update((candidate.left_id, candidate.right_id))
        composites.append(
            _merge(
                by_id[candidate.left_id],
                by_id[candidate.right_id],
                candidate,
                composite_id(round_number, len(composites) + 1),
                max_level,
            )
        )

    carried = [n for n in ordered if n.id not in used]
    result_nodes = sorted(composites + carried, key=lambda n: (n.center_index, n.id))
    logger.info(
        f"Level-N linking round {round_number}: {len(pairable)} pairable nodes, "
        f"{len(composites)} composites, {len(carried)} carried"
    )
    return CompositionResult(nodes=result_nodes, composites=composites, candidates=candidates)


def _merge(
    left: Link,
    right: Link,
    candidate: PairCandidate,
    node_id: str,
    max_level: int,
) -> Link:
    effect_anchor = (
        right.effect_anchor_index
        if right.effect_anchor_index is not None
        else right.cause_anchor_index
    )
    return Link(
        id=node_id,
        session_id=left.session_id,
        level=merged_level(left, right, max_level),
        node_kind=NodeKind.COMPOSITE,
        cause_anchor_index=left.cause_anchor_index,
        effect_anchor_index=effect_anchor,
        cause_text=left.aggregate_text(),
        effect_text=right.aggregate_text(),
        actor_id=left.actor_id if left.actor_id == right.actor_id else None,
        claimed=True,
        strength_bridge=candidate.strength_bridge,
        strength_internal=(
            candidate.strength_bridge + left.strength_internal + right.strength_internal
        ),
        mass_base=left.mass + right.mass + candidate.strength_bridge,
        span_start_index=min(left.span_start_index, right.span_start_index),
        span_end_index=max(left.span_end_index, right.span_end_index),
        center_index=(left.center_index + right.center_index) / 2.0,
        members=[left.id, right.id],
        join_distance=candidate.center_distance,
        join_lexical=candidate.lexical_score,
    )
