"""Absorption (anneal) phase.

Attaches residual unpaired lines (singletons) to nearby links as context.
Each link reaches out to radius_base + radius_per_mass * mass lines from its
center and can take floor(cap_base + cap_per_mass * mass) context lines in
total, so heavier links pull in more context. Radius and capacity are taken
from the masses at the start of the phase.

Candidates are sorted by (strength desc, singleton mass desc, distance asc,
singleton anchor asc, singleton id asc, link id asc) and assigned greedily;
a singleton is absorbed at most once, ever.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Sequence

from causeway.hierarchy.params import AbsorptionParams
from causeway.hierarchy.scoring import (
    LexicalCorpusStats,
    bridge_strength,
    distance_score,
    keyword_overlap,
    tokenize,
)
from causeway.hierarchy.types import ContextEdge, Link, SingletonNode

logger = logging.getLogger(__name__)


@dataclass
class AbsorptionResult:
    """Updated links, the absorptions made and the singletons left over."""

    links: List[Link] = field(default_factory=list)
    edges: List[ContextEdge] = field(default_factory=list)
    remaining: List[SingletonNode] = field(default_factory=list)

    @property
    def absorbed_count(self) -> int:
        return len(self.edges)


def link_radius(link: Link, params: AbsorptionParams) -> float:
    return params.radius_base + params.radius_per_mass * link.mass


def link_capacity(link: Link, params: AbsorptionParams) -> int:
    """Context lines the link may still take."""
    total = math.floor(params.cap_base + params.cap_per_mass * link.mass)
    return max(0, total - len(link.context_line_indices))


def context_threshold(singleton: SingletonNode, params: AbsorptionParams) -> float:
    if params.ctx_threshold_base is None:
        return params.min_ctx_strength
    return params.ctx_threshold_base + params.ctx_threshold_per_log_mass * math.log(
        1.0 + singleton.mass
    )


def absorb_singletons(
    links: Sequence[Link],
    singletons: Sequence[SingletonNode],
    params: AbsorptionParams,
    *,
    stats: Optional[LexicalCorpusStats] = None,
    context_text: Optional[Dict[int, str]] = None,
) -> AbsorptionResult:
    """Run one absorption pass.

    Args:
        links: Current node set; returned in the same order
        singletons: Pool of unabsorbed lines
        params: Radius, capacity and scoring parameters
        stats: Corpus stats enabling IDF-weighted lexical scoring
        context_text: Line texts, used when include_context_text is set

    Returns:
        AbsorptionResult with new link copies for every link that grew
    """
    singleton_tokens: Dict[str, FrozenSet[str]] = {s.id: tokenize(s.text) for s in singletons}
    capacity: Dict[str, int] = {}
    scored = []

    for link in links:
        capacity[link.id] = link_capacity(link, params)
        if capacity[link.id] <= 0:
            continue
        radius = link_radius(link, params)
        text = link.aggregate_text(context_text if params.include_context_text else None)
        link_tokens = tokenize(text)
        for singleton in singletons:
            distance = abs(singleton.anchor_index - link.center_index)
            if distance > radius:
                continue
            ds = distance_score(distance, params.hill_tau, params.hill_steepness)
            lex = keyword_overlap(singleton_tokens[singleton.id], link_tokens, stats)
            strength = bridge_strength(ds, lex, params.beta_lex)
            if strength < context_threshold(singleton, params):
                continue
            scored.append((strength, distance, lex, singleton, link))

    scored.sort(
        key=lambda item: (
            -item[0],
            -item[3].mass,
            item[1],
            item[3].anchor_index,
            item[3].id,
            item[4].id,
        )
    )

    taken: set = set()
    gained: Dict[str, List[SingletonNode]] = {}
    edges: List[ContextEdge] = []
    for strength, distance, lex, singleton, link in scored:
        if singleton.id in taken or capacity[link.id] <= 0:
            continue
        taken.add(singleton.id)
        capacity[link.id] -= 1
        gained.setdefault(link.id, []).append(singleton)
        edges.append(
            ContextEdge(
                singleton_id=singleton.id,
                link_id=link.id,
                strength_ctx=strength,
                distance=distance,
                lexical=lex,
                singleton_kind=singleton.kind,
                singleton_anchor_index=singleton.anchor_index,
                link_center_index=link.center_index,
            )
        )

    updated: List[Link] = []
    for link in links:
        absorbed = gained.get(link.id)
        if not absorbed:
            updated.append(link)
            continue
        updated.append(
            link.model_copy(
                update={
                    "mass_boost": link.mass_boost + sum(s.mass for s in absorbed),
                    "context_line_indices": sorted(
                        link.context_line_indices + [s.anchor_index for s in absorbed]
                    ),
                }
            )
        )

    remaining = [s for s in singletons if s.id not in taken]
    logger.info(
        f"Absorption: {len(edges)} absorbed into {len(gained)} links, "
        f"{len(remaining)} singletons remaining"
    )
    return AbsorptionResult(links=updated, edges=edges, remaining=remaining)
