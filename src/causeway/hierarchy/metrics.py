"""Per-round metrics.

Counts and min/p50/p90/max distributions for each link and anneal phase.
Percentiles use the nearest-rank index min(n - 1, floor(p / 100 * n)) over
the sorted values.
"""

from __future__ import annotations

import math
from typing import Dict, Iterable, List, Sequence

from causeway.hierarchy.absorption import AbsorptionResult
from causeway.hierarchy.composition import CompositionResult
from causeway.hierarchy.pairing import Level1Result
from causeway.hierarchy.types import (
    Link,
    MetricStats,
    Phase,
    RoundMetrics,
    SingletonKind,
    SingletonNode,
)


def percentile(sorted_values: Sequence[float], p: float) -> float:
    if not sorted_values:
        return 0.0
    n = len(sorted_values)
    index = min(n - 1, int(math.floor(p / 100.0 * n)))
    return sorted_values[index]


def summarize(values: Iterable[float]) -> MetricStats:
    ordered = sorted(values)
    if not ordered:
        return MetricStats()
    return MetricStats(
        min=ordered[0],
        p50=percentile(ordered, 50),
        p90=percentile(ordered, 90),
        max=ordered[-1],
    )


def phase_label(round_number: int, phase: Phase) -> str:
    return f"round{round_number}/{phase.value}"


def _link_stats(nodes: Sequence[Link]) -> Dict[str, MetricStats]:
    claimed = [n for n in nodes if n.claimed]
    return {
        "strength_bridge": summarize(n.strength_bridge for n in claimed),
        "strength_internal": summarize(n.strength_internal for n in claimed),
        "mass": summarize(n.mass for n in claimed),
    }


def level_one_metrics(result: Level1Result) -> RoundMetrics:
    claimed = result.claimed_links
    claimed_effects = {link.effect_anchor_index for link in claimed}
    return RoundMetrics(
        round=1,
        phase=Phase.LINK,
        label=phase_label(1, Phase.LINK),
        counts={
            "nodes_total": len(result.links),
            "causes_total": len(result.causes),
            "effects_total": len(result.effect_indices),
            "pairs_formed": len(claimed),
            "effects_unique_claimed": len(claimed_effects),
            "effects_unclaimed": len(result.unclaimed_effect_indices),
        },
        stats=_link_stats(result.links),
    )


def composition_metrics(round_number: int, result: CompositionResult) -> RoundMetrics:
    return RoundMetrics(
        round=round_number,
        phase=Phase.LINK,
        label=phase_label(round_number, Phase.LINK),
        counts={
            "nodes_total": len(result.nodes),
            "pairs_formed": len(result.composites),
            "unpaired_total": result.unpaired_count,
            "candidates_total": len(result.candidates),
        },
        stats=_link_stats(result.nodes),
    )


def anneal_metrics(
    round_number: int,
    result: AbsorptionResult,
    cumulative_absorptions: int,
) -> RoundMetrics:
    remaining: List[SingletonNode] = result.remaining
    return RoundMetrics(
        round=round_number,
        phase=Phase.ANNEAL,
        label=phase_label(round_number, Phase.ANNEAL),
        counts={
            "nodes": len(result.links),
            "absorptions_this_round": result.absorbed_count,
            "absorptions_causes": sum(
                1 for e in result.edges if e.singleton_kind == SingletonKind.CAUSE
            ),
            "absorptions_effects": sum(
                1 for e in result.edges if e.singleton_kind == SingletonKind.EFFECT
            ),
            "absorptions_cumulative": cumulative_absorptions,
            "singleton_causes_remaining": sum(
                1 for s in remaining if s.kind == SingletonKind.CAUSE
            ),
            "singleton_effects_remaining": sum(
                1 for s in remaining if s.kind == SingletonKind.EFFECT
            ),
        },
        stats={
            "strength_internal": summarize(n.strength_internal for n in result.links),
            "mass": summarize(n.mass for n in result.links),
            "strength_ctx": summarize(e.strength_ctx for e in result.edges),
        },
    )
