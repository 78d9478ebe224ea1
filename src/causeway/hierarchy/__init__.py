"""Causal hierarchy engine.

Deterministic multi-round construction of cause -> effect links:
level 1 pairs single exchanges, level 2 clusters them, level 3 forms beats.

Components:
- scoring: distance decay, lexical overlap, bridge and lever-mode strength
- pairing: Level-1 linker
- absorption: anneal phase attaching residual lines as context
- composition: Level-N linker
- rounds: orchestrator (run_hierarchy)
- metrics, provenance: per-phase metrics and parameter hash
"""

from causeway.hierarchy.absorption import AbsorptionResult, absorb_singletons
from causeway.hierarchy.composition import CompositionResult, compose_nodes, merged_level
from causeway.hierarchy.pairing import Level1Result, boost_link_masses, link_level_one
from causeway.hierarchy.params import (
    AbsorptionParams,
    CompositionParams,
    HierarchyParams,
    LeverParams,
    LinkerParams,
    resolve_params,
)
from causeway.hierarchy.provenance import KERNEL_VERSION, build_provenance
from causeway.hierarchy.rounds import build_singleton_pool, run_hierarchy
from causeway.hierarchy.scoring import (
    LexicalCorpusStats,
    LexicalSignals,
    bridge_strength,
    distance_score,
    edge_strength,
    evidence_score,
    evidence_to_strength,
    lexical_score,
    lexical_signals,
    locality_to_tau,
    mass_threshold,
    tokenize,
)
from causeway.hierarchy.types import (
    CandidateReason,
    CauseStrength,
    CauseTrace,
    ClaimReason,
    ContextEdge,
    EffectCandidate,
    HierarchyResult,
    Link,
    MetricStats,
    NodeKind,
    PairCandidate,
    Phase,
    Provenance,
    RoundMetrics,
    RoundPhaseState,
    SingletonKind,
    SingletonNode,
)

__all__ = [
    # Orchestration
    "run_hierarchy",
    "build_singleton_pool",
    # Phases
    "link_level_one",
    "boost_link_masses",
    "Level1Result",
    "absorb_singletons",
    "AbsorptionResult",
    "compose_nodes",
    "CompositionResult",
    "merged_level",
    # Parameters
    "HierarchyParams",
    "LinkerParams",
    "AbsorptionParams",
    "CompositionParams",
    "LeverParams",
    "resolve_params",
    # Scoring
    "distance_score",
    "lexical_score",
    "bridge_strength",
    "mass_threshold",
    "tokenize",
    "LexicalCorpusStats",
    "LexicalSignals",
    "lexical_signals",
    "evidence_score",
    "evidence_to_strength",
    "locality_to_tau",
    "edge_strength",
    # Provenance
    "KERNEL_VERSION",
    "build_provenance",
    # Types
    "Link",
    "NodeKind",
    "CauseStrength",
    "SingletonNode",
    "SingletonKind",
    "ContextEdge",
    "EffectCandidate",
    "PairCandidate",
    "CandidateReason",
    "CauseTrace",
    "ClaimReason",
    "MetricStats",
    "RoundMetrics",
    "RoundPhaseState",
    "Phase",
    "Provenance",
    "HierarchyResult",
]
