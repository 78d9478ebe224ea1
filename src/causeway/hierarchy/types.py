"""Hierarchy Types and Models.

Defines the node, edge and audit records produced by a run:
- Link: the unit at every level (claimed exchange, unclaimed cause, composite)
- SingletonNode: a residual unpaired line awaiting absorption
- ContextEdge: record of one absorption
- EffectCandidate / CauseTrace: Level-1 audit trail
- PairCandidate: Level-N audit trail
- RoundMetrics / RoundPhaseState: per-phase snapshot
- Provenance / HierarchyResult: the run output

A run never mutates a node once a phase has produced it; later phases hold
updated copies under the same id.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, computed_field, model_validator

from causeway.transcript.speech_acts import CauseType, EffectType


class NodeKind(str, Enum):
    """Whether a node was produced by a merge."""

    SINGLETON = "singleton"
    """Level-1 node, claimed or not."""

    COMPOSITE = "composite"
    """Merge of two lower nodes."""


class CauseStrength(str, Enum):
    STRONG = "strong"
    WEAK = "weak"


class SingletonKind(str, Enum):
    CAUSE = "cause"
    EFFECT = "effect"


class Phase(str, Enum):
    LINK = "link"
    ANNEAL = "anneal"


class ClaimReason(str, Enum):
    """Outcome of a cause in the Level-1 linker."""

    CHOSEN = "edge_greedy_one_to_one"
    OUTBID = "outbid"
    BELOW_THRESHOLD = "below_threshold"
    NO_CANDIDATE = "no_candidate"


class CandidateReason(str, Enum):
    """Why a scored candidate was or was not used."""

    CHOSEN = "chosen"
    BELOW_THRESHOLD = "below_threshold"
    BEYOND_SPAN = "beyond_span"
    EFFECT_CLAIMED = "effect_claimed"
    CAUSE_CLAIMED = "cause_claimed"
    ENDPOINT_TAKEN = "endpoint_taken"


class Link(BaseModel):
    """A node of the causal hierarchy.

    Level-1 nodes pair a cause line with an effect line (or hold an
    unclaimed cause). Composites join two lower nodes; their ``cause_text``
    is the left member's aggregate text and ``effect_text`` the right's.
    """

    id: str
    session_id: str
    level: int = Field(..., ge=1, le=3)
    node_kind: NodeKind

    cause_anchor_index: int = Field(..., ge=0)
    effect_anchor_index: Optional[int] = Field(default=None, ge=0)
    cause_text: str = ""
    effect_text: Optional[str] = None

    actor_id: Optional[str] = None
    cause_type: Optional[CauseType] = None
    cause_strength: Optional[CauseStrength] = None
    effect_type: Optional[EffectType] = None

    claimed: bool = False
    strength_bridge: float = Field(default=0.0, ge=0)
    strength_internal: float = Field(default=0.0, ge=0)
    mass_base: float = Field(default=0.0, ge=0)
    mass_boost: float = Field(default=0.0, ge=0)

    span_start_index: int = Field(..., ge=0)
    span_end_index: int = Field(..., ge=0)
    center_index: float = Field(..., ge=0)

    context_line_indices: List[int] = Field(default_factory=list)
    members: List[str] = Field(default_factory=list)
    join_distance: Optional[float] = None
    join_lexical: Optional[float] = None

    @computed_field
    @property
    def mass(self) -> float:
        """Total evidence weight: pairing mass plus absorbed context."""
        return self.mass_base + self.mass_boost

    @model_validator(mode="after")
    def validate_ordering(self) -> "Link":
        if self.effect_anchor_index is not None and self.effect_anchor_index <= self.cause_anchor_index:
            raise ValueError(
                f"link {self.id}: effect {self.effect_anchor_index} does not follow "
                f"cause {self.cause_anchor_index}"
            )
        if self.span_end_index < self.span_start_index:
            raise ValueError(f"link {self.id}: span end precedes span start")
        return self

    @property
    def is_composite(self) -> bool:
        return self.node_kind == NodeKind.COMPOSITE

    @property
    def anchor_indices(self) -> List[int]:
        anchors = [self.cause_anchor_index]
        if self.effect_anchor_index is not None:
            anchors.append(self.effect_anchor_index)
        return anchors

    def aggregate_text(self, context: Optional[Dict[int, str]] = None) -> str:
        """Cause and effect text, plus absorbed context when ``context`` is given."""
        parts = [self.cause_text]
        if self.effect_text:
            parts.append(self.effect_text)
        if context:
            parts.extend(context[i] for i in self.context_line_indices if i in context)
        return " ".join(p for p in parts if p)


class SingletonNode(BaseModel):
    """Residual eligible line not anchoring any claimed link."""

    model_config = {"frozen": True}

    id: str
    kind: SingletonKind
    anchor_index: int = Field(..., ge=0)
    text: str = ""
    mass: float = Field(default=1.0, gt=0)


class ContextEdge(BaseModel):
    """One singleton absorbed into one link."""

    model_config = {"frozen": True}

    singleton_id: str
    link_id: str
    strength_ctx: float
    distance: float
    lexical: float
    singleton_kind: SingletonKind
    singleton_anchor_index: int
    link_center_index: float


class EffectCandidate(BaseModel):
    """A scored cause-to-effect pairing considered by the Level-1 linker."""

    cause_index: int
    effect_index: int
    distance: int
    distance_score: float
    lexical_score: float
    strength: float
    threshold: float
    accepted: bool
    chosen: bool = False
    reason: CandidateReason = CandidateReason.BELOW_THRESHOLD


class CauseTrace(BaseModel):
    """Every candidate evaluated for one cause and how it was resolved."""

    cause_index: int
    cause_type: CauseType
    cause_strength: CauseStrength
    threshold: float
    candidates: List[EffectCandidate] = Field(default_factory=list)
    chosen_effect_index: Optional[int] = None
    chosen_strength: Optional[float] = None
    claim_reason: ClaimReason = ClaimReason.NO_CANDIDATE


class PairCandidate(BaseModel):
    """A scored node-to-node pairing considered by the Level-N linker."""

    left_id: str
    right_id: str
    left_center: float
    right_center: float
    center_distance: float
    lexical_score: float
    strength_bridge: float
    threshold: float
    accepted: bool
    chosen: bool = False
    reason: CandidateReason = CandidateReason.BELOW_THRESHOLD


class MetricStats(BaseModel):
    """Distribution summary of one measure."""

    min: float = 0.0
    p50: float = 0.0
    p90: float = 0.0
    max: float = 0.0


class RoundMetrics(BaseModel):
    """Counts and distributions for one phase of one round."""

    round: int
    phase: Phase
    label: str
    counts: Dict[str, int] = Field(default_factory=dict)
    stats: Dict[str, MetricStats] = Field(default_factory=dict)


class RoundPhaseState(BaseModel):
    """Full state after one phase of one round."""

    round: int
    phase: Phase
    nodes: List[Link] = Field(default_factory=list)
    metrics: RoundMetrics
    effect_candidates: List[EffectCandidate] = Field(default_factory=list)
    pair_candidates: List[PairCandidate] = Field(default_factory=list)
    traces: List[CauseTrace] = Field(default_factory=list)
    context_edges: List[ContextEdge] = Field(default_factory=list)
    singletons: List[SingletonNode] = Field(default_factory=list)


class Provenance(BaseModel):
    """Parameter fingerprint for caching and replay."""

    kernel_version: str
    params_json: str
    param_hash: str

    @property
    def short_hash(self) -> str:
        return self.param_hash[:12]


class HierarchyResult(BaseModel):
    """Output of a complete run."""

    session_id: str
    rounds: List[RoundPhaseState] = Field(default_factory=list)
    final_nodes: List[Link] = Field(default_factory=list)
    unabsorbed: List[SingletonNode] = Field(default_factory=list)
    provenance: Provenance
    converged: bool = False

    @property
    def rounds_completed(self) -> int:
        return max((state.round for state in self.rounds), default=0)

    def phase(self, round_number: int, phase: Phase) -> Optional[RoundPhaseState]:
        for state in self.rounds:
            if state.round == round_number and state.phase == phase:
                return state
        return None

    def node_index(self) -> Dict[str, Link]:
        """Latest state of every node id seen in any phase."""
        index: Dict[str, Link] = {}
        for state in self.rounds:
            for node in state.nodes:
                index[node.id] = node
        return index
