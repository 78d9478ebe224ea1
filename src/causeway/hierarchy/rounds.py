"""Round Orchestrator.

Sequences the phases of a hierarchy run:
- Round 1: Level-1 link, then anneal over the claimed links
- Rounds 2..max_rounds: Level-N link, then anneal

The run stops at max_rounds or, with ``converge`` set, after a round r >= 2
that formed no composites and absorbed nothing. Every phase's full state and
metrics are kept.

Structural input errors are raised before any scoring. Empty transcripts and
masks with no eligible lines are valid and produce empty rounds.
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional, Sequence, Union

from causeway.hierarchy.absorption import AbsorptionResult, absorb_singletons
from causeway.hierarchy.composition import compose_nodes
from causeway.hierarchy.metrics import anneal_metrics, composition_metrics, level_one_metrics
from causeway.hierarchy.pairing import link_level_one
from causeway.hierarchy.params import HierarchyParams, resolve_params
from causeway.hierarchy.provenance import build_provenance
from causeway.hierarchy.scoring import LexicalCorpusStats
from causeway.hierarchy.types import (
    HierarchyResult,
    Link,
    Phase,
    RoundPhaseState,
    SingletonKind,
    SingletonNode,
)
from causeway.transcript.actors import ActorRegistry
from causeway.transcript.models import (
    EligibilityMask,
    TranscriptLine,
    validate_mask,
    validate_transcript,
)
from causeway.transcript.speech_acts import CauseClassifier

logger = logging.getLogger(__name__)


def singleton_id(line_index: int) -> str:
    return f"S:{line_index}"


def build_singleton_pool(
    transcript: Sequence[TranscriptLine],
    mask: EligibilityMask,
    actors: ActorRegistry,
    claimed_links: Sequence[Link],
    mass: float,
) -> List[SingletonNode]:
    """Every eligible line that does not anchor a claimed link."""
    anchored = {index for link in claimed_links for index in link.anchor_indices}
    pool = []
    for line in transcript:
        if not mask.is_eligible(line.line_index) or line.line_index in anchored:
            continue
        kind = SingletonKind.EFFECT if actors.is_narrator(line.author_name) else SingletonKind.CAUSE
        pool.append(
            SingletonNode(
                id=singleton_id(line.line_index),
                kind=kind,
                anchor_index=line.line_index,
                text=line.content,
                mass=mass,
            )
        )
    return pool


def run_hierarchy(
    transcript: Sequence[TranscriptLine],
    mask: Optional[EligibilityMask] = None,
    actors: Optional[ActorRegistry] = None,
    params: Union[HierarchyParams, Mapping[str, Any], None] = None,
    *,
    session_id: Optional[str] = None,
    classifier: Optional[CauseClassifier] = None,
    emit_traces: bool = False,
) -> HierarchyResult:
    """Build the causal hierarchy of one transcript.

    Args:
        transcript: Lines with line_index == position
        mask: Eligibility mask, defaults to every line eligible
        actors: Actor registry, defaults to an empty registry with the
            standard narrator names
        params: Parameter set or plain mapping; validated on entry
        session_id: Defaults to the mask's session id
        classifier: Cause classifier, defaults to the regex heuristics
        emit_traces: Keep per-cause Level-1 traces

    Returns:
        HierarchyResult holding every phase's state

    Raises:
        InvalidParametersError: If parameters fail validation
        MalformedTranscriptError: If line indices are not 0..N-1
        MalformedMaskError: If the mask length differs from the transcript
    """
    params = resolve_params(params)
    transcript = list(transcript)
    validate_transcript(transcript)
    if mask is None:
        mask = EligibilityMask.all_eligible(len(transcript), session_id=session_id or "session")
    validate_mask(transcript, mask)
    actors = actors if actors is not None else ActorRegistry()
    session_id = session_id or mask.session_id

    provenance = build_provenance(params)
    stats = (
        LexicalCorpusStats.from_texts(line.content for line in transcript)
        if params.use_idf
        else None
    )
    context_text = (
        {line.line_index: line.content for line in transcript}
        if params.absorption.include_context_text
        else None
    )
    logger.info(
        f"Hierarchy run {session_id}: {len(transcript)} lines, "
        f"{mask.eligible_count()} eligible, params {provenance.short_hash}"
    )

    states: List[RoundPhaseState] = []

    level_one = link_level_one(
        transcript,
        mask,
        actors,
        params.linker,
        session_id=session_id,
        classifier=classifier,
        stats=stats,
        emit_traces=emit_traces,
        levers=params.levers,
    )
    states.append(
        RoundPhaseState(
            round=1,
            phase=Phase.LINK,
            nodes=level_one.links,
            metrics=level_one_metrics(level_one),
            effect_candidates=level_one.candidates,
            traces=level_one.traces,
        )
    )

    claimed = level_one.claimed_links
    pool = build_singleton_pool(
        transcript, mask, actors, claimed, params.absorption.singleton_mass
    )
    absorbed = absorb_singletons(
        claimed, pool, params.absorption, stats=stats, context_text=context_text
    )
    cumulative = absorbed.absorbed_count
    states.append(_anneal_state(1, absorbed, cumulative))
    nodes = absorbed.links
    pool = absorbed.remaining

    converged = False
    for round_number in range(2, params.max_rounds + 1):
        composed = compose_nodes(
            nodes,
            params.composition,
            round_number=round_number,
            max_level=params.max_level,
            stats=stats,
            levers=params.levers,
        )
        states.append(
            RoundPhaseState(
                round=round_number,
                phase=Phase.LINK,
                nodes=composed.nodes,
                metrics=composition_metrics(round_number, composed),
                pair_candidates=composed.candidates,
            )
        )

        absorbed = absorb_singletons(
            composed.nodes, pool, params.absorption, stats=stats, context_text=context_text
        )
        cumulative += absorbed.absorbed_count
        states.append(_anneal_state(round_number, absorbed, cumulative))
        nodes = absorbed.links
        pool = absorbed.remaining

        if params.converge and not composed.composites and not absorbed.edges:
            converged = True
            logger.info(f"Hierarchy run {session_id} converged at round {round_number}")
            break

    return HierarchyResult(
        session_id=session_id,
        rounds=states,
        final_nodes=nodes,
        unabsorbed=pool,
        provenance=provenance,
        converged=converged,
    )


def _anneal_state(round_number: int, absorbed: AbsorptionResult, cumulative: int) -> RoundPhaseState:
    return RoundPhaseState(
        round=round_number,
        phase=Phase.ANNEAL,
        nodes=absorbed.links,
        metrics=anneal_metrics(round_number, absorbed, cumulative),
        context_edges=absorbed.edges,
        singletons=absorbed.remaining,
    )
