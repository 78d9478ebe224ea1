"""Tests for the round orchestrator."""

import pytest

from causeway.errors import (
    DuplicateActorError,
    InvalidParametersError,
    MalformedMaskError,
    MalformedTranscriptError,
)
from causeway.hierarchy import HierarchyParams, Phase, run_hierarchy
from causeway.hierarchy.rounds import build_singleton_pool
from causeway.hierarchy.types import SingletonKind
from causeway.transcript import Actor, ActorRegistry, EligibilityMask, TranscriptLine
from tests.conftest import make_transcript


def _run(lines, registry, **kwargs):
    mask = EligibilityMask.all_eligible(len(lines), session_id="s1")
    return run_hierarchy(lines, mask, registry, **kwargs)


class TestRoundSequence:
    """Phase ordering, promotion and convergence."""

    def test_phase_order(self, four_exchanges, registry):
        result = _run(four_exchanges, registry, params={"max_rounds": 3, "converge": False})
        assert [(s.round, s.phase) for s in result.rounds] == [
            (1, Phase.LINK),
            (1, Phase.ANNEAL),
            (2, Phase.LINK),
            (2, Phase.ANNEAL),
            (3, Phase.LINK),
            (3, Phase.ANNEAL),
        ]
        assert [s.metrics.label for s in result.rounds][:2] == ["round1/link", "round1/anneal"]
        assert result.rounds_completed == 3
        assert not result.converged

    def test_builds_clusters_then_a_beat(self, four_exchanges, registry):
        result = _run(four_exchanges, registry, params={"max_rounds": 3})

        round_two = result.phase(2, Phase.LINK)
        clusters = [n for n in round_two.nodes if n.is_composite]
        assert len(clusters) == 2
        assert all(n.level == 2 for n in clusters)
        assert round_two.metrics.counts["pairs_formed"] == 2

        assert len(result.final_nodes) == 1
        beat = result.final_nodes[0]
        assert beat.level == 3
        assert beat.id == "r3:c1"
        assert beat.span_start_index == 0
        assert beat.span_end_index == 7
        index = result.node_index()
        assert sorted(index[m].level for m in beat.members) == [2, 2]
        assert beat.mass > sum(index[m].mass for m in beat.members)

    def test_converges_when_nothing_changes(self, four_exchanges, registry):
        result = _run(four_exchanges, registry, params={"max_rounds": 5})
        assert result.converged
        assert result.rounds_completed == 4
        last_link = result.phase(4, Phase.LINK)
        assert last_link.metrics.counts["pairs_formed"] == 0
        assert result.phase(5, Phase.LINK) is None

    def test_no_convergence_runs_every_round(self, four_exchanges, registry):
        result = _run(four_exchanges, registry, params={"max_rounds": 5, "converge": False})
        assert result.rounds_completed == 5
        assert not result.converged

    def test_single_round(self, four_exchanges, registry):
        result = _run(four_exchanges, registry, params={"max_rounds": 1})
        assert result.rounds_completed == 1
        assert [n.id for n in result.final_nodes] == ["L1:0>1", "L1:2>3", "L1:4>5", "L1:6>7"]

    def test_max_level_caps_promotion(self, four_exchanges, registry):
        result = _run(four_exchanges, registry, params={"max_rounds": 4, "max_level": 2})
        assert max(n.level for n in result.final_nodes) == 2


class TestAnneal:
    """Absorption inside a full run."""

    def test_chatter_is_absorbed(self, chatter_transcript, registry):
        result = _run(chatter_transcript, registry)

        anneal = result.phase(1, Phase.ANNEAL)
        assert anneal.metrics.counts["absorptions_this_round"] == 3
        assert anneal.metrics.counts["absorptions_causes"] == 2
        assert anneal.metrics.counts["absorptions_effects"] == 1
        by_id = {n.id: n for n in anneal.nodes}
        assert by_id["L1:0>1"].context_line_indices == [2]
        assert by_id["L1:3>4"].context_line_indices == [5]
        assert by_id["L1:6>7"].context_line_indices == [8]
        assert result.unabsorbed == []

    def test_round_one_anneal_only_targets_claimed_links(self, registry):
        lines = make_transcript(
            [("Kael", "I search the room"), ("Kael", "hmm okay then"), ("DM", "The wind howls")]
        )
        mask = EligibilityMask(session_id="s1", eligible=[True, True, False])
        result = run_hierarchy(lines, mask, registry)
        anneal = result.phase(1, Phase.ANNEAL)
        assert anneal.nodes == []
        assert anneal.context_edges == []
        assert [s.id for s in result.unabsorbed] == ["S:0", "S:1"]

    def test_singleton_pool(self, chatter_transcript, registry, full_mask):
        result = _run(chatter_transcript, registry)
        claimed = [n for n in result.rounds[0].nodes if n.claimed]
        pool = build_singleton_pool(
            chatter_transcript, full_mask(chatter_transcript), registry, claimed, 1.0
        )
        assert [(s.id, s.kind) for s in pool] == [
            ("S:2", SingletonKind.CAUSE),
            ("S:5", SingletonKind.CAUSE),
            ("S:8", SingletonKind.EFFECT),
        ]


class TestInvariants:
    """Properties that hold for every run."""

    def test_deterministic(self, chatter_transcript, registry):
        first = _run(chatter_transcript, registry, params={"max_rounds": 4})
        second = _run(list(chatter_transcript), registry, params={"max_rounds": 4})
        assert first.model_dump_json() == second.model_dump_json()

    def test_no_double_use(self, chatter_transcript, registry):
        result = _run(chatter_transcript, registry, params={"max_rounds": 4})

        level_one = result.phase(1, Phase.LINK)
        effects = [n.effect_anchor_index for n in level_one.nodes if n.claimed]
        assert len(effects) == len(set(effects))

        absorbed = [e.singleton_id for s in result.rounds for e in s.context_edges]
        assert len(absorbed) == len(set(absorbed))

        for state in result.rounds:
            if state.phase == Phase.LINK and state.round > 1:
                members = [
                    m
                    for n in state.nodes
                    if n.id.startswith(f"r{state.round}:")
                    for m in n.members
                ]
                assert len(members) == len(set(members))

    def test_mass_never_decreases(self, chatter_transcript, registry):
        result = _run(chatter_transcript, registry, params={"max_rounds": 4})
        seen = {}
        for state in result.rounds:
            for node in state.nodes:
                if node.id in seen:
                    assert node.mass >= seen[node.id]
                seen[node.id] = node.mass

    def test_composites_follow_effects(self, four_exchanges, registry):
        result = _run(four_exchanges, registry)
        for node in result.node_index().values():
            if node.effect_anchor_index is not None:
                assert node.effect_anchor_index > node.cause_anchor_index

    def test_provenance_matches_params(self, four_exchanges, registry):
        a = _run(four_exchanges, registry, params={"max_rounds": 3})
        b = _run(four_exchanges, registry, params=HierarchyParams(max_rounds=3))
        c = _run(four_exchanges, registry, params={"max_rounds": 4})
        assert a.provenance.param_hash == b.provenance.param_hash
        assert a.provenance.param_hash != c.provenance.param_hash

    def test_idf_weighting_runs(self, four_exchanges, registry):
        result = _run(four_exchanges, registry, params={"use_idf": True})
        for candidate in result.rounds[0].effect_candidates:
            assert 0.0 <= candidate.lexical_score <= 1.0

    def test_lever_mode_runs(self, four_exchanges, registry):
        plain = _run(four_exchanges, registry)
        first = _run(four_exchanges, registry, params={"levers": {}})
        second = _run(four_exchanges, registry, params={"levers": {}})

        assert first.model_dump_json() == second.model_dump_json()
        assert first.provenance.param_hash != plain.provenance.param_hash
        for candidate in first.rounds[0].effect_candidates:
            assert candidate.distance_score == pytest.approx(
                1.0 / (1.0 + (candidate.distance / 5.2) ** 2.2)
            )
            assert candidate.strength <= 2.0

    def test_ambient_boost_raises_link_mass(self, four_exchanges, registry):
        result = _run(four_exchanges, registry, params={"linker": {"ambient_mass_boost": True}})
        claimed = [n for n in result.phase(1, Phase.LINK).nodes if n.claimed]
        assert claimed
        assert all(n.mass_base > 1.0 for n in claimed)


class TestInputs:
    """Empty and malformed inputs."""

    def test_empty_transcript(self):
        result = run_hierarchy([])
        assert result.final_nodes == []
        assert result.unabsorbed == []
        assert result.converged
        assert result.rounds[0].metrics.counts["nodes_total"] == 0

    def test_nothing_eligible(self, four_exchanges, registry):
        mask = EligibilityMask(session_id="s1", eligible=[False] * len(four_exchanges))
        result = run_hierarchy(four_exchanges, mask, registry)
        assert result.final_nodes == []
        assert result.unabsorbed == []

    def test_default_mask_and_registry(self, four_exchanges):
        result = run_hierarchy(four_exchanges, session_id="solo")
        assert result.session_id == "solo"
        # no registered actors means no causes
        assert result.rounds[0].nodes == []
        assert len(result.unabsorbed) == len(four_exchanges)

    def test_session_id_from_mask(self, four_exchanges, registry):
        mask = EligibilityMask.all_eligible(len(four_exchanges), session_id="from-mask")
        assert run_hierarchy(four_exchanges, mask, registry).session_id == "from-mask"

    def test_gap_in_line_indices(self):
        lines = [
            TranscriptLine(line_index=0, author_name="Kael", content="I search the room"),
            TranscriptLine(line_index=2, author_name="DM", content="You find a key"),
        ]
        with pytest.raises(MalformedTranscriptError):
            run_hierarchy(lines)

    def test_mask_length_mismatch(self, four_exchanges, registry):
        mask = EligibilityMask.all_eligible(3)
        with pytest.raises(MalformedMaskError) as exc_info:
            run_hierarchy(four_exchanges, mask, registry)
        assert exc_info.value.details == {"mask_length": 3, "transcript_length": 8}

    def test_duplicate_actor(self):
        with pytest.raises(DuplicateActorError):
            ActorRegistry([Actor(id="a", canonical_name="Kael"), Actor(id="a", canonical_name="Mira")])

    @pytest.mark.parametrize(
        "params",
        [
            {"absorption": {"radius_base": 0}},
            {"linker": {"k_local": 0}},
            {"composition": {"hill_tau": -1}},
            {"linker": {"hill_steepness": 0}},
            {"max_rounds": 0},
            {"unknown": 1},
        ],
    )
    def test_invalid_params(self, four_exchanges, registry, params):
        with pytest.raises(InvalidParametersError):
            _run(four_exchanges, registry, params=params)

    def test_unvalidated_copy_is_rejected(self, four_exchanges, registry):
        params = HierarchyParams().model_copy(update={"max_rounds": 0})
        with pytest.raises(InvalidParametersError):
            _run(four_exchanges, registry, params=params)
