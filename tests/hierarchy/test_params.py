"""Tests for run parameters, metrics and provenance."""

import json

import pytest
from pydantic import ValidationError

from causeway.errors import InvalidParametersError
from causeway.hierarchy.metrics import percentile, phase_label, summarize
from causeway.hierarchy.params import HierarchyParams, LeverParams, LinkerParams, resolve_params
from causeway.hierarchy.provenance import (
    KERNEL_VERSION,
    build_provenance,
    canonical_params_json,
)
from causeway.hierarchy.types import Phase


class TestHierarchyParams:
    """Test parameter validation."""

    def test_defaults(self):
        params = HierarchyParams()
        assert params.max_rounds == 3
        assert params.max_level == 3
        assert params.converge is True
        assert params.use_idf is False
        assert params.linker.k_local == 8
        assert params.linker.hill_tau == 8.0
        assert params.composition.hill_tau == 30.0
        assert params.composition.threshold_base == 0.5
        assert params.absorption.radius_base == 4.0

    def test_from_mapping_nested(self):
        params = HierarchyParams.from_mapping({"max_rounds": 5, "linker": {"k_local": 6}})
        assert params.max_rounds == 5
        assert params.linker.k_local == 6
        assert params.linker.hill_tau == 8.0

    def test_from_mapping_none(self):
        assert HierarchyParams.from_mapping(None) == HierarchyParams()

    def test_error_details_list_locations(self):
        with pytest.raises(InvalidParametersError) as exc_info:
            HierarchyParams.from_mapping({"absorption": {"radius_base": 0}})
        error = exc_info.value
        assert error.code == "INVALID_PARAMETERS"
        assert not error.recoverable
        assert any(e.startswith("absorption.radius_base") for e in error.details["errors"])

    def test_max_rounds_upper_bound(self):
        with pytest.raises(InvalidParametersError):
            HierarchyParams.from_mapping({"max_rounds": 11})

    def test_frozen(self):
        params = LinkerParams()
        with pytest.raises(ValidationError):
            params.k_local = 3

    def test_resolve_accepts_instances_and_mappings(self):
        assert resolve_params(None) == HierarchyParams()
        assert resolve_params({"max_rounds": 2}).max_rounds == 2
        assert resolve_params(HierarchyParams(max_rounds=4)).max_rounds == 4

    def test_optional_modes_default_off(self):
        params = HierarchyParams()
        assert params.levers is None
        assert params.linker.ambient_mass_boost is False
        assert params.linker.link_window == 18
        assert params.linker.link_boost_damping == 0.15

    def test_lever_defaults(self):
        levers = HierarchyParams.from_mapping({"levers": {}}).levers
        assert levers == LeverParams()
        assert levers.hill_tau == pytest.approx(5.2)
        assert levers.threshold_base == 1.0
        assert levers.growth_resistance == 0.15

    @pytest.mark.parametrize(
        "levers",
        [{"locality": 1.5}, {"coupling": 0}, {"strength_scale": -1}, {"gamma": 2}],
    )
    def test_invalid_levers(self, levers):
        with pytest.raises(InvalidParametersError):
            HierarchyParams.from_mapping({"levers": levers})

    def test_resolve_keeps_levers(self):
        params = HierarchyParams.from_mapping({"levers": {"locality": 0.2}})
        assert resolve_params(params).levers.locality == 0.2


class TestProvenance:
    """Parameter hashing."""

    def test_canonical_json_is_sorted_and_compact(self):
        text = canonical_params_json(HierarchyParams())
        assert " " not in text
        payload = json.loads(text)
        assert list(payload) == sorted(payload)

    def test_hash_is_stable(self):
        first = build_provenance(HierarchyParams())
        second = build_provenance(HierarchyParams.from_mapping({}))
        assert first.param_hash == second.param_hash
        assert len(first.param_hash) == 64
        assert first.short_hash == first.param_hash[:12]
        assert first.kernel_version == KERNEL_VERSION

    def test_hash_changes_with_params(self):
        base = build_provenance(HierarchyParams())
        changed = build_provenance(HierarchyParams.from_mapping({"linker": {"beta_lex": 1.0}}))
        assert base.param_hash != changed.param_hash

    def test_hash_changes_when_levers_enabled(self):
        base = build_provenance(HierarchyParams())
        levers = build_provenance(HierarchyParams.from_mapping({"levers": {}}))
        assert base.param_hash != levers.param_hash
        assert json.loads(base.params_json)["levers"] is None


class TestMetricHelpers:
    """Percentiles and summaries."""

    def test_percentile_nearest_rank(self):
        values = [1.0, 2.0, 3.0, 4.0]
        assert percentile(values, 50) == 3.0
        assert percentile(values, 90) == 4.0
        assert percentile(values, 0) == 1.0
        assert percentile(values, 100) == 4.0

    def test_percentile_empty(self):
        assert percentile([], 50) == 0.0

    def test_summarize(self):
        stats = summarize([3.0, 1.0, 2.0])
        assert (stats.min, stats.p50, stats.p90, stats.max) == (1.0, 2.0, 3.0, 3.0)
        assert summarize([]).max == 0.0

    def test_phase_label(self):
        assert phase_label(2, Phase.ANNEAL) == "round2/anneal"
