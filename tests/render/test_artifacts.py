"""Tests for run artifact export."""

import csv
import json
from pathlib import Path

import pytest

from causeway.errors import ArtifactWriteError
from causeway.hierarchy import run_hierarchy
from causeway.render import render_summary_markdown, write_hierarchy_artifacts
from causeway.render.artifacts import _Writer
from causeway.transcript import EligibilityMask


@pytest.fixture
def result(chatter_transcript, registry):
    mask = EligibilityMask.all_eligible(len(chatter_transcript), session_id="s1")
    return run_hierarchy(
        chatter_transcript, mask, registry, {"max_rounds": 3}, emit_traces=True
    )


class TestWriteArtifacts:
    """Run directory layout and contents."""

    def test_layout(self, result, chatter_transcript, tmp_path: Path):
        manifest = write_hierarchy_artifacts(result, chatter_transcript, tmp_path)

        assert manifest.run_dir == tmp_path / "s1" / result.provenance.short_hash
        expected = [
            "INDEX.md",
            "params.json",
            "summary.json",
            "summary.md",
            "round1/link/metrics.json",
            "round1/link/nodes.json",
            "round1/link/candidates.json",
            "round1/link/pairs.tsv",
            "round1/link/traces.json",
            "round1/anneal/metrics.json",
            "round1/anneal/nodes.json",
            "round1/anneal/singletons.json",
            "round1/anneal/context_edges.tsv",
            "round1/outline.topk.md",
            "round1/outline.spans.md",
            "round1/outline.timeline.md",
            "round2/link/candidates.json",
            "round2/link/pairs.tsv",
            "final/nodes.json",
            "final/unabsorbed.json",
            "final/outline.topk.md",
        ]
        for relative in expected:
            assert (manifest.run_dir / relative).is_file(), relative
        assert len(manifest.files) == len(set(manifest.files))

    def test_params_and_summary(self, result, chatter_transcript, tmp_path: Path):
        manifest = write_hierarchy_artifacts(result, chatter_transcript, tmp_path)

        params = json.loads((manifest.run_dir / "params.json").read_text())
        assert params["param_hash"] == result.provenance.param_hash
        assert params["params"]["max_rounds"] == 3

        summary = json.loads((manifest.run_dir / "summary.json").read_text())
        assert summary["session_id"] == "s1"
        assert summary["rounds_completed"] == result.rounds_completed
        assert [p["label"] for p in summary["phases"]][:2] == ["round1/link", "round1/anneal"]

    def test_tsv_rows(self, result, chatter_transcript, tmp_path: Path):
        manifest = write_hierarchy_artifacts(result, chatter_transcript, tmp_path)

        pairs = (manifest.run_dir / "round1/link/pairs.tsv").read_text().splitlines()
        assert pairs[0].split("\t")[:3] == ["link_id", "cause_index", "effect_index"]
        assert [row.split("\t")[0] for row in pairs[1:]] == ["L1:0>1", "L1:3>4", "L1:6>7"]

        edges = (manifest.run_dir / "round1/anneal/context_edges.tsv").read_text().splitlines()
        assert len(edges) == 4
        assert {row.split("\t")[0] for row in edges[1:]} == {"S:2", "S:5", "S:8"}

    def test_tsv_parses_as_csv(self, result, chatter_transcript, tmp_path: Path):
        manifest = write_hierarchy_artifacts(result, chatter_transcript, tmp_path)

        with (manifest.run_dir / "round1/link/pairs.tsv").open(newline="") as handle:
            rows = list(csv.DictReader(handle, delimiter="\t"))

        assert rows[0]["link_id"] == "L1:0>1"
        assert rows[0]["cause_index"] == "0"
        assert rows[0]["effect_index"] == "1"
        assert rows[0]["cause_strength"] == "strong"
        assert rows[0]["mass"] == "1.0000"

    def test_tsv_quotes_embedded_delimiters(self, tmp_path: Path):
        writer = _Writer(tmp_path)
        writer.tsv("rows.tsv", ["id", "note"], [("a", "left\tright"), ("b", None)])

        with (tmp_path / "rows.tsv").open(newline="") as handle:
            rows = list(csv.reader(handle, delimiter="\t"))

        assert rows == [["id", "note"], ["a", "left\tright"], ["b", ""]]
        assert writer.files == [tmp_path / "rows.tsv"]

    def test_index_links_every_file(self, result, chatter_transcript, tmp_path: Path):
        manifest = write_hierarchy_artifacts(result, chatter_transcript, tmp_path, run_id="run-a")
        assert manifest.run_dir.name == "run-a"
        index = (manifest.run_dir / "INDEX.md").read_text()
        assert "[round1/link/pairs.tsv](round1/link/pairs.tsv)" in index
        assert "[final/nodes.json](final/nodes.json)" in index

    def test_unwritable_directory(self, result, chatter_transcript, tmp_path: Path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        with pytest.raises(ArtifactWriteError):
            write_hierarchy_artifacts(result, chatter_transcript, blocker)


def test_summary_markdown(result):
    text = render_summary_markdown(result)
    assert text.startswith("# Hierarchy Summary: s1")
    assert "## round1/anneal" in text
    assert "- absorptions_this_round: 3" in text
