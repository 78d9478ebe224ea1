"""Run artifact export.

Writes a self-describing run directory:

    <out_dir>/<session_id>/<run_id>/
        INDEX.md, summary.json, summary.md, params.json
        round<N>/link/{metrics.json, nodes.json, candidates.json, pairs.tsv, traces.json}
        round<N>/anneal/{metrics.json, nodes.json, context_edges.tsv, singletons.json}
        round<N>/outline.{topk,spans,timeline}.md
        final/{nodes.json, unabsorbed.json, outline.topk.md}

The default run id is the short parameter hash, so re-running with the same
parameters overwrites the same directory.
"""

from __future__ import annotations

import csv
import io
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence

from causeway.errors import ArtifactWriteError
from causeway.hierarchy.types import HierarchyResult, Phase, RoundPhaseState
from causeway.render.outline import (
    OutlineMode,
    render_hierarchy_outline,
    render_spans_outline,
    render_timeline_outline,
)
from causeway.transcript.models import TranscriptLine

logger = logging.getLogger(__name__)


@dataclass
class ArtifactManifest:
    """Where a run was written and which files it produced."""

    run_dir: Path
    files: List[Path] = field(default_factory=list)


class _Writer:
    def __init__(self, run_dir: Path):
        self.run_dir = run_dir
        self.files: List[Path] = []

    def text(self, relative: str, content: str) -> None:
        path = self.run_dir / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        self.files.append(path)

    def json(self, relative: str, payload: Any) -> None:
        self.text(relative, json.dumps(payload, indent=2) + "\n")

    def tsv(self, relative: str, header: Sequence[str], rows: Iterable[Sequence[Any]]) -> None:
        buffer = io.StringIO()
        table = csv.writer(buffer, delimiter="\t", lineterminator="\n")
        table.writerow(header)
        table.writerows([_cell(value) for value in row] for row in rows)
        self.text(relative, buffer.getvalue())


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        return f"{value:.4f}"
    if hasattr(value, "value"):
        return str(value.value)
    return str(value)


def _dump(models: Iterable[Any]) -> List[Any]:
    return [m.model_dump(mode="json") for m in models]


def _write_link_phase(writer: _Writer, state: RoundPhaseState) -> None:
    base = f"round{state.round}/link"
    writer.json(f"{base}/metrics.json", state.metrics.model_dump(mode="json"))
    writer.json(f"{base}/nodes.json", _dump(state.nodes))
    if state.round == 1:
        writer.json(f"{base}/candidates.json", _dump(state.effect_candidates))
        writer.tsv(
            f"{base}/pairs.tsv",
            ["link_id", "cause_index", "effect_index", "cause_strength", "strength_bridge", "mass"],
            (
                (n.id, n.cause_anchor_index, n.effect_anchor_index, n.cause_strength, n.strength_bridge, n.mass)
                for n in state.nodes
                if n.claimed
            ),
        )
        if state.traces:
            writer.json(f"{base}/traces.json", _dump(state.traces))
    else:
        writer.json(f"{base}/candidates.json", _dump(state.pair_candidates))
        writer.tsv(
            f"{base}/pairs.tsv",
            ["link_id", "level", "left_id", "right_id", "join_distance", "join_lexical", "strength_bridge", "mass"],
            (
                (n.id, n.level, n.members[0], n.members[1], n.join_distance, n.join_lexical, n.strength_bridge, n.mass)
                for n in state.nodes
                if n.is_composite and n.id.startswith(f"r{state.round}:")
            ),
        )


def _write_anneal_phase(writer: _Writer, state: RoundPhaseState) -> None:
    base = f"round{state.round}/anneal"
    writer.json(f"{base}/metrics.json", state.metrics.model_dump(mode="json"))
    writer.json(f"{base}/nodes.json", _dump(state.nodes))
    writer.json(f"{base}/singletons.json", _dump(state.singletons))
    writer.tsv(
        f"{base}/context_edges.tsv",
        ["singleton_id", "link_id", "kind", "anchor", "link_center", "distance", "lexical", "strength_ctx"],
        (
            (
                e.singleton_id,
                e.link_id,
                e.singleton_kind,
                e.singleton_anchor_index,
                e.link_center_index,
                e.distance,
                e.lexical,
                e.strength_ctx,
            )
            for e in state.context_edges
        ),
    )


def render_summary_markdown(result: HierarchyResult) -> str:
    """Per-phase counts as a markdown document."""
    lines = [
        f"# Hierarchy Summary: {result.session_id}",
        "",
        f"- kernel: {result.provenance.kernel_version}",
        f"- params: {result.provenance.short_hash}",
        f"- rounds completed: {result.rounds_completed}",
        f"- converged: {'yes' if result.converged else 'no'}",
        f"- final nodes: {len(result.final_nodes)}",
        f"- unabsorbed singletons: {len(result.unabsorbed)}",
        "",
    ]
    for state in result.rounds:
        metrics = state.metrics
        lines.append(f"## {metrics.label}")
        lines.append("")
        for key, value in metrics.counts.items():
            lines.append(f"- {key}: {value}")
        for key, stats in metrics.stats.items():
            lines.append(
                f"- {key}: min={stats.min:.2f} p50={stats.p50:.2f} "
                f"p90={stats.p90:.2f} max={stats.max:.2f}"
            )
        lines.append("")
    return "\n".join(lines)


def write_hierarchy_artifacts(
    result: HierarchyResult,
    transcript: Sequence[TranscriptLine],
    out_dir: Path,
    *,
    run_id: Optional[str] = None,
    outline_top_k: int = 50,
) -> ArtifactManifest:
    """Write every phase of a run to disk.

    Args:
        result: Completed run
        transcript: Transcript the run was built from
        out_dir: Root artifacts directory
        run_id: Directory name under the session, defaults to the short param hash
        outline_top_k: Roots shown in top-K outlines

    Returns:
        ArtifactManifest listing every written file

    Raises:
        ArtifactWriteError: If the directory or a file cannot be written
    """
    run_dir = Path(out_dir) / result.session_id / (run_id or result.provenance.short_hash)
    writer = _Writer(run_dir)
    node_index = result.node_index()

    try:
        writer.json(
            "params.json",
            {
                "kernel_version": result.provenance.kernel_version,
                "param_hash": result.provenance.param_hash,
                "params": json.loads(result.provenance.params_json),
            },
        )
        writer.json(
            "summary.json",
            {
                "session_id": result.session_id,
                "provenance": result.provenance.model_dump(mode="json"),
                "converged": result.converged,
                "rounds_completed": result.rounds_completed,
                "final_nodes": len(result.final_nodes),
                "unabsorbed": len(result.unabsorbed),
                "phases": [state.metrics.model_dump(mode="json") for state in result.rounds],
            },
        )
        writer.text("summary.md", render_summary_markdown(result))

        for state in result.rounds:
            if state.phase == Phase.LINK:
                _write_link_phase(writer, state)
                continue
            _write_anneal_phase(writer, state)
            base = f"round{state.round}"
            writer.text(
                f"{base}/outline.topk.md",
                render_hierarchy_outline(
                    state.nodes, transcript, top_k=outline_top_k, node_index=node_index
                ),
            )
            writer.text(
                f"{base}/outline.spans.md",
                render_spans_outline(state.nodes, transcript, node_index=node_index),
            )
            writer.text(
                f"{base}/outline.timeline.md",
                render_timeline_outline(state.nodes, transcript, node_index=node_index),
            )

        writer.json("final/nodes.json", _dump(result.final_nodes))
        writer.json("final/unabsorbed.json", _dump(result.unabsorbed))
        writer.text(
            "final/outline.topk.md",
            render_hierarchy_outline(
                result.final_nodes,
                transcript,
                top_k=outline_top_k,
                mode=OutlineMode.ALL_NODES,
                node_index=node_index,
            ),
        )

        index_lines = [f"# Run {run_dir.name} ({result.session_id})", ""]
        index_lines.extend(
            f"- [{p.relative_to(run_dir).as_posix()}]({p.relative_to(run_dir).as_posix()})"
            for p in writer.files
        )
        writer.text("INDEX.md", "\n".join(index_lines) + "\n")
    except OSError as exc:
        raise ArtifactWriteError(
            f"Failed to write artifacts under {run_dir}: {exc}",
            details={"run_dir": str(run_dir)},
        ) from exc

    logger.info(f"Wrote {len(writer.files)} artifact files to {run_dir}")
    return ArtifactManifest(run_dir=run_dir, files=list(writer.files))
