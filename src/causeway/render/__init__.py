"""Outline rendering and artifact export."""

from causeway.render.artifacts import (
    ArtifactManifest,
    render_summary_markdown,
    write_hierarchy_artifacts,
)
from causeway.render.outline import (
    OutlineMode,
    render_hierarchy_outline,
    render_node,
    render_spans_outline,
    render_timeline_outline,
    select_top_nodes,
)

__all__ = [
    "ArtifactManifest",
    "OutlineMode",
    "render_hierarchy_outline",
    "render_node",
    "render_spans_outline",
    "render_summary_markdown",
    "render_timeline_outline",
    "select_top_nodes",
    "write_hierarchy_artifacts",
]
