"""Markdown outlines of a hierarchy.

Three views for auditing a run:
- render_hierarchy_outline: top-K nodes by mass, expanded down to transcript lines
- render_spans_outline: every composite with its covered range
- render_timeline_outline: the transcript in order with spans opening inline

Member expansion walks an explicit stack with a per-path visited set and a
depth bound, so malformed member graphs (cycles, missing ids) still render.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence, Set

from causeway.hierarchy.types import Link
from causeway.transcript.models import TranscriptLine


class OutlineMode(str, Enum):
    COMPOSITES_ONLY = "composites_only"
    ALL_NODES = "all_nodes"


def format_center(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}".rstrip("0").rstrip(".")


def render_line(entry: Optional[TranscriptLine], line_index: Optional[int]) -> str:
    if entry is None or line_index is None:
        label = f"L{line_index}" if line_index is not None else "L?"
        return f"{label} [missing]"
    return f'L{entry.line_index} ({entry.author_name}): "{entry.content}"'


def _is_composite(node: Link) -> bool:
    return node.is_composite and len(node.members) == 2


def _kind_label(node: Link) -> str:
    if _is_composite(node):
        return "composite"
    return "link" if node.claimed and node.effect_anchor_index is not None else "singleton"


def _by_mass(node: Link):
    return (-node.mass, node.center_index, node.id)


def select_top_nodes(nodes: Sequence[Link], top_k: int, mode: OutlineMode) -> List[Link]:
    """Heaviest nodes; composites first unless ``mode`` is ALL_NODES."""
    if mode == OutlineMode.ALL_NODES:
        return sorted(nodes, key=_by_mass)[:top_k]
    composites = sorted((n for n in nodes if _is_composite(n)), key=_by_mass)
    if len(composites) >= top_k:
        return composites[:top_k]
    leaves = sorted(
        (n for n in nodes if n.level == 1 and n.span_start_index != n.span_end_index),
        key=_by_mass,
    )
    return (composites + leaves)[:top_k]


def render_node(
    root: Link,
    node_index: Mapping[str, Link],
    transcript_by_line: Mapping[int, TranscriptLine],
    max_depth: int = 3,
) -> List[str]:
    """Lines for one node and its members, depth-first, left member first."""
    lines: List[str] = []
    stack = [(root, "", 0, frozenset())]
    while stack:
        node, indent, depth, ancestors = stack.pop()
        if depth > max_depth or node.id in ancestors:
            continue
        path = ancestors | {node.id}

        absorbed = ""
        if not _is_composite(node) and node.mass_boost > 0:
            absorbed = f" absorbed_mass={node.mass_boost:.2f}"
        lines.append(
            f"{indent}- [L{node.level} {_kind_label(node)} m={node.mass:.2f} "
            f"s={node.strength_internal:.2f} span L{node.span_start_index}-L{node.span_end_index} "
            f"center=L{format_center(node.center_index)}{absorbed}]"
        )
        if _is_composite(node) and node.join_distance is not None:
            lines.append(
                f"{indent}  - join: dCenter={format_center(node.join_distance)} "
                f"lex={(node.join_lexical or 0.0):.2f} bridge={node.strength_bridge:.2f}"
            )

        if not _is_composite(node):
            for index in node.anchor_indices:
                lines.append(f"{indent}  - {render_line(transcript_by_line.get(index), index)}")
        for index in node.context_line_indices:
            lines.append(f"{indent}    - ctx {render_line(transcript_by_line.get(index), index)}")

        if _is_composite(node):
            children = [node_index.get(member) for member in node.members]
            for child in reversed(children):
                if child is not None:
                    stack.append((child, indent + "  ", depth + 1, path))
    return lines


def _index(nodes: Sequence[Link], node_index: Optional[Mapping[str, Link]]) -> Mapping[str, Link]:
    if node_index is not None:
        return node_index
    return {n.id: n for n in nodes}


def render_hierarchy_outline(
    nodes: Sequence[Link],
    transcript: Sequence[TranscriptLine],
    *,
    top_k: int = 10,
    mode: OutlineMode = OutlineMode.COMPOSITES_ONLY,
    node_index: Optional[Mapping[str, Link]] = None,
    max_depth: int = 3,
) -> str:
    """Top-K outline.

    Args:
        nodes: Nodes to choose from (usually one phase's node set)
        transcript: Transcript used to quote anchor and context lines
        top_k: Number of root nodes
        mode: Whether level-1 links may appear as roots
        node_index: Lookup for member ids, e.g. HierarchyResult.node_index()
        max_depth: Deepest member level expanded
    """
    index = _index(nodes, node_index)
    by_line = {line.line_index: line for line in transcript}
    top = select_top_nodes(nodes, top_k, mode)

    lines = [f"# Hierarchy Outline (Top {top_k}, mode={mode.value})", ""]
    for node in top:
        lines.extend(render_node(node, index, by_line, max_depth))
        lines.append("")
    if not top:
        lines.extend(["- No nodes available for this mode.", ""])
    return "\n".join(lines)


def render_spans_outline(
    nodes: Sequence[Link],
    transcript: Sequence[TranscriptLine],
    *,
    node_index: Optional[Mapping[str, Link]] = None,
) -> str:
    index = _index(nodes, node_index)
    by_line = {line.line_index: line for line in transcript}
    composites = sorted((n for n in nodes if _is_composite(n)), key=_by_mass)

    lines = ["# Composite Spans", ""]
    for node in composites:
        lines.append("---")
        lines.extend(render_node(node, index, by_line))
        lines.append(f"- covered_range: L{node.span_start_index}..L{node.span_end_index}")
        lines.append("")
    if not composites:
        lines.extend(["- No composite nodes in this round.", ""])
    return "\n".join(lines)


def _collect(nodes: Sequence[Link], index: Mapping[str, Link]) -> List[Link]:
    """Nodes plus all their descendants, each once."""
    seen: Set[str] = set()
    collected: List[Link] = []
    stack = list(reversed(nodes))
    while stack:
        node = stack.pop()
        if node.id in seen:
            continue
        seen.add(node.id)
        collected.append(node)
        for member in reversed(node.members):
            child = index.get(member)
            if child is not None:
                stack.append(child)
    return collected


def render_timeline_outline(
    nodes: Sequence[Link],
    transcript: Sequence[TranscriptLine],
    *,
    node_index: Optional[Mapping[str, Link]] = None,
) -> str:
    """Transcript in order with each claimed span opening where it starts.

    Spans nest under their lowest-level enclosing parent; transcript lines
    are indented by the number of distinct levels active at that line.
    """
    index = _index(nodes, node_index)
    relevant = _collect(nodes, index)

    parent_of: Dict[str, str] = {}
    for node in relevant:
        if not _is_composite(node):
            continue
        for member in node.members:
            child = index.get(member)
            if child is None or child.level >= node.level:
                continue
            current = index.get(parent_of.get(member, ""))
            if current is None or node.level < current.level:
                parent_of[member] = node.id

    spans = [
        n
        for n in relevant
        if _is_composite(n) or (n.level == 1 and n.effect_anchor_index is not None)
    ]
    spans.sort(
        key=lambda n: (
            n.span_start_index,
            n.id in parent_of,
            -n.level,
            -(n.span_end_index - n.span_start_index),
            n.center_index,
            n.id,
        )
    )
    opening: Dict[int, List[Link]] = {}
    for span in spans:
        opening.setdefault(span.span_start_index, []).append(span)

    def active_ancestors(span: Link, active_ids: Set[str]) -> int:
        count = 0
        visited: Set[str] = set()
        parent_id = parent_of.get(span.id)
        while parent_id and parent_id not in visited:
            visited.add(parent_id)
            if parent_id in active_ids:
                count += 1
            parent_id = parent_of.get(parent_id)
        return count

    lines = ["# Timeline Outline", ""]
    active: List[Link] = []
    for entry in transcript:
        active = [s for s in active if s.span_end_index >= entry.line_index]
        for span in opening.get(entry.line_index, []):
            active_ids = {s.id for s in active}
            higher_levels = {s.level for s in active if s.level > span.level}
            depth = max(active_ancestors(span, active_ids), len(higher_levels))
            lines.append(
                f"{'  ' * depth}- [L{span.level} m={span.mass:.2f} s={span.strength_internal:.2f} "
                f"span L{span.span_start_index}-L{span.span_end_index} "
                f"center=L{format_center(span.center_index)}]"
            )
            active.append(span)
        depth = len({s.level for s in active})
        lines.append(f"{'  ' * depth}- {render_line(entry, entry.line_index)}")
        active = [s for s in active if s.span_end_index > entry.line_index]

    lines.append("")
    return "\n".join(lines)
