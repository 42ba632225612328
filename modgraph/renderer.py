from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Literal, Sequence, Tuple, Union

from .graph import Graph

__all__ = [
    "OutputFormat",
    "RendererConfig",
    "node_ids",
    "render_mermaid",
    "fence_mermaid",
    "render_dot",
    "render_svg",
    "render_document",
    "render_manifest",
    "file_extension",
]

OutputFormat = Literal["mermaid", "dot", "svg"]


@dataclass
class RendererConfig:
    """
    Controls how a `Graph` is turned into text.

    format:
        "mermaid" -> Mermaid flowchart text
        "dot"     -> Graphviz DOT
        "svg"     -> DOT rendered to SVG through Graphviz
    fence:
        Wrap Mermaid output in a ```mermaid block (for Markdown files).
    direction:
        Flow direction: "TD" (top-down) or "LR" (left-right).
    """

    format: OutputFormat = "mermaid"
    fence: bool = True
    direction: str = "TD"


def node_ids(graph: Graph) -> Dict[str, str]:
    """
    Assign `n1..nN` to nodes by their position in the sorted node list.

    Ids are stable across runs only because the node list is sorted.
    """
    return {label: f"n{i}" for i, label in enumerate(graph.nodes, start=1)}


def render_mermaid(graph: Graph, direction: str = "TD") -> str:
    """
    Render a graph as Mermaid text.

    >>> from modgraph.graph import Edge, Graph
    >>> print(render_mermaid(Graph(nodes=["a", "b"], edges=[Edge("a", "b")])))
    graph TD
    n1["a"]
    n2["b"]
    n1 --> n2
    """
    ids = node_ids(graph)
    lines: List[str] = [f"graph {direction}"]
    for label in graph.nodes:
        lines.append(f'{ids[label]}["{_escape_mermaid(label)}"]')
    for edge in graph.edges:
        lines.append(f"{ids[edge.src]} --> {ids[edge.dst]}")
    return "\n".join(lines)


def fence_mermaid(text: str) -> str:
    return "\n".join(["```mermaid", text, "```"])


def render_dot(graph: Graph, direction: str = "TD") -> str:
    """Render a graph as Graphviz DOT using the same node ids as Mermaid."""
    ids = node_ids(graph)
    rankdir = "LR" if direction.upper() == "LR" else "TB"

    lines: List[str] = []
    lines.append("digraph Dependencies {")
    lines.append(f"  rankdir={rankdir};")
    lines.append(
        '  node [shape=box, style=filled, fillcolor="#f6f6f6", '
        'fontname="Menlo,Consolas,monospace", margin="0.2,0.1"];'
    )
    for label in graph.nodes:
        lines.append(f'  {ids[label]} [label="{_escape_label(label)}"];')
    for edge in graph.edges:
        lines.append(f"  {ids[edge.src]} -> {ids[edge.dst]};")
    lines.append("}")
    return "\n".join(lines)


def render_svg(dot: str) -> bytes:  # pragma: no cover
    """
    Render a DOT string to SVG using the `graphviz` package.

    This requires the Graphviz `dot` binary to be installed on the system.
    """
    from graphviz import Source

    return Source(dot).pipe(format="svg")


def render_document(graph: Graph, config: RendererConfig) -> Union[str, bytes]:
    """Render `graph` in the configured output format."""
    if config.format == "mermaid":
        text = render_mermaid(graph, config.direction)
        return fence_mermaid(text) if config.fence else text
    if config.format == "dot":
        return render_dot(graph, config.direction)
    if config.format == "svg":
        return render_svg(render_dot(graph, config.direction))
    raise ValueError(f"Unsupported output format: {config.format}")


def file_extension(config: RendererConfig) -> str:
    if config.format == "mermaid":
        return ".md" if config.fence else ".mmd"
    return f".{config.format}"


def render_manifest(entries: Sequence[Tuple[str, str]], title: str = "Entry Dependency Graphs") -> str:
    """
    Markdown index with one link per processed entry, in the given order.

    `entries` holds `(name, relative_link)` pairs.
    """
    lines = [f"# {title}", ""]
    for name, link in entries:
        lines.append(f"- [{name}]({link or '.'})")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _escape_mermaid(text: str) -> str:
    """Mermaid has no backslash escapes inside quoted labels; use its entity code."""
    return text.replace('"', "#quot;")


def _escape_label(text: str) -> str:
    """
    Escape a label string for use in DOT.

    - backslashes and quotes are escaped
    - newlines become `\\l` (Graphviz left-justified line break)
    """
    text = text.replace("\\", "\\\\").replace('"', '\\"')
    text = text.replace("\n", "\\l")
    return text
