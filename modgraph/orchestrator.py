from __future__ import annotations

import logging
import posixpath
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Literal, Optional, Sequence, TextIO, Tuple, Union

from .errors import OutputError
from .graph import Graph, GraphConfig, build_graph
from .paths import ScopeClassifier, to_posix
from .renderer import (
    RendererConfig,
    fence_mermaid,
    file_extension,
    render_document,
    render_manifest,
    render_mermaid,
)
from .resolver import ModuleSet

__all__ = [
    "OutputTarget",
    "DirectorySink",
    "StdoutSink",
    "EntryOutput",
    "RunReport",
    "entry_slug",
    "generate_project_graph",
    "generate_entry_graphs",
]

logger = logging.getLogger(__name__)

OutputTarget = Literal["single-file", "per-entry-directory"]

MANIFEST_NAME = "index.md"
MANIFEST_TITLE = "Entry Dependency Graphs"


class DirectorySink:
    """Writes rendered documents under a base directory."""

    def __init__(self, base: Path) -> None:
        self.base = Path(base)

    def write(self, name: str, content: Union[str, bytes]) -> str:
        path = self.base / name
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                path.write_bytes(content)
            else:
                path.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise OutputError(path, exc.strerror or str(exc)) from exc
        logger.debug("wrote %s", path)
        return str(path)


class StdoutSink:
    """Prints rendered documents instead of writing files."""

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self.stream = stream

    def write(self, name: str, content: Union[str, bytes]) -> str:
        stream = self.stream if self.stream is not None else sys.stdout
        if isinstance(content, bytes):
            content = content.decode("utf-8")
        print(content, file=stream)
        return "<stdout>"


@dataclass
class EntryOutput:
    entry: str  # project-relative path of the entry module
    name: str
    graph: Graph
    location: Optional[str] = None


@dataclass
class RunReport:
    """What a run produced. `outputs` lists every written location in order."""

    outputs: List[str] = field(default_factory=list)
    entries: List[EntryOutput] = field(default_factory=list)
    manifest: Optional[str] = None
    graph: Optional[Graph] = None


def generate_project_graph(
    module_set: ModuleSet,
    sink,
    graph_config: Optional[GraphConfig] = None,
    renderer_config: Optional[RendererConfig] = None,
    output_name: str = "deps.md",
) -> RunReport:
    """
    Whole-project mode: one graph where every in-scope module is a root.

    The walk is non-transitive unless `graph_config.transitive` says otherwise,
    which gives each file's direct dependencies.
    """
    if graph_config is None:
        graph_config = GraphConfig()
    if renderer_config is None:
        renderer_config = RendererConfig()

    classifier = ScopeClassifier(
        scope_prefixes=tuple(graph_config.scope_prefixes),
        source_root=graph_config.source_root,
    )
    roots = [m for m in module_set if classifier.in_scope(module_set.relative(m.path))]
    transitive = graph_config.transitive if graph_config.transitive is not None else False

    graph = build_graph(module_set, roots, graph_config, transitive=transitive)
    logger.info(
        "project graph: %d roots, %d nodes, %d edges",
        len(roots),
        len(graph.nodes),
        len(graph.edges),
    )
    location = sink.write(output_name, render_document(graph, renderer_config))
    return RunReport(outputs=[location], graph=graph)


def generate_entry_graphs(
    module_set: ModuleSet,
    entry_globs: Sequence[str],
    sink,
    graph_config: Optional[GraphConfig] = None,
    renderer_config: Optional[RendererConfig] = None,
    output_target: OutputTarget = "per-entry-directory",
    output_name: str = "entries.md",
) -> RunReport:
    """
    Entry-point mode: one independent graph per module matching `entry_globs`.

    In "per-entry-directory" mode each graph goes to `<slug><ext>` and an
    `index.md` manifest links them in discovery order. In "single-file" mode
    all graphs go to one Markdown document (Mermaid only).

    When no module matches, a warning is logged and nothing is written.
    """
    if graph_config is None:
        graph_config = GraphConfig()
    if renderer_config is None:
        renderer_config = RendererConfig()
    if output_target == "single-file" and renderer_config.format != "mermaid":
        raise ValueError("single-file output combines Markdown sections and needs the mermaid format")

    entries = module_set.select(entry_globs)
    if not entries:
        logger.warning(
            "no entry points matched %s; adjust the entry globs",
            ", ".join(entry_globs) or "(none)",
        )
        return RunReport()

    transitive = graph_config.transitive if graph_config.transitive is not None else True
    report = RunReport()
    taken: Dict[str, int] = {}
    for entry in entries:
        rel = module_set.relative(entry.path)
        name = _unique(entry_slug(rel, graph_config.source_root), taken)
        # Fresh traversal state per entry.
        graph = build_graph(module_set, [entry], graph_config, transitive=transitive)
        logger.info("%s: %d nodes, %d edges", rel, len(graph.nodes), len(graph.edges))
        report.entries.append(EntryOutput(entry=rel, name=name, graph=graph))

    if output_target == "single-file":
        location = sink.write(output_name, _combined_document(report.entries, renderer_config))
        for item in report.entries:
            item.location = location
        report.outputs.append(location)
        return report

    links: List[Tuple[str, str]] = []
    ext = file_extension(renderer_config)
    for item in report.entries:
        filename = f"{item.name}{ext}"
        item.location = sink.write(filename, render_document(item.graph, renderer_config))
        report.outputs.append(item.location)
        links.append((item.name, filename))

    report.manifest = sink.write(MANIFEST_NAME, render_manifest(links, MANIFEST_TITLE))
    report.outputs.append(report.manifest)
    return report


def entry_slug(rel: str, source_root: str = "src") -> str:
    """
    File-name-safe name for an entry module.

    >>> entry_slug("src/app/blog/[slug]/page.tsx")
    'app__blog__[slug]'
    >>> entry_slug("src/pages/about.tsx")
    'pages__about'
    >>> entry_slug("app/backlog/Board.tsx")
    'app__backlog__Board'
    """
    rel = to_posix(rel)
    prefix = source_root.strip("/")
    if prefix not in ("", ".") and rel.startswith(prefix + "/"):
        rel = rel[len(prefix) + 1 :]
        under_source = True
    else:
        under_source = prefix in ("", ".")

    if under_source and rel.startswith("app/"):
        # App Router: the route is the directory holding page.tsx
        name = posixpath.dirname(rel)
    else:
        name = re.sub(r"\.(d\.)?[cm]?[tj]sx?$", "", rel)

    name = re.sub(r"[^\w./\-\[\]]", "_", name or "index")
    return name.replace("/", "__")


def _unique(name: str, taken: Dict[str, int]) -> str:
    count = taken.get(name, 0) + 1
    taken[name] = count
    if count == 1:
        return name
    candidate = f"{name}-{count}"
    while candidate in taken:
        count += 1
        candidate = f"{name}-{count}"
    taken[name] = count
    taken[candidate] = 1
    return candidate


def _combined_document(entries: Sequence[EntryOutput], config: RendererConfig) -> str:
    parts = [f"# {MANIFEST_TITLE}"]
    for item in entries:
        parts.append(f"## {item.name}")
        parts.append(fence_mermaid(render_mermaid(item.graph, config.direction)))
    return "\n\n".join(parts)
