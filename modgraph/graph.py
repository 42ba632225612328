from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Set

from .errors import UnresolvedImportError
from .paths import LabelMode, PathPolicy, ScopeClassifier
from .resolver import ImportRef, ModuleSet, Resolved, SourceModule

__all__ = [
    "GraphConfig",
    "Edge",
    "Graph",
    "TraversalContext",
    "build_graph",
    "normalize_graph",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, order=True)
class Edge:
    """`src` imports (or re-exports) from `dst`. Compared and sorted by value."""

    src: str
    dst: str


@dataclass
class Graph:
    """
    A dependency graph ready for rendering.

    `nodes` is sorted by label and `edges` by `(src, dst)`; every edge endpoint
    is a node.
    """

    nodes: List[str]
    edges: List[Edge]


@dataclass
class GraphConfig:
    """
    Configuration controlling how a dependency graph is built.

    Parameters
    ----------
    include_external:
        Add unresolved or vendored targets as leaf nodes labeled by the raw
        specifier.
    transitive:
        Follow resolved in-scope targets. `None` lets the caller pick the
        mode default (see `orchestrator`).
    source_root:
        Prefix stripped from labels and used for blanket scoping.
    scope_prefixes:
        Project-relative prefixes counted as in scope. Empty means everything
        under `source_root`.
    label_mode:
        "module" -> `dir/stem` labels with `index` collapsing
        "path"   -> the project-relative path as-is
    include_type_imports:
        Follow `import type` / `export type ... from` declarations too.
    strict:
        Raise `UnresolvedImportError` when a relative specifier cannot be
        resolved instead of skipping it.
    """

    include_external: bool = False
    transitive: Optional[bool] = None
    source_root: str = "src"
    scope_prefixes: Sequence[str] = ()
    label_mode: LabelMode = "module"
    include_type_imports: bool = False
    strict: bool = False


@dataclass
class TraversalContext:
    """Accumulators for one graph. Never shared between graphs."""

    visited: Set[Path] = field(default_factory=set)
    nodes: Set[str] = field(default_factory=set)
    edges: Set[Edge] = field(default_factory=set)

    def add_edge(self, src: str, dst: str) -> None:
        self.nodes.add(dst)
        if src != dst:
            self.edges.add(Edge(src, dst))

    def to_graph(self) -> Graph:
        return normalize_graph(self.nodes, self.edges)


def normalize_graph(nodes: Iterable[str], edges: Iterable[Edge]) -> Graph:
    """Sort nodes and edges so the output does not depend on discovery order."""
    return Graph(nodes=sorted(set(nodes)), edges=sorted(set(edges)))


def build_graph(
    module_set: ModuleSet,
    entries: Iterable[SourceModule],
    config: Optional[GraphConfig] = None,
    transitive: Optional[bool] = None,
) -> Graph:
    """
    Build a `Graph` starting from `entries`.

    Each entry is expanded once: its references are resolved, classified and
    labeled. With `transitive`, resolved in-scope targets are expanded in turn.
    A module is never expanded twice, so import cycles terminate; it can still
    receive edges from any number of importers.

    `transitive` overrides `config.transitive`; if both are None the walk is
    non-transitive.

    This function does not read the filesystem beyond what the resolver
    needs and does not mutate `module_set`.
    """
    if config is None:
        config = GraphConfig()
    if transitive is None:
        transitive = bool(config.transitive)

    policy = PathPolicy(
        root=module_set.root,
        source_root=config.source_root,
        label_mode=config.label_mode,
    )
    classifier = ScopeClassifier(
        scope_prefixes=tuple(config.scope_prefixes),
        source_root=config.source_root,
    )

    ctx = TraversalContext()
    for entry in entries:
        _expand(module_set, entry, ctx, config, policy, classifier, transitive)
    return ctx.to_graph()


def _expand(
    module_set: ModuleSet,
    entry: SourceModule,
    ctx: TraversalContext,
    config: GraphConfig,
    policy: PathPolicy,
    classifier: ScopeClassifier,
    transitive: bool,
) -> None:
    stack: List[SourceModule] = [entry]
    while stack:
        module = stack.pop()
        if module.path in ctx.visited:
            continue
        if policy.classify_location(module.path) != "internal":
            logger.debug("not expanding %s: outside the project", module.path)
            continue
        ctx.visited.add(module.path)

        src = policy.label(module.path)
        ctx.nodes.add(src)

        for ref in module.references(include_type_only=config.include_type_imports):
            target = _follow(module_set, module, ref, ctx, src, config, policy, classifier)
            if transitive and target is not None and target.path not in ctx.visited:
                stack.append(target)


def _follow(
    module_set: ModuleSet,
    module: SourceModule,
    ref: ImportRef,
    ctx: TraversalContext,
    src: str,
    config: GraphConfig,
    policy: PathPolicy,
    classifier: ScopeClassifier,
) -> Optional[SourceModule]:
    """
    Resolve one reference and record it.

    Returns the target module when it may be walked further (internal and in
    scope), otherwise None.
    """
    resolution = module_set.resolve(module, ref.specifier)

    if not isinstance(resolution, Resolved):
        if config.strict and ref.specifier.startswith("."):
            raise UnresolvedImportError(policy.normalize(module.path), ref.specifier, ref.lineno)
        logger.debug(
            "%s:%d: unresolved %s %r",
            policy.normalize(module.path),
            ref.lineno,
            ref.kind,
            ref.specifier,
        )
        if config.include_external:
            ctx.add_edge(src, ref.specifier)
        return None

    location = policy.classify_location(resolution.path)
    if location == "external":
        if config.include_external:
            ctx.add_edge(src, ref.specifier)
        return None
    if location == "outsideRoot":
        return None

    rel = policy.normalize(resolution.path)
    if not classifier.in_scope(rel):
        return None

    ctx.add_edge(src, policy.label(resolution.path, rel))
    return module_set.get(resolution.path)
