from .resolver import (
    ImportRef,
    SourceModule,
    Resolved,
    Unresolved,
    ModuleSet,
    ResolverConfig,
    scan_project,
    scan_source,
)

from .paths import PathPolicy, ScopeClassifier, module_label

from .graph import (
    GraphConfig,
    Edge,
    Graph,
    TraversalContext,
    build_graph,
    normalize_graph,
)

from .renderer import RendererConfig, render_mermaid, render_dot, render_document

from .orchestrator import (
    DirectorySink,
    StdoutSink,
    RunReport,
    generate_project_graph,
    generate_entry_graphs,
)

from .errors import ModgraphError, UnresolvedImportError, OutputError

__all__ = [
    "ImportRef",
    "SourceModule",
    "Resolved",
    "Unresolved",
    "ModuleSet",
    "ResolverConfig",
    "scan_project",
    "scan_source",
    "PathPolicy",
    "ScopeClassifier",
    "module_label",
    "GraphConfig",
    "Edge",
    "Graph",
    "TraversalContext",
    "build_graph",
    "normalize_graph",
    "RendererConfig",
    "render_mermaid",
    "render_dot",
    "render_document",
    "DirectorySink",
    "StdoutSink",
    "RunReport",
    "generate_project_graph",
    "generate_entry_graphs",
    "ModgraphError",
    "UnresolvedImportError",
    "OutputError",
]

__version__ = "0.1.0"
