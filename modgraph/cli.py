# modgraph/cli.py
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, List

from .errors import OutputError, UnresolvedImportError
from .graph import GraphConfig
from .orchestrator import (
    DirectorySink,
    StdoutSink,
    generate_entry_graphs,
    generate_project_graph,
)
from .renderer import RendererConfig, file_extension
from .resolver import ResolverConfig, scan_project

DEFAULT_INCLUDE = ("**/*.{ts,tsx,js,jsx}",)
DEFAULT_ENTRY_DIR = "graphs/screens"

_FORMAT_NAMES = {"mermaid": "Mermaid", "dot": "DOT", "svg": "SVG"}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="modgraph",
        description=(
            "Scan a TypeScript/JavaScript project and render its internal module "
            "dependencies as a Mermaid (or DOT/SVG) graph."
        ),
    )
    parser.add_argument(
        "root",
        type=str,
        help="Path to the project root directory to scan.",
    )

    # Module selection
    parser.add_argument(
        "--include",
        action="append",
        metavar="GLOB",
        help=(
            "Glob of modules to scan, relative to the root; prefix with '!' to "
            "exclude. Repeatable. Default: '**/*.{ts,tsx,js,jsx}'."
        ),
    )
    parser.add_argument(
        "--entry",
        action="append",
        metavar="GLOB",
        help="Glob of entry modules (screens/pages). Repeatable. Enables one graph per entry.",
    )
    parser.add_argument(
        "--include-dts",
        action="store_true",
        help="Scan type declaration files (*.d.ts) as well.",
    )

    # Graph options
    parser.add_argument(
        "--scope",
        action="append",
        metavar="PREFIX",
        help=(
            "Path prefix (e.g. src/components/) whose modules may appear as edge "
            "targets. Repeatable. Default: everything under --source-root."
        ),
    )
    parser.add_argument(
        "--source-root",
        default="src",
        help="Source directory stripped from labels (default: src).",
    )
    parser.add_argument(
        "--include-external",
        action="store_true",
        help="Show unresolved and node_modules imports as leaf nodes named by their specifier.",
    )
    parser.add_argument(
        "--include-type-imports",
        action="store_true",
        help="Follow 'import type' and 'export type ... from' declarations.",
    )
    parser.add_argument(
        "--transitive",
        dest="transitive",
        action="store_true",
        default=None,
        help="Follow dependencies recursively (default in entry mode).",
    )
    parser.add_argument(
        "--no-transitive",
        dest="transitive",
        action="store_false",
        help="Only record direct dependencies (default in whole-project mode).",
    )
    parser.add_argument(
        "--label",
        choices=("module", "path"),
        default="module",
        help="Node labels: 'module' (dir/name, index collapsed) or 'path' (relative file path).",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail on relative imports that cannot be resolved instead of skipping them.",
    )

    # Rendering / output
    parser.add_argument(
        "--format",
        choices=("mermaid", "dot", "svg"),
        default="mermaid",
        help="Output format (default: mermaid).",
    )
    parser.add_argument(
        "--no-fence",
        action="store_true",
        help="Emit bare Mermaid text instead of a ```mermaid Markdown block.",
    )
    parser.add_argument(
        "--output-target",
        choices=("single-file", "per-entry-directory"),
        help=(
            "Where entry graphs go: one combined file or one file per entry plus "
            "an index (default). Ignored in whole-project mode."
        ),
    )
    parser.add_argument(
        "-o",
        "--output",
        type=str,
        help=(
            "Output file (whole-project or single-file mode; '-' for stdout) or "
            "directory (per-entry mode). Defaults to deps.md / graphs/screens."
        ),
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log debug details such as unresolved imports.",
    )

    return parser


def main(argv: Any | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    entry_globs: List[str] = list(args.entry or [])
    output_target = args.output_target or "per-entry-directory"
    if entry_globs and output_target == "single-file" and args.format != "mermaid":
        parser.error("--output-target single-file only supports --format mermaid")
    if args.format == "svg" and args.output == "-":
        parser.error("SVG output cannot be written to stdout")
    if entry_globs and output_target == "per-entry-directory" and args.output == "-":
        parser.error("per-entry output needs a directory, not stdout")

    resolver_cfg = ResolverConfig(
        # Entry modules are scanned even when the include globs miss them.
        include_globs=tuple(args.include or DEFAULT_INCLUDE)
        + tuple(g for g in entry_globs if not g.startswith("!")),
        include_declaration_only=args.include_dts,
    )
    graph_cfg = GraphConfig(
        include_external=args.include_external,
        transitive=args.transitive,
        source_root=args.source_root,
        scope_prefixes=tuple(args.scope or ()),
        label_mode=args.label,
        include_type_imports=args.include_type_imports,
        strict=args.strict,
    )
    renderer_cfg = RendererConfig(format=args.format, fence=not args.no_fence)

    module_set = scan_project(Path(args.root), config=resolver_cfg)

    try:
        if entry_globs:
            return _run_entries(args, module_set, entry_globs, output_target, graph_cfg, renderer_cfg)
        return _run_project(args, module_set, graph_cfg, renderer_cfg)
    except UnresolvedImportError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    except OutputError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


def _run_project(args, module_set, graph_cfg, renderer_cfg) -> int:
    if args.output == "-":
        generate_project_graph(module_set, StdoutSink(), graph_cfg, renderer_cfg)
        return 0

    output = Path(args.output) if args.output else Path(f"deps{file_extension(renderer_cfg)}")
    sink = DirectorySink(output.parent)
    report = generate_project_graph(module_set, sink, graph_cfg, renderer_cfg, output_name=output.name)
    print(f"Wrote {_FORMAT_NAMES[renderer_cfg.format]} to {report.outputs[0]}")
    return 0


def _run_entries(args, module_set, entry_globs, output_target, graph_cfg, renderer_cfg) -> int:
    if output_target == "single-file":
        if args.output == "-":
            sink = StdoutSink()
            output_name = "entries.md"
        else:
            output = Path(args.output) if args.output else Path("entries.md")
            sink = DirectorySink(output.parent)
            output_name = output.name
    else:
        sink = DirectorySink(Path(args.output or DEFAULT_ENTRY_DIR))
        output_name = "entries.md"

    report = generate_entry_graphs(
        module_set,
        entry_globs,
        sink,
        graph_cfg,
        renderer_cfg,
        output_target=output_target,
        output_name=output_name,
    )
    if not report.entries:
        # Already reported as a warning; nothing was written.
        return 0
    if isinstance(sink, StdoutSink):
        return 0

    where = report.outputs[0] if output_target == "single-file" else sink.base
    print(f"Wrote {len(report.entries)} entry graphs to {where}")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
