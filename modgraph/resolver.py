from __future__ import annotations

import functools
import json
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Literal, Optional, Sequence, Tuple, Union

from tree_sitter import Node, Parser
from tree_sitter_language_pack import get_language
from wcmatch import glob as wcglob

__all__ = [
    "ReferenceKind",
    "ImportRef",
    "SourceModule",
    "Resolved",
    "Unresolved",
    "Resolution",
    "ModuleSet",
    "ResolverConfig",
    "scan_project",
    "scan_source",
    "match_globs",
]

logger = logging.getLogger(__name__)

ReferenceKind = Literal["import", "reexport", "dynamic"]


@dataclass(frozen=True)
class ImportRef:
    """
    A raw module reference found in a source file.

    - `specifier`: the string literal as written (`./Button`, `react`, ...).
    - `kind`     : "import" (static), "reexport" (`export ... from`) or
                   "dynamic" (`import("...")`).
    - `type_only`: True for `import type` / `export type ... from`.
    """

    specifier: str
    kind: ReferenceKind = "import"
    type_only: bool = False
    lineno: int = 1


@dataclass
class SourceModule:
    """One scanned source file and the references it makes."""

    path: Path  # absolute
    imports: List[ImportRef] = field(default_factory=list)
    reexports: List[ImportRef] = field(default_factory=list)
    dynamic_imports: List[ImportRef] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.path = _normpath(Path(self.path))

    def references(self, include_type_only: bool = False) -> Iterator[ImportRef]:
        """
        Yield every reference regardless of the syntax that produced it.

        The graph builder only sees this stream, so static imports, re-exports
        and dynamic imports all go through the same resolution pipeline.
        """
        for group in (self.imports, self.reexports, self.dynamic_imports):
            for ref in group:
                if ref.type_only and not include_type_only:
                    continue
                yield ref


@dataclass(frozen=True)
class Resolved:
    path: Path


@dataclass(frozen=True)
class Unresolved:
    specifier: str


Resolution = Union[Resolved, Unresolved]


@dataclass
class ResolverConfig:
    """
    Configuration for scanning and resolving a project.

    include_globs:
        Project-relative globs selecting the modules to scan. A leading `!`
        negates a pattern; `{a,b}` alternatives and `**` are supported.
    include_declaration_only:
        If False, `*.d.ts` declaration files are left out of the module set.
    tsconfig:
        File (relative to the root) holding `baseUrl` / `paths` aliases. Missing
        files are ignored.
    """

    include_globs: Sequence[str] = ("**/*.{ts,tsx,js,jsx}",)
    include_declaration_only: bool = False
    follow_symlinks: bool = False
    tsconfig: Optional[str] = "tsconfig.json"
    extensions: Sequence[str] = (".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs")
    exclude_dirs: Sequence[str] = (
        ".git",
        ".hg",
        ".svn",
        "node_modules",
        ".next",
        ".turbo",
        "coverage",
    )


class ModuleSet:
    """
    The working set of modules plus the resolver operating on it.

    Modules are keyed by absolute path. Resolution only ever returns paths that
    are either in the set or live under a `node_modules` tree.
    """

    def __init__(
        self,
        root: Path,
        modules: Iterable[SourceModule],
        config: Optional[ResolverConfig] = None,
        aliases: Optional[Dict[str, List[str]]] = None,
        base_url: Optional[str] = None,
    ) -> None:
        self.root = Path(os.path.normpath(os.path.abspath(root)))
        self.config = config or ResolverConfig()
        self.modules: Dict[Path, SourceModule] = {}
        for module in modules:
            self.modules[_normpath(module.path)] = module
        self.aliases: Dict[str, List[str]] = dict(aliases or {})
        self.base_url = base_url

    def __len__(self) -> int:
        return len(self.modules)

    def __iter__(self) -> Iterator[SourceModule]:
        for path in sorted(self.modules, key=self.relative):
            yield self.modules[path]

    def get(self, path: Path) -> Optional[SourceModule]:
        return self.modules.get(_normpath(path))

    def relative(self, path: Path) -> str:
        rel = os.path.relpath(path, self.root).replace("\\", "/")
        return "." if rel in ("", ".") else rel

    def select(self, globs: Sequence[str]) -> List[SourceModule]:
        """Return the modules matching `globs`, ordered by relative path."""
        return [m for m in self if match_globs(self.relative(m.path), globs)]

    # --- resolution ------------------------------------------------------

    def resolve(self, module: SourceModule, specifier: str) -> Resolution:
        """
        Map `specifier`, as written inside `module`, to a concrete module.

        Strategy:
        1. Relative (`./x`, `../x`) and absolute specifiers are looked up in
           the module set, probing extensions and `index` files.
        2. Otherwise, `tsconfig` path aliases and `baseUrl` are tried.
        3. Bare specifiers that exist under `node_modules/` resolve to the
           vendored path.
        """
        if specifier.startswith((".", "/")):
            if specifier.startswith("/"):
                target = Path(specifier)
            else:
                target = module.path.parent / specifier
            found = self._lookup(target)
            if found is not None:
                return Resolved(found)
            return Unresolved(specifier)

        for candidate in self._alias_candidates(specifier):
            found = self._lookup(candidate)
            if found is not None:
                return Resolved(found)

        vendored = self.root / "node_modules" / specifier
        if vendored.exists():
            return Resolved(_normpath(vendored))
        return Unresolved(specifier)

    def _lookup(self, target: Path) -> Optional[Path]:
        target = _normpath(target)
        if target in self.modules:
            return target

        exts = tuple(self.config.extensions)
        # ESM-style TypeScript imports name the emitted `.js` file.
        if target.suffix in (".js", ".jsx", ".mjs", ".cjs"):
            stem = target.with_suffix("")
            for ext in (".ts", ".tsx", ".d.ts"):
                candidate = stem.parent / f"{stem.name}{ext}"
                if candidate in self.modules:
                    return candidate

        for ext in exts + (".d.ts",):
            candidate = target.parent / f"{target.name}{ext}"
            if candidate in self.modules:
                return candidate
        for ext in exts + (".d.ts",):
            candidate = target / f"index{ext}"
            if candidate in self.modules:
                return candidate
        return None

    def _alias_candidates(self, specifier: str) -> List[Path]:
        base = self.root / (self.base_url or ".")
        candidates: List[Path] = []
        for pattern, targets in self.aliases.items():
            if "*" in pattern:
                prefix, suffix = pattern.split("*", 1)
                if not (specifier.startswith(prefix) and specifier.endswith(suffix)):
                    continue
                if len(specifier) < len(prefix) + len(suffix):
                    continue
                token = specifier[len(prefix) : len(specifier) - len(suffix)]
                candidates.extend(base / t.replace("*", token) for t in targets)
            elif specifier == pattern:
                candidates.extend(base / t for t in targets)
        if self.base_url is not None:
            candidates.append(base / specifier)
        return candidates


def scan_project(root: Path, config: Optional[ResolverConfig] = None) -> ModuleSet:
    """
    Scan a project directory into a `ModuleSet`.

    1. Walk the tree from ``root`` (skipping `exclude_dirs`) and keep files
       matching `include_globs`.
    2. Read each file and record its static imports, re-exports and dynamic
       imports.
    3. Load path aliases from `tsconfig` when present.
    """
    root = Path(root).resolve()
    if config is None:
        config = ResolverConfig()

    if not root.is_dir():
        raise ValueError(f"Project root does not exist or is not a directory: {root}")

    modules: List[SourceModule] = []
    for path in _iter_source_files(root, config):
        source = path.read_text(encoding="utf-8")
        modules.append(scan_source(path, source))

    aliases, base_url = _load_tsconfig(root, config)
    logger.debug("scanned %d modules under %s", len(modules), root)
    return ModuleSet(root, modules, config=config, aliases=aliases, base_url=base_url)


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------

def _normpath(path: Path) -> Path:
    return Path(os.path.normpath(os.path.abspath(path)))


def _iter_source_files(root: Path, config: ResolverConfig) -> Iterable[Path]:
    for dirpath, dirnames, filenames in os.walk(root, followlinks=config.follow_symlinks):
        # mutate dirnames in-place to respect exclude list
        dirnames[:] = sorted(d for d in dirnames if d not in config.exclude_dirs)
        for name in sorted(filenames):
            path = Path(dirpath) / name
            if not config.follow_symlinks and path.is_symlink():
                continue
            if name.endswith(".d.ts") and not config.include_declaration_only:
                continue
            rel = path.relative_to(root).as_posix()
            if match_globs(rel, config.include_globs):
                yield path


def _load_tsconfig(root: Path, config: ResolverConfig) -> Tuple[Dict[str, List[str]], Optional[str]]:
    if not config.tsconfig:
        return {}, None
    path = root / config.tsconfig
    if not path.is_file():
        return {}, None

    text = _strip_json_comments(path.read_text(encoding="utf-8"))
    text = re.sub(r",(\s*[}\]])", r"\1", text)
    try:
        data = json.loads(text)
    except ValueError as exc:
        logger.warning("ignoring path aliases from %s: %s", path, exc)
        return {}, None

    options = data.get("compilerOptions") or {}
    base_url = options.get("baseUrl")
    paths = options.get("paths") or {}
    aliases = {
        str(pattern): [str(t) for t in targets]
        for pattern, targets in paths.items()
        if isinstance(targets, list)
    }
    if aliases and base_url is None:
        base_url = "."
    return aliases, base_url


# ---------------------------------------------------------------------------
# tsconfig comments
# ---------------------------------------------------------------------------

_JSON_TOKEN_RE = re.compile(
    r"""(?P<string>"(?:\\.|[^"\\\n])*")|(?P<comment>//[^\n]*|/\*.*?\*/)""",
    re.DOTALL,
)


def _strip_json_comments(text: str) -> str:
    """Blank out `//` and `/* */` comments in JSONC, leaving strings alone."""

    def repl(match: "re.Match[str]") -> str:
        if match.group("comment") is None:
            return match.group(0)
        return re.sub(r"[^\n]", " ", match.group("comment"))

    return _JSON_TOKEN_RE.sub(repl, text)


# ---------------------------------------------------------------------------
# Source scanning
# ---------------------------------------------------------------------------

_GRAMMARS = {
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
}


@functools.lru_cache(maxsize=None)
def _parser(grammar: str) -> Parser:
    return Parser(get_language(grammar))


def scan_source(path: Path, source: str) -> SourceModule:
    """
    Extract import references from ES module source text.

    The text is parsed with tree-sitter and only real declarations are read:
    `import ... from`, `export ... from` and `import(...)` calls. Import-like
    text inside strings, templates, regex literals or comments is ignored.
    Only literal specifiers are recorded; `import(someVariable)` and templates
    with `${...}` are too dynamic to follow.
    """
    module = SourceModule(path=path)
    source_bytes = source.encode("utf-8")
    grammar = _GRAMMARS.get(Path(path).suffix.lower(), "tsx")
    tree = _parser(grammar).parse(source_bytes)

    stack: List[Node] = [tree.root_node]
    while stack:
        node = stack.pop()
        if node.type == "import_statement":
            ref = _declaration_ref(node, "import", source_bytes)
            if ref is not None:
                module.imports.append(ref)
        elif node.type == "export_statement":
            ref = _declaration_ref(node, "reexport", source_bytes)
            if ref is not None:
                module.reexports.append(ref)
        elif node.type == "call_expression":
            ref = _dynamic_import_ref(node, source_bytes)
            if ref is not None:
                module.dynamic_imports.append(ref)
        # reversed so the walk stays in document order
        stack.extend(reversed(node.children))
    return module


def _node_text(node: Node, source_bytes: bytes) -> str:
    return source_bytes[node.start_byte : node.end_byte].decode("utf-8")


def _declaration_ref(node: Node, kind: ReferenceKind, source_bytes: bytes) -> Optional[ImportRef]:
    source = node.child_by_field_name("source")
    if source is None or source.type != "string":
        return None
    # `import type ...` / `export type ... from` carry a bare `type` keyword child
    type_only = any(child.type == "type" for child in node.children)
    specifier = _node_text(source, source_bytes)[1:-1]
    return ImportRef(specifier, kind, type_only, node.start_point[0] + 1)


def _dynamic_import_ref(node: Node, source_bytes: bytes) -> Optional[ImportRef]:
    function = node.child_by_field_name("function")
    if function is None or function.type != "import":
        return None
    arguments = node.child_by_field_name("arguments")
    if arguments is None or not arguments.named_children:
        return None
    target = arguments.named_children[0]
    if target.type == "template_string":
        if any(child.type == "template_substitution" for child in target.named_children):
            return None
    elif target.type != "string":
        return None
    specifier = _node_text(target, source_bytes)[1:-1]
    return ImportRef(specifier, "dynamic", False, node.start_point[0] + 1)


# ---------------------------------------------------------------------------
# Glob matching
# ---------------------------------------------------------------------------

_GLOB_FLAGS = wcglob.GLOBSTAR | wcglob.BRACE | wcglob.NEGATE


def match_globs(path: str, globs: Sequence[str]) -> bool:
    """
    Return True if `path` matches at least one positive glob and no `!` glob.

    `*` stops at `/`, `**` spans directories and `{a,b}` expands.

    >>> match_globs("src/a.ts", ["**/*.{ts,tsx}", "!**/*.d.ts"])
    True
    >>> match_globs("src/a.d.ts", ["**/*.{ts,tsx}", "!**/*.d.ts"])
    False
    """
    patterns = [g for g in globs if g]
    if not patterns:
        return False
    return wcglob.globmatch(path, patterns, flags=_GLOB_FLAGS)
