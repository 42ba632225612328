from __future__ import annotations

import os
import posixpath
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Optional, Sequence

__all__ = [
    "Location",
    "LabelMode",
    "PathPolicy",
    "ScopeClassifier",
    "module_label",
    "to_posix",
]

Location = Literal["internal", "external", "outsideRoot"]
LabelMode = Literal["module", "path"]

VENDOR_SEGMENT = "node_modules"


def to_posix(path: str) -> str:
    return path.replace("\\", "/")


def _strip_source_root(rel: str, source_root: str) -> str:
    prefix = source_root.strip("/")
    if prefix in ("", "."):
        return rel
    if rel.startswith(prefix + "/"):
        return rel[len(prefix) + 1 :]
    return rel


def module_label(rel: str, source_root: str = "src") -> str:
    """
    Turn a project-relative path into a display label.

    The source-root prefix is dropped, then the label is `directory/stem`. An
    `index` module is represented by its directory, so `Button/index.tsx` and
    a sibling `Button.tsx` collapse onto the same label on purpose.

    >>> module_label("src/components/Button/index.tsx")
    'components/Button'
    >>> module_label("src/components/Card/Card.tsx")
    'components/Card/Card'
    >>> module_label("src/main.tsx")
    'main'
    """
    p = _strip_source_root(to_posix(rel), source_root)
    directory = posixpath.dirname(p)
    base = posixpath.basename(p)
    stem = base[: -len(_extension(base))] if _extension(base) else base
    if stem.lower() == "index":
        return directory or "."
    if not directory:
        return stem
    return f"{directory}/{stem}"


def _extension(name: str) -> str:
    # `.d.ts` counts as one extension so `types.d.ts` labels as `types`.
    if name.endswith(".d.ts"):
        return ".d.ts"
    return posixpath.splitext(name)[1]


@dataclass(frozen=True)
class ScopeClassifier:
    """
    Decides which project areas take part in the graph.

    With `scope_prefixes` set, a path is in scope when it lies under one of
    them, compared by whole path segments (`src/components` does not cover
    `src/componentsLegacy/`). Otherwise every path under `source_root` is
    (every path at all when the source root is empty or `.`).
    """

    scope_prefixes: Sequence[str] = ()
    source_root: str = "src"

    def in_scope(self, rel: str) -> bool:
        rel = to_posix(rel)
        if self.scope_prefixes:
            return any(_under(rel, prefix) for prefix in self.scope_prefixes)
        root = self.source_root.strip("/")
        if root in ("", "."):
            return True
        return rel.startswith(root + "/")


def _under(rel: str, prefix: str) -> bool:
    prefix = to_posix(prefix).rstrip("/")
    if prefix in ("", "."):
        return True
    return rel == prefix or rel.startswith(prefix + "/")


@dataclass(frozen=True)
class PathPolicy:
    """Normalizes absolute module paths against a fixed project root."""

    root: Path
    source_root: str = "src"
    label_mode: LabelMode = "module"

    def normalize(self, path: Path) -> str:
        """
        Project-relative, forward-slash form of `path` (`.` for the root).

        Paths on another drive cannot be made relative; they are returned
        absolute and classify as `outsideRoot`.
        """
        try:
            rel = os.path.relpath(os.path.abspath(path), os.path.abspath(self.root))
        except ValueError:
            return to_posix(os.path.abspath(path))
        rel = to_posix(rel)
        return "." if rel in ("", ".") else rel

    def classify_location(self, path: Path) -> Location:
        rel = self.normalize(path)
        if VENDOR_SEGMENT in rel.split("/"):
            return "external"
        if rel == ".." or rel.startswith("../") or posixpath.isabs(rel) or ":" in rel[:3]:
            return "outsideRoot"
        return "internal"

    def label(self, path: Path, rel: Optional[str] = None) -> str:
        if rel is None:
            rel = self.normalize(path)
        if self.label_mode == "path":
            return rel
        return module_label(rel, self.source_root)
