from __future__ import annotations

from pathlib import Path
from typing import Union

__all__ = ["ModgraphError", "UnresolvedImportError", "OutputError"]


class ModgraphError(Exception):
    """Base class for errors raised by modgraph."""


class UnresolvedImportError(ModgraphError):
    """A relative import points at a file that is not in the module set (strict mode)."""

    def __init__(self, importer: str, specifier: str, lineno: int) -> None:
        super().__init__(f"{importer}:{lineno}: cannot resolve {specifier!r}")
        self.importer = importer
        self.specifier = specifier
        self.lineno = lineno


class OutputError(ModgraphError):
    """Rendered output could not be written."""

    def __init__(self, location: Union[str, Path], reason: str) -> None:
        super().__init__(f"cannot write {location}: {reason}")
        self.location = str(location)
        self.reason = reason
