"""Discovery and reading of package listfiles.

Parsing game archives is left to external tools; what reaches listtools is
the raw listfile each archive carries. A package only has to expose a name,
the bytes of its index (hashed to identify the snapshot) and its ordered
path list, see `PackageSource`.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Protocol

_log = logging.getLogger(__name__)

LISTFILE_NAME = "(listfile)"


class PackageReadError(Exception):
    pass


class PackageSource(Protocol):
    name: str

    def index_bytes(self) -> bytes: ...

    def file_list(self) -> List[str]: ...


class ListfilePackage:
    """A package represented by its raw listfile, one `\\`-separated path per line."""

    def __init__(self, path: Path, name: Optional[str] = None) -> None:
        self.path = path
        self.name = name or package_name(path)
        self._raw: Optional[bytes] = None

    def index_bytes(self) -> bytes:
        if self._raw is None:
            try:
                self._raw = self.path.read_bytes()
            except OSError as e:
                raise PackageReadError(f"Failed to read package listfile {self.path}: {e}") from e
        return self._raw

    def file_list(self) -> List[str]:
        text = self.index_bytes().decode("utf-8", errors="replace")
        return [line for line in text.splitlines() if line.strip()]

    def __repr__(self) -> str:  # pragma: no cover - trivial
        return f"<ListfilePackage {self.name} {self.path}>"


def package_name(path: Path) -> str:
    """Stable package name: the file stem, or the parent folder for a bare (listfile)."""
    if path.name == LISTFILE_NAME:
        return path.parent.name
    return path.stem


def is_package_file(path: Path, extensions: Iterable[str]) -> bool:
    if not path.is_file():
        return False
    if path.name == LISTFILE_NAME:
        return True
    return path.suffix.lower() in {e.lower() for e in extensions}


def discover_packages(root: Path, extensions: Iterable[str]) -> List[ListfilePackage]:
    """All package listfiles below `root`, sorted by path."""
    exts = tuple(extensions)
    found = sorted(p for p in root.rglob("*") if is_package_file(p, exts))
    packages = [ListfilePackage(p) for p in found]
    seen: dict[str, Path] = {}
    for pkg in packages:
        if pkg.name in seen:
            _log.info("%s and %s are versions of package %s", seen[pkg.name], pkg.path, pkg.name)
        seen[pkg.name] = pkg.path
    return packages
