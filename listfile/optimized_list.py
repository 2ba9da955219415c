"""Content-addressed storage of optimized package listfiles.

One container exists per package name. Every distinct package index seen
under that name gets its own list, keyed by the MD5 of the index, so a
container accumulates one list per released version of the package.
"""
from __future__ import annotations

import hashlib
import logging
import zlib
from dataclasses import dataclass, field
from typing import Dict, Iterator, List

from listfile.codec import BinaryReader, BinaryWriter, ListfileFormatError

_log = logging.getLogger(__name__)

CONTAINER_MAGIC = b"OLIC"
CONTAINER_VERSION = 1


def package_hash(index_bytes: bytes) -> bytes:
    """Identity of a package snapshot; used for versioning, not security."""
    return hashlib.md5(index_bytes).digest()


def hash_hex(digest: bytes) -> str:
    return digest.hex().upper()


@dataclass
class OptimizedList:
    package_hash: bytes
    optimized_paths: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.package_hash = bytes(self.package_hash)
        self.optimized_paths = list(self.optimized_paths)


class OptimizedListContainer:
    EXTENSION = "olc"

    def __init__(self, package_name: str) -> None:
        self.package_name = package_name
        self._lists: Dict[bytes, OptimizedList] = {}

    def __len__(self) -> int:
        return len(self._lists)

    def __iter__(self) -> Iterator[OptimizedList]:
        return iter(self._lists.values())

    @property
    def optimized_lists(self) -> Dict[bytes, OptimizedList]:
        return dict(self._lists)

    def contains_package_listfile(self, digest: bytes) -> bool:
        return bytes(digest) in self._lists

    def is_list_same_as_stored(self, new_list: OptimizedList) -> bool:
        stored = self._lists.get(new_list.package_hash)
        if stored is None:
            return False
        return stored.optimized_paths == new_list.optimized_paths

    def add_optimized_list(self, new_list: OptimizedList) -> None:
        if new_list.package_hash in self._lists:
            raise KeyError(f"{self.package_name} already holds a list for {hash_hex(new_list.package_hash)}")
        self._lists[new_list.package_hash] = new_list

    def replace_optimized_list(self, new_list: OptimizedList) -> None:
        if new_list.package_hash not in self._lists:
            raise KeyError(f"{self.package_name} holds no list for {hash_hex(new_list.package_hash)}")
        self._lists[new_list.package_hash] = new_list

    def store(self, new_list: OptimizedList) -> str:
        """Add, replace or keep `new_list`. Returns 'added', 'replaced' or 'unchanged'."""
        if not self.contains_package_listfile(new_list.package_hash):
            self.add_optimized_list(new_list)
            return "added"
        if self.is_list_same_as_stored(new_list):
            return "unchanged"
        self.replace_optimized_list(new_list)
        return "replaced"

    def serialize(self) -> bytes:
        w = BinaryWriter()
        w.magic(CONTAINER_MAGIC)
        w.u32(CONTAINER_VERSION)
        w.text(self.package_name)
        w.u32(len(self._lists))
        for digest, olist in self._lists.items():
            w.blob(digest)
            w.u32(len(olist.optimized_paths))
            w.blob(zlib.compress(_pack_paths(olist.optimized_paths)))
        return w.getvalue()

    @classmethod
    def deserialize(cls, data: bytes) -> "OptimizedListContainer":
        r = BinaryReader(data)
        r.expect_magic(CONTAINER_MAGIC)
        version = r.u32()
        if version != CONTAINER_VERSION:
            raise ListfileFormatError(f"unsupported container version {version}")
        container = cls(r.text())
        for _ in range(r.u32()):
            digest = r.blob()
            count = r.u32()
            try:
                block = zlib.decompress(r.blob())
            except zlib.error as e:
                raise ListfileFormatError(f"corrupt path block for {hash_hex(digest)}: {e}") from e
            paths = _unpack_paths(block, count, digest)
            if digest in container._lists:
                raise ListfileFormatError(f"duplicate list for {hash_hex(digest)}")
            container._lists[digest] = OptimizedList(digest, paths)
        r.expect_end()
        _log.info("loaded container %s with %d list(s)", container.package_name, len(container))
        return container


def _pack_paths(paths: List[str]) -> bytes:
    # Length-prefixed so paths may hold any character, newlines included
    w = BinaryWriter()
    for p in paths:
        w.text(p)
    return w.getvalue()


def _unpack_paths(block: bytes, count: int, digest: bytes) -> List[str]:
    r = BinaryReader(block)
    try:
        paths = [r.text() for _ in range(count)]
        r.expect_end()
    except ListfileFormatError as e:
        raise ListfileFormatError(f"path block for {hash_hex(digest)} does not hold {count} path(s): {e}") from e
    return paths
