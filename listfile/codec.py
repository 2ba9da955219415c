"""Little-endian binary helpers for the dictionary and list container files."""
from __future__ import annotations

import struct
from typing import List


class ListfileFormatError(ValueError):
    """Raised when dictionary or container bytes cannot be decoded."""


class BinaryWriter:
    def __init__(self) -> None:
        self._parts: List[bytes] = []

    def magic(self, value: bytes) -> None:
        self._parts.append(value)

    def u32(self, value: int) -> None:
        self._parts.append(struct.pack("<I", value))

    def u64(self, value: int) -> None:
        self._parts.append(struct.pack("<Q", value))

    def f64(self, value: float) -> None:
        self._parts.append(struct.pack("<d", value))

    def blob(self, value: bytes) -> None:
        self.u32(len(value))
        self._parts.append(value)

    def text(self, value: str) -> None:
        self.blob(value.encode("utf-8"))

    def getvalue(self) -> bytes:
        return b"".join(self._parts)


class BinaryReader:
    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._pos = 0

    def _take(self, size: int) -> bytes:
        end = self._pos + size
        if end > len(self._data):
            raise ListfileFormatError(
                f"unexpected end of data at offset {self._pos} (wanted {size} bytes, have {len(self._data) - self._pos})"
            )
        chunk = self._data[self._pos:end]
        self._pos = end
        return chunk

    def expect_magic(self, value: bytes) -> None:
        got = self._take(len(value))
        if got != value:
            raise ListfileFormatError(f"bad signature {got!r}, expected {value!r}")

    def u32(self) -> int:
        return struct.unpack("<I", self._take(4))[0]

    def u64(self) -> int:
        return struct.unpack("<Q", self._take(8))[0]

    def f64(self) -> float:
        return struct.unpack("<d", self._take(8))[0]

    def blob(self) -> bytes:
        return self._take(self.u32())

    def text(self) -> str:
        raw = self.blob()
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ListfileFormatError(f"invalid UTF-8 string: {e}") from e

    def expect_end(self) -> None:
        if self._pos != len(self._data):
            raise ListfileFormatError(f"{len(self._data) - self._pos} trailing bytes after payload")
