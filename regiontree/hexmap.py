"""
Hex tree map: H3 cell -> value with ancestor-aware point queries.

``HexTreeMap`` is the in-memory build structure. ``DiskHexMap`` answers the
same point queries against the serialized form through a read-only memmap,
without loading the records.

Disk layout (all integers little-endian)::

    offset  size        field
    0       4           magic b"HXDT"
    4       1           format version (1)
    5       1           value width in bytes (W)
    6       2           reserved, zero
    8       8           record count (N)
    16      8 * N       cell keys, uint64, strictly ascending
    16+8N   W * N       encoded values, in key order

Only ``to_disktree`` and ``DiskHexMap`` know this layout; callers treat the
bytes as opaque.
"""
from __future__ import annotations

import os
import struct
from typing import Callable, Dict, Iterator, Optional, Tuple

import numpy as np

import h3.api.basic_int as h3

from .errors import CorruptArtifactError

MAGIC = b"HXDT"
VERSION = 1
_HEADER = struct.Struct("<4sBBHQ")
HEADER_SIZE = _HEADER.size


class _Node:
    __slots__ = ("value", "children")

    def __init__(self):
        self.value = None
        self.children: Dict[int, "_Node"] = {}


class HexTreeMap:
    """
    Mutable cell -> value map. Not safe for concurrent mutation.

    Inserting a cell overrides whatever was recorded at or below it; a cell
    recorded above it keeps covering the rest of its area. ``get`` returns the
    finest recorded cell that is the target or one of its ancestors, so the
    most recent insert always wins for the area it covers.
    """

    def __init__(self):
        self._roots: Dict[int, _Node] = {}
        self._len = 0

    def __len__(self) -> int:
        return self._len

    def _path(self, cell: int):
        res = h3.get_resolution(cell)
        return [h3.cell_to_parent(cell, r) for r in range(res)] + [cell]

    def insert(self, cell: int, value) -> None:
        if value is None:
            raise ValueError("HexTreeMap values cannot be None")
        path = self._path(cell)
        children = self._roots
        node = None
        for key in path:
            node = children.get(key)
            if node is None:
                node = children[key] = _Node()
            children = node.children
        self._len -= _count(node.children)
        node.children = {}
        if node.value is None:
            self._len += 1
        node.value = value

    def get(self, cell: int) -> Optional[Tuple[int, object]]:
        """Return ``(matched_cell, value)`` or None when nothing covers ``cell``."""
        hit = None
        children = self._roots
        for key in self._path(cell):
            node = children.get(key)
            if node is None:
                break
            if node.value is not None:
                hit = (key, node.value)
            children = node.children
        return hit

    def __contains__(self, cell: int) -> bool:
        return self.get(cell) is not None

    def items(self) -> Iterator[Tuple[int, object]]:
        """Recorded ``(cell, value)`` pairs in ascending cell order."""
        stack = [self._roots]
        pairs = []
        while stack:
            for key, node in stack.pop().items():
                if node.value is not None:
                    pairs.append((key, node.value))
                if node.children:
                    stack.append(node.children)
        pairs.sort(key=lambda kv: kv[0])
        return iter(pairs)

    def to_disktree(self, fh, encode: Callable[[object], bytes]) -> int:
        """
        Serialize the map to a binary file handle.

        Args:
            fh: writable binary file object, positioned where the tree starts
            encode: turns one value into bytes; every value must encode to the same width

        Returns:
            Number of bytes written
        """
        pairs = list(self.items())
        encoded = [encode(v) for _, v in pairs]
        width = len(encoded[0]) if encoded else 0
        for blob in encoded:
            if len(blob) != width:
                raise ValueError(f"value encoder produced {len(blob)} bytes, expected {width}")
        if width > 0xFF:
            raise ValueError(f"value width {width} does not fit the tree header")

        keys = np.fromiter((k for k, _ in pairs), dtype="<u8", count=len(pairs))
        written = fh.write(_HEADER.pack(MAGIC, VERSION, width, 0, len(pairs)))
        written += fh.write(keys.tobytes())
        written += fh.write(b"".join(encoded))
        return written


def _count(children: Dict[int, _Node]) -> int:
    total = 0
    stack = [children]
    while stack:
        for node in stack.pop().values():
            if node.value is not None:
                total += 1
            if node.children:
                stack.append(node.children)
    return total


class DiskHexMap:
    """
    Read-only point queries over a serialized ``HexTreeMap``.

    The keys and values are memory-mapped; each query does one binary search
    per resolution from the target cell up to resolution 0.
    """

    def __init__(self, path, offset: int = 0, limit: Optional[int] = None):
        self.path = os.fspath(path)
        size = os.path.getsize(self.path)
        end = size if limit is None else min(limit, size)
        if end - offset < HEADER_SIZE:
            raise CorruptArtifactError(f"{self.path}: too short for a hex tree header")

        with open(self.path, "rb") as fh:
            fh.seek(offset)
            magic, version, width, _, count = _HEADER.unpack(fh.read(HEADER_SIZE))
        if magic != MAGIC:
            raise CorruptArtifactError(f"{self.path}: bad hex tree magic {magic!r}")
        if version != VERSION:
            raise CorruptArtifactError(f"{self.path}: unsupported hex tree version {version}")
        body = offset + HEADER_SIZE
        if body + count * (8 + width) > end:
            raise CorruptArtifactError(
                f"{self.path}: hex tree claims {count} records but the file is too short"
            )

        self.width = width
        self._count = count
        if count:
            self._keys = np.memmap(self.path, dtype="<u8", mode="r", offset=body, shape=(count,))
            self._values = np.memmap(
                self.path, dtype=np.uint8, mode="r", offset=body + 8 * count, shape=(count * width,)
            )
        else:
            self._keys = np.empty(0, dtype="<u8")
            self._values = np.empty(0, dtype=np.uint8)

    def __len__(self) -> int:
        return self._count

    def _find(self, cell: int) -> int:
        i = int(np.searchsorted(self._keys, np.uint64(cell)))
        if i < self._count and int(self._keys[i]) == cell:
            return i
        return -1

    def get(self, cell: int) -> Optional[Tuple[int, bytes]]:
        """Return ``(matched_cell, raw_value_bytes)`` for the finest covering record."""
        if self._keys is None:
            raise ValueError(f"{self.path}: hex tree is closed")
        if not self._count:
            return None
        res = h3.get_resolution(cell)
        for r in range(res, -1, -1):
            candidate = cell if r == res else h3.cell_to_parent(cell, r)
            i = self._find(candidate)
            if i >= 0:
                start = i * self.width
                return candidate, self._values[start:start + self.width].tobytes()
        return None

    def close(self) -> None:
        # np.memmap releases its mapping once the arrays are dropped
        self._keys = None
        self._values = None
