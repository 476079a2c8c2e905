"""
Artifact layout: ``[hex tree][label table][u64 LE offset of the label table]``.

The label table is a length-prefixed sequence of UTF-8 strings::

    u64 LE  count
    count x (u64 LE byte length, UTF-8 bytes)
"""
from __future__ import annotations

import logging
import os
import struct
from typing import BinaryIO, List, Sequence

from .config import LUT_POINTER_SIZE
from .errors import LutFormatError
from .hexmap import HexTreeMap

LOGGER = logging.getLogger(__name__)

_U64 = struct.Struct("<Q")
_LABEL = struct.Struct("<B")


def encode_label(label: int) -> bytes:
    return _LABEL.pack(label)


def decode_label(raw: bytes) -> int:
    return _LABEL.unpack(raw)[0]


def encode_lut(values: Sequence[str]) -> bytes:
    parts = [_U64.pack(len(values))]
    for value in values:
        blob = value.encode("utf-8")
        parts.append(_U64.pack(len(blob)))
        parts.append(blob)
    return b"".join(parts)


def _read_exact(fh: BinaryIO, size: int, what: str) -> bytes:
    data = fh.read(size)
    if len(data) != size:
        raise LutFormatError(f"truncated label table: wanted {size} bytes for {what}, got {len(data)}")
    return data


def read_lut(fh: BinaryIO, limit: int) -> List[str]:
    """
    Decode a label table from ``fh``'s current position.

    Args:
        fh: binary file handle positioned at the start of the table
        limit: number of bytes the table may occupy

    Returns:
        The interned values, indexed by label

    Raises:
        LutFormatError: on truncation, impossible lengths or invalid UTF-8
    """
    remaining = limit - _U64.size
    if remaining < 0:
        raise LutFormatError(f"label table region is {limit} bytes, too short for a count")
    (count,) = _U64.unpack(_read_exact(fh, _U64.size, "entry count"))
    # every entry needs at least its length prefix
    if count * _U64.size > remaining:
        raise LutFormatError(f"label table claims {count} entries in {limit} bytes")

    values: List[str] = []
    for i in range(count):
        (size,) = _U64.unpack(_read_exact(fh, _U64.size, f"length of entry {i}"))
        remaining -= _U64.size
        if size > remaining:
            raise LutFormatError(f"entry {i} claims {size} bytes, only {remaining} left")
        blob = _read_exact(fh, size, f"entry {i}")
        remaining -= size
        try:
            values.append(blob.decode("utf-8"))
        except UnicodeDecodeError as exc:
            raise LutFormatError(f"entry {i} is not valid UTF-8") from exc
    return values


def read_lut_pointer(fh: BinaryIO) -> tuple[int, int]:
    """
    Read the trailing pointer of an open artifact.

    Returns:
        ``(lut_offset, pointer_offset)``; the table spans ``[lut_offset, pointer_offset)``
    """
    fh.seek(0, os.SEEK_END)
    size = fh.tell()
    if size < LUT_POINTER_SIZE:
        raise LutFormatError(f"artifact is {size} bytes, too short for the trailing pointer")
    pointer_offset = size - LUT_POINTER_SIZE
    fh.seek(pointer_offset)
    (lut_offset,) = _U64.unpack(_read_exact(fh, LUT_POINTER_SIZE, "trailing pointer"))
    if lut_offset > pointer_offset:
        raise LutFormatError(
            f"trailing pointer {lut_offset} lies past the end of the label table ({pointer_offset})"
        )
    return lut_offset, pointer_offset


def load_lut(fh: BinaryIO) -> tuple[List[str], int]:
    """Follow the trailing pointer and decode the label table. Returns ``(lut, lut_offset)``."""
    lut_offset, pointer_offset = read_lut_pointer(fh)
    fh.seek(lut_offset)
    return read_lut(fh, pointer_offset - lut_offset), lut_offset


def write_artifact(path, region_map: HexTreeMap, lut: Sequence[str]) -> int:
    """
    Write the hex tree, the label table and the trailing pointer to ``path``.

    Returns:
        Total size of the artifact in bytes
    """
    os.makedirs(os.path.dirname(os.fspath(path)) or ".", exist_ok=True)
    with open(path, "wb") as fh:
        region_map.to_disktree(fh, encode_label)
        fh.seek(0, os.SEEK_END)
        lut_offset = fh.tell()
        fh.write(encode_lut(lut))
        fh.write(_U64.pack(lut_offset))
        size = fh.tell()
    LOGGER.info("wrote %s (%d cells, %d labels, %d bytes)", path, len(region_map), len(lut), size)
    return size
