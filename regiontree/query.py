"""
Point lookups against a built artifact.

The label table is read into memory through the trailing pointer; the hex
tree stays on disk and is searched through a memmap.
"""
from __future__ import annotations

import logging
import os
from typing import Dict, Optional, Tuple

from .artifact import decode_label, load_lut
from .cells import ensure_cell
from .errors import LabelOutOfRangeError
from .hexmap import DiskHexMap

LOGGER = logging.getLogger(__name__)


class RegionMap:
    """
    Read-only view of one artifact. Instances share nothing and can be used
    side by side over the same file.

    Example:
        >>> with RegionMap("regions.bin") as rm:
        ...     rm.lookup(0x8828308281fffff)
        'alpha'
    """

    def __init__(self, path):
        self.path = os.fspath(path)
        with open(self.path, "rb") as fh:
            self.lut, self._lut_offset = load_lut(fh)
        self._tree = DiskHexMap(self.path, limit=self._lut_offset)
        LOGGER.debug(
            "opened %s: %d records, %d labels", self.path, len(self._tree), len(self.lut)
        )

    def __enter__(self) -> "RegionMap":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self._tree.close()

    def __len__(self) -> int:
        return len(self._tree)

    def resolve_label(self, cell) -> Optional[Tuple[int, int]]:
        """Return ``(matched_cell, label)`` or None when no record covers ``cell``."""
        hit = self._tree.get(ensure_cell(cell))
        if hit is None:
            return None
        matched, raw = hit
        return matched, decode_label(raw)

    def resolve(self, cell) -> Optional[Tuple[int, str]]:
        """
        Return ``(matched_cell, value)`` or None for no entry.

        ``matched_cell`` is the recorded cell that covers ``cell``; it is
        ``cell`` itself or one of its ancestors.

        Raises:
            InvalidCellError: ``cell`` is not a legal H3 index
            LabelOutOfRangeError: the stored label has no table entry
        """
        hit = self.resolve_label(cell)
        if hit is None:
            return None
        matched, label = hit
        if label >= len(self.lut):
            raise LabelOutOfRangeError(label, len(self.lut))
        return matched, self.lut[label]

    def lookup(self, cell) -> Optional[str]:
        hit = self.resolve(cell)
        return None if hit is None else hit[1]

    def describe(self) -> Dict[str, object]:
        return {
            "path": self.path,
            "records": len(self._tree),
            "labels": list(self.lut),
            "lut_offset": self._lut_offset,
            "size": os.path.getsize(self.path),
        }


def lookup(path, cell) -> Optional[str]:
    """Open ``path``, resolve one cell and close again. None means no entry."""
    with RegionMap(path) as rm:
        return rm.lookup(cell)
