"""
Deduplicate and compact a raw cell multiset into its minimal covering set.
"""
from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, List, Set

import h3.api.basic_int as h3

from .cells import ensure_cell


def _drop_covered(cells: Set[int]) -> Set[int]:
    # A member whose ancestor is also a member adds no area.
    kept = set()
    for cell in cells:
        res = h3.get_resolution(cell)
        if not any(h3.cell_to_parent(cell, r) in cells for r in range(res)):
            kept.add(cell)
    return kept


def normalize_cells(cells: Iterable[int]) -> List[int]:
    """
    Return the unique minimal cell set covering the same area as ``cells``.

    Every input is validated, duplicates are removed, cells already covered by
    an ancestor are dropped, and complete sibling groups are replaced by their
    parent, recursively. ``h3.compact_cells`` only accepts a single
    resolution, so the compaction walks from the finest resolution present up
    to resolution 0, folding each level's output into the next coarser bucket.

    Args:
        cells: raw H3 cells, any resolutions, duplicates allowed

    Returns:
        Sorted list of compacted cells
    """
    unique = {ensure_cell(c) for c in cells}
    if not unique:
        return []

    by_res: Dict[int, Set[int]] = defaultdict(set)
    for cell in _drop_covered(unique):
        by_res[h3.get_resolution(cell)].add(cell)

    out: Set[int] = set()
    for res in range(max(by_res), -1, -1):
        level = by_res.pop(res, None)
        if not level:
            continue
        for cell in h3.compact_cells(list(level)):
            cell_res = h3.get_resolution(cell)
            if cell_res == res:
                out.add(cell)
            else:
                by_res[cell_res].add(cell)
    return sorted(out)


def expand_cells(cells: Iterable[int], res: int) -> List[int]:
    """Uncompact ``cells`` to resolution ``res``; the inverse of normalize_cells."""
    cells = list(cells)
    if not cells:
        return []
    return sorted(set(h3.uncompact_cells(cells, res)))
