"""
Shared H3 helpers for the readers, the normalizer and the query engine.

Cells travel through regiontree as plain ``int`` values (the uint64 form of an
H3 index). This module is the single place that converts user input into that
form, rejects illegal indices, and rasterizes polygon geometry into cells.
"""
from __future__ import annotations

from typing import Iterable, Set

import numpy as np
import shapely
from shapely.geometry.base import BaseGeometry

import h3.api.basic_int as h3

from .errors import InvalidCellError

_U64_MAX = (1 << 64) - 1
POLYGONAL_TYPES = ("Polygon", "MultiPolygon")


def cell_to_int(cell) -> int:
    """
    Convert an H3 address (hex string or integer) to its uint64 integer form.

    Args:
        cell: H3 cell as ``int``, numpy integer, or hex string (``"0x"`` prefix optional)

    Returns:
        uint64 integer representation of the cell (not yet validated)

    Raises:
        InvalidCellError: if the value cannot be read as an unsigned 64-bit integer
    """
    if isinstance(cell, (int, np.integer)) and not isinstance(cell, bool):
        value = int(cell)
    elif isinstance(cell, str):
        text = cell.strip().lower()
        if text.startswith("0x"):
            text = text[2:]
        try:
            value = int(text, 16)
        except ValueError as exc:
            raise InvalidCellError(f"not a hexadecimal H3 index: {cell!r}") from exc
    else:
        raise InvalidCellError(f"unsupported H3 cell type: {type(cell)!r}")
    if value < 0 or value > _U64_MAX:
        raise InvalidCellError(f"H3 index out of 64-bit range: {cell!r}")
    return value


def ensure_cell(cell) -> int:
    """Return ``cell`` as a validated integer index or raise InvalidCellError."""
    value = cell_to_int(cell)
    if not h3.is_valid_cell(value):
        raise InvalidCellError(f"invalid H3 cell index: {value:#x}")
    return value


def clean_geometry(geom: BaseGeometry) -> BaseGeometry:
    """
    Repair a polygonal geometry before rasterization.

    Invalid rings are passed through ``shapely.make_valid`` and any Z values
    are dropped; non-polygonal leftovers from the repair are discarded.
    """
    if geom is None or geom.is_empty:
        return geom
    geom = shapely.force_2d(geom)
    if not geom.is_valid:
        geom = shapely.make_valid(geom)
    if geom.geom_type == "GeometryCollection":
        parts = [g for g in geom.geoms if g.geom_type in POLYGONAL_TYPES]
        geom = shapely.unary_union(parts) if parts else shapely.Polygon()
    return geom


def polygon_to_cells(geom: BaseGeometry, res: int) -> Set[int]:
    """
    Convert a Shapely polygon or multipolygon to H3 cells at the given resolution.

    A cell is included when its centroid falls inside the geometry (the H3
    polygon fill rule).

    Args:
        geom: Shapely geometry (Polygon or MultiPolygon)
        res: H3 resolution level (0-15)

    Returns:
        Set of H3 cell IDs as uint64 integers

    Raises:
        ValueError: if the geometry is not polygonal
    """
    if geom is None or geom.is_empty:
        return set()

    mapping = geom.__geo_interface__
    polygons: Iterable[dict]
    if mapping["type"] == "Polygon":
        polygons = [mapping]
    elif mapping["type"] == "MultiPolygon":
        polygons = (
            {"type": "Polygon", "coordinates": coords}
            for coords in mapping["coordinates"]
        )
    else:
        raise ValueError(f"cannot rasterize {mapping['type']} geometry")

    result: Set[int] = set()
    for poly in polygons:
        result.update(h3.geo_to_cells(poly, res))
    return result
