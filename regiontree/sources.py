"""
Cell-set source readers.

Two kinds of source feed a build:

* binary region sets: gzip streams of 8-byte little-endian H3 indices, one
  file per region, named after the file's base name up to the first ``.``;
* geometry features: the features of one GeoJSON FeatureCollection, each
  rasterized into cells at a fixed resolution and labelled with its
  properties.

Any error here aborts the build.
"""
from __future__ import annotations

import gzip
import json
import logging
import os
import zlib
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Sequence, Tuple

import numpy as np
import shapely.geometry
from shapely.errors import ShapelyError

from .cells import clean_geometry, ensure_cell, polygon_to_cells
from .config import CELL_RECORD_SIZE, MAX_LABELS, READ_CHUNK_BYTES, REGION_NAME_DELIMITER
from .errors import CapacityError, SourceError
from .normalize import normalize_cells
from .validation import validate_feature, validate_feature_collection

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class BinarySource:
    name: str
    path: Path


@dataclass(frozen=True)
class FeatureCells:
    """One rasterized feature: its position, stored value and normalized cells."""

    index: int
    name: str
    value: str
    cells: Tuple[int, ...]


def region_name(path) -> str:
    """Base name of ``path`` up to the first delimiter: ``alpha.h3idz`` -> ``alpha``."""
    return Path(path).name.split(REGION_NAME_DELIMITER, 1)[0]


def check_capacity(count: int, what: str = "sources") -> None:
    if count > MAX_LABELS:
        raise CapacityError(
            f"{count} {what} exceed the {MAX_LABELS} labels a one-byte value can address"
        )


def binary_sources(paths: Sequence) -> List[BinarySource]:
    """
    Name and order binary region sets for a build.

    Sources are sorted by region name (then path) so that overlapping cells
    always resolve to the same, later-sorted region.
    """
    check_capacity(len(paths))
    sources = sorted(
        (BinarySource(region_name(p), Path(p)) for p in paths),
        key=lambda s: (s.name, str(s.path)),
    )
    for name, n in Counter(s.name for s in sources).items():
        if n > 1:
            LOGGER.warning("region name %r is shared by %d input files", name, n)
    return sources


def iter_cell_file(path) -> Iterator[int]:
    """
    Yield every cell of a gzip-compressed binary region set.

    A trailing partial record is treated as end of stream.

    Raises:
        SourceError: unreadable file or corrupt gzip data
        InvalidCellError: a record is not a legal H3 index
    """
    try:
        fh = gzip.open(path, "rb")
    except OSError as exc:
        raise SourceError(f"cannot open {path}: {exc}") from exc

    with fh:
        pending = b""
        while True:
            try:
                chunk = fh.read(READ_CHUNK_BYTES)
            except (OSError, EOFError, zlib.error) as exc:
                raise SourceError(f"{path}: corrupt gzip stream: {exc}") from exc
            if not chunk:
                break
            data = pending + chunk
            usable = len(data) - len(data) % CELL_RECORD_SIZE
            pending = data[usable:]
            for value in np.frombuffer(data[:usable], dtype="<u8"):
                yield ensure_cell(int(value))
        if pending:
            LOGGER.debug("%s: ignoring %d trailing bytes", path, len(pending))


def read_cell_file(path) -> List[int]:
    """Read and normalize one binary region set."""
    return normalize_cells(iter_cell_file(path))


def load_feature_collection(path) -> List[dict]:
    """Parse a GeoJSON FeatureCollection and return its features."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            doc = json.load(f)
    except OSError as exc:
        raise SourceError(f"cannot open {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise SourceError(f"{path}: invalid JSON: {exc}") from exc
    return validate_feature_collection(doc, os.fspath(path))


def feature_name(index: int) -> str:
    return f"feature-{index}"


def feature_value(properties: dict) -> str:
    return json.dumps(properties, sort_keys=True, ensure_ascii=False)


def rasterize_feature(index: int, feature: dict, resolution: int) -> FeatureCells:
    """
    Rasterize one feature into its normalized cell set.

    Args:
        index: position of the feature in its collection
        feature: GeoJSON feature with non-null ``geometry`` and ``properties``
        resolution: H3 resolution to fill at

    Raises:
        SourceError: missing members, unparseable or non-polygonal geometry
    """
    validate_feature(feature, index)
    try:
        geom = shapely.geometry.shape(feature["geometry"])
    except (KeyError, TypeError, ValueError, AttributeError, ShapelyError) as exc:
        raise SourceError(f"feature {index}: unreadable geometry: {exc}") from exc

    geom = clean_geometry(geom)
    try:
        raw = polygon_to_cells(geom, resolution)
    except ValueError as exc:
        raise SourceError(f"feature {index}: {exc}") from exc

    cells = normalize_cells(raw)
    if not cells:
        LOGGER.warning("feature %d covers no cells at resolution %d", index, resolution)
    return FeatureCells(
        index=index,
        name=feature_name(index),
        value=feature_value(feature["properties"]),
        cells=tuple(cells),
    )
