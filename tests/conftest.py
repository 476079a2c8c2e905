"""
Shared fixtures: region-set writers, sample cells and GeoJSON documents.
"""
import gzip
import json
import struct
from pathlib import Path
from typing import Iterable

import pytest
import h3.api.basic_int as h3

RES = 8

# Cells far enough apart that no two are siblings
BOSTON = h3.latlng_to_cell(42.3601, -71.0589, RES)
WORCESTER = h3.latlng_to_cell(42.2626, -71.8023, RES)
SPRINGFIELD = h3.latlng_to_cell(42.1015, -72.5898, RES)
PROVIDENCE = h3.latlng_to_cell(41.8240, -71.4128, RES)


def pack_cells(cells: Iterable[int]) -> bytes:
    return b"".join(struct.pack("<Q", c) for c in cells)


@pytest.fixture
def write_set(tmp_path: Path):
    """Write a gzip region set and return its path."""

    def _write(name: str, cells: Iterable[int], trailer: bytes = b"") -> Path:
        path = tmp_path / name
        with gzip.open(path, "wb") as f:
            f.write(pack_cells(cells) + trailer)
        return path

    return _write


def square(west: float, south: float, east: float, north: float) -> dict:
    return {
        "type": "Polygon",
        "coordinates": [[
            [west, south],
            [east, south],
            [east, north],
            [west, north],
            [west, south],
        ]],
    }


def feature(geometry, properties) -> dict:
    return {"type": "Feature", "geometry": geometry, "properties": properties}


@pytest.fixture
def write_geojson(tmp_path: Path):
    """Write a FeatureCollection and return its path."""

    def _write(features, name: str = "world.geojson") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps({"type": "FeatureCollection", "features": features}))
        return path

    return _write


@pytest.fixture
def overlapping_squares():
    """Two squares near Boston sharing the band between -71.1 and -71.0 longitude."""
    return [
        feature(square(-71.2, 42.3, -71.0, 42.5), {"name": "west", "id": 1}),
        feature(square(-71.1, 42.3, -70.9, 42.5), {"name": "east", "id": 2}),
    ]
