"""
Test the binary region-set and GeoJSON feature readers.
"""
import json

import pytest
import h3.api.basic_int as h3

from regiontree.errors import CapacityError, InvalidCellError, SourceError
from regiontree.sources import (
    binary_sources,
    feature_value,
    iter_cell_file,
    load_feature_collection,
    rasterize_feature,
    read_cell_file,
    region_name,
)

from conftest import BOSTON, SPRINGFIELD, WORCESTER, feature, square


class TestRegionName:
    @pytest.mark.parametrize(
        "path, expected",
        [
            ("alpha.h3idz", "alpha"),
            ("/data/sets/US-MA.res7.h3idz", "US-MA"),
            ("noext", "noext"),
        ],
    )
    def test_prefix_before_first_dot(self, path, expected):
        assert region_name(path) == expected

    def test_sources_sorted_by_name(self, tmp_path):
        paths = [tmp_path / "gamma.h3idz", tmp_path / "alpha.h3idz", tmp_path / "beta.h3idz"]
        assert [s.name for s in binary_sources(paths)] == ["alpha", "beta", "gamma"]

    def test_capacity_checked_up_front(self, tmp_path):
        paths = [tmp_path / f"r{i:03d}.h3idz" for i in range(257)]
        with pytest.raises(CapacityError):
            binary_sources(paths)

    def test_duplicate_names_warn(self, tmp_path, caplog):
        paths = [tmp_path / "a" / "east.h3idz", tmp_path / "b" / "east.v2.h3idz"]
        with caplog.at_level("WARNING", logger="regiontree.sources"):
            sources = binary_sources(paths)
        assert [s.name for s in sources] == ["east", "east"]
        assert "east" in caplog.text


class TestCellFile:
    def test_reads_all_records(self, write_set):
        path = write_set("a.h3idz", [BOSTON, WORCESTER, BOSTON])
        assert list(iter_cell_file(path)) == [BOSTON, WORCESTER, BOSTON]

    def test_trailing_partial_record_ignored(self, write_set):
        path = write_set("a.h3idz", [BOSTON, WORCESTER], trailer=b"\x01\x02\x03")
        assert list(iter_cell_file(path)) == [BOSTON, WORCESTER]

    def test_many_records_cross_chunks(self, write_set):
        cells = sorted(h3.grid_disk(BOSTON, 60))
        assert len(cells) * 8 > 1 << 16
        path = write_set("big.h3idz", cells)
        assert list(iter_cell_file(path)) == cells

    def test_read_normalizes(self, write_set):
        parent = h3.cell_to_parent(BOSTON, 7)
        path = write_set("a.h3idz", list(h3.cell_to_children(parent, 8)) + [SPRINGFIELD])
        assert read_cell_file(path) == sorted([parent, SPRINGFIELD])

    def test_invalid_cell(self, write_set):
        path = write_set("a.h3idz", [BOSTON, 0xDEADBEEF])
        with pytest.raises(InvalidCellError):
            list(iter_cell_file(path))

    def test_not_gzip(self, tmp_path):
        path = tmp_path / "plain.h3idz"
        path.write_bytes(b"this is not gzip data at all")
        with pytest.raises(SourceError, match="corrupt gzip"):
            list(iter_cell_file(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(SourceError, match="cannot open"):
            list(iter_cell_file(tmp_path / "missing.h3idz"))


class TestGeometrySource:
    def test_load_collection(self, write_geojson):
        path = write_geojson([feature(square(0, 0, 1, 1), {"a": 1})])
        features = load_feature_collection(path)
        assert len(features) == 1

    def test_not_a_collection(self, tmp_path):
        path = tmp_path / "f.geojson"
        path.write_text(json.dumps(feature(square(0, 0, 1, 1), {})))
        with pytest.raises(SourceError, match="FeatureCollection"):
            load_feature_collection(path)

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "f.geojson"
        path.write_text("{not json")
        with pytest.raises(SourceError, match="invalid JSON"):
            load_feature_collection(path)

    @pytest.mark.parametrize("missing", ["geometry", "properties"])
    def test_missing_member_names_feature(self, missing):
        feat = feature(square(0, 0, 1, 1), {"a": 1})
        feat[missing] = None
        with pytest.raises(SourceError, match=f"feature 3: missing {missing}"):
            rasterize_feature(3, feat, 5)

    def test_point_geometry_rejected(self):
        feat = feature({"type": "Point", "coordinates": [-71.0, 42.3]}, {"a": 1})
        with pytest.raises(SourceError, match="feature 0"):
            rasterize_feature(0, feat, 7)

    def test_rasterize_covers_interior(self):
        feat = feature(square(-71.2, 42.3, -71.0, 42.5), {"name": "west"})
        result = rasterize_feature(5, feat, 7)
        assert result.index == 5
        assert result.name == "feature-5"
        assert json.loads(result.value) == {"name": "west"}
        inside = h3.latlng_to_cell(42.4, -71.1, 7)
        covered = set(result.cells)
        assert any(h3.cell_to_parent(inside, r) in covered for r in range(8))

    def test_value_is_stable(self):
        assert feature_value({"b": 2, "a": 1}) == feature_value({"a": 1, "b": 2})
