from .builder import RegionMapBuilder, build_from_geometry, build_from_sets
from .cli import main
from .errors import (
    CapacityError,
    CorruptArtifactError,
    InvalidCellError,
    LabelOutOfRangeError,
    LutFormatError,
    PipelineError,
    RegionTreeError,
    SourceError,
)
from .hexmap import DiskHexMap, HexTreeMap
from .normalize import expand_cells, normalize_cells
from .query import RegionMap, lookup

__all__ = [
    "RegionMapBuilder",
    "build_from_geometry",
    "build_from_sets",
    "main",
    "CapacityError",
    "CorruptArtifactError",
    "InvalidCellError",
    "LabelOutOfRangeError",
    "LutFormatError",
    "PipelineError",
    "RegionTreeError",
    "SourceError",
    "DiskHexMap",
    "HexTreeMap",
    "expand_cells",
    "normalize_cells",
    "RegionMap",
    "lookup",
]

# -------------------------
# regiontree file structure
# -------------------------
# config.py: constants & defaults.
# errors.py: exception hierarchy.
# cells.py: H3 helpers: parsing, validation, polygon fill.
# validation.py: GeoJSON collection/feature checks.
# sources.py: binary region-set and geometry feature readers.
# normalize.py: dedupe + compaction of cell sets.
# hexmap.py: in-memory hex tree and its on-disk reader.
# artifact.py: label table codec and artifact layout.
# pipeline.py: threaded rasterization with ordered fan-in.
# builder.py: label assignment and build orchestration.
# query.py: point lookups against an artifact.
# cli.py: argparse entrypoint.
