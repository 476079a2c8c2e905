import logging
from typing import Iterable, List, Optional, Sequence

from tqdm import tqdm

from . import config
from .artifact import write_artifact
from .errors import CapacityError, PipelineError
from .hexmap import HexTreeMap
from .pipeline import rasterize_features
from .sources import binary_sources, check_capacity, load_feature_collection, read_cell_file

LOGGER = logging.getLogger(__name__)


class RegionMapBuilder:
    """
    Assembles the cell -> label tree and the label -> value table.

    Labels are handed out sequentially from 0 in the order sources are added.
    Cells claimed by more than one source end up with the label of the source
    added last.
    """

    def __init__(self):
        self.region_map = HexTreeMap()
        self.lut: List[str] = []

    # -----------------------------
    # Public API
    # -----------------------------
    def next_label(self) -> int:
        label = len(self.lut)
        if label >= config.MAX_LABELS:
            raise CapacityError(
                f"label {label} does not fit in one byte (max {config.MAX_LABELS} sources)"
            )
        return label

    def add(self, value: str, cells: Iterable[int]) -> int:
        label = self.next_label()
        self.lut.append(value)
        n = 0
        for cell in cells:
            self.region_map.insert(cell, label)
            n += 1
        LOGGER.debug("label %d (%s): inserted %d cells", label, value[:60], n)
        return label

    def write(self, out_path) -> int:
        return write_artifact(out_path, self.region_map, self.lut)


def build_from_sets(out_path, set_paths: Sequence, progress: bool = False) -> RegionMapBuilder:
    """
    Build an artifact from gzip-compressed binary region sets.

    Sources are read one at a time in ascending region-name order; the output
    file is only created once every source has been read and inserted.
    """
    sources = binary_sources(set_paths)
    LOGGER.info("building %s from %d region sets", out_path, len(sources))

    builder = RegionMapBuilder()
    for source in tqdm(sources, desc="[regions]", unit="set", disable=not progress):
        cells = read_cell_file(source.path)
        LOGGER.info("%s: %d cells after compaction", source.name, len(cells))
        builder.add(source.name, cells)

    builder.write(out_path)
    return builder


def build_from_geometry(
    out_path,
    geometry_path,
    resolution: int = config.DEFAULT_RESOLUTION,
    workers: Optional[int] = None,
    progress: bool = False,
) -> RegionMapBuilder:
    """
    Build an artifact from a GeoJSON FeatureCollection.

    Every feature becomes one label (its position in the collection) whose
    value is the feature's JSON-encoded properties. Features are rasterized
    in parallel and inserted in feature order.
    """
    if not 0 <= resolution <= 15:
        raise ValueError(f"H3 resolution must be in [0, 15], got {resolution}")
    features = load_feature_collection(geometry_path)
    check_capacity(len(features), "features")
    LOGGER.info(
        "building %s from %d features at resolution %d",
        out_path, len(features), resolution,
    )

    builder = RegionMapBuilder()
    for result in rasterize_features(
        features,
        resolution=resolution,
        workers=workers or config.DEFAULT_WORKERS,
        progress=progress,
    ):
        label = builder.add(result.value, result.cells)
        if label != result.index:
            raise PipelineError(f"feature {result.index} arrived as label {label}")

    builder.write(out_path)
    return builder
