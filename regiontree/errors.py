"""
Exception hierarchy shared by the build and query paths.

Build-time errors (source, capacity, pipeline) abort the whole build.
Query-time errors are raised per lookup; a miss is not an error.
"""


class RegionTreeError(Exception):
    """Base class for every error raised by regiontree."""


class SourceError(RegionTreeError):
    """An input source could not be read or is malformed."""


class InvalidCellError(SourceError, ValueError):
    """A value is not a legal H3 cell index."""


class CapacityError(RegionTreeError, ValueError):
    """More sources than a one-byte label can address."""


class PipelineError(RegionTreeError):
    """A rasterization worker or the producer thread failed."""


class CorruptArtifactError(RegionTreeError):
    """A built artifact cannot be interpreted."""


class LutFormatError(CorruptArtifactError):
    """The trailing pointer or the label table is unreadable."""


class LabelOutOfRangeError(CorruptArtifactError):
    """The tree holds a label that the label table does not have."""

    def __init__(self, label: int, size: int):
        super().__init__(f"no interned value for index {label} (table has {size} entries)")
        self.label = label
        self.size = size
