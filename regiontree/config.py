import os

# H3 resolution used when rasterizing region-scale polygons
DEFAULT_RESOLUTION = 7

# Labels are stored as a single byte in the hex tree
MAX_LABELS = 256

# Binary record widths (little-endian u64)
CELL_RECORD_SIZE = 8
LUT_POINTER_SIZE = 8

# gzip read size; kept a multiple of CELL_RECORD_SIZE
READ_CHUNK_BYTES = 1 << 16

# Region names come from the file base name up to the first delimiter
REGION_NAME_DELIMITER = "."

# Worker threads for geometry rasterization
try:
    DEFAULT_WORKERS = int(os.environ.get("REGIONTREE_WORKERS", "0")) or (os.cpu_count() or 4)
except ValueError:
    DEFAULT_WORKERS = os.cpu_count() or 4

DEFAULT_LOG_LEVEL = os.environ.get("REGIONTREE_LOG_LEVEL", "INFO")
