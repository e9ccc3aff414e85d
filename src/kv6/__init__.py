"""
KV6 Voxel Sprite Codec
======================

Reads and writes KV6, the sparse voxel sprite format of the Voxlap / Build
engine era, and exposes the sprite as a column-indexed SparseVoxelGrid.

Example Usage:
    import kv6

    grid = kv6.load("grenade.kv6")
    print(grid.shape, grid.count_voxels())

    grid.set_voxel(0, 0, 0, (255, 0, 0), normal_index=3)
    grid.recompute_visibility()
    kv6.save(grid, "edited.kv6")
"""

__version__ = "0.2.0"

from .codec import decode, encode, load, save, read_header
from .grid import SparseVoxelGrid
from .header import Header, KV6_MAGIC
from .voxel import Voxel, Face
from .columns import ColumnIndex
from .errors import (
    Kv6Error,
    UnexpectedEof,
    BadMagic,
    InvalidExtents,
    InconsistentOffsets,
    OutOfBounds,
    DuplicateColumnPosition,
)

__all__ = [
    "decode",
    "encode",
    "load",
    "save",
    "read_header",
    "SparseVoxelGrid",
    "Header",
    "KV6_MAGIC",
    "Voxel",
    "Face",
    "ColumnIndex",
    "Kv6Error",
    "UnexpectedEof",
    "BadMagic",
    "InvalidExtents",
    "InconsistentOffsets",
    "OutOfBounds",
    "DuplicateColumnPosition",
]
