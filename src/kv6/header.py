"""
KV6 Header

The fixed 32-byte preamble of every KV6 file:

    magic        4 bytes   b"Kvxl"
    size_x       int32
    size_y       int32
    size_z       int32
    pivot_x      float32
    pivot_y      float32
    pivot_z      float32
    voxel_count  uint32
"""

from dataclasses import dataclass
from typing import Iterable, Tuple

import numpy as np

from .cursor import ByteReader, ByteWriter
from .errors import BadMagic, InvalidExtents


KV6_MAGIC = b'Kvxl'
HEADER_SIZE = 32

# z-coordinates and per-column counts are stored as uint16
MAX_SIZE_Z = 0xFFFF
MAX_SIZE_XY = 0x7FFFFFFF


def to_float32_pivot(pivot: Iterable[float]) -> Tuple[float, float, float]:
    """
    Narrow a pivot to the values float32 fields can hold.

    Magnitudes beyond float32 range become +/-inf.
    """
    with np.errstate(over="ignore"):
        x, y, z = (float(np.float32(p)) for p in pivot)
    return (x, y, z)


def validate_extents(size_x: int, size_y: int, size_z: int):
    """
    Raise InvalidExtents unless all three dimensions fit the format.

    Args:
        size_x, size_y, size_z: Grid dimensions
    """
    for name, value, upper in (
        ("size_x", size_x, MAX_SIZE_XY),
        ("size_y", size_y, MAX_SIZE_XY),
        ("size_z", size_z, MAX_SIZE_Z),
    ):
        if value < 1 or value > upper:
            raise InvalidExtents(
                f"{name} must be in [1, {upper}], got {value}"
            )


@dataclass
class Header:
    """Grid extents, pivot and total voxel count of a KV6 sprite."""

    size_x: int
    size_y: int
    size_z: int
    pivot: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    voxel_count: int = 0

    @property
    def shape(self) -> Tuple[int, int, int]:
        """Grid dimensions (x, y, z)."""
        return (self.size_x, self.size_y, self.size_z)

    @classmethod
    def decode(cls, reader: ByteReader) -> "Header":
        """
        Read and validate a header.

        Raises:
            BadMagic: Tag is not b"Kvxl"
            InvalidExtents: A dimension is out of range
            UnexpectedEof: Fewer than 32 bytes available
        """
        start = reader.offset
        magic = reader.read_bytes(4)
        if magic != KV6_MAGIC:
            raise BadMagic(
                f"Invalid KV6 data: bad magic {magic!r} at offset {start}"
            )

        size_x = reader.read_i32()
        size_y = reader.read_i32()
        size_z = reader.read_i32()
        validate_extents(size_x, size_y, size_z)

        # Pivot is carried through as-is, NaN and inf included
        pivot = (reader.read_f32(), reader.read_f32(), reader.read_f32())
        voxel_count = reader.read_u32()

        return cls(size_x, size_y, size_z, pivot, voxel_count)

    def encode(self, writer: ByteWriter):
        """Write the header fields in on-disk order."""
        writer.write_bytes(KV6_MAGIC)
        writer.write_i32(self.size_x)
        writer.write_i32(self.size_y)
        writer.write_i32(self.size_z)
        for value in to_float32_pivot(self.pivot):
            writer.write_f32(value)
        writer.write_u32(self.voxel_count)
