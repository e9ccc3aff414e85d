"""
Voxel Records

Each solid voxel is stored as one 8-byte record:

    red, green, blue   3 x uint8
    reserved           uint8    (ignored on read, written as 0)
    z                  uint16   height within the (x, y) column
    visibility         uint8    low 6 bits, one per face
    normal_index       uint8    index into an external normal table

The record carries no x or y: those come from the column the record
belongs to (see columns.py).
"""

import struct
from dataclasses import dataclass
from enum import IntFlag
from typing import Iterable, List, Tuple

from .cursor import ByteReader, ByteWriter


VOXEL_RECORD = struct.Struct('<BBBBHBB')
VOXEL_RECORD_SIZE = VOXEL_RECORD.size  # 8


class Face(IntFlag):
    """Visibility bits. A set bit means that face borders empty space."""

    NEG_X = 1
    POS_X = 2
    NEG_Y = 4
    POS_Y = 8
    NEG_Z = 16
    POS_Z = 32


VISIBILITY_MASK = 0x3F
ALL_FACES = int(Face.NEG_X | Face.POS_X | Face.NEG_Y | Face.POS_Y | Face.NEG_Z | Face.POS_Z)

# (face, dx, dy, dz) for the six axis neighbours
FACE_OFFSETS: Tuple[Tuple[Face, int, int, int], ...] = (
    (Face.NEG_X, -1, 0, 0),
    (Face.POS_X, 1, 0, 0),
    (Face.NEG_Y, 0, -1, 0),
    (Face.POS_Y, 0, 1, 0),
    (Face.NEG_Z, 0, 0, -1),
    (Face.POS_Z, 0, 0, 1),
)


@dataclass(frozen=True)
class Voxel:
    """
    A single solid voxel. Immutable: grids replace voxels rather than edit them.

    Attributes:
        z: Height within its column
        color: (r, g, b), each 0-255
        visibility: 6-bit Face mask
        normal_index: Opaque lighting-normal index, 0-255
    """

    z: int
    color: Tuple[int, int, int]
    visibility: int = 0
    normal_index: int = 0

    def has_face(self, face: Face) -> bool:
        """True if the given face is marked visible."""
        return bool(self.visibility & face)


def decode_voxel(reader: ByteReader) -> Voxel:
    """Read one 8-byte voxel record."""
    r, g, b, _reserved, z, vis, normal = reader.unpack(VOXEL_RECORD)
    return Voxel(z, (r, g, b), vis & VISIBILITY_MASK, normal)


def encode_voxel(writer: ByteWriter, voxel: Voxel):
    """Write one 8-byte voxel record."""
    r, g, b = voxel.color
    writer.pack(
        VOXEL_RECORD,
        r, g, b, 0,
        voxel.z,
        voxel.visibility & VISIBILITY_MASK,
        voxel.normal_index,
    )


def decode_voxel_stream(reader: ByteReader, count: int) -> List[Voxel]:
    """Read `count` consecutive voxel records."""
    return [decode_voxel(reader) for _ in range(count)]


def encode_voxel_stream(writer: ByteWriter, voxels: Iterable[Voxel]):
    """Write voxel records in the order given."""
    for voxel in voxels:
        encode_voxel(writer, voxel)
