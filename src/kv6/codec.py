"""
KV6 Encode / Decode

On-disk layout (all little-endian):

    header        32 bytes            see header.py
    voxels        N x 8 bytes         see voxel.py, column-major
    x-table       size_x x uint32
    xy-table      size_x * size_y x uint16

decode() is all-or-nothing: any structural problem raises a Kv6Error and
no partial grid is returned.
"""

import warnings
from pathlib import Path
from typing import Union

from .columns import ColumnIndex, X_TABLE_DTYPE, XY_TABLE_DTYPE
from .cursor import ByteReader, ByteWriter, BytesLike
from .errors import DuplicateColumnPosition, OutOfBounds, UnexpectedEof
from .grid import SparseVoxelGrid
from .header import Header
from .voxel import VOXEL_RECORD_SIZE, decode_voxel_stream, encode_voxel_stream


def read_header(data: BytesLike) -> Header:
    """Decode only the 32-byte header of a KV6 buffer."""
    return Header.decode(ByteReader(data))


def decode(data: BytesLike) -> SparseVoxelGrid:
    """
    Decode a KV6 buffer into a SparseVoxelGrid.

    Args:
        data: Complete file contents

    Returns:
        The decoded grid

    Raises:
        UnexpectedEof: Buffer shorter than the declared structure
        BadMagic: Wrong format tag
        InvalidExtents: Non-positive or oversized dimension
        InconsistentOffsets: Offset tables disagree with each other or the header
        OutOfBounds: A voxel's z lies outside size_z
        DuplicateColumnPosition: Two voxels share one position
    """
    reader = ByteReader(data)
    header = Header.decode(reader)
    size_x, size_y, size_z = header.shape

    needed = (
        header.voxel_count * VOXEL_RECORD_SIZE +
        size_x * 4 +
        size_x * size_y * 2
    )
    if needed > reader.remaining:
        raise UnexpectedEof(
            f"KV6 body needs {needed} bytes after offset {reader.offset}, "
            f"only {reader.remaining} available"
        )

    voxels = decode_voxel_stream(reader, header.voxel_count)
    x_table = reader.read_array(X_TABLE_DTYPE, size_x)
    xy_table = reader.read_array(XY_TABLE_DTYPE, size_x * size_y)

    if reader.remaining:
        warnings.warn(
            f"Ignoring {reader.remaining} trailing bytes after KV6 offset tables"
        )

    index = ColumnIndex.from_tables(x_table, xy_table, size_x, size_y, header.voxel_count)

    columns = []
    for x, y, column in index.iter_columns(voxels):
        column = sorted(column, key=lambda v: v.z)
        for prev, voxel in zip(column, column[1:]):
            if prev.z == voxel.z:
                raise DuplicateColumnPosition(
                    f"Two voxels at ({x}, {y}, {voxel.z})"
                )
        if column[-1].z >= size_z:
            raise OutOfBounds(
                f"Voxel at ({x}, {y}, {column[-1].z}) outside grid {header.shape}"
            )
        columns.append((x, y, column))

    return SparseVoxelGrid._from_columns(header.shape, header.pivot, columns)


def encode(grid: SparseVoxelGrid) -> bytes:
    """
    Encode a SparseVoxelGrid to KV6 bytes.

    Offset tables are derived from the grid's columns; nothing is cached.
    """
    index, voxels = ColumnIndex.from_grid(grid)
    header = Header(
        grid.size_x,
        grid.size_y,
        grid.size_z,
        pivot=grid.pivot,
        voxel_count=len(voxels),
    )

    writer = ByteWriter()
    header.encode(writer)
    encode_voxel_stream(writer, voxels)
    index.write_tables(writer)
    return writer.getvalue()


def load(file_path: Union[str, Path]) -> SparseVoxelGrid:
    """Read and decode a .kv6 file."""
    return decode(Path(file_path).read_bytes())


def save(grid: SparseVoxelGrid, file_path: Union[str, Path]):
    """Encode a grid and write it to a .kv6 file."""
    Path(file_path).write_bytes(encode(grid))
