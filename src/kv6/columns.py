"""
Column Offset Index

KV6 stores every voxel once, in a single flat stream ordered column-major
(x outer, y inner, z ascending). Two redundant count tables follow the
stream and make each column addressable without scanning:

    x-table   size_x uint32            voxels per x-slab
    xy-table  size_x * size_y uint16   voxels per (x, y) column

A running prefix sum over the xy-table gives the offset of each column
in the stream. The same slab boundaries can be derived from the x-table,
and the last boundary must equal the header voxel count. ColumnIndex
reconciles the three sources and refuses to guess when they disagree.
"""

from dataclasses import dataclass
from typing import Iterator, List, Sequence, Tuple

import numpy as np

from .errors import InconsistentOffsets
from .voxel import Voxel


X_TABLE_DTYPE = '<u4'
XY_TABLE_DTYPE = '<u2'


@dataclass
class ColumnIndex:
    """
    Per-column (start, count) lookup into a flat voxel stream.

    Attributes:
        x_lengths: Array of shape (size_x,), voxels per slab
        xy_lengths: Array of shape (size_x, size_y), voxels per column
        starts: Array of shape (size_x, size_y), stream offset of each column
    """

    x_lengths: np.ndarray
    xy_lengths: np.ndarray
    starts: np.ndarray

    @property
    def size_x(self) -> int:
        return self.xy_lengths.shape[0]

    @property
    def size_y(self) -> int:
        return self.xy_lengths.shape[1]

    @property
    def total(self) -> int:
        """Total number of voxels indexed."""
        return int(self.x_lengths.sum())

    def column_range(self, x: int, y: int) -> Tuple[int, int]:
        """Return (start, count) of column (x, y) in the stream."""
        return int(self.starts[x, y]), int(self.xy_lengths[x, y])

    def column_slice(self, x: int, y: int) -> slice:
        start, count = self.column_range(x, y)
        return slice(start, start + count)

    def iter_columns(self, stream: Sequence) -> Iterator[Tuple[int, int, Sequence]]:
        """
        Split a flat stream into its non-empty columns.

        Yields:
            (x, y, items) for every column with at least one voxel
        """
        for x, y in zip(*np.nonzero(self.xy_lengths)):
            yield int(x), int(y), stream[self.column_slice(x, y)]

    @classmethod
    def from_tables(
        cls,
        x_table: np.ndarray,
        xy_table: np.ndarray,
        size_x: int,
        size_y: int,
        voxel_count: int
    ) -> "ColumnIndex":
        """
        Build the index from decoded tables, cross-checking all three counts.

        Args:
            x_table: size_x slab counts
            xy_table: size_x * size_y column counts, x-major / y-minor
            size_x, size_y: Grid extents
            voxel_count: Total from the header

        Raises:
            InconsistentOffsets: If the tables disagree with each other or
                with the header total
        """
        x_lengths = np.asarray(x_table, dtype=np.int64).ravel()
        xy_flat = np.asarray(xy_table, dtype=np.int64).ravel()

        if x_lengths.size != size_x or xy_flat.size != size_x * size_y:
            raise InconsistentOffsets(
                f"Table sizes ({x_lengths.size}, {xy_flat.size}) do not match "
                f"extents ({size_x}, {size_y})"
            )

        xy_lengths = xy_flat.reshape(size_x, size_y)

        # Offsets of every column in x-major / y-minor order
        column_ends = np.cumsum(xy_flat)
        starts = (column_ends - xy_flat).reshape(size_x, size_y)

        # Slab boundaries from both tables must line up
        slab_ends_xy = column_ends.reshape(size_x, size_y)[:, -1]
        slab_ends_x = np.cumsum(x_lengths)
        mismatched = np.nonzero(slab_ends_xy != slab_ends_x)[0]
        if mismatched.size:
            x = int(mismatched[0])
            raise InconsistentOffsets(
                f"Slab x={x}: x-table gives {int(x_lengths[x])} voxels, "
                f"xy-table gives {int(xy_lengths[x].sum())}"
            )

        table_total = int(slab_ends_x[-1])
        if table_total != voxel_count:
            raise InconsistentOffsets(
                f"Offset tables hold {table_total} voxels, header declares {voxel_count}"
            )

        return cls(x_lengths, xy_lengths, starts)

    @classmethod
    def from_grid(cls, grid) -> Tuple["ColumnIndex", List[Voxel]]:
        """
        Derive the index and the column-major voxel stream from a grid.

        Args:
            grid: SparseVoxelGrid instance

        Returns:
            Tuple of (index, voxels) where voxels is ordered x-major,
            y-minor, z ascending
        """
        size_x, size_y, _ = grid.shape
        xy_lengths = np.zeros((size_x, size_y), dtype=np.int64)
        stream: List[Voxel] = []

        for x in range(size_x):
            for y in range(size_y):
                column = grid.column(x, y)
                if not column:
                    continue
                xy_lengths[x, y] = len(column)
                stream.extend(sorted(column, key=lambda v: v.z))

        x_lengths = xy_lengths.sum(axis=1)
        column_ends = np.cumsum(xy_lengths.ravel())
        starts = (column_ends - xy_lengths.ravel()).reshape(size_x, size_y)

        return cls(x_lengths, xy_lengths, starts), stream

    def write_tables(self, writer):
        """Append the x-table then the xy-table."""
        writer.write_array(self.x_lengths, X_TABLE_DTYPE)
        writer.write_array(self.xy_lengths.ravel(), XY_TABLE_DTYPE)
