"""
Sparse Voxel Grid

In-memory form of a KV6 sprite. Only solid positions are stored: the grid
keeps one z-sorted list of Voxels per (x, y) column, so memory scales with
the number of voxels rather than the volume of the bounding box.

Coordinate system: x and y span the sprite footprint, z is the height
within a column. KV6 producers treat z = 0 as the top.
"""

from bisect import bisect_left
from dataclasses import dataclass, field, replace
from typing import Iterable, Iterator, List, Optional, Tuple

import numpy as np

from .errors import OutOfBounds
from .header import to_float32_pivot, validate_extents
from .voxel import FACE_OFFSETS, VISIBILITY_MASK, Voxel


def _z_key(voxel: Voxel) -> int:
    return voxel.z


def _check_byte(name: str, value: int):
    if not 0 <= value <= 255:
        raise ValueError(f"{name} must be in [0, 255], got {value}")


@dataclass
class SparseVoxelGrid:
    """
    Column-indexed sparse voxel storage.

    Usage:
        grid = SparseVoxelGrid(8, 8, 16, pivot=(4.0, 4.0, 15.0))
        grid.set_voxel(1, 2, 3, (255, 0, 0), normal_index=12)
        grid.recompute_visibility()
    """

    size_x: int
    size_y: int
    size_z: int
    pivot: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    _columns: List[List[List[Voxel]]] = field(init=False, repr=False)

    def __post_init__(self):
        validate_extents(self.size_x, self.size_y, self.size_z)
        self.pivot = to_float32_pivot(self.pivot)
        self._columns = [
            [[] for _ in range(self.size_y)]
            for _ in range(self.size_x)
        ]

    @property
    def shape(self) -> Tuple[int, int, int]:
        """Grid dimensions (x, y, z)."""
        return (self.size_x, self.size_y, self.size_z)

    def _in_bounds(self, x: int, y: int, z: int) -> bool:
        return (
            0 <= x < self.size_x and
            0 <= y < self.size_y and
            0 <= z < self.size_z
        )

    def _require_bounds(self, x: int, y: int, z: int = 0):
        if not self._in_bounds(x, y, z):
            raise OutOfBounds(
                f"Position ({x}, {y}, {z}) outside grid {self.shape}"
            )

    def _find(self, column: List[Voxel], z: int) -> Tuple[int, bool]:
        """Return (insertion index, found) for z in a sorted column."""
        i = bisect_left(column, z, key=_z_key)
        return i, i < len(column) and column[i].z == z

    def set_voxel(
        self,
        x: int,
        y: int,
        z: int,
        color: Tuple[int, int, int],
        visibility: int = 0,
        normal_index: int = 0
    ) -> Voxel:
        """
        Insert a voxel, replacing any voxel already at (x, y, z).

        Args:
            x, y, z: Voxel coordinates
            color: (r, g, b), each 0-255
            visibility: 6-bit Face mask
            normal_index: Lighting-normal index, 0-255

        Returns:
            The stored Voxel

        Raises:
            OutOfBounds: Coordinates outside the grid extents
            ValueError: Color, visibility or normal index out of range
        """
        self._require_bounds(x, y, z)
        r, g, b = color
        for name, value in (("red", r), ("green", g), ("blue", b),
                            ("normal_index", normal_index)):
            _check_byte(name, value)
        if not 0 <= visibility <= VISIBILITY_MASK:
            raise ValueError(f"visibility must be in [0, 63], got {visibility}")

        voxel = Voxel(z, (r, g, b), visibility, normal_index)
        column = self._columns[x][y]
        i, found = self._find(column, z)
        if found:
            column[i] = voxel
        else:
            column.insert(i, voxel)
        return voxel

    def get_voxel(self, x: int, y: int, z: int) -> Optional[Voxel]:
        """
        Look up the voxel at (x, y, z).

        Returns:
            The Voxel, or None if the position is empty

        Raises:
            OutOfBounds: Coordinates outside the grid extents
        """
        self._require_bounds(x, y, z)
        column = self._columns[x][y]
        i, found = self._find(column, z)
        return column[i] if found else None

    def remove_voxel(self, x: int, y: int, z: int) -> bool:
        """Remove the voxel at (x, y, z). Returns False if it was empty."""
        self._require_bounds(x, y, z)
        column = self._columns[x][y]
        i, found = self._find(column, z)
        if found:
            del column[i]
        return found

    def is_solid(self, x: int, y: int, z: int) -> bool:
        """Check if a voxel exists. Out-of-grid positions are never solid."""
        if not self._in_bounds(x, y, z):
            return False
        return self._find(self._columns[x][y], z)[1]

    def column(self, x: int, y: int) -> Tuple[Voxel, ...]:
        """Voxels of column (x, y) in ascending z order."""
        self._require_bounds(x, y)
        return tuple(self._columns[x][y])

    @classmethod
    def _from_columns(
        cls,
        shape: Tuple[int, int, int],
        pivot: Tuple[float, float, float],
        columns: Iterable[Tuple[int, int, List[Voxel]]]
    ) -> "SparseVoxelGrid":
        # Caller guarantees every column is in bounds and strictly z-ascending
        grid = cls(*shape, pivot=pivot)
        for x, y, voxels in columns:
            grid._columns[x][y] = list(voxels)
        return grid

    def count_voxels(self) -> int:
        """Count the number of solid voxels."""
        return sum(len(column) for slab in self._columns for column in slab)

    def iterate_voxels(self) -> Iterator[Tuple[int, int, Voxel]]:
        """
        Iterate over all voxels in column-major order.

        Yields:
            Tuples of (x, y, voxel)
        """
        for x, slab in enumerate(self._columns):
            for y, column in enumerate(slab):
                for voxel in column:
                    yield x, y, voxel

    def recompute_visibility(self):
        """
        Rebuild every voxel's visibility mask from its six neighbours.

        A face is visible when the adjacent position is empty or outside
        the grid. Z neighbours are the adjacent entries of the same sorted
        column; X and Y neighbours are a binary search in the next column.
        """
        for x, slab in enumerate(self._columns):
            for y, column in enumerate(slab):
                for i, voxel in enumerate(column):
                    mask = 0
                    for face, dx, dy, dz in FACE_OFFSETS:
                        if dz < 0:
                            solid = i > 0 and column[i - 1].z == voxel.z - 1
                        elif dz > 0:
                            solid = i + 1 < len(column) and column[i + 1].z == voxel.z + 1
                        else:
                            solid = self.is_solid(x + dx, y + dy, voxel.z)
                        if not solid:
                            mask |= face
                    column[i] = replace(voxel, visibility=int(mask))

    def to_sparse(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """
        Convert to flat arrays.

        Returns:
            Tuple of (coords, colors, visibility, normals) where:
            - coords: Array of shape (N, 3) with xyz indices
            - colors: Array of shape (N, 3) with RGB values
            - visibility: Array of shape (N,) with face masks
            - normals: Array of shape (N,) with normal indices
        """
        n = self.count_voxels()
        coords = np.zeros((n, 3), dtype=np.int32)
        colors = np.zeros((n, 3), dtype=np.uint8)
        visibility = np.zeros(n, dtype=np.uint8)
        normals = np.zeros(n, dtype=np.uint8)

        for i, (x, y, voxel) in enumerate(self.iterate_voxels()):
            coords[i] = (x, y, voxel.z)
            colors[i] = voxel.color
            visibility[i] = voxel.visibility
            normals[i] = voxel.normal_index

        return coords, colors, visibility, normals

    @classmethod
    def from_sparse(
        cls,
        shape: Tuple[int, int, int],
        coords: np.ndarray,
        colors: np.ndarray,
        normals: Optional[np.ndarray] = None,
        pivot: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    ) -> "SparseVoxelGrid":
        """
        Build a grid from flat arrays. Visibility is recomputed.

        Args:
            shape: Grid dimensions (x, y, z)
            coords: Array of shape (N, 3) with xyz indices
            colors: Array of shape (N, 3) or (N, 4); alpha is ignored
            normals: Optional array of shape (N,) with normal indices
            pivot: Sprite pivot
        """
        grid = cls(*shape, pivot=pivot)
        for i, (x, y, z) in enumerate(np.asarray(coords)):
            r, g, b = (int(c) for c in colors[i][:3])
            normal = int(normals[i]) if normals is not None else 0
            grid.set_voxel(int(x), int(y), int(z), (r, g, b), normal_index=normal)
        grid.recompute_visibility()
        return grid

    def to_dense(self) -> np.ndarray:
        """
        Expand to a dense RGBA array of shape (size_x, size_y, size_z, 4).

        Solid voxels get alpha 255, empty cells are all zero.
        """
        data = np.zeros((self.size_x, self.size_y, self.size_z, 4), dtype=np.uint8)
        for x, y, voxel in self.iterate_voxels():
            data[x, y, voxel.z, :3] = voxel.color
            data[x, y, voxel.z, 3] = 255
        return data

    @classmethod
    def from_dense(
        cls,
        data: np.ndarray,
        pivot: Optional[Tuple[float, float, float]] = None
    ) -> "SparseVoxelGrid":
        """
        Build a grid from a dense RGBA array; alpha > 0 marks a solid voxel.

        Args:
            data: Array of shape (X, Y, Z, 4)
            pivot: Sprite pivot, defaults to the footprint center at the bottom
        """
        data = np.asarray(data)
        if data.ndim != 4 or data.shape[3] != 4:
            raise ValueError(f"Expected RGBA array of shape (X, Y, Z, 4), got {data.shape}")

        shape = tuple(int(s) for s in data.shape[:3])
        if pivot is None:
            pivot = (shape[0] / 2.0, shape[1] / 2.0, float(shape[2] - 1))

        coords = np.argwhere(data[:, :, :, 3] > 0)
        colors = data[data[:, :, :, 3] > 0]
        return cls.from_sparse(shape, coords, colors, pivot=pivot)

    def copy(self) -> "SparseVoxelGrid":
        """Copy of the grid. Voxels are immutable and shared."""
        return SparseVoxelGrid._from_columns(
            self.shape,
            self.pivot,
            self._iter_columns(),
        )

    def _iter_columns(self) -> Iterator[Tuple[int, int, List[Voxel]]]:
        for x, slab in enumerate(self._columns):
            for y, column in enumerate(slab):
                if column:
                    yield x, y, column

    def __eq__(self, other) -> bool:
        if not isinstance(other, SparseVoxelGrid):
            return NotImplemented
        return (
            self.shape == other.shape and
            self.pivot == other.pivot and
            self._columns == other._columns
        )
