"""
MagicaVoxel .vox Format Exporter

Converts a KV6 sprite to the RIFF-style chunk format used by MagicaVoxel.

File Structure:
- Header: "VOX " (4 bytes) + version (4 bytes, int32)
- MAIN chunk (container)
  - SIZE chunk: dimensions (x, y, z)
  - XYZI chunk: voxel data (x, y, z, color_index per voxel)
  - RGBA chunk: 256-color palette

Limitations:
- Maximum 255 colors (index 0 is air); richer sprites are posterized
- Maximum 256x256x256 dimensions
- Visibility masks and normal indices have no .vox counterpart and are dropped
"""

import struct
from pathlib import Path
from typing import Tuple, Union

import numpy as np


VOX_MAGIC = b'VOX '
VOX_VERSION = 150
VOX_MAX_SIZE = 256
VOX_MAX_COLORS = 255


class VoxChunk:
    """Base class for VOX chunks."""

    def __init__(self, chunk_id: bytes, content: bytes = b''):
        self.chunk_id = chunk_id
        self.content = content
        self.children = b''

    def pack(self) -> bytes:
        return (
            self.chunk_id +
            struct.pack('<II', len(self.content), len(self.children)) +
            self.content +
            self.children
        )


def build_palette(colors: np.ndarray, max_colors: int = VOX_MAX_COLORS) -> Tuple[np.ndarray, np.ndarray]:
    """
    Map RGB colors onto a palette of at most `max_colors` entries.

    Colors are posterized one bit at a time until they fit.

    Args:
        colors: Array of shape (N, 3), uint8

    Returns:
        Tuple of (palette, indices) where palette has shape (M, 3) and
        indices has shape (N,) with values in [0, M)
    """
    colors = np.asarray(colors, dtype=np.uint8).reshape(-1, 3)
    for dropped_bits in range(8):
        keep = np.uint8((0xFF << dropped_bits) & 0xFF)
        palette, indices = np.unique(colors & keep, axis=0, return_inverse=True)
        # One bit per channel always fits (8 colors)
        if len(palette) <= max_colors or dropped_bits == 7:
            break
    return palette, indices.reshape(-1)


class VoxExporter:
    """
    Export a SparseVoxelGrid to MagicaVoxel .vox format.

    Usage:
        exporter = VoxExporter()
        exporter.export(grid, "output.vox")
    """

    def __init__(self, flip_z: bool = True):
        """
        Args:
            flip_z: KV6 z grows downward, MagicaVoxel z grows up. Flip by default.
        """
        self.flip_z = flip_z

    def to_bytes(self, grid) -> bytes:
        """
        Build the complete .vox file contents.

        Args:
            grid: SparseVoxelGrid instance
        """
        if any(s > VOX_MAX_SIZE for s in grid.shape):
            raise ValueError(
                f"VOX format limited to 256x256x256. Grid size: {grid.shape}"
            )

        coords, colors, _, _ = grid.to_sparse()
        if len(coords) == 0:
            raise ValueError("Cannot export empty voxel grid")

        if self.flip_z:
            coords[:, 2] = grid.size_z - 1 - coords[:, 2]

        palette, color_indices = build_palette(colors)

        size_chunk = VoxChunk(b'SIZE', struct.pack('<III', *grid.shape))

        xyzi = np.empty((len(coords), 4), dtype=np.uint8)
        xyzi[:, :3] = coords
        xyzi[:, 3] = color_indices + 1  # index 0 is air
        xyzi_chunk = VoxChunk(b'XYZI', struct.pack('<I', len(coords)) + xyzi.tobytes())

        # RGBA chunk entry i is palette index i + 1
        rgba = np.zeros((256, 4), dtype=np.uint8)
        rgba[:, 3] = 255
        rgba[:len(palette), :3] = palette
        rgba_chunk = VoxChunk(b'RGBA', rgba.tobytes())

        main_chunk = VoxChunk(b'MAIN')
        main_chunk.children = size_chunk.pack() + xyzi_chunk.pack() + rgba_chunk.pack()

        return VOX_MAGIC + struct.pack('<I', VOX_VERSION) + main_chunk.pack()

    def export(self, grid, output_path: Union[str, Path]):
        """Write a SparseVoxelGrid to a .vox file."""
        Path(output_path).write_bytes(self.to_bytes(grid))
