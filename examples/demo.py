#!/usr/bin/env python3
"""
KV6 Codec Demo Script

This script demonstrates the codec end to end by:
1. Building a synthetic sprite (no sample files needed)
2. Computing visibility masks
3. Encoding to KV6 bytes and decoding them back
4. Exporting to MagicaVoxel .vox

Run with: python examples/demo.py
"""

import sys
import time
from pathlib import Path

import numpy as np

# Add src to path for development
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import kv6
from kv6.columns import ColumnIndex
from kv6.exporters import VoxExporter


def create_test_sphere(size: int = 16) -> kv6.SparseVoxelGrid:
    """
    Create a solid sphere sprite shaded along z.

    Returns:
        SparseVoxelGrid with its pivot at the sphere center
    """
    center = (size - 1) / 2.0
    radius = size / 2.0 - 1

    xs, ys, zs = np.indices((size, size, size))
    dist = np.sqrt((xs - center) ** 2 + (ys - center) ** 2 + (zs - center) ** 2)
    solid = dist < radius

    rgba = np.zeros((size, size, size, 4), dtype=np.uint8)
    shade = (255 * (1 - zs / size)).astype(np.uint8)
    rgba[..., 0] = shade
    rgba[..., 1] = 96
    rgba[..., 2] = 255 - shade
    rgba[..., 3] = np.where(solid, 255, 0)

    return kv6.SparseVoxelGrid.from_dense(rgba, pivot=(center, center, center))


def main():
    output_dir = Path(__file__).parent / "output"
    output_dir.mkdir(exist_ok=True)

    print("=" * 50)
    print("KV6 Codec Demo")
    print("=" * 50)

    grid = create_test_sphere(16)
    print(f"\nGrid size: {grid.shape}")
    print(f"Voxels: {grid.count_voxels()}")

    start = time.time()
    data = kv6.encode(grid)
    encode_time = time.time() - start

    start = time.time()
    decoded = kv6.decode(data)
    decode_time = time.time() - start

    print(f"\nEncoded size: {len(data)} bytes")
    print(f"Dense RGBA size: {grid.to_dense().nbytes} bytes")
    print(f"Encode: {encode_time * 1000:.1f} ms, decode: {decode_time * 1000:.1f} ms")
    print(f"Round-trip identical: {decoded == grid}")

    index, _ = ColumnIndex.from_grid(decoded)
    print(f"Longest column: {int(index.xy_lengths.max())} voxels")

    hidden = sum(1 for _, _, v in decoded.iterate_voxels() if v.visibility == 0)
    print(f"Fully hidden voxels: {hidden}")

    kv6_path = output_dir / "sphere.kv6"
    kv6.save(decoded, kv6_path)
    print(f"\nSaved: {kv6_path}")

    vox_path = output_dir / "sphere.vox"
    VoxExporter().export(decoded, vox_path)
    print(f"Exported: {vox_path}")


if __name__ == "__main__":
    main()
