"""
Command-Line Interface for the KV6 codec

Usage:
    kv6 info sprite.kv6
    kv6 vox sprite.kv6 -o sprite.vox
    kv6 fix-vis sprite.kv6 -o fixed.kv6
"""

import argparse
import sys
import time
from pathlib import Path
from typing import List, Optional

from . import __version__
from .codec import load, save
from .exporters import VoxExporter
from .grid import SparseVoxelGrid


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="kv6",
        description="KV6 voxel sprite tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  kv6 info grenade.kv6
      Print extents, pivot and voxel statistics

  kv6 vox grenade.kv6 -o grenade.vox
      Convert to MagicaVoxel format

  kv6 fix-vis edited.kv6 -o edited.kv6
      Recompute face visibility masks and re-encode
        """
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output with timings and tracebacks"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    info = subparsers.add_parser("info", help="Print sprite statistics")
    info.add_argument("input", help="Input .kv6 file")

    vox = subparsers.add_parser("vox", help="Convert to MagicaVoxel .vox")
    vox.add_argument("input", help="Input .kv6 file")
    vox.add_argument("-o", "--output", help="Output .vox path (default: input with .vox suffix)")
    vox.add_argument(
        "--no-flip-z",
        action="store_true",
        help="Keep KV6 z orientation (z = 0 at the top)"
    )

    fix = subparsers.add_parser("fix-vis", help="Recompute visibility masks")
    fix.add_argument("input", help="Input .kv6 file")
    fix.add_argument("-o", "--output", help="Output .kv6 path (default: overwrite input)")

    return parser


def print_info(grid: SparseVoxelGrid):
    """Print a summary of a decoded sprite."""
    column_sizes = [
        len(grid.column(x, y))
        for x in range(grid.size_x)
        for y in range(grid.size_y)
    ]
    filled = [n for n in column_sizes if n]

    print(f"Grid size: {grid.shape}")
    print(f"Pivot: ({grid.pivot[0]:g}, {grid.pivot[1]:g}, {grid.pivot[2]:g})")
    print(f"Voxels: {grid.count_voxels()}")
    print(f"Columns: {len(filled)} of {len(column_sizes)} occupied")
    if filled:
        print(f"Longest column: {max(filled)}")


def run_info(args) -> int:
    grid = load(args.input)
    print_info(grid)
    return 0


def run_vox(args) -> int:
    input_path = Path(args.input)
    output_path = Path(args.output) if args.output else input_path.with_suffix(".vox")

    grid = load(input_path)
    VoxExporter(flip_z=not args.no_flip_z).export(grid, output_path)

    if args.verbose:
        print(f"Exported: {output_path}")
    return 0


def run_fix_visibility(args) -> int:
    input_path = Path(args.input)
    output_path = Path(args.output) if args.output else input_path

    grid = load(input_path)
    grid.recompute_visibility()
    save(grid, output_path)

    if args.verbose:
        print(f"Recomputed visibility for {grid.count_voxels()} voxels")
        print(f"Saved: {output_path}")
    return 0


COMMANDS = {
    "info": run_info,
    "vox": run_vox,
    "fix-vis": run_fix_visibility,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not Path(args.input).exists():
        print(f"Error: Input file not found: {args.input}", file=sys.stderr)
        return 1

    start_time = time.time()

    try:
        result = COMMANDS[args.command](args)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1

    if args.verbose:
        print(f"\nCompleted in {time.time() - start_time:.2f}s")
    return result


if __name__ == "__main__":
    sys.exit(main())
