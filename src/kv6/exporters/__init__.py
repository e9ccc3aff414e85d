"""
Export modules for other voxel formats.

Supported formats:
- MagicaVoxel (.vox)
"""

from .vox_exporter import VoxExporter, build_palette

__all__ = ["VoxExporter", "build_palette"]
