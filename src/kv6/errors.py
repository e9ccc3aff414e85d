"""
Exception types raised by the KV6 codec.

Every error derives from Kv6Error, which is itself a ValueError so callers
that only care about "bad input" can catch the builtin.
"""


class Kv6Error(ValueError):
    """Base class for all KV6 codec errors."""


class UnexpectedEof(Kv6Error):
    """The buffer ended before the declared structure did."""


class BadMagic(Kv6Error):
    """The 4-byte format tag did not match."""


class InvalidExtents(Kv6Error):
    """A grid dimension is outside the range the format can store."""


class InconsistentOffsets(Kv6Error):
    """The x-table, xy-table and header voxel count disagree."""


class OutOfBounds(Kv6Error):
    """A coordinate lies outside the grid extents."""


class DuplicateColumnPosition(Kv6Error):
    """Two voxel records occupy the same (x, y, z) position."""
