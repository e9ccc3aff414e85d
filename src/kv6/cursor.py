"""
Sequential Byte Cursors

ByteReader walks a read-only buffer front to back, decoding fixed-width
little-endian primitives. ByteWriter appends the same primitives to a
growable buffer.

The KV6 layout never seeks backwards, so neither cursor supports it. The
reader exposes its offset so errors can say where decoding stopped.
"""

import struct
from typing import Tuple, Union

import numpy as np

from .errors import UnexpectedEof


_U8 = struct.Struct('<B')
_I8 = struct.Struct('<b')
_U16 = struct.Struct('<H')
_I16 = struct.Struct('<h')
_U32 = struct.Struct('<I')
_I32 = struct.Struct('<i')
_F32 = struct.Struct('<f')

BytesLike = Union[bytes, bytearray, memoryview]


class ByteReader:
    """
    Little-endian reader over an in-memory buffer.

    Usage:
        reader = ByteReader(data)
        magic = reader.read_bytes(4)
        size_x = reader.read_i32()
    """

    def __init__(self, data: BytesLike, offset: int = 0):
        self._data = memoryview(data).cast('B')
        self._offset = offset

    @property
    def offset(self) -> int:
        """Current read position in bytes."""
        return self._offset

    @property
    def remaining(self) -> int:
        """Number of unread bytes."""
        return max(0, len(self._data) - self._offset)

    def _advance(self, size: int, what: str) -> int:
        start = self._offset
        if size < 0 or start + size > len(self._data):
            raise UnexpectedEof(
                f"Unexpected end of data reading {what} at offset {start}: "
                f"need {size} bytes, {self.remaining} left"
            )
        self._offset = start + size
        return start

    def _read(self, fmt: struct.Struct, what: str):
        start = self._advance(fmt.size, what)
        return fmt.unpack_from(self._data, start)[0]

    def read_u8(self) -> int:
        return self._read(_U8, "u8")

    def read_i8(self) -> int:
        return self._read(_I8, "i8")

    def read_u16(self) -> int:
        return self._read(_U16, "u16")

    def read_i16(self) -> int:
        return self._read(_I16, "i16")

    def read_u32(self) -> int:
        return self._read(_U32, "u32")

    def read_i32(self) -> int:
        return self._read(_I32, "i32")

    def read_f32(self) -> float:
        return self._read(_F32, "f32")

    def read_bytes(self, size: int) -> bytes:
        """Read `size` raw bytes."""
        start = self._advance(size, f"{size} bytes")
        return bytes(self._data[start:start + size])

    def unpack(self, fmt: struct.Struct) -> Tuple:
        """Read one fixed-size record described by a precompiled Struct."""
        start = self._advance(fmt.size, f"{fmt.size}-byte record")
        return fmt.unpack_from(self._data, start)

    def read_array(self, dtype: str, count: int) -> np.ndarray:
        """
        Read `count` consecutive values of a numpy dtype.

        Args:
            dtype: Explicit little-endian dtype string, e.g. '<u4'
            count: Number of elements

        Returns:
            Owned 1-D array (not a view into the buffer)
        """
        dt = np.dtype(dtype)
        start = self._advance(dt.itemsize * count, f"{count} x {dt}")
        return np.frombuffer(self._data, dtype=dt, count=count, offset=start).copy()


class ByteWriter:
    """Little-endian writer that grows its buffer as needed."""

    def __init__(self):
        self._buffer = bytearray()

    @property
    def offset(self) -> int:
        """Number of bytes written so far."""
        return len(self._buffer)

    def write_u8(self, value: int):
        self._buffer += _U8.pack(value)

    def write_i8(self, value: int):
        self._buffer += _I8.pack(value)

    def write_u16(self, value: int):
        self._buffer += _U16.pack(value)

    def write_i16(self, value: int):
        self._buffer += _I16.pack(value)

    def write_u32(self, value: int):
        self._buffer += _U32.pack(value)

    def write_i32(self, value: int):
        self._buffer += _I32.pack(value)

    def write_f32(self, value: float):
        self._buffer += _F32.pack(value)

    def write_bytes(self, data: BytesLike):
        self._buffer += data

    def pack(self, fmt: struct.Struct, *values):
        """Append one fixed-size record described by a precompiled Struct."""
        self._buffer += fmt.pack(*values)

    def write_array(self, values, dtype: str):
        """Append an array-like, converted to the given little-endian dtype."""
        self._buffer += np.ascontiguousarray(values, dtype=np.dtype(dtype)).tobytes()

    def getvalue(self) -> bytes:
        """Return everything written so far."""
        return bytes(self._buffer)
