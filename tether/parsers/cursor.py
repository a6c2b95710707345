"""
Bounds-Checked Byte Cursor
===========================

Every read the PE decoder performs against the raw image goes through
:class:`ByteCursor`.  Offsets come straight out of attacker-controlled
header fields, so each read validates both the start offset and the end
of the requested range before touching the buffer.

The cursor keeps a reference to the caller's buffer and never copies it
wholesale; only the requested slices are materialised.
"""

from __future__ import annotations

import struct

from tether.core.errors import OutOfBoundsError, UnterminatedStringError


class ByteCursor:
    """Random-access, bounds-checked view over an image buffer.

    Usage::

        cur = ByteCursor(raw_bytes)
        e_lfanew = cur.u32(0x3C)
        name = cur.read_cstring(offset, max_scan=256)
    """

    __slots__ = ("_data", "_size")

    def __init__(self, data: bytes | bytearray) -> None:
        self._data = data
        self._size = len(data)

    def __len__(self) -> int:
        return self._size

    @property
    def size(self) -> int:
        """Length of the underlying buffer in bytes."""
        return self._size

    def check(self, offset: int, length: int) -> None:
        """Raise :class:`OutOfBoundsError` unless ``[offset, offset+length)`` fits."""
        if length < 0 or offset < 0 or offset > self._size:
            raise OutOfBoundsError(
                f"Offset 0x{offset:x} outside image of {self._size} bytes",
                offset=offset,
            )
        if offset + length > self._size:
            raise OutOfBoundsError(
                f"Read of {length} bytes at 0x{offset:x} runs past end of "
                f"image ({self._size} bytes)",
                offset=offset,
            )

    def read(self, offset: int, length: int) -> bytes:
        """Return exactly *length* bytes starting at *offset*."""
        self.check(offset, length)
        return bytes(self._data[offset:offset + length])

    def unpack(self, fmt: str, offset: int) -> tuple:
        """Unpack a :mod:`struct` format at *offset* after a bounds check."""
        self.check(offset, struct.calcsize(fmt))
        return struct.unpack_from(fmt, self._data, offset)

    def u16(self, offset: int) -> int:
        return self.unpack("<H", offset)[0]

    def u32(self, offset: int) -> int:
        return self.unpack("<I", offset)[0]

    def u64(self, offset: int) -> int:
        return self.unpack("<Q", offset)[0]

    def read_cstring(self, offset: int, max_scan: int) -> bytes:
        """Return the bytes from *offset* up to, not including, the next NUL.

        Args:
            offset:   File offset where the string starts.
            max_scan: Maximum number of bytes to examine for the terminator.

        Raises:
            OutOfBoundsError: *offset* lies outside the buffer.
            UnterminatedStringError: No NUL within *max_scan* bytes or
                before the end of the buffer.
        """
        if offset < 0 or offset >= self._size:
            raise OutOfBoundsError(
                f"String offset 0x{offset:x} outside image of {self._size} bytes",
                offset=offset,
            )
        end = min(offset + max_scan, self._size)
        nul = self._data.find(b"\x00", offset, end)
        if nul == -1:
            raise UnterminatedStringError(
                f"No terminator within {end - offset} bytes at 0x{offset:x}",
                offset=offset,
            )
        return bytes(self._data[offset:nul])
