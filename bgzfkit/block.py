"""Decompressed BGZF data blocks and the block cache protocol."""

from __future__ import annotations

from typing import Optional, Protocol, Tuple, runtime_checkable

from .chunks import Offset
from .format import (
    MAX_BLOCK_SIZE,
    BgzfError,
    BlockOverflowError,
    GzipHeader,
    expected_member_size,
)

__all__ = ["Block", "Cache", "Wrapper"]


class Block:
    """The decompressed data of one BGZF member, with its read position."""

    def __init__(self, owner: object = None) -> None:
        self._owner = owner
        self._used = False
        self._base = 0
        self._header = GzipHeader()
        self._magic = False
        self._offset = Offset()
        self._data: Optional[bytes] = None
        self._pos = 0

    @property
    def base(self) -> int:
        """File offset of the gzip member the data came from."""
        return self._base

    @property
    def used(self) -> bool:
        """Whether any byte has been read from the block."""
        return self._used

    @property
    def header(self) -> GzipHeader:
        """Header of the gzip member the data came from."""
        return self._header

    @property
    def is_magic(self) -> bool:
        """Whether the block is a BGZF EOF marker block."""
        return self._magic

    @property
    def has_data(self) -> bool:
        """Whether the block holds decompressed data."""
        return self._data is not None

    def _advance(self, n: int) -> None:
        self._offset = Offset(self._offset.file, (self._offset.block + n) & 0xFFFF)

    def read(self, size: int = -1) -> bytes:
        """Read up to size bytes; all remaining bytes if size is negative."""
        if self._data is None or self._pos >= len(self._data):
            return b""
        end = len(self._data) if size < 0 else min(len(self._data), self._pos + size)
        out = self._data[self._pos:end]
        self._pos = end
        if out:
            self._advance(len(out))
            self._used = True
        return out

    def read_byte(self) -> int:
        """Read one byte, raising EOFError when the block is exhausted."""
        if self._data is None or self._pos >= len(self._data):
            raise EOFError("bgzf: end of block")
        b = self._data[self._pos]
        self._pos += 1
        self._advance(1)
        self._used = True
        return b

    def seek(self, offset: int) -> None:
        """Move the read position to offset from the start of the block data."""
        if self._data is None:
            raise BgzfError("bgzf: seek on block without data")
        if offset < 0:
            raise ValueError("bgzf: negative position")
        self._pos = offset
        self._offset = Offset(self._offset.file, offset & 0xFFFF)

    def fill(self, data: bytes) -> None:
        """Set the decompressed data held by the block."""
        data = bytes(data)
        if len(data) > MAX_BLOCK_SIZE:
            raise BlockOverflowError()
        self._data = data
        self._pos = 0
        self._magic = self._magic and len(data) == 0

    def __len__(self) -> int:
        if self._data is None:
            return 0
        return max(0, len(self._data) - self._pos)

    def set_base(self, base: int) -> None:
        """Set the member's file offset and reset the virtual offset to it."""
        self._base = base
        self._offset = Offset(file=base)

    def set_header(self, header: GzipHeader) -> None:
        """Set the member header, noting whether it is the EOF marker."""
        self._header = header
        self._magic = header.is_magic()

    def set_owner(self, owner: object) -> None:
        """Hand the block to owner, clearing its data and position."""
        self._owner = owner
        self._used = False
        self._base = -1
        self._header = GzipHeader()
        self._offset = Offset()
        self._data = None
        self._pos = 0

    def owned_by(self, owner: object) -> bool:
        """Return whether the block belongs to owner."""
        return self._owner is owner

    def next_base(self) -> int:
        """Return the expected file offset of the next member, or -1."""
        size = expected_member_size(self._header)
        if size == -1:
            return -1
        return self._base + size

    def tx_offset(self) -> Offset:
        """Return the current virtual offset."""
        return self._offset


@runtime_checkable
class Cache(Protocol):
    """A store of blocks keyed by base offset."""

    def get(self, base: int) -> Optional[Block]:
        """Remove and return the block with the given base, or None."""

    def put(self, block: Block) -> Tuple[Optional[Block], bool]:
        """Insert block, returning the evicted block and whether block was kept."""

    def peek(self, base: int) -> Tuple[bool, int]:
        """Return whether a block for base is held, and the next base or -1."""


@runtime_checkable
class Wrapper(Protocol):
    """A cache that modifies blocks when they are created."""

    def wrap(self, block: Block) -> Block:
        """Return the block to use in place of block."""