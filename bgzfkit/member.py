"""Reading single BGZF gzip members from a byte-counting stream."""

from __future__ import annotations

import io
import struct
import zlib
from dataclasses import dataclass

from .format import (
    MAX_BLOCK_SIZE,
    BlockOverflowError,
    CorruptBlockError,
    GzipHeader,
    NoBlockSizeError,
    NotASeekerError,
    expected_member_size,
)

__all__ = ["CountingStream", "Member", "read_member"]

_FHCRC = 0x02
_FEXTRA = 0x04
_FNAME = 0x08
_FCOMMENT = 0x10


class CountingStream:
    """A binary stream wrapper that tracks the offset of consumed bytes."""

    def __init__(self, stream) -> None:
        if isinstance(stream, CountingStream):
            raise TypeError("bgzf: illegal use of internal type")
        self._stream = stream
        self._off = 0

    @property
    def stream(self):
        """The wrapped stream."""
        return self._stream

    def read(self, size: int = -1) -> bytes:
        """Read up to size bytes, fewer only at end of stream; all if size < 0."""
        if size < 0:
            data = self._stream.read() or b""
        else:
            parts = []
            remaining = size
            while remaining > 0:
                piece = self._stream.read(remaining)
                if not piece:
                    break
                parts.append(piece)
                remaining -= len(piece)
            data = b"".join(parts)
        data = bytes(data)
        self._off += len(data)
        return data

    def offset(self) -> int:
        """Return the current offset in the underlying stream."""
        return self._off

    def seek(self, offset: int) -> None:
        """Move the underlying stream to offset from its start."""
        seekable = getattr(self._stream, "seekable", None)
        if not callable(seekable) or not seekable():
            raise NotASeekerError()
        self._stream.seek(offset, io.SEEK_SET)
        self._off = offset


@dataclass(frozen=True)
class Member:
    """A decompressed BGZF gzip member."""

    base: int
    header: GzipHeader
    data: bytes
    size: int

    @property
    def next_base(self) -> int:
        """File offset of the following member."""
        return self.base + self.size


def _read_exact(stream: CountingStream, n: int) -> bytes:
    data = stream.read(n)
    if len(data) != n:
        raise CorruptBlockError("bgzf: unexpected end of member")
    return data


def _read_cstring(stream: CountingStream) -> bytes:
    out = bytearray()
    while True:
        b = stream.read(1)
        if not b:
            raise CorruptBlockError("bgzf: unexpected end of member")
        out += b
        if b == b"\x00":
            return bytes(out)


def _inflate(body: bytes) -> bytes:
    d = zlib.decompressobj(-15)
    try:
        data = d.decompress(body, MAX_BLOCK_SIZE + 1)
    except zlib.error as exc:
        raise CorruptBlockError(f"bgzf: invalid deflate data: {exc}") from exc
    if len(data) > MAX_BLOCK_SIZE:
        raise BlockOverflowError()
    if not d.eof:
        raise CorruptBlockError("bgzf: truncated deflate data")
    trailer = d.unused_data
    if len(trailer) != 8:
        raise CorruptBlockError("bgzf: invalid gzip trailer")
    crc, isize = struct.unpack("<II", trailer)
    if crc != zlib.crc32(data) or isize != len(data) & 0xFFFFFFFF:
        raise CorruptBlockError("bgzf: invalid checksum")
    return data


def read_member(stream) -> Member:
    """Read and decompress the gzip member at the stream's current offset.

    Raises EOFError at a clean end of stream or for a member with no data
    following its header, NoBlockSizeError when the BGZF block size field is
    absent, and CorruptBlockError for malformed members.
    """
    if not isinstance(stream, CountingStream):
        stream = CountingStream(stream)
    base = stream.offset()

    fixed = stream.read(10)
    if not fixed:
        raise EOFError("bgzf: end of stream")
    if len(fixed) < 10:
        raise CorruptBlockError("bgzf: truncated gzip header")
    id1, id2, cm, flags, mtime, _xfl, os_ = struct.unpack("<BBBBIBB", fixed)
    if id1 != 0x1F or id2 != 0x8B or cm != 8:
        raise CorruptBlockError("bgzf: invalid gzip header")

    raw = [fixed]
    extra = b""
    name = comment = ""
    if flags & _FEXTRA:
        xlen_raw = _read_exact(stream, 2)
        extra = _read_exact(stream, int.from_bytes(xlen_raw, "little"))
        raw += [xlen_raw, extra]
    if flags & _FNAME:
        field = _read_cstring(stream)
        raw.append(field)
        name = field[:-1].decode("latin-1")
    if flags & _FCOMMENT:
        field = _read_cstring(stream)
        raw.append(field)
        comment = field[:-1].decode("latin-1")
    if flags & _FHCRC:
        want = int.from_bytes(_read_exact(stream, 2), "little")
        if want != zlib.crc32(b"".join(raw)) & 0xFFFF:
            raise CorruptBlockError("bgzf: invalid header checksum")

    header = GzipHeader(name=name, comment=comment, extra=extra, mod_time=mtime, os=os_)
    block_size = expected_member_size(header)
    if block_size < 0:
        raise NoBlockSizeError()
    need = block_size - (stream.offset() - base)
    if need == 0:
        raise EOFError("bgzf: member has no data")
    if need < 0:
        raise CorruptBlockError()

    data = _inflate(_read_exact(stream, need))
    return Member(base=base, header=header, data=data, size=block_size)