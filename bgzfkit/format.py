"""BGZF format constants, gzip member headers, errors and EOF detection."""

from __future__ import annotations

import errno
import io
import os
from dataclasses import dataclass

BLOCK_SIZE = 0x0FF00
"""The maximum size of an uncompressed input data block."""

MAX_BLOCK_SIZE = 0x10000
"""The maximum size of a compressed output block."""

BGZF_EXTRA = b"BC\x02\x00\x00\x00"
BGZF_EXTRA_PREFIX = BGZF_EXTRA[:4]
MIN_FRAME = 20 + len(BGZF_EXTRA)

MAGIC_BLOCK = (
    b"\x1f\x8b\x08\x04\x00\x00\x00\x00\x00\xff\x06\x00\x42\x43\x02\x00"
    b"\x1b\x00\x03\x00\x00\x00\x00\x00\x00\x00\x00\x00"
)
"""The BGZF end-of-file marker block."""

_MAGIC_EXTRA = b"BC\x02\x00\x1b\x00"


class BgzfError(Exception):
    """Base class for BGZF errors."""

    default_message = "bgzf: error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message if message is not None else self.default_message)


class ClosedWriterError(BgzfError):
    """Raised on use of a closed writer."""

    default_message = "bgzf: use of closed writer"


class CorruptBlockError(BgzfError):
    """Raised when a block is corrupt."""

    default_message = "bgzf: corrupt block"


class BlockOverflowError(BgzfError):
    """Raised when a block exceeds the maximum size."""

    default_message = "bgzf: block overflow"


class NoEndError(BgzfError):
    """Raised when the end of a source cannot be determined."""

    default_message = "bgzf: cannot determine offset from end"


class NotASeekerError(BgzfError):
    """Raised when seeking on a source that cannot seek."""

    default_message = "bgzf: not a seeker"


class ContaminatedCacheError(BgzfError):
    """Raised when a cached block belongs to another reader."""

    default_message = "bgzf: cache owner mismatch"


class NoBlockSizeError(BgzfError):
    """Raised when a gzip member carries no BGZF block size."""

    default_message = "bgzf: could not determine block size"


def compress_bound(src_len: int) -> int:
    """Return the worst-case compressed size of a member holding src_len bytes."""
    return src_len + (src_len >> 12) + (src_len >> 14) + (src_len >> 25) + 13 + MIN_FRAME


if compress_bound(BLOCK_SIZE) > MAX_BLOCK_SIZE:
    raise RuntimeError("bgzf: BLOCK_SIZE too large")


@dataclass
class GzipHeader:
    """The header fields of a gzip member.

    ``mod_time`` is in Unix seconds; zero means unset.
    """

    name: str = ""
    comment: str = ""
    extra: bytes = b""
    mod_time: int = 0
    os: int = 0xFF

    def is_magic(self) -> bool:
        """Return whether this header is that of the BGZF EOF marker block."""
        return (
            self.os == 0xFF
            and self.mod_time == 0
            and self.name == ""
            and self.comment == ""
            and bytes(self.extra) == _MAGIC_EXTRA
        )


def expected_member_size(header: GzipHeader) -> int:
    """Return the size of the BGZF member described by header, or -1 if unknown."""
    extra = bytes(header.extra)
    i = extra.find(BGZF_EXTRA_PREFIX)
    if i < 0 or i + 5 >= len(extra):
        return -1
    return (extra[i + 4] | extra[i + 5] << 8) + 1


def _stream_size(source) -> int:
    getbuffer = getattr(source, "getbuffer", None)
    if callable(getbuffer):
        return getbuffer().nbytes
    fileno = getattr(source, "fileno", None)
    if callable(fileno):
        try:
            return os.fstat(fileno()).st_size
        except (OSError, io.UnsupportedOperation):
            pass
    seekable = getattr(source, "seekable", None)
    if callable(seekable) and seekable():
        pos = source.tell()
        try:
            return source.seek(0, io.SEEK_END)
        finally:
            source.seek(pos)
    raise NoEndError()


def has_eof(source) -> bool:
    """Return whether source ends with the BGZF magic EOF block.

    source may be a bytes-like object, a path, or a seekable binary stream,
    whose position is left unchanged.
    """
    n = len(MAGIC_BLOCK)
    if isinstance(source, (str, os.PathLike)):
        path = os.fspath(source)
        if os.path.isdir(path):
            raise IsADirectoryError(errno.EISDIR, os.strerror(errno.EISDIR), path)
        with open(path, "rb") as fh:
            return has_eof(fh)
    if isinstance(source, (bytes, bytearray, memoryview)):
        data = bytes(source)
        if len(data) < n:
            raise BgzfError("bgzf: negative offset")
        return data[-n:] == MAGIC_BLOCK

    seekable = getattr(source, "seekable", None)
    if not (callable(seekable) and seekable()):
        raise NoEndError()
    size = _stream_size(source)
    if size < n:
        raise BgzfError("bgzf: negative offset")
    pos = source.tell()
    try:
        source.seek(size - n)
        tail = source.read(n)
    finally:
        source.seek(pos)
    return bytes(tail) == MAGIC_BLOCK