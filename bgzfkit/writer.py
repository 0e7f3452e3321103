"""BGZF blocked gzip compression."""

from __future__ import annotations

import struct
import zlib
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Deque, Optional

from .format import (
    BGZF_EXTRA,
    BLOCK_SIZE,
    MAGIC_BLOCK,
    MAX_BLOCK_SIZE,
    BlockOverflowError,
    ClosedWriterError,
    GzipHeader,
)

__all__ = ["Writer", "DEFAULT_COMPRESSION", "BEST_SPEED", "BEST_COMPRESSION"]

DEFAULT_COMPRESSION = -1
BEST_SPEED = 1
BEST_COMPRESSION = 9

_FEXTRA = 0x04
_FNAME = 0x08
_FCOMMENT = 0x10


def _latin1(field: str, value: str) -> bytes:
    try:
        raw = value.encode("latin-1")
    except UnicodeEncodeError as exc:
        raise ValueError(f"bgzf: non-Latin-1 header {field}") from exc
    if b"\x00" in raw:
        raise ValueError(f"bgzf: header {field} contains a NUL byte")
    return raw + b"\x00"


def _compress_member(data: bytes, header: GzipHeader, level: int) -> bytes:
    """Compress data into one BGZF conformant gzip member."""
    flags = _FEXTRA
    name = comment = b""
    if header.name:
        flags |= _FNAME
        name = _latin1("name", header.name)
    if header.comment:
        flags |= _FCOMMENT
        comment = _latin1("comment", header.comment)
    mtime = header.mod_time
    if not 0 <= mtime < 1 << 32:
        raise ValueError(f"bgzf: modification time out of range: {mtime}")
    if level == BEST_COMPRESSION:
        xfl = 2
    elif level == BEST_SPEED:
        xfl = 4
    else:
        xfl = 0

    extra = BGZF_EXTRA + bytes(header.extra)
    if len(extra) > 0xFFFF:
        raise ValueError("bgzf: extra field too long")

    comp = zlib.compressobj(level, zlib.DEFLATED, -15)
    body = comp.compress(data) + comp.flush()

    size = 10 + 2 + len(extra) + len(name) + len(comment) + len(body) + 8
    bsize = size - 1
    if bsize >= MAX_BLOCK_SIZE:
        raise BlockOverflowError()
    extra = BGZF_EXTRA[:4] + struct.pack("<H", bsize) + extra[len(BGZF_EXTRA):]

    return b"".join(
        (
            struct.pack("<BBBBIBB", 0x1F, 0x8B, 8, flags, mtime, xfl, header.os & 0xFF),
            struct.pack("<H", len(extra)),
            extra,
            name,
            comment,
            body,
            struct.pack("<II", zlib.crc32(data), len(data) & 0xFFFFFFFF),
        )
    )


class Writer:
    """BGZF blocked gzip compressor writing to a binary stream.

    The gzip header fields ``name``, ``comment``, ``extra``, ``mod_time`` and
    ``os`` are applied to each member as it is compressed. When ``wc`` is
    greater than one, members are compressed concurrently by that many
    workers and written in order.
    """

    def __init__(self, stream, level: int = DEFAULT_COMPRESSION, wc: int = 1) -> None:
        if level < DEFAULT_COMPRESSION or level > BEST_COMPRESSION:
            raise ValueError(f"bgzf: invalid compression level: {level}")
        self._stream = stream
        self._level = level
        self.name = ""
        self.comment = ""
        self.extra = b""
        self.mod_time = 0
        self.os = 0xFF
        self._block = bytearray()
        self._pending: Deque[Future] = deque()
        self._workers = max(wc, 1)
        self._executor: Optional[ThreadPoolExecutor] = (
            ThreadPoolExecutor(max_workers=wc) if wc > 1 else None
        )
        self._error: Optional[BaseException] = None
        self._closed = False

    @property
    def header(self) -> GzipHeader:
        """A snapshot of the header fields applied to the next member."""
        return GzipHeader(
            name=self.name,
            comment=self.comment,
            extra=bytes(self.extra),
            mod_time=self.mod_time,
            os=self.os,
        )

    @property
    def closed(self) -> bool:
        """Whether the writer has been closed."""
        return self._closed

    def _check(self) -> None:
        if self._closed:
            raise ClosedWriterError()
        if self._error is not None:
            raise self._error

    def _fail(self, exc: BaseException) -> None:
        if self._error is None:
            self._error = exc
        for fut in self._pending:
            fut.cancel()
        self._pending.clear()

    def _emit(self, produce: Callable[[], bytes]) -> None:
        try:
            self._stream.write(produce())
        except Exception as exc:
            self._fail(exc)
            raise

    def _drain(self, keep: int) -> None:
        while self._pending and (len(self._pending) > keep or self._pending[0].done()):
            self._emit(self._pending.popleft().result)

    def _dispatch(self) -> None:
        data = bytes(self._block)
        self._block = bytearray()
        header = self.header
        if self._executor is None:
            self._emit(lambda: _compress_member(data, header, self._level))
            return
        self._pending.append(self._executor.submit(_compress_member, data, header, self._level))
        self._drain(self._workers)

    def next_offset(self) -> int:
        """Return the position of the next write within the current data block."""
        self._check()
        return len(self._block)

    def write(self, data) -> int:
        """Buffer data for compression, returning the number of bytes accepted.

        Data may span block boundaries, but a write that does not fit in the
        current block starts a new one.
        """
        self._check()
        view = memoryview(data).cast("B")
        written = 0
        pos = 0
        while pos < len(view):
            copied = 0
            remaining = len(view) - pos
            if not self._block or len(self._block) + remaining <= BLOCK_SIZE:
                copied = min(remaining, BLOCK_SIZE - len(self._block))
                self._block += view[pos:pos + copied]
                pos += copied
                written += copied
            if len(self._block) == BLOCK_SIZE or copied == 0:
                self._dispatch()
        return written

    def flush(self) -> None:
        """Compress any buffered data into a member."""
        self._check()
        if self._block:
            self._dispatch()

    def wait(self) -> None:
        """Wait for all pending members to be written."""
        if self._error is not None:
            raise self._error
        self._drain(0)
        if self._error is not None:
            raise self._error

    def close(self) -> None:
        """Write the final member and the EOF marker block.

        The underlying stream is not closed.
        """
        if self._closed:
            if self._error is not None:
                raise self._error
            return
        self._closed = True
        try:
            if self._error is None:
                self._dispatch()
                self._drain(0)
                try:
                    self._stream.write(MAGIC_BLOCK)
                except Exception as exc:
                    self._fail(exc)
                    raise
        finally:
            if self._executor is not None:
                self._executor.shutdown(wait=True)
        if self._error is not None:
            raise self._error

    def __enter__(self) -> "Writer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()