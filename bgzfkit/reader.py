"""BGZF blocked gzip decompression with seeking and block caching."""

from __future__ import annotations

from dataclasses import replace
from typing import Optional, Tuple

from .block import Block, Cache, Wrapper
from .chunks import Chunk, Offset
from .format import GzipHeader, NotASeekerError
from .member import CountingStream, read_member

__all__ = ["Reader", "Tx"]

_READ_ALL_SIZE = 1 << 16


class Reader:
    """Reader of BGZF data from a binary stream.

    ``rd`` is the read-ahead hint; blocks are decompressed on demand. When
    ``blocked`` is true, a read that reaches the end of a BGZF member stops
    there; the next read continues with the following member.
    """

    def __init__(self, stream, rd: int = 0) -> None:
        if rd < 0:
            raise ValueError(f"bgzf: invalid read concurrency: {rd}")
        self._source = stream
        self._counter = CountingStream(stream)
        self.blocked = False
        self._cache: Optional[Cache] = None
        self._err: Optional[BaseException] = None
        self._last_chunk = Chunk()
        self._current: Optional[Block] = None
        self._closed = False
        self._load(0, None)
        self.header: GzipHeader = replace(self._current.header)

    # Block management.

    def _cache_peek(self, base: int) -> Tuple[bool, int]:
        if self._cache is None:
            return False, -1
        return self._cache.peek(base)

    def _lazy_block(self, blk: Optional[Block]) -> Block:
        if blk is None:
            blk = Block(owner=self)
            if isinstance(self._cache, Wrapper):
                blk = self._cache.wrap(blk)
            return blk
        if not blk.owned_by(self):
            blk.set_owner(self)
        return blk

    def _load(self, off: int, blk: Optional[Block]) -> None:
        while True:
            exists, nxt = self._cache_peek(off)
            if not exists:
                break
            off = nxt
        blk = self._lazy_block(blk)
        self._current = blk
        if self._counter.offset() != off:
            self._counter.seek(off)
        blk.set_base(self._counter.offset())
        member = read_member(self._counter)
        blk.set_header(member.header)
        blk.fill(member.data)

    def _cache_put(self, blk: Optional[Block]) -> Tuple[Optional[Block], bool]:
        if blk is None or not blk.has_data:
            return blk, False
        return self._cache.put(blk)

    def _cache_swap(self, base: int) -> bool:
        if self._cache is None:
            return False
        blk = self._cache.get(base)
        if blk is not None:
            if not blk.owned_by(self):
                return False
            try:
                blk.seek(0)
            except Exception:
                return False
            self._cache_put(self._current)
            self._current = blk
            return True
        evicted, retained = self._cache_put(self._current)
        self._current = None if retained else evicted
        return False

    def _keep(self, blk: Optional[Block]) -> None:
        if blk is None or not blk.has_data or self._cache is None:
            return
        self._cache.put(blk)

    def _next_block(self) -> None:
        base = self._current.next_base()
        if self._cache_swap(base):
            self.header = replace(self._current.header)
            return
        self._load(base, self._current)
        h = self._current.header
        if self._current.is_magic:
            self.header = replace(self.header, extra=h.extra)
        else:
            self.header = replace(h)

    def _ensure_data(self) -> bool:
        """Skip empty blocks; return False at end of stream."""
        while len(self._current) == 0:
            try:
                self._next_block()
            except EOFError as exc:
                self._err = exc
                return False
            except Exception as exc:
                self._err = exc
                raise
        return True

    # Public interface.

    def set_cache(self, cache: Optional[Cache]) -> None:
        """Set the block cache queried before reading from the stream."""
        self._cache = cache

    def seek(self, off: Offset) -> None:
        """Move to the given virtual offset."""
        seekable = getattr(self._source, "seekable", None)
        if not callable(seekable) or not seekable():
            raise NotASeekerError()
        cur = self._current
        if cur is None or off.file != cur.base or not cur.has_data:
            if not self._cache_swap(off.file):
                try:
                    self._load(off.file, self._current)
                except BaseException as exc:
                    self._err = exc
                    raise
                finally:
                    if self._current is not None:
                        self.header = replace(self._current.header)
        try:
            self._current.seek(off.block)
        except Exception as exc:
            self._err = exc
            raise
        self._err = None
        self._last_chunk = Chunk(off, off)

    def last_chunk(self) -> Chunk:
        """Return the region covered by the last read or the last seek position."""
        return self._last_chunk

    def block_len(self) -> int:
        """Return the number of bytes left in the current block."""
        return 0 if self._current is None else len(self._current)

    def _read_some(self, size: int) -> Tuple[bytes, bool]:
        """Read up to size bytes; the flag reports an end of stream or block."""
        if self._err is not None:
            if isinstance(self._err, EOFError):
                return b"", True
            raise self._err
        if not self._ensure_data():
            return b"", True
        begin = self._current.tx_offset()
        self._last_chunk = Chunk(begin, self._last_chunk.end)
        out = bytearray()
        eof = False
        while len(out) < size:
            out += self._current.read(size - len(out))
            if len(out) == size:
                break
            if self.blocked:
                eof = True
                break
            try:
                self._next_block()
            except EOFError as exc:
                self._err = exc
                eof = True
                break
            except Exception as exc:
                self._err = exc
                self._last_chunk = Chunk(begin, self._current.tx_offset())
                if out:
                    return bytes(out), False
                raise
        self._last_chunk = Chunk(begin, self._current.tx_offset())
        return bytes(out), eof

    def read(self, size: int = -1) -> bytes:
        """Read up to size bytes, or everything left if size is negative.

        An empty result for a positive size means the end of the data.
        """
        if size < 0:
            return self.read_all()
        data, _ = self._read_some(size)
        return data

    def read_byte(self) -> int:
        """Read one byte, raising EOFError at the end of the data."""
        if self._err is not None:
            raise self._err
        if not self._ensure_data():
            raise EOFError("bgzf: end of stream")
        begin = self._current.tx_offset()
        b = self._current.read_byte()
        self._last_chunk = Chunk(begin, self._current.tx_offset())
        return b

    def read_all(self) -> bytes:
        """Read all remaining data."""
        parts = []
        while True:
            data, eof = self._read_some(_READ_ALL_SIZE)
            parts.append(data)
            if eof and not data:
                return b"".join(parts)

    def begin(self) -> "Tx":
        """Start a transaction at the start of the last read."""
        return Tx(self._last_chunk.begin, self)

    def close(self) -> None:
        """Release the reader, raising any pending non-EOF error."""
        self._closed = True
        self._cache = None
        if self._err is not None and not isinstance(self._err, EOFError):
            raise self._err

    def __enter__(self) -> "Reader":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()
        else:
            self._closed = True


class Tx:
    """A multi-read transaction spanning a region of the BGZF data."""

    def __init__(self, begin: Offset, reader: Reader) -> None:
        self._begin = begin
        self._reader: Optional[Reader] = reader

    def end(self) -> Chunk:
        """Return the chunk spanned since the transaction began; single use."""
        if self._reader is None:
            raise RuntimeError("bgzf: transaction already ended")
        chunk = Chunk(self._begin, self._reader.last_chunk().end)
        self._reader = None
        return chunk