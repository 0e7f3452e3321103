"""Reading a selection of chunks from a BGZF reader."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Tuple

from .chunks import Chunk
from .format import BgzfError
from .reader import Reader

__all__ = [
    "ReferenceStats",
    "ChunkReader",
    "NoReferenceError",
    "InvalidIntervalError",
]


class NoReferenceError(BgzfError):
    """Raised when an index has no such reference."""

    default_message = "index: no reference"


class InvalidIntervalError(BgzfError):
    """Raised for an invalid genomic interval."""

    default_message = "index: invalid interval"


@dataclass
class ReferenceStats:
    """Mapping statistics for a genomic reference."""

    chunk: Chunk = field(default_factory=Chunk)
    mapped: int = 0
    unmapped: int = 0


class ChunkReader:
    """Reads only the given chunks of a BGZF reader, in order.

    The reader is put in blocked mode until the ChunkReader is closed.
    """

    def __init__(self, reader: Reader, chunks: Iterable[Chunk]) -> None:
        self._was_blocked = reader.blocked
        reader.blocked = True
        self._chunks: List[Chunk] = list(chunks)
        if self._chunks:
            reader.seek(self._chunks[0].begin)
        self._reader = reader

    def _read_some(self, size: int) -> Tuple[bytes, bool]:
        if self._reader is None:
            raise ValueError("bgzf: read from closed chunk reader")
        if not self._chunks:
            return b"", True
        r = self._reader
        target = self._chunks[0]
        last = r.last_chunk()
        if last.end.virtual() >= target.end.virtual():
            return b"", True

        want = target.end.block
        if target.end.block == 0 and target.end.file > last.end.file:
            want = r.block_len()
        cursor = last.end.block if last.end.file == target.end.file else 0
        data, eof = r._read_some(max(0, min(size, want - cursor)))
        if eof:
            return data, not data

        this = r.last_chunk()
        if (size != 0 and this == last) or this.end.virtual() >= target.end.virtual():
            self._chunks.pop(0)
            if not self._chunks:
                return data, True
            r.seek(self._chunks[0].begin)
        return data, False

    def read(self, size: int = -1) -> bytes:
        """Read up to size bytes; an empty result means the chunks are exhausted."""
        if size < 0:
            return self.read_all()
        while True:
            data, eof = self._read_some(size)
            if data or eof or size == 0:
                return data

    def read_all(self) -> bytes:
        """Read everything left in the chunks."""
        parts = []
        while True:
            data, eof = self._read_some(1 << 16)
            parts.append(data)
            if eof:
                return b"".join(parts)

    def close(self) -> None:
        """Restore the reader's blocking mode and release it; it is not closed."""
        if self._reader is not None:
            self._reader.blocked = self._was_blocked
            self._reader = None

    def __enter__(self) -> "ChunkReader":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()