"""Virtual offsets, chunks and chunk merge strategies."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable, List

__all__ = [
    "Offset",
    "Chunk",
    "MergeStrategy",
    "identity",
    "adjacent",
    "squash",
    "compressor_strategy",
]


@dataclass(frozen=True, order=True)
class Offset:
    """A BGZF virtual offset: a compressed file offset and an in-block offset."""

    file: int = 0
    block: int = 0

    def virtual(self) -> int:
        """Return the packed 64-bit virtual offset."""
        return self.file << 16 | self.block


@dataclass(frozen=True)
class Chunk:
    """A region of a BGZF file."""

    begin: Offset = field(default_factory=Offset)
    end: Offset = field(default_factory=Offset)


MergeStrategy = Callable[[List[Chunk]], List[Chunk]]


def _fold(chunks: Iterable[Chunk], touches: Callable[[Chunk, Chunk], bool]) -> list[Chunk]:
    merged: list[Chunk] = []
    for right in chunks:
        if merged and touches(merged[-1], right):
            left = merged[-1]
            end = left.end if left.end.virtual() > right.end.virtual() else right.end
            merged[-1] = Chunk(left.begin, end)
        else:
            merged.append(right)
    return merged


def identity(chunks: Iterable[Chunk]) -> list[Chunk]:
    """Return the chunks unaltered."""
    return list(chunks)


def adjacent(chunks: Iterable[Chunk]) -> list[Chunk]:
    """Merge contiguous or overlapping chunks."""
    return _fold(chunks, lambda left, right: left.end.virtual() >= right.begin.virtual())


def squash(chunks: Iterable[Chunk]) -> list[Chunk]:
    """Merge all chunks into one spanning the first begin to the furthest end."""
    chunks = list(chunks)
    if not chunks:
        return []
    right = chunks[0].end
    for c in chunks[1:]:
        if c.end.virtual() > right.virtual():
            right = c.end
    return [Chunk(chunks[0].begin, right)]


def compressor_strategy(near: int) -> MergeStrategy:
    """Return a strategy merging chunks whose block starts are within near bytes."""

    def strategy(chunks: Iterable[Chunk]) -> list[Chunk]:
        return _fold(chunks, lambda left, right: left.end.file + near >= right.begin.file)

    return strategy