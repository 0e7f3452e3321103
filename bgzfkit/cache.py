"""Block caches for the BGZF reader: LRU, FIFO and random eviction."""

from __future__ import annotations

import random
import threading
from collections import OrderedDict
from dataclasses import dataclass, replace
from typing import Dict, Optional, Tuple

from .block import Block, Cache

__all__ = [
    "LRU",
    "FIFO",
    "Random",
    "Stats",
    "StatsRecorder",
    "free",
    "new_lru",
    "new_fifo",
    "new_random",
]


def free(n: int, cache) -> bool:
    """Drop enough blocks from cache to allow n successful puts.

    Returns whether n slots are now available.
    """
    empty = cache.cap() - len(cache)
    if n <= empty:
        return True
    cache.drop(n - empty)
    return cache.cap() - len(cache) >= n


class _OrderedStore:
    """Blocks kept in eviction order: the last entry is evicted first.

    Used blocks are inserted at the front, unused blocks at the back, so
    unused blocks are preferentially evicted.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 0:
            raise ValueError(f"bgzf: invalid cache capacity: {capacity}")
        self.lock = threading.RLock()
        self.table: "OrderedDict[int, Block]" = OrderedDict()
        self.capacity = capacity

    def size(self) -> int:
        with self.lock:
            return len(self.table)

    def cap(self) -> int:
        with self.lock:
            return self.capacity

    def resize(self, n: int) -> None:
        with self.lock:
            if n < len(self.table):
                self._drop(len(self.table) - n)
            self.capacity = n

    def drop(self, n: int) -> None:
        with self.lock:
            self._drop(n)

    def _drop(self, n: int) -> None:
        while n > 0 and self.table:
            self.table.popitem(last=True)
            n -= 1

    def peek(self, base: int) -> Tuple[bool, int]:
        with self.lock:
            blk = self.table.get(base)
            if blk is None:
                return False, -1
            return True, blk.next_base()

    def put(self, block: Block) -> Tuple[Optional[Block], bool]:
        with self.lock:
            if block.base in self.table:
                return block, False
            used = block.used
            evicted: Optional[Block] = None
            if len(self.table) >= self.capacity:
                if not used or not self.table:
                    return block, False
                _, evicted = self.table.popitem(last=True)
            self.table[block.base] = block
            if used:
                self.table.move_to_end(block.base, last=False)
            return evicted, True


class LRU:
    """Least recently used eviction, preferring to evict unused blocks."""

    def __init__(self, capacity: int) -> None:
        self._store = _OrderedStore(capacity)

    def __len__(self) -> int:
        return self._store.size()

    def cap(self) -> int:
        """Return the maximum number of blocks the cache can hold."""
        return self._store.cap()

    def resize(self, n: int) -> None:
        """Change the capacity to n, dropping excess blocks."""
        self._store.resize(n)

    def drop(self, n: int) -> None:
        """Evict n blocks according to the eviction policy."""
        self._store.drop(n)

    def get(self, base: int) -> Optional[Block]:
        """Remove and return the block with the given base, or None."""
        with self._store.lock:
            return self._store.table.pop(base, None)

    def peek(self, base: int) -> Tuple[bool, int]:
        """Return whether a block for base is held, and the next base or -1."""
        return self._store.peek(base)

    def put(self, block: Block) -> Tuple[Optional[Block], bool]:
        """Insert block, returning the evicted block and whether block was kept.

        Unused blocks are not retained when the cache is full; they are
        returned as the evicted block.
        """
        return self._store.put(block)


class FIFO:
    """First in first out eviction, preferring to evict unused blocks."""

    def __init__(self, capacity: int) -> None:
        self._store = _OrderedStore(capacity)

    def __len__(self) -> int:
        return self._store.size()

    def cap(self) -> int:
        """Return the maximum number of blocks the cache can hold."""
        return self._store.cap()

    def resize(self, n: int) -> None:
        """Change the capacity to n, dropping excess blocks."""
        self._store.resize(n)

    def drop(self, n: int) -> None:
        """Evict n blocks according to the eviction policy."""
        self._store.drop(n)

    def get(self, base: int) -> Optional[Block]:
        """Return the block with the given base, or None.

        The block is removed from the cache only if it has not been used.
        """
        with self._store.lock:
            blk = self._store.table.get(base)
            if blk is None:
                return None
            if not blk.used:
                del self._store.table[base]
            return blk

    def peek(self, base: int) -> Tuple[bool, int]:
        """Return whether a block for base is held, and the next base or -1."""
        return self._store.peek(base)

    def put(self, block: Block) -> Tuple[Optional[Block], bool]:
        """Insert block, returning the evicted block and whether block was kept.

        Unused blocks are not retained when the cache is full; they are
        returned as the evicted block.
        """
        return self._store.put(block)


class Random:
    """Random eviction, preferring to evict unused blocks."""

    def __init__(self, capacity: int, rng: Optional[random.Random] = None) -> None:
        if capacity < 0:
            raise ValueError(f"bgzf: invalid cache capacity: {capacity}")
        self._lock = threading.RLock()
        self._table: Dict[int, Block] = {}
        self._cap = capacity
        self._rng = rng if rng is not None else random.Random()

    def __len__(self) -> int:
        with self._lock:
            return len(self._table)

    def cap(self) -> int:
        """Return the maximum number of blocks the cache can hold."""
        with self._lock:
            return self._cap

    def resize(self, n: int) -> None:
        """Change the capacity to n, dropping excess blocks."""
        with self._lock:
            if n < len(self._table):
                self._drop(len(self._table) - n)
            self._cap = n

    def drop(self, n: int) -> None:
        """Evict n blocks, unused blocks first, chosen at random."""
        with self._lock:
            self._drop(n)

    def _victim(self) -> int:
        unused = [k for k, b in self._table.items() if not b.used]
        return self._rng.choice(unused or list(self._table))

    def _drop(self, n: int) -> None:
        while n > 0 and self._table:
            del self._table[self._victim()]
            n -= 1

    def get(self, base: int) -> Optional[Block]:
        """Remove and return the block with the given base, or None."""
        with self._lock:
            return self._table.pop(base, None)

    def peek(self, base: int) -> Tuple[bool, int]:
        """Return whether a block for base is held, and the next base or -1."""
        with self._lock:
            blk = self._table.get(base)
            if blk is None:
                return False, -1
            return True, blk.next_base()

    def put(self, block: Block) -> Tuple[Optional[Block], bool]:
        """Insert block, returning the evicted block and whether block was kept."""
        with self._lock:
            if block.base in self._table:
                return block, False
            evicted: Optional[Block] = None
            if len(self._table) >= self._cap:
                if not block.used or not self._table:
                    return block, False
                evicted = self._table.pop(self._victim())
            self._table[block.base] = block
            return evicted, True


def new_lru(n: int) -> Optional[LRU]:
    """Return an LRU cache with n slots, or None if n is less than 1."""
    return LRU(n) if n >= 1 else None


def new_fifo(n: int) -> Optional[FIFO]:
    """Return a FIFO cache with n slots, or None if n is less than 1."""
    return FIFO(n) if n >= 1 else None


def new_random(n: int) -> Optional[Random]:
    """Return a random eviction cache with n slots, or None if n is less than 1."""
    return Random(n) if n >= 1 else None


@dataclass(frozen=True)
class Stats:
    """Statistics of cache use."""

    gets: int = 0
    misses: int = 0
    puts: int = 0
    retains: int = 0
    evictions: int = 0


class StatsRecorder:
    """A cache wrapper recording get and put statistics."""

    def __init__(self, cache: Cache) -> None:
        self.cache = cache
        self._lock = threading.RLock()
        self._stats = Stats()

    def stats(self) -> Stats:
        """Return the current statistics."""
        with self._lock:
            return self._stats

    def reset(self) -> None:
        """Zero the statistics."""
        with self._lock:
            self._stats = Stats()

    def get(self, base: int) -> Optional[Block]:
        """Get from the wrapped cache, counting gets and misses."""
        with self._lock:
            blk = self.cache.get(base)
            s = self._stats
            self._stats = replace(
                s, gets=s.gets + 1, misses=s.misses + (1 if blk is None else 0)
            )
            return blk

    def peek(self, base: int) -> Tuple[bool, int]:
        """Peek into the wrapped cache; not counted."""
        return self.cache.peek(base)

    def put(self, block: Block) -> Tuple[Optional[Block], bool]:
        """Put into the wrapped cache, counting puts, retains and evictions."""
        with self._lock:
            evicted, retained = self.cache.put(block)
            s = self._stats
            retains, evictions = s.retains, s.evictions
            if retained:
                retains += 1
                if evicted is not None:
                    evictions += 1
            self._stats = replace(s, puts=s.puts + 1, retains=retains, evictions=evictions)
            return evicted, retained