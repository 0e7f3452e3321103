# bgzfkit

Read and write BGZF, the blocked gzip format used by BAM, tabix and CSI
files. A BGZF file is a series of small gzip members, each holding at most
64 KiB of data and ending with an empty end-of-file marker member. This
makes random access possible through *virtual offsets*: the file position
of a member combined with a position inside its decompressed data.

The package is pure Python and has no dependencies outside the standard
library.

## Installation

```
pip install bgzfkit
```

## Writing

`bgzfkit.writer.Writer` compresses into any binary stream. `level` is a
zlib level from `-1` (default) to `9`; `wc` greater than one compresses
members on that many worker threads, still writing them in order.

```python
import io
from bgzfkit.writer import Writer

buf = io.BytesIO()
with Writer(buf, level=-1, wc=1) as w:
    w.name = "example"       # gzip header fields: name, comment, extra, mod_time, os
    w.write(b"first block")
    w.flush()                # end the current member here
    w.write(b"second block")
# close() writes the last member and the end-of-file marker block;
# the underlying stream is left open.
```

A write that does not fit into the current block starts a new member, so a
single write is kept within one member where possible. `next_offset()`
returns the position of the next write inside the current block, and
`wait()` waits for pending members to be written. Using a closed writer
raises `ClosedWriterError`.

## Reading and seeking

`bgzfkit.reader.Reader` decompresses members on demand. The first member is
read when the reader is created, so a malformed stream fails straight away.

```python
from bgzfkit.reader import Reader
from bgzfkit.chunks import Offset

buf.seek(0)
with Reader(buf) as r:
    data = r.read_all()
    r.seek(Offset(0, 0))     # back to the start
    tx = r.begin()
    r.read(5)
    chunk = tx.end()         # Chunk spanning the read
```

- `read(size)` returns up to `size` bytes; an empty result means the end of
  the data. `read_byte()` returns one byte and raises `EOFError` at the end.
- `last_chunk()` is the virtual-offset span of the last read, or the
  position of the last seek; `block_len()` is the number of bytes left in
  the current block.
- Setting `r.blocked = True` makes a read stop at the end of each member.
- `r.header` holds the gzip header (`GzipHeader`) of the current member.
- `seek` needs a seekable stream and raises `NotASeekerError` otherwise.

`bgzfkit.format.has_eof` checks whether a path, a bytes object or a
seekable stream ends with the end-of-file marker block, and
`expected_member_size` reads a member's size from its header.

## Block caches

Decompressed blocks can be kept in a cache, so that seeking back to a
recently read block does not decompress it again:

```python
from bgzfkit.cache import new_lru, StatsRecorder

recorder = StatsRecorder(new_lru(8))
r.set_cache(recorder)
...
print(recorder.stats())      # Stats(gets=..., misses=..., puts=..., retains=..., evictions=...)
```

`new_lru`, `new_fifo` and `new_random` return `LRU`, `FIFO` and `Random`
caches, or `None` for a size below one. Each prefers to evict blocks that
were never read from. `free(n, cache)` drops blocks until `n` more can be
put.

## Reading selected chunks

`bgzfkit.chunkreader.ChunkReader` restricts reads to a list of `Chunk`
regions, in the order given. Chunk lists can first be combined with a merge
strategy from `bgzfkit.chunks`: `identity`, `adjacent`, `squash` or
`compressor_strategy(near)`.

```python
from bgzfkit.chunkreader import ChunkReader
from bgzfkit.chunks import adjacent

with ChunkReader(reader, adjacent(chunks)) as cr:
    selected = cr.read_all()
```

The reader is put in blocked mode while the `ChunkReader` is open and
restored when it is closed; the reader itself is not closed.

## Errors

Format errors are raised as subclasses of `bgzfkit.format.BgzfError`, such
as `CorruptBlockError`, `NoBlockSizeError`, `BlockOverflowError` and
`ContaminatedCacheError`.

## What it does not do

The package works at the level of BGZF members and virtual offsets only. It
does not decode BAM or other records held in the data, and it does not read
or write BAI, CSI or tabix index files: the chunk lists given to
`ChunkReader` have to come from elsewhere. `ReferenceStats` is a plain
container for such per-reference statistics. There is no command-line
tool.