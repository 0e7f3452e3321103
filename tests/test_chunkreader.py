import io

import pytest

from bgzfkit.chunkreader import ChunkReader
from bgzfkit.chunks import Chunk, Offset, adjacent
from bgzfkit.format import MAGIC_BLOCK
from bgzfkit.reader import Reader
from bgzfkit.writer import Writer

CONCEPTUAL_BAM = bytes.fromhex(
    "1f8b08040000000000ff"
    "06004243020064007372"
    "f465b460606070f070e1"
    "0cf3b332d433e00cf6b7"
    "4acecf2f4ac9cc4b2c49"
    "e572080ee40cf6038ae4"
    "25a716949426e670fa00"
    "95199b18199a9b1b5970"
    "3102f5720331421ec861"
    "e000004251ccea570000"
    "00"
    "1f8b08040000000000ff"
    "06004243020062003360"
    "808103cc3c1a0c0c8c50"
    "de7f2800b1cd0c72cdcc"
    "72ad9232f30c405c3603"
    "b89e04161e0d26ac7acc"
    "0d72cd217a8cc07a0ce1"
    "7a26b0f06a0861d7639c"
    "6b6e0ad6636801e23301"
    "005a80feec9d000000"
) + MAGIC_BLOCK

CONCEPTUAL_CHUNKS = [
    Chunk(Offset(0, 0), Offset(0, 87)),
    Chunk(Offset(101, 0), Offset(101, 52)),
    Chunk(Offset(101, 52), Offset(101, 104)),
    Chunk(Offset(101, 104), Offset(101, 157)),
    Chunk(Offset(228, 0), Offset(228, 0)),
]


def test_chunk_reader_short_read():
    br = Reader(io.BytesIO(CONCEPTUAL_BAM))
    with ChunkReader(br, CONCEPTUAL_CHUNKS) as cr:
        assert cr.read(2) == b"BA"


def test_issue8_reads_progress():
    br = Reader(io.BytesIO(CONCEPTUAL_BAM))
    cr = ChunkReader(br, CONCEPTUAL_CHUNKS[:2])
    last = b""
    sizes = []
    while True:
        data = cr.read(1024)
        if not data:
            break
        assert data != last[: len(data)]
        sizes.append(len(data))
        last = data
    assert sizes == [87, 52]
    cr.close()


def test_close_restores_blocking_mode():
    br = Reader(io.BytesIO(CONCEPTUAL_BAM))
    assert br.blocked is False
    cr = ChunkReader(br, CONCEPTUAL_CHUNKS[:1])
    assert br.blocked is True
    cr.close()
    assert br.blocked is False


COMMON_WORDS = [
    ("<zero>", False), ("<one>", True),
    ("<two>", False), ("<three>", False), ("<four>", True),
    ("<five>", False), ("<six>", False), ("<seven>", True),
    ("<eight>", False),
]

ISSUE10 = [
    (["<three>", "<five>"], True, False),
    (["<one>", "<two>", "<three>"], True, False),
    (["<two>", "<three>", "<four>", "<five>"], True, True),
    (["<three>", "<four>"], True, True),
    (["<seven>", "<eight>"], True, True),
    (["<zero>", "<one>", "<two>", "<three>", "<four>", "<five>", "<six>", "<seven>", "<eight>"], True, True),
    (["<three>", "<zero>", "<five>", "<seven>", "<two>", "<eight>", "<five>"], False, False),
]


@pytest.mark.parametrize("wanted,can_squash,can_trunc", ISSUE10)
def test_issue10(wanted, can_squash, can_trunc):
    buf = io.BytesIO()
    w = Writer(buf, wc=1)
    for word, flush in COMMON_WORDS:
        w.write(word.encode())
        if flush:
            w.flush()
    w.close()
    data = buf.getvalue()

    for strategy in (None, adjacent):
        if strategy is not None and not can_squash:
            continue
        for clean in (False, True):
            for trunc in (False, True):
                if trunc and not can_trunc:
                    continue
                r = Reader(io.BytesIO(data))
                idx = {}
                for i, (word, _) in enumerate(COMMON_WORDS):
                    assert r.read(len(word)) == word.encode()
                    last = r.last_chunk()
                    if not clean and i != 0 and COMMON_WORDS[i - 1][1]:
                        last = Chunk(idx[COMMON_WORDS[i - 1][0]].end, last.end)
                    idx[word] = last

                chunks = [idx[wd] for wd in wanted]
                if trunc:
                    want = "".join(wanted[:-1])
                    chunks[-2] = Chunk(chunks[-2].begin, chunks[-1].begin)
                    chunks = chunks[:-1]
                else:
                    want = "".join(wanted)
                if strategy is not None:
                    chunks = strategy(chunks)
                cr = ChunkReader(r, chunks)
                assert cr.read_all().decode() == want, (clean, strategy, trunc)
                cr.close()