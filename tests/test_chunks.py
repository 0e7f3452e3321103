import pytest

from bgzfkit.chunks import (
    Chunk,
    Offset,
    adjacent,
    compressor_strategy,
    identity,
    squash,
)

CONCEPTUAL = [
    Chunk(Offset(0, 0), Offset(0, 87)),
    Chunk(Offset(101, 0), Offset(101, 52)),
    Chunk(Offset(101, 52), Offset(101, 104)),
    Chunk(Offset(101, 104), Offset(101, 157)),
    Chunk(Offset(228, 0), Offset(228, 0)),
]


def test_virtual_offset():
    assert Offset(file=1, block=0).virtual() == 65536
    assert Offset().virtual() == 0


def test_virtual_order_matches_dataclass_order():
    offsets = [Offset(101, 52), Offset(0, 87), Offset(101, 0), Offset(228, 0)]
    assert sorted(offsets) == sorted(offsets, key=Offset.virtual)


def test_identity():
    assert identity(CONCEPTUAL) == CONCEPTUAL


@pytest.mark.parametrize("strategy", [identity, adjacent, squash, compressor_strategy(10)])
def test_empty(strategy):
    assert strategy([]) == []


def test_adjacent_merges_contiguous():
    got = adjacent(CONCEPTUAL[1:4])
    assert got == [Chunk(CONCEPTUAL[1].begin, CONCEPTUAL[3].end)]


def test_adjacent_keeps_gaps():
    got = adjacent(CONCEPTUAL)
    assert got == [
        CONCEPTUAL[0],
        Chunk(CONCEPTUAL[1].begin, CONCEPTUAL[3].end),
        CONCEPTUAL[4],
    ]


def test_adjacent_keeps_larger_end():
    outer = Chunk(Offset(10, 0), Offset(50, 0))
    inner = Chunk(Offset(20, 0), Offset(30, 0))
    assert adjacent([outer, inner]) == [outer]


def test_adjacent_does_not_mutate_input():
    chunks = list(CONCEPTUAL)
    adjacent(chunks)
    assert chunks == CONCEPTUAL


def test_squash():
    assert squash(CONCEPTUAL) == [Chunk(CONCEPTUAL[0].begin, CONCEPTUAL[4].end)]


def test_squash_out_of_order_keeps_furthest_end():
    chunks = [CONCEPTUAL[2], CONCEPTUAL[4], CONCEPTUAL[0]]
    assert squash(chunks) == [Chunk(CONCEPTUAL[2].begin, CONCEPTUAL[4].end)]


def test_compressor_strategy_near():
    merged = compressor_strategy(101)(CONCEPTUAL[:2])
    assert merged == [Chunk(CONCEPTUAL[0].begin, CONCEPTUAL[1].end)]


def test_compressor_strategy_far():
    assert compressor_strategy(100)(CONCEPTUAL[:2]) == CONCEPTUAL[:2]


def test_compressor_strategy_zero_is_same_block():
    merged = compressor_strategy(0)(CONCEPTUAL)
    assert len(merged) == 3
    assert merged[1] == Chunk(CONCEPTUAL[1].begin, CONCEPTUAL[3].end)