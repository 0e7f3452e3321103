import pytest

from bgzfkit.block import Block, Cache
from bgzfkit.chunks import Offset
from bgzfkit.format import (
    MAGIC_BLOCK,
    MAX_BLOCK_SIZE,
    BgzfError,
    BlockOverflowError,
    GzipHeader,
)


def magic_header():
    return GzipHeader(extra=b"BC\x02\x00\x1b\x00", os=0xFF)


def filled(data=b"payload", base=100):
    blk = Block(owner="reader")
    blk.set_base(base)
    blk.fill(data)
    return blk


def test_read_round_trip():
    blk = filled(b"payload")
    assert len(blk) == len(b"payload")
    assert blk.read(3) + blk.read() == b"payload"
    assert len(blk) == 0
    assert blk.read(5) == b""


def test_read_advances_virtual_offset():
    blk = filled(b"payload", base=100)
    assert blk.tx_offset() == Offset(file=100, block=0)
    blk.read(4)
    assert blk.tx_offset() == Offset(file=100, block=4)


def test_used_flag():
    blk = filled()
    assert not blk.used
    blk.read(0)
    assert not blk.used
    blk.read(1)
    assert blk.used


def test_read_byte_until_eof():
    blk = filled(b"ab")
    assert bytes([blk.read_byte(), blk.read_byte()]) == b"ab"
    with pytest.raises(EOFError):
        blk.read_byte()
    assert blk.tx_offset().block == 2


def test_seek():
    blk = filled(b"0payload0", base=7)
    blk.read(5)
    blk.seek(1)
    assert blk.tx_offset() == Offset(file=7, block=1)
    assert blk.read(7) == b"payload"


def test_seek_errors():
    with pytest.raises(BgzfError):
        Block().seek(0)
    with pytest.raises(ValueError):
        filled().seek(-1)


def test_fill_overflow():
    with pytest.raises(BlockOverflowError):
        Block().fill(bytes(MAX_BLOCK_SIZE + 1))


def test_has_data():
    blk = Block()
    assert not blk.has_data
    assert len(blk) == 0
    blk.fill(b"")
    assert blk.has_data


def test_magic_detection():
    blk = Block()
    blk.set_header(magic_header())
    assert blk.is_magic is True
    blk.fill(b"")
    assert blk.is_magic is True
    assert len(blk) == 0
    other = Block()
    other.set_header(magic_header())
    other.fill(b"data")
    assert other.is_magic is False
    assert len(other) == 4


def test_next_base():
    blk = Block()
    blk.set_base(500)
    blk.set_header(magic_header())
    assert blk.next_base() == 500 + len(MAGIC_BLOCK)
    blk.set_header(GzipHeader())
    assert blk.next_base() == -1


def test_ownership():
    owner, other = object(), object()
    blk = Block(owner=owner)
    assert blk.owned_by(owner)
    assert not blk.owned_by(other)
    blk.set_owner(other)
    assert blk.owned_by(other)


def test_set_owner_resets_state():
    blk = filled(b"payload", base=100)
    blk.set_header(GzipHeader(name="name"))
    blk.read(2)
    blk.set_owner("new")
    assert not blk.used
    assert not blk.has_data
    assert blk.base == -1
    assert blk.header == GzipHeader()
    assert blk.tx_offset() == Offset()


class DictCache:
    def __init__(self):
        self.blocks = {}

    def get(self, base):
        return self.blocks.pop(base, None)

    def put(self, block):
        self.blocks[block.base] = block
        return None, True

    def peek(self, base):
        blk = self.blocks.get(base)
        return (True, blk.next_base()) if blk else (False, -1)