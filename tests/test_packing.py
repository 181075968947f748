import pytest
from hypothesis import given
from hypothesis import strategies as st

from bwtaligner.packing import (
    byte_packed_to_word_packed,
    ceil_log2,
    dna_occ_count_table,
    leading_zero,
    read_pac,
    text_length_from_packed,
    unpack_pac,
    word_packed_to_codes,
)

codes_strategy = st.lists(st.integers(min_value=0, max_value=3), max_size=100)


def _pac(codes):
    body = bytearray((len(codes) + 3) // 4)
    for k, c in enumerate(codes):
        body[k >> 2] |= c << ((~k & 3) << 1)
    if len(codes) % 4 == 0:
        body.append(0)
    body.append(len(codes) % 4)
    return bytes(body)


def test_text_length_full_last_byte():
    assert text_length_from_packed(3, 2, 0) == 8


def test_text_length_partial_last_byte():
    assert text_length_from_packed(2, 2, 1) == 5


def test_text_length_bad_width():
    with pytest.raises(ValueError):
        text_length_from_packed(2, 0, 1)


def test_leading_zero_of_zero():
    assert leading_zero(0) == 32


@given(st.integers(min_value=1, max_value=0xFFFFFFFF))
def test_leading_zero_invariant(value):
    lz = leading_zero(value)
    assert value >> (32 - lz) == 0
    assert value >> (31 - lz) == 1


def test_leading_zero_rejects_out_of_range():
    with pytest.raises(ValueError):
        leading_zero(-1)
    with pytest.raises(ValueError):
        leading_zero(1 << 32)


@given(st.integers(min_value=2, max_value=1 << 31))
def test_ceil_log2_bounds(value):
    n = ceil_log2(value)
    assert 2 ** (n - 1) < value <= 2 ** n


def test_ceil_log2_small():
    assert ceil_log2(0) == ceil_log2(1) == 0
    assert ceil_log2(4) == ceil_log2(3)


def test_occ_table_shape():
    table = dna_occ_count_table()
    assert len(table) == 65536
    assert table[0] & 0xFF == table[0]
    for entry in table[::97]:
        assert sum((entry >> (8 * c)) & 0xFF for c in range(4)) == 8


def test_occ_table_is_symmetric_under_complement():
    table = dna_occ_count_table()
    for i in range(0, 65536, 131):
        entry = table[i]
        flipped = table[i ^ 0xFFFF]
        for c in range(4):
            assert (entry >> (8 * c)) & 0xFF == (flipped >> (8 * (3 - c))) & 0xFF


@given(codes_strategy)
def test_unpack_pac_round_trip(codes):
    assert unpack_pac(_pac(codes)) == bytes(codes)


def test_unpack_pac_errors():
    with pytest.raises(ValueError):
        unpack_pac(b"\x00")
    with pytest.raises(ValueError):
        unpack_pac(b"\x1b\x07")


def test_read_pac(tmp_path):
    codes = [0, 1, 2, 3, 3, 2, 1]
    path = tmp_path / "ref.pac"
    path.write_bytes(_pac(codes))
    assert read_pac(path) == bytes(codes)


def test_word_packing_of_full_word():
    data = bytes([0x1B, 0x2C, 0x3D, 0x4E])
    assert byte_packed_to_word_packed(data, 16) == [int.from_bytes(data, "big")]


@given(codes_strategy)
def test_word_packing_round_trip(codes):
    data = _pac(codes)[:-1]
    words = byte_packed_to_word_packed(data, len(codes))
    assert len(words) == (len(codes) + 15) // 16
    assert word_packed_to_codes(words, len(codes)) == bytes(codes)


@given(codes_strategy.filter(lambda c: len(c) % 16))
def test_word_packing_clears_spare_bits(codes):
    data = bytes(0xFF for _ in range((len(codes) + 3) // 4 + 1))
    words = byte_packed_to_word_packed(data, len(codes))
    spare = 16 - len(codes) % 16
    assert words[-1] & ((1 << (2 * spare)) - 1) == 0


def test_word_packing_errors():
    with pytest.raises(ValueError):
        byte_packed_to_word_packed(b"\x00", 5)
    with pytest.raises(ValueError):
        word_packed_to_codes([0], 17)