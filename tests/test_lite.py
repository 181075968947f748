import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from bwtaligner.bwt import Bwt
from bwtaligner.lite import LiteBwt, suffix_array

codes_strategy = st.lists(st.integers(min_value=0, max_value=3), min_size=1, max_size=80)


def _invert(bwt: LiteBwt) -> list[int]:
    text = []
    k = 0
    for _ in range(bwt.seq_len):
        c = bwt.char_at(k - (k > bwt.primary))
        text.append(c)
        k = bwt.l2[c] + bwt.occ(k, c)
    return text[::-1]


def test_suffix_array_starts_with_sentinel():
    sa = suffix_array([2, 0, 1, 0, 3])
    assert sa[0] == 5
    assert sorted(sa) == list(range(6))


@given(codes_strategy)
def test_suffix_array_is_sorted(codes):
    sa = suffix_array(codes)
    suffixes = [codes[i:] for i in sa]
    assert suffixes == sorted(suffixes)


def test_suffix_array_rejects_negative():
    with pytest.raises(ValueError):
        suffix_array([0, -1])


def test_from_sequence_rejects_bad_base():
    with pytest.raises(ValueError):
        LiteBwt.from_sequence("ACNT")


@settings(max_examples=50)
@given(codes_strategy)
def test_matches_full_bwt(codes):
    lite = LiteBwt.from_sequence(codes)
    full = Bwt.from_text(codes)
    assert lite.primary == full.primary
    assert lite.l2 == full.l2
    assert [lite.char_at(i) for i in range(lite.seq_len)] == [
        full.char_at(i) for i in range(full.seq_len)
    ]


@given(codes_strategy)
def test_inversion_recovers_sequence(codes):
    assert _invert(LiteBwt.from_sequence(codes)) == codes


def test_string_and_codes_agree():
    assert LiteBwt.from_sequence("GATTACA").codes == LiteBwt.from_sequence(
        [2, 0, 3, 3, 0, 1, 0]
    ).codes


@given(codes_strategy)
def test_occ_at_end_counts_whole_sequence(codes):
    lite = LiteBwt.from_sequence(codes)
    for c in range(4):
        assert lite.occ(lite.seq_len, c) == codes.count(c)
        assert lite.occ(-1, c) == 0


@settings(max_examples=50)
@given(codes_strategy)
def test_occ4_agrees_with_occ(codes):
    lite = LiteBwt.from_sequence(codes)
    for k in range(-1, lite.seq_len):
        assert lite.occ4(k) == tuple(lite.occ(k, c) for c in range(4))


@settings(max_examples=50)
@given(codes_strategy)
def test_occ_agrees_with_full_bwt(codes):
    lite = LiteBwt.from_sequence(codes)
    full = Bwt.from_text(codes)
    for k in range(-1, lite.seq_len + 1):
        for c in range(4):
            assert lite.occ(k, c) == full.occ(k, c)


def test_occ4_pair():
    lite = LiteBwt.from_sequence("ACGTTGCAACGT" * 3)
    assert lite.occ4_pair(3, 20) == (lite.occ4(3), lite.occ4(20))


def test_occ4_is_monotone():
    lite = LiteBwt.from_sequence("ACGGTCAGTTACGATCGA" * 2)
    previous = (0, 0, 0, 0)
    for k in range(lite.seq_len):
        current = lite.occ4(k)
        assert all(a <= b for a, b in zip(previous, current))
        previous = current


def test_occ_out_of_range():
    lite = LiteBwt.from_sequence("ACGT")
    with pytest.raises(IndexError):
        lite.occ(lite.seq_len + 1, 0)
    with pytest.raises(ValueError):
        lite.occ(1, 4)


def test_sa_is_stored():
    seq = "ACGTACGT"
    lite = LiteBwt.from_sequence(seq)
    assert lite.sa == suffix_array(seq)
    assert lite.sa[lite.primary] == 0