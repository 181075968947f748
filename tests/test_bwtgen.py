import struct

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from bwtaligner.bwt import Bwt
from bwtaligner.bwtgen import BuiltBwt, build_bwt, build_bwt_from_pac, bwtgen, main
from bwtaligner.packing import word_packed_to_codes


def _pac_bytes(codes):
    data = bytearray((len(codes) + 3) // 4)
    for k, c in enumerate(codes):
        data[k >> 2] |= c << ((~k & 3) << 1)
    if len(codes) % 4 == 0:
        data.append(0)
    data.append(len(codes) % 4)
    return bytes(data)


def _invert(built):
    n = built.text_length
    full = list(built.codes[: built.inverse_sa0]) + [-1] + list(built.codes[built.inverse_sa0:])
    text = []
    row = 0
    seen = [0, 0, 0, 0]
    ranks = []
    for c in full:
        if c >= 0:
            ranks.append(seen[c])
            seen[c] += 1
        else:
            ranks.append(0)
    for _ in range(n):
        c = full[row]
        text.append(c)
        row = built.cumulative_freq[c] + ranks[row] + 1
    return text[::-1]


def test_small_worked_example():
    built = build_bwt("ACGT")
    assert built.inverse_sa0 == 1
    assert built.codes == bytes([3, 0, 1, 2])
    assert built.cumulative_freq == (0, 1, 2, 3, 4)


def test_matches_bwt_from_text():
    text = "GATTACAGATTACA"
    built = build_bwt(text)
    ref = Bwt.from_text(text)
    assert built.inverse_sa0 == ref.primary
    assert built.cumulative_freq == ref.l2
    assert list(built.codes) == [ref.char_at(k) for k in range(len(text))]


def test_exact_match_counts_via_bwt():
    text = "ACGACGTTACG"
    built = build_bwt(text)
    index = Bwt(built.inverse_sa0, built.cumulative_freq, built.codes)
    k, l = index.match_exact("ACG")
    assert l - k + 1 == 3


@settings(max_examples=50)
@given(st.lists(st.integers(min_value=0, max_value=3), min_size=1, max_size=80))
def test_inversion_recovers_text(codes):
    built = build_bwt(codes)
    assert _invert(built) == codes
    assert built.cumulative_freq[4] == len(codes)


@settings(max_examples=30)
@given(st.lists(st.integers(min_value=0, max_value=3), min_size=1, max_size=70))
def test_packed_words_round_trip(codes):
    built = build_bwt(codes)
    words = built.packed_words()
    assert len(words) == (len(codes) + 15) // 16
    assert word_packed_to_codes(words, len(codes)) == built.codes


def test_save_layout(tmp_path):
    built = build_bwt("ACGTTGCAACGTAGCTAGCTA")
    path = tmp_path / "out.bwt"
    built.save(path)
    data = path.read_bytes()
    n_words = (built.text_length + 15) // 16
    assert len(data) == 40 + 4 * n_words
    header = struct.unpack_from("<5Q", data)
    assert header[0] == built.inverse_sa0
    assert header[1:] == built.cumulative_freq[1:]
    assert list(struct.unpack_from(f"<{n_words}I", data, 40)) == built.packed_words()


@pytest.mark.parametrize("text", ["ACGT", "ACGTA", "TTTTTTTTGGGGCCCCAAAAC"])
def test_from_pac_matches_text(tmp_path, text):
    codes = [{"A": 0, "C": 1, "G": 2, "T": 3}[ch] for ch in text]
    pac = tmp_path / "ref.pac"
    pac.write_bytes(_pac_bytes(codes))
    assert build_bwt_from_pac(pac) == build_bwt(text)


def test_bwtgen_writes_file(tmp_path):
    pac = tmp_path / "ref.pac"
    pac.write_bytes(_pac_bytes([0, 1, 2, 3, 3, 2, 1]))
    out = tmp_path / "ref.bwt"
    built = bwtgen(pac, out, 1000)
    expected = tmp_path / "expected.bwt"
    built.save(expected)
    assert out.read_bytes() == expected.read_bytes()
    assert isinstance(built, BuiltBwt) and built.text_length == 7


def test_bwtgen_rejects_bad_block_size(tmp_path):
    pac = tmp_path / "ref.pac"
    pac.write_bytes(_pac_bytes([0, 1, 2]))
    with pytest.raises(ValueError):
        bwtgen(pac, tmp_path / "x.bwt", 0)


def test_main_usage():
    assert main([]) == 1
    assert main(["only.pac"]) == 1


def test_main_runs(tmp_path):
    pac = tmp_path / "ref.pac"
    pac.write_bytes(_pac_bytes([2, 0, 3, 3, 0]))
    out = tmp_path / "ref.bwt"
    assert main([str(pac), str(out)]) == 0
    assert out.read_bytes()[:8] == struct.pack("<Q", build_bwt([2, 0, 3, 3, 0]).inverse_sa0)


def test_errors():
    with pytest.raises(ValueError):
        build_bwt("")
    with pytest.raises(ValueError):
        build_bwt("ACNT")
    with pytest.raises(ValueError):
        build_bwt([0, 4])