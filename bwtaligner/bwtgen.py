"""Construction of the BWT of a packed nucleotide text and its raw on-disk form."""

from __future__ import annotations

import struct
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

from .bwt import _suffix_array
from .packing import BIT_PER_CHAR, CHAR_PER_WORD, read_pac

ALPHABET_SIZE = 4
DEFAULT_BLOCK_SIZE = 10_000_000

_NT4 = {"A": 0, "C": 1, "G": 2, "T": 3}


def _text_codes(text: str | Iterable[int]) -> list[int]:
    if isinstance(text, str):
        try:
            codes = [_NT4[ch] for ch in text.upper()]
        except KeyError as exc:
            raise ValueError(f"unsupported base {exc.args[0]!r} in text") from None
    else:
        codes = [int(c) for c in text]
    if any(c < 0 or c > 3 for c in codes):
        raise ValueError("text codes must be in the range 0..3")
    return codes


@dataclass(frozen=True)
class BuiltBwt:
    """A $-removed BWT: the row of the whole text, cumulative counts and one code per row."""

    inverse_sa0: int
    cumulative_freq: tuple[int, int, int, int, int]
    codes: bytes

    @property
    def text_length(self) -> int:
        return len(self.codes)

    def packed_words(self) -> list[int]:
        """The codes packed sixteen to a 32-bit word, first code in the high bits."""
        words = []
        for start in range(0, len(self.codes), CHAR_PER_WORD):
            word = 0
            for j, c in enumerate(self.codes[start:start + CHAR_PER_WORD]):
                word |= c << ((CHAR_PER_WORD - 1 - j) * BIT_PER_CHAR)
            words.append(word)
        return words

    def save(self, path: str | Path) -> None:
        """Write inverse SA[0], the four cumulative counts and the packed code."""
        words = self.packed_words()
        out = struct.pack("<Q", self.inverse_sa0)
        out += struct.pack(f"<{ALPHABET_SIZE}Q", *self.cumulative_freq[1:])
        out += struct.pack(f"<{len(words)}I", *words)
        try:
            Path(path).write_bytes(out)
        except OSError as exc:
            raise OSError(f"cannot write {path}: {exc.strerror}") from exc


def _build(codes: Sequence[int]) -> BuiltBwt:
    if not codes:
        raise ValueError("cannot build the BWT of an empty text")
    inverse_sa0 = 0
    bwt = bytearray()
    for row, pos in enumerate(_suffix_array(codes)):
        if pos == 0:
            inverse_sa0 = row
        else:
            bwt.append(codes[pos - 1])
    freq = [0]
    for c in range(ALPHABET_SIZE):
        freq.append(freq[-1] + codes.count(c))
    return BuiltBwt(inverse_sa0, tuple(freq), bytes(bwt))


def build_bwt(text: str | Iterable[int]) -> BuiltBwt:
    """BWT of a text given as ACGT letters or 2-bit codes."""
    return _build(_text_codes(text))


def build_bwt_from_pac(path: str | Path) -> BuiltBwt:
    """BWT of the text stored in a pac file."""
    try:
        data = read_pac(path)
    except OSError as exc:
        raise OSError(f"cannot open {path}: {exc.strerror}") from exc
    return _build(list(data))


def bwtgen(
    pac_path: str | Path, bwt_path: str | Path, block_size: int = DEFAULT_BLOCK_SIZE
) -> BuiltBwt:
    """Build the BWT of a pac file and save it; returns what was built."""
    if block_size < 1:
        raise ValueError("block size must be positive")
    built = build_bwt_from_pac(pac_path)
    print(
        f"[bwt_gen] Finished constructing BWT of {built.text_length} characters.",
        file=sys.stderr,
    )
    built.save(bwt_path)
    return built


def main(argv: Sequence[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) < 2:
        print("Usage: bwtgen <in.pac> <out.bwt>", file=sys.stderr)
        return 1
    bwtgen(args[0], args[1], DEFAULT_BLOCK_SIZE)
    return 0