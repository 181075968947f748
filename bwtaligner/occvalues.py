"""Occurrence counting over word-packed BWT code with bidirectional checkpoints."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable, Sequence

from .packing import BIT_PER_CHAR, BITS_IN_WORD, CHAR_PER_WORD, dna_occ_count_table

OCC_INTERVAL = 256
_WORDS_PER_INTERVAL = OCC_INTERVAL // CHAR_PER_WORD
_FULL_MASK = 0xFFFFFFFF


@lru_cache(maxsize=1)
def _default_table() -> tuple[int, ...]:
    return dna_occ_count_table()


def _lanes(word: int, table: Sequence[int]) -> int:
    """Per-code counts of a 32-bit word, one count in each byte lane."""
    return table[word >> 16] + table[word & 0xFFFF]


def _check_character(character: int) -> None:
    if not 0 <= character <= 3:
        raise ValueError("character code must be in the range 0..3")


def _forward(
    words: Sequence[int], start: int, index: int, character: int, table: Sequence[int]
) -> int:
    if index < 0:
        raise ValueError("character count must not be negative")
    full, rest = divmod(index, CHAR_PER_WORD)
    if start + full + (rest > 0) > len(words):
        raise ValueError("too few words for the requested count")
    shift = character * 8
    n = 0
    for w in words[start:start + full]:
        n += (_lanes(w, table) >> shift) & 0xFF
    if rest:
        mask = (_FULL_MASK << (BITS_IN_WORD - rest * BIT_PER_CHAR)) & _FULL_MASK
        count = (_lanes(words[start + full] & mask, table) >> shift) & 0xFF
        if character == 0:
            # the masked-out positions read as code 0
            count -= CHAR_PER_WORD - rest
        n += count
    return n


def forward_dna_occ_count(
    words: Sequence[int], index: int, character: int, table: Sequence[int]
) -> int:
    """Occurrences of character among the first index codes of the packed words."""
    _check_character(character)
    return _forward(words, 0, index, character, table)


def backward_dna_occ_count(
    words: Sequence[int], end: int, index: int, character: int, table: Sequence[int]
) -> int:
    """Occurrences of character among the index codes just before word position end."""
    _check_character(character)
    if index < 0:
        raise ValueError("character count must not be negative")
    full, rest = divmod(index, CHAR_PER_WORD)
    first = end - full - (rest > 0)
    if first < 0 or end > len(words):
        raise ValueError("word range lies outside the packed words")
    shift = character * 8
    n = 0
    if rest:
        mask = (1 << (rest * BIT_PER_CHAR)) - 1
        count = (_lanes(words[first] & mask, table) >> shift) & 0xFF
        if character == 0:
            count -= CHAR_PER_WORD - rest
        n += count
    for w in words[end - full:end]:
        n += (_lanes(w, table) >> shift) & 0xFF
    return n


def _forward_all(
    words: Sequence[int], start: int, index: int, table: Sequence[int]
) -> tuple[int, int, int, int]:
    if index < 0:
        raise ValueError("character count must not be negative")
    full, rest = divmod(index, CHAR_PER_WORD)
    if start + full + (rest > 0) > len(words):
        raise ValueError("too few words for the requested count")
    counts = [0, 0, 0, 0]
    for w in words[start:start + full]:
        s = _lanes(w, table)
        for c in range(4):
            counts[c] += (s >> (c * 8)) & 0xFF
    if rest:
        mask = (_FULL_MASK << (BITS_IN_WORD - rest * BIT_PER_CHAR)) & _FULL_MASK
        s = _lanes(words[start + full] & mask, table)
        for c in range(4):
            counts[c] += (s >> (c * 8)) & 0xFF
        counts[0] -= CHAR_PER_WORD - rest
    return counts[0], counts[1], counts[2], counts[3]


def forward_all_occ_count(
    words: Sequence[int], index: int, table: Sequence[int]
) -> tuple[int, int, int, int]:
    """Occurrences of each code among the first index codes of the packed words."""
    return _forward_all(words, 0, index, table)


@dataclass(frozen=True)
class OccIndex:
    """Packed $-removed BWT with occurrence values stored every 256 characters."""

    words: tuple[int, ...]
    text_length: int
    inverse_sa0: int
    checkpoints: tuple[tuple[int, int, int, int], ...]

    @classmethod
    def from_bwt_code(
        cls, words: Iterable[int], text_length: int, inverse_sa0: int
    ) -> OccIndex:
        """Index the first text_length codes of words; the $ sits at row inverse_sa0."""
        if text_length < 0:
            raise ValueError("text length must not be negative")
        if not 0 <= inverse_sa0 <= text_length:
            raise ValueError("inverse SA[0] lies beyond the text")
        used = (text_length + CHAR_PER_WORD - 1) // CHAR_PER_WORD
        code = [int(w) & _FULL_MASK for w in words]
        if len(code) < used:
            raise ValueError("too few words for the text length")
        code = code[:used]
        rest = text_length % CHAR_PER_WORD
        if rest:
            code[-1] &= (_FULL_MASK << (BITS_IN_WORD - rest * BIT_PER_CHAR)) & _FULL_MASK
        n_intervals = (text_length + OCC_INTERVAL - 1) // OCC_INTERVAL
        code.extend([0] * (n_intervals * _WORDS_PER_INTERVAL - len(code)))

        table = _default_table()
        counts = [0, 0, 0, 0]
        checkpoints = [(0, 0, 0, 0)]
        for block in range(n_intervals):
            block_counts = _forward_all(
                code, block * _WORDS_PER_INTERVAL, OCC_INTERVAL, table
            )
            for c in range(4):
                counts[c] += block_counts[c]
            checkpoints.append((counts[0], counts[1], counts[2], counts[3]))
        return cls(tuple(code), text_length, inverse_sa0, tuple(checkpoints))

    def occ(self, index: int, character: int) -> int:
        """Occurrences of character among the first index BWT rows, row inverse_sa0 being $."""
        _check_character(character)
        if not 0 <= index <= self.text_length + 1:
            raise IndexError(f"BWT row {index} out of range")
        if index > self.inverse_sa0:
            index -= 1
        explicit = (index + OCC_INTERVAL // 2 - 1) // OCC_INTERVAL
        occ_index = explicit * OCC_INTERVAL
        value = self.checkpoints[explicit][character]
        table = _default_table()
        if occ_index == index:
            return value
        if occ_index < index:
            return value + _forward(
                self.words, occ_index // CHAR_PER_WORD, index - occ_index, character, table
            )
        return value - backward_dna_occ_count(
            self.words, occ_index // CHAR_PER_WORD, occ_index - index, character, table
        )