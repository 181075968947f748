"""Helpers for 2-bit packed nucleotide text: pac files, word packing and bit counting."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Sequence

BITS_IN_WORD = 32
BITS_IN_BYTE = 8
BIT_PER_CHAR = 2
CHAR_PER_WORD = 16
CHAR_PER_BYTE = 4
DNA_OCC_CNT_TABLE_SIZE_IN_WORD = 65536


def text_length_from_packed(packed_length: int, bits_per_char: int, last_byte_length: int) -> int:
    """Number of characters in a byte-packed text whose final byte holds last_byte_length chars."""
    if bits_per_char < 1 or bits_per_char > BITS_IN_BYTE:
        raise ValueError("bits per character must be between 1 and 8")
    return (packed_length - 1) * (BITS_IN_BYTE // bits_per_char) + last_byte_length


def leading_zero(value: int) -> int:
    """Number of leading zero bits of a 32-bit unsigned value."""
    if not 0 <= value <= 0xFFFFFFFF:
        raise ValueError("value must fit in 32 unsigned bits")
    return BITS_IN_WORD - value.bit_length()


def ceil_log2(value: int) -> int:
    """Smallest n with 2**n >= value; 0 for values up to 1."""
    if value <= 1:
        return 0
    return BITS_IN_WORD - leading_zero(value - 1)


def dna_occ_count_table() -> tuple[int, ...]:
    """For every 16-bit group of eight 2-bit codes, the count of each code, one per byte."""
    table = []
    for i in range(DNA_OCC_CNT_TABLE_SIZE_IN_WORD):
        entry = 0
        c = i
        for _ in range(8):
            entry += 1 << ((c & 3) * 8)
            c >>= 2
        table.append(entry)
    return tuple(table)


def unpack_pac(data: bytes) -> bytes:
    """Decode the contents of a pac file into one 2-bit code per byte."""
    if len(data) < 2:
        raise ValueError("pac data is too short")
    last = data[-1]
    if last >= CHAR_PER_BYTE:
        raise ValueError("invalid trailing length byte in pac data")
    length = text_length_from_packed(len(data) - 1, BIT_PER_CHAR, last)
    return bytes((data[k >> 2] >> ((~k & 3) << 1)) & 3 for k in range(length))


def read_pac(path: str | Path) -> bytes:
    """Read and decode a pac file."""
    return unpack_pac(Path(path).read_bytes())


def byte_packed_to_word_packed(data: bytes, text_length: int) -> list[int]:
    """Repack four-codes-per-byte text into 32-bit words of sixteen codes, clearing spare bits."""
    if text_length < 0:
        raise ValueError("text length must not be negative")
    if len(data) * CHAR_PER_BYTE < text_length:
        raise ValueError("packed data is shorter than the text length")
    words = []
    for start in range(0, text_length, CHAR_PER_WORD):
        n_chars = min(CHAR_PER_WORD, text_length - start)
        byte_start = start // CHAR_PER_BYTE
        word = int.from_bytes(data[byte_start:byte_start + CHAR_PER_BYTE].ljust(4, b"\0"), "big")
        if n_chars < CHAR_PER_WORD:
            word &= (0xFFFFFFFF << (BITS_IN_WORD - n_chars * BIT_PER_CHAR)) & 0xFFFFFFFF
        words.append(word)
    return words


def word_packed_to_codes(words: Sequence[int] | Iterable[int], text_length: int) -> bytes:
    """Expand 32-bit words of sixteen 2-bit codes into one code per byte."""
    words = list(words)
    if text_length < 0:
        raise ValueError("text length must not be negative")
    if len(words) * CHAR_PER_WORD < text_length:
        raise ValueError("too few words for the text length")
    return bytes(
        (words[k // CHAR_PER_WORD] >> ((15 - k % CHAR_PER_WORD) << 1)) & 3
        for k in range(text_length)
    )