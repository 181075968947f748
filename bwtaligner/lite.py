"""A small in-memory BWT for short sequences, with per-16 occurrence checkpoints."""

from __future__ import annotations

from typing import Iterable, Sequence

from .bwt import _suffix_array

_NT4 = {"A": 0, "C": 1, "G": 2, "T": 3}
_CHECKPOINT = 16


def _sequence_codes(seq: str | Iterable[int]) -> list[int]:
    if isinstance(seq, str):
        try:
            codes = [_NT4[ch] for ch in seq.upper()]
        except KeyError as exc:
            raise ValueError(f"unsupported base {exc.args[0]!r} in sequence") from None
    else:
        codes = [int(c) for c in seq]
    if any(c < 0 or c > 3 for c in codes):
        raise ValueError("sequence codes must be in the range 0..3")
    return codes


def suffix_array(seq: str | Iterable[int]) -> list[int]:
    """Suffix array of seq followed by a sentinel; entry 0 is always len(seq)."""
    if isinstance(seq, str):
        codes = _sequence_codes(seq)
    else:
        codes = [int(c) for c in seq]
        if any(c < 0 for c in codes):
            raise ValueError("sequence codes must be non-negative")
    return _suffix_array(codes)


class LiteBwt:
    """The $-removed BWT of a short sequence together with its full suffix array."""

    def __init__(self, primary: int, codes: Iterable[int], sa: Sequence[int]) -> None:
        self.codes = bytes(codes)
        self.seq_len = len(self.codes)
        self.primary = int(primary)
        self.sa = list(sa)
        if len(self.sa) != self.seq_len + 1:
            raise ValueError("suffix array must have one entry per BWT row")
        if not 0 <= self.primary <= self.seq_len:
            raise ValueError("primary index lies beyond the BWT")
        counts = [0, 0, 0, 0]
        checkpoints: list[tuple[int, int, int, int]] = []
        for start in range(0, self.seq_len, _CHECKPOINT):
            checkpoints.append(tuple(counts))
            chunk = self.codes[start:start + _CHECKPOINT]
            for c in range(4):
                counts[c] += chunk.count(c)
        if sum(counts) != self.seq_len:
            raise ValueError("BWT holds codes outside 0..3")
        self._checkpoints = checkpoints
        l2 = [0]
        for c in range(4):
            l2.append(l2[-1] + counts[c])
        self.l2 = tuple(l2)

    @classmethod
    def from_sequence(cls, seq: str | Iterable[int]) -> LiteBwt:
        """Build the BWT of a sequence of ACGT letters or 2-bit codes."""
        codes = _sequence_codes(seq)
        sa = suffix_array(codes)
        primary = 0
        bwt = bytearray()
        for row, pos in enumerate(sa):
            if pos == 0:
                primary = row
            else:
                bwt.append(codes[pos - 1])
        return cls(primary, bwt, sa)

    def char_at(self, k: int) -> int:
        """Code at position k of the $-removed BWT string."""
        return self.codes[k]

    def _count(self, k: int, c: int) -> int:
        # occurrences of c in codes[0..k], k already adjusted for the sentinel
        if k < 0:
            return 0
        block = k // _CHECKPOINT
        start = block * _CHECKPOINT
        return self._checkpoints[block][c] + self.codes.count(c, start, k + 1)

    def _adjust(self, k: int) -> int:
        if k > self.seq_len:
            raise IndexError(f"BWT position {k} out of range")
        return k - 1 if k >= self.primary else k

    def occ(self, k: int, c: int) -> int:
        """Occurrences of c in BWT rows 0..k."""
        if not 0 <= c <= 3:
            raise ValueError("base code must be in the range 0..3")
        if k == self.seq_len:
            return self.l2[c + 1] - self.l2[c]
        if k < 0:
            return 0
        return self._count(self._adjust(k), c)

    def occ4(self, k: int) -> tuple[int, int, int, int]:
        """Occurrences of each code in BWT rows 0..k."""
        if k < 0:
            return (0, 0, 0, 0)
        k = self._adjust(k)
        return tuple(self._count(k, c) for c in range(4))

    def occ4_pair(
        self, k: int, l: int
    ) -> tuple[tuple[int, int, int, int], tuple[int, int, int, int]]:
        return self.occ4(k), self.occ4(l)