"""Burrows-Wheeler transform of a nucleotide text with rank, suffix-array and SMEM queries."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Sequence

OCC_INTV_SHIFT = 7
OCC_INTERVAL = 1 << OCC_INTV_SHIFT
OCC_INTV_MASK = OCC_INTERVAL - 1

_NT4 = {"A": 0, "C": 1, "G": 2, "T": 3}
_HEADER = struct.Struct("<5Q")
_OCC_BLOCK = struct.Struct("<4Q")
_CHAR_BLOCK = struct.Struct("<8I")
_SA_HEADER = struct.Struct("<7Q")


@dataclass
class BiInterval:
    """A bidirectional SA interval: forward start, reverse start, size and query span."""

    x: list[int] = field(default_factory=lambda: [0, 0, 0])
    info: int = 0

    def __post_init__(self) -> None:
        self.x = list(self.x)
        if len(self.x) != 3:
            raise ValueError("a bidirectional interval has exactly three coordinates")

    @property
    def size(self) -> int:
        return self.x[2]

    @property
    def query_start(self) -> int:
        return self.info >> 32

    @property
    def query_end(self) -> int:
        return self.info & 0xFFFFFFFF

    def copy(self) -> BiInterval:
        return BiInterval(list(self.x), self.info)


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


def _query_codes(seq: str | Sequence[int]) -> list[int]:
    if isinstance(seq, str):
        return [_NT4.get(ch, 4) for ch in seq.upper()]
    return [int(c) for c in seq]


def _suffix_array(text: Sequence[int]) -> list[int]:
    """Suffix array of text followed by a sentinel smaller than every code."""
    n = len(text) + 1
    rank = [c + 1 for c in text] + [0]
    sa = list(range(n))
    step = 1
    while True:
        def key(i: int, r: list[int] = rank, s: int = step) -> tuple[int, int]:
            return r[i], (r[i + s] if i + s < n else -1)

        sa.sort(key=key)
        new_rank = [0] * n
        for prev, cur in zip(sa, sa[1:]):
            new_rank[cur] = new_rank[prev] + (key(prev) != key(cur))
        rank = new_rank
        if rank[sa[-1]] == n - 1:
            return sa
        step <<= 1


def _unpack_word(word: int) -> list[int]:
    return [(word >> ((15 - j) << 1)) & 3 for j in range(16)]


class Bwt:
    """The $-removed BWT string with occurrence checkpoints and an optional sampled SA."""

    def __init__(self, primary: int, l2: Sequence[int], codes: Iterable[int]) -> None:
        self.primary = int(primary)
        self.l2 = tuple(int(v) for v in l2)
        if len(self.l2) != 5:
            raise ValueError("L2 must hold five cumulative counts")
        self.seq_len = self.l2[4]
        self._codes = bytes(codes)
        if len(self._codes) != self.seq_len:
            raise ValueError("BWT length does not match the cumulative counts")
        if self.primary > self.seq_len:
            raise ValueError("primary index lies beyond the BWT")
        counts = [0, 0, 0, 0]
        checkpoints = []
        for block in range((self.seq_len >> OCC_INTV_SHIFT) + 1):
            checkpoints.append(tuple(counts))
            chunk = self._codes[block << OCC_INTV_SHIFT:(block + 1) << OCC_INTV_SHIFT]
            for c in range(4):
                counts[c] += chunk.count(c)
        if sum(counts) != self.seq_len:
            raise ValueError("BWT holds codes outside 0..3")
        expected = [0]
        for c in range(4):
            expected.append(expected[-1] + counts[c])
        if tuple(expected) != self.l2:
            raise ValueError("cumulative counts are inconsistent with the BWT")
        self._checkpoints = checkpoints
        self.sa_intv = 0
        self._sa: list[int] | None = None

    @classmethod
    def from_text(cls, text: str | Iterable[int]) -> Bwt:
        """Build the BWT of a text given as ACGT letters or 2-bit codes."""
        codes = _text_codes(text)
        primary = 0
        bwt_codes = bytearray()
        for row, pos in enumerate(_suffix_array(codes)):
            if pos == 0:
                primary = row
            else:
                bwt_codes.append(codes[pos - 1])
        l2 = [0]
        for c in range(4):
            l2.append(l2[-1] + codes.count(c))
        return cls(primary, l2, bwt_codes)

    # ------------------------------------------------------------------
    # persistence

    @classmethod
    def restore_bwt(cls, path: str | Path) -> Bwt:
        """Load a BWT file holding interleaved occurrence counts and packed codes."""
        data = Path(path).read_bytes()
        if len(data) < _HEADER.size:
            raise ValueError(f"{path}: file too short for a BWT header")
        primary, *l2_tail = _HEADER.unpack_from(data)
        n_words = (len(data) - _HEADER.size) >> 2
        words = struct.unpack_from(f"<{n_words}I", data, _HEADER.size)
        seq_len = l2_tail[3]
        codes = bytearray()
        for k in range(seq_len):
            idx = ((k >> 7) << 4) + 8 + ((k & 0x7F) >> 4)
            if idx >= n_words:
                raise ValueError(f"{path}: BWT data is truncated")
            codes.append((words[idx] >> ((~k & 15) << 1)) & 3)
        return cls(primary, (0, *l2_tail), codes)

    def dump_bwt(self, path: str | Path) -> None:
        out = bytearray(_HEADER.pack(self.primary, *self.l2[1:]))
        for block, counts in enumerate(self._checkpoints):
            out += _OCC_BLOCK.pack(*counts)
            chunk = self._codes[block << OCC_INTV_SHIFT:(block + 1) << OCC_INTV_SHIFT]
            words = []
            for w in range(8):
                word = 0
                for j, c in enumerate(chunk[w * 16:(w + 1) * 16]):
                    word |= c << ((15 - j) << 1)
                words.append(word)
            out += _CHAR_BLOCK.pack(*words)
        Path(path).write_bytes(bytes(out))

    def dump_sa(self, path: str | Path) -> None:
        if self._sa is None:
            raise RuntimeError("suffix array has not been calculated or loaded")
        out = bytearray(
            _SA_HEADER.pack(self.primary, *self.l2[1:], self.sa_intv, self.seq_len)
        )
        out += struct.pack(f"<{len(self._sa) - 1}Q", *self._sa[1:])
        Path(path).write_bytes(bytes(out))

    def restore_sa(self, path: str | Path) -> None:
        data = Path(path).read_bytes()
        if len(data) < _SA_HEADER.size:
            raise ValueError(f"{path}: file too short for an SA header")
        primary, _a, _c, _g, _t, sa_intv, seq_len = _SA_HEADER.unpack_from(data)
        if primary != self.primary:
            raise ValueError("SA-BWT inconsistency: primary is not the same.")
        if seq_len != self.seq_len:
            raise ValueError("SA-BWT inconsistency: seq_len is not the same.")
        if sa_intv < 1:
            raise ValueError(f"{path}: invalid SA sample interval")
        n_sa = (seq_len + sa_intv) // sa_intv
        needed = _SA_HEADER.size + 8 * (n_sa - 1)
        if len(data) < needed:
            raise ValueError(f"{path}: SA data is truncated")
        values = struct.unpack_from(f"<{n_sa - 1}Q", data, _SA_HEADER.size)
        self.sa_intv = sa_intv
        self._sa = [-1, *values]

    # ------------------------------------------------------------------
    # rank queries

    def char_at(self, k: int) -> int:
        """Code at position k of the $-removed BWT string."""
        return self._codes[k]

    def _adjust(self, k: int) -> int:
        if k > self.seq_len:
            raise IndexError(f"BWT position {k} out of range")
        return k - (k >= self.primary)

    def occ(self, k: int, c: int) -> int:
        """Occurrences of c in BWT rows 0..k."""
        if k == self.seq_len:
            return self.l2[c + 1] - self.l2[c]
        if k < 0:
            return 0
        k = self._adjust(k)
        block = k >> OCC_INTV_SHIFT
        return self._checkpoints[block][c] + self._codes.count(
            c, block << OCC_INTV_SHIFT, k + 1
        )

    def occ_pair(self, k: int, l: int, c: int) -> tuple[int, int]:
        return self.occ(k, c), self.occ(l, c)

    def occ4(self, k: int) -> tuple[int, int, int, int]:
        """Occurrences of each code in BWT rows 0..k."""
        if k < 0:
            return (0, 0, 0, 0)
        k = self._adjust(k)
        block = k >> OCC_INTV_SHIFT
        start = block << OCC_INTV_SHIFT
        base = self._checkpoints[block]
        return tuple(base[c] + self._codes.count(c, start, k + 1) for c in range(4))

    def occ4_pair(self, k: int, l: int) -> tuple[tuple[int, ...], tuple[int, ...]]:
        return self.occ4(k), self.occ4(l)

    # ------------------------------------------------------------------
    # suffix array

    def _inv_psi(self, k: int) -> int:
        if k == self.primary:
            return 0
        c = self._codes[k - (k > self.primary)]
        return self.l2[c] + self.occ(k, c)

    def calc_sa(self, interval: int) -> None:
        """Sample the suffix array every `interval` rows (a power of 2)."""
        if interval < 1 or interval & (interval - 1):
            raise ValueError("SA sample interval is not a power of 2.")
        self.sa_intv = interval
        sa = [0] * ((self.seq_len + interval) // interval)
        isa, pos = 0, self.seq_len
        for _ in range(self.seq_len):
            if isa % interval == 0:
                sa[isa // interval] = pos
            pos -= 1
            isa = self._inv_psi(isa)
        if isa % interval == 0:
            sa[isa // interval] = pos
        sa[0] = -1
        self._sa = sa

    def sa(self, k: int) -> int:
        """Text position of BWT row k; row 0 (the sentinel) gives -1."""
        if self._sa is None:
            raise RuntimeError("suffix array has not been calculated or loaded")
        steps, mask = 0, self.sa_intv - 1
        while k & mask:
            steps += 1
            k = self._inv_psi(k)
        return steps + self._sa[k // self.sa_intv]

    # ------------------------------------------------------------------
    # exact matching

    def match_exact(self, seq: str | Sequence[int]) -> tuple[int, int] | None:
        """SA interval (k, l) of an exact match of seq, or None."""
        return self.match_exact_alt(seq, 0, self.seq_len)

    def match_exact_alt(
        self, seq: str | Sequence[int], k: int, l: int
    ) -> tuple[int, int] | None:
        """Narrow the interval (k, l) by backward search of seq."""
        for c in reversed(_query_codes(seq)):
            if c > 3:
                return None
            ok, ol = self.occ_pair(k - 1, l, c)
            k = self.l2[c] + ok + 1
            l = self.l2[c] + ol
            if k > l:
                return None
        return k, l

    # ------------------------------------------------------------------
    # bidirectional search

    def set_interval(self, c: int) -> BiInterval:
        l2 = self.l2
        return BiInterval([l2[c] + 1, l2[3 - c] + 1, l2[c + 1] - l2[c]], 0)

    def extend(self, ik: BiInterval, is_back: bool) -> list[BiInterval]:
        """Extend a bidirectional interval by each of the four bases."""
        b = 1 if is_back else 0
        nb = 1 - b
        start = ik.x[nb] - 1
        tk, tl = self.occ4_pair(start, start + ik.x[2])
        ok = [BiInterval() for _ in range(4)]
        for i in range(4):
            ok[i].x[nb] = self.l2[i] + 1 + tk[i]
            ok[i].x[2] = tl[i] - tk[i]
        spans_primary = ik.x[nb] <= self.primary and ik.x[nb] + ik.x[2] - 1 >= self.primary
        ok[3].x[b] = ik.x[b] + int(spans_primary)
        ok[2].x[b] = ok[3].x[b] + ok[3].x[2]
        ok[1].x[b] = ok[2].x[b] + ok[2].x[2]
        ok[0].x[b] = ok[1].x[b] + ok[1].x[2]
        return ok

    def smem1a(
        self, seq: str | Sequence[int], x: int, min_intv: int, max_intv: int
    ) -> tuple[int, list[BiInterval]]:
        """SMEMs covering query position x; returns (end of longest match, mems)."""
        q = _query_codes(seq)
        n = len(q)
        mems: list[BiInterval] = []
        if q[x] > 3:
            return x + 1, mems
        min_intv = max(min_intv, 1)
        ik = self.set_interval(q[x])
        ik.info = x + 1
        curr: list[BiInterval] = []
        for i in range(x + 1, n):
            if ik.size < max_intv:
                curr.append(ik)
                break
            if q[i] < 4:
                c = 3 - q[i]
                ok = self.extend(ik, False)
                if ok[c].size != ik.size:
                    curr.append(ik)
                    if ok[c].size < min_intv:
                        break
                ik = ok[c]
                ik.info = i + 1
            else:
                curr.append(ik)
                break
        else:
            curr.append(ik)
        curr.reverse()
        ret = curr[0].info
        prev = curr

        for i in range(x - 1, -2, -1):
            c = q[i] if i >= 0 and q[i] < 4 else -1
            curr = []
            ok: list[BiInterval] = []
            for p in prev:
                if c >= 0 and ik.size >= max_intv:
                    ok = self.extend(p, True)
                if c < 0 or ik.size < max_intv or ok[c].size < min_intv:
                    if not curr and (not mems or i + 1 < mems[-1].info >> 32):
                        ik = p.copy()
                        ik.info |= (i + 1) << 32
                        mems.append(ik)
                elif not curr or ok[c].size != curr[-1].size:
                    ok[c].info = p.info
                    curr.append(ok[c])
            if not curr:
                break
            prev = curr
        mems.reverse()
        return ret, mems

    def smem1(
        self, seq: str | Sequence[int], x: int, min_intv: int
    ) -> tuple[int, list[BiInterval]]:
        return self.smem1a(seq, x, min_intv, 0)

    def seed_strategy1(
        self, seq: str | Sequence[int], x: int, min_len: int, max_intv: int
    ) -> tuple[int, BiInterval | None]:
        """First seed from x longer than min_len whose interval is below max_intv."""
        q = _query_codes(seq)
        if q[x] > 3:
            return x + 1, None
        ik = self.set_interval(q[x])
        for i in range(x + 1, len(q)):
            if q[i] >= 4:
                return i + 1, None
            c = 3 - q[i]
            ok = self.extend(ik, False)
            if ok[c].size < max_intv and i - x >= min_len:
                mem = ok[c]
                mem.info = (x << 32) | (i + 1)
                return i + 1, mem
            ik = ok[c]
        return len(q), None