"""Single-end alignment bookkeeping: hit selection, mapping quality, MD tags and CIGARs."""

from __future__ import annotations

import math
import random
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterable, Sequence

from .reads import ReadSeq

TYPE_NO_MATCH = 0
TYPE_UNIQUE = 1
TYPE_REPEAT = 2
TYPE_MATESW = 3

_BASES = "ACGTN"
_COMPLEMENT_BASES = "TGCAN"


class CigarOp(IntEnum):
    """CIGAR operations in the order of the letters MIDS."""

    M = 0
    I = 1
    D = 2
    S = 3

    @property
    def letter(self) -> str:
        return "MIDS"[self.value]


Cigar = list[tuple[CigarOp, int]]


@dataclass
class Aln:
    """One SA interval [k, l] reported by the aligner, with its edit counts and score."""

    k: int
    l: int
    score: int = 0
    n_mm: int = 0
    n_gapo: int = 0
    n_gape: int = 0
    n_ins: int = 0
    n_del: int = 0

    @property
    def width(self) -> int:
        return self.l - self.k + 1


@dataclass
class MultiHit:
    """An alternative hit: an SA row (or reference position once resolved) and its edits."""

    pos: int
    gap: int = 0
    ref_shift: int = 0
    mm: int = 0
    strand: int = 0
    cigar: Cigar | None = field(default=None)


def log_n_table() -> list[int]:
    """Phred-scaled log of n for n in 0..255, rounded; entry 0 is 0."""
    return [0] + [int(4.343 * math.log(i) + 0.5) for i in range(1, 256)]


_LOG_N = log_n_table()


def aln2seq_core(
    alns: Sequence[Aln],
    read: ReadSeq,
    set_main: bool = True,
    n_multi: int = 0,
    rng: random.Random | None = None,
) -> None:
    """Fill read with a randomly chosen best hit and, if n_multi, its alternative hits."""
    if not alns:
        read.type = TYPE_NO_MATCH
        read.c1 = read.c2 = 0
        return
    rng = rng if rng is not None else random.Random()

    if set_main:
        best = alns[0].score
        cnt = 0
        n_best = len(alns)
        for idx, p in enumerate(alns):
            if p.score > best:
                n_best = idx
                break
            width = p.width
            if rng.random() * (width + cnt) > cnt:
                read.n_mm, read.n_gapo, read.n_gape = p.n_mm, p.n_gapo, p.n_gape
                read.ref_shift = p.n_del - p.n_ins
                read.score = p.score
                read.sa = p.k + int(width * rng.random())
            cnt += width
        read.c1 = cnt
        read.c2 = sum(a.width for a in alns[n_best:])
        read.type = TYPE_REPEAT if read.c1 > 1 else TYPE_UNIQUE

    if n_multi:
        n_occ = sum(a.width for a in alns)
        if n_occ > n_multi + 1:
            # too many hits: report none of them
            read.multi = []
            return
        read.multi = [
            MultiHit(
                pos=pos,
                gap=q.n_gapo + q.n_gape,
                ref_shift=q.n_del - q.n_ins,
                mm=q.n_mm,
            )
            for q in alns
            for pos in range(q.k, q.l + 1)
        ]


def aln2seq(alns: Sequence[Aln], read: ReadSeq, rng: random.Random | None = None) -> None:
    """Choose the main hit of read without collecting alternative hits."""
    aln2seq_core(alns, read, True, 0, rng)


def approx_map_q(read: ReadSeq, mm: int) -> int:
    """Approximate mapping quality from the best and second-best hit counts."""
    if read.c1 == 0:
        return 23
    if read.c1 > 1:
        return 0
    if read.n_mm == mm:
        return 25
    if read.c2 == 0:
        return 37
    n = min(read.c2, 255)
    return 0 if 23 < _LOG_N[n] else 23 - _LOG_N[n]


def _ref_extent(cigar: Iterable[tuple[CigarOp, int]]) -> int:
    return sum(n for op, n in cigar if op in (CigarOp.M, CigarOp.D))


def calc_md(
    cigar: Cigar | None,
    length: int,
    pos: int,
    seq: Sequence[int],
    pac: Sequence[int],
) -> tuple[str, int]:
    """MD tag and edit distance of seq placed at pos on the reference codes in pac."""
    l_pac = len(pac)
    parts: list[str] = []
    nm = 0
    u = 0
    x, y = pos, 0

    def compare(n: int) -> None:
        nonlocal u, nm
        for z in range(n):
            if x + z >= l_pac:
                break
            c = pac[x + z]
            s = seq[y + z]
            if c > 3 or s > 3 or c != s:
                parts.append(f"{u}{_BASES[c]}")
                nm += 1
                u = 0
            else:
                u += 1

    if cigar:
        for op, n in cigar:
            op = CigarOp(op)
            if op == CigarOp.M:
                compare(n)
                x += n
                y += n
            elif op in (CigarOp.I, CigarOp.S):
                y += n
                if op == CigarOp.I:
                    nm += n
            elif op == CigarOp.D:
                deleted = "".join(
                    "ACGT"[pac[x + z] & 3] for z in range(n) if x + z < l_pac
                )
                parts.append(f"{u}^{deleted}")
                u = 0
                x += n
                nm += n
    else:
        compare(length)
    parts.append(str(u))
    return "".join(parts), nm


def correct_trimmed(read: ReadSeq) -> None:
    """Turn the trimmed tail of read into a soft clip and restore its full length."""
    if read.length == read.full_len:
        return
    clipped = read.full_len - read.length
    cigar = list(read.cigar) if read.cigar else None
    if read.strand == 0:
        if cigar and cigar[-1][0] == CigarOp.S:
            cigar[-1] = (CigarOp.S, cigar[-1][1] + clipped)
        elif cigar is None:
            cigar = [(CigarOp.M, read.length), (CigarOp.S, clipped)]
        else:
            cigar.append((CigarOp.S, clipped))
    else:
        if cigar and cigar[0][0] == CigarOp.S:
            cigar[0] = (CigarOp.S, cigar[0][1] + clipped)
        elif cigar is None:
            cigar = [(CigarOp.S, clipped), (CigarOp.M, read.length)]
        else:
            cigar.insert(0, (CigarOp.S, clipped))
    read.cigar = cigar
    read.length = read.full_len


def pos_end(read: ReadSeq) -> int:
    """Reference position just past the alignment of read."""
    if read.cigar:
        return read.pos + _ref_extent(read.cigar)
    return read.pos + read.length


def pos_end_multi(hit: MultiHit, length: int) -> int:
    """Reference position just past an alternative hit of a read of the given length."""
    if hit.cigar:
        return hit.pos + _ref_extent(hit.cigar)
    return hit.pos + length


def format_cigar(cigar: Iterable[tuple[CigarOp, int]]) -> str:
    """CIGAR string such as 3M1I2M."""
    return "".join(f"{n}{CigarOp(op).letter}" for op, n in cigar)


def format_seq(read: ReadSeq) -> str:
    """Read bases as printed in SAM: forward as stored, or reverse-complemented."""
    codes = read.seq[:read.full_len]
    if read.strand == 0:
        return "".join(_BASES[c] for c in codes)
    return "".join(_COMPLEMENT_BASES[c] for c in reversed(codes))