"""Reading FASTA/FASTQ reads into 2-bit coded records, with barcode and quality trimming."""

from __future__ import annotations

import gzip
import io
import sys
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import IntFlag
from pathlib import Path
from typing import Iterable, Iterator, Sequence, TypeVar

MIN_READ_LEN = 35
MAX_BARCODE_LEN = 63
BARCODE_SHIFT = 24
BARCODE_LOW_QUAL = 13
DEFAULT_BATCH = 0x40000

_NT4 = {"A": 0, "C": 1, "G": 2, "T": 3, "a": 0, "c": 1, "g": 2, "t": 3}

_S = TypeVar("_S", str, bytes, bytearray, list)


class ReadMode(IntFlag):
    """Mode bits that affect how reads are loaded; the barcode length sits above BARCODE_SHIFT."""

    COMPREAD = 0x02
    CFY = 0x08
    IL13 = 0x200


@dataclass
class ReadSeq:
    """One read: codes stored reversed in seq, the reverse (complement) in rseq."""

    name: str
    seq: bytearray
    rseq: bytearray
    qual: str | None
    full_len: int
    clip_len: int
    length: int
    bc: str = ""
    tid: int = -1
    type: int = 0
    c1: int = 0
    c2: int = 0
    n_mm: int = 0
    n_gapo: int = 0
    n_gape: int = 0
    ref_shift: int = 0
    score: int = 0
    sa: int = 0
    pos: int = 0
    strand: int = 0
    mapQ: int = 0
    seQ: int = 0
    extra_flag: int = 0
    multi: list = field(default_factory=list)
    cigar: list | None = None
    md: str | None = None
    nm: int = 0


def nt4(base: str) -> int:
    """2-bit code of a nucleotide letter: A, C, G, T give 0..3 and anything else 4."""
    if not isinstance(base, str) or len(base) != 1:
        raise ValueError("expected a single character")
    return _NT4.get(base, 4)


def seq_reverse(seq: _S, is_comp: bool = False) -> _S:
    """Reverse a sequence; with is_comp, also complement the codes below 4."""
    if isinstance(seq, str):
        if is_comp:
            raise ValueError("only coded sequences can be complemented")
        return seq[::-1]
    rev = [c if not is_comp or c >= 4 else 3 - c for c in reversed(seq)]
    if isinstance(seq, bytearray):
        return bytearray(rev)
    if isinstance(seq, bytes):
        return bytes(rev)
    return rev


def trim_read(trim_qual: int, read: ReadSeq) -> int:
    """Trim the low-quality 3' end of read in place; returns how many bases were cut."""
    if trim_qual < 1 or not read.qual:
        return 0
    s = 0
    best = 0
    best_len = read.length
    for l in range(read.length - 1, MIN_READ_LEN - 1, -1):
        s += trim_qual - (ord(read.qual[l]) - 33)
        if s < 0:
            break
        if s > best:
            best, best_len = s, l
    read.clip_len = read.length = best_len
    return read.full_len - read.length


def _chomp(line: str | bytes) -> str:
    if isinstance(line, bytes):
        line = line.decode("latin-1")
    return line.rstrip("\r\n")


def _next_header(lines: Iterator[str | bytes]) -> str | None:
    for raw in lines:
        line = _chomp(raw)
        if line[:1] in (">", "@"):
            return line
    return None


def _split_header(header: str) -> tuple[str, str]:
    body = header[1:]
    for i, ch in enumerate(body):
        if ch in " \t":
            return body[:i], body[i + 1:]
    return body, ""


def parse_fastx(
    lines: Iterable[str | bytes],
) -> Iterator[tuple[str, str, str, str | None]]:
    """Yield (name, comment, sequence, quality) for each FASTA or FASTQ record."""
    it = iter(lines)
    header = _next_header(it)
    while header is not None:
        name, comment = _split_header(header)
        parts: list[str] = []
        following: str | None = None
        for raw in it:
            line = _chomp(raw)
            if line[:1] in (">", "@", "+"):
                following = line
                break
            parts.append(line)
        seq = "".join(parts)
        if following is None or following[0] != "+":
            yield name, comment, seq, None
            header = following
            continue
        qual_parts: list[str] = []
        have = 0
        while have < len(seq):
            raw = next(it, None)
            if raw is None:
                break
            line = _chomp(raw)
            qual_parts.append(line)
            have += len(line)
        qual = "".join(qual_parts)
        if len(qual) != len(seq):
            raise ValueError(f"record {name!r}: quality length differs from sequence length")
        yield name, comment, seq, qual
        header = _next_header(it)


@contextmanager
def _open_text(path: str | Path) -> Iterator[io.TextIOBase]:
    with open(path, "rb") as probe:
        magic = probe.read(2)
    if magic == b"\x1f\x8b":
        handle = io.TextIOWrapper(gzip.open(path, "rb"), encoding="latin-1")
    else:
        handle = open(path, encoding="latin-1")
    with handle:
        yield handle


def _make_read(
    name: str, seq: str, qual: str | None, mode: int, l_bc: int
) -> ReadSeq | None:
    if mode & ReadMode.IL13 and qual:
        qual = "".join(chr((ord(c) - 31) & 0xFF) for c in qual)
    if len(seq) <= l_bc:
        return None
    bc = ""
    if l_bc:
        bc = "".join(
            seq[i].lower() if qual and ord(qual[i]) - 33 < BARCODE_LOW_QUAL else seq[i].upper()
            for i in range(l_bc)
        )
        seq = seq[l_bc:]
        if qual:
            qual = qual[l_bc:]
    n = len(seq)
    if len(name) > 2 and name[-2] == "/" and name[-1] in "12":
        name = name[:-2]
    return ReadSeq(
        name=name,
        seq=bytearray(nt4(ch) for ch in seq),
        rseq=bytearray(n),
        qual=qual or None,
        full_len=n,
        clip_len=n,
        length=n,
        bc=bc,
    )


def read_batches(
    path: str | Path,
    n_needed: int = DEFAULT_BATCH,
    mode: int = 0,
    trim_qual: int = 0,
) -> Iterator[list[ReadSeq]]:
    """Yield lists of at most n_needed reads from a FASTA/FASTQ file, gzipped or plain."""
    mode = int(mode)
    l_bc = mode >> BARCODE_SHIFT
    if l_bc > MAX_BARCODE_LEN:
        raise ValueError(f"the maximum barcode length is {MAX_BARCODE_LEN}.")
    if n_needed < 1:
        raise ValueError("batch size must be positive")
    is_comp = bool(mode & ReadMode.COMPREAD)
    with _open_text(path) as handle:
        batch: list[ReadSeq] = []
        n_trimmed = n_tot = 0
        for name, comment, seq, qual in parse_fastx(handle):
            if mode & ReadMode.CFY and comment:
                colon = comment.find(":")
                if colon >= 0 and comment[colon + 1:colon + 2] == "Y":
                    continue
            read = _make_read(name, seq, qual, mode, l_bc)
            if read is None:
                continue
            n_tot += read.full_len
            if read.qual and trim_qual >= 1:
                n_trimmed += trim_read(trim_qual, read)
            head = read.seq[:read.length]
            read.rseq[:read.length] = seq_reverse(head, is_comp)
            read.seq[:read.length] = seq_reverse(head, False)
            batch.append(read)
            if len(batch) == n_needed:
                _report_trimmed(trim_qual, n_trimmed, n_tot)
                yield batch
                batch, n_trimmed, n_tot = [], 0, 0
        if batch:
            _report_trimmed(trim_qual, n_trimmed, n_tot)
            yield batch


def _report_trimmed(trim_qual: int, n_trimmed: int, n_tot: int) -> None:
    if trim_qual >= 1 and n_tot:
        print(
            f"[bwa_read_seq] {100.0 * n_trimmed / n_tot:.1f}% bases are trimmed.",
            file=sys.stderr,
        )