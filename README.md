# bwtaligner

Tools for building and querying Burrows-Wheeler transform (FM) indices over
DNA sequences, with helpers that a short-read aligner needs around them.
Pure Python, no dependencies.

Bases are coded 0–3 for A, C, G, T and 4 for an ambiguous base. Wherever a
function takes a text or query, it accepts either a string of letters or a
sequence of these codes.

## Modules

- `bwtaligner.bwt`: the `Bwt` index over the $-removed BWT string.
  - Build one in memory with `Bwt.from_text`, or load one with
    `Bwt.restore_bwt` (a `.bwt` file with interleaved occurrence counts) and
    `restore_sa`; write them back with `dump_bwt` and `dump_sa`.
  - Rank queries: `char_at`, `occ`, `occ_pair`, `occ4`, `occ4_pair`.
  - Suffix array: `calc_sa(interval)` samples it (the interval must be a power
    of 2) and `sa(k)` gives the text position of row `k` (row 0 gives -1).
  - Exact matching: `match_exact(seq)` and `match_exact_alt(seq, k, l)` return
    the SA interval `(k, l)` or `None`.
  - Bidirectional search with `BiInterval`: `set_interval`, `extend`, and
    super-maximal exact match search with `smem1`, `smem1a` (each returns the
    end of the longest match and the list of intervals) and `seed_strategy1`.
- `bwtaligner.lite`: `LiteBwt.from_sequence` builds a small index that keeps
  the full suffix array (`sa`) and answers `char_at`, `occ`, `occ4` and
  `occ4_pair`; `suffix_array` gives the suffix array of a sequence with a
  sentinel.
- `bwtaligner.packing`: 2-bit packed text. `read_pac` and `unpack_pac` decode
  `.pac` data to one code per byte; `byte_packed_to_word_packed` and
  `word_packed_to_codes` convert to and from 32-bit words of sixteen codes;
  also `text_length_from_packed`, `leading_zero`, `ceil_log2` and
  `dna_occ_count_table`.
- `bwtaligner.occvalues`: counting over word-packed BWT code.
  `OccIndex.from_bwt_code` stores occurrence values every 256 characters and
  `OccIndex.occ` counts forward or backward from the nearest one;
  `forward_dna_occ_count`, `backward_dna_occ_count` and
  `forward_all_occ_count` count within the words directly.
- `bwtaligner.bwtgen`: `build_bwt` and `build_bwt_from_pac` compute the BWT
  of a whole text by sorting its suffixes and return a `BuiltBwt` (inverse
  SA[0], cumulative counts and codes). `BuiltBwt.packed_words` packs the
  codes and `BuiltBwt.save` writes inverse SA[0], the four cumulative counts
  and the packed words, with no occurrence counts interleaved. `bwtgen` does
  both steps for a `.pac` file; its `block_size` argument is only checked to
  be positive.
- `bwtaligner.reads`: `parse_fastx` yields `(name, comment, sequence,
  quality)` records; `read_batches` reads a plain or gzipped FASTA/FASTQ file
  into batches of `ReadSeq`, applying the `ReadMode` bits (complemented reverse
  sequence, Casava filtering, Illumina 1.3 qualities), barcode stripping and
  quality trimming. Also `nt4`, `seq_reverse` and `trim_read`.
- `bwtaligner.samse`: single-end post-processing on `ReadSeq` records.
  `aln2seq` and `aln2seq_core` pick a random best hit from a list of `Aln`
  intervals and collect alternative `MultiHit`s; `approx_map_q` estimates the
  mapping quality (`log_n_table` holds the table it uses); `calc_md` returns
  the MD string and edit distance; `correct_trimmed` soft-clips the trimmed
  tail; `pos_end` and `pos_end_multi` give alignment ends; `format_cigar` and
  `format_seq` format SAM fields. CIGARs are lists of `(CigarOp, length)`.

## Installing

```
pip install .
```

## Building a BWT from a packed reference

```
bwtgen ref.fa.pac ref.fa.bwt
```

This writes the raw BWT produced by `BuiltBwt.save`.

From Python:

```python
from bwtaligner.bwt import Bwt

index = Bwt.from_text("ACGTAC")
index.calc_sa(2)
k, l = index.match_exact("AC")          # SA interval of "AC"
positions = sorted(index.sa(i) for i in range(k, l + 1))   # [0, 4]
```

An index whose `.bwt` file holds interleaved occurrence counts (as written by
`Bwt.dump_bwt`) is loaded with:

```python
index = Bwt.restore_bwt("ref.fa.bwt")
index.restore_sa("ref.fa.sa")
```

## What it does not do

- It does not turn a FASTA reference into a `.pac` file, and the file written
  by `bwtgen` lacks the occurrence counts that `Bwt.restore_bwt` expects.
- It does not search reads against an index for inexact hits, run
  Smith-Waterman alignment, pair mates, or write complete SAM records; the
  `samse` helpers work on hits and reads supplied by the caller.
- It reads FASTA/FASTQ only, not BAM.
- BWT construction holds the whole text in memory and is meant for modest
  references.

## Running the tests

```
pip install ".[test]"
pytest
```