"""
Multiple alignments held as sufficient statistics.

An Alignment never stores full columns: only the distinct column
patterns ("tuples") and how often each occurs. This is all the
likelihood needs, and it is exactly what non-parametric resampling
redraws. Gaps and ambiguity characters are stored as MISSING (-1).

Readers cover FASTA, PHYLIP (sequential or interleaved), MPM and the SS
sufficient-statistics format; replicates are always written as SS.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, IO, Sequence

import numpy as np
from numpy.typing import NDArray

from phyloboot.core.exceptions import ConfigurationError, ValidationError
from phyloboot.phylo.substitution import ALPHABET, N_STATES

MISSING = -1
FORMATS = ('FASTA', 'PHYLIP', 'MPM', 'SS')

_STATE_OF = {c: i for i, c in enumerate(ALPHABET)}


class Alignment:
    """
    Site-pattern counts for a set of named sequences.

    Attributes:
        names: Sequence names, one per tuple column
        tuples: Distinct column patterns, shape (n_tuples, n_seqs), int8
            states with MISSING for gaps
        counts: Occurrences of each pattern, shape (n_tuples,), float64
        length: Number of alignment columns represented
    """

    def __init__(
        self,
        names: Sequence[str],
        tuples: NDArray[np.integer[Any]],
        counts: NDArray[np.floating[Any]],
        length: int | None = None,
    ):
        self.names = list(names)
        self.tuples = np.asarray(tuples, dtype=np.int8)
        self.counts = np.asarray(counts, dtype=np.float64)
        if self.tuples.ndim != 2 or self.tuples.shape[1] != len(self.names):
            raise ValidationError(
                f"alignment: tuples must have shape (n_tuples, {len(self.names)}), "
                f"got {self.tuples.shape}"
            )
        if self.counts.shape != (self.tuples.shape[0],):
            raise ValidationError(
                f"alignment: {self.tuples.shape[0]} tuples but {self.counts.size} counts"
            )
        if length is None:
            length = int(round(float(self.counts.sum())))
        self.length = int(length)

    @classmethod
    def from_sequences(cls, names: Sequence[str], seqs: Sequence[str]) -> Alignment:
        """
        Compress aligned sequences into pattern counts.

        Raises:
            ValidationError: If sequences are missing or of unequal length
        """
        if len(names) != len(seqs) or not seqs:
            raise ValidationError(
                f"alignment: {len(names)} names for {len(seqs)} sequences"
            )
        if len(set(names)) != len(names):
            raise ValidationError(f"alignment: duplicate sequence names in {list(names)}")
        lengths = {len(s) for s in seqs}
        if len(lengths) != 1:
            raise ValidationError(f"alignment: sequences have unequal lengths {sorted(lengths)}")

        columns = np.array(
            [[_STATE_OF.get(c, MISSING) for c in s.upper()] for s in seqs],
            dtype=np.int8,
        ).T
        if columns.shape[0] == 0:
            raise ValidationError("alignment: sequences are empty")
        tuples, counts = np.unique(columns, axis=0, return_counts=True)
        return cls(names, tuples, counts.astype(np.float64), length=columns.shape[0])

    @property
    def n_seqs(self) -> int:
        return len(self.names)

    @property
    def n_tuples(self) -> int:
        return self.tuples.shape[0]

    def base_frequencies(self) -> NDArray[np.floating[Any]]:
        """Count-weighted base composition over observed (non-missing) states."""
        freqs = np.zeros(N_STATES)
        for state in range(N_STATES):
            freqs[state] = np.dot((self.tuples == state).sum(axis=1), self.counts)
        total = freqs.sum()
        if total <= 0:
            return np.full(N_STATES, 1.0 / N_STATES)
        return freqs / total

    def copy(self) -> Alignment:
        return Alignment(self.names, self.tuples.copy(), self.counts.copy(), self.length)

    def tuple_strings(self) -> list[str]:
        chars = np.array(list(ALPHABET) + ['-'])
        return [''.join(chars[row]) for row in self.tuples]

    def __repr__(self) -> str:
        return (
            f"Alignment(n_seqs={self.n_seqs}, length={self.length}, "
            f"n_tuples={self.n_tuples})"
        )


# ----------------------------------------------------------------------
# Formats
# ----------------------------------------------------------------------

def format_from_name(name: str) -> str:
    """Normalize an alignment format name (FASTA, PHYLIP, MPM, SS)."""
    fmt = str(name).upper()
    if fmt not in FORMATS:
        raise ConfigurationError(
            f"unrecognized alignment format {name!r}; use one of {', '.join(FORMATS)}"
        )
    return fmt


def read_alignment(path: str | Path, fmt: str = 'FASTA') -> Alignment:
    """
    Read an alignment file.

    Raises:
        ConfigurationError: Unknown format
        ValidationError: Unreadable or malformed file
    """
    fmt = format_from_name(fmt)
    path = Path(path)
    try:
        text = path.read_text()
    except OSError as e:
        raise ValidationError(f"alignment: cannot read {path}: {e}") from e

    if fmt == 'SS':
        return parse_ss(text)
    if fmt == 'FASTA':
        names, seqs = _parse_fasta(text)
    elif fmt == 'PHYLIP':
        names, seqs = _parse_phylip(text)
    else:
        names, seqs = _parse_mpm(text)
    return Alignment.from_sequences(names, seqs)


def _parse_fasta(text: str) -> tuple[list[str], list[str]]:
    names: list[str] = []
    chunks: list[list[str]] = []
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        if line.startswith('>'):
            names.append(line[1:].split()[0] if line[1:].split() else '')
            chunks.append([])
        elif not chunks:
            raise ValidationError("alignment: FASTA data before first '>' header")
        else:
            chunks[-1].append(line.replace(' ', ''))
    return names, [''.join(c) for c in chunks]


def _read_header(line: str, fmt: str) -> tuple[int, int]:
    try:
        nseqs, length = (int(x) for x in line.split()[:2])
    except ValueError:
        raise ValidationError(f"alignment: bad {fmt} header {line!r}") from None
    return nseqs, length


def _parse_phylip(text: str) -> tuple[list[str], list[str]]:
    lines = [ln for ln in text.splitlines() if ln.strip()]
    if not lines:
        raise ValidationError("alignment: empty PHYLIP file")
    nseqs, length = _read_header(lines[0], 'PHYLIP')
    body = lines[1:]
    if len(body) < nseqs:
        raise ValidationError(f"alignment: PHYLIP header promises {nseqs} sequences")

    names = []
    parts: list[list[str]] = []
    for line in body[:nseqs]:
        fields = line.split()
        names.append(fields[0])
        parts.append([''.join(fields[1:])])
    # interleaved blocks continue round-robin
    for k, line in enumerate(body[nseqs:]):
        parts[k % nseqs].append(''.join(line.split()))

    seqs = [''.join(p) for p in parts]
    if any(len(s) != length for s in seqs):
        raise ValidationError(f"alignment: PHYLIP sequences do not match length {length}")
    return names, seqs


def _parse_mpm(text: str) -> tuple[list[str], list[str]]:
    # header "<nseqs> <length>", then one name per line, then the sequences
    lines = [ln.strip() for ln in text.splitlines() if ln.strip()]
    if not lines:
        raise ValidationError("alignment: empty MPM file")
    nseqs, length = _read_header(lines[0], 'MPM')
    names = lines[1:1 + nseqs]
    residue = ''.join(lines[1 + nseqs:])
    if len(names) != nseqs or len(residue) != nseqs * length:
        raise ValidationError(
            f"alignment: MPM file does not hold {nseqs} sequences of length {length}"
        )
    seqs = [residue[i * length:(i + 1) * length] for i in range(nseqs)]
    return names, seqs


def parse_ss(text: str) -> Alignment:
    """Parse the SS sufficient-statistics format."""
    header: dict[str, str] = {}
    lines = text.splitlines()
    i = 0
    while i < len(lines) and lines[i].strip():
        key, _, value = lines[i].partition('=')
        header[key.strip().upper()] = value.strip()
        i += 1
    for required in ('NSEQS', 'NAMES'):
        if required not in header:
            raise ValidationError(f"alignment: SS header lacks {required}")

    names = [n.strip() for n in header['NAMES'].split(',')]
    try:
        nseqs = int(header['NSEQS'])
        tuple_size = int(header.get('TUPLE_SIZE', '1'))
        length = int(header['LENGTH']) if 'LENGTH' in header else None
    except ValueError:
        raise ValidationError(f"alignment: bad SS header {header}") from None
    if len(names) != nseqs:
        raise ValidationError(f"alignment: SS header lists {len(names)} names, NSEQS={nseqs}")
    if tuple_size != 1:
        raise ValidationError("alignment: only TUPLE_SIZE = 1 is supported")

    rows = []
    counts = []
    for line in lines[i:]:
        fields = line.split()
        if not fields:
            continue
        if len(fields) == 3:
            fields = fields[1:]
        if len(fields) != 2 or len(fields[0]) != nseqs:
            raise ValidationError(f"alignment: bad SS tuple line {line!r}")
        rows.append([_STATE_OF.get(c, MISSING) for c in fields[0].upper()])
        try:
            counts.append(float(fields[1]))
        except ValueError:
            raise ValidationError(f"alignment: bad SS count in {line!r}") from None

    tuples = np.array(rows, dtype=np.int8).reshape(len(rows), nseqs)
    counts_arr = np.array(counts, dtype=np.float64)
    return Alignment(names, tuples, counts_arr, length)


def write_ss(aln: Alignment, stream: IO[str]) -> None:
    """Write an alignment in SS format."""
    stream.write(f"NSEQS = {aln.n_seqs}\n")
    stream.write(f"LENGTH = {aln.length}\n")
    stream.write("TUPLE_SIZE = 1\n")
    stream.write(f"NTUPLES = {aln.n_tuples}\n")
    stream.write(f"NAMES = {','.join(aln.names)}\n")
    stream.write(f"ALPHABET = {ALPHABET}\n")
    stream.write("IDX_OFFSET = 0\n")
    stream.write("NCATS = -1\n\n")
    for idx, (tup, count) in enumerate(zip(aln.tuple_strings(), aln.counts)):
        if float(count).is_integer():
            stream.write(f"{idx}\t{tup}\t{int(count)}\n")
        else:
            stream.write(f"{idx}\t{tup}\t{count:f}\n")
