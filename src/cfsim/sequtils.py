"""Sequence cleanup and strand helpers shared by the parser and the simulators."""

import re

from Bio.Seq import reverse_complement as _bio_reverse_complement

from cfsim.errors import UnrecognizedSequenceError

# IUPAC nucleotide codes, degeneracy included
NUCLEOTIDES = "ACGTRYKMSWBDHVN"

_SEQUENCE_RE = re.compile(f"^[{NUCLEOTIDES}]+$")
_WHITESPACE_RE = re.compile(r"\s+")


def is_sequence_text(text: str) -> bool:
    """True if text (case-insensitive) is a non-empty run of nucleotide letters."""
    if not text:
        return False
    return bool(_SEQUENCE_RE.match(text.upper().replace("U", "T")))


def resolve_sequence(value: object) -> str:
    """
    Resolve a loosely typed value into a canonical sequence string.

    Whitespace is removed, letters are uppercased and RNA ``U`` becomes ``T``.

    Raises:
        UnrecognizedSequenceError: if the value is empty or contains anything
            other than nucleotide / degeneracy letters.
    """
    if value is None:
        raise UnrecognizedSequenceError(value)
    text = _WHITESPACE_RE.sub("", str(value)).upper().replace("U", "T")
    if not _SEQUENCE_RE.match(text):
        raise UnrecognizedSequenceError(value)
    return text


def reverse_complement(seq: str) -> str:
    """Reverse complement, degeneracy codes included (``R`` <-> ``Y`` etc.)."""
    if seq and not _SEQUENCE_RE.match(seq):
        raise UnrecognizedSequenceError(seq)
    return _bio_reverse_complement(seq)


def is_palindromic(seq: str) -> bool:
    return seq == reverse_complement(seq)
