"""
Error taxonomy for Construction File parsing and simulation.

Every error derives from ConstructionFileError, itself a ValueError, so callers
that only care about "bad input" can keep catching ValueError. Each error keeps
the identifiers of the offending fragment or sequence as attributes.
"""

from typing import List, Optional, Sequence


class ConstructionFileError(ValueError):
    """Base class for all Construction File errors."""


class UnrecognizedSequenceError(ConstructionFileError):
    """A value is not made of nucleotide / degeneracy letters."""

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Unrecognized sequence: {value!r}")


class ParseError(ConstructionFileError):
    """A line is neither a known operation nor a valid sequence definition."""

    def __init__(self, line: str, line_number: int, reason: str = "unrecognized line"):
        self.line = line
        self.line_number = line_number
        self.reason = reason
        super().__init__(f"Line {line_number}: {reason}: {line!r}")


class UnresolvedReferenceError(ConstructionFileError):
    """A step references a name that is neither a prior product nor a sequence."""

    def __init__(self, name: str, step_output: Optional[str] = None):
        self.name = name
        self.step_output = step_output
        where = f" (step producing {step_output!r})" if step_output else ""
        super().__init__(f"Unresolved reference {name!r}{where}")


class AnnealMismatchError(ConstructionFileError):
    """A PCR oligo's 3' anneal region has no exact match on the template."""

    def __init__(self, oligo: str, anneal: str = ""):
        self.oligo = oligo
        self.anneal = anneal
        super().__init__(f"The {oligo} oligo does not anneal to the template ({anneal})")


class EnzymeSiteError(ConstructionFileError):
    """Recognition sites are missing, duplicated or misoriented."""

    def __init__(self, enzyme: str, fragment: str, reason: str):
        self.enzyme = enzyme
        self.fragment = fragment
        self.reason = reason
        super().__init__(f"{enzyme}: {reason} in fragment {_short(fragment)}")


class StickyEndError(ConstructionFileError):
    """A sticky end is self-palindromic and could ligate in either orientation."""

    def __init__(self, sticky_end: str, fragment: str):
        self.sticky_end = sticky_end
        self.fragment = fragment
        super().__init__(f"Palindromic sticky end {sticky_end} on fragment {_short(fragment)}")


class AmbiguousAssemblyError(ConstructionFileError):
    """More than one fragment could fill the same junction."""

    def __init__(self, sticky_end: str, fragments: Sequence[str]):
        self.sticky_end = sticky_end
        self.fragments = list(fragments)
        names = ", ".join(_short(f) for f in self.fragments)
        super().__init__(f"Sticky end {sticky_end} is shared by fragments {names}")


class StickyEndMismatchError(ConstructionFileError):
    """Adjacent fragments do not share a sticky end, or the cycle does not close."""

    def __init__(self, fragments: Sequence[str], reason: str = "sticky ends do not match"):
        self.fragments = list(fragments)
        self.reason = reason
        names = ", ".join(_short(f) for f in self.fragments)
        super().__init__(f"{reason}: {names}")


class NonConvergenceError(ConstructionFileError):
    """A homology assembly round matched junctions ambiguously or not at all."""

    def __init__(self, fragments: Sequence[str], reason: str):
        self.fragments = list(fragments)
        self.reason = reason
        super().__init__(f"Assembly did not converge: {reason} ({len(self.fragments)} fragments)")


class CircularityError(ConstructionFileError):
    """The assembly product is linear but a circular product was required."""

    def __init__(self, sequence: str):
        self.sequence = sequence
        super().__init__(f"Assembly product {_short(sequence)} is linear, expected circular")


class FragmentIndexError(ConstructionFileError):
    """A digest fragment selection is out of range."""

    def __init__(self, index: int, count: int):
        self.index = index
        self.count = count
        super().__init__(f"Fragment index {index} out of range for {count} fragments")


class UnsupportedOperationError(ConstructionFileError):
    """A step is not one of the known operation kinds."""

    def __init__(self, operation: object):
        self.operation = operation
        super().__init__(f"Unsupported operation: {operation!r}")


def _short(seq: str, width: int = 24) -> str:
    if len(seq) <= width:
        return seq
    return f"{seq[:width // 2]}...{seq[-width // 2:]} ({len(seq)} bp)"


__all__: List[str] = [
    "ConstructionFileError",
    "UnrecognizedSequenceError",
    "ParseError",
    "UnresolvedReferenceError",
    "AnnealMismatchError",
    "EnzymeSiteError",
    "StickyEndError",
    "AmbiguousAssemblyError",
    "StickyEndMismatchError",
    "NonConvergenceError",
    "CircularityError",
    "FragmentIndexError",
    "UnsupportedOperationError",
]
