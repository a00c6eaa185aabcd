"""
Restriction enzyme registry.

Enzymes are described by their recognition sequence and two signed offsets,
``cut5`` and ``cut3``, measured from the 3' end of the recognition site to the
top-strand and bottom-strand cut positions. ``cut5 < cut3`` means the enzyme
leaves a 5' overhang. BsaI (GGTCTC N1/N5) is ``cut5=1, cut3=5``; EcoRI
(G^AATTC) is ``cut5=-5, cut3=-1``.

The registry is an immutable mapping. DEFAULT_REGISTRY is built once at import
time; simulators take a registry argument so tests can pass their own.
"""

from collections.abc import Mapping
from typing import Dict, Iterable, Iterator, List, NamedTuple

from Bio import Restriction
from pydantic import BaseModel, ConfigDict, Field

from cfsim.sequtils import reverse_complement


class RestrictionEnzyme(BaseModel):
    """A restriction enzyme with its recognition site and cut offsets."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Enzyme name, e.g. BsaI")
    recognition_sequence: str = Field(description="Recognition site on the top strand")
    cut5: int = Field(description="Top-strand cut offset from the end of the site")
    cut3: int = Field(description="Bottom-strand cut offset from the end of the site")

    @property
    def recognition_rc(self) -> str:
        return reverse_complement(self.recognition_sequence)

    @property
    def is_five_prime(self) -> bool:
        return self.cut5 < self.cut3

    @property
    def overhang_length(self) -> int:
        return abs(self.cut3 - self.cut5)

    @property
    def is_palindromic_site(self) -> bool:
        return self.recognition_sequence == self.recognition_rc


class Cut(NamedTuple):
    """A double-strand cut; ``start:end`` spans the single-stranded overhang."""

    start: int
    end: int
    enzyme: str
    forward: bool


def find_cuts(dna: str, enzyme: RestrictionEnzyme) -> List[Cut]:
    """
    Locate every cut an enzyme makes in a linear sequence.

    Forward sites cut downstream of the site, reverse-orientation sites cut
    upstream of it. Cuts that would fall outside the sequence are skipped.
    """
    site = enzyme.recognition_sequence
    inner, outer = sorted((enzyme.cut5, enzyme.cut3))
    cuts = []

    for pos in occurrences(dna, site):
        end = pos + len(site)
        cuts.append(Cut(end + inner, end + outer, enzyme.name, True))

    if not enzyme.is_palindromic_site:
        for pos in occurrences(dna, enzyme.recognition_rc):
            cuts.append(Cut(pos - outer, pos - inner, enzyme.name, False))

    return sorted(c for c in cuts if c.start >= 0 and c.end <= len(dna))


def occurrences(text: str, pattern: str) -> Iterator[int]:
    pos = text.find(pattern)
    while pos != -1:
        yield pos
        pos = text.find(pattern, pos + 1)


class EnzymeRegistry(Mapping):
    """Read-only, case-insensitive mapping of enzyme name to RestrictionEnzyme."""

    def __init__(self, enzymes: Iterable[RestrictionEnzyme] = ()):
        self._enzymes: Dict[str, RestrictionEnzyme] = {}
        for enzyme in enzymes:
            self._enzymes[enzyme.name.lower()] = enzyme

    def __getitem__(self, name: str) -> RestrictionEnzyme:
        return self._enzymes[str(name).lower()]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._enzymes

    def __iter__(self) -> Iterator[str]:
        return (enzyme.name for enzyme in self._enzymes.values())

    def __len__(self) -> int:
        return len(self._enzymes)

    def __repr__(self) -> str:
        return f"EnzymeRegistry({', '.join(self)})"

    def extended(self, *enzymes: RestrictionEnzyme) -> "EnzymeRegistry":
        """A new registry with extra (or replacement) enzymes."""
        return EnzymeRegistry(list(self._enzymes.values()) + list(enzymes))

    @classmethod
    def from_biopython(cls, *names: str) -> "EnzymeRegistry":
        """
        Build a registry from Biopython's restriction enzyme tables.

        Only enzymes that cut at a single defined position relative to their
        site are supported; anything else raises ValueError.
        """
        enzymes = []
        for name in names:
            enzyme = getattr(Restriction, name, None)
            if enzyme is None or not hasattr(enzyme, "fst5"):
                raise ValueError(f"Unknown restriction enzyme: {name}")
            if enzyme.fst5 is None or enzyme.ovhg is None:
                raise ValueError(f"{name} has no defined cut position")
            cut5 = enzyme.fst5 - enzyme.size
            enzymes.append(RestrictionEnzyme(
                name=str(enzyme),
                recognition_sequence=str(enzyme.site),
                cut5=cut5,
                cut3=cut5 - enzyme.ovhg,
            ))
        return cls(enzymes)


def _enzyme(name: str, site: str, cut5: int, cut3: int) -> RestrictionEnzyme:
    return RestrictionEnzyme(name=name, recognition_sequence=site, cut5=cut5, cut3=cut3)


DEFAULT_REGISTRY = EnzymeRegistry([
    # Type IIS, used for Golden Gate
    _enzyme("BsaI", "GGTCTC", 1, 5),
    _enzyme("BsmBI", "CGTCTC", 1, 5),
    _enzyme("BbsI", "GAAGAC", 2, 6),
    _enzyme("BtgZI", "GCGATG", 10, 14),
    _enzyme("AarI", "CACCTGC", 4, 8),
    # Type II, 5' overhangs
    _enzyme("EcoRI", "GAATTC", -5, -1),
    _enzyme("BamHI", "GGATCC", -5, -1),
    _enzyme("BglII", "AGATCT", -5, -1),
    _enzyme("XhoI", "CTCGAG", -5, -1),
    _enzyme("SpeI", "ACTAGT", -5, -1),
    _enzyme("XbaI", "TCTAGA", -5, -1),
    _enzyme("NheI", "GCTAGC", -5, -1),
    _enzyme("NcoI", "CCATGG", -5, -1),
    _enzyme("HindIII", "AAGCTT", -5, -1),
    _enzyme("SalI", "GTCGAC", -5, -1),
    _enzyme("MfeI", "CAATTG", -5, -1),
    # Type II, 3' overhangs
    _enzyme("PstI", "CTGCAG", -1, -5),
    _enzyme("KpnI", "GGTACC", -1, -5),
    _enzyme("SacI", "GAGCTC", -1, -5),
])
