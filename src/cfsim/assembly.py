"""
Multi-fragment assembly: Golden Gate (sticky ends) and Gibson (homology).

Golden Gate cuts every part at its inward-facing Type IIS sites, validates the
resulting sticky ends and walks the sticky-end adjacency to reconstruct the one
closed cycle of parts. Gibson merges fragments by exact terminal overlaps,
round after round, until a single molecule remains.
"""

from typing import Dict, List, NamedTuple, Sequence

from eliot import log_message, start_action
from pydantic import BaseModel, ConfigDict

from cfsim.enzymes import DEFAULT_REGISTRY, EnzymeRegistry, RestrictionEnzyme, occurrences
from cfsim.errors import (
    AmbiguousAssemblyError,
    CircularityError,
    EnzymeSiteError,
    NonConvergenceError,
    StickyEndError,
    StickyEndMismatchError,
)
from cfsim.models import GIBSON_MARKER
from cfsim.sequtils import is_palindromic

HOMOLOGY_LENGTH = 20


class DigestionFragment(BaseModel):
    """A part after cutting: its internal sequence and the overhangs on each side."""

    model_config = ConfigDict(frozen=True)

    fragment: str
    sticky_end5: str
    sticky_end3: str


def digest_part(dna: str, enzyme: RestrictionEnzyme) -> DigestionFragment:
    """
    Excise the internal fragment between a forward and a reverse Type IIS site.

    Raises:
        EnzymeSiteError: the enzyme site is palindromic, either orientation
            occurs other than exactly once, or the reverse site comes first.
    """
    if enzyme.is_palindromic_site:
        raise EnzymeSiteError(enzyme.name, dna, "palindromic site, not a Type IIS enzyme")

    forward = list(occurrences(dna, enzyme.recognition_sequence))
    reverse = list(occurrences(dna, enzyme.recognition_rc))
    if len(forward) != 1:
        raise EnzymeSiteError(enzyme.name, dna, f"{len(forward)} forward sites, expected 1")
    if len(reverse) != 1:
        raise EnzymeSiteError(enzyme.name, dna, f"{len(reverse)} reverse sites, expected 1")
    site_end, reverse_start = forward[0] + len(enzyme.recognition_sequence), reverse[0]
    if reverse_start < forward[0]:
        raise EnzymeSiteError(enzyme.name, dna, "reverse site precedes forward site")

    # near/far: the cut closest to / furthest from each site
    if enzyme.is_five_prime:
        near, far = enzyme.cut5, enzyme.cut3
    else:
        near, far = enzyme.cut3, enzyme.cut5
    if site_end + far > reverse_start - far:
        raise EnzymeSiteError(enzyme.name, dna, "sites too close to leave a fragment")

    return DigestionFragment(
        sticky_end5=dna[site_end + near:site_end + far],
        fragment=dna[site_end + far:reverse_start - far],
        sticky_end3=dna[reverse_start - far:reverse_start - near],
    )


def check_orientation(fragments: Sequence[DigestionFragment]) -> None:
    """Reject self-palindromic sticky ends, which would ligate in either orientation."""
    for frag in fragments:
        for end in (frag.sticky_end5, frag.sticky_end3):
            if is_palindromic(end):
                raise StickyEndError(end, frag.fragment)


def order_fragments(fragments: Sequence[DigestionFragment]) -> List[DigestionFragment]:
    """
    Put fragments in ligation order, each 3' end meeting the next 5' end.

    Every sticky end may appear at most once as a 5' end and once as a 3' end,
    so following the adjacency from any fragment visits each fragment exactly
    once. The walk starts from the lexicographically smallest 5' end to make
    the result independent of input order.
    """
    if not fragments:
        raise StickyEndMismatchError([], "no fragments to join")

    by_end5: Dict[str, int] = {}
    by_end3: Dict[str, int] = {}
    for index, frag in enumerate(fragments):
        for end, seen in ((frag.sticky_end5, by_end5), (frag.sticky_end3, by_end3)):
            if end in seen:
                raise AmbiguousAssemblyError(end, [fragments[seen[end]].fragment, frag.fragment])
            seen[end] = index

    order = [by_end5[min(by_end5)]]
    while len(order) < len(fragments):
        current = fragments[order[-1]]
        following = by_end5.get(current.sticky_end3)
        if following is None or following in order:
            raise StickyEndMismatchError(
                [current.fragment],
                f"no remaining fragment accepts sticky end {current.sticky_end3}",
            )
        order.append(following)

    last, first = fragments[order[-1]], fragments[order[0]]
    if last.sticky_end3 != first.sticky_end5:
        raise StickyEndMismatchError([last.fragment, first.fragment], "assembly does not close")
    return [fragments[i] for i in order]


def join_fragments(ordered: Sequence[DigestionFragment]) -> str:
    """Concatenate ordered fragments into a circular sequence, one sticky end per junction."""
    return "".join(frag.sticky_end5 + frag.fragment for frag in ordered)


def golden_gate(dnas: Sequence[str], enzyme: RestrictionEnzyme, allow_palindromic: bool = False) -> str:
    """
    Golden Gate assembly of parts carrying inward-facing Type IIS sites.

    Returns the circular product written from the junction with the smallest
    sticky end.

    Raises:
        EnzymeSiteError: a part lacks exactly one site in each orientation.
        StickyEndError: a sticky end is palindromic and allow_palindromic is off.
        AmbiguousAssemblyError: two parts share a 5' or a 3' sticky end.
        StickyEndMismatchError: the parts do not close into one circle.
    """
    with start_action(action_type="golden_gate_assembly",
                      enzyme=enzyme.name, num_fragments=len(dnas)) as action:
        parts = [digest_part(dna, enzyme) for dna in dnas]
        if not allow_palindromic:
            check_orientation(parts)
        ordered = order_fragments(parts)
        product = join_fragments(ordered)
        action.add_success_fields(
            junctions=[frag.sticky_end5 for frag in ordered],
            product_length=len(product),
        )
        return product


def _close_circle(sequence: str) -> str:
    overlap = sequence[-HOMOLOGY_LENGTH:]
    start = sequence.find(overlap)
    if start + HOMOLOGY_LENGTH >= len(sequence):
        raise CircularityError(sequence)
    return sequence[start + HOMOLOGY_LENGTH:]


class Junction(NamedTuple):
    """Upstream fragment ``upstream``'s last 20 bp found at ``position`` in ``downstream``."""
    upstream: int
    downstream: int
    position: int


def find_junctions(fragments: Sequence[str]) -> List[Junction]:
    """Every occurrence of each fragment's terminal homology inside another fragment."""
    junctions = []
    for i, upstream in enumerate(fragments):
        overlap = upstream[-HOMOLOGY_LENGTH:]
        for j, downstream in enumerate(fragments):
            if i != j:
                junctions.extend(Junction(i, j, pos) for pos in occurrences(downstream, overlap))
    return junctions


def _merge_chains(fragments: Sequence[str], junctions: Sequence[Junction]) -> List[str]:
    following: Dict[int, Junction] = {}
    has_upstream = set()
    for junction in junctions:
        if junction.upstream in following or junction.downstream in has_upstream:
            raise NonConvergenceError(fragments, "a fragment joins more than one partner on the same side")
        following[junction.upstream] = junction
        has_upstream.add(junction.downstream)

    chains = []
    visited = 0
    for start in range(len(fragments)):
        if start in has_upstream:
            continue
        chain, current = fragments[start], start
        visited += 1
        while current in following:
            junction = following[current]
            chain += fragments[junction.downstream][junction.position + HOMOLOGY_LENGTH:]
            current = junction.downstream
            visited += 1
        chains.append(chain)
    if visited < len(fragments):
        raise NonConvergenceError(fragments, "fragments close into more than one circle")
    return chains


class AssembledMolecule(NamedTuple):
    sequence: str
    circular: bool


def gibson(dnas: Sequence[str], check_circular: bool = True) -> str:
    """Homology assembly; see gibson_molecule()."""
    return gibson_molecule(dnas, check_circular).sequence


def gibson_molecule(dnas: Sequence[str], check_circular: bool = True) -> AssembledMolecule:
    """
    Homology assembly by exact 20 bp terminal overlaps.

    Each round collects every junction (A, B) where A's last 20 bp occur in B;
    joining gives ``A + B[after overlap]``. A round with as many junctions as
    fragments means every fragment found a downstream partner, i.e. the
    molecule closes on itself; the last junction is dropped so the circle is
    not closed twice. More junctions than fragments is ambiguous and fails.
    The remaining junctions are followed to merge fragments into chains, which
    become the next round's fragments.

    Args:
        dnas: fragments to assemble.
        check_circular: require a circular product and trim the redundant
            closing overlap. When False the merged molecule is returned as is,
            linear or not.

    Returns:
        The product, flagged circular only when it was closed on itself.

    Raises:
        NonConvergenceError: a round found too many junctions, none, or
            junctions that do not form simple chains.
        CircularityError: the product is linear and check_circular is set.
    """
    with start_action(action_type="gibson_assembly",
                      num_fragments=len(dnas), check_circular=check_circular) as action:
        if not dnas:
            raise NonConvergenceError([], "no fragments to assemble")

        working = list(dnas)
        is_circular = False
        rounds = 0
        while len(working) > 1:
            rounds += 1
            junctions = find_junctions(working)
            if len(junctions) > len(working):
                raise NonConvergenceError(
                    working, f"{len(junctions)} junctions found for {len(working)} fragments")
            if not junctions:
                raise NonConvergenceError(working, "no homologous junctions found")
            if len(junctions) == len(working):
                is_circular = True
                junctions = junctions[:-1]
            working = _merge_chains(working, junctions)

        product = working[0]
        if check_circular:
            if not is_circular:
                raise CircularityError(product)
            product = _close_circle(product)

        action.add_success_fields(rounds=rounds, circular=is_circular,
                                  closed=check_circular, product_length=len(product))
        return AssembledMolecule(product, circular=check_circular)


def assemble_molecule(
    dnas: Sequence[str],
    enzyme: str,
    registry: EnzymeRegistry = DEFAULT_REGISTRY,
    check_circular: bool = True,
) -> AssembledMolecule:
    """Golden Gate when ``enzyme`` is a known enzyme, Gibson otherwise."""
    if enzyme in registry:
        return AssembledMolecule(golden_gate(dnas, registry[enzyme]), circular=True)
    if enzyme.lower() != GIBSON_MARKER:
        log_message(message_type="cfsim:assembly:unknown_enzyme", enzyme=enzyme)
    return gibson_molecule(dnas, check_circular=check_circular)


def assemble(
    dnas: Sequence[str],
    enzyme: str,
    registry: EnzymeRegistry = DEFAULT_REGISTRY,
    check_circular: bool = True,
) -> str:
    return assemble_molecule(dnas, enzyme, registry, check_circular).sequence
