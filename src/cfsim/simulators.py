"""
Single-step simulators: PCR, digestion, ligation and transformation.

All functions take and return plain uppercase sequence strings.
"""

from typing import List, Sequence

from eliot import start_action

from cfsim.assembly import DigestionFragment, join_fragments, order_fragments
from cfsim.enzymes import DEFAULT_REGISTRY, EnzymeRegistry, find_cuts
from cfsim.errors import (
    AnnealMismatchError,
    EnzymeSiteError,
    FragmentIndexError,
    StickyEndMismatchError,
)
from cfsim.sequtils import reverse_complement

ANNEAL_LENGTH = 18
STICKY_END_LENGTH = 4


def pcr(forward_oligo: str, reverse_oligo: str, template: str) -> str:
    """
    Predict a PCR product.

    Inputs must already be resolved to uppercase sequences.

    The last 18 bases of each oligo are assumed to match the template exactly;
    anything 5' of that (restriction sites, tails) is carried into the product
    unchecked. The template is tried in both orientations and rotated to start
    at the forward anneal site, so products spanning the origin of a circular
    template come out whole.

    Example:
        forward_oligo = "CCATAGAATTCATGAGTAAAGGAGAAGAAC"
        template      = "...ATGAGTAAAGGAGAAGAAC...GGCATGGATGAACTATACAAA..."
        product       = forward_oligo + <template between anneal sites>
                        + reverse_complement(reverse_oligo)

    Raises:
        AnnealMismatchError: no exact match for the forward or reverse anneal region.
    """
    with start_action(action_type="pcr",
                      forward_length=len(forward_oligo),
                      reverse_length=len(reverse_oligo),
                      template_length=len(template)) as action:
        forward_anneal = forward_oligo[-ANNEAL_LENGTH:]
        if len(forward_anneal) < ANNEAL_LENGTH:
            raise AnnealMismatchError("forward", forward_anneal)

        start = template.find(forward_anneal)
        if start == -1:
            template = reverse_complement(template)
            start = template.find(forward_anneal)
            if start == -1:
                raise AnnealMismatchError("forward", forward_anneal)
        rotated = template[start:] + template[:start]

        reverse_rc = reverse_complement(reverse_oligo)
        reverse_anneal = reverse_rc[:ANNEAL_LENGTH]
        if len(reverse_anneal) < ANNEAL_LENGTH:
            raise AnnealMismatchError("reverse", reverse_anneal)
        end = rotated.find(reverse_anneal)
        if end == -1:
            raise AnnealMismatchError("reverse", reverse_anneal)

        if end < ANNEAL_LENGTH:
            # anneal regions overlap on the template
            product = forward_oligo + reverse_rc[ANNEAL_LENGTH - end:]
        else:
            product = forward_oligo + rotated[ANNEAL_LENGTH:end] + reverse_rc
        action.add_success_fields(product_length=len(product))
        return product


def digest_fragments(dna: str, enzymes: Sequence[str],
                     registry: EnzymeRegistry = DEFAULT_REGISTRY) -> List[str]:
    """
    Cut a linear DNA at every site of every enzyme.

    Fragments come back in positional order and keep their single-stranded
    overhangs on both ends, so the overhang bases appear in the two fragments
    that share a cut.
    """
    spans = set()
    for name in enzymes:
        if name not in registry:
            raise EnzymeSiteError(name, dna, "unknown enzyme")
        spans.update((cut.start, cut.end) for cut in find_cuts(dna, registry[name]))

    fragments = []
    left = 0
    for start, end in sorted(spans):
        fragments.append(dna[left:end])
        left = start
    fragments.append(dna[left:])
    return fragments


def digest(dna: str, enzymes: Sequence[str], frag_select: int,
           registry: EnzymeRegistry = DEFAULT_REGISTRY) -> str:
    """Digest and keep the ``frag_select``-th fragment (zero-based, positional order)."""
    with start_action(action_type="digest", enzymes=list(enzymes),
                      dna_length=len(dna), frag_select=frag_select) as action:
        fragments = digest_fragments(dna, enzymes, registry)
        if not 0 <= frag_select < len(fragments):
            raise FragmentIndexError(frag_select, len(fragments))
        action.add_success_fields(num_fragments=len(fragments),
                                  fragment_length=len(fragments[frag_select]))
        return fragments[frag_select]


def _with_overhangs(dna: str) -> DigestionFragment:
    if len(dna) < 2 * STICKY_END_LENGTH:
        raise StickyEndMismatchError([dna], "fragment too short to carry two sticky ends")
    return DigestionFragment(
        sticky_end5=dna[:STICKY_END_LENGTH],
        fragment=dna[STICKY_END_LENGTH:-STICKY_END_LENGTH],
        sticky_end3=dna[-STICKY_END_LENGTH:],
    )


def ligate(dnas: Sequence[str], blunt: bool = False) -> str:
    """
    Ligate fragments into a circle.

    Sticky-end ligation reads the first and last four bases of each fragment
    as its overhangs (the form digest() returns) and joins them under the same
    uniqueness rules as Golden Gate. Palindromic overhangs, as left by EcoRI or
    BamHI, are allowed. Blunt ligation joins the fragments in the given order.
    """
    with start_action(action_type="ligate", num_fragments=len(dnas), blunt=blunt) as action:
        if blunt:
            product = "".join(dnas)
        else:
            ordered = order_fragments([_with_overhangs(dna) for dna in dnas])
            product = join_fragments(ordered)
        action.add_success_fields(product_length=len(product))
        return product


def transform(dna: str) -> str:
    """Transformation selects a clone; the sequence is unchanged."""
    return dna
